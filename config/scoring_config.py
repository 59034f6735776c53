"""
Scoring weights and thresholds for expense verification.

Point caps, percentage bands and rating thresholds used by the fraud scorer,
the reliability scorer and the NGO trust score. Bands are listed from the
most to the least severe and are evaluated in order.
"""

from typing import Any, Dict, List, Tuple

# ============================================================
# FRAUD SCORE (higher = more suspicious)
# ============================================================
FRAUD_MAX_SCORE = 100

# Amount mismatch (0-35): (percent difference strictly above, points, flag, severity)
FRAUD_AMOUNT_MISMATCH_BANDS: List[Tuple[float, int, str, str]] = [
    (50.0, 35, "SEVERE_AMOUNT_MISMATCH", "high"),
    (20.0, 25, "MODERATE_AMOUNT_MISMATCH", "moderate"),
    (5.0, 15, "MINOR_AMOUNT_MISMATCH", "low"),
]
FRAUD_NO_AMOUNT_DETECTED_POINTS = 20

# GST compliance (0-30)
FRAUD_NO_GST_POINTS = 25
FRAUD_INVALID_GST_POINTS = 30
FRAUD_GST_NOT_API_VERIFIED_POINTS = 10
FRAUD_GST_NOT_CHECKED_POINTS = 20

# OCR quality (0-15): (text length strictly below, points, flag)
FRAUD_OCR_QUALITY_BANDS: List[Tuple[int, int, str]] = [
    (50, 15, "LOW_OCR_QUALITY"),
    (100, 10, "MODERATE_OCR_QUALITY"),
]
FRAUD_OCR_FAILED_POINTS = 15

# Overspending (0-20)
FRAUD_OVERSPENDING_POINTS = 20

# Risk levels: (score at or above, level, recommendation)
FRAUD_RISK_LEVELS: List[Tuple[int, str, str]] = [
    (80, "CRITICAL", "REJECT - Critical fraud risk detected. Immediate investigation required."),
    (60, "HIGH", "FLAG - High fraud risk. Requires thorough admin review before approval."),
    (40, "MEDIUM", "REVIEW - Moderate concerns. Admin should carefully verify all details."),
    (20, "LOW", "CAUTION - Minor concerns noted. Quick admin verification recommended."),
    (0, "MINIMAL", "APPROVE - Low fraud risk. Standard verification sufficient."),
]

# ============================================================
# RELIABILITY SCORE (higher = more trustworthy)
# ============================================================
RELIABILITY_MAX_SCORE = 100

DOCUMENT_QUALITY_MAX = 40
AMOUNT_ACCURACY_MAX = 30
COMPLIANCE_MAX = 20
SPENDING_PATTERN_MAX = 10

# OCR text quality (0-20): (text length at or above, points)
RELIABILITY_OCR_TEXT_BANDS: List[Tuple[int, int]] = [
    (200, 20),
    (100, 15),
    (50, 10),
]
RELIABILITY_OCR_TEXT_FLOOR_POINTS = 5

# Amount detection (0-20)
RELIABILITY_AMOUNT_DETECTED_POINTS = 20
RELIABILITY_AMOUNT_NOT_DETECTED_POINTS = 5

# Amount accuracy (0-30): (percent difference at or below, points, note label or None)
RELIABILITY_AMOUNT_ACCURACY_BANDS: List[Tuple[float, int, Any]] = [
    (2.0, 30, None),
    (5.0, 25, None),
    (10.0, 20, "Minor"),
    (20.0, 10, "Moderate"),
]
RELIABILITY_AMOUNT_ACCURACY_FLOOR_LABEL = "Large"
RELIABILITY_AMOUNT_UNDETECTED_POINTS = 15

# Compliance (0-20)
RELIABILITY_GST_VERIFIED_POINTS = 15
RELIABILITY_GST_UNVERIFIED_POINTS = 12
RELIABILITY_GST_MISSING_POINTS = 5
RELIABILITY_GST_UNCHECKED_POINTS = 5
RELIABILITY_COMPLETE_RECEIPT_LENGTH = 100
RELIABILITY_COMPLETE_RECEIPT_POINTS = 5
RELIABILITY_INCOMPLETE_RECEIPT_POINTS = 2

# Spending pattern (0-10): (overspend percent at or below, points, flag)
RELIABILITY_OVERSPEND_BANDS: List[Tuple[float, int, str]] = [
    (5.0, 7, "Slight budget overspend"),
    (10.0, 5, "Moderate budget overspend"),
]
RELIABILITY_SEVERE_OVERSPEND_FLAG = "Significant budget overspend"

# Ratings: (score at or above, rating, color, recommendation)
RELIABILITY_RATINGS: List[Tuple[int, str, str, str]] = [
    (90, "EXCELLENT", "green", "Highly reliable expense - approve with confidence"),
    (75, "GOOD", "blue", "Reliable expense - standard approval process"),
    (60, "FAIR", "yellow", "Acceptable expense - quick verification recommended"),
    (40, "NEEDS REVIEW", "orange", "Requires careful review before approval"),
    (0, "POOR", "red", "Significant concerns - thorough investigation required"),
]

# ============================================================
# VERIFICATION WORKFLOW
# ============================================================
AUTO_FLAG_THRESHOLD = 50
AMOUNT_MISMATCH_NOTICE_PCT = 5.0
DEFAULT_RESCORE_REMAINING_BALANCE = 10000

# ============================================================
# NGO TRUST SCORE
# ============================================================
TRUST_FRAUD_COMPONENT_MAX = 40
TRUST_UTILIZATION_COMPONENT_MAX = 30
TRUST_TRANSPARENCY_COMPONENT_MAX = 20
TRUST_DONOR_CONFIDENCE_COMPONENT_MAX = 10
TRUST_HIGH_RISK_FRAUD_SCORE = 60
TRUST_CAMPAIGN_SUCCESS_RATIO = 0.8
TRUST_DEFAULT_SCORE = 75

TRUST_SETTINGS: Dict[str, Any] = {
    "optimal_utilization": (80.0, 95.0, 30),
    "good_utilization": (70.0, 80.0, 25),
    "full_utilization": (95.0, 100.0, 28),
    "overspend_penalty_per_pct": 2,
    "low_utilization_points": 20,
    "low_utilization_reference": 70.0,
    "neutral_rate": 50.0,
    "success_weight": 0.6,
    "progress_weight": 0.4,
}
