"""
Fraud scoring for expense submissions.

The score is additive over four independent factors (amount mismatch, GST
compliance, OCR quality, overspending) and is capped at 100. Higher means
more suspicious.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from config.scoring_config import (
    FRAUD_AMOUNT_MISMATCH_BANDS,
    FRAUD_GST_NOT_API_VERIFIED_POINTS,
    FRAUD_GST_NOT_CHECKED_POINTS,
    FRAUD_INVALID_GST_POINTS,
    FRAUD_MAX_SCORE,
    FRAUD_NO_AMOUNT_DETECTED_POINTS,
    FRAUD_NO_GST_POINTS,
    FRAUD_OCR_FAILED_POINTS,
    FRAUD_OCR_QUALITY_BANDS,
    FRAUD_OVERSPENDING_POINTS,
    FRAUD_RISK_LEVELS,
)
from models.expense import ExpenseSubmission
from models.scoring import FraudAnalysisResult, RiskLevel
from utils.score_utils import percentage_difference

logger = logging.getLogger("fundex.tools.fraud_detection")

# Accumulates points, flags and details while the factors are evaluated
_Tally = Tuple[List[int], List[str], Dict[str, Any]]


def _score_amount_mismatch(submission: ExpenseSubmission, tally: _Tally) -> None:
    points, flags, details = tally
    claimed = submission.claimed_amount
    detected = submission.detected_amount

    if detected and claimed:
        difference = abs(detected - claimed)
        pct = percentage_difference(detected, claimed)
        for threshold, band_points, flag, severity in FRAUD_AMOUNT_MISMATCH_BANDS:
            if pct > threshold:
                points.append(band_points)
                flags.append(flag)
                details["amount_mismatch"] = {
                    "severity": severity,
                    "claimed": claimed,
                    "detected": detected,
                    "difference": difference,
                    "percentage_diff": round(pct, 2),
                }
                break
    elif not detected:
        points.append(FRAUD_NO_AMOUNT_DETECTED_POINTS)
        flags.append("NO_AMOUNT_DETECTED")
        details["ocr_issue"] = "Could not detect amount from receipt"


def _score_gst(submission: ExpenseSubmission, tally: _Tally) -> None:
    points, flags, details = tally
    gst = submission.gst_validation

    if gst is None:
        points.append(FRAUD_GST_NOT_CHECKED_POINTS)
        flags.append("GST_NOT_CHECKED")
        details["gst_issue"] = "GST validation was not performed"
    elif not gst.found:
        points.append(FRAUD_NO_GST_POINTS)
        flags.append("NO_GST_NUMBER")
        details["gst_issue"] = "No GST number found on receipt"
    elif not gst.valid:
        points.append(FRAUD_INVALID_GST_POINTS)
        flags.append("INVALID_GST")
        details["gst_issue"] = "GST number is invalid or not registered"
    elif not gst.api_verified:
        points.append(FRAUD_GST_NOT_API_VERIFIED_POINTS)
        flags.append("GST_NOT_API_VERIFIED")
        details["gst_issue"] = "GST format valid but could not verify online"


def _score_ocr_quality(submission: ExpenseSubmission, tally: _Tally) -> None:
    points, flags, details = tally
    text = submission.ocr_extracted_text

    if not text:
        points.append(FRAUD_OCR_FAILED_POINTS)
        flags.append("OCR_FAILED")
        details["ocr_quality"] = "OCR processing failed completely"
        return

    messages = {
        "LOW_OCR_QUALITY": "Very little text extracted from receipt",
        "MODERATE_OCR_QUALITY": "Limited text extracted from receipt",
    }
    for below_length, band_points, flag in FRAUD_OCR_QUALITY_BANDS:
        if len(text) < below_length:
            points.append(band_points)
            flags.append(flag)
            details["ocr_quality"] = messages[flag]
            break


def _score_overspending(submission: ExpenseSubmission, tally: _Tally) -> None:
    points, flags, details = tally
    claimed = submission.claimed_amount
    remaining = submission.remaining_balance

    if remaining is not None and claimed and claimed > remaining:
        points.append(FRAUD_OVERSPENDING_POINTS)
        flags.append("OVERSPENDING")
        details["overspending"] = {
            "claimed": claimed,
            "remaining": remaining,
            "overspend": claimed - remaining,
        }


FRAUD_FACTORS = (
    _score_amount_mismatch,
    _score_gst,
    _score_ocr_quality,
    _score_overspending,
)


def get_risk_level(score: int) -> Tuple[RiskLevel, str]:
    """
    Map a fraud score to its risk level and recommendation.

    Args:
        score: Fraud score

    Returns:
        tuple: (risk level, recommendation)
    """
    for minimum, level, recommendation in FRAUD_RISK_LEVELS:
        if score >= minimum:
            return RiskLevel(level), recommendation
    # Negative scores cannot occur; fall back to the lowest band
    _, level, recommendation = FRAUD_RISK_LEVELS[-1]
    return RiskLevel(level), recommendation


def calculate_fraud_score(submission: Optional[ExpenseSubmission] = None, **fields: Any) -> FraudAnalysisResult:
    """
    Score an expense submission for fraud risk.

    Missing inputs never raise; each is treated as absent and scored by the
    factor that cares about it.

    Args:
        submission: Expense inputs, or keyword fields of ``ExpenseSubmission``

    Returns:
        FraudAnalysisResult: Capped score, risk level, flags and details
    """
    if submission is None:
        submission = ExpenseSubmission(**fields)

    tally: _Tally = ([], [], {})
    for factor in FRAUD_FACTORS:
        factor(submission, tally)

    points, flags, details = tally
    score = min(sum(points), FRAUD_MAX_SCORE)
    risk_level, recommendation = get_risk_level(score)

    logger.debug(f"Fraud score {score} ({risk_level.value}) with flags {flags}")

    return FraudAnalysisResult(
        score=score,
        risk_level=risk_level,
        flags=flags,
        details=details,
        recommendation=recommendation,
    )


def generate_fraud_report(result: FraudAnalysisResult) -> str:
    """
    Render a fraud analysis as a plain-text report for reviewers.

    Args:
        result: Output of ``calculate_fraud_score``

    Returns:
        str: Multi-line report
    """
    rule = "=" * 40
    lines = [
        "FRAUD ANALYSIS REPORT",
        rule,
        f"Fraud Score: {result.score}/100",
        f"Risk Level: {result.risk_level.value}",
        f"Recommendation: {result.recommendation}",
        "",
    ]

    if result.flags:
        lines.append(f"Flags Detected ({len(result.flags)}):")
        for index, flag in enumerate(result.flags, start=1):
            lines.append(f"   {index}. {flag.replace('_', ' ')}")
        lines.append("")

    if result.details:
        lines.append("Details:")
        for key, value in result.details.items():
            rendered = json.dumps(value, indent=2) if isinstance(value, dict) else value
            lines.append(f"   - {key}: {rendered}")

    lines.append(rule)
    return "\n".join(lines) + "\n"
