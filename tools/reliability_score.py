"""
Reliability scoring for expense submissions.

A positive metric: higher means more trustworthy. Four capped components
(document quality 40, amount accuracy 30, compliance 20, spending pattern 10)
sum to the final 0-100 score.
"""

import logging
from typing import Any, List, Optional, Tuple

from config.scoring_config import (
    AMOUNT_ACCURACY_MAX,
    COMPLIANCE_MAX,
    DOCUMENT_QUALITY_MAX,
    RELIABILITY_AMOUNT_ACCURACY_BANDS,
    RELIABILITY_AMOUNT_ACCURACY_FLOOR_LABEL,
    RELIABILITY_AMOUNT_DETECTED_POINTS,
    RELIABILITY_AMOUNT_NOT_DETECTED_POINTS,
    RELIABILITY_AMOUNT_UNDETECTED_POINTS,
    RELIABILITY_COMPLETE_RECEIPT_LENGTH,
    RELIABILITY_COMPLETE_RECEIPT_POINTS,
    RELIABILITY_GST_MISSING_POINTS,
    RELIABILITY_GST_UNCHECKED_POINTS,
    RELIABILITY_GST_UNVERIFIED_POINTS,
    RELIABILITY_GST_VERIFIED_POINTS,
    RELIABILITY_INCOMPLETE_RECEIPT_POINTS,
    RELIABILITY_MAX_SCORE,
    RELIABILITY_OCR_TEXT_BANDS,
    RELIABILITY_OCR_TEXT_FLOOR_POINTS,
    RELIABILITY_OVERSPEND_BANDS,
    RELIABILITY_RATINGS,
    RELIABILITY_SEVERE_OVERSPEND_FLAG,
    SPENDING_PATTERN_MAX,
)
from models.expense import ExpenseSubmission
from models.scoring import (
    ReliabilityBreakdown,
    ReliabilityRating,
    ReliabilityResult,
    ScoreComponent,
)
from utils.score_utils import clamp_score, component_percentage, percentage_difference

logger = logging.getLogger("fundex.tools.reliability_score")


# ============================================================
# Components
# ============================================================

def score_document_quality(submission: ExpenseSubmission, flags: List[str]) -> ScoreComponent:
    """OCR text volume plus whether an amount was read off the receipt."""
    points = 0
    text = submission.ocr_extracted_text

    if text:
        for min_length, band_points in RELIABILITY_OCR_TEXT_BANDS:
            if len(text) >= min_length:
                points += band_points
                break
        else:
            points += RELIABILITY_OCR_TEXT_FLOOR_POINTS
            flags.append("Low OCR quality - receipt may be unclear")
    else:
        flags.append("OCR failed - manual verification required")

    if submission.detected_amount:
        points += RELIABILITY_AMOUNT_DETECTED_POINTS
    else:
        points += RELIABILITY_AMOUNT_NOT_DETECTED_POINTS
        flags.append("Amount not auto-detected from receipt")

    return ScoreComponent(
        score=points,
        max_score=DOCUMENT_QUALITY_MAX,
        percentage=component_percentage(points, DOCUMENT_QUALITY_MAX),
    )


def score_amount_accuracy(submission: ExpenseSubmission, flags: List[str]) -> ScoreComponent:
    """How closely the claimed amount matches the detected one."""
    claimed = submission.claimed_amount
    detected = submission.detected_amount

    if not (detected and claimed):
        return ScoreComponent(
            score=RELIABILITY_AMOUNT_UNDETECTED_POINTS,
            max_score=AMOUNT_ACCURACY_MAX,
            percentage=50,
            note="Amount not auto-detected - manual verification needed",
        )

    pct = percentage_difference(detected, claimed)
    points, label = _amount_accuracy_band(pct)
    if label:
        flags.append(f"{label} amount difference: {pct:.1f}%")

    return ScoreComponent(
        score=points,
        max_score=AMOUNT_ACCURACY_MAX,
        percentage=component_percentage(points, AMOUNT_ACCURACY_MAX),
        claimed=claimed,
        detected=detected,
        difference=f"{pct:.2f}%",
    )


def _amount_accuracy_band(pct: float) -> Tuple[int, Optional[Any]]:
    for max_pct, points, label in RELIABILITY_AMOUNT_ACCURACY_BANDS:
        if pct <= max_pct:
            return points, label
    return 0, RELIABILITY_AMOUNT_ACCURACY_FLOOR_LABEL


def score_compliance(submission: ExpenseSubmission, flags: List[str]) -> ScoreComponent:
    """GST presence and verification plus receipt completeness."""
    gst = submission.gst_validation
    text = submission.ocr_extracted_text

    if gst is None:
        points = RELIABILITY_GST_UNCHECKED_POINTS
    elif gst.found:
        points = RELIABILITY_GST_VERIFIED_POINTS if gst.api_verified else RELIABILITY_GST_UNVERIFIED_POINTS
    else:
        points = RELIABILITY_GST_MISSING_POINTS
        flags.append("No GST number found on receipt")

    if text and len(text) > RELIABILITY_COMPLETE_RECEIPT_LENGTH:
        points += RELIABILITY_COMPLETE_RECEIPT_POINTS
    else:
        points += RELIABILITY_INCOMPLETE_RECEIPT_POINTS

    return ScoreComponent(
        score=points,
        max_score=COMPLIANCE_MAX,
        percentage=component_percentage(points, COMPLIANCE_MAX),
        gst_found=bool(gst and gst.found),
        gst_verified=bool(gst and gst.api_verified),
    )


def score_spending_pattern(submission: ExpenseSubmission, flags: List[str]) -> ScoreComponent:
    """Full marks within budget, tapering off with the size of the overspend."""
    claimed = submission.claimed_amount
    remaining = submission.remaining_balance
    points = SPENDING_PATTERN_MAX

    if remaining is not None and claimed and claimed > remaining:
        # An empty or negative balance counts as a significant overspend
        overspend_pct = (claimed - remaining) / remaining * 100 if remaining > 0 else None

        for max_pct, band_points, flag in RELIABILITY_OVERSPEND_BANDS:
            if overspend_pct is not None and overspend_pct <= max_pct:
                points = band_points
                flags.append(flag)
                break
        else:
            points = 0
            flags.append(RELIABILITY_SEVERE_OVERSPEND_FLAG)

    return ScoreComponent(
        score=points,
        max_score=SPENDING_PATTERN_MAX,
        percentage=component_percentage(points, SPENDING_PATTERN_MAX),
    )


def get_reliability_rating(score: int) -> Tuple[ReliabilityRating, str, str]:
    """
    Map a reliability score to its rating, display color and recommendation.

    Args:
        score: Reliability score

    Returns:
        tuple: (rating, color, recommendation)
    """
    for minimum, rating, color, recommendation in RELIABILITY_RATINGS:
        if score >= minimum:
            return ReliabilityRating(rating), color, recommendation
    _, rating, color, recommendation = RELIABILITY_RATINGS[-1]
    return ReliabilityRating(rating), color, recommendation


# ============================================================
# Public API
# ============================================================

def calculate_reliability_score(
    submission: Optional[ExpenseSubmission] = None,
    **fields: Any,
) -> ReliabilityResult:
    """
    Score an expense submission for reliability.

    Args:
        submission: Expense inputs, or keyword fields of ``ExpenseSubmission``

    Returns:
        ReliabilityResult: Score, rating, color, breakdown and notes
    """
    if submission is None:
        submission = ExpenseSubmission(**fields)

    flags: List[str] = []
    breakdown = ReliabilityBreakdown(
        document_quality=score_document_quality(submission, flags),
        amount_accuracy=score_amount_accuracy(submission, flags),
        compliance=score_compliance(submission, flags),
        spending_pattern=score_spending_pattern(submission, flags),
    )

    total = (
        breakdown.document_quality.score
        + breakdown.amount_accuracy.score
        + breakdown.compliance.score
        + breakdown.spending_pattern.score
    )
    score = clamp_score(total, 0, RELIABILITY_MAX_SCORE)
    rating, color, recommendation = get_reliability_rating(score)

    logger.debug(f"Reliability score {score} ({rating.value})")

    return ReliabilityResult(
        score=score,
        rating=rating,
        color=color,
        breakdown=breakdown,
        flags=flags,
        recommendation=recommendation,
    )


def generate_reliability_report(result: ReliabilityResult) -> str:
    """Render a reliability result as a plain-text report."""
    rule = "=" * 40
    components = [
        ("Document Quality", result.breakdown.document_quality),
        ("Amount Accuracy", result.breakdown.amount_accuracy),
        ("Compliance", result.breakdown.compliance),
        ("Spending Pattern", result.breakdown.spending_pattern),
    ]

    lines = [
        "EXPENSE RELIABILITY REPORT",
        rule,
        f"Reliability Score: {result.score}/100",
        f"Rating: {result.rating.value}",
        f"Recommendation: {result.recommendation}",
        "",
        "Score Breakdown:",
    ]
    for index, (name, component) in enumerate(components, start=1):
        lines.append(
            f"   {index}. {name}: {component.score}/{component.max_score} ({component.percentage}%)"
        )
    lines.append("")

    if result.flags:
        lines.append(f"Notes ({len(result.flags)}):")
        for index, flag in enumerate(result.flags, start=1):
            lines.append(f"   {index}. {flag}")
    else:
        lines.append("No concerns detected")

    lines.append(rule)
    return "\n".join(lines) + "\n"
