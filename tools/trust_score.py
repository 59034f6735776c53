"""
NGO-wide Trust & Transparency score.

Aggregates stored expense outcomes, fund requests, campaigns and donations
into a 0-100 score made of four components: fraud history (40), fund
utilisation (30), transparency (20) and donor confidence (10).

Records are plain dicts as stored by the platform, e.g. an expense carries
``fraud_score``, ``verification_status`` and ``amount_spent``.
"""

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from config.scoring_config import (
    TRUST_CAMPAIGN_SUCCESS_RATIO,
    TRUST_DEFAULT_SCORE,
    TRUST_DONOR_CONFIDENCE_COMPONENT_MAX,
    TRUST_FRAUD_COMPONENT_MAX,
    TRUST_HIGH_RISK_FRAUD_SCORE,
    TRUST_SETTINGS,
    TRUST_TRANSPARENCY_COMPONENT_MAX,
    TRUST_UTILIZATION_COMPONENT_MAX,
)
from models.trust import FundMetrics, NGOTrustScore, TrustComponent
from utils.score_utils import clamp_score, round_half_up, safe_rate

logger = logging.getLogger("fundex.tools.trust_score")

Record = Mapping[str, Any]
# Returns the NGO's records keyed by expenses, fund_requests, campaigns, donations
RecordLoader = Callable[[str], Mapping[str, Sequence[Record]]]


def _approved_expenses(expenses: Sequence[Record]) -> List[Record]:
    return [e for e in expenses if e.get("verification_status") == "approved"]


def _approved_requests(fund_requests: Sequence[Record]) -> List[Record]:
    return [r for r in fund_requests if r.get("status") == "approved"]


def _total(records: Sequence[Record], key: str) -> float:
    return sum(r.get(key) or 0 for r in records)


def fraud_component(expenses: Sequence[Record]) -> TrustComponent:
    """Inverse of the average fraud score across all expenses."""
    if not expenses:
        return TrustComponent(
            score=TRUST_FRAUD_COMPONENT_MAX,
            max_score=TRUST_FRAUD_COMPONENT_MAX,
            details="No expenses submitted yet",
            metrics={"avg_fraud_score": 0},
        )

    avg_fraud = _total(expenses, "fraud_score") / len(expenses)
    high_risk = sum(1 for e in expenses if (e.get("fraud_score") or 0) >= TRUST_HIGH_RISK_FRAUD_SCORE)

    return TrustComponent(
        score=round_half_up(TRUST_FRAUD_COMPONENT_MAX * (1 - avg_fraud / 100)),
        max_score=TRUST_FRAUD_COMPONENT_MAX,
        details=f"Average fraud score: {avg_fraud:.1f}/100",
        metrics={
            "avg_fraud_score": round(avg_fraud, 1),
            "high_risk_percentage": round(high_risk / len(expenses) * 100, 1),
            "total_expenses": len(expenses),
            "high_risk_expenses": high_risk,
        },
    )


def _utilization_points(rate: float) -> float:
    optimal_low, optimal_high, optimal_points = TRUST_SETTINGS["optimal_utilization"]
    good_low, good_high, good_points = TRUST_SETTINGS["good_utilization"]
    full_low, full_high, full_points = TRUST_SETTINGS["full_utilization"]

    if optimal_low <= rate <= optimal_high:
        return optimal_points
    if good_low <= rate < good_high:
        return good_points
    if full_low < rate <= full_high:
        return full_points
    if rate > full_high:
        penalty = (rate - full_high) * TRUST_SETTINGS["overspend_penalty_per_pct"]
        return max(0, TRUST_UTILIZATION_COMPONENT_MAX - penalty)
    return rate / TRUST_SETTINGS["low_utilization_reference"] * TRUST_SETTINGS["low_utilization_points"]


def utilization_component(expenses: Sequence[Record], fund_requests: Sequence[Record]) -> TrustComponent:
    """Share of approved funds backed by approved expenses, best at 80-95 %."""
    approved_requests = _approved_requests(fund_requests)

    if not approved_requests:
        return TrustComponent(
            score=TRUST_UTILIZATION_COMPONENT_MAX,
            max_score=TRUST_UTILIZATION_COMPONENT_MAX,
            details="No fund requests approved yet",
            metrics={"utilization_rate": 100},
        )

    total_approved = _total(approved_requests, "approved_amount")
    total_spent = _total(_approved_expenses(expenses), "amount_spent")
    rate = safe_rate(total_spent, total_approved)

    return TrustComponent(
        score=round_half_up(_utilization_points(rate)),
        max_score=TRUST_UTILIZATION_COMPONENT_MAX,
        details=f"{rate:.1f}% of approved funds utilized",
        metrics={
            "utilization_rate": round(rate, 1),
            "total_approved": total_approved,
            "total_spent": total_spent,
        },
    )


def transparency_component(expenses: Sequence[Record], fund_requests: Sequence[Record]) -> TrustComponent:
    """Expense verification rate and fund request processing rate, 10 points each."""
    half = TRUST_TRANSPARENCY_COMPONENT_MAX // 2
    verified = len(_approved_expenses(expenses))
    processed = sum(1 for r in fund_requests if r.get("status") != "pending")

    verification_rate = safe_rate(verified, len(expenses), default=None)
    processing_rate = safe_rate(processed, len(fund_requests), default=None)

    score = half if verification_rate is None else round_half_up(verification_rate / 100 * half)
    score += half if processing_rate is None else round_half_up(processing_rate / 100 * half)

    shown_rate = 100.0 if verification_rate is None else round(verification_rate, 1)
    return TrustComponent(
        score=score,
        max_score=TRUST_TRANSPARENCY_COMPONENT_MAX,
        details=f"{shown_rate}% expenses verified",
        metrics={
            "verification_rate": shown_rate,
            "verified_expenses": verified,
            "total_expenses": len(expenses),
        },
    )


def _campaign_progress(campaign: Record) -> float:
    target = campaign.get("target_amount") or 0
    if target <= 0:
        return 0.0
    return (campaign.get("raised_amount") or 0) / target * 100


def donor_confidence_component(campaigns: Sequence[Record]) -> TrustComponent:
    """Completed campaign success rate blended with active campaign progress."""
    if not campaigns:
        return TrustComponent(
            score=TRUST_DONOR_CONFIDENCE_COMPONENT_MAX,
            max_score=TRUST_DONOR_CONFIDENCE_COMPONENT_MAX,
            details="New NGO - building track record",
            metrics={"success_rate": 0},
        )

    neutral = TRUST_SETTINGS["neutral_rate"]
    completed = [c for c in campaigns if c.get("status") == "completed"]
    successful = [
        c for c in completed
        if (c.get("raised_amount") or 0) >= (c.get("target_amount") or 0) * TRUST_CAMPAIGN_SUCCESS_RATIO
    ]
    success_rate = safe_rate(len(successful), len(completed), default=neutral)

    active = [c for c in campaigns if c.get("status") == "active"]
    avg_progress = (
        sum(_campaign_progress(c) for c in active) / len(active) if active else neutral
    )

    blended = success_rate * TRUST_SETTINGS["success_weight"] + avg_progress * TRUST_SETTINGS["progress_weight"]
    return TrustComponent(
        score=min(TRUST_DONOR_CONFIDENCE_COMPONENT_MAX, round_half_up(blended / 10)),
        max_score=TRUST_DONOR_CONFIDENCE_COMPONENT_MAX,
        details=f"{success_rate:.0f}% campaign success rate",
        metrics={
            "success_rate": round(success_rate, 1),
            "completed_campaigns": len(completed),
            "successful_campaigns": len(successful),
            "avg_progress": round(avg_progress, 1),
        },
    )


def calculate_fund_metrics(
    expenses: Sequence[Record],
    fund_requests: Sequence[Record],
    campaigns: Sequence[Record],
    donations: Sequence[Record],
) -> FundMetrics:
    """Money raised, allocated, spent and still available."""
    total_raised = _total(donations, "amount")
    total_allocated = _total(_approved_requests(fund_requests), "approved_amount")
    total_spent = _total(_approved_expenses(expenses), "amount_spent")
    donors = {str(d["donor_id"]) for d in donations if d.get("donor_id") is not None}

    return FundMetrics(
        total_raised=total_raised,
        total_allocated=total_allocated,
        total_spent=total_spent,
        available_funds=total_raised - total_allocated,
        utilization_percentage=round(safe_rate(total_spent, total_raised), 1),
        total_donors=len(donors),
        total_campaigns=len(campaigns),
        active_campaigns=sum(1 for c in campaigns if c.get("status") == "active"),
    )


def calculate_ngo_trust_score(
    expenses: Sequence[Record],
    fund_requests: Sequence[Record],
    campaigns: Sequence[Record],
    donations: Sequence[Record],
    ngo_id: Optional[str] = None,
) -> NGOTrustScore:
    """
    Calculate the Trust & Transparency score of an NGO.

    Args:
        expenses: Expense records of the NGO
        fund_requests: Fund request records
        campaigns: Campaign records
        donations: Donation records
        ngo_id: Optional NGO identifier echoed in the result

    Returns:
        NGOTrustScore: Score, per-component breakdown and fund metrics
    """
    breakdown: Dict[str, TrustComponent] = {
        "fraud_score": fraud_component(expenses),
        "utilization": utilization_component(expenses, fund_requests),
        "transparency": transparency_component(expenses, fund_requests),
        "donor_confidence": donor_confidence_component(campaigns),
    }
    total = sum(component.score for component in breakdown.values())

    result = NGOTrustScore(
        ngo_id=ngo_id,
        trust_score=clamp_score(total),
        breakdown=breakdown,
        fund_metrics=calculate_fund_metrics(expenses, fund_requests, campaigns, donations),
    )
    logger.info(f"Trust score for NGO {ngo_id}: {result.trust_score}")
    return result


def get_ngo_trust_score(ngo_id: str, loader: RecordLoader) -> NGOTrustScore:
    """
    Load an NGO's records and score them, falling back to a safe default.

    Args:
        ngo_id: NGO identifier
        loader: Callable returning the NGO's records

    Returns:
        NGOTrustScore: The calculated score, or the default score with ``error`` set
    """
    try:
        records = loader(ngo_id)
        return calculate_ngo_trust_score(
            records.get("expenses", []),
            records.get("fund_requests", []),
            records.get("campaigns", []),
            records.get("donations", []),
            ngo_id=ngo_id,
        )
    except Exception as e:
        logger.error(f"Error calculating trust score for NGO {ngo_id}: {e}", exc_info=True)
        return NGOTrustScore(
            ngo_id=ngo_id,
            trust_score=TRUST_DEFAULT_SCORE,
            error="Could not calculate trust score",
        )
