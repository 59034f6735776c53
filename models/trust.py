"""
Data models for the NGO-wide Trust & Transparency score.
"""

from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import Field

from models.base import FundexModel


class TrustComponent(FundexModel):
    """One weighted component of the trust score."""
    score: int
    max_score: int
    details: str
    metrics: Dict[str, Any] = Field(default_factory=dict)


class FundMetrics(FundexModel):
    """Money flow figures shown to donors."""
    total_raised: float = 0.0
    total_allocated: float = 0.0
    total_spent: float = 0.0
    available_funds: float = 0.0
    utilization_percentage: float = 0.0
    total_donors: int = 0
    total_campaigns: int = 0
    active_campaigns: int = 0


class NGOTrustScore(FundexModel):
    """Trust & Transparency score of a single NGO."""
    ngo_id: Optional[str] = None
    trust_score: int = Field(ge=0, le=100)
    breakdown: Dict[str, TrustComponent] = Field(default_factory=dict)
    fund_metrics: Optional[FundMetrics] = None
    last_calculated: datetime = Field(default_factory=datetime.now)
    error: Optional[str] = None
