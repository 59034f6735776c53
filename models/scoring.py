"""
Result models produced by the fraud and reliability scorers.
"""

from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import Field

from models.base import FundexModel


class RiskLevel(str, Enum):
    """Banding of the fraud score."""
    MINIMAL = "MINIMAL"
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class ReliabilityRating(str, Enum):
    """Banding of the reliability score."""
    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    FAIR = "FAIR"
    NEEDS_REVIEW = "NEEDS REVIEW"
    POOR = "POOR"


class FraudAnalysisResult(FundexModel):
    """Outcome of the fraud scorer."""
    score: int = Field(ge=0, le=100)
    risk_level: RiskLevel
    flags: List[str] = Field(default_factory=list)
    details: Dict[str, Any] = Field(default_factory=dict)
    recommendation: str


class ScoreComponent(FundexModel):
    """One capped sub-score of the reliability breakdown."""
    score: int
    max_score: int
    percentage: int

    # Amount accuracy
    claimed: Optional[float] = None
    detected: Optional[float] = None
    difference: Optional[str] = None
    note: Optional[str] = None

    # Compliance
    gst_found: Optional[bool] = None
    gst_verified: Optional[bool] = None


class ReliabilityBreakdown(FundexModel):
    """The four named reliability sub-scores."""
    document_quality: ScoreComponent
    amount_accuracy: ScoreComponent
    compliance: ScoreComponent
    spending_pattern: ScoreComponent


class ReliabilityResult(FundexModel):
    """Outcome of the reliability scorer."""
    score: int = Field(ge=0, le=100)
    rating: ReliabilityRating
    color: str
    breakdown: ReliabilityBreakdown
    flags: List[str] = Field(default_factory=list)
    recommendation: str
