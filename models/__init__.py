"""
Data models for the Fundex verification service.
"""

from models.base import FundexModel
from models.expense import (
    AmountCandidate,
    AmountConfidence,
    BillAnalysis,
    ExpenseAnalysis,
    ExpenseSubmission,
    GSTValidationResult,
    VerificationStatus,
)
from models.scoring import (
    FraudAnalysisResult,
    ReliabilityBreakdown,
    ReliabilityRating,
    ReliabilityResult,
    RiskLevel,
    ScoreComponent,
)
from models.trust import (
    FundMetrics,
    NGOTrustScore,
    TrustComponent,
)
