"""
Data models for expense submissions and receipt analysis.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional
from pydantic import Field

from models.base import FundexModel
from models.scoring import FraudAnalysisResult, ReliabilityResult


class AmountConfidence(str, Enum):
    """How an amount was located on the receipt."""
    HIGH = "high"      # Next to a total keyword
    MEDIUM = "medium"  # Largest number on the receipt
    LOW = "low"        # Found in the last lines


class AmountCandidate(FundexModel):
    """A numeric amount found on a receipt line."""
    amount: float
    line: str
    confidence: AmountConfidence
    source: str


class GSTValidationResult(FundexModel):
    """
    Result of validating a GSTIN.

    ``found`` is True whenever a GSTIN was supplied or extracted.
    """
    found: bool = False
    valid: bool = False
    gst_number: Optional[str] = None
    extracted: Optional[str] = None
    business_name: Optional[str] = None
    status: Optional[str] = None
    registration_date: Optional[str] = None
    address: Optional[str] = None
    state_code: Optional[str] = None
    api_verified: bool = False
    format_valid: Optional[bool] = None
    error: Optional[str] = None


class BillAnalysis(FundexModel):
    """Everything read off a receipt image in one pass."""
    success: bool
    text: Optional[str] = None
    amount: Optional[float] = None
    gst_number: Optional[str] = None
    text_length: int = 0
    error: Optional[str] = None


class ExpenseSubmission(FundexModel):
    """Inputs to the fraud and reliability scorers. Every field is optional."""
    claimed_amount: Optional[float] = Field(default=None, ge=0)
    detected_amount: Optional[float] = Field(default=None, ge=0)
    ocr_extracted_text: Optional[str] = None
    gst_validation: Optional[GSTValidationResult] = None
    remaining_balance: Optional[float] = None


class VerificationStatus(str, Enum):
    """Review state assigned to a freshly scored expense."""
    PENDING = "pending"
    FLAGGED = "flagged"
    APPROVED = "approved"
    REJECTED = "rejected"


class ExpenseAnalysis(FundexModel):
    """Combined output of the expense verification pipeline."""
    receipt_ref: Optional[str] = None
    claimed_amount: float
    remaining_balance: Optional[float] = None
    bill_analysis: BillAnalysis
    gst_validation: Optional[GSTValidationResult] = None
    fraud_analysis: FraudAnalysisResult
    reliability: ReliabilityResult
    fraud_flags: List[str] = Field(default_factory=list)
    verification_status: VerificationStatus = VerificationStatus.PENDING
    flagged_reason: Optional[str] = None
    fraud_report: str = ""
    analyzed_at: datetime = Field(default_factory=datetime.now)
