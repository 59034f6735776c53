"""
Expense verification agent for Fundex.

Runs a submitted receipt through bill analysis, GST validation, fraud scoring
and reliability scoring, and decides whether the expense is auto-flagged for
admin review.
"""

import asyncio
from typing import Any, Dict, List, Optional

from agents.base_agent import BaseAgent
from config.scoring_config import AMOUNT_MISMATCH_NOTICE_PCT, AUTO_FLAG_THRESHOLD
from models.expense import (
    BillAnalysis,
    ExpenseAnalysis,
    ExpenseSubmission,
    GSTValidationResult,
    VerificationStatus,
)
from tools.bill_extraction import (
    analyze_bill,
    extract_amount_from_bill,
    extract_gst_from_bill,
)
from tools.document_ai import ImageRef
from tools.fraud_detection import calculate_fraud_score, generate_fraud_report
from tools.gst_validation import validate_and_extract_gst, validate_gst_online
from tools.reliability_score import calculate_reliability_score
from utils.error_handling import ValidationError
from utils.logging_config import TraceContext, log_agent_call, log_agent_response
from utils.score_utils import percentage_difference

INSTRUCTION = """You verify expense claims submitted by NGO volunteers.
Given the OCR text of a receipt, find the bill total and the vendor GSTIN,
validate the GSTIN against the public registry and explain any mismatch
between the claimed and the detected amount. Never approve an expense
yourself; report concerns for an admin to review."""


def _format_amount(amount: float) -> str:
    return str(int(amount)) if float(amount).is_integer() else str(amount)


class ExpenseVerificationAgent(BaseAgent):
    """
    Agent that scores expense submissions for fraud risk and reliability.

    The verification pipeline itself is deterministic; the model only gets
    the extraction and GST tools for conversational use.
    """

    def __init__(self, flag_threshold: int = AUTO_FLAG_THRESHOLD, processor_id: Optional[str] = None):
        super().__init__(
            name="ExpenseVerificationAgent",
            model="gemini-2.0-flash",
            description="Scores volunteer expense receipts for fraud risk and reliability",
            instruction=INSTRUCTION,
            tools=[extract_amount_from_bill, extract_gst_from_bill, validate_gst_online],
        )
        self.__dict__["flag_threshold"] = flag_threshold
        self.__dict__["processor_id"] = processor_id

    async def analyze_expense(
        self,
        receipt_image: ImageRef,
        claimed_amount: float,
        remaining_balance: Optional[float] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> ExpenseAnalysis:
        """
        Verify a single expense submission.

        Args:
            receipt_image: Receipt bytes, URL or file path
            claimed_amount: Amount the volunteer claims to have spent
            remaining_balance: Unspent balance of the approved request, if known
            context: Optional caller context; receives the trace ID and session state

        Returns:
            ExpenseAnalysis: Scores, reports and the resulting verification status

        Raises:
            ValidationError: If the claimed amount is negative
        """
        if claimed_amount < 0:
            raise ValidationError("Claimed amount must not be negative", field_name="claimed_amount")

        context = context if context is not None else {}
        receipt_ref = receipt_image if isinstance(receipt_image, str) else None

        with TraceContext(trace_id=context.get("trace_id")) as trace:
            context["trace_id"] = trace.trace_id
            log_agent_call(self.logger, self.name, {
                **context,
                "receipt_ref": receipt_ref,
                "claimed_amount": claimed_amount,
                "remaining_balance": remaining_balance,
            })

            fraud_flags: List[str] = []

            bill = await asyncio.to_thread(analyze_bill, receipt_image, self.processor_id)
            if not bill.success:
                fraud_flags.append("Bill analysis failed - manual verification required.")
            fraud_flags.extend(self._amount_flags(bill, claimed_amount))

            gst_validation = await self._validate_gst(bill, fraud_flags)

            submission = ExpenseSubmission(
                claimed_amount=claimed_amount,
                detected_amount=bill.amount,
                ocr_extracted_text=bill.text or "",
                gst_validation=gst_validation,
                remaining_balance=remaining_balance,
            )
            fraud = calculate_fraud_score(submission)
            reliability = calculate_reliability_score(submission)

            if remaining_balance is not None and claimed_amount > remaining_balance:
                fraud_flags.append("Volunteer has overspent more than approved amount.")

            flagged = fraud.score >= self.flag_threshold
            analysis = ExpenseAnalysis(
                receipt_ref=receipt_ref,
                claimed_amount=claimed_amount,
                remaining_balance=remaining_balance,
                bill_analysis=bill,
                gst_validation=gst_validation,
                fraud_analysis=fraud,
                reliability=reliability,
                fraud_flags=fraud_flags,
                verification_status=VerificationStatus.FLAGGED if flagged else VerificationStatus.PENDING,
                flagged_reason=fraud.recommendation if flagged else None,
                fraud_report=generate_fraud_report(fraud),
            )

            self.logger.info(
                f"Expense scored: fraud={fraud.score} ({fraud.risk_level.value}), "
                f"reliability={reliability.score} ({reliability.rating.value}), "
                f"status={analysis.verification_status.value}"
            )
            self.update_session_state("last_expense_analysis", analysis.model_dump(mode="json"), context)
            self.log_activity("expense_analysis", {
                "fraud_score": fraud.score,
                "reliability_score": reliability.score,
                "verification_status": analysis.verification_status.value,
            }, context)
            log_agent_response(self.logger, self.name, {
                "fraud_score": fraud.score,
                "fraud_flags": fraud_flags,
            }, context=context)

            return analysis

    def _amount_flags(self, bill: BillAnalysis, claimed_amount: float) -> List[str]:
        """Reviewer-facing notes about the detected amount."""
        if not bill.amount:
            return ["OCR could not detect any valid amount from the receipt."]

        if claimed_amount <= 0:
            return []

        pct = percentage_difference(bill.amount, claimed_amount)
        if pct > AMOUNT_MISMATCH_NOTICE_PCT:
            return [
                f"Amount mismatch: Claimed ₹{_format_amount(claimed_amount)}, "
                f"OCR detected ₹{_format_amount(bill.amount)} ({pct:.1f}% difference)"
            ]
        return []

    async def _validate_gst(self, bill: BillAnalysis, fraud_flags: List[str]) -> Optional[GSTValidationResult]:
        """Validate the OCR-found GSTIN, or search the full text for one."""
        source = bill.gst_number or bill.text or ""
        try:
            result = await asyncio.to_thread(validate_and_extract_gst, source)
        except Exception as e:
            self.logger.error(f"GST validation error: {e}", exc_info=True)
            fraud_flags.append("GST validation failed - manual verification required.")
            return None

        if result.found:
            if not result.valid:
                fraud_flags.append(f"Invalid GST number: {bill.gst_number or result.extracted}")
        else:
            fraud_flags.append("No GST number found on receipt")
        return result
