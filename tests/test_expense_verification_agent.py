"""
Unit tests for the expense verification agent.
"""

import asyncio
import unittest
from unittest.mock import patch, MagicMock

from agents.expense_verification_agent import ExpenseVerificationAgent
from models.expense import BillAnalysis, GSTValidationResult, VerificationStatus
from models.scoring import RiskLevel
from utils.error_handling import ValidationError

GST_NUMBER = "29ABCDE1234F1Z5"
RECEIPT_TEXT = "Sharma Stores\nGSTIN: 29ABCDE1234F1Z5\n" + "Item line\n" * 20 + "Grand Total: Rs 1,000.00"


def _bill(amount=1000.0, gst_number=GST_NUMBER, text=RECEIPT_TEXT, success=True) -> BillAnalysis:
    return BillAnalysis(
        success=success,
        text=text,
        amount=amount,
        gst_number=gst_number,
        text_length=len(text or ""),
    )


def _verified_gst() -> GSTValidationResult:
    return GSTValidationResult(
        found=True, valid=True, api_verified=True, gst_number=GST_NUMBER, extracted=GST_NUMBER
    )


class TestExpenseVerificationAgent(unittest.TestCase):
    """Test cases for ExpenseVerificationAgent.analyze_expense."""

    def setUp(self):
        """Set up test fixtures."""
        self.agent = ExpenseVerificationAgent(processor_id="test-processor-id")

    def _analyze(self, *args, **kwargs):
        return asyncio.run(self.agent.analyze_expense(*args, **kwargs))

    def test_initialization(self):
        """Test agent initialization."""
        self.assertEqual(self.agent.name, "ExpenseVerificationAgent")
        self.assertEqual(self.agent.flag_threshold, 50)
        self.assertEqual(len(self.agent.tools), 3)

    @patch('agents.expense_verification_agent.validate_and_extract_gst')
    @patch('agents.expense_verification_agent.analyze_bill')
    def test_clean_expense(self, mock_bill: MagicMock, mock_gst: MagicMock) -> None:
        """Test an expense that matches its receipt."""
        mock_bill.return_value = _bill()
        mock_gst.return_value = _verified_gst()
        context = {}

        analysis = self._analyze(b"receipt", claimed_amount=1000.0, remaining_balance=5000.0, context=context)

        mock_bill.assert_called_once_with(b"receipt", "test-processor-id")
        mock_gst.assert_called_once_with(GST_NUMBER)
        self.assertEqual(analysis.fraud_analysis.score, 0)
        self.assertEqual(analysis.fraud_analysis.risk_level, RiskLevel.MINIMAL)
        self.assertEqual(analysis.reliability.score, 100)
        self.assertEqual(analysis.fraud_flags, [])
        self.assertEqual(analysis.verification_status, VerificationStatus.PENDING)
        self.assertIsNone(analysis.flagged_reason)
        self.assertIn("Fraud Score: 0/100", analysis.fraud_report)
        self.assertIn("trace_id", context)
        self.assertEqual(
            context["session_state"]["last_expense_analysis"]["fraud_analysis"]["score"], 0
        )

    @patch('agents.expense_verification_agent.validate_and_extract_gst')
    @patch('agents.expense_verification_agent.analyze_bill')
    def test_failed_bill_is_flagged(self, mock_bill: MagicMock, mock_gst: MagicMock) -> None:
        """Test an unreadable receipt claimed against too small a balance."""
        mock_bill.return_value = BillAnalysis(success=False, error="Failed to extract text from image")
        mock_gst.return_value = GSTValidationResult(found=False, error="No GST number found in the text")

        analysis = self._analyze("receipt.png", claimed_amount=500.0, remaining_balance=100.0)

        mock_gst.assert_called_once_with("")
        self.assertEqual(analysis.fraud_flags, [
            "Bill analysis failed - manual verification required.",
            "OCR could not detect any valid amount from the receipt.",
            "No GST number found on receipt",
            "Volunteer has overspent more than approved amount.",
        ])
        self.assertEqual(analysis.fraud_analysis.score, 80)
        self.assertEqual(analysis.verification_status, VerificationStatus.FLAGGED)
        self.assertTrue(analysis.flagged_reason.startswith("REJECT"))
        self.assertEqual(analysis.receipt_ref, "receipt.png")

    @patch('agents.expense_verification_agent.validate_and_extract_gst')
    @patch('agents.expense_verification_agent.analyze_bill')
    def test_custom_flag_threshold(self, mock_bill: MagicMock, mock_gst: MagicMock) -> None:
        """Test that the flag threshold is configurable."""
        mock_bill.return_value = BillAnalysis(success=False)
        mock_gst.return_value = GSTValidationResult(found=False)
        agent = ExpenseVerificationAgent(flag_threshold=90)

        analysis = asyncio.run(agent.analyze_expense(b"receipt", claimed_amount=500.0, remaining_balance=100.0))

        self.assertEqual(analysis.fraud_analysis.score, 80)
        self.assertEqual(analysis.verification_status, VerificationStatus.PENDING)

    @patch('agents.expense_verification_agent.validate_and_extract_gst')
    @patch('agents.expense_verification_agent.analyze_bill')
    def test_amount_mismatch_flag(self, mock_bill: MagicMock, mock_gst: MagicMock) -> None:
        """Test the reviewer note for a mismatched amount."""
        mock_bill.return_value = _bill(amount=1300.0)
        mock_gst.return_value = _verified_gst()

        analysis = self._analyze(b"receipt", claimed_amount=1000.0)

        self.assertEqual(analysis.fraud_flags, [
            "Amount mismatch: Claimed ₹1000, OCR detected ₹1300 (30.0% difference)",
        ])
        self.assertIn("MODERATE_AMOUNT_MISMATCH", analysis.fraud_analysis.flags)

    @patch('agents.expense_verification_agent.validate_and_extract_gst')
    @patch('agents.expense_verification_agent.analyze_bill')
    def test_small_difference_is_not_noted(self, mock_bill: MagicMock, mock_gst: MagicMock) -> None:
        """Test that a difference of up to 5% adds no note."""
        mock_bill.return_value = _bill(amount=1050.0)
        mock_gst.return_value = _verified_gst()

        analysis = self._analyze(b"receipt", claimed_amount=1000.0)

        self.assertEqual(analysis.fraud_flags, [])

    @patch('agents.expense_verification_agent.validate_and_extract_gst')
    @patch('agents.expense_verification_agent.analyze_bill')
    def test_invalid_gst_flag(self, mock_bill: MagicMock, mock_gst: MagicMock) -> None:
        """Test the reviewer note for an unregistered GSTIN."""
        mock_bill.return_value = _bill()
        mock_gst.return_value = GSTValidationResult(found=True, valid=False, extracted=GST_NUMBER)

        analysis = self._analyze(b"receipt", claimed_amount=1000.0)

        self.assertEqual(analysis.fraud_flags, [f"Invalid GST number: {GST_NUMBER}"])
        self.assertIn("INVALID_GST", analysis.fraud_analysis.flags)

    @patch('agents.expense_verification_agent.validate_and_extract_gst')
    @patch('agents.expense_verification_agent.analyze_bill')
    def test_gst_validation_error(self, mock_bill: MagicMock, mock_gst: MagicMock) -> None:
        """Test that a GST validation crash leaves GST unchecked."""
        mock_bill.return_value = _bill()
        mock_gst.side_effect = RuntimeError("unexpected")

        analysis = self._analyze(b"receipt", claimed_amount=1000.0)

        self.assertEqual(analysis.fraud_flags, ["GST validation failed - manual verification required."])
        self.assertIsNone(analysis.gst_validation)
        self.assertIn("GST_NOT_CHECKED", analysis.fraud_analysis.flags)
        self.assertEqual(analysis.fraud_analysis.score, 20)

    @patch('agents.expense_verification_agent.analyze_bill')
    def test_negative_claim_is_rejected(self, mock_bill: MagicMock) -> None:
        """Test that a negative claim never reaches OCR."""
        with self.assertRaises(ValidationError) as ctx:
            self._analyze(b"receipt", claimed_amount=-1.0)

        self.assertEqual(ctx.exception.details["field_name"], "claimed_amount")
        mock_bill.assert_not_called()

    @patch('agents.expense_verification_agent.validate_and_extract_gst')
    @patch('agents.expense_verification_agent.analyze_bill')
    def test_text_is_searched_without_gst_number(self, mock_bill: MagicMock, mock_gst: MagicMock) -> None:
        """Test that the full OCR text is searched when no GSTIN was extracted."""
        mock_bill.return_value = _bill(gst_number=None)
        mock_gst.return_value = GSTValidationResult(found=False)

        self._analyze(b"receipt", claimed_amount=1000.0)

        mock_gst.assert_called_once_with(RECEIPT_TEXT)


if __name__ == '__main__':
    unittest.main()
