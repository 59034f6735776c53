"""
Unit tests for the fraud scorer.
"""

import unittest

from models.expense import ExpenseSubmission, GSTValidationResult
from models.scoring import RiskLevel
from tools.fraud_detection import (
    calculate_fraud_score,
    generate_fraud_report,
    get_risk_level,
)

VERIFIED_GST = GSTValidationResult(found=True, valid=True, api_verified=True, gst_number="29ABCDE1234F1Z5")
GOOD_OCR_TEXT = "x" * 200


def clean_submission(**overrides) -> ExpenseSubmission:
    """A submission that raises no flags unless overridden."""
    fields = {
        "claimed_amount": 100.0,
        "detected_amount": 100.0,
        "ocr_extracted_text": GOOD_OCR_TEXT,
        "gst_validation": VERIFIED_GST,
        "remaining_balance": None,
    }
    fields.update(overrides)
    return ExpenseSubmission(**fields)


class TestFraudScore(unittest.TestCase):
    """Test cases for calculate_fraud_score."""

    def test_all_inputs_absent(self):
        """Test the score of a submission with nothing to go on."""
        result = calculate_fraud_score(ExpenseSubmission())

        self.assertEqual(result.flags, ["NO_AMOUNT_DETECTED", "GST_NOT_CHECKED", "OCR_FAILED"])
        self.assertEqual(result.score, 55)
        self.assertEqual(result.risk_level, RiskLevel.MEDIUM)
        self.assertTrue(result.recommendation.startswith("REVIEW"))
        self.assertEqual(result.details["ocr_issue"], "Could not detect amount from receipt")
        self.assertEqual(result.details["gst_issue"], "GST validation was not performed")
        self.assertEqual(result.details["ocr_quality"], "OCR processing failed completely")

    def test_keyword_fields(self):
        """Test that keyword fields are accepted instead of a submission."""
        result = calculate_fraud_score(claimed_amount=100.0)
        self.assertEqual(result.score, 55)

    def test_clean_submission(self):
        """Test a submission with no concerns."""
        result = calculate_fraud_score(clean_submission(remaining_balance=5000.0))

        self.assertEqual(result.score, 0)
        self.assertEqual(result.flags, [])
        self.assertEqual(result.details, {})
        self.assertEqual(result.risk_level, RiskLevel.MINIMAL)
        self.assertTrue(result.recommendation.startswith("APPROVE"))

    def test_amount_mismatch_bands(self):
        """Test the mismatch bands at and around their thresholds."""
        cases = [
            (95.0, 0, None),
            (105.0, 0, None),
            (106.0, 15, "MINOR_AMOUNT_MISMATCH"),
            (120.0, 15, "MINOR_AMOUNT_MISMATCH"),
            (121.0, 25, "MODERATE_AMOUNT_MISMATCH"),
            (150.0, 25, "MODERATE_AMOUNT_MISMATCH"),
            (151.0, 35, "SEVERE_AMOUNT_MISMATCH"),
            (10.0, 35, "SEVERE_AMOUNT_MISMATCH"),
        ]
        for detected, expected_score, expected_flag in cases:
            with self.subTest(detected=detected):
                result = calculate_fraud_score(clean_submission(detected_amount=detected))
                self.assertEqual(result.score, expected_score)
                if expected_flag:
                    self.assertEqual(result.flags, [expected_flag])
                else:
                    self.assertNotIn("amount_mismatch", result.details)

    def test_mismatch_is_monotonic(self):
        """Test that a larger mismatch never scores lower."""
        previous = 0
        for detected in (100, 104, 106, 115, 125, 140, 160, 300):
            score = calculate_fraud_score(clean_submission(detected_amount=float(detected))).score
            self.assertGreaterEqual(score, previous)
            previous = score

    def test_amount_mismatch_details(self):
        """Test the recorded mismatch details."""
        result = calculate_fraud_score(clean_submission(claimed_amount=1000.0, detected_amount=1300.0))
        mismatch = result.details["amount_mismatch"]

        self.assertEqual(mismatch["severity"], "moderate")
        self.assertEqual(mismatch["claimed"], 1000.0)
        self.assertEqual(mismatch["detected"], 1300.0)
        self.assertEqual(mismatch["difference"], 300.0)
        self.assertEqual(mismatch["percentage_diff"], 30.0)

    def test_detected_without_claim(self):
        """Test that a detected amount with no claim raises no amount flag."""
        result = calculate_fraud_score(clean_submission(claimed_amount=None))

        self.assertEqual(result.score, 0)
        self.assertNotIn("NO_AMOUNT_DETECTED", result.flags)

    def test_gst_factor(self):
        """Test each GST outcome."""
        cases = [
            (GSTValidationResult(found=False), 25, "NO_GST_NUMBER", "No GST number found on receipt"),
            (GSTValidationResult(found=True, valid=False), 30, "INVALID_GST",
             "GST number is invalid or not registered"),
            (GSTValidationResult(found=True, valid=True, api_verified=False), 10, "GST_NOT_API_VERIFIED",
             "GST format valid but could not verify online"),
            (None, 20, "GST_NOT_CHECKED", "GST validation was not performed"),
        ]
        for gst, expected_score, expected_flag, expected_issue in cases:
            with self.subTest(flag=expected_flag):
                result = calculate_fraud_score(clean_submission(gst_validation=gst))
                self.assertEqual(result.score, expected_score)
                self.assertEqual(result.flags, [expected_flag])
                self.assertEqual(result.details["gst_issue"], expected_issue)

    def test_ocr_quality_bands(self):
        """Test the OCR text length bands."""
        cases = [
            (49, 15, ["LOW_OCR_QUALITY"]),
            (50, 10, ["MODERATE_OCR_QUALITY"]),
            (99, 10, ["MODERATE_OCR_QUALITY"]),
            (100, 0, []),
        ]
        for length, expected_score, expected_flags in cases:
            with self.subTest(length=length):
                result = calculate_fraud_score(clean_submission(ocr_extracted_text="x" * length))
                self.assertEqual(result.score, expected_score)
                self.assertEqual(result.flags, expected_flags)

    def test_empty_ocr_text(self):
        """Test that empty OCR text counts as a failed OCR."""
        result = calculate_fraud_score(clean_submission(ocr_extracted_text=""))
        self.assertEqual(result.flags, ["OCR_FAILED"])
        self.assertEqual(result.score, 15)

    def test_overspending(self):
        """Test the overspending factor and its details."""
        result = calculate_fraud_score(clean_submission(
            claimed_amount=1200.0, detected_amount=1200.0, remaining_balance=1000.0
        ))

        self.assertEqual(result.score, 20)
        self.assertEqual(result.flags, ["OVERSPENDING"])
        self.assertEqual(result.details["overspending"], {
            "claimed": 1200.0,
            "remaining": 1000.0,
            "overspend": 200.0,
        })

    def test_spending_exactly_remaining_balance(self):
        """Test that claiming the full remaining balance is not overspending."""
        result = calculate_fraud_score(clean_submission(remaining_balance=100.0))
        self.assertNotIn("OVERSPENDING", result.flags)

    def test_zero_remaining_balance(self):
        """Test that a zero balance is still checked."""
        result = calculate_fraud_score(clean_submission(remaining_balance=0.0))
        self.assertIn("OVERSPENDING", result.flags)

    def test_critical_risk(self):
        """Test a submission that stacks several factors."""
        result = calculate_fraud_score(ExpenseSubmission(
            claimed_amount=500.0,
            gst_validation=GSTValidationResult(found=True, valid=False),
            remaining_balance=100.0,
        ))

        self.assertEqual(result.flags, ["NO_AMOUNT_DETECTED", "INVALID_GST", "OCR_FAILED", "OVERSPENDING"])
        self.assertEqual(result.score, 85)
        self.assertEqual(result.risk_level, RiskLevel.CRITICAL)
        self.assertTrue(result.recommendation.startswith("REJECT"))

    def test_score_is_capped(self):
        """Test that the worst possible submission stays within 100."""
        result = calculate_fraud_score(ExpenseSubmission(
            claimed_amount=100.0,
            detected_amount=1000.0,
            ocr_extracted_text="x",
            gst_validation=GSTValidationResult(found=True, valid=False),
            remaining_balance=10.0,
        ))
        self.assertEqual(result.score, 100)

    def test_idempotent(self):
        """Test that scoring the same submission twice gives the same result."""
        submission = clean_submission(detected_amount=130.0, remaining_balance=50.0)
        first = calculate_fraud_score(submission)
        second = calculate_fraud_score(submission)
        self.assertEqual(first.model_dump(), second.model_dump())


class TestRiskLevels(unittest.TestCase):
    """Test cases for get_risk_level."""

    def test_band_boundaries(self):
        """Test each risk band at its edges."""
        cases = [
            (100, RiskLevel.CRITICAL),
            (80, RiskLevel.CRITICAL),
            (79, RiskLevel.HIGH),
            (60, RiskLevel.HIGH),
            (59, RiskLevel.MEDIUM),
            (40, RiskLevel.MEDIUM),
            (39, RiskLevel.LOW),
            (20, RiskLevel.LOW),
            (19, RiskLevel.MINIMAL),
            (0, RiskLevel.MINIMAL),
        ]
        for score, expected in cases:
            with self.subTest(score=score):
                level, _ = get_risk_level(score)
                self.assertEqual(level, expected)


class TestFraudReport(unittest.TestCase):
    """Test cases for generate_fraud_report."""

    def test_report_lists_flags_and_details(self):
        """Test that the report shows every flag with spaces."""
        result = calculate_fraud_score(ExpenseSubmission())
        report = generate_fraud_report(result)

        self.assertIn("FRAUD ANALYSIS REPORT", report)
        self.assertIn("Fraud Score: 55/100", report)
        self.assertIn("Risk Level: MEDIUM", report)
        self.assertIn("Flags Detected (3):", report)
        self.assertIn("1. NO AMOUNT DETECTED", report)
        self.assertIn("2. GST NOT CHECKED", report)
        self.assertIn("3. OCR FAILED", report)
        self.assertIn("gst_issue: GST validation was not performed", report)

    def test_report_renders_nested_details(self):
        """Test that dict details are rendered as JSON."""
        result = calculate_fraud_score(clean_submission(claimed_amount=100.0, remaining_balance=50.0))
        report = generate_fraud_report(result)

        self.assertIn("OVERSPENDING", report)
        self.assertIn('"overspend": 50.0', report)

    def test_clean_report(self):
        """Test a report without flags or details."""
        report = generate_fraud_report(calculate_fraud_score(clean_submission()))

        self.assertIn("Fraud Score: 0/100", report)
        self.assertNotIn("Flags Detected", report)
        self.assertNotIn("Details:", report)


if __name__ == '__main__':
    unittest.main()
