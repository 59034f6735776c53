"""
Unit tests for the interactive CLI.
"""

import io
import os
import json
import tempfile
import unittest
from contextlib import redirect_stdout
from unittest.mock import patch, AsyncMock, MagicMock

from cli.cli_app import FundexCLI
from models.expense import GSTValidationResult


class TestFundexCLI(unittest.TestCase):
    """Test cases for FundexCLI commands."""

    def setUp(self):
        """Set up test fixtures."""
        self.agent = MagicMock()
        self.agent.name = "ExpenseVerificationAgent"
        self.agent.analyze_expense = AsyncMock()
        self.cli = FundexCLI(agent=self.agent, config={"environment": "development", "gst": {"timeout_seconds": 5}})
        self.temp_dir = tempfile.TemporaryDirectory()

    def tearDown(self):
        """Clean up test fixtures."""
        self.temp_dir.cleanup()

    def _run(self, line: str) -> str:
        output = io.StringIO()
        with redirect_stdout(output):
            self.cli.onecmd(line)
        return output.getvalue()

    def test_extract(self):
        """Test extracting fields from a text file."""
        path = os.path.join(self.temp_dir.name, "receipt.txt")
        with open(path, "w", encoding="utf-8") as f:
            f.write("GSTIN: 29ABCDE1234F1Z5\nGrand Total: Rs 1,234.56")

        result = json.loads(self._run(f"extract {path}"))

        self.assertEqual(result["amount"], 1234.56)
        self.assertEqual(result["gst_number"], "29ABCDE1234F1Z5")

    def test_score(self):
        """Test scoring a submission file."""
        path = os.path.join(self.temp_dir.name, "submission.json")
        with open(path, "w", encoding="utf-8") as f:
            json.dump({"claimed_amount": 100}, f)

        output = self._run(f"score {path}")

        self.assertIn("Fraud Score: 55/100", output)
        self.assertIn("Reliability Score: 37/100", output)

    @patch('cli.cli_app.validate_gst_online')
    def test_gst(self, mock_validate: MagicMock) -> None:
        """Test the GSTIN lookup command."""
        mock_validate.return_value = GSTValidationResult(valid=False, error="Invalid GST number format")

        result = json.loads(self._run("gst 29ABCDE1234F1X5"))

        mock_validate.assert_called_once_with("29ABCDE1234F1X5")
        self.assertFalse(result["valid"])

    def test_analyze_missing_receipt(self):
        """Test that a missing receipt file is reported without calling the agent."""
        output = self._run("analyze /nonexistent/receipt.png 100")

        self.assertIn("Receipt not found", output)
        self.agent.analyze_expense.assert_not_called()

    def test_config_show_key(self):
        """Test showing a single configuration key."""
        self.assertIn("gst.timeout_seconds = 5", self._run("config show gst.timeout_seconds"))
        self.assertIn("Configuration key not found", self._run("config show gst.missing"))

    @patch('cli.cli_app.get_registry_settings')
    @patch('cli.cli_app.get_ocr_settings')
    @patch('config.config_loader.load_config')
    def test_config_reload_clears_tool_settings(self, mock_load: MagicMock, mock_ocr: MagicMock,
                                                mock_registry: MagicMock) -> None:
        """Test that reloading configuration refreshes the cached OCR and GST settings."""
        mock_load.return_value = {"environment": "staging"}

        output = self._run("config reload")

        self.assertIn("Configuration reloaded.", output)
        mock_load.assert_called_once_with(reload=True)
        mock_ocr.cache_clear.assert_called_once_with()
        mock_registry.cache_clear.assert_called_once_with()
        self.assertEqual(self.cli.config["environment"], "staging")

    def test_status_and_exit(self):
        """Test the status and exit commands."""
        self.assertIn("Agent: ExpenseVerificationAgent", self._run("status"))
        with redirect_stdout(io.StringIO()):
            self.assertTrue(self.cli.onecmd("exit"))


if __name__ == '__main__':
    unittest.main()
