"""
Unit tests for BaseAgent class.
"""

import unittest
from unittest.mock import patch, MagicMock
from typing import Dict, Any

from agents.base_agent import BaseAgent
from utils.error_handling import ExternalServiceError


class TestBaseAgent(unittest.TestCase):
    """Test cases for the BaseAgent class."""

    def setUp(self):
        """Set up test fixtures."""
        self.error_manager = MagicMock()
        self.agent = BaseAgent(
            name="TestAgent",
            model="gemini-2.0-flash",
            description="Test agent description",
            instruction="Test instruction",
            error_manager=self.error_manager,
        )
        self.context: Dict[str, Any] = {}

    def test_initialization(self):
        """Test agent initialization."""
        self.assertEqual(self.agent.name, "TestAgent")
        self.assertEqual(self.agent.agent_name, "TestAgent")
        self.assertEqual(self.agent.logger.name, "fundex.agents.TestAgent")

    def test_update_session_state(self):
        """Test updating session state."""
        updated_context = self.agent.update_session_state("test_key", "test_value", self.context)

        self.assertIn("session_state", updated_context)
        self.assertEqual(updated_context["session_state"]["test_key"], "test_value")

    def test_get_session_state(self):
        """Test getting session state."""
        self.context["session_state"] = {"test_key": "test_value"}

        self.assertEqual(self.agent.get_session_state("test_key", self.context), "test_value")
        self.assertEqual(self.agent.get_session_state("non_existent", self.context, "default"), "default")
        self.assertEqual(self.agent.get_session_state("any_key", {}, "default"), "default")

    def test_handle_error(self):
        """Test that plain exceptions are wrapped and reported."""
        updated_context = self.agent.handle_error(ValueError("Test error"), self.context)

        self.assertFalse(updated_context["success"])
        error = updated_context["error"]["error"]
        self.assertEqual(error["message"], "Test error")
        self.assertEqual(error["error_code"], "ERR_AGENT")
        self.assertEqual(error["details"]["agent_name"], "TestAgent")
        self.error_manager.handle_error.assert_called_once()

    def test_handle_fundex_error(self):
        """Test that Fundex errors keep their own code."""
        error = ExternalServiceError("registry down", service_name="gst_registry")

        updated_context = self.agent.handle_error(error, self.context)

        self.assertEqual(updated_context["error"]["error"]["error_code"], "ERR_EXT_SERVICE")
        self.error_manager.handle_error.assert_called_once_with(error)

    def test_safe_execute(self):
        """Test that failures inside safe_execute return the fallback."""
        def failing() -> int:
            raise RuntimeError("boom")

        self.assertEqual(self.agent.safe_execute(lambda x: x * 2, 21), 42)
        self.assertEqual(self.agent.safe_execute(failing, fallback=-1), -1)

    @patch('logging.Logger.info')
    def test_log_activity(self, mock_info: Any):
        """Test that activity is logged with the trace ID."""
        self.agent.log_activity("expense_analysis", {"fraud_score": 10}, {"trace_id": "trace-1"})

        message = mock_info.call_args[0][0]
        self.assertIn('"activity_type": "expense_analysis"', message)
        self.assertIn('"trace_id": "trace-1"', message)


if __name__ == "__main__":
    unittest.main()
