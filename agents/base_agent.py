"""
Base agent class for all Fundex agents.
"""

import logging
import json
import traceback
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, TypeVar, Union

# Google ADK imports with type ignores for dependencies
from google.adk.agents import LlmAgent  # type: ignore
from utils.error_handling import (
    FundexError, AgentError, ErrorSeverity, ErrorManager, ErrorBoundary
)

# Define type variable for generic function returns
T = TypeVar('T')


class BaseAgent(LlmAgent):
    """Base agent class with common functionality for all Fundex agents."""

    def __init__(
        self,
        name: str,
        model: str = "gemini-2.0-flash",
        description: str = "",
        instruction: str = "",
        tools: Optional[List[Any]] = None,
        error_manager: Optional[ErrorManager] = None,
    ):
        """Initialize the base agent.

        Args:
            name: The name of the agent.
            model: The model to use for the agent.
            description: A short description of the agent.
            instruction: The instruction prompt for the agent.
            tools: Tool functions exposed to the model.
            error_manager: Optional custom error manager.
        """
        super().__init__(  # type: ignore
            name=name,
            model=model,
            description=description,
            instruction=instruction,
            tools=tools or [],
        )

        # Pydantic rebuilds __dict__ during init, so non-field attributes go in afterwards
        logger = logging.getLogger(f"fundex.agents.{name}")
        self.__dict__["logger"] = logger
        self.__dict__["agent_name"] = name
        self.__dict__["error_manager"] = error_manager or ErrorManager.get_instance()

        logger.info(f"Agent {name} initialized with model {model}")

    def handle_error(self, error: Exception, context: Dict[str, Any]) -> Dict[str, Any]:
        """
        Handle errors during agent execution.

        Args:
            error: The error that occurred
            context: The execution context

        Returns:
            Updated context with error information
        """
        agent_name = self.__dict__.get("agent_name", "unknown")
        error_manager = self.__dict__.get("error_manager")

        self.logger.error(f"Error in agent {agent_name}: {error}", exc_info=True)

        if not isinstance(error, FundexError):
            error = AgentError(
                str(error),
                agent_name=agent_name,
                severity=ErrorSeverity.HIGH,
                cause=error
            )

        context["error"] = {
            "error": error.to_dict(),
            "timestamp": datetime.now().isoformat(),
            "traceback": traceback.format_exc(),
        }
        context["success"] = False

        if error_manager:
            error_manager.handle_error(error)

        return context

    def safe_execute(self, func: Callable[..., T], *args: Any, fallback: Any = None, **kwargs: Any) -> Union[T, Any]:
        """
        Execute a function with error boundary protection.

        Args:
            func: Function to execute
            *args: Positional arguments
            fallback: Fallback value if execution fails
            **kwargs: Keyword arguments

        Returns:
            Function result or fallback value if execution fails
        """
        agent_name = self.__dict__.get("agent_name", "unknown")
        boundary = ErrorBoundary(f"agent_{agent_name}", fallback_value=fallback)
        return boundary.execute(func, *args, **kwargs)

    def update_session_state(self, state_key: str, state_value: Any, context: Dict[str, Any]) -> Dict[str, Any]:
        """
        Update the session state with the provided key and value.

        Args:
            state_key: The key to update
            state_value: The value to update
            context: The current context

        Returns:
            Dict[str, Any]: Updated context with new session state
        """
        if "session_state" not in context:
            context["session_state"] = {}

        context["session_state"][state_key] = state_value
        self.logger.debug(f"Updated session state: {state_key}")
        return context

    def get_session_state(self, state_key: str, context: Dict[str, Any], default: Any = None) -> Any:
        """
        Get a value from the session state.

        Args:
            state_key: The key to retrieve
            context: The current context
            default: Default value if the key doesn't exist

        Returns:
            Any: The value associated with the key, or the default
        """
        if "session_state" not in context:
            return default

        return context["session_state"].get(state_key, default)

    def log_activity(self, activity_type: str, details: Dict[str, Any], context: Dict[str, Any]) -> None:
        """
        Log agent activity for audit and debugging purposes.

        Args:
            activity_type: Type of activity (e.g., 'expense_analysis')
            details: Activity details
            context: Current context
        """
        activity_log: Dict[str, Any] = {
            "timestamp": datetime.now().isoformat(),
            "agent": self.name,
            "activity_type": activity_type,
            "trace_id": context.get("trace_id", "no-trace"),
            "details": details
        }

        self.logger.info(f"Activity: {json.dumps(activity_log, default=str)}")
