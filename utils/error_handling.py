"""
Error handling framework for Fundex.

This module provides:
1. Custom exception hierarchy
2. Error reporting system
3. Graceful degradation utilities
"""

import logging
import functools
import json
import threading
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set, Type, TypeVar, Union, cast

from utils.logging_config import get_current_trace_id

# Type variable for generic functions
T = TypeVar('T')
F = TypeVar('F', bound=Callable[..., Any])

# -----------------------------------------------------------------------------
# Exception Hierarchy
# -----------------------------------------------------------------------------

class ErrorSeverity(Enum):
    """Severity levels for errors."""
    LOW = "low"           # Degraded result, pipeline continues
    MEDIUM = "medium"     # Important but not critical, should be logged
    HIGH = "high"         # Critical, requires attention
    FATAL = "fatal"       # Service cannot continue


class FundexError(Exception):
    """Base exception for all Fundex errors."""

    def __init__(
        self,
        message: str,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        """Initialize the exception.

        Args:
            message: Human-readable error message
            severity: Error severity level
            error_code: Application-specific error code
            details: Additional error details
            cause: The exception that caused this one
        """
        self.message = message
        self.severity = severity
        self.error_code = error_code or "ERR_UNDEFINED"
        self.details = details or {}
        self.cause = cause
        self.timestamp = datetime.now().isoformat()
        self.trace_id = get_current_trace_id()

        super().__init__(f"{self.error_code}: {message}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert the exception to a dictionary."""
        result = {
            "error_code": self.error_code,
            "message": self.message,
            "severity": self.severity.value,
            "timestamp": self.timestamp,
            "trace_id": self.trace_id,
        }

        if self.details:
            result["details"] = self.details

        if self.cause:
            result["cause"] = str(self.cause)

        return result

    def to_json(self) -> str:
        """Convert the exception to a JSON string."""
        return json.dumps(self.to_dict(), default=str)


class ConfigurationError(FundexError):
    """Error related to service configuration."""

    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("error_code", "ERR_CONFIG")
        super().__init__(message, **kwargs)


class AgentError(FundexError):
    """Error related to agent operations."""

    def __init__(self, message: str, agent_name: Optional[str] = None, **kwargs: Any):
        kwargs.setdefault("error_code", "ERR_AGENT")
        details = kwargs.get("details", {})
        if agent_name:
            details["agent_name"] = agent_name
        kwargs["details"] = details
        super().__init__(message, **kwargs)


class DocumentProcessingError(FundexError):
    """Error raised while reading or OCR-processing a receipt image."""

    def __init__(self, message: str, document_ref: Optional[str] = None, **kwargs: Any):
        kwargs.setdefault("error_code", "ERR_DOC_PROC")
        details = kwargs.get("details", {})
        if document_ref:
            details["document_ref"] = document_ref
        kwargs["details"] = details
        super().__init__(message, **kwargs)


class ValidationError(FundexError):
    """Error related to invalid expense input."""

    def __init__(self, message: str, field_name: Optional[str] = None, **kwargs: Any):
        kwargs.setdefault("error_code", "ERR_VALIDATION")
        details = kwargs.get("details", {})
        if field_name:
            details["field_name"] = field_name
        kwargs["details"] = details
        super().__init__(message, **kwargs)


class ExternalServiceError(FundexError):
    """Error related to external service integrations."""

    def __init__(self, message: str, service_name: Optional[str] = None, **kwargs: Any):
        kwargs.setdefault("error_code", "ERR_EXT_SERVICE")
        details = kwargs.get("details", {})
        if service_name:
            details["service_name"] = service_name
        kwargs["details"] = details
        super().__init__(message, **kwargs)


# -----------------------------------------------------------------------------
# Error Reporting System
# -----------------------------------------------------------------------------

class ErrorManager:
    """Central error management system."""

    _instance: Optional['ErrorManager'] = None
    _lock = threading.Lock()

    @classmethod
    def get_instance(cls) -> 'ErrorManager':
        """Get the singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    def __init__(self):
        """Initialize the error manager."""
        if self.__class__._instance is not None:
            raise RuntimeError("This class is a singleton. Use get_instance() instead.")

        self.logger = logging.getLogger("fundex.errors")
        self.error_handlers: Dict[str, List[Callable[[FundexError], None]]] = {}
        self.error_counts: Dict[str, int] = {}
        self._subscribers: Set[Callable[[FundexError], None]] = set()

    def register_handler(self, error_code: str, handler: Callable[[FundexError], None]) -> None:
        """Register a handler for a specific error code."""
        if error_code not in self.error_handlers:
            self.error_handlers[error_code] = []
        self.error_handlers[error_code].append(handler)

    def subscribe(self, handler: Callable[[FundexError], None]) -> Callable[[], None]:
        """
        Subscribe to all errors.

        Returns:
            A function that can be called to unsubscribe.
        """
        self._subscribers.add(handler)

        def unsubscribe() -> None:
            self._subscribers.discard(handler)

        return unsubscribe

    def handle_error(self, error: Union[FundexError, Exception]) -> None:
        """Handle an error through the error management system."""
        if not isinstance(error, FundexError):
            error = FundexError(
                str(error),
                severity=ErrorSeverity.HIGH,
                error_code="ERR_UNEXPECTED",
                cause=error
            )

        if error.severity == ErrorSeverity.FATAL:
            self.logger.critical(error.message, exc_info=error.cause)
        elif error.severity == ErrorSeverity.HIGH:
            self.logger.error(error.message, exc_info=error.cause)
        elif error.severity == ErrorSeverity.MEDIUM:
            self.logger.warning(error.message)
        else:
            self.logger.info(error.message)

        self.error_counts[error.error_code] = self.error_counts.get(error.error_code, 0) + 1

        for handler in self.error_handlers.get(error.error_code, []):
            try:
                handler(error)
            except Exception as e:
                self.logger.error(f"Error in error handler: {e}")

        for subscriber in list(self._subscribers):
            try:
                subscriber(error)
            except Exception as e:
                self.logger.error(f"Error in error subscriber: {e}")


# -----------------------------------------------------------------------------
# Utility Functions
# -----------------------------------------------------------------------------

def capture_exceptions(
    wrapper_class: Type[FundexError] = FundexError,
    **wrapper_kwargs: Any
) -> Callable[[F], F]:
    """
    Decorator to capture and convert exceptions to FundexError types.

    Args:
        wrapper_class: Type of FundexError to create
        **wrapper_kwargs: Additional arguments for the wrapper class

    Returns:
        Decorated function
    """
    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return func(*args, **kwargs)
            except FundexError:
                raise
            except Exception as e:
                raise wrapper_class(
                    str(e),
                    cause=e,
                    **wrapper_kwargs
                ) from e

        return cast(F, wrapper)

    return decorator


# -----------------------------------------------------------------------------
# Error Boundary
# -----------------------------------------------------------------------------

class ErrorBoundary:
    """
    Context manager for creating error boundaries in code.

    An error boundary catches exceptions, reports them to the error manager
    and hands back a fallback value instead of propagating.
    """

    def __init__(
        self,
        boundary_name: str,
        fallback_value: Any = None,
        error_manager: Optional[ErrorManager] = None
    ):
        """
        Initialize the error boundary.

        Args:
            boundary_name: Name for this boundary (for logging)
            fallback_value: Value to return if an error occurs
            error_manager: Optional error manager to use
        """
        self.boundary_name = boundary_name
        self.fallback_value = fallback_value
        self.error_manager = error_manager or ErrorManager.get_instance()
        self.logger = logging.getLogger(f"fundex.error_boundary.{boundary_name}")

    def __enter__(self) -> 'ErrorBoundary':
        """Enter the error boundary."""
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> bool:
        """
        Exit the error boundary and handle any exceptions.

        Returns:
            True if the exception was handled, False to re-raise
        """
        if exc_type is None:
            return False

        if not isinstance(exc_val, Exception):
            return False

        self.logger.error(f"Error in boundary {self.boundary_name}: {exc_val}")
        self.error_manager.handle_error(exc_val)

        # Suppress the exception
        return True

    def execute(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> Union[T, Any]:
        """
        Execute a function within this error boundary.

        Args:
            func: Function to execute
            *args: Positional arguments
            **kwargs: Keyword arguments

        Returns:
            The function's return value or the fallback value
        """
        try:
            return func(*args, **kwargs)
        except Exception as e:
            self.logger.error(f"Error in boundary {self.boundary_name}: {e}")
            self.error_manager.handle_error(e)
            return self.fallback_value
