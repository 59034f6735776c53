"""
Logging configuration for the Fundex verification service.
"""

import logging
import os
import json
import sys
from contextvars import ContextVar, Token
from datetime import datetime
from typing import Dict, Any, Optional
from uuid import uuid4

_current_trace_id: ContextVar[Optional[str]] = ContextVar("fundex_trace_id", default=None)


# Custom log format with trace IDs
class TraceIDLogFormatter(logging.Formatter):
    """Custom formatter that includes trace IDs in log records."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with trace ID."""
        if not hasattr(record, 'trace_id'):
            record.trace_id = get_current_trace_id()

        return super().format(record)


def get_current_trace_id() -> str:
    """Get the trace ID of the current context, inherited by asyncio tasks and worker threads."""
    return _current_trace_id.get() or 'no-trace'


class TraceContext:
    """Context manager for trace logging."""

    def __init__(self, trace_id: Optional[str] = None, parent_id: Optional[str] = None):
        """
        Initialize trace context.

        Args:
            trace_id: Trace ID (will generate if None)
            parent_id: Parent trace ID
        """
        self.trace_id = trace_id if trace_id is not None else f"trace-{uuid4().hex[:8]}"
        self.parent_id = parent_id
        self.start_time = datetime.now()
        self.logger = logging.getLogger('fundex.trace')
        self._token: Optional[Token] = None

    def __enter__(self) -> 'TraceContext':
        """Enter the trace context."""
        self._token = _current_trace_id.set(self.trace_id)

        parent_info = f" (parent: {self.parent_id})" if self.parent_id else ""
        self.logger.info(f"Trace started: {self.trace_id}{parent_info}")

        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> bool:
        """Exit the trace context."""
        duration = (datetime.now() - self.start_time).total_seconds()

        if exc_type:
            self.logger.error(
                f"Trace {self.trace_id} ended with error after {duration:.3f}s: {exc_val}"
            )
        else:
            self.logger.info(f"Trace {self.trace_id} completed in {duration:.3f}s")

        if self._token is not None:
            _current_trace_id.reset(self._token)
            self._token = None

        # Don't suppress exceptions
        return False


def _loggable(values: Dict[str, Any]) -> Dict[str, Any]:
    """Drop secrets, raw bytes and very long strings before logging."""
    return {
        k: v for k, v in values.items()
        if k not in ('api_keys', 'credentials', 'secrets')
        and not isinstance(v, (bytes, bytearray))
        and (not isinstance(v, str) or len(v) < 1000)
    }


def log_agent_call(
    logger: logging.Logger,
    agent_name: str,
    context: Dict[str, Any],
    level: int = logging.INFO
) -> None:
    """
    Log an agent call with relevant context.

    Args:
        logger: Logger to use
        agent_name: Name of the agent being called
        context: Context being passed to the agent
        level: Logging level
    """
    trace_id = context.get('trace_id', get_current_trace_id())

    logger.log(
        level,
        f"[{trace_id}] Calling agent {agent_name}",
        extra={
            'trace_id': trace_id,
            'agent_name': agent_name,
            'event_type': 'agent_call',
            'context': json.dumps(_loggable(context), default=str)
        }
    )


def log_agent_response(
    logger: logging.Logger,
    agent_name: str,
    response: Dict[str, Any],
    level: int = logging.INFO,
    context: Optional[Dict[str, Any]] = None
) -> None:
    """
    Log an agent response.

    Args:
        logger: Logger to use
        agent_name: Name of the agent that responded
        response: Response from the agent
        level: Logging level
        context: Optional context for trace_id
    """
    if context is not None:
        trace_id = context.get('trace_id', get_current_trace_id())
    else:
        trace_id = get_current_trace_id()

    logger.log(
        level,
        f"[{trace_id}] Response from agent {agent_name}",
        extra={
            'trace_id': trace_id,
            'agent_name': agent_name,
            'event_type': 'agent_response',
            'response': json.dumps(_loggable(response), default=str)
        }
    )


def configure_logging(log_level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """
    Configure logging for the Fundex service.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file (if None, logs to console only)
    """
    if log_level is None:
        log_level = os.environ.get('FUNDEX_LOG_LEVEL', 'INFO')

    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    if log_file is not None and os.path.dirname(log_file):
        os.makedirs(os.path.dirname(log_file), exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = TraceIDLogFormatter(
        '%(asctime)s - %(trace_id)s - %(name)s - %(levelname)s - %(message)s'
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    configure_logger('fundex', numeric_level)
    configure_logger('fundex.agents', numeric_level)
    configure_logger('fundex.tools', numeric_level)
    configure_logger('fundex.batch', numeric_level)

    logging.info("Logging configured with level %s", log_level)


def configure_logger(name: str, level: int) -> None:
    """Configure a specific logger."""
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = True
