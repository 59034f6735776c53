"""
Agent definitions for the Fundex verification service.
"""

from agents.base_agent import BaseAgent
from agents.expense_verification_agent import ExpenseVerificationAgent

__all__ = [
    "BaseAgent",
    "ExpenseVerificationAgent",
]
