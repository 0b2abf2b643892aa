"""
Databricks SQL Statement Execution API connector package.
"""

from .core import StatementExecutionClient
from .models import (
    PollError,
    StatementCancelledError,
    StatementClientError,
    StatementConfigurationError,
    StatementError,
    StatementJob,
    StatementResponseError,
    StatementState,
    StatementTimeoutError,
    SubmissionError,
)

__all__ = [
    "StatementExecutionClient",
    "StatementClientError",
    "StatementConfigurationError",
    "SubmissionError",
    "PollError",
    "StatementError",
    "StatementTimeoutError",
    "StatementCancelledError",
    "StatementResponseError",
    "StatementJob",
    "StatementState",
]
