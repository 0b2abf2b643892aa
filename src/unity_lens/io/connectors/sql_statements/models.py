"""
SQL Statement connector models and exceptions.
"""

from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class StatementClientError(Exception):
    """Base exception for SQL Statement API errors."""

    pass


class StatementConfigurationError(StatementClientError):
    """Raised when the client is built without a token, workspace URL or warehouse."""

    pass


class SubmissionError(StatementClientError):
    """Raised when the statement submission call is rejected (non-2xx)."""

    def __init__(self, status_code: Optional[int], body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"SQL submit failed ({status_code}): {body}")


class PollError(StatementClientError):
    """Raised when a statement status poll fails (non-2xx)."""

    def __init__(self, status_code: Optional[int], body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"SQL poll failed ({status_code}): {body}")


class StatementError(StatementClientError):
    """Raised when the warehouse reports the statement as failed."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"SQL failed: {message}")


class StatementTimeoutError(StatementClientError):
    """Raised when a statement does not reach a terminal state within the poll budget."""

    pass


class StatementCancelledError(StatementClientError):
    """Raised when the caller abandons a statement while it is still running."""

    pass


class StatementResponseError(StatementClientError):
    """Raised when the API returns a body that cannot be interpreted."""

    pass


class StatementState(str, Enum):
    """Lifecycle states reported by the SQL Statement Execution API."""

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    CANCELED = "CANCELED"
    CLOSED = "CLOSED"

    @property
    def is_active(self) -> bool:
        return self in (StatementState.PENDING, StatementState.RUNNING)


class StatementJob(BaseModel):
    """Snapshot of one remote statement execution."""

    model_config = ConfigDict(frozen=True)

    statement_id: Optional[str] = None
    state: StatementState
    error_message: Optional[str] = None
    rows: List[List[Any]] = Field(default_factory=list)
