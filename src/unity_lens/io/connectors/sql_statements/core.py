"""
SQL Statement Execution API client core implementation.
"""

import logging
import threading
import time
from typing import Any, List, Optional

from .models import (
    StatementCancelledError,
    StatementError,
    StatementJob,
    StatementResponseError,
    StatementState,
    StatementTimeoutError,
)
from .parsers import parse_statement_response
from .transport import StatementTransport

logger = logging.getLogger(__name__)


class StatementExecutionClient(StatementTransport):
    """
    Synchronous client that runs SQL on a Databricks SQL warehouse.

    A statement is submitted with a short server-side wait; if it is still
    PENDING or RUNNING when that returns, the client polls its status at a fixed
    interval until it reaches a terminal state. The poll loop is bounded by both
    a deadline and a maximum poll count, and can be abandoned through a
    ``threading.Event``.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        *,
        wait_timeout: Optional[str] = None,
        poll_interval: Optional[float] = None,
        poll_timeout: Optional[float] = None,
        poll_max_attempts: Optional[int] = None,
        **kwargs: Any,
    ):
        """
        Args:
            token: Personal access token (see StatementTransport)
            wait_timeout: Server-side wait for the submit call, e.g. "30s"
            poll_interval: Seconds between status polls
            poll_timeout: Overall deadline in seconds for one statement
            poll_max_attempts: Maximum number of status polls for one statement
            **kwargs: Passed through to StatementTransport
        """
        super().__init__(token, **kwargs)
        self.wait_timeout = wait_timeout or self.settings.statement_wait_timeout
        self.poll_interval = (
            poll_interval if poll_interval is not None else self.settings.poll_interval_seconds
        )
        self.poll_timeout = (
            poll_timeout if poll_timeout is not None else self.settings.poll_timeout_seconds
        )
        self.poll_max_attempts = (
            poll_max_attempts
            if poll_max_attempts is not None
            else self.settings.poll_max_attempts
        )

    def execute(
        self, statement: str, cancel_event: Optional[threading.Event] = None
    ) -> List[List[Any]]:
        """
        Run a statement and return its inline rows.

        Args:
            statement: SQL text
            cancel_event: Optional event; when set, polling stops and the
                statement is cancelled remotely

        Returns:
            Rows from the final (SUCCEEDED) response, possibly empty

        Raises:
            SubmissionError: Submit call failed
            PollError: A status poll failed
            StatementError: The warehouse reported FAILED, CANCELED or CLOSED
            StatementTimeoutError: Deadline or poll budget exhausted
            StatementCancelledError: cancel_event was set while running
            StatementResponseError: Unparseable response body
        """
        job = self.run(statement, cancel_event)
        return job.rows

    def run(
        self, statement: str, cancel_event: Optional[threading.Event] = None
    ) -> StatementJob:
        """Like execute(), but return the final StatementJob."""
        self._raise_if_cancelled(cancel_event, None)

        started = time.monotonic()
        job = parse_statement_response(self._submit(statement, self.wait_timeout))
        logger.debug(
            "SQL statement submitted",
            extra={"statement_id": job.statement_id, "state": job.state.value},
        )

        polls = 0
        while job.state.is_active:
            if not job.statement_id:
                raise StatementResponseError(
                    f"Statement is {job.state.value} but response has no statement_id"
                )
            if polls >= self.poll_max_attempts:
                self._cancel(job.statement_id)
                raise StatementTimeoutError(
                    f"Statement {job.statement_id} still {job.state.value} "
                    f"after {polls} polls"
                )
            if time.monotonic() - started >= self.poll_timeout:
                self._cancel(job.statement_id)
                raise StatementTimeoutError(
                    f"Statement {job.statement_id} still {job.state.value} "
                    f"after {self.poll_timeout:.0f}s"
                )

            self._wait(cancel_event, job.statement_id)

            job = parse_statement_response(self._poll(job.statement_id))
            polls += 1
            logger.debug(
                "SQL statement polled",
                extra={
                    "statement_id": job.statement_id,
                    "state": job.state.value,
                    "poll": polls,
                },
            )

        if job.state is StatementState.FAILED:
            logger.error(
                "SQL statement failed",
                extra={"statement_id": job.statement_id, "error": job.error_message},
            )
            raise StatementError(job.error_message or "unknown error")

        if job.state is not StatementState.SUCCEEDED:
            raise StatementError(f"statement ended in state {job.state.value}")

        logger.info(
            "SQL statement succeeded",
            extra={"statement_id": job.statement_id, "rows": len(job.rows), "polls": polls},
        )
        return job

    def test_connection(self) -> bool:
        """
        Run ``SELECT 1 AS ok`` against the configured warehouse.

        Returns:
            True when the warehouse answers with the expected single cell

        Raises:
            StatementClientError: On any API failure or unexpected result
        """
        job = self.run("SELECT 1 AS ok")
        if job.rows and job.rows[0] and str(job.rows[0][0]) == "1":
            return True
        raise StatementResponseError(
            f"Unexpected response: state={job.state.value} rows={job.rows!r}"
        )

    def _wait(self, cancel_event: Optional[threading.Event], statement_id: str) -> None:
        if cancel_event is None:
            time.sleep(self.poll_interval)
            return
        if cancel_event.wait(self.poll_interval):
            self._raise_if_cancelled(cancel_event, statement_id)

    def _raise_if_cancelled(
        self, cancel_event: Optional[threading.Event], statement_id: Optional[str]
    ) -> None:
        if cancel_event is None or not cancel_event.is_set():
            return
        if statement_id:
            self._cancel(statement_id)
        logger.info("SQL statement cancelled by caller", extra={"statement_id": statement_id})
        raise StatementCancelledError(
            f"Statement {statement_id or '(not submitted)'} cancelled by caller"
        )
