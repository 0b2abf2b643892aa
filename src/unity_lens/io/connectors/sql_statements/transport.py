"""
HTTP Transport layer for the Databricks SQL Statement Execution API.
Handles session management, authentication headers and HTTP error mapping.
"""

import logging
from typing import Any, Callable, Dict, Optional

import requests

from unity_lens.config.settings import get_settings

from .models import (
    PollError,
    StatementConfigurationError,
    StatementResponseError,
    SubmissionError,
)

logger = logging.getLogger(__name__)

STATEMENTS_PATH = "/api/2.0/sql/statements"

# Request bodies are logged truncated to this many characters
LOG_STATEMENT_CHARS = 300


class StatementTransport:
    """
    Base HTTP transport for the SQL Statement Execution API.
    Handles session management, bearer auth and status-code mapping.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        *,
        workspace_url: Optional[str] = None,
        warehouse_id: Optional[str] = None,
        timeout: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize transport with configuration.

        Args:
            token: Personal access token. If None, reads ULENS_PAT_TOKEN via settings
            workspace_url: Workspace base URL. If None, uses settings default
            warehouse_id: SQL warehouse id. If None, uses settings default
            timeout: Per-request timeout in seconds. If None, uses settings default
            session: Optional pre-built requests session (tests, connection pooling)
        """
        self.settings = get_settings()

        self.token = token or self.settings.pat_token
        if not self.token:
            raise StatementConfigurationError(
                "Personal access token required via constructor parameter or "
                "ULENS_PAT_TOKEN"
            )

        workspace_url = workspace_url if workspace_url is not None else self.settings.workspace_url
        self.workspace_url = (workspace_url or "").rstrip("/")
        if not self.workspace_url:
            raise StatementConfigurationError("Workspace URL is required")

        self.warehouse_id = (
            warehouse_id if warehouse_id is not None else self.settings.warehouse_id
        )
        if not self.warehouse_id:
            raise StatementConfigurationError("Warehouse ID is required")

        self.timeout = timeout if timeout is not None else self.settings.request_timeout
        self.statements_url = f"{self.workspace_url}{STATEMENTS_PATH}"

        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {self.token}",
                "User-Agent": "unity-lens/0.1",
                "Accept": "application/json",
                "Content-Type": "application/json",
            }
        )

        logger.debug(
            "SQL statement transport initialized",
            extra={
                "workspace_url": self.workspace_url,
                "warehouse_id": self.warehouse_id,
                "timeout": self.timeout,
            },
        )

    def _request_json(
        self,
        method: str,
        url: str,
        error_cls: Callable[[Optional[int], str], Exception],
        **kwargs: Any,
    ) -> Dict[str, Any]:
        """
        Make one HTTP request and decode its JSON body.

        Any transport failure or non-2xx status is raised as ``error_cls``;
        no retries happen at this layer.

        Raises:
            SubmissionError | PollError: As selected by ``error_cls``
            StatementResponseError: For 2xx responses without a JSON body
        """
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.warning(
                "SQL statement request failed",
                extra={"method": method, "url": url, "error": str(e)},
            )
            raise error_cls(None, str(e)) from e

        if not 200 <= response.status_code < 300:
            body = response.text
            logger.error(
                "SQL statement API returned an error status",
                extra={
                    "method": method,
                    "url": url,
                    "status_code": response.status_code,
                    "body": body[:LOG_STATEMENT_CHARS],
                },
            )
            raise error_cls(response.status_code, body)

        try:
            return response.json()
        except ValueError as e:
            # requests.JSONDecodeError subclasses ValueError across versions
            raise StatementResponseError(f"Invalid JSON response from {url}: {e}") from e

    def _submit(self, statement: str, wait_timeout: str) -> Dict[str, Any]:
        logger.info(
            "Submitting SQL statement",
            extra={
                "warehouse_id": self.warehouse_id,
                "statement": statement.strip()[:LOG_STATEMENT_CHARS],
                "wait_timeout": wait_timeout,
            },
        )
        return self._request_json(
            "POST",
            self.statements_url,
            SubmissionError,
            json={
                "warehouse_id": self.warehouse_id,
                "statement": statement,
                "wait_timeout": wait_timeout,
                "disposition": "INLINE",
                "format": "JSON_ARRAY",
            },
        )

    def _poll(self, statement_id: str) -> Dict[str, Any]:
        return self._request_json(
            "GET", f"{self.statements_url}/{statement_id}", PollError
        )

    def _cancel(self, statement_id: str) -> None:
        """Best-effort cancel of a running statement; failures are only logged."""
        url = f"{self.statements_url}/{statement_id}/cancel"
        try:
            response = self.session.request("POST", url, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning(
                "SQL statement cancel failed",
                extra={"statement_id": statement_id, "error": str(e)},
            )
            return

        if not 200 <= response.status_code < 300:
            logger.warning(
                "SQL statement cancel rejected",
                extra={
                    "statement_id": statement_id,
                    "status_code": response.status_code,
                },
            )

    def close(self) -> None:
        self.session.close()

