"""
Response parsing logic for the SQL Statement connector.
"""

import json
from typing import Any, Dict, List

from pydantic import ValidationError

from .models import StatementJob, StatementResponseError


def extract_error_message(status: Dict[str, Any]) -> str:
    """Return ``status.error.message``, or the whole status as JSON when absent."""
    error = status.get("error") or {}
    message = error.get("message") if isinstance(error, dict) else None
    if message:
        return str(message)
    return json.dumps(status, sort_keys=True)


def extract_rows(payload: Dict[str, Any]) -> List[List[Any]]:
    """Return ``result.data_array`` or an empty list for results without rows."""
    result = payload.get("result") or {}
    rows = result.get("data_array") or []
    if not isinstance(rows, list):
        raise StatementResponseError(
            f"Expected result.data_array to be a list, got {type(rows).__name__}"
        )
    return rows


def parse_statement_response(payload: Any) -> StatementJob:
    """
    Parse a submit or poll response body into a StatementJob.

    Args:
        payload: Decoded JSON body of ``POST /statements`` or ``GET /statements/{id}``

    Returns:
        StatementJob with state, statement id, error message (FAILED only) and rows

    Raises:
        StatementResponseError: If the body lacks a usable ``status.state``
    """
    if not isinstance(payload, dict):
        raise StatementResponseError(
            f"Expected a JSON object, got {type(payload).__name__}"
        )

    status = payload.get("status")
    if not isinstance(status, dict) or "state" not in status:
        raise StatementResponseError(
            f"Response has no status.state: keys={sorted(payload.keys())}"
        )

    state = status["state"]
    try:
        return StatementJob(
            statement_id=payload.get("statement_id"),
            state=state,
            error_message=extract_error_message(status) if state == "FAILED" else None,
            rows=extract_rows(payload) if state == "SUCCEEDED" else [],
        )
    except ValidationError as e:
        raise StatementResponseError(f"Unrecognised statement response: {e}") from e
