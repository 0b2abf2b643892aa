"""
Unit tests for the SQL Statement Execution API client.

The HTTP layer is replaced by a mocked ``requests.Session.request`` so the
submit/poll/cancel state machine can be driven response by response.
"""

import threading
from unittest.mock import Mock, patch

import pytest
import requests

from unity_lens.io.connectors.sql_statements import (
    PollError,
    StatementCancelledError,
    StatementConfigurationError,
    StatementError,
    StatementExecutionClient,
    StatementResponseError,
    StatementTimeoutError,
    SubmissionError,
)

WORKSPACE = "https://dbc-test.cloud.databricks.com"
STATEMENTS_URL = f"{WORKSPACE}/api/2.0/sql/statements"


def _response(status_code=200, payload=None, text=None):
    response = Mock()
    response.status_code = status_code
    response.text = text if text is not None else str(payload)
    if payload is None:
        response.json.side_effect = ValueError("No JSON object could be decoded")
    else:
        response.json.return_value = payload
    return response


def _state(state, statement_id="stmt-1", rows=None, error=None):
    payload = {"statement_id": statement_id, "status": {"state": state}}
    if error is not None:
        payload["status"]["error"] = {"message": error}
    if rows is not None:
        payload["result"] = {"data_array": rows}
    return payload


def _client(responses, **kwargs):
    session = requests.Session()
    session.request = Mock(side_effect=responses)
    params = dict(
        token="dapi-test-token",
        workspace_url=WORKSPACE + "/",
        warehouse_id="wh-123",
        poll_interval=0,
        session=session,
    )
    params.update(kwargs)
    return StatementExecutionClient(**params)


@pytest.mark.unit
class TestClientInitialization:
    def test_headers_and_url(self):
        client = _client([])
        assert client.statements_url == STATEMENTS_URL
        assert client.session.headers["Authorization"] == "Bearer dapi-test-token"
        assert client.session.headers["Content-Type"] == "application/json"

    def test_missing_token_raises(self):
        with pytest.raises(StatementConfigurationError, match="token"):
            StatementExecutionClient(workspace_url=WORKSPACE, warehouse_id="wh")

    def test_missing_workspace_raises(self):
        with pytest.raises(StatementConfigurationError, match="Workspace URL"):
            StatementExecutionClient(token="t", workspace_url="", warehouse_id="wh")

    def test_missing_warehouse_raises(self):
        with pytest.raises(StatementConfigurationError, match="Warehouse ID"):
            StatementExecutionClient(token="t", workspace_url=WORKSPACE, warehouse_id="")

    def test_falls_back_to_settings(self, monkeypatch):
        monkeypatch.setenv("ULENS_PAT_TOKEN", "env-token")
        monkeypatch.setenv("ULENS_WORKSPACE_URL", WORKSPACE + "/")
        monkeypatch.setenv("ULENS_WAREHOUSE_ID", "env-wh")
        monkeypatch.setenv("ULENS_POLL_MAX_ATTEMPTS", "7")

        from unity_lens.config import reset_settings_cache

        reset_settings_cache()
        client = StatementExecutionClient()

        assert client.token == "env-token"
        assert client.workspace_url == WORKSPACE
        assert client.warehouse_id == "env-wh"
        assert client.poll_max_attempts == 7
        assert client.wait_timeout == "30s"


@pytest.mark.unit
class TestExecute:
    def test_submit_body(self):
        client = _client([_response(payload=_state("SUCCEEDED", rows=[]))])
        client.execute("SELECT 1")

        method, url = client.session.request.call_args.args
        kwargs = client.session.request.call_args.kwargs
        assert (method, url) == ("POST", STATEMENTS_URL)
        assert kwargs["json"] == {
            "warehouse_id": "wh-123",
            "statement": "SELECT 1",
            "wait_timeout": "30s",
            "disposition": "INLINE",
            "format": "JSON_ARRAY",
        }

    def test_immediate_success_returns_rows(self):
        client = _client([_response(payload=_state("SUCCEEDED", rows=[["a", "b"]]))])
        assert client.execute("SELECT 1") == [["a", "b"]]
        assert client.session.request.call_count == 1

    def test_success_without_result_returns_empty(self):
        client = _client([_response(payload=_state("SUCCEEDED"))])
        assert client.execute("SELECT 1") == []

    def test_polls_until_terminal(self):
        client = _client(
            [
                _response(payload=_state("PENDING")),
                _response(payload=_state("RUNNING")),
                _response(payload=_state("SUCCEEDED", rows=[["x"]])),
            ]
        )
        assert client.execute("SELECT 1") == [["x"]]

        calls = client.session.request.call_args_list
        assert [c.args for c in calls[1:]] == [
            ("GET", f"{STATEMENTS_URL}/stmt-1"),
            ("GET", f"{STATEMENTS_URL}/stmt-1"),
        ]

    def test_polling_sleeps_between_polls_without_event(self):
        client = _client(
            [
                _response(payload=_state("RUNNING")),
                _response(payload=_state("SUCCEEDED", rows=[])),
            ],
            poll_interval=1.0,
        )
        with patch("unity_lens.io.connectors.sql_statements.core.time.sleep") as mock_sleep:
            client.execute("SELECT 1")
        mock_sleep.assert_called_once_with(1.0)

    def test_failed_state_raises_with_message(self):
        client = _client([_response(payload=_state("FAILED", error="x"))])
        with pytest.raises(StatementError) as exc_info:
            client.execute("SELECT nope")
        assert str(exc_info.value) == "SQL failed: x"
        assert exc_info.value.message == "x"

    def test_failed_after_polling(self):
        client = _client(
            [
                _response(payload=_state("RUNNING")),
                _response(payload=_state("FAILED", error="TABLE_OR_VIEW_NOT_FOUND")),
            ]
        )
        with pytest.raises(StatementError, match="TABLE_OR_VIEW_NOT_FOUND"):
            client.execute("SELECT 1")

    @pytest.mark.parametrize("state", ["CANCELED", "CLOSED"])
    def test_other_terminal_states_raise(self, state):
        client = _client([_response(payload=_state(state))])
        with pytest.raises(StatementError, match=state):
            client.execute("SELECT 1")

    def test_submit_http_error(self):
        client = _client([_response(status_code=403, text="Forbidden")])
        with pytest.raises(SubmissionError) as exc_info:
            client.execute("SELECT 1")
        assert exc_info.value.status_code == 403
        assert str(exc_info.value) == "SQL submit failed (403): Forbidden"

    def test_submit_network_error(self):
        client = _client([requests.ConnectionError("connection refused")])
        with pytest.raises(SubmissionError, match="connection refused"):
            client.execute("SELECT 1")

    def test_poll_http_error(self):
        client = _client(
            [
                _response(payload=_state("RUNNING")),
                _response(status_code=500, text="boom"),
            ]
        )
        with pytest.raises(PollError) as exc_info:
            client.execute("SELECT 1")
        assert str(exc_info.value) == "SQL poll failed (500): boom"

    def test_missing_status_is_response_error(self):
        client = _client([_response(payload={"statement_id": "stmt-1"})])
        with pytest.raises(StatementResponseError):
            client.execute("SELECT 1")

    def test_non_json_body_is_response_error(self):
        client = _client([_response(payload=None, text="<html>")])
        with pytest.raises(StatementResponseError):
            client.execute("SELECT 1")

    def test_running_without_statement_id(self):
        client = _client([_response(payload={"status": {"state": "RUNNING"}})])
        with pytest.raises(StatementResponseError, match="statement_id"):
            client.execute("SELECT 1")


@pytest.mark.unit
class TestPollBounds:
    def test_max_attempts_raises_and_cancels(self):
        client = _client(
            [_response(payload=_state("RUNNING"))] * 3 + [_response(status_code=200, payload={})],
            poll_max_attempts=2,
        )
        with pytest.raises(StatementTimeoutError, match="after 2 polls"):
            client.execute("SELECT 1")

        last = client.session.request.call_args_list[-1]
        assert last.args == ("POST", f"{STATEMENTS_URL}/stmt-1/cancel")

    def test_deadline_raises_and_cancels(self):
        client = _client(
            [_response(payload=_state("PENDING")), _response(status_code=200, payload={})],
            poll_timeout=0,
        )
        with pytest.raises(StatementTimeoutError):
            client.execute("SELECT 1")
        assert client.session.request.call_args_list[-1].args[1].endswith("/cancel")

    def test_cancel_failure_does_not_mask_timeout(self):
        client = _client(
            [_response(payload=_state("PENDING")), requests.Timeout("slow")],
            poll_timeout=0,
        )
        with pytest.raises(StatementTimeoutError):
            client.execute("SELECT 1")


@pytest.mark.unit
class TestCancellation:
    def test_event_set_before_submit(self):
        client = _client([])
        event = threading.Event()
        event.set()

        with pytest.raises(StatementCancelledError):
            client.execute("SELECT 1", cancel_event=event)
        client.session.request.assert_not_called()

    def test_event_set_while_running_cancels_remotely(self):
        event = threading.Event()

        def dispatch(method, url, **kwargs):
            if url == STATEMENTS_URL:
                # Caller gives up while the statement is still running
                event.set()
                return _response(payload=_state("RUNNING"))
            return _response(status_code=200, payload={})

        client = _client([])
        client.session.request = Mock(side_effect=dispatch)

        with pytest.raises(StatementCancelledError, match="stmt-1"):
            client.execute("SELECT 1", cancel_event=event)

        methods = [c.args for c in client.session.request.call_args_list]
        assert methods == [
            ("POST", STATEMENTS_URL),
            ("POST", f"{STATEMENTS_URL}/stmt-1/cancel"),
        ]


@pytest.mark.unit
class TestConnectionCheck:
    def test_select_one_succeeds(self):
        client = _client([_response(payload=_state("SUCCEEDED", rows=[["1"]]))])
        assert client.test_connection() is True
        assert client.session.request.call_args.kwargs["json"]["statement"] == "SELECT 1 AS ok"

    def test_unexpected_rows_raise(self):
        client = _client([_response(payload=_state("SUCCEEDED", rows=[]))])
        with pytest.raises(StatementResponseError, match="Unexpected response"):
            client.test_connection()
