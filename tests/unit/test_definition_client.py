"""Tests for the definition service client."""
import httpx
import pytest

from app.domain.errors import ErrorCode, UnavailableError
from app.domain.types import DefinitionStatus, StepKind
from app.infra.external.definition_client import DefinitionServiceClient
from app.infra.logging import correlation_id_var


DEFINITION = {
    "id": "expense",
    "name": "Expense approval",
    "version": "3",
    "status": "active",
    "steps": [
        {"id": "submit", "name": "Submit", "type": "task"},
        {"id": "review", "name": "Manager review", "type": "approval"},
        {"id": "done", "name": "Done", "type": "terminal"},
    ],
}


def _client(handler) -> DefinitionServiceClient:
    return DefinitionServiceClient(
        base_url="http://definitions.test/",
        timeout=1.0,
        transport=httpx.MockTransport(handler),
    )


def test_returns_parsed_definition():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, json={"success": True, "data": DEFINITION})

    definition = _client(handler).get_definition("expense")

    assert seen == ["http://definitions.test/definitions/expense"]
    assert definition.id == "expense"
    assert definition.status == DefinitionStatus.ACTIVE
    assert definition.is_active
    assert definition.first_step_id == "submit"
    assert [step.kind for step in definition.steps] == [
        StepKind.TASK,
        StepKind.APPROVAL,
        StepKind.TERMINAL,
    ]


def test_not_found_returns_none():
    client = _client(lambda request: httpx.Response(404, json={"success": False}))
    assert client.get_definition("missing") is None


def test_envelope_without_data_returns_none():
    client = _client(lambda request: httpx.Response(200, json={"success": False, "data": None}))
    assert client.get_definition("missing") is None


def test_server_error_is_unavailable():
    client = _client(lambda request: httpx.Response(502, text="bad gateway"))

    with pytest.raises(UnavailableError) as exc_info:
        client.get_definition("expense")

    assert exc_info.value.code == ErrorCode.DEFINITION_UNAVAILABLE
    assert exc_info.value.status_code == 503


def test_timeout_is_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(UnavailableError):
        _client(handler).get_definition("expense")


def test_connection_error_is_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(UnavailableError):
        _client(handler).get_definition("expense")


def test_non_json_body_is_unavailable():
    client = _client(lambda request: httpx.Response(200, text="<html>oops</html>"))

    with pytest.raises(UnavailableError):
        client.get_definition("expense")


def test_malformed_definition_is_unavailable():
    body = {"success": True, "data": {"id": "expense", "status": "archived", "steps": []}}
    client = _client(lambda request: httpx.Response(200, json=body))

    with pytest.raises(UnavailableError):
        client.get_definition("expense")


def test_forwards_correlation_id():
    headers = []

    def handler(request: httpx.Request) -> httpx.Response:
        headers.append(request.headers.get("X-Correlation-ID"))
        return httpx.Response(200, json={"success": True, "data": DEFINITION})

    token = correlation_id_var.set("corr-123")
    try:
        _client(handler).get_definition("expense")
    finally:
        correlation_id_var.reset(token)

    assert headers == ["corr-123"]
