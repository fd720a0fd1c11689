import pytest
from fastapi import Request

from core.errors import resource_not_found
from core.response_envelope import document_response, error_payload, http_exception_response, success_payload


def test_success_payload_includes_request_id():
    payload = success_payload(data={"value": 1}, message="ok", request_id="req-123")
    assert payload["success"] is True
    assert payload["data"]["value"] == 1
    assert payload["requestId"] == "req-123"


def test_error_payload_includes_request_id():
    payload = error_payload(message="failed", data={"code": "X"}, request_id="req-999")
    assert payload["success"] is False
    assert payload["data"]["code"] == "X"
    assert payload["requestId"] == "req-999"


def test_http_exception_response_unpacks_app_exception():
    response = http_exception_response(resource_not_found("File", "abc"))
    assert response.status_code == 404
    assert b'"code":"RESOURCE_NOT_FOUND"' in response.body
    assert b'"message":"File not found"' in response.body


@pytest.mark.asyncio
async def test_document_response_wraps_sync_and_async_results():
    request = Request({"type": "http", "method": "GET", "path": "/", "headers": [], "state": {"request_id": "req-1"}})

    @document_response(message="Fetched", status_code=201)
    async def _endpoint(request: Request):
        return {"value": 2}

    response = await _endpoint(request=request)

    assert response.status_code == 201
    assert b'"requestId":"req-1"' in response.body
    assert b'"data":{"value":2}' in response.body
