"""Tests for the call log sink."""

import json

import httpx
import pytest
import respx

from services.call_log import CallLogRecord, CallLogSink


URL = "https://logs.example.eu/webhook/phone"


@pytest.fixture
def record(complete_state):
    return CallLogRecord(
        transcript="Mein Name ist Anna Schmidt",
        conversation_state=complete_state.to_dict(),
        appointment_complete=False,
    )


def test_payload_shape(record):
    payload = record.to_payload()
    assert payload["type"] == "phone_call_log"
    assert payload["gdpr_compliant"] is True
    assert payload["audio_stored"] is False
    assert payload["data"]["transcript"] == "Mein Name ist Anna Schmidt"
    assert payload["data"]["conversationState"]["customerName"] == "Anna Schmidt"
    assert payload["data"]["appointmentComplete"] is False
    assert payload["data"]["timestamp"].endswith("+00:00")


@pytest.mark.asyncio
@respx.mock
async def test_emit_posts_record(record):
    route = respx.post(URL).mock(return_value=httpx.Response(200))
    sink = CallLogSink(URL, api_key="n8n-key")

    assert await sink.emit(record) is True
    request = route.calls[0].request
    assert request.headers["Authorization"] == "Bearer n8n-key"
    assert json.loads(request.content)["type"] == "phone_call_log"


@pytest.mark.asyncio
@respx.mock
async def test_emit_without_token(record):
    route = respx.post(URL).mock(return_value=httpx.Response(200))
    sink = CallLogSink(URL)

    await sink.emit(record)
    assert "Authorization" not in route.calls[0].request.headers


@pytest.mark.asyncio
@respx.mock
async def test_emit_failure_is_swallowed(record):
    respx.post(URL).mock(return_value=httpx.Response(503))
    sink = CallLogSink(URL)

    assert await sink.emit(record) is False


@pytest.mark.asyncio
@respx.mock
async def test_emit_network_error_is_swallowed(record):
    respx.post(URL).mock(side_effect=httpx.ReadTimeout("slow"))
    sink = CallLogSink(URL)

    assert await sink.emit(record) is False


@pytest.mark.asyncio
async def test_emit_disabled_without_url(record):
    assert await CallLogSink("").emit(record) is False
