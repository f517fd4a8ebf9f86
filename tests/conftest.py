from unittest.mock import AsyncMock

import pytest

from services.booking import AppointmentFinalizer, BookingResult
from services.conversation.dialogue import DialogueManager
from services.conversation.orchestrator import CallOrchestrator
from services.conversation.slot_state import SlotState
from services.llm.llm_base import LLMResponse


@pytest.fixture
def complete_state():
    return SlotState(
        customer_name="Anna Schmidt",
        phone_number="0171 1234567",
        service_type="Heizung",
        address="Hauptstraße 12",
    )


@pytest.fixture
def llm():
    mock = AsyncMock()
    mock.chat.return_value = LLMResponse(content="Wie ist Ihre Adresse?")
    return mock


@pytest.fixture
def dialogue(llm):
    return DialogueManager(llm, timeout=1.0)


@pytest.fixture
def booking_client():
    client = AsyncMock()
    client.create_appointment.return_value = BookingResult(success=True, appointment_id="apt-1")
    return client


@pytest.fixture
def finalizer(booking_client):
    return AppointmentFinalizer(booking_client, timeout=1.0)


@pytest.fixture
def stt():
    mock = AsyncMock()
    mock.transcribe.return_value = "Mein Name ist Anna Schmidt"
    return mock


@pytest.fixture
def tts():
    mock = AsyncMock()
    mock.synthesize_text.return_value = b"\x7f" * 320
    return mock


@pytest.fixture
def call_log():
    return AsyncMock()


@pytest.fixture
def transport():
    return AsyncMock()


@pytest.fixture
def orchestrator(stt, dialogue, tts, finalizer, call_log):
    return CallOrchestrator(
        stt=stt,
        dialogue=dialogue,
        tts=tts,
        finalizer=finalizer,
        call_log=call_log,
        flush_frame_threshold=3,
    )


@pytest.fixture
def start_data():
    return {
        "streamSid": "MZ123",
        "callSid": "CA123",
        "customParameters": {"craftsman_id": "craft-7", "phone_number": "+491711234567"},
    }
