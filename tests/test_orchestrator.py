"""Tests for the call pipeline in CallOrchestrator."""

import pytest

from services.booking import BookingResult
from services.conversation.prompts import confirmation_message
from services.conversation.session import CallSession, CallStage

FRAME = b"\xff" * 160


async def _start(orchestrator, start_data, transport, session_id="conn-1"):
    return await orchestrator.start_session(session_id, start_data, transport)


class TestSessionStart:
    @pytest.mark.asyncio
    async def test_identity_from_custom_parameters(self, orchestrator, start_data, transport):
        session = await _start(orchestrator, start_data, transport)

        assert session.craftsman_id == "craft-7"
        assert session.caller_phone_number == "+491711234567"
        assert session.stream_sid == "MZ123"
        assert session.stage is CallStage.GREETING
        assert session.slot_state.phone_number is None
        assert orchestrator.active_call_count == 1

    @pytest.mark.asyncio
    async def test_caller_phone_prefill(self, orchestrator, start_data, transport):
        orchestrator.prefill_caller_phone = True
        session = await _start(orchestrator, start_data, transport)
        assert session.slot_state.phone_number == "+491711234567"

    @pytest.mark.asyncio
    async def test_duplicate_start_keeps_session(self, orchestrator, start_data, transport):
        first = await _start(orchestrator, start_data, transport)
        second = await _start(orchestrator, {"customParameters": {}}, transport)
        assert second is first
        assert second.craftsman_id == "craft-7"


class TestFlushThreshold:
    @pytest.mark.asyncio
    async def test_exactly_one_flush_at_threshold(self, orchestrator, start_data, transport, stt):
        session = await _start(orchestrator, start_data, transport)

        await orchestrator.handle_media("conn-1", FRAME)
        await orchestrator.handle_media("conn-1", FRAME)
        stt.transcribe.assert_not_awaited()

        await orchestrator.handle_media("conn-1", FRAME)
        stt.transcribe.assert_awaited_once_with(FRAME * 3)
        assert session.audio_buffer == []

    @pytest.mark.asyncio
    async def test_media_for_unknown_session_ignored(self, orchestrator, stt):
        await orchestrator.handle_media("nobody", FRAME)
        stt.transcribe.assert_not_awaited()


class TestFlush:
    @pytest.mark.asyncio
    async def test_turn_updates_state_and_speaks(
        self, orchestrator, start_data, transport, tts, call_log, booking_client
    ):
        session = await _start(orchestrator, start_data, transport)
        session.add_audio(FRAME)

        result = await orchestrator.flush(session)

        assert result.reply_text == "Wie ist Ihre Adresse?"
        assert session.slot_state.customer_name == "Anna Schmidt"
        assert session.stage is CallStage.COLLECTING
        tts.synthesize_text.assert_awaited_once_with("Wie ist Ihre Adresse?")
        transport.send_audio.assert_awaited_once_with(b"\x7f" * 320)
        booking_client.create_appointment.assert_not_awaited()

        record = call_log.emit.await_args.args[0]
        assert record.transcript == "Mein Name ist Anna Schmidt"
        assert record.conversation_state["customerName"] == "Anna Schmidt"
        assert record.appointment_complete is False

    @pytest.mark.asyncio
    async def test_no_transcript_skips_dialogue(self, orchestrator, start_data, transport, stt, llm, call_log):
        stt.transcribe.return_value = None
        session = await _start(orchestrator, start_data, transport)
        for _ in range(3):
            await orchestrator.handle_media("conn-1", FRAME)

        llm.chat.assert_not_awaited()
        call_log.emit.assert_not_awaited()
        assert session.audio_buffer == []

        # Session keeps accepting media
        stt.transcribe.return_value = "Hallo"
        for _ in range(3):
            await orchestrator.handle_media("conn-1", FRAME)
        llm.chat.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_silent_turn_when_tts_fails(self, orchestrator, start_data, transport, tts):
        tts.synthesize_text.return_value = None
        session = await _start(orchestrator, start_data, transport)
        session.add_audio(FRAME)

        await orchestrator.flush(session)

        transport.send_audio.assert_not_awaited()
        assert session.stage is CallStage.COLLECTING

    @pytest.mark.asyncio
    async def test_unexpected_error_keeps_call_alive(self, orchestrator, start_data, transport, stt):
        stt.transcribe.side_effect = RuntimeError("boom")
        session = await _start(orchestrator, start_data, transport)

        for _ in range(3):
            await orchestrator.handle_media("conn-1", FRAME)

        assert session.audio_buffer == []
        assert "conn-1" in orchestrator.sessions


class TestFinalization:
    @pytest.mark.asyncio
    async def test_partial_state_never_books(self, orchestrator, start_data, transport, stt, booking_client):
        stt.transcribe.return_value = "Mein Name ist Anna Schmidt, Nummer 0171 1234567, die Heizung ist kaputt"
        session = await _start(orchestrator, start_data, transport)

        for _ in range(6):
            await orchestrator.handle_media("conn-1", FRAME)

        assert session.slot_state.address is None
        booking_client.create_appointment.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_complete_state_books_once(
        self, orchestrator, start_data, transport, stt, tts, booking_client, complete_state
    ):
        stt.transcribe.return_value = "Das wäre alles"
        session = await _start(orchestrator, start_data, transport)
        session.slot_state = complete_state

        session.add_audio(FRAME)
        await orchestrator.flush(session)
        session.add_audio(FRAME)
        await orchestrator.flush(session)

        booking_client.create_appointment.assert_awaited_once()
        assert session.slot_state.appointment_complete is True
        assert session.slot_state.appointment_id == "apt-1"
        assert session.stage is CallStage.FINALIZING
        spoken = [call.args[0] for call in tts.synthesize_text.await_args_list]
        assert spoken.count(confirmation_message("de")) == 1

    @pytest.mark.asyncio
    async def test_failed_booking_stays_collecting(
        self, orchestrator, start_data, transport, stt, tts, booking_client, complete_state
    ):
        booking_client.create_appointment.return_value = BookingResult(success=False, error_message="down")
        stt.transcribe.return_value = "Das wäre alles"
        session = await _start(orchestrator, start_data, transport)
        session.slot_state = complete_state

        session.add_audio(FRAME)
        await orchestrator.flush(session)

        assert session.slot_state.appointment_complete is False
        assert session.stage is CallStage.COLLECTING
        spoken = [call.args[0] for call in tts.synthesize_text.await_args_list]
        assert confirmation_message("de") not in spoken

        # Next turn retries
        session.add_audio(FRAME)
        await orchestrator.flush(session)
        assert booking_client.create_appointment.await_count == 2


class TestEndSession:
    @pytest.mark.asyncio
    async def test_stop_flushes_remaining_audio(self, orchestrator, start_data, transport, stt):
        session = await _start(orchestrator, start_data, transport)
        await orchestrator.handle_media("conn-1", FRAME)

        await orchestrator.end_session("conn-1")

        stt.transcribe.assert_awaited_once_with(FRAME)
        assert session.stage is CallStage.COMPLETED
        assert session.audio_buffer == []
        assert "conn-1" not in orchestrator.sessions
        transport.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stop_without_audio_skips_stt(self, orchestrator, start_data, transport, stt):
        await _start(orchestrator, start_data, transport)

        await orchestrator.end_session("conn-1")

        stt.transcribe.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_booked_call_runs_post_creation_step(self, orchestrator, start_data, transport, complete_state):
        session = await _start(orchestrator, start_data, transport)
        complete_state.appointment_complete = True
        session.slot_state = complete_state
        session.advance(CallStage.FINALIZING)

        calls = []

        async def complete(s):
            calls.append(s.session_id)

        orchestrator.finalizer.complete = complete
        await orchestrator.end_session("conn-1")

        assert calls == ["conn-1"]
        assert session.stage is CallStage.COMPLETED

    @pytest.mark.asyncio
    async def test_media_after_end_is_ignored(self, orchestrator, start_data, transport, stt):
        await _start(orchestrator, start_data, transport)
        await orchestrator.end_session("conn-1")

        for _ in range(3):
            await orchestrator.handle_media("conn-1", FRAME)

        stt.transcribe.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_session_end_is_noop(self, orchestrator):
        await orchestrator.end_session("nobody")


class TestSessionStages:
    def test_stage_never_regresses(self):
        session = CallSession("conn-1")
        assert session.advance(CallStage.FINALIZING) is True
        assert session.advance(CallStage.COLLECTING) is False
        assert session.stage is CallStage.FINALIZING

    def test_identity_is_read_only(self):
        session = CallSession("conn-1", craftsman_id="craft-7")
        with pytest.raises(AttributeError):
            session.craftsman_id = "other"

    def test_take_audio_empties_buffer(self):
        session = CallSession("conn-1")
        session.add_audio(b"ab")
        session.add_audio(b"cd")
        assert session.take_audio() == b"abcd"
        assert session.audio_buffer == []
        assert session.take_audio() == b""
