"""
=====================================================
Craftsman Phone Assistant - Call Orchestrator
=====================================================

The orchestrator drives every active call. It coordinates:
- Twilio Media Streams (bidirectional audio)
- STT service (speech-to-text, one request per ~3s chunk)
- Dialogue manager (LLM reply + slot extraction)
- TTS service (text-to-speech)
- Appointment finalizer (booking)
- Call log sink

Per chunk: buffer -> transcribe -> converse -> speak -> maybe book -> log.
"""

import uuid
from typing import Any, Dict, List, Optional, Protocol
from loguru import logger

from config.settings import Settings, get_settings
from services.stt import STTServiceBase, create_stt_service
from services.tts.tts_base import TTSServiceBase
from services.tts.elevenlabs_service import create_elevenlabs_tts
from services.llm.openai_service import create_openai_llm
from services.booking import AppointmentFinalizer, create_appointment_finalizer
from services.call_log import CallLogRecord, CallLogSink, create_call_log_sink
from services.telephony.twilio_service import TwilioMediaStreamHandler
from .dialogue import DialogueManager, DialogueResult, NextStep
from .prompts import confirmation_message, DEFAULT_LANGUAGE
from .session import CallSession, CallStage
from .slot_state import SlotState


class AudioTransport(Protocol):
    """Outbound side of a call connection"""

    async def send_audio(self, audio_data: bytes) -> bool: ...

    async def close(self) -> None: ...


class CallOrchestrator:
    """
    Runs the call pipeline for all active sessions

    ARCHITECTURE NOTES:
    - STT, LLM, TTS, booking and log clients are shared by all calls
    - Each call has its own CallSession, keyed by connection id
    - Events of one call are delivered in order by its media stream handler,
      so a session is never touched by two tasks at once
    """

    def __init__(
        self,
        stt: STTServiceBase,
        dialogue: DialogueManager,
        tts: TTSServiceBase,
        finalizer: AppointmentFinalizer,
        call_log: CallLogSink,
        flush_frame_threshold: int = 150,
        language: str = DEFAULT_LANGUAGE,
        prefill_caller_phone: bool = False
    ):
        """
        Initialize orchestrator with shared services

        Args:
            stt: Speech-to-text adapter
            dialogue: Dialogue manager
            tts: Text-to-speech adapter
            finalizer: Appointment finalizer
            call_log: Call log sink
            flush_frame_threshold: Buffered media frames that trigger processing
            language: Language of spoken system lines
            prefill_caller_phone: Seed the slot state with the caller id
        """
        if flush_frame_threshold < 1:
            raise ValueError("flush_frame_threshold must be at least 1")

        # SHARED SERVICES
        self.stt = stt
        self.dialogue = dialogue
        self.tts = tts
        self.finalizer = finalizer
        self.call_log = call_log

        self.flush_frame_threshold = flush_frame_threshold
        self.language = language
        self.prefill_caller_phone = prefill_caller_phone

        # PER-CALL STORAGE
        self.sessions: Dict[str, CallSession] = {}
        self.transports: Dict[str, AudioTransport] = {}

    # =====================================================
    # SESSION LIFECYCLE
    # =====================================================

    async def start_session(
        self,
        session_id: str,
        start_data: Dict[str, Any],
        transport: AudioTransport
    ) -> CallSession:
        """
        Create the session for a started stream

        Args:
            session_id: Connection id
            start_data: The `start` object of the Twilio start event
            transport: Connection used to play audio back

        Returns:
            The new (or already existing) session
        """
        existing = self.sessions.get(session_id)
        if existing is not None:
            logger.warning(f"Orchestrator: Session {session_id} already started")
            return existing

        params = start_data.get("customParameters") or {}
        craftsman_id = params.get("craftsman_id") or None
        phone_number = params.get("phone_number") or None

        slot_state = SlotState()
        if self.prefill_caller_phone and phone_number:
            slot_state.phone_number = phone_number

        session = CallSession(
            session_id=session_id,
            craftsman_id=craftsman_id,
            caller_phone_number=phone_number,
            stream_sid=start_data.get("streamSid"),
            slot_state=slot_state,
        )
        self.sessions[session_id] = session
        self.transports[session_id] = transport

        logger.info(
            f"Orchestrator: Session {session_id} started "
            f"(craftsman={craftsman_id}, caller={phone_number})"
        )
        return session

    async def handle_media(self, session_id: str, frame: bytes) -> None:
        """
        Buffer one inbound audio frame, processing the buffer when full

        Args:
            session_id: Connection id
            frame: Decoded μ-law audio frame
        """
        session = self.sessions.get(session_id)
        if session is None or session.stage is CallStage.COMPLETED:
            logger.debug(f"Orchestrator: Media for unknown session {session_id} dropped")
            return

        if session.add_audio(frame) >= self.flush_frame_threshold:
            await self._safe_flush(session)

    async def end_session(self, session_id: str) -> None:
        """
        Finish a call: process remaining audio, close out the booking,
        release the buffer and the connection

        Args:
            session_id: Connection id
        """
        session = self.sessions.get(session_id)
        if session is None:
            return

        logger.info(f"Orchestrator: Ending session {session_id}")

        if session.audio_buffer:
            await self._safe_flush(session)

        if session.slot_state.appointment_complete:
            try:
                await self.finalizer.complete(session)
            except Exception as e:
                logger.error(f"Orchestrator: Post-booking step failed for {session_id}: {e!r}")

        session.advance(CallStage.COMPLETED)
        session.release_audio()

        transport = self.transports.pop(session_id, None)
        if transport is not None:
            await transport.close()

        del self.sessions[session_id]
        logger.info(
            f"Orchestrator: Session {session_id} completed after {session.duration_seconds:.1f}s "
            f"(booked={session.slot_state.appointment_complete})"
        )

    # =====================================================
    # CHUNK PROCESSING
    # =====================================================

    async def flush(self, session: CallSession) -> Optional[DialogueResult]:
        """
        Process the buffered audio of a session as one utterance

        Args:
            session: Session whose buffer should be processed

        Returns:
            The dialogue result, or None if the chunk produced no transcript
        """
        # Buffer is emptied before the first await
        audio = session.take_audio()
        if not audio:
            return None

        transcript = await self.stt.transcribe(audio)
        if not transcript or not transcript.strip():
            logger.info(f"Orchestrator: No speech in chunk for session {session.session_id}, dropped")
            return None

        logger.info(f"Orchestrator: [{session.session_id}] Caller: {transcript}")

        result = await self.dialogue.converse(transcript, session.slot_state)
        session.slot_state = result.slot_state
        if session.stage is CallStage.GREETING:
            session.advance(CallStage.COLLECTING)

        await self._speak(session, result.reply_text)

        if result.next_step is NextStep.CREATE_APPOINTMENT and not session.slot_state.appointment_complete:
            booking = await self.finalizer.finalize(session)
            if booking.success:
                await self._speak(session, confirmation_message(self.language))

        await self.call_log.emit(CallLogRecord(
            transcript=transcript,
            conversation_state=session.slot_state.to_dict(),
            appointment_complete=session.slot_state.appointment_complete,
        ))

        return result

    async def _safe_flush(self, session: CallSession) -> Optional[DialogueResult]:
        """Run flush, keeping the call alive if anything unexpected fails"""
        try:
            return await self.flush(session)
        except Exception as e:
            logger.exception(f"Orchestrator: Chunk processing failed for {session.session_id}: {e!r}")
            return None

    async def _speak(self, session: CallSession, text: str) -> None:
        """Synthesize text and play it on the session's connection"""
        logger.info(f"Orchestrator: [{session.session_id}] Assistant: {text}")

        audio = await self.tts.synthesize_text(text)
        if audio is None:
            logger.warning(f"Orchestrator: No audio for reply in session {session.session_id}")
            return

        transport = self.transports.get(session.session_id)
        if transport is not None:
            await transport.send_audio(audio)

    # =====================================================
    # CONNECTION ENTRY POINT
    # =====================================================

    async def handle_call(self, websocket) -> None:
        """
        Serve one accepted Twilio Media Streams WebSocket until it ends

        Args:
            websocket: Accepted WebSocket connection
        """
        session_id = uuid.uuid4().hex
        handler = TwilioMediaStreamHandler(websocket)

        async def on_start(start_data: Dict[str, Any]) -> None:
            await self.start_session(session_id, start_data, handler)

        async def on_media(frame: bytes) -> None:
            await self.handle_media(session_id, frame)

        async def on_stop() -> None:
            await self.end_session(session_id)

        handler.set_start_handler(on_start)
        handler.set_media_handler(on_media)
        handler.set_stop_handler(on_stop)

        try:
            await handler.handle_connection()
        finally:
            if session_id in self.sessions:
                await self.end_session(session_id)
            await handler.close()

    # =====================================================
    # STATUS
    # =====================================================

    @property
    def active_call_count(self) -> int:
        return len(self.sessions)

    def get_active_calls(self) -> List[Dict[str, Any]]:
        """List active calls for the stats endpoint"""
        return [
            {
                "session_id": session.session_id,
                "craftsman_id": session.craftsman_id,
                "stage": session.stage.value,
                "duration_seconds": int(session.duration_seconds),
                "missing_fields": session.slot_state.missing_fields(),
            }
            for session in self.sessions.values()
        ]

    async def close(self) -> None:
        """Close shared clients"""
        for service in (self.stt, self.tts, self.finalizer, self.call_log, self.dialogue.llm):
            try:
                await service.close()
            except Exception as e:
                logger.warning(f"Orchestrator: Error closing {type(service).__name__}: {e!r}")


def build_orchestrator(settings: Optional[Settings] = None) -> CallOrchestrator:
    """
    Build the orchestrator and all shared services from settings

    Raises:
        ConfigurationError: If a required provider credential is missing
    """
    settings = settings or get_settings()
    config = settings.model_dump()

    llm = create_openai_llm(config)
    dialogue = DialogueManager(
        llm,
        temperature=settings.openai_temperature,
        max_tokens=settings.openai_max_tokens,
        timeout=settings.llm_timeout_seconds,
        language=settings.assistant_language,
    )

    return CallOrchestrator(
        stt=create_stt_service(config),
        dialogue=dialogue,
        tts=create_elevenlabs_tts(config),
        finalizer=create_appointment_finalizer(config),
        call_log=create_call_log_sink(config),
        flush_frame_threshold=settings.flush_frame_threshold,
        language=settings.assistant_language,
        prefill_caller_phone=settings.prefill_caller_phone,
    )
