"""
=====================================================
Craftsman Phone Assistant - Call Session
=====================================================
Per-call state: identity, stage, audio buffer and collected slots.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional
from loguru import logger

from .slot_state import SlotState


class CallStage(Enum):
    """Lifecycle stage of a call, in order"""
    GREETING = "greeting"
    COLLECTING = "collecting"
    FINALIZING = "finalizing"
    COMPLETED = "completed"

    @property
    def order(self) -> int:
        return list(CallStage).index(self)


class CallSession:
    """
    One active phone call

    craftsman_id and caller_phone_number are fixed by the start event.
    """

    def __init__(
        self,
        session_id: str,
        craftsman_id: Optional[str] = None,
        caller_phone_number: Optional[str] = None,
        stream_sid: Optional[str] = None,
        slot_state: Optional[SlotState] = None
    ):
        self.session_id = session_id
        self._craftsman_id = craftsman_id
        self._caller_phone_number = caller_phone_number
        self.stream_sid = stream_sid
        self.stage = CallStage.GREETING
        self.audio_buffer: List[bytes] = []
        self.slot_state = slot_state or SlotState()
        self.started_at = datetime.now(timezone.utc)

    @property
    def craftsman_id(self) -> Optional[str]:
        return self._craftsman_id

    @property
    def caller_phone_number(self) -> Optional[str]:
        return self._caller_phone_number

    def advance(self, stage: CallStage) -> bool:
        """
        Move to a later stage

        Returns:
            True if the stage changed, False if the request was ignored
        """
        if stage.order < self.stage.order:
            logger.warning(
                f"Session {self.session_id}: Ignoring backward stage change "
                f"{self.stage.value} -> {stage.value}"
            )
            return False
        if stage is self.stage:
            return False

        logger.info(f"Session {self.session_id}: Stage {self.stage.value} -> {stage.value}")
        self.stage = stage
        return True

    def add_audio(self, frame: bytes) -> int:
        """Append one decoded media frame, returns buffered frame count"""
        self.audio_buffer.append(frame)
        return len(self.audio_buffer)

    def take_audio(self) -> bytes:
        """Join and clear the buffer in one step"""
        frames, self.audio_buffer = self.audio_buffer, []
        return b"".join(frames)

    def release_audio(self) -> None:
        """Drop any buffered audio without processing it"""
        self.audio_buffer = []

    @property
    def duration_seconds(self) -> float:
        return (datetime.now(timezone.utc) - self.started_at).total_seconds()
