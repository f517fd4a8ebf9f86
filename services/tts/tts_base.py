"""
=====================================================
Craftsman Phone Assistant - TTS Service Base Interface
=====================================================
Abstract base class for Text-to-Speech providers
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Optional, Dict, Any
from dataclasses import dataclass, field
from enum import Enum
from loguru import logger


class TTSStatus(Enum):
    """TTS service status"""
    IDLE = "idle"
    SPEAKING = "speaking"
    ERROR = "error"


@dataclass
class TTSRequest:
    """Request for TTS synthesis"""
    text: str
    voice_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class TTSResponse:
    """Response from TTS synthesis"""
    audio_data: bytes
    sample_rate: int
    format: str  # mulaw, mp3, pcm
    duration_ms: int
    text: str
    metadata: Dict[str, Any] = field(default_factory=dict)


class TTSServiceBase(ABC):
    """
    Abstract base class for Text-to-Speech services

    Shared by all calls; every request is independent.
    """

    name = "tts"

    def __init__(self, api_key: str, default_voice_id: str, timeout: float = 15.0):
        """
        Initialize TTS service

        Args:
            api_key: Provider API key
            default_voice_id: Default voice to use
            timeout: Seconds allowed for one synthesis
        """
        self.api_key = api_key
        self.default_voice_id = default_voice_id
        self.timeout = timeout
        self._status = TTSStatus.IDLE

    @property
    def status(self) -> TTSStatus:
        """Status of the last request"""
        return self._status

    @abstractmethod
    async def synthesize(self, request: TTSRequest) -> TTSResponse:
        """
        Synthesize speech from text

        Args:
            request: TTS request with text and options

        Returns:
            TTS response with audio data

        Raises:
            Provider-specific errors on failure
        """
        pass

    async def synthesize_text(self, text: str) -> Optional[bytes]:
        """
        Synthesize a reply, never raising

        Args:
            text: Text to speak

        Returns:
            Audio bytes in the transport's playback format, or None
        """
        if not text or not text.strip():
            return None

        try:
            response = await asyncio.wait_for(self.synthesize(TTSRequest(text=text)), timeout=self.timeout)
        except Exception as e:
            self._status = TTSStatus.ERROR
            logger.error(f"{self.name}: Synthesis failed: {e!r}")
            return None

        return response.audio_data or None

    async def close(self) -> None:
        """Release network resources"""
        return None
