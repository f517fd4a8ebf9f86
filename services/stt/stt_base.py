"""
=====================================================
Craftsman Phone Assistant - STT Service Base Interface
=====================================================
Abstract base class for Speech-to-Text providers
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Optional, Dict, Any
from dataclasses import dataclass, field
from enum import Enum
from loguru import logger


class STTStatus(Enum):
    """STT service status"""
    IDLE = "idle"
    TRANSCRIBING = "transcribing"
    ERROR = "error"


@dataclass
class STTResult:
    """Result from STT processing"""
    text: str
    language: str
    confidence: float = 0.0
    metadata: Dict[str, Any] = field(default_factory=dict)


class STTServiceBase(ABC):
    """
    Abstract base class for Speech-to-Text services

    Providers transcribe one buffered chunk of caller audio at a time.
    Instances are shared across calls, so they must not keep audio or
    per-call state between requests.
    """

    name = "stt"

    def __init__(self, api_key: str, language: str = "de", timeout: float = 30.0):
        """
        Initialize STT service

        Args:
            api_key: Provider API key
            language: Language code sent to the provider
            timeout: Seconds allowed for one transcription
        """
        self.api_key = api_key
        self.language = language
        self.timeout = timeout
        self._status = STTStatus.IDLE

    @property
    def status(self) -> STTStatus:
        """Status of the last request"""
        return self._status

    @abstractmethod
    async def transcribe_audio(self, audio_data: bytes) -> STTResult:
        """
        Transcribe a chunk of μ-law 8kHz audio

        Args:
            audio_data: Raw μ-law bytes as received from Twilio

        Returns:
            STTResult with the recognised text

        Raises:
            Provider-specific errors on failure
        """
        pass

    async def transcribe(self, audio_data: bytes) -> Optional[str]:
        """
        Transcribe a chunk, never raising

        Args:
            audio_data: Raw μ-law bytes

        Returns:
            Transcript text, or None when there is no usable transcript
        """
        if not audio_data:
            return None

        self._status = STTStatus.TRANSCRIBING
        try:
            result = await asyncio.wait_for(self.transcribe_audio(audio_data), timeout=self.timeout)
        except Exception as e:
            self._status = STTStatus.ERROR
            logger.error(f"{self.name}: Transcription failed: {e!r}")
            return None

        self._status = STTStatus.IDLE
        text = (result.text or "").strip() if result else ""
        if not text:
            logger.debug(f"{self.name}: Empty transcription result")
            return None
        return text

    async def close(self) -> None:
        """Release network resources"""
        return None
