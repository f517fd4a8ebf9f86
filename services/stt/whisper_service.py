"""
=====================================================
Craftsman Phone Assistant - Whisper STT Service
=====================================================
Speech-to-Text through an OpenAI-compatible transcription endpoint.

Point WHISPER_BASE_URL at a locally hosted Whisper server to keep audio on
premises; without it the OpenAI API is used.
"""

import io
import time
from typing import Optional
from loguru import logger
from openai import AsyncOpenAI

from services.audio import mulaw_to_wav, audio_duration_seconds
from .stt_base import STTServiceBase, STTResult


class WhisperSTT(STTServiceBase):
    """
    Whisper transcription service

    Features:
    - Works with OpenAI or any OpenAI-compatible local server
    - Supports German and English (and 50+ other languages)
    - One request per buffered chunk
    """

    name = "Whisper"

    def __init__(
        self,
        api_key: str,
        language: str = "de",  # Whisper uses ISO 639-1 codes (de, en, not de-DE)
        model: str = "whisper-1",
        base_url: Optional[str] = None,
        timeout: float = 30.0
    ):
        """
        Initialize Whisper STT service

        Args:
            api_key: API key (any non-empty value for local servers)
            language: Language code or empty for auto-detect
            model: Whisper model name
            base_url: Optional OpenAI-compatible endpoint
            timeout: Seconds allowed for one transcription
        """
        super().__init__(api_key, language, timeout)

        self.model = model
        self.base_url = base_url or None
        self._client: Optional[AsyncOpenAI] = None

    def _get_client(self) -> AsyncOpenAI:
        """Get or create OpenAI client"""
        if self._client is None:
            kwargs = {"api_key": self.api_key, "timeout": self.timeout}
            if self.base_url:
                kwargs["base_url"] = self.base_url
            self._client = AsyncOpenAI(**kwargs)
        return self._client

    async def transcribe_audio(self, audio_data: bytes) -> STTResult:
        """
        Transcribe one chunk of μ-law audio

        Args:
            audio_data: Raw μ-law bytes

        Returns:
            STTResult with the transcript
        """
        client = self._get_client()
        duration = audio_duration_seconds(audio_data)

        logger.debug(f"Whisper: Transcribing {duration:.2f}s audio ({len(audio_data)} bytes)")
        start_time = time.time()

        kwargs = {
            "model": self.model,
            "file": ("audio.wav", io.BytesIO(mulaw_to_wav(audio_data)), "audio/wav"),
        }
        if self.language:
            kwargs["language"] = self.language

        transcription = await client.audio.transcriptions.create(**kwargs)

        elapsed = time.time() - start_time
        text = (transcription.text or "").strip()
        logger.info(f"Whisper: Transcription [{self.language or 'auto'}] ({elapsed:.2f}s): {text}")

        return STTResult(
            text=text,
            language=self.language or "auto",
            metadata={"duration": duration, "processing_time": elapsed, "model": self.model},
        )

    async def close(self) -> None:
        """Close the underlying HTTP client"""
        if self._client is not None:
            await self._client.close()
            self._client = None


# Factory function for easy instantiation
def create_whisper_stt(config: dict) -> WhisperSTT:
    """
    Factory function to create Whisper STT service from config

    Args:
        config: Configuration dictionary (from Settings)

    Returns:
        Configured WhisperSTT instance
    """
    base_url = config.get('whisper_base_url') or None
    # Local servers accept any key; hosted Whisper uses the OpenAI key
    api_key = config.get('whisper_api_key') or config.get('openai_api_key') or ("local" if base_url else "")

    return WhisperSTT(
        api_key=api_key,
        language=config.get('stt_language', 'de'),
        model=config.get('whisper_model', 'whisper-1'),
        base_url=base_url,
        timeout=config.get('stt_timeout_seconds', 30.0),
    )
