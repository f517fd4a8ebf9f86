"""
=====================================================
Craftsman Phone Assistant - AssemblyAI STT Service
=====================================================
Batch Speech-to-Text on AssemblyAI's EU region.

Flow per chunk: upload WAV -> create transcript -> poll until done ->
delete the transcript so neither text nor audio stays with the provider.
"""

import asyncio
from typing import Optional
from loguru import logger
import httpx

from services.audio import mulaw_to_wav, audio_duration_seconds
from .stt_base import STTServiceBase, STTResult


class AssemblyAISTT(STTServiceBase):
    """
    AssemblyAI transcription over REST

    Features:
    - EU data residency (api.eu.assemblyai.com)
    - German and English models
    - Uploaded audio is deleted with the transcript
    """

    name = "AssemblyAI"

    def __init__(
        self,
        api_key: str,
        language: str = "de",
        base_url: str = "https://api.eu.assemblyai.com",
        poll_interval: float = 0.5,
        timeout: float = 30.0
    ):
        """
        Initialize AssemblyAI STT service

        Args:
            api_key: AssemblyAI API key
            language: Language code (de, en, ...)
            base_url: Regional API endpoint
            poll_interval: Seconds between status polls
            timeout: Seconds allowed for one transcription
        """
        super().__init__(api_key, language, timeout)

        self.base_url = base_url.rstrip("/")
        self.poll_interval = poll_interval
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client (reused across calls)"""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"authorization": self.api_key},
                timeout=self.timeout,
            )
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

        logger.debug(f"AssemblyAI: Uploading {duration:.2f}s audio ({len(audio_data)} bytes)")
        upload = await client.post(
            "/v2/upload",
            content=mulaw_to_wav(audio_data),
            headers={"content-type": "application/octet-stream"},
        )
        upload.raise_for_status()
        upload_url = upload.json()["upload_url"]

        created = await client.post(
            "/v2/transcript",
            json={"audio_url": upload_url, "language_code": self.language},
        )
        created.raise_for_status()
        transcript_id = created.json()["id"]

        try:
            data = await self._wait_for_completion(client, transcript_id)
        finally:
            await self._delete_transcript(client, transcript_id)

        text = data.get("text") or ""
        logger.info(f"AssemblyAI: Transcription [{self.language}]: {text}")

        return STTResult(
            text=text,
            language=data.get("language_code") or self.language,
            confidence=data.get("confidence") or 0.0,
            metadata={"duration": duration, "transcript_id": transcript_id},
        )

    async def _wait_for_completion(self, client: httpx.AsyncClient, transcript_id: str) -> dict:
        """Poll until the transcript is completed or failed"""
        while True:
            response = await client.get(f"/v2/transcript/{transcript_id}")
            response.raise_for_status()
            data = response.json()

            status = data.get("status")
            if status == "completed":
                return data
            if status == "error":
                raise RuntimeError(f"AssemblyAI transcript {transcript_id} failed: {data.get('error')}")

            await asyncio.sleep(self.poll_interval)

    async def _delete_transcript(self, client: httpx.AsyncClient, transcript_id: str) -> None:
        """Remove transcript and uploaded audio from AssemblyAI"""
        try:
            response = await client.delete(f"/v2/transcript/{transcript_id}")
            response.raise_for_status()
        except Exception as e:
            logger.warning(f"AssemblyAI: Failed to delete transcript {transcript_id}: {e!r}")

    async def close(self) -> None:
        """Close the HTTP client"""
        if self._client is not None:
            await self._client.aclose()
            self._client = None


# Factory function
def create_assemblyai_stt(config: dict) -> AssemblyAISTT:
    """
    Factory function to create AssemblyAI STT service from config

    Args:
        config: Configuration dictionary (from Settings)

    Returns:
        Configured AssemblyAISTT instance
    """
    return AssemblyAISTT(
        api_key=config.get('assemblyai_api_key'),
        language=config.get('stt_language', 'de'),
        base_url=config.get('assemblyai_base_url', 'https://api.eu.assemblyai.com'),
        poll_interval=config.get('assemblyai_poll_interval', 0.5),
        timeout=config.get('stt_timeout_seconds', 30.0),
    )
