"""
=====================================================
Craftsman Phone Assistant - ElevenLabs TTS Service
=====================================================
Text-to-Speech using the ElevenLabs REST API.

Audio is requested as ulaw_8000, which is exactly what Twilio Media Streams
play back, so no conversion is needed before sending.
"""

from typing import Optional
from loguru import logger
import httpx

from config.settings import ConfigurationError
from .tts_base import TTSServiceBase, TTSRequest, TTSResponse, TTSStatus


class ElevenLabsTTS(TTSServiceBase):
    """
    ElevenLabs TTS Service

    Features:
    - Multilingual model (German and English)
    - Fixed stability / similarity for natural, moderately expressive delivery
    - μ-law 8kHz output for direct Twilio playback
    """

    name = "ElevenLabs"
    API_BASE_URL = "https://api.elevenlabs.io"

    def __init__(
        self,
        api_key: str,
        default_voice_id: str,
        model: str = "eleven_multilingual_v2",
        stability: float = 0.5,
        similarity_boost: float = 0.5,
        output_format: str = "ulaw_8000",
        timeout: float = 15.0
    ):
        """
        Initialize ElevenLabs TTS service

        Args:
            api_key: ElevenLabs API key
            default_voice_id: Voice to speak with
            model: Model to use (eleven_multilingual_v2 recommended)
            stability: Voice stability (0-1, lower = more expressive)
            similarity_boost: Voice similarity (0-1, higher = more similar to original)
            output_format: Audio output format (ulaw_8000 for direct Twilio compatibility)
            timeout: Seconds allowed for one synthesis
        """
        super().__init__(api_key, default_voice_id, timeout)

        self.model = model
        self.stability = stability
        self.similarity_boost = similarity_boost
        self.output_format = output_format

        # Reuse httpx client across calls
        self._http_client: Optional[httpx.AsyncClient] = None

    def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create async HTTP client"""
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(base_url=self.API_BASE_URL, timeout=self.timeout)
        return self._http_client

    async def synthesize(self, request: TTSRequest) -> TTSResponse:
        """
        Synthesize speech from text

        Args:
            request: TTS request

        Returns:
            TTS response with audio data
        """
        self._status = TTSStatus.SPEAKING
        voice_id = request.voice_id or self.default_voice_id

        headers = {
            "xi-api-key": self.api_key,
            "Content-Type": "application/json",
        }
        params = {"output_format": self.output_format}
        body = {
            "text": request.text,
            "model_id": self.model,
            "voice_settings": {
                "stability": self.stability,
                "similarity_boost": self.similarity_boost,
            }
        }

        logger.info(f"ElevenLabs: Synthesizing '{request.text[:50]}...' voice={voice_id} model={self.model}")

        try:
            client = self._get_http_client()
            response = await client.post(
                f"/v1/text-to-speech/{voice_id}",
                headers=headers,
                params=params,
                json=body,
            )
            response.raise_for_status()
            audio_data = response.content

        except httpx.HTTPStatusError as e:
            self._status = TTSStatus.ERROR
            logger.error(f"ElevenLabs: HTTP error {e.response.status_code}: {e.response.text[:200]}")
            raise
        except Exception as e:
            self._status = TTSStatus.ERROR
            logger.error(f"ElevenLabs: Synthesis error: {e!r}")
            raise

        self._status = TTSStatus.IDLE

        is_mulaw = "ulaw" in self.output_format or "mulaw" in self.output_format
        if is_mulaw:
            # μ-law 8kHz = 8000 bytes/sec (1 byte per sample)
            duration_ms = int((len(audio_data) / 8000) * 1000)
            sample_rate, fmt = 8000, "mulaw"
        else:
            # MP3 at 128 kbps = 16 KB/sec
            duration_ms = int((len(audio_data) / 16000) * 1000)
            sample_rate, fmt = 44100, "mp3"

        logger.info(f"ElevenLabs: Received {len(audio_data)} bytes ({duration_ms}ms {fmt})")

        return TTSResponse(
            audio_data=audio_data,
            sample_rate=sample_rate,
            format=fmt,
            duration_ms=duration_ms,
            text=request.text,
            metadata={"voice_id": voice_id}
        )

    async def close(self) -> None:
        """Close the HTTP client"""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None


# Factory function
def create_elevenlabs_tts(config: dict) -> ElevenLabsTTS:
    """
    Factory function to create ElevenLabs TTS service from config

    Args:
        config: Configuration dictionary (from Settings)

    Returns:
        Configured ElevenLabsTTS instance

    Raises:
        ConfigurationError: If API key or voice id is missing
    """
    api_key = config.get('elevenlabs_api_key')
    voice_id = config.get('elevenlabs_voice_id')
    if not api_key or not voice_id:
        raise ConfigurationError("ELEVENLABS_API_KEY and ELEVENLABS_VOICE_ID are required for speech output")

    return ElevenLabsTTS(
        api_key=api_key,
        default_voice_id=voice_id,
        model=config.get('elevenlabs_model', 'eleven_multilingual_v2'),
        stability=config.get('elevenlabs_stability', 0.5),
        similarity_boost=config.get('elevenlabs_similarity_boost', 0.5),
        output_format=config.get('elevenlabs_output_format', 'ulaw_8000'),
        timeout=config.get('tts_timeout_seconds', 15.0),
    )
