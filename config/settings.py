"""
=====================================================
Craftsman Phone Assistant - Configuration Module
=====================================================
Centralized configuration management using pydantic-settings
"""

from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(ValueError):
    """Raised at startup when a required provider credential is missing"""


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # =====================================================
    # APPLICATION
    # =====================================================
    app_name: str = "Craftsman Phone Assistant"
    app_version: str = "1.0.0"
    environment: str = Field(default="development", alias="ENVIRONMENT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_file: str = Field(default="logs/phone-assistant.log", alias="LOG_FILE")
    debug: bool = False

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    public_domain: str = Field(default="", alias="PUBLIC_DOMAIN")

    # =====================================================
    # TWILIO
    # =====================================================
    twilio_auth_token: str = Field(default="", alias="TWILIO_AUTH_TOKEN")
    twilio_validate_signature: bool = Field(default=False, alias="TWILIO_VALIDATE_SIGNATURE")
    twiml_voice: str = "alice"
    twiml_language: str = "de-DE"
    disclosure_text: str = Field(
        default="Dieser Anruf wird automatisch verarbeitet. Es werden keine Audiodaten gespeichert.",
        alias="DISCLOSURE_TEXT"
    )
    speak_prompt_text: str = "Bitte sprechen Sie nach dem Ton."
    apology_text: str = "Entschuldigung, es ist ein Fehler aufgetreten. Bitte versuchen Sie es später erneut."
    pause_seconds: int = 10  # Silence window kept open after the stream ends
    default_craftsman_id: str = Field(default="", alias="DEFAULT_CRAFTSMAN_ID")

    # =====================================================
    # STT - AssemblyAI (primary, EU region)
    # =====================================================
    assemblyai_api_key: str = Field(default="", alias="ASSEMBLYAI_API_KEY")
    assemblyai_base_url: str = Field(default="https://api.eu.assemblyai.com", alias="ASSEMBLYAI_BASE_URL")
    assemblyai_poll_interval: float = 0.5

    # =====================================================
    # STT - Whisper-compatible endpoint (fallback)
    # =====================================================
    whisper_base_url: str = Field(default="", alias="WHISPER_BASE_URL")  # e.g. a local server
    whisper_api_key: str = Field(default="", alias="WHISPER_API_KEY")
    whisper_model: str = Field(default="whisper-1", alias="WHISPER_MODEL")

    stt_language: str = Field(default="de", alias="STT_LANGUAGE")

    # =====================================================
    # OPENAI
    # =====================================================
    openai_api_key: str = Field(default="", alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4o-mini", alias="OPENAI_MODEL")
    openai_base_url: str = Field(default="", alias="OPENAI_BASE_URL")  # OpenAI-compatible endpoint
    openai_temperature: float = 0.4  # Consistency over creativity
    openai_max_tokens: int = 200  # Short spoken replies

    # =====================================================
    # ELEVENLABS TTS
    # =====================================================
    elevenlabs_api_key: str = Field(default="", alias="ELEVENLABS_API_KEY")
    elevenlabs_voice_id: str = Field(default="", alias="ELEVENLABS_VOICE_ID")
    elevenlabs_model: str = "eleven_multilingual_v2"
    elevenlabs_stability: float = 0.5  # 0-1, lower = more expressive
    elevenlabs_similarity_boost: float = 0.5  # 0-1, higher = closer to the original voice
    elevenlabs_output_format: str = "ulaw_8000"  # Plays directly on the Twilio leg

    # =====================================================
    # APPOINTMENT SERVICE
    # =====================================================
    appointment_service_url: str = Field(default="", alias="APPOINTMENT_SERVICE_URL")
    appointment_service_api_key: str = Field(default="", alias="APPOINTMENT_SERVICE_API_KEY")

    # =====================================================
    # CALL LOG SINK
    # =====================================================
    call_log_url: str = Field(default="", alias="CALL_LOG_URL")
    call_log_api_key: str = Field(default="", alias="CALL_LOG_API_KEY")

    # =====================================================
    # CALL HANDLING
    # =====================================================
    flush_frame_threshold: int = Field(default=150, alias="FLUSH_FRAME_THRESHOLD")  # ~3s at 50 frames/s
    assistant_language: str = Field(default="de", alias="ASSISTANT_LANGUAGE")
    prefill_caller_phone: bool = Field(default=False, alias="PREFILL_CALLER_PHONE")

    # Per-call timeouts for external providers (seconds)
    stt_timeout_seconds: float = 30.0
    llm_timeout_seconds: float = 15.0
    tts_timeout_seconds: float = 15.0
    appointment_timeout_seconds: float = 10.0
    call_log_timeout_seconds: float = 5.0

    # =====================================================
    # PROPERTIES
    # =====================================================
    @property
    def stream_path(self) -> str:
        """Path of the Media Stream websocket endpoint"""
        return "/api/phone/stream"

    def stream_url(self, host: Optional[str] = None) -> str:
        """Build the wss:// URL Twilio connects the media stream to"""
        domain = (self.public_domain or host or "localhost:8000").strip()
        for prefix in ("https://", "http://", "wss://", "ws://"):
            if domain.startswith(prefix):
                domain = domain[len(prefix):]
        return f"wss://{domain.rstrip('/')}{self.stream_path}"


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get settings instance (for dependency injection)"""
    return settings
