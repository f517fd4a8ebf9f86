"""
=====================================================
Craftsman Phone Assistant - STT (Speech-to-Text) Services
=====================================================
"""

from loguru import logger

from config.settings import ConfigurationError
from .stt_base import STTServiceBase, STTResult, STTStatus
from .assemblyai_service import AssemblyAISTT, create_assemblyai_stt
from .whisper_service import WhisperSTT, create_whisper_stt

__all__ = [
    'STTServiceBase',
    'STTResult',
    'STTStatus',
    'AssemblyAISTT',
    'create_assemblyai_stt',
    'WhisperSTT',
    'create_whisper_stt',
    'create_stt_service',
    'select_stt_provider',
]


def select_stt_provider(config: dict) -> str:
    """
    Pick the transcription backend from configured credentials

    AssemblyAI (EU) when its key is set, otherwise a Whisper-compatible
    endpoint (local server or OpenAI).

    Raises:
        ConfigurationError: If no backend has usable credentials
    """
    if config.get('assemblyai_api_key'):
        return 'assemblyai'
    if config.get('whisper_base_url') or config.get('whisper_api_key') or config.get('openai_api_key'):
        return 'whisper'
    raise ConfigurationError(
        "No speech-to-text backend configured: set ASSEMBLYAI_API_KEY, WHISPER_BASE_URL or OPENAI_API_KEY"
    )


def create_stt_service(config: dict) -> STTServiceBase:
    """
    Factory function to create the deployment's STT service

    Args:
        config: Configuration dictionary

    Returns:
        Configured STT service instance
    """
    providers = {
        'assemblyai': create_assemblyai_stt,
        'whisper': create_whisper_stt,
    }

    provider = select_stt_provider(config)
    logger.info(f"STT provider: {provider}")
    return providers[provider](config)
