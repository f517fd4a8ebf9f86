"""
Audio conversion services for the Craftsman Phone Assistant
"""

from .audio_converter import mulaw_to_pcm, mulaw_to_wav, audio_duration_seconds

__all__ = ["mulaw_to_pcm", "mulaw_to_wav", "audio_duration_seconds"]
