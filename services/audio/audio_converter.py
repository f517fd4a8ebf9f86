"""
=====================================================
Craftsman Phone Assistant - Audio Converter
=====================================================
Converts Twilio Media Streams audio (μ-law 8kHz mono) into a WAV container
that transcription backends accept. Everything happens in memory.
"""

import audioop
import io
import wave

TWILIO_SAMPLE_RATE = 8000


def mulaw_to_pcm(mulaw_data: bytes) -> bytes:
    """
    Convert μ-law encoded bytes to 16-bit little-endian PCM

    Args:
        mulaw_data: μ-law encoded bytes

    Returns:
        16-bit PCM bytes (two bytes per input byte)
    """
    return audioop.ulaw2lin(mulaw_data, 2)


def mulaw_to_wav(mulaw_data: bytes, sample_rate: int = TWILIO_SAMPLE_RATE) -> bytes:
    """
    Wrap μ-law audio into a mono 16-bit PCM WAV file

    Args:
        mulaw_data: μ-law encoded audio bytes
        sample_rate: Sample rate in Hz

    Returns:
        WAV format audio bytes
    """
    output = io.BytesIO()

    with wave.open(output, 'wb') as wav_file:
        wav_file.setnchannels(1)  # Mono
        wav_file.setsampwidth(2)  # 16-bit
        wav_file.setframerate(sample_rate)
        wav_file.writeframes(mulaw_to_pcm(mulaw_data))

    return output.getvalue()


def audio_duration_seconds(mulaw_data: bytes, sample_rate: int = TWILIO_SAMPLE_RATE) -> float:
    """Duration of μ-law audio (one byte per sample)"""
    return len(mulaw_data) / float(sample_rate)
