"""WAV container helpers for raw PCM frames."""

import io
import wave

WAV_HEADER_SIZE = 44


def pcm_to_wav(pcm: bytes, sample_rate: int, channels: int) -> bytes:
    """Wrap 16-bit little-endian PCM in a canonical 44-byte-header WAV file."""
    buffer = io.BytesIO()
    with wave.open(buffer, 'wb') as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(2)  # 16-bit
        wf.setframerate(sample_rate)
        wf.writeframes(pcm)
    return buffer.getvalue()
