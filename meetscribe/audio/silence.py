"""Amplitude-based silence detection for 16-bit PCM audio."""

import numpy as np

DEFAULT_AMPLITUDE_THRESHOLD = 100
DEFAULT_SAMPLE_INTERVAL = 100


def peak_amplitude(pcm: bytes, sample_interval: int = 1) -> int:
    """Peak absolute amplitude of little-endian 16-bit PCM, looking at every Nth sample."""
    usable = len(pcm) - (len(pcm) % 2)
    if usable <= 0:
        return 0
    samples = np.frombuffer(pcm[:usable], dtype="<i2")[::max(1, sample_interval)]
    # int32 so that abs(-32768) does not overflow
    return int(np.abs(samples.astype(np.int32)).max())


def is_silent_audio(pcm: bytes,
                    threshold: int = DEFAULT_AMPLITUDE_THRESHOLD,
                    sample_interval: int = DEFAULT_SAMPLE_INTERVAL) -> bool:
    """Return True if the buffer carries no audio above `threshold`.

    Empty and single-byte buffers count as silent.
    """
    if not pcm or len(pcm) < 2:
        return True
    return peak_amplitude(pcm, sample_interval) <= threshold
