"""Audio framing and processing module.

The pyaudio-backed capture lives in `meetscribe.audio.capture` and is imported
on demand, so framing and silence detection work without an audio stack.
"""

from .assembler import FrameAssembler
from .silence import is_silent_audio, peak_amplitude
from .wav import pcm_to_wav
from .file_source import WavFileSource

__all__ = [
    'FrameAssembler',
    'is_silent_audio',
    'peak_amplitude',
    'pcm_to_wav',
    'WavFileSource',
]
