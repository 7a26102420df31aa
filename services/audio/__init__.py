"""Audio processing utilities.

This module contains audio-related utilities:
- normalizer: Upload validation and conversion to canonical PCM
- utils: PCM decoding, resampling and WAV helpers
"""

from services.audio.normalizer import AudioInfo, AudioNormalizer, encode_base64, file_extension
from services.audio.utils import (
    float_to_pcm16,
    read_wav,
    resample_audio,
    to_mono,
)

__all__ = [
    "AudioInfo",
    "AudioNormalizer",
    "encode_base64",
    "file_extension",
    "float_to_pcm16",
    "read_wav",
    "resample_audio",
    "to_mono",
]
