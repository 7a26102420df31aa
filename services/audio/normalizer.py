"""Audio normalizer - validates uploads and converts them to canonical PCM.

Canonical form is signed 16-bit little-endian PCM, mono, 16 kHz, which is what
the vault expects. Audio already in that form is passed through untouched;
audio that cannot be decoded is passed through as-is with a warning.
"""

from __future__ import annotations

import base64
import io
import logging
import os
import wave
from dataclasses import dataclass
from typing import List, Optional

import numpy as np
import soundfile as sf

from app.config import Config
from core.exceptions import (
    AudioProcessingError,
    InvalidAudioInputError,
    PayloadTooLargeError,
    UnsupportedAudioFormatError,
)
from core.metrics import audio_normalization_total
from services.audio.utils import float_to_pcm16, read_wav, resample_audio, to_mono

logger = logging.getLogger(__name__)

# soundfile subtype -> PCM bit depth
_SUBTYPE_BITS = {
    "PCM_S8": 8,
    "PCM_U8": 8,
    "PCM_16": 16,
    "PCM_24": 24,
    "PCM_32": 32,
}


@dataclass
class AudioInfo:
    filename: str
    size: int
    sample_rate: int = 0
    channels: int = 0
    bit_depth: int = 0
    duration_seconds: float = 0.0


@dataclass
class DecodedAudio:
    samples: np.ndarray  # (frames, channels) float32
    sample_rate: int
    channels: int
    bit_depth: int
    is_wav: bool


def file_extension(filename: Optional[str]) -> str:
    """Lowercase extension without the dot; '' for dotfiles or no extension."""
    if not filename:
        return ""
    base = os.path.basename(filename)
    dot = base.rfind(".")
    if dot <= 0 or dot == len(base) - 1:
        return ""
    return base[dot + 1:].lower()


def encode_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


class AudioNormalizer:
    """Validate, probe and convert uploaded audio."""

    def __init__(
        self,
        max_bytes: int = Config.AUDIO_MAX_BYTES,
        allowed_formats: Optional[List[str]] = None,
        target_sample_rate: int = Config.AUDIO_TARGET_SAMPLE_RATE,
        target_channels: int = Config.AUDIO_TARGET_CHANNELS,
        target_bit_depth: int = Config.AUDIO_TARGET_BIT_DEPTH,
    ) -> None:
        self.max_bytes = max_bytes
        self.allowed_formats = [
            fmt.lower().lstrip(".") for fmt in (allowed_formats or Config.AUDIO_ALLOWED_FORMATS)
        ]
        self.target_sample_rate = target_sample_rate
        self.target_channels = target_channels
        self.target_bit_depth = target_bit_depth

    def validate(self, audio: Optional[bytes], filename: Optional[str]) -> None:
        """
        Check size and extension limits.

        Raises:
            InvalidAudioInputError: Empty input
            PayloadTooLargeError: Input over max_bytes
            UnsupportedAudioFormatError: Missing filename or extension not allowed
        """
        if not audio:
            raise InvalidAudioInputError("Audio file must not be empty")
        if len(audio) > self.max_bytes:
            raise PayloadTooLargeError(
                f"Audio file too large: {len(audio)} bytes (max {self.max_bytes})"
            )
        if not filename or not filename.strip():
            raise UnsupportedAudioFormatError("Audio filename must not be empty")
        ext = file_extension(filename)
        if ext not in self.allowed_formats:
            raise UnsupportedAudioFormatError(
                f"Unsupported audio format: '{ext or filename}'. "
                f"Allowed: {', '.join(self.allowed_formats)}"
            )

    def normalize(self, audio: bytes, filename: str) -> bytes:
        """
        Validate and convert audio to canonical PCM.

        Returns:
            The original bytes when already canonical or undecodable,
            otherwise raw 16-bit mono PCM frames at the target rate

        Raises:
            AudioValidationError: On validation failure
            AudioProcessingError: If audio needing conversion has no frames
        """
        self.validate(audio, filename)

        decoded = self._decode(audio, filename)
        if decoded is None:
            audio_normalization_total.labels(path="unrecognized").inc()
            logger.warning(f"Unrecognized audio, passing through unchanged | file={filename} | size={len(audio)}")
            return audio

        if self._is_canonical(decoded):
            audio_normalization_total.labels(path="passthrough").inc()
            logger.debug(f"Audio already canonical | file={filename}")
            return audio

        # Nothing to convert
        if decoded.samples.shape[0] == 0:
            raise AudioProcessingError(f"Audio contains no samples: {filename}")

        try:
            mono = to_mono(decoded.samples)
            resampled = resample_audio(mono, decoded.sample_rate, self.target_sample_rate)
            pcm = float_to_pcm16(resampled)
        except (ValueError, MemoryError) as e:
            audio_normalization_total.labels(path="unrecognized").inc()
            logger.warning(f"Audio conversion failed, passing through unchanged | file={filename} | error={e}")
            return audio

        audio_normalization_total.labels(path="converted").inc()
        logger.info(
            f"Audio converted | file={filename} | from={decoded.sample_rate}Hz/{decoded.channels}ch/"
            f"{decoded.bit_depth}bit | to={self.target_sample_rate}Hz/1ch/16bit | "
            f"bytes={len(audio)}->{len(pcm)}"
        )
        return pcm

    def process(self, audio: bytes, filename: str) -> str:
        """Normalize and base64-encode for the vault payload."""
        return encode_base64(self.normalize(audio, filename))

    def probe(self, audio: bytes, filename: str) -> AudioInfo:
        """Describe audio; unreadable input yields zeroed fields."""
        info = AudioInfo(filename=filename, size=len(audio or b""))
        decoded = self._decode(audio, filename) if audio else None
        if decoded is not None:
            info.sample_rate = decoded.sample_rate
            info.channels = decoded.channels
            info.bit_depth = decoded.bit_depth
            if decoded.sample_rate:
                info.duration_seconds = decoded.samples.shape[0] / float(decoded.sample_rate)
        return info

    def _is_canonical(self, decoded: DecodedAudio) -> bool:
        return (
            decoded.is_wav
            and decoded.sample_rate == self.target_sample_rate
            and decoded.channels == self.target_channels
            and decoded.bit_depth == self.target_bit_depth
        )

    def _decode(self, audio: bytes, filename: str) -> Optional[DecodedAudio]:
        if audio[:4] == b"RIFF" and audio[8:12] == b"WAVE":
            try:
                samples, sample_rate, channels, bit_depth = read_wav(audio)
                return DecodedAudio(samples, sample_rate, channels, bit_depth, is_wav=True)
            except (wave.Error, EOFError, ValueError) as e:
                # Float or extensible WAV; libsndfile handles these
                logger.debug(f"wave module cannot read file, trying soundfile | file={filename} | error={e}")

        try:
            info = sf.info(io.BytesIO(audio))
            samples, sample_rate = sf.read(io.BytesIO(audio), dtype="float32", always_2d=True)
        except (RuntimeError, TypeError, ValueError) as e:
            logger.debug(f"soundfile cannot decode audio | file={filename} | error={e}")
            return None

        return DecodedAudio(
            samples=samples,
            sample_rate=int(sample_rate),
            channels=int(info.channels),
            bit_depth=_SUBTYPE_BITS.get(info.subtype, 0),
            is_wav=info.format == "WAV" and info.subtype == "PCM_16",
        )
