"""Audio processing utilities - PCM decoding and audio transformations."""

from __future__ import annotations

import io
import wave
from typing import Tuple

import numpy as np


# int PCM sample width (bytes) -> full-scale value
_FULL_SCALE = {
    1: 128.0,
    2: 32768.0,
    3: 8388608.0,
    4: 2147483648.0,
}


def pcm_bytes_to_float(frames: bytes, sample_width: int, channels: int) -> np.ndarray:
    """
    Convert interleaved little-endian PCM frames to float32 samples.

    Args:
        frames: Raw PCM frame bytes
        sample_width: Bytes per sample (1, 2, 3 or 4)
        channels: Number of interleaved channels

    Returns:
        Array of shape (num_frames, channels) in [-1, 1]
    """
    if sample_width not in _FULL_SCALE:
        raise ValueError(f"Unsupported PCM sample width: {sample_width}")

    if sample_width == 1:
        # 8-bit WAV is unsigned with a 128 offset
        raw = np.frombuffer(frames, dtype=np.uint8).astype(np.float32) - 128.0
    elif sample_width == 2:
        raw = np.frombuffer(frames, dtype="<i2").astype(np.float32)
    elif sample_width == 3:
        usable = len(frames) - (len(frames) % 3)
        triplets = np.frombuffer(frames[:usable], dtype=np.uint8).reshape(-1, 3).astype(np.int32)
        values = triplets[:, 0] | (triplets[:, 1] << 8) | (triplets[:, 2] << 16)
        # Sign-extend 24-bit values
        values = np.where(values >= 0x800000, values - 0x1000000, values)
        raw = values.astype(np.float32)
    else:
        raw = np.frombuffer(frames, dtype="<i4").astype(np.float32)

    usable_samples = raw.size - (raw.size % max(1, channels))
    raw = raw[:usable_samples]
    return (raw / _FULL_SCALE[sample_width]).reshape(-1, max(1, channels))


def read_wav(audio_bytes: bytes) -> Tuple[np.ndarray, int, int, int]:
    """
    Decode WAV bytes with the standard library reader.

    Args:
        audio_bytes: RIFF/WAVE file bytes

    Returns:
        Tuple of (samples[frames, channels], sample_rate, channels, bit_depth)

    Raises:
        wave.Error: If the container is not PCM WAV
        EOFError: If the header is truncated
    """
    with wave.open(io.BytesIO(audio_bytes), "rb") as wf:
        sample_rate = wf.getframerate()
        channels = wf.getnchannels()
        sample_width = wf.getsampwidth()
        frames = wf.readframes(wf.getnframes())

    samples = pcm_bytes_to_float(frames, sample_width, channels)
    return samples, sample_rate, channels, sample_width * 8


def to_mono(samples: np.ndarray) -> np.ndarray:
    """Average all channels into one."""
    if samples.ndim == 1:
        return samples.astype(np.float32)
    if samples.shape[1] == 1:
        return samples[:, 0].astype(np.float32)
    return samples.mean(axis=1).astype(np.float32)


def resample_audio(
    signal: np.ndarray,
    src_sr: int,
    target_sr: int,
) -> np.ndarray:
    """
    Resample audio signal to target sample rate.

    Args:
        signal: Input audio signal (mono)
        src_sr: Source sample rate
        target_sr: Target sample rate

    Returns:
        Resampled signal
    """
    if src_sr == target_sr or signal.size == 0:
        return signal

    target_len = int(round(len(signal) * target_sr / float(src_sr)))
    if target_len <= 0:
        return np.zeros(0, dtype=np.float32)
    src_positions = np.arange(len(signal), dtype=np.float64)
    target_positions = np.arange(target_len, dtype=np.float64) * (src_sr / float(target_sr))
    return np.interp(target_positions, src_positions, signal).astype(np.float32)


def float_to_pcm16(signal: np.ndarray) -> bytes:
    """Quantize float samples in [-1, 1] to signed 16-bit little-endian PCM."""
    scaled = np.round(signal.astype(np.float64) * 32767.0)
    return np.clip(scaled, -32768, 32767).astype("<i2").tobytes()
