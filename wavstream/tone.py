"""Test tone synthesis for the demo renderer."""

from __future__ import annotations

import math

import numpy as np

from .formats import SampleFormat, SampleKind


def sample_count(duration_s: float, sample_rate: int) -> int:
    """Convert duration to integer sample count using round()."""
    count = int(round(duration_s * sample_rate))
    if count <= 0:
        raise ValueError("Tone duration resolves to zero samples.")
    return count


def scale_to_format(unit: np.ndarray, sample_format: SampleFormat) -> np.ndarray:
    """Map a [-1, 1] signal onto the full range of ``sample_format``.

    Unsigned samples are offset so that silence sits at half scale.
    """
    if sample_format.kind is SampleKind.FLOAT:
        return unit.astype(sample_format.numpy_dtype)

    max_int = np.iinfo(sample_format.numpy_dtype).max
    if sample_format.kind is SampleKind.UNSIGNED:
        scaled = (max_int // 2) * (unit + 1.0)
    else:
        # float64 cannot hold int64 max exactly; stay inside the range.
        scaled = np.clip(unit * float(max_int), -float(max_int), float(np.nextafter(max_int, 0)))
    return scaled.astype(sample_format.numpy_dtype)


def generate_tone(
    sample_format: SampleFormat,
    channels: int,
    sample_rate: int,
    duration_s: float = 1.0,
    frequency_hz: float = 440.0,
) -> np.ndarray:
    """Generate a sine tone as a (samples, channels) matrix in the format's dtype."""
    count = sample_count(duration_s, sample_rate)
    t = np.arange(count, dtype=np.float64) / float(sample_rate)
    unit = np.sin(2.0 * math.pi * frequency_hz * t)
    mono = scale_to_format(unit, sample_format)
    return to_channel_matrix(mono, channels)


def to_channel_matrix(mono: np.ndarray, channels: int) -> np.ndarray:
    """Repeat a mono signal across ``channels`` columns."""
    if channels < 1:
        raise ValueError("channels must be >= 1.")
    return np.repeat(mono.reshape(-1, 1), channels, axis=1)
