"""Audio frame buffers handed to the writer by decoders."""

from __future__ import annotations

import enum
from typing import Any
from typing import Protocol
from typing import Sequence

import numpy as np

from .formats import F32, F64, I16, I32, I64, U8, SampleFormat


class SampleEncoding(enum.Enum):
    """Numeric encoding and layout of a frame's payload."""

    U8 = "u8"
    S16 = "s16"
    S32 = "s32"
    S64 = "s64"
    FLT = "flt"
    DBL = "dbl"
    U8P = "u8p"
    S16P = "s16p"
    S32P = "s32p"
    S64P = "s64p"
    FLTP = "fltp"
    DBLP = "dblp"

    @property
    def is_planar(self) -> bool:
        return self.value.endswith("p")

    @property
    def sample_format(self) -> SampleFormat:
        return _ENCODING_FORMATS[self.value.rstrip("p")]

    @property
    def bytes_per_sample(self) -> int:
        return self.sample_format.width

    def packed(self) -> "SampleEncoding":
        return SampleEncoding(self.value.rstrip("p"))

    def planar(self) -> "SampleEncoding":
        return self if self.is_planar else SampleEncoding(self.value + "p")

    @classmethod
    def for_format(cls, sample_format: SampleFormat, planar: bool = False) -> "SampleEncoding":
        for name, fmt in _ENCODING_FORMATS.items():
            if fmt == sample_format:
                encoding = cls(name)
                return encoding.planar() if planar else encoding
        raise ValueError(f"No frame encoding for sample format {sample_format}.")


_ENCODING_FORMATS = {
    "u8": U8,
    "s16": I16,
    "s32": I32,
    "s64": I64,
    "flt": F32,
    "dbl": F64,
}


class FrameBuffer(Protocol):
    """What the writer needs from a block of decoded audio."""

    channels: int
    nb_samples: int
    encoding: SampleEncoding

    def sample_bytes(self, channel: int, index: int) -> bytes:
        """Raw bytes of one sample, ``encoding.bytes_per_sample`` long."""
        ...


class AudioFrame:
    """In-memory frame buffer with interleaved or planar payload.

    Planar frames carry one payload per channel; interleaved frames carry a
    single payload with the channel index varying fastest.
    """

    def __init__(
        self,
        planes: Sequence[bytes],
        channels: int,
        nb_samples: int,
        encoding: SampleEncoding,
    ) -> None:
        if channels < 1:
            raise ValueError("channels must be >= 1.")
        if nb_samples < 0:
            raise ValueError("nb_samples must be >= 0.")

        width = encoding.bytes_per_sample
        expected_planes = channels if encoding.is_planar else 1
        if len(planes) != expected_planes:
            raise ValueError(
                f"{encoding.value} frame with {channels} channels needs "
                f"{expected_planes} payload(s), got {len(planes)}."
            )
        plane_size = width * nb_samples * (1 if encoding.is_planar else channels)
        for index, plane in enumerate(planes):
            if len(plane) < plane_size:
                raise ValueError(
                    f"payload {index} holds {len(plane)} bytes, expected at least {plane_size}."
                )

        self.planes = [bytes(plane) for plane in planes]
        self.channels = channels
        self.nb_samples = nb_samples
        self.encoding = encoding

    def sample_bytes(self, channel: int, index: int) -> bytes:
        if not 0 <= channel < self.channels:
            raise IndexError(f"channel {channel} out of range.")
        if not 0 <= index < self.nb_samples:
            raise IndexError(f"sample index {index} out of range.")

        width = self.encoding.bytes_per_sample
        if self.encoding.is_planar:
            start = index * width
            return self.planes[channel][start : start + width]
        start = (index * self.channels + channel) * width
        return self.planes[0][start : start + width]

    @classmethod
    def from_array(cls, samples: Any, encoding: SampleEncoding) -> "AudioFrame":
        """Build a frame from a (samples, channels) array."""
        array = np.asarray(samples)
        if array.ndim == 1:
            array = array.reshape(-1, 1)
        if array.ndim != 2:
            raise ValueError("samples must be a 2D array with shape (samples, channels).")

        nb_samples, channels = array.shape
        typed = array.astype(encoding.sample_format.numpy_dtype)
        if encoding.is_planar:
            planes = [np.ascontiguousarray(typed[:, c]).tobytes() for c in range(channels)]
        else:
            planes = [np.ascontiguousarray(typed).tobytes()]
        return cls(planes, channels=channels, nb_samples=nb_samples, encoding=encoding)

    @classmethod
    def silence(cls, channels: int, nb_samples: int, encoding: SampleEncoding) -> "AudioFrame":
        """Build a silent frame; unsigned 8-bit silence sits at 0x80."""
        fill = 0x80 if encoding.sample_format == U8 else 0
        array = np.full((nb_samples, channels), fill, dtype=encoding.sample_format.numpy_dtype)
        return cls.from_array(array, encoding)
