"""Public package exports for wavstream."""

from .formats import SampleFormat, SampleKind, SampleTypeError, resolve_sample_format
from .frames import AudioFrame, FrameBuffer, SampleEncoding
from .writer import (
    FrameMismatchError,
    ShapeMismatchError,
    WavWriter,
    WriterClosedError,
    write_wav,
)

__all__ = [
    "AudioFrame",
    "FrameBuffer",
    "FrameMismatchError",
    "SampleEncoding",
    "SampleFormat",
    "SampleKind",
    "SampleTypeError",
    "ShapeMismatchError",
    "WavWriter",
    "WriterClosedError",
    "resolve_sample_format",
    "write_wav",
]
