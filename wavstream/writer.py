"""Streaming RIFF/WAVE writer with header backpatching."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any
from typing import Optional
from typing import Sequence
from typing import Union

import numpy as np

from .config import validate_channels, validate_sample_rate
from .formats import SampleFormat, encode_samples, pack_le, resolve_sample_format
from .frames import FrameBuffer

logger = logging.getLogger(__name__)

_PLACEHOLDER = b"\x00\x00\x00\x00"
_RIFF_SIZE_OFFSET = 4


class ShapeMismatchError(ValueError):
    """Raised when per-channel sequences do not line up."""


class FrameMismatchError(ValueError):
    """Raised when a frame buffer does not match the writer configuration."""


class WriterClosedError(ValueError):
    """Raised when writing to a writer that has already been finalized."""


class WavWriter:
    """Write samples to a WAV file as they arrive.

    The header is written up front with placeholder sizes. Closing the writer
    (explicitly or by leaving the ``with`` block) seeks back and fills in the
    RIFF size, the ``data`` chunk size and, for float formats, the ``fact``
    sample count. A writer that is never closed leaves an invalid file.

    Example:
        with WavWriter("tone.wav", channels=2, sample_rate=8000, sample_format="i16") as wav:
            wav.write_channels([left, right])
    """

    def __init__(
        self,
        path: Union[str, Path],
        channels: int,
        sample_rate: int,
        sample_format: Any = "i16",
    ) -> None:
        channels = validate_channels(channels)
        sample_rate = validate_sample_rate(sample_rate)
        self._format = resolve_sample_format(sample_format)
        self._path = Path(path)
        self._channels = channels
        self._sample_rate = sample_rate
        self._fact_offset: Optional[int] = None
        self._data_offset = 0
        self._final_data_size: Optional[int] = None
        self._closed = False

        self._handle = self._path.open("wb")
        try:
            self._write_header()
        except BaseException:
            self._closed = True
            self._handle.close()
            raise
        logger.debug(
            "Opened %s for writing (%d ch, %d Hz, %s)",
            self._path,
            channels,
            sample_rate,
            self._format,
        )

    @property
    def path(self) -> Path:
        return self._path

    @property
    def channels(self) -> int:
        return self._channels

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def sample_format(self) -> SampleFormat:
        return self._format

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def data_size(self) -> int:
        """Bytes of sample data written so far."""
        if self._final_data_size is not None:
            return self._final_data_size
        if self._closed:
            return 0
        return self._handle.tell() - self._data_offset - len(_PLACEHOLDER)

    @property
    def frames_written(self) -> int:
        """Complete multi-channel sample instants written so far."""
        return self.data_size // (self._format.width * self._channels)

    def __enter__(self) -> "WavWriter":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return (
            f"<WavWriter {str(self._path)!r} {self._channels}ch "
            f"{self._sample_rate}Hz {self._format} {state}>"
        )

    def _write_header(self) -> None:
        fmt = self._format
        handle = self._handle

        handle.write(b"RIFF")
        handle.write(_PLACEHOLDER)
        handle.write(b"WAVE")
        handle.write(b"fmt ")
        self._put(18 if fmt.is_float else 16, 4)
        self._put(fmt.format_tag, 2)
        self._put(self._channels, 2)
        self._put(self._sample_rate, 4)
        self._put(self._sample_rate * fmt.width * self._channels, 4)
        self._put(fmt.width * self._channels, 2)
        self._put(fmt.bits_per_sample, 2)

        if fmt.has_fact_chunk:
            self._put(0, 2)
            handle.write(b"fact")
            self._put(4, 4)
            self._fact_offset = handle.tell()
            handle.write(_PLACEHOLDER)

        handle.write(b"data")
        self._data_offset = handle.tell()
        handle.write(_PLACEHOLDER)

    def _put(self, value: int, size: int) -> None:
        self._handle.write(pack_le(value, size))

    def _ensure_open(self) -> None:
        if self._closed:
            raise WriterClosedError(f"WavWriter for {self._path} is closed.")

    def write_sample(self, value: Any) -> None:
        """Append one sample (one channel at one instant)."""
        self._ensure_open()
        self._handle.write(pack_le(value, self._format.width, self._format.dtype))

    def write_interleaved(self, samples: Any) -> None:
        """Append samples already ordered channel-fastest."""
        self._ensure_open()
        self._handle.write(encode_samples(samples, self._format))

    def write_channels(self, channels: Sequence[Any]) -> None:
        """Append one sequence per channel, interleaving them on output.

        All sequences must have the same length; nothing is written otherwise.
        """
        self._ensure_open()
        runs = [np.asarray(run).reshape(-1) for run in channels]
        if len(runs) != self._channels:
            raise ShapeMismatchError(
                f"expected {self._channels} channel sequences, got {len(runs)}."
            )
        lengths = sorted({run.size for run in runs})
        if len(lengths) > 1:
            raise ShapeMismatchError(
                f"channel sequences must have equal length, got lengths {lengths}."
            )
        self._handle.write(encode_samples(np.stack(runs, axis=1), self._format))

    def write_frame(self, frame: FrameBuffer) -> None:
        """Append a decoded frame buffer, converting its samples to this format."""
        self._ensure_open()
        if frame.channels != self._channels:
            raise FrameMismatchError(
                f"frame has {frame.channels} channels, writer expects {self._channels}."
            )
        encoding = frame.encoding
        if encoding.bytes_per_sample != self._format.width:
            raise FrameMismatchError(
                f"frame encoding {encoding.value} is {encoding.bytes_per_sample} bytes "
                f"per sample, writer expects {self._format.width}."
            )

        raw = b"".join(
            frame.sample_bytes(channel, index)
            for index in range(frame.nb_samples)
            for channel in range(frame.channels)
        )
        values = np.frombuffer(raw, dtype=encoding.sample_format.numpy_dtype)
        self._handle.write(encode_samples(values, self._format))

    def write(self, data: Any) -> None:
        """Append a frame buffer, a scalar, a flat sequence or per-channel sequences.

        Nested sequences (and 2D arrays) are read as one row per channel.
        """
        if hasattr(data, "sample_bytes"):
            self.write_frame(data)
            return
        if isinstance(data, (list, tuple)) and data and all(
            isinstance(run, (list, tuple, np.ndarray)) for run in data
        ):
            self.write_channels(data)
            return

        array = np.asarray(data)
        if array.ndim == 0:
            self.write_sample(array)
        elif array.ndim == 1:
            self.write_interleaved(array)
        elif array.ndim == 2:
            self.write_channels(array)
        else:
            raise ShapeMismatchError(f"cannot write {array.ndim}D sample data.")

    def close(self) -> None:
        """Patch the header sizes and release the file. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        try:
            self._finalize()
        finally:
            self._handle.close()

    def _finalize(self) -> None:
        handle = self._handle
        length = handle.tell()
        data_size = length - self._data_offset - len(_PLACEHOLDER)
        # Patched data size is payload + 8; the fact count derives from it.
        data_chunk_size = length - self._data_offset + 4

        handle.seek(self._data_offset)
        self._put(data_chunk_size, 4)
        handle.seek(_RIFF_SIZE_OFFSET)
        self._put(length - 8, 4)
        if self._fact_offset is not None:
            handle.seek(self._fact_offset)
            self._put(data_chunk_size // self._format.width, 4)

        self._final_data_size = data_size
        logger.debug(
            "Closed %s (%d bytes, %d data bytes, %d frames)",
            self._path,
            length,
            data_size,
            self.frames_written,
        )


def write_wav(
    output_path: Union[str, Path],
    signal: Any,
    sample_rate: int,
    sample_format: Any = None,
) -> None:
    """Write a complete WAV file from a (samples, channels) matrix."""
    array = np.asarray(signal)
    if array.ndim == 1:
        array = array.reshape(-1, 1)
    if array.ndim != 2:
        raise ValueError("signal must be a 2D array with shape (samples, channels).")
    fmt = resolve_sample_format(array.dtype if sample_format is None else sample_format)

    with WavWriter(output_path, int(array.shape[1]), sample_rate, fmt) as wav:
        wav.write_interleaved(array)
