"""Sample representations and little-endian serialization."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any

import numpy as np


WAVE_FORMAT_PCM = 1
WAVE_FORMAT_IEEE_FLOAT = 3


class SampleTypeError(TypeError):
    """Raised when a sample representation or value is not numeric."""


class SampleKind(enum.Enum):
    UNSIGNED = "unsigned"
    SIGNED = "signed"
    FLOAT = "float"


@dataclass(frozen=True)
class SampleFormat:
    """One of the fixed-width numeric types a WAV file can carry."""

    name: str
    kind: SampleKind
    width: int
    dtype: str

    @property
    def is_float(self) -> bool:
        return self.kind is SampleKind.FLOAT

    @property
    def format_tag(self) -> int:
        return WAVE_FORMAT_IEEE_FLOAT if self.is_float else WAVE_FORMAT_PCM

    @property
    def bits_per_sample(self) -> int:
        return 8 * self.width

    @property
    def has_fact_chunk(self) -> bool:
        return self.is_float

    @property
    def numpy_dtype(self) -> np.dtype:
        return np.dtype(self.dtype)

    def __str__(self) -> str:
        return self.name


U8 = SampleFormat("u8", SampleKind.UNSIGNED, 1, "<u1")
I16 = SampleFormat("i16", SampleKind.SIGNED, 2, "<i2")
I32 = SampleFormat("i32", SampleKind.SIGNED, 4, "<i4")
I64 = SampleFormat("i64", SampleKind.SIGNED, 8, "<i8")
F32 = SampleFormat("f32", SampleKind.FLOAT, 4, "<f4")
F64 = SampleFormat("f64", SampleKind.FLOAT, 8, "<f8")

SAMPLE_FORMATS = {fmt.name: fmt for fmt in (U8, I16, I32, I64, F32, F64)}

_ALIASES = {
    "uint8": "u8",
    "int16": "i16",
    "int32": "i32",
    "int64": "i64",
    "float32": "f32",
    "float64": "f64",
    "s16": "i16",
    "s32": "i32",
    "s64": "i64",
    "flt": "f32",
    "dbl": "f64",
}


def resolve_sample_format(value: Any) -> SampleFormat:
    """Map a format name, alias or numpy dtype onto a SampleFormat."""
    if isinstance(value, SampleFormat):
        return value
    if value is None:
        raise SampleTypeError("A sample representation is required.")

    if isinstance(value, str):
        key = value.strip().lower()
        key = _ALIASES.get(key, key)
        if key in SAMPLE_FORMATS:
            return SAMPLE_FORMATS[key]

    try:
        dtype = np.dtype(value)
    except TypeError:
        raise SampleTypeError(f"Unsupported sample representation: {value!r}.") from None

    for fmt in SAMPLE_FORMATS.values():
        if dtype.kind == fmt.numpy_dtype.kind and dtype.itemsize == fmt.width:
            return fmt
    raise SampleTypeError(
        f"Unsupported sample representation: {value!r}; "
        f"expected one of {sorted(SAMPLE_FORMATS)}."
    )


def _as_numeric_array(values: Any) -> np.ndarray:
    array = np.asarray(values)
    if array.dtype.kind not in "biuf":
        raise SampleTypeError(f"Samples must be numeric, got dtype {array.dtype}.")
    return array


def pack_le(value: Any, size: int, dtype: Any = "<u8") -> bytes:
    """Serialize one numeric value into exactly ``size`` little-endian bytes.

    The value is converted (not reinterpreted) to ``dtype`` first. The result
    is truncated to the least significant ``size`` bytes or zero-padded.
    """
    if size <= 0:
        raise ValueError("size must be greater than 0.")
    raw = _as_numeric_array(value).astype(np.dtype(dtype).newbyteorder("<")).tobytes()
    return raw[:size].ljust(size, b"\x00")


def encode_samples(values: Any, sample_format: SampleFormat) -> bytes:
    """Encode a flat run of samples in the order given."""
    array = _as_numeric_array(values).reshape(-1)
    return array.astype(sample_format.numpy_dtype).tobytes()
