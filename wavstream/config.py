"""Configuration loading and validation for wavstream."""

from __future__ import annotations

import json
import math
import numbers
from pathlib import Path
from typing import Any
from typing import Optional
from typing import Union

from .formats import SAMPLE_FORMATS, SampleTypeError, resolve_sample_format


SUPPORTED_LAYOUTS = {"sample", "interleaved", "planar", "frame", "frame_planar"}
DEFAULT_FREQUENCY_HZ = 440.0


class ConfigError(ValueError):
    """Raised when configuration input is invalid."""


def load_json_config(config_path: Union[str, Path]) -> dict[str, Any]:
    """Load a JSON configuration file."""
    path = Path(config_path)
    with path.open("r", encoding="utf-8") as handle:
        data = json.load(handle)
    if not isinstance(data, dict):
        raise ConfigError("Top-level JSON config must be an object.")
    return data


def normalize_config(
    raw_config: dict[str, Any], overrides: Optional[dict[str, Any]] = None
) -> tuple[dict[str, Any], list[str]]:
    """Validate and normalize raw tone config into a strict internal dict."""
    cfg = dict(raw_config)
    if overrides:
        for key, value in overrides.items():
            if value is not None:
                cfg[key] = value

    warnings: list[str] = []

    sample_rate = _require_int(cfg, "sample_rate")
    validate_sample_rate(sample_rate)

    channels = _require_int_value(cfg.get("channels", 1), "channels")
    validate_channels(channels)

    sample_format = normalize_sample_format(cfg.get("sample_format", "i16"))

    duration_s = _require_float_value(cfg.get("duration_s", 1.0), "duration_s")
    if duration_s <= 0:
        raise ConfigError("duration_s must be > 0.")
    if int(round(duration_s * sample_rate)) <= 0:
        raise ConfigError(
            f"duration_s resolves to zero samples at sample_rate {sample_rate}."
        )

    frequency_hz = _require_float_value(
        cfg.get("frequency_hz", DEFAULT_FREQUENCY_HZ), "frequency_hz"
    )
    if frequency_hz < 0:
        raise ConfigError("frequency_hz must be >= 0.")
    if frequency_hz > sample_rate / 2.0:
        warnings.append(
            f"frequency_hz {frequency_hz} is above the Nyquist frequency "
            f"{sample_rate / 2.0} Hz and will alias."
        )

    layout = cfg.get("layout", "interleaved")
    if layout not in SUPPORTED_LAYOUTS:
        raise ConfigError(f"layout must be one of {sorted(SUPPORTED_LAYOUTS)}.")

    normalized = {
        "sample_rate": sample_rate,
        "channels": channels,
        "sample_format": sample_format.name,
        "duration_s": duration_s,
        "frequency_hz": frequency_hz,
        "layout": layout,
    }
    return normalized, warnings


def normalize_sample_format(value: Any):
    if not isinstance(value, str):
        raise ConfigError(f"sample_format must be one of {sorted(SAMPLE_FORMATS)}.")
    try:
        return resolve_sample_format(value)
    except SampleTypeError:
        raise ConfigError(
            f"sample_format must be one of {sorted(SAMPLE_FORMATS)}."
        ) from None


def validate_channels(channels: int) -> int:
    channels = _require_int_value(channels, "channels")
    if channels < 1:
        raise ConfigError("channels must be >= 1.")
    if channels > 0xFFFF:
        raise ConfigError("channels must fit in 16 bits.")
    return channels


def validate_sample_rate(sample_rate: int) -> int:
    sample_rate = _require_int_value(sample_rate, "sample_rate")
    if sample_rate <= 0:
        raise ConfigError("sample_rate must be greater than 0.")
    if sample_rate > 0xFFFFFFFF:
        raise ConfigError("sample_rate must fit in 32 bits.")
    return sample_rate


def _require_int(cfg: dict[str, Any], key: str) -> int:
    if key not in cfg:
        raise ConfigError(f"{key} is required.")
    return _require_int_value(cfg[key], key)


def _require_int_value(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise ConfigError(f"{name} must be an integer.")
    return int(value)


def _require_float_value(value: Any, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{name} must be numeric.")
    float_value = float(value)
    if not math.isfinite(float_value):
        raise ConfigError(f"{name} must be finite.")
    return float_value
