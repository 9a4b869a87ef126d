"""Top-level render API and CLI for wavstream."""

from __future__ import annotations

import argparse
import sys
import warnings
from pathlib import Path
from typing import Any
from typing import Optional

import numpy as np

from .config import ConfigError, load_json_config, normalize_config
from .formats import SAMPLE_FORMATS, SampleFormat, SampleTypeError, resolve_sample_format
from .frames import AudioFrame, SampleEncoding
from .tone import generate_tone
from .writer import WavWriter

FRAMES_PER_SECOND = 50

# File name prefix per write shape: f32.wav, vf32.wav, vvf32.wav, ff32.wav,
# ff32p.wav.
DEMO_LAYOUTS = {
    "sample": "",
    "interleaved": "v",
    "planar": "vv",
    "frame": "f",
    "frame_planar": "f",
}


def write_tone(
    output_path: str,
    tone: np.ndarray,
    sample_rate: int,
    sample_format: SampleFormat,
    layout: str,
) -> None:
    """Stream a (samples, channels) tone to disk using one write shape."""
    channels = int(tone.shape[1])
    with WavWriter(output_path, channels, sample_rate, sample_format) as wav:
        if layout == "sample":
            for value in tone.reshape(-1):
                wav.write_sample(value)
        elif layout == "interleaved":
            wav.write_interleaved(tone)
        elif layout == "planar":
            wav.write_channels([tone[:, c] for c in range(channels)])
        elif layout in {"frame", "frame_planar"}:
            encoding = SampleEncoding.for_format(sample_format, planar=layout == "frame_planar")
            block = max(1, sample_rate // FRAMES_PER_SECOND)
            for start in range(0, tone.shape[0], block):
                wav.write_frame(AudioFrame.from_array(tone[start : start + block], encoding))
        else:
            raise ValueError(f"Unsupported layout: {layout}")


def render_from_dict(
    config: dict[str, Any],
    output_path: str,
    *,
    sample_rate: Optional[int] = None,
    sample_format: Optional[str] = None,
    layout: Optional[str] = None,
    verbose: bool = False,
) -> None:
    """Render a tone WAV file from an in-memory config dict."""
    overrides = {
        "sample_rate": sample_rate,
        "sample_format": sample_format,
        "layout": layout,
    }
    normalized, config_warnings = normalize_config(config, overrides=overrides)
    _emit_warnings(config_warnings, verbose=verbose)

    fmt = resolve_sample_format(normalized["sample_format"])
    tone = generate_tone(
        fmt,
        channels=normalized["channels"],
        sample_rate=normalized["sample_rate"],
        duration_s=normalized["duration_s"],
        frequency_hz=normalized["frequency_hz"],
    )
    write_tone(
        output_path,
        tone,
        sample_rate=normalized["sample_rate"],
        sample_format=fmt,
        layout=normalized["layout"],
    )


def render_from_config(
    config_path: str,
    output_path: str,
    *,
    sample_rate: Optional[int] = None,
    sample_format: Optional[str] = None,
    layout: Optional[str] = None,
    verbose: bool = False,
) -> None:
    """Render a tone WAV file from a JSON config path."""
    raw = load_json_config(config_path)
    render_from_dict(
        raw,
        output_path,
        sample_rate=sample_rate,
        sample_format=sample_format,
        layout=layout,
        verbose=verbose,
    )


def render_demo(
    output_dir: str,
    *,
    channels: int = 2,
    sample_rate: int = 44100,
    duration_s: float = 1.0,
) -> list[Path]:
    """Write one tone per sample format and write shape into ``output_dir``."""
    out_dir = Path(output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    written: list[Path] = []
    for fmt in SAMPLE_FORMATS.values():
        tone = generate_tone(fmt, channels=channels, sample_rate=sample_rate, duration_s=duration_s)
        for layout, prefix in DEMO_LAYOUTS.items():
            suffix = "p" if layout == "frame_planar" else ""
            path = out_dir / f"{prefix}{_demo_name(fmt)}{suffix}.wav"
            write_tone(str(path), tone, sample_rate=sample_rate, sample_format=fmt, layout=layout)
            written.append(path)
    return written


def _demo_name(fmt: SampleFormat) -> str:
    if fmt.is_float:
        return fmt.name
    return fmt.name.replace("i", "s")


def _emit_warnings(messages: list[str], verbose: bool) -> None:
    for message in messages:
        warnings.warn(message, RuntimeWarning, stacklevel=3)
        if verbose:
            print(f"warning: {message}", file=sys.stderr)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="wavstream")
    subparsers = parser.add_subparsers(dest="command", required=True)

    render_parser = subparsers.add_parser("render", help="Render a tone WAV from JSON config.")
    render_parser.add_argument("config_path", help="Path to JSON configuration file.")
    render_parser.add_argument("output_path", help="Path for output WAV file.")
    render_parser.add_argument("--sample-rate", type=int, default=None, dest="sample_rate")
    render_parser.add_argument("--sample-format", default=None, dest="sample_format")
    render_parser.add_argument("--layout", default=None)
    render_parser.add_argument("--verbose", action="store_true")

    demo_parser = subparsers.add_parser(
        "demo", help="Write a tone for every sample format and write shape."
    )
    demo_parser.add_argument("output_dir", help="Directory for output WAV files.")
    demo_parser.add_argument("--channels", type=int, default=2)
    demo_parser.add_argument("--sample-rate", type=int, default=44100, dest="sample_rate")
    demo_parser.add_argument("--duration", type=float, default=1.0, dest="duration_s")

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        if args.command == "render":
            render_from_config(
                config_path=args.config_path,
                output_path=args.output_path,
                sample_rate=args.sample_rate,
                sample_format=args.sample_format,
                layout=args.layout,
                verbose=args.verbose,
            )
        elif args.command == "demo":
            written = render_demo(
                args.output_dir,
                channels=args.channels,
                sample_rate=args.sample_rate,
                duration_s=args.duration_s,
            )
        else:
            parser.error(f"Unsupported command: {args.command}")
    except (ConfigError, SampleTypeError, FileNotFoundError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    except Exception as exc:  # pragma: no cover
        print(f"error: unexpected failure: {exc}", file=sys.stderr)
        return 1

    if args.command == "render":
        print(f"Rendered WAV: {Path(args.output_path)}")
    else:
        print(f"Rendered {len(written)} WAV files into {Path(args.output_dir)}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
