import struct
import tempfile
import unittest
import wave
from pathlib import Path

import numpy as np

from wavstream.formats import SAMPLE_FORMATS
from wavstream.writer import (
    ShapeMismatchError,
    WavWriter,
    WriterClosedError,
    write_wav,
)


def _read(path):
    return Path(path).read_bytes()


def _u32(data, offset):
    return struct.unpack_from("<I", data, offset)[0]


def _u16(data, offset):
    return struct.unpack_from("<H", data, offset)[0]


class _FailingSeek:
    """File wrapper whose seek fails, as on a broken disk."""

    def __init__(self, handle):
        self._handle = handle

    def __getattr__(self, name):
        return getattr(self._handle, name)

    def seek(self, *args):
        raise OSError("seek failed")


class WavEncodingTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def test_int16_stereo_scalar_scenario(self):
        out = self.tmp / "s16.wav"
        with WavWriter(out, channels=2, sample_rate=8000, sample_format="i16") as wav:
            for value in (100, -100, 200, -200):
                wav.write_sample(value)

        data = _read(out)
        self.assertEqual(len(data), 52)
        self.assertEqual(data[0:4], b"RIFF")
        self.assertEqual(_u32(data, 4), 44)
        self.assertEqual(data[8:16], b"WAVEfmt ")
        self.assertEqual(_u32(data, 16), 16)
        self.assertEqual(_u16(data, 20), 1)
        self.assertEqual(_u16(data, 22), 2)
        self.assertEqual(_u32(data, 24), 8000)
        self.assertEqual(_u32(data, 28), 8000 * 2 * 2)
        self.assertEqual(_u16(data, 32), 4)
        self.assertEqual(_u16(data, 34), 16)
        self.assertEqual(data[36:40], b"data")
        self.assertEqual(_u32(data, 40), 16)
        self.assertEqual(data[44:], struct.pack("<4h", 100, -100, 200, -200))

    def test_float32_mono_scenario(self):
        out = self.tmp / "f32.wav"
        with WavWriter(out, channels=1, sample_rate=8000, sample_format="f32") as wav:
            wav.write_sample(0.5)

        data = _read(out)
        self.assertEqual(len(data), 58 + 4)
        self.assertEqual(_u32(data, 4), len(data) - 8)
        self.assertEqual(_u32(data, 16), 18)
        self.assertEqual(_u16(data, 20), 3)
        self.assertEqual(_u16(data, 34), 32)
        self.assertEqual(_u16(data, 36), 0)
        self.assertEqual(data[38:42], b"fact")
        self.assertEqual(_u32(data, 42), 4)
        self.assertEqual(_u32(data, 46), 3)
        self.assertEqual(data[50:54], b"data")
        self.assertEqual(_u32(data, 54), 12)
        self.assertEqual(struct.unpack("<f", data[58:62])[0], 0.5)

    def test_per_channel_sequences_are_interleaved(self):
        out = self.tmp / "planar.wav"
        with WavWriter(out, channels=2, sample_rate=8000, sample_format="i16") as wav:
            wav.write_channels([[1, 2], [-1, -2]])

        data = _read(out)
        self.assertEqual(data[44:], struct.pack("<4h", 1, -1, 2, -2))

    def test_unequal_channel_lengths_fail_without_writing(self):
        out = self.tmp / "ragged.wav"
        with WavWriter(out, channels=2, sample_rate=8000, sample_format="i16") as wav:
            with self.assertRaises(ShapeMismatchError):
                wav.write_channels([[1, 2, 3], [4, 5]])
            self.assertEqual(wav.data_size, 0)

        data = _read(out)
        self.assertEqual(len(data), 44)
        self.assertEqual(_u32(data, 40), 8)

    def test_channel_sequence_count_must_match(self):
        out = self.tmp / "count.wav"
        with WavWriter(out, channels=2, sample_rate=8000) as wav:
            with self.assertRaises(ShapeMismatchError):
                wav.write_channels([[1, 2, 3]])

    def test_interleaved_sequence_keeps_order(self):
        out = self.tmp / "seq.wav"
        with WavWriter(out, channels=2, sample_rate=8000, sample_format="i32") as wav:
            wav.write_interleaved([5, 6, 7, 8])
            wav.write_interleaved(np.array([9, 10]))

        data = _read(out)
        self.assertEqual(data[44:], struct.pack("<6i", 5, 6, 7, 8, 9, 10))

    def test_format_selection_for_every_width(self):
        for name, fmt in SAMPLE_FORMATS.items():
            with self.subTest(sample_format=name):
                out = self.tmp / f"{name}.wav"
                with WavWriter(out, channels=2, sample_rate=44100, sample_format=name) as wav:
                    wav.write_interleaved([1, 1, 0, 0])

                data = _read(out)
                self.assertEqual(_u16(data, 20), 3 if fmt.is_float else 1)
                self.assertEqual(_u16(data, 34), 8 * fmt.width)
                self.assertEqual(data[38:42] == b"fact", fmt.is_float)

                header = 58 if fmt.is_float else 44
                payload = len(data) - header
                data_size = _u32(data, header - 4)
                self.assertEqual(data_size, payload + 8)
                self.assertEqual(payload % (2 * fmt.width), 0)
                self.assertEqual(_u32(data, 4), len(data) - 8)
                if fmt.is_float:
                    self.assertEqual(_u32(data, 46), data_size // fmt.width)

    def test_values_are_converted_and_truncated_to_width(self):
        out = self.tmp / "wrap.wav"
        with WavWriter(out, channels=1, sample_rate=8000, sample_format="u8") as wav:
            wav.write_sample(0x1FF)
            wav.write_sample(2.7)

        data = _read(out)
        self.assertEqual(data[44:], b"\xff\x02")

    def test_write_dispatches_on_shape(self):
        out = self.tmp / "dispatch.wav"
        with WavWriter(out, channels=2, sample_rate=8000, sample_format="i16") as wav:
            wav.write(1)
            wav.write(2)
            wav.write([3, 4])
            wav.write([[5, 6], [7, 8]])

        data = _read(out)
        self.assertEqual(data[44:], struct.pack("<8h", 1, 2, 3, 4, 5, 7, 6, 8))

    def test_write_after_close_raises(self):
        out = self.tmp / "closed.wav"
        wav = WavWriter(out, channels=1, sample_rate=8000)
        wav.write_sample(1)
        wav.close()
        wav.close()
        self.assertTrue(wav.closed)
        self.assertEqual(wav.frames_written, 1)
        with self.assertRaises(WriterClosedError):
            wav.write_sample(2)
        self.assertEqual(len(_read(out)), 46)

    def test_header_is_patched_when_block_raises(self):
        out = self.tmp / "error.wav"
        with self.assertRaises(RuntimeError):
            with WavWriter(out, channels=1, sample_rate=8000) as wav:
                wav.write_interleaved([1, 2, 3])
                raise RuntimeError("boom")

        data = _read(out)
        self.assertEqual(_u32(data, 40), 14)
        self.assertEqual(_u32(data, 4), len(data) - 8)

    def test_pcm_output_is_readable_by_wave_module(self):
        out = self.tmp / "stdlib.wav"
        signal = np.zeros((480, 2), dtype=np.int16)
        write_wav(out, signal, sample_rate=48000)
        with wave.open(str(out), "rb") as wav_handle:
            self.assertEqual(wav_handle.getnchannels(), 2)
            self.assertEqual(wav_handle.getsampwidth(), 2)
            self.assertEqual(wav_handle.getframerate(), 48000)
        self.assertEqual(len(_read(out)), 44 + 480 * 4)

    def test_patch_failure_propagates_and_releases_file(self):
        out = self.tmp / "patch.wav"
        wav = WavWriter(out, channels=1, sample_rate=8000)
        wav.write_sample(1)
        handle = wav._handle
        wav._handle = _FailingSeek(handle)

        with self.assertRaises(OSError):
            wav.close()
        self.assertTrue(handle.closed)
        self.assertTrue(wav.closed)
        wav.close()
        with self.assertRaises(WriterClosedError):
            wav.write_sample(2)

    def test_numpy_integers_are_accepted(self):
        out = self.tmp / "np.wav"
        with WavWriter(out, channels=np.int64(2), sample_rate=np.int32(8000)) as wav:
            self.assertEqual(wav.channels, 2)
            self.assertIs(type(wav.sample_rate), int)
            wav.write_interleaved([1, 2])

        data = _read(out)
        self.assertEqual(_u16(data, 22), 2)
        self.assertEqual(_u32(data, 24), 8000)

    def test_unopenable_path_raises_os_error(self):
        with self.assertRaises(OSError):
            WavWriter(self.tmp / "missing" / "out.wav", channels=1, sample_rate=8000)


if __name__ == "__main__":
    unittest.main()
