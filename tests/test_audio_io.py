"""
Tests for app/audio_io.py — upload decoding and mono down-mix.

soundfile handles the WAV fixtures directly; the librosa fallback is
patched so tests never depend on an audioread backend being installed.
"""

import os
from unittest.mock import patch

import numpy as np
import pytest

from app.audio_io import decode_audio_bytes, to_mono
from app.errors import AudioDecodeError

TEST_SR = 44100


class TestToMono:
    def test_mono_passthrough(self):
        out = to_mono(np.array([0.1, -0.2], dtype=np.float32))
        assert out.dtype == np.float64
        np.testing.assert_allclose(out, [0.1, -0.2], rtol=1e-6)

    def test_stereo_average(self):
        out = to_mono(np.array([[0.5, -0.5], [0.25, 0.25]]))
        np.testing.assert_array_equal(out, [0.0, 0.25])


class TestDecodeAudioBytes:
    def test_wav_mono(self, scenario_samples, make_wav):
        decoded = decode_audio_bytes(make_wav(scenario_samples), "clip.wav")
        assert decoded.sample_rate == TEST_SR
        assert decoded.channels == 1
        np.testing.assert_array_equal(decoded.samples, scenario_samples)

    def test_wav_stereo_downmixed(self, make_wav):
        stereo = np.array([[0.5, -0.5], [0.25, 0.25], [1.0, 0.5]])
        decoded = decode_audio_bytes(make_wav(stereo, sr=22050), "stereo.wav")
        assert decoded.channels == 2
        assert decoded.sample_rate == 22050
        np.testing.assert_array_equal(decoded.samples, [0.0, 0.25, 0.75])

    def test_librosa_fallback_used_when_soundfile_fails(self):
        y = np.array([0.1, 0.2, 0.3], dtype=np.float32)
        with patch("app.audio_io.librosa.load", return_value=(y, 48000)) as load:
            decoded = decode_audio_bytes(b"not a wav file", "track.mp3")

        load.assert_called_once()
        assert load.call_args.kwargs == {"sr": None, "mono": True}
        assert load.call_args.args[0].endswith(".mp3")
        assert decoded.sample_rate == 48000
        assert decoded.channels == 1
        np.testing.assert_allclose(decoded.samples, y)

    def test_undecodable_raises(self):
        with patch("app.audio_io.librosa.load", side_effect=Exception("no backend")):
            with pytest.raises(AudioDecodeError, match="Could not decode"):
                decode_audio_bytes(b"\x00\x01garbage", "broken.mp3")

    def test_error_maps_to_400(self):
        with patch("app.audio_io.librosa.load", side_effect=Exception("no backend")):
            with pytest.raises(AudioDecodeError) as exc_info:
                decode_audio_bytes(b"garbage", None)
        assert exc_info.value.status_code == 400
        assert exc_info.value.to_envelope() == {
            "error": "Upload error",
            "message": "Could not decode audio file",
        }

    def test_librosa_temp_file_removed_after_success(self):
        seen = {}

        def fake_load(path, **kwargs):
            seen["path"] = path
            assert os.path.exists(path)
            return np.zeros(4, dtype=np.float32), 8000

        with patch("app.audio_io.librosa.load", side_effect=fake_load):
            decode_audio_bytes(b"not a wav file", "track.ogg")

        assert not os.path.exists(seen["path"])

    def test_librosa_temp_file_removed_after_failure(self):
        seen = {}

        def failing_load(path, **kwargs):
            seen["path"] = path
            with open(path, "rb") as fh:
                assert fh.read() == b"garbage bytes"
            raise Exception("no backend")

        with patch("app.audio_io.librosa.load", side_effect=failing_load):
            with pytest.raises(AudioDecodeError):
                decode_audio_bytes(b"garbage bytes", "broken.mp3")

        assert not os.path.exists(seen["path"])
