"""
Shared fixtures for the test suite.

Audio fixtures are synthesised with numpy and encoded in memory with
soundfile, so no audio files are needed on disk.
"""

import io

import numpy as np
import pytest
import soundfile as sf
from fastapi.testclient import TestClient

from app.main import app

TEST_SR = 44100


def _wav_bytes(samples, sr: int = TEST_SR, subtype: str = "FLOAT") -> bytes:
    buf = io.BytesIO()
    sf.write(buf, np.asarray(samples, dtype=np.float32), sr, format="WAV", subtype=subtype)
    return buf.getvalue()


@pytest.fixture
def make_wav():
    """Factory encoding ``samples`` (frames or frames x channels) as an in-memory WAV."""
    return _wav_bytes


# ---------------------------------------------------------------------------
# Signals
# ---------------------------------------------------------------------------


@pytest.fixture
def scenario_samples() -> list[float]:
    """Five-sample alternating buffer used as the worked example."""
    return [0.0, 0.5, -0.5, 0.5, -0.5]


@pytest.fixture
def silence() -> np.ndarray:
    return np.zeros(1000, dtype=np.float64)


@pytest.fixture
def sine_tone() -> np.ndarray:
    """One second of a 440 Hz sine at half scale."""
    t = np.arange(TEST_SR) / TEST_SR
    return 0.5 * np.sin(2.0 * np.pi * 440.0 * t)


# ---------------------------------------------------------------------------
# FastAPI test client
# ---------------------------------------------------------------------------


@pytest.fixture()
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def lenient_client():
    """Client that returns 500 responses instead of re-raising server errors."""
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c
