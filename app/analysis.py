"""Heuristic music analysis over a decoded mono sample buffer.

The estimates here are simple deterministic statistics over the waveform
(amplitude, energy, zero crossings, rising peaks) combined into tempo, key,
danceability and mood scores. They are not perceptual models: the key label
is a fixed mapping from energy/dynamic range and the tempo is a clamped
linear blend of crossing and peak rates.

Everything is a pure function of the input buffer so it is safe to call
from any worker thread.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Sequence, Union

import numpy as np

from app.errors import DegenerateBufferError

logger = logging.getLogger(__name__)

PITCH_CLASSES = ("C", "D", "E", "F", "G", "A", "B")
MODES = ("major", "minor")

PEAK_THRESHOLD = 0.1
BPM_MIN = 60.0
BPM_MAX = 180.0

SampleBuffer = Union[Sequence[float], np.ndarray]


@dataclass(frozen=True)
class RawFeatures:
    sample_count: int
    average: float
    rms: float
    energy: float
    zero_crossings: int
    peak_count: int
    dynamic_range: float
    zero_crossing_rate: float
    peak_rate: float


@dataclass(frozen=True)
class MoodScores:
    happy: float
    sad: float
    relaxed: float
    aggressive: float


@dataclass(frozen=True)
class FeatureEcho:
    intensity: float
    complexity: float
    dynamic_range: float
    zero_crossings: int
    peaks: int


@dataclass(frozen=True)
class AnalysisResult:
    bpm: int
    key: str
    danceability: float
    mood: MoodScores
    features: FeatureEcho

    def to_dict(self) -> Dict[str, Any]:
        """Wire form: scores as fixed 3-decimal strings, counts as ints."""

        return {
            "bpm": self.bpm,
            "key": self.key,
            "danceability": format_score(self.danceability),
            "mood": {
                "happy": format_score(self.mood.happy),
                "sad": format_score(self.mood.sad),
                "relaxed": format_score(self.mood.relaxed),
                "aggressive": format_score(self.mood.aggressive),
            },
            "features": {
                "intensity": format_score(self.features.intensity),
                "complexity": format_score(self.features.complexity),
                "dynamicRange": format_score(self.features.dynamic_range),
                "zeroCrossings": self.features.zero_crossings,
                "peaks": self.features.peaks,
            },
        }


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def format_score(value: float) -> str:
    """Format a float with exactly three decimals, ties rounded away from zero.

    Rounds the exact binary value of ``value`` (e.g. ``0.0625`` -> ``"0.063"``)
    so the strings match those produced by JavaScript's ``toFixed(3)``.
    """

    return str(Decimal(value).quantize(Decimal("0.001"), rounding=ROUND_HALF_UP))


def _as_buffer(samples: SampleBuffer) -> np.ndarray:
    try:
        buf = np.asarray(samples, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise DegenerateBufferError(f"Samples are not numeric: {exc}") from exc

    if buf.ndim != 1:
        raise DegenerateBufferError(f"Expected a mono 1-D sample buffer, got shape {buf.shape}")
    if buf.size == 0:
        raise DegenerateBufferError("Sample buffer is empty")
    if not np.all(np.isfinite(buf)):
        raise DegenerateBufferError("Sample buffer contains NaN or infinite values")
    return buf


def extract_features(samples: SampleBuffer) -> RawFeatures:
    """Accumulate the raw statistics of the buffer.

    Zero crossings compare the non-negativity of adjacent samples (``-0.0``
    counts as non-negative). A peak is any sample above ``PEAK_THRESHOLD``
    whose magnitude rose from its predecessor. Index 0 has no predecessor and
    contributes to neither count.
    """

    buf = _as_buffer(samples)
    n = int(buf.size)

    mag = np.abs(buf)
    non_negative = buf >= 0.0

    # Sums accumulate strictly left to right; energy feeds the key index.
    total = float(np.cumsum(mag)[-1])
    sum_squares = float(np.cumsum(buf * buf)[-1])
    zero_crossings = int(np.count_nonzero(non_negative[1:] != non_negative[:-1]))
    peak_count = int(np.count_nonzero((mag[1:] > PEAK_THRESHOLD) & (mag[1:] > mag[:-1])))
    max_abs = float(mag.max())
    min_abs = float(mag.min())

    rms = math.sqrt(sum_squares / n)

    return RawFeatures(
        sample_count=n,
        average=total / n,
        rms=rms,
        energy=rms ** 2,
        zero_crossings=zero_crossings,
        peak_count=peak_count,
        dynamic_range=max_abs - min_abs,
        zero_crossing_rate=zero_crossings / n,
        peak_rate=peak_count / n,
    )


def estimate_bpm(features: RawFeatures) -> int:
    raw = 60.0 + features.zero_crossing_rate * 500.0 + features.peak_rate * 300.0
    return _round_half_up(_clamp(raw, BPM_MIN, BPM_MAX))


def estimate_key(features: RawFeatures) -> str:
    key_index = int(math.floor((features.energy * 7.0) % 7.0))
    mode_index = int(math.floor((features.dynamic_range * 2.0) % 2.0))
    return f"{PITCH_CLASSES[key_index]} {MODES[mode_index]}"


def score_features(features: RawFeatures) -> tuple[float, MoodScores, FeatureEcho]:
    """Return (danceability, mood, feature echo) from the raw statistics."""

    intensity = _clamp(features.energy * 5.0)
    complexity = _clamp(features.zero_crossing_rate * 10.0)
    smoothness = 1.0 - complexity

    danceability = _clamp(intensity * 0.6 + complexity * 0.4)
    mood = MoodScores(
        happy=_clamp(intensity * 0.7 + complexity * 0.3),
        sad=_clamp((1.0 - intensity) * 0.8 + (1.0 - complexity) * 0.2),
        relaxed=_clamp((1.0 - intensity) * 0.6 + smoothness * 0.4),
        aggressive=_clamp(intensity * 0.5 + complexity * 0.3 + (features.peak_rate * 2.0) * 0.2),
    )
    echo = FeatureEcho(
        intensity=intensity,
        complexity=complexity,
        dynamic_range=features.dynamic_range,
        zero_crossings=features.zero_crossings,
        peaks=features.peak_count,
    )
    return danceability, mood, echo


def analyze_samples(samples: SampleBuffer) -> AnalysisResult:
    """Estimate tempo, key, danceability and mood from mono samples.

    Raises ``DegenerateBufferError`` for empty, non 1-D, non-numeric or
    non-finite input; no partial result is ever returned.
    """

    features = extract_features(samples)
    danceability, mood, echo = score_features(features)

    result = AnalysisResult(
        bpm=estimate_bpm(features),
        key=estimate_key(features),
        danceability=danceability,
        mood=mood,
        features=echo,
    )

    logger.debug(
        "[ANALYSIS] n=%d rms=%.4f zc=%d peaks=%d -> bpm=%d key=%s dance=%.3f",
        features.sample_count,
        features.rms,
        features.zero_crossings,
        features.peak_count,
        result.bpm,
        result.key,
        danceability,
    )
    return result
