"""Decode uploaded audio bytes into a mono float64 sample buffer.

libsndfile (via soundfile) handles WAV/FLAC/OGG and, on recent builds, MP3.
Anything it refuses is handed to librosa, whose audioread backends cover the
remaining container formats. No resampling happens here: the analysis core
is sample-rate agnostic.
"""
from __future__ import annotations

import io
import logging
import os
import tempfile
from dataclasses import dataclass

import librosa
import numpy as np
import soundfile as sf

from app.errors import AudioDecodeError

logger = logging.getLogger(__name__)


@dataclass
class DecodedAudio:
  samples: np.ndarray
  sample_rate: int
  channels: int


def to_mono(audio: np.ndarray) -> np.ndarray:
  """Average channels of a (frames, channels) array into a 1-D buffer."""

  if audio.ndim == 1:
    return audio.astype(np.float64, copy=False)
  if audio.ndim == 2:
    return audio.mean(axis=1).astype(np.float64, copy=False)
  return audio.reshape(-1).astype(np.float64, copy=False)


def _decode_with_librosa(data: bytes, filename: str | None) -> DecodedAudio:
  # audioread needs a real path, so spill the upload to a temp file.
  suffix = os.path.splitext(filename or "")[1] or ".audio"
  tmp_path = None
  try:
    with tempfile.NamedTemporaryFile(delete=False, suffix=suffix) as tmp:
      tmp_path = tmp.name
      tmp.write(data)
    y, sr = librosa.load(tmp_path, sr=None, mono=True)
  finally:
    if tmp_path is not None:
      try:
        os.unlink(tmp_path)
      except OSError:
        pass
  return DecodedAudio(samples=np.asarray(y, dtype=np.float64), sample_rate=int(sr), channels=1)


def decode_audio_bytes(data: bytes, filename: str | None = None) -> DecodedAudio:
  """Return mono samples for an uploaded file or raise ``AudioDecodeError``."""

  try:
    audio, sr = sf.read(io.BytesIO(data), dtype="float64", always_2d=True)
    decoded = DecodedAudio(samples=to_mono(audio), sample_rate=int(sr), channels=int(audio.shape[1]))
  except Exception as exc:
    logger.info("[DECODE] soundfile could not read %s (%s); trying librosa", filename, exc)
    try:
      decoded = _decode_with_librosa(data, filename)
    except Exception as fallback_exc:
      logger.warning("[DECODE] librosa failed for %s: %s", filename, fallback_exc)
      raise AudioDecodeError("Could not decode audio file") from fallback_exc

  logger.debug(
    "[DECODE] %s: %d samples @ %d Hz, %d channel(s)",
    filename,
    decoded.samples.size,
    decoded.sample_rate,
    decoded.channels,
  )
  return decoded
