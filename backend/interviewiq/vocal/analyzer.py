from collections import deque

import numpy as np

from core.config import PAUSE_THRESHOLD, PCM_SAMPLE_RATE, SPEECH_THRESHOLD
from interviewiq.session.models import AnalysisSnapshot

HISTORY_LIMIT = 256
PAUSE_LOOKBACK = 3
PITCH_MIN_HZ = 50.0
PITCH_MAX_HZ = 500.0
# longest window fed to the AMDF search; longer chunks only add cost
PITCH_FRAME_SAMPLES = 2048


def pcm_to_samples(pcm: bytes) -> np.ndarray:
    if not pcm:
        return np.zeros(0, dtype=np.float64)
    usable = len(pcm) - (len(pcm) % 2)
    return np.frombuffer(pcm[:usable], dtype="<i2").astype(np.float64)


def rms_volume(samples: np.ndarray) -> float:
    """RMS of int16 samples normalized to full scale (0..1)."""
    if samples.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(samples ** 2)) / 32768.0)


def estimate_pitch_amdf(
    samples: np.ndarray,
    sample_rate: int = PCM_SAMPLE_RATE,
    min_hz: float = PITCH_MIN_HZ,
    max_hz: float = PITCH_MAX_HZ,
    sensitivity: float = 0.1,
    ratio: float = 5.0,
) -> float:
    """
    Average magnitude difference function pitch estimate in Hz.
    Returns 0.0 when the frame is too short or shows no clear periodicity.
    """
    min_period = max(1, int(np.floor(sample_rate / max_hz)))
    max_period = int(np.ceil(sample_rate / min_hz))
    frame = samples[:PITCH_FRAME_SAMPLES]
    if frame.size <= max_period + 1:
        return 0.0

    lags = np.arange(min_period, max_period + 1)
    amd = np.array([np.mean(np.abs(frame[:-lag] - frame[lag:])) for lag in lags])
    max_val = float(amd.max())
    min_val = float(amd.min())
    if max_val <= 0.0:
        return 0.0

    cutoff = sensitivity * (max_val - min_val) + min_val
    below = np.nonzero(amd <= cutoff)[0]
    if below.size == 0:
        return 0.0

    # first dip under the cutoff, then the local minimum just after it
    start = int(below[0])
    stop = min(amd.size, start + max(1, min_period // 2) + 1)
    best = start + int(np.argmin(amd[start:stop]))

    if amd[best] * ratio >= max_val:
        return 0.0
    return float(sample_rate) / float(lags[best])


class SignalAnalyzer:
    """Per-session loudness, pitch and pause tracking with bounded histories."""

    def __init__(
        self,
        sample_rate: int = PCM_SAMPLE_RATE,
        speech_threshold: float = SPEECH_THRESHOLD,
        pause_threshold: float = PAUSE_THRESHOLD,
        history_limit: int = HISTORY_LIMIT,
    ):
        self.sample_rate = int(sample_rate)
        self.speech_threshold = float(speech_threshold)
        self.pause_threshold = float(pause_threshold)
        self.energy_history: deque[float] = deque(maxlen=max(PAUSE_LOOKBACK, int(history_limit)))
        self.pitch_history: deque[float] = deque(maxlen=max(1, int(history_limit)))
        self.pause_count = 0

    def analyze(self, pcm: bytes) -> AnalysisSnapshot:
        samples = pcm_to_samples(pcm)
        if samples.size == 0:
            return AnalysisSnapshot()

        volume = rms_volume(samples)
        is_speaking = volume > self.speech_threshold

        recent = list(self.energy_history)[-PAUSE_LOOKBACK:]
        is_paused = (
            volume < self.pause_threshold
            and len(recent) == PAUSE_LOOKBACK
            and all(value < self.pause_threshold for value in recent)
        )
        self.energy_history.append(volume)
        if is_paused:
            self.pause_count += 1

        pitch = 0.0
        if is_speaking:
            pitch = estimate_pitch_amdf(samples, sample_rate=self.sample_rate)
            self.pitch_history.append(pitch)

        return AnalysisSnapshot(volume=volume, pitch=pitch, is_speaking=is_speaking, is_paused=is_paused)

    def reset(self) -> None:
        self.energy_history.clear()
        self.pitch_history.clear()
        self.pause_count = 0
