import numpy as np

from conftest import silent_pcm, tone_pcm
from interviewiq.vocal.analyzer import SignalAnalyzer, estimate_pitch_amdf, pcm_to_samples, rms_volume


def test_rms_volume_normalizes_to_full_scale():
    samples = np.full(1600, 16384, dtype=np.float64)
    assert abs(rms_volume(samples) - 0.5) < 1e-9
    assert rms_volume(np.zeros(0)) == 0.0


def test_amdf_pitch_tracks_a_pure_tone():
    samples = pcm_to_samples(tone_pcm(0.25, freq=200.0))
    pitch = estimate_pitch_amdf(samples, sample_rate=16000)
    assert abs(pitch - 200.0) < 5.0


def test_amdf_pitch_zero_for_short_frame():
    samples = pcm_to_samples(tone_pcm(0.005))
    assert estimate_pitch_amdf(samples) == 0.0


def test_silent_chunk_is_not_speech_and_has_no_pitch():
    analyzer = SignalAnalyzer()
    snapshot = analyzer.analyze(silent_pcm(0.5))
    assert snapshot.is_speaking is False
    assert snapshot.pitch == 0.0
    assert len(analyzer.pitch_history) == 0
    assert len(analyzer.energy_history) == 1


def test_speech_chunk_sets_volume_and_pitch():
    analyzer = SignalAnalyzer()
    snapshot = analyzer.analyze(tone_pcm(0.5, amplitude=8000))
    assert snapshot.is_speaking is True
    assert snapshot.is_paused is False
    assert snapshot.volume > 0.01
    assert snapshot.pitch > 0.0


def test_pause_requires_three_quiet_chunks_of_history():
    analyzer = SignalAnalyzer()
    results = [analyzer.analyze(silent_pcm(0.1)).is_paused for _ in range(4)]
    assert results == [False, False, False, True]


def test_loud_chunk_breaks_pause_window():
    analyzer = SignalAnalyzer()
    for _ in range(3):
        analyzer.analyze(silent_pcm(0.1))
    analyzer.analyze(tone_pcm(0.1))
    assert analyzer.analyze(silent_pcm(0.1)).is_paused is False


def test_histories_are_bounded():
    analyzer = SignalAnalyzer(history_limit=5)
    for _ in range(12):
        analyzer.analyze(tone_pcm(0.05))
    assert len(analyzer.energy_history) == 5
    assert len(analyzer.pitch_history) == 5

    analyzer.reset()
    assert len(analyzer.energy_history) == 0
    assert analyzer.pause_count == 0
