import numpy as np
import pytest

from ft8codec.api import encode
from ft8codec.errors import ConfigurationError
from ft8codec.sync import Candidate, SearchConfig, find_candidates, merge_candidates, resolve_search_range
from ft8codec.waterfall import compute_spectrogram


SR = 12000.0


def test_spectrogram_geometry():
    x = np.zeros(int(SR * 15), dtype=np.float32)
    spec = compute_spectrogram(x, SR)
    assert spec.symbol_samples == 1920
    assert spec.hop == 960
    assert spec.nfft == 3840
    assert spec.bin_hz == pytest.approx(3.125)
    assert spec.num_steps == (x.size - 1920) // 960 + 1
    assert spec.num_bins == 3840 // 2 + 1
    assert spec.mag_db.dtype == np.float32
    assert not spec.mag_db.flags.writeable


def test_spectrogram_tone_lands_on_expected_bin():
    t = np.arange(int(SR * 2)) / SR
    x = np.sin(2 * np.pi * 1500.0 * t)
    spec = compute_spectrogram(x, SR)
    row = spec.mag_db[spec.num_steps // 2]
    assert int(np.argmax(row)) == 480
    # Unit-amplitude sinusoid reads about 0 dB
    assert row[480] == pytest.approx(0.0, abs=0.5)


def test_spectrogram_rejects_short_buffer():
    with pytest.raises(ValueError):
        compute_spectrogram(np.zeros(1000), SR)


def test_strong_signal_is_top_candidate():
    rng = np.random.default_rng(12)
    x = encode("CQ K1ABC FN42", SR, 1500.0) + rng.normal(0.0, 0.01, size=79 * 1920)
    spec = compute_spectrogram(x, SR)
    cands = find_candidates(spec)
    assert cands, "expected at least one candidate"
    best = cands[0]
    assert best.time_offset == 0
    assert best.freq_offset == 480
    assert best.score > 15.0
    # Strongest first
    scores = [c.score for c in cands]
    assert scores == sorted(scores, reverse=True)


def test_search_is_deterministic():
    rng = np.random.default_rng(0)
    x = np.zeros(int(SR * 15))
    sig = encode("K1ABC W9XYZ -12", SR, 900.0).astype(np.float64)
    x[6000:6000 + sig.size] += sig
    x += rng.normal(0.0, 0.5, size=x.size)
    spec = compute_spectrogram(x, SR)
    a = find_candidates(spec)
    b = find_candidates(spec)
    assert a == b
    assert len(a) <= SearchConfig().max_candidates


def test_max_candidates_respected():
    rng = np.random.default_rng(1)
    x = rng.normal(0.0, 1.0, size=int(SR * 15))
    spec = compute_spectrogram(x, SR)
    cands = find_candidates(spec, SearchConfig(min_score=-100.0, max_candidates=7))
    assert len(cands) == 7


def test_merge_keeps_higher_score_of_near_duplicates():
    a = Candidate(time_offset=10, freq_offset=400, score=12.0)
    b = Candidate(time_offset=11, freq_offset=401, score=15.0)
    c = Candidate(time_offset=30, freq_offset=400, score=8.0)
    kept = merge_candidates([a, b, c], time_tolerance=1, freq_tolerance=1)
    assert kept == [b, c]


def test_merge_tie_break_by_time_then_frequency():
    a = Candidate(time_offset=5, freq_offset=101, score=10.0)
    b = Candidate(time_offset=5, freq_offset=100, score=10.0)
    c = Candidate(time_offset=4, freq_offset=300, score=10.0)
    kept = merge_candidates([a, b, c], time_tolerance=1, freq_tolerance=1)
    assert kept == [c, b]


def test_search_range_resolution():
    x = np.zeros(int(SR * 15))
    spec = compute_spectrogram(x, SR)
    rng = resolve_search_range(spec, SearchConfig())
    assert rng.f_min == 32
    assert rng.f_max == 960 - 14
    assert rng.t_min == 0
    assert rng.t_max == spec.num_steps - 1 - 78 * 2
    rng = resolve_search_range(spec, SearchConfig(time_min_s=0.48, time_max_s=0.96))
    assert (rng.t_min, rng.t_max) == (6, 12)


def test_search_config_errors():
    x = np.zeros(int(SR * 15))
    spec = compute_spectrogram(x, SR)
    with pytest.raises(ConfigurationError):
        find_candidates(spec, SearchConfig(freq_min_hz=2000.0, freq_max_hz=1000.0))
    with pytest.raises(ConfigurationError):
        find_candidates(spec, SearchConfig(max_candidates=0))
    # Band too narrow to hold eight tones
    with pytest.raises(ConfigurationError):
        find_candidates(spec, SearchConfig(freq_min_hz=1000.0, freq_max_hz=1030.0))
    # Start window entirely beyond the end of the buffer
    with pytest.raises(ConfigurationError):
        find_candidates(spec, SearchConfig(time_min_s=14.0))
