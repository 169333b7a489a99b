import numpy as np
import pytest

from ft8codec.api import encode, message_codeword
from ft8codec.char import apply_awgn
from ft8codec.demod import candidate_llrs, estimate_snr, extract_tone_energies
from ft8codec.sync import Candidate
from ft8codec.tones import tones_from_codeword
from ft8codec.waterfall import compute_spectrogram


SR = 12000.0
TEXT = "K1ABC W9XYZ FN20"


def _clean_spec():
    return compute_spectrogram(encode(TEXT, SR, 1500.0), SR)


def test_tone_energies_shape_and_normalisation():
    spec = _clean_spec()
    E = extract_tone_energies(spec, Candidate(0, 480, 0.0))
    assert E.shape == (58, 8)
    assert np.allclose(E.max(axis=1), 0.0)
    # The transmitted tone is the strongest in every data symbol
    tones = tones_from_codeword(message_codeword(TEXT))
    data_tones = np.concatenate([tones[7:36], tones[43:72]])
    assert np.array_equal(E.argmax(axis=1), data_tones)


@pytest.mark.parametrize("method", ["max", "sum"])
def test_llr_signs_match_codeword(method):
    spec = _clean_spec()
    llr = candidate_llrs(spec, Candidate(0, 480, 0.0), method)
    cw = message_codeword(TEXT)
    assert llr.shape == (174,)
    assert np.array_equal((llr < 0).astype(np.uint8), cw)
    assert np.var(llr) == pytest.approx(24.0)


def test_out_of_range_candidate_rejected():
    spec = _clean_spec()
    with pytest.raises(ValueError):
        extract_tone_energies(spec, Candidate(20, 480, 0.0))
    with pytest.raises(ValueError):
        extract_tone_energies(spec, Candidate(0, spec.num_bins - 10, 0.0))


@pytest.mark.parametrize("snr_db", [-10.0, 0.0, 10.0, 20.0])
def test_snr_estimate_tracks_added_noise(snr_db):
    rng = np.random.default_rng(4)
    tones = tones_from_codeword(message_codeword(TEXT))
    x = apply_awgn(encode(TEXT, SR, 1500.0), snr_db, rng, SR)
    spec = compute_spectrogram(x, SR)
    snr = estimate_snr(spec, Candidate(0, 480, 0.0), tones)
    assert snr == pytest.approx(snr_db, abs=3.0)
    # Restricting the noise measurement to the monitor band gives the same figure
    banded = estimate_snr(spec, Candidate(0, 480, 0.0), tones, (100.0, 3000.0))
    assert banded == pytest.approx(snr, abs=0.5)


def test_snr_estimate_of_clean_signal_is_high():
    spec = _clean_spec()
    tones = tones_from_codeword(message_codeword(TEXT))
    assert estimate_snr(spec, Candidate(0, 480, 0.0), tones) > 20.0


def test_snr_estimate_ignores_other_signals_in_band():
    rng = np.random.default_rng(6)
    tones = tones_from_codeword(message_codeword(TEXT))
    y = apply_awgn(encode(TEXT, SR, 1500.0), 0.0, rng, SR).astype(np.float64)
    # A strong second transmission elsewhere in the band is not noise
    z = y + encode("CQ W9XYZ EN61", SR, 2100.0)
    cand = Candidate(0, 480, 0.0)
    alone = estimate_snr(compute_spectrogram(y, SR), cand, tones, (100.0, 3000.0))
    mixed = estimate_snr(compute_spectrogram(z, SR), cand, tones, (100.0, 3000.0))
    assert mixed == pytest.approx(alone, abs=1.0)


def test_snr_estimate_needs_noise_bins():
    spec = _clean_spec()
    tones = tones_from_codeword(message_codeword(TEXT))
    with pytest.raises(ValueError):
        estimate_snr(spec, Candidate(0, 480, 0.0), tones, (1500.0, 1540.0))
