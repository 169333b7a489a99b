import numpy as np
import pytest

from ft8codec.api import message_tones
from ft8codec.synth import gfsk_pulse, place_in_slot, synthesize_ft8_audio


SR = 12000.0


def test_synth_length_and_range():
    tones = message_tones("CQ K1ABC FN42")
    x = synthesize_ft8_audio(tones, SR, 1500.0)
    assert x.dtype == np.float32
    assert x.shape == (79 * 1920,)
    assert np.max(np.abs(x)) == pytest.approx(1.0, abs=1e-3)


def test_synth_is_continuous_phase():
    tones = message_tones("K1ABC W9XYZ RR73")
    x = synthesize_ft8_audio(tones, SR, 1500.0).astype(np.float64)
    # No jumps larger than the highest tone's per-sample phase advance allows
    max_step = 2 * np.pi * (1500.0 + 7 * 6.25) / SR
    assert np.max(np.abs(np.diff(x))) < max_step * 1.05


def test_synth_energy_stays_in_band():
    tones = message_tones("K1ABC W9XYZ FN20")
    x = synthesize_ft8_audio(tones, SR, 1000.0).astype(np.float64)
    spec = np.abs(np.fft.rfft(x)) ** 2
    freqs = np.fft.rfftfreq(x.size, 1.0 / SR)
    in_band = (freqs >= 1000.0 - 25.0) & (freqs <= 1000.0 + 7 * 6.25 + 25.0)
    assert spec[in_band].sum() / spec.sum() > 0.99


def test_synth_symbol_frequency():
    # A constant tone sequence yields a pure carrier at base + tone * 6.25 Hz
    tones = np.full(79, 5, dtype=np.int32)
    x = synthesize_ft8_audio(tones, SR, 1200.0).astype(np.float64)
    seg = x[20 * 1920:60 * 1920]
    spec = np.abs(np.fft.rfft(seg * np.hanning(seg.size)))
    f_peak = np.fft.rfftfreq(seg.size, 1.0 / SR)[np.argmax(spec)]
    assert f_peak == pytest.approx(1200.0 + 5 * 6.25, abs=2.0)


def test_gfsk_pulse_shape():
    p = gfsk_pulse(1920)
    assert p.shape == (3 * 1920,)
    # Unity in the middle of its own symbol, near-zero at the far edges
    assert p[int(1.5 * 1920)] == pytest.approx(1.0, abs=1e-6)
    assert p.max() <= 1.0 + 1e-12
    assert p[0] < 1e-3 and p[-1] < 1e-3


def test_synth_rejects_bad_input():
    with pytest.raises(ValueError):
        synthesize_ft8_audio(np.zeros(78, dtype=np.int32), SR)
    with pytest.raises(ValueError):
        synthesize_ft8_audio(np.full(79, 8), SR)
    with pytest.raises(ValueError):
        synthesize_ft8_audio(np.zeros(79, dtype=np.int32), SR, 5990.0)


def test_place_in_slot():
    x = np.ones(1000, dtype=np.float32)
    slot = place_in_slot(x, SR)
    assert slot.shape == (15 * 12000,)
    assert slot.dtype == np.float32
    assert slot[5999] == 0.0 and slot[6000] == 1.0 and slot[6999] == 1.0 and slot[7000] == 0.0
    with pytest.raises(ValueError):
        place_in_slot(np.ones(180000, dtype=np.float32), SR)
    with pytest.raises(ValueError):
        place_in_slot(x, SR, start_s=-0.1)
