from __future__ import annotations

import numpy as np
from numpy.typing import NDArray
from scipy.special import erf

from .constants import (
    FSK_TONES,
    GFSK_BT,
    NN,
    SLOT_START_S,
    SLOT_TIME_S,
    SYMBOL_PERIOD_S,
    TONE_SPACING_HZ,
)


def symbol_samples_for(sample_rate_hz: float) -> int:
    n = int(round(sample_rate_hz * SYMBOL_PERIOD_S))
    if n < 8:
        raise ValueError(f"sample rate too low for FT8: {sample_rate_hz} Hz")
    return n


def gfsk_pulse(symbol_samples: int, symbol_bt: float = GFSK_BT) -> NDArray[np.float64]:
    """Gaussian-filtered rectangular frequency pulse spanning three symbols."""
    K = np.pi * np.sqrt(2.0 / np.log(2.0))
    t = np.arange(3 * symbol_samples, dtype=np.float64) / float(symbol_samples) - 1.5
    return 0.5 * (erf(K * symbol_bt * (t + 0.5)) - erf(K * symbol_bt * (t - 0.5)))


def synthesize_ft8_audio(
    tones,
    sample_rate_hz: float,
    base_freq_hz: float = 1000.0,
    symbol_bt: float = GFSK_BT,
) -> NDArray[np.float32]:
    """Synthesize FT8 audio using GFSK phase shaping for spectral compliance.

    ``base_freq_hz`` is the frequency of tone 0. Produces a float32 mono waveform
    in [-1, 1] at sample_rate_hz, 79 symbols long, with continuous phase.
    """
    t = np.asarray(tones, dtype=np.int64)
    if t.shape != (NN,):
        raise ValueError(f"tones must have shape ({NN},), got {t.shape}")
    if np.any((t < 0) | (t >= FSK_TONES)):
        raise ValueError("tone indices must be in 0..7")
    if sample_rate_hz <= 0:
        raise ValueError("sample_rate_hz must be positive")
    if base_freq_hz <= 0 or base_freq_hz + (FSK_TONES - 1) * TONE_SPACING_HZ >= sample_rate_hz / 2.0:
        raise ValueError(f"base frequency {base_freq_hz} Hz does not fit below Nyquist")
    if symbol_bt <= 0:
        raise ValueError("symbol_bt must be positive")

    n = symbol_samples_for(sample_rate_hz)
    n_total = n * NN
    pulse = gfsk_pulse(n, symbol_bt)

    # Frequency increment per sample (radians per sample), one extra symbol each side
    dphi_peak = 2.0 * np.pi * TONE_SPACING_HZ / sample_rate_hz
    dphi = np.full(n_total + 2 * n, 2.0 * np.pi * base_freq_hz / sample_rate_hz, dtype=np.float64)
    # Each symbol's pulse covers three symbol periods starting at its own slot
    contrib = (dphi_peak * np.outer(t, pulse)).reshape(NN, 3, n)
    for j in range(3):
        dphi[j * n:j * n + n_total] += contrib[:, j, :].reshape(-1)
    # Extend edges with first and last tones
    dphi[:2 * n] += dphi_peak * pulse[n:] * t[0]
    dphi[n_total:n_total + 2 * n] += dphi_peak * pulse[:2 * n] * t[-1]

    # Integrate phase and synthesize
    phi = np.concatenate([[0.0], np.cumsum(dphi[n:n + n_total - 1])])
    x = np.sin(np.mod(phi, 2.0 * np.pi))

    # Raised-cosine ramp over the first and last eighth of a symbol
    ramp = n // 8
    win = 0.5 * (1 - np.cos(2 * np.pi * np.arange(ramp) / (2 * ramp)))
    x[:ramp] *= win
    x[-ramp:] *= win[::-1]

    x /= np.max(np.abs(x)) + 1e-12
    return x.astype(np.float32)


def place_in_slot(
    audio,
    sample_rate_hz: float,
    start_s: float = SLOT_START_S,
    slot_s: float = SLOT_TIME_S,
) -> NDArray[np.float32]:
    """Return a silent slot of ``slot_s`` seconds with ``audio`` starting at ``start_s``."""
    a = np.asarray(audio, dtype=np.float32)
    if a.ndim != 1:
        raise ValueError("audio must be mono (1-D)")
    if start_s < 0:
        raise ValueError("start_s must be >= 0")
    slot = np.zeros(int(round(slot_s * sample_rate_hz)), dtype=np.float32)
    i0 = int(round(start_s * sample_rate_hz))
    if i0 + a.size > slot.size:
        raise ValueError(f"{a.size} samples starting at {start_s} s do not fit in a {slot_s} s slot")
    slot[i0:i0 + a.size] = a
    return slot
