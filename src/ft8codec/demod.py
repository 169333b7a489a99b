from __future__ import annotations

import math
from functools import lru_cache
from typing import Optional, Tuple
import numpy as np
from numpy.typing import NDArray
from scipy.signal import get_window

from .constants import FSK_TONES, NN
from .sync import Candidate
from .tones import DATA_POSITIONS, LLR_METHODS, symbol_llrs
from .waterfall import Spectrogram

# Target variance of the normalised LLR vector
LLR_VARIANCE = 24.0
SNR_REFERENCE_BW_HZ = 2500.0
# Equivalent noise bandwidth of the Hann window, in bins
_HANN_ENBW_BINS = 1.5
_SNR_MIN_DB = -30.0
_SNR_MAX_DB = 50.0


@lru_cache(maxsize=8)
def _symbol_power_fraction(nfft: int, symbol_samples: int) -> float:
    """Share of a tone's bin power kept when the tone fills only the centred symbol of the window."""
    w = get_window("hann", nfft, fftbins=True)
    lo = (nfft - symbol_samples) // 2
    frac = float(np.sum(w[lo:lo + symbol_samples]) / np.sum(w))
    return frac * frac


def _tone_grid(spec: Spectrogram, cand: Candidate, symbols: NDArray[np.int64]) -> tuple[NDArray[np.int64], NDArray[np.int64]]:
    rows = cand.time_offset + symbols * spec.time_osr
    cols = cand.freq_offset + np.arange(FSK_TONES) * spec.freq_osr
    if rows.min() < 0 or rows.max() >= spec.num_steps or cols.min() < 0 or cols.max() >= spec.num_bins:
        raise ValueError(
            f"candidate (t={cand.time_offset}, f={cand.freq_offset}) does not fit a "
            f"{spec.num_steps}x{spec.num_bins} spectrogram"
        )
    return rows, cols


def extract_tone_energies(spec: Spectrogram, cand: Candidate) -> NDArray[np.float64]:
    """Tone energies [58, 8] in dB for the data symbols, each row relative to its strongest tone."""
    rows, cols = _tone_grid(spec, cand, DATA_POSITIONS)
    E = spec.mag_db[rows[:, None], cols[None, :]].astype(np.float64)
    return E - E.max(axis=1, keepdims=True)


def normalize_llrs(llrs: NDArray[np.float64]) -> NDArray[np.float64]:
    """Scale the LLR vector to variance 24, the operating point the LDPC decoder expects."""
    x = np.asarray(llrs, dtype=np.float64)
    var = float(np.var(x))
    if not np.isfinite(var) or var <= 0.0:
        return x.copy()
    return x * np.sqrt(LLR_VARIANCE / var)


def candidate_llrs(spec: Spectrogram, cand: Candidate, method: str = "max") -> NDArray[np.float64]:
    """The 174 codeword LLRs for one candidate, in codeword bit order."""
    E = extract_tone_energies(spec, cand)
    return normalize_llrs(symbol_llrs(E, method).reshape(-1))


def _noise_power(
    spec: Spectrogram,
    cand: Candidate,
    rows: NDArray[np.int64],
    band_hz: Optional[Tuple[float, float]],
) -> float:
    """Mean noise power per bin on ``rows``, from the bins around the candidate."""
    lo, hi = 1, spec.num_bins
    if band_hz is not None:
        lo = max(lo, int(math.ceil(band_hz[0] / spec.bin_hz)))
        hi = min(hi, int(math.floor(band_hz[1] / spec.bin_hz)) + 1)
    cols = np.arange(lo, hi)
    guard = spec.freq_osr
    sig_lo = cand.freq_offset - guard
    sig_hi = cand.freq_offset + FSK_TONES * spec.freq_osr + guard
    cols = cols[(cols < sig_lo) | (cols >= sig_hi)]
    if cols.size == 0:
        raise ValueError("no bins outside the candidate to measure noise from")
    # Noise-only bin power is exponential, so its mean is median / ln 2
    med_db = float(np.median(spec.mag_db[rows[:, None], cols[None, :]]))
    return 10.0 ** (med_db / 10.0) / math.log(2.0)


def estimate_snr(
    spec: Spectrogram,
    cand: Candidate,
    tones,
    band_hz: Optional[Tuple[float, float]] = None,
) -> float:
    """
    SNR in the 2500 Hz reference bandwidth, in dB.

    Signal is the mean power at the transmitted tone of each symbol. Noise is
    the median power over the same rows across ``band_hz`` (the whole spectrum
    when None), leaving out the candidate's own bins. The median keeps other
    transmissions in the band from inflating the noise figure.
    """
    t = np.asarray(tones, dtype=np.int64)
    if t.shape != (NN,):
        raise ValueError(f"tones must have shape ({NN},), got {t.shape}")
    rows, _ = _tone_grid(spec, cand, np.arange(NN))
    sig_cols = cand.freq_offset + t * spec.freq_osr
    p_sig = np.mean(10.0 ** (spec.mag_db[rows, sig_cols].astype(np.float64) / 10.0))
    p_noise = _noise_power(spec, cand, rows, band_hz)
    ratio = max(p_sig / max(p_noise, 1e-30) - 1.0, 1e-6)
    # Tone and noise bins share the window scale, so only the symbol confinement needs undoing
    gain = _symbol_power_fraction(spec.nfft, spec.symbol_samples)
    snr = (
        10.0 * np.log10(ratio)
        - 10.0 * np.log10(gain)
        - 10.0 * np.log10(SNR_REFERENCE_BW_HZ / (_HANN_ENBW_BINS * spec.bin_hz))
    )
    return float(np.clip(snr, _SNR_MIN_DB, _SNR_MAX_DB))
