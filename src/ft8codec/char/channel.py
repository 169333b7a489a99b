from __future__ import annotations

"""Channel simulation for characterisation and tests."""

import numpy as np

from ..demod import SNR_REFERENCE_BW_HZ


def apply_awgn(x: np.ndarray, snr_db: float, rng: np.random.Generator, sample_rate_hz: float = 12000.0) -> np.ndarray:
	"""Add white Gaussian noise for a target SNR in the 2500 Hz reference bandwidth.

	The noise fills the whole band up to Nyquist, so its total power is scaled by
	(sample_rate_hz / 2) / 2500 relative to the in-band figure.
	Returns a float32 array peak-normalized to 1.
	"""
	xp = x.astype(np.float64, copy=False)
	p_sig = float(np.mean(xp * xp)) if xp.size else 1.0
	if not np.isfinite(p_sig) or p_sig <= 0.0:
		p_sig = 1.0
	p_noise = p_sig / (10.0 ** (snr_db / 10.0)) * (sample_rate_hz / 2.0) / SNR_REFERENCE_BW_HZ
	n = rng.normal(0.0, np.sqrt(p_noise), size=xp.shape)
	return _peak_normalize(xp + n)


def mix_signals(signals: list[np.ndarray], gains_db: list[float]) -> np.ndarray:
	"""Mix multiple time-aligned signals with per-signal gain in dB.

	Shorter signals are zero-padded implicitly by slicing.
	"""
	if len(signals) != len(gains_db):
		raise ValueError("need one gain per signal")
	if not signals:
		return np.zeros(0, dtype=np.float32)
	max_len = max(int(s.size) for s in signals)
	acc = np.zeros(max_len, dtype=np.float64)
	for s, gdb in zip(signals, gains_db):
		g = 10.0 ** (float(gdb) / 20.0)
		acc[:s.size] += g * s.astype(np.float64)
	return _peak_normalize(acc)


def _peak_normalize(y: np.ndarray) -> np.ndarray:
	peak = float(np.max(np.abs(y))) if y.size else 1.0
	if not np.isfinite(peak) or peak <= 1e-12:
		peak = 1.0
	return (y / peak).astype(np.float32)
