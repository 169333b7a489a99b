from __future__ import annotations

import numpy as np

from ..api import message_tones
from ..synth import place_in_slot, synthesize_ft8_audio
from .channel import mix_signals


def make_clean_signal(
	text: str,
	sample_rate_hz: float,
	base_freq_hz: float,
) -> tuple[np.ndarray, np.ndarray]:
	"""Synthesize one clean transmission and return (audio, tones).

	- audio: float32 time series, 79 symbols long
	- tones: int32 array of length 79 with tone indices 0..7
	"""
	tones = message_tones(text)
	x = synthesize_ft8_audio(tones, sample_rate_hz, base_freq_hz)
	return x, tones


def make_slot(
	texts_and_freqs: list[tuple[str, float]],
	sample_rate_hz: float = 12000.0,
	start_s: float = 0.5,
	gains_db: list[float] | None = None,
) -> np.ndarray:
	"""A 15 s slot holding each (text, tone-0 frequency) transmission, all starting at ``start_s``."""
	slots = [
		place_in_slot(make_clean_signal(text, sample_rate_hz, f)[0], sample_rate_hz, start_s=start_s)
		for text, f in texts_and_freqs
	]
	return mix_signals(slots, gains_db if gains_db is not None else [0.0] * len(slots))
