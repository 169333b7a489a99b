from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
import numpy as np

from .constants import NN, PAYLOAD_BITS, SYMBOL_PERIOD_S
from .callsigns import CallsignHashes
from .crc import crc14_check
from .demod import LLR_METHODS, candidate_llrs, estimate_snr
from .errors import ConfigurationError, FecNotConvergedError, MalformedPayloadError
from .ldpc import BeliefPropagationConfig, decode174
from .locator import grid_to_latlon
from .message import Message
from .sync import Candidate, SearchConfig, find_candidates
from .tones import tones_from_codeword
from .unpack import unpack
from .waterfall import Spectrogram, compute_spectrogram

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DecoderConfig:
	search: SearchConfig = field(default_factory=SearchConfig)
	ldpc: BeliefPropagationConfig = field(default_factory=BeliefPropagationConfig)
	time_osr: int = 2
	freq_osr: int = 2
	llr_method: str = "max"
	workers: int = 1
	# Wall-clock budget for candidate processing; None decodes every candidate
	time_budget_s: Optional[float] = None

	def validate(self) -> None:
		self.search.validate()
		self.ldpc.validate()
		if self.time_osr < 1 or self.freq_osr < 1:
			raise ConfigurationError("oversampling factors must be >= 1")
		if self.llr_method not in LLR_METHODS:
			raise ConfigurationError(f"llr_method must be one of {LLR_METHODS}, got {self.llr_method!r}")
		if self.workers < 1:
			raise ConfigurationError("workers must be >= 1")
		if self.time_budget_s is not None and self.time_budget_s <= 0:
			raise ConfigurationError("time_budget_s must be positive")


@dataclass(frozen=True)
class DecodedMessage:
	message: Message
	text: str
	crc_ok: bool
	confidence: float
	# Start of the first Costas symbol relative to the buffer start
	time_offset_s: float
	# Frequency of tone 0
	frequency_hz: float
	snr_db: float
	sync_score: float
	ldpc_iterations: int

	@property
	def grid(self) -> Optional[str]:
		return self.message.grid

	@property
	def location(self) -> Optional[Tuple[float, float]]:
		"""(lat, lon) of the centre of the reported grid square, if any."""
		g = self.grid
		return grid_to_latlon(g) if g else None


def decode_candidate(
	spec: Spectrogram,
	cand: Candidate,
	config: DecoderConfig,
	hashes: Optional[CallsignHashes] = None,
) -> Optional[DecodedMessage]:
	"""Demodulate, FEC-decode, CRC-check and unpack one candidate.

	Returns None when the candidate does not yield a valid message. Hashed
	callsigns are resolved from ``hashes`` when given.
	"""
	llrs = candidate_llrs(spec, cand, config.llr_method)
	try:
		fec = decode174(llrs, config.ldpc)
	except FecNotConvergedError as e:
		logger.debug("candidate t=%d f=%d: %s", cand.time_offset, cand.freq_offset, e)
		return None
	a91 = fec.a91
	if not crc14_check(a91):
		logger.debug("candidate t=%d f=%d: CRC mismatch", cand.time_offset, cand.freq_offset)
		return None
	try:
		message = unpack(a91[:PAYLOAD_BITS], hashes)
	except MalformedPayloadError as e:
		logger.debug("candidate t=%d f=%d: %s", cand.time_offset, cand.freq_offset, e)
		return None

	band = (config.search.freq_min_hz, config.search.freq_max_hz)
	snr_db = estimate_snr(spec, cand, tones_from_codeword(fec.codeword), band)
	return DecodedMessage(
		message=message,
		text=message.text,
		crc_ok=True,
		confidence=float(fec.confidence),
		time_offset_s=spec.time_of(cand.time_offset),
		frequency_hz=spec.freq_of(cand.freq_offset),
		snr_db=snr_db,
		sync_score=float(cand.score),
		ldpc_iterations=int(fec.iterations),
	)


def _dedupe(decodes: List[DecodedMessage]) -> List[DecodedMessage]:
	best: Dict[str, DecodedMessage] = {}
	for d in decodes:
		prev = best.get(d.text)
		if prev is None or (d.confidence, d.sync_score) > (prev.confidence, prev.sync_score):
			best[d.text] = d
	return sorted(
		best.values(),
		key=lambda d: (-d.confidence, -d.sync_score, d.time_offset_s, d.frequency_hz, d.text),
	)


def _run_serial(spec: Spectrogram, candidates: List[Candidate], config: DecoderConfig, deadline: Optional[float], hashes: Optional[CallsignHashes]) -> List[Optional[DecodedMessage]]:
	out: List[Optional[DecodedMessage]] = []
	for i, cand in enumerate(candidates):
		if deadline is not None and time.monotonic() > deadline:
			logger.info("time budget exhausted, %d of %d candidates skipped", len(candidates) - i, len(candidates))
			break
		out.append(decode_candidate(spec, cand, config, hashes))
	return out


def _run_pool(spec: Spectrogram, candidates: List[Candidate], config: DecoderConfig, deadline: Optional[float], hashes: Optional[CallsignHashes]) -> List[Optional[DecodedMessage]]:
	out: List[Optional[DecodedMessage]] = []
	with ThreadPoolExecutor(max_workers=config.workers) as pool:
		futures = [pool.submit(decode_candidate, spec, cand, config, hashes) for cand in candidates]
		for i, fut in enumerate(futures):
			if deadline is not None and time.monotonic() > deadline:
				cancelled = sum(f.cancel() for f in futures[i:])
				logger.info("time budget exhausted, %d of %d candidates cancelled", cancelled, len(candidates))
				# Keep whatever already finished
				out.extend(f.result() for f in futures[i:] if f.done() and not f.cancelled())
				break
			out.append(fut.result())
	return out


def decode_block(
	samples: np.ndarray,
	sample_rate_hz: float,
	config: Optional[DecoderConfig] = None,
	hashes: Optional[CallsignHashes] = None,
) -> List[DecodedMessage]:
	"""
	Decode every FT8 transmission found in an audio buffer.

	The buffer must hold at least one full 79-symbol frame. Results are unique
	by text, sorted by confidence, then sync score, then time and frequency.
	Only configuration and buffer errors are raised; candidates that fail
	demodulation, FEC or CRC are dropped.

	When a ``hashes`` table is given, hashed callsigns are looked up in it and
	every callsign decoded in full is added to it for later blocks.
	"""
	cfg = config or DecoderConfig()
	cfg.validate()
	x = np.asarray(samples, dtype=np.float64)
	if x.ndim != 1:
		raise ValueError("samples must be mono (1-D)")
	symbol_samples = int(round(sample_rate_hz * SYMBOL_PERIOD_S))
	if symbol_samples % cfg.time_osr:
		raise ConfigurationError(
			f"time_osr={cfg.time_osr} does not divide the {symbol_samples}-sample symbol at {sample_rate_hz:g} Hz"
		)
	frame_samples = symbol_samples * NN
	if x.size < frame_samples:
		raise ValueError(f"buffer of {x.size} samples is shorter than one FT8 frame ({frame_samples})")

	spec = compute_spectrogram(x, sample_rate_hz, cfg.time_osr, cfg.freq_osr)
	candidates = find_candidates(spec, cfg.search)

	deadline = None if cfg.time_budget_s is None else time.monotonic() + cfg.time_budget_s
	if cfg.workers > 1 and len(candidates) > 1:
		decoded = _run_pool(spec, candidates, cfg, deadline, hashes)
	else:
		decoded = _run_serial(spec, candidates, cfg, deadline, hashes)

	results = _dedupe([d for d in decoded if d is not None])
	if hashes is not None:
		learned = sum(hashes.add(call) for d in results for call in d.message.callsigns)
		logger.debug("hash table: %d callsigns added, %d known", learned, len(hashes))
	logger.info("decoded %d messages from %d candidates", len(results), len(candidates))
	return results
