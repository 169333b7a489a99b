from __future__ import annotations

"""
Costas sync search over a spectrogram.

The score of a candidate (time step t, frequency bin f) compares, for each of
the 21 Costas symbols, the power of the expected tone against the neighbouring
tones in the same symbol and the same tone in the neighbouring sync symbols of
the block. Scores are averaged per comparison and expressed in dB, so a clean
signal scores tens of dB and noise scores around zero.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence
import numpy as np
from numpy.typing import NDArray
from scipy.ndimage import maximum_filter

from .constants import FSK_TONES, FT8_COSTAS_PATTERN, LENGTH_SYNC, NN, NUM_SYNC, SYNC_OFFSET
from .errors import ConfigurationError
from .waterfall import Spectrogram

logger = logging.getLogger(__name__)

# Tolerance when converting seconds/Hz to grid indices
_EPS = 1e-9


@dataclass(frozen=True)
class Candidate:
    # Spectrogram step of the first Costas symbol
    time_offset: int
    # Spectrogram bin of tone 0
    freq_offset: int
    # Sync score in dB
    score: float


@dataclass(frozen=True)
class SearchConfig:
    freq_min_hz: float = 100.0
    freq_max_hz: float = 3000.0
    time_min_s: float = 0.0
    # Latest allowed start of the first Costas symbol; None searches the whole buffer
    time_max_s: Optional[float] = None
    min_score: float = 5.0
    max_candidates: int = 120
    merge_time_steps: int = 1
    merge_freq_bins: int = 1

    def validate(self) -> None:
        if self.freq_min_hz < 0 or self.freq_max_hz <= self.freq_min_hz:
            raise ConfigurationError(f"invalid frequency range {self.freq_min_hz}-{self.freq_max_hz} Hz")
        if self.time_min_s < 0:
            raise ConfigurationError("time_min_s must be >= 0")
        if self.time_max_s is not None and self.time_max_s < self.time_min_s:
            raise ConfigurationError("time_max_s must be >= time_min_s")
        if self.max_candidates < 1:
            raise ConfigurationError("max_candidates must be >= 1")
        if self.merge_time_steps < 0 or self.merge_freq_bins < 0:
            raise ConfigurationError("merge tolerances must be >= 0")
        if not math.isfinite(self.min_score):
            raise ConfigurationError("min_score must be finite")


@dataclass(frozen=True)
class SearchRange:
    """Inclusive ranges of candidate start steps and tone-0 bins."""

    t_min: int
    t_max: int
    f_min: int
    f_max: int

    @property
    def shape(self) -> tuple[int, int]:
        return self.t_max - self.t_min + 1, self.f_max - self.f_min + 1


def resolve_search_range(spec: Spectrogram, config: SearchConfig) -> SearchRange:
    """Clamp the configured time/frequency window to what the spectrogram can hold.

    A candidate needs all 79 symbols inside the spectrogram and all 8 tones
    inside both the configured band and the available bins.
    """
    to, fo = spec.time_osr, spec.freq_osr
    t_min = int(math.ceil(config.time_min_s / spec.step_s - _EPS))
    t_max = spec.num_steps - 1 - (NN - 1) * to
    if config.time_max_s is not None:
        t_max = min(t_max, int(math.floor(config.time_max_s / spec.step_s + _EPS)))
    f_min = int(math.ceil(config.freq_min_hz / spec.bin_hz - _EPS))
    f_max = min(
        int(math.floor(config.freq_max_hz / spec.bin_hz + _EPS)) - (FSK_TONES - 1) * fo,
        spec.num_bins - 1 - (FSK_TONES - 1) * fo,
    )
    if t_max < t_min:
        raise ConfigurationError(
            f"empty time search range: steps {t_min}..{t_max} ({spec.num_steps} steps available)"
        )
    if f_max < f_min:
        raise ConfigurationError(f"empty frequency search range: bins {f_min}..{f_max}")
    return SearchRange(t_min=t_min, t_max=t_max, f_min=f_min, f_max=f_max)


def sync_score_grid(spec: Spectrogram, rng: SearchRange) -> NDArray[np.float64]:
    """Return sync scores [nt, nf] for every (t, f) in ``rng``, vectorised over the grid."""
    mag = spec.mag_db
    to, fo = spec.time_osr, spec.freq_osr
    nt, nf = rng.shape

    def plane(sym: int, tone: int) -> NDArray[np.float32]:
        t0 = rng.t_min + sym * to
        f0 = rng.f_min + tone * fo
        return mag[t0:t0 + nt, f0:f0 + nf]

    score = np.zeros((nt, nf), dtype=np.float64)
    num_terms = 0
    for m in range(NUM_SYNC):
        for k in range(LENGTH_SYNC):
            sym = SYNC_OFFSET * m + k
            sm = FT8_COSTAS_PATTERN[k]
            here = plane(sym, sm)
            if sm > 0:
                score += here - plane(sym, sm - 1)
                num_terms += 1
            if sm < FSK_TONES - 1:
                score += here - plane(sym, sm + 1)
                num_terms += 1
            if k > 0:
                score += here - plane(sym - 1, sm)
                num_terms += 1
            if k < LENGTH_SYNC - 1:
                score += here - plane(sym + 1, sm)
                num_terms += 1
    return score / num_terms


def merge_candidates(
    candidates: Sequence[Candidate],
    time_tolerance: int = 1,
    freq_tolerance: int = 1,
    limit: Optional[int] = None,
) -> List[Candidate]:
    """Greedy near-duplicate suppression.

    Candidates are ranked by score (descending), then time, then frequency. A
    candidate within both tolerances of an already kept one is dropped, so of
    two near-duplicates the higher-scoring survives.
    """
    ranked = sorted(candidates, key=lambda c: (-c.score, c.time_offset, c.freq_offset))
    kept: List[Candidate] = []
    for c in ranked:
        if limit is not None and len(kept) >= limit:
            break
        if any(
            abs(c.time_offset - k.time_offset) <= time_tolerance and abs(c.freq_offset - k.freq_offset) <= freq_tolerance
            for k in kept
        ):
            continue
        kept.append(c)
    return kept


def find_candidates(spec: Spectrogram, config: Optional[SearchConfig] = None) -> List[Candidate]:
    """
    Costas sync search over the configured window.

    Returns at most ``config.max_candidates`` candidates, strongest first. The
    result is a pure function of the spectrogram and the configuration.
    """
    cfg = config or SearchConfig()
    cfg.validate()
    rng = resolve_search_range(spec, cfg)
    score = sync_score_grid(spec, rng)

    peaks = maximum_filter(score, size=3, mode="constant", cval=-np.inf)
    ti, fi = np.nonzero((score >= peaks) & (score >= cfg.min_score))
    s = score[ti, fi]
    # Primary key last: score descending, then time, then frequency
    order = np.lexsort((fi, ti, -s))
    raw = [
        Candidate(time_offset=int(ti[i]) + rng.t_min, freq_offset=int(fi[i]) + rng.f_min, score=float(s[i]))
        for i in order
    ]
    kept = merge_candidates(raw, cfg.merge_time_steps, cfg.merge_freq_bins, limit=cfg.max_candidates)
    logger.debug(
        "sync search over %dx%d grid: %d local maxima above %.1f dB, %d kept",
        rng.shape[0], rng.shape[1], len(raw), cfg.min_score, len(kept),
    )
    return kept
