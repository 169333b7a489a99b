from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
import numpy as np
from numpy.typing import NDArray

from .constants import LDPC_K, LDPC_M, LDPC_N
from .errors import ConfigurationError, FecNotConvergedError
from .ldpc_tables import ParityGraph, get_parity_graph

ALGORITHMS = ("sum-product", "min-sum")
# Keeps atanh finite when every incoming message is saturated
_TANH_CLIP = 0.999999


@dataclass(frozen=True)
class BeliefPropagationConfig:
    max_iterations: int = 30
    algorithm: str = "sum-product"
    min_sum_scale: float = 0.75
    damping: float = 0.0
    # Stop after this many iterations without fewer unsatisfied checks (0 disables)
    early_stop_no_improve: int = 0

    def validate(self) -> None:
        if self.max_iterations < 1:
            raise ConfigurationError("max_iterations must be >= 1")
        if self.algorithm not in ALGORITHMS:
            raise ConfigurationError(f"algorithm must be one of {ALGORITHMS}, got {self.algorithm!r}")
        if not 0.0 < self.min_sum_scale <= 1.0:
            raise ConfigurationError("min_sum_scale must be in (0, 1]")
        if not 0.0 <= self.damping < 1.0:
            raise ConfigurationError("damping must be in [0, 1)")
        if self.early_stop_no_improve < 0:
            raise ConfigurationError("early_stop_no_improve must be >= 0")


@dataclass(frozen=True)
class FecResult:
    codeword: NDArray[np.uint8]
    iterations: int
    confidence: float

    @property
    def a91(self) -> NDArray[np.uint8]:
        """Payload plus CRC (the systematic part of the codeword)."""
        return self.codeword[:LDPC_K]


def _unsatisfied(bits: NDArray[np.uint8], graph: ParityGraph) -> int:
    b = np.where(graph.nm_valid, bits[np.maximum(graph.nm, 0)], 0)
    return int(np.count_nonzero(b.sum(axis=1) & 1))


def _check_update_sum_product(v2c: NDArray[np.float64], valid: NDArray[np.bool_]) -> NDArray[np.float64]:
    t = np.where(valid, np.tanh(0.5 * v2c), 1.0)
    # Leave-one-out product along each check row via prefix and suffix products
    ones = np.ones((t.shape[0], 1))
    prefix = np.cumprod(np.hstack([ones, t[:, :-1]]), axis=1)
    suffix = np.cumprod(np.hstack([ones, t[:, :0:-1]]), axis=1)[:, ::-1]
    excl = np.clip(prefix * suffix, -_TANH_CLIP, _TANH_CLIP)
    return 2.0 * np.arctanh(excl)


def _check_update_min_sum(v2c: NDArray[np.float64], valid: NDArray[np.bool_], scale: float) -> NDArray[np.float64]:
    sign = np.where(v2c < 0, -1.0, 1.0)
    sign = np.where(valid, sign, 1.0)
    mag = np.where(valid, np.abs(v2c), np.inf)
    row_sign = np.prod(sign, axis=1, keepdims=True)
    order = np.argsort(mag, axis=1)
    rows = np.arange(mag.shape[0])
    min1 = mag[rows, order[:, 0]][:, None]
    min2 = mag[rows, order[:, 1]][:, None]
    cols = np.arange(mag.shape[1])[None, :]
    excl_min = np.where(cols == order[:, :1], min2, min1)
    return scale * row_sign * sign * excl_min


def decode174(llrs, config: Optional[BeliefPropagationConfig] = None) -> FecResult:
    """
    Iterative LDPC(174,91) decoder over the fixed Tanner graph.

    ``llrs`` are channel log-likelihood ratios, positive meaning bit 0. Iteration 1
    is the hard decision on the channel values; each further iteration runs one
    round of check and variable updates and re-tests all 83 parity checks.

    Returns FecResult on success, raises FecNotConvergedError when the iteration
    budget is exhausted (carrying the lowest unsatisfied-check count seen).
    """
    cfg = config or BeliefPropagationConfig()
    cfg.validate()
    llr = np.asarray(llrs, dtype=np.float64)
    if llr.shape != (LDPC_N,):
        raise ValueError(f"llrs must have shape ({LDPC_N},), got {llr.shape}")
    if not np.all(np.isfinite(llr)):
        raise ValueError("llrs must be finite")

    graph = get_parity_graph()
    nm_idx = np.maximum(graph.nm, 0)
    valid = graph.nm_valid
    slots = graph.edge_slot

    c2v = np.zeros((LDPC_M, graph.nm.shape[1]), dtype=np.float64)
    best_unsat = LDPC_M + 1
    no_improve = 0
    iterations = 0

    for it in range(1, cfg.max_iterations + 1):
        iterations = it
        total = llr + c2v.ravel()[slots].sum(axis=1)
        bits = (total < 0).astype(np.uint8)
        unsat = _unsatisfied(bits, graph)
        if unsat == 0:
            confidence = 1.0 - (it - 1) / cfg.max_iterations
            return FecResult(codeword=bits, iterations=it, confidence=confidence)
        if unsat < best_unsat:
            best_unsat = unsat
            no_improve = 0
        else:
            no_improve += 1
            if cfg.early_stop_no_improve and no_improve >= cfg.early_stop_no_improve:
                break
        if it == cfg.max_iterations:
            break

        # Variable -> check: everything the bit knows except what this check told it
        v2c = np.where(valid, total[nm_idx] - c2v, 0.0)
        if cfg.algorithm == "min-sum":
            new = _check_update_min_sum(v2c, valid, cfg.min_sum_scale)
        else:
            new = _check_update_sum_product(v2c, valid)
        if cfg.damping > 0.0:
            new = (1.0 - cfg.damping) * new + cfg.damping * c2v
        c2v = np.where(valid, new, 0.0)

    raise FecNotConvergedError(best_unsat, iterations)
