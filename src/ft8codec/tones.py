from __future__ import annotations

from typing import Tuple
import numpy as np
from numpy.typing import NDArray
from scipy.special import logsumexp

from .bits import as_bit_array
from .constants import (
    BITS_PER_SYMBOL,
    DATA_SYMBOL_POSITIONS,
    FSK_TONES,
    FT8_COSTAS_PATTERN,
    FT8_GRAY_MAP,
    LDPC_N,
    NN,
    NUM_SYNC,
    SYNC_OFFSET,
)

GRAY_MAP = np.array(FT8_GRAY_MAP, dtype=np.int32)
# Tone index -> binary index (inverse Gray map)
INV_GRAY_MAP = np.argsort(GRAY_MAP).astype(np.int32)
DATA_POSITIONS = np.array(DATA_SYMBOL_POSITIONS, dtype=np.int64)
LLR_METHODS = ("max", "sum")

# Bit grouping in Gray-index space j in [0..7]: (indices with bit=0, indices with bit=1)
BIT_GROUPS: Tuple[Tuple[Tuple[int, ...], Tuple[int, ...]], ...] = (
    ((0, 1, 2, 3), (4, 5, 6, 7)),  # b2
    ((0, 1, 4, 5), (2, 3, 6, 7)),  # b1
    ((0, 2, 4, 6), (1, 3, 5, 7)),  # b0
)


def tones_from_codeword(codeword_bits) -> NDArray[np.int32]:
    """Map 174 bits into 79 FT8 tones with Costas sync blocks.
    Data layout: S7 D29 S7 D29 S7, each data symbol maps 3 bits (MSB first) via Gray map.
    """
    cw = as_bit_array(codeword_bits, LDPC_N, "codeword")
    tones = np.zeros(NN, dtype=np.int32)
    for m in range(NUM_SYNC):
        tones[m * SYNC_OFFSET:m * SYNC_OFFSET + len(FT8_COSTAS_PATTERN)] = FT8_COSTAS_PATTERN
    triads = cw.reshape(-1, BITS_PER_SYMBOL).astype(np.int32)
    idx = (triads[:, 0] << 2) | (triads[:, 1] << 1) | triads[:, 2]
    tones[DATA_POSITIONS] = GRAY_MAP[idx]
    return tones


def codeword_from_tones(tones) -> NDArray[np.uint8]:
    """Inverse of ``tones_from_codeword``: read the 174 bits back from the 58 data tones."""
    t = np.asarray(tones, dtype=np.int64)
    if t.shape != (NN,):
        raise ValueError(f"tones must have shape ({NN},), got {t.shape}")
    if np.any((t < 0) | (t >= FSK_TONES)):
        raise ValueError("tone indices must be in 0..7")
    idx = INV_GRAY_MAP[t[DATA_POSITIONS]]
    bits = np.stack([(idx >> 2) & 1, (idx >> 1) & 1, idx & 1], axis=1)
    return bits.reshape(-1).astype(np.uint8)


def has_costas(tones) -> bool:
    t = np.asarray(tones)
    return all(
        tuple(int(v) for v in t[m * SYNC_OFFSET:m * SYNC_OFFSET + len(FT8_COSTAS_PATTERN)]) == FT8_COSTAS_PATTERN
        for m in range(NUM_SYNC)
    )


def symbol_llrs(energies, method: str = "max") -> NDArray[np.float64]:
    """Per-symbol bit LLRs [n, 3] in (b2, b1, b0) order from tone energies [n, 8] in dB.

    Positive favours bit 0. "max" takes the strongest tone of each Gray group,
    "sum" sums the group powers (log-sum-exp in natural-log units).
    """
    if method not in LLR_METHODS:
        raise ValueError(f"unknown LLR method: {method!r}")
    E = np.asarray(energies, dtype=np.float64)
    # Gray-ordered energies s[:, j] = E[:, GRAY[j]]
    s = E[:, GRAY_MAP]
    if method == "sum":
        s = s * (np.log(10.0) / 10.0)
    out = np.empty((s.shape[0], len(BIT_GROUPS)), dtype=np.float64)
    for b, (zeros, ones) in enumerate(BIT_GROUPS):
        if method == "max":
            out[:, b] = s[:, list(zeros)].max(axis=1) - s[:, list(ones)].max(axis=1)
        else:
            out[:, b] = logsumexp(s[:, list(zeros)], axis=1) - logsumexp(s[:, list(ones)], axis=1)
    return out
