from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from .bits import as_bit_array
from .constants import LDPC_K, LDPC_N
from .ldpc_tables import get_generator, get_parity_graph


def encode174(a91_bits) -> NDArray[np.uint8]:
    """Encode 91 payload+CRC bits to a 174-bit codeword.

    codeword = [a91_bits (K bits)] + [parity (M bits)], parity[i] = sum(G[i,j]*a91[j]) mod 2
    """
    a = as_bit_array(a91_bits, LDPC_K, "a91_bits")
    G = get_generator()
    p = (G.astype(np.int64) @ a.astype(np.int64)) % 2
    return np.concatenate([a, p.astype(np.uint8)])


def syndrome(codeword) -> NDArray[np.uint8]:
    """Return the parity of each of the 83 checks (0 = satisfied)."""
    cw = as_bit_array(codeword, LDPC_N, "codeword")
    graph = get_parity_graph()
    bits = np.where(graph.nm_valid, cw[np.maximum(graph.nm, 0)], 0)
    return (bits.sum(axis=1) % 2).astype(np.uint8)


def count_unsatisfied(codeword) -> int:
    return int(syndrome(codeword).sum())
