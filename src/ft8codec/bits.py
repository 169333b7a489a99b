from __future__ import annotations

import numpy as np
from numpy.typing import NDArray


def int_to_bits(value: int, width: int) -> NDArray[np.uint8]:
    """Return ``value`` as an MSB-first array of ``width`` bits."""
    if value < 0 or value >> width:
        raise ValueError(f"value {value} does not fit in {width} bits")
    return np.array([(value >> (width - 1 - i)) & 1 for i in range(width)], dtype=np.uint8)


def bits_to_int(bits: NDArray[np.uint8]) -> int:
    """Interpret an MSB-first bit array as an unsigned integer."""
    value = 0
    for b in bits:
        value = (value << 1) | (int(b) & 1)
    return value


def as_bit_array(bits, length: int, name: str = "bits") -> NDArray[np.uint8]:
    """Validate a fixed-width bit sequence and return it as a uint8 array."""
    arr = np.asarray(bits)
    if arr.ndim != 1 or arr.shape[0] != length:
        raise ValueError(f"{name} must be a 1-D sequence of {length} bits, got shape {arr.shape}")
    arr = arr.astype(np.uint8, copy=False)
    if np.any(arr > 1):
        raise ValueError(f"{name} must only contain 0/1 values")
    return arr
