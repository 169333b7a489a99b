from __future__ import annotations
import numpy as np
from numpy.typing import NDArray

from .bits import as_bit_array, int_to_bits, bits_to_int
from .constants import CRC14_POLY, CRC_BITS, PAYLOAD_BITS, LDPC_K

# FT8 uses CRC-14 with polynomial x^14 + x^13 + x^12 + x^11 + x^8 + x^6 + x^5 + x^4 + x^2 + x + 1
CRC14_MASK = (1 << CRC_BITS) - 1
# The payload is zero-extended to 82 bits before the CRC is taken
CRC_PAD_BITS = 5


def crc14(bits_77) -> int:
    """
    FT8 CRC-14 over 82 bits: the 77-bit payload zero-extended by 5 zero bits, MSB-first.
    Returns the 14-bit CRC value as an int.
    """
    payload = as_bit_array(bits_77, PAYLOAD_BITS, "payload")
    reg: int = 0
    total_bits = PAYLOAD_BITS + CRC_PAD_BITS
    for i in range(total_bits):
        bit = int(payload[i]) if i < PAYLOAD_BITS else 0
        reg ^= (bit & 1) << 13
        feedback = (reg >> 13) & 1
        reg = ((reg << 1) & CRC14_MASK)
        if feedback:
            reg ^= CRC14_POLY
    return reg & CRC14_MASK


def compute(bits_77) -> NDArray[np.uint8]:
    """Return the 14 CRC bits (MSB-first) for a 77-bit payload."""
    return int_to_bits(crc14(bits_77), CRC_BITS)


def verify(bits_77, crc_bits) -> bool:
    """Return True if ``crc_bits`` is the CRC-14 of ``bits_77``."""
    crc_arr = as_bit_array(crc_bits, CRC_BITS, "crc_bits")
    return crc14(bits_77) == bits_to_int(crc_arr)


def append_crc(bits_77) -> NDArray[np.uint8]:
    """Return the 91-bit [payload | CRC] block fed to the LDPC encoder."""
    payload = as_bit_array(bits_77, PAYLOAD_BITS, "payload")
    return np.concatenate([payload, compute(payload)]).astype(np.uint8)


def crc14_check(bits_with_crc) -> bool:
    """Return True if CRC-14 over payload equals appended 14-bit CRC (MSB-first)."""
    a91 = as_bit_array(bits_with_crc, LDPC_K, "bits_with_crc")
    return verify(a91[:PAYLOAD_BITS], a91[PAYLOAD_BITS:])
