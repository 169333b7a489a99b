from __future__ import annotations

"""
Callsign hashes.

Several message types carry a callsign as a 10, 12 or 22-bit hash instead of
in full. A hash can only be turned back into a callsign by a receiver that has
already seen that callsign in full, so decoders keep a table of recent calls.
"""

import threading
from typing import Dict, Iterable, Optional

# Characters of a callsign as seen by the hash
CHARS_HASH = " 0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ/"
HASH_CALL_CHARS = 11
HASH_MULTIPLIER = 47055833459
HASH_SIZES = (10, 12, 22)
_MASK64 = (1 << 64) - 1
# Rendering of a hash that is not in the table
HASHED_CALL = "<...>"


def hash_call(callsign: str, bits: int) -> int:
    """Return the ``bits``-wide hash (10, 12 or 22) of a callsign."""
    if bits not in HASH_SIZES:
        raise ValueError(f"hash size must be one of {HASH_SIZES}, got {bits}")
    call = callsign.strip().upper()
    if not call or len(call) > HASH_CALL_CHARS or any(c not in CHARS_HASH for c in call):
        raise ValueError(f"cannot hash callsign: {callsign!r}")
    x = 0
    for c in call.ljust(HASH_CALL_CHARS):
        x = 38 * x + CHARS_HASH.index(c)
    x = (x & _MASK64) * HASH_MULTIPLIER & _MASK64
    return x >> (64 - bits)


def is_hashed(callsign: str) -> bool:
    """True for a callsign written as a hash reference, ``<K1ABC>`` or ``<...>``."""
    return len(callsign) > 2 and callsign[0] == "<" and callsign[-1] == ">"


def bracket(callsign: Optional[str]) -> str:
    """Render a hash reference; None (not in the table) renders as ``<...>``."""
    return f"<{callsign}>" if callsign else HASHED_CALL


def unbracket(callsign: str) -> str:
    """``<K1ABC>`` -> ``K1ABC``. Raises ValueError for ``<...>`` or a plain call."""
    if not is_hashed(callsign) or callsign == HASHED_CALL:
        raise ValueError(f"not a resolvable hash reference: {callsign!r}")
    return callsign[1:-1]


class CallsignHashes:
    """Table of callsigns seen in full, looked up by any of their hashes.

    Lookups may run from several decoder threads while calls are added.
    """

    def __init__(self, calls: Iterable[str] = ()) -> None:
        self._lock = threading.Lock()
        self._tables: Dict[int, Dict[int, str]] = {bits: {} for bits in HASH_SIZES}
        for call in calls:
            self.add(call)

    def __len__(self) -> int:
        return len(self._tables[22])

    def __contains__(self, callsign: str) -> bool:
        try:
            h = hash_call(callsign, 22)
        except ValueError:
            return False
        return self._tables[22].get(h) == callsign.strip().upper()

    def add(self, callsign: str) -> bool:
        """Remember a callsign; returns False when it cannot be hashed."""
        call = callsign.strip().upper()
        try:
            hashes = {bits: hash_call(call, bits) for bits in HASH_SIZES}
        except ValueError:
            return False
        with self._lock:
            for bits, h in hashes.items():
                self._tables[bits][h] = call
        return True

    def lookup(self, value: int, bits: int) -> Optional[str]:
        if bits not in HASH_SIZES:
            raise ValueError(f"hash size must be one of {HASH_SIZES}, got {bits}")
        with self._lock:
            return self._tables[bits].get(value)
