# Expose key helpers for external import convenience
from .channel import apply_awgn, mix_signals
from .signals import make_clean_signal, make_slot

__all__ = [
    "apply_awgn",
    "mix_signals",
    "make_clean_signal",
    "make_slot",
]
