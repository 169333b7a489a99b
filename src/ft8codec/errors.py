"""Exception taxonomy for the FT8 codec.

Precondition violations (wrong buffer lengths, out-of-range indices) are plain
``ValueError``. The classes below cover configuration problems, which are
reported to callers, and per-candidate decode outcomes, which the decoder
handles internally.
"""


class Ft8Error(Exception):
    """Base class for codec errors."""


class ConfigurationError(Ft8Error):
    """Search or decoder configuration is invalid or yields an empty search space."""


class MalformedPayloadError(Ft8Error):
    """A 77-bit payload does not describe a supported, well-formed message."""


class FecNotConvergedError(Ft8Error):
    """Belief propagation exhausted its iteration budget with parity checks still failing."""

    def __init__(self, unsatisfied_checks: int, iterations: int):
        super().__init__(f"LDPC decode did not converge: {unsatisfied_checks} unsatisfied checks after {iterations} iterations")
        self.unsatisfied_checks = unsatisfied_checks
        self.iterations = iterations
