"""Exception hierarchy for pattern verification.

Only InvalidParameters aborts a whole run. ResourceExhausted is recovered
locally by switching strategy, and InternalComputationError is contained
to the scale that raised it.
"""

from __future__ import annotations


class Prime360Error(Exception):
    """Base class for all prime360 errors."""


class InvalidParameters(Prime360Error, ValueError):
    """Malformed or out-of-order run parameters."""


class ResourceExhausted(Prime360Error, MemoryError):
    """An exact enumeration would exceed the configured memory ceiling.

    Attributes:
        required: Estimated bytes the operation needs.
        limit: Configured ceiling in bytes.
    """

    def __init__(self, message: str, required: int = 0, limit: int = 0):
        super().__init__(message)
        self.required = required
        self.limit = limit


class InternalComputationError(Prime360Error, ArithmeticError):
    """Arithmetic or logic inconsistency while verifying a scale."""


class ScaleVerificationFailed(Prime360Error):
    """A prime lies farther than the tolerance from every candidate.

    This is a data finding rather than a system failure. The driver records
    it in the summary; callers that want to escalate can raise it through
    ``Summary.raise_for_violations``.
    """

    def __init__(self, m: int, missed_primes: list[int], max_distance: int):
        shown = ", ".join(str(p) for p in missed_primes[:10])
        super().__init__(
            f"Scale m={m}: max distance {max_distance} exceeds tolerance "
            f"(missed primes: {shown})"
        )
        self.m = m
        self.missed_primes = list(missed_primes)
        self.max_distance = max_distance
