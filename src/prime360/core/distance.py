"""Nearest-candidate search for primes.

A CandidateSet is built once per scale from both candidate families and is
shared read-only by every evaluation of that scale, including across worker
processes (it pickles as two plain tuples).
"""

from __future__ import annotations

from bisect import bisect_left, bisect_right
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Sequence

from prime360.config import TOLERANCE
from prime360.errors import InternalComputationError


class CandidateFamily(Enum):
    """Origin of a candidate value."""
    DIVISOR = "divisor"
    SEQUENCE = "sequence"

    @property
    def rank(self) -> int:
        # Divisors win ties
        return 0 if self is CandidateFamily.DIVISOR else 1


@dataclass(frozen=True)
class Candidate:
    """A value a prime's distance is measured against.

    Attributes:
        family: Which candidate family produced the value.
        value: The candidate itself.
        index: Cofactor m*360 // value for divisors, 1-based term index
            for sequence terms.
    """
    family: CandidateFamily
    value: int
    index: int

    def sort_key(self) -> tuple[int, int]:
        return (self.value, self.family.rank)

    def to_dict(self) -> dict[str, Any]:
        return {'family': self.family.value, 'value': self.value, 'index': self.index}


@dataclass(frozen=True)
class PrimeRecord:
    """Outcome of measuring one prime against its scale's candidates."""
    prime: int
    distance: int
    candidate: Candidate
    within_tolerance: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            'prime': self.prime,
            'distance': self.distance,
            'candidate': self.candidate.to_dict(),
            'within_tolerance': self.within_tolerance,
        }


class CandidateSet:
    """Immutable, sorted union of divisor and sequence candidates."""

    __slots__ = ("_candidates", "_values")

    def __init__(self, candidates: Iterable[Candidate]):
        ordered = sorted(set(candidates), key=Candidate.sort_key)
        if not ordered:
            raise InternalComputationError("candidate set is empty")
        self._candidates: tuple[Candidate, ...] = tuple(ordered)
        self._values: tuple[int, ...] = tuple(c.value for c in ordered)

    @classmethod
    def from_families(
        cls,
        divisors: Iterable[Candidate],
        sequence: Iterable[Candidate],
    ) -> "CandidateSet":
        """Combine both families; neither may be evaluated on its own."""
        divisors = list(divisors)
        sequence = list(sequence)
        for c in divisors:
            if c.family is not CandidateFamily.DIVISOR:
                raise InternalComputationError(f"{c} is not a divisor candidate")
        for c in sequence:
            if c.family is not CandidateFamily.SEQUENCE:
                raise InternalComputationError(f"{c} is not a sequence candidate")
        return cls(divisors + sequence)

    def __len__(self) -> int:
        return len(self._candidates)

    def __iter__(self):
        return iter(self._candidates)

    def __getstate__(self):
        return (self._candidates, self._values)

    def __setstate__(self, state):
        self._candidates, self._values = state

    def count(self, family: CandidateFamily) -> int:
        return sum(1 for c in self._candidates if c.family is family)

    def _group(self, value: int) -> Sequence[Candidate]:
        left = bisect_left(self._values, value)
        right = bisect_right(self._values, value)
        return self._candidates[left:right]

    def nearest(self, p: int) -> tuple[Candidate, int]:
        """Return the candidate closest to p and its distance.

        Ties prefer the divisor family, then the smaller value.
        """
        i = bisect_left(self._values, p)
        contenders: list[Candidate] = []
        if i < len(self._values):
            contenders.extend(self._group(self._values[i]))
        if i > 0:
            contenders.extend(self._group(self._values[i - 1]))

        best = min(
            contenders,
            key=lambda c: (abs(p - c.value), c.family.rank, c.value),
        )
        return best, abs(p - best.value)


def nearest_candidate(p: int, candidates: CandidateSet) -> tuple[Candidate, int]:
    """Find the candidate minimizing |p - candidate|."""
    return candidates.nearest(p)


def evaluate_prime(p: int, candidates: CandidateSet, tolerance: int = TOLERANCE) -> PrimeRecord:
    """Measure one prime against its scale's candidate set."""
    candidate, distance = candidates.nearest(p)
    if distance < 0:
        raise InternalComputationError(f"negative distance {distance} for prime {p}")
    return PrimeRecord(
        prime=p,
        distance=distance,
        candidate=candidate,
        within_tolerance=distance <= tolerance,
    )


def evaluate_batch(
    primes: Sequence[int],
    candidates: CandidateSet,
    tolerance: int = TOLERANCE,
) -> list[PrimeRecord]:
    """Evaluate a batch of primes; the unit of work for worker processes."""
    return [evaluate_prime(p, candidates, tolerance) for p in primes]
