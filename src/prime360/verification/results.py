"""Per-scale results and the run summary."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from prime360.config import TOLERANCE
from prime360.errors import ScaleVerificationFailed

# Missed primes kept per violated scale
MAX_MISSED_REPORTED = 10


class ScaleStatus(Enum):
    """Outcome of verifying one scale."""
    PASSED = "passed"
    VIOLATED = "violated"
    FAILED = "failed"


@dataclass
class RangeResult:
    """Aggregated statistics for one scale m.

    Attributes:
        m: Scale factor.
        range_start: Exclusive lower bound, (m-1)*360.
        range_end: Inclusive upper bound, m*360.
        prime_count: Primes found in the range.
        checked_count: Primes actually evaluated (smaller when sampled).
        success_count: Evaluated primes within tolerance.
        max_distance: Largest nearest-candidate distance seen.
        exhaustive: False when only a sample was evaluated.
        strategy: Prime generation strategy used.
        status: PASSED, VIOLATED or FAILED.
        divisor_hits: Covered primes whose nearest candidate is a divisor.
        sequence_hits: Covered primes whose nearest candidate is a sequence term.
        missed_primes: Up to ten primes beyond tolerance.
        elapsed: Wall time in seconds; ignored when comparing results.
        error: Failure description for FAILED scales.
    """
    m: int
    range_start: int
    range_end: int
    prime_count: int = 0
    checked_count: int = 0
    success_count: int = 0
    max_distance: int = 0
    exhaustive: bool = True
    strategy: str = ""
    status: ScaleStatus = ScaleStatus.PASSED
    divisor_hits: int = 0
    sequence_hits: int = 0
    missed_primes: list[int] = field(default_factory=list)
    elapsed: float = field(default=0.0, compare=False)
    error: Optional[str] = None

    @classmethod
    def failed(
        cls,
        m: int,
        range_start: int,
        range_end: int,
        error: str,
        strategy: str = "",
        elapsed: float = 0.0,
    ) -> "RangeResult":
        return cls(
            m=m,
            range_start=range_start,
            range_end=range_end,
            exhaustive=False,
            strategy=strategy,
            status=ScaleStatus.FAILED,
            elapsed=elapsed,
            error=error,
        )

    @property
    def success_rate(self) -> float:
        if self.checked_count == 0:
            return 1.0 if self.status is ScaleStatus.PASSED else 0.0
        return self.success_count / self.checked_count

    @property
    def mode(self) -> str:
        if self.status is ScaleStatus.FAILED:
            return "failed"
        return "exhaustive" if self.exhaustive else "sampled"

    def to_dict(self) -> dict[str, Any]:
        return {
            'm': self.m,
            'range_start': self.range_start,
            'range_end': self.range_end,
            'prime_count': self.prime_count,
            'checked_count': self.checked_count,
            'success_count': self.success_count,
            'success_rate': self.success_rate,
            'max_distance': self.max_distance,
            'exhaustive': self.exhaustive,
            'strategy': self.strategy,
            'status': self.status.value,
            'divisor_hits': self.divisor_hits,
            'sequence_hits': self.sequence_hits,
            'missed_primes': list(self.missed_primes),
            'elapsed': self.elapsed,
            'error': self.error,
        }


@dataclass
class Summary:
    """Results of a run, ordered by scale.

    A sampled scale that passes is weaker evidence than an exhaustive one:
    it only shows the sampled primes were within tolerance.
    """
    results: list[RangeResult] = field(default_factory=list)
    interrupted: bool = False

    def add(self, result: RangeResult):
        """Record a finished scale, keeping results ordered by m."""
        self.results.append(result)
        if len(self.results) > 1 and self.results[-2].m > result.m:
            self.results.sort(key=lambda r: r.m)

    def __len__(self) -> int:
        return len(self.results)

    @property
    def violations(self) -> list[RangeResult]:
        return [r for r in self.results if r.status is ScaleStatus.VIOLATED]

    @property
    def failures(self) -> list[RangeResult]:
        return [r for r in self.results if r.status is ScaleStatus.FAILED]

    @property
    def sampled(self) -> list[RangeResult]:
        return [r for r in self.results
                if r.status is not ScaleStatus.FAILED and not r.exhaustive]

    @property
    def passed(self) -> bool:
        """True iff at least one scale ran and every scale passed."""
        return bool(self.results) and all(
            r.status is ScaleStatus.PASSED and r.max_distance <= TOLERANCE
            for r in self.results
        )

    @property
    def total_primes(self) -> int:
        return sum(r.prime_count for r in self.results)

    @property
    def total_checked(self) -> int:
        return sum(r.checked_count for r in self.results)

    @property
    def max_distance(self) -> int:
        return max((r.max_distance for r in self.results
                    if r.status is not ScaleStatus.FAILED), default=0)

    def raise_for_violations(self):
        """Raise ScaleVerificationFailed for the first violated scale, if any."""
        for r in self.violations:
            raise ScaleVerificationFailed(r.m, r.missed_primes, r.max_distance)

    def headline(self) -> dict[str, Any]:
        """Short summary for run metadata."""
        return {
            'result': "passed" if self.passed else "failed",
            'scales': len(self.results),
            'total_primes': self.total_primes,
            'max_distance': self.max_distance,
            'violations': len(self.violations),
            'failures': len(self.failures),
            'sampled': len(self.sampled),
            'interrupted': self.interrupted,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            'summary': self.headline(),
            'results': [r.to_dict() for r in self.results],
        }
