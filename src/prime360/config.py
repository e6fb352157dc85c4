"""Run configuration and fixed domain constants."""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any

from prime360.errors import InvalidParameters

# Width of one scale segment; scale m covers ((m-1)*360, m*360].
SEGMENT_WIDTH = 360

# Maximum allowed distance between a prime and its nearest candidate.
TOLERANCE = 180

# The recursive sequence for scale m starts at (m-1)*360 + 181.
SEQUENCE_OFFSET = 181

# Values below this fit a native unsigned 64-bit integer.
NATIVE_LIMIT = 2 ** 64

DEFAULT_MEMORY_LIMIT = 256 * 1024 * 1024

SAMPLING_MODES = ("random", "even")


@dataclass
class VerifierConfig:
    """Parameters for a verification run.

    Attributes:
        max_m: Last scale to verify (inclusive).
        min_m: First scale to verify.
        max_primes_per_range: Primes evaluated per scale before sampling.
        workers: Worker processes for fan-out (1 runs in-process).
        batch_size: Items per unit of work; bounds peak memory only.
        memory_limit: Ceiling in bytes for exact sieve enumeration.
        sampling: "random" (seeded reservoir) or "even" (evenly spaced).
        seed: Base seed for sampling randomness.
        scale_chunk_size: Scales dispatched together by the driver.
        tolerance: Distance threshold; fixed by the pattern.
    """
    max_m: int = 10
    min_m: int = 1
    max_primes_per_range: int = 100_000
    workers: int = 1
    batch_size: int = 10_000
    memory_limit: int = DEFAULT_MEMORY_LIMIT
    sampling: str = "random"
    seed: int = 0
    scale_chunk_size: int = 10
    tolerance: int = TOLERANCE

    def validate(self) -> "VerifierConfig":
        """Check parameter ranges, raising InvalidParameters on the first problem."""
        if self.min_m < 1:
            raise InvalidParameters(f"min_m must be >= 1, got {self.min_m}")
        if self.min_m > self.max_m:
            raise InvalidParameters(
                f"min_m ({self.min_m}) must be <= max_m ({self.max_m})"
            )
        if self.max_primes_per_range < 1:
            raise InvalidParameters(
                f"max_primes_per_range must be >= 1, got {self.max_primes_per_range}"
            )
        if self.workers < 1:
            raise InvalidParameters(f"workers must be >= 1, got {self.workers}")
        if self.batch_size < 1:
            raise InvalidParameters(f"batch_size must be >= 1, got {self.batch_size}")
        if self.memory_limit < 1:
            raise InvalidParameters(f"memory_limit must be >= 1, got {self.memory_limit}")
        if self.scale_chunk_size < 1:
            raise InvalidParameters(
                f"scale_chunk_size must be >= 1, got {self.scale_chunk_size}"
            )
        if self.sampling not in SAMPLING_MODES:
            raise InvalidParameters(
                f"sampling must be one of {SAMPLING_MODES}, got {self.sampling!r}"
            )
        if self.seed < 0:
            raise InvalidParameters(f"seed must be >= 0, got {self.seed}")
        if self.tolerance != TOLERANCE:
            raise InvalidParameters(
                f"tolerance is fixed at {TOLERANCE}, got {self.tolerance}"
            )
        return self

    @property
    def scale_count(self) -> int:
        return self.max_m - self.min_m + 1

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def scale_bounds(m: int) -> tuple[int, int]:
    """Return (lo, hi) for scale m, where the range is (lo, hi]."""
    if m < 1:
        raise InvalidParameters(f"scale m must be >= 1, got {m}")
    return (m - 1) * SEGMENT_WIDTH, m * SEGMENT_WIDTH
