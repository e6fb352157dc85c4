"""Verification of a single scale.

For scale m the verifier streams the primes of ((m-1)*360, m*360], builds
the combined candidate set, measures every retained prime against it and
aggregates the outcome into a RangeResult. When a range holds more primes
than max_primes_per_range, only a sample is evaluated and the result is
marked as not exhaustive.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ProcessPoolExecutor
from functools import partial
from typing import Iterator, Optional, Sequence

import numpy as np

from prime360.config import TOLERANCE, VerifierConfig, scale_bounds
from prime360.core.distance import (
    CandidateFamily,
    CandidateSet,
    PrimeRecord,
    evaluate_batch,
)
from prime360.core.divisors import divisor_candidates
from prime360.core.sequence import SequenceRule, sequence_terms, triangular_step
from prime360.core.sieve import PrimeStrategy, bounded_map, primes_in_interval, select_strategy
from prime360.errors import InternalComputationError, ResourceExhausted
from prime360.verification.progress import ProgressTracker
from prime360.verification.results import MAX_MISSED_REPORTED, RangeResult, ScaleStatus

logger = logging.getLogger(__name__)


def _batches(items: Sequence[int], size: int) -> Iterator[Sequence[int]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


def aggregate_records(
    m: int,
    records: Sequence[PrimeRecord],
    prime_count: int,
    exhaustive: bool,
    strategy: str = "",
    tolerance: int = TOLERANCE,
) -> RangeResult:
    """Fold per-prime records into the statistics kept for scale m."""
    lo, hi = scale_bounds(m)
    if exhaustive and len(records) != prime_count:
        raise InternalComputationError(
            f"exhaustive scale m={m} evaluated {len(records)} of {prime_count} primes"
        )

    success = 0
    divisor_hits = 0
    sequence_hits = 0
    max_distance = 0
    missed = []
    for record in records:
        if record.prime <= lo or record.prime > hi:
            raise InternalComputationError(f"prime {record.prime} outside scale m={m}")
        max_distance = max(max_distance, record.distance)
        if record.distance <= tolerance:
            success += 1
            if record.candidate.family is CandidateFamily.DIVISOR:
                divisor_hits += 1
            else:
                sequence_hits += 1
        elif len(missed) < MAX_MISSED_REPORTED:
            missed.append(record.prime)

    status = ScaleStatus.PASSED if success == len(records) else ScaleStatus.VIOLATED
    return RangeResult(
        m=m,
        range_start=lo,
        range_end=hi,
        prime_count=prime_count,
        checked_count=len(records),
        success_count=success,
        max_distance=max_distance,
        exhaustive=exhaustive,
        strategy=strategy,
        status=status,
        divisor_hits=divisor_hits,
        sequence_hits=sequence_hits,
        missed_primes=missed,
    )


class RangeVerifier:
    """Verify the pattern for one scale at a time.

    Args:
        config: Run configuration; only the per-scale settings are used.
        rule: Recurrence for the sequence candidate family.
        tracker: Optional progress accumulator, updated once per batch.
    """

    def __init__(
        self,
        config: Optional[VerifierConfig] = None,
        rule: SequenceRule = triangular_step,
        tracker: Optional[ProgressTracker] = None,
    ):
        self.config = config if config is not None else VerifierConfig()
        self.rule = rule
        self.tracker = tracker

    def _stream(self, lo: int, hi: int, strategy: PrimeStrategy) -> Iterator[int]:
        return primes_in_interval(
            lo + 1,
            hi,
            memory_limit=self.config.memory_limit,
            batch_size=self.config.batch_size,
            workers=self.config.workers,
            strategy=strategy,
        )

    def collect_primes(
        self,
        m: int,
        strategy: Optional[PrimeStrategy] = None,
    ) -> tuple[list[int], int, bool]:
        """Gather the primes to evaluate for scale m.

        Returns:
            (retained primes ascending, primes in range, exhaustive flag).
        """
        lo, hi = scale_bounds(m)
        if strategy is None:
            strategy = select_strategy(lo + 1, hi, self.config.memory_limit)
        cap = self.config.max_primes_per_range

        if self.config.sampling == "even":
            return self._collect_even(lo, hi, strategy, cap)

        # Seeded reservoir sample; exact when the range fits the cap
        rng = np.random.default_rng([self.config.seed, m])
        reservoir: list[int] = []
        count = 0
        for p in self._stream(lo, hi, strategy):
            if count < cap:
                reservoir.append(p)
            else:
                j = int(rng.integers(0, count + 1))
                if j < cap:
                    reservoir[j] = p
            count += 1

        reservoir.sort()
        return reservoir, count, count <= cap

    def _collect_even(
        self,
        lo: int,
        hi: int,
        strategy: PrimeStrategy,
        cap: int,
    ) -> tuple[list[int], int, bool]:
        head: list[int] = []
        count = 0
        for p in self._stream(lo, hi, strategy):
            if count < cap:
                head.append(p)
            count += 1
        if count <= cap:
            return head, count, True

        # Second pass keeps indices i*count//cap, strictly increasing since count > cap
        picked = []
        wanted = 0
        for i, p in enumerate(self._stream(lo, hi, strategy)):
            if i == wanted * count // cap:
                picked.append(p)
                wanted += 1
                if wanted == cap:
                    break
        return picked, count, False

    def build_candidates(
        self,
        m: int,
        m_factors: Optional[dict[int, int]] = None,
    ) -> CandidateSet:
        """Divisor and sequence candidates for scale m, as one set."""
        lo, hi = scale_bounds(m)
        tolerance = self.config.tolerance
        divisors = divisor_candidates(m, lo, hi, tolerance, m_factors=m_factors)
        sequence = sequence_terms(m, hi + tolerance, self.rule)
        return CandidateSet.from_families(divisors, sequence)

    def evaluate(self, primes: Sequence[int], candidates: CandidateSet) -> list[PrimeRecord]:
        """Measure every prime against the shared candidate set.

        Batches fan out to a process pool when more than one worker is
        configured; the merged records are sorted by prime.
        """
        size = self.config.batch_size
        work = partial(evaluate_batch, candidates=candidates, tolerance=self.config.tolerance)
        records: list[PrimeRecord] = []

        if self.config.workers > 1 and len(primes) > size:
            with ProcessPoolExecutor(max_workers=self.config.workers) as executor:
                for batch in bounded_map(executor, work, _batches(primes, size),
                                         window=2 * self.config.workers):
                    self._account(batch)
                    records.extend(batch)
        else:
            for chunk in _batches(primes, size):
                batch = work(chunk)
                self._account(batch)
                records.extend(batch)

        records.sort(key=lambda r: r.prime)
        return records

    def _account(self, batch: Sequence[PrimeRecord]):
        if self.tracker is not None and batch:
            self.tracker.add_primes(len(batch), max(r.distance for r in batch))

    def _failed(self, m: int, strategy: PrimeStrategy, start: float, error: Exception) -> RangeResult:
        logger.error("Scale m=%d failed: %s", m, error)
        lo, hi = scale_bounds(m)
        return RangeResult.failed(
            m, lo, hi, str(error),
            strategy=strategy.value,
            elapsed=time.perf_counter() - start,
        )

    def verify(self, m: int, m_factors: Optional[dict[int, int]] = None) -> RangeResult:
        """Run every stage for scale m and return its RangeResult.

        Per-scale failures are returned as FAILED results, never raised.
        Errors outside the prime360 hierarchy are reported as internal
        computation errors.
        """
        start = time.perf_counter()
        lo, hi = scale_bounds(m)
        strategy = select_strategy(lo + 1, hi, self.config.memory_limit)
        logger.debug("Scale m=%d: range (%d, %d], strategy %s", m, lo, hi, strategy.value)

        try:
            primes, prime_count, exhaustive = self.collect_primes(m, strategy)
            if not exhaustive:
                logger.info(
                    "Scale m=%d: %d primes found, sampling %d (%s)",
                    m, prime_count, len(primes), self.config.sampling,
                )
            candidates = self.build_candidates(m, m_factors)
            records = self.evaluate(primes, candidates)
            result = aggregate_records(
                m, records, prime_count, exhaustive,
                strategy=strategy.value, tolerance=self.config.tolerance,
            )
        except (ResourceExhausted, InternalComputationError) as e:
            return self._failed(m, strategy, start, e)
        except Exception as e:
            logger.exception("Scale m=%d raised unexpectedly", m)
            return self._failed(m, strategy, start, InternalComputationError(f"{type(e).__name__}: {e}"))

        result.elapsed = time.perf_counter() - start
        if result.status is ScaleStatus.VIOLATED:
            logger.warning(
                "Scale m=%d: %d of %d primes beyond tolerance (max distance %d)",
                m, result.checked_count - result.success_count,
                result.checked_count, result.max_distance,
            )
        return result


def verify_scale(
    m: int,
    config: Optional[VerifierConfig] = None,
    rule: SequenceRule = triangular_step,
) -> RangeResult:
    """Verify a single scale; the unit of work for per-scale fan-out."""
    return RangeVerifier(config, rule=rule).verify(m)
