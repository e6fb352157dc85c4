"""Iterate the verifier across a range of scales.

Scales are dispatched in chunks. With more than one worker the scales of a
chunk run in a process pool; each worker verifies its scale serially, so
pools are never nested. Results are merged into the Summary in scale order.
"""

from __future__ import annotations

import dataclasses
import logging
import time
from concurrent.futures import ProcessPoolExecutor, as_completed
from concurrent.futures.process import BrokenProcessPool
from typing import Callable, Iterator, Optional

from prime360.config import VerifierConfig, scale_bounds
from prime360.core.sequence import SequenceRule, triangular_step
from prime360.errors import InternalComputationError
from prime360.verification.progress import ProgressTracker
from prime360.verification.results import RangeResult, Summary
from prime360.verification.verifier import RangeVerifier, verify_scale

logger = logging.getLogger(__name__)


class ScaleDriver:
    """Verify every scale in [config.min_m, config.max_m].

    Args:
        config: Run configuration, validated on construction.
        tracker: Optional progress accumulator shared with the verifier.
        rule: Recurrence for the sequence candidate family. Must be a
            module-level function when workers > 1.
    """

    def __init__(
        self,
        config: VerifierConfig,
        tracker: Optional[ProgressTracker] = None,
        rule: SequenceRule = triangular_step,
    ):
        self.config = config.validate()
        self.tracker = tracker
        self.rule = rule
        self._pool_broken = False

    def chunks(self) -> Iterator[range]:
        """Scale ranges dispatched together."""
        size = self.config.scale_chunk_size
        for start in range(self.config.min_m, self.config.max_m + 1, size):
            yield range(start, min(start + size, self.config.max_m + 1))

    def _run_serial(self, chunk: range) -> Iterator[RangeResult]:
        verifier = RangeVerifier(self.config, rule=self.rule, tracker=self.tracker)
        for m in chunk:
            yield verifier.verify(m)

    def _run_parallel(self, executor: ProcessPoolExecutor, chunk: range) -> Iterator[RangeResult]:
        scale_config = dataclasses.replace(self.config, workers=1)
        futures = {executor.submit(verify_scale, m, scale_config, self.rule): m for m in chunk}
        try:
            for future in as_completed(futures):
                try:
                    result = future.result()
                except Exception as e:
                    # Worker crashes and pickling errors surface here
                    m = futures[future]
                    if isinstance(e, BrokenProcessPool):
                        self._pool_broken = True
                    logger.error("Scale m=%d failed in worker: %s: %s", m, type(e).__name__, e)
                    error = InternalComputationError(f"{type(e).__name__}: {e}")
                    result = RangeResult.failed(m, *scale_bounds(m), str(error))
                if self.tracker is not None:
                    self.tracker.add_primes(result.checked_count, result.max_distance)
                yield result
        finally:
            for future in futures:
                future.cancel()

    def run(self, on_result: Optional[Callable[[RangeResult], None]] = None) -> Summary:
        """Verify all scales and return the ordered Summary.

        A KeyboardInterrupt stops the run at a scale boundary; scales that
        finished are kept and the summary is marked interrupted.
        """
        summary = Summary()
        total = self.config.scale_count
        start = time.perf_counter()
        executor = None
        if self.config.workers > 1:
            executor = ProcessPoolExecutor(max_workers=self.config.workers)

        try:
            for chunk in self.chunks():
                chunk_start = time.perf_counter()
                if executor is not None and self._pool_broken:
                    logger.warning("Worker pool broke; starting a new one")
                    executor.shutdown(wait=False, cancel_futures=True)
                    executor = ProcessPoolExecutor(max_workers=self.config.workers)
                    self._pool_broken = False
                if executor is not None:
                    results = self._run_parallel(executor, chunk)
                else:
                    results = self._run_serial(chunk)

                for result in results:
                    summary.add(result)
                    if self.tracker is not None:
                        self.tracker.complete_scale(result.m, result.max_distance)
                    if on_result is not None:
                        on_result(result)

                done = len(summary)
                elapsed = time.perf_counter() - start
                remaining = (total - done) * elapsed / done if done else 0.0
                logger.info(
                    "Scales m=%d..%d completed in %.2fs (%d/%d, est. remaining %.1fs)",
                    chunk.start, chunk.stop - 1, time.perf_counter() - chunk_start,
                    done, total, remaining,
                )
        except KeyboardInterrupt:
            summary.interrupted = True
            logger.warning("Interrupted after %d of %d scales", len(summary), total)
        finally:
            if executor is not None:
                executor.shutdown(wait=not summary.interrupted, cancel_futures=True)

        return summary


def run_scales(
    config: VerifierConfig,
    tracker: Optional[ProgressTracker] = None,
    on_result: Optional[Callable[[RangeResult], None]] = None,
) -> Summary:
    """Convenience wrapper around ScaleDriver(config).run()."""
    return ScaleDriver(config, tracker=tracker).run(on_result=on_result)
