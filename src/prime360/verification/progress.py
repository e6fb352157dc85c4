"""Shared progress accumulator for a verification run."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Optional

from tqdm import tqdm


@dataclass(frozen=True)
class ProgressSnapshot:
    scales_completed: int
    primes_checked: int
    max_distance: int
    elapsed: float


class ProgressTracker:
    """Lock-protected counters, updated once per batch or per scale.

    The tracker is passed explicitly to the verifier and the driver; it
    optionally renders a tqdm bar over the scales.
    """

    def __init__(self, total_scales: Optional[int] = None, show: bool = False):
        self._lock = threading.Lock()
        self._start = time.perf_counter()
        self.scales_completed = 0
        self.primes_checked = 0
        self.max_distance = 0
        self._bar = tqdm(
            total=total_scales,
            desc="Scales",
            unit="scale",
            disable=not show,
            leave=False,
        )

    def add_primes(self, count: int, max_distance: int = 0):
        """Account for a batch of evaluated primes."""
        with self._lock:
            self.primes_checked += count
            self.max_distance = max(self.max_distance, max_distance)

    def complete_scale(self, m: int, max_distance: int = 0):
        """Account for a finished scale and refresh the bar."""
        with self._lock:
            self.scales_completed += 1
            self.max_distance = max(self.max_distance, max_distance)
            self._bar.update(1)
            self._bar.set_postfix(
                m=m,
                primes=self.primes_checked,
                max_dist=self.max_distance,
            )

    def write(self, message: str):
        """Print a line without breaking the progress bar."""
        self._bar.write(message)

    def snapshot(self) -> ProgressSnapshot:
        with self._lock:
            return ProgressSnapshot(
                scales_completed=self.scales_completed,
                primes_checked=self.primes_checked,
                max_distance=self.max_distance,
                elapsed=time.perf_counter() - self._start,
            )

    def close(self):
        self._bar.close()

    def __enter__(self) -> "ProgressTracker":
        return self

    def __exit__(self, *exc):
        self.close()
