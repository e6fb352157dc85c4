"""Prime generation for intervals of any magnitude.

Intervals inside the native 64-bit range are handled by a NumPy Sieve of
Eratosthenes: base primes up to sqrt(hi) are materialized once and used to
strike composites out of the requested window. Intervals past that range, or
whose sieve would not fit the configured memory ceiling, are scanned with
Miller-Rabin testing over a stream of odd candidates, optionally fanned out
to a process pool.
"""

from __future__ import annotations

import logging
import math
from collections import deque
from concurrent.futures import Executor, Future, ProcessPoolExecutor
from enum import Enum
from functools import lru_cache
from typing import Callable, Iterable, Iterator, Sequence

import numpy as np

from prime360.config import DEFAULT_MEMORY_LIMIT, NATIVE_LIMIT
from prime360.errors import ResourceExhausted

logger = logging.getLogger(__name__)

# Witnesses that make Miller-Rabin deterministic for n < 3.317e24.
DETERMINISTIC_BASES = (2, 3, 5, 7, 11, 13, 17, 19, 23, 29, 31, 37, 41)
DETERMINISTIC_LIMIT = 3_317_044_064_679_887_385_961_981

# Extra fixed witnesses used above DETERMINISTIC_LIMIT.
EXTENDED_BASES = DETERMINISTIC_BASES + (43, 47, 53, 59, 61, 67, 71, 73, 79, 83, 89, 97)

_SMALL_PRIMES = (2, 3, 5, 7, 11, 13, 17, 19, 23, 29, 31, 37, 41, 43, 47)

# Base-prime sieves are rounded up to this granularity so neighbouring
# scales reuse the same cached array.
_BASE_SIEVE_STEP = 1 << 16


class PrimeStrategy(Enum):
    """How primes are produced for one interval."""
    SIEVE = "sieve"
    MILLER_RABIN = "miller_rabin"


def _numpy_sieve(limit: int) -> np.ndarray:
    """NumPy-based Sieve of Eratosthenes.

    Args:
        limit: Upper bound for prime generation.

    Returns:
        Array of prime numbers up to limit.
    """
    if limit < 2:
        return np.array([], dtype=np.int64)

    is_prime = np.ones(limit + 1, dtype=bool)
    is_prime[0] = False
    is_prime[1] = False

    for i in range(2, math.isqrt(limit) + 1):
        if is_prime[i]:
            is_prime[i*i::i] = False

    return np.nonzero(is_prime)[0].astype(np.int64)


@lru_cache(maxsize=4)
def _base_primes(rounded_limit: int) -> np.ndarray:
    primes = _numpy_sieve(rounded_limit).astype(np.uint64)
    primes.setflags(write=False)
    return primes


def base_primes(limit: int) -> np.ndarray:
    """Return the primes up to limit as a read-only uint64 array."""
    rounded = max(_BASE_SIEVE_STEP, -(-limit // _BASE_SIEVE_STEP) * _BASE_SIEVE_STEP)
    primes = _base_primes(rounded)
    return primes[:np.searchsorted(primes, np.uint64(limit), side="right")]


def _prime_count_bound(x: int) -> int:
    """Upper bound for pi(x) (Rosser-Schoenfeld)."""
    if x < 17:
        return 7
    return int(1.25506 * x / math.log(x)) + 1


def sieve_footprint(lo: int, hi: int) -> int:
    """Estimate the bytes needed to sieve the window [lo, hi].

    Counts the base-prime mask, the uint64 base-prime array and the window
    mask together with its per-prime offset arrays.
    """
    root = math.isqrt(max(hi, 0))
    base_count = _prime_count_bound(root)
    width = max(hi - lo + 1, 0)
    return (root + 1) + 8 * 3 * base_count + width


def sieve_interval(lo: int, hi: int, memory_limit: int = DEFAULT_MEMORY_LIMIT) -> np.ndarray:
    """Sieve the closed interval [lo, hi] for primes.

    Args:
        lo: Lower bound (inclusive).
        hi: Upper bound (inclusive), below 2**64.
        memory_limit: Ceiling in bytes for the sieve's working set.

    Returns:
        Ascending uint64 array of the primes in [lo, hi].

    Raises:
        ValueError: If lo > hi or hi is outside the native range.
        ResourceExhausted: If the sieve would exceed memory_limit.
    """
    if lo > hi:
        raise ValueError(f"lo ({lo}) must be <= hi ({hi})")
    if hi >= NATIVE_LIMIT:
        raise ValueError(f"hi ({hi}) exceeds the native 64-bit range")

    lo = max(lo, 2)
    if hi < lo:
        return np.array([], dtype=np.uint64)

    required = sieve_footprint(lo, hi)
    if required > memory_limit:
        raise ResourceExhausted(
            f"Sieving [{lo}, {hi}] needs ~{required:,} bytes, "
            f"limit is {memory_limit:,}",
            required=required,
            limit=memory_limit,
        )

    width = hi - lo + 1
    window = np.ones(width, dtype=bool)
    primes = base_primes(math.isqrt(hi))

    if primes.size:
        lo_u = np.uint64(lo)
        squares = primes * primes
        offset = (primes - lo_u % primes) % primes
        # Offset of the first composite multiple of p inside the window
        rel = np.where(squares > lo_u, squares - lo_u, offset)

        dense = primes <= np.uint64(width)
        for p, start in zip(primes[dense].tolist(), rel[dense].tolist()):
            window[start::p] = False

        single = rel[~dense]
        single = single[single < np.uint64(width)]
        window[single.astype(np.intp)] = False

    return np.flatnonzero(window).astype(np.uint64) + np.uint64(lo)


def miller_rabin_test(n: int, bases: Sequence[int] = DETERMINISTIC_BASES) -> bool:
    """Miller-Rabin primality test with fixed witnesses.

    Args:
        n: Odd number > 3 to test.
        bases: Witnesses to try.

    Returns:
        True if n is a strong probable prime to every base.
    """
    # Write n-1 as 2^r * d
    r, d = 0, n - 1
    while d % 2 == 0:
        r += 1
        d //= 2

    for a in bases:
        a %= n
        if a == 0:
            continue
        x = pow(a, d, n)
        if x == 1 or x == n - 1:
            continue
        for _ in range(r - 1):
            x = pow(x, 2, n)
            if x == n - 1:
                break
        else:
            return False
    return True


def is_prime(n: int) -> bool:
    """Check if a single number is prime.

    Deterministic below 3.3e24; above that n must pass Miller-Rabin for 25
    fixed bases.
    """
    if n < 2:
        return False
    for p in _SMALL_PRIMES:
        if n == p:
            return True
        if n % p == 0:
            return False
    if n < 47 * 47:
        return True

    bases = DETERMINISTIC_BASES if n < DETERMINISTIC_LIMIT else EXTENDED_BASES
    return miller_rabin_test(n, bases)


def _test_batch(candidates: range) -> list[int]:
    return [n for n in candidates if is_prime(n)]


def _odd_batches(lo: int, hi: int, batch_size: int) -> Iterator[range]:
    first = lo if lo % 2 else lo + 1
    step = 2 * batch_size
    for start in range(first, hi + 1, step):
        yield range(start, min(start + step, hi + 1), 2)


def bounded_map(
    executor: Executor,
    fn: Callable,
    items: Iterable,
    window: int,
) -> Iterator:
    """Like Executor.map, but keeps at most `window` tasks in flight.

    Results are yielded in submission order.
    """
    pending: deque[Future] = deque()
    for item in items:
        pending.append(executor.submit(fn, item))
        if len(pending) >= window:
            yield pending.popleft().result()
    while pending:
        yield pending.popleft().result()


def _miller_rabin_interval(lo: int, hi: int, batch_size: int, workers: int) -> Iterator[int]:
    lo = max(lo, 2)
    if lo > hi:
        return
    if lo == 2:
        yield 2
        lo = 3

    batches = _odd_batches(lo, hi, batch_size)
    if workers <= 1:
        for batch in batches:
            yield from _test_batch(batch)
        return

    executor = ProcessPoolExecutor(max_workers=workers)
    try:
        for primes in bounded_map(executor, _test_batch, batches, window=2 * workers):
            yield from primes
    finally:
        executor.shutdown(wait=True, cancel_futures=True)


def select_strategy(lo: int, hi: int, memory_limit: int = DEFAULT_MEMORY_LIMIT) -> PrimeStrategy:
    """Choose the generation strategy for [lo, hi] from its magnitude."""
    if hi < NATIVE_LIMIT and sieve_footprint(lo, hi) <= memory_limit:
        return PrimeStrategy.SIEVE
    return PrimeStrategy.MILLER_RABIN


def primes_in_interval(
    lo: int,
    hi: int,
    memory_limit: int = DEFAULT_MEMORY_LIMIT,
    batch_size: int = 10_000,
    workers: int = 1,
    strategy: PrimeStrategy | None = None,
) -> Iterator[int]:
    """Lazily yield the primes in [lo, hi] in ascending order.

    Args:
        lo: Lower bound (inclusive).
        hi: Upper bound (inclusive).
        memory_limit: Ceiling in bytes for the sieve strategy.
        batch_size: Odd candidates per Miller-Rabin work unit.
        workers: Processes for Miller-Rabin testing.
        strategy: Force a strategy; defaults to select_strategy().

    Yields:
        Each prime in the interval exactly once, as a Python int.
    """
    if strategy is None:
        strategy = select_strategy(lo, hi, memory_limit)

    if strategy is PrimeStrategy.SIEVE and hi < NATIVE_LIMIT:
        try:
            primes = sieve_interval(lo, hi, memory_limit)
        except ResourceExhausted as e:
            logger.warning("%s; falling back to Miller-Rabin", e)
        else:
            yield from primes.tolist()
            return

    yield from _miller_rabin_interval(lo, hi, batch_size, workers)
