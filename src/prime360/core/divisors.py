"""Divisors of m*360 used as the first candidate family.

Inside the native 64-bit range the divisors come from chunked trial
division up to sqrt(n). Past it, n is never factored: the divisors inside
the requested window are found by scanning the few cofactors n // d that
can reach it. Only a supplied factorization of m, or a window too wide to
scan, switches to enumerating the divisor lattice of 2^3 * 3^2 * 5 * m.
"""

from __future__ import annotations

import math

import numpy as np
from sympy import factorint

from prime360.config import NATIVE_LIMIT, SEGMENT_WIDTH, TOLERANCE
from prime360.core.distance import Candidate, CandidateFamily
from prime360.errors import InternalComputationError, InvalidParameters

# 360 = 2^3 * 3^2 * 5
SEGMENT_FACTORS = {2: 3, 3: 2, 5: 1}

_TRIAL_CHUNK = 1 << 20

# Step budget for the factor-free scans past 2**64
_SCAN_LIMIT = 1 << 20


def scale_factorization(m: int, m_factors: dict[int, int] | None = None) -> dict[int, int]:
    """Prime factorization of m*360.

    Args:
        m: Scale factor.
        m_factors: Known factorization of m as {prime: exponent}. Factored
            with sympy when omitted.

    Returns:
        Factorization of m*360 as {prime: exponent}.
    """
    if m < 1:
        raise InvalidParameters(f"scale m must be >= 1, got {m}")

    if m_factors is None:
        m_factors = factorint(m)
    else:
        product = 1
        for p, e in m_factors.items():
            product *= p ** e
        if product != m:
            raise InvalidParameters(f"factorization {m_factors} does not multiply to {m}")

    factors = dict(SEGMENT_FACTORS)
    for p, e in m_factors.items():
        factors[int(p)] = factors.get(int(p), 0) + int(e)
    return factors


def trial_division_divisors(n: int, chunk: int = _TRIAL_CHUNK) -> list[int]:
    """All divisors of n < 2**64 in ascending order, by trial division."""
    if not 1 <= n < NATIVE_LIMIT:
        raise ValueError(f"n must be in [1, 2**64), got {n}")

    root = math.isqrt(n)
    n_u = np.uint64(n)
    small: list[int] = []
    for start in range(1, root + 1, chunk):
        trial = np.arange(start, min(start + chunk, root + 1), dtype=np.uint64)
        small.extend(trial[n_u % trial == 0].tolist())

    large = [n // d for d in reversed(small) if d * d != n]
    return small + large


def divisors_up_to(factors: dict[int, int], bound: int) -> list[int]:
    """Divisors <= bound of the number with the given factorization.

    Products only grow as prime powers are multiplied in, so each branch
    stops at the first power that passes the bound.
    """
    divs = [1] if bound >= 1 else []
    for p, e in sorted(factors.items()):
        grown = []
        for d in divs:
            x = d
            for _ in range(e):
                x *= p
                if x > bound:
                    break
                grown.append(x)
        divs.extend(grown)
    return sorted(divs)


def windowed_divisors(factors: dict[int, int], lower: int, upper: int) -> list[int]:
    """Divisors of n inside [lower, upper], enumerating from the cheaper end.

    A divisor d is in the window iff its cofactor n // d lies in
    [n // upper, n // lower], so whichever side has the smaller bound is
    enumerated.
    """
    n = 1
    for p, e in factors.items():
        n *= p ** e

    lower = max(lower, 1)
    upper = min(upper, n)
    if lower > upper:
        return []

    cofactor_bound = n // lower
    if upper <= cofactor_bound:
        return [d for d in divisors_up_to(factors, upper) if d >= lower]

    found = {n // q for q in divisors_up_to(factors, cofactor_bound)}
    return sorted(d for d in found if lower <= d <= upper)


def scanned_divisors(n: int, lower: int, upper: int, limit: int = _SCAN_LIMIT) -> list[int] | None:
    """Divisors of n inside [lower, upper] found without factoring n.

    Scans the cofactors q <= n // lower when there are few of them, or the
    window itself when it is short. Returns None when both scans would
    take more than limit steps.
    """
    lower = max(lower, 1)
    upper = min(upper, n)
    if lower > upper:
        return []

    cofactor_bound = n // lower
    if cofactor_bound <= limit:
        found = {n // q for q in range(1, cofactor_bound + 1) if n % q == 0}
        return sorted(d for d in found if d <= upper)

    if upper - lower < limit:
        return [d for d in range(lower, upper + 1) if n % d == 0]
    return None


def scale_divisors(
    m: int,
    window: tuple[int, int] | None = None,
    m_factors: dict[int, int] | None = None,
) -> list[int]:
    """Sorted divisors of m*360, optionally restricted to a closed window.

    Args:
        m: Scale factor (>= 1).
        window: Optional (lower, upper) bounds, inclusive.
        m_factors: Known factorization of m; switches to the
            factorization-based enumeration.

    Returns:
        Ascending list of divisors.
    """
    if m < 1:
        raise InvalidParameters(f"scale m must be >= 1, got {m}")

    n = m * SEGMENT_WIDTH
    if n < NATIVE_LIMIT and m_factors is None:
        divs = trial_division_divisors(n)
        if window is None:
            return divs
        lower, upper = window
        return [d for d in divs if lower <= d <= upper]

    lower, upper = window if window is not None else (1, n)
    if m_factors is None:
        divs = scanned_divisors(n, lower, upper)
        if divs is not None:
            return divs

    factors = scale_factorization(m, m_factors)
    return windowed_divisors(factors, lower, upper)


def divisor_candidates(
    m: int,
    lo: int,
    hi: int,
    tolerance: int = TOLERANCE,
    m_factors: dict[int, int] | None = None,
) -> list[Candidate]:
    """Divisors of m*360 that can lie within tolerance of a prime in (lo, hi]."""
    n = m * SEGMENT_WIDTH
    window = (max(lo - tolerance, 1), hi + tolerance)
    candidates = []
    for d in scale_divisors(m, window=window, m_factors=m_factors):
        if n % d:
            raise InternalComputationError(f"{d} does not divide {n}")
        candidates.append(Candidate(CandidateFamily.DIVISOR, d, n // d))
    return candidates
