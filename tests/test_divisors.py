"""Tests for divisor candidates."""

import pytest
from sympy import nextprime

from prime360.core.distance import CandidateFamily
from prime360.core.divisors import (
    divisor_candidates,
    divisors_up_to,
    scanned_divisors,
    scale_divisors,
    scale_factorization,
    trial_division_divisors,
    windowed_divisors,
)
from prime360.errors import InvalidParameters

DIVISORS_OF_360 = [
    1, 2, 3, 4, 5, 6, 8, 9, 10, 12, 15, 18, 20, 24, 30, 36, 40, 45,
    60, 72, 90, 120, 180, 360,
]


def brute_force_divisors(n):
    return [d for d in range(1, n + 1) if n % d == 0]


class TestScaleDivisors:
    """Tests for scale_divisors function."""

    def test_divisors_of_360(self):
        """m=1 gives exactly the 24 divisors of 360."""
        assert scale_divisors(1) == DIVISORS_OF_360

    def test_matches_brute_force(self):
        """Test several scales against brute force."""
        for m in [2, 7, 12, 49, 97, 210]:
            assert scale_divisors(m) == brute_force_divisors(360 * m)

    def test_window(self):
        """Test window restriction."""
        assert scale_divisors(2, window=(180, 900)) == [180, 240, 360, 720]
        assert scale_divisors(1, window=(50, 100)) == [60, 72, 90]

    def test_factorization_path_matches(self):
        """Supplied factorizations give the same divisors as trial division."""
        cases = {1: {}, 12: {2: 2, 3: 1}, 49: {7: 2}, 210: {2: 1, 3: 1, 5: 1, 7: 1}}
        for m, factors in cases.items():
            assert scale_divisors(m, m_factors=factors) == scale_divisors(m)
            assert scale_divisors(m, window=(100, 2000), m_factors=factors) == \
                scale_divisors(m, window=(100, 2000))

    def test_wrong_factorization(self):
        """A factorization that does not multiply to m is rejected."""
        with pytest.raises(InvalidParameters):
            scale_divisors(12, m_factors={2: 3})

    def test_beyond_native_range(self):
        """Only the targeted divisors are produced past 2**64."""
        m = 10**18
        n = 360 * m
        lo, hi = (m - 1) * 360, m * 360
        assert scale_divisors(m, window=(lo - 180, hi + 180)) == [n]
        assert scale_divisors(m, window=(1, 10)) == [1, 2, 3, 4, 5, 6, 8, 9, 10]

    def test_invalid_scale(self):
        """Test that m < 1 raises."""
        with pytest.raises(InvalidParameters):
            scale_divisors(0)


class TestHelpers:
    """Tests for factorization helpers."""

    def test_scale_factorization(self):
        """Test 360 = 2^3 * 3^2 * 5 merged with m."""
        assert scale_factorization(1) == {2: 3, 3: 2, 5: 1}
        assert scale_factorization(6) == {2: 4, 3: 3, 5: 1}
        assert scale_factorization(11) == {2: 3, 3: 2, 5: 1, 11: 1}

    def test_trial_division(self):
        """Test trial division including perfect squares."""
        assert trial_division_divisors(1) == [1]
        assert trial_division_divisors(36) == [1, 2, 3, 4, 6, 9, 12, 18, 36]
        assert trial_division_divisors(97) == [1, 97]
        assert trial_division_divisors(360, chunk=3) == DIVISORS_OF_360

    def test_divisors_up_to(self):
        """Test bounded lattice enumeration."""
        assert divisors_up_to({2: 3, 3: 2, 5: 1}, 10) == [1, 2, 3, 4, 5, 6, 8, 9, 10]
        assert divisors_up_to({2: 3, 3: 2, 5: 1}, 360) == DIVISORS_OF_360
        assert divisors_up_to({2: 1}, 0) == []

    def test_windowed_both_ends(self):
        """Both enumeration directions give the same answer."""
        factors = {2: 3, 3: 2, 5: 1}
        assert windowed_divisors(factors, 1, 20) == [d for d in DIVISORS_OF_360 if d <= 20]
        assert windowed_divisors(factors, 100, 400) == [120, 180, 360]
        assert windowed_divisors(factors, 400, 500) == []


class TestDivisorCandidates:
    """Tests for divisor_candidates function."""

    def test_first_scale(self):
        """Every divisor of 360 is relevant for m=1."""
        candidates = divisor_candidates(1, 0, 360)
        assert [c.value for c in candidates] == DIVISORS_OF_360
        assert all(c.family is CandidateFamily.DIVISOR for c in candidates)
        assert all(c.index * c.value == 360 for c in candidates)

    def test_window_margin(self):
        """Divisors within the tolerance margin are kept."""
        candidates = divisor_candidates(2, 360, 720)
        assert [c.value for c in candidates] == [180, 240, 360, 720]

    def test_large_scale(self):
        """Past the first few scales only m*360 itself is near the range."""
        m = 1000
        candidates = divisor_candidates(m, (m - 1) * 360, m * 360)
        assert [c.value for c in candidates] == [m * 360]
        assert candidates[0].index == 1

    def test_large_semiprime_scale(self, monkeypatch):
        """A 50-digit semiprime m is handled without factoring it."""
        m = nextprime(10**25) * nextprime(3 * 10**25)
        assert len(str(m)) >= 50

        def no_factoring(n):
            raise AssertionError(f"factorint({n}) called")

        monkeypatch.setattr("prime360.core.divisors.factorint", no_factoring)
        lo, hi = (m - 1) * 360, m * 360
        candidates = divisor_candidates(m, lo, hi)
        assert [c.value for c in candidates] == [m * 360]
        assert candidates[0].index == 1
        assert scale_divisors(m, window=(1, 12)) == [1, 2, 3, 4, 5, 6, 8, 9, 10, 12]
        assert scale_divisors(m, window=(m * 180, m * 360)) == [m * 180, m * 360]


class TestScannedDivisors:
    """Tests for scanned_divisors function."""

    def test_cofactor_scan(self):
        """Divisors near n come from their small cofactors."""
        assert scanned_divisors(360, 100, 400) == [120, 180, 360]
        assert scanned_divisors(360, 361, 400) == []

    def test_window_scan(self):
        """A short window far from n is scanned directly."""
        assert scanned_divisors(360, 1, 10, limit=20) == [1, 2, 3, 4, 5, 6, 8, 9, 10]

    def test_too_wide(self):
        """None when neither scan fits the step budget."""
        assert scanned_divisors(360, 1, 360, limit=10) is None
