"""Tests for run configuration."""

import pytest

from prime360.config import TOLERANCE, VerifierConfig, scale_bounds
from prime360.errors import InvalidParameters


class TestVerifierConfig:
    """Tests for VerifierConfig validation."""

    def test_defaults(self):
        """Test default invocation parameters."""
        config = VerifierConfig().validate()
        assert config.max_m == 10
        assert config.min_m == 1
        assert config.max_primes_per_range == 100_000
        assert config.tolerance == TOLERANCE == 180
        assert config.scale_count == 10

    def test_single_scale(self):
        """min_m == max_m is allowed."""
        assert VerifierConfig(min_m=4, max_m=4).validate().scale_count == 1

    @pytest.mark.parametrize("kwargs", [
        {"min_m": 0},
        {"min_m": 11, "max_m": 10},
        {"max_primes_per_range": 0},
        {"workers": 0},
        {"batch_size": 0},
        {"memory_limit": 0},
        {"scale_chunk_size": 0},
        {"sampling": "stratified"},
        {"seed": -1},
        {"tolerance": 200},
    ])
    def test_invalid(self, kwargs):
        """Each invalid parameter is reported."""
        with pytest.raises(InvalidParameters):
            VerifierConfig(**kwargs).validate()

    def test_invalid_is_value_error(self):
        """InvalidParameters can be caught as ValueError."""
        with pytest.raises(ValueError):
            VerifierConfig(min_m=-3).validate()

    def test_to_dict(self):
        """Test dictionary conversion."""
        d = VerifierConfig(max_m=3).to_dict()
        assert d['max_m'] == 3
        assert d['sampling'] == "random"


class TestScaleBounds:
    """Tests for scale_bounds function."""

    def test_bounds(self):
        """Test range boundaries."""
        assert scale_bounds(1) == (0, 360)
        assert scale_bounds(10) == (3240, 3600)

    def test_adjacent_scales(self):
        """Adjacent half-open ranges meet without overlapping."""
        for m in range(1, 50):
            assert scale_bounds(m)[1] == scale_bounds(m + 1)[0]

    def test_invalid(self):
        """Test m < 1."""
        with pytest.raises(InvalidParameters):
            scale_bounds(0)
