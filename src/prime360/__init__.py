"""prime360 - verify the 360/180 prime-location pattern across scales."""

__version__ = "0.1.0"

from prime360.config import VerifierConfig, scale_bounds
from prime360.core.sieve import primes_in_interval, is_prime
from prime360.core.divisors import scale_divisors
from prime360.verification.verifier import RangeVerifier
from prime360.verification.driver import ScaleDriver
from prime360.verification.results import RangeResult, Summary

__all__ = [
    "VerifierConfig",
    "scale_bounds",
    "primes_in_interval",
    "is_prime",
    "scale_divisors",
    "RangeVerifier",
    "ScaleDriver",
    "RangeResult",
    "Summary",
]
