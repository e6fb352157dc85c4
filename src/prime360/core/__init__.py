"""Core prime generation and candidate search."""

from prime360.core.sieve import (
    PrimeStrategy,
    is_prime,
    primes_in_interval,
    select_strategy,
    sieve_interval,
)
from prime360.core.divisors import divisor_candidates, scale_divisors
from prime360.core.sequence import sequence_seed, sequence_terms, triangular_step
from prime360.core.distance import (
    Candidate,
    CandidateFamily,
    CandidateSet,
    PrimeRecord,
    evaluate_prime,
    nearest_candidate,
)

__all__ = [
    "PrimeStrategy",
    "is_prime",
    "primes_in_interval",
    "select_strategy",
    "sieve_interval",
    "divisor_candidates",
    "scale_divisors",
    "sequence_seed",
    "sequence_terms",
    "triangular_step",
    "Candidate",
    "CandidateFamily",
    "CandidateSet",
    "PrimeRecord",
    "evaluate_prime",
    "nearest_candidate",
]
