"""Recursive sequence terms, the second candidate family.

The sequence for scale m starts at (m-1)*360 + 181 and each next term is
produced by a rule taking the previous term and the index of the term being
produced. The rule is injected so alternative recurrences can be supplied
without touching the verifier.
"""

from __future__ import annotations

from typing import Callable, Iterator

from prime360.config import SEGMENT_WIDTH, SEQUENCE_OFFSET
from prime360.core.distance import Candidate, CandidateFamily
from prime360.errors import InternalComputationError, InvalidParameters

SequenceRule = Callable[[int, int], int]


def triangular_step(previous: int, index: int) -> int:
    """t_i = t_{i-1} + i, so t_i = seed + i*(i+1)/2 - 1."""
    return previous + index


def sequence_seed(m: int) -> int:
    """First term of the sequence for scale m."""
    if m < 1:
        raise InvalidParameters(f"scale m must be >= 1, got {m}")
    return (m - 1) * SEGMENT_WIDTH + SEQUENCE_OFFSET


def sequence_terms(
    m: int,
    limit: int,
    rule: SequenceRule = triangular_step,
) -> Iterator[Candidate]:
    """Lazily yield sequence candidates for scale m up to limit (inclusive).

    Args:
        m: Scale factor.
        limit: Largest value worth producing, normally m*360 + 180.
        rule: Recurrence producing term i from term i-1.

    Yields:
        Candidates tagged with their 1-based term index.

    Raises:
        InternalComputationError: If the rule fails to increase the term.
    """
    term = sequence_seed(m)
    index = 1
    while term <= limit:
        yield Candidate(CandidateFamily.SEQUENCE, term, index)
        index += 1
        following = rule(term, index)
        if following <= term:
            raise InternalComputationError(
                f"sequence rule is not increasing at index {index}: {term} -> {following}"
            )
        term = following
