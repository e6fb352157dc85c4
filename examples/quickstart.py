"""Quick start example for prime360.

Run this script to check the first scales and inspect one of them in detail.
"""

import time

from prime360 import RangeVerifier, ScaleDriver, VerifierConfig, scale_divisors
from prime360.core.sieve import primes_in_interval


def main():
    print("prime360 - Quick Start Demo")
    print("=" * 50)

    print("\n1. Divisors of 360 (scale m=1)...")
    divisors = scale_divisors(1)
    print(f"   {len(divisors)} divisors: {divisors}")

    print("\n2. Verifying scale m=1 in detail...")
    result = RangeVerifier().verify(1)
    print(f"   Range ({result.range_start}, {result.range_end}]: "
          f"{result.prime_count} primes, max distance {result.max_distance}")
    print(f"   Nearest to a divisor: {result.divisor_hits}, "
          f"nearest to a sequence term: {result.sequence_hits}")

    print("\n3. Verifying scales 1..100...")
    start = time.perf_counter()
    summary = ScaleDriver(VerifierConfig(max_m=100)).run()
    elapsed = time.perf_counter() - start
    print(f"   {summary.total_primes:,} primes checked in {elapsed:.2f}s, "
          f"max distance {summary.max_distance}, passed={summary.passed}")

    print("\n4. Primes just past 2**64 (Miller-Rabin)...")
    first = list(primes_in_interval(2**64, 2**64 + 100))
    print(f"   {first}")


if __name__ == "__main__":
    main()
