"""Per-scale verification, scale iteration and result aggregation."""

from prime360.verification.results import RangeResult, ScaleStatus, Summary
from prime360.verification.progress import ProgressSnapshot, ProgressTracker
from prime360.verification.verifier import RangeVerifier, aggregate_records, verify_scale
from prime360.verification.driver import ScaleDriver, run_scales

__all__ = [
    "RangeResult",
    "ScaleStatus",
    "Summary",
    "ProgressSnapshot",
    "ProgressTracker",
    "RangeVerifier",
    "aggregate_records",
    "verify_scale",
    "ScaleDriver",
    "run_scales",
]
