"""Enrollment ledger and progress tracking module.

Provides:
- Idempotent course enrollment
- Per-content progress with compare-and-set upserts
- Course progress aggregation and completion
"""

from .models import (
    PROGRESS_TABLES_CQL,
    ContentProgress,
    Enrollment,
    ProgressPatch,
)


__all__ = [
    "PROGRESS_TABLES_CQL",
    "ContentProgress",
    "Enrollment",
    "ProgressPatch",
]
