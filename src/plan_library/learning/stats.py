"""Pattern statistics arithmetic.

The success rate is ``success_count / usage_count`` computed after the
counters are incremented. There is no decay: every run weighs the same.
"""

from datetime import datetime
from typing import Optional

from plan_library.models.base import utc_now
from plan_library.models.pattern import Pattern


REUSE_THRESHOLD = 0.7


def success_rate(success_count: int, usage_count: int) -> float:
    if usage_count <= 0:
        return 0.0
    return success_count / usage_count


def apply_success(pattern: Pattern, now: Optional[datetime] = None) -> Pattern:
    """Returns a copy of the pattern with one more successful run."""
    now = now or utc_now()
    usage = pattern.usage_count + 1
    successes = pattern.success_count + 1
    return pattern.model_copy(
        update={
            "usage_count": usage,
            "success_count": successes,
            "success_rate": success_rate(successes, usage),
            "last_used": now,
            "last_succeeded": now,
            "updated_at": now,
        }
    )


def apply_failure(pattern: Pattern, now: Optional[datetime] = None) -> Pattern:
    """Returns a copy of the pattern with one more failed run."""
    now = now or utc_now()
    usage = pattern.usage_count + 1
    return pattern.model_copy(
        update={
            "usage_count": usage,
            "failure_count": pattern.failure_count + 1,
            "success_rate": success_rate(pattern.success_count, usage),
            "last_used": now,
            "last_failed": now,
            "updated_at": now,
        }
    )


def is_reusable(pattern: Pattern, threshold: float = REUSE_THRESHOLD) -> bool:
    """Whether a pattern's plan may be reused without re-planning."""
    return pattern.success_count >= 1 and pattern.success_rate > threshold
