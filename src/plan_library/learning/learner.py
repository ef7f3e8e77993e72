"""Pattern learner.

Feeds the outcome of finished executions back into the pattern statistics
of the plan that was run, and decides whether a pattern is good enough to
be reused without asking the model for a new plan.
"""

from typing import Optional

from plan_library.errors import PatternNotFoundError
from plan_library.learning.stats import REUSE_THRESHOLD, is_reusable
from plan_library.models.enums import ExecutionStatus
from plan_library.models.execution import Execution
from plan_library.models.pattern import Pattern
from plan_library.observability.logging import event_fields, get_logger
from plan_library.observability.metrics import PATTERN_UPDATES_TOTAL
from plan_library.persistence.repository import PlanRepository


logger = get_logger(__name__)


class PatternLearner:
    """Records execution outcomes on patterns.

    Args:
        repository: Plan store holding the patterns.
        threshold: Success rate a pattern must exceed to be reusable.
    """

    def __init__(self, repository: PlanRepository, threshold: float = REUSE_THRESHOLD):
        self.repository = repository
        self.threshold = threshold

    def is_reusable(self, pattern: Pattern) -> bool:
        return is_reusable(pattern, self.threshold)

    def _resolve_pattern_id(
        self, tenant_id: str, execution: Execution
    ) -> Optional[str]:
        if execution.pattern_id:
            return execution.pattern_id
        if not execution.plan_id:
            return None
        try:
            return self.repository.get_pattern_for_plan(
                tenant_id, execution.plan_id
            ).id
        except PatternNotFoundError:
            return None

    def record(self, tenant_id: str, execution: Execution) -> Optional[Pattern]:
        """Records a terminal execution on its pattern.

        Args:
            tenant_id: Tenant that ran the execution.
            execution: A completed or failed execution.

        Returns:
            The updated pattern, or None when the execution is not bound to
            a known pattern.
        """
        if not execution.is_terminal:
            raise ValueError("cannot learn from an execution that is still running")

        pattern_id = self._resolve_pattern_id(tenant_id, execution)
        if pattern_id is None:
            logger.warning(
                "No pattern bound to execution, outcome not recorded",
                extra=event_fields(
                    "pattern.missing",
                    tenant_id=tenant_id,
                    execution_id=execution.id,
                    plan_id=execution.plan_id,
                ),
            )
            return None

        succeeded = execution.status == ExecutionStatus.COMPLETED
        try:
            if succeeded:
                pattern = self.repository.record_success(tenant_id, pattern_id)
            else:
                pattern = self.repository.record_failure(tenant_id, pattern_id)
        except PatternNotFoundError:
            logger.warning(
                f"Pattern {pattern_id} not found, outcome not recorded",
                extra=event_fields(
                    "pattern.missing",
                    tenant_id=tenant_id,
                    execution_id=execution.id,
                    pattern_id=pattern_id,
                ),
            )
            return None

        outcome = "success" if succeeded else "failure"
        PATTERN_UPDATES_TOTAL.labels(outcome=outcome).inc()
        logger.info(
            f"Recorded {outcome} on pattern {pattern.id}",
            extra=event_fields(
                "pattern.updated",
                tenant_id=tenant_id,
                pattern_id=pattern.id,
                intent=pattern.intent,
                success_rate=pattern.success_rate,
                usage_count=pattern.usage_count,
            ),
        )
        return pattern
