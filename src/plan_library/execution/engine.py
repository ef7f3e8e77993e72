"""Plan execution engine.

Runs the steps of an instantiated plan one at a time, in ascending id
order. Each step runs on a worker thread under its own timeout; the engine
never raises for step failures, it records them in the execution instead.
Persistence during a run is best effort: a failing store is logged and the
run continues in memory.
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Callable, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, JsonValue

from plan_library.execution.subagents import SubagentResult
from plan_library.learning.learner import PatternLearner
from plan_library.models.base import utc_now
from plan_library.models.enums import ExecutionStatus
from plan_library.models.execution import Execution, StepResult
from plan_library.models.plan import Plan, Step
from plan_library.observability.logging import event_fields, get_logger
from plan_library.observability.metrics import (
    PLAN_EXECUTIONS_TOTAL,
    STEP_DURATION_SECONDS,
    STEP_EXECUTIONS_TOTAL,
)
from plan_library.persistence.repository import PlanRepository


logger = get_logger(__name__)

CANCELLED_ERROR = "execution cancelled"

Dispatch = Callable[[Step, threading.Event], SubagentResult]


class EngineConfig(BaseModel):
    """
    Static configuration for the execution engine.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    default_step_timeout_seconds: float = Field(
        default=300.0,
        gt=0,
        description="Timeout applied to steps whose timeout is not positive.",
    )
    poll_interval_seconds: float = Field(
        default=0.05,
        gt=0,
        description="How often a running step is checked for cancellation.",
    )


class ExecutionEngine:
    """
    Executes instantiated plans and records their outcome.
    """

    def __init__(
        self,
        repository: PlanRepository,
        dispatch: Dispatch,
        learner: Optional[PatternLearner] = None,
        config: Optional[EngineConfig] = None,
    ) -> None:
        self.repository = repository
        self.dispatch = dispatch
        self.learner = learner
        self.config = config or EngineConfig()

    def execute_plan(
        self,
        tenant_id: str,
        plan: Plan,
        variables: Optional[Mapping[str, JsonValue]] = None,
        pattern_id: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Execution:
        """Runs a plan to completion, failure or cancellation.

        Args:
            tenant_id: Tenant the run belongs to.
            plan: An instantiated plan. The execution is bound to the
                stored plan it came from.
            variables: Resolved variable values, kept for the audit trail.
            pattern_id: Pattern credited with the outcome. Defaults to the
                pattern bound to the plan.
            cancel_event: Set by the caller to abandon the run.

        Returns:
            The terminal execution record.
        """
        started = time.monotonic()
        execution = Execution(
            tenant_id=tenant_id,
            plan_id=plan.source_id,
            pattern_id=pattern_id,
            variables=dict(variables or {}),
            step_count=len(plan.steps),
        )
        self._persist(self.repository.create_execution, tenant_id, execution)
        logger.info(
            f"Executing plan {plan.intent} ({len(plan.steps)} steps)",
            extra=event_fields(
                "execution.started",
                tenant_id=tenant_id,
                execution_id=execution.id,
                plan_id=execution.plan_id,
                intent=plan.intent,
            ),
        )

        completed: set[int] = set()
        cancelled = False
        for step in sorted(plan.steps, key=lambda s: s.id):
            if cancel_event is not None and cancel_event.is_set():
                cancelled = True
                break

            unmet = [dep for dep in step.depends if dep not in completed]
            if unmet:
                execution.status = ExecutionStatus.FAILED
                execution.error = f"dependency not met: step {unmet[0]}"
                break

            result, step_cancelled = self._run_step(
                tenant_id, execution, step, cancel_event
            )
            execution.results.append(result)
            execution.total_tokens += result.tokens_used
            execution.total_cost += result.cost
            if result.success:
                completed.add(step.id)
                execution.steps_completed += 1
            self._persist(self.repository.update_execution, tenant_id, execution)

            if step_cancelled:
                cancelled = True
                break
            if not result.success:
                execution.status = ExecutionStatus.FAILED
                execution.error = result.error
                break

        if cancelled:
            execution.status = ExecutionStatus.FAILED
            execution.error = CANCELLED_ERROR
        elif execution.status == ExecutionStatus.RUNNING:
            execution.status = ExecutionStatus.COMPLETED

        execution.completed_at = utc_now()
        execution.duration_ms = int((time.monotonic() - started) * 1000)
        self._persist(self.repository.update_execution, tenant_id, execution)

        PLAN_EXECUTIONS_TOTAL.labels(status=execution.status).inc()
        log = logger.info if execution.status == ExecutionStatus.COMPLETED else logger.warning
        log(
            f"Plan execution {execution.status}",
            extra=event_fields(
                "execution.finished",
                tenant_id=tenant_id,
                execution_id=execution.id,
                plan_id=execution.plan_id,
                status=execution.status,
                error=execution.error or None,
                steps_completed=execution.steps_completed,
                step_count=execution.step_count,
                duration_ms=execution.duration_ms,
            ),
        )

        if self.learner is not None and not cancelled:
            try:
                self.learner.record(tenant_id, execution)
            except Exception:
                logger.exception(
                    "Failed to record execution outcome",
                    extra=event_fields(
                        "pattern.update_failed",
                        tenant_id=tenant_id,
                        execution_id=execution.id,
                    ),
                )
        return execution

    def _run_step(
        self,
        tenant_id: str,
        execution: Execution,
        step: Step,
        cancel_event: Optional[threading.Event],
    ) -> tuple[StepResult, bool]:
        """Runs one step under its timeout.

        Returns:
            The step result and whether the run was cancelled while the
            step was in flight.
        """
        timeout = (
            step.timeout if step.timeout > 0 else self.config.default_step_timeout_seconds
        )
        step_cancel = threading.Event()
        started = time.monotonic()
        deadline = started + timeout

        outcome = "success"
        result: Optional[SubagentResult] = None
        executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix=f"plan-step-{step.id}"
        )
        try:
            future = executor.submit(self.dispatch, step, step_cancel)
            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    outcome = "timeout"
                    break
                wait([future], timeout=min(self.config.poll_interval_seconds, remaining))
                if future.done():
                    result = self._collect(step, future)
                    break
                if cancel_event is not None and cancel_event.is_set():
                    outcome = "cancelled"
                    break
        finally:
            if result is None:
                # Cooperative: a subagent that ignores the event keeps running
                # on its worker thread, but its result is discarded.
                step_cancel.set()
            executor.shutdown(wait=False, cancel_futures=True)

        elapsed = time.monotonic() - started
        if outcome == "timeout":
            result = SubagentResult.failed(
                f"step {step.id} timed out after {timeout:g}s"
            )
        elif outcome == "cancelled":
            result = SubagentResult.failed(CANCELLED_ERROR)
        elif not result.success:
            outcome = "failure"

        STEP_EXECUTIONS_TOTAL.labels(subagent=step.subagent, outcome=outcome).inc()
        STEP_DURATION_SECONDS.labels(subagent=step.subagent).observe(elapsed)
        if not result.success:
            logger.warning(
                f"Step {step.id} failed: {result.error}",
                extra=event_fields(
                    "step.failed",
                    tenant_id=tenant_id,
                    execution_id=execution.id,
                    step_id=step.id,
                    subagent=step.subagent,
                    action=step.action,
                    outcome=outcome,
                ),
            )

        step_result = StepResult(
            step_id=step.id,
            success=result.success,
            data=result.data,
            error=result.error,
            tokens_used=result.tokens_used,
            cost=result.cost,
            duration_ms=int(elapsed * 1000),
        )
        return step_result, outcome == "cancelled"

    def _collect(self, step: Step, future) -> SubagentResult:
        try:
            result = future.result()
        except Exception as e:
            return SubagentResult.failed(str(e) or type(e).__name__)
        if not isinstance(result, SubagentResult):
            return SubagentResult.failed(
                f"step {step.id}: subagent returned {type(result).__name__}, "
                f"expected SubagentResult"
            )
        if not result.success and not result.error:
            return result.model_copy(update={"error": f"step {step.id} failed"})
        return result

    def _persist(self, operation, tenant_id: str, execution: Execution) -> None:
        try:
            operation(tenant_id, execution)
        except Exception:
            logger.exception(
                "Failed to persist execution",
                extra=event_fields(
                    "execution.persist_failed",
                    tenant_id=tenant_id,
                    execution_id=execution.id,
                    operation=getattr(operation, "__name__", str(operation)),
                ),
            )
