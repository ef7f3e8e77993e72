"""Data models for plan executions.

An Execution is one concrete run of an instantiated plan. It is created when
the run starts, mutated by the engine as steps finish and finalised when the
plan terminates. Executions are never deleted; they form the audit trail
consumed by the pattern learner.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import ConfigDict, Field, JsonValue

from plan_library.models.base import ModelBase, utc_now
from plan_library.models.enums import ExecutionStatus


class StepResult(ModelBase):
    """Outcome of one executed step.

    Attributes:
        step_id: Id of the step that produced the result.
        success: Whether the step succeeded.
        data: Opaque payload returned by the subagent.
        error: Error message; empty on success.
        tokens_used: Model tokens consumed by the step.
        cost: Cost of the step in USD.
        duration_ms: Wall-clock duration of the step.
    """

    step_id: int = Field(..., description="Id of the executed step.")
    success: bool = Field(..., description="Whether the step succeeded.")
    data: Optional[Any] = Field(
        default=None, description="Opaque payload returned by the subagent."
    )
    error: str = Field(default="", description="Error message; empty on success.")
    tokens_used: int = Field(default=0, description="Tokens consumed.")
    cost: float = Field(default=0.0, description="Cost in USD.")
    duration_ms: int = Field(default=0, description="Step duration in ms.")


class Execution(ModelBase):
    """One run of an instantiated plan.

    ``results[k]`` always belongs to step ``k + 1``. Steps that were never
    reached have no entry, so a failed run has a shorter list than the plan.
    """

    model_config = ConfigDict(use_enum_values=True)

    id: Optional[str] = Field(default=None, description="Execution identifier.")
    tenant_id: str = Field(..., description="Tenant that owns the execution.")
    plan_id: Optional[str] = Field(
        default=None, description="Stored plan the run is bound to."
    )
    pattern_id: Optional[str] = Field(
        default=None, description="Pattern credited with the outcome."
    )
    variables: dict[str, JsonValue] = Field(
        default_factory=dict, description="Resolved variable values."
    )
    results: list[StepResult] = Field(
        default_factory=list, description="Results in step-id order."
    )
    status: ExecutionStatus = Field(
        default=ExecutionStatus.RUNNING, description="Lifecycle state."
    )
    error: str = Field(default="", description="Error of the failing step.")
    started_at: datetime = Field(
        default_factory=utc_now, description="When the run started."
    )
    completed_at: Optional[datetime] = Field(
        default=None, description="When the run terminated."
    )
    duration_ms: int = Field(default=0, description="Total run duration in ms.")
    total_tokens: int = Field(default=0, description="Sum of step tokens.")
    total_cost: float = Field(default=0.0, description="Sum of step costs.")
    step_count: int = Field(default=0, description="Number of steps in the plan.")
    steps_completed: int = Field(
        default=0, description="Number of steps that succeeded."
    )

    @property
    def is_terminal(self) -> bool:
        return self.status != ExecutionStatus.RUNNING

    def result_for(self, step_id: int) -> Optional[StepResult]:
        index = step_id - 1
        if 0 <= index < len(self.results):
            return self.results[index]
        return None
