"""Data models returned by the orchestrator."""

from typing import Optional

from pydantic import Field

from plan_library.models.base import ModelBase
from plan_library.models.execution import Execution
from plan_library.models.intent import Intent


class Response(ModelBase):
    """Result of processing one request.

    Attributes:
        intent: The intent the request was classified as.
        message: Human-readable reply derived from the execution.
        execution: The execution record, if a plan was run.
        duration_ms: Total processing time.
        tier: Classifier tier of the intent.
    """

    intent: Intent
    message: str
    execution: Optional[Execution] = None
    duration_ms: int = 0
    tier: int = 0


class Status(ModelBase):
    """Snapshot of the orchestrator's environment.

    Attributes:
        tenant_id: Tenant the orchestrator serves.
        plans_count: Number of tracked patterns for the tenant.
        subagents: Names of the registered subagents.
        model_available: Whether a plan-generation model is usable.
        model_name: Identifier of the plan-generation model.
    """

    tenant_id: str
    plans_count: int = 0
    subagents: list[str] = Field(default_factory=list)
    model_available: bool = False
    model_name: str = ""
