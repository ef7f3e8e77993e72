"""SQLAlchemy models for the plan store.

Plan steps and variables, execution variables and step results are stored
as JSON columns next to the relational columns used for lookups.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class PlanRow(Base):
    """A stored plan.

    Attributes:
        id: Plan identifier (uuid).
        tenant_id: Owning tenant.
        intent: Intent key the plan serves.
        description: Human-readable description.
        steps: JSON list of step objects.
        variables: JSON list of variable declarations.
        is_active: False once the plan has been soft-deleted.
        created_at: Creation timestamp.
        updated_at: Last update timestamp.
    """

    __tablename__ = "plans"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String)
    intent: Mapped[str] = mapped_column(String)
    description: Mapped[str] = mapped_column(Text, default="")
    steps: Mapped[list[dict[str, Any]]] = mapped_column(JSON)
    variables: Mapped[list[dict[str, Any]]] = mapped_column(JSON)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    __table_args__ = (Index("ix_plans_tenant_intent", "tenant_id", "intent"),)


class PatternRow(Base):
    """Success statistics of one plan for one intent."""

    __tablename__ = "patterns"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String)
    intent: Mapped[str] = mapped_column(String)
    plan_id: Mapped[str] = mapped_column(String, index=True)
    usage_count: Mapped[int] = mapped_column(Integer, default=0)
    success_count: Mapped[int] = mapped_column(Integer, default=0)
    failure_count: Mapped[int] = mapped_column(Integer, default=0)
    success_rate: Mapped[float] = mapped_column(Float, default=0.0)
    last_used: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_succeeded: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_failed: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    __table_args__ = (Index("ix_patterns_tenant_intent", "tenant_id", "intent"),)


class ExecutionRow(Base):
    """One run of an instantiated plan.

    Attributes:
        id: Execution identifier (uuid).
        tenant_id: Owning tenant.
        plan_id: Stored plan the run is bound to.
        pattern_id: Pattern credited with the outcome.
        status: running, completed or failed.
        error: Error of the failing step.
        variables: JSON object of resolved variable values.
        results: JSON list of step results in step order.
    """

    __tablename__ = "executions"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String)
    plan_id: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    pattern_id: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(String)
    error: Mapped[str] = mapped_column(Text, default="")
    variables: Mapped[dict[str, Any]] = mapped_column(JSON)
    results: Mapped[list[dict[str, Any]]] = mapped_column(JSON)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    duration_ms: Mapped[int] = mapped_column(Integer, default=0)
    total_tokens: Mapped[int] = mapped_column(Integer, default=0)
    total_cost: Mapped[float] = mapped_column(Float, default=0.0)
    step_count: Mapped[int] = mapped_column(Integer, default=0)
    steps_completed: Mapped[int] = mapped_column(Integer, default=0)

    __table_args__ = (
        Index("ix_executions_tenant_plan", "tenant_id", "plan_id"),
    )
