"""SQLAlchemy implementation of the PlanRepository."""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Float, cast, desc, select, update

from plan_library.errors import (
    ExecutionNotFoundError,
    PatternNotFoundError,
    PlanNotFoundError,
)
from plan_library.models.base import utc_now
from plan_library.models.execution import Execution, StepResult
from plan_library.models.pattern import Pattern
from plan_library.models.plan import Plan, Step, Variable
from plan_library.persistence.db import make_engine, make_session_factory
from plan_library.persistence.locks import KeyedLocks
from plan_library.persistence.models import Base, ExecutionRow, PatternRow, PlanRow
from plan_library.persistence.repository import DEFAULT_HISTORY_LIMIT, PlanRepository


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _plan_from_row(row: PlanRow) -> Plan:
    return Plan(
        id=row.id,
        intent=row.intent,
        description=row.description,
        steps=[Step.model_validate(s) for s in row.steps or []],
        variables=[Variable.model_validate(v) for v in row.variables or []],
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
    )


def _pattern_from_row(row: PatternRow) -> Pattern:
    return Pattern(
        id=row.id,
        tenant_id=row.tenant_id,
        intent=row.intent,
        plan_id=row.plan_id,
        usage_count=row.usage_count,
        success_count=row.success_count,
        failure_count=row.failure_count,
        success_rate=row.success_rate,
        last_used=_aware(row.last_used),
        last_succeeded=_aware(row.last_succeeded),
        last_failed=_aware(row.last_failed),
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
    )


def _execution_from_row(row: ExecutionRow) -> Execution:
    return Execution(
        id=row.id,
        tenant_id=row.tenant_id,
        plan_id=row.plan_id,
        pattern_id=row.pattern_id,
        variables=row.variables or {},
        results=[StepResult.model_validate(r) for r in row.results or []],
        status=row.status,
        error=row.error or "",
        started_at=_aware(row.started_at),
        completed_at=_aware(row.completed_at),
        duration_ms=row.duration_ms,
        total_tokens=row.total_tokens,
        total_cost=row.total_cost,
        step_count=row.step_count,
        steps_completed=row.steps_completed,
    )


def _copy_execution(row: ExecutionRow, execution: Execution) -> None:
    row.plan_id = execution.plan_id
    row.pattern_id = execution.pattern_id
    row.status = execution.status
    row.error = execution.error
    row.variables = dict(execution.variables)
    row.results = [r.model_dump(mode="json") for r in execution.results]
    row.started_at = execution.started_at
    row.completed_at = execution.completed_at
    row.duration_ms = execution.duration_ms
    row.total_tokens = execution.total_tokens
    row.total_cost = execution.total_cost
    row.step_count = execution.step_count
    row.steps_completed = execution.steps_completed


class SQLPlanRepository(PlanRepository):
    """Production-ready SQL plan store."""

    def __init__(self, database_url: str):
        """Initialize the repository with a database URL.

        Args:
            database_url: SQLAlchemy connection string.
        """
        self.engine = make_engine(database_url)
        Base.metadata.create_all(self.engine)
        self.SessionLocal = make_session_factory(self.engine)
        self._pattern_locks = KeyedLocks()

    # --- Plans ---

    def store_plan(self, tenant_id: str, plan: Plan) -> Plan:
        now = utc_now()
        stored = plan.model_copy(deep=True)
        stored.id = str(uuid.uuid4())
        stored.created_at = now
        stored.updated_at = now
        stored.template_id = None

        with self.SessionLocal() as session:
            session.add(
                PlanRow(
                    id=stored.id,
                    tenant_id=tenant_id,
                    intent=stored.intent,
                    description=stored.description,
                    steps=[s.model_dump(mode="json") for s in stored.steps],
                    variables=[v.model_dump(mode="json") for v in stored.variables],
                    is_active=True,
                    created_at=now,
                    updated_at=now,
                )
            )
            session.add(
                PatternRow(
                    id=str(uuid.uuid4()),
                    tenant_id=tenant_id,
                    intent=stored.intent,
                    plan_id=stored.id,
                    usage_count=0,
                    success_count=0,
                    failure_count=0,
                    success_rate=0.0,
                    created_at=now,
                    updated_at=now,
                )
            )
            session.commit()
        return stored

    def get_by_intent(self, tenant_id: str, intent: str) -> Plan:
        with self.SessionLocal() as session:
            stmt = (
                select(PlanRow)
                .where(
                    PlanRow.tenant_id == tenant_id,
                    PlanRow.intent == intent,
                    PlanRow.is_active.is_(True),
                )
                .order_by(desc(PlanRow.updated_at), desc(PlanRow.created_at))
                .limit(1)
            )
            row = session.execute(stmt).scalar_one_or_none()
            if row is None:
                raise PlanNotFoundError(f"no plan found for intent: {intent}")
            return _plan_from_row(row)

    def _get_plan_row(self, session, tenant_id: str, plan_id: Optional[str]):
        if not plan_id:
            return None
        row = session.get(PlanRow, plan_id)
        if row is None or row.tenant_id != tenant_id:
            return None
        return row

    def get_by_id(self, tenant_id: str, plan_id: str) -> Plan:
        with self.SessionLocal() as session:
            row = self._get_plan_row(session, tenant_id, plan_id)
            if row is None:
                raise PlanNotFoundError(f"plan not found: {plan_id}")
            return _plan_from_row(row)

    def list_plans(self, tenant_id: str) -> list[Plan]:
        with self.SessionLocal() as session:
            stmt = (
                select(PlanRow)
                .where(PlanRow.tenant_id == tenant_id, PlanRow.is_active.is_(True))
                .order_by(desc(PlanRow.updated_at), desc(PlanRow.created_at))
            )
            return [_plan_from_row(r) for r in session.execute(stmt).scalars()]

    def update_plan(self, tenant_id: str, plan: Plan) -> Plan:
        with self.SessionLocal() as session:
            row = self._get_plan_row(session, tenant_id, plan.id)
            if row is None or not row.is_active:
                raise PlanNotFoundError(f"plan not found: {plan.id}")
            row.description = plan.description
            row.steps = [s.model_dump(mode="json") for s in plan.steps]
            row.variables = [v.model_dump(mode="json") for v in plan.variables]
            row.updated_at = utc_now()
            session.commit()
            return _plan_from_row(row)

    def delete_plan(self, tenant_id: str, plan_id: str) -> None:
        with self.SessionLocal() as session:
            row = self._get_plan_row(session, tenant_id, plan_id)
            if row is None:
                raise PlanNotFoundError(f"plan not found: {plan_id}")
            row.is_active = False
            session.commit()

    # --- Executions ---

    def create_execution(self, tenant_id: str, execution: Execution) -> Execution:
        if not execution.id:
            execution.id = str(uuid.uuid4())
        with self.SessionLocal() as session:
            row = ExecutionRow(id=execution.id, tenant_id=tenant_id)
            _copy_execution(row, execution)
            session.add(row)
            session.commit()
        return execution

    def update_execution(self, tenant_id: str, execution: Execution) -> None:
        with self.SessionLocal() as session:
            row = session.get(ExecutionRow, execution.id) if execution.id else None
            if row is None or row.tenant_id != tenant_id:
                raise ExecutionNotFoundError(f"execution not found: {execution.id}")
            _copy_execution(row, execution)
            session.commit()

    def get_execution(self, tenant_id: str, execution_id: str) -> Execution:
        with self.SessionLocal() as session:
            row = session.get(ExecutionRow, execution_id)
            if row is None or row.tenant_id != tenant_id:
                raise ExecutionNotFoundError(f"execution not found: {execution_id}")
            return _execution_from_row(row)

    def get_execution_history(
        self, tenant_id: str, plan_id: str, limit: int = DEFAULT_HISTORY_LIMIT
    ) -> list[Execution]:
        with self.SessionLocal() as session:
            stmt = (
                select(ExecutionRow)
                .where(
                    ExecutionRow.tenant_id == tenant_id,
                    ExecutionRow.plan_id == plan_id,
                )
                .order_by(desc(ExecutionRow.started_at))
                .limit(limit)
            )
            return [_execution_from_row(r) for r in session.execute(stmt).scalars()]

    # --- Patterns ---

    def get_pattern(self, tenant_id: str, intent: str) -> Pattern:
        with self.SessionLocal() as session:
            stmt = (
                select(PatternRow)
                .where(PatternRow.tenant_id == tenant_id, PatternRow.intent == intent)
                .order_by(desc(PatternRow.updated_at), desc(PatternRow.created_at))
                .limit(1)
            )
            row = session.execute(stmt).scalar_one_or_none()
            if row is None:
                raise PatternNotFoundError(f"no pattern found for intent: {intent}")
            return _pattern_from_row(row)

    def get_pattern_for_plan(self, tenant_id: str, plan_id: str) -> Pattern:
        with self.SessionLocal() as session:
            stmt = (
                select(PatternRow)
                .where(
                    PatternRow.tenant_id == tenant_id, PatternRow.plan_id == plan_id
                )
                .limit(1)
            )
            row = session.execute(stmt).scalar_one_or_none()
            if row is None:
                raise PatternNotFoundError(f"no pattern bound to plan: {plan_id}")
            return _pattern_from_row(row)

    def get_best_pattern(self, tenant_id: str, intent: str) -> Pattern:
        with self.SessionLocal() as session:
            stmt = (
                select(PatternRow)
                .join(PlanRow, PlanRow.id == PatternRow.plan_id)
                .where(
                    PatternRow.tenant_id == tenant_id,
                    PatternRow.intent == intent,
                    PatternRow.success_count > 0,
                    PlanRow.is_active.is_(True),
                )
                .order_by(desc(PatternRow.success_rate), desc(PatternRow.usage_count))
                .limit(1)
            )
            row = session.execute(stmt).scalar_one_or_none()
            if row is None:
                raise PatternNotFoundError(
                    f"no successful pattern found for intent: {intent}"
                )
            return _pattern_from_row(row)

    def list_patterns(self, tenant_id: str) -> list[Pattern]:
        with self.SessionLocal() as session:
            stmt = (
                select(PatternRow)
                .where(PatternRow.tenant_id == tenant_id)
                .order_by(desc(PatternRow.usage_count))
            )
            return [_pattern_from_row(r) for r in session.execute(stmt).scalars()]

    def _record(self, tenant_id: str, pattern_id: str, succeeded: bool) -> Pattern:
        with self.SessionLocal() as session:
            intent = session.execute(
                select(PatternRow.intent).where(
                    PatternRow.id == pattern_id, PatternRow.tenant_id == tenant_id
                )
            ).scalar_one_or_none()
        if intent is None:
            raise PatternNotFoundError(f"pattern not found: {pattern_id}")

        now = utc_now()
        usage = PatternRow.usage_count + 1
        successes = PatternRow.success_count + (1 if succeeded else 0)
        values = {
            "usage_count": usage,
            "success_rate": cast(successes, Float) / usage,
            "last_used": now,
            "updated_at": now,
        }
        if succeeded:
            values["success_count"] = successes
            values["last_succeeded"] = now
        else:
            values["failure_count"] = PatternRow.failure_count + 1
            values["last_failed"] = now

        with self._pattern_locks.lock_for((tenant_id, intent)):
            with self.SessionLocal() as session:
                # Right-hand sides see the pre-update row, so the whole
                # read-modify-write happens inside one statement.
                session.execute(
                    update(PatternRow)
                    .where(
                        PatternRow.id == pattern_id,
                        PatternRow.tenant_id == tenant_id,
                    )
                    .values(**values)
                )
                session.commit()
                row = session.get(PatternRow, pattern_id, populate_existing=True)
                return _pattern_from_row(row)

    def record_success(self, tenant_id: str, pattern_id: str) -> Pattern:
        return self._record(tenant_id, pattern_id, succeeded=True)

    def record_failure(self, tenant_id: str, pattern_id: str) -> Pattern:
        return self._record(tenant_id, pattern_id, succeeded=False)

