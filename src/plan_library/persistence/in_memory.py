"""In-memory implementation of the PlanRepository.

This module provides a thread-safe, ephemeral plan store suitable for
testing and local development.
"""

import itertools
import threading
import uuid
from typing import Callable

from plan_library.errors import (
    ExecutionNotFoundError,
    PatternNotFoundError,
    PlanNotFoundError,
)
from plan_library.learning.stats import apply_failure, apply_success
from plan_library.models.base import utc_now
from plan_library.models.execution import Execution
from plan_library.models.pattern import Pattern
from plan_library.models.plan import Plan
from plan_library.persistence.locks import KeyedLocks
from plan_library.persistence.repository import DEFAULT_HISTORY_LIMIT, PlanRepository


class InMemoryPlanRepository(PlanRepository):
    """In-memory implementation of the PlanRepository.

    Every value handed in or out is a deep copy, so callers can never
    mutate stored state behind the store's back.
    """

    def __init__(self):
        """Initializes the empty in-memory stores."""
        self._lock = threading.RLock()
        self._pattern_locks = KeyedLocks()
        # Insertion/update sequence, used to break timestamp ties.
        self._clock = itertools.count()
        self._plans: dict[tuple[str, str], Plan] = {}
        self._active: dict[tuple[str, str], bool] = {}
        self._patterns: dict[tuple[str, str], Pattern] = {}
        self._executions: dict[tuple[str, str], Execution] = {}
        self._touched: dict[tuple[str, str], int] = {}

    def _touch(self, kind: str, object_id: str) -> None:
        self._touched[(kind, object_id)] = next(self._clock)

    def _recency(self, kind: str, object_id: str) -> int:
        return self._touched.get((kind, object_id), -1)

    # --- Plans ---

    def store_plan(self, tenant_id: str, plan: Plan) -> Plan:
        now = utc_now()
        stored = plan.model_copy(deep=True)
        stored.id = str(uuid.uuid4())
        stored.created_at = now
        stored.updated_at = now
        stored.template_id = None
        pattern = Pattern(
            id=str(uuid.uuid4()),
            tenant_id=tenant_id,
            intent=stored.intent,
            plan_id=stored.id,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._plans[(tenant_id, stored.id)] = stored
            self._active[(tenant_id, stored.id)] = True
            self._patterns[(tenant_id, pattern.id)] = pattern
            self._touch("plan", stored.id)
            self._touch("pattern", pattern.id)
        return stored.model_copy(deep=True)

    def _active_plans(self, tenant_id: str) -> list[Plan]:
        plans = [
            plan
            for (tenant, plan_id), plan in self._plans.items()
            if tenant == tenant_id and self._active[(tenant, plan_id)]
        ]
        plans.sort(
            key=lambda p: (p.updated_at, self._recency("plan", p.id)), reverse=True
        )
        return plans

    def get_by_intent(self, tenant_id: str, intent: str) -> Plan:
        with self._lock:
            for plan in self._active_plans(tenant_id):
                if plan.intent == intent:
                    return plan.model_copy(deep=True)
        raise PlanNotFoundError(f"no plan found for intent: {intent}")

    def get_by_id(self, tenant_id: str, plan_id: str) -> Plan:
        with self._lock:
            plan = self._plans.get((tenant_id, plan_id))
            if plan is None:
                raise PlanNotFoundError(f"plan not found: {plan_id}")
            return plan.model_copy(deep=True)

    def list_plans(self, tenant_id: str) -> list[Plan]:
        with self._lock:
            return [p.model_copy(deep=True) for p in self._active_plans(tenant_id)]

    def update_plan(self, tenant_id: str, plan: Plan) -> Plan:
        key = (tenant_id, plan.id or "")
        with self._lock:
            current = self._plans.get(key)
            if current is None or not self._active[key]:
                raise PlanNotFoundError(f"plan not found: {plan.id}")
            updated = current.model_copy(
                update={
                    "description": plan.description,
                    "steps": [s.model_copy(deep=True) for s in plan.steps],
                    "variables": [v.model_copy(deep=True) for v in plan.variables],
                    "updated_at": utc_now(),
                }
            )
            self._plans[key] = updated
            self._touch("plan", updated.id)
            return updated.model_copy(deep=True)

    def delete_plan(self, tenant_id: str, plan_id: str) -> None:
        key = (tenant_id, plan_id)
        with self._lock:
            if key not in self._plans:
                raise PlanNotFoundError(f"plan not found: {plan_id}")
            self._active[key] = False

    # --- Executions ---

    def create_execution(self, tenant_id: str, execution: Execution) -> Execution:
        if not execution.id:
            execution.id = str(uuid.uuid4())
        with self._lock:
            self._executions[(tenant_id, execution.id)] = execution.model_copy(
                deep=True
            )
            self._touch("execution", execution.id)
        return execution

    def update_execution(self, tenant_id: str, execution: Execution) -> None:
        key = (tenant_id, execution.id or "")
        with self._lock:
            if key not in self._executions:
                raise ExecutionNotFoundError(f"execution not found: {execution.id}")
            self._executions[key] = execution.model_copy(deep=True)

    def get_execution(self, tenant_id: str, execution_id: str) -> Execution:
        with self._lock:
            execution = self._executions.get((tenant_id, execution_id))
            if execution is None:
                raise ExecutionNotFoundError(f"execution not found: {execution_id}")
            return execution.model_copy(deep=True)

    def get_execution_history(
        self, tenant_id: str, plan_id: str, limit: int = DEFAULT_HISTORY_LIMIT
    ) -> list[Execution]:
        with self._lock:
            rows = [
                e
                for (tenant, _), e in self._executions.items()
                if tenant == tenant_id and e.plan_id == plan_id
            ]
            rows.sort(
                key=lambda e: (e.started_at, self._recency("execution", e.id)),
                reverse=True,
            )
            return [e.model_copy(deep=True) for e in rows[:limit]]

    # --- Patterns ---

    def _tenant_patterns(self, tenant_id: str) -> list[Pattern]:
        return [p for (tenant, _), p in self._patterns.items() if tenant == tenant_id]

    def get_pattern(self, tenant_id: str, intent: str) -> Pattern:
        with self._lock:
            candidates = [
                p for p in self._tenant_patterns(tenant_id) if p.intent == intent
            ]
            if not candidates:
                raise PatternNotFoundError(f"no pattern found for intent: {intent}")
            best = max(
                candidates,
                key=lambda p: (p.updated_at, self._recency("pattern", p.id)),
            )
            return best.model_copy(deep=True)

    def get_pattern_for_plan(self, tenant_id: str, plan_id: str) -> Pattern:
        with self._lock:
            for pattern in self._tenant_patterns(tenant_id):
                if pattern.plan_id == plan_id:
                    return pattern.model_copy(deep=True)
        raise PatternNotFoundError(f"no pattern bound to plan: {plan_id}")

    def get_best_pattern(self, tenant_id: str, intent: str) -> Pattern:
        with self._lock:
            candidates = [
                p
                for p in self._tenant_patterns(tenant_id)
                if p.intent == intent
                and p.success_count > 0
                and self._active.get((tenant_id, p.plan_id), False)
            ]
            if not candidates:
                raise PatternNotFoundError(
                    f"no successful pattern found for intent: {intent}"
                )
            best = max(candidates, key=lambda p: (p.success_rate, p.usage_count))
            return best.model_copy(deep=True)

    def list_patterns(self, tenant_id: str) -> list[Pattern]:
        with self._lock:
            patterns = sorted(
                self._tenant_patterns(tenant_id),
                key=lambda p: p.usage_count,
                reverse=True,
            )
            return [p.model_copy(deep=True) for p in patterns]

    def _update_pattern(
        self,
        tenant_id: str,
        pattern_id: str,
        apply: Callable[[Pattern], Pattern],
    ) -> Pattern:
        key = (tenant_id, pattern_id)
        with self._lock:
            current = self._patterns.get(key)
            if current is None:
                raise PatternNotFoundError(f"pattern not found: {pattern_id}")
            intent = current.intent
        with self._pattern_locks.lock_for((tenant_id, intent)):
            with self._lock:
                updated = apply(self._patterns[key])
                self._patterns[key] = updated
                self._touch("pattern", pattern_id)
                return updated.model_copy(deep=True)

    def record_success(self, tenant_id: str, pattern_id: str) -> Pattern:
        return self._update_pattern(tenant_id, pattern_id, apply_success)

    def record_failure(self, tenant_id: str, pattern_id: str) -> Pattern:
        return self._update_pattern(tenant_id, pattern_id, apply_failure)
