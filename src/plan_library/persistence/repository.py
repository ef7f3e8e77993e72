"""Plan store interface.

This module defines the abstract contract for storing plans, their
companion patterns and the executions run from them. Every operation is
scoped to a tenant; a tenant never sees another tenant's rows.
"""

from abc import ABC, abstractmethod

from plan_library.models.execution import Execution
from plan_library.models.pattern import Pattern
from plan_library.models.plan import Plan


DEFAULT_HISTORY_LIMIT = 20


class PlanRepository(ABC):
    """Abstract interface for persisting plans, patterns and executions."""

    @abstractmethod
    def store_plan(self, tenant_id: str, plan: Plan) -> Plan:
        """Persists a new plan together with a fresh pattern.

        The plan receives a new id and creation/update timestamps and is
        stored active. A pattern with zero statistics is created for the
        plan's intent in the same transaction.

        Args:
            tenant_id: The owning tenant.
            plan: The plan to store. It is not modified.

        Returns:
            The stored plan, with its id and timestamps set.
        """
        pass  # pragma: no cover

    @abstractmethod
    def get_by_intent(self, tenant_id: str, intent: str) -> Plan:
        """Retrieves the most recently updated active plan for an intent.

        Raises:
            PlanNotFoundError: No active plan exists for the intent.
        """
        pass  # pragma: no cover

    @abstractmethod
    def get_by_id(self, tenant_id: str, plan_id: str) -> Plan:
        """Retrieves a plan by id, including soft-deleted plans.

        Raises:
            PlanNotFoundError: The plan does not exist for the tenant.
        """
        pass  # pragma: no cover

    @abstractmethod
    def list_plans(self, tenant_id: str) -> list[Plan]:
        """Lists the active plans of a tenant, most recently updated first."""
        pass  # pragma: no cover

    @abstractmethod
    def update_plan(self, tenant_id: str, plan: Plan) -> Plan:
        """Overwrites description, steps and variables of an active plan.

        Args:
            tenant_id: The owning tenant.
            plan: The new plan content. ``plan.id`` selects the row.

        Returns:
            The updated plan with a bumped ``updated_at``.

        Raises:
            PlanNotFoundError: The plan is absent or inactive.
        """
        pass  # pragma: no cover

    @abstractmethod
    def delete_plan(self, tenant_id: str, plan_id: str) -> None:
        """Soft-deletes a plan by marking it inactive.

        Deleting an already inactive plan is a no-op.

        Raises:
            PlanNotFoundError: The plan does not exist for the tenant.
        """
        pass  # pragma: no cover

    @abstractmethod
    def create_execution(self, tenant_id: str, execution: Execution) -> Execution:
        """Persists a new execution record and assigns its id.

        Args:
            tenant_id: The owning tenant.
            execution: The execution to store. Its id is set in place when
                missing.

        Returns:
            The stored execution.
        """
        pass  # pragma: no cover

    @abstractmethod
    def update_execution(self, tenant_id: str, execution: Execution) -> None:
        """Overwrites a stored execution with its current state.

        Raises:
            ExecutionNotFoundError: The execution was never created.
        """
        pass  # pragma: no cover

    @abstractmethod
    def get_execution(self, tenant_id: str, execution_id: str) -> Execution:
        """Retrieves one execution.

        Raises:
            ExecutionNotFoundError: The execution does not exist.
        """
        pass  # pragma: no cover

    @abstractmethod
    def get_pattern(self, tenant_id: str, intent: str) -> Pattern:
        """Retrieves the most recently updated pattern for an intent.

        Raises:
            PatternNotFoundError: No pattern exists for the intent.
        """
        pass  # pragma: no cover

    @abstractmethod
    def get_pattern_for_plan(self, tenant_id: str, plan_id: str) -> Pattern:
        """Retrieves the pattern bound to a plan.

        Raises:
            PatternNotFoundError: No pattern is bound to the plan.
        """
        pass  # pragma: no cover

    @abstractmethod
    def get_best_pattern(self, tenant_id: str, intent: str) -> Pattern:
        """Retrieves the best performing pattern for an intent.

        Only patterns with at least one success whose plan is still active
        are considered. Ties on success rate go to the more used pattern.

        Raises:
            PatternNotFoundError: No pattern qualifies.
        """
        pass  # pragma: no cover

    @abstractmethod
    def list_patterns(self, tenant_id: str) -> list[Pattern]:
        """Lists the patterns of a tenant, most used first."""
        pass  # pragma: no cover

    @abstractmethod
    def record_success(self, tenant_id: str, pattern_id: str) -> Pattern:
        """Atomically records a successful execution on a pattern.

        Raises:
            PatternNotFoundError: The pattern does not exist.
        """
        pass  # pragma: no cover

    @abstractmethod
    def record_failure(self, tenant_id: str, pattern_id: str) -> Pattern:
        """Atomically records a failed execution on a pattern.

        Raises:
            PatternNotFoundError: The pattern does not exist.
        """
        pass  # pragma: no cover

    @abstractmethod
    def get_execution_history(
        self, tenant_id: str, plan_id: str, limit: int = DEFAULT_HISTORY_LIMIT
    ) -> list[Execution]:
        """Retrieves the recent executions of a plan.

        Args:
            tenant_id: The owning tenant.
            plan_id: The plan whose executions are listed.
            limit: Maximum number of records to return.

        Returns:
            Executions ordered by start time, most recent first.
        """
        pass  # pragma: no cover
