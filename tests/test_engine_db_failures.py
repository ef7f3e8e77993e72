from unittest.mock import MagicMock

import pytest

from plan_library.execution.engine import ExecutionEngine
from plan_library.models.enums import ExecutionStatus
from plan_library.persistence.in_memory import InMemoryPlanRepository
from plan_library.planning.builder import PlanBuilder
from plan_library.planning.instantiate import instantiate


TENANT = "tenant-fail"


class TestEngineDBFailures:
    @pytest.fixture
    def setup(self, registry, learner):
        repository = learner.repository
        engine = ExecutionEngine(repository, registry.dispatch, learner=learner)
        plan = repository.store_plan(
            TENANT,
            PlanBuilder("test.db", "d").add_step("test", "ok").add_step("test", "ok").build(),
        )
        return engine, repository, plan

    def test_create_execution_db_fail(self, setup):
        engine, repo, plan = setup
        repo.create_execution = MagicMock(side_effect=Exception("DB Error"))

        execution = engine.execute_plan(TENANT, instantiate(plan))

        # The run goes on in memory.
        assert execution.status == ExecutionStatus.COMPLETED
        assert execution.steps_completed == 2
        assert repo.create_execution.called

    def test_update_execution_db_fail(self, setup):
        engine, repo, plan = setup
        repo.update_execution = MagicMock(side_effect=Exception("DB Error"))

        execution = engine.execute_plan(TENANT, instantiate(plan))

        assert execution.status == ExecutionStatus.COMPLETED
        # Once per step and once at the end.
        assert repo.update_execution.call_count == 3
        # Learning still happens.
        assert repo.get_pattern_for_plan(TENANT, plan.id).success_count == 1

    def test_learner_failure_is_suppressed(self, setup):
        engine, repo, plan = setup
        repo.record_success = MagicMock(side_effect=Exception("DB Error"))

        execution = engine.execute_plan(TENANT, instantiate(plan))

        assert execution.status == ExecutionStatus.COMPLETED
        assert repo.record_success.called

    def test_fully_broken_store(self, registry):
        repo = MagicMock(spec=InMemoryPlanRepository)
        repo.create_execution.side_effect = Exception("DB Error")
        repo.update_execution.side_effect = Exception("DB Error")
        engine = ExecutionEngine(repo, registry.dispatch)

        execution = engine.execute_plan(
            TENANT, PlanBuilder("t.x", "d").add_step("test", "fail").build()
        )

        assert execution.status == ExecutionStatus.FAILED
        assert execution.error == "boom"
