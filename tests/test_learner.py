from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from plan_library.learning.learner import PatternLearner
from plan_library.learning.stats import (
    REUSE_THRESHOLD,
    apply_failure,
    apply_success,
    is_reusable,
    success_rate,
)
from plan_library.models.enums import ExecutionStatus
from plan_library.models.execution import Execution
from plan_library.models.pattern import Pattern
from plan_library.planning.templates import get_template


TENANT = "t1"


def _pattern(**kwargs):
    return Pattern(id="p1", tenant_id=TENANT, intent="code.fix_tests", plan_id="plan-1", **kwargs)


class TestStats:
    def test_success_rate(self):
        assert success_rate(0, 0) == 0.0
        assert success_rate(3, 4) == 0.75

    def test_apply_success(self):
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)
        updated = apply_success(_pattern(), now)
        assert updated.usage_count == 1
        assert updated.success_count == 1
        assert updated.failure_count == 0
        assert updated.success_rate == 1.0
        assert updated.last_used == now
        assert updated.last_succeeded == now
        assert updated.last_failed is None

    def test_apply_failure(self):
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)
        updated = apply_failure(_pattern(usage_count=1, success_count=1, success_rate=1.0), now)
        assert updated.usage_count == 2
        assert updated.failure_count == 1
        assert updated.success_rate == 0.5
        assert updated.last_failed == now
        assert updated.last_succeeded is None

    def test_apply_does_not_mutate(self):
        pattern = _pattern()
        apply_success(pattern)
        assert pattern.usage_count == 0

    def test_reuse_threshold(self):
        assert REUSE_THRESHOLD == 0.7
        assert not is_reusable(_pattern())
        assert not is_reusable(_pattern(usage_count=10, success_count=7, success_rate=0.7))
        assert is_reusable(_pattern(usage_count=10, success_count=8, success_rate=0.8))
        assert is_reusable(_pattern(usage_count=2, success_count=1, success_rate=0.5), 0.4)

    def test_success_sequence(self):
        pattern = _pattern()
        for outcome in (True, True, False, True):
            pattern = apply_success(pattern) if outcome else apply_failure(pattern)
        assert pattern.usage_count == 4
        assert pattern.success_count == 3
        assert pattern.failure_count == 1
        assert pattern.success_rate == 0.75


class TestPatternLearner:
    @pytest.fixture
    def stored(self, repo):
        plan = repo.store_plan(TENANT, get_template("code.fix_tests"))
        return plan, repo.get_pattern_for_plan(TENANT, plan.id)

    def test_records_success_on_plan_pattern(self, repo, learner, stored):
        plan, pattern = stored
        execution = Execution(tenant_id=TENANT, plan_id=plan.id, status=ExecutionStatus.COMPLETED)
        updated = learner.record(TENANT, execution)
        assert updated.id == pattern.id
        assert updated.success_count == 1

    def test_records_failure_on_explicit_pattern(self, repo, learner, stored):
        _, pattern = stored
        execution = Execution(
            tenant_id=TENANT, pattern_id=pattern.id, status=ExecutionStatus.FAILED
        )
        updated = learner.record(TENANT, execution)
        assert updated.failure_count == 1
        assert repo.get_pattern_for_plan(TENANT, pattern.plan_id).failure_count == 1

    def test_unbound_execution_is_ignored(self, learner):
        execution = Execution(tenant_id=TENANT, status=ExecutionStatus.COMPLETED)
        assert learner.record(TENANT, execution) is None

    def test_unknown_pattern_is_ignored(self, learner):
        execution = Execution(
            tenant_id=TENANT, pattern_id="gone", status=ExecutionStatus.COMPLETED
        )
        assert learner.record(TENANT, execution) is None

    def test_running_execution_is_rejected(self, learner):
        with pytest.raises(ValueError):
            learner.record(TENANT, Execution(tenant_id=TENANT, pattern_id="p"))

    def test_custom_threshold(self):
        learner = PatternLearner(MagicMock(), threshold=0.4)
        assert learner.is_reusable(_pattern(usage_count=2, success_count=1, success_rate=0.5))
        assert not PatternLearner(MagicMock()).is_reusable(
            _pattern(usage_count=2, success_count=1, success_rate=0.5)
        )
