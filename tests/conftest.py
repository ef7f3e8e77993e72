import threading

import pytest

from plan_library.execution.engine import EngineConfig, ExecutionEngine
from plan_library.execution.subagents import (
    FunctionSubagent,
    SubagentRegistry,
    SubagentResult,
)
from plan_library.learning.learner import PatternLearner
from plan_library.persistence.in_memory import InMemoryPlanRepository
from plan_library.planning.builder import PlanBuilder


class CallLog:
    """Records the steps a fake subagent was asked to run."""

    def __init__(self):
        self.calls = []
        self._lock = threading.Lock()

    def record(self, action, data):
        with self._lock:
            self.calls.append((action, dict(data)))

    @property
    def actions(self):
        return [action for action, _ in self.calls]


def _recording(log, action, result=None):
    def handler(data, cancel_event):
        log.record(action, data)
        if result is not None:
            return result
        return f"{action} ok"

    return handler


def _failing(log, action, error="boom"):
    def handler(data, cancel_event):
        log.record(action, data)
        return SubagentResult(success=False, error=error)

    return handler


def _slow(log, action):
    def handler(data, cancel_event):
        log.record(action, data)
        cancel_event.wait(5)
        return "too late"

    return handler


@pytest.fixture
def call_log():
    return CallLog()


@pytest.fixture
def registry(call_log):
    code = FunctionSubagent(
        "code",
        {
            "git_status": _recording(call_log, "git_status", "clean"),
            "run_tests": _recording(call_log, "run_tests", "2 failed"),
            "analyze_failures": _recording(call_log, "analyze_failures"),
            "analyze_structure": _recording(call_log, "analyze_structure"),
        },
        description="Coding tasks",
    )
    file = FunctionSubagent(
        "file",
        {
            "list": _recording(call_log, "list"),
            "search": _recording(call_log, "search"),
            "replace": _recording(call_log, "replace"),
        },
    )
    test = FunctionSubagent(
        "test",
        {
            "ok": _recording(call_log, "ok"),
            "fail": _failing(call_log, "fail"),
            "slow": _slow(call_log, "slow"),
            "silent": lambda data, cancel_event: None,
        },
    )
    return SubagentRegistry([code, file, test])


@pytest.fixture
def repo():
    return InMemoryPlanRepository()


@pytest.fixture
def learner(repo):
    return PatternLearner(repo)


@pytest.fixture
def engine(repo, registry, learner):
    return ExecutionEngine(
        repo,
        registry.dispatch,
        learner=learner,
        config=EngineConfig(poll_interval_seconds=0.01),
    )


@pytest.fixture
def three_step_plan():
    return (
        PlanBuilder("test.three", "Three sequential steps")
        .add_step("test", "ok")
        .add_step("test", "ok", depends=[1])
        .add_step("test", "ok", depends=[2])
        .build()
    )
