"""Example of success-pattern learning across plan variants.

This example demonstrates how to:
1. Store two competing plans for the same intent.
2. Run both repeatedly against a flaky subagent.
3. Let the orchestrator pick the best proven plan.
"""

import random

from plan_library.execution.engine import ExecutionEngine
from plan_library.execution.subagents import (
    FunctionSubagent,
    SubagentRegistry,
    SubagentResult,
)
from plan_library.learning.learner import PatternLearner
from plan_library.models.intent import Intent
from plan_library.orchestration.orchestrator import Orchestrator
from plan_library.persistence.in_memory import InMemoryPlanRepository
from plan_library.planning.builder import PlanBuilder
from plan_library.planning.instantiate import instantiate


def flaky(data, cancel):
    if random.random() < 0.6:
        return SubagentResult(success=False, error="mirror unreachable")
    return "fetched"


def run_example():
    random.seed(7)
    repository = InMemoryPlanRepository()
    learner = PatternLearner(repository)
    tenant_id = "example-tenant"

    registry = SubagentRegistry(
        [
            FunctionSubagent(
                "research",
                {
                    "fetch_url": lambda data, cancel: "fetched",
                    "fetch_mirror": flaky,
                    "summarize": lambda data, cancel: "summary",
                },
            )
        ]
    )
    engine = ExecutionEngine(repository, registry.dispatch, learner=learner)

    direct = repository.store_plan(
        tenant_id,
        PlanBuilder("research.fetch_url", "Fetch directly")
        .add_step("research", "fetch_url", {"url": "https://example.com"})
        .add_step("research", "summarize", depends=[1])
        .build(),
    )
    mirrored = repository.store_plan(
        tenant_id,
        PlanBuilder("research.fetch_url", "Fetch through a mirror")
        .add_step("research", "fetch_mirror", {"url": "https://example.com"})
        .add_step("research", "summarize", depends=[1])
        .build(),
    )

    for _ in range(5):
        for plan in (direct, mirrored):
            engine.execute_plan(tenant_id, instantiate(plan))

    for pattern in repository.list_patterns(tenant_id):
        print(
            f"{pattern.plan_id[:8]}: {pattern.success_count}/{pattern.usage_count} "
            f"({pattern.success_rate:.0%})"
        )

    orchestrator = Orchestrator(
        tenant_id, repository, engine, learner=learner, registry=registry
    )
    plan, pattern = orchestrator.get_or_create_plan(
        Intent(category="research", subcategory="fetch_url"), "summarize example.com"
    )
    print(f"\nOrchestrator picked: {plan.description} ({pattern.success_rate:.0%})")


if __name__ == "__main__":
    run_example()
