"""Basic example of the plan library execution engine.

This example demonstrates how to:
1. Store a built-in template for the 'code.fix_tests' intent.
2. Register subagents that perform the template's steps.
3. Instantiate the template with request variables and execute it.
4. Inspect the execution record and the pattern statistics.
"""

from plan_library.execution.engine import ExecutionEngine
from plan_library.execution.subagents import FunctionSubagent, SubagentRegistry
from plan_library.learning.learner import PatternLearner
from plan_library.persistence.in_memory import InMemoryPlanRepository
from plan_library.planning.formatting import format_plan
from plan_library.planning.instantiate import instantiate, resolve_variables
from plan_library.planning.templates import get_template


def run_example():
    # 1. Initialize the components of the system
    repository = InMemoryPlanRepository()
    learner = PatternLearner(repository)
    tenant_id = "example-tenant"

    # 2. Register a 'code' subagent; real handlers would shell out to git
    # and the test runner.
    code = FunctionSubagent(
        "code",
        {
            "git_status": lambda data, cancel: f"{data['path']}: working tree clean",
            "run_tests": lambda data, cancel: {"pattern": data["pattern"], "failed": 2},
            "analyze_failures": lambda data, cancel: "2 assertions compare naive datetimes",
        },
        description="Coding tasks",
    )
    registry = SubagentRegistry([code])
    engine = ExecutionEngine(repository, registry.dispatch, learner=learner)

    # 3. Store the template
    plan = repository.store_plan(tenant_id, get_template("code.fix_tests"))
    print(format_plan(plan))

    # 4. Instantiate and run it
    values = resolve_variables(plan, {"repo_path": "/tmp/my-repo"})
    execution = engine.execute_plan(
        tenant_id, instantiate(plan, values), variables=values
    )

    print(f"\nStatus: {execution.status} ({execution.steps_completed}/{execution.step_count} steps)")
    for result in execution.results:
        print(f"  Step {result.step_id}: {result.data}")

    # 5. The run was credited to the plan's pattern
    pattern = repository.get_pattern_for_plan(tenant_id, plan.id)
    print(
        f"\nPattern {pattern.intent}: {pattern.success_count}/{pattern.usage_count} "
        f"succeeded, reusable: {learner.is_reusable(pattern)}"
    )


if __name__ == "__main__":
    run_example()
