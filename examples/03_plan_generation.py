"""Example of generating plans for unknown intents with OpenAI.

This example demonstrates how to:
1. Build the orchestrator from environment settings (requires OPENAI_API_KEY).
2. Process a request whose intent has no stored plan.
3. Reuse the generated plan on the next identical request.
"""

import os
from pathlib import Path

from plan_library.bootstrap import build_orchestrator, build_plan_model
from plan_library.config import LibrarySettings
from plan_library.execution.subagents import FunctionSubagent, SubagentRegistry
from plan_library.models.intent import Intent
from plan_library.observability.logging import setup_logging
from plan_library.persistence.sql_repository import SQLPlanRepository


def run_example():
    if not os.environ.get("OPENAI_API_KEY"):
        print("Set OPENAI_API_KEY to run this example.")
        return

    setup_logging(level="INFO")
    settings = LibrarySettings.from_env()
    registry = SubagentRegistry(
        [
            FunctionSubagent(
                "file",
                {
                    "list": lambda data, cancel: sorted(os.listdir(data.get("path") or ".")),
                    "read": lambda data, cancel: Path(data["path"]).read_text()[:200],
                },
            )
        ]
    )
    orchestrator = build_orchestrator(
        registry,
        settings=settings,
        repository=SQLPlanRepository("sqlite:///:memory:"),
        model=build_plan_model(settings),
    )

    intent = Intent(category="file", subcategory="list", variables={"path": "."})
    for attempt in (1, 2):
        response = orchestrator.process(intent, "what files are in this directory?")
        print(f"Attempt {attempt} ({response.duration_ms}ms):\n{response.message}\n")

    print(orchestrator.get_status().model_dump_json(indent=2))


if __name__ == "__main__":
    run_example()
