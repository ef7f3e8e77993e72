import json
from pathlib import Path

from plan_library.models.execution import Execution, StepResult
from plan_library.models.intent import Intent
from plan_library.models.pattern import Pattern
from plan_library.models.plan import Plan


OUTPUT_DIR = Path("docs/schemas")


MODELS = {
    "plan.schema.json": Plan,
    "execution.schema.json": Execution,
    "step_result.schema.json": StepResult,
    "pattern.schema.json": Pattern,
    "intent.schema.json": Intent,
}


def main() -> None:
    OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
    for filename, model in MODELS.items():
        schema = model.model_json_schema()
        (OUTPUT_DIR / filename).write_text(
            json.dumps(schema, indent=2),
            encoding="utf-8",
        )


if __name__ == "__main__":
    main()
