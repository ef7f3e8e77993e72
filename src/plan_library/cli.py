"""CLI tool for managing the plan library."""

import json
import sys
from pathlib import Path
from typing import Any, NoReturn, Optional

import typer
import yaml
from jsonschema import validate as json_validate
from jsonschema.exceptions import ValidationError as JsonSchemaValidationError
from typing_extensions import Annotated

from plan_library.config import LibrarySettings
from plan_library.errors import PlanLibraryError
from plan_library.models.plan import Plan
from plan_library.observability.logging import setup_logging
from plan_library.persistence.repository import PlanRepository
from plan_library.persistence.sql_repository import SQLPlanRepository
from plan_library.planning.costs import estimate_cost
from plan_library.planning.formatting import format_plan
from plan_library.planning.templates import list_templates, seed_templates
from plan_library.planning.validation import validate_plan


app = typer.Typer(help="Plan Library Management CLI")
plan_app = typer.Typer(help="Manage stored plans")
pattern_app = typer.Typer(help="Inspect pattern statistics")
template_app = typer.Typer(help="Manage built-in templates")
execution_app = typer.Typer(help="Inspect executions")

app.add_typer(plan_app, name="plan")
app.add_typer(pattern_app, name="pattern")
app.add_typer(template_app, name="template")
app.add_typer(execution_app, name="execution")

TenantOption = Annotated[
    Optional[str],
    typer.Option("--tenant", help="Tenant ID (defaults to PLAN_LIBRARY_TENANT)"),
]


@app.callback()
def main(
    log_level: Annotated[
        Optional[str], typer.Option(help="Enable JSON logging at this level")
    ] = None,
):
    """Plan Library Management CLI."""
    level = log_level or get_settings().log_level
    if level:
        setup_logging(level=level, stream=sys.stderr)


def get_settings() -> LibrarySettings:
    return LibrarySettings.from_env()


def get_repo() -> PlanRepository:
    return SQLPlanRepository(get_settings().database_url)


def _tenant(tenant: Optional[str]) -> str:
    return tenant or get_settings().tenant_id


def _fail(message: str) -> NoReturn:
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(code=1)


def load_plan_file(file_path: Path) -> Plan:
    """Loads a YAML or JSON plan file and checks it against the Plan schema."""
    if not file_path.exists():
        _fail(f"File not found: {file_path}")

    try:
        with open(file_path, "r") as f:
            if file_path.suffix.lower() == ".json":
                data: Any = json.load(f)
            else:
                data = yaml.safe_load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        _fail(f"Could not parse {file_path}: {e}")

    try:
        json_validate(instance=data, schema=Plan.model_json_schema())
    except JsonSchemaValidationError as e:
        typer.echo(f"Validation Error: {e.message}", err=True)
        if e.path:
            typer.echo(f"Path: {'.'.join(str(p) for p in e.path)}", err=True)
        raise typer.Exit(code=1)

    return Plan.model_validate(data)


def _check_plan(plan: Plan) -> None:
    try:
        report = validate_plan(plan)
    except PlanLibraryError as e:
        _fail(e.detail)
    for diagnostic in report.diagnostics:
        typer.echo(f"{diagnostic.severity}: {diagnostic.message}")


@plan_app.command("list")
def plan_list(tenant: TenantOption = None):
    """Lists active plans."""
    plans = get_repo().list_plans(_tenant(tenant))
    if not plans:
        typer.echo("No plans found.")
        return

    for p in plans:
        typer.echo(f"[{p.intent}] {p.id}: {p.description} ({len(p.steps)} steps)")


@plan_app.command("show")
def plan_show(
    plan_id: Annotated[str, typer.Argument(help="Plan ID")],
    tenant: TenantOption = None,
):
    """Shows a stored plan."""
    try:
        plan = get_repo().get_by_id(_tenant(tenant), plan_id)
    except PlanLibraryError as e:
        _fail(e.detail)
    typer.echo(format_plan(plan))


@plan_app.command("delete")
def plan_delete(
    plan_id: Annotated[str, typer.Argument(help="Plan ID")],
    tenant: TenantOption = None,
):
    """Deactivates a stored plan. Its history is kept."""
    try:
        get_repo().delete_plan(_tenant(tenant), plan_id)
    except PlanLibraryError as e:
        _fail(e.detail)
    typer.echo(f"Plan deleted: {plan_id}")


@plan_app.command("validate")
def plan_validate(
    file_path: Annotated[Path, typer.Argument(help="Path to plan YAML/JSON file")],
):
    """Validates a plan file against the schema and the plan rules."""
    plan = load_plan_file(file_path)
    _check_plan(plan)
    typer.echo(f"Plan file {file_path} is valid.")


@plan_app.command("estimate")
def plan_estimate(
    file_path: Annotated[Path, typer.Argument(help="Path to plan YAML/JSON file")],
):
    """Prints the advisory token and cost estimate of a plan file."""
    plan = load_plan_file(file_path)
    estimate = estimate_cost(plan)
    typer.echo(f"Steps: {estimate.total_steps}")
    typer.echo(f"Estimated tokens: {estimate.estimated_tokens}")
    typer.echo(f"Estimated cost: ${estimate.estimated_cost:.4f}")


@plan_app.command("import")
def plan_import(
    file_path: Annotated[Path, typer.Argument(help="Path to plan YAML/JSON file")],
    tenant: TenantOption = None,
):
    """Validates a plan file and stores it."""
    plan = load_plan_file(file_path)
    _check_plan(plan)
    stored = get_repo().store_plan(_tenant(tenant), plan)
    typer.echo(f"Plan imported: {stored.intent} (ID: {stored.id})")


@pattern_app.command("list")
def pattern_list(tenant: TenantOption = None):
    """Lists patterns, most used first."""
    patterns = get_repo().list_patterns(_tenant(tenant))
    if not patterns:
        typer.echo("No patterns found.")
        return

    for p in patterns:
        typer.echo(
            f"{p.intent} -> {p.plan_id}: {p.success_count}/{p.usage_count} "
            f"succeeded ({p.success_rate:.0%})"
        )


@pattern_app.command("best")
def pattern_best(
    intent: Annotated[str, typer.Argument(help="Intent key, e.g. code.fix_tests")],
    tenant: TenantOption = None,
):
    """Shows the best performing pattern for an intent."""
    try:
        p = get_repo().get_best_pattern(_tenant(tenant), intent)
    except PlanLibraryError as e:
        _fail(e.detail)
    typer.echo(f"Pattern: {p.id}")
    typer.echo(f"Plan: {p.plan_id}")
    typer.echo(f"Success rate: {p.success_rate:.0%} ({p.usage_count} runs)")


@template_app.command("list")
def template_list():
    """Lists the built-in templates."""
    for intent in list_templates():
        typer.echo(intent)


@template_app.command("seed")
def template_seed(tenant: TenantOption = None):
    """Stores every built-in template the tenant has no plan for."""
    stored = seed_templates(get_repo(), _tenant(tenant))
    if not stored:
        typer.echo("All templates already present.")
        return
    for plan in stored:
        typer.echo(f"Seeded: {plan.intent} (ID: {plan.id})")


@execution_app.command("history")
def execution_history(
    plan_id: Annotated[str, typer.Argument(help="Plan ID")],
    limit: Annotated[
        Optional[int], typer.Option(help="Maximum number of executions")
    ] = None,
    tenant: TenantOption = None,
):
    """Lists the most recent executions of a plan."""
    settings = get_settings()
    executions = get_repo().get_execution_history(
        tenant or settings.tenant_id, plan_id, limit or settings.history_limit
    )
    if not executions:
        typer.echo(f"No executions found for plan: {plan_id}")
        return

    for e in executions:
        line = (
            f"[{e.status}] {e.id}: {e.steps_completed}/{e.step_count} steps, "
            f"{e.duration_ms}ms"
        )
        if e.error:
            line += f" ({e.error})"
        typer.echo(line)


if __name__ == "__main__":
    app()
