"""Structural and semantic plan validation.

Rules are checked in a fixed order and the first violation is raised as a
``PlanValidationError``. Dependencies may only point at lower-numbered
steps; together with contiguous ids this rules out cycles and makes the
declared order a valid topological order, so no graph search is needed.
"""

import logging

from plan_library.errors import PlanValidationError
from plan_library.models.enums import DiagnosticSeverity
from plan_library.models.plan import Plan
from plan_library.models.validation import PlanDiagnostic, ValidationReport
from plan_library.observability.logging import event_fields, get_logger
from plan_library.planning.instantiate import find_placeholders


logger = get_logger(__name__)


def validate_plan(plan: Plan) -> ValidationReport:
    """Validates a plan.

    Args:
        plan: The plan to check.

    Returns:
        A report holding the non-fatal findings (unused variables and
        placeholders that reference undeclared variables).

    Raises:
        PlanValidationError: The plan violates a structural rule.
    """
    if not plan.intent:
        raise PlanValidationError("plan intent cannot be empty")
    if not plan.description:
        raise PlanValidationError("plan description cannot be empty")
    if not plan.steps:
        raise PlanValidationError("plan must have at least one step")

    seen: set[int] = set()
    for position, step in enumerate(plan.steps, start=1):
        if not step.subagent:
            raise PlanValidationError(
                f"step {position}: subagent cannot be empty", step_id=step.id
            )
        if not step.action:
            raise PlanValidationError(
                f"step {position}: action cannot be empty", step_id=step.id
            )
        if step.id in seen:
            raise PlanValidationError(
                f"duplicate step ID: {step.id}", step_id=step.id
            )
        if step.id != position:
            raise PlanValidationError(
                f"step {position}: invalid step ID {step.id}, "
                f"ids must be contiguous starting at 1",
                step_id=step.id,
            )
        for dep in step.depends:
            if dep >= step.id:
                raise PlanValidationError(
                    f"step {step.id}: dependency on step {dep} creates "
                    f"circular reference",
                    step_id=step.id,
                )
            if dep not in seen:
                raise PlanValidationError(
                    f"step {step.id}: invalid dependency on step {dep}",
                    step_id=step.id,
                )
        seen.add(step.id)

    names: set[str] = set()
    for position, variable in enumerate(plan.variables, start=1):
        if not variable.name:
            raise PlanValidationError(f"variable {position}: name cannot be empty")
        if variable.name in names:
            raise PlanValidationError(f"duplicate variable name: {variable.name}")
        names.add(variable.name)

    report = ValidationReport(diagnostics=_usage_diagnostics(plan, names))
    for diagnostic in report.diagnostics:
        level = (
            logging.WARNING
            if diagnostic.severity == DiagnosticSeverity.WARNING
            else logging.INFO
        )
        logger.log(
            level,
            diagnostic.message,
            extra=event_fields(
                diagnostic.code,
                intent=plan.intent,
                plan_id=plan.id,
                variable=diagnostic.variable,
                step_id=diagnostic.step_id,
            ),
        )
    return report


def _usage_diagnostics(plan: Plan, declared: set[str]) -> list[PlanDiagnostic]:
    used_by_step = {step.id: find_placeholders(step.input) for step in plan.steps}
    used: set[str] = set().union(*used_by_step.values())

    diagnostics: list[PlanDiagnostic] = []
    for variable in plan.variables:
        if variable.name not in used:
            diagnostics.append(
                PlanDiagnostic(
                    code="variable.unused",
                    message=f"variable {variable.name!r} is defined but not used",
                    severity=DiagnosticSeverity.WARNING,
                    variable=variable.name,
                )
            )
    for step_id, names in used_by_step.items():
        for name in sorted(names - declared):
            diagnostics.append(
                PlanDiagnostic(
                    code="variable.undeclared",
                    message=(
                        f"step {step_id}: placeholder {{{{{name}}}}} does not "
                        f"match a declared variable"
                    ),
                    severity=DiagnosticSeverity.INFO,
                    variable=name,
                    step_id=step_id,
                )
            )
    return diagnostics
