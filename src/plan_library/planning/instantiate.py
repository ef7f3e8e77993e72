"""Template instantiation.

Placeholders have the form ``{{name}}``. Instantiation substitutes them in
every string of every step input, through nested mappings and lists.
Placeholders without a supplied value are left as literal text.
"""

import json
import re
from typing import Any, Mapping, Optional

from plan_library.errors import MissingVariableError
from plan_library.models.plan import Plan


PLACEHOLDER_PATTERN = re.compile(r"\{\{(\w+)\}\}")


def placeholder(name: str) -> str:
    return "{{" + name + "}}"


def replace_placeholders(text: str, values: Mapping[str, str]) -> str:
    def _sub(match: re.Match) -> str:
        name = match.group(1)
        if name in values:
            return str(values[name])
        return match.group(0)

    return PLACEHOLDER_PATTERN.sub(_sub, text)


def fill_variables(value: Any, values: Mapping[str, str]) -> Any:
    """Recursively substitutes placeholders inside a step input value.

    Strings are substituted, mappings and lists are rebuilt with their
    members substituted, and every other JSON scalar is returned unchanged.
    """
    if isinstance(value, str):
        return replace_placeholders(value, values)
    if isinstance(value, dict):
        return {key: fill_variables(item, values) for key, item in value.items()}
    if isinstance(value, list):
        return [fill_variables(item, values) for item in value]
    return value


def find_placeholders(value: Any) -> set[str]:
    """Returns the names of all placeholders found in a step input value."""
    if isinstance(value, str):
        return set(PLACEHOLDER_PATTERN.findall(value))
    if isinstance(value, dict):
        found: set[str] = set()
        for item in value.values():
            found |= find_placeholders(item)
        return found
    if isinstance(value, list):
        found = set()
        for item in value:
            found |= find_placeholders(item)
        return found
    return set()


def instantiate(template: Plan, values: Optional[Mapping[str, str]] = None) -> Plan:
    """Creates an executable plan from a template.

    Args:
        template: The stored plan to copy. It is never modified.
        values: Variable values keyed by variable name.

    Returns:
        A deep copy of the template with placeholders substituted, its id
        and timestamps cleared and ``template_id`` pointing at the source.

    Raises:
        MissingVariableError: A variable marked required has no entry in
            ``values``.
    """
    values = dict(values or {})
    plan = template.model_copy(deep=True)
    plan.template_id = template.id or template.template_id
    plan.id = None
    plan.created_at = None
    plan.updated_at = None

    for step in plan.steps:
        step.input = fill_variables(step.input, values)

    for variable in plan.variables:
        if variable.required and variable.name not in values:
            raise MissingVariableError(variable.name)

    return plan


def render_default(value: Any) -> str:
    return value if isinstance(value, str) else json.dumps(value)


def resolve_variables(
    plan: Plan, supplied: Optional[Mapping[str, str]] = None
) -> dict[str, str]:
    """Merges supplied values over the defaults declared by a plan.

    Declared defaults are rendered as text: strings as they are, anything
    else as JSON (so True becomes "true").
    Supplied values for names the plan does not declare are kept, so that
    free-form placeholders can still be filled.

    Args:
        plan: Plan whose variable declarations provide the defaults.
        supplied: Values extracted from the request.

    Returns:
        The variable map to pass to ``instantiate``.
    """
    resolved: dict[str, str] = {}
    for variable in plan.variables:
        if variable.default is not None:
            resolved[variable.name] = render_default(variable.default)
    for name, value in (supplied or {}).items():
        resolved[name] = value
    return resolved
