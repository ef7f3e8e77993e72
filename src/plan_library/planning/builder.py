"""Construction helpers for plans.

``PlanBuilder`` accumulates steps and variables for a single construction;
``build_plan`` does the same from finished lists. Neither validates: call
``validate_plan`` explicitly once the plan is complete.
"""

from typing import Any, Iterable, Mapping, Optional

from plan_library.models.enums import VariableType
from plan_library.models.plan import DEFAULT_STEP_TIMEOUT_SECONDS, Plan, Step, Variable


class PlanBuilder:
    """Fluent, single-use builder for a plan.

    Every added step receives the next sequential id. ``build`` returns a
    deep copy, so the builder can be discarded or extended further without
    affecting plans it already produced.
    """

    def __init__(self, intent: str, description: str):
        self._intent = intent
        self._description = description
        self._steps: list[Step] = []
        self._variables: list[Variable] = []

    def add_step(
        self,
        subagent: str,
        action: str,
        input: Optional[Mapping[str, Any]] = None,
        depends: Optional[Iterable[int]] = None,
        timeout: int = DEFAULT_STEP_TIMEOUT_SECONDS,
    ) -> "PlanBuilder":
        """Appends a step.

        Args:
            subagent: Name of the subagent that performs the step.
            action: Action within the subagent.
            input: Named arguments, possibly containing placeholders.
            depends: Ids of steps that must complete first.
            timeout: Step timeout in seconds.

        Returns:
            The builder, for chaining.
        """
        self._steps.append(
            Step(
                id=len(self._steps) + 1,
                subagent=subagent,
                action=action,
                input=dict(input or {}),
                depends=list(depends or []),
                timeout=timeout,
            )
        )
        return self

    def add_variable(
        self,
        name: str,
        type: VariableType | str = VariableType.STRING,
        description: str = "",
        required: bool = False,
        default: Any = None,
    ) -> "PlanBuilder":
        """Declares a template variable.

        Args:
            name: Placeholder name.
            type: Declared value type.
            description: What the variable is for.
            required: Whether instantiation needs a value for it.
            default: Optional default value.

        Returns:
            The builder, for chaining.
        """
        self._variables.append(
            Variable(
                name=name,
                type=type,
                description=description,
                required=required,
                default=default,
            )
        )
        return self

    def build(self) -> Plan:
        plan = Plan(
            intent=self._intent,
            description=self._description,
            steps=self._steps,
            variables=self._variables,
        )
        return plan.model_copy(deep=True)


def build_plan(
    intent: str,
    description: str,
    steps: Iterable[Mapping[str, Any]],
    variables: Iterable[Mapping[str, Any]] = (),
) -> Plan:
    """Builds a plan from finished step and variable declarations.

    Args:
        intent: Intent key the plan serves.
        description: Human-readable summary.
        steps: Step declarations without ids, in execution order. Keys are
            ``subagent``, ``action`` and optionally ``input``, ``depends``
            and ``timeout``.
        variables: Variable declarations (``name``, ``type``,
            ``description``, ``required``, ``default``).

    Returns:
        A new, unvalidated plan whose steps are numbered from 1.
    """
    builder = PlanBuilder(intent, description)
    for entry in steps:
        builder.add_step(
            entry["subagent"],
            entry["action"],
            input=entry.get("input"),
            depends=entry.get("depends"),
            timeout=entry.get("timeout", DEFAULT_STEP_TIMEOUT_SECONDS),
        )
    for entry in variables:
        builder.add_variable(
            entry["name"],
            type=entry.get("type", VariableType.STRING),
            description=entry.get("description", ""),
            required=entry.get("required", False),
            default=entry.get("default"),
        )
    return builder.build()
