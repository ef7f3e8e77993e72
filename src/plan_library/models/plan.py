"""Data models for reusable execution plans.

A plan is an ordered list of steps, each delegated to a subagent, plus the
template variables whose ``{{name}}`` placeholders appear in step inputs.
Plans are stored per tenant and keyed by intent so that identical requests
can reuse a plan that has worked before.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import ConfigDict, Field, JsonValue, ValidationInfo, field_validator

from plan_library.models.base import ModelBase
from plan_library.models.enums import VariableType


DEFAULT_STEP_TIMEOUT_SECONDS = 120


class Step(ModelBase):
    """A single delegated unit of work.

    Attributes:
        id: 1-based position of the step within its plan.
        subagent: Name of the capability that performs the step.
        action: Verb within that capability.
        input: Named arguments. Values may contain unresolved placeholders
            until the plan is instantiated.
        depends: Ids of steps that must have completed first.
        timeout: Timeout in seconds.
    """

    id: int = Field(..., description="1-based position of the step.")
    subagent: str = Field(
        ..., description="Name of the subagent that performs the step."
    )
    action: str = Field(..., description="Action within the subagent.")
    input: dict[str, JsonValue] = Field(
        default_factory=dict,
        description="Named arguments; values may contain {{placeholders}}.",
    )
    depends: list[int] = Field(
        default_factory=list,
        description="Ids of steps that must complete before this one.",
    )
    timeout: int = Field(
        default=DEFAULT_STEP_TIMEOUT_SECONDS,
        description="Step timeout in seconds.",
    )

    @field_validator("input", "depends", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any, info: ValidationInfo) -> Any:
        # Generated plans frequently serialise empty collections as null.
        if value is None:
            return {} if info.field_name == "input" else []
        return value


class Variable(ModelBase):
    """A named template slot.

    Attributes:
        name: Placeholder name, referenced as ``{{name}}`` in step inputs.
        type: Declared value type.
        description: What the variable is for.
        required: Whether instantiation fails when no value is supplied.
        default: Optional default value.
    """

    model_config = ConfigDict(use_enum_values=True)

    name: str = Field(..., description="Placeholder name.")
    type: VariableType = Field(
        default=VariableType.STRING, description="Declared value type."
    )
    description: str = Field(default="", description="What the variable is for.")
    required: bool = Field(
        default=False, description="Whether a value must be supplied."
    )
    default: Optional[JsonValue] = Field(
        default=None, description="Default value, if any."
    )


class Plan(ModelBase):
    """A reusable recipe for fulfilling an intent.

    Attributes:
        id: Identifier assigned by the store on first persist.
        intent: ``category.subcategory`` key this plan serves.
        description: Human-readable summary.
        steps: Ordered steps, referenced by 1-based position.
        variables: Template variables.
        template_id: For instantiated plans, the id of the stored plan they
            were copied from.
        created_at: When the plan was first stored.
        updated_at: When the plan was last stored or updated.
    """

    id: Optional[str] = Field(
        default=None, description="Identifier assigned by the store."
    )
    intent: str = Field(default="", description="Intent key served by the plan.")
    description: str = Field(default="", description="Human-readable summary.")
    steps: list[Step] = Field(
        default_factory=list, description="Ordered list of steps."
    )
    variables: list[Variable] = Field(
        default_factory=list, description="Template variables."
    )
    template_id: Optional[str] = Field(
        default=None,
        description="Id of the stored plan this instance was copied from.",
    )
    created_at: Optional[datetime] = Field(
        default=None, description="When the plan was first stored."
    )
    updated_at: Optional[datetime] = Field(
        default=None, description="When the plan was last stored or updated."
    )

    @field_validator("steps", "variables", mode="before")
    @classmethod
    def _none_to_list(cls, value: Any) -> Any:
        return [] if value is None else value

    def get_step(self, step_id: int) -> Optional[Step]:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None

    def get_variable(self, name: str) -> Optional[Variable]:
        for variable in self.variables:
            if variable.name == name:
                return variable
        return None

    @property
    def source_id(self) -> Optional[str]:
        """The stored plan an execution of this plan is bound to."""
        return self.id or self.template_id


class CostEstimate(ModelBase):
    """Advisory token and cost estimate for a plan.

    Attributes:
        total_steps: Number of steps in the plan.
        estimated_tokens: Heuristic token count.
        estimated_cost: Estimated cost in USD.
    """

    total_steps: int = Field(..., description="Number of steps in the plan.")
    estimated_tokens: int = Field(..., description="Heuristic token count.")
    estimated_cost: float = Field(..., description="Estimated cost in USD.")
