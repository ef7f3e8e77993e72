"""Abstract base class for plan-generation model adapters.

The orchestrator asks a language model for a new plan when no stored plan
exists for an intent. This module defines the interface it relies on.
"""

from abc import ABC, abstractmethod

from pydantic import Field

from plan_library.models.base import ModelBase


class ModelResponse(ModelBase):
    """Text produced by a model, with its usage.

    Attributes:
        text: The generated text.
        tokens_used: Total tokens billed for the call.
        cost: Cost of the call in USD.
        model: Identifier of the model that answered.
    """

    text: str = Field(..., description="Generated text.")
    tokens_used: int = Field(default=0, ge=0)
    cost: float = Field(default=0.0, ge=0.0)
    model: str = Field(default="", description="Model identifier.")


class PlanModel(ABC):
    """Abstract base class for plan-generation models."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Identifier of the underlying model."""
        pass  # pragma: no cover

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the model can currently be called."""
        pass  # pragma: no cover

    @abstractmethod
    def generate(self, prompt: str, want_json: bool = False) -> ModelResponse:
        """Generates a completion for a prompt.

        Args:
            prompt: The full prompt text.
            want_json: Ask the model to answer with a single JSON object.

        Returns:
            The model's answer.
        """
        pass  # pragma: no cover
