"""Subagent interface and registry.

A subagent is a named capability (e.g. 'code', 'file', 'research') that
performs the steps delegated to it. The registry maps subagent names to
implementations and is the default dispatch function of the execution
engine.
"""

import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from pydantic import Field

from plan_library.models.base import ModelBase
from plan_library.models.plan import Step
from plan_library.observability.logging import event_fields, get_logger


logger = get_logger(__name__)


class SubagentResult(ModelBase):
    """Outcome reported by a subagent for one step.

    Attributes:
        success: Whether the action succeeded.
        data: Opaque payload.
        error: Error message; empty on success.
        tokens_used: Model tokens the action consumed.
        cost: Cost of the action in USD.
    """

    success: bool = Field(..., description="Whether the action succeeded.")
    data: Optional[Any] = Field(default=None, description="Opaque payload.")
    error: str = Field(default="", description="Error message.")
    tokens_used: int = Field(default=0, ge=0)
    cost: float = Field(default=0.0, ge=0.0)

    @classmethod
    def failed(cls, error: str) -> "SubagentResult":
        return cls(success=False, error=error)


class Subagent(ABC):
    """Interface for step executors."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Name steps use to address this subagent."""
        pass  # pragma: no cover

    @property
    def description(self) -> str:
        return ""

    @property
    @abstractmethod
    def capabilities(self) -> list[str]:
        """Actions this subagent can perform."""
        pass  # pragma: no cover

    def validate_action(self, action: str) -> bool:
        return action in self.capabilities

    @abstractmethod
    def execute(self, step: Step, cancel_event: threading.Event) -> SubagentResult:
        """Performs one step.

        Implementations that run for long should check ``cancel_event``
        periodically and return early once it is set.

        Args:
            step: The instantiated step to perform.
            cancel_event: Set when the step timed out or the run was
                cancelled.

        Returns:
            The outcome of the step. Raising is also allowed; the engine
            records any exception as a failed step.
        """
        pass  # pragma: no cover


ActionHandler = Callable[[dict[str, Any], threading.Event], Any]


class FunctionSubagent(Subagent):
    """Subagent backed by one plain function per action.

    A handler receives the step input and the cancellation event. Its
    return value becomes the step data; a returned ``SubagentResult`` is
    passed through unchanged.
    """

    def __init__(
        self,
        name: str,
        handlers: dict[str, ActionHandler],
        description: str = "",
    ):
        self._name = name
        self._handlers = dict(handlers)
        self._description = description

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def capabilities(self) -> list[str]:
        return sorted(self._handlers)

    def execute(self, step: Step, cancel_event: threading.Event) -> SubagentResult:
        handler = self._handlers[step.action]
        output = handler(step.input, cancel_event)
        if isinstance(output, SubagentResult):
            return output
        return SubagentResult(success=True, data=output)


class SubagentRegistry:
    """Name to subagent mapping used to dispatch steps."""

    def __init__(self, subagents: Optional[list[Subagent]] = None):
        self._subagents: dict[str, Subagent] = {}
        for subagent in subagents or []:
            self.register(subagent)

    def register(self, subagent: Subagent) -> None:
        """Registers a subagent, replacing any with the same name."""
        if subagent.name in self._subagents:
            logger.warning(
                f"Replacing subagent {subagent.name}",
                extra=event_fields("subagent.replaced", subagent=subagent.name),
            )
        self._subagents[subagent.name] = subagent

    def get(self, name: str) -> Optional[Subagent]:
        return self._subagents.get(name)

    def names(self) -> list[str]:
        return sorted(self._subagents)

    def find_for_action(self, action: str) -> Optional[Subagent]:
        """Returns the first subagent, by name, that accepts an action."""
        for name in self.names():
            subagent = self._subagents[name]
            if subagent.validate_action(action):
                return subagent
        return None

    def dispatch(self, step: Step, cancel_event: threading.Event) -> SubagentResult:
        """Routes a step to its subagent.

        Unknown subagents and rejected actions produce a failed result
        instead of an exception.
        """
        subagent = self._subagents.get(step.subagent)
        if subagent is None:
            return SubagentResult.failed(f'subagent "{step.subagent}" not found')
        if not subagent.validate_action(step.action):
            return SubagentResult.failed(
                f'subagent "{step.subagent}" does not support action '
                f'"{step.action}"'
            )
        return subagent.execute(step, cancel_event)
