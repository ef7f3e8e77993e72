"""Exception hierarchy for the plan library.

Every error carries a machine-readable ``code`` and a human-readable
``detail``. Validation errors abort the operation that produced them,
not-found errors tell the caller to fall back to the next lookup strategy,
and step errors never escape the execution engine: they are recorded in the
step result instead.
"""

from typing import Optional


class PlanLibraryError(Exception):
    code = "plan_library.error"

    def __init__(self, detail: str, code: Optional[str] = None):
        self.detail = detail
        if code is not None:
            self.code = code
        super().__init__(detail)


class PlanValidationError(PlanLibraryError):
    """A plan is structurally or semantically malformed."""

    code = "plan.invalid"

    def __init__(self, detail: str, step_id: Optional[int] = None):
        self.step_id = step_id
        super().__init__(detail)


class MissingVariableError(PlanValidationError):
    """A required template variable was not supplied."""

    code = "variable.missing"

    def __init__(self, variable: str):
        self.variable = variable
        super().__init__(f"required variable {variable!r} not provided")


class PlanNotFoundError(PlanLibraryError):
    code = "plan.not_found"

    def __init__(self, detail: str = "plan not found"):
        super().__init__(detail)


class PatternNotFoundError(PlanLibraryError):
    code = "pattern.not_found"

    def __init__(self, detail: str = "pattern not found"):
        super().__init__(detail)


class ExecutionNotFoundError(PlanLibraryError):
    code = "execution.not_found"

    def __init__(self, detail: str = "execution not found"):
        super().__init__(detail)


class PlanGenerationError(PlanLibraryError):
    """The model could not produce a usable plan."""

    code = "plan.generation_failed"


class SubagentError(PlanLibraryError):
    """Raised by subagent implementations when an action fails.

    The engine converts it, like any other exception raised while running a
    step, into a failed step result.
    """

    code = "subagent.failed"
