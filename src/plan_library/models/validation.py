"""Data models for plan validation findings.

Fatal problems are raised as ``PlanValidationError``; everything else is
collected as diagnostics and returned to the caller.
"""

from typing import Optional

from pydantic import ConfigDict, Field

from plan_library.models.base import ModelBase
from plan_library.models.enums import DiagnosticSeverity


class PlanDiagnostic(ModelBase):
    """A non-fatal validation finding.

    Attributes:
        code: Machine-readable finding code (e.g., 'variable.unused').
        message: Human-readable explanation.
        severity: How much the finding matters.
        variable: Variable the finding concerns, if any.
        step_id: Step the finding concerns, if any.
    """

    model_config = ConfigDict(use_enum_values=True)

    code: str = Field(..., description="Machine-readable finding code.")
    message: str = Field(..., description="Human-readable explanation.")
    severity: DiagnosticSeverity = Field(default=DiagnosticSeverity.WARNING)
    variable: Optional[str] = None
    step_id: Optional[int] = None


class ValidationReport(ModelBase):
    """Outcome of a successful validation.

    Attributes:
        diagnostics: Non-fatal findings, in discovery order.
    """

    diagnostics: list[PlanDiagnostic] = Field(default_factory=list)

    @property
    def warnings(self) -> list[PlanDiagnostic]:
        return [
            d for d in self.diagnostics if d.severity == DiagnosticSeverity.WARNING
        ]

    @property
    def ok(self) -> bool:
        return not self.warnings
