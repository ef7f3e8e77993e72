"""Enumeration definitions for the plan library.

This module contains the Enum classes shared by the plan model, the
execution engine and the persistence layer.
"""

from enum import Enum


class VariableType(str, Enum):
    """Defines the value type of a template variable.

    Attributes:
        STRING: Free-form text.
        FILE_PATH: A path on the local filesystem.
        NUMBER: A numeric value, passed as its string form.
    """

    STRING = "string"
    FILE_PATH = "file_path"
    NUMBER = "number"


class ExecutionStatus(str, Enum):
    """Defines the lifecycle state of a plan execution.

    Attributes:
        RUNNING: The execution record exists and steps are being run.
        COMPLETED: Every step finished successfully.
        FAILED: A step failed, timed out, had an unmet dependency, or the
            run was cancelled.
    """

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class DiagnosticSeverity(str, Enum):
    """Defines the severity of a non-fatal validation finding.

    Attributes:
        WARNING: The plan is usable but probably not what the author meant.
        INFO: Purely informational.
    """

    WARNING = "warning"
    INFO = "info"


class LookupSource(str, Enum):
    """Defines where the orchestrator obtained the plan for a request.

    Attributes:
        PATTERN: The best-performing pattern was reusable.
        INTENT: The most recently updated plan for the intent.
        GENERATED: A new plan produced by the model.
    """

    PATTERN = "pattern"
    INTENT = "intent"
    GENERATED = "generated"
