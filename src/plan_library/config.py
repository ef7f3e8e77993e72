"""Runtime settings for the plan library.

Settings are read from environment variables; every value has a default so
that the library works out of the box against a local SQLite file.
"""

import os
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_DATABASE_URL = "sqlite:///./plan_library.sqlite3"
DEFAULT_TENANT_ID = "default"


class LibrarySettings(BaseModel):
    """
    Process-wide settings, resolved once at startup.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    database_url: str = Field(
        default=DEFAULT_DATABASE_URL,
        description="SQLAlchemy URL of the plan store.",
    )
    tenant_id: str = Field(
        default=DEFAULT_TENANT_ID,
        description="Tenant used when none is given explicitly.",
    )
    log_level: Optional[str] = Field(
        default=None, description="Log level for the CLI; logging stays off when unset."
    )
    reuse_threshold: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Success rate a pattern must exceed to be reused.",
    )
    default_step_timeout_seconds: float = Field(
        default=300.0,
        gt=0,
        description="Timeout for steps without a positive timeout.",
    )
    history_limit: int = Field(
        default=20, ge=1, description="Default size of execution history pages."
    )
    openai_model: str = Field(
        default="gpt-4o-mini", description="Model used for plan generation."
    )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "LibrarySettings":
        """Builds settings from environment variables.

        Args:
            environ: Mapping to read from. Defaults to ``os.environ``.

        Returns:
            The resolved settings.
        """
        env = os.environ if environ is None else environ
        values: dict[str, str] = {}
        for field_name, var in (
            ("database_url", "DATABASE_URL"),
            ("tenant_id", "PLAN_LIBRARY_TENANT"),
            ("log_level", "LOG_LEVEL"),
            ("reuse_threshold", "PLAN_REUSE_THRESHOLD"),
            ("default_step_timeout_seconds", "DEFAULT_STEP_TIMEOUT"),
            ("history_limit", "PLAN_HISTORY_LIMIT"),
            ("openai_model", "OPENAI_MODEL"),
        ):
            if env.get(var):
                values[field_name] = env[var]
        return cls(**values)
