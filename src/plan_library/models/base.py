from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict


class ModelBase(BaseModel):
    """
    Base class for all plan-library models.

    Forbids unknown fields and enables assignment-time validation so that
    the engine cannot silently corrupt an execution while mutating it.
    """

    model_config = ConfigDict(
        extra="forbid",
        validate_assignment=True,
        frozen=False,
    )


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
