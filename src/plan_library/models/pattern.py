from datetime import datetime
from typing import Optional

from pydantic import Field

from plan_library.models.base import ModelBase, utc_now


class Pattern(ModelBase):
    """
    Running success statistics for one (tenant, intent) bound to a plan.

    Created together with the plan, updated after every finished execution
    and never deleted.
    """

    id: str = Field(..., description="Pattern identifier.")
    tenant_id: str = Field(..., description="Tenant that owns the pattern.")
    intent: str = Field(..., description="Intent key the pattern tracks.")
    plan_id: str = Field(..., description="Plan the statistics are bound to.")
    usage_count: int = Field(default=0, ge=0)
    success_count: int = Field(default=0, ge=0)
    failure_count: int = Field(default=0, ge=0)
    success_rate: float = Field(default=0.0, ge=0.0, le=1.0)
    last_used: Optional[datetime] = None
    last_succeeded: Optional[datetime] = None
    last_failed: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
