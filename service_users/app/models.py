"""
Request and response schemas shared by the users API and its frontend.

``SCHEMA_VERSION`` is bumped whenever the list envelope changes shape; the
browser client in ``static/app.js`` checks it before reading ``data``.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


SCHEMA_VERSION = 1


class UserCreateRequest(BaseModel):
    """Body of ``POST /api/users``.

    Fields are optional at the parsing layer so that missing values reach
    the domain validator and are reported as ``VALIDATION_ERROR``.
    """

    name: Optional[str] = None
    email: Optional[str] = None


class UserRecord(BaseModel):
    """A stored user. Immutable once created."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int
    name: str
    email: str
    created_at: datetime


class UserListResponse(BaseModel):
    """Envelope for ``GET /api/users``."""

    schema_version: int = SCHEMA_VERSION
    source: Literal["cache", "database"]
    data: List[UserRecord] = Field(default_factory=list)


class StatsResponse(BaseModel):
    """Body of ``GET /api/stats``."""

    totalVisits: int


class HealthResponse(BaseModel):
    status: str = "ok"
    timestamp: datetime
    environment: Optional[str] = None
