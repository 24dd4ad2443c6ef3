"""Pydantic models for deployment status notifications."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from scribe.models.enums import DeploymentStatus


class CommitInfo(BaseModel):
    model_config = ConfigDict(extra="forbid")

    sha: str = Field(..., min_length=1)
    message: str
    author: str
    url: str | None = None


class DeploymentData(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    status: DeploymentStatus
    environment: str
    branch: str
    commit: CommitInfo
    url: str | None = None
    start_time: datetime
    end_time: datetime | None = None
    duration_ms: int | None = Field(None, ge=0)
    error: str | None = None
