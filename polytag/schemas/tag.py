"""Pydantic schemas for Tag endpoints."""

from datetime import datetime

from pydantic import BaseModel, Field


class TagSchema(BaseModel):
    id: int
    name: str
    slug: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TagUsageSchema(BaseModel):
    name: str
    slug: str
    count: int


class TagsUpdateRequest(BaseModel):
    tags: list[str] = Field(default_factory=list)


class CleanupResponse(BaseModel):
    deleted: int


class ErrorResponse(BaseModel):
    error: str
    detail: str | None = None
