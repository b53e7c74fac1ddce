"""
Shared Pydantic models for REST API serialization.

These are the wire shapes of the record store service. The planner core keeps
its own dataclasses; records travel as plain JSON objects with the column names
of the store tables (``due_date``, ``start_time``, ``course_id``, ...).
"""
from __future__ import annotations

import typing as t
from pydantic import BaseModel, Field


class InsertRecordRequest(BaseModel):
    """Request model for inserting a record."""
    owner_id: str = Field(min_length=1)
    record: dict[str, t.Any]


class InsertRecordResponse(BaseModel):
    """Response model carrying the id of the new record."""
    id: str


class UpdateRecordRequest(BaseModel):
    """Request model for a partial update scoped to one owner."""
    owner_id: str = Field(min_length=1)
    changes: dict[str, t.Any]


class OkResponse(BaseModel):
    """Response model for mutations without a payload."""
    ok: bool = True


class ListRecordsResponse(BaseModel):
    """Response model for a record listing."""
    records: list[dict[str, t.Any]] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Response model for the health check."""
    status: str
    service: str
