"""
FastAPI service for per-user record storage.

This service plays the remote backend for the planner: it stores courses,
assignments, study sessions and class meetings per owner and exposes list,
insert, update and delete over REST. Every request names its owner
explicitly; there is no ambient current user.
"""
from __future__ import annotations

import json
import logging
import typing as t
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Query

from planner_core.errors import NotFoundError, StoreError
from planner_core.models import COLLECTIONS
from planner_core.store import InMemoryRecordStore, UserSession
from services.shared.models import (
    HealthResponse,
    InsertRecordRequest,
    InsertRecordResponse,
    ListRecordsResponse,
    OkResponse,
    UpdateRecordRequest,
)

logger = logging.getLogger(__name__)

# In-memory storage for all collections
# In a distributed system, this would be replaced with a persistent database
store = InMemoryRecordStore()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize resources on startup and cleanup on shutdown."""
    logger.info("Record store service ready (collections: %s)", ", ".join(COLLECTIONS))
    yield


app = FastAPI(
    title="Planner Record Store",
    description="REST API for per-user courses, assignments and study sessions",
    version="1.0.0",
    lifespan=lifespan,
)


def _session(owner_id: str) -> UserSession:
    if not owner_id:
        raise HTTPException(status_code=400, detail="owner_id is required")
    return UserSession(owner_id=owner_id)


def _check_collection(collection: str) -> None:
    if collection not in COLLECTIONS:
        raise HTTPException(
            status_code=400,
            detail=f"Unknown collection '{collection}'. Known collections: {list(COLLECTIONS)}",
        )


def _parse_filters(raw_filters: list[str]) -> dict[str, t.Any]:
    """Turn ``field:value`` pairs into an equality filter.

    Values are read as JSON when possible (``completed:false``), else as text.
    """
    filters: dict[str, t.Any] = {}
    for raw in raw_filters:
        key, sep, value = raw.partition(":")
        if not sep or not key:
            raise HTTPException(status_code=400, detail=f"Malformed filter '{raw}', expected field:value")
        try:
            filters[key] = json.loads(value)
        except json.JSONDecodeError:
            filters[key] = value
    return filters


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint for container orchestration."""
    return HealthResponse(status="healthy", service="record-store-service")


@app.get("/records/{collection}", response_model=ListRecordsResponse)
async def list_records(
        collection: str,
        owner_id: str = Query(...),
        filters: t.Optional[list[str]] = Query(default=None, alias="filter"),
        order_by: t.Optional[str] = None,
        ascending: bool = True,
        embed_course: bool = False,
) -> ListRecordsResponse:
    """
    List one owner's records of a collection.

    Optional equality filters, ordering and course embedding mirror the
    record store contract.
    """
    _check_collection(collection)
    try:
        records = await store.list_items(
            _session(owner_id),
            collection,
            filters=_parse_filters(filters or []),
            order_by=order_by,
            ascending=ascending,
            embed_course=embed_course,
        )
    except StoreError as e:
        raise HTTPException(status_code=500, detail=f"Error listing records: {str(e)}")
    return ListRecordsResponse(records=records)


@app.post("/records/{collection}", response_model=InsertRecordResponse, status_code=201)
async def insert_record(collection: str, request: InsertRecordRequest) -> InsertRecordResponse:
    """Insert a record for the requesting owner."""
    _check_collection(collection)
    try:
        item_id = await store.insert_item(_session(request.owner_id), collection, request.record)
    except StoreError as e:
        raise HTTPException(status_code=409, detail=f"Error inserting record: {str(e)}")
    logger.info("Inserted %s/%s for %s", collection, item_id, request.owner_id)
    return InsertRecordResponse(id=item_id)


@app.patch("/records/{collection}/{item_id}", response_model=OkResponse)
async def update_record(collection: str, item_id: str, request: UpdateRecordRequest) -> OkResponse:
    """Apply a partial update to one of the owner's records."""
    _check_collection(collection)
    try:
        await store.update_item(_session(request.owner_id), collection, item_id, request.changes)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return OkResponse()


@app.delete("/records/{collection}/{item_id}", response_model=OkResponse)
async def delete_record(collection: str, item_id: str, owner_id: str = Query(...)) -> OkResponse:
    """Delete one of the owner's records."""
    _check_collection(collection)
    try:
        await store.delete_item(_session(owner_id), collection, item_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    logger.info("Deleted %s/%s for %s", collection, item_id, owner_id)
    return OkResponse()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8004)
