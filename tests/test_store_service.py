"""Tests for the record store service and the HTTP record store client.

The client talks to the FastAPI app in-process through ``httpx.ASGITransport``.
"""
import typing as t

import httpx
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from planner_core.errors import NotFoundError, StoreError
from planner_core.models import ASSIGNMENTS, COURSES
from planner_core.store import InMemoryRecordStore, UserSession
from services.store_service import app as service
from store_client.http_store import HttpRecordStore

ALICE = UserSession("alice")
BOB = UserSession("bob")


@pytest.fixture(autouse=True)
def fresh_store(monkeypatch) -> InMemoryRecordStore:
    """Give every test an empty backing store."""
    store = InMemoryRecordStore()
    monkeypatch.setattr(service, "store", store)
    return store


@pytest_asyncio.fixture
async def client() -> t.AsyncIterator[HttpRecordStore]:
    transport = httpx.ASGITransport(app=service.app)
    async with httpx.AsyncClient(transport=transport, base_url="http://store.test") as http:
        yield HttpRecordStore(client=http)


def test_health_check() -> None:
    with TestClient(service.app) as http:
        response = http.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "record-store-service"}


def test_unknown_collection_is_rejected() -> None:
    with TestClient(service.app) as http:
        response = http.get("/records/grades", params={"owner_id": "alice"})
    assert response.status_code == 400
    assert "Unknown collection" in response.json()["detail"]


def test_insert_requires_owner() -> None:
    with TestClient(service.app) as http:
        response = http.post("/records/courses", json={"owner_id": "", "record": {"code": "CS 101"}})
    assert response.status_code == 422


def test_malformed_filter_is_rejected() -> None:
    with TestClient(service.app) as http:
        response = http.get("/records/assignments", params={"owner_id": "alice", "filter": "completed"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_insert_and_list_round_trip(client) -> None:
    item_id = await client.insert_item(ALICE, ASSIGNMENTS, {
        "title": "Problem Set 3", "course_id": "math201",
        "due_date": "2025-05-06T15:00:00+00:00", "completed": False,
    })

    [record] = await client.list_items(ALICE, ASSIGNMENTS)
    assert record["id"] == item_id
    assert record["user_id"] == "alice"
    assert "created_at" in record


@pytest.mark.asyncio
async def test_filters_and_ordering(client) -> None:
    for title, due, done in [("B", "2025-05-09T10:00:00+00:00", False),
                             ("A", "2025-05-07T10:00:00+00:00", False),
                             ("C", "2025-05-08T10:00:00+00:00", True)]:
        await client.insert_item(ALICE, ASSIGNMENTS, {"title": title, "due_date": due, "completed": done})

    ascending = await client.list_items(ALICE, ASSIGNMENTS, order_by="due_date")
    assert [r["title"] for r in ascending] == ["A", "C", "B"]

    descending = await client.list_items(ALICE, ASSIGNMENTS, order_by="due_date", ascending=False)
    assert [r["title"] for r in descending] == ["B", "C", "A"]

    pending = await client.list_items(ALICE, ASSIGNMENTS, filters={"completed": False}, order_by="due_date")
    assert [r["title"] for r in pending] == ["A", "B"]


@pytest.mark.asyncio
async def test_embed_course(client) -> None:
    await client.insert_item(ALICE, COURSES, {"id": "cs101", "code": "CS 101", "name": "Intro to CS",
                                              "color": "bg-course-blue"})
    await client.insert_item(ALICE, ASSIGNMENTS, {"title": "Linked", "course_id": "cs101",
                                                  "due_date": "2025-05-07T10:00:00+00:00"})
    await client.insert_item(ALICE, ASSIGNMENTS, {"title": "Dangling", "course_id": "gone",
                                                  "due_date": "2025-05-08T10:00:00+00:00"})

    rows = await client.list_items(ALICE, ASSIGNMENTS, order_by="due_date", embed_course=True)
    assert rows[0]["course"] == {"code": "CS 101", "name": "Intro to CS", "color": "bg-course-blue"}
    assert rows[1]["course"] is None


@pytest.mark.asyncio
async def test_records_are_scoped_to_their_owner(client) -> None:
    item_id = await client.insert_item(ALICE, ASSIGNMENTS, {"title": "Alice's", "due_date": "2025-05-07"})

    assert await client.list_items(BOB, ASSIGNMENTS) == []
    with pytest.raises(NotFoundError):
        await client.update_item(BOB, ASSIGNMENTS, item_id, {"completed": True})
    with pytest.raises(NotFoundError):
        await client.delete_item(BOB, ASSIGNMENTS, item_id)

    [record] = await client.list_items(ALICE, ASSIGNMENTS)
    assert record["title"] == "Alice's"


@pytest.mark.asyncio
async def test_update_and_delete(client) -> None:
    item_id = await client.insert_item(ALICE, ASSIGNMENTS, {"title": "Essay", "completed": False})

    await client.update_item(ALICE, ASSIGNMENTS, item_id, {"completed": True, "user_id": "mallory"})
    [record] = await client.list_items(ALICE, ASSIGNMENTS)
    assert record["completed"] is True
    assert record["user_id"] == "alice"
    assert "updated_at" in record

    await client.delete_item(ALICE, ASSIGNMENTS, item_id)
    assert await client.list_items(ALICE, ASSIGNMENTS) == []

    with pytest.raises(NotFoundError) as exc_info:
        await client.delete_item(ALICE, ASSIGNMENTS, item_id)
    assert exc_info.value.item_id == item_id


@pytest.mark.asyncio
async def test_server_errors_become_store_errors(client) -> None:
    with pytest.raises(StoreError) as exc_info:
        await client.list_items(ALICE, "grades")
    assert not isinstance(exc_info.value, NotFoundError)
    assert "400" in str(exc_info.value)

    await client.insert_item(ALICE, COURSES, {"id": "cs101", "code": "CS 101"})
    with pytest.raises(StoreError):
        await client.insert_item(ALICE, COURSES, {"id": "cs101", "code": "CS 101"})


@pytest.mark.asyncio
async def test_transport_failures_become_store_errors() -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    def time_out(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("too slow", request=request)

    def garbage(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>not json</html>")

    for handler, expected in [(refuse, "connection refused"), (time_out, "timed out"),
                              (garbage, "Unexpected response")]:
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://x") as http:
            store = HttpRecordStore(client=http, timeout=1.0)
            with pytest.raises(StoreError) as exc_info:
                await store.list_items(ALICE, ASSIGNMENTS)
            assert expected in str(exc_info.value)


@pytest.mark.asyncio
async def test_ordering_compares_timestamps_across_offsets(client) -> None:
    # 07:00 UTC
    await client.insert_item(ALICE, ASSIGNMENTS, {"title": "Berlin", "due_date": "2025-05-07T09:00:00+02:00"})
    await client.insert_item(ALICE, ASSIGNMENTS, {"title": "London", "due_date": "2025-05-07T08:00:00+00:00"})
    await client.insert_item(ALICE, ASSIGNMENTS, {"title": "Undated"})

    ascending = await client.list_items(ALICE, ASSIGNMENTS, order_by="due_date")
    assert [r["title"] for r in ascending] == ["Berlin", "London", "Undated"]

    descending = await client.list_items(ALICE, ASSIGNMENTS, order_by="due_date", ascending=False)
    assert [r["title"] for r in descending] == ["London", "Berlin", "Undated"]
