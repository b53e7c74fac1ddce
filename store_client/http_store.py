"""
HTTP record store client.

Implements the planner's ``RecordStore`` contract on top of the record store
REST service. Transport problems and server errors surface as ``StoreError``;
a 404 on a mutation surfaces as ``NotFoundError``.
"""
from __future__ import annotations

import json
import logging
import typing as t

import httpx
from pydantic import BaseModel

from planner_core.errors import NotFoundError, StoreError
from planner_core.settings import get_settings
from planner_core.store import Record, UserSession
from services.shared.models import (
    InsertRecordRequest,
    InsertRecordResponse,
    ListRecordsResponse,
    UpdateRecordRequest,
)

logger = logging.getLogger(__name__)

Model = t.TypeVar("Model", bound=BaseModel)


def _decode(response: httpx.Response, model: type[Model]) -> Model:
    try:
        return model(**response.json())
    except (TypeError, ValueError) as e:
        raise StoreError(f"Unexpected response from record store: {e}") from e


class HttpRecordStore:
    """Record store backed by the REST service.

    Args:
        base_url: Service URL; defaults to ``PLANNER_STORE_URL``.
        timeout: Per-request timeout in seconds; defaults to ``PLANNER_HTTP_TIMEOUT``.
        client: Optional pre-built ``httpx.AsyncClient`` (its base URL is used as is).
    """

    def __init__(
            self,
            base_url: t.Optional[str] = None,
            timeout: t.Optional[float] = None,
            client: t.Optional[httpx.AsyncClient] = None,
    ) -> None:
        settings = get_settings()
        self.base_url = (base_url or settings.store_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.http_timeout
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpRecordStore":
        return self

    async def __aexit__(self, *exc_info: t.Any) -> None:
        await self.aclose()

    async def list_items(
            self,
            session: UserSession,
            collection: str,
            filters: t.Optional[t.Mapping[str, t.Any]] = None,
            order_by: t.Optional[str] = None,
            ascending: bool = True,
            embed_course: bool = False,
    ) -> list[Record]:
        params: list[tuple[str, str]] = [
            ("owner_id", session.owner_id),
            ("ascending", "true" if ascending else "false"),
            ("embed_course", "true" if embed_course else "false"),
        ]
        if order_by:
            params.append(("order_by", order_by))
        for key, value in (filters or {}).items():
            params.append(("filter", f"{key}:{json.dumps(value)}"))

        response = await self._request("GET", f"/records/{collection}", collection, params=params)
        return _decode(response, ListRecordsResponse).records

    async def insert_item(self, session: UserSession, collection: str, record: Record) -> str:
        request = InsertRecordRequest(owner_id=session.owner_id, record=record)
        response = await self._request(
            "POST", f"/records/{collection}", collection, json=request.model_dump()
        )
        return _decode(response, InsertRecordResponse).id

    async def update_item(
            self, session: UserSession, collection: str, item_id: str, changes: Record
    ) -> None:
        request = UpdateRecordRequest(owner_id=session.owner_id, changes=changes)
        await self._request(
            "PATCH", f"/records/{collection}/{item_id}", collection,
            item_id=item_id, json=request.model_dump(),
        )

    async def delete_item(self, session: UserSession, collection: str, item_id: str) -> None:
        await self._request(
            "DELETE", f"/records/{collection}/{item_id}", collection,
            item_id=item_id, params={"owner_id": session.owner_id},
        )

    async def _request(
            self,
            method: str,
            path: str,
            collection: str,
            item_id: t.Optional[str] = None,
            **kwargs: t.Any,
    ) -> httpx.Response:
        """Send one request and translate failures into store errors."""
        try:
            response = await self._client.request(method, path, **kwargs)
            response.raise_for_status()
            return response
        except httpx.TimeoutException:
            raise StoreError(f"Record store timed out after {self.timeout} seconds ({method} {path})")
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404 and item_id is not None:
                raise NotFoundError(collection, item_id) from e
            raise StoreError(
                f"HTTP error from record store: {e.response.status_code} {e.response.text}"
            ) from e
        except httpx.HTTPError as e:
            logger.debug("Record store request failed", exc_info=True)
            raise StoreError(f"Error calling record store: {str(e)}") from e
