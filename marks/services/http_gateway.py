# marks/services/http_gateway.py
# Persistence gateway client talking to the bookmarks REST API

from __future__ import annotations

from typing import Any

import httpx
from pydantic import ValidationError as PayloadError

from marks.config import settings
from marks.constants import USER_ID_HEADER
from marks.errors import NotFoundError, ServiceError
from marks.schemas.bookmark import Bookmark


class HttpBookmarkGateway:
    """
    BookmarkGateway over HTTP.

    The ``httpx.AsyncClient`` is injected (or built once by ``from_settings``)
    and lives as long as the gateway; call ``aclose()`` when done. Every
    failure surfaces as ServiceError (NotFoundError for 404).
    """

    def __init__(self, client: httpx.AsyncClient):
        self._client = client

    @classmethod
    def from_settings(
        cls,
        base_url: str = settings.API_BASE_URL,
        timeout: float = settings.REQUEST_TIMEOUT,
    ) -> "HttpBookmarkGateway":
        return cls(httpx.AsyncClient(base_url=base_url, timeout=timeout))

    async def aclose(self) -> None:
        await self._client.aclose()

    async def list_by_owner(self, owner_id: str) -> list[Bookmark]:
        resp = await self._request("GET", "/api/bookmarks", owner_id)
        payload = self._json(resp)
        if not isinstance(payload, list):
            raise ServiceError("Unexpected bookmark list payload")
        return [self._bookmark(row) for row in payload]

    async def create(self, owner_id: str, url: str, title: str) -> Bookmark:
        resp = await self._request(
            "POST", "/api/bookmarks", owner_id, json={"url": url, "title": title}
        )
        return self._bookmark(self._json(resp))

    async def delete(self, bookmark_id: str, owner_id: str) -> None:
        await self._request("DELETE", f"/api/bookmarks/{bookmark_id}", owner_id)

    # --- Helpers (private) ---

    async def _request(self, method: str, path: str, owner_id: str, **kwargs: Any) -> httpx.Response:
        try:
            resp = await self._client.request(
                method, path, headers={USER_ID_HEADER: owner_id}, **kwargs
            )
        except httpx.HTTPError as e:
            raise ServiceError(
                f"Request failed: {type(e).__name__}",
                details={"method": method, "path": path},
            ) from e
        if resp.is_error:
            raise self._error_from(resp)
        return resp

    @staticmethod
    def _error_from(resp: httpx.Response) -> ServiceError:
        message = f"HTTP {resp.status_code}"
        try:
            message = resp.json()["error"]["message"]
        except (ValueError, KeyError, TypeError):
            pass  # non-JSON error body; keep the status line
        details = {"status": resp.status_code}
        if resp.status_code == 404:
            return NotFoundError(message, details=details)
        return ServiceError(message, details=details)

    @staticmethod
    def _json(resp: httpx.Response) -> Any:
        try:
            return resp.json()
        except ValueError as e:
            raise ServiceError("Response is not valid JSON") from e

    @staticmethod
    def _bookmark(row: Any) -> Bookmark:
        try:
            return Bookmark.model_validate(row)
        except PayloadError as e:
            raise ServiceError("Response is not a valid bookmark") from e
