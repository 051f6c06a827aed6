# marks/routers/bookmarks.py
# FastAPI router exposing the persistence gateway (list / create / delete)

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Header, Response, status

from marks.constants import USER_ID_HEADER
from marks.core.validation import normalize_url, validate_title
from marks.errors import UnauthorizedError
from marks.repositories.bookmark_repository import BookmarkRepository
from marks.schemas.bookmark import BookmarkCreate
from marks.services.change_feed import RedisChangePublisher, get_redis


router = APIRouter(tags=["Bookmarks"])


def get_repository() -> BookmarkRepository:
    return BookmarkRepository(publisher=RedisChangePublisher(get_redis()))


def require_owner(user_id: Optional[str] = Header(default=None, alias=USER_ID_HEADER)) -> str:
    """Owner id set by the upstream auth layer; authentication itself happens there."""
    if not user_id or not user_id.strip():
        raise UnauthorizedError()
    return user_id.strip()


@router.get("/bookmarks")
async def list_bookmarks(
    owner_id: str = Depends(require_owner),
    repo: BookmarkRepository = Depends(get_repository),
) -> List[Dict[str, Any]]:
    """List the caller's bookmarks, newest first."""
    items = await repo.list_by_owner(owner_id)
    return [b.to_wire() for b in items]


@router.post("/bookmarks", status_code=status.HTTP_201_CREATED)
async def create_bookmark(
    payload: BookmarkCreate,
    owner_id: str = Depends(require_owner),
    repo: BookmarkRepository = Depends(get_repository),
) -> Dict[str, Any]:
    """Create a bookmark; the server assigns id and created_at."""
    # same rules as the client; the API is reachable without it
    title = validate_title(payload.title)
    url = normalize_url(payload.url)
    bookmark = await repo.create(owner_id, url, title)
    return bookmark.to_wire()


@router.delete("/bookmarks/{bookmark_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_bookmark(
    bookmark_id: str,
    owner_id: str = Depends(require_owner),
    repo: BookmarkRepository = Depends(get_repository),
) -> Response:
    await repo.delete(bookmark_id, owner_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
