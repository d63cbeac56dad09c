from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query

from app.core.deps import get_catalog_client
from app.core.errors import NotFound, TvGuideError, as_http_exception
from app.integrations.tvmaze import DEFAULT_SCHEDULE_COUNTRY, TvMazeClient

router = APIRouter(prefix="/api", tags=["shows"])


@router.get("/shows/search")
async def search_shows(q: str = Query(..., min_length=1), catalog: TvMazeClient = Depends(get_catalog_client)):
    query = q.strip()
    if not query:
        raise HTTPException(status_code=400, detail="q is required")
    try:
        return await catalog.search_shows(query)
    except TvGuideError as exc:
        raise as_http_exception(exc) from exc


@router.get("/shows")
async def list_shows(page: int = Query(0, ge=0), catalog: TvMazeClient = Depends(get_catalog_client)):
    try:
        return await catalog.get_shows_by_page(page)
    except TvGuideError as exc:
        raise as_http_exception(exc) from exc


@router.get("/shows/{show_id}")
async def get_show(show_id: int, embed: bool = False, catalog: TvMazeClient = Depends(get_catalog_client)):
    try:
        if embed:
            show = await catalog.get_show_with_episodes_and_cast(show_id)
        else:
            show = await catalog.get_show_details(show_id)
    except TvGuideError as exc:
        raise as_http_exception(exc) from exc
    if show is None:
        raise as_http_exception(NotFound("Show not found"))
    return show


@router.get("/schedule/web")
async def web_schedule(
    date: str | None = None,
    country: str = Query(DEFAULT_SCHEDULE_COUNTRY, min_length=2, max_length=2),
    catalog: TvMazeClient = Depends(get_catalog_client),
):
    day = (date or "").strip() or datetime.now(timezone.utc).date().isoformat()
    try:
        datetime.strptime(day, "%Y-%m-%d")
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="date must be YYYY-MM-DD") from exc
    try:
        return await catalog.get_web_schedule(day, country.upper())
    except TvGuideError as exc:
        raise as_http_exception(exc) from exc
