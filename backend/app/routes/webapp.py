from fastapi import APIRouter, Depends, HTTPException

from app.core.deps import get_favorites_service
from app.core.errors import TvGuideError, as_http_exception
from app.services.favorites import FavoritesService

router = APIRouter(prefix="/api/webapp", tags=["webapp"])

TOGGLE_BODY_ERROR = "initData and showId (number) are required"


def _require_init_data(payload: dict, detail: str = "initData is required") -> str:
    init_data = payload.get("initData")
    if not isinstance(init_data, str) or not init_data.strip():
        raise HTTPException(status_code=400, detail=detail)
    return init_data


def _require_show_id(payload: dict) -> int:
    show_id = payload.get("showId")
    if not isinstance(show_id, int) or isinstance(show_id, bool):
        raise HTTPException(status_code=400, detail=TOGGLE_BODY_ERROR)
    return show_id


@router.post("/favorites")
async def list_favorites(payload: dict, service: FavoritesService = Depends(get_favorites_service)):
    init_data = _require_init_data(payload)
    try:
        return await service.list_favorite_shows(init_data)
    except TvGuideError as exc:
        raise as_http_exception(exc) from exc


@router.post("/favorites/ids")
async def list_favorite_ids(payload: dict, service: FavoritesService = Depends(get_favorites_service)):
    init_data = _require_init_data(payload)
    try:
        return {"ids": service.list_favorite_ids(init_data)}
    except TvGuideError as exc:
        raise as_http_exception(exc) from exc


@router.post("/favorites/toggle")
async def toggle_favorite(payload: dict, service: FavoritesService = Depends(get_favorites_service)):
    init_data = _require_init_data(payload, TOGGLE_BODY_ERROR)
    show_id = _require_show_id(payload)
    try:
        is_favorite = service.toggle_favorite(init_data, show_id)
    except TvGuideError as exc:
        raise as_http_exception(exc) from exc
    return {"success": True, "isFavorite": is_favorite}
