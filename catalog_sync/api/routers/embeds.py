"""Embed lookup endpoint."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from catalog_sync.api.dependencies import get_app_state, require_database
from catalog_sync.api.state import AppState

router = APIRouter(prefix="/embeds", tags=["embeds"], dependencies=[Depends(require_database)])


@router.get("/{kp_id}")
def get_embed(kp_id: int, app_state: AppState = Depends(get_app_state)) -> JSONResponse:
    """Best stored player link for a Kinopoisk id, with every ranked candidate."""

    resolution = app_state.embed_resolver().resolve(kp_id)
    if resolution is None:
        return JSONResponse({"success": False, "message": "Not found"}, status_code=404)

    return JSONResponse(
        {
            "kpId": resolution.kp_id,
            "best": resolution.best.model_dump(),
            "candidates": [c.model_dump() for c in resolution.candidates],
        }
    )
