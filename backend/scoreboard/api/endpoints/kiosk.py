from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from scoreboard.core.database import get_db
from scoreboard.core.errors import OperationError, not_found
from scoreboard.core.security import CurrentUser, get_current_user
from scoreboard.schemas.kiosk import ReorderRequest, SlideCreate, SlideResponse
from scoreboard.services import kiosk as kiosk_service


router = APIRouter()


@router.get("/kiosk/{scoreboard_id}/slides")
async def list_kiosk_slides(
    scoreboard_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> dict:
    kiosk_service.get_owned_scoreboard(db, current_user, scoreboard_id)
    cfg = kiosk_service.get_config(db, scoreboard_id)
    slides = kiosk_service.list_slides(db, cfg.id) if cfg else []
    return {"slides": [SlideResponse.model_validate(s).model_dump(mode="json") for s in slides]}


@router.post("/kiosk/{scoreboard_id}/slides", status_code=201)
async def add_kiosk_slide(
    scoreboard_id: str,
    body: SlideCreate,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> dict:
    slide = kiosk_service.add_slide(
        db,
        current_user,
        scoreboard_id,
        slide_type=body.slide_type.value,
        image_url=body.image_url,
        thumbnail_url=body.thumbnail_url,
        duration_override_seconds=body.duration_override_seconds,
        file_name=body.file_name,
        file_size=body.file_size,
    )
    return {"slide": SlideResponse.model_validate(slide).model_dump(mode="json")}


@router.put("/kiosk/{scoreboard_id}/slides")
async def reorder_kiosk_slides(
    scoreboard_id: str,
    body: ReorderRequest,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> dict:
    kiosk_service.get_owned_scoreboard(db, current_user, scoreboard_id)
    cfg = kiosk_service.get_config(db, scoreboard_id)
    if cfg is None:
        raise not_found("Kiosk config not found")
    moves = [kiosk_service.SlideMove(slide_id=s.id, position=s.position) for s in body.slides]
    result = kiosk_service.reorder_slides(db, cfg.id, moves)
    if not result.success:
        raise OperationError(409, "Failed to reorder slides", result.to_details())
    return {"success": True}
