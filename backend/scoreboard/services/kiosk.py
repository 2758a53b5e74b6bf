from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from scoreboard.core.errors import OperationError, bad_request, conflict, not_found
from scoreboard.core.security import CurrentUser
from scoreboard.models.enums import SlideType
from scoreboard.models.kiosk import MAX_SLIDES_PER_CONFIG, KioskConfig, KioskSlide
from scoreboard.models.scoreboard import Scoreboard
from scoreboard.services.entitlements import get_supporter_status

logger = logging.getLogger(__name__)

# Slides are parked at TEMP_POSITION_BASE + batch index between phases, so real
# positions must stay below it.
TEMP_POSITION_BASE = 1000


@dataclass(frozen=True)
class SlideMove:
    slide_id: str
    position: int


@dataclass
class ReorderResult:
    success: bool
    failed_phase: str | None = None
    errors: list[dict[str, Any]] = field(default_factory=list)
    rollback_errors: list[dict[str, Any]] = field(default_factory=list)

    def to_details(self) -> dict[str, Any]:
        out: dict[str, Any] = {"phase": self.failed_phase, "errors": self.errors}
        if self.rollback_errors:
            out["rollback_errors"] = self.rollback_errors
        return out


def get_owned_scoreboard(db: Session, user: CurrentUser, scoreboard_id: str) -> Scoreboard:
    board = db.query(Scoreboard).filter(Scoreboard.id == scoreboard_id).first()
    if board is None:
        raise not_found("Scoreboard not found")
    if board.owner_id != user.id:
        raise OperationError(403, "Access denied")
    return board


def get_config(db: Session, scoreboard_id: str) -> KioskConfig | None:
    return db.query(KioskConfig).filter(KioskConfig.scoreboard_id == scoreboard_id).first()


def get_or_create_config(db: Session, scoreboard_id: str) -> KioskConfig:
    cfg = get_config(db, scoreboard_id)
    if cfg is None:
        cfg = KioskConfig(scoreboard_id=scoreboard_id, slide_duration_seconds=10, scoreboard_position=0, enabled=False)
        db.add(cfg)
        db.commit()
        db.refresh(cfg)
    return cfg


def list_slides(db: Session, config_id: str) -> list[KioskSlide]:
    return (
        db.query(KioskSlide)
        .filter(KioskSlide.kiosk_config_id == config_id)
        .order_by(KioskSlide.position.asc())
        .all()
    )


def add_slide(
    db: Session,
    user: CurrentUser,
    scoreboard_id: str,
    *,
    slide_type: str,
    image_url: str | None = None,
    thumbnail_url: str | None = None,
    duration_override_seconds: int | None = None,
    file_name: str | None = None,
    file_size: int | None = None,
) -> KioskSlide:
    get_owned_scoreboard(db, user, scoreboard_id)
    if not get_supporter_status(db, user.id):
        raise OperationError(403, "Kiosk mode requires a supporter subscription")
    if slide_type not in {SlideType.IMAGE.value, SlideType.SCOREBOARD.value}:
        raise bad_request("Invalid slide type")

    cfg = get_or_create_config(db, scoreboard_id)
    count = int(db.query(func.count(KioskSlide.id)).filter(KioskSlide.kiosk_config_id == cfg.id).scalar() or 0)
    if count >= MAX_SLIDES_PER_CONFIG:
        raise bad_request(f"Maximum of {MAX_SLIDES_PER_CONFIG} slides allowed")

    if slide_type == SlideType.SCOREBOARD.value:
        existing = (
            db.query(KioskSlide)
            .filter(KioskSlide.kiosk_config_id == cfg.id)
            .filter(KioskSlide.slide_type == SlideType.SCOREBOARD.value)
            .first()
        )
        if existing is not None:
            raise conflict("Scoreboard slide already exists", {"existing_slide_id": existing.id})

    max_position = db.query(func.max(KioskSlide.position)).filter(KioskSlide.kiosk_config_id == cfg.id).scalar()
    slide = KioskSlide(
        kiosk_config_id=cfg.id,
        position=0 if max_position is None else int(max_position) + 1,
        slide_type=slide_type,
        image_url=image_url,
        thumbnail_url=thumbnail_url,
        duration_override_seconds=duration_override_seconds,
        file_name=file_name,
        file_size=file_size,
    )
    db.add(slide)
    db.commit()
    db.refresh(slide)
    logger.info("kiosk.slide.added scoreboard_id=%s slide_id=%s position=%s", scoreboard_id, slide.id, slide.position)
    return slide


def validate_reorder_batch(moves: list[SlideMove]) -> None:
    if len(moves) > MAX_SLIDES_PER_CONFIG:
        raise bad_request(f"At most {MAX_SLIDES_PER_CONFIG} slides can be reordered at once")
    ids = [m.slide_id for m in moves]
    if len(set(ids)) != len(ids):
        raise bad_request("Duplicate slide id in reorder batch")
    positions = [m.position for m in moves]
    if any(p < 0 or p >= TEMP_POSITION_BASE for p in positions):
        raise bad_request(f"Slide positions must be between 0 and {TEMP_POSITION_BASE - 1}")
    if len(set(positions)) != len(positions):
        raise bad_request("Duplicate target position in reorder batch")


def _set_position(db: Session, config_id: str, slide_id: str, position: int) -> str | None:
    """Write one position and commit. Returns an error message instead of raising."""
    try:
        slide = (
            db.query(KioskSlide)
            .filter(KioskSlide.id == slide_id)
            .filter(KioskSlide.kiosk_config_id == config_id)
            .first()
        )
        if slide is None:
            return "Slide not found"
        slide.position = position
        db.commit()
        return None
    except SQLAlchemyError as e:
        db.rollback()
        return str(getattr(e, "orig", None) or e)


def _restore(db: Session, config_id: str, originals: list[tuple[int, str, int]]) -> list[dict[str, Any]]:
    """Put every parked slide back where it started.

    Each slide first returns to its own temporary slot, then to its original
    position, so no restore write collides with a position taken in Phase 2.
    """
    errors: list[dict[str, Any]] = []
    for index, slide_id, _original in originals:
        err = _set_position(db, config_id, slide_id, TEMP_POSITION_BASE + index)
        if err:
            errors.append({"slide_id": slide_id, "error": err})
    for _index, slide_id, original in originals:
        err = _set_position(db, config_id, slide_id, original)
        if err:
            errors.append({"slide_id": slide_id, "error": err})
    if errors:
        logger.warning("kiosk.reorder.rollback_failed config_id=%s errors=%s", config_id, len(errors))
    return errors


def reorder_slides(db: Session, config_id: str, moves: list[SlideMove]) -> ReorderResult:
    """Apply a batch of slide positions without tripping the (config, position) unique key.

    Phase 1 parks every slide at ``TEMP_POSITION_BASE + i``; Phase 2 moves each
    one to its target, collecting per-slide errors. Any failure in either phase
    restores every parked slide to its original position.
    """
    validate_reorder_batch(moves)

    originals: list[tuple[int, str, int]] = []
    for index, move in enumerate(moves):
        slide = (
            db.query(KioskSlide)
            .filter(KioskSlide.id == move.slide_id)
            .filter(KioskSlide.kiosk_config_id == config_id)
            .first()
        )
        if slide is None:
            err = "Slide not found"
        else:
            original = int(slide.position)
            err = _set_position(db, config_id, move.slide_id, TEMP_POSITION_BASE + index)
            if err is None:
                originals.append((index, move.slide_id, original))
        if err:
            logger.warning("kiosk.reorder.phase1_failed config_id=%s slide_id=%s error=%s", config_id, move.slide_id, err)
            rollback_errors = _restore(db, config_id, originals)
            return ReorderResult(
                success=False,
                failed_phase="phase1",
                errors=[{"slide_id": move.slide_id, "error": err}],
                rollback_errors=rollback_errors,
            )

    errors: list[dict[str, Any]] = []
    for move in moves:
        err = _set_position(db, config_id, move.slide_id, move.position)
        if err:
            errors.append({"slide_id": move.slide_id, "error": err})

    if errors:
        logger.warning("kiosk.reorder.phase2_failed config_id=%s failed=%s", config_id, len(errors))
        rollback_errors = _restore(db, config_id, originals)
        return ReorderResult(success=False, failed_phase="phase2", errors=errors, rollback_errors=rollback_errors)

    logger.info("kiosk.reorder.done config_id=%s slides=%s", config_id, len(moves))
    return ReorderResult(success=True)
