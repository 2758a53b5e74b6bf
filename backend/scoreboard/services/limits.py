from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func
from sqlalchemy.orm import Session

from scoreboard.core.results import ServiceResult
from scoreboard.models.enums import Visibility
from scoreboard.models.scoreboard import Scoreboard, ScoreboardEntry
from scoreboard.services.entitlements import has_active_subscription

logger = logging.getLogger(__name__)

UNLIMITED = math.inf


@dataclass(frozen=True)
class UserLimits:
    max_public_scoreboards: float
    max_private_scoreboards: float
    max_entries_per_scoreboard: float
    max_snapshots_per_scoreboard: int


FREE_LIMITS = UserLimits(
    max_public_scoreboards=2,
    max_private_scoreboards=0,
    max_entries_per_scoreboard=50,
    max_snapshots_per_scoreboard=10,
)

SUPPORTER_LIMITS = UserLimits(
    max_public_scoreboards=UNLIMITED,
    max_private_scoreboards=UNLIMITED,
    max_entries_per_scoreboard=UNLIMITED,
    max_snapshots_per_scoreboard=100,
)


def get_limits_for_user(is_supporter: bool) -> UserLimits:
    return SUPPORTER_LIMITS if is_supporter else FREE_LIMITS


def _count_public_scoreboards(db: Session, user_id: str) -> int:
    return int(
        db.query(func.count(Scoreboard.id))
        .filter(Scoreboard.owner_id == user_id)
        .filter(Scoreboard.visibility == Visibility.PUBLIC.value)
        .filter(Scoreboard.is_locked.is_(False))
        .scalar()
        or 0
    )


def _count_entries(db: Session, scoreboard_id: str) -> int:
    return int(
        db.query(func.count(ScoreboardEntry.id)).filter(ScoreboardEntry.scoreboard_id == scoreboard_id).scalar() or 0
    )


def _get_scoreboard(db: Session, scoreboard_id: str) -> Scoreboard | None:
    return db.query(Scoreboard).filter(Scoreboard.id == scoreboard_id).first()


def can_create_public_scoreboard(db: Session, user_id: str, now: datetime | None = None) -> ServiceResult[bool]:
    try:
        entitled = has_active_subscription(db, user_id, now)
        if entitled.error:
            return ServiceResult(False, entitled.error)
        limits = get_limits_for_user(entitled.data)
        if limits.max_public_scoreboards == UNLIMITED:
            return ServiceResult(True)
        return ServiceResult(_count_public_scoreboards(db, user_id) < limits.max_public_scoreboards)
    except Exception:
        logger.exception("limits.public_scoreboards.error user_id=%s", user_id)
        return ServiceResult(False, "Failed to check public scoreboard limits.")


def can_create_private_scoreboard(db: Session, user_id: str, now: datetime | None = None) -> ServiceResult[bool]:
    try:
        entitled = has_active_subscription(db, user_id, now)
        if entitled.error:
            return ServiceResult(False, entitled.error)
        return ServiceResult(get_limits_for_user(entitled.data).max_private_scoreboards > 0)
    except Exception:
        logger.exception("limits.private_scoreboards.error user_id=%s", user_id)
        return ServiceResult(False, "Failed to check private scoreboard limits.")


def can_add_entry(db: Session, scoreboard_id: str, now: datetime | None = None) -> ServiceResult[bool]:
    try:
        board = _get_scoreboard(db, scoreboard_id)
        if board is None:
            return ServiceResult(False, "Scoreboard not found.")
        if board.is_locked:
            return ServiceResult(False, "This scoreboard is locked.")
        # Entry ceilings follow the board owner's tier, not the caller's.
        entitled = has_active_subscription(db, board.owner_id, now)
        if entitled.error:
            return ServiceResult(False, entitled.error)
        limits = get_limits_for_user(entitled.data)
        if limits.max_entries_per_scoreboard == UNLIMITED:
            return ServiceResult(True)
        return ServiceResult(_count_entries(db, scoreboard_id) < limits.max_entries_per_scoreboard)
    except Exception:
        logger.exception("limits.entries.error scoreboard_id=%s", scoreboard_id)
        return ServiceResult(False, "Failed to check entry limits.")


def get_max_snapshots(db: Session, user_id: str, now: datetime | None = None) -> ServiceResult[int]:
    try:
        entitled = has_active_subscription(db, user_id, now)
        if entitled.error:
            return ServiceResult(0, entitled.error)
        return ServiceResult(get_limits_for_user(entitled.data).max_snapshots_per_scoreboard)
    except Exception:
        logger.exception("limits.snapshots.error user_id=%s", user_id)
        return ServiceResult(0, "Failed to determine snapshot limits.")


def get_remaining_public_scoreboards(db: Session, user_id: str, now: datetime | None = None) -> ServiceResult[float]:
    try:
        entitled = has_active_subscription(db, user_id, now)
        if entitled.error:
            return ServiceResult(0, entitled.error)
        limits = get_limits_for_user(entitled.data)
        if limits.max_public_scoreboards == UNLIMITED:
            return ServiceResult(UNLIMITED)
        return ServiceResult(max(limits.max_public_scoreboards - _count_public_scoreboards(db, user_id), 0))
    except Exception:
        logger.exception("limits.remaining_public.error user_id=%s", user_id)
        return ServiceResult(0, "Failed to fetch remaining public scoreboards.")


def get_remaining_entries(db: Session, scoreboard_id: str, now: datetime | None = None) -> ServiceResult[float]:
    try:
        board = _get_scoreboard(db, scoreboard_id)
        if board is None:
            return ServiceResult(0, "Scoreboard not found.")
        entitled = has_active_subscription(db, board.owner_id, now)
        if entitled.error:
            return ServiceResult(0, entitled.error)
        limits = get_limits_for_user(entitled.data)
        if limits.max_entries_per_scoreboard == UNLIMITED:
            return ServiceResult(UNLIMITED)
        return ServiceResult(max(limits.max_entries_per_scoreboard - _count_entries(db, scoreboard_id), 0))
    except Exception:
        logger.exception("limits.remaining_entries.error scoreboard_id=%s", scoreboard_id)
        return ServiceResult(0, "Failed to fetch remaining entries.")


def limit_to_json(value: float) -> int | None:
    """Unlimited renders as ``null``; finite limits as integers."""
    if value == UNLIMITED:
        return None
    return int(value)
