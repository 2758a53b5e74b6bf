from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from scoreboard.core.database import get_db
from scoreboard.core.errors import OperationError, not_found
from scoreboard.core.security import CurrentUser, get_current_user
from scoreboard.models.scoreboard import Scoreboard
from scoreboard.services import limits as limits_engine
from scoreboard.services.entitlements import has_active_subscription


router = APIRouter()


@router.get("/limits")
async def get_my_limits(
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> dict:
    entitled = has_active_subscription(db, current_user.id)
    if entitled.error:
        raise OperationError(500, entitled.error)
    limits = limits_engine.get_limits_for_user(entitled.data)
    remaining = limits_engine.get_remaining_public_scoreboards(db, current_user.id)
    can_public = limits_engine.can_create_public_scoreboard(db, current_user.id)
    can_private = limits_engine.can_create_private_scoreboard(db, current_user.id)
    error = remaining.error or can_public.error or can_private.error
    if error:
        raise OperationError(500, error)
    return {
        "is_supporter": entitled.data,
        "limits": {
            "max_public_scoreboards": limits_engine.limit_to_json(limits.max_public_scoreboards),
            "max_private_scoreboards": limits_engine.limit_to_json(limits.max_private_scoreboards),
            "max_entries_per_scoreboard": limits_engine.limit_to_json(limits.max_entries_per_scoreboard),
            "max_snapshots_per_scoreboard": limits.max_snapshots_per_scoreboard,
        },
        "remaining_public_scoreboards": limits_engine.limit_to_json(remaining.data),
        "can_create_public_scoreboard": can_public.data,
        "can_create_private_scoreboard": can_private.data,
    }


@router.get("/scoreboards/{scoreboard_id}/limits")
async def get_scoreboard_limits(
    scoreboard_id: str,
    db: Session = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> dict:
    board = db.query(Scoreboard).filter(Scoreboard.id == scoreboard_id).first()
    if board is None:
        raise not_found("Scoreboard not found")
    if board.owner_id != current_user.id:
        raise OperationError(403, "Access denied")
    can_add = limits_engine.can_add_entry(db, scoreboard_id)
    remaining = limits_engine.get_remaining_entries(db, scoreboard_id)
    max_snapshots = limits_engine.get_max_snapshots(db, board.owner_id)
    # A locked board is a normal "no"; any other error is a failed lookup.
    locked_reason = can_add.error if board.is_locked else None
    error = remaining.error or max_snapshots.error or (None if board.is_locked else can_add.error)
    if error:
        raise OperationError(500, error)
    return {
        "scoreboard_id": scoreboard_id,
        "is_locked": bool(board.is_locked),
        "can_add_entry": can_add.data,
        "can_add_entry_reason": locked_reason,
        "remaining_entries": limits_engine.limit_to_json(remaining.data),
        "max_snapshots": max_snapshots.data,
    }
