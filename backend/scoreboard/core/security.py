from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable

import jwt
from fastapi import Depends, HTTPException, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from scoreboard.core.database import get_db
from scoreboard.core.settings import settings
from scoreboard.models.profile import UserProfile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CurrentUser:
    id: str
    email: str
    role: str


def _normalize_email(value: str) -> str:
    return str(value or "").strip().lower()


def _is_admin_email(email: str) -> bool:
    normalized = _normalize_email(email)
    if not normalized:
        return False
    return normalized in (settings.admin_emails or set())


def _require_supabase_config() -> str:
    if not settings.supabase_url:
        raise HTTPException(status_code=500, detail="SUPABASE_URL is not configured")
    return settings.supabase_url


@lru_cache(maxsize=4)
def _jwks_client(jwks_url: str) -> jwt.PyJWKClient:
    return jwt.PyJWKClient(jwks_url)


def _decode_supabase_jwt(token: str) -> dict[str, Any]:
    supabase_url = _require_supabase_config().rstrip("/")
    jwks_url = f"{supabase_url}/auth/v1/.well-known/jwks.json"
    issuer = settings.supabase_jwt_issuer or f"{supabase_url}/auth/v1"
    audience = settings.supabase_jwt_audience or "authenticated"

    try:
        signing_key = _jwks_client(jwks_url).get_signing_key_from_jwt(token).key
        payload = jwt.decode(
            token,
            signing_key,
            algorithms=["ES256", "RS256"],
            audience=audience,
            issuer=issuer,
            options={"require": ["exp", "sub"]},
        )
        return dict(payload)
    except jwt.PyJWTError:
        raise HTTPException(status_code=401, detail="Invalid bearer token")


def _decide_role(*, email_is_admin: bool, db_role: str | None, admin_role: str) -> tuple[str, str]:
    dbr = str(db_role or "").strip().lower()
    if dbr == admin_role:
        return (admin_role, "db_profile")
    if email_is_admin:
        return (admin_role, "admin_emails")
    if dbr:
        return (dbr, "db_profile")
    return ("user", "default")


def _get_bearer_token(request: Request) -> str:
    auth = request.headers.get("authorization") or ""
    if not auth.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Missing bearer token")
    token = auth.split(" ", 1)[1].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Missing bearer token")
    return token


def get_current_user(request: Request, db: Session = Depends(get_db)) -> CurrentUser:
    token = _get_bearer_token(request)

    claims = _decode_supabase_jwt(token)
    user_id = str(claims.get("sub") or "").strip()
    email = str(claims.get("email") or "").strip()
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token")

    user_meta = claims.get("user_metadata") or {}
    if not isinstance(user_meta, dict):
        user_meta = {}
    full_name = str(user_meta.get("full_name") or "").strip()

    profile = db.query(UserProfile).filter(UserProfile.id == user_id).first()
    role, _reason = _decide_role(
        email_is_admin=_is_admin_email(email),
        db_role=profile.role if profile else None,
        admin_role=settings.admin_role,
    )
    if profile is None:
        profile = UserProfile(id=user_id, email=email, full_name=full_name or None, role=role)
        db.add(profile)
        db.commit()
        db.refresh(profile)
    else:
        changed = False
        if (profile.role or "").strip().lower() != role:
            profile.role = role
            changed = True
        if email and (profile.email or "") != email:
            profile.email = email
            changed = True
        if full_name and not profile.full_name:
            profile.full_name = full_name
            changed = True
        if changed:
            try:
                db.commit()
            except SQLAlchemyError:
                db.rollback()
                logger.warning("auth.profile_sync.failed user_id=%s", user_id)

    return CurrentUser(id=profile.id, email=profile.email or "", role=role)


def require_role(role: str) -> Callable[..., CurrentUser]:
    """Dependency factory: authenticated user whose role equals ``role``, else 403."""
    wanted = str(role or "").strip().lower()

    def _guard(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if (user.role or "").lower() != wanted:
            raise HTTPException(status_code=403, detail="Forbidden: Admin access required" if wanted == settings.admin_role else "Forbidden")
        return user

    return _guard


require_admin = require_role(settings.admin_role)
