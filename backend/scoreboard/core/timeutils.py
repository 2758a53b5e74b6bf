from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Normalize a stored timestamp to an aware UTC datetime.

    SQLite hands back naive datetimes even for ``DateTime(timezone=True)``
    columns; those are treated as UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_iso8601(raw: object) -> datetime | None:
    if not raw:
        return None
    v = str(raw).strip()
    if not v:
        return None
    try:
        if v.endswith("Z"):
            v = v[:-1] + "+00:00"
        dt = datetime.fromisoformat(v)
    except ValueError:
        return None
    return as_utc(dt)


def isoformat_or_none(value: datetime | None) -> str | None:
    value = as_utc(value)
    return value.isoformat() if value else None
