from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class ServiceResult(Generic[T]):
    """Value-or-error pair returned by functions that must never raise to their caller."""

    data: T
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
