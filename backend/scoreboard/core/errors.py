from __future__ import annotations

from typing import Any


class OperationError(Exception):
    """A request-level failure carrying the HTTP status and a user-facing message."""

    def __init__(self, status_code: int, error: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(error)
        self.status_code = status_code
        self.error = error
        self.details = details

    def to_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {"success": False, "error": self.error}
        if self.details:
            body["details"] = self.details
        return body


def bad_request(error: str, details: dict[str, Any] | None = None) -> OperationError:
    return OperationError(400, error, details)


def not_found(error: str) -> OperationError:
    return OperationError(404, error)


def conflict(error: str, details: dict[str, Any] | None = None) -> OperationError:
    return OperationError(409, error, details)
