"""Error taxonomy raised by services and mapped to HTTP responses in main."""

from __future__ import annotations

from schedulink.domain.models import Conflict


class SchedulingError(Exception):
    """Base class for every error the services raise on purpose."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message}


class EventValidationError(SchedulingError):
    """Submitted event data is incomplete or inconsistent."""

    status_code = 400


class InvalidStateError(SchedulingError):
    """The target exists but is not in a state that allows the operation."""

    status_code = 400


class NotFoundError(SchedulingError):
    status_code = 404


class ConflictError(SchedulingError):
    """A venue/time overlap with an approved event blocks the write."""

    status_code = 409

    def __init__(self, message: str, conflicts: list[Conflict]) -> None:
        super().__init__(message)
        self.conflicts = conflicts

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "message": " ".join(
                f"This event conflicts with {c.describe()}." for c in self.conflicts
            ),
            "conflicts": [c.model_dump(mode="json") for c in self.conflicts],
        }


class ApprovalConflictError(ConflictError):
    """Approval blocked; carries only the first conflict found."""

    def __init__(self, conflict: Conflict) -> None:
        super().__init__("Cannot approve event due to conflict", [conflict])

    @property
    def conflict(self) -> Conflict:
        return self.conflicts[0]

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["conflict"] = self.conflict.model_dump(mode="json")
        return payload


class StorageError(SchedulingError):
    """The underlying store failed to read or write."""

    status_code = 500
