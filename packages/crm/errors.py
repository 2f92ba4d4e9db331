"""Domain errors raised by the CRM service layer."""

from __future__ import annotations

__all__ = [
    "CRMError",
    "InvalidReferenceError",
    "AuthenticationError",
    "NotFoundError",
    "ConflictError",
]


class CRMError(Exception):
    """Base class for errors reported to RPC callers."""

    code = "INTERNAL_SERVER_ERROR"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidReferenceError(CRMError):
    """A foreign key points at a row that does not exist."""

    code = "BAD_REQUEST"
    status_code = 400

    @classmethod
    def missing(cls, entity: str, entity_id: int) -> "InvalidReferenceError":
        return cls(f"{entity} with id {entity_id} does not exist")


class AuthenticationError(CRMError):
    code = "UNAUTHORIZED"
    status_code = 401


class NotFoundError(CRMError):
    code = "NOT_FOUND"
    status_code = 404

    @classmethod
    def missing(cls, entity: str, entity_id: int) -> "NotFoundError":
        return cls(f"{entity} with id {entity_id} not found")


class ConflictError(CRMError):
    """Unique constraint violation (duplicate email, wiki version race)."""

    code = "CONFLICT"
    status_code = 409
