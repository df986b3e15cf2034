"""Domain errors surfaced verbatim to API callers."""

from __future__ import annotations


class DomainError(Exception):
    """Base class for caller-facing domain errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DomainError):
    """Malformed caller input. Rejected immediately, no fallback."""


class NotFoundError(DomainError):
    """Referenced record does not exist."""

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity} '{entity_id}' not found")
        self.entity = entity
        self.entity_id = entity_id


class AlreadyDecidedError(DomainError):
    """A decision was already committed for this recommendation."""

    def __init__(self, recommendation_id: str, status: str, requested: str):
        super().__init__(
            f"Recommendation '{recommendation_id}' is already {status}; cannot mark it {requested}"
        )
        self.recommendation_id = recommendation_id
        self.status = status
        self.requested = requested
