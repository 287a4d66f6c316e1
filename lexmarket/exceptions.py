"""
Domain exception hierarchy.

Services and the model layer raise these; ``main.py`` registers one handler
per type so every route maps them to the same HTTP status codes.

Usage:
    from lexmarket.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Case", resource_id=case_id)
    raise ValidationError("Invalid case", errors=["Case title is required"])
"""
from typing import List, Optional


class LexmarketError(Exception):
    """Base class for all domain errors."""


class ValidationError(LexmarketError):
    """Input failed one or more domain rules.

    ``errors`` carries every violated rule, not just the first one, so a
    form can render all of them at once. Maps to HTTP 422.
    """

    def __init__(self, message: str, errors: Optional[List[str]] = None) -> None:
        self.errors = list(errors) if errors else [message]
        super().__init__(message)


class NotFoundError(LexmarketError):
    """A referenced case, milestone, application or notification does not exist.

    Maps to HTTP 404.
    """

    def __init__(self, resource: str, resource_id: Optional[str] = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class OperationFailed(LexmarketError):
    """A repository write could not be committed.

    Nothing was applied. Maps to HTTP 503 with a generic message.
    """

    def __init__(self, message: str = "Operation failed, please try again") -> None:
        super().__init__(message)


class ConflictError(OperationFailed):
    """The write was rejected because the stored state changed or forbids it.

    Raised for stale versions, an already-assigned case, a non-pending
    application and duplicate applications. Maps to HTTP 409.
    """


class MalformedDocumentError(LexmarketError):
    """A stored document could not be parsed into its domain type."""

    def __init__(self, kind: str, document_id: Optional[str], reason: str) -> None:
        self.kind = kind
        self.document_id = document_id
        super().__init__(f"Malformed {kind} document {document_id}: {reason}")
