"""
Typed errors raised by the visit workflow and its collaborators.

Every error carries a machine-readable ``code`` and a ``status_code`` used by the
API exception handler to build the standard error envelope:

    FieldOpsError
    |
    +-- ValidationError   required input missing or invalid (422)
    +-- NotFoundError     referenced record does not exist (404)
    +-- WriteError        store rejected an insert/update in a required step
    +-- ParseError        malformed inventory payload; recovered unless atomic
    +-- ArtifactError     artifact generation failed; logged, not surfaced to visit callers

Callers catch by type, never by message.
"""
from __future__ import annotations

from typing import Any, Optional


class FieldOpsError(Exception):
    """Base class for domain errors."""

    code: str = "FIELDOPS_ERROR"
    status_code: int = 500

    def __init__(self, message: str, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(FieldOpsError):
    """A field required to provision a lead (or similar) is missing."""

    code = "VALIDATION_ERROR"
    status_code = 422

    def __init__(self, message: str, fields: Optional[list[str]] = None) -> None:
        super().__init__(message, details={"fields": fields or []})
        self.fields = fields or []


class NotFoundError(FieldOpsError):
    code = "NOT_FOUND"
    status_code = 404


class WriteError(FieldOpsError):
    """
    The store rejected a write during a required step.

    ``step`` names the orchestration step that failed so the caller knows whether
    anything was durably recorded. Integrity violations (stale references, unique
    clashes) map to 409 since correcting the input may fix them.
    """

    code = "WRITE_ERROR"

    def __init__(self, step: str, message: str, *, integrity: bool = False) -> None:
        super().__init__(message, details={"step": step})
        self.step = step
        self.integrity = integrity
        self.status_code = 409 if integrity else 500


class ParseError(FieldOpsError):
    """The serialized inventory batch could not be decoded or validated."""

    code = "PARSE_ERROR"
    status_code = 422


class ArtifactError(FieldOpsError):
    code = "ARTIFACT_ERROR"

    def __init__(self, customer_id: int, message: str) -> None:
        super().__init__(message, details={"customer_id": customer_id})
        self.customer_id = customer_id
