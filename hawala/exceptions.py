"""
Domain error taxonomy for the settlement core.

Every error carries a stable machine-readable ``code`` and the HTTP status
the API layer renders it with. Services raise these; routers never catch
them individually — a single exception handler in ``hawala.main`` turns
them into JSON responses.
"""

from fastapi import status


class HawalaError(Exception):
    """Base class for all settlement-core errors."""

    code = "hawala_error"
    http_status = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code}


class ValidationError(HawalaError):
    """Malformed or non-positive input. Carries field-level detail."""

    code = "validation_error"
    http_status = 422

    def __init__(self, message: str, errors: dict[str, str] | None = None):
        super().__init__(message)
        self.errors = errors or {}

    @classmethod
    def for_field(cls, field: str, problem: str) -> "ValidationError":
        return cls(f"{field}: {problem}", {field: problem})

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["errors"] = self.errors
        return data


class RateNotFound(HawalaError):
    """No active, unexpired rate for the requested agent and pair."""

    code = "rate_not_found"
    http_status = status.HTTP_404_NOT_FOUND


class NotFound(HawalaError):
    """A referenced record does not exist."""

    code = "not_found"
    http_status = status.HTTP_404_NOT_FOUND


class Unauthorized(HawalaError):
    """The acting principal may not mutate the resource."""

    code = "unauthorized"
    http_status = status.HTTP_403_FORBIDDEN


class InvalidTransition(HawalaError):
    """The requested edge does not exist in the transaction state graph."""

    code = "invalid_transition"
    http_status = status.HTTP_409_CONFLICT

    def __init__(self, from_status, to_status):
        super().__init__(
            f"Invalid transition: {from_status.value} -> {to_status.value}"
        )
        self.from_status = from_status
        self.to_status = to_status


class Conflict(HawalaError):
    """
    Optimistic-lock loss: the stored status no longer matches the expected one.

    ``current_status`` is the authoritative status read after the failed
    compare-and-swap so the caller can resynchronise before retrying.
    """

    code = "conflict"
    http_status = status.HTTP_409_CONFLICT

    def __init__(self, reference_code: str, expected_status, current_status):
        super().__init__(
            f"Transaction {reference_code} is {current_status.value}, "
            f"expected {expected_status.value}"
        )
        self.reference_code = reference_code
        self.expected_status = expected_status
        self.current_status = current_status

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["current_status"] = self.current_status.value
        return data


class DuplicateReferenceCode(HawalaError):
    """A generated reference code collided with an existing transaction."""

    code = "duplicate_reference_code"
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR


class CodeGenerationExhausted(DuplicateReferenceCode):
    """Every reference-code attempt collided; the generator is miscalibrated."""

    code = "code_generation_exhausted"
