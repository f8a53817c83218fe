"""
Error taxonomy for the admission workflow.

Services raise these; the handlers registered in uniform.main turn them into
JSON responses with the matching HTTP status. Anything that is not a
UniformError is treated as an internal error.
"""

from typing import List, Optional


class UniformError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"detail": self.message}


class ValidationError(UniformError):
    """Malformed or inconsistent request data."""

    status_code = 400

    def __init__(self, message: str, errors: Optional[List[dict]] = None):
        super().__init__(message)
        self.errors = errors or []

    def to_dict(self) -> dict:
        body = super().to_dict()
        if self.errors:
            body["errors"] = self.errors
        return body


class AuthenticationError(UniformError):
    status_code = 401


class Forbidden(UniformError):
    status_code = 403


class NotFound(UniformError):
    status_code = 404


class DuplicateApplication(UniformError):
    status_code = 409

    def __init__(self, message: str = "You have already applied to this unit"):
        super().__init__(message)


class AlreadyReviewed(UniformError):
    status_code = 409

    def __init__(self, message: str = "Application is already approved"):
        super().__init__(message)


class UnitClosed(UniformError):
    """Unit inactive, past its deadline or at its application cap."""

    status_code = 400


class NotEligible(UniformError):
    status_code = 400

    def __init__(self, message: str = "You are not eligible to apply to this unit",
                 reasons: Optional[List[str]] = None):
        super().__init__(message)
        self.reasons = reasons or []

    def to_dict(self) -> dict:
        body = super().to_dict()
        if self.reasons:
            body["reasons"] = self.reasons
        return body
