"""
Error taxonomy shared by the domain and web layers.

Each error carries the HTTP status it maps to; the web app turns them into
``{"message": ..., "errors": [...]}`` responses.
"""

from dataclasses import dataclass, asdict
from typing import List, Optional


@dataclass(frozen=True)
class FieldError:
    """A single client-fixable problem with one input field."""
    path: str
    message: str

    def to_dict(self) -> dict:
        return asdict(self)


class ReviewHubError(Exception):
    """Base exception for ReviewHub errors."""
    status_code = 500
    default_message = "An unexpected server error occurred."

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"message": self.message}


class ValidationFailed(ReviewHubError):
    status_code = 400
    default_message = "Validation failed."

    def __init__(self, errors: List[FieldError], message: Optional[str] = None):
        super().__init__(message)
        self.errors = list(errors)

    @property
    def paths(self) -> List[str]:
        return [e.path for e in self.errors]

    def to_dict(self) -> dict:
        return {"message": self.message, "errors": [e.to_dict() for e in self.errors]}


class AuthenticationRequired(ReviewHubError):
    status_code = 401
    default_message = "Unauthorized: Not authenticated."


class PermissionDenied(ReviewHubError):
    status_code = 403
    default_message = "Forbidden: You do not have permission to access this resource."


class NotFound(ReviewHubError):
    status_code = 404
    default_message = "Resource not found."


class Conflict(ReviewHubError):
    status_code = 409
    default_message = "Resource already exists."


class UpstreamFailure(ReviewHubError):
    status_code = 502
    default_message = "Scraping service failed."
