"""Domain errors and the HTTP status each one maps to."""

from __future__ import annotations

from typing import List, Optional


class UserHubError(Exception):
    status_code = 500
    message = "Internal server error"

    def __init__(self, message: Optional[str] = None, errors: Optional[List[str]] = None):
        self.message = message or self.message
        self.errors = list(errors or [])
        super().__init__(self.message)


class ValidationError(UserHubError):
    status_code = 400
    message = "Validation failed"

    def __init__(self, errors: List[str], message: Optional[str] = None):
        super().__init__(message or self.message, errors)

    def __str__(self) -> str:
        if not self.errors:
            return self.message
        return f"{self.message}: {'; '.join(self.errors)}"


class InvalidField(UserHubError):
    status_code = 400

    def __init__(self, field: str, context: str = "query"):
        self.field = field
        super().__init__(f"Invalid field '{field}' in {context}")


class NotFound(UserHubError):
    status_code = 404
    message = "User not found"


class DuplicateEmail(UserHubError):
    status_code = 409
    message = "Email already exists."


class InternalError(UserHubError):
    status_code = 500
