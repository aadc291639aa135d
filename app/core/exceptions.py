"""Custom exception classes."""

from typing import Dict, Iterator, List, Tuple

from fastapi import HTTPException, status


class CredentialsException(HTTPException):
    """Exception for invalid credentials."""

    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class PermissionDenied(HTTPException):
    """Exception for permission denied."""

    def __init__(self, detail: str = "Permission denied"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
        )


class NotFound(HTTPException):
    """Exception for resource not found."""

    def __init__(self, resource: str = "Resource"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{resource} not found",
        )


class BadRequest(HTTPException):
    """Exception for bad request."""

    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )


class ValidationErrors:
    """
    Field-keyed collection of validation messages.

    Messages not tied to a single field go under ``BASE``.
    """

    BASE = "base"

    def __init__(self):
        self._messages: Dict[str, List[str]] = {}

    def add(self, field: str, message: str) -> None:
        self._messages.setdefault(field, []).append(message)

    def __getitem__(self, field: str) -> List[str]:
        return list(self._messages.get(field, []))

    def __contains__(self, field: str) -> bool:
        return bool(self._messages.get(field))

    def __bool__(self) -> bool:
        return any(self._messages.values())

    def __len__(self) -> int:
        return sum(len(m) for m in self._messages.values())

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        for field, messages in self._messages.items():
            for message in messages:
                yield field, message

    def as_dict(self) -> Dict[str, List[str]]:
        return {f: list(m) for f, m in self._messages.items() if m}

    def full_messages(self) -> List[str]:
        """Messages prefixed with their field, base messages left as is."""
        return [
            message if field == self.BASE else f"{field} {message}"
            for field, message in self
        ]


class ValidationError(Exception):
    """Exception for data validation errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ScriptValidationError(ValidationError):
    """Raised at the save boundary when a script fails validation."""

    def __init__(self, errors: ValidationErrors):
        self.errors = errors
        super().__init__("; ".join(errors.full_messages()))
