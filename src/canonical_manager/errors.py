"""Error types shared across the package.

Every failure that crosses a public boundary is a ``CanonicalManagerError``
carrying a machine-readable ``ErrorCode`` and a ``recoverable`` flag telling
callers whether retrying the same operation can succeed.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    INVALID_PACKAGE_SPEC = "INVALID_PACKAGE_SPEC"
    PACKAGE_NOT_FOUND = "PACKAGE_NOT_FOUND"
    PACKAGE_FETCH_FAILED = "PACKAGE_FETCH_FAILED"
    INVALID_PACKAGE_ARCHIVE = "INVALID_PACKAGE_ARCHIVE"
    INVALID_MANIFEST = "INVALID_MANIFEST"
    INVALID_INDEX = "INVALID_INDEX"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    RESOURCE_READ_FAILED = "RESOURCE_READ_FAILED"
    MANAGER_NOT_INITIALIZED = "MANAGER_NOT_INITIALIZED"


class CanonicalManagerError(Exception):
    def __init__(self, code: ErrorCode, message: str, recoverable: bool = False) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.recoverable = recoverable

    def to_dict(self) -> dict[str, Any]:
        """Structured error envelope for logs and front-end tools."""
        return {
            "error": {
                "code": self.code.value,
                "message": self.message,
                "recoverable": self.recoverable,
            }
        }

    def __repr__(self) -> str:
        return f"CanonicalManagerError(code={self.code.value}, message={self.message!r})"
