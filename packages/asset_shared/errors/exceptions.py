"""Exception base carrying a shared ``ErrorDetail``."""

from __future__ import annotations

from .types import ErrorDetail


class DomainError(Exception):
    """Base exception for failures that already know their error contract."""

    def __init__(self, error: ErrorDetail) -> None:
        super().__init__(error.message)
        self.error = error

    @property
    def code(self) -> str:
        """Return the machine-readable error code."""
        return self.error.code
