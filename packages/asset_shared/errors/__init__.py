"""Public shared error API for asset components."""

from . import codes
from .exceptions import DomainError
from .factories import (
    configuration_error,
    conflict_error,
    dependency_error,
    internal_error,
    not_found_error,
    policy_error,
    validation_error,
)
from .normalize import exception_to_error
from .types import ErrorCategory, ErrorDetail

__all__ = [
    "DomainError",
    "ErrorCategory",
    "ErrorDetail",
    "codes",
    "configuration_error",
    "conflict_error",
    "dependency_error",
    "exception_to_error",
    "internal_error",
    "not_found_error",
    "policy_error",
    "validation_error",
]
