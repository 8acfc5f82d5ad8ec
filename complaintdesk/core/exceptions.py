"""
Core Exceptions
================

Custom exceptions for the application following clean architecture principles.

Every exception carries a machine-readable ``code`` so the HTTP boundary (or
any other caller) can map it without inspecting messages:

- ``validation_error``: malformed input
- ``not_found``: unknown complaint, farmer or user
- ``forbidden``: access policy denial, with a reason code
- ``conflict``: concurrent write detected by the store
- ``internal``: storage failure
"""

from typing import Optional, Any


class ApplicationException(Exception):
    """Base exception for all application errors."""

    code = "internal"

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DomainException(ApplicationException):
    """Base exception for domain logic violations."""


class RepositoryException(ApplicationException):
    """Base exception for repository/data access errors."""


class ValidationException(DomainException):
    """Exception for validation errors."""

    code = "validation_error"

    def __init__(
        self,
        message: str,
        reason: str = "invalid_input",
        details: Optional[dict] = None
    ):
        self.reason = reason
        super().__init__(message, details)


class ResourceNotFoundException(DomainException):
    """Exception when a requested resource is not found."""

    code = "not_found"

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[Any] = None,
        details: Optional[dict] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type}"
        if resource_id is not None:
            message += f" with id '{resource_id}'"
        message += " not found"
        super().__init__(message, details)


class ForbiddenException(DomainException):
    """Exception raised when the access policy denies an operation."""

    code = "forbidden"

    def __init__(
        self,
        reason: str,
        permission: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.reason = reason
        self.permission = permission
        message = f"Access denied: {reason}"
        if permission:
            message += f" ({permission})"
        super().__init__(message, details)


class ConflictException(DomainException):
    """Exception raised when a concurrent write invalidated this one."""

    code = "conflict"

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[Any] = None,
        details: Optional[dict] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type}"
        if resource_id is not None:
            message += f" {resource_id}"
        message += " was modified concurrently"
        super().__init__(message, details)


class ConfigurationException(ApplicationException):
    """Exception for configuration errors."""
