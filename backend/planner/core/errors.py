"""
Domain error taxonomy shared by services and routes.

Services raise these; ``planner.main`` turns them into JSON responses.
"""
from typing import Optional


class DomainError(Exception):
    """Base class for errors that map onto an HTTP response."""
    code = "DOMAIN_ERROR"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DomainError):
    """Bad input shape or a violated invariant; the write is rejected whole."""
    code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        if field:
            message = f"Validation error for {field}: {message}"
        super().__init__(message)
        self.field = field


class UnauthorizedAccessError(DomainError):
    """Missing, invalid or expired session."""
    code = "UNAUTHORIZED_ACCESS"
    status_code = 401

    def __init__(self, message: str = "Unauthorized", requires_device_setup: bool = False):
        super().__init__(message)
        self.requires_device_setup = requires_device_setup


class PermissionDeniedError(UnauthorizedAccessError):
    """Authenticated, but the caller's role does not grant the permission."""
    code = "PERMISSION_DENIED"
    status_code = 403


class NotFoundError(DomainError):
    """Referenced entity does not exist or lies outside the caller's group."""
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, resource: str, identifier=None):
        if identifier is not None:
            message = f"{resource} with id {identifier} not found"
        else:
            message = f"{resource} not found"
        super().__init__(message)
        self.resource = resource


class InternalError(DomainError):
    """Unexpected failure; the message is logged, never returned."""
    code = "INTERNAL_ERROR"
    status_code = 500
