"""
Domain errors raised by the service layer.

Hierarchy:
    ServiceError
    ├── ValidationFailed      400 VALIDATION_ERROR
    ├── Unauthenticated       401 UNAUTHORIZED
    ├── AccessDenied          403 ACCESS_DENIED
    ├── EntityNotFound        404 ENTITY_NOT_FOUND
    ├── Conflict              409 CONFLICT
    │   └── SessionAlreadyExists
    ├── VerificationExpired   400 VERIFICATION_EXPIRED
    └── StorageError          400 DATABASE_ERROR

Routers never build error bodies themselves; the handlers in api.responses
render these per API surface.
"""
from __future__ import annotations

from typing import Any


class ServiceError(Exception):
    status_code = 400
    error_code = "INTERNAL_ERROR"
    default_message = "Request failed"

    def __init__(self, message: str | None = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationFailed(ServiceError):
    status_code = 400
    error_code = "VALIDATION_ERROR"
    default_message = "Invalid request"


class Unauthenticated(ServiceError):
    status_code = 401
    error_code = "UNAUTHORIZED"
    default_message = "Missing or invalid authorization token"


class AccessDenied(ServiceError):
    status_code = 403
    error_code = "ACCESS_DENIED"
    default_message = "Insufficient permissions"

    def __init__(self, message: str | None = None, details: Any = None, entity: str | None = None):
        super().__init__(message, details)
        self.entity = entity


class EntityNotFound(ServiceError):
    status_code = 404
    error_code = "ENTITY_NOT_FOUND"
    default_message = "Entity not found"


class Conflict(ServiceError):
    status_code = 409
    error_code = "CONFLICT"
    default_message = "Resource already exists"


class SessionAlreadyExists(Conflict):
    default_message = "Only one workout session is allowed per day."


class VerificationExpired(ServiceError):
    status_code = 400
    error_code = "VERIFICATION_EXPIRED"
    default_message = "Verification expired. Please sign up again."


class StorageError(ServiceError):
    status_code = 400
    error_code = "DATABASE_ERROR"
    default_message = "Database operation failed"
