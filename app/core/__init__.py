"""
Core Application - Infrastructure & Base Classes

Generic building blocks shared by the domain apps. Nothing here knows about
contracts or payments.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Model Mixins (import from core.model_mixins):
    - UUIDPrimaryKeyMixin: UUID as primary key
    - AppendOnlyMixin: Rows may be inserted but never changed or deleted

Services (import from core.services):
    - BaseService: Logger and lookup helpers for service classes
    - ServiceResult: Result wrapper for handlers that report failure as a value

Exceptions (import from core.exceptions):
    - BaseApplicationError: Base exception with error code and HTTP status
    - ValidationError: Input validation failures
    - InvalidStateError: Operation not allowed in the entity's current state
    - AuthorizationError: Caller is not a party to the resource
    - NotFoundError: Resource not found
    - ConflictError: Another request changed the record first

API Layer:
    - core.exception_handler.api_exception_handler: Renders application errors
    - core.views.health_check: Liveness probe

Usage:
    from core.models import BaseModel
    from core.model_mixins import UUIDPrimaryKeyMixin
    from core.services import BaseService
    from core.exceptions import InvalidStateError, NotFoundError

Note:
    Django models and model mixins are NOT imported here to avoid
    AppRegistryNotReady errors. Import them directly from their modules.
"""

# Services (no Django model dependencies)
from .services import BaseService, ServiceResult

# Exceptions (no Django dependencies)
from .exceptions import (
    AuthorizationError,
    BaseApplicationError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)

__all__ = [
    # Services
    "BaseService",
    "ServiceResult",
    # Exceptions
    "BaseApplicationError",
    "ValidationError",
    "InvalidStateError",
    "AuthorizationError",
    "NotFoundError",
    "ConflictError",
]
