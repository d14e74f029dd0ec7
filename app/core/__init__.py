"""
Core Application - Infrastructure & Base Classes

Generic building blocks shared by the domain apps (campaigns, refunds,
notifications, audit). Nothing here knows about donations or refunds.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)
    - VersionedModel: BaseModel with an optimistic-locking version counter

Model Mixins (import from core.model_mixins):
    - UUIDPrimaryKeyMixin: UUID as primary key
    - MetadataMixin: Flexible JSON metadata storage

Services (import from core.services):
    - BaseService: Base class for service layer
    - ServiceResult: Standard result wrapper for success/failure handling

Exceptions (import from core.exceptions):
    - BaseApplicationError: Base exception with error codes
    - ValidationError, NotFoundError, PermissionDeniedError,
      ConflictError, ExternalServiceError

Retry (import from core.retry):
    - retry_with_backoff: Bounded retry loop with injectable sleep
    - exponential_backoff: Delay function factory
    - RetryExhaustedError: Raised when every attempt failed

Effects (import from core.effects):
    - run_after_commit: Defer a side effect until the transaction commits

Usage:
    from core.models import BaseModel
    from core.model_mixins import UUIDPrimaryKeyMixin
    from core.services import BaseService, ServiceResult
    from core.exceptions import NotFoundError

    class Campaign(UUIDPrimaryKeyMixin, BaseModel):
        title = models.CharField(max_length=200)

Note:
    - Business logic should NOT go here. Extend core classes in your domain apps.
    - Django models and model mixins are NOT imported here to avoid AppRegistryNotReady
      errors. Import them directly from their modules.
"""

# Services (no Django model dependencies)
from .services import BaseService, ServiceResult

# Exceptions (no Django dependencies)
from .exceptions import (
    BaseApplicationError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)

# Retry helpers (no Django dependencies)
from .retry import RetryExhaustedError, exponential_backoff, retry_with_backoff

__all__ = [
    # Services
    "BaseService",
    "ServiceResult",
    # Exceptions
    "BaseApplicationError",
    "ValidationError",
    "NotFoundError",
    "PermissionDeniedError",
    "ConflictError",
    "ExternalServiceError",
    # Retry
    "RetryExhaustedError",
    "exponential_backoff",
    "retry_with_backoff",
]
