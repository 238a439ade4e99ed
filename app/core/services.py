"""
Service layer base classes.

- BaseService: per-class logger and lookup helpers for service classes
- ServiceResult: outcome object for handlers whose callers branch on
  success rather than catch exceptions (webhook handlers, tasks)

User-facing services raise core.exceptions errors for rejected
operations and return model instances on success.

Usage:
    from core.services import BaseService, ServiceResult

    class ContractService(BaseService):
        @classmethod
        def sign_contract(cls, user, contract_id, signature):
            cls.get_logger().info("Signing contract", extra={...})

    def handle_account_updated(webhook_event) -> ServiceResult:
        return ServiceResult.ok({"account_id": "acct_123"})
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, TypeVar

from core.exceptions import NotFoundError

if TYPE_CHECKING:
    from django.db.models import Model, QuerySet

T = TypeVar("T")
M = TypeVar("M", bound="Model")


@dataclass
class ServiceResult(Generic[T]):
    """
    Outcome of an operation that reports failure as a value.

    Attributes:
        success: Whether the operation succeeded
        data: Payload on success
        error: Human-readable error on failure
        error_code: Machine-readable code on failure
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None

    @classmethod
    def ok(cls, data: T | None = None) -> ServiceResult[T]:
        return cls(success=True, data=data)

    @classmethod
    def failure(cls, error: str, error_code: str | None = None) -> ServiceResult[T]:
        return cls(success=False, error=error, error_code=error_code)

    def __bool__(self) -> bool:
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Provides:
    - A logger named after the concrete service class
    - A lookup helper that turns DoesNotExist into NotFoundError
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Logger named after the service class for easy filtering."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @staticmethod
    def get_or_not_found(queryset: QuerySet[M], label: str, **lookup) -> M:
        """
        Fetch a single row or raise NotFoundError.

        Args:
            queryset: Base queryset (may carry select_related/select_for_update)
            label: Human name of the resource for the error message
            **lookup: Filter arguments identifying the row

        Raises:
            NotFoundError: If no row matches
        """
        try:
            return queryset.get(**lookup)
        except queryset.model.DoesNotExist:
            raise NotFoundError(
                f"{label} not found",
                details={key: str(value) for key, value in lookup.items()},
            )
