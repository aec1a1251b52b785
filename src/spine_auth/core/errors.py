"""
Structured error types for the spine-auth SQLAlchemy adapter.

Every failure the adapter surfaces is an ``AdapterError`` carrying a
category, a retry hint, structured context, and the chained underlying
exception.  Callers of the auth framework can therefore tell a
configuration bug (unknown model, missing soft-delete marker) apart from a
database failure without parsing messages.

Manifesto:
    - **Typed Error Hierarchy:** One class per failure domain
    - **No silent wrapping:** Schema and configuration bugs are raised as-is,
      only database failures are wrapped as ``PersistenceError``
    - **Error Chaining:** The original exception is always kept as ``cause``

Architecture:
    ::

        ┌────────────────────────────────────────────────────────────┐
        │                       AdapterError                          │
        │  (category, retryable, context, cause)                      │
        ├────────────────────────────────────────────────────────────┤
        │  SchemaError        PersistenceError     TransactionError   │
        │  (VALIDATION)       (DATABASE)           (DATABASE)         │
        │                                                             │
        │  ConfigError        MigrationError                          │
        │  (CONFIG)           (STORAGE)                               │
        │       │                                                     │
        │  SoftDeleteConfigError                                      │
        └────────────────────────────────────────────────────────────┘

Examples:
    >>> error = PersistenceError.wrap("create", "user", ValueError("boom"))
    >>> error.message
    'Failed to create user: boom'
    >>> error.context.operation
    'create'

Tags:
    error-handling, exception-hierarchy, error-context, spine-auth

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    DATABASE = "DATABASE"         # Statement, connection, transaction
    STORAGE = "STORAGE"           # Generated artifact writes
    VALIDATION = "VALIDATION"     # Unknown model / field
    CONFIG = "CONFIG"             # Adapter misconfiguration
    INTERNAL = "INTERNAL"         # Bugs, unexpected state


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an adapter error.

    Attributes:
        operation: Adapter operation that failed (``create``, ``find many`` ...)
        model: Logical model name the operation targeted
        table: Physical table name, when resolved
        field_name: Logical field name, for schema errors
        metadata: Additional key-value pairs
    """

    operation: str | None = None
    model: str | None = None
    table: str | None = None
    field_name: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["operation", "model", "table", "field_name"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class AdapterError(Exception):
    """
    Base exception for all adapter errors.

    Subclasses set ``default_category`` and ``default_retryable``; the
    adapter never retries on its own, so the retry flag is advisory for
    callers that own a retry policy.

    Examples:
        >>> error = AdapterError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.with_context(model="user").context.model
        'user'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> AdapterError:
        """Add context to this error (fluent API)."""
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# SCHEMA ERRORS
# =============================================================================


class SchemaError(AdapterError):
    """
    A logical model or field is not declared in the schema registry.

    Never retryable: it points at a caller or configuration bug.
    """

    default_category = ErrorCategory.VALIDATION

    @classmethod
    def unknown_model(cls, model: str) -> SchemaError:
        return cls(f"Model {model!r} not found in schema").with_context(model=model)

    @classmethod
    def unknown_field(cls, model: str, field: str) -> SchemaError:
        return cls(f"Field {field!r} not found on model {model!r}").with_context(
            model=model, field_name=field
        )


# =============================================================================
# DATABASE ERRORS
# =============================================================================


class PersistenceError(AdapterError):
    """Failure raised by the database while running an adapter operation."""

    default_category = ErrorCategory.DATABASE

    @classmethod
    def wrap(cls, operation: str, model: str, exc: BaseException) -> PersistenceError:
        """Build the ``Failed to <operation> <model>: <message>`` error for *exc*."""
        return cls(
            f"Failed to {operation} {model}: {exc}",
            context=ErrorContext(operation=operation, model=model),
            cause=exc,
        )


class TransactionError(AdapterError):
    """The transaction scope itself could not be opened or committed.

    Errors raised by the transactional callback are re-raised unchanged and
    never converted to this type.
    """

    default_category = ErrorCategory.DATABASE


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(AdapterError):
    """Adapter configuration error."""

    default_category = ErrorCategory.CONFIG


class SoftDeleteConfigError(ConfigError):
    """A soft-delete model has no ``deletedAt`` marker column."""

    def __init__(self, model: str, marker: str = "deletedAt"):
        self.model = model
        self.marker = marker
        super().__init__(
            f"Failed to soft delete {model}. Couldn't locate {marker} column.",
            context=ErrorContext(operation="delete", model=model, field_name=marker),
        )


# =============================================================================
# MIGRATION ERRORS
# =============================================================================


class MigrationError(AdapterError):
    """Schema synchronization failed (catalog introspection or artifact write)."""

    default_category = ErrorCategory.STORAGE


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "AdapterError",
    "SchemaError",
    "PersistenceError",
    "TransactionError",
    "ConfigError",
    "SoftDeleteConfigError",
    "MigrationError",
]
