"""
Error hierarchy for the CloudWatch transport.

Errors carry a structured context (category, severity, destination, error id
and timestamp) so they can be emitted through diagnostics without losing
detail. Most of these never escape the delivery queue: they are converted
into ``Failed`` delivery results and diagnostics instead.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Broad error categories used for diagnostics and metrics labels."""

    PROVISIONING = "provisioning"
    ORDERING = "ordering"
    DELIVERY = "delivery"
    TOKEN_LOOKUP = "token_lookup"
    SERIALIZATION = "serialization"
    CONFIGURATION = "configuration"
    SYSTEM = "system"


class ErrorSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorRecoveryStrategy(str, Enum):
    NONE = "none"
    RETRY = "retry"
    REFRESH_TOKEN = "refresh_token"


@dataclass
class ErrorContext:
    """Structured context attached to every transport error."""

    category: ErrorCategory = ErrorCategory.SYSTEM
    severity: ErrorSeverity = ErrorSeverity.MEDIUM
    recovery_strategy: ErrorRecoveryStrategy = ErrorRecoveryStrategy.NONE
    error_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    group_name: str | None = None
    stream_name: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category.value,
            "severity": self.severity.value,
            "recovery_strategy": self.recovery_strategy.value,
            "error_id": self.error_id,
            "timestamp": self.timestamp.isoformat(),
            "group_name": self.group_name,
            "stream_name": self.stream_name,
            "metadata": dict(self.metadata),
        }


def create_error_context(
    category: ErrorCategory,
    severity: ErrorSeverity = ErrorSeverity.MEDIUM,
    recovery_strategy: ErrorRecoveryStrategy = ErrorRecoveryStrategy.NONE,
    **metadata: Any,
) -> ErrorContext:
    """Build an ``ErrorContext``, lifting destination fields out of metadata."""
    group_name = metadata.pop("group_name", None)
    stream_name = metadata.pop("stream_name", None)
    return ErrorContext(
        category=category,
        severity=severity,
        recovery_strategy=recovery_strategy,
        group_name=group_name,
        stream_name=stream_name,
        metadata=metadata,
    )


class TransportError(Exception):
    """Base class for all transport errors."""

    default_category = ErrorCategory.SYSTEM
    default_severity = ErrorSeverity.MEDIUM
    default_recovery = ErrorRecoveryStrategy.NONE

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        severity: ErrorSeverity | None = None,
        error_context: ErrorContext | None = None,
        cause: BaseException | None = None,
        **metadata: Any,
    ) -> None:
        super().__init__(message)
        self.message = message
        if error_context is None:
            error_context = create_error_context(
                category or self.default_category,
                severity or self.default_severity,
                self.default_recovery,
                **metadata,
            )
        self.context = error_context
        if cause is not None:
            self.__cause__ = cause

    def to_dict(self) -> dict[str, Any]:
        """Serialize for diagnostics output."""
        data: dict[str, Any] = {
            "error_type": type(self).__name__,
            "message": self.message,
            "context": self.context.to_dict(),
        }
        if self.__cause__ is not None:
            data["cause"] = f"{type(self.__cause__).__name__}: {self.__cause__}"
        return data


class ResourceAlreadyExistsError(TransportError):
    """The log group or stream being created already exists."""

    default_category = ErrorCategory.PROVISIONING
    default_severity = ErrorSeverity.LOW


class ProvisionError(TransportError):
    """Group or stream creation failed for a reason other than already-exists."""

    default_category = ErrorCategory.PROVISIONING
    default_severity = ErrorSeverity.HIGH
    default_recovery = ErrorRecoveryStrategy.RETRY


class OrderingConflictError(TransportError):
    """The sequence token sent with a batch did not match the stream state.

    ``expected_token`` is the authoritative next token reported by the
    service, or ``None`` when the payload did not include one.
    """

    default_category = ErrorCategory.ORDERING
    default_severity = ErrorSeverity.LOW
    default_recovery = ErrorRecoveryStrategy.REFRESH_TOKEN

    def __init__(
        self,
        message: str,
        *,
        expected_token: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.expected_token = expected_token


class InvalidSequenceTokenError(OrderingConflictError):
    pass


class DataAlreadyAcceptedError(OrderingConflictError):
    pass


class TransientDeliveryError(TransportError):
    """A delivery failure unrelated to ordering (network, throttling, ...)."""

    default_category = ErrorCategory.DELIVERY
    default_recovery = ErrorRecoveryStrategy.RETRY


class TokenLookupFailure(TransportError):
    """Describing the stream to recover its sequence token failed."""

    default_category = ErrorCategory.TOKEN_LOOKUP
    default_recovery = ErrorRecoveryStrategy.RETRY


__all__ = [
    "DataAlreadyAcceptedError",
    "ErrorCategory",
    "ErrorContext",
    "ErrorRecoveryStrategy",
    "ErrorSeverity",
    "InvalidSequenceTokenError",
    "OrderingConflictError",
    "ProvisionError",
    "ResourceAlreadyExistsError",
    "TokenLookupFailure",
    "TransientDeliveryError",
    "TransportError",
    "create_error_context",
]
