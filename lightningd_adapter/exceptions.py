"""Exception hierarchy for the lightningd adapter.

Every error raised by the adapter derives from ``LightningdAdapterError`` and
carries structured context for logging.

Usage:
    from lightningd_adapter.exceptions import ServiceUnavailable

    try:
        service.send(payment)
    except ServiceUnavailable as e:
        logger.warning("payment_retry_scheduled", code=e.code, context=e.context)
"""

from __future__ import annotations

from typing import Any


class LightningdAdapterError(Exception):
    """Base exception for all adapter errors.

    Attributes:
        message: Human-readable error message
        context: Additional context for debugging (dict)
        original_error: Original exception if wrapped
    """

    def __init__(
        self,
        message: str,
        *,
        context: dict[str, Any] | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.original_error = original_error

    def __str__(self) -> str:
        base = self.message
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base = f"{base} ({ctx_str})"
        if self.original_error:
            base = f"{base} [caused by: {type(self.original_error).__name__}]"
        return base

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, context={self.context!r})"


# =============================================================================
# Validation & Configuration Errors
# =============================================================================


class ValidationError(LightningdAdapterError):
    """Raised when input validation fails."""

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        constraint: str | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize validation error.

        Args:
            message: Error description
            field: Name of the invalid field
            value: The invalid value (truncated in context)
            constraint: Validation constraint that was violated
            **kwargs: Additional context
        """
        context = kwargs.get("context") or {}
        if field:
            context["field"] = field
        if value is not None:
            context["value"] = str(value)[:100]
        if constraint:
            context["constraint"] = constraint
        kwargs["context"] = context
        super().__init__(message, **kwargs)


class PolicyViolation(ValidationError):
    """Raised when an amount or expiry falls outside configured bounds.

    Always raised before any daemon call is issued.
    """


class ConfigurationError(LightningdAdapterError):
    """Raised when adapter configuration is invalid or missing."""

    def __init__(
        self,
        message: str,
        *,
        setting: str | None = None,
        expected: str | None = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context") or {}
        if setting:
            context["setting"] = setting
        if expected:
            context["expected"] = expected
        kwargs["context"] = context
        super().__init__(message, **kwargs)


# =============================================================================
# Daemon Integration Errors
# =============================================================================


class IntegrationError(LightningdAdapterError):
    """Base class for daemon and broker integration errors."""


class TransportError(IntegrationError):
    """Raised when the RPC socket fails at connection level.

    Fatal for the call; never retried by the transport itself.
    """


class RpcError(IntegrationError):
    """Raw daemon error reply, before classification.

    ``code`` is None when the reply could not be parsed at all.
    """

    def __init__(
        self,
        message: str,
        *,
        code: int | None = None,
        method: str | None = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context") or {}
        if code is not None:
            context["code"] = code
        if method:
            context["method"] = method
        kwargs["context"] = context
        super().__init__(message, **kwargs)
        self.code = code
        self.method = method


class PaymentServiceError(IntegrationError):
    """Base class for classified daemon errors.

    The daemon's numeric error code is preserved in ``code``.
    """

    def __init__(self, message: str, *, code: int | None = None, **kwargs: Any) -> None:
        context = kwargs.get("context") or {}
        if code is not None:
            context["code"] = code
        kwargs["context"] = context
        super().__init__(message, **kwargs)
        self.code = code


class ServiceUnavailable(PaymentServiceError):
    """Transient daemon condition (no route, payment timeout). Callers may retry."""


class ServiceFailed(PaymentServiceError):
    """Any other daemon or mapping failure. Not retryable without investigation."""


# =============================================================================
# Event Pipeline Errors
# =============================================================================


class TranslationError(LightningdAdapterError):
    """Raised when a broker payload cannot be turned into a domain event.

    Fatal for the single message only; the consumption loop nacks it.
    """

    def __init__(self, message: str, *, routing_key: str | None = None, **kwargs: Any) -> None:
        context = kwargs.get("context") or {}
        if routing_key:
            context["routing_key"] = routing_key
        kwargs["context"] = context
        super().__init__(message, **kwargs)
        self.routing_key = routing_key


class EventPublishError(LightningdAdapterError):
    """Raised by a strict event bus when one or more handlers failed."""

    def __init__(
        self,
        message: str,
        *,
        event_type: str | None = None,
        errors: list[Exception] | None = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context") or {}
        if event_type:
            context["event_type"] = event_type
        if errors:
            context["failed_handlers"] = len(errors)
        kwargs["context"] = context
        if errors and "original_error" not in kwargs:
            kwargs["original_error"] = errors[0]
        super().__init__(message, **kwargs)
        self.errors = errors or []


# =============================================================================
# Utility Functions
# =============================================================================


def wrap_exception(
    error: Exception,
    message: str,
    *,
    exception_class: type[LightningdAdapterError] = LightningdAdapterError,
    **context: Any,
) -> LightningdAdapterError:
    """Wrap an external exception in the adapter hierarchy.

    Example:
        try:
            sock.sendall(payload)
        except OSError as e:
            raise wrap_exception(
                e, "Lightningd socket write failed", exception_class=TransportError
            ) from e
    """
    return exception_class(
        message,
        context=context,
        original_error=error,
    )


__all__ = [
    "LightningdAdapterError",
    "ValidationError",
    "PolicyViolation",
    "ConfigurationError",
    "IntegrationError",
    "TransportError",
    "RpcError",
    "PaymentServiceError",
    "ServiceUnavailable",
    "ServiceFailed",
    "TranslationError",
    "EventPublishError",
    "wrap_exception",
]
