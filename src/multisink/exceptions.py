"""
Exception hierarchy for multisink.

Errors are split by when they happen:
- construction time (target and color validation, fatal target-open failures)
- after destruction (any use of a destroyed factory or its loggers)
- delivery time (transport failures surfaced through the THROW policy)
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class MultisinkError(Exception):
    """Root of all multisink errors."""

    def __init__(
        self,
        message: str,
        *,
        code: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details = details or {}


# ================================
# Construction-time errors
# ================================


class ConfigurationError(MultisinkError):
    """A target descriptor or logger argument failed validation."""

    pass


class InvalidTargetError(ConfigurationError):
    """Raised when a target descriptor cannot be normalized."""

    def __init__(
        self,
        message: str,
        *,
        target_type: Optional[str] = None,
        field: Optional[str] = None,
        errors: Optional[list] = None,
    ) -> None:
        details: Dict[str, Any] = {}
        if target_type is not None:
            details["target_type"] = target_type
        if field is not None:
            details["field"] = field
        if errors is not None:
            details["errors"] = errors
        super().__init__(message, code="INVALID_TARGET", details=details)


class InvalidColorError(ConfigurationError, ValueError):
    """Raised when a source color is not a hex string, 24-bit int or RGB triple."""

    def __init__(self, message: str, *, received: Any) -> None:
        super().__init__(message, code="INVALID_COLOR", details={"received": repr(received)})


class FatalTargetError(MultisinkError):
    """A target could not be opened and no error listener was supplied.

    This is not a delivery failure: it is raised while the factory is being
    created and is meant to stop the program.
    """

    def __init__(self, *, path: str, reason: str) -> None:
        super().__init__(
            f"Failed to open file target '{path}': {reason}",
            code="FATAL_TARGET",
            details={"path": path, "reason": reason},
        )


# ================================
# Lifecycle errors
# ================================


class FactoryDestroyedError(MultisinkError):
    """Raised on any use of a destroyed factory or one of its loggers."""

    def __init__(self, what: str = "LoggerFactory") -> None:
        super().__init__(f"{what} has been destroyed", code="DESTROYED")


# ================================
# Delivery errors
# ================================


class DeliveryError(MultisinkError):
    """A payload could not be handed to its destination."""

    def __init__(self, *, target: str, reason: str) -> None:
        super().__init__(
            f"Delivery to {target} failed: {reason}",
            code="DELIVERY_FAILED",
            details={"target": target, "reason": reason},
        )
