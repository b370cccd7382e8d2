"""Custom exceptions for Device Router."""

from __future__ import annotations


def mask_token(token: str | None) -> str:
    """Shorten a session token for safe error messages.

    Prevents leaking full session identifiers into logs and error
    messages, which would let a reader replay another client's profile.

    Args:
        token: Session token or None.

    Returns:
        The first four characters followed by an ellipsis, or "<none>".
    """
    if not token:
        return "<none>"
    if len(token) <= 4:
        return "***"
    return f"{token[:4]}..."


class DeviceRouterError(Exception):
    """Base exception for all device router errors."""

    http_status: int = 500


class ConfigurationError(DeviceRouterError):
    """Raised when configuration is invalid."""

    pass


class ThresholdValidationError(ConfigurationError):
    """Raised when tier threshold overrides violate one or more rules.

    All violations are collected before raising so operators see every
    problem at once instead of fixing them one restart at a time.
    """

    def __init__(self, violations: list[str]) -> None:
        self.violations = list(violations)
        joined = "; ".join(self.violations)
        super().__init__(f"Invalid tier thresholds: {joined}")


class ValidationError(DeviceRouterError):
    """Raised when input validation fails."""

    http_status = 400


class InvalidSignalsError(ValidationError):
    """Raised when a probe payload is not a well-typed signal record."""

    def __init__(self, message: str = "Invalid probe payload") -> None:
        super().__init__(message)


class BotRejectedError(DeviceRouterError):
    """Raised when a probe submission looks like automated traffic.

    This is a business-rule rejection, not a failure: no profile is stored.
    """

    http_status = 403

    def __init__(self, session_token: str | None = None) -> None:
        self.session_token = session_token
        super().__init__("Bot detected")


class StorageError(DeviceRouterError):
    """Raised when profile storage operations fail."""

    pass


class ProfileStorageError(StorageError):
    """Raised when reading or writing a profile fails during a request.

    Attributes:
        phase: "middleware" for reads, "endpoint" for probe writes.
        session_token: Token involved, if any.
    """

    def __init__(
        self,
        phase: str,
        session_token: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        self.phase = phase
        self.session_token = session_token
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(
            f"Profile storage failed during {phase} "
            f"(session={mask_token(session_token)}){detail}"
        )
