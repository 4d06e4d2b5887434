"""Exception hierarchy for the harness."""

from __future__ import annotations

import re
from typing import Any, ClassVar

from h2harness.constants import ErrorCodes
from h2harness.types import Address, FrameTypeCode

__all__: list[str] = [
    "ConfigurationError",
    "ConnectionClosedError",
    "ConnectionError",
    "FrameError",
    "HandshakeError",
    "HarnessError",
    "RegistrationError",
    "TimeoutError",
]

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


class HarnessError(Exception):
    """Base exception for all harness errors."""

    _attributes: ClassVar[tuple[str, ...]] = ()

    def __init__(self, message: str, *, error_code: int | None = None, details: dict[str, Any] | None = None) -> None:
        """Initialize the base harness error."""
        super().__init__(message)
        self.message = message
        self.error_code = error_code if error_code is not None else ErrorCodes.INTERNAL_ERROR
        self.details = details if details is not None else {}

    @property
    def category(self) -> str:
        """Return the error category derived from the class name."""
        name = self.__class__.__name__
        stem = name.removesuffix("Error") or name
        return _CAMEL_BOUNDARY.sub("_", stem).lower()

    def to_dict(self) -> dict[str, Any]:
        """Convert the exception to a dictionary for reports."""
        data: dict[str, Any] = {
            "type": self.__class__.__name__,
            "category": self.category,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }
        for name in self._attributes:
            data[name] = getattr(self, name, None)
        return data

    def __repr__(self) -> str:
        """Provide a developer-friendly representation."""
        parts = [f"message={self.message!r}", f"error_code={hex(self.error_code)}"]
        for name in self._attributes:
            value = getattr(self, name, None)
            if value is not None:
                parts.append(f"{name}={value!r}")
        if self.details:
            parts.append(f"details={self.details!r}")
        return f"{self.__class__.__name__}({', '.join(parts)})"

    def __str__(self) -> str:
        """Return a readable string representation."""
        return f"[{hex(self.error_code)}] {self.message}"


class ConfigurationError(HarnessError):
    """Raised for invalid execution context values."""

    _attributes = ("config_key",)

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        error_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the configuration error."""
        super().__init__(message, error_code=error_code, details=details)
        self.config_key = config_key


class ConnectionError(HarnessError):
    """Raised when the transport to the target fails."""

    _attributes = ("remote_address",)

    def __init__(
        self,
        message: str,
        *,
        remote_address: Address | None = None,
        error_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the connection error."""
        super().__init__(message, error_code=error_code, details=details)
        self.remote_address = remote_address


class ConnectionClosedError(ConnectionError):
    """Raised when the peer closed (EOF) or reset the transport."""

    _attributes = ("remote_address", "reset")

    def __init__(
        self,
        message: str,
        *,
        reset: bool = False,
        remote_address: Address | None = None,
        error_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the connection closed error."""
        super().__init__(message, remote_address=remote_address, error_code=error_code, details=details)
        self.reset = reset


class FrameError(HarnessError):
    """Raised when a frame cannot be built or its header cannot be decoded."""

    _attributes = ("frame_type",)

    def __init__(
        self,
        message: str,
        *,
        frame_type: FrameTypeCode | None = None,
        error_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the frame error."""
        super().__init__(message, error_code=error_code, details=details)
        self.frame_type = frame_type

    def __str__(self) -> str:
        """Return a readable string representation including the frame type."""
        base = super().__str__()
        return f"{base} (frame_type={self.frame_type:#x})" if self.frame_type is not None else base


class HandshakeError(HarnessError):
    """Raised when TLS negotiation, h2c upgrade or the SETTINGS exchange fails."""

    _attributes = ("handshake_stage",)

    def __init__(
        self,
        message: str,
        *,
        handshake_stage: str | None = None,
        error_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the handshake error."""
        super().__init__(message, error_code=error_code, details=details)
        self.handshake_stage = handshake_stage


class RegistrationError(HarnessError):
    """Raised when the test tree is assembled incorrectly."""

    _attributes = ("identifier",)

    def __init__(
        self,
        message: str,
        *,
        identifier: str | None = None,
        error_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the registration error."""
        super().__init__(message, error_code=error_code, details=details)
        self.identifier = identifier


class TimeoutError(HarnessError):
    """Raised when a bounded wait elapses."""

    _attributes = ("operation",)

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        error_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the timeout error."""
        super().__init__(message, error_code=error_code, details=details)
        self.operation = operation
