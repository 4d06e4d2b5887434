"""Execution context shared by every test case of a run."""

from __future__ import annotations

import ssl
from dataclasses import dataclass, fields, replace
from typing import Any, Self

from h2harness.constants import (
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_CONNECTION_MODE,
    DEFAULT_HOST,
    DEFAULT_MAX_INTERVENING_FRAMES,
    DEFAULT_PATH,
    DEFAULT_PORT,
    DEFAULT_TIMEOUT,
    DEFAULT_VERIFY_MODE,
)
from h2harness.exceptions import ConfigurationError
from h2harness.types import Address, ConnectionMode

__all__: list[str] = ["ExecutionContext"]


@dataclass(kw_only=True, frozen=True)
class ExecutionContext:
    """Immutable per-run configuration threaded into every test case."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    mode: ConnectionMode = DEFAULT_CONNECTION_MODE
    timeout: float = DEFAULT_TIMEOUT
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    path: str = DEFAULT_PATH
    verify_mode: ssl.VerifyMode = DEFAULT_VERIFY_MODE
    ca_certs: str | None = None
    max_intervening_frames: int = DEFAULT_MAX_INTERVENING_FRAMES
    server_name: str | None = None

    @classmethod
    def from_dict(cls, *, config_dict: dict[str, Any]) -> Self:
        """Create a context from a dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in config_dict.items() if key in known})

    @property
    def address(self) -> Address:
        """Return the target as a (host, port) tuple."""
        return (self.host, self.port)

    @property
    def authority(self) -> str:
        """Return the authority used in request headers."""
        return f"{self.host}:{self.port}"

    @property
    def is_tls(self) -> bool:
        """Return True if the context negotiates HTTP/2 over TLS."""
        return self.mode == ConnectionMode.TLS

    def to_dict(self) -> dict[str, Any]:
        """Convert the context to a dictionary."""
        data: dict[str, Any] = {f.name: getattr(self, f.name) for f in fields(self)}
        data["mode"] = self.mode.value
        data["verify_mode"] = self.verify_mode.name
        return data

    def update(self, **kwargs: Any) -> Self:
        """Return a new validated context with the given fields replaced."""
        known = {f.name for f in fields(self)}
        for key in kwargs:
            if key not in known:
                raise ConfigurationError(f"Unknown configuration key: '{key}'", config_key=key)
        return replace(self, **kwargs)

    def __post_init__(self) -> None:
        """Normalize values and validate the context."""
        if isinstance(self.mode, str) and not isinstance(self.mode, ConnectionMode):
            try:
                object.__setattr__(self, "mode", ConnectionMode(self.mode))
            except ValueError as e:
                raise ConfigurationError(
                    f"mode must be one of {[m.value for m in ConnectionMode]}", config_key="mode"
                ) from e
        if isinstance(self.verify_mode, str):
            try:
                object.__setattr__(self, "verify_mode", ssl.VerifyMode[self.verify_mode])
            except KeyError as e:
                raise ConfigurationError(
                    f"unknown SSL verify mode: {self.verify_mode}", config_key="verify_mode"
                ) from e
        self._validate()

    def _validate(self) -> None:
        """Check every field against its allowed range."""
        if not isinstance(self.host, str) or not self.host:
            raise ConfigurationError("host cannot be empty", config_key="host")
        if not isinstance(self.port, int) or not (1 <= self.port <= 65535):
            raise ConfigurationError("port must be between 1 and 65535", config_key="port")
        if not isinstance(self.mode, ConnectionMode):
            raise ConfigurationError("mode must be a ConnectionMode", config_key="mode")
        if not isinstance(self.verify_mode, ssl.VerifyMode):
            raise ConfigurationError(f"unknown SSL verify mode: {self.verify_mode}", config_key="verify_mode")
        if not isinstance(self.path, str) or not self.path.startswith("/"):
            raise ConfigurationError("path must start with '/'", config_key="path")
        if not isinstance(self.max_intervening_frames, int) or self.max_intervening_frames <= 0:
            raise ConfigurationError("max_intervening_frames must be positive", config_key="max_intervening_frames")

        for key in ("timeout", "connect_timeout"):
            value = getattr(self, key)
            if not isinstance(value, (int, float)) or isinstance(value, bool):
                raise ConfigurationError("Timeout must be a number", config_key=key)
            if value <= 0:
                raise ConfigurationError("Timeout must be positive", config_key=key)
