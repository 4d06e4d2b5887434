"""Shared utility functions for the harness."""

from __future__ import annotations

import datetime
import logging
import os
import ssl
import time
from pathlib import Path
from types import TracebackType
from typing import Self

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from h2harness.constants import ALPN_PROTOCOLS
from h2harness.types import Buffer

__all__: list[str] = [
    "Timer",
    "create_ssl_context",
    "ensure_bytes",
    "format_duration",
    "generate_self_signed_cert",
    "get_logger",
    "get_timestamp",
]


def create_ssl_context(
    *,
    verify_mode: ssl.VerifyMode = ssl.CERT_NONE,
    ca_certs: str | None = None,
    alpn_protocols: tuple[str, ...] = ALPN_PROTOCOLS,
) -> ssl.SSLContext:
    """Create a client-side TLS context advertising the HTTP/2 ALPN token."""
    context = ssl.create_default_context(purpose=ssl.Purpose.SERVER_AUTH)
    if verify_mode == ssl.CERT_NONE:
        context.check_hostname = False
    context.verify_mode = verify_mode
    if ca_certs:
        context.load_verify_locations(cafile=ca_certs)
    context.set_alpn_protocols(list(alpn_protocols))
    return context


def ensure_bytes(*, data: Buffer | str) -> bytes:
    """Ensure that the given data is in bytes format."""
    match data:
        case bytes():
            return data
        case bytearray() | memoryview():
            return bytes(data)
        case str():
            return data.encode("utf-8")
        case _:
            raise TypeError(f"Expected str, bytes, bytearray or memoryview, got {type(data).__name__}")


def format_duration(*, seconds: float) -> str:
    """Format a duration in seconds into a human-readable string."""
    if seconds < 1e-6:
        return f"{seconds * 1e9:.0f}ns"
    if seconds < 1e-3:
        return f"{seconds * 1e6:.1f}µs"
    if seconds < 1:
        return f"{seconds * 1e3:.1f}ms"
    if seconds < 60:
        return f"{seconds:.1f}s"

    minutes, secs = divmod(seconds, 60)
    if minutes < 60:
        return f"{int(minutes)}m{secs:.1f}s"
    hours, minutes = divmod(minutes, 60)
    return f"{int(hours)}h{int(minutes)}m{secs:.1f}s"


def generate_self_signed_cert(*, hostname: str, output_dir: str = ".", days_valid: int = 365) -> tuple[str, str]:
    """Generate a self-signed certificate and key for local TLS peers."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    subject = issuer = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, hostname)])
    now = datetime.datetime.now(datetime.timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer)
        .public_key(private_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(now + datetime.timedelta(days=days_valid))
        .add_extension(x509.SubjectAlternativeName([x509.DNSName(hostname)]), critical=False)
        .sign(private_key, hashes.SHA256())
    )

    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)
    cert_file = output_path / f"{hostname}.crt"
    key_file = output_path / f"{hostname}.key"

    with open(cert_file, "wb") as f:
        f.write(cert.public_bytes(serialization.Encoding.PEM))
    with open(key_file, "wb") as f:
        f.write(
            private_key.private_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PrivateFormat.PKCS8,
                encryption_algorithm=serialization.NoEncryption(),
            )
        )
    os.chmod(key_file, 0o600)

    return str(cert_file), str(key_file)


def get_logger(*, name: str) -> logging.Logger:
    """Get a logger instance with a specific name."""
    return logging.getLogger(name)


def get_timestamp() -> float:
    """Get a monotonic timestamp suitable for measuring durations."""
    return time.perf_counter()


class Timer:
    """A simple context manager for timing operations."""

    def __init__(self, *, name: str = "timer") -> None:
        """Initialize the timer."""
        self.name = name
        self.start_time: float | None = None
        self.end_time: float | None = None

    @property
    def elapsed(self) -> float:
        """Get the elapsed time in seconds."""
        if self.start_time is None:
            return 0.0
        end = self.end_time if self.end_time is not None else get_timestamp()
        return end - self.start_time

    def start(self) -> None:
        """Start the timer."""
        self.start_time = get_timestamp()
        self.end_time = None

    def stop(self) -> float:
        """Stop the timer and return the elapsed time."""
        if self.start_time is None:
            raise RuntimeError("Timer not started")
        self.end_time = get_timestamp()
        return self.elapsed

    def __enter__(self) -> Self:
        """Start the timer on entering the context."""
        self.start()
        return self

    def __exit__(
        self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: TracebackType | None
    ) -> None:
        """Stop the timer and log the duration on exit."""
        elapsed = self.stop()
        get_logger(name=__name__).debug("%s took %s", self.name, format_duration(seconds=elapsed))
