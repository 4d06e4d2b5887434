"""Raw HTTP/2 connection to the implementation under test."""

from __future__ import annotations

import asyncio
import base64
import ssl
from collections.abc import Mapping
from dataclasses import dataclass
from types import TracebackType
from typing import Self

import hpack
from hyperframe.frame import Frame, HeadersFrame, PingFrame, SettingsFrame

from h2harness.config import ExecutionContext
from h2harness.constants import (
    ALPN_PROTOCOLS,
    CONNECTION_PREFACE,
    FRAME_HEADER_SIZE,
    PING_PAYLOAD_SIZE,
    UPGRADE_TOKEN,
    USER_AGENT,
    FrameType,
    SettingsParameter,
)
from h2harness.exceptions import ConnectionClosedError, ConnectionError, HandshakeError, TimeoutError
from h2harness.frames import FrameHeader, InboundFrame, build_settings_payload
from h2harness.types import Address, Buffer, ConnectionMode, Headers, Settings, StreamId, Timeout
from h2harness.utils import create_ssl_context, ensure_bytes, get_logger

__all__: list[str] = ["ConnectionDiagnostics", "Http2Connection"]

logger = get_logger(name=__name__)

_UPGRADE_SETTINGS: dict[int, int] = {SettingsParameter.MAX_CONCURRENT_STREAMS: 100}


@dataclass(kw_only=True)
class ConnectionDiagnostics:
    """A snapshot of connection diagnostics."""

    remote_address: Address
    mode: ConnectionMode
    is_closed: bool
    frames_read: int
    frames_written: int
    peer_settings: Settings


class Http2Connection:
    """Own one transport connection plus the frame codec bound to it."""

    def __init__(
        self, *, reader: asyncio.StreamReader, writer: asyncio.StreamWriter, context: ExecutionContext
    ) -> None:
        """Initialize the connection over an already established transport."""
        self._reader = reader
        self._writer = writer
        self._context = context
        self._closed = False
        self._encoder = hpack.Encoder()
        self._frames_read = 0
        self._frames_written = 0
        self._peer_settings: Settings = {}
        self._next_stream_id: StreamId = 3 if context.mode == ConnectionMode.UPGRADE else 1

    @classmethod
    async def open(cls, *, context: ExecutionContext) -> Self:
        """Connect to the target, run the handshake of the context's mode and send the client preface."""
        reader, writer = await cls._connect_transport(context=context)
        connection = cls(reader=reader, writer=writer, context=context)

        try:
            match context.mode:
                case ConnectionMode.TLS:
                    connection._verify_alpn()
                case ConnectionMode.UPGRADE:
                    await connection._upgrade()
                case ConnectionMode.PRIOR_KNOWLEDGE:
                    pass

            await connection.write_raw(data=CONNECTION_PREFACE)
            await connection.write_settings(settings={})
            await connection._exchange_settings()
        except BaseException:
            await connection.close()
            raise

        logger.debug("HTTP/2 connection to %s:%d ready (%s)", context.host, context.port, context.mode)
        return connection

    @property
    def context(self) -> ExecutionContext:
        """Get the execution context this connection was opened with."""
        return self._context

    @property
    def is_closed(self) -> bool:
        """Return True if the connection has been closed locally."""
        return self._closed

    @property
    def peer_settings(self) -> Settings:
        """Get the SETTINGS received from the peer during the exchange."""
        return dict(self._peer_settings)

    @property
    def remote_address(self) -> Address:
        """Get the address of the target."""
        return self._context.address

    def allocate_stream_id(self) -> StreamId:
        """Return the next unused client-initiated stream identifier."""
        stream_id = self._next_stream_id
        self._next_stream_id += 2
        return stream_id

    async def close(self) -> None:
        """Close the transport; safe to call more than once."""
        if self._closed:
            return

        self._closed = True
        self._writer.close()
        try:
            await self._writer.wait_closed()
        except OSError as e:
            logger.debug("Ignoring transport error during close: %s", e)

    def diagnostics(self) -> ConnectionDiagnostics:
        """Get diagnostic information about the connection."""
        return ConnectionDiagnostics(
            remote_address=self.remote_address,
            mode=self._context.mode,
            is_closed=self._closed,
            frames_read=self._frames_read,
            frames_written=self._frames_written,
            peer_settings=self.peer_settings,
        )

    async def read_frame(self, *, timeout: Timeout) -> InboundFrame:
        """Wait for the next frame, racing it against the given timeout."""
        try:
            async with asyncio.timeout(delay=timeout):
                return await self._read_next_frame()
        except asyncio.TimeoutError as e:
            raise TimeoutError(f"No frame received within {timeout}s", operation="read_frame") from e

    def request_headers(self) -> Headers:
        """Build the request header list for a simple GET on the configured path."""
        return [
            (":method", "GET"),
            (":scheme", "https" if self._context.is_tls else "http"),
            (":path", self._context.path),
            (":authority", self._context.authority),
            ("user-agent", USER_AGENT),
        ]

    async def write_frame(self, *, frame: Frame) -> None:
        """Serialize a well-formed frame with the codec and send it."""
        await self.write_raw(data=frame.serialize())
        self._frames_written += 1
        logger.debug("Sent %r", frame)

    async def write_headers(self, *, stream_id: StreamId, headers: Headers, end_stream: bool = True) -> None:
        """Send a HEADERS frame carrying an HPACK-encoded header block."""
        flags = ["END_HEADERS", "END_STREAM"] if end_stream else ["END_HEADERS"]
        block = self._encoder.encode(headers)
        await self.write_frame(frame=HeadersFrame(stream_id, data=block, flags=flags))

    async def write_ping(self, *, data: bytes = b"\x00" * PING_PAYLOAD_SIZE, ack: bool = False) -> None:
        """Send a PING frame."""
        await self.write_frame(frame=PingFrame(0, opaque_data=data, flags=["ACK"] if ack else []))

    async def write_raw(self, *, data: Buffer) -> None:
        """Write octets straight to the transport, bypassing the codec."""
        if self._closed:
            raise ConnectionError("Connection is closed", remote_address=self.remote_address)

        try:
            self._writer.write(ensure_bytes(data=data))
            async with asyncio.timeout(delay=self._context.timeout):
                await self._writer.drain()
        except asyncio.TimeoutError as e:
            raise TimeoutError(
                f"Write did not drain within {self._context.timeout}s", operation="write_raw"
            ) from e
        except (BrokenPipeError, ConnectionResetError) as e:
            raise ConnectionClosedError(
                f"Peer closed the connection during write: {e}", reset=True, remote_address=self.remote_address
            ) from e
        except OSError as e:
            raise ConnectionError(f"Transport failure during write: {e}", remote_address=self.remote_address) from e

    async def write_settings(self, *, settings: Mapping[int, int]) -> None:
        """Send a SETTINGS frame with the given parameters."""
        await self.write_frame(frame=SettingsFrame(0, settings=dict(settings)))

    async def write_settings_ack(self) -> None:
        """Acknowledge the peer's SETTINGS."""
        await self.write_frame(frame=SettingsFrame(0, flags=["ACK"]))

    async def _exchange_settings(self) -> None:
        """Wait until both SETTINGS frames have been acknowledged."""
        peer_settings_seen = False
        ack_seen = False

        try:
            async with asyncio.timeout(delay=self._context.timeout):
                while not (peer_settings_seen and ack_seen):
                    frame = await self._read_next_frame()
                    if frame.frame_type != FrameType.SETTINGS:
                        logger.debug("Ignoring %r during SETTINGS exchange", frame)
                        continue
                    if frame.is_ack:
                        ack_seen = True
                        continue
                    if isinstance(frame.frame, SettingsFrame):
                        self._peer_settings.update(frame.frame.settings)
                    await self.write_settings_ack()
                    peer_settings_seen = True
        except asyncio.TimeoutError as e:
            raise HandshakeError(
                f"SETTINGS exchange did not complete within {self._context.timeout}s", handshake_stage="settings"
            ) from e
        except ConnectionError as e:
            raise HandshakeError(
                f"Connection failed during SETTINGS exchange: {e.message}", handshake_stage="settings"
            ) from e

    async def _read_next_frame(self) -> InboundFrame:
        """Read one complete frame without any deadline."""
        if self._closed:
            raise ConnectionError("Connection is closed", remote_address=self.remote_address)

        try:
            header_bytes = await self._reader.readexactly(FRAME_HEADER_SIZE)
            header = FrameHeader.parse(data=header_bytes)
            payload = await self._reader.readexactly(header.length) if header.length else b""
        except asyncio.IncompleteReadError as e:
            raise ConnectionClosedError(
                "Peer closed the connection", reset=False, remote_address=self.remote_address
            ) from e
        except ConnectionResetError as e:
            raise ConnectionClosedError(
                "Connection reset by peer", reset=True, remote_address=self.remote_address
            ) from e
        except OSError as e:
            raise ConnectionError(f"Transport failure during read: {e}", remote_address=self.remote_address) from e

        frame = InboundFrame.decode(header=header, payload=payload)
        self._frames_read += 1
        logger.debug("Received %r", frame)
        return frame

    async def _upgrade(self) -> None:
        """Switch a cleartext HTTP/1.1 connection to HTTP/2 via the h2c upgrade."""
        token = base64.urlsafe_b64encode(build_settings_payload(settings=_UPGRADE_SETTINGS)).rstrip(b"=")
        request = (
            f"GET {self._context.path} HTTP/1.1\r\n"
            f"Host: {self._context.authority}\r\n"
            f"Connection: Upgrade, HTTP2-Settings\r\n"
            f"Upgrade: {UPGRADE_TOKEN}\r\n"
            f"HTTP2-Settings: {token.decode('ascii')}\r\n"
            f"User-Agent: {USER_AGENT}\r\n"
            "\r\n"
        )
        await self.write_raw(data=request.encode("ascii"))

        try:
            async with asyncio.timeout(delay=self._context.timeout):
                response = await self._reader.readuntil(separator=b"\r\n\r\n")
        except asyncio.TimeoutError as e:
            raise HandshakeError("No response to the h2c upgrade request", handshake_stage="upgrade") from e
        except (asyncio.IncompleteReadError, asyncio.LimitOverrunError) as e:
            raise HandshakeError("Malformed response to the h2c upgrade request", handshake_stage="upgrade") from e

        status_line = response.split(b"\r\n", 1)[0].decode("latin-1")
        parts = status_line.split(" ", 2)
        if len(parts) < 2 or parts[1] != "101":
            raise HandshakeError(f"Server refused the h2c upgrade: {status_line!r}", handshake_stage="upgrade")
        logger.debug("h2c upgrade accepted: %s", status_line)

    def _verify_alpn(self) -> None:
        """Check that TLS negotiated an HTTP/2 ALPN token."""
        ssl_object = self._writer.get_extra_info("ssl_object")
        protocol = ssl_object.selected_alpn_protocol() if ssl_object is not None else None
        if protocol not in ALPN_PROTOCOLS:
            raise HandshakeError(f"Server did not negotiate h2 via ALPN (got {protocol!r})", handshake_stage="alpn")

    @staticmethod
    async def _connect_transport(*, context: ExecutionContext) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        """Open the TCP (and optionally TLS) byte stream."""
        ssl_context: ssl.SSLContext | None = None
        server_hostname: str | None = None
        if context.is_tls:
            ssl_context = create_ssl_context(verify_mode=context.verify_mode, ca_certs=context.ca_certs)
            server_hostname = context.server_name or context.host

        logger.debug("Connecting to %s:%d", context.host, context.port)
        try:
            async with asyncio.timeout(delay=context.connect_timeout):
                return await asyncio.open_connection(
                    host=context.host, port=context.port, ssl=ssl_context, server_hostname=server_hostname
                )
        except asyncio.TimeoutError as e:
            raise ConnectionError(
                f"Timed out connecting to {context.host}:{context.port}", remote_address=context.address
            ) from e
        except ssl.SSLError as e:
            raise HandshakeError(f"TLS handshake failed: {e}", handshake_stage="tls") from e
        except OSError as e:
            raise ConnectionError(
                f"Could not connect to {context.host}:{context.port}: {e}", remote_address=context.address
            ) from e

    async def __aenter__(self) -> Self:
        """Enter the async context."""
        return self

    async def __aexit__(
        self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: TracebackType | None
    ) -> None:
        """Exit the async context, always closing the transport."""
        await self.close()

    def __repr__(self) -> str:
        """Provide a developer-friendly representation."""
        status = "closed" if self._closed else "open"
        return f"<Http2Connection {self._context.host}:{self._context.port} mode={self._context.mode} {status}>"
