"""
Configuration and fixtures for h2harness integration tests.
"""

import asyncio
import ssl
from collections.abc import AsyncGenerator, Awaitable, Callable, Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeAlias

import pytest
import pytest_asyncio

from h2harness.constants import (
    CONNECTION_PREFACE,
    DEFAULT_WINDOW_SIZE,
    FRAME_HEADER_SIZE,
    MAX_MAX_FRAME_SIZE,
    MAX_WINDOW_SIZE,
    MIN_MAX_FRAME_SIZE,
    PING_PAYLOAD_SIZE,
    SETTINGS_PARAMETER_SIZE,
    WINDOW_UPDATE_PAYLOAD_SIZE,
    ErrorCodes,
    FrameFlags,
    FrameType,
    SettingsParameter,
)
from h2harness.frames import FrameHeader, build_frame
from h2harness.utils import generate_self_signed_cert

UPGRADE_RESPONSE = b"HTTP/1.1 101 Switching Protocols\r\nConnection: Upgrade\r\nUpgrade: h2c\r\n\r\n"

Violation: TypeAlias = tuple[int, int]


@dataclass(kw_only=True)
class PeerBehavior:
    """How the scripted peer negotiates and how it reacts to protocol violations."""

    on_violation: str = "goaway"
    goaway_code: int | None = None
    upgrade: bool = False


class ScriptedHttp2Peer:
    """A minimal HTTP/2 server endpoint that validates the frames the harness exercises."""

    def __init__(self, *, behavior: PeerBehavior) -> None:
        self.behavior = behavior
        self.connections = 0
        self.violations: list[int] = []
        self._writers: set[asyncio.StreamWriter] = set()

    def close_all(self) -> None:
        """Close every connection still open."""
        for writer in list(self._writers):
            writer.close()

    async def handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        """Serve one connection until the client goes away or a violation ends it."""
        self.connections += 1
        self._writers.add(writer)
        try:
            await self._serve(reader=reader, writer=writer)
        except (asyncio.IncompleteReadError, asyncio.LimitOverrunError, OSError):
            pass
        finally:
            self._writers.discard(writer)
            writer.close()

    async def _serve(self, *, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        if self.behavior.upgrade:
            await reader.readuntil(b"\r\n\r\n")
            writer.write(UPGRADE_RESPONSE)
        writer.write(build_frame(frame_type=FrameType.SETTINGS))
        await writer.drain()

        if await reader.readexactly(len(CONNECTION_PREFACE)) != CONNECTION_PREFACE:
            return

        window = DEFAULT_WINDOW_SIZE
        while True:
            header = FrameHeader.parse(data=await reader.readexactly(FRAME_HEADER_SIZE))
            payload = await reader.readexactly(header.length) if header.length else b""

            violation = self._check(header=header, payload=payload)
            if violation is None and header.type == FrameType.WINDOW_UPDATE and header.stream_id == 0:
                window += int.from_bytes(payload, "big") & MAX_WINDOW_SIZE
                if window > MAX_WINDOW_SIZE:
                    violation = (ErrorCodes.FLOW_CONTROL_ERROR, 0)

            if violation is not None:
                if not await self._on_violation(reader=reader, writer=writer, violation=violation):
                    return
                continue

            match header.type:
                case FrameType.SETTINGS if not header.flags & FrameFlags.ACK:
                    writer.write(build_frame(frame_type=FrameType.SETTINGS, flags=FrameFlags.ACK))
                case FrameType.PING if not header.flags & FrameFlags.ACK:
                    writer.write(build_frame(frame_type=FrameType.PING, flags=FrameFlags.ACK, payload=payload))
                case FrameType.GOAWAY:
                    return
            await writer.drain()

    async def _on_violation(
        self, *, reader: asyncio.StreamReader, writer: asyncio.StreamWriter, violation: Violation
    ) -> bool:
        """React to a violation; return True if the connection stays open."""
        code, stream_id = violation
        self.violations.append(code)
        if self.behavior.goaway_code is not None:
            code = self.behavior.goaway_code

        match self.behavior.on_violation:
            case "ignore":
                return True
            case "close":
                return False

        if stream_id:
            writer.write(
                build_frame(frame_type=FrameType.RST_STREAM, stream_id=stream_id, payload=code.to_bytes(4, "big"))
            )
            await writer.drain()
            return True

        writer.write(build_frame(frame_type=FrameType.GOAWAY, payload=b"\x00\x00\x00\x00" + code.to_bytes(4, "big")))
        await writer.drain()
        try:
            async with asyncio.timeout(1.0):
                while await reader.read(65536):
                    pass
        except TimeoutError:
            pass
        return False

    def _check(self, *, header: FrameHeader, payload: bytes) -> Violation | None:
        """Return the error code and stream of the violation a frame commits, if any."""
        match header.type:
            case FrameType.SETTINGS:
                if header.stream_id != 0:
                    return ErrorCodes.PROTOCOL_ERROR, 0
                if header.flags & FrameFlags.ACK and header.length != 0:
                    return ErrorCodes.FRAME_SIZE_ERROR, 0
                if header.length % SETTINGS_PARAMETER_SIZE:
                    return ErrorCodes.FRAME_SIZE_ERROR, 0
                for identifier, value in iter_settings(payload=payload):
                    if identifier == SettingsParameter.ENABLE_PUSH and value not in (0, 1):
                        return ErrorCodes.PROTOCOL_ERROR, 0
                    if identifier == SettingsParameter.INITIAL_WINDOW_SIZE and value > MAX_WINDOW_SIZE:
                        return ErrorCodes.FLOW_CONTROL_ERROR, 0
                    if identifier == SettingsParameter.MAX_FRAME_SIZE and not (
                        MIN_MAX_FRAME_SIZE <= value <= MAX_MAX_FRAME_SIZE
                    ):
                        return ErrorCodes.PROTOCOL_ERROR, 0
            case FrameType.PING:
                if header.stream_id != 0:
                    return ErrorCodes.PROTOCOL_ERROR, 0
                if header.length != PING_PAYLOAD_SIZE:
                    return ErrorCodes.FRAME_SIZE_ERROR, 0
            case FrameType.WINDOW_UPDATE:
                if header.length != WINDOW_UPDATE_PAYLOAD_SIZE:
                    return ErrorCodes.FRAME_SIZE_ERROR, 0
                if int.from_bytes(payload, "big") & MAX_WINDOW_SIZE == 0:
                    return ErrorCodes.PROTOCOL_ERROR, header.stream_id
        return None


PeerFactory: TypeAlias = Callable[..., Awaitable[tuple[ScriptedHttp2Peer, int]]]


def iter_settings(*, payload: bytes) -> Iterator[tuple[int, int]]:
    """Yield the (identifier, value) pairs of a SETTINGS body."""
    for offset in range(0, len(payload), SETTINGS_PARAMETER_SIZE):
        yield (
            int.from_bytes(payload[offset : offset + 2], "big"),
            int.from_bytes(payload[offset + 2 : offset + SETTINGS_PARAMETER_SIZE], "big"),
        )


@pytest.fixture(scope="session")
def certificates_dir(tmp_path_factory: pytest.TempPathFactory) -> Path:
    """Generate self-signed certificates in a temporary directory for the session."""
    cert_dir = tmp_path_factory.mktemp("certs")
    generate_self_signed_cert(hostname="localhost", output_dir=str(cert_dir))
    return cert_dir


@pytest.fixture
def server_ssl_context(certificates_dir: Path) -> ssl.SSLContext:
    """Provide a server TLS context that negotiates h2 via ALPN."""
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    context.load_cert_chain(
        certfile=str(certificates_dir / "localhost.crt"), keyfile=str(certificates_dir / "localhost.key")
    )
    context.set_alpn_protocols(["h2"])
    return context


@pytest_asyncio.fixture
async def start_peer() -> AsyncGenerator[PeerFactory, None]:
    """Provide a factory that starts scripted peers on free ports and stops them afterwards."""
    started: list[tuple[asyncio.Server, ScriptedHttp2Peer]] = []

    async def _start(
        *, ssl_context: ssl.SSLContext | None = None, **behavior: Any
    ) -> tuple[ScriptedHttp2Peer, int]:
        peer = ScriptedHttp2Peer(behavior=PeerBehavior(**behavior))
        server = await asyncio.start_server(peer.handle, host="127.0.0.1", port=0, ssl=ssl_context)
        started.append((server, peer))
        return peer, server.sockets[0].getsockname()[1]

    yield _start

    for server, peer in started:
        peer.close_all()
        server.close()
        await server.wait_closed()
