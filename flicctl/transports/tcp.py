"""TCP transport to flicd built on asyncio protocols."""

from __future__ import annotations

import asyncio
import logging
from typing import cast

from flicctl.core.emitter import EventEmitter
from flicctl.core.errors import TransportConnectError, TransportSendError
from flicctl.core.framing import PacketFramer, build_frame
from flicctl.core.model import DEFAULT_HOST, DEFAULT_PORT

LOGGER = logging.getLogger(__name__)


class _FrameProtocol(asyncio.Protocol):
    def __init__(self, owner: TCPFrameTransport) -> None:
        self._owner = owner

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        self._owner._connection_made(transport)

    def data_received(self, data: bytes) -> None:
        self._owner._data_received(data)

    def connection_lost(self, exc: Exception | None) -> None:
        self._owner._connection_lost(exc)


class TCPFrameTransport(EventEmitter):
    """Length-framed packet stream over one TCP connection.

    Emits ``open`` once connected, ``packet(payload)`` for every complete
    inbound frame, ``error(exc)`` on socket failures and ``close(had_error)``
    when the connection ends. Reconnecting is left to the caller.
    """

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_PORT,
        *,
        connect_timeout_s: float = 5.0,
    ) -> None:
        super().__init__()
        self.host = host
        self.port = port
        self.connect_timeout_s = connect_timeout_s
        self._transport: asyncio.Transport | None = None
        self._connecting: asyncio.Task[None] | None = None
        self._framer = PacketFramer()

    @property
    def connected(self) -> bool:
        return self._transport is not None and not self._transport.is_closing()

    @property
    def connecting(self) -> bool:
        return self._connecting is not None

    async def connect(self) -> None:
        if self._connecting is not None:
            await asyncio.shield(self._connecting)
            return
        if self.connected:
            return
        self._connecting = asyncio.ensure_future(self._open())
        await asyncio.shield(self._connecting)

    async def reconnect(self) -> None:
        await self.connect()

    async def _open(self) -> None:
        loop = asyncio.get_running_loop()
        LOGGER.info("Connecting to flicd at %s:%d", self.host, self.port)
        try:
            await asyncio.wait_for(
                loop.create_connection(lambda: _FrameProtocol(self), self.host, self.port),
                timeout=self.connect_timeout_s,
            )
        except (OSError, asyncio.TimeoutError) as exc:
            reason = str(exc) or type(exc).__name__
            LOGGER.warning("Connect to flicd at %s:%d failed: %s", self.host, self.port, reason)
            self.emit("error", exc)
            raise TransportConnectError(
                f"Could not connect to flicd at {self.host}:{self.port}: {reason}"
            ) from exc
        finally:
            self._connecting = None

    def send_packet(self, payload: bytes) -> None:
        frame = build_frame(payload)
        if not self.connected or self._transport is None:
            raise TransportSendError(f"Not connected to flicd at {self.host}:{self.port}")
        LOGGER.debug("-> %s", payload.hex())
        self._transport.write(frame)

    def close(self) -> None:
        if self._transport is not None:
            self._transport.close()

    def _connection_made(self, transport: asyncio.BaseTransport) -> None:
        self._transport = cast(asyncio.Transport, transport)
        self._framer.reset()
        LOGGER.info("Connected to flicd at %s:%d", self.host, self.port)
        self.emit("open")

    def _data_received(self, data: bytes) -> None:
        for packet in self._framer.feed(data):
            LOGGER.debug("<- %s", packet.hex())
            self.emit("packet", packet)

    def _connection_lost(self, exc: Exception | None) -> None:
        self._transport = None
        self._framer.reset()
        if exc is not None:
            LOGGER.warning("Connection to flicd at %s:%d lost: %s", self.host, self.port, exc)
            self.emit("error", exc)
        else:
            LOGGER.info("Connection to flicd at %s:%d closed", self.host, self.port)
        self.emit("close", exc is not None)
