"""Client for the flicd button daemon."""

from __future__ import annotations

import logging
from dataclasses import replace
from types import TracebackType

from flicctl.core.codec import decode_event, encode
from flicctl.core.config_loader import load_config
from flicctl.core.emitter import EventEmitter
from flicctl.core.enums import CommandOpcode, LatencyMode
from flicctl.core.errors import MalformedPacketError
from flicctl.core.model import (
    ClientConfig,
    Command,
    GetButtonInfoResponse,
    GetInfoResponse,
    PingResponse,
)
from flicctl.core.registry import SessionRegistry
from flicctl.core.sessions import BatteryStatusListener, ConnectionChannel, Scanner, ScanWizard
from flicctl.transports.base import FrameTransport
from flicctl.transports.tcp import TCPFrameTransport

LOGGER = logging.getLogger(__name__)


class FlicClient(EventEmitter):
    """One connection to flicd and the sessions attached over it.

    Notifications:
        ready()
        close(had_error)
        error(exc)
        new_verified_button(bd_addr)
        button_deleted(bd_addr, deleted_by_this_client)
        no_space_for_new_connection(max_concurrently_connected_buttons)
        got_space_for_new_connection(max_concurrently_connected_buttons)
        bluetooth_controller_state_change(state)

    Sessions are not re-attached after a reconnect; add them again once
    ``ready`` fires.
    """

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        *,
        config: ClientConfig | None = None,
        transport: FrameTransport | None = None,
    ) -> None:
        super().__init__()
        config = config or load_config()
        if host is not None:
            config = replace(config, host=host)
        if port is not None:
            config = replace(config, port=port)
        self.config = config
        self.transport: FrameTransport = transport or TCPFrameTransport(
            config.host,
            config.port,
            connect_timeout_s=config.connect_timeout_s,
        )
        self.registry = SessionRegistry(self._send, self.emit)

        self.transport.on("open", self._on_open)
        self.transport.on("packet", self._on_packet)
        self.transport.on("close", self._on_close)
        self.transport.on("error", self._on_error)

    @property
    def connected(self) -> bool:
        return self.transport.connected

    async def connect(self) -> None:
        await self.transport.connect()

    async def reconnect(self) -> None:
        await self.transport.reconnect()

    def close(self) -> None:
        self.transport.close()

    async def __aenter__(self) -> FlicClient:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _send(self, command: Command) -> None:
        self.transport.send_packet(encode(command))

    def _on_open(self) -> None:
        self.emit("ready")

    def _on_close(self, had_error: bool) -> None:
        self.registry.detach_all()
        self.emit("close", had_error)

    def _on_error(self, exc: BaseException) -> None:
        self.emit("error", exc)

    def _on_packet(self, packet: bytes) -> None:
        try:
            decoded = decode_event(packet)
        except MalformedPacketError as exc:
            LOGGER.warning("Dropping malformed packet %s: %s", packet.hex(), exc)
            self.emit("error", exc)
            return
        if decoded is None:
            return
        opcode, event = decoded
        self.registry.dispatch(opcode, event)

    def new_scanner(self) -> Scanner:
        return Scanner(self.registry.scanner_ids.allocate())

    def new_scan_wizard(self) -> ScanWizard:
        return ScanWizard(self.registry.scan_wizard_ids.allocate())

    def new_connection_channel(
        self,
        bd_addr: str,
        latency_mode: LatencyMode | None = None,
        auto_disconnect_time: int | None = None,
    ) -> ConnectionChannel:
        return ConnectionChannel(
            self.registry.conn_ids.allocate(),
            bd_addr,
            latency_mode=self.config.latency_mode if latency_mode is None else latency_mode,
            auto_disconnect_time=(
                self.config.auto_disconnect_time if auto_disconnect_time is None else auto_disconnect_time
            ),
        )

    def new_battery_status_listener(self, bd_addr: str) -> BatteryStatusListener:
        return BatteryStatusListener(self.registry.listener_ids.allocate(), bd_addr)

    def add_scanner(self, scanner: Scanner) -> bool:
        return self.registry.add(scanner)

    def remove_scanner(self, scanner: Scanner) -> bool:
        return self.registry.remove(scanner)

    def add_scan_wizard(self, scan_wizard: ScanWizard) -> bool:
        return self.registry.add(scan_wizard)

    def cancel_scan_wizard(self, scan_wizard: ScanWizard) -> bool:
        return self.registry.remove(scan_wizard)

    def add_connection_channel(self, channel: ConnectionChannel) -> bool:
        return self.registry.add(channel)

    def remove_connection_channel(self, channel: ConnectionChannel) -> bool:
        return self.registry.remove(channel)

    def add_battery_status_listener(self, listener: BatteryStatusListener) -> bool:
        return self.registry.add(listener)

    def remove_battery_status_listener(self, listener: BatteryStatusListener) -> bool:
        return self.registry.remove(listener)

    async def get_info(self) -> GetInfoResponse:
        """Ask the daemon for its controller state and verified buttons."""
        return await self.registry.request_info()

    async def get_button_info(self, bd_addr: str) -> GetButtonInfoResponse | None:
        """Look up a verified button; ``None`` when the daemon does not know it."""
        response = await self.registry.request_button_info(bd_addr)
        if response.uuid is None:
            return None
        return response

    async def ping(self) -> PingResponse:
        return await self.registry.request_ping()

    def delete_button(self, bd_addr: str) -> None:
        self._send(Command(CommandOpcode.DELETE_BUTTON, {"bd_addr": bd_addr}))

    def force_disconnect(self, bd_addr: str) -> None:
        self._send(Command(CommandOpcode.FORCE_DISCONNECT, {"bd_addr": bd_addr}))
