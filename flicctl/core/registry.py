"""Session registry and inbound event dispatch."""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections import deque
from collections.abc import Callable
from typing import Any

from flicctl.core.enums import (
    CONNECTION_CHANNEL_EVENTS,
    SCAN_WIZARD_EVENTS,
    CommandOpcode,
    CreateConnectionChannelError,
    EventOpcode,
)
from flicctl.core.model import Command, GetButtonInfoResponse, GetInfoResponse, PingResponse
from flicctl.core.sessions import (
    BatteryStatusListener,
    CommandSender,
    ConnectionChannel,
    Scanner,
    ScanWizard,
    Session,
)

LOGGER = logging.getLogger(__name__)

Notify = Callable[..., Any]


class IdAllocator:
    """Monotonic, never-reused identifiers for one session kind."""

    def __init__(self, start: int = 0) -> None:
        self._counter = itertools.count(start)

    def allocate(self) -> int:
        return next(self._counter)


class SessionRegistry:
    """Tracks the sessions attached on one connection and routes events to them.

    Args:
        send: writes one command to the daemon; may raise ``TransportSendError``.
        notify: receives client-wide notifications as ``notify(name, *args)``.
    """

    def __init__(self, send: CommandSender, notify: Notify) -> None:
        self._send = send
        self._notify = notify

        self.scanners: dict[int, Scanner] = {}
        self.scan_wizards: dict[int, ScanWizard] = {}
        self.connection_channels: dict[int, ConnectionChannel] = {}
        self.battery_status_listeners: dict[int, BatteryStatusListener] = {}

        self.scanner_ids = IdAllocator()
        self.scan_wizard_ids = IdAllocator()
        self.conn_ids = IdAllocator()
        self.listener_ids = IdAllocator()
        self.ping_ids = IdAllocator()

        self._info_queue: deque[asyncio.Future[GetInfoResponse]] = deque()
        self._button_info_queue: deque[asyncio.Future[GetButtonInfoResponse]] = deque()
        self._pending_pings: dict[int, asyncio.Future[PingResponse]] = {}

    def _table_for(self, session: Session) -> dict[int, Any]:
        if isinstance(session, ConnectionChannel):
            return self.connection_channels
        if isinstance(session, Scanner):
            return self.scanners
        if isinstance(session, ScanWizard):
            return self.scan_wizards
        if isinstance(session, BatteryStatusListener):
            return self.battery_status_listeners
        raise TypeError(f"Unsupported session type {type(session).__name__}")

    def sessions(self) -> list[Session]:
        return [
            *self.scanners.values(),
            *self.scan_wizards.values(),
            *self.connection_channels.values(),
            *self.battery_status_listeners.values(),
        ]

    def add(self, session: Session) -> bool:
        """Register ``session`` and send its attach command.

        Returns False when the id is already taken by an attached session or
        by a different object.
        """
        table = self._table_for(session)
        existing = table.get(session.id)
        if existing is not None and (existing is not session or existing.attached):
            LOGGER.debug("%s id %d already registered", session.kind, session.id)
            return False
        self._send(session.attach_command())
        table[session.id] = session
        session.mark_attached(self._send)
        return True

    def remove(self, session: Session) -> bool:
        """Send the detach command for a registered ``session``.

        Connection channels and scan wizards stay registered until the
        daemon confirms the removal or completion. A session left detached
        by a transport close is dropped locally without contacting the daemon.
        """
        table = self._table_for(session)
        if table.get(session.id) is not session:
            return False
        if not session.attached:
            del table[session.id]
            return True
        self._send(session.detach_command())
        if not isinstance(session, (ConnectionChannel, ScanWizard)):
            del table[session.id]
            session.mark_detached()
        return True

    def detach_all(self) -> None:
        for session in self.sessions():
            session.mark_detached()

    def request_info(self) -> asyncio.Future[GetInfoResponse]:
        future: asyncio.Future[GetInfoResponse] = asyncio.get_running_loop().create_future()
        self._info_queue.append(future)
        try:
            self._send(Command(CommandOpcode.GET_INFO))
        except Exception:
            self._info_queue.pop()
            raise
        return future

    def request_button_info(self, bd_addr: str) -> asyncio.Future[GetButtonInfoResponse]:
        future: asyncio.Future[GetButtonInfoResponse] = asyncio.get_running_loop().create_future()
        self._button_info_queue.append(future)
        try:
            self._send(Command(CommandOpcode.GET_BUTTON_INFO, {"bd_addr": bd_addr}))
        except Exception:
            self._button_info_queue.pop()
            raise
        return future

    def request_ping(self) -> asyncio.Future[PingResponse]:
        ping_id = self.ping_ids.allocate()
        future: asyncio.Future[PingResponse] = asyncio.get_running_loop().create_future()
        self._pending_pings[ping_id] = future
        try:
            self._send(Command(CommandOpcode.PING, {"ping_id": ping_id}))
        except Exception:
            del self._pending_pings[ping_id]
            raise
        return future

    @property
    def pending_queries(self) -> int:
        return len(self._info_queue) + len(self._button_info_queue) + len(self._pending_pings)

    def dispatch(self, opcode: EventOpcode, event: Any) -> None:
        if opcode == EventOpcode.ADVERTISEMENT_PACKET:
            self._route(self.scanners, event.scan_id, opcode, event)
        elif opcode in CONNECTION_CHANNEL_EVENTS:
            self._dispatch_connection_channel(opcode, event)
        elif opcode in SCAN_WIZARD_EVENTS:
            self._dispatch_scan_wizard(opcode, event)
        elif opcode == EventOpcode.BATTERY_STATUS:
            self._route(self.battery_status_listeners, event.listener_id, opcode, event)
        elif opcode == EventOpcode.NEW_VERIFIED_BUTTON:
            self._notify("new_verified_button", event.bd_addr)
        elif opcode == EventOpcode.BUTTON_DELETED:
            self._notify("button_deleted", event.bd_addr, event.deleted_by_this_client)
        elif opcode == EventOpcode.NO_SPACE_FOR_NEW_CONNECTION:
            self._notify("no_space_for_new_connection", event.max_concurrently_connected_buttons)
        elif opcode == EventOpcode.GOT_SPACE_FOR_NEW_CONNECTION:
            self._notify("got_space_for_new_connection", event.max_concurrently_connected_buttons)
        elif opcode == EventOpcode.BLUETOOTH_CONTROLLER_STATE_CHANGE:
            if event.state is not None:
                self._notify("bluetooth_controller_state_change", event.state)
        elif opcode == EventOpcode.GET_INFO_RESPONSE:
            self._resolve_oldest(self._info_queue, event, "daemon info")
        elif opcode == EventOpcode.GET_BUTTON_INFO_RESPONSE:
            self._resolve_oldest(self._button_info_queue, event, "button info")
        elif opcode == EventOpcode.PING_RESPONSE:
            future = self._pending_pings.pop(event.ping_id, None)
            if future is None:
                LOGGER.debug("Dropping response to unknown ping %d", event.ping_id)
            elif not future.done():
                future.set_result(event)

    def _route(self, table: dict[int, Any], session_id: int, opcode: EventOpcode, event: Any) -> None:
        session = table.get(session_id)
        if session is None:
            LOGGER.debug("No session with id %d for %s", session_id, opcode.name)
            return
        session.handle_event(opcode, event)

    def _dispatch_connection_channel(self, opcode: EventOpcode, event: Any) -> None:
        channel = self.connection_channels.get(event.conn_id)
        if channel is None:
            LOGGER.debug("No connection channel %d for %s", event.conn_id, opcode.name)
            return
        if opcode == EventOpcode.CONNECTION_CHANNEL_REMOVED or (
            opcode == EventOpcode.CREATE_CONNECTION_CHANNEL_RESPONSE
            and event.error is not CreateConnectionChannelError.NO_ERROR
        ):
            del self.connection_channels[event.conn_id]
            channel.mark_detached()
        channel.handle_event(opcode, event)

    def _dispatch_scan_wizard(self, opcode: EventOpcode, event: Any) -> None:
        wizard = self.scan_wizards.get(event.scan_wizard_id)
        if wizard is None:
            LOGGER.debug("No scan wizard %d for %s", event.scan_wizard_id, opcode.name)
            return
        if opcode == EventOpcode.SCAN_WIZARD_COMPLETED:
            del self.scan_wizards[event.scan_wizard_id]
            wizard.mark_detached()
        wizard.handle_event(opcode, event)

    @staticmethod
    def _resolve_oldest(queue: deque[asyncio.Future[Any]], event: Any, what: str) -> None:
        if not queue:
            LOGGER.debug("Dropping unsolicited %s response", what)
            return
        future = queue.popleft()
        if not future.done():
            future.set_result(event)
