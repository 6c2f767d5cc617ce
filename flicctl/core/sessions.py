"""Client-side session objects multiplexed over one flicd connection.

Each session owns an identifier, knows the commands that create and remove
it on the daemon, and republishes the events routed to it as named
notifications.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, ClassVar

from flicctl.core.codec import encode_bdaddr
from flicctl.core.emitter import EventEmitter
from flicctl.core.enums import (
    CommandOpcode,
    EventOpcode,
    LatencyMode,
    ScanWizardState,
    SessionState,
)
from flicctl.core.model import DEFAULT_AUTO_DISCONNECT_TIME, MAX_AUTO_DISCONNECT_TIME, Command

CommandSender = Callable[[Command], None]

_BUTTON_NOTIFICATIONS: dict[EventOpcode, str] = {
    EventOpcode.BUTTON_UP_OR_DOWN: "button_up_or_down",
    EventOpcode.BUTTON_CLICK_OR_HOLD: "button_click_or_hold",
    EventOpcode.BUTTON_SINGLE_OR_DOUBLE_CLICK: "button_single_or_double_click",
    EventOpcode.BUTTON_SINGLE_OR_DOUBLE_CLICK_OR_HOLD: "button_single_or_double_click_or_hold",
}


def _normalize_bdaddr(bd_addr: str) -> str:
    encode_bdaddr(bd_addr)
    return bd_addr.lower()


def _check_auto_disconnect_time(value: int) -> int:
    if not 0 <= value <= MAX_AUTO_DISCONNECT_TIME:
        raise ValueError(
            f"auto_disconnect_time must be between 0 and {MAX_AUTO_DISCONNECT_TIME}, got {value}"
        )
    return value


class Session(EventEmitter):
    kind: ClassVar[str] = "session"

    def __init__(self, session_id: int) -> None:
        super().__init__()
        if session_id < 0:
            raise ValueError(f"Session id must be non-negative, got {session_id}")
        self._id = session_id
        self._state = SessionState.CONSTRUCTED
        self._sender: CommandSender | None = None

    @property
    def id(self) -> int:
        return self._id

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def attached(self) -> bool:
        return self._state is SessionState.ATTACHED

    def attach_command(self) -> Command:
        raise NotImplementedError

    def detach_command(self) -> Command:
        raise NotImplementedError

    def mark_attached(self, sender: CommandSender) -> None:
        self._sender = sender
        self._state = SessionState.ATTACHED

    def mark_detached(self) -> None:
        self._sender = None
        self._state = SessionState.DETACHED

    def handle_event(self, opcode: EventOpcode, event: Any) -> None:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self._id}, state={self._state.name})"


class ConnectionChannel(Session):
    """A logical connection to one button.

    Notifications:
        create_response(error, connection_status)
        connection_status_changed(connection_status, disconnect_reason)
        removed(removed_reason)
        button_up_or_down(click_type, was_queued, time_diff)
        button_click_or_hold(click_type, was_queued, time_diff)
        button_single_or_double_click(click_type, was_queued, time_diff)
        button_single_or_double_click_or_hold(click_type, was_queued, time_diff)
    """

    kind = "connection_channel"

    def __init__(
        self,
        conn_id: int,
        bd_addr: str,
        *,
        latency_mode: LatencyMode = LatencyMode.NORMAL,
        auto_disconnect_time: int = DEFAULT_AUTO_DISCONNECT_TIME,
    ) -> None:
        super().__init__(conn_id)
        self._bd_addr = _normalize_bdaddr(bd_addr)
        self._latency_mode = LatencyMode(latency_mode)
        self._auto_disconnect_time = _check_auto_disconnect_time(auto_disconnect_time)

    @property
    def bd_addr(self) -> str:
        return self._bd_addr

    @property
    def latency_mode(self) -> LatencyMode:
        return self._latency_mode

    @latency_mode.setter
    def latency_mode(self, value: LatencyMode) -> None:
        self._latency_mode = LatencyMode(value)
        self._send_mode_parameters()

    @property
    def auto_disconnect_time(self) -> int:
        return self._auto_disconnect_time

    @auto_disconnect_time.setter
    def auto_disconnect_time(self, value: int) -> None:
        self._auto_disconnect_time = _check_auto_disconnect_time(value)
        self._send_mode_parameters()

    def _send_mode_parameters(self) -> None:
        if self._sender is None:
            return
        self._sender(
            Command(
                CommandOpcode.CHANGE_MODE_PARAMETERS,
                {
                    "conn_id": self._id,
                    "latency_mode": self._latency_mode,
                    "auto_disconnect_time": self._auto_disconnect_time,
                },
            )
        )

    def attach_command(self) -> Command:
        return Command(
            CommandOpcode.CREATE_CONNECTION_CHANNEL,
            {
                "conn_id": self._id,
                "bd_addr": self._bd_addr,
                "latency_mode": self._latency_mode,
                "auto_disconnect_time": self._auto_disconnect_time,
            },
        )

    def detach_command(self) -> Command:
        return Command(CommandOpcode.REMOVE_CONNECTION_CHANNEL, {"conn_id": self._id})

    def handle_event(self, opcode: EventOpcode, event: Any) -> None:
        if opcode == EventOpcode.CREATE_CONNECTION_CHANNEL_RESPONSE:
            self.emit("create_response", event.error, event.connection_status)
        elif opcode == EventOpcode.CONNECTION_STATUS_CHANGED:
            self.emit("connection_status_changed", event.connection_status, event.disconnect_reason)
        elif opcode == EventOpcode.CONNECTION_CHANNEL_REMOVED:
            if event.removed_reason is not None:
                self.emit("removed", event.removed_reason)
        elif opcode in _BUTTON_NOTIFICATIONS:
            self.emit(_BUTTON_NOTIFICATIONS[opcode], event.click_type, event.was_queued, event.time_diff)


class Scanner(Session):
    """Raw advertisement scanner.

    Notifications:
        advertisement_packet(bd_addr, name, rssi, is_private, already_verified,
                             already_connected_to_this_device,
                             already_connected_to_other_device)
    """

    kind = "scanner"

    def attach_command(self) -> Command:
        return Command(CommandOpcode.CREATE_SCANNER, {"scan_id": self._id})

    def detach_command(self) -> Command:
        return Command(CommandOpcode.REMOVE_SCANNER, {"scan_id": self._id})

    def handle_event(self, opcode: EventOpcode, event: Any) -> None:
        if opcode == EventOpcode.ADVERTISEMENT_PACKET:
            self.emit(
                "advertisement_packet",
                event.bd_addr,
                event.name,
                event.rssi,
                event.is_private,
                event.already_verified,
                event.already_connected_to_this_device,
                event.already_connected_to_other_device,
            )


class ScanWizard(Session):
    """Daemon-guided search, connect and verify flow for a single new button.

    Notifications:
        found_private_button()
        found_public_button(bd_addr, name)
        button_connected(bd_addr, name)
        completed(result, bd_addr, name)

    ``completed`` is only published when a public button was reported
    earlier; a wizard that ends without one (cancelled, timed out) finishes
    silently.
    """

    kind = "scan_wizard"

    def __init__(self, scan_wizard_id: int) -> None:
        super().__init__(scan_wizard_id)
        self._wizard_state = ScanWizardState.IDLE
        self._bd_addr: str | None = None
        self._name: str | None = None

    @property
    def wizard_state(self) -> ScanWizardState:
        return self._wizard_state

    @property
    def bd_addr(self) -> str | None:
        return self._bd_addr

    @property
    def name(self) -> str | None:
        return self._name

    def attach_command(self) -> Command:
        return Command(CommandOpcode.CREATE_SCAN_WIZARD, {"scan_wizard_id": self._id})

    def detach_command(self) -> Command:
        return Command(CommandOpcode.CANCEL_SCAN_WIZARD, {"scan_wizard_id": self._id})

    def mark_attached(self, sender: CommandSender) -> None:
        super().mark_attached(sender)
        self._wizard_state = ScanWizardState.AWAITING_BUTTON

    def handle_event(self, opcode: EventOpcode, event: Any) -> None:
        if opcode == EventOpcode.SCAN_WIZARD_FOUND_PRIVATE_BUTTON:
            self.emit("found_private_button")
        elif opcode == EventOpcode.SCAN_WIZARD_FOUND_PUBLIC_BUTTON:
            self._bd_addr = event.bd_addr
            self._name = event.name
            if self._bd_addr and self._name:
                self._wizard_state = ScanWizardState.CONNECTING
                self.emit("found_public_button", self._bd_addr, self._name)
        elif opcode == EventOpcode.SCAN_WIZARD_BUTTON_CONNECTED:
            if self._bd_addr and self._name:
                self.emit("button_connected", self._bd_addr, self._name)
        elif opcode == EventOpcode.SCAN_WIZARD_COMPLETED:
            bd_addr, name = self._bd_addr, self._name
            self._bd_addr = None
            self._name = None
            self._wizard_state = ScanWizardState.COMPLETED
            # IntEnum SUCCESS is 0, so test for presence rather than truthiness.
            if event.result is not None and bd_addr and name:
                self.emit("completed", event.result, bd_addr, name)


class BatteryStatusListener(Session):
    """Battery level updates for one button.

    Notifications:
        battery_status(battery_percentage, timestamp)
    """

    kind = "battery_status_listener"

    def __init__(self, listener_id: int, bd_addr: str) -> None:
        super().__init__(listener_id)
        self._bd_addr = _normalize_bdaddr(bd_addr)

    @property
    def bd_addr(self) -> str:
        return self._bd_addr

    def attach_command(self) -> Command:
        return Command(
            CommandOpcode.CREATE_BATTERY_STATUS_LISTENER,
            {"listener_id": self._id, "bd_addr": self._bd_addr},
        )

    def detach_command(self) -> Command:
        return Command(CommandOpcode.REMOVE_BATTERY_STATUS_LISTENER, {"listener_id": self._id})

    def handle_event(self, opcode: EventOpcode, event: Any) -> None:
        if opcode == EventOpcode.BATTERY_STATUS:
            self.emit("battery_status", event.battery_percentage, event.timestamp)
