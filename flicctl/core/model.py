"""Core data models shared by the codec, registry, sessions and client."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Union

from flicctl.core.enums import (
    BdAddrType,
    BluetoothControllerState,
    ClickType,
    CommandOpcode,
    ConnectionStatus,
    CreateConnectionChannelError,
    DisconnectReason,
    LatencyMode,
    RemovedReason,
    ScanWizardResult,
)

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 5551
DEFAULT_AUTO_DISCONNECT_TIME = 511
MAX_AUTO_DISCONNECT_TIME = 511


@dataclass(frozen=True)
class ClientConfig:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    connect_timeout_s: float = 5.0
    latency_mode: LatencyMode = LatencyMode.NORMAL
    auto_disconnect_time: int = DEFAULT_AUTO_DISCONNECT_TIME


@dataclass(frozen=True)
class Command:
    """An outbound command before encoding."""

    opcode: CommandOpcode
    fields: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class AdvertisementPacket:
    scan_id: int
    bd_addr: str
    name: str
    rssi: int
    is_private: bool
    already_verified: bool
    already_connected_to_this_device: bool
    already_connected_to_other_device: bool


@dataclass(frozen=True)
class CreateConnectionChannelResponse:
    conn_id: int
    error: CreateConnectionChannelError | None
    connection_status: ConnectionStatus | None


@dataclass(frozen=True)
class ConnectionStatusChanged:
    conn_id: int
    connection_status: ConnectionStatus | None
    disconnect_reason: DisconnectReason | None


@dataclass(frozen=True)
class ConnectionChannelRemoved:
    conn_id: int
    removed_reason: RemovedReason | None


@dataclass(frozen=True)
class ButtonEvent:
    """Shared payload of the four click-shape events."""

    conn_id: int
    click_type: ClickType | None
    was_queued: bool
    time_diff: int


@dataclass(frozen=True)
class NewVerifiedButton:
    bd_addr: str


@dataclass(frozen=True)
class GetInfoResponse:
    bluetooth_controller_state: BluetoothControllerState | None
    my_bd_addr: str
    my_bd_addr_type: BdAddrType | None
    max_pending_connections: int
    max_concurrently_connected_buttons: int
    current_pending_connections: int
    currently_no_space_for_new_connection: bool
    bd_addr_of_verified_buttons: tuple[str, ...]


@dataclass(frozen=True)
class SpaceForNewConnection:
    """Payload of both the no-space and got-space admission events."""

    max_concurrently_connected_buttons: int


@dataclass(frozen=True)
class BluetoothControllerStateChange:
    state: BluetoothControllerState | None


@dataclass(frozen=True)
class PingResponse:
    ping_id: int


@dataclass(frozen=True)
class GetButtonInfoResponse:
    bd_addr: str
    uuid: str | None
    color: str | None
    serial_number: str | None


@dataclass(frozen=True)
class ScanWizardFoundPrivateButton:
    scan_wizard_id: int


@dataclass(frozen=True)
class ScanWizardFoundPublicButton:
    scan_wizard_id: int
    bd_addr: str
    name: str


@dataclass(frozen=True)
class ScanWizardButtonConnected:
    scan_wizard_id: int


@dataclass(frozen=True)
class ScanWizardCompleted:
    scan_wizard_id: int
    result: ScanWizardResult | None


@dataclass(frozen=True)
class ButtonDeleted:
    bd_addr: str
    deleted_by_this_client: bool


@dataclass(frozen=True)
class BatteryStatus:
    listener_id: int
    battery_percentage: int
    timestamp: datetime


Event = Union[
    AdvertisementPacket,
    CreateConnectionChannelResponse,
    ConnectionStatusChanged,
    ConnectionChannelRemoved,
    ButtonEvent,
    NewVerifiedButton,
    GetInfoResponse,
    SpaceForNewConnection,
    BluetoothControllerStateChange,
    PingResponse,
    GetButtonInfoResponse,
    ScanWizardFoundPrivateButton,
    ScanWizardFoundPublicButton,
    ScanWizardButtonConnected,
    ScanWizardCompleted,
    ButtonDeleted,
    BatteryStatus,
]
