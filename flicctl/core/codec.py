"""Wire codec for flicd command and event payloads.

Payload layout::

    +---------+---------------------------------------------+
    | Opcode  |  Fields (fixed layout per opcode)           |
    | 1 byte  |  little-endian integers, 6-byte addresses,  |
    |         |  16-byte string slots, 16-byte UUIDs        |
    +---------+---------------------------------------------+

- Integers are little-endian; 32-bit values travel as two 16-bit halves.
- Bluetooth addresses travel in reverse octet order of their text form.
- A string is one length byte followed by a fixed 16-byte slot.
- Enumerations are one unsigned byte; unknown values decode to ``None``.

The length prefix is added by :mod:`flicctl.core.framing`.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, TypeVar

from flicctl.core.enums import (
    BdAddrType,
    BluetoothControllerState,
    ClickType,
    CommandOpcode,
    ConnectionStatus,
    CreateConnectionChannelError,
    DisconnectReason,
    EventOpcode,
    LatencyMode,
    RemovedReason,
    ScanWizardResult,
)
from flicctl.core.errors import (
    AddressFormatError,
    CodecError,
    MalformedPacketError,
    UnsupportedOpcodeError,
)
from flicctl.core.model import (
    AdvertisementPacket,
    BatteryStatus,
    BluetoothControllerStateChange,
    ButtonDeleted,
    ButtonEvent,
    Command,
    ConnectionChannelRemoved,
    ConnectionStatusChanged,
    CreateConnectionChannelResponse,
    Event,
    GetButtonInfoResponse,
    GetInfoResponse,
    NewVerifiedButton,
    PingResponse,
    ScanWizardButtonConnected,
    ScanWizardCompleted,
    ScanWizardFoundPrivateButton,
    ScanWizardFoundPublicButton,
    SpaceForNewConnection,
)

LOGGER = logging.getLogger(__name__)

BDADDR_SIZE = 6
STRING_SLOT_SIZE = 16
UUID_SIZE = 16
NULL_UUID = "0" * (UUID_SIZE * 2)
# flicd reports battery timestamps in seconds; they are scaled to milliseconds.
TIMESTAMP_SCALE_MS = 1000

_BDADDR_RE = re.compile(r"^[0-9a-f]{2}(?::[0-9a-f]{2}){5}$", re.IGNORECASE)

E = TypeVar("E", bound=IntEnum)


def encode_bdaddr(bd_addr: str) -> bytes:
    """Return the 6 wire bytes of ``"aa:bb:cc:dd:ee:ff"`` (reverse octet order)."""
    if not isinstance(bd_addr, str) or not _BDADDR_RE.match(bd_addr):
        raise AddressFormatError(
            f"Bluetooth address must be six colon-separated hex octets, got {bd_addr!r}"
        )
    return bytes(reversed(bytes.fromhex(bd_addr.replace(":", ""))))


def decode_bdaddr(raw: bytes) -> str:
    if len(raw) != BDADDR_SIZE:
        raise MalformedPacketError(f"Bluetooth address must be {BDADDR_SIZE} bytes, got {len(raw)}")
    return ":".join(f"{octet:02x}" for octet in reversed(raw))


class PacketReader:
    """Bounds-checked read cursor over an immutable packet."""

    def __init__(self, data: bytes, position: int = 0) -> None:
        self._data = bytes(data)
        self._pos = position

    @property
    def position(self) -> int:
        return self._pos

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    def _take(self, size: int, what: str) -> bytes:
        end = self._pos + size
        if end > len(self._data):
            raise MalformedPacketError(
                f"Packet too short reading {what}: need {size} byte(s) at offset "
                f"{self._pos}, {self.remaining} left"
            )
        chunk = self._data[self._pos : end]
        self._pos = end
        return chunk

    def read_bytes(self, size: int) -> bytes:
        return self._take(size, f"{size} raw bytes")

    def read_uint8(self) -> int:
        return self._take(1, "uint8")[0]

    def read_int8(self) -> int:
        return int.from_bytes(self._take(1, "int8"), "little", signed=True)

    def read_uint16(self) -> int:
        return int.from_bytes(self._take(2, "uint16"), "little")

    def read_int16(self) -> int:
        return int.from_bytes(self._take(2, "int16"), "little", signed=True)

    def read_uint32(self) -> int:
        return int.from_bytes(self._take(4, "uint32"), "little")

    def read_int32(self) -> int:
        return int.from_bytes(self._take(4, "int32"), "little", signed=True)

    def read_uint64(self) -> int:
        low = self.read_uint32()
        high = self.read_uint32()
        return low + high * 0x100000000

    def read_bool(self) -> bool:
        return self.read_uint8() != 0

    def read_bdaddr(self) -> str:
        return decode_bdaddr(self._take(BDADDR_SIZE, "bd_addr"))

    def read_string(self) -> str:
        length = self.read_uint8()
        if length > STRING_SLOT_SIZE:
            raise MalformedPacketError(
                f"String length {length} exceeds the {STRING_SLOT_SIZE}-byte slot"
            )
        slot = self._take(STRING_SLOT_SIZE, "string slot")
        return slot[:length].decode("utf-8", errors="replace")

    def read_uuid(self) -> str | None:
        text = self._take(UUID_SIZE, "uuid").hex()
        if text == NULL_UUID:
            return None
        return text

    def read_enum(self, enum_cls: type[E]) -> E | None:
        value = self.read_uint8()
        try:
            return enum_cls(value)
        except ValueError:
            return None


class PacketWriter:
    """Append-only little-endian writer for command payloads."""

    def __init__(self) -> None:
        self._buffer = bytearray()

    def write_uint8(self, value: int) -> None:
        self._buffer.append(value & 0xFF)

    def write_int16(self, value: int) -> None:
        self._buffer += (value & 0xFFFF).to_bytes(2, "little")

    def write_int32(self, value: int) -> None:
        self.write_int16(value)
        self.write_int16(value >> 16)

    def write_bdaddr(self, bd_addr: str) -> None:
        self._buffer += encode_bdaddr(bd_addr)

    def write_enum(self, enum_cls: type[IntEnum], value: IntEnum | int) -> None:
        try:
            member = enum_cls(value)
        except ValueError as exc:
            raise CodecError(f"{value!r} is not a valid {enum_cls.__name__}") from exc
        self.write_uint8(int(member))

    def getvalue(self) -> bytes:
        return bytes(self._buffer)


_FieldWriter = Callable[[PacketWriter, Any], None]

_FIELD_WRITERS: dict[str, _FieldWriter] = {
    "int16": PacketWriter.write_int16,
    "int32": PacketWriter.write_int32,
    "bd_addr": PacketWriter.write_bdaddr,
    "latency_mode": lambda writer, value: writer.write_enum(LatencyMode, value),
}

_COMMAND_LAYOUTS: dict[CommandOpcode, tuple[tuple[str, str], ...]] = {
    CommandOpcode.GET_INFO: (),
    CommandOpcode.CREATE_SCANNER: (("scan_id", "int32"),),
    CommandOpcode.REMOVE_SCANNER: (("scan_id", "int32"),),
    CommandOpcode.CREATE_CONNECTION_CHANNEL: (
        ("conn_id", "int32"),
        ("bd_addr", "bd_addr"),
        ("latency_mode", "latency_mode"),
        ("auto_disconnect_time", "int16"),
    ),
    CommandOpcode.REMOVE_CONNECTION_CHANNEL: (("conn_id", "int32"),),
    CommandOpcode.FORCE_DISCONNECT: (("bd_addr", "bd_addr"),),
    CommandOpcode.CHANGE_MODE_PARAMETERS: (
        ("conn_id", "int32"),
        ("latency_mode", "latency_mode"),
        ("auto_disconnect_time", "int16"),
    ),
    CommandOpcode.PING: (("ping_id", "int32"),),
    CommandOpcode.GET_BUTTON_INFO: (("bd_addr", "bd_addr"),),
    CommandOpcode.CREATE_SCAN_WIZARD: (("scan_wizard_id", "int32"),),
    CommandOpcode.CANCEL_SCAN_WIZARD: (("scan_wizard_id", "int32"),),
    CommandOpcode.DELETE_BUTTON: (("bd_addr", "bd_addr"),),
    CommandOpcode.CREATE_BATTERY_STATUS_LISTENER: (
        ("listener_id", "int32"),
        ("bd_addr", "bd_addr"),
    ),
    CommandOpcode.REMOVE_BATTERY_STATUS_LISTENER: (("listener_id", "int32"),),
}


def encode_command(opcode: CommandOpcode | int, fields: Mapping[str, Any] | None = None) -> bytes:
    """Encode a command payload: the opcode byte followed by its fields.

    Raises:
        UnsupportedOpcodeError: ``opcode`` is not a known command.
        CodecError: a required field is missing or out of range.
    """
    try:
        command = CommandOpcode(opcode)
    except ValueError as exc:
        raise UnsupportedOpcodeError(f"Unsupported command opcode {opcode!r}") from exc

    fields = fields or {}
    writer = PacketWriter()
    writer.write_uint8(command)
    for name, kind in _COMMAND_LAYOUTS[command]:
        if name not in fields:
            raise CodecError(f"Command {command.name} requires field '{name}'")
        _FIELD_WRITERS[kind](writer, fields[name])
    return writer.getvalue()


def encode(command: Command) -> bytes:
    return encode_command(command.opcode, command.fields)


def _read_advertisement_packet(reader: PacketReader) -> AdvertisementPacket:
    return AdvertisementPacket(
        scan_id=reader.read_int32(),
        bd_addr=reader.read_bdaddr(),
        name=reader.read_string(),
        rssi=reader.read_int8(),
        is_private=reader.read_bool(),
        already_verified=reader.read_bool(),
        already_connected_to_this_device=reader.read_bool(),
        already_connected_to_other_device=reader.read_bool(),
    )


def _read_create_connection_channel_response(reader: PacketReader) -> CreateConnectionChannelResponse:
    return CreateConnectionChannelResponse(
        conn_id=reader.read_int32(),
        error=reader.read_enum(CreateConnectionChannelError),
        connection_status=reader.read_enum(ConnectionStatus),
    )


def _read_connection_status_changed(reader: PacketReader) -> ConnectionStatusChanged:
    return ConnectionStatusChanged(
        conn_id=reader.read_int32(),
        connection_status=reader.read_enum(ConnectionStatus),
        disconnect_reason=reader.read_enum(DisconnectReason),
    )


def _read_connection_channel_removed(reader: PacketReader) -> ConnectionChannelRemoved:
    return ConnectionChannelRemoved(
        conn_id=reader.read_int32(),
        removed_reason=reader.read_enum(RemovedReason),
    )


def _read_button_event(reader: PacketReader) -> ButtonEvent:
    return ButtonEvent(
        conn_id=reader.read_int32(),
        click_type=reader.read_enum(ClickType),
        was_queued=reader.read_bool(),
        time_diff=reader.read_int32(),
    )


def _read_new_verified_button(reader: PacketReader) -> NewVerifiedButton:
    return NewVerifiedButton(bd_addr=reader.read_bdaddr())


def _read_get_info_response(reader: PacketReader) -> GetInfoResponse:
    state = reader.read_enum(BluetoothControllerState)
    my_bd_addr = reader.read_bdaddr()
    my_bd_addr_type = reader.read_enum(BdAddrType)
    max_pending = reader.read_uint8()
    max_concurrent = reader.read_int16()
    current_pending = reader.read_uint8()
    no_space = reader.read_bool()
    count = reader.read_uint16()
    verified = tuple(reader.read_bdaddr() for _ in range(count))
    return GetInfoResponse(
        bluetooth_controller_state=state,
        my_bd_addr=my_bd_addr,
        my_bd_addr_type=my_bd_addr_type,
        max_pending_connections=max_pending,
        max_concurrently_connected_buttons=max_concurrent,
        current_pending_connections=current_pending,
        currently_no_space_for_new_connection=no_space,
        bd_addr_of_verified_buttons=verified,
    )


def _read_space_for_new_connection(reader: PacketReader) -> SpaceForNewConnection:
    return SpaceForNewConnection(max_concurrently_connected_buttons=reader.read_uint8())


def _read_bluetooth_controller_state_change(reader: PacketReader) -> BluetoothControllerStateChange:
    return BluetoothControllerStateChange(state=reader.read_enum(BluetoothControllerState))


def _read_ping_response(reader: PacketReader) -> PingResponse:
    return PingResponse(ping_id=reader.read_int32())


def _read_get_button_info_response(reader: PacketReader) -> GetButtonInfoResponse:
    return GetButtonInfoResponse(
        bd_addr=reader.read_bdaddr(),
        uuid=reader.read_uuid(),
        color=reader.read_string() or None,
        serial_number=reader.read_string() or None,
    )


def _read_scan_wizard_found_private_button(reader: PacketReader) -> ScanWizardFoundPrivateButton:
    return ScanWizardFoundPrivateButton(scan_wizard_id=reader.read_int32())


def _read_scan_wizard_found_public_button(reader: PacketReader) -> ScanWizardFoundPublicButton:
    return ScanWizardFoundPublicButton(
        scan_wizard_id=reader.read_int32(),
        bd_addr=reader.read_bdaddr(),
        name=reader.read_string(),
    )


def _read_scan_wizard_button_connected(reader: PacketReader) -> ScanWizardButtonConnected:
    return ScanWizardButtonConnected(scan_wizard_id=reader.read_int32())


def _read_scan_wizard_completed(reader: PacketReader) -> ScanWizardCompleted:
    return ScanWizardCompleted(
        scan_wizard_id=reader.read_int32(),
        result=reader.read_enum(ScanWizardResult),
    )


def _read_button_deleted(reader: PacketReader) -> ButtonDeleted:
    return ButtonDeleted(
        bd_addr=reader.read_bdaddr(),
        deleted_by_this_client=reader.read_bool(),
    )


def _read_battery_status(reader: PacketReader) -> BatteryStatus:
    listener_id = reader.read_int32()
    percentage = reader.read_int8()
    millis = reader.read_uint64() * TIMESTAMP_SCALE_MS
    try:
        timestamp = datetime.fromtimestamp(millis / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as exc:
        raise MalformedPacketError(f"Battery timestamp {millis}ms is out of range") from exc
    return BatteryStatus(
        listener_id=listener_id,
        battery_percentage=percentage,
        timestamp=timestamp,
    )


_EVENT_DECODERS: dict[EventOpcode, Callable[[PacketReader], Event]] = {
    EventOpcode.ADVERTISEMENT_PACKET: _read_advertisement_packet,
    EventOpcode.CREATE_CONNECTION_CHANNEL_RESPONSE: _read_create_connection_channel_response,
    EventOpcode.CONNECTION_STATUS_CHANGED: _read_connection_status_changed,
    EventOpcode.CONNECTION_CHANNEL_REMOVED: _read_connection_channel_removed,
    EventOpcode.BUTTON_UP_OR_DOWN: _read_button_event,
    EventOpcode.BUTTON_CLICK_OR_HOLD: _read_button_event,
    EventOpcode.BUTTON_SINGLE_OR_DOUBLE_CLICK: _read_button_event,
    EventOpcode.BUTTON_SINGLE_OR_DOUBLE_CLICK_OR_HOLD: _read_button_event,
    EventOpcode.NEW_VERIFIED_BUTTON: _read_new_verified_button,
    EventOpcode.GET_INFO_RESPONSE: _read_get_info_response,
    EventOpcode.NO_SPACE_FOR_NEW_CONNECTION: _read_space_for_new_connection,
    EventOpcode.GOT_SPACE_FOR_NEW_CONNECTION: _read_space_for_new_connection,
    EventOpcode.BLUETOOTH_CONTROLLER_STATE_CHANGE: _read_bluetooth_controller_state_change,
    EventOpcode.PING_RESPONSE: _read_ping_response,
    EventOpcode.GET_BUTTON_INFO_RESPONSE: _read_get_button_info_response,
    EventOpcode.SCAN_WIZARD_FOUND_PRIVATE_BUTTON: _read_scan_wizard_found_private_button,
    EventOpcode.SCAN_WIZARD_FOUND_PUBLIC_BUTTON: _read_scan_wizard_found_public_button,
    EventOpcode.SCAN_WIZARD_BUTTON_CONNECTED: _read_scan_wizard_button_connected,
    EventOpcode.SCAN_WIZARD_COMPLETED: _read_scan_wizard_completed,
    EventOpcode.BUTTON_DELETED: _read_button_deleted,
    EventOpcode.BATTERY_STATUS: _read_battery_status,
}


def decode_payload(opcode: EventOpcode | int, body: bytes) -> tuple[Event, int]:
    """Decode the fields that follow an event opcode.

    Returns:
        The typed event and the number of bytes of ``body`` consumed.

    Raises:
        UnsupportedOpcodeError: ``opcode`` is not a known event.
        MalformedPacketError: ``body`` is too short for the opcode's fields.
    """
    try:
        event_opcode = EventOpcode(opcode)
    except ValueError as exc:
        raise UnsupportedOpcodeError(f"Unsupported event opcode {opcode!r}") from exc
    reader = PacketReader(body)
    event = _EVENT_DECODERS[event_opcode](reader)
    return event, reader.position


def decode_event(packet: bytes) -> tuple[EventOpcode, Event] | None:
    """Decode a whole packet (opcode byte first).

    Unknown opcodes are ignored and yield ``None``.
    """
    if not packet:
        raise MalformedPacketError("Empty packet has no opcode")
    try:
        opcode = EventOpcode(packet[0])
    except ValueError:
        LOGGER.debug("Ignoring packet with unknown event opcode %d", packet[0])
        return None
    event, _ = decode_payload(opcode, packet[1:])
    return opcode, event
