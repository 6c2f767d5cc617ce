from __future__ import annotations

from datetime import datetime, timezone

import pytest

from flicctl.core.codec import (
    PacketReader,
    PacketWriter,
    decode_bdaddr,
    decode_event,
    decode_payload,
    encode,
    encode_bdaddr,
    encode_command,
)
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
    GetButtonInfoResponse,
    ScanWizardButtonConnected,
    ScanWizardCompleted,
    ScanWizardFoundPrivateButton,
    ScanWizardFoundPublicButton,
    SpaceForNewConnection,
)


def _addr(text: str) -> bytes:
    return bytes(reversed(bytes.fromhex(text.replace(":", ""))))


def _string(text: str) -> bytes:
    raw = text.encode("utf-8")
    return bytes([len(raw)]) + raw.ljust(16, b"\x00")


def test_bdaddr_wire_order_is_reversed() -> None:
    assert encode_bdaddr("aa:bb:cc:dd:ee:ff") == bytes.fromhex("ffeeddccbbaa")
    assert decode_bdaddr(bytes.fromhex("ffeeddccbbaa")) == "aa:bb:cc:dd:ee:ff"


def test_bdaddr_accepts_uppercase_and_decodes_lowercase() -> None:
    raw = encode_bdaddr("08:D1:F9:0A:0B:0C")
    assert decode_bdaddr(raw) == "08:d1:f9:0a:0b:0c"


@pytest.mark.parametrize("bad", ["", "aa:bb:cc:dd:ee", "aa-bb-cc-dd-ee-ff", "gg:bb:cc:dd:ee:ff"])
def test_bdaddr_rejects_malformed_text(bad: str) -> None:
    with pytest.raises(AddressFormatError):
        encode_bdaddr(bad)
    with pytest.raises(ValueError):
        encode_bdaddr(bad)


def test_encode_create_connection_channel() -> None:
    payload = encode_command(
        CommandOpcode.CREATE_CONNECTION_CHANNEL,
        {
            "conn_id": 1,
            "bd_addr": "08:d1:f9:00:00:01",
            "latency_mode": LatencyMode.LOW,
            "auto_disconnect_time": 511,
        },
    )
    assert payload == bytes.fromhex("03" "01000000" "010000f9d108" "01" "ff01")


def test_encode_command_without_fields() -> None:
    assert encode(Command(CommandOpcode.GET_INFO)) == b"\x00"


def test_encode_ping_negative_id_uses_twos_complement() -> None:
    assert encode_command(CommandOpcode.PING, {"ping_id": -1}) == bytes.fromhex("07ffffffff")


def test_encode_unknown_opcode_rejected() -> None:
    with pytest.raises(UnsupportedOpcodeError):
        encode_command(99)


def test_encode_missing_field_rejected() -> None:
    with pytest.raises(CodecError):
        encode_command(CommandOpcode.CREATE_SCANNER, {})


def test_encode_invalid_latency_mode_rejected() -> None:
    with pytest.raises(CodecError):
        encode_command(
            CommandOpcode.CHANGE_MODE_PARAMETERS,
            {"conn_id": 0, "latency_mode": 7, "auto_disconnect_time": 0},
        )


def test_writer_int32_is_two_int16_halves() -> None:
    writer = PacketWriter()
    writer.write_int32(0x12345678)
    assert writer.getvalue() == bytes.fromhex("78563412")


def test_reader_uint64_combines_halves() -> None:
    reader = PacketReader(bytes.fromhex("01000000" "02000000"))
    assert reader.read_uint64() == 1 + 2 * 0x100000000
    assert reader.remaining == 0


def test_reader_string_always_advances_full_slot() -> None:
    reader = PacketReader(_string("ab") + b"\x2a")
    assert reader.read_string() == "ab"
    assert reader.read_uint8() == 0x2A


def test_reader_string_length_over_slot_rejected() -> None:
    with pytest.raises(MalformedPacketError):
        PacketReader(b"\x11" + b"\x00" * 16).read_string()


def test_decode_button_event() -> None:
    packet = bytes.fromhex("06" "05000000" "04" "01" "03000000")
    opcode, event = decode_event(packet)
    assert opcode is EventOpcode.BUTTON_SINGLE_OR_DOUBLE_CLICK
    assert event == ButtonEvent(conn_id=5, click_type=ClickType.BUTTON_DOUBLE_CLICK, was_queued=True, time_diff=3)


def test_decode_advertisement_packet() -> None:
    packet = (
        b"\x00"
        + bytes.fromhex("07000000")
        + _addr("80:e4:da:71:02:03")
        + _string("F01234")
        + bytes.fromhex("ce")
        + bytes.fromhex("01000100")
    )
    _, event = decode_event(packet)
    assert event == AdvertisementPacket(
        scan_id=7,
        bd_addr="80:e4:da:71:02:03",
        name="F01234",
        rssi=-50,
        is_private=True,
        already_verified=False,
        already_connected_to_this_device=True,
        already_connected_to_other_device=False,
    )


def test_decode_create_connection_channel_response() -> None:
    _, event = decode_event(bytes.fromhex("01" "02000000" "01" "00"))
    assert event == CreateConnectionChannelResponse(
        conn_id=2,
        error=CreateConnectionChannelError.MAX_PENDING_CONNECTIONS_REACHED,
        connection_status=ConnectionStatus.DISCONNECTED,
    )


def test_decode_unknown_enum_value_is_none() -> None:
    _, event = decode_event(bytes.fromhex("03" "02000000" "63"))
    assert event == ConnectionChannelRemoved(conn_id=2, removed_reason=None)


def test_decode_removed_reason_zero_is_kept() -> None:
    _, event = decode_event(bytes.fromhex("03" "02000000" "00"))
    assert event.removed_reason is RemovedReason.REMOVED_BY_THIS_CLIENT


def test_decode_get_info_response() -> None:
    packet = (
        b"\x09"
        + b"\x02"
        + _addr("00:1a:7d:da:71:13")
        + b"\x00"
        + b"\x03"
        + bytes.fromhex("0a00")
        + b"\x01"
        + b"\x00"
        + bytes.fromhex("0200")
        + _addr("80:e4:da:71:00:01")
        + _addr("80:e4:da:71:00:02")
    )
    _, info = decode_event(packet)
    assert info.bluetooth_controller_state is BluetoothControllerState.ATTACHED
    assert info.my_bd_addr == "00:1a:7d:da:71:13"
    assert info.my_bd_addr_type is BdAddrType.PUBLIC
    assert info.max_pending_connections == 3
    assert info.max_concurrently_connected_buttons == 10
    assert info.current_pending_connections == 1
    assert info.currently_no_space_for_new_connection is False
    assert info.bd_addr_of_verified_buttons == ("80:e4:da:71:00:01", "80:e4:da:71:00:02")


def test_decode_get_info_response_truncated_list() -> None:
    packet = (
        b"\x09\x02"
        + _addr("00:1a:7d:da:71:13")
        + bytes.fromhex("00" "03" "0a00" "00" "00" "0200")
        + _addr("80:e4:da:71:00:01")
    )
    with pytest.raises(MalformedPacketError):
        decode_event(packet)


def test_decode_get_button_info_null_uuid_and_empty_strings() -> None:
    packet = b"\x0e" + _addr("80:e4:da:71:00:01") + b"\x00" * 16 + _string("") + _string("")
    _, event = decode_event(packet)
    assert event == GetButtonInfoResponse(
        bd_addr="80:e4:da:71:00:01", uuid=None, color=None, serial_number=None
    )


def test_decode_get_button_info_known_button() -> None:
    uuid = bytes(range(16))
    packet = b"\x0e" + _addr("80:e4:da:71:00:01") + uuid + _string("white") + _string("AA1234")
    _, event = decode_event(packet)
    assert event.uuid == uuid.hex()
    assert event.color == "white"
    assert event.serial_number == "AA1234"


def test_decode_scan_wizard_completed() -> None:
    _, event = decode_event(bytes.fromhex("12" "04000000" "00"))
    assert event == ScanWizardCompleted(scan_wizard_id=4, result=ScanWizardResult.SUCCESS)


def test_decode_connection_status_changed() -> None:
    opcode, event = decode_event(bytes.fromhex("02" "03000000" "00" "02"))
    assert opcode is EventOpcode.CONNECTION_STATUS_CHANGED
    assert event == ConnectionStatusChanged(
        conn_id=3,
        connection_status=ConnectionStatus.DISCONNECTED,
        disconnect_reason=DisconnectReason.TIMED_OUT,
    )


@pytest.mark.parametrize(
    ("packet", "expected"),
    [
        ("0a04", EventOpcode.NO_SPACE_FOR_NEW_CONNECTION),
        ("0b04", EventOpcode.GOT_SPACE_FOR_NEW_CONNECTION),
    ],
)
def test_decode_connection_space_events(packet: str, expected: EventOpcode) -> None:
    opcode, event = decode_event(bytes.fromhex(packet))
    assert opcode is expected
    assert event == SpaceForNewConnection(max_concurrently_connected_buttons=4)


def test_decode_bluetooth_controller_state_change() -> None:
    opcode, event = decode_event(bytes.fromhex("0c01"))
    assert opcode is EventOpcode.BLUETOOTH_CONTROLLER_STATE_CHANGE
    assert event == BluetoothControllerStateChange(state=BluetoothControllerState.RESETTING)


def test_decode_scan_wizard_progress_events() -> None:
    _, event = decode_event(bytes.fromhex("0f" "07000000"))
    assert event == ScanWizardFoundPrivateButton(scan_wizard_id=7)
    _, event = decode_event(bytes.fromhex("11" "07000000"))
    assert event == ScanWizardButtonConnected(scan_wizard_id=7)


def test_decode_scan_wizard_found_public_button_consumes_full_slot() -> None:
    payload = bytes.fromhex("07000000") + _addr("80:e4:da:71:00:01") + _string("F023") + b"\xee"
    event, consumed = decode_payload(EventOpcode.SCAN_WIZARD_FOUND_PUBLIC_BUTTON, payload)
    assert event == ScanWizardFoundPublicButton(scan_wizard_id=7, bd_addr="80:e4:da:71:00:01", name="F023")
    assert consumed == 4 + 6 + 17


def test_decode_button_deleted() -> None:
    opcode, event = decode_event(b"\x13" + _addr("80:e4:da:71:00:01") + b"\x01")
    assert opcode is EventOpcode.BUTTON_DELETED
    assert event == ButtonDeleted(bd_addr="80:e4:da:71:00:01", deleted_by_this_client=True)


def test_decode_battery_status_scales_timestamp() -> None:
    seconds = 1_700_000_000
    packet = b"\x14" + bytes.fromhex("01000000") + b"\x50" + seconds.to_bytes(4, "little") + b"\x00" * 4
    _, event = decode_event(packet)
    assert event == BatteryStatus(
        listener_id=1,
        battery_percentage=80,
        timestamp=datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc),
    )


def test_decode_battery_status_impossible_timestamp() -> None:
    packet = b"\x14" + bytes.fromhex("01000000") + b"\x50" + b"\xff" * 8
    with pytest.raises(MalformedPacketError):
        decode_event(packet)


def test_decode_payload_reports_consumed_bytes() -> None:
    event, consumed = decode_payload(EventOpcode.PING_RESPONSE, bytes.fromhex("09000000ffff"))
    assert event.ping_id == 9
    assert consumed == 4


def test_decode_payload_unknown_opcode_rejected() -> None:
    with pytest.raises(UnsupportedOpcodeError):
        decode_payload(200, b"")


def test_decode_event_unknown_opcode_ignored() -> None:
    assert decode_event(b"\xc8\x01\x02") is None


def test_decode_event_short_packet_rejected() -> None:
    with pytest.raises(MalformedPacketError):
        decode_event(bytes.fromhex("06050000"))


def test_decode_event_empty_packet_rejected() -> None:
    with pytest.raises(MalformedPacketError):
        decode_event(b"")
