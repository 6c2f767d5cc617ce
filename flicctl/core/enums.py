"""Opcode tables and enumerations of the flicd protocol.

Every enumeration is carried on the wire as a single unsigned byte holding
the member value.
"""

from __future__ import annotations

from enum import IntEnum


class CommandOpcode(IntEnum):
    """Opcodes of packets sent from the client to the daemon."""

    GET_INFO = 0
    CREATE_SCANNER = 1
    REMOVE_SCANNER = 2
    CREATE_CONNECTION_CHANNEL = 3
    REMOVE_CONNECTION_CHANNEL = 4
    FORCE_DISCONNECT = 5
    CHANGE_MODE_PARAMETERS = 6
    PING = 7
    GET_BUTTON_INFO = 8
    CREATE_SCAN_WIZARD = 9
    CANCEL_SCAN_WIZARD = 10
    DELETE_BUTTON = 11
    CREATE_BATTERY_STATUS_LISTENER = 12
    REMOVE_BATTERY_STATUS_LISTENER = 13


class EventOpcode(IntEnum):
    """Opcodes of packets sent from the daemon to the client."""

    ADVERTISEMENT_PACKET = 0
    CREATE_CONNECTION_CHANNEL_RESPONSE = 1
    CONNECTION_STATUS_CHANGED = 2
    CONNECTION_CHANNEL_REMOVED = 3
    BUTTON_UP_OR_DOWN = 4
    BUTTON_CLICK_OR_HOLD = 5
    BUTTON_SINGLE_OR_DOUBLE_CLICK = 6
    BUTTON_SINGLE_OR_DOUBLE_CLICK_OR_HOLD = 7
    NEW_VERIFIED_BUTTON = 8
    GET_INFO_RESPONSE = 9
    NO_SPACE_FOR_NEW_CONNECTION = 10
    GOT_SPACE_FOR_NEW_CONNECTION = 11
    BLUETOOTH_CONTROLLER_STATE_CHANGE = 12
    PING_RESPONSE = 13
    GET_BUTTON_INFO_RESPONSE = 14
    SCAN_WIZARD_FOUND_PRIVATE_BUTTON = 15
    SCAN_WIZARD_FOUND_PUBLIC_BUTTON = 16
    SCAN_WIZARD_BUTTON_CONNECTED = 17
    SCAN_WIZARD_COMPLETED = 18
    BUTTON_DELETED = 19
    BATTERY_STATUS = 20


# Event families used by the dispatcher to pick a routing table.
CONNECTION_CHANNEL_EVENTS = frozenset(
    {
        EventOpcode.CREATE_CONNECTION_CHANNEL_RESPONSE,
        EventOpcode.CONNECTION_STATUS_CHANGED,
        EventOpcode.CONNECTION_CHANNEL_REMOVED,
        EventOpcode.BUTTON_UP_OR_DOWN,
        EventOpcode.BUTTON_CLICK_OR_HOLD,
        EventOpcode.BUTTON_SINGLE_OR_DOUBLE_CLICK,
        EventOpcode.BUTTON_SINGLE_OR_DOUBLE_CLICK_OR_HOLD,
    }
)

SCAN_WIZARD_EVENTS = frozenset(
    {
        EventOpcode.SCAN_WIZARD_FOUND_PRIVATE_BUTTON,
        EventOpcode.SCAN_WIZARD_FOUND_PUBLIC_BUTTON,
        EventOpcode.SCAN_WIZARD_BUTTON_CONNECTED,
        EventOpcode.SCAN_WIZARD_COMPLETED,
    }
)


class CreateConnectionChannelError(IntEnum):
    NO_ERROR = 0
    MAX_PENDING_CONNECTIONS_REACHED = 1


class ConnectionStatus(IntEnum):
    DISCONNECTED = 0
    CONNECTED = 1
    READY = 2


class DisconnectReason(IntEnum):
    UNSPECIFIED = 0
    CONNECTION_ESTABLISHMENT_FAILED = 1
    TIMED_OUT = 2
    BONDING_KEYS_MISMATCH = 3


class RemovedReason(IntEnum):
    REMOVED_BY_THIS_CLIENT = 0
    FORCE_DISCONNECTED_BY_THIS_CLIENT = 1
    FORCE_DISCONNECTED_BY_OTHER_CLIENT = 2
    BUTTON_IS_PRIVATE = 3
    VERIFY_TIMEOUT = 4
    INTERNET_BACKEND_ERROR = 5
    INVALID_DATA = 6
    COULDNT_LOAD_DEVICE = 7
    DELETED_BY_THIS_CLIENT = 8
    DELETED_BY_OTHER_CLIENT = 9
    BUTTON_BELONGS_TO_OTHER_PARTNER = 10
    DELETED_FROM_BUTTON = 11


class ClickType(IntEnum):
    BUTTON_DOWN = 0
    BUTTON_UP = 1
    BUTTON_CLICK = 2
    BUTTON_SINGLE_CLICK = 3
    BUTTON_DOUBLE_CLICK = 4
    BUTTON_HOLD = 5


class BdAddrType(IntEnum):
    PUBLIC = 0
    RANDOM = 1


class LatencyMode(IntEnum):
    NORMAL = 0
    LOW = 1
    HIGH = 2


class ScanWizardResult(IntEnum):
    SUCCESS = 0
    CANCELLED_BY_USER = 1
    FAILED_TIMEOUT = 2
    BUTTON_IS_PRIVATE = 3
    BLUETOOTH_UNAVAILABLE = 4
    INTERNET_BACKEND_ERROR = 5
    INVALID_DATA = 6
    BUTTON_BELONGS_TO_OTHER_PARTNER = 7
    BUTTON_ALREADY_CONNECTED_TO_OTHER_DEVICE = 8


class BluetoothControllerState(IntEnum):
    DETACHED = 0
    RESETTING = 1
    ATTACHED = 2


class SessionState(IntEnum):
    """Client-side lifecycle of a session object."""

    CONSTRUCTED = 0
    ATTACHED = 1
    DETACHED = 2


class ScanWizardState(IntEnum):
    IDLE = 0
    AWAITING_BUTTON = 1
    CONNECTING = 2
    COMPLETED = 3
