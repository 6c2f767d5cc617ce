"""Stable public API for building tooling on top of flicctl.

This module is the supported integration surface for third-party callers.
Avoid importing from private/internal modules unless intentionally depending on
non-stable internals.
"""

from __future__ import annotations

from flicctl.core.client import FlicClient
from flicctl.core.config_loader import load_config
from flicctl.core.enums import (
    BdAddrType,
    BluetoothControllerState,
    ClickType,
    ConnectionStatus,
    CreateConnectionChannelError,
    DisconnectReason,
    LatencyMode,
    RemovedReason,
    ScanWizardResult,
    ScanWizardState,
    SessionState,
)
from flicctl.core.errors import (
    AddressFormatError,
    CodecError,
    ConfigError,
    ConfigLoadError,
    ConfigValidationError,
    FlicctlError,
    FrameTooLargeError,
    MalformedPacketError,
    TransportConnectError,
    TransportError,
    TransportSendError,
    UnsupportedOpcodeError,
)
from flicctl.core.model import (
    ClientConfig,
    GetButtonInfoResponse,
    GetInfoResponse,
    PingResponse,
)
from flicctl.core.sessions import BatteryStatusListener, ConnectionChannel, Scanner, ScanWizard
from flicctl.transports.base import FrameTransport
from flicctl.transports.tcp import TCPFrameTransport

__all__ = [
    "FlicctlError",
    "ConfigError",
    "ConfigLoadError",
    "ConfigValidationError",
    "CodecError",
    "MalformedPacketError",
    "UnsupportedOpcodeError",
    "AddressFormatError",
    "TransportError",
    "TransportConnectError",
    "TransportSendError",
    "FrameTooLargeError",
    "BdAddrType",
    "BluetoothControllerState",
    "ClickType",
    "ConnectionStatus",
    "CreateConnectionChannelError",
    "DisconnectReason",
    "LatencyMode",
    "RemovedReason",
    "ScanWizardResult",
    "ScanWizardState",
    "SessionState",
    "ClientConfig",
    "GetButtonInfoResponse",
    "GetInfoResponse",
    "PingResponse",
    "BatteryStatusListener",
    "ConnectionChannel",
    "Scanner",
    "ScanWizard",
    "FrameTransport",
    "TCPFrameTransport",
    "FlicClient",
    "load_config",
]
