"""Domain-specific errors for flicctl."""


class FlicctlError(Exception):
    """Base error for flicctl."""


class ConfigError(FlicctlError):
    """Base configuration error."""


class ConfigLoadError(ConfigError):
    """Raised when reading the configuration file fails."""


class ConfigValidationError(ConfigError):
    """Raised when a configuration file does not conform to schema or semantics."""


class CodecError(FlicctlError):
    """Base wire codec error."""


class MalformedPacketError(CodecError):
    """Raised when an inbound packet is too short or carries impossible values."""


class UnsupportedOpcodeError(CodecError):
    """Raised when asked to encode a command the protocol does not define."""


class AddressFormatError(CodecError, ValueError):
    """Raised when a Bluetooth address is not six colon-separated hex octets."""


class TransportError(FlicctlError):
    """Base transport error."""


class TransportConnectError(TransportError):
    """Raised on TCP connect failures."""


class TransportSendError(TransportError):
    """Raised when payload sending fails."""


class FrameTooLargeError(TransportError):
    """Raised when a payload does not fit the 16-bit length prefix."""
