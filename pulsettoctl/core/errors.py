"""Domain-specific errors for pulsettoctl."""


class PulsettoError(Exception):
    """Base error for pulsettoctl."""

    kind = "error"


class TransportError(PulsettoError):
    """Base transport error."""

    kind = "transport"


class DeviceConnectionError(TransportError):
    """Raised when discovery, connect, or GATT resolution fails."""

    kind = "connection"


class WriteError(TransportError):
    """Raised when a single command could not be written to the link."""

    kind = "write"


class InvalidStateError(PulsettoError):
    """Raised when an operation is invoked in a state that forbids it."""

    kind = "invalid_state"


class AlreadyActiveError(InvalidStateError):
    """Raised when a session is started while another one is running."""

    kind = "already_active"


class CommandError(PulsettoError):
    """Raised when a command argument cannot be encoded for the wire."""

    kind = "command"


class PresetValidationError(PulsettoError):
    """Raised when a preset record is malformed."""

    kind = "preset"


class PresetStoreError(PulsettoError):
    """Raised when reading or writing the preset store fails."""

    kind = "preset_store"


class ConfigError(PulsettoError):
    """Raised when the configuration file is unreadable or invalid."""

    kind = "config"
