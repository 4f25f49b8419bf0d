"""Domain-specific errors for babblectl."""


class BabbleError(Exception):
    """Base error for babblectl."""


class UnsupportedCommandError(BabbleError):
    """Raised when a command is not valid for the negotiated firmware version."""


class VersionFormatError(BabbleError):
    """Raised when a firmware version string cannot be parsed."""


class ResultError(BabbleError):
    """Raised when unwrapping a failed result."""


class SessionStateError(BabbleError):
    """Raised on illegal session state changes (e.g. negotiating twice)."""


class DeviceNotFoundError(BabbleError):
    """Raised when no supported board answers on a requested port."""


class CatalogValidationError(BabbleError):
    """Raised when a command catalog does not conform to schema or semantics."""


class CatalogLoadError(BabbleError):
    """Raised when reading command catalog sources fails."""


class CommandResolutionError(BabbleError):
    """Raised when a command id cannot be found in the catalog."""


class ConfigError(BabbleError):
    """Raised when the settings file is unreadable or invalid."""


class DocumentError(BabbleError):
    """Raised when a reply document has an unexpected shape."""


class DeviceError(BabbleError):
    """Raised when the firmware itself reports an error for a command."""


class TransportError(BabbleError):
    """Base transport error."""


class TransportConnectError(TransportError):
    """Raised when a serial port cannot be opened."""


class TransportSendError(TransportError):
    """Raised when writing or reading the port fails."""


class TransportTimeoutError(TransportError):
    """Raised when no complete reply arrives before the deadline."""
