"""Exceptions raised by the try-on services and session."""


class TryOnError(Exception):
    """Base class for try-on errors."""


class ConfigurationError(TryOnError):
    """A required setting (API key, database URL) is missing."""


class HistoryUnavailableError(TryOnError):
    """The history store is not configured for this deployment."""


class MissingSelectionError(TryOnError):
    """A try-on was started without both a person and a garment image."""


class RequestInFlightError(TryOnError):
    """A try-on request is already running for this session."""
