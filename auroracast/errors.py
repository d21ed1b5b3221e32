class AuroracastError(Exception):
    """Base exception for Auroracast errors."""


class ConfigError(AuroracastError):
    """Raised for config values that cannot be used."""


class GridFormatError(AuroracastError):
    """Raised when a light-pollution grid payload is malformed."""


class FeedFormatError(AuroracastError):
    """Raised when a weather or twilight feed file cannot be parsed."""
