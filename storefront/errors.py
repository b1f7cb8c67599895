class StorefrontError(Exception):
    """Base exception for the storefront analytics core."""


class ConfigError(StorefrontError):
    """Raised when configuration is invalid."""


class RecordShapeError(StorefrontError):
    """Raised when a raw document cannot be mapped to a domain record."""
