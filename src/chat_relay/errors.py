"""Error kinds shared by the relay server and the chat client."""
from __future__ import annotations


class RelayError(Exception):
    """Base class for all chat relay errors."""


class ConfigError(RelayError):
    """Configuration is missing or unreadable (e.g. no provider credential)."""


class ValidationError(RelayError):
    """The incoming chat request is missing its message."""

    status_code = 400


class UpstreamError(RelayError):
    """The text-generation provider failed or returned nothing usable."""

    status_code = 500


class ClientNetworkError(RelayError):
    """The relay could not be reached or answered with a non-2xx status."""
