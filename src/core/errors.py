"""Exceptions raised by the core pipeline."""

from __future__ import annotations


class FetchError(Exception):
    """A source timeline could not be fetched from one endpoint."""


class UnknownSourceError(FetchError):
    """The upstream reported that the source does not exist."""


class SourceUnavailableError(FetchError):
    """Every configured endpoint failed for a source in one attempt round."""


class InvalidHandleError(ValueError):
    """A free-text handle could not be normalized."""


class ConfigurationError(ValueError):
    """An unknown setting name or invalid configuration value."""
