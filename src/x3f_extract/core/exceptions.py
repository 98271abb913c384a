"""Custom exceptions for the extraction pipeline."""

from __future__ import annotations


class X3FExtractError(Exception):
    """Base exception for all extraction pipeline errors."""


class UsageError(X3FExtractError):
    """Error raised for bad command lines; fatal to the whole run."""


class ConfigurationError(X3FExtractError):
    """Error raised when the runtime environment cannot be set up."""


class PathTooLongError(X3FExtractError):
    """Error raised when a synthesized path would exceed its capacity."""

    def __init__(self, value: str, capacity: int) -> None:
        super().__init__(
            f"String too large for path buffer ({len(value)} > {capacity})"
        )
        self.value = value
        self.capacity = capacity


class OpenError(X3FExtractError):
    """Error raised when an input container cannot be opened."""


class DecodeError(X3FExtractError):
    """Error raised when a container header or data block cannot be decoded."""


class DumpError(X3FExtractError):
    """Error raised when an output cannot be encoded to its temporary file."""


class PublishError(X3FExtractError):
    """Error raised when a finished temporary file cannot be renamed into place."""


class ReleaseError(X3FExtractError):
    """Error raised when a container cannot be released after processing."""
