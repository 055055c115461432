"""Exceptions raised by rubrik-cli itself.

HTTP-layer failures are not wrapped: they surface as the
``requests`` exceptions raised by the underlying session.
"""


class RubrikError(Exception):
    """Base class for all rubrik-cli errors."""


class NotConnectedError(RubrikError):
    """An operation was attempted before a connection was established."""

    def __init__(self, message: str = "not connected to a Rubrik cluster, run 'rubrik connect' first"):
        super().__init__(message)


class ConnectionConfigError(RubrikError):
    """Not enough information to open a connection (no token or credentials)."""


class UnknownOperationError(RubrikError):
    """No descriptor is registered under the requested operation name."""


class UnsupportedVersionError(RubrikError):
    """The operation has no descriptor for the connected API version."""


class ConfigError(RubrikError):
    """The configuration file is missing or malformed."""


class RequestAssemblyError(RubrikError):
    """A request lacks a value the descriptor needs to build its URI."""


class MalformedResultError(RubrikError):
    """A response item lacks a field the client needs, such as its id."""
