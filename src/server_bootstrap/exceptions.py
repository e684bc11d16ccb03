"""Custom exceptions for server bootstrap."""


class BootstrapError(Exception):
    """Base exception for all bootstrap errors."""

    pass


class PreconditionError(BootstrapError):
    """Raised when a precondition for the run is not met."""

    pass


class ConfigurationError(BootstrapError):
    """Raised when configuration cannot be loaded or parsed."""

    pass


class ValidationError(BootstrapError):
    """Raised when a validator rejects a generated file or an input."""

    pass


class CommandExecutionError(BootstrapError):
    """Raised when command execution fails."""

    pass
