"""Server bootstrap - one-time hardening and admin provisioning for fresh hosts."""

__version__ = "1.0.0"
__license__ = "MIT"

from server_bootstrap.bootstrap import Bootstrapper
from server_bootstrap.config import BootstrapConfig
from server_bootstrap.exceptions import (
    BootstrapError,
    CommandExecutionError,
    ConfigurationError,
    PreconditionError,
    ValidationError,
)

__all__ = [
    "Bootstrapper",
    "BootstrapConfig",
    "BootstrapError",
    "CommandExecutionError",
    "ConfigurationError",
    "PreconditionError",
    "ValidationError",
]
