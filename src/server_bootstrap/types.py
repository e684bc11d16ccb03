"""Type definitions for server bootstrap."""

from enum import Enum
from typing import NamedTuple


class Stage(str, Enum):
    """Stages of a bootstrap run, in execution order."""

    VALIDATING = "validating"
    PACKAGES_UPDATING = "packages_updating"
    USER_PROVISIONING = "user_provisioning"
    SSH_HARDENING = "ssh_hardening"
    FIREWALL_CONFIGURING = "firewall_configuring"
    DONE = "done"
    FAILED = "failed"


class CommandResult(NamedTuple):
    """Result of command execution."""

    success: bool
    stdout: str
    stderr: str
    return_code: int = 0


class BackupRecord(NamedTuple):
    """Backup kept next to the original file for manual recovery."""

    original_path: str
    backup_path: str
    timestamp: str
