"""Input validation utilities."""

import grp
import os
import pwd
import re
import shutil
from typing import List

from server_bootstrap.exceptions import ValidationError

USERNAME_PATTERN = re.compile(r"^[a-z_][a-z0-9_-]*\$?$")
KEY_TYPE_PREFIXES = ("ssh-", "ecdsa-sha2-", "sk-")


class Validator:
    """Validate inputs and system state."""

    @staticmethod
    def is_root() -> bool:
        """Check whether the effective user is the superuser."""
        return os.geteuid() == 0

    @staticmethod
    def validate_port(port: int) -> None:
        """Validate port number.

        Args:
            port: Port number to validate

        Raises:
            ValidationError: If port is invalid
        """
        if not (1 <= port <= 65535):
            raise ValidationError(f"Invalid port: {port}. Must be between 1-65535")

    @staticmethod
    def validate_username(username: str) -> List[str]:
        """Validate a login name against the useradd naming rules.

        Args:
            username: Username to validate

        Returns:
            List of validation error messages
        """
        errors: List[str] = []

        if not username or not username.strip():
            errors.append("Empty username")
            return errors

        if len(username) > 32:
            errors.append(f"Username too long: {username}")

        if not USERNAME_PATTERN.match(username):
            errors.append(f"Invalid username format: {username}")

        return errors

    @staticmethod
    def has_known_key_type(public_key: str) -> bool:
        """Check that the key line starts with a known OpenSSH key type."""
        key_type = public_key.split(maxsplit=1)[0] if public_key.strip() else ""
        return key_type.startswith(KEY_TYPE_PREFIXES)

    @staticmethod
    def user_exists(username: str) -> bool:
        """Check if user exists on system.

        Args:
            username: Username to check

        Returns:
            True if user exists, False otherwise
        """
        try:
            pwd.getpwnam(username)
            return True
        except KeyError:
            return False

    @staticmethod
    def user_in_group(username: str, group: str) -> bool:
        """Check group membership, counting the user's primary group."""
        try:
            group_info = grp.getgrnam(group)
        except KeyError:
            return False

        if username in group_info.gr_mem:
            return True

        try:
            return pwd.getpwnam(username).pw_gid == group_info.gr_gid
        except KeyError:
            return False

    @staticmethod
    def command_available(command: str) -> bool:
        """Check if a command is on PATH."""
        return shutil.which(command) is not None
