"""Administrative user provisioning."""

from pathlib import Path

import structlog

from server_bootstrap.config import AdminSettings
from server_bootstrap.exceptions import ValidationError
from server_bootstrap.utils.command import CommandExecutor
from server_bootstrap.utils.file import FileManager
from server_bootstrap.utils.validation import Validator

logger = structlog.get_logger(__name__)


class UserProvisioner:
    """Create the admin user and grant key-based, passwordless sudo access.

    Each step first checks the live system and is skipped when already
    satisfied, so a second run converges instead of failing. The
    authorized_keys file is the exception: it is rewritten every time and
    the key from the latest run wins.
    """

    def __init__(
        self,
        settings: AdminSettings,
        executor: CommandExecutor,
        file_manager: FileManager,
        validator: Validator,
    ) -> None:
        self.settings = settings
        self.executor = executor
        self.file_manager = file_manager
        self.validator = validator

    @property
    def user(self) -> str:
        return self.settings.user

    def ensure_user(self) -> bool:
        """Create the account with a home directory if missing.

        Returns:
            True if the account was created
        """
        if self.validator.user_exists(self.user):
            logger.info("User already exists", user=self.user)
            return False

        logger.info("Creating user", user=self.user, home=str(self.settings.home))
        self.executor.execute(
            [
                "useradd",
                "-m",
                "-s",
                self.settings.shell,
                "-d",
                str(self.settings.home),
                self.user,
            ]
        )
        return True

    def has_passwordless_sudo(self) -> bool:
        result = self.executor.execute(
            ["sudo", "-l", "-U", self.user], check=False, mutates=False
        )
        return result.success and "NOPASSWD" in result.stdout

    def ensure_passwordless_sudo(self) -> bool:
        """Write the sudoers drop-in unless the user already has NOPASSWD.

        Returns:
            True if the drop-in was written

        Raises:
            ValidationError: If visudo rejects the drop-in
        """
        if self.has_passwordless_sudo():
            logger.info("User already has passwordless sudo, skipping", user=self.user)
            return False

        sudoers_path = self.settings.sudoers_path
        logger.info("Granting passwordless sudo", user=self.user, path=str(sudoers_path))

        def check_sudoers(candidate: Path) -> None:
            result = self.executor.execute(
                ["visudo", "-c", "-f", str(candidate)], check=False
            )
            if not result.success:
                raise ValidationError(
                    f"Invalid sudoers drop-in {sudoers_path}: "
                    f"{(result.stderr or result.stdout).strip()}"
                )

        # sudo skips includedir entries containing a dot, so the candidate
        # is never live before visudo accepts it.
        self.file_manager.install_file(
            sudoers_path,
            f"{self.user} ALL=(ALL) NOPASSWD:ALL\n",
            check=check_sudoers,
            mode=0o440,
        )
        return True

    def install_public_key(self, public_key: str) -> Path:
        """Make ``public_key`` the only entry of the user's authorized_keys.

        Returns:
            Path of the authorized_keys file
        """
        ssh_dir = self.settings.home / ".ssh"
        auth_keys = ssh_dir / "authorized_keys"

        logger.info("Installing public SSH key", user=self.user, path=str(auth_keys))
        self.file_manager.ensure_directory(ssh_dir, mode=0o700)
        self.file_manager.write_file(auth_keys, public_key + "\n", mode=0o600)
        self.executor.execute(["chown", "-R", f"{self.user}:{self.user}", str(ssh_dir)])
        return auth_keys

    def ensure_group_membership(self) -> bool:
        """Add the user to the sudo group if needed.

        Returns:
            True if the user was added
        """
        group = self.settings.sudo_group
        if self.validator.user_in_group(self.user, group):
            logger.info("User already in group", user=self.user, group=group)
            return False

        logger.info("Adding user to group", user=self.user, group=group)
        self.executor.execute(["usermod", "-aG", group, self.user])
        return True

    def run(self, public_key: str) -> None:
        self.ensure_user()
        self.ensure_passwordless_sudo()
        self.install_public_key(public_key)
        self.ensure_group_membership()
