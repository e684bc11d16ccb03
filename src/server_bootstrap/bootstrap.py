"""Bootstrap orchestration."""

from typing import Optional

import structlog

from server_bootstrap.config import BootstrapConfig
from server_bootstrap.exceptions import BootstrapError, PreconditionError
from server_bootstrap.firewall import FirewallConfigurator
from server_bootstrap.packages import PackageManagerInvoker
from server_bootstrap.ssh import SSHHardener
from server_bootstrap.system_info import SystemInfo
from server_bootstrap.types import Stage
from server_bootstrap.users import UserProvisioner
from server_bootstrap.utils.command import CommandExecutor
from server_bootstrap.utils.file import FileManager
from server_bootstrap.utils.validation import Validator

logger = structlog.get_logger(__name__)


class Bootstrapper:
    """Run every bootstrap stage in order, stopping at the first failure.

    There is no rollback: stages that completed stay applied and the SSH
    configuration backup is left for manual recovery. Re-running with the
    same parameters is the recovery path.
    """

    def __init__(
        self,
        config: BootstrapConfig,
        dry_run: bool = False,
        executor: Optional[CommandExecutor] = None,
        file_manager: Optional[FileManager] = None,
        system: Optional[SystemInfo] = None,
    ) -> None:
        """Initialize bootstrapper.

        Args:
            config: Configuration object
            dry_run: If True, only simulate changes
            executor: Command executor, built from ``dry_run`` when omitted
            file_manager: File manager, built from ``dry_run`` when omitted
            system: Host information, detected when omitted
        """
        self.config = config
        self.dry_run = dry_run

        self.executor = executor or CommandExecutor(dry_run=dry_run)
        self.file_manager = file_manager or FileManager(dry_run=dry_run)
        self.validator = Validator()
        self.system = system or SystemInfo()

        self.packages = PackageManagerInvoker(config.packages, self.executor)
        self.users = UserProvisioner(
            config.admin, self.executor, self.file_manager, self.validator
        )
        self.ssh = SSHHardener(config.ssh, self.executor, self.file_manager)
        self.firewall = FirewallConfigurator(self.executor)

        self.stage = Stage.VALIDATING
        self.ssh_port: Optional[int] = None

    def preflight_checks(self) -> None:
        """Check every precondition before anything is changed.

        Raises:
            PreconditionError: If the run cannot proceed
        """
        if not self.validator.is_root():
            raise PreconditionError("This script must be run as root")

        if not self.config.admin.public_key:
            raise PreconditionError("SSH public key is required for authentication")

        issues = self.config.validate_config()
        issues.extend(self.system.check_requirements())
        if issues:
            for issue in issues:
                logger.error("preflight_issue", issue=issue)
            raise PreconditionError("Preflight checks failed: " + "; ".join(issues))

        if not self.validator.has_known_key_type(self.config.admin.public_key):
            logger.warning(
                "Public key does not start with a known key type",
                key_type=self.config.admin.public_key.split()[0],
            )

        logger.info("Preflight checks passed", **self.system.to_dict())

    def _enter(self, stage: Stage) -> None:
        self.stage = stage
        logger.debug("stage", stage=stage.value)

    def run(self) -> int:
        """Execute the bootstrap sequence.

        Returns:
            The SSH port the daemon and firewall were configured for

        Raises:
            BootstrapError: If any stage fails
        """
        logger.info(
            "Starting server bootstrap",
            port=self.config.ssh.port,
            user=self.config.admin.user,
            dry_run=self.dry_run,
        )

        try:
            self._enter(Stage.VALIDATING)
            self.preflight_checks()

            self._enter(Stage.PACKAGES_UPDATING)
            self.packages.run()

            self._enter(Stage.USER_PROVISIONING)
            self.users.run(self.config.admin.public_key)

            self._enter(Stage.SSH_HARDENING)
            self.ssh_port = self.ssh.run()

            self._enter(Stage.FIREWALL_CONFIGURING)
            self.firewall.run(self.ssh_port)

        except BootstrapError as e:
            failed_stage = self.stage
            self.stage = Stage.FAILED
            logger.error("Bootstrap failed", stage=failed_stage.value, error=str(e))
            raise

        except OSError as e:
            failed_stage = self.stage
            self.stage = Stage.FAILED
            logger.error("Bootstrap failed", stage=failed_stage.value, error=str(e))
            raise BootstrapError(f"{failed_stage.value} failed: {e}") from e

        self._enter(Stage.DONE)
        if not self.dry_run:
            for backup in self.file_manager.backups:
                logger.info("Backup kept", path=backup.backup_path)
        logger.info("Bootstrap completed successfully")
        return self.ssh_port

    def connection_command(self) -> str:
        port = self.ssh_port or self.config.ssh.port
        return f"ssh -p {port} {self.config.admin.user}@<server_ip>"
