"""SSH daemon hardening."""

import difflib
import shutil
from typing import Dict, List, Optional, Tuple

import structlog

from server_bootstrap.config import SSHSettings
from server_bootstrap.exceptions import CommandExecutionError, ValidationError
from server_bootstrap.sshd_config import EditAction, SshdConfig
from server_bootstrap.utils.command import CommandExecutor
from server_bootstrap.utils.file import FileManager

logger = structlog.get_logger(__name__)

SSHD_CANDIDATES = ["sshd", "/usr/sbin/sshd", "/usr/local/sbin/sshd"]

# Names sshd -T prints for deprecated aliases
EFFECTIVE_ALIASES = {"challengeresponseauthentication": "kbdinteractiveauthentication"}


def parse_effective_config(output: str) -> Dict[str, List[str]]:
    """Collect ``sshd -T`` output as lowercase keyword to values.

    Multi-valued keywords such as ``port`` keep every value in order.
    """
    effective: Dict[str, List[str]] = {}
    for line in output.splitlines():
        parts = line.strip().split(None, 1)
        if len(parts) == 2:
            effective.setdefault(parts[0].lower(), []).append(parts[1].strip())
    return effective


class SSHHardener:
    """Patch the daemon configuration, validate it, then restart the daemon."""

    def __init__(
        self,
        settings: SSHSettings,
        executor: CommandExecutor,
        file_manager: FileManager,
    ) -> None:
        self.settings = settings
        self.executor = executor
        self.file_manager = file_manager
        self.applied_port: Optional[int] = None

    def hardening_directives(self) -> List[Tuple[str, str]]:
        """Directives in the order they are applied."""
        return [
            ("Port", str(self.settings.port)),
            ("PermitRootLogin", "no"),
            ("PasswordAuthentication", "no"),
            ("PubkeyAuthentication", "yes"),
            ("PermitEmptyPasswords", "no"),
            ("PermitUserEnvironment", "no"),
            ("AllowTcpForwarding", "no"),
            ("X11Forwarding", "no"),
            ("MaxAuthTries", str(self.settings.max_auth_tries)),
            ("MaxSessions", str(self.settings.max_sessions)),
            ("ChallengeResponseAuthentication", "no"),
            ("UsePAM", "yes"),
        ]

    def apply(self) -> SshdConfig:
        """Back up the configuration and write the hardened version.

        Returns:
            The edited configuration
        """
        config_path = self.settings.config_path
        logger.info("Configuring SSH", path=str(config_path))

        self.file_manager.backup_file(config_path)
        original = self.file_manager.read_file(config_path)
        config = SshdConfig.parse(original)

        for key, value in self.hardening_directives():
            action = config.set(key, value)
            if action == EditAction.UNCHANGED:
                logger.debug("Directive already set", directive=key, value=value)
            else:
                logger.debug("Directive set", directive=key, value=value, action=action.value)

        rendered = config.render()
        if self.file_manager.dry_run:
            diff = difflib.unified_diff(
                original.splitlines(keepends=True),
                rendered.splitlines(keepends=True),
                fromfile=str(config_path),
                tofile=f"{config_path} (hardened)",
            )
            logger.info("dry_run_sshd_config_diff", diff="".join(diff))

        self.file_manager.write_file(config_path, rendered)
        self.applied_port = int(config.get("Port") or self.settings.port)
        return config

    def _find_sshd(self) -> Optional[str]:
        for candidate in SSHD_CANDIDATES:
            path = shutil.which(candidate)
            if path:
                return path
        return None

    def validate(self) -> None:
        """Validate configuration syntax with the daemon itself.

        Raises:
            ValidationError: If sshd is missing or rejects the configuration
        """
        sshd = self._find_sshd()
        if not sshd:
            raise ValidationError("Cannot validate SSH configuration: sshd not found")

        result = self.executor.execute(
            [sshd, "-t", "-f", str(self.settings.config_path)], check=False
        )
        if not result.success:
            detail = result.stderr.strip().splitlines()
            raise ValidationError(
                "Invalid SSH configuration detected: "
                + (detail[0] if detail else f"exit code {result.return_code}")
            )
        logger.info("SSH configuration validated")

    def verify_effective(self) -> None:
        """Check the settings sshd will actually use match the hardening.

        ``sshd -T`` prints the merged configuration, ``Include`` files
        included. A drop-in read before the main file wins for
        first-value directives, so it can silently undo an edit that
        passed ``sshd -t``. Directives missing from the output are not
        checked.

        Raises:
            ValidationError: If sshd cannot report its configuration or
                an effective value differs
        """
        if self.file_manager.dry_run:
            logger.info("dry_run_skip_effective_check", path=str(self.settings.config_path))
            return

        sshd = self._find_sshd()
        if not sshd:
            raise ValidationError("Cannot validate SSH configuration: sshd not found")

        result = self.executor.execute(
            [sshd, "-T", "-f", str(self.settings.config_path)], check=False, mutates=False
        )
        if not result.success:
            detail = result.stderr.strip().splitlines()
            raise ValidationError(
                "Cannot read effective SSH configuration: "
                + (detail[0] if detail else f"exit code {result.return_code}")
            )

        effective = parse_effective_config(result.stdout)
        mismatches = []
        for key, value in self.hardening_directives():
            name = key.lower()
            actual = effective.get(name) or effective.get(EFFECTIVE_ALIASES.get(name, ""))
            if not actual:
                continue
            if [item.lower() for item in actual] != [value.lower()]:
                mismatches.append(f"{key} is {' '.join(actual)}, expected {value}")

        if mismatches:
            raise ValidationError(
                "Effective SSH configuration differs from "
                f"{self.settings.config_path} (check Include files): " + "; ".join(mismatches)
            )
        logger.info("Effective SSH configuration verified")

    def _get_service_name(self) -> str:
        for name in self.settings.service_names:
            result = self.executor.execute(
                ["systemctl", "show", "-p", "LoadState", "--value", name],
                check=False,
                mutates=False,
            )
            if result.success and result.stdout.strip() == "loaded":
                return name

        raise CommandExecutionError(
            f"SSH service not found (tried {', '.join(self.settings.service_names)})"
        )

    def restart(self) -> None:
        service_name = self._get_service_name()
        logger.info("Restarting SSH service", service=service_name)
        self.executor.execute(["systemctl", "restart", service_name])

    def run(self) -> int:
        """Apply, validate, verify the effective settings and restart.

        Returns:
            The port written to the daemon configuration
        """
        self.apply()
        self.validate()
        self.verify_effective()
        self.restart()
        return int(self.applied_port or self.settings.port)
