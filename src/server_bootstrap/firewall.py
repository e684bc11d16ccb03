"""Host firewall configuration with ufw."""

import structlog

from server_bootstrap.utils.command import CommandExecutor

logger = structlog.get_logger(__name__)


class FirewallConfigurator:
    """Deny inbound by default and open only the SSH port."""

    def __init__(self, executor: CommandExecutor) -> None:
        self.executor = executor

    def run(self, ssh_port: int) -> None:
        """Apply the policy and enable enforcement.

        Args:
            ssh_port: Port the SSH daemon was configured to listen on
        """
        logger.info("Configuring UFW firewall", port=ssh_port)

        commands = [
            ["ufw", "default", "deny", "incoming"],
            ["ufw", "default", "allow", "outgoing"],
            ["ufw", "allow", f"{ssh_port}/tcp"],
            ["ufw", "--force", "enable"],
        ]

        for cmd in commands:
            self.executor.execute(cmd)
