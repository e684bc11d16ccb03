"""System package refresh and baseline installation."""

from typing import List

import structlog

from server_bootstrap.config import PackageSettings
from server_bootstrap.utils.command import CommandExecutor

logger = structlog.get_logger(__name__)

APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}


class PackageManagerInvoker:
    """Drive apt through update, upgrade, cleanup and baseline install."""

    def __init__(self, settings: PackageSettings, executor: CommandExecutor) -> None:
        self.settings = settings
        self.executor = executor

    def _apt(self, *args: str) -> None:
        self.executor.execute(
            ["apt-get", *args],
            timeout=self.settings.timeout,
            env=APT_ENV,
        )

    def refresh_index(self) -> None:
        logger.info("Refreshing package index")
        self._apt("update")

    def upgrade(self) -> None:
        """Upgrade installed packages, then drop what is no longer needed."""
        logger.info("Upgrading system packages")
        self._apt("upgrade", "-y")
        self._apt("dist-upgrade", "-y")
        self._apt("autoremove", "-y")

    def install_baseline(self) -> List[str]:
        packages = list(self.settings.baseline)
        logger.info("Installing baseline packages", packages=packages)
        self._apt("install", "-y", *packages)
        return packages

    def run(self) -> None:
        self.refresh_index()
        self.upgrade()
        self.install_baseline()
