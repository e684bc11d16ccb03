"""Host detection for server bootstrap."""

from pathlib import Path
from typing import Dict, List

from server_bootstrap.utils.validation import Validator

REQUIRED_COMMANDS = ["apt-get", "systemctl"]


class SystemInfo:
    """Detect the facts the bootstrap run depends on."""

    def __init__(self, os_release: Path = Path("/etc/os-release")) -> None:
        """Initialize system information detection."""
        self.distro = self._detect_distro(os_release)
        self.is_root = Validator.is_root()

    def _detect_distro(self, os_release: Path) -> str:
        """Detect Linux distribution."""
        if not os_release.exists():
            return "unknown"

        with open(os_release) as f:
            for line in f:
                if line.startswith("ID="):
                    return line.split("=", 1)[1].strip().strip('"').lower()
        return "unknown"

    def check_requirements(self) -> List[str]:
        """Check that the host tools every stage relies on are present."""
        issues: List[str] = []

        for command in REQUIRED_COMMANDS:
            if not Validator.command_available(command):
                issues.append(f"Required command not found: {command}")

        return issues

    def to_dict(self) -> Dict[str, str]:
        """Convert system info to dictionary."""
        return {
            "distro": self.distro,
            "is_root": str(self.is_root),
        }
