"""Pytest configuration and fixtures."""

from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import pytest
import structlog

from server_bootstrap.config import BootstrapConfig
from server_bootstrap.exceptions import CommandExecutionError
from server_bootstrap.types import CommandResult
from server_bootstrap.utils.command import CommandExecutor

TEST_KEY = "ssh-ed25519 AAAAC3NzaC1lZDI1NTE5AAAAIB2example operator@laptop"

SAMPLE_SSHD_CONFIG = """\
# This is the sshd server system-wide configuration file.  See
# sshd_config(5) for more information.

Include /etc/ssh/sshd_config.d/*.conf

#Port 22
#AddressFamily any
#ListenAddress 0.0.0.0

# Authentication:

#LoginGraceTime 2m
#PermitRootLogin prohibit-password
#StrictModes yes
#MaxAuthTries 6
#MaxSessions 10

#PubkeyAuthentication yes

# To disable tunneled clear text passwords, change to no here!
#PasswordAuthentication yes
#PermitEmptyPasswords no

KbdInteractiveAuthentication no

UsePAM yes

#AllowAgentForwarding yes
#AllowTcpForwarding yes
X11Forwarding yes
PrintMotd no
#PermitUserEnvironment no

AcceptEnv LANG LC_*

Subsystem\tsftp\t/usr/lib/openssh/sftp-server

# Example of overriding settings on a per-user basis
#Match User anoncvs
#\tX11Forwarding no
#\tAllowTcpForwarding no
"""

ENV_VARS = [
    "SSH_PORT",
    "SSH_CONFIG_PATH",
    "SSH_MAX_AUTH_TRIES",
    "SSH_MAX_SESSIONS",
    "SSH_SERVICE_NAMES",
    "ADMIN_USER",
    "ADMIN_PUBLIC_KEY",
    "ADMIN_SHELL",
    "ADMIN_HOME_BASE",
    "ADMIN_SUDO_GROUP",
    "ADMIN_SUDOERS_DIR",
    "ADMIN_SUDOERS_FILE",
    "PACKAGES_BASELINE",
    "PACKAGES_TIMEOUT",
    "LOG_LEVEL",
]


class FakeExecutor(CommandExecutor):
    """Record commands instead of running them.

    ``responses`` maps a command prefix to the result returned for any
    command starting with it; the longest matching prefix wins. Anything
    unmatched succeeds with empty output. A failed result raises just like
    the real executor when ``check`` is set.
    """

    def __init__(self, responses: Optional[Dict[Tuple[str, ...], CommandResult]] = None):
        super().__init__(dry_run=False)
        self.responses: Dict[Tuple[str, ...], CommandResult] = dict(responses or {})
        self.commands: List[List[str]] = []
        self.calls: List[dict] = []

    def execute(self, cmd: Sequence[str], check=True, timeout=30, env=None, mutates=True):
        cmd = list(cmd)
        self.commands.append(cmd)
        self.calls.append({"cmd": cmd, "check": check, "timeout": timeout, "env": env})

        result = CommandResult(True, "", "", 0)
        best = -1
        for prefix, response in self.responses.items():
            if tuple(cmd[: len(prefix)]) == prefix and len(prefix) > best:
                result, best = response, len(prefix)

        if check and not result.success:
            raise CommandExecutionError(f"Command failed: {' '.join(cmd)}")
        return result

    def index_of(self, prefix: Sequence[str]) -> int:
        for index, cmd in enumerate(self.commands):
            if cmd[: len(prefix)] == list(prefix):
                return index
        return -1

    def ran(self, prefix: Sequence[str]) -> bool:
        return self.index_of(prefix) >= 0


class FakeSystem:
    """Host with every required tool present."""

    def __init__(self, issues: Optional[List[str]] = None) -> None:
        self.issues = issues or []

    def check_requirements(self) -> List[str]:
        return list(self.issues)

    def to_dict(self) -> Dict[str, str]:
        return {"distro": "debian", "is_root": "True"}


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep host environment variables and .env files out of the tests."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    structlog.reset_defaults()


@pytest.fixture
def as_root(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("server_bootstrap.utils.validation.os.geteuid", lambda: 0)


@pytest.fixture
def as_user(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("server_bootstrap.utils.validation.os.geteuid", lambda: 1000)


@pytest.fixture
def sshd_config_file(tmp_path: Path) -> Path:
    ssh_dir = tmp_path / "etc" / "ssh"
    ssh_dir.mkdir(parents=True)
    config_file = ssh_dir / "sshd_config"
    config_file.write_text(SAMPLE_SSHD_CONFIG)
    return config_file


@pytest.fixture
def test_config(tmp_path: Path, sshd_config_file: Path) -> BootstrapConfig:
    """Create test configuration rooted under tmp_path."""
    sudoers_dir = tmp_path / "etc" / "sudoers.d"
    sudoers_dir.mkdir(parents=True)
    home_base = tmp_path / "home"
    home_base.mkdir()

    config = BootstrapConfig.from_env()
    config.ssh.port = 2222
    config.ssh.config_path = sshd_config_file
    config.admin.user = "opuser"
    config.admin.public_key = TEST_KEY
    config.admin.home_base = home_base
    config.admin.sudoers_dir = sudoers_dir
    return config


@pytest.fixture
def fake_executor() -> FakeExecutor:
    return FakeExecutor(
        {
            ("systemctl", "show", "-p", "LoadState", "--value", "ssh"): CommandResult(
                True, "loaded\n", "", 0
            ),
        }
    )


@pytest.fixture
def sshd_binary(monkeypatch: pytest.MonkeyPatch) -> str:
    """Pretend sshd is installed so validation goes through the executor."""
    monkeypatch.setattr(
        "server_bootstrap.ssh.shutil.which",
        lambda name: "/usr/sbin/sshd" if name == "sshd" else None,
    )
    return "/usr/sbin/sshd"
