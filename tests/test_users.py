"""Tests for admin user provisioning."""

import stat
from pathlib import Path

import pytest

from conftest import TEST_KEY, FakeExecutor
from server_bootstrap.exceptions import ValidationError
from server_bootstrap.types import CommandResult
from server_bootstrap.users import UserProvisioner
from server_bootstrap.utils.file import FileManager
from server_bootstrap.utils.validation import Validator

SUDO_LIST_NOPASSWD = (
    "User opuser may run the following commands on host:\n"
    "    (ALL) NOPASSWD: ALL\n"
)


class StubValidator(Validator):
    """Validator answering identity questions from in-memory state."""

    def __init__(self, exists: bool = False, in_group: bool = False) -> None:
        self.exists = exists
        self.in_group = in_group

    def user_exists(self, username: str) -> bool:
        return self.exists

    def user_in_group(self, username: str, group: str) -> bool:
        return self.in_group


def mode_of(path):
    return stat.S_IMODE(path.stat().st_mode)


def make_provisioner(config, executor, validator):
    return UserProvisioner(config.admin, executor, FileManager(), validator)


def test_fresh_host_provisions_everything(test_config):
    executor = FakeExecutor({("sudo", "-l"): CommandResult(False, "", "unknown user", 1)})
    provisioner = make_provisioner(test_config, executor, StubValidator())

    provisioner.run(TEST_KEY)

    home = str(test_config.admin.home)
    assert ["useradd", "-m", "-s", "/bin/bash", "-d", home, "opuser"] in executor.commands
    assert executor.ran(["visudo", "-c", "-f"])
    assert ["usermod", "-aG", "sudo", "opuser"] in executor.commands

    sudoers = test_config.admin.sudoers_path
    assert sudoers.name == "90-cloud-init-users"
    assert sudoers.read_text() == "opuser ALL=(ALL) NOPASSWD:ALL\n"
    assert mode_of(sudoers) == 0o440


def test_public_key_written_with_owner_only_permissions(test_config):
    executor = FakeExecutor()
    provisioner = make_provisioner(test_config, executor, StubValidator(exists=True))

    auth_keys = provisioner.install_public_key(TEST_KEY)

    assert auth_keys == test_config.admin.home / ".ssh" / "authorized_keys"
    assert auth_keys.read_text() == TEST_KEY + "\n"
    assert mode_of(auth_keys) == 0o600
    assert mode_of(auth_keys.parent) == 0o700
    assert executor.commands == [["chown", "-R", "opuser:opuser", str(auth_keys.parent)]]


def test_public_key_overwrites_previous_key(test_config):
    provisioner = make_provisioner(test_config, FakeExecutor(), StubValidator(exists=True))

    provisioner.install_public_key("ssh-rsa AAAAold old@host")
    auth_keys = provisioner.install_public_key(TEST_KEY)

    assert auth_keys.read_text() == TEST_KEY + "\n"


def test_second_run_leaves_existing_grants_alone(test_config):
    """Test that an already provisioned user only gets the key rewritten."""
    executor = FakeExecutor({("sudo", "-l"): CommandResult(True, SUDO_LIST_NOPASSWD, "", 0)})
    provisioner = make_provisioner(
        test_config, executor, StubValidator(exists=True, in_group=True)
    )

    provisioner.run(TEST_KEY)

    assert not executor.ran(["useradd"])
    assert not executor.ran(["visudo"])
    assert not executor.ran(["usermod"])
    assert not test_config.admin.sudoers_path.exists()
    assert executor.ran(["chown", "-R"])
    auth_keys = test_config.admin.home / ".ssh" / "authorized_keys"
    assert auth_keys.read_text() == TEST_KEY + "\n"


def test_sudo_without_nopasswd_gets_drop_in(test_config):
    executor = FakeExecutor(
        {("sudo", "-l"): CommandResult(True, "    (ALL : ALL) ALL\n", "", 0)}
    )
    provisioner = make_provisioner(test_config, executor, StubValidator(exists=True))

    assert provisioner.ensure_passwordless_sudo() is True
    assert test_config.admin.sudoers_path.exists()


def test_rejected_sudoers_drop_in_is_fatal(test_config):
    executor = FakeExecutor(
        {
            ("sudo", "-l"): CommandResult(False, "", "", 1),
            ("visudo",): CommandResult(False, "", "parse error in line 1\n", 1),
        }
    )
    provisioner = make_provisioner(test_config, executor, StubValidator(exists=True))

    with pytest.raises(ValidationError, match="Invalid sudoers drop-in"):
        provisioner.ensure_passwordless_sudo()

    assert not test_config.admin.sudoers_path.exists()
    assert list(test_config.admin.sudoers_dir.iterdir()) == []


def test_rejected_sudoers_drop_in_keeps_previous_file(test_config):
    sudoers = test_config.admin.sudoers_path
    sudoers.write_text("debian ALL=(ALL) NOPASSWD:ALL\n")
    executor = FakeExecutor(
        {
            ("sudo", "-l"): CommandResult(False, "", "", 1),
            ("visudo",): CommandResult(False, "", "syntax error\n", 1),
        }
    )
    provisioner = make_provisioner(test_config, executor, StubValidator(exists=True))

    with pytest.raises(ValidationError):
        provisioner.ensure_passwordless_sudo()

    assert sudoers.read_text() == "debian ALL=(ALL) NOPASSWD:ALL\n"
    assert list(test_config.admin.sudoers_dir.iterdir()) == [sudoers]


def test_visudo_checks_candidate_ignored_by_sudo(test_config):
    executor = FakeExecutor({("sudo", "-l"): CommandResult(False, "", "", 1)})
    provisioner = make_provisioner(test_config, executor, StubValidator(exists=True))

    provisioner.ensure_passwordless_sudo()

    candidate = Path(executor.commands[executor.index_of(["visudo"])][-1])
    assert candidate.parent == test_config.admin.sudoers_dir
    assert candidate.name.startswith(".") and "." in candidate.name[1:]
    assert not candidate.exists()
    assert mode_of(test_config.admin.sudoers_path) == 0o440


def test_existing_user_is_not_recreated(test_config):
    executor = FakeExecutor()
    provisioner = make_provisioner(test_config, executor, StubValidator(exists=True))

    assert provisioner.ensure_user() is False
    assert executor.commands == []
