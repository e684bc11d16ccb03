"""Configuration management for server bootstrap."""

from pathlib import Path
from typing import Annotated, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from server_bootstrap.exceptions import ValidationError
from server_bootstrap.utils.validation import Validator

DEFAULT_BASELINE_PACKAGES = [
    "sudo",
    "ufw",
    "openssh-server",
    "ca-certificates",
    "curl",
    "vim",
]


def _split_csv(v: object) -> List[str]:
    if isinstance(v, str):
        return [item.strip() for item in v.split(",") if item.strip()]
    if isinstance(v, (list, tuple)):
        return [str(item).strip() for item in v if str(item).strip()]
    return []


class SSHSettings(BaseSettings):
    """SSH daemon settings."""

    port: int = Field(default=22, ge=1, le=65535, description="SSH port number")
    config_path: Path = Field(default=Path("/etc/ssh/sshd_config"))
    max_auth_tries: int = Field(default=3, ge=1, le=10)
    max_sessions: int = Field(default=2, ge=1, le=100)
    service_names: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: ["ssh", "sshd"]
    )

    model_config = SettingsConfigDict(
        env_prefix="SSH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("service_names", mode="before")
    @classmethod
    def parse_service_names(cls, v: object) -> List[str]:
        """Parse service names from comma-separated string or list."""
        return _split_csv(v)


class AdminSettings(BaseSettings):
    """Administrative user settings."""

    user: str = Field(default="debian")
    public_key: str = Field(default="")
    shell: str = Field(default="/bin/bash")
    home_base: Path = Field(default=Path("/home"))
    sudo_group: str = Field(default="sudo")
    sudoers_dir: Path = Field(default=Path("/etc/sudoers.d"))
    sudoers_file: str = Field(default="90-cloud-init-users")

    model_config = SettingsConfigDict(
        env_prefix="ADMIN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("public_key", mode="before")
    @classmethod
    def strip_public_key(cls, v: object) -> str:
        """Drop surrounding whitespace, including a trailing newline."""
        return str(v).strip() if v is not None else ""

    @property
    def home(self) -> Path:
        return self.home_base / self.user

    @property
    def sudoers_path(self) -> Path:
        return self.sudoers_dir / self.sudoers_file


class PackageSettings(BaseSettings):
    """Package installation settings."""

    baseline: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_BASELINE_PACKAGES)
    )
    timeout: int = Field(default=1800, ge=60)

    model_config = SettingsConfigDict(
        env_prefix="PACKAGES_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("baseline", mode="before")
    @classmethod
    def parse_baseline(cls, v: object) -> List[str]:
        """Parse package names from comma-separated string or list."""
        return _split_csv(v)


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field(default="INFO")

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


class BootstrapConfig(BaseSettings):
    """Main configuration container."""

    ssh: SSHSettings = Field(default_factory=SSHSettings)
    admin: AdminSettings = Field(default_factory=AdminSettings)
    packages: PackageSettings = Field(default_factory=PackageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @classmethod
    def from_env(cls) -> "BootstrapConfig":
        """Create configuration from environment variables."""
        return cls(
            ssh=SSHSettings(),
            admin=AdminSettings(),
            packages=PackageSettings(),
            logging=LoggingSettings(),
        )

    def validate_config(self) -> List[str]:
        """Validate configuration and return list of issues.

        An empty public key is not reported here; the bootstrapper checks it
        separately so the operator gets a dedicated message.
        """
        issues: List[str] = []

        try:
            Validator.validate_port(self.ssh.port)
        except ValidationError as e:
            issues.append(str(e))

        issues.extend(Validator.validate_username(self.admin.user))

        if self.admin.public_key and "\n" in self.admin.public_key:
            issues.append("Public key must be a single line")

        if not self.packages.baseline:
            issues.append("No baseline packages configured")

        return issues
