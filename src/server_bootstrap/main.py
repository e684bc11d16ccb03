"""CLI entry point for server bootstrap."""

import argparse
import sys
from pathlib import Path
from typing import List, NoReturn, Optional

import pydantic

from server_bootstrap import __version__
from server_bootstrap.bootstrap import Bootstrapper
from server_bootstrap.config import BootstrapConfig
from server_bootstrap.exceptions import BootstrapError, ConfigurationError
from server_bootstrap.log import configure_logging


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="server-bootstrap",
        description="Initial hardening and admin user provisioning for a fresh server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Port 2222, user opuser, key given inline
  sudo server-bootstrap 2222 opuser "ssh-ed25519 AAAA... me@laptop"

  # Read the key from a file
  sudo server-bootstrap 22 debian --key-file /root/id_ed25519.pub

  # Show what would change
  sudo server-bootstrap 2222 opuser "ssh-ed25519 AAAA..." --dry-run

Environment variables:
  SSH_PORT              - SSH port number
  ADMIN_USER            - Administrative username
  ADMIN_PUBLIC_KEY      - SSH public key
  PACKAGES_BASELINE     - Comma-separated packages to install
  LOG_LEVEL             - Log level (DEBUG, INFO, WARNING)
        """,
    )

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    parser.add_argument("port", nargs="?", type=int, help="SSH port (default: 22)")
    parser.add_argument("user", nargs="?", help='Administrative username (default: "debian")')
    parser.add_argument("key", nargs="?", help="SSH public key line")

    parser.add_argument(
        "--key-file",
        type=Path,
        help="Read the SSH public key from this file",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log commands and file changes without applying them",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Suppress non-error output",
    )

    return parser.parse_args(argv)


def load_config(args: argparse.Namespace) -> BootstrapConfig:
    """Load configuration from the environment and apply CLI overrides.

    Args:
        args: Parsed command-line arguments

    Returns:
        Configuration object

    Raises:
        ConfigurationError: If the environment or key file cannot be read
    """
    try:
        config = BootstrapConfig.from_env()
    except pydantic.ValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigurationError(f"Invalid configuration: {details}") from e

    if args.port is not None:
        config.ssh.port = args.port

    if args.user is not None:
        config.admin.user = args.user

    if args.key is not None:
        config.admin.public_key = args.key.strip()
    elif args.key_file:
        try:
            config.admin.public_key = args.key_file.read_text().strip()
        except OSError as e:
            raise ConfigurationError(f"Cannot read key file {args.key_file}: {e}") from e

    return config


def main(argv: Optional[List[str]] = None) -> NoReturn:
    """Main entry point for CLI.

    Raises:
        SystemExit: Always exits with appropriate code
    """
    args = parse_args(argv)

    if not sys.platform.startswith("linux"):
        print("[ERROR] This tool only supports Linux systems", file=sys.stderr)
        sys.exit(1)

    try:
        config = load_config(args)
        configure_logging(config.logging.level, verbose=args.verbose, quiet=args.quiet)

        bootstrapper = Bootstrapper(config, dry_run=args.dry_run)
        bootstrapper.run()

        if not args.quiet:
            if args.dry_run:
                print("Dry run complete, no changes were applied")
            print(f"Connect using: {bootstrapper.connection_command()}")

        sys.exit(0)

    except KeyboardInterrupt:
        print("[ERROR] Interrupted by user", file=sys.stderr)
        sys.exit(130)

    except BootstrapError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
