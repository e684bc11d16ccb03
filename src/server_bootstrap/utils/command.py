"""Command execution utilities."""

import os
import shlex
import subprocess
from typing import Dict, Optional, Sequence

import structlog

from server_bootstrap.exceptions import CommandExecutionError
from server_bootstrap.types import CommandResult

logger = structlog.get_logger(__name__)


class CommandExecutor:
    """Execute system commands with proper error handling."""

    def __init__(self, dry_run: bool = False) -> None:
        """Initialize command executor.

        Args:
            dry_run: If True, only log commands without executing
        """
        self.dry_run = dry_run

    def execute(
        self,
        cmd: Sequence[str],
        check: bool = True,
        timeout: Optional[int] = 30,
        env: Optional[Dict[str, str]] = None,
        mutates: bool = True,
    ) -> CommandResult:
        """Execute a command without a shell.

        Args:
            cmd: Program and arguments
            check: Whether to raise exception on failure
            timeout: Command timeout in seconds, None to wait indefinitely
            env: Extra environment variables for the child process
            mutates: False for read-only queries, which also run in dry-run mode

        Returns:
            CommandResult with execution details

        Raises:
            CommandExecutionError: If command fails and check=True
        """
        printable = shlex.join(cmd)

        if self.dry_run and mutates:
            logger.info("dry_run_command", command=printable)
            return CommandResult(True, f"[DRY RUN] {printable}", "", 0)

        logger.debug("executing", command=printable)

        child_env = None
        if env:
            child_env = dict(os.environ)
            child_env.update(env)

        try:
            result = subprocess.run(
                list(cmd),
                capture_output=True,
                text=True,
                timeout=timeout,
                env=child_env,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            error_msg = f"Command timed out after {timeout}s: {printable}"
            if check:
                raise CommandExecutionError(error_msg) from e
            return CommandResult(False, "", error_msg, -1)
        except OSError as e:
            error_msg = f"Command execution failed: {printable}: {e}"
            if check:
                raise CommandExecutionError(error_msg) from e
            return CommandResult(False, "", error_msg, -1)

        cmd_result = CommandResult(
            success=result.returncode == 0,
            stdout=result.stdout,
            stderr=result.stderr,
            return_code=result.returncode,
        )

        if check and not cmd_result.success:
            detail = result.stderr.strip().splitlines()
            raise CommandExecutionError(
                f"Command failed with exit code {result.returncode}: {printable}"
                + (f": {detail[-1]}" if detail else "")
            )

        return cmd_result
