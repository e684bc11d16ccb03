"""File management utilities."""

import os
import shutil
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional

import structlog

from server_bootstrap.types import BackupRecord

logger = structlog.get_logger(__name__)

BACKUP_TIMESTAMP_FORMAT = "%Y%m%d_%H%M"


class FileManager:
    """Manage file operations with timestamped backups.

    Backups are written next to the original and are never removed; they are
    the operator's manual recovery path.
    """

    def __init__(self, dry_run: bool = False) -> None:
        """Initialize file manager.

        Args:
            dry_run: If True, log writes without touching the filesystem
        """
        self.dry_run = dry_run
        self.backups: List[BackupRecord] = []

    @staticmethod
    def _unused_backup_path(filepath: Path, timestamp: str) -> Path:
        backup_path = filepath.with_name(f"{filepath.name}.{timestamp}.bak")
        counter = 1
        while backup_path.exists():
            backup_path = filepath.with_name(f"{filepath.name}.{timestamp}.{counter}.bak")
            counter += 1
        return backup_path

    def backup_file(self, filepath: Path) -> Optional[Path]:
        """Create timestamped backup of file alongside the original.

        An existing backup is never overwritten: a second backup within the
        same minute gets a ``.1``, ``.2``... counter before ``.bak``.

        Args:
            filepath: Path to file to backup

        Returns:
            Path to backup file or None if source doesn't exist
        """
        if not filepath.exists():
            return None

        timestamp = datetime.now().strftime(BACKUP_TIMESTAMP_FORMAT)
        backup_path = self._unused_backup_path(filepath, timestamp)

        if self.dry_run:
            logger.info("dry_run_backup", path=str(filepath), backup=str(backup_path))
        else:
            shutil.copy2(filepath, backup_path)
            logger.info("backup_created", path=str(filepath), backup=str(backup_path))

        self.backups.append(
            BackupRecord(
                original_path=str(filepath),
                backup_path=str(backup_path),
                timestamp=timestamp,
            )
        )

        return backup_path

    def read_file(self, filepath: Path) -> str:
        """Read file content.

        Args:
            filepath: Path to file

        Returns:
            File content as string
        """
        with open(filepath) as f:
            return f.read()

    def write_file(self, filepath: Path, content: str, mode: Optional[int] = None) -> None:
        """Replace file content, optionally setting its permission bits.

        Args:
            filepath: Path to file
            content: Content to write
            mode: Permission bits applied after writing
        """
        if self.dry_run:
            logger.info("dry_run_write", path=str(filepath), bytes=len(content))
            return

        with open(filepath, "w") as f:
            f.write(content)

        if mode is not None:
            os.chmod(filepath, mode)

    def install_file(
        self,
        filepath: Path,
        content: str,
        check: Callable[[Path], None],
        mode: Optional[int] = None,
    ) -> None:
        """Write ``content`` to a hidden temporary file, check it, then move it into place.

        ``check`` receives the temporary path and raises to reject it. A
        rejected file is removed and ``filepath`` is left as it was.

        Args:
            filepath: Final location
            content: Content to write
            check: Callable that raises if the candidate file is unacceptable
            mode: Permission bits applied before the check
        """
        if self.dry_run:
            logger.info("dry_run_install", path=str(filepath), bytes=len(content))
            return

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{filepath.name}.", suffix=".tmp", dir=filepath.parent
        )
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "w") as f:
                f.write(content)
            if mode is not None:
                os.chmod(tmp_path, mode)
            check(tmp_path)
            os.replace(tmp_path, filepath)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

    def ensure_directory(self, dirpath: Path, mode: int = 0o755) -> None:
        """Create directory (and parents) if missing, then set its mode."""
        if self.dry_run:
            logger.info("dry_run_mkdir", path=str(dirpath))
            return

        dirpath.mkdir(parents=True, exist_ok=True)
        os.chmod(dirpath, mode)
