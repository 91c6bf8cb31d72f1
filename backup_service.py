"""Copy the store file to timestamped backups and restore it from one."""

import contextlib
import datetime
import glob
import logging
import os
import shutil
import sqlite3
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from db import write_lock
from errors import (
    BackupCopyError,
    BackupSourceMissingError,
    BackupValidationError,
)
from schema import SchemaManager

logger = logging.getLogger(__name__)

MIN_BACKUP_SIZE = 4096
SQLITE_HEADER = b"SQLite format 3\x00"
BACKUP_PREFIX = "workout-backup-"
SAFETY_PREFIX = "pre-restore-backup-"


@dataclass
class BackupResult:
    path: str
    file_name: str
    file_size: int


@dataclass
class RestoreResult:
    safety_copy: Optional[str] = None
    requires_restart: bool = True


class BackupManager:
    """Create and restore whole-file backups of a store.

    Restoring replaces the file under any open store handle, so callers must
    reopen the store afterwards.
    """

    def __init__(
        self,
        db_path: str,
        backup_dir: str = "backups",
        schema: Optional[SchemaManager] = None,
    ) -> None:
        self.db_path = db_path
        self.backup_dir = backup_dir
        self.schema = schema or SchemaManager()

    @staticmethod
    def backup_file_name(now: Optional[datetime.datetime] = None) -> str:
        now = now or datetime.datetime.now()
        return f"{BACKUP_PREFIX}{now.strftime('%Y-%m-%dT%H-%M-%S')}.db"

    def _schema_is_valid(self, path: str) -> bool:
        uri = Path(path).absolute().as_uri() + "?mode=ro"
        try:
            conn = sqlite3.connect(uri, uri=True)
        except sqlite3.Error as exc:
            logger.error("Cannot open %s: %s", path, exc)
            return False
        try:
            return self.schema.validate(conn)
        finally:
            conn.close()

    def _unique_path(self, file_name: str) -> str:
        path = os.path.join(self.backup_dir, file_name)
        stem, ext = os.path.splitext(path)
        counter = 1
        while os.path.exists(path):
            counter += 1
            path = f"{stem}-{counter}{ext}"
        return path

    def create_backup(self) -> BackupResult:
        """Validate the live store and copy it into the backup directory."""
        if not os.path.exists(self.db_path):
            raise BackupSourceMissingError(f"database file not found: {self.db_path}")
        with write_lock(self.db_path):
            if not self._schema_is_valid(self.db_path):
                raise BackupValidationError("database schema validation failed")
            os.makedirs(self.backup_dir, exist_ok=True)
            path = self._unique_path(self.backup_file_name())
            logger.info("Creating backup %s", path)
            try:
                shutil.copyfile(self.db_path, path)
            except OSError as exc:
                raise BackupCopyError(f"failed to copy database: {exc}") from exc
            size = os.path.getsize(path)
        logger.info("Backup created: %s (%d bytes)", path, size)
        return BackupResult(path=path, file_name=os.path.basename(path), file_size=size)

    def validate_backup_file(self, path: str) -> int:
        """Check ``path`` looks like a store file and return its size."""
        if not os.path.isfile(path):
            raise BackupSourceMissingError(f"backup file not found: {path}")
        size = os.path.getsize(path)
        if size < MIN_BACKUP_SIZE:
            raise BackupValidationError(
                f"file too small to be a valid database ({size} bytes)"
            )
        with open(path, "rb") as fh:
            header = fh.read(len(SQLITE_HEADER))
        if header != SQLITE_HEADER:
            raise BackupValidationError("file is not an SQLite database")
        if not self._schema_is_valid(path):
            raise BackupValidationError("backup is missing workout tables")
        return size

    def restore_from_backup(self, source: str) -> RestoreResult:
        """Replace the live store with ``source``.

        The current store is first copied to a safety file; failing to make
        that copy is logged and does not stop the restore.
        """
        with write_lock(self.db_path):
            self.validate_backup_file(source)
            safety_copy = None
            if os.path.exists(self.db_path):
                safety_path = os.path.join(
                    self.backup_dir, f"{SAFETY_PREFIX}{int(time.time() * 1000)}.db"
                )
                try:
                    os.makedirs(self.backup_dir, exist_ok=True)
                    shutil.copyfile(self.db_path, safety_path)
                    safety_copy = safety_path
                    logger.info("Safety copy written to %s", safety_path)
                except OSError as exc:
                    logger.warning("Could not create safety copy: %s", exc)
            tmp_path = f"{self.db_path}.restore-tmp"
            try:
                shutil.copyfile(source, tmp_path)
                os.replace(tmp_path, self.db_path)
            except OSError as exc:
                with contextlib.suppress(OSError):
                    os.remove(tmp_path)
                raise BackupCopyError(
                    f"failed to replace database: {exc}", safety_copy=safety_copy
                ) from exc
            for suffix in ("-journal", "-wal", "-shm"):
                with contextlib.suppress(FileNotFoundError):
                    os.remove(self.db_path + suffix)
        logger.info("Restored %s from %s; reopen the store", self.db_path, source)
        return RestoreResult(safety_copy=safety_copy)

    def list_backups(self) -> List[str]:
        """Backup files in the backup directory, newest first."""
        pattern = os.path.join(glob.escape(self.backup_dir), f"{BACKUP_PREFIX}*.db")
        return sorted(glob.glob(pattern), key=os.path.getmtime, reverse=True)

    def database_size(self) -> int:
        if not os.path.exists(self.db_path):
            return 0
        return os.path.getsize(self.db_path)
