"""Backup engine: database dump + uploads archived into one zip per run.

A run creates a private temp directory under the backups directory, dumps
the database with ``pg_dump`` (falling back to a per-table JSON export when
the tool is missing, fails or times out), zips the dump under ``database/``
and the uploads directory under ``uploads/``, then moves the finished zip
into the backups directory. The temp directory is removed whatever happens,
and a zip only appears in the backups directory once it is complete.

The backups directory listing is the only index of existing archives.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import re
import shutil
import tempfile
import zipfile
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

from sqlalchemy import inspect, select
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.constants import ACTION_BACKUP_CREATED
from app.models.audit_log import AuditLog
from app.models.base import Base
from app.models.project import Project
from app.models.settings import SystemSettings
from app.models.sprint import Sprint
from app.models.task import Task
from app.repositories.audit_repository import AuditRepository
from app.repositories.settings_repository import SettingsRepository

if TYPE_CHECKING:
    from app.config import Settings

logger = logging.getLogger(__name__)

ARCHIVE_SUFFIX = ".zip"
TEMP_PREFIX = "temp_"

# Every table a JSON fallback export must cover
EXPORTED_MODELS: tuple[type[Base], ...] = (Project, Sprint, Task, SystemSettings, AuditLog)


class BackupKind(StrEnum):
    """Who started the backup."""

    MANUAL = "manual"
    SCHEDULED = "scheduled"


class DumpMethod(StrEnum):
    """How the database dump was produced."""

    DUMP_TOOL = "pg_dump"
    JSON = "json"


class BackupError(Exception):
    """Base class for backup engine failures."""


class DumpToolUnavailable(BackupError):
    """The external dump tool is missing, failed or timed out."""


class InvalidBackupFilename(BackupError):
    """A backup filename contains path separators or traversal sequences."""

    def __init__(self, filename: str):
        self.filename = filename
        super().__init__(f"Invalid backup filename: {filename!r}")


class BackupNotFound(BackupError):
    """No archive with the given (valid) filename exists."""

    def __init__(self, filename: str):
        self.filename = filename
        super().__init__(f"Backup file not found: {filename}")


class RestoreUnsupportedError(BackupError):
    """Restoring from an archive is not supported."""


@dataclass(frozen=True)
class BackupResult:
    filename: str
    size: int
    method: DumpMethod
    failed_collections: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class BackupInfo:
    filename: str
    size: int
    created_at: datetime


class CollectionExporter(Protocol):
    """One table/collection the JSON fallback exports."""

    name: str

    async def list_all(self) -> list[dict[str, Any]]: ...


class TableExporter:
    """Exports every row of one ORM model as a list of column dicts."""

    def __init__(self, model: type[Base], session_factory: async_sessionmaker[AsyncSession]):
        self.model = model
        self.name: str = model.__tablename__
        self._session_factory = session_factory

    async def list_all(self) -> list[dict[str, Any]]:
        attrs = [attr.key for attr in inspect(self.model).column_attrs]
        async with self._session_factory() as session:
            result = await session.execute(select(self.model))
            return [{key: getattr(row, key) for key in attrs} for row in result.scalars().all()]


def default_exporters(
    session_factory: async_sessionmaker[AsyncSession],
) -> list[TableExporter]:
    return [TableExporter(model, session_factory) for model in EXPORTED_MODELS]


def archive_timestamp(moment: datetime) -> str:
    """UTC ISO instant with filesystem-unsafe ``:`` and ``.`` replaced by ``-``."""
    iso = moment.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return re.sub(r"[:.]", "-", iso)


def validate_backup_filename(filename: str) -> None:
    """Reject names that could escape the backups directory.

    Raises:
        InvalidBackupFilename: For empty names, ``..``, ``/``, ``\\`` or NUL.
    """
    if not filename or any(token in filename for token in ("..", "/", "\\", "\x00")):
        raise InvalidBackupFilename(filename)


class BackupService:
    """Create, list, download and delete backup archives."""

    def __init__(
        self,
        backup_dir: Path,
        uploads_dir: Path,
        database_url: str,
        exporters: Sequence[CollectionExporter],
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        dump_command: str = "pg_dump",
        dump_timeout: float = 600,
    ):
        self.backup_dir = Path(backup_dir)
        self.uploads_dir = Path(uploads_dir)
        self.database_url = database_url
        self.exporters = list(exporters)
        self.session_factory = session_factory
        self.dump_command = dump_command
        self.dump_timeout = dump_timeout

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> BackupService:
        return cls(
            backup_dir=settings.backup_dir,
            uploads_dir=settings.uploads_dir,
            database_url=settings.database_url,
            exporters=default_exporters(session_factory),
            session_factory=session_factory,
            dump_command=settings.backup_dump_command,
            dump_timeout=settings.backup_dump_timeout,
        )

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create_backup(
        self,
        kind: BackupKind | str = BackupKind.MANUAL,
        actor_id: str | None = None,
    ) -> BackupResult:
        """Dump, archive and register one backup.

        Raises:
            BackupError: If both the dump tool and the JSON export fail.
            OSError: If the archive cannot be written.
        """
        kind = BackupKind(kind)
        started = datetime.now(UTC)
        backup_name = f"backup_{kind}_{archive_timestamp(started)}"

        self.backup_dir.mkdir(parents=True, exist_ok=True)
        temp_dir = Path(
            tempfile.mkdtemp(
                prefix=f"{TEMP_PREFIX}{archive_timestamp(started)}_", dir=self.backup_dir
            )
        )
        try:
            dump_dir = temp_dir / "dump"
            dump_dir.mkdir()
            method, failed = await self._dump_database(dump_dir)

            logger.info("Database dump complete (%s). Zipping...", method)
            staged = await asyncio.to_thread(
                self._write_archive, dump_dir, temp_dir / f"{backup_name}{ARCHIVE_SUFFIX}"
            )
            archive_path = self.backup_dir / staged.name
            os.replace(staged, archive_path)
        finally:
            self._cleanup(temp_dir)

        size = archive_path.stat().st_size
        logger.info("Backup created: %s (%d total bytes)", archive_path, size)

        result = BackupResult(
            filename=archive_path.name,
            size=size,
            method=method,
            failed_collections=failed,
        )
        await self._record_backup(result, kind, backup_name, archive_path, started, actor_id)
        return result

    async def _dump_database(self, dump_dir: Path) -> tuple[DumpMethod, list[str]]:
        try:
            await self._run_dump_tool(dump_dir)
            return DumpMethod.DUMP_TOOL, []
        except DumpToolUnavailable as exc:
            logger.warning(
                "%s failed or unavailable (%s); switching to JSON export", self.dump_command, exc
            )

        # Discard any partial dump-tool output
        shutil.rmtree(dump_dir, ignore_errors=True)
        dump_dir.mkdir()
        failed = await self._export_json(dump_dir / "database_json")
        return DumpMethod.JSON, failed

    async def _run_dump_tool(self, dump_dir: Path) -> None:
        if not self.database_url:
            raise DumpToolUnavailable("no database URL configured")
        try:
            url = make_url(self.database_url)
        except ArgumentError as exc:
            raise DumpToolUnavailable(f"unparseable database URL: {exc}") from exc

        cmd = [
            self.dump_command,
            "-h",
            url.host or "localhost",
            "-p",
            str(url.port or 5432),
            "-U",
            url.username or "postgres",
            "-d",
            url.database or "",
            "--format=plain",
            "--no-owner",
            "--no-acl",
            "--file",
            str(dump_dir / "database.sql"),
        ]
        env = os.environ.copy()
        env["PGPASSWORD"] = url.password or ""

        logger.info("Attempting %s of %s@%s", self.dump_command, url.database, url.host)
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
                env=env,
            )
        except OSError as exc:
            raise DumpToolUnavailable(f"{self.dump_command} not found: {exc}") from exc

        try:
            _, stderr = await asyncio.wait_for(process.communicate(), timeout=self.dump_timeout)
        except TimeoutError as exc:
            process.kill()
            await process.wait()
            raise DumpToolUnavailable(
                f"{self.dump_command} timed out after {self.dump_timeout}s"
            ) from exc

        if process.returncode != 0:
            message = stderr.decode(errors="replace")[:500] if stderr else ""
            raise DumpToolUnavailable(
                f"{self.dump_command} exited with code {process.returncode}: {message}"
            )

    async def _export_json(self, target: Path) -> list[str]:
        """Write one ``<name>.json`` per exporter; return the names that failed."""
        logger.info("Falling back to JSON export of %d collections", len(self.exporters))
        target.mkdir(parents=True, exist_ok=True)

        failed: list[str] = []
        for exporter in self.exporters:
            try:
                rows = await exporter.list_all()
                (target / f"{exporter.name}.json").write_text(
                    json.dumps(rows, indent=2, default=str), encoding="utf-8"
                )
                logger.info("Exported %d documents from %s", len(rows), exporter.name)
            except Exception:
                logger.exception("Failed to export collection %s", exporter.name)
                failed.append(exporter.name)

        if self.exporters and len(failed) == len(self.exporters):
            raise BackupError(
                f"Both {self.dump_command} and JSON export failed for every collection"
            )
        return failed

    def _write_archive(self, dump_dir: Path, archive_path: Path) -> Path:
        with zipfile.ZipFile(
            archive_path, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9
        ) as archive:
            _add_tree(archive, dump_dir, "database")
            if self.uploads_dir.is_dir():
                _add_tree(archive, self.uploads_dir, "uploads")
        return archive_path

    @staticmethod
    def _cleanup(path: Path) -> None:
        try:
            shutil.rmtree(path)
        except FileNotFoundError:
            pass
        except OSError:
            logger.exception("Cleanup of %s failed", path)

    async def _record_backup(
        self,
        result: BackupResult,
        kind: BackupKind,
        backup_name: str,
        archive_path: Path,
        started: datetime,
        actor_id: str | None,
    ) -> None:
        """Audit entry + ``last_backup_time``. Failures are logged, not raised."""
        if self.session_factory is None:
            return
        try:
            async with self.session_factory() as session:
                await AuditRepository(session).create(
                    ACTION_BACKUP_CREATED,
                    resource=backup_name,
                    actor_id=actor_id,
                    details={
                        "type": kind.value,
                        "method": result.method.value,
                        "size": result.size,
                        "path": str(archive_path),
                        "failed_collections": result.failed_collections,
                    },
                )
                await SettingsRepository(session).touch_last_backup(started)
                await session.commit()
        except Exception:
            logger.exception("Error recording backup %s", result.filename)

    # ------------------------------------------------------------------
    # Inspect / delete / restore
    # ------------------------------------------------------------------

    def list_backups(self) -> list[BackupInfo]:
        """Archives in the backups directory, newest first."""
        if not self.backup_dir.is_dir():
            return []

        backups: list[BackupInfo] = []
        for path in self.backup_dir.glob(f"*{ARCHIVE_SUFFIX}"):
            try:
                if not path.is_file():
                    continue
                stat = path.stat()
            except OSError:
                # Deleted between listing and stat
                continue
            created = getattr(stat, "st_birthtime", None) or stat.st_mtime
            backups.append(
                BackupInfo(
                    filename=path.name,
                    size=stat.st_size,
                    created_at=datetime.fromtimestamp(created, tz=UTC),
                )
            )

        backups.sort(key=lambda b: b.created_at, reverse=True)
        return backups

    def resolve_backup(self, filename: str) -> Path:
        """Path of an existing archive.

        Raises:
            InvalidBackupFilename: Before any filesystem access.
            BackupNotFound: If no such archive exists.
        """
        validate_backup_filename(filename)
        path = self.backup_dir / filename
        if not filename.endswith(ARCHIVE_SUFFIX) or not path.is_file():
            raise BackupNotFound(filename)
        return path

    def delete_backup(self, filename: str) -> bool:
        """Delete an archive; ``False`` if the name is invalid or missing."""
        try:
            path = self.resolve_backup(filename)
        except BackupError:
            return False
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        logger.info("Deleted backup %s", filename)
        return True

    async def restore_backup(self, filename: str) -> None:
        """Always fails: restores are done manually from the archive."""
        validate_backup_filename(filename)
        raise RestoreUnsupportedError(
            "Automatic restore is not supported. Please restore manually from the archive."
        )


def _add_tree(archive: zipfile.ZipFile, root: Path, prefix: str) -> None:
    for path in sorted(root.rglob("*")):
        if path.is_file():
            archive.write(path, f"{prefix}/{path.relative_to(root).as_posix()}")
