"""
Versioned schema migrations for the device database.

Migration files live beside this module as ``vNNN_<name>.sql`` and are
applied in version order. Each applied version is recorded with a checksum
in ``schema_migrations``; applied files are treated as immutable, so a
schema change always ships as a new version.

When an existing database is upgraded, a file copy is taken first and put
back if the run blows up. The queue holds invoices that exist nowhere else,
so an upgrade must never leave the file half-migrated.
"""

import hashlib
import re
import shutil
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import aiosqlite

from taxbridge_sync.config import get_logger, get_settings

logger = get_logger(__name__)

MIGRATIONS_DIR = Path(__file__).parent

_FILENAME = re.compile(r"v(?P<version>\d+)_(?P<name>.+)\.sql")


@dataclass
class MigrationInfo:
    """A migration file on disk."""

    version: str
    name: str
    path: Path
    checksum: str

    @classmethod
    def from_file(cls, path: Path) -> "MigrationInfo":
        match = _FILENAME.fullmatch(path.name)
        if match is None:
            raise ValueError(f"Invalid migration filename: {path.name}")
        digest = hashlib.sha256(path.read_bytes()).hexdigest()
        return cls(
            version=match["version"],
            name=match["name"],
            path=path,
            checksum=digest[:16],
        )

    def read_sql(self) -> str:
        return self.path.read_text(encoding="utf-8")


@dataclass
class MigrationResult:
    """Outcome of applying one migration."""

    version: str
    name: str
    success: bool
    execution_time_ms: int
    error: str | None = None


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


async def get_applied_migrations(conn: aiosqlite.Connection) -> dict[str, str]:
    """Map of applied version -> checksum; empty before the first migration."""
    try:
        async with conn.execute("SELECT version, checksum FROM schema_migrations") as cursor:
            return {version: checksum async for version, checksum in cursor}
    except aiosqlite.OperationalError:
        return {}


async def get_current_version(conn: aiosqlite.Connection) -> str | None:
    applied = await get_applied_migrations(conn)
    return max(applied) if applied else None


def discover_migrations(directory: Path = MIGRATIONS_DIR) -> list[MigrationInfo]:
    """Migration files in ``directory`` ordered by version. Misnamed files are skipped."""
    found: list[MigrationInfo] = []
    for path in directory.glob("v*.sql"):
        try:
            found.append(MigrationInfo.from_file(path))
        except ValueError:
            logger.warning("migration_file_ignored", path=str(path))
    return sorted(found, key=lambda m: int(m.version))


async def apply_migration(
    conn: aiosqlite.Connection,
    migration: MigrationInfo,
) -> MigrationResult:
    """
    Run one migration script and record it.

    Failures are rolled back and reported in the result rather than raised,
    so the caller decides whether to continue.
    """
    log = logger.bind(version=migration.version, migration=migration.name)
    started = time.perf_counter()

    try:
        await conn.executescript(migration.read_sql())
        await conn.execute(
            "INSERT OR REPLACE INTO schema_migrations "
            "(version, name, checksum, execution_time_ms) VALUES (?, ?, ?, ?)",
            (migration.version, migration.name, migration.checksum, _elapsed_ms(started)),
        )
        await conn.commit()
    except (aiosqlite.Error, OSError) as e:
        await conn.rollback()
        log.error("migration_failed", error=str(e))
        return MigrationResult(
            version=migration.version,
            name=migration.name,
            success=False,
            execution_time_ms=_elapsed_ms(started),
            error=str(e),
        )

    elapsed = _elapsed_ms(started)
    log.info("migration_applied", execution_time_ms=elapsed)
    return MigrationResult(
        version=migration.version,
        name=migration.name,
        success=True,
        execution_time_ms=elapsed,
    )


def create_backup(db_path: Path) -> Path:
    """Copy the database file aside; returns the copy's path."""
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    backup_path = db_path.with_suffix(f".backup_{stamp}.db")
    shutil.copy2(db_path, backup_path)
    logger.info("database_backup_created", backup_path=str(backup_path))
    return backup_path


def restore_backup(db_path: Path, backup_path: Path) -> None:
    shutil.copy2(backup_path, db_path)
    logger.warning("database_restored_from_backup", backup_path=str(backup_path))


def _pending(migrations: list[MigrationInfo], applied: dict[str, str]) -> list[MigrationInfo]:
    pending = []
    for migration in migrations:
        checksum = applied.get(migration.version)
        if checksum is None:
            pending.append(migration)
        elif checksum != migration.checksum:
            logger.warning("applied_migration_modified", version=migration.version)
    return pending


async def initialize_database(
    db_path: Path | None = None,
    create_backup_before: bool = True,
    migrations_dir: Path = MIGRATIONS_DIR,
) -> list[MigrationResult]:
    """
    Bring the database at ``db_path`` up to the latest schema.

    Args:
        db_path: Database file; defaults to ``STORAGE_DB_PATH``
        create_backup_before: Copy an existing database aside before upgrading
        migrations_dir: Directory holding the ``v*.sql`` files

    Returns:
        Results for the migrations attempted in this run. Stops at the first
        failure; already-applied versions are not listed.
    """
    db_path = db_path or get_settings().storage.db_path
    db_path.parent.mkdir(parents=True, exist_ok=True)

    migrations = discover_migrations(migrations_dir)
    if not migrations:
        logger.warning("no_migrations_found", directory=str(migrations_dir))
        return []

    results: list[MigrationResult] = []
    backup_path: Path | None = None

    try:
        async with aiosqlite.connect(db_path) as conn:
            await conn.execute("PRAGMA journal_mode=WAL")
            applied = await get_applied_migrations(conn)
            pending = _pending(migrations, applied)
            if not pending:
                return results

            logger.info("migrating_database", db_path=str(db_path), pending=len(pending))
            if applied and create_backup_before:
                backup_path = create_backup(db_path)

            for migration in pending:
                result = await apply_migration(conn, migration)
                results.append(result)
                if not result.success:
                    break
    except Exception:
        logger.exception("database_migration_aborted", db_path=str(db_path))
        if backup_path is not None and backup_path.exists():
            restore_backup(db_path, backup_path)
        raise

    if backup_path is not None and all(r.success for r in results):
        backup_path.unlink()

    return results


run_migrations = initialize_database
