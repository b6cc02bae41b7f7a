"""
Schema migrations for the inventory database.

Migrations are ``vNNN_name.sql`` files applied in version order. Each file
runs in one transaction together with its ``schema_migrations`` row, so a
broken script leaves no half-built schema behind.

After applying, the invariants the stores rely on (slab bounds, the sale
ledger arithmetic, the append-only sales table) are exercised against the
live schema inside a savepoint that is always rolled back.
"""

import asyncio
import hashlib
import re
import shutil
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import aiosqlite

from slabstock.config import get_logger, get_settings

logger = get_logger(__name__)

MIGRATIONS_DIR = Path(__file__).parent

REQUIRED_TABLES = (
    "leads",
    "batches",
    "reservations",
    "sales",
    "schema_migrations",
)

SALES_TRIGGERS = ("trg_sales_no_update", "trg_sales_no_delete")

_MIGRATIONS_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS schema_migrations (
    version TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    checksum TEXT NOT NULL,
    execution_time_ms INTEGER NOT NULL DEFAULT 0,
    applied_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
)
"""


@dataclass
class MigrationInfo:
    """A migration file on disk."""

    version: str
    name: str
    path: Path
    checksum: str

    @classmethod
    def from_file(cls, path: Path) -> "MigrationInfo":
        # v001_inventory_core.sql
        match = re.match(r"v(\d+)_(.+)\.sql", path.name)
        if not match:
            raise ValueError(f"Invalid migration filename: {path.name}")

        content = path.read_text(encoding="utf-8")
        checksum = hashlib.sha256(content.encode()).hexdigest()[:16]

        return cls(version=match.group(1), name=match.group(2), path=path, checksum=checksum)


@dataclass
class MigrationResult:
    """Result of applying one migration."""

    version: str
    name: str
    success: bool
    execution_time_ms: int
    error: str | None = None


@dataclass
class SchemaCheck:
    """One schema verification outcome."""

    name: str
    passed: bool
    detail: str = ""


# Rows written only inside the rolled-back savepoint.
_CHECK_TS = "2000-01-01T00:00:00.000000+00:00"


def _batch_row(batch_id: str, quantity: int, available: int) -> str:
    return (
        "INSERT INTO batches (id, industry_id, batch_code, height, width, thickness, "
        "quantity_slabs, available_slabs, industry_price_cents, entry_date, "
        "created_at, updated_at) "
        f"VALUES ('{batch_id}', '__schema_check__', '{batch_id}', 1, 1, 1, "
        f"{quantity}, {available}, 100, '{_CHECK_TS}', '{_CHECK_TS}', '{_CHECK_TS}')"
    )


def _sale_row(sale_id: str, sale: int, net: int, commission: int) -> str:
    return (
        "INSERT INTO sales (id, batch_id, reservation_id, sold_by_user_id, industry_id, "
        "sale_price_cents, net_industry_value_cents, broker_commission_cents, "
        "sale_date, created_at) "
        f"VALUES ('{sale_id}', '__schema_check__', '{sale_id}', '__schema_check__', "
        f"'__schema_check__', {sale}, {net}, {commission}, '{_CHECK_TS}', '{_CHECK_TS}')"
    )


@dataclass(frozen=True)
class _Invariant:
    """Statements the schema must refuse, after optional setup rows."""

    name: str
    table: str
    rejected: tuple[str, ...]
    setup: tuple[str, ...] = ()


_INVARIANTS = (
    _Invariant(
        name="slab_bounds",
        table="batches",
        rejected=(
            _batch_row("__check_over__", quantity=5, available=6),
            _batch_row("__check_negative__", quantity=5, available=-1),
        ),
    ),
    _Invariant(
        name="reservation_status_domain",
        table="reservations",
        rejected=(
            "INSERT INTO reservations (id, batch_id, reserved_by_user_id, status, "
            f"expires_at, created_at) VALUES ('__check_res__', '__schema_check__', "
            f"'__schema_check__', 'PENDING', '{_CHECK_TS}', '{_CHECK_TS}')",
        ),
    ),
    _Invariant(
        name="sale_price_floor",
        table="sales",
        rejected=(_sale_row("__check_floor__", sale=100, net=200, commission=-100),),
    ),
    _Invariant(
        name="broker_commission",
        table="sales",
        rejected=(_sale_row("__check_commission__", sale=300, net=200, commission=50),),
    ),
    _Invariant(
        name="sales_append_only",
        table="sales",
        setup=(_sale_row("__check_ledger__", sale=300, net=200, commission=100),),
        rejected=(
            "UPDATE sales SET notes = 'changed' WHERE id = '__check_ledger__'",
            "DELETE FROM sales WHERE id = '__check_ledger__'",
        ),
    ),
)


async def _table_names(conn: aiosqlite.Connection) -> set[str]:
    cursor = await conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
    return {row[0] for row in await cursor.fetchall()}


async def get_applied_migrations(conn: aiosqlite.Connection) -> dict[str, str]:
    """Applied migration versions mapped to their checksums."""
    try:
        cursor = await conn.execute(
            "SELECT version, checksum FROM schema_migrations ORDER BY version"
        )
        return {row[0]: row[1] for row in await cursor.fetchall()}
    except aiosqlite.OperationalError:
        # schema_migrations not created yet
        return {}


def discover_migrations() -> list[MigrationInfo]:
    """Migration files in version order; malformed names are skipped."""
    migrations = []
    for path in sorted(MIGRATIONS_DIR.glob("v*.sql")):
        try:
            migrations.append(MigrationInfo.from_file(path))
        except ValueError as e:
            logger.warning("skipping_invalid_migration", path=str(path), error=str(e))
    return migrations


async def check_inventory_invariants(conn: aiosqlite.Connection) -> list[SchemaCheck]:
    """
    Try each forbidden write against the live schema.

    Only invariants whose table exists are checked. Every write happens
    inside a savepoint that is rolled back, so the database is unchanged.
    """
    tables = await _table_names(conn)
    checks: list[SchemaCheck] = []

    cursor = await conn.execute("PRAGMA foreign_keys")
    foreign_keys_on = bool((await cursor.fetchone())[0])
    # Check rows have no parent rows; only CHECK constraints and triggers are exercised
    await conn.execute("PRAGMA foreign_keys=OFF")

    await conn.execute("SAVEPOINT schema_invariants")
    try:
        for invariant in _INVARIANTS:
            if invariant.table not in tables:
                continue

            accepted: list[str] = []
            try:
                for sql in invariant.setup:
                    await conn.execute(sql)
                for sql in invariant.rejected:
                    try:
                        await conn.execute(sql)
                    except aiosqlite.IntegrityError:
                        continue
                    accepted.append(sql.split(" ", 1)[0])
            except aiosqlite.Error as e:
                checks.append(SchemaCheck(invariant.name, False, str(e)))
                continue

            detail = f"accepted: {', '.join(accepted)}" if accepted else ""
            checks.append(SchemaCheck(invariant.name, not accepted, detail))
    finally:
        await conn.execute("ROLLBACK TO schema_invariants")
        await conn.execute("RELEASE schema_invariants")
        if foreign_keys_on:
            await conn.execute("PRAGMA foreign_keys=ON")

    return checks


async def apply_migration(
    conn: aiosqlite.Connection,
    migration: MigrationInfo,
) -> MigrationResult:
    """Apply one migration and record it, atomically."""
    logger.info("applying_migration", version=migration.version, name=migration.name)
    start_time = time.monotonic()

    try:
        sql = migration.path.read_text(encoding="utf-8")
        # SQLite DDL is transactional; the script and its record commit together
        await conn.executescript(f"BEGIN;\n{sql}\n")
        await conn.execute(
            """
            INSERT INTO schema_migrations (version, name, checksum, execution_time_ms)
            VALUES (?, ?, ?, ?)
            """,
            (
                migration.version,
                migration.name,
                migration.checksum,
                int((time.monotonic() - start_time) * 1000),
            ),
        )
        await conn.commit()
    except aiosqlite.Error as e:
        await conn.rollback()
        logger.error(
            "migration_failed",
            version=migration.version,
            name=migration.name,
            error=str(e),
        )
        return MigrationResult(
            version=migration.version,
            name=migration.name,
            success=False,
            execution_time_ms=int((time.monotonic() - start_time) * 1000),
            error=str(e),
        )

    execution_time = int((time.monotonic() - start_time) * 1000)
    logger.info(
        "migration_applied",
        version=migration.version,
        name=migration.name,
        execution_time_ms=execution_time,
    )
    return MigrationResult(
        version=migration.version,
        name=migration.name,
        success=True,
        execution_time_ms=execution_time,
    )


async def create_backup(db_path: Path) -> Path:
    """
    Snapshot the database with ``VACUUM INTO``.

    Unlike a file copy this includes pages still sitting in the WAL.
    """
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
    backup_path = db_path.with_suffix(f".backup_{timestamp}.db")
    async with aiosqlite.connect(db_path) as conn:
        await conn.execute("VACUUM INTO ?", (str(backup_path),))
    logger.info("database_backup_created", backup_path=str(backup_path))
    return backup_path


def restore_backup(db_path: Path, backup_path: Path) -> None:
    """Put a snapshot back in place and drop the stale WAL files."""
    shutil.copy2(backup_path, db_path)
    for suffix in ("-wal", "-shm"):
        Path(f"{db_path}{suffix}").unlink(missing_ok=True)
    logger.info("database_restored_from_backup", backup_path=str(backup_path))


async def initialize_database(
    db_path: Path | None = None,
    create_backup_before: bool = True,
) -> list[MigrationResult]:
    """
    Apply every pending migration.

    Stops at the first migration that fails, whose checksum no longer
    matches the applied one, or that leaves an inventory invariant
    unenforced. When a backup was taken and anything went wrong, the
    database is restored from it.

    Returns:
        Results for the migrations attempted in this run.
    """
    db_path = db_path or get_settings().storage.db_path
    db_path.parent.mkdir(parents=True, exist_ok=True)

    logger.info("initializing_database", db_path=str(db_path))

    backup_path = None
    if create_backup_before and db_path.exists():
        backup_path = await create_backup(db_path)

    results: list[MigrationResult] = []
    healthy = True

    try:
        async with aiosqlite.connect(db_path) as conn:
            await conn.execute("PRAGMA journal_mode=WAL")
            await conn.execute("PRAGMA foreign_keys=ON")
            await conn.execute(_MIGRATIONS_TABLE_SQL)
            await conn.commit()

            applied = await get_applied_migrations(conn)
            for migration in discover_migrations():
                if migration.version in applied:
                    if applied[migration.version] != migration.checksum:
                        logger.error(
                            "migration_checksum_mismatch",
                            version=migration.version,
                            applied=applied[migration.version],
                            on_disk=migration.checksum,
                        )
                        healthy = False
                        break
                    continue

                result = await apply_migration(conn, migration)
                results.append(result)
                if not result.success:
                    healthy = False
                    break

                failed = [c for c in await check_inventory_invariants(conn) if not c.passed]
                if failed:
                    logger.error(
                        "inventory_invariant_unenforced",
                        version=migration.version,
                        checks=[c.name for c in failed],
                    )
                    healthy = False
                    break

    except Exception as e:
        logger.error("database_initialization_failed", error=str(e))
        if backup_path and backup_path.exists():
            restore_backup(db_path, backup_path)
        raise

    if backup_path:
        if not healthy:
            restore_backup(db_path, backup_path)
        backup_path.unlink()

    return results


async def get_migration_status(db_path: Path | None = None) -> dict:
    """Applied and pending migration versions for ``db_path``."""
    db_path = db_path or get_settings().storage.db_path
    discovered = discover_migrations()

    if not db_path.exists():
        return {
            "exists": False,
            "current_version": None,
            "applied_migrations": [],
            "pending_migrations": [m.version for m in discovered],
        }

    async with aiosqlite.connect(db_path) as conn:
        applied = await get_applied_migrations(conn)

    return {
        "exists": True,
        "current_version": max(applied) if applied else None,
        "applied_migrations": list(applied),
        "pending_migrations": [m.version for m in discovered if m.version not in applied],
    }


async def verify_schema_integrity(db_path: Path | None = None) -> list[SchemaCheck]:
    """
    Check an existing database.

    Covers foreign keys, ``PRAGMA integrity_check``, the required tables,
    the sales triggers and every inventory invariant.
    """
    db_path = db_path or get_settings().storage.db_path

    async with aiosqlite.connect(db_path) as conn:
        cursor = await conn.execute("PRAGMA foreign_key_check")
        fk_violations = await cursor.fetchall()

        cursor = await conn.execute("PRAGMA integrity_check")
        integrity = (await cursor.fetchone())[0]

        tables = await _table_names(conn)
        missing_tables = [t for t in REQUIRED_TABLES if t not in tables]

        cursor = await conn.execute(
            "SELECT name FROM sqlite_master WHERE type='trigger' AND tbl_name='sales'"
        )
        triggers = {row[0] for row in await cursor.fetchall()}
        missing_triggers = [t for t in SALES_TRIGGERS if t not in triggers]

        checks = [
            SchemaCheck(
                "foreign_keys",
                not fk_violations,
                f"{len(fk_violations)} violations" if fk_violations else "",
            ),
            SchemaCheck("integrity", integrity == "ok", "" if integrity == "ok" else integrity),
            SchemaCheck("required_tables", not missing_tables, ", ".join(missing_tables)),
            SchemaCheck("sales_triggers", not missing_triggers, ", ".join(missing_triggers)),
        ]
        checks.extend(await check_inventory_invariants(conn))

    return checks


def main() -> None:
    """``slabstock-migrate`` entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="Slabstock database migrator")
    parser.add_argument("--db-path", type=Path, help="Database path (default from settings)")
    parser.add_argument("--status", action="store_true", help="Show migration status")
    parser.add_argument("--verify", action="store_true", help="Verify schema and invariants")
    parser.add_argument(
        "--no-backup", action="store_true", help="Skip the snapshot taken before migrating"
    )
    args = parser.parse_args()

    async def run() -> int:
        if args.status:
            status = await get_migration_status(args.db_path)
            print(f"Database exists: {status['exists']}")
            print(f"Current version: {status['current_version'] or 'N/A'}")
            print(f"Applied migrations: {status['applied_migrations']}")
            print(f"Pending migrations: {status['pending_migrations']}")
            return 0

        if args.verify:
            checks = await verify_schema_integrity(args.db_path)
            for check in checks:
                line = f"[{'PASS' if check.passed else 'FAIL'}] {check.name}"
                print(f"{line}: {check.detail}" if check.detail else line)
            return 0 if all(c.passed for c in checks) else 1

        results = await initialize_database(
            args.db_path,
            create_backup_before=not args.no_backup,
        )
        for result in results:
            status = "SUCCESS" if result.success else "FAILED"
            print(f"[{status}] v{result.version}: {result.name} ({result.execution_time_ms}ms)")
            if result.error:
                print(f"         Error: {result.error}")
        return 0 if all(r.success for r in results) else 1

    raise SystemExit(asyncio.run(run()))


if __name__ == "__main__":
    main()
