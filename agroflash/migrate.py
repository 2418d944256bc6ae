"""Forward-only SQL migration runner.

Applied versions are recorded in a ``schema_migrations`` table with
``version`` and ``dirty`` columns, the layout the common migrate CLI uses.
Either tool therefore skips migrations the other has already applied.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

_ENSURE_TABLE = """
CREATE TABLE IF NOT EXISTS schema_migrations (
    version BIGINT  NOT NULL PRIMARY KEY,
    dirty   BOOLEAN NOT NULL DEFAULT false
)"""

_UP_SUFFIX = ".up.sql"
_VERSION_PREFIX = re.compile(r"[+-]?\d+")
_DOLLAR_TAG = re.compile(r"\$[A-Za-z_][A-Za-z0-9_]*\$|\$\$")


class MigrationError(Exception):
    """Raised when migrations cannot be listed, read or applied."""


@dataclass(frozen=True, order=True)
class _Migration:
    version: int
    name: str


def _split_statements(sql: str) -> list[str]:
    """Split SQL text into statements on semicolons outside quotes and comments."""
    statements: list[str] = []
    buf: list[str] = []
    i, n = 0, len(sql)
    while i < n:
        char = sql[i]
        if char in ("'", '"', "`"):
            j = i + 1
            while True:
                k = sql.find(char, j)
                if k == -1:
                    k = n - 1
                    break
                if k + 1 < n and sql[k + 1] == char:
                    j = k + 2
                    continue
                break
            buf.append(sql[i:k + 1])
            i = k + 1
        elif sql.startswith("--", i):
            k = sql.find("\n", i)
            i = n if k == -1 else k
            buf.append(" ")
        elif sql.startswith("/*", i):
            k = sql.find("*/", i + 2)
            i = n if k == -1 else k + 2
            buf.append(" ")
        elif char == "$" and (match := _DOLLAR_TAG.match(sql, i)):
            tag = match.group(0)
            k = sql.find(tag, match.end())
            end = n if k == -1 else k + len(tag)
            buf.append(sql[i:end])
            i = end
        elif char == ";":
            statement = "".join(buf).strip()
            if statement:
                statements.append(statement)
            buf = []
            i += 1
        else:
            buf.append(char)
            i += 1
    tail = "".join(buf).strip()
    if tail:
        statements.append(tail)
    return statements


def _applied_versions(connection: Any) -> set[int]:
    cursor = connection.cursor()
    try:
        cursor.execute("SELECT version FROM schema_migrations WHERE NOT dirty ORDER BY version")
        return {int(row[0]) for row in cursor.fetchall()}
    finally:
        cursor.close()


def _pending(directory: Path, applied: set[int]) -> list[_Migration]:
    try:
        entries = list(os.scandir(directory))
    except OSError as exc:
        raise MigrationError(f"migrate: read dir: {exc}") from exc

    pending = []
    for entry in entries:
        name = entry.name
        if entry.is_dir() or not name.endswith(_UP_SUFFIX):
            continue
        match = _VERSION_PREFIX.match(name)
        if match is None:
            raise MigrationError(f"migrate: cannot parse version from filename {name!r}")
        version = int(match.group(0))
        if version not in applied:
            pending.append(_Migration(version, name))
    return sorted(pending)


def _apply_one(connection: Any, version: int, sql: str) -> None:
    version = int(version)
    cursor = connection.cursor()
    try:
        # Marked dirty first so a crash mid-migration leaves a visible flag.
        cursor.execute(
            "INSERT INTO schema_migrations (version, dirty) VALUES "
            f"({version}, true) ON CONFLICT (version) DO UPDATE SET dirty = true"
        )
        for statement in _split_statements(sql):
            cursor.execute(statement)
        cursor.execute(f"UPDATE schema_migrations SET dirty = false WHERE version = {version}")
        connection.commit()
    except Exception:
        connection.rollback()
        raise
    finally:
        cursor.close()


def run(connection: Any, migrations_dir: str | os.PathLike[str]) -> list[int]:
    """Apply every pending ``*.up.sql`` file in migrations_dir, in version order.

    The version is the leading number of the file name (``003_x.up.sql`` is 3).
    Versions already recorded as clean are skipped; each migration runs in its
    own transaction. Returns the versions applied by this call.
    """
    directory = Path(migrations_dir)

    cursor = connection.cursor()
    try:
        cursor.execute(_ENSURE_TABLE)
        connection.commit()
    except Exception as exc:
        connection.rollback()
        raise MigrationError(f"migrate: ensure table: {exc}") from exc
    finally:
        cursor.close()

    try:
        applied = _applied_versions(connection)
    except Exception as exc:
        raise MigrationError(f"migrate: query applied: {exc}") from exc

    pending = _pending(directory, applied)
    if not pending:
        logger.info("database schema is up to date")
        return []

    done: list[int] = []
    for migration in pending:
        path = directory / migration.name
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise MigrationError(f"migrate: read {migration.name}: {exc}") from exc

        logger.info("applying migration", extra={"file": migration.name, "version": migration.version})
        try:
            _apply_one(connection, migration.version, content)
        except Exception as exc:
            raise MigrationError(f"migrate: apply {migration.name}: {exc}") from exc
        logger.info("migration applied", extra={"file": migration.name})
        done.append(migration.version)
    return done