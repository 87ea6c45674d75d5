"""SQLite persistence of the last known propagatable labels of each Project.

Used only when the Projects live in an upstream cluster: when that cluster
cannot be reached, Namespace reconciliations fall back to the labels stored
here.

Schema::

    CREATE TABLE projects (
        id   INTEGER PRIMARY KEY,
        name VARCHAR(250) NOT NULL UNIQUE
    );
    CREATE TABLE project_labels (
        id         INTEGER PRIMARY KEY,
        project_id INTEGER REFERENCES projects (id) ON DELETE CASCADE,
        key        VARCHAR(250) NOT NULL,
        value      VARCHAR(250) NOT NULL
    );

The connection is opened in autocommit mode and every write runs inside an
explicit ``BEGIN IMMEDIATE`` transaction. The cache does no locking of its
own: concurrent access is serialized by the owner of the instance.
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Final

import aiosqlite

from ..errors import CacheError

logger = logging.getLogger(__name__)

_SCHEMA_DDL: Final[str] = """
CREATE TABLE IF NOT EXISTS projects (
    id   INTEGER PRIMARY KEY,
    name VARCHAR(250) NOT NULL UNIQUE
);

CREATE TABLE IF NOT EXISTS project_labels (
    id         INTEGER PRIMARY KEY,
    project_id INTEGER REFERENCES projects (id) ON DELETE CASCADE,
    key        VARCHAR(250) NOT NULL,
    value      VARCHAR(250) NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_project_labels_project
    ON project_labels (project_id);
"""


class ProjectsCache:
    """Durable mapping of project name to its relevant labels.

    Args:
        db_path: Path to the SQLite database file, created with its parent
            directory when missing.
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = Path(db_path)
        self._db: aiosqlite.Connection | None = None

    @property
    def path(self) -> Path:
        return self._db_path

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def open(self) -> None:
        """Open the database and create the schema if needed.

        Raises:
            CacheError: If the file cannot be created or opened
        """
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._db = await aiosqlite.connect(self._db_path, isolation_level=None)
            await self._db.execute("PRAGMA foreign_keys = ON")
            await self._db.executescript(_SCHEMA_DDL)
        except (OSError, aiosqlite.Error) as e:
            await self.close()
            raise CacheError("open", e) from e

        logger.info(f"Projects cache opened at {self._db_path}")

    async def close(self) -> None:
        if self._db is not None:
            await self._db.close()
            self._db = None

    async def __aenter__(self) -> "ProjectsCache":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def upsert(self, project_name: str, labels: dict[str, str]) -> None:
        """Make the stored labels of ``project_name`` exactly ``labels``.

        Rows whose key disappeared or whose value changed are deleted, then
        the missing rows are inserted. Rows that already match are left
        alone. Runs in one transaction: on failure the previous state is kept.

        Raises:
            CacheError: If any statement fails
        """
        async with self._transaction("upsert") as db:
            await db.execute(
                "INSERT INTO projects (name) VALUES (?) ON CONFLICT (name) DO NOTHING",
                (project_name,),
            )
            rows = await db.execute_fetchall(
                "SELECT id FROM projects WHERE name = ?", (project_name,)
            )
            project_id = rows[0][0]

            stored = await db.execute_fetchall(
                "SELECT id, key, value FROM project_labels WHERE project_id = ?",
                (project_id,),
            )
            obsolete = [
                (row_id,) for row_id, key, value in stored if labels.get(key) != value
            ]
            kept = {key for _, key, value in stored if labels.get(key) == value}

            if obsolete:
                await db.executemany(
                    "DELETE FROM project_labels WHERE id = ?", obsolete
                )

            missing = [
                (project_id, key, value)
                for key, value in labels.items()
                if key not in kept
            ]
            if missing:
                await db.executemany(
                    "INSERT INTO project_labels (project_id, key, value) VALUES (?, ?, ?)",
                    missing,
                )

        logger.debug(
            f"Cached {len(labels)} labels for project {project_name}",
            extra={"project_name": project_name, "operation": "cache_upsert"},
        )

    async def get(self, project_name: str) -> dict[str, str] | None:
        """Return the stored labels of ``project_name``.

        Returns:
            None when the project was never cached, otherwise its labels,
            possibly an empty mapping

        Raises:
            CacheError: If the query fails
        """
        db = self._connection("get")
        try:
            rows = await db.execute_fetchall(
                "SELECT id FROM projects WHERE name = ?", (project_name,)
            )
            if not rows:
                return None

            labels = await db.execute_fetchall(
                "SELECT key, value FROM project_labels WHERE project_id = ?",
                (rows[0][0],),
            )
        except aiosqlite.Error as e:
            raise CacheError("get", e) from e

        return {key: value for key, value in labels}

    async def delete(self, project_name: str) -> None:
        """Forget ``project_name`` and its labels. Unknown projects are ignored.

        Raises:
            CacheError: If the statement fails
        """
        async with self._transaction("delete") as db:
            await db.execute("DELETE FROM projects WHERE name = ?", (project_name,))

        logger.debug(
            f"Removed project {project_name} from the cache",
            extra={"project_name": project_name, "operation": "cache_delete"},
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _connection(self, operation: str) -> aiosqlite.Connection:
        if self._db is None:
            raise CacheError(operation, RuntimeError("cache is not open"))
        return self._db

    @asynccontextmanager
    async def _transaction(self, operation: str):
        db = self._connection(operation)
        try:
            await db.execute("BEGIN IMMEDIATE")
        except aiosqlite.Error as e:
            raise CacheError(operation, e) from e

        try:
            yield db
        except aiosqlite.Error as e:
            await self._rollback(db)
            raise CacheError(operation, e) from e
        except BaseException:
            await self._rollback(db)
            raise

        try:
            await db.execute("COMMIT")
        except aiosqlite.Error as e:
            await self._rollback(db)
            raise CacheError(operation, e) from e

    async def _rollback(self, db: aiosqlite.Connection) -> None:
        try:
            await db.execute("ROLLBACK")
        except aiosqlite.Error as e:
            logger.warning(f"Rollback of the projects cache failed: {e}")
