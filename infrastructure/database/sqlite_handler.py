import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from flask import Flask

from infrastructure.database.ops.plants import PlantOperations

logger = logging.getLogger(__name__)


class SQLiteDatabaseHandler(PlantOperations):
    """Thread-safe SQLite handler decoupled from Flask globals."""

    def __init__(self, database_path: str) -> None:
        if not database_path:
            raise ValueError("database_path is required")
        self._database_path = database_path
        self._local = threading.local()

        # Ensure the directory for the database file exists
        if database_path != ":memory:":
            db_path = Path(database_path)
            if not db_path.parent.exists():
                db_path.parent.mkdir(parents=True, exist_ok=True)
                logger.info("Created database directory: %s", db_path.parent)

    # --- Lifecycle ------------------------------------------------------------
    def init_app(self, app: Flask | None = None) -> None:
        if app is not None:
            app.teardown_appcontext(self.close_db)
        self.create_tables()

    def get_db(self) -> sqlite3.Connection:
        connection: Optional[sqlite3.Connection] = getattr(self._local, "connection", None)
        if connection is None:
            connection = self._open_connection()
            self._local.connection = connection
        return connection

    def _open_connection(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self._database_path, check_same_thread=False)
        try:
            connection.row_factory = sqlite3.Row
            self._configure_connection(connection)
            return connection
        except Exception:
            connection.close()
            raise

    def _configure_connection(self, connection: sqlite3.Connection) -> None:
        """WAL for concurrent readers, NORMAL sync is safe with WAL."""
        connection.execute("PRAGMA journal_mode=WAL")
        connection.execute("PRAGMA synchronous=NORMAL")
        connection.execute("PRAGMA temp_store=MEMORY")
        connection.commit()

    def close_db(self, _e: Optional[BaseException] = None) -> None:
        # In-memory databases vanish with their connection; keep them open.
        if self._database_path == ":memory:":
            return
        self.close()

    def close(self) -> None:
        connection: Optional[sqlite3.Connection] = getattr(self._local, "connection", None)
        if connection is not None:
            connection.close()
            delattr(self._local, "connection")

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        conn = self.get_db()
        try:
            yield conn
        finally:
            conn.commit()

    # --- Schema ----------------------------------------------------------------
    def create_tables(self) -> None:
        """Creates the necessary tables in the database if they do not already exist."""
        with self.connection() as db:
            db.execute(
                """
                CREATE TABLE IF NOT EXISTS Plants (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    scientific_name TEXT NOT NULL CHECK (length(trim(scientific_name)) > 0),
                    common_name TEXT,
                    family TEXT,
                    family_common_name TEXT,
                    genus TEXT,
                    image_url TEXT,
                    author TEXT,
                    bibliography TEXT,
                    year INTEGER,
                    synonyms TEXT,
                    slug TEXT,
                    trefle_id INTEGER,
                    perenual_id INTEGER,
                    metadata TEXT NOT NULL DEFAULT '{}',
                    notes TEXT,
                    nickname TEXT,
                    location TEXT,
                    acquired_date TEXT,
                    status TEXT,
                    added_at TEXT NOT NULL,
                    updated_at TEXT
                )
                """
            )
            db.execute("CREATE INDEX IF NOT EXISTS idx_plants_added_at ON Plants(added_at)")
        logger.info("Database tables ready (%s)", self._database_path)
