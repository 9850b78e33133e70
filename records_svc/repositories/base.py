"""
Base database connection and initialization.

This module handles database connection management and schema initialization.
Optimized for SQLite concurrency with WAL mode and busy_timeout.

IMPORTANT: Database instantiation should be done through the DI layer.
Use core.dependencies.get_database() instead of instantiating directly.
"""
import sqlite3
import logging
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from core.config import DATABASE_PATH, DATABASE_BUSY_TIMEOUT

logger = logging.getLogger(__name__)


SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS institutions (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        type TEXT NOT NULL,
        contact TEXT NOT NULL,
        services TEXT NOT NULL DEFAULT '[]',
        created_by TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        email TEXT NOT NULL UNIQUE,
        password_hash TEXT NOT NULL,
        role TEXT NOT NULL,
        institution_id TEXT REFERENCES institutions(id),
        permissions TEXT NOT NULL DEFAULT '[]',
        created_by TEXT,
        must_change_password INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_users_institution ON users(institution_id)",
    # Institution references on doctors, patients and records are plain
    # columns: deleting an institution leaves them in place.
    """
    CREATE TABLE IF NOT EXISTS doctors (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        email TEXT NOT NULL UNIQUE,
        password_hash TEXT,
        specialization TEXT NOT NULL,
        license_number TEXT NOT NULL UNIQUE,
        phone TEXT,
        address TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS doctor_institutions (
        doctor_id TEXT NOT NULL REFERENCES doctors(id) ON DELETE CASCADE,
        institution_id TEXT NOT NULL,
        PRIMARY KEY (doctor_id, institution_id)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_doctor_institutions_inst ON doctor_institutions(institution_id)",
    """
    CREATE TABLE IF NOT EXISTS patients (
        id TEXT PRIMARY KEY,
        patient_id TEXT NOT NULL UNIQUE,
        name TEXT NOT NULL,
        date_of_birth TEXT NOT NULL,
        gender TEXT NOT NULL,
        is_pregnant INTEGER,
        blood_type TEXT,
        contact TEXT NOT NULL DEFAULT '{}',
        emergency_contact TEXT NOT NULL DEFAULT '{}',
        allergies TEXT NOT NULL DEFAULT '[]',
        insurance_info TEXT NOT NULL DEFAULT '{}',
        institution_id TEXT,
        password_hash TEXT,
        created_by TEXT,
        updated_by TEXT,
        last_login TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_patients_institution ON patients(institution_id)",
    """
    CREATE TABLE IF NOT EXISTS medical_records (
        id TEXT PRIMARY KEY,
        patient_id TEXT NOT NULL REFERENCES patients(patient_id),
        doctor_id TEXT NOT NULL REFERENCES doctors(id),
        institution_id TEXT,
        visit_type TEXT NOT NULL,
        visit_date TEXT NOT NULL,
        visit_info TEXT NOT NULL,
        clinical_data TEXT NOT NULL DEFAULT '{}',
        prescriptions TEXT NOT NULL DEFAULT '[]',
        lab_results TEXT NOT NULL DEFAULT '[]',
        attachments TEXT NOT NULL DEFAULT '[]',
        created_by TEXT,
        updated_by TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_records_patient ON medical_records(patient_id)",
    "CREATE INDEX IF NOT EXISTS idx_records_doctor ON medical_records(doctor_id)",
    "CREATE INDEX IF NOT EXISTS idx_records_institution ON medical_records(institution_id)",
    """
    CREATE TABLE IF NOT EXISTS roles (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL UNIQUE,
        display_name TEXT NOT NULL,
        description TEXT,
        permissions TEXT NOT NULL DEFAULT '[]',
        is_system INTEGER NOT NULL DEFAULT 0,
        created_by TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS audit_log (
        id TEXT PRIMARY KEY,
        actor_id TEXT,
        actor_kind TEXT,
        action TEXT NOT NULL,
        resource_path TEXT,
        method TEXT,
        outcome TEXT NOT NULL,
        details TEXT NOT NULL DEFAULT '{}',
        created_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_audit_action ON audit_log(action)",
    "CREATE INDEX IF NOT EXISTS idx_audit_actor ON audit_log(actor_id)",
)


def new_id() -> str:
    """Opaque identifier for a new row."""
    return uuid.uuid4().hex


def is_unique_violation(exc: sqlite3.IntegrityError, column: str) -> bool:
    """
    Whether ``exc`` is a UNIQUE failure on ``column`` (``table.column``).

    SQLite reports these as ``UNIQUE constraint failed: patients.patient_id``.
    """
    message = str(exc)
    return message.startswith("UNIQUE constraint failed") and column in message


class Database:
    """
    SQLite database connection manager with concurrency optimizations.

    Features:
    - WAL mode for better concurrent read/write performance
    - Busy timeout to handle lock contention gracefully
    - Foreign key constraints enabled by default
    - Rows returned as ``sqlite3.Row`` (access by column name)
    - ``transaction()`` for multi-step writes

    Usage:
        # Via dependency injection (recommended):
        from core.dependencies import get_database
        db = get_database()

        # Direct instantiation (for testing):
        db = Database(db_path="/tmp/test.db")
    """

    def __init__(self, db_path: Optional[str] = None, busy_timeout: Optional[int] = None):
        """
        Initialize database connection.

        Args:
            db_path: Path to SQLite database file. Defaults to config DATABASE_PATH.
            busy_timeout: SQLite busy timeout in milliseconds. Defaults to config value.
        """
        self.db_path = db_path or DATABASE_PATH
        self.busy_timeout = busy_timeout if busy_timeout is not None else DATABASE_BUSY_TIMEOUT

        db_dir = Path(self.db_path).parent
        db_dir.mkdir(parents=True, exist_ok=True)

        self._init_db()

    def _configure_connection(self, conn: sqlite3.Connection) -> None:
        conn.row_factory = sqlite3.Row
        conn.execute(f"PRAGMA busy_timeout = {self.busy_timeout}")
        conn.execute("PRAGMA foreign_keys = ON")

    def _init_db(self) -> None:
        """Create the schema and enable WAL mode if not already enabled."""
        conn = sqlite3.connect(self.db_path)
        self._configure_connection(conn)
        cursor = conn.cursor()

        # WAL mode persists in the database file, so this only needs to run once
        cursor.execute("PRAGMA journal_mode = WAL")
        result = cursor.fetchone()
        if result and result[0].lower() == 'wal':
            logger.info(f"SQLite WAL mode enabled for {self.db_path}")
        else:
            logger.warning(f"Failed to enable WAL mode, current mode: {result}")

        for statement in SCHEMA:
            cursor.execute(statement)

        conn.commit()
        conn.close()

        logger.info(
            f"Database initialized: {self.db_path} "
            f"(busy_timeout={self.busy_timeout}ms)"
        )

    def get_connection(self) -> sqlite3.Connection:
        """
        Get a new database connection with concurrency settings.

        Returns:
            sqlite3.Connection: A new connection with foreign keys enabled,
                busy timeout set and ``sqlite3.Row`` rows.
        """
        conn = sqlite3.connect(self.db_path)
        self._configure_connection(conn)
        return conn

    @contextmanager
    def session(self, conn: Optional[sqlite3.Connection] = None) -> Iterator[sqlite3.Connection]:
        """
        Yield a connection for one repository call.

        When ``conn`` is given (an outer ``transaction()``), it is reused and
        left for the owner to commit. Otherwise a fresh connection is opened,
        committed on success, rolled back on error and closed.
        """
        if conn is not None:
            yield conn
            return

        own = self.get_connection()
        try:
            yield own
            own.commit()
        except Exception:
            own.rollback()
            raise
        finally:
            own.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        Run several writes atomically.

        Takes the write lock up front (``BEGIN IMMEDIATE``) so concurrent
        writers queue on busy_timeout instead of failing mid-transaction.

        Usage:
            with db.transaction() as conn:
                user_repo.delete_by_institution(institution_id, conn=conn)
                institution_repo.delete(institution_id, conn=conn)
        """
        conn = self.get_connection()
        conn.isolation_level = None
        try:
            conn.execute("BEGIN IMMEDIATE")
            yield conn
            conn.execute("COMMIT")
        except Exception:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        finally:
            conn.close()

    def ping(self) -> bool:
        """Return True when the database answers a trivial query."""
        conn = self.get_connection()
        try:
            conn.execute("SELECT 1").fetchone()
            return True
        finally:
            conn.close()
