"""
Database schema and management for Media Audit Suite.
Holds application settings and the persisted UI/session state entry.
"""
import sqlite3
import logging
from pathlib import Path
from typing import Any, Optional

from media_audit.core.config import DEFAULT_SETTINGS

logger = logging.getLogger(__name__)


def default_data_dir() -> Path:
    return Path.home() / "AppData" / "Local" / "MediaAuditSuite"


class DatabaseManager:
    """Manages SQLite database operations for configuration and state"""

    VERSION = "1.0.0"

    def __init__(self, db_path: Optional[Path] = None):
        """
        Initialize database manager

        Args:
            db_path: Path to SQLite database file. Defaults to user data directory.
        """
        if db_path is None:
            db_path = default_data_dir() / "data.db"

        db_path.parent.mkdir(parents=True, exist_ok=True)
        self.db_path = db_path
        self.conn: Optional[sqlite3.Connection] = None

    def connect(self):
        """Establish database connection"""
        self.conn = sqlite3.connect(
            self.db_path,
            check_same_thread=False,
            timeout=30.0
        )
        self.conn.row_factory = sqlite3.Row
        self._initialize_schema()

    def _initialize_schema(self):
        """Create database schema if not exists"""
        cursor = self.conn.cursor()

        # Check if schema already exists
        cursor.execute("SELECT name FROM sqlite_master WHERE type='table' AND name='config'")
        schema_exists = cursor.fetchone() is not None

        # Configuration table (settings and the persisted state entry)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS config (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        # Insert default configuration
        self._set_default_config()

        self.conn.commit()

        # Only log if this was a new database
        if not schema_exists:
            logger.info("Database schema initialized")
        else:
            logger.debug("Database schema verified")

    def _set_default_config(self):
        """Set default configuration values"""
        defaults = dict(DEFAULT_SETTINGS)
        defaults['app_version'] = self.VERSION

        cursor = self.conn.cursor()
        for key, value in defaults.items():
            cursor.execute("""
                INSERT OR IGNORE INTO config (key, value)
                VALUES (?, ?)
            """, (key, value))
        self.conn.commit()

    def _require_connection(self) -> sqlite3.Connection:
        if self.conn is None:
            raise sqlite3.ProgrammingError("database is not connected")
        return self.conn

    def get_config(self, key: str, default: Any = None) -> Any:
        """
        Retrieve configuration value

        Args:
            key: Configuration key
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        cursor = self._require_connection().cursor()
        cursor.execute("""
            SELECT value FROM config WHERE key = ?
        """, (key,))

        row = cursor.fetchone()
        if row:
            return row['value']
        return default

    def set_config(self, key: str, value: Any):
        """
        Set configuration value

        Args:
            key: Configuration key
            value: Configuration value
        """
        conn = self._require_connection()
        cursor = conn.cursor()
        cursor.execute("""
            INSERT OR REPLACE INTO config (key, value, updated_at)
            VALUES (?, ?, CURRENT_TIMESTAMP)
        """, (key, str(value)))
        conn.commit()

    def close(self):
        """Close database connection"""
        if self.conn:
            self.conn.close()
            self.conn = None
