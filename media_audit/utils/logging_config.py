"""
Categorized logging for Media Audit Suite.

Each module logger belongs to one category. A category's level comes from the
``log_level_<category>`` setting when a database is attached, otherwise from
DEFAULT_LOG_LEVELS. Output goes to a daily rotating file and the console.
"""
import logging
from typing import Dict, Optional
from pathlib import Path
from logging.handlers import TimedRotatingFileHandler


class LoggerCategory:
    """Named categories for application loggers"""
    CORE = "core"                  # Context, document model
    SCANNER = "scanner"            # Asset scanning
    OBSERVER = "observer"          # Structural change detection
    STORAGE = "storage"            # Persisted state and database
    NETWORK = "network"            # Announcement feed and HTTP client
    UI = "ui"                      # Presentation surface
    SETTINGS = "settings"          # Settings and configuration


DEFAULT_LOG_LEVELS = {
    LoggerCategory.CORE: logging.INFO,
    LoggerCategory.SCANNER: logging.INFO,
    LoggerCategory.OBSERVER: logging.INFO,
    LoggerCategory.STORAGE: logging.WARNING,  # Reduce DB noise
    LoggerCategory.NETWORK: logging.INFO,
    LoggerCategory.UI: logging.INFO,
    LoggerCategory.SETTINGS: logging.INFO,
}


MODULE_TO_CATEGORY = {
    'media_audit.core.context': LoggerCategory.CORE,
    'media_audit.core.document': LoggerCategory.CORE,
    'media_audit.core.scanner': LoggerCategory.SCANNER,
    'media_audit.core.observer': LoggerCategory.OBSERVER,
    'media_audit.core.state_store': LoggerCategory.STORAGE,
    'media_audit.core.database': LoggerCategory.STORAGE,
    'media_audit.core.poller': LoggerCategory.NETWORK,
    'media_audit.core.http_client': LoggerCategory.NETWORK,
    'media_audit.ui.reporter': LoggerCategory.UI,
    'media_audit.core.config': LoggerCategory.SETTINGS,
}

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def default_log_dir() -> Path:
    return Path.home() / "AppData" / "Local" / "MediaAuditSuite" / "logs"


def level_setting_key(category: str) -> str:
    return f'log_level_{category}'


def read_category_levels(db_manager=None) -> Dict[str, int]:
    """
    Resolve the level of every category.

    Unknown level names in the database fall back to the category default.
    """
    levels = dict(DEFAULT_LOG_LEVELS)
    if db_manager is None:
        return levels
    for category, default_level in DEFAULT_LOG_LEVELS.items():
        name = db_manager.get_config(level_setting_key(category), logging.getLevelName(default_level))
        level = logging.getLevelName(str(name).upper())
        if isinstance(level, int):
            levels[category] = level
        else:
            logging.getLogger(__name__).warning(
                f"Unknown log level '{name}' for category '{category}', using default"
            )
    return levels


class LoggingManager:
    """Owns the root handlers and applies per-category levels."""

    def __init__(self, log_dir: Optional[Path] = None, db_manager=None):
        self.log_dir = log_dir or default_log_dir()
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.db_manager = db_manager
        self.levels = read_category_levels(db_manager)

    def apply_levels(self):
        for module_name, category in MODULE_TO_CATEGORY.items():
            logging.getLogger(module_name).setLevel(self.levels[category])

    def attach_database(self, db_manager):
        """Re-read category levels once the database is available."""
        self.db_manager = db_manager
        self.levels = read_category_levels(db_manager)
        self.apply_levels()

    def setup_logging(self, root_level: int = logging.INFO):
        formatter = logging.Formatter(LOG_FORMAT)

        file_handler = TimedRotatingFileHandler(
            self.log_dir / "media_audit.log",
            when="midnight",
            interval=1,
            backupCount=7,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)

        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(formatter)

        root_logger = logging.getLogger()
        root_logger.setLevel(root_level)
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
        root_logger.addHandler(file_handler)
        root_logger.addHandler(stream_handler)

        self.apply_levels()

        # Silence noisy third-party loggers
        logging.getLogger('urllib3').setLevel(logging.WARNING)
        logging.getLogger('requests').setLevel(logging.WARNING)


_logging_manager: Optional[LoggingManager] = None


def setup_logging(db_manager=None, log_dir: Optional[Path] = None) -> LoggingManager:
    """Create the process-wide LoggingManager on first call and install handlers."""
    global _logging_manager
    if _logging_manager is None:
        _logging_manager = LoggingManager(log_dir=log_dir, db_manager=db_manager)
    _logging_manager.setup_logging()
    return _logging_manager
