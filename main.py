"""
Main application entry point for Media Audit Suite
"""
import logging
import sys

from PyQt6.QtCore import QCoreApplication, QTimer


# Setup logging
def setup_logging(db_manager=None):
    """Configure application logging"""
    from media_audit.utils.logging_config import setup_logging as setup_categorized_logging

    logging_manager = setup_categorized_logging(db_manager)

    logger = logging.getLogger(__name__)
    logger.info("="*50)
    logger.info("Media Audit Suite Starting")
    logger.info("="*50)

    return logging_manager


def main():
    """Main application entry point"""
    # Setup logging (levels reloaded from DB after DB init)
    logging_manager = setup_logging()
    logger = logging.getLogger(__name__)

    from media_audit import __version__
    from media_audit.core.context import CoreContext, open_document
    from media_audit.core.config import AppConfig
    from media_audit.core.database import DatabaseManager
    from media_audit.core.http_client import create_http_client_from_settings

    app = QCoreApplication(sys.argv)
    app.setApplicationName("Media Audit Suite")
    app.setApplicationVersion(__version__)
    app.setOrganizationName("MediaAuditSuite")

    core = None
    try:
        db = DatabaseManager()
        db.connect()
        logging_manager.attach_database(db)

        config = AppConfig.from_db(db)
        loader = create_http_client_from_settings(db, config)
        try:
            document = open_document(config.document_path, loader, timeout=config.request_timeout_seconds)
        finally:
            loader.close()

        logger.info("Initializing core context...")
        core = CoreContext(document=document, db=db)

        # Activate once the event loop is idle
        QTimer.singleShot(0, core.start)
        exit_code = app.exec()
    except KeyboardInterrupt:
        logger.info("Application interrupted by user")
        exit_code = 0
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        exit_code = 1
    finally:
        logger.info("Shutting down...")
        if core is not None:
            core.close()
        logger.info("Application closed")

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
