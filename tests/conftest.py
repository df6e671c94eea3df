import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PyQt6.QtCore import QCoreApplication

from media_audit.core.database import DatabaseManager
from media_audit.core.document import MediaDocument


@pytest.fixture(scope="session", autouse=True)
def qapp():
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


@pytest.fixture
def db(tmp_path):
    manager = DatabaseManager(tmp_path / "data.db")
    manager.connect()
    yield manager
    manager.close()


@pytest.fixture
def document():
    return MediaDocument(base_url="https://example.com/watch/")
