"""
Shared fixtures for the user service tests.

The database URL and log directory are pointed at test locations before the
service modules are imported, since settings are read at import time.
"""
import os
import tempfile

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_users.db")
os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "user_service_test_logs"))
os.environ.setdefault("MAIL_BACKEND", "console")

import pytest
from fastapi.testclient import TestClient

from user_platform.user_platform.user_service.main import app
from user_platform.user_platform.user_service.db import Base, engine, SessionLocal
from user_platform.user_platform.user_service.mailer import Mailer, MailerError, get_mailer
from user_platform.user_platform.user_service import models  # noqa: F401


class RecordingMailer(Mailer):
    """Keeps sent mails in memory; raises MailerError when fail is set."""

    def __init__(self):
        self.sent = []
        self.fail = False

    def send(self, template, recipient, variables):
        if self.fail:
            raise MailerError("smtp unavailable")
        self.sent.append({"template": template, "to": recipient, "variables": dict(variables)})

    def last_token(self, template=None):
        for mail in reversed(self.sent):
            if template is None or mail["template"] == template:
                return mail["variables"]["token"]
        return None


@pytest.fixture(autouse=True)
def reset_database():
    # Drop all tables and recreate them before each test
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)


@pytest.fixture
def mailer():
    recorder = RecordingMailer()
    app.dependency_overrides[get_mailer] = lambda: recorder
    yield recorder
    app.dependency_overrides.pop(get_mailer, None)


@pytest.fixture
def client(mailer):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db_session():
    """Create a database session for testing."""
    session = SessionLocal()
    yield session
    session.close()
