from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parent
sys.path.append(str(ROOT))

os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["DATABASE_WRITE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["NOTIFICATIONS_EMAIL_PROVIDER"] = "none"
os.environ["TRAINEE_UPLOAD_DIR"] = tempfile.mkdtemp(prefix="traineedb-uploads-")
os.environ.setdefault("ARGON2_TIME_COST", "1")
os.environ.setdefault("ARGON2_MEMORY_COST", "1024")
os.environ.setdefault("ARGON2_PARALLELISM", "1")

from traineedb.database import Base  # noqa: E402
from traineedb.apps.accounts import models as account_models  # noqa: E402
from traineedb.apps.training import models as training_models  # noqa: E402
from traineedb.apps.notifications import models as notification_models  # noqa: E402
from traineedb.apps.audit import models as audit_models  # noqa: E402


def _sqlite_engine():
    engine = create_engine("sqlite+pysqlite:///:memory:")

    # pysqlite's own transaction handling breaks SAVEPOINT; let SQLAlchemy
    # emit BEGIN itself so nested transactions behave as on PostgreSQL.
    @event.listens_for(engine, "connect")
    def _connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


@pytest.fixture()
def db_session():
    engine = _sqlite_engine()
    Base.metadata.create_all(
        bind=engine,
        tables=[
            account_models.Admin.__table__,
            account_models.Instructor.__table__,
            training_models.Trainee.__table__,
            training_models.Project.__table__,
            training_models.ProjectProgress.__table__,
            training_models.ProgressReview.__table__,
            training_models.Document.__table__,
            notification_models.Notification.__table__,
            notification_models.EmailLog.__table__,
            audit_models.AuditEvent.__table__,
        ],
    )
    TestingSession = sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture()
def admin(db_session) -> account_models.Admin:
    admin = account_models.Admin(
        name="Asha Admin",
        email="admin@example.com",
        hashed_password="hash",
        is_active=True,
    )
    db_session.add(admin)
    db_session.commit()
    return admin


@pytest.fixture()
def instructor(db_session, admin) -> account_models.Instructor:
    instructor = account_models.Instructor(
        name="Ivan Instructor",
        email="instructor@example.com",
        hashed_password="hash",
        department="Engineering",
        created_by=admin.id,
        is_active=True,
    )
    db_session.add(instructor)
    db_session.commit()
    return instructor
