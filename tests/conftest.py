"""Pytest configuration and shared fixtures."""

from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from changegate.core.approval import ApprovalWorkflowService, ExecutionDispatcher, KeyedLockRegistry
from changegate.core.rules import RuleMatcher, default_catalog
from changegate.db.session import init_db
from changegate.services.notifications import NotificationEvent, Notifier
from changegate.stores import default_stores

from tests.factories import create_user


class RecordingNotifier(Notifier):
    """Notifier that remembers every event instead of delivering it."""

    def __init__(self):
        self.events = []

    def notify(self, event, request, recipients, extra=None):
        self.events.append(SimpleNamespace(
            event=NotificationEvent(event),
            request_id=request.id,
            status=request.status,
            recipient_ids=[r.id for r in recipients],
            extra=dict(extra or {}),
        ))

    def of(self, event):
        return [e for e in self.events if e.event == event]


class FailingNotifier(Notifier):
    """Notifier whose every delivery blows up."""

    def __init__(self):
        self.calls = 0

    def notify(self, event, request, recipients, extra=None):
        self.calls += 1
        raise RuntimeError("notification backend down")


@pytest.fixture
def engine():
    """In-memory SQLite engine shared across connections."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(engine):
    Session = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = Session()
    yield session
    session.close()


@pytest.fixture
def catalog():
    return default_catalog()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def dispatcher(db_session):
    return ExecutionDispatcher(default_stores(db_session))


@pytest.fixture
def workflow(db_session, catalog, dispatcher, notifier):
    """Workflow service over the built-in rules and stores."""
    return ApprovalWorkflowService(
        db_session,
        RuleMatcher(catalog),
        dispatcher,
        notifier=notifier,
        locks=KeyedLockRegistry(),
    )


@pytest.fixture
def team(db_session):
    """One user per role, plus a second manager and a requester."""
    members = SimpleNamespace(
        admin=create_user(db_session, username="alice", role="ADMIN"),
        manager=create_user(db_session, username="bob", role="MANAGER"),
        manager2=create_user(db_session, username="carol", role="MANAGER"),
        requester=create_user(db_session, username="dave", role="USER"),
        user=create_user(db_session, username="erin", role="USER"),
    )
    db_session.commit()
    return members


@pytest.fixture
def failing_notifier():
    return FailingNotifier()
