# tests/conftest.py
"""Global test configuration and fixtures."""
import os
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

# Keep the process-wide engine off the on-disk database during tests
os.environ.setdefault("FUNNELS_DATABASE_URL", "sqlite://")

from sqlalchemy.orm import sessionmaker  # noqa: E402

from funnels.db.engine import create_db_engine  # noqa: E402
from funnels.db.leads import LeadDirectory  # noqa: E402
from funnels.db.store import FunnelStore  # noqa: E402
from funnels.db.whatsapp_templates import WhatsAppTemplateStore  # noqa: E402
from funnels.engine import FunnelEngine  # noqa: E402
from funnels.senders.base import EmailSender, WhatsAppSender  # noqa: E402

T0 = datetime(2024, 1, 1, 8, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that tests move forward by hand."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def session_factory():
    """Session factory over a fresh in-memory database."""
    engine = create_db_engine("sqlite://")
    yield sessionmaker(bind=engine, expire_on_commit=False)
    engine.dispose()


@pytest.fixture
def store(session_factory) -> FunnelStore:
    return FunnelStore(session_factory)


@pytest.fixture
def leads(session_factory) -> LeadDirectory:
    return LeadDirectory(session_factory)


@pytest.fixture
def templates(session_factory) -> WhatsAppTemplateStore:
    return WhatsAppTemplateStore(session_factory)


@pytest.fixture
def email_sender():
    return MagicMock(spec=EmailSender)


@pytest.fixture
def whatsapp_sender():
    return MagicMock(spec=WhatsAppSender)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def engine(store, leads, templates, email_sender, whatsapp_sender, clock) -> FunnelEngine:
    return FunnelEngine(
        store=store,
        leads=leads,
        templates=templates,
        email_sender=email_sender,
        whatsapp_sender=whatsapp_sender,
        clock=clock,
        send_window_timezone="UTC",
        dedupe_active_executions=False,
    )


@pytest.fixture
def lead(leads):
    return leads.subscribe("reader@example.com", "test", name="Real-Name", phone="+55 11 99999-0000")
