"""Shared pytest fixtures: in-memory database, service builders and doubles"""
import os

# Settings are cached on first import, so pin the test environment first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["DEEPSEEK_API_KEY"] = ""
os.environ["SUPPORT_AI_ONLY_MODE"] = "false"

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from storefront.config.settings import Settings
from storefront.models import Base
from storefront.services.support.config import SupportChatConfig
from storefront.services.support.locks import ConversationLockRegistry
from storefront.services.support.support_chat_service import SupportChatService
from tests.doubles import FakeRedis, RecordingBroadcaster, StubChatClient


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def settings():
    return Settings(_env_file=None, DATABASE_URL="sqlite://", DEEPSEEK_API_KEY="")


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture
def make_service(broadcaster):
    """Build a SupportChatService for a given mode and AI client"""

    def _make(ai_only_mode=False, ai_client=None, realtime_enabled=True, **config):
        return SupportChatService(
            config=SupportChatConfig(
                ai_only_mode=ai_only_mode,
                ai_key_configured=ai_client is not None,
                realtime_enabled=realtime_enabled,
                **config,
            ),
            ai_client=ai_client,
            broadcaster=broadcaster,
            locks=ConversationLockRegistry(),
        )

    return _make


@pytest.fixture
def chat_client():
    return StubChatClient()
