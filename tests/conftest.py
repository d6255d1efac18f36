import pytest

from plura.command_dispatcher import CommandContext
from plura.conversation_store import SyncConversationStore
from plura.db_helpers import build_db_session_factory
from plura.settings import Settings

TEST_ENV = {
    "SLACK_SIGNING_SECRET": "test-signing-secret",
    "DATABASE_URL": "sqlite://",
}


@pytest.fixture
def session_factory():
    # fresh in-memory database per test
    return build_db_session_factory("sqlite://")


@pytest.fixture
def store() -> SyncConversationStore:
    return SyncConversationStore()


@pytest.fixture
def settings() -> Settings:
    return Settings(environ=dict(TEST_ENV))


@pytest.fixture
def ctx() -> CommandContext:
    return CommandContext(user_id="U100", channel_id="C100", channel_name="general", trigger_id="T1")


@pytest.fixture
def other_ctx() -> CommandContext:
    return CommandContext(user_id="U200", channel_id="C100", channel_name="general", trigger_id="T2")
