from concurrent.futures import ThreadPoolExecutor

import pytest

from plura.conversation_store import SyncConversationStore
from plura.sync_flow import ENTITIES_PROMPT, handle_sync_command
from plura.sync_models import StepOutcome, SyncConversation, SyncDirection, SyncStep


def test_insert_get_update_remove(store: SyncConversationStore) -> None:
    assert store.get("U1") is None

    store.insert("U1", SyncConversation())
    assert store.get("U1").step is SyncStep.DIRECTION
    with pytest.raises(KeyError):
        store.insert("U1", SyncConversation())

    store.update("U1", SyncConversation(step=SyncStep.ENTITIES, direction=SyncDirection.SP_TO_PLURA))
    assert store.get("U1").direction is SyncDirection.SP_TO_PLURA

    assert store.remove("U1") is True
    assert store.remove("U1") is False
    with pytest.raises(KeyError):
        store.update("U1", SyncConversation())


def test_get_returns_a_copy(store: SyncConversationStore) -> None:
    store.insert("U1", SyncConversation())
    copy = store.get("U1")
    copy.step = SyncStep.TOKEN_B

    assert store.get("U1").step is SyncStep.DIRECTION


def test_advance_removes_finished_conversations(store: SyncConversationStore) -> None:
    def not_finished(convo):
        return StepOutcome("again", convo.step)

    store.advance("U1", not_finished)
    assert "U1" in store

    def finished(convo):
        return StepOutcome("done", SyncStep.DONE, request=object())

    assert store.advance("U1", finished).reply == "done"
    assert "U1" not in store


def test_concurrent_messages_advance_once(store: SyncConversationStore) -> None:
    def send(_):
        return handle_sync_command("U1", "D1", "pk_to_plura", store)

    with ThreadPoolExecutor(max_workers=16) as pool:
        replies = list(pool.map(send, range(64)))

    # the first message moves to ENTITIES, every later one is a bad entity list
    assert replies.count(ENTITIES_PROMPT) == 1
    assert store.get("U1").step is SyncStep.ENTITIES
    assert len(store) == 1
