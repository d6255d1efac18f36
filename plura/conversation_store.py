# plura/conversation_store.py

import dataclasses
import threading
from typing import Callable, Dict, Optional

from plura.sync_models import StepOutcome, SyncConversation


class SyncConversationStore:
    """
    In-memory, per-user sync conversations.

    - No TTL and no persistence: an abandoned conversation stays until restart.
    - One store-wide lock. `advance` runs the whole read/step/remove sequence
      under it, so two messages from the same user can never both see the
      pre-step state.
    - Step functions passed to `advance` must not do I/O or await anything.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        # user_id -> conversation
        self._items: Dict[str, SyncConversation] = {}

    def _get_or_create_unlocked(self, user_id: str) -> SyncConversation:
        convo = self._items.get(user_id)
        if convo is None:
            convo = SyncConversation()
            self._items[user_id] = convo
        return convo

    def advance(self, user_id: str, step: Callable[[SyncConversation], StepOutcome]) -> StepOutcome:
        """
        Apply one step to the user's conversation, creating it if needed.
        The entry is removed when the step reports the conversation finished.
        """
        uid = str(user_id)
        with self._lock:
            convo = self._get_or_create_unlocked(uid)
            outcome = step(convo)
            if outcome.finished:
                del self._items[uid]
            return outcome

    def get(self, user_id: str) -> Optional[SyncConversation]:
        """Return a COPY of the stored conversation, or None."""
        with self._lock:
            convo = self._items.get(str(user_id))
            return dataclasses.replace(convo) if convo is not None else None

    def insert(self, user_id: str, convo: SyncConversation) -> None:
        uid = str(user_id)
        with self._lock:
            if uid in self._items:
                raise KeyError(f"Conversation already exists for user {uid}")
            self._items[uid] = dataclasses.replace(convo)

    def update(self, user_id: str, convo: SyncConversation) -> None:
        uid = str(user_id)
        with self._lock:
            if uid not in self._items:
                raise KeyError(f"No conversation for user {uid}")
            self._items[uid] = dataclasses.replace(convo)

    def remove(self, user_id: str) -> bool:
        with self._lock:
            return self._items.pop(str(user_id), None) is not None

    def __contains__(self, user_id: object) -> bool:
        with self._lock:
            return str(user_id) in self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
