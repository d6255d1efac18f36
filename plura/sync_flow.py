# plura/sync_flow.py
"""
Conversational `/sync` flow.

Each `/sync <text>` from a user advances their conversation by one step:

    DIRECTION -> ENTITIES -> TOKEN_A -> TOKEN_B -> DONE

Invalid input re-prompts and leaves the state as it was. Reaching DONE emits
a summary with both tokens hidden, removes the conversation and hands a
SyncRequest to `on_ready`. Only direct messages are accepted since the flow
collects secrets.

A failing `on_ready` is logged and answered with a masked error; the
conversation is already gone by then and the user starts over.
"""

import logging
from typing import Callable, FrozenSet, Optional

from plura.conversation_store import SyncConversationStore
from plura.sync_models import (
    ALL_DIRECTIONS,
    ALL_ENTITIES,
    Platform,
    StepOutcome,
    SyncConversation,
    SyncDirection,
    SyncEntity,
    SyncRequest,
    SyncStep,
)

logger = logging.getLogger("plura_sync")

DM_ONLY_TEXT = "Please run `/sync` in a DM with me for your privacy."
ALREADY_DONE_TEXT = "Sync already completed. Run `/sync` again to start a new sync."
SYNC_HANDOFF_ERROR_TEXT = "Error starting sync! Logged to developers"

_DIRECTION_LIST = ", ".join(d.value for d in ALL_DIRECTIONS)
_ENTITY_LIST = ", ".join(e.value for e in ALL_ENTITIES)

DIRECTION_PROMPT = f"Which direction do you want to sync?\nReply with one of: {_DIRECTION_LIST}"
ENTITIES_PROMPT = (
    "Which entities? Reply with a comma-separated list from the following:\n"
    f"{_ENTITY_LIST}\n"
    "Or reply with `all` to sync everything."
)
ENTITIES_RETRY_PROMPT = f"Please reply with at least one valid entity from: {_ENTITY_LIST}\nOr reply with `all`."


def is_direct_channel(channel_id: str) -> bool:
    # Slack direct message channel ids start with "D"
    return channel_id.startswith("D")


def token_prompt(platform: Platform) -> str:
    return f"Please provide your {platform.value} token."


def parse_direction(text: str) -> Optional[SyncDirection]:
    trimmed = text.strip()
    for direction in ALL_DIRECTIONS:
        if direction.value == trimmed:
            return direction
    return None


def parse_entities(text: str) -> FrozenSet[SyncEntity]:
    """
    `all`, or a comma-separated list matched case-insensitively.
    Unknown names are dropped; an empty result means the input was rejected.
    """
    trimmed = text.strip().lower()
    if trimmed == "all":
        return frozenset(ALL_ENTITIES)
    known = {e.value: e for e in ALL_ENTITIES}
    return frozenset(known[part.strip()] for part in trimmed.split(",") if part.strip() in known)


def summarize(convo: SyncConversation) -> str:
    entities = ", ".join(e.value for e in ALL_ENTITIES if e in (convo.entities or ()))
    return (
        "Syncing!\n"
        f"Direction: {convo.direction.value}\n"
        f"Entities: {entities}\n"
        f"{Platform.PLURALKIT.value} token: [hidden]\n"
        f"{Platform.SIMPLYPLURAL.value} token: [hidden]"
    )


def step_conversation(user_id: str, convo: SyncConversation, text: str) -> StepOutcome:
    """Advance `convo` in place by at most one step. Pure: no I/O."""
    step = convo.step

    if step is SyncStep.DIRECTION:
        direction = parse_direction(text)
        if direction is None:
            return StepOutcome(DIRECTION_PROMPT, step)
        convo.direction = direction
        convo.advance()
        return StepOutcome(ENTITIES_PROMPT, convo.step)

    if step is SyncStep.ENTITIES:
        entities = parse_entities(text)
        if not entities:
            return StepOutcome(ENTITIES_RETRY_PROMPT, step)
        convo.entities = entities
        convo.advance()
        return StepOutcome(token_prompt(convo.direction.token_order[0]), convo.step)

    if step is SyncStep.TOKEN_A:
        first, second = convo.direction.token_order
        token = text.strip()
        if not token:
            return StepOutcome(token_prompt(first), step)
        convo.set_token(first, token)
        convo.advance()
        return StepOutcome(token_prompt(second), convo.step)

    if step is SyncStep.TOKEN_B:
        second = convo.direction.token_order[1]
        token = text.strip()
        if not token:
            return StepOutcome(token_prompt(second), step)
        convo.set_token(second, token)
        convo.advance()
        request = SyncRequest(
            user_id=user_id,
            direction=convo.direction,
            entities=convo.entities,
            pk_token=convo.pk_token,
            sp_token=convo.sp_token,
        )
        return StepOutcome(summarize(convo), convo.step, request)

    return StepOutcome(ALREADY_DONE_TEXT, step)


def handle_sync_command(
    user_id: str,
    channel_id: str,
    text: Optional[str],
    conversations: SyncConversationStore,
    on_ready: Optional[Callable[[SyncRequest], None]] = None,
) -> str:
    if not is_direct_channel(channel_id):
        return DM_ONLY_TEXT

    message = text or ""
    outcome = conversations.advance(user_id, lambda convo: step_conversation(user_id, convo, message))
    logger.debug("Sync conversation for user=%s is at step %s", user_id, outcome.step.name)

    if outcome.request is not None:
        logger.info(
            "Sync conversation finished for user=%s direction=%s",
            user_id,
            outcome.request.direction.value,
        )
        if on_ready is not None:
            try:
                on_ready(outcome.request)
            except Exception:
                logger.exception("Sync hand-off failed for user=%s", user_id)
                return SYNC_HANDOFF_ERROR_TEXT

    return outcome.reply
