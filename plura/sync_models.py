# plura/sync_models.py

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Optional, Tuple


class SyncStep(Enum):
    DIRECTION = 1
    ENTITIES = 2
    TOKEN_A = 3
    TOKEN_B = 4
    DONE = 5

    def next(self) -> "SyncStep":
        if self is SyncStep.DONE:
            raise ValueError("DONE is the last sync step")
        return SyncStep(self.value + 1)


class Platform(Enum):
    PLURALKIT = "PluralKit"
    SIMPLYPLURAL = "SimplyPlural"


class SyncDirection(str, Enum):
    PK_TO_PLURA = "pk_to_plura"
    PLURA_TO_PK = "plura_to_pk"
    SP_TO_PLURA = "sp_to_plura"
    PLURA_TO_SP = "plura_to_sp"

    @property
    def token_order(self) -> Tuple[Platform, Platform]:
        """Which credential is asked for first and second."""
        if self in (SyncDirection.PK_TO_PLURA, SyncDirection.PLURA_TO_PK):
            return (Platform.PLURALKIT, Platform.SIMPLYPLURAL)
        return (Platform.SIMPLYPLURAL, Platform.PLURALKIT)


class SyncEntity(str, Enum):
    MEMBERS = "members"
    SWITCHES = "switches"
    SYSTEMS = "systems"
    GROUPS = "groups"
    MESSAGES = "messages"


ALL_DIRECTIONS: Tuple[SyncDirection, ...] = tuple(SyncDirection)
ALL_ENTITIES: Tuple[SyncEntity, ...] = tuple(SyncEntity)


@dataclass
class SyncConversation:
    step: SyncStep = SyncStep.DIRECTION
    direction: Optional[SyncDirection] = None
    entities: Optional[FrozenSet[SyncEntity]] = None
    # secrets: kept out of repr so they never reach a log line
    pk_token: Optional[str] = field(default=None, repr=False)
    sp_token: Optional[str] = field(default=None, repr=False)

    def advance(self) -> None:
        self.step = self.step.next()

    def set_token(self, platform: Platform, token: str) -> None:
        if platform is Platform.PLURALKIT:
            self.pk_token = token
        else:
            self.sp_token = token


@dataclass(frozen=True)
class SyncRequest:
    """Everything the external sync job needs. Handed off once per finished conversation."""
    user_id: str
    direction: SyncDirection
    entities: FrozenSet[SyncEntity]
    pk_token: str = field(repr=False)
    sp_token: str = field(repr=False)


@dataclass(frozen=True)
class StepOutcome:
    reply: str
    step: SyncStep
    # set only when the conversation reached DONE on this message
    request: Optional[SyncRequest] = None

    @property
    def finished(self) -> bool:
        return self.request is not None
