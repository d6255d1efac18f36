# plura/commands.py
"""
Structured commands.

One base class per top-level verb (members, system, triggers, aliases) plus
`Explain`. Every leaf model is frozen and validated on construction; the
command translator is the only place that builds them from user text.
"""

import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, PositiveInt, field_validator, model_validator

_COLOR_RE = re.compile(r"^#[0-9a-fA-F]{6}$")
_USER_MENTION_RE = re.compile(r"^<@([A-Z0-9]+)(?:\|[^>]*)?>$")
_USER_ID_RE = re.compile(r"^[UW][A-Z0-9]+$")


def _check_color(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    if not _COLOR_RE.match(value):
        raise ValueError("expected a hex color like #ff00aa")
    return value.lower()


def _check_url(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    if not value.startswith(("http://", "https://")):
        raise ValueError("expected an http(s) URL")
    return value


def _check_user(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    mention = _USER_MENTION_RE.match(value)
    if mention:
        return mention.group(1)
    if not _USER_ID_RE.match(value):
        raise ValueError("expected a Slack user id or @mention")
    return value


class StructuredCommand(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


# -----------------------
# members
# -----------------------

class MemberCommand(StructuredCommand):
    pass


class AddMember(MemberCommand):
    name: str
    display_name: Optional[str] = None
    pronouns: Optional[str] = None
    avatar_url: Optional[str] = None
    color: Optional[str] = None

    check_color = field_validator("color")(_check_color)
    check_avatar_url = field_validator("avatar_url")(_check_url)


class DeleteMember(MemberCommand):
    member_id: PositiveInt


class EditMember(MemberCommand):
    member_id: PositiveInt
    name: Optional[str] = None
    display_name: Optional[str] = None
    pronouns: Optional[str] = None
    avatar_url: Optional[str] = None
    color: Optional[str] = None

    check_color = field_validator("color")(_check_color)
    check_avatar_url = field_validator("avatar_url")(_check_url)


class MemberInfo(MemberCommand):
    member_id: PositiveInt


class ListMembers(MemberCommand):
    user: Optional[str] = None

    check_user = field_validator("user")(_check_user)


# -----------------------
# system
# -----------------------

class SystemCommand(StructuredCommand):
    pass


class CreateSystem(SystemCommand):
    name: str


class RenameSystem(SystemCommand):
    name: str


class SystemInfo(SystemCommand):
    user: Optional[str] = None

    check_user = field_validator("user")(_check_user)


class SwitchMember(SystemCommand):
    member_id: PositiveInt


class SwitchOut(SystemCommand):
    pass


class DeleteSystem(SystemCommand):
    confirm: bool = False


# -----------------------
# triggers
# -----------------------

class TriggerCommand(StructuredCommand):
    pass


class AddTrigger(TriggerCommand):
    member_id: PositiveInt
    prefix: Optional[str] = None
    suffix: Optional[str] = None

    @model_validator(mode="after")
    def needs_prefix_or_suffix(self):
        if not self.prefix and not self.suffix:
            raise ValueError("at least one of --prefix or --suffix is required")
        return self


class EditTrigger(TriggerCommand):
    trigger_id: PositiveInt
    prefix: Optional[str] = None
    suffix: Optional[str] = None


class DeleteTrigger(TriggerCommand):
    trigger_id: PositiveInt


class ListTriggers(TriggerCommand):
    member_id: Optional[PositiveInt] = None


# -----------------------
# aliases
# -----------------------

class AliasCommand(StructuredCommand):
    pass


class AddAlias(AliasCommand):
    member_id: PositiveInt
    alias: str


class DeleteAlias(AliasCommand):
    alias_id: PositiveInt


class ListAliases(AliasCommand):
    member_id: Optional[PositiveInt] = None


# -----------------------
# explain
# -----------------------

class Explain(StructuredCommand):
    pass
