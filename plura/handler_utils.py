# plura/handler_utils.py

from typing import Callable, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from plura.entities import Member, System
from plura.responses import escape_mrkdwn


NO_SYSTEM_TEXT = "You don't have a system yet! Make one with `/system create <name>`"


def member_not_found_text(member_id: int) -> str:
    return f"Member {member_id} not found in your system"


class HandlerUtils:
    """Shared lookups for the per-category command handlers."""

    def __init__(self, session_factory: Callable[[], Session]):
        self.SessionFactory = session_factory

    def _system_for_user(self, session: Session, user_id: str) -> Optional[System]:
        return session.scalars(select(System).where(System.owner_id == user_id)).one_or_none()

    def _member_in_system(self, session: Session, system: System, member_id: int) -> Optional[Member]:
        member = session.get(Member, member_id)
        if member is None or member.system_id != system.id:
            return None
        return member

    def _member_label(self, member: Member) -> str:
        return f"{escape_mrkdwn(member.shown_name)} (`{member.id}`)"
