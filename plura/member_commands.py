# plura/member_commands.py

import logging

from sqlalchemy import select

from plura import commands as c
from plura.command_dispatcher import CommandContext
from plura.entities import Member
from plura.handler_utils import NO_SYSTEM_TEXT, HandlerUtils, member_not_found_text
from plura.responses import CommandResponse, escape_mrkdwn, fields_section, markdown_section, text_response

logger = logging.getLogger("plura_commands")

_PROFILE_FIELDS = ("display_name", "pronouns", "avatar_url", "color")


class MemberCommands(HandlerUtils):

    def run(self, command: c.MemberCommand, ctx: CommandContext) -> CommandResponse:
        session = self.SessionFactory()
        try:
            if isinstance(command, c.AddMember):
                return self.add(session, command, ctx)
            elif isinstance(command, c.DeleteMember):
                return self.delete(session, command, ctx)
            elif isinstance(command, c.EditMember):
                return self.edit(session, command, ctx)
            elif isinstance(command, c.MemberInfo):
                return self.info(session, command, ctx)
            elif isinstance(command, c.ListMembers):
                return self.list_members(session, command, ctx)
            raise TypeError(f"Unknown members command: {type(command).__name__}")
        finally:
            session.close()

    # -----------------------
    # Handlers
    # -----------------------

    def add(self, session, command: c.AddMember, ctx: CommandContext) -> CommandResponse:
        system = self._system_for_user(session, ctx.user_id)
        if system is None:
            return text_response(NO_SYSTEM_TEXT)

        member = Member(
            system_id=system.id,
            full_name=command.name,
            **{f: getattr(command, f) for f in _PROFILE_FIELDS},
        )
        session.add(member)
        session.commit()
        logger.info("Added member id=%s to system id=%s", member.id, system.id)
        return text_response(f"Member {self._member_label(member)} added!")

    def delete(self, session, command: c.DeleteMember, ctx: CommandContext) -> CommandResponse:
        system = self._system_for_user(session, ctx.user_id)
        if system is None:
            return text_response(NO_SYSTEM_TEXT)
        member = self._member_in_system(session, system, command.member_id)
        if member is None:
            return text_response(member_not_found_text(command.member_id))

        label = self._member_label(member)
        if system.active_member_id == member.id:
            system.active_member_id = None
        session.delete(member)
        session.commit()
        return text_response(f"Member {label} deleted.")

    def edit(self, session, command: c.EditMember, ctx: CommandContext) -> CommandResponse:
        system = self._system_for_user(session, ctx.user_id)
        if system is None:
            return text_response(NO_SYSTEM_TEXT)
        member = self._member_in_system(session, system, command.member_id)
        if member is None:
            return text_response(member_not_found_text(command.member_id))

        changes = {f: getattr(command, f) for f in _PROFILE_FIELDS if getattr(command, f) is not None}
        if command.name is not None:
            changes["full_name"] = command.name
        if not changes:
            return text_response("Nothing to change. See `/members edit --help` for the options.")

        for key, value in changes.items():
            setattr(member, key, value)
        session.commit()
        return text_response(f"Member {self._member_label(member)} updated.")

    def info(self, session, command: c.MemberInfo, ctx: CommandContext) -> CommandResponse:
        # profiles are public: look the member up regardless of whose system it is
        member = session.get(Member, command.member_id)
        if member is None:
            return text_response(f"Member {command.member_id} not found")

        fields = {
            "Name": escape_mrkdwn(member.full_name),
            "Display name": escape_mrkdwn(member.display_name or "-"),
            "Pronouns": escape_mrkdwn(member.pronouns or "-"),
            "Color": member.color or "-",
            "System": escape_mrkdwn(member.system.name),
        }
        blocks = [markdown_section(f"*{escape_mrkdwn(member.shown_name)}* (`{member.id}`)"), fields_section(fields)]
        if member.avatar_url:
            blocks[0]["accessory"] = {
                "type": "image",
                "image_url": member.avatar_url,
                "alt_text": member.shown_name,
            }
        return CommandResponse(text=member.shown_name, blocks=blocks)

    def list_members(self, session, command: c.ListMembers, ctx: CommandContext) -> CommandResponse:
        owner_id = command.user or ctx.user_id
        system = self._system_for_user(session, owner_id)
        if system is None:
            if owner_id == ctx.user_id:
                return text_response(NO_SYSTEM_TEXT)
            return text_response(f"<@{owner_id}> doesn't have a system")

        members = session.scalars(
            select(Member).where(Member.system_id == system.id).order_by(Member.id)
        ).all()
        if not members:
            return text_response(f"*{escape_mrkdwn(system.name)}* has no members yet")

        lines = [f"*Members of {escape_mrkdwn(system.name)}:*"]
        for member in members:
            marker = " (fronting)" if member.id == system.active_member_id else ""
            lines.append(f"• {self._member_label(member)}{marker}")
        return text_response("\n".join(lines))
