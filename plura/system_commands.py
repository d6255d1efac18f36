# plura/system_commands.py

import logging

from sqlalchemy import func, select

from plura import commands as c
from plura.command_dispatcher import CommandContext
from plura.entities import Member, System
from plura.handler_utils import NO_SYSTEM_TEXT, HandlerUtils, member_not_found_text
from plura.responses import CommandResponse, escape_mrkdwn, fields_section, markdown_section, text_response

logger = logging.getLogger("plura_commands")


class SystemCommands(HandlerUtils):

    def run(self, command: c.SystemCommand, ctx: CommandContext) -> CommandResponse:
        session = self.SessionFactory()
        try:
            if isinstance(command, c.CreateSystem):
                return self.create(session, command, ctx)
            elif isinstance(command, c.RenameSystem):
                return self.rename(session, command, ctx)
            elif isinstance(command, c.SystemInfo):
                return self.info(session, command, ctx)
            elif isinstance(command, c.SwitchMember):
                return self.switch(session, command, ctx)
            elif isinstance(command, c.SwitchOut):
                return self.switch_out(session, ctx)
            elif isinstance(command, c.DeleteSystem):
                return self.delete(session, command, ctx)
            raise TypeError(f"Unknown system command: {type(command).__name__}")
        finally:
            session.close()

    # -----------------------
    # Handlers
    # -----------------------

    def create(self, session, command: c.CreateSystem, ctx: CommandContext) -> CommandResponse:
        existing = self._system_for_user(session, ctx.user_id)
        if existing is not None:
            return text_response(
                f"You already have a system: *{escape_mrkdwn(existing.name)}*. "
                "Use `/system rename` to change its name."
            )

        system = System(owner_id=ctx.user_id, name=command.name)
        session.add(system)
        session.commit()
        logger.info("Created system id=%s for user=%s", system.id, ctx.user_id)
        return text_response(
            f"System *{escape_mrkdwn(system.name)}* created! Add members with `/members add <name>`."
        )

    def rename(self, session, command: c.RenameSystem, ctx: CommandContext) -> CommandResponse:
        system = self._system_for_user(session, ctx.user_id)
        if system is None:
            return text_response(NO_SYSTEM_TEXT)
        system.name = command.name
        session.commit()
        return text_response(f"System renamed to *{escape_mrkdwn(system.name)}*.")

    def info(self, session, command: c.SystemInfo, ctx: CommandContext) -> CommandResponse:
        owner_id = command.user or ctx.user_id
        system = self._system_for_user(session, owner_id)
        if system is None:
            if owner_id == ctx.user_id:
                return text_response(NO_SYSTEM_TEXT)
            return text_response(f"<@{owner_id}> doesn't have a system")

        member_count = session.scalar(
            select(func.count()).select_from(Member).where(Member.system_id == system.id)
        )
        fronting = "-"
        if system.active_member_id is not None:
            active = self._member_in_system(session, system, system.active_member_id)
            if active is not None:
                fronting = self._member_label(active)

        blocks = [
            markdown_section(f"*{escape_mrkdwn(system.name)}* (`{system.id}`)"),
            fields_section({
                "Owner": f"<@{system.owner_id}>",
                "Members": str(member_count),
                "Fronting": fronting,
            }),
        ]
        return CommandResponse(text=system.name, blocks=blocks)

    def switch(self, session, command: c.SwitchMember, ctx: CommandContext) -> CommandResponse:
        system = self._system_for_user(session, ctx.user_id)
        if system is None:
            return text_response(NO_SYSTEM_TEXT)
        member = self._member_in_system(session, system, command.member_id)
        if member is None:
            return text_response(member_not_found_text(command.member_id))

        system.active_member_id = member.id
        session.commit()
        return text_response(f"Switched to {self._member_label(member)}.")

    def switch_out(self, session, ctx: CommandContext) -> CommandResponse:
        system = self._system_for_user(session, ctx.user_id)
        if system is None:
            return text_response(NO_SYSTEM_TEXT)
        system.active_member_id = None
        session.commit()
        return text_response("Switched out. Your messages will no longer be proxied by default.")

    def delete(self, session, command: c.DeleteSystem, ctx: CommandContext) -> CommandResponse:
        system = self._system_for_user(session, ctx.user_id)
        if system is None:
            return text_response(NO_SYSTEM_TEXT)
        if not command.confirm:
            return text_response(
                f"This deletes *{escape_mrkdwn(system.name)}* and all of its members, triggers and aliases. "
                "Run `/system delete --confirm` to go ahead."
            )

        system_id = system.id
        session.delete(system)
        session.commit()
        logger.info("Deleted system id=%s for user=%s", system_id, ctx.user_id)
        return text_response("System deleted.")
