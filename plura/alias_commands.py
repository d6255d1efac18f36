# plura/alias_commands.py

from sqlalchemy import select

from plura import commands as c
from plura.command_dispatcher import CommandContext
from plura.entities import Alias, Member, System
from plura.handler_utils import NO_SYSTEM_TEXT, HandlerUtils, member_not_found_text
from plura.responses import CommandResponse, escape_mrkdwn, text_response


class AliasCommands(HandlerUtils):

    def run(self, command: c.AliasCommand, ctx: CommandContext) -> CommandResponse:
        session = self.SessionFactory()
        try:
            system = self._system_for_user(session, ctx.user_id)
            if system is None:
                return text_response(NO_SYSTEM_TEXT)

            if isinstance(command, c.AddAlias):
                return self.add(session, system, command)
            elif isinstance(command, c.DeleteAlias):
                return self.delete(session, system, command)
            elif isinstance(command, c.ListAliases):
                return self.list_aliases(session, system, command)
            raise TypeError(f"Unknown aliases command: {type(command).__name__}")
        finally:
            session.close()

    def add(self, session, system: System, command: c.AddAlias) -> CommandResponse:
        member = self._member_in_system(session, system, command.member_id)
        if member is None:
            return text_response(member_not_found_text(command.member_id))

        taken = session.scalars(
            select(Alias)
            .join(Member, Alias.member_id == Member.id)
            .where(Member.system_id == system.id, Alias.alias == command.alias)
        ).first()
        if taken is not None:
            return text_response(
                f"`{escape_mrkdwn(command.alias)}` is already an alias of {self._member_label(taken.member)}"
            )

        alias = Alias(member_id=member.id, alias=command.alias)
        session.add(alias)
        session.commit()
        return text_response(
            f"Alias `{alias.id}` added: `{escape_mrkdwn(alias.alias)}` → {self._member_label(member)}"
        )

    def delete(self, session, system: System, command: c.DeleteAlias) -> CommandResponse:
        alias = session.get(Alias, command.alias_id)
        if alias is None or alias.member.system_id != system.id:
            return text_response(f"Alias {command.alias_id} not found in your system")
        session.delete(alias)
        session.commit()
        return text_response(f"Alias `{command.alias_id}` deleted.")

    def list_aliases(self, session, system: System, command: c.ListAliases) -> CommandResponse:
        query = (
            select(Alias)
            .join(Member, Alias.member_id == Member.id)
            .where(Member.system_id == system.id)
            .order_by(Alias.id)
        )
        if command.member_id is not None:
            if self._member_in_system(session, system, command.member_id) is None:
                return text_response(member_not_found_text(command.member_id))
            query = query.where(Alias.member_id == command.member_id)

        aliases = session.scalars(query).all()
        if not aliases:
            return text_response("No aliases yet. Add one with `/aliases add <member_id> <alias>`.")

        lines = ["*Aliases:*"]
        for alias in aliases:
            lines.append(f"• `{alias.id}` `{escape_mrkdwn(alias.alias)}` → {self._member_label(alias.member)}")
        return text_response("\n".join(lines))
