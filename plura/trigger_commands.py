# plura/trigger_commands.py

from typing import Optional

from sqlalchemy import select

from plura import commands as c
from plura.command_dispatcher import CommandContext
from plura.entities import Member, System, Trigger
from plura.handler_utils import NO_SYSTEM_TEXT, HandlerUtils, member_not_found_text
from plura.responses import CommandResponse, escape_mrkdwn, text_response


def _describe(trigger: Trigger) -> str:
    prefix = escape_mrkdwn(trigger.prefix or "")
    suffix = escape_mrkdwn(trigger.suffix or "")
    return f"`{prefix}text{suffix}`"


class TriggerCommands(HandlerUtils):

    def run(self, command: c.TriggerCommand, ctx: CommandContext) -> CommandResponse:
        session = self.SessionFactory()
        try:
            system = self._system_for_user(session, ctx.user_id)
            if system is None:
                return text_response(NO_SYSTEM_TEXT)

            if isinstance(command, c.AddTrigger):
                return self.add(session, system, command)
            elif isinstance(command, c.EditTrigger):
                return self.edit(session, system, command)
            elif isinstance(command, c.DeleteTrigger):
                return self.delete(session, system, command)
            elif isinstance(command, c.ListTriggers):
                return self.list_triggers(session, system, command)
            raise TypeError(f"Unknown triggers command: {type(command).__name__}")
        finally:
            session.close()

    def _trigger_in_system(self, session, system: System, trigger_id: int) -> Optional[Trigger]:
        trigger = session.get(Trigger, trigger_id)
        if trigger is None or trigger.member.system_id != system.id:
            return None
        return trigger

    # -----------------------
    # Handlers
    # -----------------------

    def add(self, session, system: System, command: c.AddTrigger) -> CommandResponse:
        member = self._member_in_system(session, system, command.member_id)
        if member is None:
            return text_response(member_not_found_text(command.member_id))

        trigger = Trigger(member_id=member.id, prefix=command.prefix, suffix=command.suffix)
        session.add(trigger)
        session.commit()
        return text_response(
            f"Trigger `{trigger.id}` added: messages like {_describe(trigger)} "
            f"will be sent as {self._member_label(member)}."
        )

    def edit(self, session, system: System, command: c.EditTrigger) -> CommandResponse:
        trigger = self._trigger_in_system(session, system, command.trigger_id)
        if trigger is None:
            return text_response(f"Trigger {command.trigger_id} not found in your system")
        if command.prefix is None and command.suffix is None:
            return text_response("Nothing to change. Pass `--prefix` and/or `--suffix`.")

        if command.prefix is not None:
            trigger.prefix = command.prefix
        if command.suffix is not None:
            trigger.suffix = command.suffix
        session.commit()
        return text_response(f"Trigger `{trigger.id}` updated: {_describe(trigger)}")

    def delete(self, session, system: System, command: c.DeleteTrigger) -> CommandResponse:
        trigger = self._trigger_in_system(session, system, command.trigger_id)
        if trigger is None:
            return text_response(f"Trigger {command.trigger_id} not found in your system")
        session.delete(trigger)
        session.commit()
        return text_response(f"Trigger `{command.trigger_id}` deleted.")

    def list_triggers(self, session, system: System, command: c.ListTriggers) -> CommandResponse:
        query = (
            select(Trigger)
            .join(Member, Trigger.member_id == Member.id)
            .where(Member.system_id == system.id)
            .order_by(Trigger.id)
        )
        if command.member_id is not None:
            if self._member_in_system(session, system, command.member_id) is None:
                return text_response(member_not_found_text(command.member_id))
            query = query.where(Trigger.member_id == command.member_id)

        triggers = session.scalars(query).all()
        if not triggers:
            return text_response("No triggers yet. Add one with `/triggers add <member_id> --prefix <text>`.")

        lines = ["*Triggers:*"]
        for trigger in triggers:
            lines.append(f"• `{trigger.id}` {_describe(trigger)} → {self._member_label(trigger.member)}")
        return text_response("\n".join(lines))
