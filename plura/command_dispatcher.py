# plura/command_dispatcher.py
"""
Routes a structured command to exactly one domain handler.

    translate(...) -> StructuredCommand | ParseFailure
    CommandDispatcher.dispatch(command, ctx) -> CommandResponse   (raises CommandError)
    CommandDispatcher.process_command(...) -> CommandResponse     (never raises)

Handlers are injected per category. A handler failure is wrapped in a
CommandError tagged with the category that failed; process_command logs the
full chain and answers with a masked message, so every inbound command gets
exactly one response.
"""

import logging
import textwrap
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional, Protocol

from plura import commands as c
from plura.command_translator import ParseFailure, translate
from plura.responses import CommandResponse, ResponseType, code_block_response, text_response

logger = logging.getLogger("plura_commands")

GENERIC_ERROR_TEXT = "Error processing command! Logged to developers"

EXPLAIN_TEXT = textwrap.dedent("""\
    Plura is a bot that can replace user-sent messages under a "pseudo-account" of a system member's profile, using custom display information.

    This is useful for multiple people sharing one body (aka. systems), people who wish to role-play as different characters without having multiple Slack profiles, or anyone else who may want to post messages under a different identity from the same Slack account.

    Due to Slack's limitations, these messages will show up with the [APP] tag - however, they are not apps/bots. You can use message actions to find who the message was sent by.

    If you wish to use the bot yourself, you can start with `/system help` and `/members help`.
    """)


class CommandCategory(Enum):
    MEMBERS = "members"
    SYSTEM = "system"
    TRIGGERS = "triggers"
    ALIASES = "aliases"


# one entry per top-level verb that has a handler; Explain is answered here
CATEGORY_BY_VERB = {
    c.MemberCommand: CommandCategory.MEMBERS,
    c.SystemCommand: CommandCategory.SYSTEM,
    c.TriggerCommand: CommandCategory.TRIGGERS,
    c.AliasCommand: CommandCategory.ALIASES,
}


class CommandError(Exception):
    """A domain handler failed. The original exception is chained as __cause__."""

    def __init__(self, category: CommandCategory):
        self.category = category
        super().__init__(f"Error running the {category.value} command")


@dataclass(frozen=True)
class CommandContext:
    user_id: str
    channel_id: str
    channel_name: Optional[str] = None
    trigger_id: Optional[str] = None


class CommandHandler(Protocol):
    def run(self, command: c.StructuredCommand, ctx: CommandContext) -> CommandResponse:
        ...


def category_for(command: c.StructuredCommand) -> Optional[CommandCategory]:
    for verb, category in CATEGORY_BY_VERB.items():
        if isinstance(command, verb):
            return category
    return None


def explain() -> CommandResponse:
    return text_response(EXPLAIN_TEXT, ResponseType.IN_CHANNEL)


class CommandDispatcher:
    def __init__(self, handlers: Mapping[CommandCategory, CommandHandler]):
        missing = [cat.value for cat in CommandCategory if cat not in handlers]
        if missing:
            raise ValueError(f"No handler registered for: {', '.join(missing)}")
        self.handlers = dict(handlers)

    def dispatch(self, command: c.StructuredCommand, ctx: CommandContext) -> CommandResponse:
        if isinstance(command, c.Explain):
            return explain()

        category = category_for(command)
        if category is None:
            raise TypeError(f"Unhandled command type: {type(command).__name__}")

        try:
            return self.handlers[category].run(command, ctx)
        except Exception as e:
            raise CommandError(category) from e

    def process_command(self, command: str, text: Optional[str], ctx: CommandContext) -> CommandResponse:
        result = translate(command, text)

        if isinstance(result, ParseFailure):
            if result.kind.is_user_error:
                logger.debug("Error parsing command. Most likely user's fault: %s", result.kind.value)
            return code_block_response(result.message)

        logger.debug("Parsed command %r for user=%s channel=%s. Running...", result, ctx.user_id, ctx.channel_id)
        try:
            response = self.dispatch(result, ctx)
        except CommandError:
            logger.exception("Error running command %s for user=%s", command, ctx.user_id)
            return text_response(GENERIC_ERROR_TEXT)

        logger.debug("Command executed successfully")
        return response
