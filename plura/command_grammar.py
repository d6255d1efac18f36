# plura/command_grammar.py
"""
Declarative grammar for the slash commands.

    plura <verb> <sub-verb> [arguments]

Branch nodes carry `subcommands`, leaf nodes carry `args` and the structured
command model they build. Nothing here parses anything; see
command_translator.py for the matcher.
"""

from dataclasses import dataclass
from typing import Optional, Tuple, Type

from plura import commands as c

PROGRAM_NAME = "plura"
VERSION = "0.1.0"


@dataclass(frozen=True)
class ArgSpec:
    # model field the value lands in
    field: str
    help: str
    # "--long" for flags, None for positionals
    long: Optional[str] = None
    required: bool = False
    # takes every following token up to the next flag, joined with spaces
    variadic: bool = False
    # flag without a value, sets the field to True
    switch: bool = False

    @property
    def is_flag(self) -> bool:
        return self.long is not None

    @property
    def value_name(self) -> str:
        return self.field.upper()

    def usage(self) -> str:
        dots = "..." if self.variadic else ""
        if self.is_flag:
            if self.switch:
                return self.long
            return f"{self.long} <{self.value_name}>{dots}"
        return f"<{self.value_name}>{dots}"


@dataclass(frozen=True)
class CommandSpec:
    name: str
    about: str
    subcommands: Tuple["CommandSpec", ...] = ()
    args: Tuple[ArgSpec, ...] = ()
    model: Optional[Type[c.StructuredCommand]] = None
    version: Optional[str] = None

    @property
    def is_branch(self) -> bool:
        return bool(self.subcommands)

    def find(self, name: str) -> Optional["CommandSpec"]:
        for sub in self.subcommands:
            if sub.name == name:
                return sub
        return None

    @property
    def positionals(self) -> Tuple[ArgSpec, ...]:
        return tuple(a for a in self.args if not a.is_flag)

    @property
    def flags(self) -> Tuple[ArgSpec, ...]:
        return tuple(a for a in self.args if a.is_flag)


def _member_profile_flags(include_name: bool) -> Tuple[ArgSpec, ...]:
    flags = []
    if include_name:
        flags.append(ArgSpec("name", "The member's new name", long="--name", variadic=True))
    flags.extend([
        ArgSpec("display_name", "The name shown on proxied messages", long="--display-name", variadic=True),
        ArgSpec("pronouns", "The member's pronouns", long="--pronouns", variadic=True),
        ArgSpec("avatar_url", "URL of the member's profile picture", long="--avatar-url"),
        ArgSpec("color", "The member's color as #RRGGBB", long="--color"),
    ])
    return tuple(flags)


_MEMBER_ID = ArgSpec("member_id", "The ID of the member", required=True)
_USER_FLAG = ArgSpec("user", "Another user's ID or @mention", long="--user")


MEMBERS = CommandSpec(
    name="members",
    about="Manage the members of your system",
    subcommands=(
        CommandSpec(
            name="add",
            about="Adds a new member to your system",
            args=(ArgSpec("name", "The member's name", required=True, variadic=True),)
                 + _member_profile_flags(include_name=False),
            model=c.AddMember,
        ),
        CommandSpec(
            name="delete",
            about="Deletes a member from your system",
            args=(_MEMBER_ID,),
            model=c.DeleteMember,
        ),
        CommandSpec(
            name="edit",
            about="Edits a member's profile",
            args=(_MEMBER_ID,) + _member_profile_flags(include_name=True),
            model=c.EditMember,
        ),
        CommandSpec(
            name="info",
            about="Displays a member's profile",
            args=(_MEMBER_ID,),
            model=c.MemberInfo,
        ),
        CommandSpec(
            name="list",
            about="Lists the members of a system",
            args=(_USER_FLAG,),
            model=c.ListMembers,
        ),
    ),
)

SYSTEM = CommandSpec(
    name="system",
    about="Manage your system",
    subcommands=(
        CommandSpec(
            name="create",
            about="Creates a new system",
            args=(ArgSpec("name", "The name of the system", required=True, variadic=True),),
            model=c.CreateSystem,
        ),
        CommandSpec(
            name="rename",
            about="Renames your system",
            args=(ArgSpec("name", "The new name of the system", required=True, variadic=True),),
            model=c.RenameSystem,
        ),
        CommandSpec(
            name="info",
            about="Displays information about a system",
            args=(_USER_FLAG,),
            model=c.SystemInfo,
        ),
        CommandSpec(
            name="switch",
            about="Changes the currently fronting member",
            args=(_MEMBER_ID,),
            model=c.SwitchMember,
        ),
        CommandSpec(
            name="switch-out",
            about="Stops fronting as any member",
            model=c.SwitchOut,
        ),
        CommandSpec(
            name="delete",
            about="Deletes your system and all of its members",
            args=(ArgSpec("confirm", "Confirm the deletion", long="--confirm", switch=True),),
            model=c.DeleteSystem,
        ),
    ),
)

TRIGGERS = CommandSpec(
    name="triggers",
    about="Manage the triggers that pick which member sends a message",
    subcommands=(
        CommandSpec(
            name="add",
            about="Adds a new trigger to a member",
            args=(
                _MEMBER_ID,
                ArgSpec("prefix", "Text a message starts with", long="--prefix"),
                ArgSpec("suffix", "Text a message ends with", long="--suffix"),
            ),
            model=c.AddTrigger,
        ),
        CommandSpec(
            name="edit",
            about="Edits a trigger",
            args=(
                ArgSpec("trigger_id", "The ID of the trigger", required=True),
                ArgSpec("prefix", "New prefix", long="--prefix"),
                ArgSpec("suffix", "New suffix", long="--suffix"),
            ),
            model=c.EditTrigger,
        ),
        CommandSpec(
            name="delete",
            about="Deletes a trigger",
            args=(ArgSpec("trigger_id", "The ID of the trigger", required=True),),
            model=c.DeleteTrigger,
        ),
        CommandSpec(
            name="list",
            about="Lists your triggers",
            args=(ArgSpec("member_id", "Only list the triggers of this member"),),
            model=c.ListTriggers,
        ),
    ),
)

ALIASES = CommandSpec(
    name="aliases",
    about="Manage the aliases that pick which member sends a message",
    subcommands=(
        CommandSpec(
            name="add",
            about="Adds a new alias to a member",
            args=(
                _MEMBER_ID,
                ArgSpec("alias", "The alias text", required=True, variadic=True),
            ),
            model=c.AddAlias,
        ),
        CommandSpec(
            name="delete",
            about="Deletes an alias",
            args=(ArgSpec("alias_id", "The ID of the alias", required=True),),
            model=c.DeleteAlias,
        ),
        CommandSpec(
            name="list",
            about="Lists your aliases",
            args=(ArgSpec("member_id", "Only list the aliases of this member"),),
            model=c.ListAliases,
        ),
    ),
)

EXPLAIN = CommandSpec(
    name="explain",
    about="Provides an explanation of this bot",
    model=c.Explain,
)

GRAMMAR = CommandSpec(
    name=PROGRAM_NAME,
    about="Post messages as the members of your system",
    subcommands=(MEMBERS, SYSTEM, TRIGGERS, ALIASES, EXPLAIN),
    version=VERSION,
)
