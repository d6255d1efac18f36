# plura/command_translator.py
"""
Turns a slash-command invocation into a structured command.

The invocation is rebuilt as one line

    plura <command-without-slash> <text>

and split on whitespace (no shell quoting), then matched against the grammar
tree in command_grammar.py: verb, then sub-verb, then the leaf's arguments.

The result is either a StructuredCommand or a ParseFailure. A failure always
carries the text to show the user: help for help/version requests, an
`error: ...` block with the usage line for everything else.
"""

import difflib
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple, Union

from pydantic import ValidationError

from plura.command_grammar import GRAMMAR, ArgSpec, CommandSpec
from plura.commands import StructuredCommand

HELP_FLAGS = ("-h", "--help")
VERSION_FLAGS = ("-V", "--version")


class ParseFailureKind(Enum):
    DISPLAY_HELP = "display_help"
    DISPLAY_HELP_ON_MISSING_ARGUMENT_OR_SUBCOMMAND = "display_help_on_missing_argument_or_subcommand"
    DISPLAY_VERSION = "display_version"
    INVALID_SUBCOMMAND = "invalid_subcommand"
    UNKNOWN_ARGUMENT = "unknown_argument"
    MISSING_REQUIRED_ARGUMENT = "missing_required_argument"
    NO_VALUE = "no_value"
    ARGUMENT_CONFLICT = "argument_conflict"
    VALUE_VALIDATION = "value_validation"

    @property
    def is_user_error(self) -> bool:
        return self not in (
            ParseFailureKind.DISPLAY_HELP,
            ParseFailureKind.DISPLAY_HELP_ON_MISSING_ARGUMENT_OR_SUBCOMMAND,
            ParseFailureKind.DISPLAY_VERSION,
        )


@dataclass(frozen=True)
class ParseFailure:
    kind: ParseFailureKind
    message: str


TranslationResult = Union[StructuredCommand, ParseFailure]


def assemble_tokens(command: str, text: Optional[str], program: str = GRAMMAR.name) -> List[str]:
    formatted_command = command.lstrip("/")
    line = f"{program} {formatted_command}" if text is None else f"{program} {formatted_command} {text}"
    return line.split()


def translate(command: str, text: Optional[str] = None, grammar: CommandSpec = GRAMMAR) -> TranslationResult:
    tokens = assemble_tokens(command, text, grammar.name)
    return _match(grammar, [grammar.name], tokens[1:])


# -----------------------
# Matcher
# -----------------------

def _looks_like_flag(token: str) -> bool:
    return token.startswith("-") and len(token) > 1


def _match(node: CommandSpec, path: List[str], tokens: Sequence[str]) -> TranslationResult:
    if node.is_branch:
        return _match_branch(node, path, tokens)
    return _match_leaf(node, path, tokens)


def _match_branch(node: CommandSpec, path: List[str], tokens: Sequence[str]) -> TranslationResult:
    if not tokens:
        return ParseFailure(
            ParseFailureKind.DISPLAY_HELP_ON_MISSING_ARGUMENT_OR_SUBCOMMAND,
            render_help(node, path),
        )

    head, rest = tokens[0], tokens[1:]

    if head in HELP_FLAGS:
        return ParseFailure(ParseFailureKind.DISPLAY_HELP, render_help(node, path))
    if head == "help":
        return _help_for_path(node, path, rest)
    if node.version and head in VERSION_FLAGS:
        return ParseFailure(ParseFailureKind.DISPLAY_VERSION, f"{path[0]} {node.version}")
    if _looks_like_flag(head):
        return _error(ParseFailureKind.UNKNOWN_ARGUMENT, f"unexpected argument '{head}' found", node, path)

    sub = node.find(head)
    if sub is None:
        return _invalid_subcommand(node, path, head)
    return _match(sub, path + [sub.name], rest)


def _help_for_path(node: CommandSpec, path: List[str], names: Sequence[str]) -> ParseFailure:
    for name in names:
        sub = node.find(name) if node.is_branch else None
        if sub is None:
            return _invalid_subcommand(node, path, name)
        node, path = sub, path + [sub.name]
    return ParseFailure(ParseFailureKind.DISPLAY_HELP, render_help(node, path))


def _invalid_subcommand(node: CommandSpec, path: List[str], name: str) -> ParseFailure:
    message = f"unrecognized subcommand '{name}'"
    choices = [sub.name for sub in node.subcommands] + ["help"]
    close = difflib.get_close_matches(name, choices, n=1)
    if close:
        message += f"\n\n  tip: a similar subcommand exists: '{close[0]}'"
    return _error(ParseFailureKind.INVALID_SUBCOMMAND, message, node, path)


def _take_values(tokens: Sequence[str], start: int, variadic: bool) -> Tuple[List[str], int]:
    """Collect values from tokens[start:] up to the next flag; one value unless variadic."""
    taken = []
    i = start
    while i < len(tokens) and not _looks_like_flag(tokens[i]):
        taken.append(tokens[i])
        i += 1
        if not variadic:
            break
    return taken, i


def _match_leaf(node: CommandSpec, path: List[str], tokens: Sequence[str]) -> TranslationResult:
    if any(token in HELP_FLAGS for token in tokens):
        return ParseFailure(ParseFailureKind.DISPLAY_HELP, render_help(node, path))

    flags: Dict[str, ArgSpec] = {spec.long: spec for spec in node.flags}
    positionals = node.positionals
    values: Dict[str, object] = {}
    raw: Dict[str, str] = {}
    next_positional = 0

    i = 0
    while i < len(tokens):
        token = tokens[i]

        if _looks_like_flag(token):
            name, has_inline, inline = token.partition("=")
            spec = flags.get(name)
            if spec is None:
                return _error(ParseFailureKind.UNKNOWN_ARGUMENT, f"unexpected argument '{name}' found", node, path)
            if spec.field in values:
                return _error(
                    ParseFailureKind.ARGUMENT_CONFLICT,
                    f"the argument '{spec.usage()}' cannot be used multiple times",
                    node,
                    path,
                )

            if spec.switch:
                if has_inline:
                    return _error(
                        ParseFailureKind.UNKNOWN_ARGUMENT,
                        f"unexpected value '{inline}' for '{spec.long}' found; no more were expected",
                        node,
                        path,
                    )
                values[spec.field] = True
                i += 1
                continue

            if has_inline:
                taken = [inline] if inline else []
                i += 1
                if taken and spec.variadic:
                    more, i = _take_values(tokens, i, variadic=True)
                    taken.extend(more)
            else:
                taken, i = _take_values(tokens, i + 1, spec.variadic)

            if not taken:
                return _error(
                    ParseFailureKind.NO_VALUE,
                    f"a value is required for '{spec.usage()}' but none was supplied",
                    node,
                    path,
                )
            raw[spec.field] = values[spec.field] = " ".join(taken)
            continue

        if next_positional >= len(positionals):
            return _error(ParseFailureKind.UNKNOWN_ARGUMENT, f"unexpected argument '{token}' found", node, path)

        spec = positionals[next_positional]
        next_positional += 1
        taken, i = _take_values(tokens, i, spec.variadic)
        raw[spec.field] = values[spec.field] = " ".join(taken)

    missing = [spec for spec in node.args if spec.required and spec.field not in values]
    if missing:
        listing = "\n".join(f"  {spec.usage()}" for spec in missing)
        return _error(
            ParseFailureKind.MISSING_REQUIRED_ARGUMENT,
            f"the following required arguments were not provided:\n{listing}",
            node,
            path,
        )

    try:
        return node.model(**values)
    except ValidationError as exc:
        return _error(ParseFailureKind.VALUE_VALIDATION, _describe_validation_error(node, raw, exc), node, path)


def _describe_validation_error(node: CommandSpec, raw: Dict[str, str], exc: ValidationError) -> str:
    first = exc.errors()[0]
    reason = str(first.get("msg", "invalid value"))
    # pydantic prefixes ValueErrors raised from validators
    if reason.startswith("Value error, "):
        reason = reason[len("Value error, "):]

    loc = first.get("loc") or ()
    spec = next((a for a in node.args if loc and a.field == loc[0]), None)
    if spec is None:
        return f"invalid arguments: {reason}"
    return f"invalid value '{raw.get(spec.field, '')}' for '{spec.usage()}': {reason}"


# -----------------------
# Rendering
# -----------------------

def _error(kind: ParseFailureKind, message: str, node: CommandSpec, path: List[str]) -> ParseFailure:
    rendered = (
        f"error: {message}\n\n"
        f"Usage: {render_usage(node, path)}\n\n"
        "For more information, try '--help'."
    )
    return ParseFailure(kind, rendered)


def render_usage(node: CommandSpec, path: List[str]) -> str:
    parts = [" ".join(path)]
    if node.is_branch:
        parts.append("<COMMAND>")
        return " ".join(parts)

    optional_flags = [spec for spec in node.flags if not spec.required]
    if optional_flags:
        parts.append("[OPTIONS]")
    parts.extend(spec.usage() for spec in node.flags if spec.required)
    for spec in node.positionals:
        if spec.required:
            parts.append(spec.usage())
        else:
            parts.append(f"[{spec.value_name}]" + ("..." if spec.variadic else ""))
    return " ".join(parts)


def _section(title: str, rows: List[Tuple[str, str]]) -> List[str]:
    width = max(len(left) for left, _ in rows)
    lines = [f"{title}:"]
    for left, right in rows:
        lines.append(f"  {left.ljust(width)}  {right}")
    return lines


def render_help(node: CommandSpec, path: List[str]) -> str:
    lines = [node.about, "", f"Usage: {render_usage(node, path)}"]

    if node.is_branch:
        rows = [(sub.name, sub.about) for sub in node.subcommands]
        rows.append(("help", "Print this message or the help of the given subcommand(s)"))
        lines.append("")
        lines.extend(_section("Commands", rows))

    if node.positionals:
        lines.append("")
        lines.extend(_section("Arguments", [(spec.usage(), spec.help) for spec in node.positionals]))

    options = [(spec.usage(), spec.help) for spec in node.flags]
    options.append(("-h, --help", "Print help"))
    if node.version:
        options.append(("-V, --version", "Print version"))
    lines.append("")
    lines.extend(_section("Options", options))

    return "\n".join(lines)
