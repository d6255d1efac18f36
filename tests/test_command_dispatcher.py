import logging
from typing import List, Optional

import pytest

from plura import commands as c
from plura.command_dispatcher import (
    CATEGORY_BY_VERB,
    GENERIC_ERROR_TEXT,
    CommandCategory,
    CommandDispatcher,
    CommandError,
    category_for,
)
from plura.command_grammar import GRAMMAR
from plura.responses import CommandResponse, ResponseType, text_response


class RecordingHandler:
    def __init__(self, name: str, error: Optional[Exception] = None) -> None:
        self.name = name
        self.error = error
        self.calls: List[c.StructuredCommand] = []

    def run(self, command, ctx) -> CommandResponse:
        self.calls.append(command)
        if self.error is not None:
            raise self.error
        return text_response(f"{self.name} ran")


@pytest.fixture
def handlers():
    return {category: RecordingHandler(category.value) for category in CommandCategory}


@pytest.fixture
def dispatcher(handlers) -> CommandDispatcher:
    return CommandDispatcher(handlers)


def _total_calls(handlers) -> int:
    return sum(len(h.calls) for h in handlers.values())


def test_every_leaf_model_maps_to_a_category_or_explain() -> None:
    def leaves(node):
        if node.is_branch:
            for sub in node.subcommands:
                yield from leaves(sub)
        else:
            yield node

    for leaf in leaves(GRAMMAR):
        assert leaf.model is not None, leaf.name
        if leaf.model is c.Explain:
            continue
        assert category_for(leaf.model.model_construct()) is not None, leaf.model.__name__


def test_each_category_has_one_verb() -> None:
    assert sorted(cat.value for cat in CATEGORY_BY_VERB.values()) == sorted(cat.value for cat in CommandCategory)


def test_dispatcher_requires_every_handler(handlers) -> None:
    del handlers[CommandCategory.ALIASES]
    with pytest.raises(ValueError, match="aliases"):
        CommandDispatcher(handlers)


@pytest.mark.parametrize(
    "command, category",
    [
        (c.AddMember(name="Bob"), CommandCategory.MEMBERS),
        (c.SwitchOut(), CommandCategory.SYSTEM),
        (c.ListTriggers(), CommandCategory.TRIGGERS),
        (c.DeleteAlias(alias_id=1), CommandCategory.ALIASES),
    ],
)
def test_dispatch_runs_exactly_one_handler(dispatcher, handlers, ctx, command, category) -> None:
    response = dispatcher.dispatch(command, ctx)

    assert response.text == f"{category.value} ran"
    assert handlers[category].calls == [command]
    assert _total_calls(handlers) == 1


def test_explain_bypasses_handlers(dispatcher, handlers, ctx) -> None:
    response = dispatcher.dispatch(c.Explain(), ctx)

    assert response.response_type is ResponseType.IN_CHANNEL
    assert "/system help" in response.text
    assert _total_calls(handlers) == 0


def test_handler_failure_is_wrapped_with_category(handlers, ctx) -> None:
    boom = RuntimeError("database is on fire")
    handlers[CommandCategory.TRIGGERS] = RecordingHandler("triggers", error=boom)
    dispatcher = CommandDispatcher(handlers)

    with pytest.raises(CommandError) as excinfo:
        dispatcher.dispatch(c.DeleteTrigger(trigger_id=3), ctx)

    assert excinfo.value.category is CommandCategory.TRIGGERS
    assert excinfo.value.__cause__ is boom


def test_process_command_renders_help_without_running_handlers(dispatcher, handlers, ctx, caplog) -> None:
    caplog.set_level(logging.DEBUG, logger="plura_commands")

    response = dispatcher.process_command("/members", "help", ctx)

    assert "Usage: plura members <COMMAND>" in response.text
    assert response.blocks[0]["type"] == "section"
    assert "&lt;COMMAND&gt;" in response.blocks[0]["text"]["text"]
    assert _total_calls(handlers) == 0
    assert not any("user's fault" in r.getMessage() for r in caplog.records)


def test_process_command_logs_user_parse_errors(dispatcher, handlers, ctx, caplog) -> None:
    caplog.set_level(logging.DEBUG, logger="plura_commands")

    response = dispatcher.process_command("/members", "frobnicate", ctx)

    assert "unrecognized subcommand 'frobnicate'" in response.text
    assert _total_calls(handlers) == 0
    assert any("user's fault" in r.getMessage() for r in caplog.records)


def test_process_command_masks_domain_errors(handlers, ctx, caplog) -> None:
    handlers[CommandCategory.MEMBERS] = RecordingHandler("members", error=RuntimeError("secret detail"))
    dispatcher = CommandDispatcher(handlers)

    response = dispatcher.process_command("/members", "add Bob", ctx)

    assert response.text == GENERIC_ERROR_TEXT
    assert "secret detail" not in response.text
    errors = [r for r in caplog.records if r.levelno == logging.ERROR]
    assert len(errors) == 1
    assert errors[0].exc_info is not None


def test_process_command_returns_handler_response(dispatcher, handlers, ctx) -> None:
    response = dispatcher.process_command("/system", "create Us", ctx)

    assert response.text == "system ran"
    assert handlers[CommandCategory.SYSTEM].calls == [c.CreateSystem(name="Us")]
