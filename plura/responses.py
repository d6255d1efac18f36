# plura/responses.py

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class ResponseType(str, Enum):
    EPHEMERAL = "ephemeral"
    IN_CHANNEL = "in_channel"


class CommandResponse(BaseModel):
    """
    Body returned to Slack for a slash command.
    Either `text`, `blocks`, or both (text is then the notification fallback).
    """
    response_type: ResponseType = ResponseType.EPHEMERAL
    text: Optional[str] = None
    blocks: Optional[List[Dict[str, Any]]] = None

    def to_slack(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


def escape_mrkdwn(text: str) -> str:
    # the three characters Slack reserves for its own markup
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def text_response(text: str, response_type: ResponseType = ResponseType.EPHEMERAL) -> CommandResponse:
    return CommandResponse(response_type=response_type, text=text)


def markdown_section(text: str) -> Dict[str, Any]:
    return {"type": "section", "text": {"type": "mrkdwn", "text": text}}


def fields_section(fields: Dict[str, str]) -> Dict[str, Any]:
    return {
        "type": "section",
        "fields": [
            {"type": "mrkdwn", "text": f"*{label}*\n{value}"}
            for label, value in fields.items()
        ],
    }


def code_block_response(text: str) -> CommandResponse:
    return CommandResponse(
        text=text,
        blocks=[markdown_section(f"```{escape_mrkdwn(text)}```")],
    )
