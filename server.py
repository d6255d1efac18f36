import asyncio
import logging
from typing import Callable, Optional
from urllib.parse import parse_qs

from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel, ValidationError

from plura.alias_commands import AliasCommands
from plura.command_dispatcher import CommandCategory, CommandContext, CommandDispatcher
from plura.conversation_store import SyncConversationStore
from plura.db_helpers import build_db_session_factory
from plura.member_commands import MemberCommands
from plura.responses import text_response
from plura.settings import Settings
from plura.slack_signature import verify_request
from plura.sync_flow import handle_sync_command
from plura.sync_models import SyncRequest
from plura.system_commands import SystemCommands
from plura.trigger_commands import TriggerCommands

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)

logger = logging.getLogger("plura_server")

SYNC_COMMAND = "sync"


class SlackCommandEvent(BaseModel):
    command: str
    text: Optional[str] = None
    user_id: str
    channel_id: str
    channel_name: Optional[str] = None
    trigger_id: Optional[str] = None


def build_dispatcher(session_factory) -> CommandDispatcher:
    return CommandDispatcher({
        CommandCategory.MEMBERS: MemberCommands(session_factory),
        CommandCategory.SYSTEM: SystemCommands(session_factory),
        CommandCategory.TRIGGERS: TriggerCommands(session_factory),
        CommandCategory.ALIASES: AliasCommands(session_factory),
    })


def log_sync_request(request: SyncRequest) -> None:
    # SyncRequest's repr leaves the tokens out
    logger.info("Sync job ready: %r", request)


def create_app(
    settings: Optional[Settings] = None,
    session_factory=None,
    conversations: Optional[SyncConversationStore] = None,
    on_sync_ready: Optional[Callable[[SyncRequest], None]] = log_sync_request,
) -> FastAPI:
    settings = settings or Settings()
    if session_factory is None:
        session_factory = build_db_session_factory(settings.DATABASE_URL, settings.ENCRYPTION_KEY)

    app = FastAPI(title="plura")
    app.state.settings = settings
    app.state.dispatcher = build_dispatcher(session_factory)
    app.state.conversations = conversations if conversations is not None else SyncConversationStore()

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.post("/command")
    async def process_command_event(request: Request):
        body = await request.body()
        if not verify_request(
            settings.SLACK_SIGNING_SECRET,
            request.headers.get("X-Slack-Request-Timestamp"),
            request.headers.get("X-Slack-Signature"),
            body,
        ):
            logger.warning("Rejected /command request with a bad or missing signature")
            raise HTTPException(status_code=401, detail="Invalid request signature")

        try:
            form = {k: v[0] for k, v in parse_qs(body.decode("utf-8"), keep_blank_values=True).items()}
            event = SlackCommandEvent(**form)
        except (UnicodeDecodeError, ValidationError) as e:
            logger.info("Malformed slash command payload: %s", e)
            raise HTTPException(status_code=400, detail="Malformed slash command payload")

        logger.info("Received %s request from user=%s", event.command, event.user_id)

        if event.command.lstrip("/") == SYNC_COMMAND:
            # on_sync_ready may block on job submission
            reply = await asyncio.to_thread(
                handle_sync_command,
                event.user_id,
                event.channel_id,
                event.text,
                app.state.conversations,
                on_sync_ready,
            )
            return text_response(reply).to_slack()

        ctx = CommandContext(
            user_id=event.user_id,
            channel_id=event.channel_id,
            channel_name=event.channel_name,
            trigger_id=event.trigger_id,
        )
        # handlers block on the database
        response = await asyncio.to_thread(
            app.state.dispatcher.process_command, event.command, event.text, ctx
        )
        return response.to_slack()

    return app


def main() -> None:
    import uvicorn

    settings = Settings()
    logging.getLogger().setLevel(settings.LOG_LEVEL)
    app = create_app(settings)
    logger.info("Slack bot is running")
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    main()
