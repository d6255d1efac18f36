import asyncio
import time
from urllib.parse import urlencode

import pytest
from fastapi.testclient import TestClient

from plura.command_dispatcher import GENERIC_ERROR_TEXT
from plura.slack_signature import compute_signature
from plura.sync_flow import DIRECTION_PROMPT, DM_ONLY_TEXT, SYNC_HANDOFF_ERROR_TEXT
from server import create_app


@pytest.fixture
def ready():
    return []


@pytest.fixture
def client(settings, session_factory, store, ready) -> TestClient:
    app = create_app(
        settings=settings,
        session_factory=session_factory,
        conversations=store,
        on_sync_ready=ready.append,
    )
    return TestClient(app)


def signed_post(client: TestClient, settings, fields, timestamp=None, signature=None):
    body = urlencode(fields).encode("utf-8")
    timestamp = timestamp or str(int(time.time()))
    signature = signature or compute_signature(settings.SLACK_SIGNING_SECRET, timestamp, body)
    return client.post(
        "/command",
        content=body,
        headers={
            "Content-Type": "application/x-www-form-urlencoded",
            "X-Slack-Request-Timestamp": timestamp,
            "X-Slack-Signature": signature,
        },
    )


def slash(command, text, user_id="U100", channel_id="C100"):
    return {
        "command": command,
        "text": text,
        "user_id": user_id,
        "channel_id": channel_id,
        "channel_name": "general",
        "trigger_id": "T1",
    }


def test_health(client) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_missing_signature_is_rejected(client) -> None:
    response = client.post("/command", content=urlencode(slash("/members", "help")))
    assert response.status_code == 401


def test_tampered_signature_is_rejected(client, settings) -> None:
    response = signed_post(client, settings, slash("/members", "help"), signature="v0=deadbeef")
    assert response.status_code == 401


def test_stale_timestamp_is_rejected(client, settings) -> None:
    stale = str(int(time.time()) - 3600)
    response = signed_post(client, settings, slash("/members", "help"), timestamp=stale)
    assert response.status_code == 401


def test_malformed_payload_is_rejected(client, settings) -> None:
    response = signed_post(client, settings, {"command": "/members", "text": "help"})
    assert response.status_code == 400


def test_members_help(client, settings) -> None:
    response = signed_post(client, settings, slash("/members", "help"))

    assert response.status_code == 200
    payload = response.json()
    assert payload["response_type"] == "ephemeral"
    assert "Usage: plura members <COMMAND>" in payload["text"]
    assert payload["blocks"][0]["type"] == "section"


def test_explain_is_posted_in_channel(client, settings) -> None:
    payload = signed_post(client, settings, slash("/explain", "")).json()

    assert payload["response_type"] == "in_channel"
    assert "blocks" not in payload


def test_create_system_then_add_member(client, settings) -> None:
    created = signed_post(client, settings, slash("/system", "create The Crew")).json()
    assert "The Crew" in created["text"]

    added = signed_post(client, settings, slash("/members", "add Alice --pronouns she/her")).json()
    assert "Alice (`1`) added" in added["text"]

    listing = signed_post(client, settings, slash("/members", "list")).json()
    assert "Alice (`1`)" in listing["text"]


def test_domain_failure_is_masked(settings, store) -> None:
    def broken_factory():
        raise RuntimeError("database unreachable")

    client = TestClient(create_app(settings=settings, session_factory=broken_factory, conversations=store))
    payload = signed_post(client, settings, slash("/members", "list")).json()

    assert payload["text"] == GENERIC_ERROR_TEXT


def test_sync_outside_dm_is_redirected(client, settings, store) -> None:
    payload = signed_post(client, settings, slash("/sync", "pk_to_plura", channel_id="C100")).json()

    assert payload == {"response_type": "ephemeral", "text": DM_ONLY_TEXT}
    assert len(store) == 0


def test_sync_conversation_in_dm(client, settings, store, ready) -> None:
    def say(text):
        return signed_post(client, settings, slash("/sync", text, channel_id="D100")).json()["text"]

    assert say("") == DIRECTION_PROMPT
    say("sp_to_plura")
    assert say("all") == "Please provide your SimplyPlural token."
    assert say("sp-secret") == "Please provide your PluralKit token."

    summary = say("pk-secret")

    assert summary.startswith("Syncing!")
    assert "secret" not in summary
    assert "U100" not in store
    assert len(ready) == 1
    assert ready[0].sp_token == "sp-secret"
    assert ready[0].pk_token == "pk-secret"


def test_failed_sync_hand_off_still_answers(settings, store, caplog) -> None:
    def broken_hook(request):
        raise RuntimeError("job queue unavailable")

    client = TestClient(create_app(settings=settings, session_factory=lambda: None, conversations=store,
                                   on_sync_ready=broken_hook))
    for text in ("pk_to_plura", "all", "a"):
        signed_post(client, settings, slash("/sync", text, channel_id="D1"))

    response = signed_post(client, settings, slash("/sync", "b", channel_id="D1"))

    assert response.status_code == 200
    assert response.json() == {"response_type": "ephemeral", "text": SYNC_HANDOFF_ERROR_TEXT}
    assert "U100" not in store
    failures = [r for r in caplog.records if "hand-off failed" in r.getMessage()]
    assert len(failures) == 1
    assert failures[0].exc_info is not None


def test_sync_hand_off_runs_off_the_event_loop(settings, store) -> None:
    loops = []

    def hook(request):
        try:
            loops.append(asyncio.get_running_loop())
        except RuntimeError:
            loops.append(None)

    client = TestClient(create_app(settings=settings, session_factory=lambda: None, conversations=store,
                                   on_sync_ready=hook))
    for text in ("sp_to_plura", "members", "a", "b"):
        signed_post(client, settings, slash("/sync", text, channel_id="D1"))

    assert loops == [None]


def test_undecodable_body_is_rejected(client, settings) -> None:
    body = b"command=%2Fmembers&text=\xff\xfe"
    timestamp = str(int(time.time()))
    response = client.post(
        "/command",
        content=body,
        headers={
            "Content-Type": "application/x-www-form-urlencoded",
            "X-Slack-Request-Timestamp": timestamp,
            "X-Slack-Signature": compute_signature(settings.SLACK_SIGNING_SECRET, timestamp, body),
        },
    )
    assert response.status_code == 400
