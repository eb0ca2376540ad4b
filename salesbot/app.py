from __future__ import annotations

import logging
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from .assistant import SalesAssistant
from .config import load_settings
from .errors import LineApiError
from .line_client import LineClient
from .models import WebhookRequest
from .recent_items import RecentItems
from .sheets_client import SheetsClient

BASE_DIR = Path(__file__).resolve().parent

ENV_PATH = BASE_DIR / ".env"
if ENV_PATH.exists():
    load_dotenv(ENV_PATH, override=True)

settings = load_settings()

log_level = getattr(logging, settings.log_level, logging.INFO)
if not logging.getLogger().handlers:
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

logging.getLogger("salesbot").setLevel(log_level)
logger = logging.getLogger("salesbot.app")

app = FastAPI(title="Salesbot LINE Assistant")

line_client = LineClient(settings)
sheets_client = SheetsClient(settings)
recent_items = RecentItems(max_items=settings.recent_items_max, max_users=settings.recent_users_max)
assistant = SalesAssistant(
    catalog=sheets_client,
    ledger=sheets_client,
    profile_lookup=line_client.get_profile_safe,
    recent=recent_items,
    threshold=settings.similarity_threshold,
    max_candidates=settings.max_candidates,
)


@app.get("/", include_in_schema=False, response_class=PlainTextResponse)
def index() -> str:
    return "salesbot-line running"


@app.post("/webhook")
async def webhook(request: Request) -> dict:
    """Purpose: Receive LINE webhook events and reply to each text message.
    Inputs/Outputs: Input is the raw signed request; output is an empty JSON ack.
    Side Effects / State: Calls Sheets and the LINE reply API per event.
    Dependencies: Uses LineClient.verify, WebhookRequest, SalesAssistant.
    Failure Modes: Bad signature -> 401; malformed JSON -> 400; a failed reply is
        logged and does not fail the other events.
    If Removed: The bot receives nothing.
    Testing Notes: Post a signed payload via TestClient with fake collaborators.
    """
    # Signature is computed over the raw bytes, so read them before parsing.
    # Sheets and LINE calls block, so they run in the threadpool.
    body = await request.body()
    if not line_client.verify(body, request.headers.get("x-line-signature")):
        raise HTTPException(status_code=401, detail="Invalid signature")
    try:
        payload = WebhookRequest.model_validate_json(body)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail="Invalid payload") from exc

    for event in payload.events:
        if not event.is_text_message() or not event.reply_token:
            continue
        context = await run_in_threadpool(assistant.handle_message, event.source.user_id, event.message.text or "")
        try:
            await run_in_threadpool(line_client.reply_text, event.reply_token, context.reply_text)
        except LineApiError:
            logger.exception("user=%s reply failed", event.source.user_id)
    return {}
