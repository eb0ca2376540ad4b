from __future__ import annotations

import base64
import hashlib
import hmac
import logging
from typing import List, Optional

import requests

from .config import Settings
from .errors import LineApiError
from .formatting import chunk_message
from .models import UserProfile

logger = logging.getLogger("salesbot.line")

API_BASE = "https://api.line.me/v2/bot"
MAX_MESSAGES_PER_REPLY = 5
REQUEST_TIMEOUT_SEC = 10


def verify_signature(body: bytes, signature: Optional[str], channel_secret: str) -> bool:
    """Purpose: Check the X-Line-Signature header against the raw request body.
    Inputs/Outputs: Inputs are raw body bytes, header value and channel secret; output
        is True when the HMAC-SHA256 digest matches.
    Side Effects / State: None.
    Dependencies: Uses hmac/hashlib/base64.
    Failure Modes: Missing signature or secret returns False.
    If Removed: Anyone could post forged events to the webhook.
    Testing Notes: Sign a body with a known secret and flip one byte to fail.
    """
    # Constant-time compare of base64 digests.
    if not signature or not channel_secret:
        return False
    digest = hmac.new(channel_secret.encode("utf-8"), body, hashlib.sha256).digest()
    expected = base64.b64encode(digest).decode("ascii")
    return hmac.compare_digest(expected, signature)


class LineClient:
    """Reply and profile calls against the LINE Messaging API."""

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None) -> None:
        self._settings = settings
        self._session = session or requests.Session()

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self._settings.channel_access_token}",
            "Content-Type": "application/json",
        }

    def verify(self, body: bytes, signature: Optional[str]) -> bool:
        return verify_signature(body, signature, self._settings.channel_secret)

    def build_messages(self, text: str) -> List[dict]:
        """Purpose: Chunk reply text into LINE text message objects.
        Inputs/Outputs: Input is the full reply; output is at most five message dicts.
        Side Effects / State: Logs a warning when chunks are dropped.
        Dependencies: Uses chunk_message and REPLY_CHUNK_SIZE from settings.
        Failure Modes: Chunks beyond MAX_MESSAGES_PER_REPLY are dropped.
        If Removed: Long replies fail with a 400 from the API.
        Testing Notes: A reply of 8000 chars yields 5 messages and a warning.
        """
        # The reply endpoint accepts five messages at most.
        chunks = chunk_message(text, self._settings.reply_chunk_size)
        if len(chunks) > MAX_MESSAGES_PER_REPLY:
            logger.warning("reply truncated chunks=%d max=%d", len(chunks), MAX_MESSAGES_PER_REPLY)
            chunks = chunks[:MAX_MESSAGES_PER_REPLY]
        return [{"type": "text", "text": chunk} for chunk in chunks]

    def reply_text(self, reply_token: str, text: str) -> None:
        """Purpose: Send a text reply for a webhook event.
        Inputs/Outputs: Inputs are the event reply token and reply text; no return.
        Side Effects / State: One HTTPS POST to the reply endpoint.
        Dependencies: Uses requests and build_messages.
        Failure Modes: Transport errors and non-2xx responses raise LineApiError.
        If Removed: Users never see an answer.
        Testing Notes: Use a fake session and assert the posted JSON payload.
        """
        # Empty replies are a no-op; LINE rejects empty messages.
        messages = self.build_messages(text)
        if not messages:
            return
        payload = {"replyToken": reply_token, "messages": messages}
        try:
            response = self._session.post(
                f"{API_BASE}/message/reply",
                json=payload,
                headers=self._headers(),
                timeout=REQUEST_TIMEOUT_SEC,
            )
        except requests.RequestException as exc:
            raise LineApiError(f"reply request failed: {exc}") from exc
        if response.status_code >= 400:
            raise LineApiError(f"reply rejected status={response.status_code} body={response.text[:200]}")
        logger.info("reply sent messages=%d", len(messages))

    def get_profile(self, user_id: str) -> UserProfile:
        try:
            response = self._session.get(
                f"{API_BASE}/profile/{user_id}",
                headers=self._headers(),
                timeout=REQUEST_TIMEOUT_SEC,
            )
        except requests.RequestException as exc:
            raise LineApiError(f"profile request failed: {exc}") from exc
        if response.status_code >= 400:
            raise LineApiError(f"profile rejected status={response.status_code}")
        return UserProfile.model_validate(response.json())

    def get_profile_safe(self, user_id: Optional[str]) -> UserProfile:
        """Best-effort profile; falls back to an empty display name."""
        if not user_id:
            return UserProfile(user_id="", display_name="")
        try:
            return self.get_profile(user_id)
        except (LineApiError, ValueError) as exc:
            logger.warning("profile lookup failed user=%s error=%s", user_id, exc)
            return UserProfile(user_id=user_id, display_name="")
