from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent


@dataclass(frozen=True)
class Settings:
    """Configuration container for LINE, Google Sheets, and matching limits."""
    channel_access_token: str
    channel_secret: str
    sheets_id: str
    google_credentials_json: str
    tab_products: str
    tab_orders: str
    similarity_threshold: float
    max_candidates: int
    reply_chunk_size: int
    recent_items_max: int
    recent_users_max: int
    log_level: str


def load_settings() -> Settings:
    """Purpose: Load configuration from environment variables and defaults.
    Inputs/Outputs: No inputs; returns a Settings instance.
    Side Effects / State: Reads environment variables.
    Dependencies: Uses os.getenv; app.py loads .env before calling this.
    Failure Modes: Invalid numeric env values raise ValueError; a threshold outside
        [0, 1] or a cap below its minimum raises ValueError.
    If Removed: App cannot reach LINE/Sheets or tune matching and fails at startup.
    Testing Notes: Verify defaults and overrides via monkeypatched environment.
    """
    # Read numeric limits first so a bad value fails fast.
    threshold = float(os.getenv("SIMILARITY_THRESHOLD", "0.6"))
    if not 0.0 <= threshold <= 1.0:
        raise ValueError(f"SIMILARITY_THRESHOLD must be within [0, 1], got {threshold}")
    max_candidates = int(os.getenv("MAX_CANDIDATES", "5"))
    if max_candidates < 2:
        raise ValueError(f"MAX_CANDIDATES must be at least 2, got {max_candidates}")
    recent_users_max = int(os.getenv("RECENT_USERS_MAX", "1000"))
    if recent_users_max < 1:
        raise ValueError(f"RECENT_USERS_MAX must be at least 1, got {recent_users_max}")

    return Settings(
        channel_access_token=os.getenv("CHANNEL_ACCESS_TOKEN", ""),
        channel_secret=os.getenv("CHANNEL_SECRET", ""),
        sheets_id=os.getenv("GOOGLE_SHEETS_ID", ""),
        google_credentials_json=os.getenv("GOOGLE_CREDENTIALS_JSON", ""),
        tab_products=os.getenv("SHEET_TAB_PRODUCTS") or "products",
        tab_orders=os.getenv("SHEET_TAB_ORDERS") or "orders",
        similarity_threshold=threshold,
        max_candidates=max_candidates,
        reply_chunk_size=int(os.getenv("REPLY_CHUNK_SIZE", "1400")),
        recent_items_max=int(os.getenv("RECENT_ITEMS_MAX", "10")),
        recent_users_max=recent_users_max,
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
