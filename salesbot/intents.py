"""Prefix-table intent classification for inbound chat text.

Intents are decided from a fixed table of marker words, in this order:
    ORDER:   "下單 <name> x <qty>" (also "order", with x/X/*/＊ as separator)
    CODE:    "查編號 <names...>"
    RECENT:  "最近查詢" on its own
    QUERY:   any price/stock marker, or a message with several lines/items
    HELP:    everything else
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from .keywords import (
    CODE_MARKERS,
    ORDER_MARKERS,
    PRICE_MARKERS,
    STOCK_MARKERS,
    compile_marker_pattern,
)

RECENT_MARKERS = ["最近查詢", "recent"]
QUANTITY_SEPARATORS = "xX＊*×"

PRICE_RE = compile_marker_pattern(PRICE_MARKERS)
STOCK_RE = compile_marker_pattern(STOCK_MARKERS)
ORDER_RE = compile_marker_pattern(ORDER_MARKERS)
CODE_RE = compile_marker_pattern(CODE_MARKERS)
MULTI_ITEM_RE = re.compile(r"[\r\n\u2028\u2029,，、;；]")


class IntentKind(Enum):
    ORDER = "order"
    CODE_LOOKUP = "code_lookup"
    RECENT = "recent"
    QUERY = "query"
    HELP = "help"


@dataclass
class IntentDecision:
    """Routing decision plus the slots the core needs."""
    kind: IntentKind
    keyword_text: str = ""
    wants_price: bool = False
    wants_stock: bool = False
    quantity: Optional[int] = None


def _strip_prefix(pattern: "re.Pattern[str]", text: str) -> Optional[str]:
    match = pattern.match(text)
    if not match:
        return None
    return text[match.end():].strip()


def parse_order(body: str) -> Tuple[str, Optional[int]]:
    """Purpose: Split an order body "<name> x <qty>" into name and quantity.
    Inputs/Outputs: Input is the text after the order marker; output is (name, qty),
        qty None when no trailing "x <digits>" is present.
    Side Effects / State: None.
    Dependencies: Uses QUANTITY_SEPARATORS; scans from the right so names that
        contain an "x" still parse.
    Failure Modes: Non-digit quantities yield (body, None).
    If Removed: Orders cannot be placed from chat.
    Testing Notes: "Fox Box x 3" -> ("Fox Box", 3); "Fox Box" -> ("Fox Box", None).
    """
    # Walk separators right-to-left until the tail is a plain integer.
    for position in range(len(body) - 1, -1, -1):
        if body[position] not in QUANTITY_SEPARATORS:
            continue
        tail = body[position + 1:].strip()
        if tail.isdigit() and tail.isascii():
            return body[:position].strip(), int(tail)
    return body.strip(), None


def classify_intent(text: str) -> IntentDecision:
    """Purpose: Map raw message text to an IntentDecision via the prefix table.
    Inputs/Outputs: Input is the raw text; output is an IntentDecision.
    Side Effects / State: None.
    Dependencies: Uses the marker patterns from keywords and parse_order.
    Failure Modes: Unrecognized text becomes HELP; never raises.
    If Removed: The webhook cannot tell orders from lookups.
    Testing Notes: "查價 A\\n庫存 B" -> QUERY with both flags set.
    """
    # Explicit prefixes first, then marker search, then the multi-line fallback.
    raw = (text or "").strip()
    if not raw:
        return IntentDecision(kind=IntentKind.HELP)

    order_body = _strip_prefix(ORDER_RE, raw)
    if order_body is not None:
        name, quantity = parse_order(order_body)
        return IntentDecision(kind=IntentKind.ORDER, keyword_text=name, quantity=quantity)

    code_body = _strip_prefix(CODE_RE, raw)
    if code_body is not None:
        return IntentDecision(kind=IntentKind.CODE_LOOKUP, keyword_text=code_body)

    if raw.lower() in {marker.lower() for marker in RECENT_MARKERS}:
        return IntentDecision(kind=IntentKind.RECENT)

    wants_price = bool(PRICE_RE.search(raw))
    wants_stock = bool(STOCK_RE.search(raw))
    if wants_price or wants_stock or MULTI_ITEM_RE.search(raw):
        return IntentDecision(
            kind=IntentKind.QUERY,
            keyword_text=raw,
            wants_price=wants_price,
            wants_stock=wants_stock,
        )
    return IntentDecision(kind=IntentKind.HELP, keyword_text=raw)
