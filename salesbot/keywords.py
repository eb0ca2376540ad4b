"""Keyword splitting for multi-item chat queries.

A single chat message may carry several product names, one per line or joined by
commas/semicolons, and may repeat the intent word on every line. This module
removes the intent markers and cuts the rest into independent keywords.
"""

from __future__ import annotations

import re
from typing import Iterable, List, Pattern

PRICE_MARKERS = ["查價", "報價", "多少錢", "check price", "price check"]
STOCK_MARKERS = ["有沒有庫存", "有貨嗎", "庫存", "check stock", "stock check"]
ORDER_MARKERS = ["下單", "order"]
CODE_MARKERS = ["查編號", "check code"]

# Only lookup markers are stripped from keywords; order/code words are prefixes
# handled by the classifier, and "order" can start a product name.
QUERY_MARKERS = PRICE_MARKERS + STOCK_MARKERS

LINE_BREAK_RE = re.compile(r"\r\n|[\r\n\u2028\u2029]")
SEPARATOR_RE = re.compile(r"[\n,，、;；]+")
SEPARATOR_WITH_SPACE_RE = re.compile(r"[\n,，、;；\s]+")


def compile_marker_pattern(markers: Iterable[str]) -> Pattern[str]:
    """Purpose: Build one regex matching any marker at text start or after whitespace.
    Inputs/Outputs: Input is marker strings; output is a compiled case-insensitive pattern.
    Side Effects / State: None.
    Dependencies: Uses re; longest markers are tried first so "有沒有庫存" beats "庫存".
    Failure Modes: An empty marker list yields a pattern that never matches.
    If Removed: Intent words leak into keywords and every lookup misses.
    Testing Notes: "check price" must not match inside "recheck pricey".
    """
    # ASCII markers also need a word boundary on the right; CJK markers do not.
    alternatives = []
    for marker in sorted(set(markers), key=len, reverse=True):
        escaped = r"\s+".join(re.escape(word) for word in marker.split())
        if marker.isascii():
            escaped += r"(?![A-Za-z0-9])"
        alternatives.append(escaped)
    if not alternatives:
        return re.compile(r"(?!)")
    return re.compile(r"(?:^|(?<=\s))(?:" + "|".join(alternatives) + ")", re.IGNORECASE)


QUERY_MARKER_RE = compile_marker_pattern(QUERY_MARKERS)
CODE_LOOKUP_MARKER_RE = compile_marker_pattern(QUERY_MARKERS + CODE_MARKERS)


def strip_intent_markers(text: str, pattern: Pattern[str] = QUERY_MARKER_RE) -> str:
    """Replace every marker occurrence with a space."""
    return pattern.sub(" ", text or "")


def unify_line_breaks(text: str) -> str:
    return LINE_BREAK_RE.sub("\n", text)


def split_keywords(
    raw_text: str,
    split_on_whitespace: bool = False,
    markers: Pattern[str] = QUERY_MARKER_RE,
) -> List[str]:
    """Purpose: Split a raw chat message into independent, trimmed keywords.
    Inputs/Outputs: Input is message text; output is an ordered list of keywords with
        duplicates preserved.
    Side Effects / State: None; pure function.
    Dependencies: Uses strip_intent_markers, unify_line_breaks, SEPARATOR_RE.
    Failure Modes: Empty or separator-only text returns []; callers reply with a
        "no keyword" hint instead of treating it as an error.
    If Removed: Multi-line batch queries collapse into one unmatched keyword.
    Testing Notes: "check price\\nItem One\\nItem Two" -> ["Item One", "Item Two"].
    """
    # Markers first, then line breaks, then the separator class.
    cleaned = unify_line_breaks(strip_intent_markers(raw_text, markers))
    separator = SEPARATOR_WITH_SPACE_RE if split_on_whitespace else SEPARATOR_RE
    parts = [part.strip() for part in separator.split(cleaned)]
    return [part for part in parts if part]
