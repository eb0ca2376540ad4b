from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from .catalog import Product
from .formatting import (
    CODE_LOOKUP_EMPTY_REPLY,
    NO_KEYWORD_REPLY,
    format_candidates,
    format_code_line,
    format_not_found,
    format_product,
)
from .keywords import CODE_LOOKUP_MARKER_RE, split_keywords
from .matching import (
    DEFAULT_MAX_CANDIDATES,
    DEFAULT_SIMILARITY_THRESHOLD,
    MatchOutcome,
    MultiMatch,
    NoMatch,
    SingleMatch,
    resolve,
)
from .recent_items import RecentItems

logger = logging.getLogger("salesbot.orchestrator")


def format_outcome(keyword: str, outcome: MatchOutcome, wants_price: bool, wants_stock: bool) -> str:
    """Purpose: Render one keyword's MatchOutcome as a reply block.
    Inputs/Outputs: Inputs are the verbatim keyword, its outcome and the intent flags;
        output is the block text.
    Side Effects / State: None.
    Dependencies: Uses format_not_found, format_candidates, format_product.
    Failure Modes: Unknown outcome types raise TypeError.
    If Removed: Batch, single and order flows cannot describe a lookup result.
    Testing Notes: Not-found blocks quote the keyword as typed, not normalized.
    """
    # One branch per tag of the union.
    if isinstance(outcome, NoMatch):
        return format_not_found(keyword)
    if isinstance(outcome, MultiMatch):
        return format_candidates(outcome.products)
    if isinstance(outcome, SingleMatch):
        return format_product(outcome.product, wants_price, wants_stock)
    raise TypeError(f"unexpected match outcome: {outcome!r}")


def resolve_batch(
    catalog: Sequence[Product],
    raw_text: str,
    wants_price: bool,
    wants_stock: bool,
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
    max_candidates: int = DEFAULT_MAX_CANDIDATES,
    recent: Optional[RecentItems] = None,
    user_id: str = "",
) -> List[str]:
    """Purpose: Resolve every keyword in a multi-item message into reply blocks.
    Inputs/Outputs: Inputs are a catalog snapshot, raw keyword text, intent flags and
        resolver limits; output is one block per keyword in message order.
    Side Effects / State: Records single matches in `recent` when it is supplied.
    Dependencies: Uses split_keywords, resolve and format_outcome.
    Failure Modes: No keywords yields a single "no keyword" block, never [].
    If Removed: Multi-line price/stock queries cannot be answered.
    Testing Notes: Mixed found/missing/ambiguous keywords keep input order.
    """
    # Split once, then resolve each keyword independently.
    keywords = split_keywords(raw_text)
    if not keywords:
        return [NO_KEYWORD_REPLY]

    blocks: List[str] = []
    for keyword in keywords:
        outcome = resolve(catalog, keyword, threshold=threshold, max_candidates=max_candidates)
        if isinstance(outcome, SingleMatch) and recent is not None:
            recent.record(user_id, outcome.product)
        blocks.append(format_outcome(keyword, outcome, wants_price, wants_stock))
    logger.debug("user=%s keywords=%d blocks=%d", user_id, len(keywords), len(blocks))
    return blocks


def resolve_codes(
    catalog: Sequence[Product],
    raw_text: str,
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
    max_candidates: int = DEFAULT_MAX_CANDIDATES,
) -> List[str]:
    """Purpose: Answer a code lookup with one "code name" line per found keyword.
    Inputs/Outputs: Inputs are a catalog and raw text; output is a list of lines.
    Side Effects / State: None.
    Dependencies: Uses split_keywords (whitespace-splitting) and resolve.
    Failure Modes: Misses are skipped; if nothing resolves the single line is
        CODE_LOOKUP_EMPTY_REPLY.
    If Removed: Staff cannot paste a list of titles and get codes back.
    Testing Notes: Ambiguous keywords contribute their first candidate only.
    """
    # Codes are pasted as space-separated lists, so whitespace splits too.
    lines: List[str] = []
    for keyword in split_keywords(raw_text, split_on_whitespace=True, markers=CODE_LOOKUP_MARKER_RE):
        outcome = resolve(catalog, keyword, threshold=threshold, max_candidates=max_candidates)
        if isinstance(outcome, SingleMatch):
            lines.append(format_code_line(outcome.product))
        elif isinstance(outcome, MultiMatch):
            lines.append(format_code_line(outcome.products[0]))
    if not lines:
        return [CODE_LOOKUP_EMPTY_REPLY]
    return lines
