"""Tiered product resolution.

Role:
    Resolves one keyword against a catalog snapshot and collapses the result into
    exactly one of NoMatch, SingleMatch or MultiMatch.

Tier contract (first non-empty tier wins, later tiers are never consulted):
    EXACT_CODE:
        Product code, case-folded, equals the normalized keyword. Returns a
        SingleMatch immediately.
    SUBSTRING:
        Code contains the keyword, or the normalized name contains it. Catalog order.
    SIMILARITY:
        Only when SUBSTRING is empty. Edit-distance similarity of normalized names,
        kept at or above the threshold, best first, ties in catalog order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Sequence, Tuple, Union

from .catalog import Product
from .similarity import similarity
from .utils import normalize_text

logger = logging.getLogger("salesbot.matching")

DEFAULT_SIMILARITY_THRESHOLD = 0.6
DEFAULT_MAX_CANDIDATES = 5


class MatchTier(Enum):
    EXACT_CODE = "exact_code"
    SUBSTRING = "substring"
    SIMILARITY = "similarity"


@dataclass(frozen=True)
class NoMatch:
    """No tier produced a candidate."""


@dataclass(frozen=True)
class SingleMatch:
    """Exactly one candidate in the winning tier."""
    product: Product
    tier: MatchTier


@dataclass(frozen=True)
class MultiMatch:
    """Two or more candidates in the winning tier, already ordered and capped."""
    products: Tuple[Product, ...]
    tier: MatchTier

    def __post_init__(self) -> None:
        if len(self.products) < 2:
            raise ValueError("MultiMatch needs at least two products")


MatchOutcome = Union[NoMatch, SingleMatch, MultiMatch]


def match_exact_code(catalog: Sequence[Product], key: str) -> List[Product]:
    # Codes are unique when present, so the first hit is the answer.
    for product in catalog:
        if product.code and product.code.lower() == key:
            return [product]
    return []


def match_substring(catalog: Sequence[Product], key: str) -> List[Product]:
    return [
        product
        for product in catalog
        if (product.code and key in product.code.lower()) or key in normalize_text(product.name)
    ]


def match_similarity(catalog: Sequence[Product], key: str, threshold: float) -> List[Product]:
    """Purpose: Rank catalog entries by name similarity to the keyword.
    Inputs/Outputs: Inputs are catalog, normalized key and threshold; output is the
        accepted products, best score first.
    Side Effects / State: None.
    Dependencies: Uses similarity and normalize_text.
    Failure Modes: Returns [] when nothing reaches the threshold.
    If Removed: Typos in product names always end in "not found".
    Testing Notes: Equal scores must keep catalog order (sorted() is stable).
    """
    # Score everything, filter, then a stable sort on score only.
    scored = [(similarity(normalize_text(product.name), key), product) for product in catalog]
    accepted = [pair for pair in scored if pair[0] >= threshold]
    accepted = sorted(accepted, key=lambda pair: pair[0], reverse=True)
    return [product for _, product in accepted]


def resolve(
    catalog: Sequence[Product],
    keyword: str,
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
    max_candidates: int = DEFAULT_MAX_CANDIDATES,
) -> MatchOutcome:
    """Purpose: Resolve a single keyword to NoMatch, SingleMatch or MultiMatch.
    Inputs/Outputs: Inputs are a catalog snapshot, a raw keyword, the similarity
        threshold and the candidate cap; output is a MatchOutcome.
    Side Effects / State: Debug logging only.
    Dependencies: Uses match_exact_code, match_substring, match_similarity.
    Failure Modes: Blank keywords, or keywords that normalize to "", return NoMatch
        without touching the catalog.
    If Removed: Every lookup path (price, stock, order, code) loses its matcher.
    Testing Notes: Exact code must win over substring hits; MultiMatch is capped.
    """
    # Guard blank input before scanning anything.
    if not keyword or not keyword.strip():
        return NoMatch()
    key = normalize_text(keyword)
    if not key:
        return NoMatch()

    tiers = (
        (MatchTier.EXACT_CODE, lambda: match_exact_code(catalog, key)),
        (MatchTier.SUBSTRING, lambda: match_substring(catalog, key)),
        (MatchTier.SIMILARITY, lambda: match_similarity(catalog, key, threshold)),
    )
    for tier, run in tiers:
        candidates = run()
        if not candidates:
            continue
        logger.debug("keyword=%r tier=%s candidates=%d", keyword, tier.value, len(candidates))
        if len(candidates) == 1:
            return SingleMatch(product=candidates[0], tier=tier)
        return MultiMatch(products=tuple(candidates[:max_candidates]), tier=tier)

    logger.debug("keyword=%r tier=none", keyword)
    return NoMatch()
