import re
import unicodedata
from typing import Any, Optional

FILLER_PARTICLES = "的了嗎呢啊喔耶吧"

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_text(text: Optional[str]) -> str:
    """Purpose: Normalize a product name or query keyword for matching.
    Inputs/Outputs: Input is a raw string; output is lowercase with all whitespace
        removed and trailing filler particles stripped.
    Side Effects / State: None; pure function.
    Dependencies: Uses regex and FILLER_PARTICLES; called by the resolver and code tier.
    Failure Modes: Returns an empty string when input is falsy or only filler.
    If Removed: "Fish Tank" and "fishtank" stop matching and chatty suffixes break lookups.
    Testing Notes: Validate "Curious Frog 呢" -> "curiousfrog" and "" -> "".
    """
    # Fold case, drop whitespace, then peel particles off the end.
    if not text:
        return ""
    lowered = text.lower()
    compact = _WHITESPACE_RE.sub("", lowered)
    return compact.rstrip(FILLER_PARTICLES)


def normalize_header(text: Any) -> str:
    """Purpose: Produce a compact key for spreadsheet header lookups.
    Inputs/Outputs: Input is any header cell; output is NFKC, lowercase, no spaces.
    Side Effects / State: None; pure function.
    Dependencies: Uses unicodedata; used by the catalog row parser.
    Failure Modes: Returns empty string for None.
    If Removed: Headers like "Restock ETA" no longer map to restock_eta.
    Testing Notes: Ensure " Restock ETA " and "restock_eta" collapse to the same key.
    """
    # Full-width forms and separators should not affect header identity.
    if text is None:
        return ""
    folded = unicodedata.normalize("NFKC", str(text)).lower()
    return re.sub(r"[\s_\-]+", "", folded)


def format_amount(value: float) -> str:
    """Render a price without a trailing ".0" for whole amounts."""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.2f}".rstrip("0").rstrip(".")
