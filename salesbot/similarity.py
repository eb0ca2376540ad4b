from __future__ import annotations

from rapidfuzz.distance import Levenshtein


def edit_distance(a: str, b: str) -> int:
    """Minimum single-character insert/delete/substitute operations from a to b."""
    return Levenshtein.distance(a, b)


def similarity(a: str, b: str) -> float:
    """Purpose: Score two already-normalized strings by edit distance.
    Inputs/Outputs: Inputs are two strings; output is (maxLen - distance) / maxLen in [0, 1].
    Side Effects / State: None; pure and symmetric.
    Dependencies: Uses rapidfuzz Levenshtein distance with unit costs.
    Failure Modes: Two empty strings score 1.0 instead of dividing by zero.
    If Removed: The similarity tier cannot rescue typos such as "curius frog".
    Testing Notes: similarity(s, s) == 1.0 and similarity(a, b) == similarity(b, a).
    """
    # Normalize by the longer length so scores stay comparable across names.
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return (longest - edit_distance(a, b)) / float(longest)
