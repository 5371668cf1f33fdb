"""Text normalization and weighted edit distance used by the title and artist matchers."""

import unicodedata
from typing import NamedTuple

from rapidfuzz.distance import Levenshtein


class Weights(NamedTuple):
    """Per-operation costs for transforming an OCR line into a candidate string."""
    insertion: int
    deletion: int
    substitution: int


# Penalizes length mismatch; used when a match has to be confident.
STINGY = Weights(insertion=2, deletion=2, substitution=1)
# Cheap deletions; OCR often drops characters from fading text.
GREEDY = Weights(insertion=2, deletion=1, substitution=2)
EXACT = Weights(insertion=1, deletion=1, substitution=1)

PRESETS = {"stingy": STINGY, "greedy": GREEDY, "exact": EXACT}


def normalize(text: str) -> str:
    """Keep only alphanumeric characters, lower-cased."""
    return "".join(c for c in text if c.isalnum()).lower()


def to_ascii(text: str) -> str:
    """Transliterate accented characters to plain ASCII, dropping anything else."""
    decomposed = unicodedata.normalize("NFKD", text)
    return decomposed.encode("ascii", "ignore").decode("ascii")


def weighted_distance(line: str, target: str, weights: Weights, budget: int | None = None) -> int:
    """Weighted Levenshtein distance from ``line`` to ``target``.

    Args:
        line: Source string (the OCR text).
        target: String the line should be transformed into.
        weights: Insertion, deletion and substitution costs.
        budget: Largest distance of interest. Anything above it is reported
            as ``budget + 1``. Keep it well above the acceptance threshold so
            the search never gives up on a cheaper alignment.

    Returns:
        The weighted distance, or ``budget + 1`` when it exceeds the budget.
    """
    return Levenshtein.distance(
        line,
        target,
        weights=(weights.insertion, weights.deletion, weights.substitution),
        score_cutoff=budget,
    )
