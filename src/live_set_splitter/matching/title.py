"""Decide whether a song title is present in the OCR text of a frame."""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator, Sequence

from live_set_splitter.matching.text import STINGY, Weights, normalize, weighted_distance

logger = logging.getLogger(__name__)

MIN_PREFIX_RATIO = 0.4
OVERLAY_BONUS = 2
BUDGET_MARGIN = 10

MOVEMENT_PREFIX = re.compile(
    r"^\s*movement\s+(?:one|two|three|four|five|six|seven|eight|nine)\s*:\s*(?P<rest>.+?)\s*$",
    re.IGNORECASE,
)
QUOTES = "\"'“”‘’"


class MatchReason(str, Enum):
    CONTAINS = "contains"
    STARTS_WITH = "starts_with"
    EDIT_DISTANCE = "edit_distance"


@dataclass(frozen=True, order=True)
class MatchOutcome:
    """A title found in a line. Lower scores are better; 0 is a containment match."""
    score: int
    reason: MatchReason
    matched_line: str

    def __str__(self) -> str:
        if self.reason is MatchReason.EDIT_DISTANCE:
            return f"{self.reason.value}({self.score}) on '{self.matched_line}'"
        return f"{self.reason.value} on '{self.matched_line}'"


def strip_movement_prefix(title: str) -> str | None:
    """Return the part after 'Movement <number>:' with one pair of quotes removed.

    Returns None when the title has no movement prefix.
    """
    match = MOVEMENT_PREFIX.match(title)
    if not match:
        return None
    rest = match.group("rest")
    if rest and rest[0] in QUOTES:
        rest = rest[1:]
    if rest and rest[-1] in QUOTES:
        rest = rest[:-1]
    return rest.strip() or None


def candidate_lines(lines: Sequence[str]) -> Iterator[str]:
    """Each line on its own, then each adjacent pair joined by a space (titles wrap)."""
    yield from lines
    for first, second in zip(lines, lines[1:]):
        yield f"{first} {second}"


def match_line(line: str, title: str, is_overlay: bool, weights: Weights) -> MatchOutcome | None:
    """Match one line against one title; strategies are tried in order, first hit wins."""
    line_normalized = normalize(line)
    title_normalized = normalize(title)
    if not line_normalized or not title_normalized:
        return None

    if title_normalized in line_normalized:
        return MatchOutcome(0, MatchReason.CONTAINS, line)

    line_count = len(line_normalized)
    title_count = len(title_normalized)
    # The camera rarely shows all of a long title; compare against what could fit.
    if line_count > 10 and title_count > 12:
        title_normalized = title_normalized[: min(line_count + 2, title_count)]

    limit = line_count // 3
    if is_overlay:
        limit += OVERLAY_BONUS
    distance = weighted_distance(
        line_normalized,
        title_normalized,
        weights,
        budget=limit + BUDGET_MARGIN + title_count,
    )
    if distance <= limit:
        return MatchOutcome(distance, MatchReason.EDIT_DISTANCE, line)

    if title_normalized.startswith(line_normalized):
        if line_count / len(title_normalized) >= MIN_PREFIX_RATIO:
            return MatchOutcome(len(title_normalized) - line_count, MatchReason.STARTS_WITH, line)

    return None


def match_title(
    lines: Sequence[str],
    title: str,
    is_overlay: bool,
    weights: Weights = STINGY,
) -> MatchOutcome | None:
    """Find ``title`` in the OCR lines of one frame.

    Titles with a 'Movement <number>:' prefix are also tried without it.

    Args:
        lines: Trimmed, non-empty OCR lines in reading order.
        title: Candidate song title.
        is_overlay: Whether the first line was recognized as the artist name.
            Overlay text is trusted more, so the edit distance limit is looser.
        weights: Edit costs used for the distance strategy.

    Returns:
        The first matching outcome, or None.
    """
    titles = [title]
    stripped = strip_movement_prefix(title)
    if stripped:
        titles.append(stripped)

    for line in candidate_lines(lines):
        for candidate in titles:
            outcome = match_line(line, candidate, is_overlay, weights)
            if outcome is not None:
                return outcome
    return None


def best_title_match(
    lines: Sequence[str],
    titles: Iterable[str],
    is_overlay: bool,
    weights: Weights = STINGY,
) -> tuple[str, MatchOutcome] | None:
    """Match every title and keep the lowest score; ties go to the earlier title."""
    best: tuple[str, MatchOutcome] | None = None
    for title in titles:
        outcome = match_title(lines, title, is_overlay, weights)
        if outcome is None:
            continue
        logger.debug(f"Title '{title}' matched: {outcome}")
        if best is None or outcome.score < best[1].score:
            best = (title, outcome)
    return best
