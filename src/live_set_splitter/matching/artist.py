"""Detect whether the first OCR line of a frame is the artist name (a title card overlay)."""

from live_set_splitter.matching.text import EXACT, to_ascii, weighted_distance

PREFIX_RATIO = 0.7
LONG_FRAGMENT = 16
MAX_TYPOS = 1


def _compact(text: str) -> str:
    return to_ascii(text).replace(" ", "").lower()


def matches_artist(line: str, artist: str) -> bool:
    """Fuzzy-match an OCR line against the artist name.

    Spaces and case are ignored and accents are transliterated. The line
    matches when it starts with the artist (OCR may append junk), when it is a
    long enough prefix of the artist (OCR missed the last letters), when its
    first 70% agrees with the artist (OCR got the last letters wrong), or when
    it is one edit away from the artist.
    """
    line = _compact(line)
    artist = _compact(artist)
    if not line or not artist:
        return False

    if line.startswith(artist):
        return True

    if artist.startswith(line) and (
        len(line) / len(artist) >= PREFIX_RATIO or len(line) > LONG_FRAGMENT
    ):
        return True

    split_at = len(artist) * 7 // 10
    if len(line) > split_at and artist.startswith(line[:split_at]):
        return True

    if weighted_distance(line, artist, EXACT, MAX_TYPOS) <= MAX_TYPOS:
        return True
    truncated = line[: len(artist)]
    return weighted_distance(truncated, artist, EXACT, MAX_TYPOS) <= MAX_TYPOS
