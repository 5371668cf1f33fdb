"""Unit tests for artist overlay detection."""

import pytest

from live_set_splitter.matching.artist import matches_artist


@pytest.mark.parametrize("line, artist", [
    ("John Doe", "John Doe"),
    ("John Doe:", "John Doe"),
    ("JOHN DOE", "john doe"),
    ("john doe", "JOHN DOE"),
    ("JohnDoe", "John Doe"),
    ("John Doe", "JohnDoe"),
    ("John Doe Extra", "John Doe"),
    ("johndoe", "johndoe890"),
    ("Megan Moror", "Megan Moroney"),
    ("Johm Doe", "John Doe"),
    ("Beyonce", "Beyoncé"),
])
def test_matches(line, artist):
    assert matches_artist(line, artist)


@pytest.mark.parametrize("line, artist", [
    ("John Doe", ""),
    ("", "John Doe"),
    ("   ", "John Doe"),
    ("Jane Smith", "John Doe"),
    ("johndo", "johndoe890"),
])
def test_does_not_match(line, artist):
    assert not matches_artist(line, artist)


def test_long_fragment_of_long_name_matches():
    """A prefix longer than 16 characters is accepted even below the 70% ratio."""
    artist = "The Extraordinarily Long Band Name Orchestra"
    assert matches_artist("The Extraordinarily Lon", artist)


def test_trailing_garbage_after_one_typo():
    assert matches_artist("Johm Doe ~~", "John Doe")
