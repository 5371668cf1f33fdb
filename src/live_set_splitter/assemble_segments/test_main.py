"""Tests for segment validation and timestamp assembly."""

import pytest

from live_set_splitter.assemble_segments.main import (
    create_song_timestamps,
    missing_titles,
    segments_from_timestamps,
    validate_segment_count,
    validate_song_count,
)
from live_set_splitter.exceptions import DetectionError, SegmentMismatchError
from live_set_splitter.models.segment import Segment
from live_set_splitter.models.setlist import Song, SongTimestamp


def segment(title: str | None, start: float, end: float, is_song: bool = True) -> Segment:
    return Segment(Song(title=title) if title else None, start, end, is_song)


def test_missing_title_is_named():
    songs = [Song(title="Song A"), Song(title="Song B"), Song(title="Song C")]
    segments = [segment("song a", 0.0, 40.0), segment("SONG B", 40.0, 90.0)]
    with pytest.raises(DetectionError) as excinfo:
        validate_song_count(segments, songs)
    assert excinfo.value.missing_titles == ["Song C"]
    assert "Song C" in str(excinfo.value)
    assert excinfo.value.expected == 3
    assert excinfo.value.found == 2


def test_missing_titles_ignores_gaps():
    songs = [Song(title="A")]
    assert missing_titles([segment(None, 0.0, 5.0, is_song=False)], songs) == ["A"]


def test_too_many_segments():
    songs = [Song(title="A")]
    segments = [segment("A", 0.0, 10.0), segment("B", 10.0, 20.0)]
    with pytest.raises(SegmentMismatchError, match="2 song segments"):
        validate_segment_count(segments, songs)
    with pytest.raises(SegmentMismatchError):
        create_song_timestamps(segments, songs)


def test_timestamps_are_named_by_position():
    songs = [Song(title="Song A"), Song(title="Song B")]
    segments = [
        segment("Song B", 0.0, 40.0),
        segment(None, 40.0, 41.0, is_song=False),
        segment("Song A", 41.0, 100.0),
    ]
    timestamps = create_song_timestamps(segments, songs)
    assert timestamps == [
        SongTimestamp(title="Song A", start_time=0.0, end_time=40.0, duration=40.0),
        SongTimestamp(title="Song B", start_time=41.0, end_time=100.0, duration=59.0),
    ]


def test_round_trip_from_cache():
    cache = [SongTimestamp(title="A", start_time=0.0, end_time=12.5, duration=12.5)]
    segments = segments_from_timestamps(cache)
    assert segments == [Segment(Song(title="A"), 0.0, 12.5)]
    validate_song_count(segments, [Song(title="a")])
