"""Core logic for assembling refined segments into the final song timestamps."""

import logging
from typing import List, Sequence

from live_set_splitter.exceptions import DetectionError, SegmentMismatchError
from live_set_splitter.models.segment import Segment
from live_set_splitter.models.setlist import Song, SongTimestamp

logger = logging.getLogger(__name__)


def song_segments(segments: Sequence[Segment]) -> List[Segment]:
    return [segment for segment in segments if segment.is_song]


def missing_titles(segments: Sequence[Segment], songs: Sequence[Song]) -> List[str]:
    """Setlist titles with no detected segment, compared case-insensitively."""
    found = {segment.title.lower() for segment in song_segments(segments) if segment.title}
    return [song.title for song in songs if song.title.lower() not in found]


def validate_song_count(segments: Sequence[Segment], songs: Sequence[Song]) -> None:
    """Raise DetectionError when fewer songs were detected than the setlist has."""
    detected = len(song_segments(segments))
    if detected < len(songs):
        missing = missing_titles(segments, songs)
        raise DetectionError(missing, expected=len(songs), found=detected)


def validate_segment_count(segments: Sequence[Segment], songs: Sequence[Song]) -> None:
    """Raise SegmentMismatchError when there are more song segments than setlist entries."""
    detected = len(song_segments(segments))
    if detected > len(songs):
        raise SegmentMismatchError(detected, len(songs))


def create_song_timestamps(segments: Sequence[Segment], songs: Sequence[Song]) -> List[SongTimestamp]:
    """Name song segments by setlist position; the n-th song segment is the n-th setlist entry.

    Raises:
        SegmentMismatchError: If there are more song segments than setlist entries.
    """
    validate_segment_count(segments, songs)
    timestamps = []
    for song, segment in zip(songs, song_segments(segments)):
        if segment.title and segment.title.lower() != song.title.lower():
            logger.debug(f"Segment detected as '{segment.title}' is named '{song.title}' by setlist order")
        timestamps.append(SongTimestamp(
            title=song.title,
            start_time=segment.start_time,
            end_time=segment.end_time,
            duration=segment.end_time - segment.start_time,
        ))
    return timestamps


def segments_from_timestamps(timestamps: Sequence[SongTimestamp]) -> List[Segment]:
    """Rebuild segments from a timestamp cache."""
    return [
        Segment(song=Song(title=ts.title), start_time=ts.start_time, end_time=ts.end_time)
        for ts in timestamps
    ]


def log_segments(segments: Sequence[Segment]) -> None:
    for i, segment in enumerate(segments, start=1):
        kind = "SONG" if segment.is_song else "gap"
        logger.info(
            f"Segment {i}: {segment.start_time:.2f}s to {segment.end_time:.2f}s "
            f"({segment.duration:.2f}s) - {kind} {segment.title or ''}"
        )
