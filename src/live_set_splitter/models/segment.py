"""In-memory records passed between the detection and refinement stages."""

from dataclasses import dataclass

from live_set_splitter.models.setlist import Song


@dataclass
class CandidateBoundary:
    """Coarse start of a song found by the text pass.

    ``frame_number`` is the coarse frame file number and ``start_time`` the
    second it was sampled at.
    """
    song_title: str
    frame_number: int
    is_overlay_confirmed: bool
    start_time: float


@dataclass
class Segment:
    """A time range of the recording; ``song`` is None for a gap."""
    song: Song | None
    start_time: float
    end_time: float
    is_song: bool = True

    @property
    def duration(self) -> float:
        return self.end_time - self.start_time

    @property
    def title(self) -> str | None:
        return self.song.title if self.song is not None else None
