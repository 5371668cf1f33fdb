"""Tests for the backward frame scan and start-time refinement."""

from pathlib import Path
from unittest.mock import patch

import pytest
from PIL import Image

from live_set_splitter.models.config import AnalysisConfig
from live_set_splitter.models.segment import Segment
from live_set_splitter.models.setlist import Song
from live_set_splitter.refine_boundaries.frame_pass import (
    BackwardScan,
    ScanState,
    refine_segments,
    refine_start_time,
    window_to_frame_index,
)
from live_set_splitter.utils.video import FrameIndex, FrameRecord, VideoInfo

ARTIST = "John Doe"
FPS = 10


class WindowOcr:
    """Shows the overlay on window frames whose number is in ``visible``."""

    def __init__(self, visible: set[int], text: str = "John Doe\nSong B"):
        self.visible = visible
        self.text = text

    def recognize(self, image: Image.Image, psm: str | None = None) -> str:
        if image.mode != "RGB":
            return ""
        return self.text if image.getpixel((0, 0))[0] in self.visible else ""


def fake_extract(count: int):
    def extract(input_file, output_dir, start, end, fps, config):
        output_dir.mkdir(parents=True, exist_ok=True)
        frames = []
        for n in range(1, count + 1):
            path = output_dir / f"{n}.png"
            Image.new("RGB", (4, 4), (n, 0, 0)).save(path)
            frames.append(path)
        return frames
    return extract


@pytest.fixture
def frame_index() -> FrameIndex:
    # 60 s at 10 fps with a keyframe every second.
    return FrameIndex(FrameRecord(k / FPS, k % FPS == 0) for k in range(600))


@pytest.fixture
def info() -> VideoInfo:
    return VideoInfo(duration=60.0, fps=FPS)


def test_scan_stops_on_first_miss_after_a_match():
    scan = BackwardScan()
    observed = []
    for number, matched in [(10, False), (9, False), (8, True), (7, True), (6, False), (5, True)]:
        observed.append(number)
        if not scan.observe(number, matched):
            break
    assert scan.earliest == 7
    assert scan.state is ScanState.STOPPED
    assert observed == [10, 9, 8, 7, 6]


def test_scan_without_match_keeps_searching():
    scan = BackwardScan()
    assert all(scan.observe(n, False) for n in range(5, 0, -1))
    assert scan.state is ScanState.SEARCHING
    assert scan.earliest is None


def test_window_to_frame_index():
    assert window_to_frame_index(30, 30, 400) == 400
    assert window_to_frame_index(18, 30, 400) == 388
    assert window_to_frame_index(1, 30, 5) == 0


def test_refine_snaps_to_preceding_keyframe(tmp_path: Path, frame_index, info):
    ocr = WindowOcr(visible=set(range(18, 31)) | {3})
    with patch(
        "live_set_splitter.refine_boundaries.frame_pass.extract_window_frames",
        side_effect=fake_extract(30),
    ) as extract:
        refined = refine_start_time(
            "concert.mp4", "Song B", 40.0, ARTIST, info, frame_index, ocr,
            AnalysisConfig(), tmp_path,
        )
    # Earliest visible frame 18 of 30 maps to frame 388 (38.8s); keyframe before it is 38.0s.
    assert refined == pytest.approx(38.0)
    args = extract.call_args.args
    assert args[2] == pytest.approx(37.0)
    assert args[3] == pytest.approx(40.0)
    assert args[4] == FPS


def test_refine_window_is_clamped_at_zero(tmp_path: Path, frame_index, info):
    with patch(
        "live_set_splitter.refine_boundaries.frame_pass.extract_window_frames",
        side_effect=fake_extract(20),
    ) as extract:
        refine_start_time(
            "concert.mp4", "Song B", 2.0, ARTIST, info, frame_index, WindowOcr(set()),
            AnalysisConfig(), tmp_path,
        )
    assert extract.call_args.args[2] == 0.0


def test_refine_without_match_returns_none(tmp_path: Path, frame_index, info):
    with patch(
        "live_set_splitter.refine_boundaries.frame_pass.extract_window_frames",
        side_effect=fake_extract(30),
    ):
        assert refine_start_time(
            "concert.mp4", "Song B", 40.0, ARTIST, info, frame_index, WindowOcr(set()),
            AnalysisConfig(), tmp_path,
        ) is None


def test_title_without_artist_line_counts(tmp_path: Path, frame_index, info):
    ocr = WindowOcr(visible=set(range(25, 31)), text="Song B")
    with patch(
        "live_set_splitter.refine_boundaries.frame_pass.extract_window_frames",
        side_effect=fake_extract(30),
    ):
        refined = refine_start_time(
            "concert.mp4", "Song B", 40.0, ARTIST, info, frame_index, ocr,
            AnalysisConfig(), tmp_path,
        )
    # Frame 25 of 30 is frame 395 (39.5s); keyframe before it is 39.0s.
    assert refined == pytest.approx(39.0)


def test_refine_segments_keeps_contiguity(tmp_path: Path, frame_index, info):
    segments = [
        Segment(Song(title="Song A"), 0.0, 40.0),
        Segment(Song(title="Song B"), 40.0, 60.0),
    ]
    ocr = WindowOcr(visible=set(range(18, 31)))
    with patch(
        "live_set_splitter.refine_boundaries.frame_pass.extract_window_frames",
        side_effect=fake_extract(30),
    ) as extract:
        refined = refine_segments(
            segments, "concert.mp4", ARTIST, info, frame_index, ocr, AnalysisConfig(), tmp_path,
        )
    assert extract.call_count == 1
    assert refined[0].start_time == 0.0
    assert refined[0].end_time == pytest.approx(38.0)
    assert refined[1].start_time == pytest.approx(38.0)
    assert refined[1].end_time == 60.0
    # Input segments are not mutated.
    assert segments[1].start_time == 40.0
