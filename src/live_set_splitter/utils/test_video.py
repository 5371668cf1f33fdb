"""Tests for the frame index and media probing."""

from unittest.mock import patch

import ffmpeg
import pytest

from live_set_splitter.exceptions import ExternalToolError, InputError
from live_set_splitter.utils.video import FrameIndex, FrameRecord, parse_frame_rate, probe


@pytest.fixture
def index() -> FrameIndex:
    # Frames every 0.5 s, keyframes at 0, 2 and 4 s.
    return FrameIndex(FrameRecord(t / 2, t % 4 == 0) for t in range(10))


def test_keyframe_indices(index: FrameIndex):
    assert index.keyframe_indices == [0, 4, 8]


def test_nearest_frames_between_frames(index: FrameIndex):
    nearest = index.nearest_frames_by_time(1.2)
    assert nearest.frame_before == 2
    assert nearest.frame_at_or_after == 3
    assert nearest.keyframe_before == 0
    assert nearest.keyframe_at_or_after == 4


def test_nearest_frames_exact_keyframe(index: FrameIndex):
    nearest = index.nearest_frames_by_time(2.0)
    assert nearest.frame_at_or_after == 4
    assert nearest.keyframe_at_or_after == 4
    assert nearest.keyframe_before == 0


def test_nearest_frames_past_the_end(index: FrameIndex):
    nearest = index.nearest_frames_by_time(4.6)
    assert nearest.frame_at_or_after is None
    assert nearest.keyframe_at_or_after is None
    assert nearest.frame_before == 9
    assert nearest.keyframe_before == 8


def test_nearest_frames_after_last_keyframe(index: FrameIndex):
    nearest = index.nearest_frames_by_time(4.3)
    assert nearest.frame_at_or_after == 9
    assert nearest.keyframe_at_or_after is None


def test_keyframe_at_or_before(index: FrameIndex):
    assert index.keyframe_at_or_before(4) == 4
    assert index.keyframe_at_or_before(7) == 4
    assert index.keyframe_at_or_before(3) == 0
    assert FrameIndex([FrameRecord(0.0, False)]).keyframe_at_or_before(0) is None


def test_from_packets_sorts_by_presentation_time():
    index = FrameIndex.from_packets([
        {"pts_time": "0.000000", "flags": "K__"},
        {"pts_time": "0.080000", "flags": "___"},
        {"pts_time": "0.040000", "flags": "___"},
        {"pts_time": "N/A", "flags": "___"},
        {"flags": "K__"},
        {"pts_time": "0.120000", "flags": "K_"},
    ])
    assert [f.timestamp for f in index.frames] == [0.0, 0.04, 0.08, 0.12]
    assert index.keyframe_indices == [0, 3]


def test_parse_frame_rate():
    assert parse_frame_rate("30000/1001") == pytest.approx(29.97, abs=0.01)
    assert parse_frame_rate("25") == 25.0
    with pytest.raises(ValueError):
        parse_frame_rate("25/0")


def _probe_result(start_time: str = "0.000000") -> dict:
    return {
        "streams": [{"r_frame_rate": "30000/1001"}],
        "format": {"duration": "120.5", "start_time": start_time},
        "packets": [
            {"pts_time": "0.000000", "flags": "K__"},
            {"pts_time": "0.033367", "flags": "___"},
        ],
    }


def test_probe():
    with patch("live_set_splitter.utils.video.ffmpeg.probe", return_value=_probe_result()) as mock:
        info, index = probe("concert.mp4")
    assert mock.call_args.kwargs["show_entries"] == "packet=pts_time,flags"
    assert info.duration == 120.5
    assert info.fps == 30
    assert len(index) == 2
    assert index.keyframe_indices == [0]


def test_probe_rejects_non_zero_start():
    with patch("live_set_splitter.utils.video.ffmpeg.probe", return_value=_probe_result("1.4")):
        with pytest.raises(InputError, match="not 0"):
            probe("concert.mp4")


def test_probe_rejects_file_without_video():
    with patch("live_set_splitter.utils.video.ffmpeg.probe", return_value={"streams": [], "format": {}}):
        with pytest.raises(InputError, match="No video stream"):
            probe("audio.m4a")


def test_probe_failure():
    error = ffmpeg.Error("ffprobe", b"", b"Invalid data found")
    with patch("live_set_splitter.utils.video.ffmpeg.probe", side_effect=error):
        with pytest.raises(ExternalToolError, match="Invalid data found"):
            probe("broken.mp4")
