"""Media probing and the per-file frame index used to snap boundaries to keyframes."""

import bisect
import logging
from dataclasses import dataclass
from typing import Any, Iterable, List

import ffmpeg
from pydantic import BaseModel, Field

from live_set_splitter.exceptions import ExternalToolError, InputError

logger: logging.Logger = logging.getLogger(__name__)


class VideoInfo(BaseModel):
    """Duration and frame rate of the recording, from ffprobe."""

    duration: float = Field(..., gt=0, description="Duration in seconds")
    fps: float = Field(..., gt=0, description="Frames per second")
    start_time: float = Field(0.0, description="Container start offset in seconds")


@dataclass(frozen=True)
class FrameRecord:
    timestamp: float
    is_keyframe: bool


@dataclass(frozen=True)
class NearestFrames:
    """Frames around a point in time. Indices point into ``FrameIndex.frames``."""
    keyframe_before: int | None
    frame_before: int | None
    frame_at_or_after: int | None
    keyframe_at_or_after: int | None


class FrameIndex:
    """Ordered frames of one media file and the positions of its keyframes."""

    def __init__(self, frames: Iterable[FrameRecord]):
        self.frames: List[FrameRecord] = sorted(frames, key=lambda f: f.timestamp)
        self.keyframe_indices: List[int] = [i for i, f in enumerate(self.frames) if f.is_keyframe]
        self._timestamps = [f.timestamp for f in self.frames]
        self._keyframe_timestamps = [self.frames[i].timestamp for i in self.keyframe_indices]

    @classmethod
    def from_packets(cls, packets: Iterable[dict]) -> "FrameIndex":
        """Build from ffprobe packet entries with ``pts_time`` and ``flags``.

        Packets without a usable ``pts_time`` are skipped. ffprobe lists
        packets in decode order, so records are re-sorted by presentation time.
        """
        records = []
        for packet in packets:
            try:
                timestamp = float(packet["pts_time"])
            except (KeyError, TypeError, ValueError):
                continue
            records.append(FrameRecord(timestamp, "K" in packet.get("flags", "")))
        return cls(records)

    def __len__(self) -> int:
        return len(self.frames)

    def __getitem__(self, index: int) -> FrameRecord:
        return self.frames[index]

    def nearest_frames_by_time(self, time: float) -> NearestFrames:
        """Locate the frames bracketing ``time``.

        Cuts are snapped forward: the frame and keyframe at or after ``time``
        are returned so a stream copy starting there is exact. Either is None
        when ``time`` is past the last frame or keyframe.
        """
        after = bisect.bisect_left(self._timestamps, time)
        key_after = bisect.bisect_left(self._keyframe_timestamps, time)
        return NearestFrames(
            keyframe_before=self.keyframe_indices[key_after - 1] if key_after > 0 else None,
            frame_before=after - 1 if after > 0 else None,
            frame_at_or_after=after if after < len(self.frames) else None,
            keyframe_at_or_after=(
                self.keyframe_indices[key_after] if key_after < len(self.keyframe_indices) else None
            ),
        )

    def keyframe_at_or_before(self, index: int) -> int | None:
        """The frame itself when it is a keyframe, otherwise the last keyframe before it."""
        position = bisect.bisect_right(self.keyframe_indices, index)
        if position == 0:
            return None
        return self.keyframe_indices[position - 1]


def parse_frame_rate(value: str) -> float:
    """Parse an ffprobe rate such as '30000/1001' or '25'."""
    if isinstance(value, str) and "/" in value:
        num, denom = value.split("/")
        if float(denom) == 0:
            raise ValueError(f"Invalid frame rate: {value}")
        return float(num) / float(denom)
    return float(value)


def probe(filename: str) -> tuple[VideoInfo, FrameIndex]:
    """Probe duration, frame rate and every video packet of ``filename``.

    Raises:
        ExternalToolError: If ffprobe fails.
        InputError: If the file has no video stream, lacks a duration or does
            not start at 0.
    """
    try:
        data = ffmpeg.probe(filename, select_streams="v:0", show_entries="packet=pts_time,flags")
    except ffmpeg.Error as e:
        stderr = e.stderr.decode("utf-8", errors="ignore") if e.stderr else None
        logger.error(f"ffprobe failed on {filename}")
        raise ExternalToolError("ffprobe", f"could not probe {filename}", stderr) from e

    streams: List[Any] = data.get("streams") or []
    if not streams:
        raise InputError(f"No video stream found in {filename}")
    stream = streams[0]
    fmt = data.get("format", {})

    try:
        duration = float(fmt.get("duration") or stream["duration"])
    except (KeyError, TypeError, ValueError) as e:
        raise InputError(f"Missing duration in media metadata of {filename}") from e

    start_time = float(fmt.get("start_time") or 0.0)
    if start_time != 0.0:
        raise InputError(
            f"Start time of {filename} is {start_time}s, not 0. Remux the file so the timeline starts at 0."
        )

    info = VideoInfo(
        duration=duration,
        fps=round(parse_frame_rate(stream["r_frame_rate"])),
        start_time=start_time,
    )
    frame_index = FrameIndex.from_packets(data.get("packets", []))
    logger.info(
        f"Video detected: {info.duration:.2f}s, {info.fps:.0f} fps, "
        f"{len(frame_index)} frames, {len(frame_index.keyframe_indices)} keyframes"
    )
    return info, frame_index
