"""Find where the last song really ends by looking for a black frame near the end of the recording."""

import logging
from dataclasses import replace
from pathlib import Path
from typing import List, Sequence

import numpy as np
from PIL import Image

from live_set_splitter.models.config import BlackFrameConfig
from live_set_splitter.models.segment import Segment
from live_set_splitter.utils.frames import extract_thumbnails, frame_number

logger = logging.getLogger(__name__)


def frame_blackness(pixels: np.ndarray, threshold: int) -> float:
    """Fraction of channel values at or below ``threshold``; 0.0 for an empty frame."""
    if pixels.size == 0:
        return 0.0
    return float(np.count_nonzero(pixels <= threshold)) / pixels.size


def first_black_frame(
    frames: Sequence[Path],
    window_start: float,
    fps: float,
    config: BlackFrameConfig,
) -> float | None:
    """Timestamp of the first black frame, scanning forward in time.

    Frames are numbered from 1 at ``window_start``.
    """
    for frame_path in frames:
        number = frame_number(frame_path)
        with Image.open(frame_path) as img:
            pixels = np.asarray(img.convert("RGB"))
        if frame_blackness(pixels, config.pixel_threshold) > config.dark_ratio:
            timestamp = window_start + (number - 1) / fps
            logger.info(f"Found black frame at {timestamp:.2f}s (frame {number})")
            return timestamp
    return None


def find_black_frame_end_time(
    input_file: str,
    total_duration: float,
    fps: float,
    config: BlackFrameConfig,
    work_dir: Path,
) -> float | None:
    """Scan the end of the recording at native frame rate for a black frame."""
    window_start = max(total_duration - config.search_window, 0.0)
    frames = extract_thumbnails(
        input_file,
        work_dir / "end_frames",
        window_start,
        total_duration,
        fps,
        config.width,
        config.height,
    )
    logger.info(f"Extracted {len(frames)} frames for end detection")
    return first_black_frame(frames, window_start, fps, config)


def refine_last_song_end(segments: Sequence[Segment], black_frame_time: float | None) -> List[Segment]:
    """Set the end of the last song to ``black_frame_time`` when one was found after its start."""
    refined = [replace(segment) for segment in segments]
    last_song = next((s for s in reversed(refined) if s.is_song), None)
    if last_song is None:
        return refined
    if black_frame_time is None:
        logger.warning(f"No black frame found, last song ends at {last_song.end_time:.2f}s")
        return refined
    if black_frame_time <= last_song.start_time:
        logger.warning(
            f"Black frame at {black_frame_time:.2f}s is before the last song starts, ignoring"
        )
        return refined
    logger.info(f"Adjusted last song end from {last_song.end_time:.2f}s to {black_frame_time:.2f}s")
    last_song.end_time = black_frame_time
    return refined
