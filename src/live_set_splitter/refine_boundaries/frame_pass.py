"""Frame pass: move each song start back to the first frame where its overlay is visible."""

import logging
from dataclasses import replace
from enum import Enum
from pathlib import Path
from typing import List, Sequence

from live_set_splitter.matching.text import PRESETS
from live_set_splitter.matching.title import match_title
from live_set_splitter.models.config import AnalysisConfig, OcrStrategy
from live_set_splitter.models.segment import Segment
from live_set_splitter.ocr.main import OcrEngine, load_variants, read_text
from live_set_splitter.utils.files import sanitize_filename, save_matched_image
from live_set_splitter.utils.frames import extract_window_frames, frame_number
from live_set_splitter.utils.video import FrameIndex, VideoInfo

logger = logging.getLogger(__name__)


class ScanState(Enum):
    SEARCHING = "searching"
    FOUND = "found"
    STOPPED = "stopped"


class BackwardScan:
    """Tracks the earliest matching frame while frames are visited latest first.

    Once a match has been seen, the first frame that does not match ends the
    scan: an overlay that faded out going back in time does not come back.
    """

    def __init__(self):
        self.state = ScanState.SEARCHING
        self.earliest: int | None = None

    def observe(self, number: int, matched: bool) -> bool:
        """Record one frame; returns False once scanning should stop."""
        if self.state is ScanState.STOPPED:
            return False
        if matched:
            if self.earliest is None or number < self.earliest:
                self.earliest = number
            self.state = ScanState.FOUND
            return True
        if self.state is ScanState.FOUND:
            self.state = ScanState.STOPPED
            return False
        return True


def frame_matches(
    frame_path: Path,
    title: str,
    artist: str,
    engine: OcrEngine,
    strategies: Sequence[OcrStrategy],
    contrast_threshold: int,
) -> bool:
    """Whether the overlay for ``title`` is still visible in one frame.

    The artist line alone is enough: while the overlay fades in, the artist
    may be readable before the title is.
    """
    for image in load_variants(frame_path, contrast_threshold):
        for strategy in strategies:
            result = read_text(engine, image, artist, strategy.psm)
            if result is None:
                continue
            if result.is_overlay:
                return True
            if match_title(result.lines, title, result.is_overlay, PRESETS[strategy.weights]):
                return True
    return False


def window_to_frame_index(window_number: int, window_count: int, end_index: int) -> int:
    """Map a 1-based frame of an extracted window onto the file's frame index.

    The window's last frame is the frame at ``end_index``.
    """
    return max(end_index - (window_count - window_number), 0)


def refine_start_time(
    input_file: str,
    title: str,
    coarse_start: float,
    artist: str,
    info: VideoInfo,
    frame_index: FrameIndex,
    engine: OcrEngine,
    config: AnalysisConfig,
    work_dir: Path,
    analysis_dir: Path | None = None,
) -> float | None:
    """Find an earlier, keyframe-aligned start for one song.

    Returns:
        The timestamp of the keyframe at or before the earliest matching
        frame, or None when nothing could be refined.
    """
    nearest = frame_index.nearest_frames_by_time(coarse_start)
    if nearest.frame_at_or_after is None:
        logger.warning(f"No frame at or after {coarse_start}s for '{title}', keeping original start")
        return None
    end_index = nearest.frame_at_or_after
    end_timestamp = frame_index[end_index].timestamp
    window_start = max(coarse_start - config.frame_pass.look_back, 0.0)

    frames = extract_window_frames(
        input_file,
        work_dir / f"refined_{sanitize_filename(title)}",
        window_start,
        end_timestamp,
        info.fps,
        config.text_pass,
    )
    logger.info(
        f"Analyzing {len(frames)} frames for '{title}' from {window_start:.2f}s to {end_timestamp:.2f}s"
    )

    scan = BackwardScan()
    for frame_path in reversed(frames):
        number = frame_number(frame_path)
        matched = frame_matches(
            frame_path, title, artist, engine,
            config.frame_pass.strategies, config.text_pass.contrast_threshold,
        )
        if matched and analysis_dir is not None:
            save_matched_image(frame_path, title, number, "refined", analysis_dir)
        if not scan.observe(number, matched):
            break

    if scan.earliest is None:
        logger.warning(f"Could not find earlier boundary for '{title}', keeping {coarse_start:.2f}s")
        return None

    earliest_index = window_to_frame_index(scan.earliest, len(frames), end_index)
    keyframe = frame_index.keyframe_at_or_before(earliest_index)
    if keyframe is None:
        logger.warning(f"No keyframe before frame {earliest_index} for '{title}'")
        return None
    refined = frame_index[keyframe].timestamp
    logger.info(
        f"Refined start of '{title}' from {coarse_start:.2f}s to {refined:.2f}s "
        f"(-{coarse_start - refined:.2f}s, window frame {scan.earliest})"
    )
    return refined


def refine_segments(
    segments: Sequence[Segment],
    input_file: str,
    artist: str,
    info: VideoInfo,
    frame_index: FrameIndex,
    engine: OcrEngine,
    config: AnalysisConfig,
    work_dir: Path,
    analysis_dir: Path | None = None,
) -> List[Segment]:
    """Refine every song start except the first, keeping segments contiguous.

    A refined start is used only when it is after 0 and before the coarse start.
    """
    refined = [replace(segment) for segment in segments]
    for i in range(1, len(refined)):
        segment = refined[i]
        if not segment.is_song or segment.title is None:
            continue
        new_start = refine_start_time(
            input_file, segment.title, segment.start_time, artist, info,
            frame_index, engine, config, work_dir, analysis_dir,
        )
        if new_start is None or not 0.0 < new_start < segment.start_time:
            continue
        if new_start <= refined[i - 1].start_time:
            logger.warning(f"Refined start {new_start:.2f}s of '{segment.title}' overlaps the previous song, ignoring")
            continue
        segment.start_time = new_start
        refined[i - 1].end_time = new_start
    return refined
