"""Core logic for the text pass: find the coarse start of each song from title overlays."""

import logging
from pathlib import Path
from typing import Dict, List, Sequence

import imagehash
from PIL import Image
from rich.console import Console
from rich.progress import BarColumn, Progress, TextColumn, TimeElapsedColumn

from live_set_splitter.matching.text import STINGY
from live_set_splitter.matching.title import best_title_match
from live_set_splitter.models.config import TextPassConfig
from live_set_splitter.models.segment import CandidateBoundary, Segment
from live_set_splitter.models.setlist import Song
from live_set_splitter.ocr.main import OcrEngine, load_variants, read_text
from live_set_splitter.utils.files import save_matched_image
from live_set_splitter.utils.frames import frame_number

logger = logging.getLogger(__name__)


def is_different_from_previous(
    current_hash: imagehash.ImageHash,
    previous_hash: imagehash.ImageHash | None,
    threshold: int,
) -> bool:
    """Check if the current frame differs from the last frame that was OCR'd without a match."""
    if previous_hash is None:
        return True
    return abs(current_hash - previous_hash) > threshold


def match_frame(
    frame_path: Path,
    artist: str,
    titles: Sequence[str],
    engine: OcrEngine,
    config: TextPassConfig,
) -> tuple[str, bool] | None:
    """OCR one coarse frame and return the accepted (title, is_overlay), if any.

    Each image variant stops at the first page segmentation mode that yields
    text. A title is only accepted from an overlay frame unless the
    configuration says otherwise.
    """
    for image in load_variants(frame_path, config.contrast_threshold):
        for psm in config.psm_order:
            result = read_text(engine, image, artist, psm)
            if result is None:
                continue
            if config.require_overlay and not result.is_overlay:
                break
            best = best_title_match(result.lines, titles, result.is_overlay, STINGY)
            if best is not None:
                title, outcome = best
                logger.info(
                    f"Frame {frame_number(frame_path)}: '{outcome.matched_line}' matches '{title}' "
                    f"(score={outcome.score}, {outcome.reason.value})"
                )
                return title, result.is_overlay
            break
    return None


def detect_boundaries(
    frames: List[Path],
    artist: str,
    songs: Sequence[Song],
    engine: OcrEngine,
    config: TextPassConfig,
    analysis_dir: Path | None = None,
) -> List[CandidateBoundary]:
    """Scan coarse frames in time order and confirm at most one start per title.

    Args:
        frames: Frame images numbered in the 1/fps time base of the sampling rate.
        artist: Artist name expected on the first overlay line.
        songs: Setlist entries.
        engine: OCR engine.
        config: Text pass parameters.
        analysis_dir: When set, matched frames are copied there.

    Returns:
        Confirmed boundaries sorted by start time.
    """
    # Longer titles first so a short title that is a substring of a longer one loses.
    ordered_titles = sorted((song.title for song in songs), key=len, reverse=True)
    confirmed: Dict[str, CandidateBoundary] = {}
    last_start: float | None = None
    unmatched_hash: imagehash.ImageHash | None = None
    expected = len(set(ordered_titles))

    with Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
        TimeElapsedColumn(),
        console=Console(stderr=True),
        transient=True,
    ) as progress:
        task = progress.add_task("Scanning for title overlays...", total=len(frames))

        for frame_path in frames:
            progress.advance(task)
            if len(confirmed) == expected:
                break

            number = frame_number(frame_path)
            timestamp = number / config.fps
            if last_start is not None and timestamp - last_start < config.min_song_length:
                continue

            if config.skip_duplicate_frames:
                with Image.open(frame_path) as img:
                    current_hash = imagehash.phash(img)
                if not is_different_from_previous(current_hash, unmatched_hash, config.hash_threshold):
                    continue
                unmatched_hash = current_hash

            remaining = [title for title in ordered_titles if title not in confirmed]
            match = match_frame(frame_path, artist, remaining, engine, config)
            if match is None:
                continue

            title, is_overlay = match
            confirmed[title] = CandidateBoundary(title, number, is_overlay, timestamp)
            last_start = timestamp
            unmatched_hash = None
            progress.update(
                task,
                description=f"[cyan]{len(confirmed)}/{expected} songs[/cyan] [dim](last: {title} at {timestamp:.1f}s)[/dim]",
            )
            if analysis_dir is not None:
                save_matched_image(frame_path, title, number, "initial", analysis_dir)

    boundaries = sorted(confirmed.values(), key=lambda b: b.start_time)
    logger.info(f"Detected {len(boundaries)} song boundaries from text overlays")
    return boundaries


def build_segments(
    boundaries: Sequence[CandidateBoundary],
    songs: Sequence[Song],
    total_duration: float,
) -> List[Segment]:
    """Turn sorted boundaries into contiguous segments covering the whole recording.

    The first segment always starts at 0 and the last ends at
    ``total_duration``. No boundaries yields no segments.
    """
    if not boundaries:
        logger.warning("No song titles detected in frames")
        return []

    by_title = {song.title.lower(): song for song in songs}
    segments = []
    for i, boundary in enumerate(boundaries):
        start = 0.0 if i == 0 else boundary.start_time
        end = boundaries[i + 1].start_time if i + 1 < len(boundaries) else total_duration
        song = by_title.get(boundary.song_title.lower(), Song(title=boundary.song_title))
        segments.append(Segment(song=song, start_time=start, end_time=end))
    return segments
