"""Still-frame extraction with ffmpeg and listing of the numbered image files."""

import logging
import re
from pathlib import Path
from typing import List

import ffmpeg

from live_set_splitter.exceptions import ExternalToolError
from live_set_splitter.models.config import TextPassConfig
from live_set_splitter.utils.files import overwrite_dir

logger = logging.getLogger(__name__)

FRAME_NAME = re.compile(r"^(\d+)\.png$")


def frame_number(path: Path) -> int:
    """Number encoded in a frame file name such as '42.png'."""
    match = FRAME_NAME.match(path.name)
    if not match:
        raise ValueError(f"Not a numbered frame file: {path}")
    return int(match.group(1))


def list_frames(folder: Path) -> List[Path]:
    """Numbered PNG frames in ``folder``, sorted by frame number."""
    frames = [p for p in folder.iterdir() if FRAME_NAME.match(p.name)]
    return sorted(frames, key=frame_number)


def _crop_to_text(stream, config: TextPassConfig):
    return (
        stream
        .filter("scale", config.scale_width, config.scale_height)
        .filter("crop", config.crop_width, config.crop_height, config.crop_x, config.crop_y)
    )


def _run(stream, description: str) -> None:
    try:
        stream.overwrite_output().run(capture_stdout=True, capture_stderr=True)
    except ffmpeg.Error as e:
        stderr = e.stderr.decode("utf-8", errors="ignore") if e.stderr else None
        logger.error(f"ffmpeg failed while extracting {description}")
        raise ExternalToolError("ffmpeg", f"failed to extract {description}", stderr) from e


def extract_text_frames(input_file: str, output_dir: Path, config: TextPassConfig) -> List[Path]:
    """Extract the title overlay region once per second.

    Files are named by presentation time in the sampling rate's time base, so
    at 1 fps the file number is the second it was taken at.
    """
    overwrite_dir(output_dir)
    stream = ffmpeg.input(input_file).filter("fps", fps=config.fps)
    stream = _crop_to_text(stream, config)
    stream = stream.output(str(output_dir / "%d.png"), vcodec="png", frame_pts=1)
    _run(stream, "text frames")
    frames = list_frames(output_dir)
    logger.info(f"Extracted {len(frames)} frames for title detection")
    return frames


def extract_window_frames(
    input_file: str,
    output_dir: Path,
    start: float,
    end: float,
    fps: float,
    config: TextPassConfig,
) -> List[Path]:
    """Extract the overlay region at native frame rate between ``start`` and ``end``, numbered from 1."""
    overwrite_dir(output_dir)
    stream = ffmpeg.input(input_file, ss=f"{start:.3f}", to=f"{end:.3f}").filter("fps", fps=fps)
    stream = _crop_to_text(stream, config)
    stream = stream.output(str(output_dir / "%d.png"), vcodec="png")
    _run(stream, f"frames {start:.2f}s-{end:.2f}s")
    return list_frames(output_dir)


def extract_thumbnails(
    input_file: str,
    output_dir: Path,
    start: float,
    end: float,
    fps: float,
    width: int,
    height: int,
) -> List[Path]:
    """Extract small full-frame thumbnails at native frame rate, numbered from 1."""
    overwrite_dir(output_dir)
    stream = (
        ffmpeg.input(input_file, ss=f"{start:.3f}", to=f"{end:.3f}")
        .filter("fps", fps=fps)
        .filter("scale", width, height)
        .output(str(output_dir / "%d.png"), vcodec="png", pix_fmt="rgb24")
    )
    _run(stream, f"thumbnails {start:.2f}s-{end:.2f}s")
    return list_frames(output_dir)
