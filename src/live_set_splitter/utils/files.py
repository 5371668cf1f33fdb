"""Filesystem helpers: safe file names, scratch directories and saved analysis images."""

import logging
import re
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)

UNSAFE_CHARS = re.compile(r'[/\\:*?"<>|\x00]')


def sanitize_filename(name: str) -> str:
    """Replace characters that are invalid in file names on common filesystems."""
    sanitized = UNSAFE_CHARS.sub("_", name).replace("__", "_")
    sanitized = sanitized.strip().strip(".")
    return sanitized or "untitled"


def overwrite_dir(path: str | Path) -> Path:
    """Create an empty directory, removing any previous one at ``path``."""
    path = Path(path)
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True)
    return path


def save_matched_image(
    frame_path: Path,
    title: str,
    frame_number: int,
    prefix: str,
    analysis_dir: Path,
) -> Path:
    """Copy a frame that matched ``title`` into ``analysis_dir`` for later inspection."""
    analysis_dir.mkdir(parents=True, exist_ok=True)
    target = analysis_dir / f"{prefix}_{sanitize_filename(title)}_{frame_number}.png"
    shutil.copyfile(frame_path, target)
    logger.debug(f"Saved matched image {target}")
    return target
