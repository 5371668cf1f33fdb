"""Shared utilities for checking external tool dependencies and their versions."""

import logging
import re
import subprocess

from live_set_splitter.exceptions import ExternalToolError

logger = logging.getLogger(__name__)


def parse_version_tuple(version_str: str) -> tuple[int, ...]:
    """Parse a version string like '6.1.1' or '5.3' into a tuple of ints."""
    return tuple(int(x) for x in version_str.split("."))


def _tool_output(tool: str, flag: str) -> str:
    try:
        result = subprocess.run(
            [tool, flag], capture_output=True, text=True, timeout=5, check=False,
        )
    except FileNotFoundError:
        raise ExternalToolError(tool, "required tool not found on PATH")
    return result.stdout + result.stderr


def _check_version(tool: str, output: str, pattern: str, min_version: tuple[int, ...]) -> str:
    match = re.search(pattern, output)
    if not match:
        # Git builds report a revision instead of a release number.
        logger.warning(f"Could not parse {tool} version from output: {output.strip()[:80]!r}")
        return "unknown"

    version_str = match.group(1)
    if parse_version_tuple(version_str) < min_version:
        raise ExternalToolError(
            tool,
            f"version {version_str} is not supported. Required: >= {'.'.join(map(str, min_version))}",
        )
    return version_str


def check_ffmpeg(min_version: tuple[int, ...] = (4,)) -> str:
    """Verify ffmpeg is available, parsing output like 'ffmpeg version 6.1.1-3ubuntu5'.

    Returns:
        The detected version string, or 'unknown' for unversioned builds.

    Raises:
        ExternalToolError: If ffmpeg is not found or too old.
    """
    output = _tool_output("ffmpeg", "-version")
    return _check_version("ffmpeg", output, r"ffmpeg version n?(\d+(?:\.\d+)+)", min_version)


def check_ffprobe(min_version: tuple[int, ...] = (4,)) -> str:
    """Verify ffprobe is available and recent enough."""
    output = _tool_output("ffprobe", "-version")
    return _check_version("ffprobe", output, r"ffprobe version n?(\d+(?:\.\d+)+)", min_version)


def check_tesseract(min_version: tuple[int, ...] = (4,)) -> str:
    """Verify tesseract is available; page segmentation modes 11 and 12 need 4.0 or later.

    Parses version from output like 'tesseract 5.3.0'.
    """
    output = _tool_output("tesseract", "--version")
    return _check_version("tesseract", output, r"tesseract v?(\d+(?:\.\d+)+)", min_version)


def check_all() -> dict[str, str]:
    """Check every external tool the splitter needs and return their versions."""
    versions = {
        "ffmpeg": check_ffmpeg(),
        "ffprobe": check_ffprobe(),
        "tesseract": check_tesseract(),
    }
    logger.debug(f"Tool versions: {versions}")
    return versions
