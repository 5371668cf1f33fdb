"""Error types raised by the splitting pipeline."""


class SplitterError(RuntimeError):
    """Base class for all fatal pipeline errors."""


class InputError(SplitterError):
    """Malformed setlist, empty timestamp cache or unusable media file."""


class ExternalToolError(SplitterError):
    """An external program (ffmpeg, ffprobe, tesseract) failed or is missing."""

    def __init__(self, tool: str, message: str, stderr: str | None = None):
        self.tool = tool
        self.stderr = stderr
        detail = f"{tool}: {message}"
        if stderr:
            detail += f"\n{stderr.strip()}"
        super().__init__(detail)


class DetectionError(SplitterError):
    """Fewer song starts were confirmed than the setlist contains."""

    def __init__(self, missing_titles: list[str], expected: int, found: int):
        self.missing_titles = missing_titles
        self.expected = expected
        self.found = found
        super().__init__(
            f"Detected {found} of {expected} songs. Missing: "
            + ", ".join(f'"{title}"' for title in missing_titles)
        )


class SegmentMismatchError(SplitterError):
    """More song segments than setlist entries, so titles cannot be assigned."""

    def __init__(self, segments: int, songs: int):
        self.segments = segments
        self.songs = songs
        super().__init__(
            f"Found {segments} song segments but the setlist only has {songs} songs"
        )
