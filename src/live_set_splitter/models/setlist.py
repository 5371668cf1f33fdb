"""Pydantic models for the setlist file and its cached timestamps."""

from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError, model_validator

from live_set_splitter.exceptions import InputError


class Song(BaseModel):
    """One entry of the setlist."""
    title: str = Field(..., min_length=1)


class SongTimestamp(BaseModel):
    """Start and end of a song inside the recording, in seconds."""
    title: str
    start_time: float = Field(..., ge=0)
    end_time: float = Field(..., ge=0)
    duration: float = Field(..., ge=0)

    @model_validator(mode="after")
    def check_order(self) -> "SongTimestamp":
        if self.end_time < self.start_time:
            raise ValueError(
                f"end_time {self.end_time} is before start_time {self.start_time} for '{self.title}'"
            )
        return self


class Timestamps(BaseModel):
    """Standalone timestamp cache file."""
    songs: List[SongTimestamp]


class SetMetaData(BaseModel):
    """Concert information used for output naming and file tags."""
    artist: str = Field(..., min_length=1)
    album: Optional[str] = None
    date: Optional[str] = None
    show: Optional[str] = None

    def year(self) -> Optional[str]:
        """Year part of the date, e.g. '2023' for '2023-06-14'."""
        if not self.date:
            return None
        return self.date.split("-")[0].strip() or None

    def folder_name(self) -> str:
        name = self.album or self.artist
        return name.replace(": ", " - ").replace(":", "-").strip()


class SetList(SetMetaData):
    """Setlist file: metadata flattened alongside the songs and optional timestamps."""
    set_list: List[Song] = Field(..., min_length=1)
    timestamps: Optional[List[SongTimestamp]] = None


def load_setlist(path: str | Path) -> SetList:
    """Read and validate a setlist JSON file.

    Raises:
        FileNotFoundError: If the file does not exist.
        InputError: If the JSON is malformed or misses required fields.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Setlist file does not exist: {path}")
    try:
        return SetList.model_validate_json(path.read_text(encoding="utf-8"))
    except ValidationError as e:
        raise InputError(f"Invalid setlist {path}: {e}") from e


def load_timestamps(path: str | Path) -> List[SongTimestamp]:
    """Read a standalone timestamps file; an empty list is rejected."""
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Timestamps file does not exist: {path}")
    try:
        timestamps = Timestamps.model_validate_json(path.read_text(encoding="utf-8"))
    except ValidationError as e:
        raise InputError(f"Invalid timestamps file {path}: {e}") from e
    if not timestamps.songs:
        raise InputError(f"Timestamps file {path} contains no songs")
    return timestamps.songs


def save_setlist(setlist: SetList, path: str | Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(setlist.model_dump_json(indent=2, exclude_none=True))
