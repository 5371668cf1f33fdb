"""Tunable analysis parameters, grouped so every stage can be run with synthetic values."""

from pathlib import Path
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, ValidationError

from live_set_splitter.exceptions import InputError


class OcrStrategy(BaseModel):
    """One (weight preset, page segmentation mode) attempt of the frame pass."""
    weights: Literal["stingy", "greedy"]
    psm: Optional[str] = Field(None, description="Tesseract --psm value, None for the engine default")


class TextPassConfig(BaseModel):
    fps: float = Field(1.0, gt=0, description="Frames per second sampled by the coarse scan")
    scale_width: int = Field(400, gt=0)
    scale_height: int = Field(200, gt=0)
    crop_width: str = Field("iw/1.5", description="ffmpeg crop width expression")
    crop_height: str = Field("ih/4", description="ffmpeg crop height expression")
    crop_x: int = Field(0, ge=0)
    crop_y: int = Field(160, ge=0)
    min_song_length: float = Field(30.0, ge=0, description="Seconds after a confirmed start during which frames are skipped")
    psm_order: List[Optional[str]] = Field(default_factory=lambda: ["11", None, "6"])
    require_overlay: bool = Field(True, description="Only accept title matches on frames whose first line is the artist")
    skip_duplicate_frames: bool = Field(True, description="Skip frames whose perceptual hash equals the last unmatched frame")
    hash_threshold: int = Field(0, ge=0)
    contrast_threshold: int = Field(166, ge=0, le=255, description="Gray level (about 65%) splitting black from white")


class FramePassConfig(BaseModel):
    look_back: float = Field(3.0, gt=0, description="Seconds before the coarse start to re-scan at native rate")
    strategies: List[OcrStrategy] = Field(
        default_factory=lambda: [
            OcrStrategy(weights="stingy", psm="11"),
            OcrStrategy(weights="stingy", psm=None),
            OcrStrategy(weights="greedy", psm="6"),
            OcrStrategy(weights="greedy", psm="12"),
            OcrStrategy(weights="greedy", psm="10"),
        ]
    )


class AudioConfig(BaseModel):
    sample_rate: int = Field(44100, gt=0)
    window_size: int = Field(4096, gt=0, description="Samples per RMS window")
    hop_size: int = Field(1024, gt=0, description="Samples between window starts")
    smoothing_radius: float = Field(0.5, ge=0, description="Moving average radius in seconds")
    min_silence: float = Field(2.0, gt=0, description="Shortest silence span in seconds")
    base_threshold: float = Field(0.005, gt=0)
    adaptive_factor: float = Field(0.25, gt=0)
    floor_factor: float = Field(0.1, gt=0)
    look_back: float = Field(3.0, gt=0, description="Seconds before a start searched for silence")


class BlackFrameConfig(BaseModel):
    search_window: float = Field(40.0, gt=0, description="Seconds at the end of the recording to scan")
    width: int = Field(200, gt=0)
    height: int = Field(100, gt=0)
    pixel_threshold: int = Field(25, ge=0, le=255)
    dark_ratio: float = Field(0.80, gt=0, le=1)


class AnalysisConfig(BaseModel):
    """All parameters of the boundary detection and refinement stages."""
    text_pass: TextPassConfig = Field(default_factory=TextPassConfig)
    frame_pass: FramePassConfig = Field(default_factory=FramePassConfig)
    audio: AudioConfig = Field(default_factory=AudioConfig)
    black_frame: BlackFrameConfig = Field(default_factory=BlackFrameConfig)


def load_config(path: str | Path | None) -> AnalysisConfig:
    """Load an AnalysisConfig from JSON, or return defaults when path is None."""
    if path is None:
        return AnalysisConfig()
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Config file does not exist: {path}")
    try:
        return AnalysisConfig.model_validate_json(path.read_text(encoding="utf-8"))
    except ValidationError as e:
        raise InputError(f"Invalid config {path}: {e}") from e
