"""Core logic for split: detect song boundaries in a concert recording and extract each song."""

import logging
import tempfile
from enum import Enum
from pathlib import Path
from typing import Dict, List

import ffmpeg
from rich.console import Console
from rich.progress import BarColumn, Progress, TextColumn, TimeElapsedColumn

from live_set_splitter.assemble_segments.main import (
    create_song_timestamps,
    log_segments,
    segments_from_timestamps,
    validate_segment_count,
    validate_song_count,
)
from live_set_splitter.detect_boundaries.main import build_segments, detect_boundaries
from live_set_splitter.exceptions import ExternalToolError, InputError
from live_set_splitter.models.config import AnalysisConfig
from live_set_splitter.models.segment import Segment
from live_set_splitter.models.setlist import SetList, SetMetaData, load_setlist, load_timestamps, save_setlist
from live_set_splitter.ocr.main import OcrEngine, TesseractEngine
from live_set_splitter.refine_boundaries import audio_pass, black_frame, frame_pass
from live_set_splitter.utils.dependencies import check_all
from live_set_splitter.utils.files import sanitize_filename
from live_set_splitter.utils.frames import extract_text_frames
from live_set_splitter.utils.video import FrameIndex, VideoInfo, probe

logger = logging.getLogger(__name__)

ANALYSIS_IMAGES_DIR = Path("analysis") / "images"


class OutputFormat(str, Enum):
    """Output format options."""
    VIDEO = "video"
    AUDIO = "audio"
    BOTH = "both"


def song_metadata(metadata: SetMetaData, title: str, track: int) -> Dict[str, str]:
    """Tags written into each extracted file."""
    tags = {"artist": metadata.artist, "title": title}
    if metadata.album:
        tags["album"] = metadata.album
    year = metadata.year()
    if year:
        tags["date"] = year
    tags["track"] = str(track)
    return tags


def extract_song(
    input_file: str,
    output_file: Path,
    start_time: float,
    end_time: float,
    tags: Dict[str, str],
    audio_only: bool = False,
) -> None:
    """Stream-copy ``[start_time, end_time]`` of the recording into ``output_file``."""
    options = {
        "ss": f"{start_time:.3f}",
        "to": f"{end_time:.3f}",
        "metadata": [f"{key}={value}" for key, value in tags.items()],
    }
    if audio_only:
        options.update({"vn": None, "acodec": "copy", "map": "0:a"})
    else:
        options["c"] = "copy"
    try:
        (
            ffmpeg.input(input_file)
            .output(str(output_file), **options)
            .overwrite_output()
            .run(capture_stdout=True, capture_stderr=True)
        )
    except ffmpeg.Error as e:
        stderr = e.stderr.decode("utf-8", errors="ignore") if e.stderr else None
        logger.error(f"ffmpeg failed while writing {output_file}")
        raise ExternalToolError("ffmpeg", f"failed to extract {output_file.name}", stderr) from e


def extract_songs(
    input_file: str,
    segments: List[Segment],
    setlist: SetList,
    output_dir: Path,
    output_format: OutputFormat,
) -> List[Path]:
    """Write one file per song segment (and format), named by setlist position."""
    validate_segment_count(segments, setlist.set_list)
    output_dir.mkdir(parents=True, exist_ok=True)
    songs = [segment for segment in segments if segment.is_song]
    written = []

    with Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TimeElapsedColumn(),
        console=Console(stderr=True),
        transient=True,
    ) as progress:
        task = progress.add_task("Extracting songs...", total=len(songs))
        for track, (song, segment) in enumerate(zip(setlist.set_list, songs), start=1):
            safe_title = sanitize_filename(song.title)
            tags = song_metadata(setlist, song.title, track)
            logger.info(
                f"Extracting song {track}: \"{song.title}\" - {segment.start_time:.2f}s to "
                f"{segment.end_time:.2f}s ({segment.duration:.2f}s)"
            )
            if output_format in (OutputFormat.VIDEO, OutputFormat.BOTH):
                output_file = output_dir / f"{safe_title}.mp4"
                extract_song(input_file, output_file, segment.start_time, segment.end_time, tags)
                written.append(output_file)
            if output_format in (OutputFormat.AUDIO, OutputFormat.BOTH):
                output_file = output_dir / f"{safe_title}.m4a"
                extract_song(input_file, output_file, segment.start_time, segment.end_time, tags, audio_only=True)
                written.append(output_file)
            progress.advance(task)

    logger.info(f"Extracted {len(songs)} songs to {output_dir}")
    return written


def detect_segments(
    input_file: str,
    setlist: SetList,
    info: VideoInfo,
    frame_index: FrameIndex,
    engine: OcrEngine,
    config: AnalysisConfig,
    work_dir: Path,
    analysis_dir: Path | None,
) -> List[Segment]:
    """Text pass followed by the frame pass."""
    frames = extract_text_frames(input_file, work_dir / "text_frames", config.text_pass)
    boundaries = detect_boundaries(
        frames, setlist.artist, setlist.set_list, engine, config.text_pass, analysis_dir,
    )
    segments = build_segments(boundaries, setlist.set_list, info.duration)
    validate_song_count(segments, setlist.set_list)
    return frame_pass.refine_segments(
        segments, input_file, setlist.artist, info, frame_index, engine, config, work_dir, analysis_dir,
    )


def refine_ends(
    input_file: str,
    segments: List[Segment],
    info: VideoInfo,
    config: AnalysisConfig,
    work_dir: Path,
) -> List[Segment]:
    """Audio pass on song starts, then the black frame search for the last song's end."""
    logger.info("Extracting audio waveform for refinement...")
    samples = audio_pass.extract_waveform(input_file, config.audio.sample_rate)
    segments = audio_pass.refine_segments(segments, samples, info.duration, config.audio)
    end_time = black_frame.find_black_frame_end_time(
        input_file, info.duration, info.fps, config.black_frame, work_dir,
    )
    return black_frame.refine_last_song_end(segments, end_time)


def split_concert(
    input_file: str,
    setlist_file: str,
    output_dir: str | None = None,
    output_format: OutputFormat = OutputFormat.BOTH,
    save_songs: bool = True,
    timestamps_file: str | None = None,
    refine_timestamps: bool = False,
    analyze_images: bool = False,
    config: AnalysisConfig | None = None,
    engine: OcrEngine | None = None,
) -> SetList:
    """Split a concert recording into songs.

    Args:
        input_file: Recording to split.
        setlist_file: Setlist JSON with artist and ordered song titles.
        output_dir: Parent directory of the per-concert output folder.
        output_format: Which files to write per song.
        save_songs: When False only the analysis is done and saved.
        timestamps_file: Reuse timestamps from a previous run instead of detecting.
        refine_timestamps: Re-run the audio and black frame passes on reused timestamps.
        analyze_images: Copy matched frames to analysis/images.
        config: Analysis parameters; defaults when None.
        engine: OCR engine; tesseract when None.

    Returns:
        The setlist with its timestamps filled in.
    """
    config = config or AnalysisConfig()
    engine = engine or TesseractEngine()

    input_path = Path(input_file)
    if not input_path.is_file():
        raise FileNotFoundError(f"Input file does not exist: {input_file}")

    check_all()
    setlist = load_setlist(setlist_file)
    logger.info(f"Analyzing {input_file}: {setlist.artist}, {len(setlist.set_list)} songs expected")
    for i, song in enumerate(setlist.set_list, start=1):
        logger.debug(f"  {i}. {song.title}")

    info, frame_index = probe(input_file)
    folder = Path(output_dir) / setlist.folder_name() if output_dir else Path(setlist.folder_name())
    analysis_dir = ANALYSIS_IMAGES_DIR if analyze_images else None

    segments: List[Segment] = []
    if timestamps_file:
        logger.info(f"Reading song timestamps from {timestamps_file}")
        segments = segments_from_timestamps(load_timestamps(timestamps_file))
    elif setlist.timestamps is not None:
        if not setlist.timestamps:
            raise InputError(f"Setlist {setlist_file} has an empty timestamps list")
        logger.info(f"Using {len(setlist.timestamps)} timestamps from {setlist_file}")
        segments = segments_from_timestamps(setlist.timestamps)

    with tempfile.TemporaryDirectory(prefix="live-set-splitter-") as tmp:
        work_dir = Path(tmp)
        if not segments:
            logger.info("Detecting song boundaries from text overlays...")
            segments = detect_segments(
                input_file, setlist, info, frame_index, engine, config, work_dir, analysis_dir,
            )

        if timestamps_file is None or refine_timestamps:
            segments = refine_ends(input_file, segments, info, config, work_dir)
            setlist.timestamps = create_song_timestamps(segments, setlist.set_list)
            setlist_path = folder / Path(setlist_file).name
            save_setlist(setlist, setlist_path)
            logger.info(f"Saved timestamps to {setlist_path}")

    validate_song_count(segments, setlist.set_list)
    log_segments(segments)

    if save_songs:
        extract_songs(input_file, segments, setlist, folder, output_format)
    return setlist

