"""CLI command for split."""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from live_set_splitter.models.config import load_config
from live_set_splitter.split_concert.main import OutputFormat, split_concert
from live_set_splitter.utils.cli import cli_error_handler, setup_logging

console = Console()


@cli_error_handler
def split(
    input_file: str = typer.Argument(..., help="Path to the concert recording (mp4)"),
    setlist_file: str = typer.Argument(..., help="Path to the setlist JSON file"),
    no_save_songs: bool = typer.Option(False, "--no-save-songs", help="Only analyze, do not write song files"),
    timestamps_file: Optional[str] = typer.Option(None, "--timestamps-file", help="Reuse timestamps from a previously generated JSON file"),
    refine_timestamps: bool = typer.Option(False, "--refine-timestamps", help="Re-run audio and black frame refinement on reused timestamps"),
    output_format: OutputFormat = typer.Option(OutputFormat.BOTH, "--output-format", "-f", help="Output format: 'video' (mp4), 'audio' (m4a) or 'both'"),
    output_dir: Optional[str] = typer.Option(None, "--output-dir", "-o", help="Parent directory for the per-concert output folder"),
    analyze_images: bool = typer.Option(False, "--analyze-images", help="Save matched frames to ./analysis/images"),
    config_file: Optional[str] = typer.Option(None, "--config", "-c", help="JSON file overriding analysis parameters"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """
    Split a live concert recording into one file per song.

    Song starts are found from the on-screen title overlays, refined frame by
    frame and moved to the nearest preceding silence. The last song ends at the
    first black frame near the end of the recording. Timestamps are saved next
    to the songs so later runs can skip detection.
    """
    setup_logging(verbose)
    logger = logging.getLogger(__name__)

    if timestamps_file is not None and not Path(timestamps_file).is_file():
        raise FileNotFoundError(f"Timestamps file does not exist: {timestamps_file}")

    config = load_config(config_file)
    logger.info(f"Splitting: {input_file}")
    setlist = split_concert(
        input_file,
        setlist_file,
        output_dir=output_dir,
        output_format=output_format,
        save_songs=not no_save_songs,
        timestamps_file=timestamps_file,
        refine_timestamps=refine_timestamps,
        analyze_images=analyze_images,
        config=config,
    )

    for ts in setlist.timestamps or []:
        console.print(f"  {ts.start_time:8.2f}s  {ts.end_time:8.2f}s  {ts.title}")
    if no_save_songs:
        console.print("\n[bold green]Success![/bold green] Analysis complete")
    else:
        console.print(f"\n[bold green]Success![/bold green] Songs saved to: {Path(output_dir or '.') / setlist.folder_name()}")
