"""Audio pass: nudge song starts to the nearest preceding silence."""

import logging
from dataclasses import replace
from typing import List, Sequence

import ffmpeg
import numpy as np

from live_set_splitter.exceptions import ExternalToolError
from live_set_splitter.models.config import AudioConfig
from live_set_splitter.models.segment import Segment

logger = logging.getLogger(__name__)


def extract_waveform(input_file: str, sample_rate: int) -> np.ndarray:
    """Decode the audio track to mono float samples in [-1.0, 1.0]."""
    try:
        out, _ = (
            ffmpeg.input(input_file)
            .output("pipe:", format="s16le", acodec="pcm_s16le", ac=1, ar=sample_rate, vn=None)
            .run(capture_stdout=True, capture_stderr=True)
        )
    except ffmpeg.Error as e:
        stderr = e.stderr.decode("utf-8", errors="ignore") if e.stderr else None
        logger.error(f"ffmpeg failed while extracting audio from {input_file}")
        raise ExternalToolError("ffmpeg", "failed to extract audio waveform", stderr) from e

    samples = np.frombuffer(out, dtype="<i2").astype(np.float32) / 32768.0
    logger.info(f"Extracted {len(samples) / sample_rate:.1f}s of audio at {sample_rate} Hz")
    return samples


def profile_rate(config: AudioConfig) -> float:
    """Energy profile values per second."""
    return config.sample_rate / config.hop_size


def energy_profile(samples: np.ndarray, config: AudioConfig) -> np.ndarray:
    """RMS per overlapping window, smoothed with a centered moving average.

    Windows that would run past the end of the samples are dropped. Near the
    edges the moving average uses only the values that exist.
    """
    samples = np.asarray(samples, dtype=np.float64)
    if len(samples) < config.window_size:
        return np.zeros(0)

    squares = np.concatenate(([0.0], np.cumsum(samples * samples)))
    starts = np.arange(0, len(samples) - config.window_size + 1, config.hop_size)
    rms = np.sqrt((squares[starts + config.window_size] - squares[starts]) / config.window_size)

    radius = int(config.smoothing_radius * profile_rate(config))
    if radius == 0:
        return rms
    sums = np.concatenate(([0.0], np.cumsum(rms)))
    index = np.arange(len(rms))
    lo = np.maximum(index - radius, 0)
    hi = np.minimum(index + radius + 1, len(rms))
    return (sums[hi] - sums[lo]) / (hi - lo)


def adaptive_threshold(profile: np.ndarray, config: AudioConfig) -> float:
    """A fraction of the mean energy, clamped so loud or quiet recordings still work."""
    if len(profile) == 0:
        return config.base_threshold
    threshold = float(np.mean(profile)) * config.adaptive_factor
    return min(max(threshold, config.base_threshold * config.floor_factor), config.base_threshold)


def find_silence_points(profile: Sequence[float], threshold: float, config: AudioConfig) -> List[float]:
    """Midpoints, in seconds, of every run below ``threshold`` lasting at least the minimum silence.

    A run still open at the end of the profile counts too.
    """
    rate = profile_rate(config)
    min_frames = int(config.min_silence * rate)
    points = []
    run_start: int | None = None

    def close_run(start: int, length: int) -> None:
        if length >= min_frames:
            midpoint = start + length // 2
            points.append(midpoint / rate)
            logger.debug(f"Silence at {midpoint / rate:.2f}s (length: {length / rate:.2f}s)")

    for i, energy in enumerate(profile):
        if energy < threshold:
            if run_start is None:
                run_start = i
        elif run_start is not None:
            close_run(run_start, i - run_start)
            run_start = None

    if run_start is not None:
        close_run(run_start, len(profile) - run_start)
    return points


def refine_with_silence(
    segments: Sequence[Segment],
    silence_points: Sequence[float],
    total_duration: float,
    config: AudioConfig,
) -> List[Segment]:
    """Move each non-first song start to the latest silence within the look-back window.

    The previous segment's end follows so segments stay contiguous. The last
    segment is extended to ``total_duration``.
    """
    refined = [replace(segment) for segment in segments]
    for i in range(1, len(refined)):
        segment = refined[i]
        if not segment.is_song:
            continue
        start = segment.start_time
        window_start = max(start - config.look_back, 0.0)
        nearby = [p for p in silence_points if window_start <= p < start]
        if not nearby:
            logger.warning(f"No silence before {start:.2f}s for '{segment.title}'")
            continue
        new_start = max(nearby)
        if new_start <= refined[i - 1].start_time:
            continue
        logger.info(f"Refined start of '{segment.title}' from {start:.2f}s to {new_start:.2f}s (-{start - new_start:.2f}s)")
        segment.start_time = new_start
        if refined[i - 1].is_song:
            refined[i - 1].end_time = new_start

    if refined:
        refined[-1].end_time = total_duration
    return refined


def refine_segments(
    segments: Sequence[Segment],
    samples: np.ndarray,
    total_duration: float,
    config: AudioConfig,
) -> List[Segment]:
    """Compute the energy profile of ``samples`` and apply the silence nudge."""
    profile = energy_profile(samples, config)
    threshold = adaptive_threshold(profile, config)
    logger.info(f"Using energy threshold {threshold:.6f}")
    points = find_silence_points(profile, threshold, config)
    logger.info(f"Found {len(points)} silence points")
    return refine_with_silence(segments, points, total_duration, config)
