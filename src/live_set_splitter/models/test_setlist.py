"""Tests for setlist and timestamp persistence."""

import json
from pathlib import Path

import pytest

from live_set_splitter.exceptions import InputError
from live_set_splitter.models.config import AnalysisConfig, load_config
from live_set_splitter.models.setlist import (
    SetList,
    SetMetaData,
    SongTimestamp,
    load_setlist,
    load_timestamps,
    save_setlist,
)


def test_year_and_folder_name():
    metadata = SetMetaData(artist="John Doe", album="Live: At the Hall", date="2023-06-14")
    assert metadata.year() == "2023"
    assert metadata.folder_name() == "Live - At the Hall"
    assert SetMetaData(artist="AC:DC").folder_name() == "AC-DC"
    assert SetMetaData(artist="John Doe").year() is None


def test_setlist_round_trip(tmp_path: Path):
    path = tmp_path / "in.json"
    path.write_text(json.dumps({
        "artist": "John Doe",
        "show": "Tiny Desk",
        "set_list": [{"title": "Song A"}, {"title": "Song B"}],
    }))
    setlist = load_setlist(path)
    assert [song.title for song in setlist.set_list] == ["Song A", "Song B"]
    assert setlist.timestamps is None

    setlist.timestamps = [SongTimestamp(title="Song A", start_time=0.0, end_time=5.0, duration=5.0)]
    out = tmp_path / "out" / "setlist.json"
    save_setlist(setlist, out)
    saved = json.loads(out.read_text())
    assert saved["show"] == "Tiny Desk"
    assert "album" not in saved
    assert SetList.model_validate(saved).timestamps[0].end_time == 5.0


def test_invalid_setlist(tmp_path: Path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"artist": "John Doe", "set_list": []}))
    with pytest.raises(InputError):
        load_setlist(path)
    with pytest.raises(FileNotFoundError):
        load_setlist(tmp_path / "missing.json")


def test_timestamps_file(tmp_path: Path):
    path = tmp_path / "timestamps.json"
    path.write_text(json.dumps({"songs": [
        {"title": "Song A", "start_time": 0, "end_time": 10.5, "duration": 10.5},
    ]}))
    assert load_timestamps(path)[0].end_time == 10.5

    path.write_text(json.dumps({"songs": []}))
    with pytest.raises(InputError, match="no songs"):
        load_timestamps(path)

    path.write_text(json.dumps({"songs": [
        {"title": "Song A", "start_time": 10, "end_time": 5, "duration": -5},
    ]}))
    with pytest.raises(InputError):
        load_timestamps(path)


def test_config_defaults_and_overrides(tmp_path: Path):
    assert load_config(None) == AnalysisConfig()
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"audio": {"min_silence": 1.5}, "black_frame": {"dark_ratio": 0.9}}))
    config = load_config(path)
    assert config.audio.min_silence == 1.5
    assert config.audio.sample_rate == 44100
    assert config.black_frame.dark_ratio == 0.9
    assert [s.psm for s in config.frame_pass.strategies] == ["11", None, "6", "12", "10"]

    path.write_text(json.dumps({"audio": {"hop_size": 0}}))
    with pytest.raises(InputError):
        load_config(path)
