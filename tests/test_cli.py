"""Tests for the ddspnorm command-line interface."""

from __future__ import annotations

import json

import numpy as np
import pytest

from ddspnorm import cli
from ddspnorm.audio.features import AudioFeatures
from ddspnorm.config import ModelValues


@pytest.fixture
def home(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    return tmp_path


def test_frames_command(home, capsys):
    assert cli.main(["--no-log-file", "frames", "2"]) == 0
    assert capsys.readouterr().out.strip() == "500"


def test_frames_to_seconds(home, capsys):
    assert cli.main(["--no-log-file", "frames", "--to-seconds", "125"]) == 0
    assert capsys.readouterr().out.strip() == "0.5"


def test_normalize_command(home, tmp_path):
    features_path = tmp_path / "take.json"
    AudioFeatures([-40.0, -30.0, -20.0], [220.0, 220.0, 220.0], [1.0, 1.0, 1.0]).save(features_path)
    model_path = tmp_path / "violin.json"
    model_path.write_text(json.dumps(ModelValues(-10.0, -20.0, -25.0, 69.0).to_dict()))
    output_path = tmp_path / "out.json"

    code = cli.main([
        "--no-log-file", "normalize", str(features_path),
        "--model", str(model_path), "--output", str(output_path), "--device", "cpu",
    ])

    assert code == 0
    out = AudioFeatures.load(output_path)
    np.testing.assert_allclose(out.loudness_db, [-120.0, -70.0, -20.0], atol=1e-4)
    np.testing.assert_allclose(out.f0_hz, [440.0, 440.0, 440.0], rtol=1e-5)


def test_normalize_missing_model_fails(home, tmp_path):
    features_path = tmp_path / "take.json"
    AudioFeatures([-40.0], [220.0], [1.0]).save(features_path)
    code = cli.main(["--no-log-file", "normalize", str(features_path), "--model", "nope", "--device", "cpu"])
    assert code == 1


def test_check_fails_on_cpu(home, monkeypatch, capsys):
    monkeypatch.setattr("ddspnorm.capability.DisplayMetrics.probe", classmethod(lambda cls: None))
    assert cli.main(["--no-log-file", "check", "--device", "cpu"]) == 1
    assert "not GPU-accelerated" in capsys.readouterr().out


def test_devices_lists_cpu(home, capsys):
    assert cli.main(["--no-log-file", "devices"]) == 0
    assert "CPU:0" in capsys.readouterr().out


def test_log_file_written(home):
    assert cli.main(["frames", "1"]) == 0
    assert cli.LOG_FILE is not None
    assert cli.LOG_FILE.parent == home / ".config" / "ddspnorm" / "logs"
