"""Tests for seconds/frames conversion and chunk windowing."""

from __future__ import annotations

import pytest

from ddspnorm.audio.features import ChunkWindow
from ddspnorm.audio.frames import frames_to_seconds, iter_chunk_windows, seconds_to_frames
from ddspnorm.config import MODEL_FRAME_RATE


def test_seconds_to_frames_uses_model_frame_rate():
    assert seconds_to_frames(2.0) == 2.0 * MODEL_FRAME_RATE
    assert seconds_to_frames(0.0) == 0.0


def test_frames_to_seconds_uses_model_frame_rate():
    assert frames_to_seconds(MODEL_FRAME_RATE) == pytest.approx(1.0)
    assert frames_to_seconds(125, frame_rate=250.0) == pytest.approx(0.5)


def test_conversion_is_invertible():
    for secs in (0.004, 0.5, 1.0, 12.34):
        assert frames_to_seconds(seconds_to_frames(secs)) == pytest.approx(secs)


def test_custom_frame_rate():
    assert seconds_to_frames(1.5, frame_rate=100.0) == 150.0


class TestIterChunkWindows:
    """Tests for iter_chunk_windows."""

    def test_exact_multiple(self):
        windows = list(iter_chunk_windows(10, 5))
        assert [(w.starting_frame, w.ending_frame) for w in windows] == [(0, 5), (5, 10)]
        assert [w.is_last_chunk for w in windows] == [False, True]
        assert all(w.resized_length == 10 for w in windows)

    def test_last_window_keeps_uniform_width(self):
        windows = list(iter_chunk_windows(12, 5))
        assert len(windows) == 3
        assert windows[-1].starting_frame == 10
        assert windows[-1].ending_frame == 15
        assert windows[-1].is_last_chunk

    def test_single_chunk(self):
        windows = list(iter_chunk_windows(3, 100))
        assert len(windows) == 1
        assert windows[0].num_frames == 100
        assert windows[0].is_last_chunk

    def test_empty_recording(self):
        assert list(iter_chunk_windows(0, 5)) == []

    def test_rejects_zero_chunk(self):
        with pytest.raises(ValueError, match="chunk_frames must be >= 1"):
            list(iter_chunk_windows(10, 0))


class TestChunkWindow:
    """Tests for ChunkWindow validation."""

    def test_num_frames(self):
        assert ChunkWindow(3, 10).num_frames == 7

    def test_rejects_negative_start(self):
        with pytest.raises(ValueError, match="starting_frame must be non-negative"):
            ChunkWindow(-1, 4)

    def test_rejects_reversed_window(self):
        with pytest.raises(ValueError, match="must not precede"):
            ChunkWindow(5, 4)
