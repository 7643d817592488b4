"""Conversion between seconds and model analysis frames."""

from __future__ import annotations

import logging
import math
from typing import Iterator

from ddspnorm.audio.features import ChunkWindow
from ddspnorm.config import MODEL_FRAME_RATE

logger = logging.getLogger(__name__)


def seconds_to_frames(seconds: float, frame_rate: float = MODEL_FRAME_RATE) -> float:
    """Convert a duration in seconds to model frames."""
    return seconds * frame_rate


def frames_to_seconds(frames: float, frame_rate: float = MODEL_FRAME_RATE) -> float:
    """Convert a number of model frames to seconds."""
    return frames / frame_rate


def iter_chunk_windows(total_frames: int, chunk_frames: int) -> Iterator[ChunkWindow]:
    """
    Split a recording into uniform chunk windows.

    Every window is chunk_frames wide. The final window may run past
    total_frames; it is flagged as the last chunk with resized_length set
    to total_frames so the resizer pads the overhang with silence.

    Args:
        total_frames: Length of the recording in frames
        chunk_frames: Width of every chunk in frames

    Yields:
        ChunkWindow for each chunk, in order
    """
    if chunk_frames < 1:
        raise ValueError(f"chunk_frames must be >= 1, got {chunk_frames}")

    num_chunks = math.ceil(total_frames / chunk_frames)
    logger.debug(f"Windowing {total_frames} frames into {num_chunks} chunks of {chunk_frames}")

    for index in range(num_chunks):
        start = index * chunk_frames
        yield ChunkWindow(
            starting_frame=start,
            ending_frame=start + chunk_frames,
            is_last_chunk=index == num_chunks - 1,
            resized_length=total_frames,
        )
