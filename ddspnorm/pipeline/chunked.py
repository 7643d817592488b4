"""Normalize long recordings chunk by chunk."""

from __future__ import annotations

import logging
from typing import Optional

from ddspnorm.audio.features import AudioFeatures
from ddspnorm.audio.frames import iter_chunk_windows, seconds_to_frames
from ddspnorm.audio.resize import resize_chunk
from ddspnorm.config import ModelValues
from ddspnorm.pipeline.normalize import FeatureNormalizer

logger = logging.getLogger(__name__)


def normalize_recording(
    features: AudioFeatures,
    model: ModelValues,
    chunk_seconds: Optional[float] = None,
    normalizer: Optional[FeatureNormalizer] = None,
) -> AudioFeatures:
    """
    Normalize a whole recording in uniform chunks and stitch the results.

    Each chunk is cut with the resizer (the last one padded with silence
    frames), normalized against the same model values, and the joined
    output is trimmed back to the recording length.

    Args:
        features: Features of the whole recording
        model: Reference statistics of the target model
        chunk_seconds: Chunk duration (None = whole recording at once)
        normalizer: Normalizer to use (a CPU one is created if None)

    Returns:
        Normalized features with the same number of frames as the input
    """
    normalizer = normalizer or FeatureNormalizer()
    total_frames = features.num_frames

    if total_frames == 0 or chunk_seconds is None:
        return normalizer.normalize(features, model)

    chunk_frames = int(round(seconds_to_frames(chunk_seconds, normalizer.constants.model_frame_rate)))
    if chunk_frames < 1:
        raise ValueError(f"chunk_seconds={chunk_seconds} is shorter than one frame")

    outputs = []
    for window in iter_chunk_windows(total_frames, chunk_frames):
        chunk = resize_chunk(features, window, constants=normalizer.constants)
        outputs.append(normalizer.normalize(chunk, model))
        logger.debug(
            f"Normalized frames [{window.starting_frame}, {window.ending_frame})"
            f"{' (last)' if window.is_last_chunk else ''}"
        )

    logger.info(f"Normalized {total_frames} frames in {len(outputs)} chunk(s) of {chunk_frames}")
    return AudioFeatures.concatenate(outputs).trim(total_frames)
