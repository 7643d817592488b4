"""Fit feature chunks to a uniform frame count."""

from __future__ import annotations

from typing import Optional

import numpy as np

from ddspnorm.audio.features import AudioFeatures, ChunkWindow, FeatureError
from ddspnorm.config import FamilyConstants

# f0 value marking an unvoiced padding frame
UNVOICED_F0 = -1.0


def resize_audio_features(
    features: AudioFeatures,
    starting_frame: int,
    ending_frame: int,
    is_last_chunk: bool,
    resized_length: int,
    constants: Optional[FamilyConstants] = None,
) -> AudioFeatures:
    """
    Cut frames [starting_frame, ending_frame) out of a feature sequence.

    On the last chunk, frames at or past resized_length are replaced by
    silence (loudness = lowest_ld, f0 = -1, confidence = 0).

    Args:
        features: Source features
        starting_frame: First source frame
        ending_frame: One past the last source frame
        is_last_chunk: Pad from resized_length on when True
        resized_length: True length of the recording
        constants: Model family constants (defaults if None)

    Returns:
        AudioFeatures with exactly ending_frame - starting_frame frames
    """
    constants = constants or FamilyConstants()
    length = ending_frame - starting_frame
    if starting_frame < 0 or length < 0:
        raise FeatureError(f"Invalid frame window [{starting_frame}, {ending_frame})")

    # Source frames that are copied rather than padded
    copy_end = min(ending_frame, resized_length) if is_last_chunk else ending_frame
    copy_len = max(0, copy_end - starting_frame)
    src = slice(starting_frame, starting_frame + copy_len)

    def fit(name: str, curve: np.ndarray, fill: float) -> np.ndarray:
        # Empty curves stay empty
        if len(curve) == 0:
            return np.zeros(0, dtype=np.float32)
        if starting_frame + copy_len > len(curve):
            raise FeatureError(
                f"{name} has {len(curve)} frames, window needs frames up to {starting_frame + copy_len}"
            )
        out = np.full(length, fill, dtype=np.float32)
        out[:copy_len] = curve[src]
        return out

    return AudioFeatures(
        loudness_db=fit("loudness_db", features.loudness_db, constants.lowest_ld),
        f0_hz=fit("f0_hz", features.f0_hz, UNVOICED_F0),
        confidences=fit("confidences", features.confidences, 0.0),
    )


def resize_chunk(
    features: AudioFeatures,
    window: ChunkWindow,
    constants: Optional[FamilyConstants] = None,
) -> AudioFeatures:
    """Resize features to a ChunkWindow."""
    return resize_audio_features(
        features,
        window.starting_frame,
        window.ending_frame,
        window.is_last_chunk,
        window.resized_length,
        constants=constants,
    )
