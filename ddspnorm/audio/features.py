"""Per-frame audio feature containers."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Sequence

import numpy as np
from numpy.typing import NDArray


class FeatureError(ValueError):
    """Raised for malformed or inconsistent feature sequences."""


def _as_curve(values: Sequence[float] | NDArray) -> NDArray[np.float32]:
    arr = np.asarray(values, dtype=np.float32)
    if arr.ndim != 1:
        arr = arr.reshape(-1)
    return arr


@dataclass
class AudioFeatures:
    """Frame-aligned loudness, pitch and confidence curves.

    Frame i of every non-empty sequence refers to the same instant.

    Attributes:
        loudness_db: Loudness per frame (dB)
        f0_hz: Fundamental frequency per frame (Hz, <= 0 means unvoiced)
        confidences: Pitch/loudness confidence per frame in [0, 1]
    """

    loudness_db: NDArray[np.float32] = field(default_factory=lambda: np.zeros(0, dtype=np.float32))
    f0_hz: NDArray[np.float32] = field(default_factory=lambda: np.zeros(0, dtype=np.float32))
    confidences: NDArray[np.float32] = field(default_factory=lambda: np.zeros(0, dtype=np.float32))

    def __post_init__(self) -> None:
        """Convert to float32 curves and check frame alignment."""
        self.loudness_db = _as_curve(self.loudness_db)
        self.f0_hz = _as_curve(self.f0_hz)
        self.confidences = _as_curve(self.confidences)

        lengths = {
            name: len(curve)
            for name, curve in (
                ("loudness_db", self.loudness_db),
                ("f0_hz", self.f0_hz),
                ("confidences", self.confidences),
            )
            if len(curve) > 0
        }
        if len(set(lengths.values())) > 1:
            raise FeatureError(f"Feature sequences must share one length, got {lengths}")

    @property
    def num_frames(self) -> int:
        """Number of frames (0 if every sequence is empty)."""
        return max(len(self.loudness_db), len(self.f0_hz), len(self.confidences))

    @property
    def has_confidences(self) -> bool:
        return len(self.confidences) > 0

    def trim(self, num_frames: int) -> AudioFeatures:
        """Return a copy truncated to the first num_frames frames."""
        return AudioFeatures(
            loudness_db=self.loudness_db[:num_frames].copy(),
            f0_hz=self.f0_hz[:num_frames].copy(),
            confidences=self.confidences[:num_frames].copy(),
        )

    @classmethod
    def concatenate(cls, parts: Iterable[AudioFeatures]) -> AudioFeatures:
        """Join chunks end to end."""
        parts = list(parts)
        if not parts:
            return cls()
        return cls(
            loudness_db=np.concatenate([p.loudness_db for p in parts]),
            f0_hz=np.concatenate([p.f0_hz for p in parts]),
            confidences=np.concatenate([p.confidences for p in parts]),
        )

    @classmethod
    def from_dict(cls, data: dict) -> AudioFeatures:
        # "f0_confidence" is the key used by the DDSP python tooling
        confidences = data.get("confidences", data.get("f0_confidence", []))
        return cls(
            loudness_db=data.get("loudness_db", []),
            f0_hz=data.get("f0_hz", []),
            confidences=confidences,
        )

    def to_dict(self) -> dict:
        return {
            "loudness_db": self.loudness_db.tolist(),
            "f0_hz": self.f0_hz.tolist(),
            "confidences": self.confidences.tolist(),
        }

    @classmethod
    def load(cls, path: Path) -> AudioFeatures:
        """Load features from a JSON file."""
        with open(path, encoding="utf-8") as f:
            return cls.from_dict(json.load(f))

    def save(self, path: Path) -> None:
        """Save features to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f)


@dataclass
class ChunkWindow:
    """Half-open frame range [starting_frame, ending_frame) of a recording.

    Attributes:
        starting_frame: First source frame of the chunk
        ending_frame: One past the last source frame of the chunk
        is_last_chunk: Whether this is the final chunk of the recording
        resized_length: True recording length; the last chunk is padded
                        with silence from this frame on
    """

    starting_frame: int
    ending_frame: int
    is_last_chunk: bool = False
    resized_length: int = 0

    def __post_init__(self) -> None:
        if self.starting_frame < 0:
            raise ValueError(f"starting_frame must be non-negative, got {self.starting_frame}")
        if self.ending_frame < self.starting_frame:
            raise ValueError(
                f"ending_frame ({self.ending_frame}) must not precede "
                f"starting_frame ({self.starting_frame})"
            )
        if self.resized_length < 0:
            raise ValueError(f"resized_length must be non-negative, got {self.resized_length}")

    @property
    def num_frames(self) -> int:
        return self.ending_frame - self.starting_frame
