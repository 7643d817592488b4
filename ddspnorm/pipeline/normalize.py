"""Align loudness and pitch curves to a target model's statistics."""

from __future__ import annotations

import logging
import math
from typing import Callable, Optional

import numpy as np
import torch
import torch.nn.functional as F
from numpy.typing import NDArray

from ddspnorm.audio.features import AudioFeatures, FeatureError
from ddspnorm.audio.pitch import SEMITONES_PER_OCTAVE, hz_to_midi, shift_f0
from ddspnorm.config import FamilyConstants, ModelValues
from ddspnorm.device import ComputeBackend

logger = logging.getLogger(__name__)

# Rescale denominators below this are treated as zero
_DEGENERATE_EPS = 1e-6


class TensorScope:
    """
    Arena for intermediate tensors of one normalization call.

    Tensors created or tracked inside the scope are dropped when the scope
    exits, on success and on error. Autograd is disabled inside the scope.
    """

    def __init__(self, device: torch.device | str = "cpu"):
        self.device = torch.device(device)
        self._tensors: list[torch.Tensor] = []
        self._no_grad: Optional[torch.no_grad] = None
        self.released = 0

    def __enter__(self) -> TensorScope:
        self._no_grad = torch.no_grad()
        self._no_grad.__enter__()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.released += len(self._tensors)
        self._tensors.clear()
        if self._no_grad is not None:
            self._no_grad.__exit__(exc_type, exc, tb)
            self._no_grad = None
        return False

    @property
    def live(self) -> int:
        """Number of tensors currently held by the scope."""
        return len(self._tensors)

    def track(self, tensor: torch.Tensor) -> torch.Tensor:
        self._tensors.append(tensor)
        return tensor

    def tensor(self, values: NDArray) -> torch.Tensor:
        """Copy host values into a float32 tensor on the scope's device."""
        return self.track(torch.tensor(values, dtype=torch.float32, device=self.device))


def smooth_confidence(confidences: torch.Tensor, size: int) -> torch.Tensor:
    """
    Moving average over `size` frames with stride 1 and "same" output length.

    Padding follows TensorFlow's SAME convention (extra frame on the right
    for even sizes) and padded cells are excluded from each average.
    """
    x = confidences.reshape(1, 1, -1)
    before = (size - 1) // 2
    after = size - 1 - before

    sums = F.avg_pool1d(F.pad(x, (before, after)), size, stride=1)
    counts = F.avg_pool1d(F.pad(torch.ones_like(x), (before, after)), size, stride=1)
    return (sums / counts).reshape(-1)


def _peak_align(loudness: torch.Tensor, model: ModelValues) -> torch.Tensor:
    """Shift loudness so its max lands on the model's average max loudness."""
    return loudness + (model.average_max_loudness - loudness.max())


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


class FeatureNormalizer:
    """
    Rescale loudness and pitch onto the distribution a model was trained on.

    Loudness is peak-aligned, mean-aligned over active frames, clipped and
    stretched to the model's range; frames with low smoothed confidence are
    attenuated. Pitch is moved by the whole number of octaves that brings
    its mean closest to the model's mean pitch.
    """

    def __init__(
        self,
        backend: Optional[ComputeBackend] = None,
        constants: Optional[FamilyConstants] = None,
        scope_factory: Callable[[torch.device], TensorScope] = TensorScope,
    ):
        self.backend = backend or ComputeBackend("cpu")
        self.constants = constants or FamilyConstants()
        self.scope_factory = scope_factory

    def normalize(self, features: AudioFeatures, model: ModelValues) -> AudioFeatures:
        """
        Normalize one chunk of features against model statistics.

        Args:
            features: Input features (not modified)
            model: Reference statistics of the target model

        Returns:
            AudioFeatures with adjusted loudness_db and f0_hz. A branch whose
            input is empty yields an empty sequence.

        Raises:
            FeatureError: Confidences missing for non-empty loudness, or
                f0 given without loudness
        """
        n_ld = len(features.loudness_db)
        n_f0 = len(features.f0_hz)

        if n_ld > 0 and len(features.confidences) != n_ld:
            raise FeatureError(
                f"Loudness normalization needs {n_ld} confidences, got {len(features.confidences)}"
            )
        if n_f0 > 0 and n_ld == 0:
            raise FeatureError("Pitch normalization requires loudness_db (masked power)")

        loudness_db = np.zeros(0, dtype=np.float32)
        f0_hz = np.zeros(0, dtype=np.float32)

        with self.scope_factory(self.backend.device) as scope:
            if n_ld > 0:
                masked_power = self._normalize_loudness(scope, features, model)
                loudness_db = masked_power.cpu().numpy().copy()

                if n_f0 > 0:
                    shifted = self._normalize_pitch(scope, features, model, masked_power)
                    f0_hz = shifted.cpu().numpy().copy()

        return AudioFeatures(
            loudness_db=loudness_db,
            f0_hz=f0_hz,
            confidences=features.confidences.copy(),
        )

    def _normalize_loudness(
        self,
        scope: TensorScope,
        features: AudioFeatures,
        model: ModelValues,
    ) -> torch.Tensor:
        c = self.constants
        ld = scope.tensor(features.loudness_db)

        ld_shifted = scope.track(_peak_align(ld, model))

        # Mean of the active frames (fall back to all frames)
        ld_active = scope.track(ld_shifted[ld_shifted > model.loudness_threshold])
        if ld_active.numel() > 0:
            ld_mean = scope.track(ld_active.mean())
        else:
            logger.debug("No frames above loudness threshold, using mean of all frames")
            ld_mean = scope.track(ld_shifted.mean())

        ld_adjusted = scope.track(ld_shifted + (model.mean_loudness - ld_mean))
        ld_clipped = scope.track(torch.clamp(ld_adjusted, c.lowest_ld, model.average_max_loudness))

        # Rescale: clipped min -> lowest_ld, ld_mean -> model mean
        old_min = scope.track(ld_clipped.min())
        denom = float(ld_mean - old_min)
        if abs(denom) < _DEGENERATE_EPS:
            logger.warning(
                f"Degenerate loudness rescale (mean == min == {float(old_min):.3f} dB), "
                f"using model mean {model.mean_loudness} dB"
            )
            ld_final = scope.track(torch.full_like(ld_clipped, model.mean_loudness))
        else:
            ld_final = scope.track(
                (ld_clipped - old_min) / denom * (model.mean_loudness - c.lowest_ld) + c.lowest_ld
            )
        ld_final = scope.track(torch.clamp(ld_final, c.lowest_ld, model.average_max_loudness))

        # Attenuate frames with low smoothed confidence
        conf = scope.tensor(features.confidences)
        conf_smooth = scope.track(smooth_confidence(conf, c.conf_smooth_size))
        conf_mask = scope.track(conf_smooth <= c.conf_threshold)
        ld_reduced = scope.track(torch.where(conf_mask, ld_final - c.ld_conf_reduction, ld_final))
        masked_power = scope.track(torch.clamp(ld_reduced, min=c.lowest_ld))

        logger.debug(
            f"Loudness: peak shift={model.average_max_loudness - float(ld.max()):.2f} dB, "
            f"mean={float(ld_mean):.2f} dB, masked frames={int(conf_mask.sum())}/{ld.numel()}"
        )
        return masked_power

    def _normalize_pitch(
        self,
        scope: TensorScope,
        features: AudioFeatures,
        model: ModelValues,
        masked_power: torch.Tensor,
    ) -> torch.Tensor:
        c = self.constants
        f0 = scope.tensor(features.f0_hz)
        p = scope.track(hz_to_midi(f0))

        conf = scope.tensor(features.confidences)
        mask = scope.track((conf <= c.conf_threshold) | (masked_power > model.loudness_threshold))
        p_masked = scope.track(p[mask])
        if p_masked.numel() > 0:
            p_mean = float(p_masked.mean())
        else:
            logger.debug("Empty pitch mask, using mean of all frames")
            p_mean = float(p.mean())

        octaves = _round_half_up((model.mean_pitch - p_mean) / SEMITONES_PER_OCTAVE)
        logger.debug(f"Pitch: mean={p_mean:.2f} midi, target={model.mean_pitch:.2f}, shift={octaves} octave(s)")

        return scope.track(shift_f0(f0, octaves, max_midi=c.max_f0_midi))


def normalize_audio_features(
    features: AudioFeatures,
    model: ModelValues,
    backend: Optional[ComputeBackend] = None,
    constants: Optional[FamilyConstants] = None,
) -> AudioFeatures:
    """Normalize features with a one-off FeatureNormalizer."""
    return FeatureNormalizer(backend=backend, constants=constants).normalize(features, model)
