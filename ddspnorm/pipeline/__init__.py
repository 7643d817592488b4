"""Feature normalization pipeline modules."""

from ddspnorm.pipeline.chunked import normalize_recording
from ddspnorm.pipeline.normalize import FeatureNormalizer, TensorScope, normalize_audio_features

__all__ = ["FeatureNormalizer", "TensorScope", "normalize_audio_features", "normalize_recording"]
