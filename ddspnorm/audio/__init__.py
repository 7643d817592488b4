"""Feature containers, frame conversion and resizing."""

from ddspnorm.audio.features import AudioFeatures, ChunkWindow, FeatureError
from ddspnorm.audio.frames import frames_to_seconds, iter_chunk_windows, seconds_to_frames
from ddspnorm.audio.pitch import hz_to_midi, midi_to_hz, shift_f0
from ddspnorm.audio.resize import resize_audio_features, resize_chunk

__all__ = [
    "AudioFeatures",
    "ChunkWindow",
    "FeatureError",
    "frames_to_seconds",
    "seconds_to_frames",
    "iter_chunk_windows",
    "hz_to_midi",
    "midi_to_hz",
    "shift_f0",
    "resize_audio_features",
    "resize_chunk",
]
