"""Pitch unit conversion and octave shifting."""

from __future__ import annotations

import torch

A4_HZ = 440.0
A4_MIDI = 69.0
SEMITONES_PER_OCTAVE = 12.0


def hz_to_midi(f0_hz: torch.Tensor) -> torch.Tensor:
    """Convert Hz to MIDI note numbers. Non-positive Hz (unvoiced) maps to 0."""
    voiced = f0_hz > 0
    safe = torch.where(voiced, f0_hz, torch.full_like(f0_hz, A4_HZ))
    midi = SEMITONES_PER_OCTAVE * torch.log2(safe / A4_HZ) + A4_MIDI
    return torch.where(voiced, midi, torch.zeros_like(midi))


def midi_to_hz(midi: torch.Tensor | float) -> torch.Tensor:
    """Convert MIDI note numbers to Hz."""
    midi = torch.as_tensor(midi, dtype=torch.float32)
    return A4_HZ * torch.pow(2.0, (midi - A4_MIDI) / SEMITONES_PER_OCTAVE)


def shift_f0(f0_hz: torch.Tensor, octaves: int, max_midi: float = 110.0) -> torch.Tensor:
    """
    Shift voiced f0 by a whole number of octaves.

    Voiced frames are multiplied by 2 ** octaves and capped at the pitch of
    max_midi. Unvoiced frames (f0 <= 0, including the -1 padding sentinel)
    are returned unchanged.
    """
    voiced = f0_hz > 0
    ceiling = float(midi_to_hz(max_midi))
    shifted = torch.clamp(f0_hz * (2.0 ** int(octaves)), max=ceiling)
    return torch.where(voiced, shifted, f0_hz)
