"""Tests for pitch unit conversion and octave shifting."""

from __future__ import annotations

import torch

from ddspnorm.audio.pitch import hz_to_midi, midi_to_hz, shift_f0


def test_hz_to_midi_reference_notes():
    midi = hz_to_midi(torch.tensor([440.0, 220.0, 261.6256]))
    torch.testing.assert_close(midi, torch.tensor([69.0, 57.0, 60.0]), atol=1e-3, rtol=0)


def test_unvoiced_maps_to_zero():
    midi = hz_to_midi(torch.tensor([0.0, -1.0, 440.0]))
    torch.testing.assert_close(midi, torch.tensor([0.0, 0.0, 69.0]))


def test_midi_to_hz():
    torch.testing.assert_close(midi_to_hz(81.0), torch.tensor(880.0))


def test_shift_f0_octaves():
    f0 = torch.tensor([110.0, 0.0, 220.0, -1.0])
    torch.testing.assert_close(shift_f0(f0, 1), torch.tensor([220.0, 0.0, 440.0, -1.0]))
    torch.testing.assert_close(shift_f0(f0, -1), torch.tensor([55.0, 0.0, 110.0, -1.0]))
    torch.testing.assert_close(shift_f0(f0, 0), f0)


def test_shift_f0_caps_voiced_frames():
    out = shift_f0(torch.tensor([1000.0]), 3, max_midi=100.0)
    torch.testing.assert_close(out, midi_to_hz(100.0).reshape(1))
