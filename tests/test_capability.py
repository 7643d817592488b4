"""Tests for the startup capability check."""

from __future__ import annotations

import math

import pytest

from ddspnorm.capability import (
    BackendUnsupportedError,
    DisplayMetrics,
    InsufficientResourcesError,
    check_capability,
    estimate_vram,
)
from ddspnorm.config import MIN_VRAM, FamilyConstants
from ddspnorm.device import ComputeBackend

FULL_HD = DisplayMetrics(width=1920, height=1080, device_pixel_ratio=1.0)


class _StubBackend(ComputeBackend):
    """Backend that reports a fixed device type without touching torch."""

    def __init__(self, name: str = "cuda", error: Exception | None = None):
        super().__init__(preference=name)
        self._stub_name = name
        self._error = error
        self.calls = 0

    def _initialize(self) -> str:
        self.calls += 1
        if self._error is not None:
            raise self._error
        return self._stub_name


def test_estimate_vram_formula():
    # 1920 * 1080 * 600 / 1048576 = 1186.52
    assert estimate_vram(FULL_HD) == 1187


def test_estimate_vram_scales_with_pixel_ratio():
    retina = DisplayMetrics(width=1440, height=900, device_pixel_ratio=2.0)
    assert estimate_vram(retina) == round(1440 * 900 * 2.0 * 600 / (1024 * 1024))


def test_estimate_vram_without_display_is_nan():
    assert math.isnan(estimate_vram(None))


def test_check_passes_on_accelerated_backend():
    backend = _StubBackend("cuda")
    assert check_capability(backend, FULL_HD) is True
    assert backend.calls == 1


def test_check_without_display_skips_memory_estimate():
    assert check_capability(_StubBackend("xpu"), None) is True


def test_insufficient_memory_carries_values():
    tiny = DisplayMetrics(width=320, height=240, device_pixel_ratio=1.0)
    backend = _StubBackend("cuda")

    with pytest.raises(InsufficientResourcesError, match="Insufficient memory") as exc_info:
        check_capability(backend, tiny)

    err = exc_info.value
    assert err.vram_mb == estimate_vram(tiny)
    assert err.required_mb == MIN_VRAM
    assert err.vram_mb < err.required_mb
    assert backend.calls == 0, "Backend must not be probed after a memory failure"


def test_min_vram_is_configurable():
    constants = FamilyConstants(min_vram=4096)
    with pytest.raises(InsufficientResourcesError) as exc_info:
        check_capability(_StubBackend("cuda"), FULL_HD, constants)
    assert exc_info.value.required_mb == 4096


def test_cpu_backend_is_unsupported():
    with pytest.raises(BackendUnsupportedError, match="not GPU-accelerated") as exc_info:
        check_capability(_StubBackend("cpu"), FULL_HD)
    assert exc_info.value.backend == "cpu"


def test_real_cpu_backend_is_unsupported():
    with pytest.raises(BackendUnsupportedError):
        check_capability(ComputeBackend("cpu"), FULL_HD)


def test_backend_error_is_insufficient_resources():
    """Backend initialization failures surface as insufficient resources."""
    backend = _StubBackend(error=RuntimeError("driver lost"))

    with pytest.raises(InsufficientResourcesError, match="driver lost") as exc_info:
        check_capability(backend, FULL_HD)

    assert not isinstance(exc_info.value, BackendUnsupportedError)
    assert isinstance(exc_info.value.__cause__, RuntimeError)


def test_backend_unsupported_is_insufficient_resources():
    assert issubclass(BackendUnsupportedError, InsufficientResourcesError)


def test_backend_initialized_once():
    backend = _StubBackend("cuda")
    check_capability(backend, FULL_HD)
    check_capability(backend, FULL_HD)
    assert backend.name == "cuda"
    assert backend.calls == 1


def test_physical_pixels_counted_once():
    """A 2x screen reported in physical pixels estimates like its logical size at 2x."""
    hidpi = DisplayMetrics.from_physical(2880, 1800, 2.0)
    assert (hidpi.width, hidpi.height) == (1440, 900)
    assert estimate_vram(hidpi) == estimate_vram(DisplayMetrics(1440, 900, 2.0))


def test_physical_pixels_at_unit_ratio():
    assert DisplayMetrics.from_physical(1920, 1080, 1.0) == FULL_HD
