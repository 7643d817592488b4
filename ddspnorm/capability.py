"""Startup check that the machine can run the feature pipeline."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

from ddspnorm.config import FamilyConstants
from ddspnorm.device import ACCELERATED_BACKENDS, ComputeBackend

logger = logging.getLogger(__name__)

# Logical DPI of a 1x display
_BASE_DPI = 96.0


class InsufficientResourcesError(RuntimeError):
    """Raised when the device cannot hold the models and operations."""

    def __init__(self, message: str, vram_mb: float = math.nan, required_mb: float = math.nan):
        super().__init__(message)
        self.vram_mb = vram_mb
        self.required_mb = required_mb


class BackendUnsupportedError(InsufficientResourcesError):
    """Raised when no GPU-accelerated compute backend is active."""

    def __init__(self, backend: str, vram_mb: float = math.nan, required_mb: float = math.nan):
        super().__init__(
            f"Compute backend '{backend}' is not GPU-accelerated "
            f"(need one of: {', '.join(ACCELERATED_BACKENDS)})",
            vram_mb=vram_mb,
            required_mb=required_mb,
        )
        self.backend = backend


@dataclass(frozen=True)
class DisplayMetrics:
    """Screen size in logical pixels and pixel density."""

    width: int
    height: int
    device_pixel_ratio: float = 1.0

    @classmethod
    def probe(cls) -> Optional[DisplayMetrics]:
        """Read the primary screen through tkinter. Returns None when headless."""
        try:
            import tkinter as tk
        except ImportError:
            logger.debug("tkinter not installed, display metrics unavailable")
            return None

        try:
            root = tk.Tk()
        except tk.TclError as e:
            logger.debug(f"No display available: {e}")
            return None

        try:
            root.withdraw()
            dpr = root.winfo_fpixels("1i") / _BASE_DPI
            return cls.from_physical(root.winfo_screenwidth(), root.winfo_screenheight(), dpr)
        finally:
            root.destroy()

    @classmethod
    def from_physical(cls, width: int, height: int, device_pixel_ratio: float) -> DisplayMetrics:
        """Build from a screen size in physical pixels (as Tk reports it)."""
        dpr = device_pixel_ratio if device_pixel_ratio > 0 else 1.0
        return cls(
            width=round(width / dpr),
            height=round(height / dpr),
            device_pixel_ratio=dpr,
        )


def estimate_vram(
    display: Optional[DisplayMetrics],
    constants: Optional[FamilyConstants] = None,
) -> float:
    """
    Estimate available accelerator memory (MB) from the display.

    Returns:
        Rounded estimate in MB, or nan if no display metrics are known
    """
    if display is None:
        return math.nan
    constants = constants or FamilyConstants()
    screen_size = display.width * display.height
    return float(
        round(screen_size * display.device_pixel_ratio * constants.screen_to_vram_factor / constants.bytes_per_mb)
    )


def check_capability(
    backend: ComputeBackend,
    display: Optional[DisplayMetrics] = None,
    constants: Optional[FamilyConstants] = None,
) -> bool:
    """
    Verify memory and compute backend before any heavy work.

    Args:
        backend: Compute backend handle (initialized here if needed)
        display: Display metrics used for the memory estimate
        constants: Model family constants (defaults if None)

    Returns:
        True. Failures raise instead of returning False.

    Raises:
        InsufficientResourcesError: Estimated memory below min_vram, or the
            backend failed to initialize
        BackendUnsupportedError: Backend is active but not GPU-accelerated
    """
    constants = constants or FamilyConstants()
    required = constants.min_vram

    vram = estimate_vram(display, constants)
    logger.info(f"Estimated VRAM: {vram} MB (required: {required} MB)")

    if not math.isnan(vram) and vram < required:
        logger.error(f"Insufficient memory: {vram} MB < {required} MB")
        raise InsufficientResourcesError(
            f"Insufficient memory! Your device has {vram:g} MB and recommended memory is {required} MB",
            vram_mb=vram,
            required_mb=required,
        )

    try:
        name = backend.ready()
    except Exception as e:
        logger.error(f"Compute backend failed to initialize: {e}")
        raise InsufficientResourcesError(
            f"insufficient memory - {e}", vram_mb=vram, required_mb=required
        ) from e

    if name not in ACCELERATED_BACKENDS:
        logger.error(f"Compute backend '{name}' is not accelerated")
        raise BackendUnsupportedError(name, vram_mb=vram, required_mb=required)

    logger.info(f"Capability check passed on {name}")
    return True
