"""Compute device selection and the shared backend handle."""

from __future__ import annotations

import logging
import threading
from typing import Optional

import torch

logger = logging.getLogger(__name__)

# Backends that count as GPU-accelerated
ACCELERATED_BACKENDS = ("xpu", "cuda", "mps")


def _xpu_available() -> bool:
    return hasattr(torch, "xpu") and torch.xpu.is_available()


def _mps_available() -> bool:
    return hasattr(torch.backends, "mps") and torch.backends.mps.is_available()


def is_available(device: str) -> bool:
    """Check whether a torch device type can be used."""
    if device == "cpu":
        return True
    if device == "cuda":
        return torch.cuda.is_available()
    if device == "xpu":
        return _xpu_available()
    if device == "mps":
        return _mps_available()
    return False


def get_device(preference: str = "auto") -> str:
    """
    Resolve a device preference to a torch device type.

    Args:
        preference: "auto", "xpu", "cuda", "mps" or "cpu"

    Returns:
        Device type string

    Raises:
        RuntimeError: If an explicitly requested device is not available
    """
    if preference == "auto":
        for candidate in ACCELERATED_BACKENDS:
            if is_available(candidate):
                return candidate
        return "cpu"

    if preference not in ACCELERATED_BACKENDS + ("cpu",):
        raise ValueError(f"Unknown device: {preference}")
    if not is_available(preference):
        raise RuntimeError(f"Requested device '{preference}' is not available")
    return preference


def list_devices() -> list[dict]:
    """List compute devices known to torch."""
    devices = []

    if _xpu_available():
        for i in range(torch.xpu.device_count()):
            props = torch.xpu.get_device_properties(i)
            devices.append({"type": "xpu", "index": i, "name": props.name, "available": True})
    else:
        devices.append({"type": "xpu", "index": 0, "name": "Intel XPU", "available": False})

    if torch.cuda.is_available():
        for i in range(torch.cuda.device_count()):
            props = torch.cuda.get_device_properties(i)
            devices.append({"type": "cuda", "index": i, "name": props.name, "available": True})
    else:
        devices.append({"type": "cuda", "index": 0, "name": "NVIDIA CUDA", "available": False})

    devices.append({"type": "mps", "index": 0, "name": "Apple MPS", "available": _mps_available()})
    devices.append({"type": "cpu", "index": 0, "name": "CPU", "available": True})
    return devices


class ComputeBackend:
    """
    Handle to the tensor runtime used for feature processing.

    The backend is resolved and warmed up on the first call to ready();
    later calls return the cached result. Pass one instance to everything
    that needs the runtime instead of relying on global state.
    """

    def __init__(self, preference: str = "auto"):
        self.preference = preference
        self._name: Optional[str] = None
        self._lock = threading.Lock()

    def _initialize(self) -> str:
        name = get_device(self.preference)
        # Allocate once so driver/runtime errors surface here
        torch.zeros(1, device=name).sum().item()
        return name

    def ready(self) -> str:
        """Initialize the backend (once) and return its device type."""
        with self._lock:
            if self._name is None:
                self._name = self._initialize()
                logger.info(f"Compute backend ready: {self._name}")
            return self._name

    @property
    def name(self) -> str:
        return self.ready()

    @property
    def device(self) -> torch.device:
        return torch.device(self.ready())

    @property
    def is_accelerated(self) -> bool:
        return self.ready() in ACCELERATED_BACKENDS

    def __repr__(self) -> str:
        return f"ComputeBackend(preference={self.preference!r}, name={self._name!r})"
