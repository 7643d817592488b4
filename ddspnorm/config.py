"""Configuration management with JSON persistence."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

# Defaults of the DDSP model family (250 frames/s analysis rate)
MODEL_FRAME_RATE = 250.0
MIN_VRAM = 512  # MB
LOWEST_LD = -120.0  # dB
CONF_THRESHOLD = 0.7
CONF_SMOOTH_SIZE = 80  # frames
LD_CONF_REDUCTION = 10.0  # dB subtracted from low-confidence frames


def _default_models_dir() -> Path:
    return Path.home() / ".cache" / "ddspnorm" / "models"


@dataclass
class FamilyConstants:
    """Constants shared by every model of one synthesis model family."""

    model_frame_rate: float = MODEL_FRAME_RATE
    min_vram: int = MIN_VRAM
    lowest_ld: float = LOWEST_LD
    conf_threshold: float = CONF_THRESHOLD
    conf_smooth_size: int = CONF_SMOOTH_SIZE
    ld_conf_reduction: float = LD_CONF_REDUCTION
    # Shifted voiced f0 is capped at this MIDI note
    max_f0_midi: float = 110.0
    # VRAM estimate: screen pixels * DPR * factor / bytes_per_mb
    screen_to_vram_factor: float = 600.0
    bytes_per_mb: int = 1024 * 1024

    def __post_init__(self) -> None:
        """Validate constants after initialization."""
        if self.model_frame_rate <= 0:
            raise ValueError(f"model_frame_rate must be positive, got {self.model_frame_rate}")
        if self.conf_smooth_size < 1:
            raise ValueError(f"conf_smooth_size must be >= 1, got {self.conf_smooth_size}")
        if not 0.0 <= self.conf_threshold <= 1.0:
            raise ValueError(f"conf_threshold must be in [0, 1], got {self.conf_threshold}")
        if self.ld_conf_reduction < 0:
            raise ValueError(f"ld_conf_reduction must be non-negative, got {self.ld_conf_reduction}")
        if self.bytes_per_mb <= 0:
            raise ValueError(f"bytes_per_mb must be positive, got {self.bytes_per_mb}")


# Model description keys (camelCase as shipped with the models) -> field names
_MODEL_KEYS = {
    "averageMaxLoudness": "average_max_loudness",
    "meanLoudness": "mean_loudness",
    "loudnessThreshold": "loudness_threshold",
    "meanPitch": "mean_pitch",
}


@dataclass(frozen=True)
class ModelValues:
    """Reference statistics of one target synthesis model.

    Attributes:
        average_max_loudness: Expected peak loudness (dB)
        mean_loudness: Mean loudness of voiced frames (dB)
        loudness_threshold: Loudness above which a frame counts as active (dB)
        mean_pitch: Mean pitch in MIDI units
        name: Optional model name (display only)
    """

    average_max_loudness: float
    mean_loudness: float
    loudness_threshold: float
    mean_pitch: float
    name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict, name: Optional[str] = None) -> ModelValues:
        """Build from a model description (camelCase or snake_case keys)."""
        values = {}
        for camel, snake in _MODEL_KEYS.items():
            if camel in data:
                values[snake] = float(data[camel])
            elif snake in data:
                values[snake] = float(data[snake])
            else:
                raise ValueError(f"Model description is missing '{camel}'")
        return cls(name=data.get("name", name), **values)

    @classmethod
    def load(cls, path: Path) -> ModelValues:
        """Load model values from a JSON description file."""
        path = Path(path)
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        model = cls.from_dict(data, name=path.stem)
        logger.debug(f"Loaded model values from {path}: {model}")
        return model

    def to_dict(self) -> dict:
        """Return the camelCase description used by model files."""
        data = {camel: getattr(self, snake) for camel, snake in _MODEL_KEYS.items()}
        if self.name is not None:
            data["name"] = self.name
        return data


def list_model_files(models_dir: Path) -> list[Path]:
    """Return model description files in a directory, sorted by name."""
    models_dir = Path(models_dir)
    if not models_dir.is_dir():
        return []
    return sorted(models_dir.glob("*.json"))


def _known(cls: type, data: dict) -> dict:
    names = {f.name for f in fields(cls)}
    dropped = set(data) - names
    if dropped:
        logger.info(f"Ignoring unknown {cls.__name__} keys: {sorted(dropped)}")
    return {k: v for k, v in data.items() if k in names}


@dataclass
class DDSPNormConfig:
    """Main configuration for ddspnorm."""

    models_dir: str = field(default_factory=lambda: str(_default_models_dir()))
    last_model_path: Optional[str] = None
    device: str = "auto"  # auto, xpu, cuda, mps, cpu
    # None = normalize the whole recording at once
    chunk_seconds: Optional[float] = None

    family: FamilyConstants = field(default_factory=FamilyConstants)

    @classmethod
    def load(cls, path: Optional[Path] = None) -> DDSPNormConfig:
        """Load configuration from JSON file."""
        if path is None:
            path = cls.default_path()

        if not path.exists():
            return cls()

        with open(path, encoding="utf-8") as f:
            data = json.load(f)

        family_data = data.pop("family", {})

        return cls(
            family=FamilyConstants(**_known(FamilyConstants, family_data)),
            **_known(cls, data),
        )

    def save(self, path: Optional[Path] = None) -> None:
        """Save configuration to JSON file."""
        if path is None:
            path = self.default_path()

        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w", encoding="utf-8") as f:
            json.dump(asdict(self), f, indent=2, ensure_ascii=False)

    @staticmethod
    def default_path() -> Path:
        """Return the default configuration file path."""
        return Path.home() / ".config" / "ddspnorm" / "config.json"

    def get_models_dir(self) -> Path:
        """Return the models directory as Path."""
        return Path(self.models_dir)
