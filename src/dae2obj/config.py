"""Conversion configuration."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Literal

import yaml

from .core.linalg import DEFAULT_TOLERANCE

CyclePolicy = Literal["error", "skip"]
CYCLE_POLICIES = ("error", "skip")


@dataclass
class ConversionConfig:
    """Settings for one document conversion.

    YAML format (every key optional):
    ```yaml
    tolerance: 1.0e-6
    axis_correction: true
    axis_correction_angle_degrees: -90.0
    axis_correction_scale: 0.001
    on_cycle: skip
    strict_ids: false
    ```
    """

    # Shortest vector that can still be normalized
    tolerance: float = DEFAULT_TOLERANCE

    # Corrective transform applied to every mesh after scene traversal
    axis_correction: bool = False
    axis_correction_angle_degrees: float = -90.0
    axis_correction_scale: float = 0.001

    # What to do when an <instance_node> leads back to a node being expanded
    on_cycle: CyclePolicy = "error"

    # Treat duplicate ids as an error instead of letting the last one win
    strict_ids: bool = False

    def __post_init__(self) -> None:
        for name in ("tolerance", "axis_correction_angle_degrees", "axis_correction_scale"):
            value = getattr(self, name)
            # bool is an int subclass; YAML reads "1e-6" (no dot) as a string
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{name} must be a number, got {value!r}")
            setattr(self, name, float(value))
        for name in ("axis_correction", "strict_ids"):
            value = getattr(self, name)
            if not isinstance(value, bool):
                raise ValueError(f"{name} must be true or false, got {value!r}")
        if self.on_cycle not in CYCLE_POLICIES:
            raise ValueError(
                f"on_cycle must be one of {', '.join(CYCLE_POLICIES)}, got {self.on_cycle!r}"
            )
        if self.tolerance <= 0:
            raise ValueError(f"tolerance must be positive, got {self.tolerance}")

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ConversionConfig:
        """Create a configuration from a dictionary.

        Raises:
            ValueError: If the dictionary has keys that aren't settings.
        """
        data = data or {}
        if not isinstance(data, dict):
            raise ValueError(f"Configuration must be a mapping, got {type(data).__name__}")
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")
        return cls(**data)

    @classmethod
    def from_yaml(cls, path: str | Path) -> ConversionConfig:
        """Load configuration from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def to_yaml(self, path: str | Path) -> None:
        """Save configuration to a YAML file."""
        with open(path, "w") as f:
            yaml.safe_dump(self.to_dict(), f, default_flow_style=False)
