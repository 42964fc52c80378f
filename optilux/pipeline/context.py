"""Evaluation Context

Per-evaluation physical conditions shared by every stage of a pipeline.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace

from optilux.errors import InvalidParameterError, require_finite

MAX_ANGLE_DEG = 90.0
TEMPERATURE_RANGE_K = (1.0, 5000.0)
COS_EPSILON = 1e-6


def _clamp(value: float, lo: float, hi: float) -> float:
    return min(max(value, lo), hi)


@dataclass(frozen=True)
class EvaluationContext:
    """Immutable set of conditions under which stages are evaluated.

    Attributes:
        angle_deg: Angle of incidence in degrees, clamped to [0, 90].
        temperature_k: Temperature in kelvin, clamped to [1, 5000].
        stress_pa: Stress tensor (σxx, σyy, σzz, σxy, σyz, σzx) in Pa.
        position: Normalized surface coordinate, each clamped to [0, 1].
    """

    angle_deg: float = 0.0
    temperature_k: float = 293.15
    stress_pa: tuple[float, ...] = (0.0,) * 6
    position: tuple[float, float] = (0.5, 0.5)

    def __post_init__(self):
        angle = require_finite("angle_deg", self.angle_deg)
        temperature = require_finite("temperature_k", self.temperature_k)
        stress = tuple(require_finite("stress_pa", s) for s in self.stress_pa)
        if len(stress) != 6:
            raise InvalidParameterError("stress_pa", self.stress_pa, "expected 6 components")
        if len(self.position) != 2:
            raise InvalidParameterError("position", self.position, "expected (x, y)")
        position = tuple(_clamp(require_finite("position", p), 0.0, 1.0) for p in self.position)

        object.__setattr__(self, "angle_deg", _clamp(abs(angle), 0.0, MAX_ANGLE_DEG))
        object.__setattr__(self, "temperature_k", _clamp(temperature, *TEMPERATURE_RANGE_K))
        object.__setattr__(self, "stress_pa", stress)
        object.__setattr__(self, "position", position)

    @property
    def cos_theta(self) -> float:
        return max(math.cos(math.radians(self.angle_deg)), COS_EPSILON)

    def with_angle_deg(self, angle_deg: float) -> EvaluationContext:
        return replace(self, angle_deg=angle_deg)

    def with_temperature(self, temperature_k: float) -> EvaluationContext:
        return replace(self, temperature_k=temperature_k)

    def with_stress(self, stress_pa) -> EvaluationContext:
        return replace(self, stress_pa=tuple(stress_pa))

    def with_position(self, x: float, y: float) -> EvaluationContext:
        return replace(self, position=(x, y))

    def to_dict(self) -> dict:
        return {
            "angle_deg": self.angle_deg,
            "temperature_k": self.temperature_k,
            "stress_pa": list(self.stress_pa),
            "position": list(self.position),
        }

    @classmethod
    def from_dict(cls, data: dict) -> EvaluationContext:
        return cls(
            data.get("angle_deg", 0.0),
            data.get("temperature_k", 293.15),
            tuple(data.get("stress_pa", (0.0,) * 6)),
            tuple(data.get("position", (0.5, 0.5))),
        )
