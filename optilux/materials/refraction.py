"""Refraction distortion maps for translucent panels.

Models the apparent image offset, hue shift and brightness seen through a
refracting panel at normalized surface positions (0..1 on each axis).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NamedTuple, TypeAlias

import optilux.backend as be
from optilux.errors import require_non_negative, require_positive

from .fresnel import fresnel_dielectric_unpolarized

Array: TypeAlias = Any  # be.ndarray

MAX_INCIDENT_ANGLE_DEG = 89.0
BRIGHTNESS_DAMPING = 0.3


@dataclass(frozen=True)
class RefractionParams:
    """Panel refraction parameters.

    Parameters
    ----------
    index : float
        Effective refractive index of the panel.
    distortion_strength : float
        Scale of the geometric offset.
    chromatic_aberration : float
        Hue shift per unit distance from the panel centre (fraction of 360°).
    edge_lensing : float
        Extra magnification towards the edges.
    """

    index: float = 1.15
    distortion_strength: float = 0.3
    chromatic_aberration: float = 0.02
    edge_lensing: float = 0.4

    def __post_init__(self):
        object.__setattr__(self, "index", require_positive("index", self.index))
        for name in ("distortion_strength", "chromatic_aberration", "edge_lensing"):
            object.__setattr__(self, name, require_non_negative(name, getattr(self, name)))

    @classmethod
    def default(cls):
        return cls()

    @classmethod
    def clear(cls):
        return cls(1.1, 0.15, 0.01, 0.2)

    @classmethod
    def frosted(cls):
        return cls(1.08, 0.05, 0.005, 0.1)

    @classmethod
    def thick(cls):
        return cls(1.25, 0.5, 0.04, 0.6)

    @classmethod
    def subtle(cls):
        return cls(1.05, 0.08, 0.003, 0.05)

    @classmethod
    def high_index(cls):
        return cls(1.3, 0.7, 0.06, 0.8)


class RefractionResult(NamedTuple):
    offset_x: Array
    offset_y: Array
    hue_shift: Array
    brightness: Array


def calculate_refraction(
    params: RefractionParams,
    position_x: float | Array,
    position_y: float | Array,
    incident_angle_deg: float | Array,
) -> RefractionResult:
    """Refraction at normalized panel positions, vectorized over all inputs.

    Positions are clamped to [0, 1] and the angle to [0, 89] degrees.
    """
    x = be.clip(be.as_float_array(position_x), 0.0, 1.0)
    y = be.clip(be.as_float_array(position_y), 0.0, 1.0)
    angle = be.deg2rad(be.clip(be.as_float_array(incident_angle_deg), 0.0, MAX_INCIDENT_ANGLE_DEG))

    refracted = be.arcsin(be.sin(angle) / params.index)
    deviation = angle - refracted

    dx = x - 0.5
    dy = y - 0.5
    edge_distance = be.sqrt(dx**2 + dy**2)
    edge_factor = 1.0 + params.edge_lensing * edge_distance

    displacement = be.tan(deviation) * params.distortion_strength * edge_factor
    offset_x = displacement * be.where(dx >= 0, 1.0, -1.0)
    offset_y = displacement * be.where(dy >= 0, 1.0, -1.0)

    hue_shift = params.chromatic_aberration * edge_distance * 360.0
    transmitted = 1.0 - fresnel_dielectric_unpolarized(1.0, params.index, be.cos(angle))
    brightness = 1.0 + (transmitted - 1.0) * BRIGHTNESS_DAMPING
    return RefractionResult(offset_x, offset_y, hue_shift, brightness)


def distortion_map(
    params: RefractionParams,
    cols: int,
    rows: int,
    incident_angle_deg: float = 15.0,
) -> Array:
    """Distortion over a regular grid of panel positions.

    Returns:
        Flat row-major array of ``[offsetX, offsetY, hueShift, brightness]``
        per grid point, length ``cols * rows * 4``.
    """
    cols = max(int(cols), 1)
    rows = max(int(rows), 1)
    xs = be.linspace(0.0, 1.0, cols) if cols > 1 else be.asarray([0.5])
    ys = be.linspace(0.0, 1.0, rows) if rows > 1 else be.asarray([0.5])
    grid_y, grid_x = be.meshgrid(ys, xs, indexing="ij")
    result = calculate_refraction(params, grid_x, grid_y, incident_angle_deg)
    return be.stack(
        [be.broadcast_to(component, grid_x.shape) for component in result], axis=-1
    ).reshape(-1)
