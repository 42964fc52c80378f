"""Metallic-roughness material.

The usual real-time shading parameterization: a base colour that doubles as
diffuse albedo for dielectrics and as specular F0 for metals, blended by
``metallic``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TypeAlias

import optilux.backend as be
from optilux.errors import InvalidParameterError, require_finite, require_positive
from optilux.materials import schlick_f0, schlick_fresnel

from .bsdf import BSDFResult, MicrofacetBSDF
from .microfacet import cook_torrance, oren_nayar, shading_cosines

Array: TypeAlias = Any  # be.ndarray


def _in_unit_range(name: str, value: float) -> float:
    value = require_finite(name, value)
    if not 0.0 <= value <= 1.0:
        raise InvalidParameterError(name, value, "must lie in [0, 1]")
    return value


@dataclass(frozen=True)
class PBRMaterial:
    """Metallic-roughness surface description.

    Attributes:
        base_color: Linear RGB in [0, 1].
        metallic: 0 for dielectrics, 1 for metals.
        roughness: Perceptual roughness in [0, 1].
        ior: Refractive index used for the dielectric F0.
    """

    base_color: tuple[float, float, float] = (0.8, 0.8, 0.8)
    metallic: float = 0.0
    roughness: float = 0.5
    ior: float = 1.5

    def __post_init__(self):
        color = tuple(self.base_color)
        if len(color) != 3:
            raise InvalidParameterError("base_color", color, "must have 3 components")
        object.__setattr__(
            self, "base_color", tuple(_in_unit_range("base_color", c) for c in color)
        )
        object.__setattr__(self, "metallic", _in_unit_range("metallic", self.metallic))
        object.__setattr__(self, "roughness", _in_unit_range("roughness", self.roughness))
        object.__setattr__(self, "ior", require_positive("ior", self.ior))

    def f0(self) -> Array:
        """RGB normal-incidence reflectance, lerp(dielectric F0, base_color, metallic)."""
        dielectric = float(schlick_f0(1.0, self.ior))
        color = be.asarray(self.base_color)
        return dielectric * (1.0 - self.metallic) + color * self.metallic

    def evaluate(self, normal, view, light) -> Array:
        """RGB outgoing radiance factor BRDF·(n·l) for a single light direction."""
        n_dot_v, n_dot_l, n_dot_h, h_dot_v, l_dot_v = (
            float(c) for c in shading_cosines(normal, view, light)
        )
        if n_dot_l <= 0.0 or n_dot_v <= 0.0:
            return be.zeros(3)

        f0 = self.f0()
        specular = be.asarray(
            cook_torrance(n_dot_v, n_dot_l, n_dot_h, h_dot_v, self.roughness, f0)
        )
        kd = (1.0 - be.asarray(schlick_fresnel(f0, h_dot_v))) * (1.0 - self.metallic)
        diffuse = be.asarray(
            oren_nayar(n_dot_l, n_dot_v, l_dot_v, self.roughness, be.asarray(self.base_color))
        )
        return (specular + kd * diffuse) * n_dot_l

    def to_bsdf(self) -> MicrofacetBSDF:
        """Scalar energy model using channel-averaged F0 and albedo."""
        return MicrofacetBSDF(
            roughness=self.roughness,
            metallic=self.metallic,
            f0=float(be.mean(self.f0())),
            albedo=float(be.mean(be.asarray(self.base_color))),
        )

    def evaluate_bsdf(self, cos_theta: float, wavelength_nm: float = 550.0) -> BSDFResult:
        return self.to_bsdf().evaluate_at(cos_theta, wavelength_nm)

    @classmethod
    def glass(cls):
        return cls((1.0, 1.0, 1.0), 0.0, 0.05, 1.52)

    @classmethod
    def gold(cls):
        return cls((1.0, 0.766, 0.336), 1.0, 0.3, 0.47)

    @classmethod
    def silver(cls):
        return cls((0.972, 0.960, 0.915), 1.0, 0.2, 0.15)

    @classmethod
    def copper(cls):
        return cls((0.955, 0.638, 0.538), 1.0, 0.35, 1.10)

    @classmethod
    def plastic(cls):
        return cls((0.8, 0.1, 0.1), 0.0, 0.5, 1.46)

    @classmethod
    def rubber(cls):
        return cls((0.1, 0.1, 0.1), 0.0, 0.9, 1.52)
