"""Phase functions.

All phase functions are normalized per steradian, so that

    ∫₀^π p(cos θ) · 2π sin θ dθ = 1.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TypeAlias

from scipy.integrate import quad

import optilux.backend as be
from optilux.errors import InvalidParameterError, require_finite

Array: TypeAlias = Any  # be.ndarray

MAX_ABS_G = 0.999


def henyey_greenstein(cos_theta: float | Array, g: float | Array):
    """Henyey-Greenstein phase function (1 - g²) / (4π (1 + g² - 2g cos θ)^1.5).

    Args:
        cos_theta: Cosine of the scattering angle, clamped to [-1, 1].
        g: Asymmetry parameter, clamped to [-0.999, 0.999].
    """
    mu = be.clip(be.as_float_array(cos_theta), -1.0, 1.0)
    g = be.clip(be.as_float_array(g), -MAX_ABS_G, MAX_ABS_G)
    denom = 1.0 + g**2 - 2.0 * g * mu
    p = (1.0 - g**2) / (4.0 * be.pi * denom**1.5)
    return float(p) if be.ndim(p) == 0 else p


def double_henyey_greenstein(
    cos_theta: float | Array, g_forward: float, g_backward: float, forward_weight: float
):
    """Weighted sum w·HG(g_f) + (1 - w)·HG(g_b); w is clamped to [0, 1]."""
    w = min(max(float(forward_weight), 0.0), 1.0)
    p = w * be.asarray(henyey_greenstein(cos_theta, g_forward)) + (1.0 - w) * be.asarray(
        henyey_greenstein(cos_theta, g_backward)
    )
    return float(p) if be.ndim(p) == 0 else p


def rayleigh_phase(cos_theta: float | Array):
    """Rayleigh phase function 3/(16π) (1 + cos² θ).

    This is the 3/4 (1 + cos² θ) angular shape divided by 4π.
    """
    mu = be.clip(be.as_float_array(cos_theta), -1.0, 1.0)
    p = 3.0 / (16.0 * be.pi) * (1.0 + mu**2)
    return float(p) if be.ndim(p) == 0 else p


def integrate_phase_function(phase_fn) -> float:
    """Integrate ``phase_fn(cos θ)`` over the full sphere.

    Uses adaptive quadrature in cos θ: ∫ p 2π sin θ dθ = 2π ∫₋₁¹ p(μ) dμ.
    """
    value, _ = quad(lambda mu: float(phase_fn(mu)), -1.0, 1.0, limit=200)
    return 2.0 * be.pi * value


def asymmetry_of(phase_fn) -> float:
    """Mean cosine ⟨cos θ⟩ of a normalized phase function."""
    value, _ = quad(lambda mu: mu * float(phase_fn(mu)), -1.0, 1.0, limit=200)
    return 2.0 * be.pi * value


@dataclass(frozen=True)
class ScatteringParams:
    """Volume scattering description of a translucent material.

    Parameters
    ----------
    g : float
        Forward lobe asymmetry in [-1, 1].
    double_lobe : bool
        Whether a second, backward lobe is mixed in.
    g_backward : float
        Backward lobe asymmetry.
    forward_weight : float
        Weight of the forward lobe in [0, 1].
    """

    g: float = 0.0
    double_lobe: bool = False
    g_backward: float = 0.0
    forward_weight: float = 1.0

    def __post_init__(self):
        for name in ("g", "g_backward"):
            value = require_finite(name, getattr(self, name))
            if abs(value) > 1.0:
                raise InvalidParameterError(name, value, "must lie in [-1, 1]")
        weight = require_finite("forward_weight", self.forward_weight)
        if not 0.0 <= weight <= 1.0:
            raise InvalidParameterError("forward_weight", weight, "must lie in [0, 1]")

    def phase(self, cos_theta: float | Array):
        if self.double_lobe:
            return double_henyey_greenstein(
                cos_theta, self.g, self.g_backward, self.forward_weight
            )
        return henyey_greenstein(cos_theta, self.g)

    @property
    def effective_g(self) -> float:
        if not self.double_lobe:
            return self.g
        w = self.forward_weight
        return w * self.g + (1.0 - w) * self.g_backward

    def scattering_radius_mm(self, roughness: float, thickness_mm: float) -> float:
        """Apparent blur radius (mm) of light diffused through the material.

        Surface roughness and bulk thickness (capped at 2 mm of spread) add up;
        strongly forward scattering media blur less.
        """
        roughness = min(max(float(roughness), 0.0), 1.0)
        thickness_mm = max(float(thickness_mm), 0.0)
        spread = roughness * 10.0 + min(thickness_mm * 0.1, 2.0)
        return spread * (1.0 - abs(self.g) * 0.5)

    # ----- presets -----
    @classmethod
    def clear_glass(cls):
        return cls(0.0)

    @classmethod
    def frosted_glass(cls):
        return cls(0.2)

    @classmethod
    def translucent_plastic(cls):
        return cls(0.5)

    @classmethod
    def milk(cls):
        return cls(0.7, True, -0.2, 0.8)

    @classmethod
    def skin(cls):
        return cls(0.8, True, -0.3, 0.7)

    @classmethod
    def marble(cls):
        return cls(0.6, True, -0.4, 0.6)

    @classmethod
    def cloud(cls):
        return cls(0.85)

    @classmethod
    def opal(cls):
        return cls(0.5, True, -0.3, 0.7)
