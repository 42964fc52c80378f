"""Fresnel equations.

Single-interface power reflectances for dielectrics and absorbing media. All
functions are vectorized over their array arguments.

References:
    - Born & Wolf, Principles of Optics, 7th ed., sec. 1.5 and 14.2.
    - C. Schlick, "An Inexpensive BRDF Model for Physically-based Rendering",
      Computer Graphics Forum 13 (1994).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, TypeAlias

import optilux.backend as be

if TYPE_CHECKING:
    from .complex_ior import ComplexIOR

Array: TypeAlias = Any  # be.ndarray

COS_EPSILON = 1e-6


def _clamp_cos(cos_theta):
    return be.clip(be.as_float_array(cos_theta), COS_EPSILON, 1.0)


def fresnel_dielectric(n_i: float | Array, n_t: float | Array, cos_theta: float | Array):
    """s- and p-polarized reflectance at a dielectric interface.

    Args:
        n_i: Index of the incident medium.
        n_t: Index of the transmitting medium.
        cos_theta: Cosine of the angle of incidence, clamped to [1e-6, 1].

    Returns:
        Tuple (Rs, Rp). Both are 1 under total internal reflection.
    """
    n_i = be.as_float_array(n_i)
    n_t = be.as_float_array(n_t)
    cos_i = _clamp_cos(cos_theta)
    sin2_t = (n_i / n_t) ** 2 * (1.0 - cos_i**2)
    tir = sin2_t >= 1.0
    cos_t = be.sqrt(be.maximum(1.0 - sin2_t, 0.0))

    rs = (n_i * cos_i - n_t * cos_t) / (n_i * cos_i + n_t * cos_t)
    rp = (n_t * cos_i - n_i * cos_t) / (n_t * cos_i + n_i * cos_t)
    Rs = be.where(tir, 1.0, rs**2)
    Rp = be.where(tir, 1.0, rp**2)
    return Rs, Rp


def fresnel_dielectric_unpolarized(n_i, n_t, cos_theta):
    Rs, Rp = fresnel_dielectric(n_i, n_t, cos_theta)
    return 0.5 * (Rs + Rp)


def schlick_f0(n_i: float | Array, n_t: float | Array):
    """Normal-incidence reflectance ((n_t - n_i) / (n_t + n_i))^2."""
    n_i = be.as_float_array(n_i)
    n_t = be.as_float_array(n_t)
    return ((n_t - n_i) / (n_t + n_i)) ** 2


def schlick_fresnel(f0: float | Array, cos_theta: float | Array):
    """Schlick's approximation F0 + (1 - F0)(1 - cos)^5."""
    f0 = be.as_float_array(f0)
    cos_theta = be.clip(be.as_float_array(cos_theta), 0.0, 1.0)
    return f0 + (1.0 - f0) * (1.0 - cos_theta) ** 5


def fresnel_schlick(n_i, n_t, cos_theta):
    """Schlick reflectance for an interface between two dielectrics."""
    return schlick_fresnel(schlick_f0(n_i, n_t), cos_theta)


def fresnel_conductor(n_i: float | Array, ior: ComplexIOR, cos_theta: float | Array):
    """s- and p-polarized reflectance from a dielectric onto an absorbing medium.

    Uses the complex index n + ik and the complex refraction angle, so it is
    exact for metals as well as for lossless dielectrics (k = 0).

    Args:
        n_i: Real index of the incident medium.
        ior: Complex index of the conductor.
        cos_theta: Cosine of the angle of incidence, clamped to [1e-6, 1].

    Returns:
        Tuple (Rs, Rp).
    """
    n_i = be.as_float_array(n_i)
    n_t = be.as_float_array(ior.n) + 1j * be.as_float_array(ior.k)
    cos_i = _clamp_cos(cos_theta)
    sin2_i = 1.0 - cos_i**2
    cos_t = be.sqrt(1.0 - (n_i / n_t) ** 2 * sin2_i + 0j)

    rs = (n_i * cos_i - n_t * cos_t) / (n_i * cos_i + n_t * cos_t)
    rp = (n_t * cos_i - n_i * cos_t) / (n_t * cos_i + n_i * cos_t)
    Rs = be.clip(be.abs(rs) ** 2, 0.0, 1.0)
    Rp = be.clip(be.abs(rp) ** 2, 0.0, 1.0)
    return Rs, Rp


def fresnel_conductor_unpolarized(n_i, ior: ComplexIOR, cos_theta):
    Rs, Rp = fresnel_conductor(n_i, ior, cos_theta)
    return 0.5 * (Rs + Rp)


def fresnel_conductor_schlick(ior: ComplexIOR, cos_theta):
    """Schlick approximation seeded with the exact conductor F0."""
    return schlick_fresnel(ior.f0, cos_theta)
