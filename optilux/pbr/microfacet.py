"""Microfacet BRDFs.

GGX normal distribution, Smith height-correlated masking-shadowing and the
Cook-Torrance specular model, plus the Oren-Nayar rough diffuse model. All
functions broadcast over array inputs.

Roughness is the perceptual parameter in [0, 1]; the distribution width is
α = roughness², floored at 1e-3 so that the smooth limit stays finite.

References:
    - B. Walter et al., "Microfacet Models for Refraction through Rough
      Surfaces", EGSR 2007.
    - E. Heitz, "Understanding the Masking-Shadowing Function in
      Microfacet-Based BRDFs", JCGT 2014.
    - M. Oren & S. K. Nayar, "Generalization of Lambert's Reflectance
      Model", SIGGRAPH 1994.
"""

from __future__ import annotations

from typing import Any, TypeAlias

import optilux.backend as be
from optilux.materials import schlick_f0, schlick_fresnel

Array: TypeAlias = Any  # be.ndarray

MIN_ALPHA = 1e-3
MIN_COS = 1e-4


def _out(value):
    return float(value) if be.ndim(value) == 0 else value


def _alpha(roughness):
    r = be.clip(be.as_float_array(roughness), 0.0, 1.0)
    return be.maximum(r**2, MIN_ALPHA)


def ggx_ndf(n_dot_h: float | Array, roughness: float | Array):
    """GGX / Trowbridge-Reitz distribution D(h) = α² / (π ((n·h)²(α² - 1) + 1)²).

    Normalized so that ∫ D(h) (n·h) dω = 1 over the hemisphere. As roughness
    goes to zero D tends to a narrow, finite peak at n·h = 1.
    """
    a2 = _alpha(roughness) ** 2
    nh = be.clip(be.as_float_array(n_dot_h), 0.0, 1.0)
    denom = nh**2 * (a2 - 1.0) + 1.0
    return _out(a2 / (be.pi * denom**2))


def ggx_anisotropic_ndf(n_dot_h, h_dot_t, h_dot_b, roughness_x, roughness_y):
    """Anisotropic GGX (Burley 2012) with separate tangent / bitangent roughness."""
    ax = _alpha(roughness_x)
    ay = _alpha(roughness_y)
    nh = be.clip(be.as_float_array(n_dot_h), 0.0, 1.0)
    ht = be.as_float_array(h_dot_t) / ax
    hb = be.as_float_array(h_dot_b) / ay
    denom = ht**2 + hb**2 + nh**2
    return _out(1.0 / (be.pi * ax * ay * denom**2))


def smith_g1(n_dot_v: float | Array, roughness: float | Array):
    """Smith masking G1(v) = 2(n·v) / ((n·v) + √(α² + (1 - α²)(n·v)²))."""
    a2 = _alpha(roughness) ** 2
    nv = be.maximum(be.as_float_array(n_dot_v), MIN_COS)
    return _out(2.0 * nv / (nv + be.sqrt(a2 + (1.0 - a2) * nv**2)))


def smith_g2(n_dot_v: float | Array, n_dot_l: float | Array, roughness: float | Array):
    """Height-correlated masking-shadowing (Heitz 2014, eq. 99)."""
    a2 = _alpha(roughness) ** 2
    nv = be.maximum(be.as_float_array(n_dot_v), MIN_COS)
    nl = be.maximum(be.as_float_array(n_dot_l), MIN_COS)
    term_v = nl * be.sqrt(a2 + (1.0 - a2) * nv**2)
    term_l = nv * be.sqrt(a2 + (1.0 - a2) * nl**2)
    return _out(2.0 * nv * nl / (term_v + term_l))


def cook_torrance(n_dot_v, n_dot_l, n_dot_h, h_dot_v, roughness, f0):
    """Cook-Torrance specular BRDF D·F·G2 / (4 (n·v)(n·l)).

    Zero when either direction lies below the surface. ``f0`` may carry a
    trailing RGB axis.

    Args:
        n_dot_v: Cosine between normal and view direction.
        n_dot_l: Cosine between normal and light direction.
        n_dot_h: Cosine between normal and half vector.
        h_dot_v: Cosine between half vector and view direction.
        roughness: Perceptual roughness in [0, 1].
        f0: Reflectance at normal incidence.
    """
    nv = be.as_float_array(n_dot_v)
    nl = be.as_float_array(n_dot_l)
    d = be.asarray(ggx_ndf(n_dot_h, roughness))
    f = schlick_fresnel(f0, be.clip(be.as_float_array(h_dot_v), 0.0, 1.0))
    g = be.asarray(smith_g2(nv, nl, roughness))
    denom = 4.0 * be.maximum(nv, MIN_COS) * be.maximum(nl, MIN_COS)
    value = be.maximum(d * g / denom, 0.0)
    value = be.where((nv > 0.0) & (nl > 0.0), value, 0.0)
    if be.ndim(f) > be.ndim(value):
        value = be.asarray(value)[..., None]
    return _out(value * f)


def oren_nayar(n_dot_l, n_dot_v, l_dot_v, roughness, albedo):
    """Oren-Nayar diffuse BRDF (ρ/π)(A + B·max(0, cos Δφ)·sin α·tan β).

    The azimuth difference is recovered from l·v, n·l and n·v. At roughness
    zero this reduces to the Lambertian ρ/π.
    """
    nl = be.clip(be.as_float_array(n_dot_l), 0.0, 1.0)
    nv = be.clip(be.as_float_array(n_dot_v), MIN_COS, 1.0)
    lv = be.as_float_array(l_dot_v)
    sigma2 = be.clip(be.as_float_array(roughness), 0.0, 1.0) ** 2

    a = 1.0 - 0.5 * sigma2 / (sigma2 + 0.33)
    b = 0.45 * sigma2 / (sigma2 + 0.09)

    sin_l = be.sqrt(1.0 - nl**2)
    sin_v = be.sqrt(1.0 - nv**2)
    cos_phi = (lv - nl * nv) / (be.maximum(sin_l, MIN_COS) * be.maximum(sin_v, MIN_COS))

    cos_alpha = be.minimum(nl, nv)
    cos_beta = be.maximum(nl, nv)
    sin_alpha = be.sqrt(1.0 - cos_alpha**2)
    tan_beta = be.sqrt(1.0 - cos_beta**2) / be.maximum(cos_beta, MIN_COS)

    shape = a + b * be.maximum(cos_phi, 0.0) * sin_alpha * tan_beta
    albedo = be.as_float_array(albedo)
    if be.ndim(albedo) > be.ndim(shape):
        shape = be.asarray(shape)[..., None]
    return _out(be.maximum(albedo / be.pi * shape, 0.0))


def normalize(vector) -> Array:
    v = be.as_float_array(vector)
    norm = be.linalg.norm(v, axis=-1, keepdims=True)
    return v / be.maximum(norm, 1e-12)


def _dot(a, b):
    return be.sum(a * b, axis=-1)


def shading_cosines(normal, view, light):
    """(n·v, n·l, n·h, h·v, l·v) for unit-normalized inputs."""
    n = normalize(normal)
    v = normalize(view)
    w = normalize(light)
    h = normalize(v + w)
    return _dot(n, v), _dot(n, w), _dot(n, h), _dot(h, v), _dot(w, v)


def cook_torrance_brdf(normal, view, light, roughness: float, ior: float):
    """Cook-Torrance BRDF for direction vectors; F0 follows from ``ior``."""
    nv, nl, nh, hv, _ = shading_cosines(normal, view, light)
    return cook_torrance(nv, nl, nh, hv, roughness, schlick_f0(1.0, ior))


def oren_nayar_brdf(normal, view, light, roughness: float, albedo):
    nv, nl, _, _, lv = shading_cosines(normal, view, light)
    return oren_nayar(nl, nv, lv, roughness, albedo)
