"""Batch evaluation

Vectorized evaluation of many independent materials at once. Each element
is computed exactly as if it were evaluated on its own.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TypeAlias

import optilux.backend as be
from optilux.errors import InvalidParameterError
from optilux.materials import fresnel_schlick

from .bsdf import dielectric_response

Array: TypeAlias = Any  # be.ndarray

# CSS reference pixel, 96 per inch
PX_PER_MM = 96.0 / 25.4


def _matched(**arrays) -> list[Array]:
    values = [be.atleast_1d(be.as_float_array(v)) for v in arrays.values()]
    lengths = {name: len(v) for name, v in zip(arrays, values)}
    if len(set(lengths.values())) > 1:
        raise InvalidParameterError(
            "batch", lengths, "all input arrays must have the same length"
        )
    return values


def evaluate_dielectric_batch(iors, roughnesses, cos_thetas) -> Array:
    """R, T, A for N dielectric surfaces.

    Args:
        iors: Refractive indices, shape (N,).
        roughnesses: Roughness per element, shape (N,).
        cos_thetas: Incidence cosine per element, shape (N,).

    Returns:
        Flat array [R0, T0, A0, R1, T1, A1, ...] of length 3N.

    Raises:
        InvalidParameterError: If the input lengths differ.
    """
    iors, roughnesses, cos_thetas = _matched(
        iors=iors, roughnesses=roughnesses, cos_thetas=cos_thetas
    )
    R, T, A = dielectric_response(iors, roughnesses, cos_thetas)
    return be.stack([R, T, A], axis=-1).ravel()


@dataclass(frozen=True)
class BatchResult:
    """Per-element rendering parameters of a material batch.

    ``scattering_radius_mm`` is the physical blur radius; convert with
    ``blur_px`` for screen use.
    """

    count: int
    opacity: Array
    scattering_radius_mm: Array
    fresnel_normal: Array
    fresnel_grazing: Array
    transmittance: Array

    def blur_px(self, px_per_mm: float = PX_PER_MM) -> Array:
        return self.scattering_radius_mm * px_per_mm

    def __len__(self):
        return self.count


def evaluate_material_batch(iors, roughnesses, thicknesses, absorptions, view_cos=None) -> BatchResult:
    """Beer-Lambert transmittance, opacity and scatter radius for N slabs.

    Args:
        iors: Refractive indices.
        roughnesses: Roughness in [0, 1].
        thicknesses: Slab thickness in mm.
        absorptions: Absorption coefficient in 1/mm.
        view_cos: Optional viewing cosine; Fresnel reflection at that angle
            then lowers the opacity by a factor (1 - 0.3·F).

    Raises:
        InvalidParameterError: If the input lengths differ.
    """
    iors, roughnesses, thicknesses, absorptions = _matched(
        iors=iors, roughnesses=roughnesses, thicknesses=thicknesses, absorptions=absorptions
    )
    roughnesses = be.clip(roughnesses, 0.0, 1.0)
    thicknesses = be.maximum(thicknesses, 0.0)
    absorptions = be.maximum(absorptions, 0.0)

    transmittance = be.exp(-absorptions * thicknesses)
    opacity = 1.0 - 0.8 * transmittance
    if view_cos is not None:
        opacity = opacity * (1.0 - 0.3 * fresnel_schlick(1.0, iors, view_cos))
    radius = roughnesses * 10.0 + be.minimum(thicknesses * 0.1, 2.0)

    return BatchResult(
        count=len(iors),
        opacity=be.clip(opacity, 0.0, 1.0),
        scattering_radius_mm=radius,
        fresnel_normal=fresnel_schlick(1.0, iors, 1.0),
        fresnel_grazing=fresnel_schlick(1.0, iors, 0.0),
        transmittance=transmittance,
    )
