"""BSDF Module

Bidirectional scattering models that split incident energy into reflected,
transmitted and absorbed fractions. Every evaluation returns a
``BSDFResult`` normalized so that R + T + A = 1.

Directions follow a z-up local frame: the incident and outgoing vectors
point away from the surface, towards the light and the viewer.
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Any, TypeAlias

import optilux.backend as be
from optilux.errors import require_finite, require_positive
from optilux.materials import (
    ALUMINUM,
    CHROMIUM,
    COPPER,
    GOLD,
    SILVER,
    BaseDispersion,
    ComplexIOR,
    SellmeierDispersion,
    SpectralComplexIOR,
    fresnel_conductor_unpolarized,
    fresnel_dielectric_unpolarized,
    fresnel_schlick,
)
from optilux.spectral import RGB_WAVELENGTHS_NM, WAVELENGTHS_NM
from optilux.thin_film import ThinFilm

from .microfacet import cook_torrance, normalize, oren_nayar

logger = logging.getLogger(__name__)

Array: TypeAlias = Any  # be.ndarray

ENERGY_TOLERANCE = 1e-6
VALIDATION_ANGLES_DEG = (0.0, 15.0, 30.0, 45.0, 60.0, 75.0, 85.0)


def _unit(name: str, value: float) -> float:
    return min(max(require_finite(name, value), 0.0), 1.0)


@dataclass(frozen=True)
class BSDFResult:
    """Energy split of one evaluation.

    Negative inputs are raised to zero and the three fractions are rescaled
    to sum to one; with no energy at all the result is full absorption.
    """

    reflectance: float
    transmittance: float
    absorption: float

    def __post_init__(self):
        r = max(float(self.reflectance), 0.0)
        t = max(float(self.transmittance), 0.0)
        a = max(float(self.absorption), 0.0)
        total = r + t + a
        if total > 1e-10:
            r /= total
            t /= total
            a = max(1.0 - r - t, 0.0)
        else:
            r, t, a = 0.0, 0.0, 1.0
        object.__setattr__(self, "reflectance", r)
        object.__setattr__(self, "transmittance", t)
        object.__setattr__(self, "absorption", a)

    @classmethod
    def pure_reflection(cls, reflectance: float) -> BSDFResult:
        r = min(max(float(reflectance), 0.0), 1.0)
        return cls(r, 1.0 - r, 0.0)

    @classmethod
    def pure_transmission(cls, transmittance: float) -> BSDFResult:
        t = min(max(float(transmittance), 0.0), 1.0)
        return cls(0.0, t, 1.0 - t)

    def total_energy(self) -> float:
        return self.reflectance + self.transmittance + self.absorption

    def is_energy_conserved(self, tolerance: float = ENERGY_TOLERANCE) -> bool:
        return abs(self.total_energy() - 1.0) < tolerance

    def as_array(self) -> Array:
        """[R, T, A]."""
        return be.asarray([self.reflectance, self.transmittance, self.absorption])


@dataclass(frozen=True)
class EnergyValidation:
    conserved: bool
    error: float
    details: str

    @classmethod
    def from_error(cls, error: float, tolerance: float = ENERGY_TOLERANCE) -> EnergyValidation:
        if error < tolerance:
            return cls(True, error, f"Energy conserved: error = {error:.2e}")
        return cls(False, error, f"Energy not conserved: R + T + A != 1 (error = {error:.2e})")


@dataclass(frozen=True)
class BSDFContext:
    """Geometry and wavelength of one evaluation.

    Attributes:
        incident: Direction towards the light.
        outgoing: Direction towards the viewer.
        normal: Surface normal.
        wavelength_nm: Wavelength in nm.
    """

    incident: tuple[float, float, float] = (0.0, 0.0, 1.0)
    outgoing: tuple[float, float, float] = (0.0, 0.0, 1.0)
    normal: tuple[float, float, float] = (0.0, 0.0, 1.0)
    wavelength_nm: float = 550.0

    def __post_init__(self):
        for name in ("incident", "outgoing", "normal"):
            unit = normalize(getattr(self, name))
            object.__setattr__(self, name, tuple(float(c) for c in unit))
        object.__setattr__(self, "wavelength_nm", require_positive("wavelength_nm", self.wavelength_nm))

    @classmethod
    def from_cos_theta(cls, cos_theta: float, wavelength_nm: float = 550.0) -> BSDFContext:
        """Specular geometry in the xz plane at the given incidence cosine."""
        c = min(max(float(cos_theta), 0.0), 1.0)
        s = math.sqrt(1.0 - c * c)
        return cls((s, 0.0, c), (-s, 0.0, c), (0.0, 0.0, 1.0), wavelength_nm)

    def with_wavelength(self, wavelength_nm: float) -> BSDFContext:
        return replace(self, wavelength_nm=wavelength_nm)

    @property
    def cos_theta_i(self) -> float:
        return abs(sum(a * b for a, b in zip(self.incident, self.normal)))

    @property
    def cos_theta_o(self) -> float:
        return abs(sum(a * b for a, b in zip(self.outgoing, self.normal)))

    @property
    def half_vector(self) -> tuple[float, float, float]:
        h = normalize(be.asarray(self.incident) + be.asarray(self.outgoing))
        return tuple(float(c) for c in h)


class BaseBSDF(ABC):
    """Base class for BSDF models."""

    display_name = "BSDF"

    @property
    def name(self) -> str:
        return self.display_name

    @abstractmethod
    def evaluate(self, context: BSDFContext) -> BSDFResult:
        pass  # pragma: no cover

    def evaluate_at(self, cos_theta: float, wavelength_nm: float = 550.0) -> BSDFResult:
        return self.evaluate(BSDFContext.from_cos_theta(cos_theta, wavelength_nm))

    def evaluate_rgb(self, cos_theta: float) -> Array:
        """Reflectance at the 650 / 550 / 450 nm channel wavelengths."""
        return be.asarray([self.evaluate_at(cos_theta, wl).reflectance for wl in RGB_WAVELENGTHS_NM])

    def evaluate_spectral(self, cos_theta: float) -> Array:
        """Reflectance over the 33-sample spectral grid."""
        return be.asarray([self.evaluate_at(cos_theta, float(wl)).reflectance for wl in WAVELENGTHS_NM])

    def validate_energy(self, context: BSDFContext | None = None) -> EnergyValidation:
        result = self.evaluate(context or BSDFContext())
        return EnergyValidation.from_error(abs(result.total_energy() - 1.0))


def dielectric_response(ior, roughness, cos_theta, full_fresnel: bool = False):
    """Vectorized (R, T, A) of a rough dielectric surface.

    Roughness moves energy from the specular lobe into a weak diffuse term:
    R = F·(1 - roughness) + 0.05·roughness. Dielectrics do not absorb.
    """
    ior = be.as_float_array(ior)
    roughness = be.clip(be.as_float_array(roughness), 0.0, 1.0)
    cos_theta = be.clip(be.as_float_array(cos_theta), 0.0, 1.0)
    if full_fresnel:
        F = fresnel_dielectric_unpolarized(1.0, ior, cos_theta)
    else:
        F = fresnel_schlick(1.0, ior, cos_theta)
    R = be.clip(F * (1.0 - roughness) + 0.05 * roughness, 0.0, 1.0)
    return R, 1.0 - R, be.zeros_like(R)


@dataclass(frozen=True)
class DielectricBSDF(BaseBSDF):
    """Transparent dielectric interface.

    Args:
        ior: Refractive index at every wavelength, unless ``dispersion`` is set.
        roughness: Surface roughness, clamped to [0, 1].
        dispersion: Optional wavelength-dependent index model.
        full_fresnel: Exact unpolarized Fresnel instead of Schlick's
            approximation.
    """

    ior: float = 1.5
    roughness: float = 0.0
    dispersion: BaseDispersion | None = None
    full_fresnel: bool = False

    display_name = "DielectricBSDF"

    def __post_init__(self):
        object.__setattr__(self, "ior", require_positive("ior", self.ior))
        object.__setattr__(self, "roughness", _unit("roughness", self.roughness))

    def ior_at(self, wavelength_nm: float) -> float:
        if self.dispersion is None:
            return self.ior
        return self.dispersion.n_at(wavelength_nm)

    def evaluate(self, context):
        R, T, A = dielectric_response(
            self.ior_at(context.wavelength_nm), self.roughness, context.cos_theta_i, self.full_fresnel
        )
        return BSDFResult(float(R), float(T), float(A))

    @classmethod
    def glass(cls):
        return cls(1.52)

    @classmethod
    def water(cls):
        return cls(1.33)

    @classmethod
    def diamond(cls):
        return cls(2.42, dispersion=SellmeierDispersion.diamond())

    @classmethod
    def frosted_glass(cls):
        return cls(1.52, 0.3)


@dataclass(frozen=True)
class ConductorBSDF(BaseBSDF):
    """Opaque metal with exact complex Fresnel reflectance.

    A spectral index is interpolated at the context wavelength. Roughness
    scales the reflectance by (1 - 0.4·roughness); the rest is absorbed.
    """

    ior: ComplexIOR | SpectralComplexIOR
    roughness: float = 0.0

    display_name = "ConductorBSDF"

    def __post_init__(self):
        object.__setattr__(self, "roughness", _unit("roughness", self.roughness))

    def ior_at(self, wavelength_nm: float) -> ComplexIOR:
        if isinstance(self.ior, SpectralComplexIOR):
            return self.ior.at_wavelength(wavelength_nm)
        return self.ior

    def evaluate(self, context):
        R = fresnel_conductor_unpolarized(1.0, self.ior_at(context.wavelength_nm), context.cos_theta_i)
        R = min(max(float(R) * (1.0 - 0.4 * self.roughness), 0.0), 1.0)
        return BSDFResult(R, 0.0, 1.0 - R)

    @classmethod
    def gold(cls):
        return cls(GOLD)

    @classmethod
    def silver(cls):
        return cls(SILVER)

    @classmethod
    def copper(cls):
        return cls(COPPER)

    @classmethod
    def aluminum(cls):
        return cls(ALUMINUM)

    @classmethod
    def chrome(cls):
        return cls(CHROMIUM)

    @classmethod
    def brushed(cls, ior: ComplexIOR | SpectralComplexIOR = ALUMINUM, roughness: float = 0.15):
        return cls(ior, roughness)


@dataclass(frozen=True)
class ThinFilmBSDF(BaseBSDF):
    """Iridescent film on a transparent substrate (Airy reflectance)."""

    film: ThinFilm
    n_substrate: float = 1.52
    roughness: float = 0.0

    display_name = "ThinFilmBSDF"

    def __post_init__(self):
        object.__setattr__(self, "n_substrate", require_positive("n_substrate", self.n_substrate))
        object.__setattr__(self, "roughness", _unit("roughness", self.roughness))

    def evaluate(self, context):
        R = self.film.reflectance(context.wavelength_nm, self.n_substrate, context.cos_theta_i)
        R = R * (1.0 - 0.3 * self.roughness)
        return BSDFResult(R, 1.0 - R, 0.0)

    @classmethod
    def soap_bubble(cls, thickness_nm: float = 300.0):
        return cls(ThinFilm(1.33, thickness_nm), 1.0)

    @classmethod
    def oil_on_water(cls, thickness_nm: float = 300.0):
        return cls(ThinFilm(1.47, thickness_nm), 1.33)

    @classmethod
    def ar_coating(cls):
        return cls(ThinFilm(1.38, 100.0), 1.52)


@dataclass(frozen=True)
class LambertianBSDF(BaseBSDF):
    """Ideal diffuse reflector; hemispherical reflectance equals the albedo."""

    albedo: float = 0.8

    display_name = "LambertianBSDF"

    def __post_init__(self):
        object.__setattr__(self, "albedo", _unit("albedo", self.albedo))

    def evaluate(self, context):
        return BSDFResult(self.albedo, 0.0, 1.0 - self.albedo)

    @classmethod
    def white(cls):
        return cls(0.9)

    @classmethod
    def gray(cls):
        return cls(0.5)

    @classmethod
    def black(cls):
        return cls(0.05)


@dataclass(frozen=True)
class MicrofacetBSDF(BaseBSDF):
    """GGX specular plus Oren-Nayar diffuse.

    The specular lobe (times n·l) takes priority; diffuse fills at most the
    remaining energy and the rest is absorbed.
    """

    roughness: float = 0.5
    metallic: float = 0.0
    f0: float = 0.04
    albedo: float = 0.8

    display_name = "MicrofacetBSDF"

    def __post_init__(self):
        for name in ("roughness", "metallic", "f0", "albedo"):
            object.__setattr__(self, name, _unit(name, getattr(self, name)))

    def evaluate(self, context):
        n = be.asarray(context.normal)
        wi = be.asarray(context.incident)
        wo = be.asarray(context.outgoing)
        n_dot_l = max(float(be.dot(wi, n)), 0.0)
        n_dot_v = max(float(be.dot(wo, n)), 0.0)
        if n_dot_l < 1e-6:
            return BSDFResult(0.0, 0.0, 1.0)

        h = normalize(wi + wo)
        n_dot_h = max(float(be.dot(h, n)), 0.0)
        h_dot_v = max(float(be.dot(h, wo)), 0.0)
        l_dot_v = float(be.dot(wi, wo))

        spec = cook_torrance(n_dot_v, n_dot_l, n_dot_h, h_dot_v, self.roughness, self.f0) * n_dot_l
        diff = (
            (1.0 - self.metallic)
            * oren_nayar(n_dot_l, n_dot_v, l_dot_v, self.roughness, self.albedo)
            * n_dot_l
        )
        reflectance = min(max(spec, 0.0), 1.0)
        diffuse = max(min(diff, 1.0 - reflectance), 0.0)
        return BSDFResult(reflectance + diffuse, 0.0, 1.0 - reflectance - diffuse)

    @classmethod
    def brushed_metal(cls):
        return cls(0.4, 1.0, 0.8, 0.0)

    @classmethod
    def polished_glass(cls):
        return cls(0.05, 0.0, 0.0426, 0.8)

    @classmethod
    def matte_plastic(cls):
        return cls(0.6, 0.0, 0.04, 0.8)


class LayeredBSDF(BaseBSDF):
    """Stack of BSDFs evaluated top to bottom.

    Each layer reflects and absorbs its share of the energy still travelling
    down; what passes the last layer is transmitted.
    """

    display_name = "LayeredBSDF"

    def __init__(self, layers=()):
        self.layers = tuple(layers)

    def push(self, layer: BaseBSDF) -> LayeredBSDF:
        return LayeredBSDF(self.layers + (layer,))

    def layer_count(self) -> int:
        return len(self.layers)

    def evaluate(self, context):
        if not self.layers:
            return BSDFResult.pure_transmission(1.0)
        remaining = 1.0
        reflected = 0.0
        absorbed = 0.0
        for layer in self.layers:
            result = layer.evaluate(context)
            reflected += remaining * result.reflectance
            absorbed += remaining * result.absorption
            remaining *= result.transmittance
            if remaining < 1e-6:
                break
        return BSDFResult(reflected, remaining, absorbed)

    def __repr__(self):
        return "LayeredBSDF(" + ", ".join(layer.name for layer in self.layers) + ")"


def validate_energy_conservation(bsdf: BaseBSDF) -> EnergyValidation:
    """Largest |R + T + A - 1| over incidence angles from 0 to 85 degrees."""
    max_error = 0.0
    for angle in VALIDATION_ANGLES_DEG:
        result = bsdf.evaluate_at(math.cos(math.radians(angle)))
        max_error = max(max_error, abs(result.total_energy() - 1.0))
    validation = EnergyValidation.from_error(max_error)
    if not validation.conserved:
        logger.warning("%s: %s", bsdf.name, validation.details)
    return validation
