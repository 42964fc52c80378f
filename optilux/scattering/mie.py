"""Mie scattering approximations.

Particle scattering in three regimes selected by the size parameter
x = 2πr/λ: Rayleigh (x < 0.3), Mie (0.3 <= x <= 30) and geometric (x > 30).
Efficiencies use the Rayleigh limit for small particles and van de Hulst's
anomalous diffraction approximation otherwise; angular behaviour is modelled
with a Henyey-Greenstein lobe whose asymmetry follows an empirical fit.

References:
    - H. C. van de Hulst, Light Scattering by Small Particles (1957).
    - C. F. Bohren & D. R. Huffman, Absorption and Scattering of Light by
      Small Particles (1983).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TypeAlias

import optilux.backend as be
from optilux.errors import require_positive
from optilux.spectral import RGB_WAVELENGTHS_NM

Array: TypeAlias = Any  # be.ndarray

RAYLEIGH_LIMIT = 0.3
GEOMETRIC_LIMIT = 30.0
ISOTROPIC_LIMIT = 0.1
MAX_ASYMMETRY = 0.95


def _out(value):
    return float(value) if be.ndim(value) == 0 else value


def rayleigh_efficiency(size_param: float | Array, relative_ior: float | Array):
    """Rayleigh scattering efficiency (8/3) x⁴ ((m² - 1)/(m² + 2))².

    Zero outside the Rayleigh regime (x > 0.3).
    """
    x = be.maximum(be.as_float_array(size_param), 0.0)
    m2 = be.as_float_array(relative_ior) ** 2
    polarizability = (m2 - 1.0) / (m2 + 2.0)
    q = (8.0 / 3.0) * x**4 * polarizability**2
    return _out(be.where(x > RAYLEIGH_LIMIT, 0.0, q))


def mie_asymmetry_g(size_param: float | Array, relative_ior: float | Array):
    """Empirical asymmetry parameter g(x, m).

    Isotropic below x = 0.1, growing as sqrt(x/(x+2)) with extra forward
    scattering for larger index contrast, capped at 0.95.
    """
    x = be.maximum(be.as_float_array(size_param), 0.0)
    contrast = be.abs(be.as_float_array(relative_ior) - 1.0)
    g = be.sqrt(x / (x + 2.0)) * (1.0 + 0.3 * contrast)
    g = be.minimum(g, MAX_ASYMMETRY)
    return _out(be.where(x < ISOTROPIC_LIMIT, 0.0, g))


def mie_efficiencies(size_param: float | Array, relative_ior: float | Array):
    """Extinction and scattering efficiencies (Q_ext, Q_sca).

    Non-absorbing particles are assumed, so Q_sca = Q_ext. Above the Rayleigh
    limit the anomalous diffraction result

        Q_ext = 2 - (4/ρ) sin ρ + (4/ρ²)(1 - cos ρ),  ρ = 2x(m - 1)

    is used; it tends to the extinction paradox value 2 for large ρ.
    """
    x = be.maximum(be.as_float_array(size_param), 0.0)
    m = be.as_float_array(relative_ior)
    rho = 2.0 * x * (m - 1.0)
    small = be.abs(rho) < 1e-4
    rho_safe = be.where(small, 1.0, rho)
    q_adt = 2.0 - 4.0 / rho_safe * be.sin(rho_safe) + 4.0 / rho_safe**2 * (1.0 - be.cos(rho_safe))
    # series limit ρ²/2 for a vanishing phase shift
    q_adt = be.where(small, 0.5 * rho**2, q_adt)
    q = be.where(x < RAYLEIGH_LIMIT, rayleigh_efficiency(x, m), be.maximum(q_adt, 0.0))
    q = _out(q)
    return q, q


def scattering_regime(size_param: float) -> str:
    """'rayleigh', 'mie' or 'geometric'."""
    if size_param < RAYLEIGH_LIMIT:
        return "rayleigh"
    if size_param <= GEOMETRIC_LIMIT:
        return "mie"
    return "geometric"


@dataclass(frozen=True)
class MieParams:
    """Spherical scattering particle in a host medium.

    Parameters
    ----------
    radius_um : float
        Particle radius in µm, > 0.
    n_particle : float
        Particle refractive index.
    n_medium : float
        Host medium refractive index.
    """

    radius_um: float
    n_particle: float
    n_medium: float = 1.0

    def __post_init__(self):
        object.__setattr__(self, "radius_um", require_positive("radius_um", self.radius_um))
        object.__setattr__(self, "n_particle", require_positive("n_particle", self.n_particle))
        object.__setattr__(self, "n_medium", require_positive("n_medium", self.n_medium))

    def size_parameter(self, wavelength_nm: float | Array):
        """x = 2πr/λ, with λ converted to µm. Finite and >= 0."""
        wl_um = be.maximum(be.as_float_array(wavelength_nm), 1e-3) / 1000.0
        return _out(2.0 * be.pi * self.radius_um / wl_um)

    def relative_ior(self) -> float:
        return self.n_particle / self.n_medium

    def size_param_rgb(self) -> Array:
        return be.asarray(self.size_parameter(be.asarray(RGB_WAVELENGTHS_NM)))

    def regime(self, wavelength_nm: float = 550.0) -> str:
        return scattering_regime(self.size_parameter(wavelength_nm))

    def asymmetry_factor(self, wavelength_nm: float | Array = 550.0):
        return mie_asymmetry_g(self.size_parameter(wavelength_nm), self.relative_ior())

    def efficiencies(self, wavelength_nm: float | Array = 550.0):
        return mie_efficiencies(self.size_parameter(wavelength_nm), self.relative_ior())

    def extinction_efficiency(self, wavelength_nm: float | Array = 550.0):
        return self.efficiencies(wavelength_nm)[0]

    def cross_section_um2(self, wavelength_nm: float | Array = 550.0):
        """Extinction cross-section Q_ext·πr² in µm²."""
        return _out(be.asarray(self.extinction_efficiency(wavelength_nm)) * be.pi * self.radius_um**2)

    def phase(self, cos_theta: float | Array, wavelength_nm: float = 550.0):
        """Phase function from the shared lookup table."""
        from .lut import mie_particle

        return mie_particle(cos_theta, self, wavelength_nm)

    def to_dict(self) -> dict:
        return {
            "radius_um": self.radius_um,
            "n_particle": self.n_particle,
            "n_medium": self.n_medium,
        }

    @classmethod
    def from_dict(cls, data: dict) -> MieParams:
        return cls(data["radius_um"], data["n_particle"], data.get("n_medium", 1.0))

    # ----- presets -----
    @classmethod
    def fine_dust(cls):
        return cls(0.05, 1.5, 1.0)

    @classmethod
    def coarse_dust(cls):
        return cls(1.0, 1.5, 1.0)

    @classmethod
    def fog_small(cls):
        return cls(2.0, 1.33, 1.0)

    @classmethod
    def fog_large(cls):
        return cls(10.0, 1.33, 1.0)

    @classmethod
    def cloud(cls):
        return cls(8.0, 1.33, 1.0)

    @classmethod
    def mist(cls):
        return cls(3.0, 1.33, 1.0)

    @classmethod
    def milk_globule(cls):
        return cls(2.5, 1.46, 1.33)

    @classmethod
    def smoke(cls):
        return cls(0.3, 1.5, 1.0)

    @classmethod
    def pollen(cls):
        return cls(25.0, 1.45, 1.0)

    @classmethod
    def presets(cls) -> dict[str, MieParams]:
        return {
            name: getattr(cls, name)()
            for name in (
                "fine_dust",
                "coarse_dust",
                "fog_small",
                "fog_large",
                "cloud",
                "mist",
                "milk_globule",
                "smoke",
                "pollen",
            )
        }
