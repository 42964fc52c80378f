"""Temperature-dependent Drude metals.

The free-electron permittivity

    ε(ω, T) = ε∞ - ωp(T)² / (ω² + i γ(T) ω)

with a plasma frequency and damping rate that vary linearly with the
temperature offset from a reference temperature. Photon energies are in eV.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, TypeAlias

import optilux.backend as be
from optilux.errors import require_finite, require_positive
from optilux.spectral import WAVELENGTHS_NM

from .complex_ior import ComplexIOR, SpectralComplexIOR, _ArrayIOR
from .fresnel import fresnel_conductor_unpolarized

logger = logging.getLogger(__name__)

Array: TypeAlias = Any  # be.ndarray

HC_EV_NM = 1239.84193
TEMPERATURE_RANGE_K = (1.0, 5000.0)
MIN_PLASMA_FREQUENCY_EV = 0.1
MIN_DAMPING_EV = 0.001


@dataclass(frozen=True)
class DrudeMetal:
    """Drude parameters of a metal.

    Parameters
    ----------
    eps_inf : float
        High-frequency permittivity.
    omega_p_ev : float
        Plasma frequency at ``t_ref`` (eV).
    gamma_ev : float
        Damping rate at ``t_ref`` (eV).
    t_ref : float
        Reference temperature (K).
    d_omega_p : float
        Relative change of ωp per kelvin.
    d_gamma : float
        Relative change of γ per kelvin.
    name : str | None
        Optional label.
    """

    eps_inf: float
    omega_p_ev: float
    gamma_ev: float
    t_ref: float = 300.0
    d_omega_p: float = 0.0
    d_gamma: float = 0.0
    name: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "eps_inf", require_positive("eps_inf", self.eps_inf))
        object.__setattr__(
            self, "omega_p_ev", require_positive("omega_p_ev", self.omega_p_ev)
        )
        object.__setattr__(self, "gamma_ev", require_positive("gamma_ev", self.gamma_ev))
        object.__setattr__(self, "t_ref", require_positive("t_ref", self.t_ref))
        object.__setattr__(self, "d_omega_p", require_finite("d_omega_p", self.d_omega_p))
        object.__setattr__(self, "d_gamma", require_finite("d_gamma", self.d_gamma))

    @staticmethod
    def _clamp_temperature(temperature_k):
        t = be.as_float_array(temperature_k)
        lo, hi = TEMPERATURE_RANGE_K
        if be.any((t < lo) | (t > hi)):
            logger.debug("Temperature clamped to [%g, %g] K", lo, hi)
        return be.clip(t, lo, hi)

    def plasma_frequency(self, temperature_k: float | Array):
        dt = self._clamp_temperature(temperature_k) - self.t_ref
        return be.maximum(self.omega_p_ev * (1.0 + self.d_omega_p * dt), MIN_PLASMA_FREQUENCY_EV)

    def damping(self, temperature_k: float | Array):
        dt = self._clamp_temperature(temperature_k) - self.t_ref
        return be.maximum(self.gamma_ev * (1.0 + self.d_gamma * dt), MIN_DAMPING_EV)

    def at_temperature(self, temperature_k: float) -> DrudeMetal:
        """Parameters re-referenced to ``temperature_k`` (no further drift)."""
        return replace(
            self,
            omega_p_ev=float(self.plasma_frequency(temperature_k)),
            gamma_ev=float(self.damping(temperature_k)),
            t_ref=float(self._clamp_temperature(temperature_k)),
            d_omega_p=0.0,
            d_gamma=0.0,
        )

    def epsilon(self, wavelength_nm: float | Array, temperature_k: float | Array = 300.0):
        """Complex permittivity, vectorized over wavelength and temperature."""
        wl = be.maximum(be.as_float_array(wavelength_nm), 1.0)
        omega = HC_EV_NM / wl
        wp = self.plasma_frequency(temperature_k)
        gamma = self.damping(temperature_k)
        return self.eps_inf - wp**2 / (omega**2 + 1j * gamma * omega)

    def nk(self, wavelength_nm: float | Array, temperature_k: float | Array = 300.0):
        """(n, k) arrays from the principal square root of ε."""
        root = be.sqrt(self.epsilon(wavelength_nm, temperature_k))
        return be.abs(root.real), be.abs(root.imag)

    def temperature_dependent_ior(
        self, wavelength_nm: float, temperature_k: float = 300.0
    ) -> ComplexIOR:
        n, k = self.nk(wavelength_nm, temperature_k)
        return ComplexIOR(max(float(n), 1e-6), float(k))

    def spectral_ior(self, temperature_k: float = 300.0) -> SpectralComplexIOR:
        """Three-channel index at 650 / 550 / 450 nm."""
        return SpectralComplexIOR(
            *(self.temperature_dependent_ior(wl, temperature_k) for wl in (650.0, 550.0, 450.0))
        )

    def reflectance(
        self,
        wavelength_nm: float | Array,
        temperature_k: float = 300.0,
        cos_theta: float | Array = 1.0,
        n_incident: float = 1.0,
    ):
        """Exact unpolarized Fresnel reflectance at the given temperature."""
        n, k = self.nk(wavelength_nm, temperature_k)
        return fresnel_conductor_unpolarized(n_incident, _ArrayIOR(n, k), cos_theta)

    def reflectance_curve(self, temperature_k: float = 300.0, cos_theta: float = 1.0):
        return self.reflectance(WAVELENGTHS_NM, temperature_k, cos_theta)

    def to_dict(self) -> dict:
        return {
            "eps_inf": self.eps_inf,
            "omega_p_ev": self.omega_p_ev,
            "gamma_ev": self.gamma_ev,
            "t_ref": self.t_ref,
            "d_omega_p": self.d_omega_p,
            "d_gamma": self.d_gamma,
            "name": self.name,
        }

    @classmethod
    def from_dict(cls, data: dict) -> DrudeMetal:
        return cls(**data)

    # ----- presets -----
    @classmethod
    def gold(cls):
        return cls(9.84, 9.03, 0.053, 300.0, -1.5e-4, 3.2e-3, name="gold")

    @classmethod
    def silver(cls):
        return cls(3.7, 9.01, 0.018, 300.0, -1.2e-4, 4.1e-3, name="silver")

    @classmethod
    def copper(cls):
        return cls(10.6, 8.88, 0.047, 300.0, -1.8e-4, 3.8e-3, name="copper")

    @classmethod
    def aluminum(cls):
        return cls(1.0, 14.75, 0.082, 300.0, -0.8e-4, 2.5e-3, name="aluminum")

    @classmethod
    def iron(cls):
        return cls(6.0, 4.5, 0.18, 300.0, -1.0e-4, 2.8e-3, name="iron")

    @classmethod
    def platinum(cls):
        return cls(5.6, 5.15, 0.12, 300.0, -0.6e-4, 2.2e-3, name="platinum")

    @classmethod
    def nickel(cls):
        return cls(4.5, 4.89, 0.11, 300.0, -0.9e-4, 3.0e-3, name="nickel")


@dataclass(frozen=True)
class OxideLayer:
    """Thin oxide grown on a metal surface.

    Parameters
    ----------
    n : float
        Oxide refractive index.
    thickness_nm : float
        Thickness at the reference temperature (nm).
    growth_per_k : float
        Thickness growth in nm per kelvin above ``t_ref``.
    """

    n: float
    thickness_nm: float
    growth_per_k: float = 0.0
    t_ref: float = 300.0

    def __post_init__(self):
        object.__setattr__(self, "n", require_positive("n", self.n))
        object.__setattr__(self, "thickness_nm", require_positive("thickness_nm", self.thickness_nm))

    def thickness_at(self, temperature_k: float) -> float:
        grown = self.thickness_nm + self.growth_per_k * (float(temperature_k) - self.t_ref)
        return max(grown, self.thickness_nm)

    @classmethod
    def copper_oxide(cls):
        return cls(2.6, 5.0, 0.05)

    @classmethod
    def iron_oxide(cls):
        return cls(2.9, 8.0, 0.08)

    @classmethod
    def aluminum_oxide(cls):
        return cls(1.77, 4.0, 0.01)
