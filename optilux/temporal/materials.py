"""Time-parameterized materials.

Each material maps an explicit time (seconds) or temperature (K) to a static
BSDF and evaluates it. Nothing here reads a clock; the same ``t`` always
gives the same result.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, TypeAlias

import optilux.backend as be
from optilux.errors import (
    InvalidParameterError,
    require_finite,
    require_non_negative,
    require_positive,
)
from optilux.materials import COPPER, GOLD, SpectralComplexIOR
from optilux.pbr import BSDFResult, ConductorBSDF, DielectricBSDF, ThinFilmBSDF
from optilux.thin_film import ThinFilm

Array: TypeAlias = Any  # be.ndarray

ROOM_TEMPERATURE_K = 293.15

# keeps n strictly positive when a large temperature swing drives it down
MIN_N = 0.01


@dataclass(frozen=True)
class TemporalThinFilmMaterial:
    """Thin film whose thickness oscillates and settles over time.

    thickness(t) = base + amplitude · exp(-damping · t) · sin(2π · frequency · t)

    Attributes:
        n_film: Film index.
        base_thickness_nm: Mean thickness in nm.
        amplitude_nm: Oscillation amplitude in nm, smaller than the base
            thickness so the film never vanishes.
        frequency_hz: Oscillation frequency.
        damping: Exponential decay rate of the amplitude, 1/s.
        n_substrate: Index behind the film.
    """

    n_film: float
    base_thickness_nm: float
    amplitude_nm: float
    frequency_hz: float
    damping: float = 0.0
    n_substrate: float = 1.0

    def __post_init__(self):
        object.__setattr__(self, "n_film", require_positive("n_film", self.n_film))
        base = require_positive("base_thickness_nm", self.base_thickness_nm)
        amplitude = require_non_negative("amplitude_nm", self.amplitude_nm)
        if amplitude >= base:
            raise InvalidParameterError(
                "amplitude_nm", amplitude, "must be smaller than base_thickness_nm"
            )
        object.__setattr__(self, "base_thickness_nm", base)
        object.__setattr__(self, "amplitude_nm", amplitude)
        object.__setattr__(self, "frequency_hz", require_non_negative("frequency_hz", self.frequency_hz))
        object.__setattr__(self, "damping", require_non_negative("damping", self.damping))
        object.__setattr__(self, "n_substrate", require_positive("n_substrate", self.n_substrate))

    def thickness_at(self, t: float) -> float:
        t = require_finite("t", t)
        envelope = self.amplitude_nm * math.exp(-self.damping * max(t, 0.0))
        return self.base_thickness_nm + envelope * math.sin(2.0 * math.pi * self.frequency_hz * t)

    def bsdf_at_time(self, t: float) -> ThinFilmBSDF:
        return ThinFilmBSDF(ThinFilm(self.n_film, self.thickness_at(t)), self.n_substrate)

    def evaluate_at_time(
        self, t: float, cos_theta: float = 1.0, wavelength_nm: float = 550.0
    ) -> BSDFResult:
        return self.bsdf_at_time(t).evaluate_at(cos_theta, wavelength_nm)

    def sample_timeline(self, duration: float, samples: int, cos_theta: float = 1.0) -> Array:
        """Reflectance at ``samples`` evenly spaced times over [0, duration].

        Returns:
            Flat array [t0, R0, t1, R1, ...].

        Raises:
            InvalidParameterError: If ``samples`` < 2 or ``duration`` <= 0.
        """
        duration = require_positive("duration", duration)
        if int(samples) < 2:
            raise InvalidParameterError("samples", samples, "must be >= 2")
        times = be.linspace(0.0, duration, int(samples))
        reflectance = [self.evaluate_at_time(float(t), cos_theta).reflectance for t in times]
        return be.stack([times, be.asarray(reflectance)], axis=-1).ravel()

    @classmethod
    def soap_bubble(cls):
        """Vibrating soap film: 300 ± 100 nm at 2 Hz, settling over about 10 s."""
        return cls(1.33, 300.0, 100.0, 2.0, damping=0.1, n_substrate=1.0)

    @classmethod
    def oil_slick(cls):
        return cls(1.5, 400.0, 50.0, 0.2, damping=0.05, n_substrate=1.33)


@dataclass(frozen=True)
class TemporalDielectricMaterial:
    """Dielectric whose roughness relaxes over time and whose index follows temperature.

    roughness(t) = final + (initial - final) · exp(-t / relaxation_time_s)
    n(T) = ior + dn_dt · (T - t_ref)
    """

    ior: float
    roughness_initial: float
    roughness_final: float
    relaxation_time_s: float
    dn_dt: float = 0.0
    t_ref: float = ROOM_TEMPERATURE_K

    def __post_init__(self):
        object.__setattr__(self, "ior", require_positive("ior", self.ior))
        for name in ("roughness_initial", "roughness_final"):
            value = require_finite(name, getattr(self, name))
            if not 0.0 <= value <= 1.0:
                raise InvalidParameterError(name, value, "must lie in [0, 1]")
            object.__setattr__(self, name, value)
        object.__setattr__(
            self, "relaxation_time_s", require_positive("relaxation_time_s", self.relaxation_time_s)
        )
        object.__setattr__(self, "dn_dt", require_finite("dn_dt", self.dn_dt))
        object.__setattr__(self, "t_ref", require_positive("t_ref", self.t_ref))

    def roughness_at(self, t: float) -> float:
        t = max(require_finite("t", t), 0.0)
        decay = math.exp(-t / self.relaxation_time_s)
        return self.roughness_final + (self.roughness_initial - self.roughness_final) * decay

    def ior_at(self, temperature_k: float) -> float:
        return max(self.ior + self.dn_dt * (require_finite("temperature_k", temperature_k) - self.t_ref), MIN_N)

    def bsdf_at(self, t: float, temperature_k: float | None = None) -> DielectricBSDF:
        temperature_k = self.t_ref if temperature_k is None else temperature_k
        return DielectricBSDF(self.ior_at(temperature_k), self.roughness_at(t))

    def evaluate_at_time(
        self,
        t: float,
        cos_theta: float = 1.0,
        temperature_k: float | None = None,
        wavelength_nm: float = 550.0,
    ) -> BSDFResult:
        return self.bsdf_at(t, temperature_k).evaluate_at(cos_theta, wavelength_nm)

    @classmethod
    def drying_paint(cls):
        """Wet gloss to matte finish over about a minute."""
        return cls(1.5, 0.05, 0.4, 60.0, dn_dt=-1e-5)

    @classmethod
    def weathering_glass(cls):
        """Smooth glass picking up scratches over about an hour."""
        return cls(1.52, 0.01, 0.15, 3600.0, dn_dt=-1e-5)


@dataclass(frozen=True)
class TemporalConductorMaterial:
    """Metal heated at a constant rate with a linear n, k temperature response.

    T(t) = base_temperature_k + heating_rate_k_per_s · t
    n(T) = n(t_ref) + dn_dt · (T - t_ref), and likewise for k, per channel.
    """

    ior: SpectralComplexIOR
    dn_dt: float
    dk_dt: float
    base_temperature_k: float = ROOM_TEMPERATURE_K
    heating_rate_k_per_s: float = 0.0
    roughness: float = 0.0
    t_ref: float = ROOM_TEMPERATURE_K

    def __post_init__(self):
        object.__setattr__(self, "dn_dt", require_finite("dn_dt", self.dn_dt))
        object.__setattr__(self, "dk_dt", require_finite("dk_dt", self.dk_dt))
        object.__setattr__(
            self, "base_temperature_k", require_positive("base_temperature_k", self.base_temperature_k)
        )
        object.__setattr__(
            self, "heating_rate_k_per_s", require_finite("heating_rate_k_per_s", self.heating_rate_k_per_s)
        )
        object.__setattr__(self, "t_ref", require_positive("t_ref", self.t_ref))

    def temperature_at(self, t: float) -> float:
        return self.base_temperature_k + self.heating_rate_k_per_s * max(require_finite("t", t), 0.0)

    def ior_at_temperature(self, temperature_k: float) -> SpectralComplexIOR:
        delta = require_finite("temperature_k", temperature_k) - self.t_ref
        n_rgb = [max(c.n + self.dn_dt * delta, MIN_N) for c in self.ior.channels]
        k_rgb = [max(c.k + self.dk_dt * delta, 0.0) for c in self.ior.channels]
        return SpectralComplexIOR.from_rgb(n_rgb, k_rgb)

    def evaluate_at_temperature(
        self, temperature_k: float, cos_theta: float = 1.0, wavelength_nm: float = 550.0
    ) -> BSDFResult:
        bsdf = ConductorBSDF(self.ior_at_temperature(temperature_k), self.roughness)
        return bsdf.evaluate_at(cos_theta, wavelength_nm)

    def evaluate_at_time(
        self, t: float, cos_theta: float = 1.0, wavelength_nm: float = 550.0
    ) -> BSDFResult:
        return self.evaluate_at_temperature(self.temperature_at(t), cos_theta, wavelength_nm)

    @classmethod
    def heated_gold(cls):
        return cls(GOLD, dn_dt=2e-4, dk_dt=-1e-3, heating_rate_k_per_s=10.0, roughness=0.05)

    @classmethod
    def heated_copper(cls):
        return cls(COPPER, dn_dt=3e-4, dk_dt=-8e-4, heating_rate_k_per_s=10.0, roughness=0.1)
