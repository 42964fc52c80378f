"""Time-varying and polydisperse particle populations.

``DynamicMieParams`` interpolates a particle between keyframes for animated
effects (condensing fog, evaporating mist, dispersing smoke). Size
distributions average single-particle quantities with deterministic
quadrature rules, weighted by scattering cross-section.
"""

from __future__ import annotations

import bisect
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, TypeAlias

from scipy import special, stats

import optilux.backend as be
from optilux.errors import InvalidParameterError, require_finite, require_positive

from .lut import mie_fast
from .mie import MieParams, mie_asymmetry_g, mie_efficiencies

Array: TypeAlias = Any  # be.ndarray


@dataclass(frozen=True)
class MieKeyframe:
    time_s: float
    radius_um: float
    n_particle: float
    n_medium: float = 1.0

    def __post_init__(self):
        object.__setattr__(self, "time_s", require_finite("time_s", self.time_s))
        MieParams(self.radius_um, self.n_particle, self.n_medium)


class DynamicMieParams:
    """Particle whose radius and indices evolve through keyframes.

    Between two keyframes every parameter is interpolated linearly, so the
    trajectory is continuous and monotonic on each segment. Before the first
    or after the last keyframe the end values are held.

    Args:
        keyframes: At least one keyframe; sorted by time on construction.

    Raises:
        InvalidParameterError: If no keyframes are given or two share a time.
    """

    def __init__(self, keyframes):
        frames = sorted(keyframes, key=lambda k: k.time_s)
        if not frames:
            raise InvalidParameterError("keyframes", keyframes, "need at least one keyframe")
        times = [k.time_s for k in frames]
        if len(set(times)) != len(times):
            raise InvalidParameterError("keyframes", times, "keyframe times must be distinct")
        self.keyframes = tuple(frames)
        self._times = times

    @property
    def duration(self) -> float:
        return self._times[-1] - self._times[0]

    def params_at_time(self, time_s: float) -> MieParams:
        frames = self.keyframes
        t = float(time_s)
        if t <= self._times[0]:
            k = frames[0]
            return MieParams(k.radius_um, k.n_particle, k.n_medium)
        if t >= self._times[-1]:
            k = frames[-1]
            return MieParams(k.radius_um, k.n_particle, k.n_medium)

        i = bisect.bisect_right(self._times, t)
        a, b = frames[i - 1], frames[i]
        u = (t - a.time_s) / (b.time_s - a.time_s)
        return MieParams(
            a.radius_um + (b.radius_um - a.radius_um) * u,
            a.n_particle + (b.n_particle - a.n_particle) * u,
            a.n_medium + (b.n_medium - a.n_medium) * u,
        )

    def phase_at_time(self, cos_theta, wavelength_nm: float, time_s: float):
        params = self.params_at_time(time_s)
        return mie_fast(cos_theta, params.size_parameter(wavelength_nm), params.relative_ior())

    def asymmetry_at_time(self, wavelength_nm: float, time_s: float) -> float:
        return self.params_at_time(time_s).asymmetry_factor(wavelength_nm)

    @classmethod
    def condensing_fog(cls):
        """Droplets growing from haze to fog over 10 s."""
        return cls(
            [
                MieKeyframe(0.0, 0.5, 1.33),
                MieKeyframe(5.0, 2.0, 1.33),
                MieKeyframe(10.0, 8.0, 1.33),
            ]
        )

    @classmethod
    def evaporating_mist(cls):
        """Droplets shrinking to haze over 8 s."""
        return cls(
            [
                MieKeyframe(0.0, 5.0, 1.33),
                MieKeyframe(4.0, 2.0, 1.33),
                MieKeyframe(8.0, 0.3, 1.33),
            ]
        )

    @classmethod
    def dispersing_smoke(cls):
        """Coagulating soot-like particles with a slowly dropping index."""
        return cls(
            [
                MieKeyframe(0.0, 0.2, 1.55),
                MieKeyframe(6.0, 0.4, 1.52),
                MieKeyframe(12.0, 0.6, 1.5),
            ]
        )


class SizeDistribution(ABC):
    """Particle radius distribution (radii in µm)."""

    @abstractmethod
    def pdf(self, radius_um):
        pass  # pragma: no cover

    @abstractmethod
    def mean_radius(self) -> float:
        pass  # pragma: no cover

    @abstractmethod
    def quadrature(self, n: int = 16) -> tuple[Array, Array]:
        """Radii and weights (summing to 1) approximating the distribution."""


class Monodisperse(SizeDistribution):
    def __init__(self, radius_um: float):
        self.radius_um = require_positive("radius_um", radius_um)

    def pdf(self, radius_um):
        r = be.as_float_array(radius_um)
        return be.where(r == self.radius_um, be.inf, 0.0)

    def mean_radius(self) -> float:
        return self.radius_um

    def quadrature(self, n: int = 16):
        return be.asarray([self.radius_um]), be.asarray([1.0])


class LogNormal(SizeDistribution):
    """Log-normal distribution with median radius and geometric standard deviation."""

    def __init__(self, median_radius_um: float, geometric_std: float):
        self.median_radius_um = require_positive("median_radius_um", median_radius_um)
        self.geometric_std = require_positive("geometric_std", geometric_std)
        if self.geometric_std <= 1.0:
            raise InvalidParameterError("geometric_std", geometric_std, "must be > 1")
        self._sigma = float(be.log(self.geometric_std))

    def pdf(self, radius_um):
        return stats.lognorm.pdf(radius_um, s=self._sigma, scale=self.median_radius_um)

    def mean_radius(self) -> float:
        return float(self.median_radius_um * be.exp(0.5 * self._sigma**2))

    def quadrature(self, n: int = 16):
        # Gauss-Hermite in ln r
        nodes, weights = special.roots_hermitenorm(n)
        radii = self.median_radius_um * be.exp(self._sigma * nodes)
        return be.asarray(radii), be.asarray(weights) / be.sum(weights)


class GammaDistribution(SizeDistribution):
    """Modified gamma distribution parameterized by effective radius and variance.

    Shape k = (1 - 2v)/v and scale θ = r_eff·v (Hansen & Travis, 1974).
    """

    def __init__(self, effective_radius_um: float, effective_variance: float):
        self.effective_radius_um = require_positive("effective_radius_um", effective_radius_um)
        v = require_positive("effective_variance", effective_variance)
        if v >= 0.5:
            raise InvalidParameterError("effective_variance", v, "must be < 0.5")
        self.effective_variance = v
        self._shape = (1.0 - 2.0 * v) / v
        self._scale = self.effective_radius_um * v

    def pdf(self, radius_um):
        return stats.gamma.pdf(radius_um, self._shape, scale=self._scale)

    def mean_radius(self) -> float:
        return self._shape * self._scale

    def quadrature(self, n: int = 16):
        # generalized Gauss-Laguerre for x^(k-1) e^(-x)
        nodes, weights = special.roots_genlaguerre(n, self._shape - 1.0)
        return be.asarray(nodes * self._scale), be.asarray(weights) / be.sum(weights)


class Bimodal(SizeDistribution):
    """Mixture of two distributions; ``weight`` is the share of the first."""

    def __init__(self, first: SizeDistribution, second: SizeDistribution, weight: float = 0.5):
        weight = require_finite("weight", weight)
        if not 0.0 <= weight <= 1.0:
            raise InvalidParameterError("weight", weight, "must lie in [0, 1]")
        self.first = first
        self.second = second
        self.weight = weight

    def pdf(self, radius_um):
        return self.weight * be.asarray(self.first.pdf(radius_um)) + (1.0 - self.weight) * be.asarray(
            self.second.pdf(radius_um)
        )

    def mean_radius(self) -> float:
        return self.weight * self.first.mean_radius() + (1.0 - self.weight) * self.second.mean_radius()

    def quadrature(self, n: int = 16):
        r1, w1 = self.first.quadrature(n)
        r2, w2 = self.second.quadrature(n)
        return (
            be.concatenate([r1, r2]),
            be.concatenate([self.weight * w1, (1.0 - self.weight) * w2]),
        )


def _population(distribution, wavelength_nm, n_particle, n_medium, n_quad):
    radii, weights = distribution.quadrature(n_quad)
    m = n_particle / n_medium
    x = 2.0 * be.pi * radii / (wavelength_nm / 1000.0)
    q_ext, q_sca = mie_efficiencies(x, m)
    area = be.pi * radii**2
    return radii, weights, x, m, be.asarray(q_ext), be.asarray(q_sca), area


def polydisperse_phase(
    cos_theta,
    wavelength_nm: float,
    distribution: SizeDistribution,
    n_particle: float,
    n_medium: float = 1.0,
    n_quad: int = 16,
):
    """Scattering-cross-section weighted phase function of a population."""
    _, weights, x, m, _, q_sca, area = _population(
        distribution, wavelength_nm, n_particle, n_medium, n_quad
    )
    sigma = weights * q_sca * area
    mu = be.as_float_array(cos_theta)
    phases = be.stack([be.asarray(mie_fast(mu, xi, m)) for xi in x], axis=0)
    total = be.sum(sigma)
    if total <= 0:
        phases_avg = be.tensordot(weights, phases, axes=1)
    else:
        phases_avg = be.tensordot(sigma / total, phases, axes=1)
    return float(phases_avg) if be.ndim(phases_avg) == 0 else phases_avg


def effective_asymmetry_g(
    wavelength_nm: float,
    distribution: SizeDistribution,
    n_particle: float,
    n_medium: float = 1.0,
    n_quad: int = 16,
) -> float:
    _, weights, x, m, _, q_sca, area = _population(
        distribution, wavelength_nm, n_particle, n_medium, n_quad
    )
    sigma = weights * q_sca * area
    g = be.asarray(mie_asymmetry_g(x, m))
    total = be.sum(sigma)
    if total <= 0:
        return 0.0
    return float(be.sum(sigma * g) / total)


def extinction_coefficient(
    wavelength_nm: float,
    distribution: SizeDistribution,
    n_particle: float,
    n_medium: float = 1.0,
    number_density_per_um3: float = 1.0,
    n_quad: int = 16,
) -> float:
    """Extinction coefficient N·⟨Q_ext πr²⟩ in µm⁻¹."""
    _, weights, _, _, q_ext, _, area = _population(
        distribution, wavelength_nm, n_particle, n_medium, n_quad
    )
    return float(number_density_per_um3 * be.sum(weights * q_ext * area))
