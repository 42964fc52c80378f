"""Complex Refractive Index Module

Scalar and three-channel complex indices n + ik used for conductor
reflectance.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TypeAlias

import optilux.backend as be
from optilux.errors import require_non_negative, require_positive
from optilux.spectral import RGB_WAVELENGTHS_NM, WAVELENGTHS_NM, SpectralSignal

from .fresnel import fresnel_conductor_unpolarized, schlick_fresnel

Array: TypeAlias = Any  # be.ndarray

# k above which a material behaves as a conductor
CONDUCTOR_K_THRESHOLD = 0.1


@dataclass(frozen=True)
class ComplexIOR:
    """Complex refractive index n + ik.

    Parameters
    ----------
    n : float
        Real part, > 0.
    k : float
        Extinction coefficient, >= 0.

    Examples
    --------
    >>> gold_green = ComplexIOR(0.42, 2.35)
    >>> gold_green.is_conductor
    True
    """

    n: float
    k: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, "n", require_positive("n", self.n))
        object.__setattr__(self, "k", require_non_negative("k", self.k))

    @property
    def is_conductor(self) -> bool:
        return self.k > CONDUCTOR_K_THRESHOLD

    @property
    def f0(self) -> float:
        """Normal-incidence reflectance from air: ((n-1)^2 + k^2) / ((n+1)^2 + k^2)."""
        n, k = self.n, self.k
        return ((n - 1.0) ** 2 + k**2) / ((n + 1.0) ** 2 + k**2)

    def as_complex(self) -> complex:
        return complex(self.n, self.k)

    def fresnel(self, cos_theta: float | Array, n_incident: float = 1.0):
        """Exact unpolarized reflectance from a medium of index ``n_incident``."""
        return fresnel_conductor_unpolarized(n_incident, self, cos_theta)

    def to_dict(self) -> dict:
        return {"n": self.n, "k": self.k}

    @classmethod
    def from_dict(cls, data: dict) -> ComplexIOR:
        return cls(data["n"], data.get("k", 0.0))


@dataclass(frozen=True)
class SpectralComplexIOR:
    """Complex index sampled at three anchor wavelengths.

    The ``red``, ``green`` and ``blue`` channels are anchored at 650, 550 and
    450 nm. Values in between are interpolated linearly in n and k; outside
    450-650 nm the nearest anchor value is used.
    """

    red: ComplexIOR
    green: ComplexIOR
    blue: ComplexIOR

    @property
    def channels(self) -> tuple[ComplexIOR, ComplexIOR, ComplexIOR]:
        return (self.red, self.green, self.blue)

    def _anchors(self):
        # ascending wavelength order for interpolation
        wl = be.asarray(RGB_WAVELENGTHS_NM[::-1])
        n = be.asarray([self.blue.n, self.green.n, self.red.n])
        k = be.asarray([self.blue.k, self.green.k, self.red.k])
        return wl, n, k

    def n_at(self, wavelength_nm: float | Array):
        wl, n, _ = self._anchors()
        return be.interp(wavelength_nm, wl, n)

    def k_at(self, wavelength_nm: float | Array):
        wl, _, k = self._anchors()
        return be.interp(wavelength_nm, wl, k)

    def at_wavelength(self, wavelength_nm: float) -> ComplexIOR:
        return ComplexIOR(float(self.n_at(wavelength_nm)), float(self.k_at(wavelength_nm)))

    def n_curve(self) -> Array:
        """Real index over the 33-sample spectral grid."""
        return self.n_at(WAVELENGTHS_NM)

    def k_curve(self) -> Array:
        return self.k_at(WAVELENGTHS_NM)

    def f0_rgb(self) -> Array:
        return be.asarray([c.f0 for c in self.channels])

    def fresnel_schlick_rgb(self, cos_theta: float) -> Array:
        return schlick_fresnel(self.f0_rgb(), cos_theta)

    def reflectance_rgb(self, cos_theta: float, n_incident: float = 1.0) -> Array:
        """Exact conductor reflectance per channel."""
        return be.asarray(
            [float(c.fresnel(cos_theta, n_incident)) for c in self.channels]
        )

    def reflectance_curve(self, cos_theta: float, n_incident: float = 1.0) -> Array:
        """Exact reflectance over the spectral grid (33 samples)."""
        ior = _ArrayIOR(self.n_curve(), self.k_curve())
        return fresnel_conductor_unpolarized(n_incident, ior, cos_theta)

    def reflectance_spectrum(
        self, cos_theta: float, n_incident: float = 1.0
    ) -> SpectralSignal:
        return SpectralSignal(self.reflectance_curve(cos_theta, n_incident))

    def to_dict(self) -> dict:
        return {
            "red": self.red.to_dict(),
            "green": self.green.to_dict(),
            "blue": self.blue.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> SpectralComplexIOR:
        return cls(
            ComplexIOR.from_dict(data["red"]),
            ComplexIOR.from_dict(data["green"]),
            ComplexIOR.from_dict(data["blue"]),
        )

    @classmethod
    def from_rgb(cls, n_rgb, k_rgb) -> SpectralComplexIOR:
        return cls(*(ComplexIOR(n, k) for n, k in zip(n_rgb, k_rgb)))


@dataclass(frozen=True)
class _ArrayIOR:
    """Unvalidated n/k arrays, for vectorized Fresnel evaluation."""

    n: Array
    k: Array
