"""Dispersion Module

Wavelength-dependent real refractive index models: constant, Cauchy and
Sellmeier. All models clamp wavelengths to their validity window instead of
extrapolating.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, TypeAlias

import optilux.backend as be
from optilux.errors import InvalidParameterError, MalformedInputError, require_finite
from optilux.spectral import WAVELENGTHS_NM

logger = logging.getLogger(__name__)

Array: TypeAlias = Any  # be.ndarray

# Fraunhofer lines (nm)
LAMBDA_D = 589.3
LAMBDA_F = 486.1
LAMBDA_C = 656.3
# Channel wavelengths used by n_rgb: C (red), d (helium yellow-green), F (blue)
RGB_DISPERSION_NM = (656.3, 587.6, 486.1)

# Wavelength window any dispersion model may be evaluated in
GLOBAL_RANGE_NM = (200.0, 2500.0)
# Central difference step for derivatives
DERIVATIVE_STEP_NM = 1.0


class BaseDispersion(ABC):
    """Base class for refractive index models n(λ).

    Subclasses implement ``_n`` on wavelengths already clamped to the valid
    range and register themselves for ``from_dict``.
    """

    _registry = {}
    valid_range_nm: tuple[float, float] = GLOBAL_RANGE_NM

    def __init_subclass__(cls, **kwargs):
        """Automatically register subclasses."""
        super().__init_subclass__(**kwargs)
        BaseDispersion._registry[cls.__name__] = cls

    @abstractmethod
    def _n(self, wavelength_nm: Array) -> Array:
        pass  # pragma: no cover

    def _clamp(self, wavelength_nm):
        lo = max(self.valid_range_nm[0], GLOBAL_RANGE_NM[0])
        hi = min(self.valid_range_nm[1], GLOBAL_RANGE_NM[1])
        wl = be.as_float_array(wavelength_nm)
        if be.any((wl < lo) | (wl > hi)):
            logger.debug("%r: wavelengths clamped to [%g, %g] nm", self, lo, hi)
        return be.clip(wl, lo, hi)

    def n_at(self, wavelength_nm: float | Array) -> float | Array:
        """Refractive index at the given wavelength(s) in nm.

        Wavelengths outside the model's valid range are clamped to the
        nearest bound.
        """
        n = self._n(self._clamp(wavelength_nm))
        return float(n) if be.ndim(n) == 0 else n

    def dn_dlambda(self, wavelength_nm: float | Array):
        """Central difference derivative dn/dλ in nm^-1."""
        wl = be.as_float_array(wavelength_nm)
        h = DERIVATIVE_STEP_NM
        return (be.asarray(self.n_at(wl + h)) - be.asarray(self.n_at(wl - h))) / (2 * h)

    def group_index(self, wavelength_nm: float | Array) -> float | Array:
        """Group index n_g = n - λ dn/dλ."""
        wl = be.as_float_array(wavelength_nm)
        ng = be.asarray(self.n_at(wl)) - wl * self.dn_dlambda(wl)
        return float(ng) if be.ndim(ng) == 0 else ng

    def abbe_number(self) -> float:
        """Abbe number V_d = (n_d - 1) / (n_F - n_C).

        Returns ``inf`` for a non-dispersive model.
        """
        n_d = self.n_at(LAMBDA_D)
        spread = self.n_at(LAMBDA_F) - self.n_at(LAMBDA_C)
        if spread == 0:
            return float("inf")
        return (n_d - 1.0) / spread

    def n_rgb(self) -> Array:
        return be.asarray(self.n_at(be.asarray(RGB_DISPERSION_NM)))

    def n_spectrum(self) -> Array:
        """Index over the 33-sample spectral grid."""
        return be.asarray(self.n_at(WAVELENGTHS_NM))

    def f0_at(self, wavelength_nm: float | Array, n_incident: float = 1.0):
        """Normal-incidence reflectance against a medium of index ``n_incident``."""
        n = be.asarray(self.n_at(wavelength_nm))
        f0 = ((n - n_incident) / (n + n_incident)) ** 2
        return float(f0) if be.ndim(f0) == 0 else f0

    def chromatic_aberration_strength(self) -> float:
        """Index spread n(F) - n(C) between blue and red Fraunhofer lines."""
        return self.n_at(LAMBDA_F) - self.n_at(LAMBDA_C)

    def chromatic_angle_separation(self, incident_angle_deg: float) -> float:
        """Angular separation (deg) between refracted F and C rays entering from air."""
        sin_i = be.sin(be.deg2rad(incident_angle_deg))
        theta_f = be.arcsin(be.clip(sin_i / self.n_at(LAMBDA_F), -1.0, 1.0))
        theta_c = be.arcsin(be.clip(sin_i / self.n_at(LAMBDA_C), -1.0, 1.0))
        return float(be.rad2deg(be.abs(theta_c - theta_f)))

    def to_dict(self) -> dict:
        """Converts the model to a dictionary.

        Returns:
            dict: The dictionary representation of the model.
        """
        return {"type": self.__class__.__name__}

    @classmethod
    def from_dict(cls, data: dict) -> BaseDispersion:
        """Creates a dispersion model from a dictionary.

        Args:
            data (dict): The dictionary representation of the model.

        Returns:
            BaseDispersion: The model created from the dictionary.

        Raises:
            MalformedInputError: If the type is unknown or a key is missing.
        """
        try:
            model_type = data["type"]
            model_cls = cls._registry[model_type]
        except (KeyError, TypeError) as exc:
            raise MalformedInputError(f"Unknown dispersion model: {data!r}") from exc
        try:
            return model_cls._from_dict(data)
        except KeyError as exc:
            raise MalformedInputError(
                f"Missing key {exc} for dispersion model {model_type}"
            ) from exc

    @classmethod
    def _from_dict(cls, data: dict) -> BaseDispersion:
        raise NotImplementedError  # pragma: no cover


class ConstantDispersion(BaseDispersion):
    """Non-dispersive medium with a fixed index."""

    def __init__(self, n: float):
        self.n = require_finite("n", n)
        if self.n <= 0:
            raise InvalidParameterError("n", n, "must be > 0")

    def _n(self, wavelength_nm):
        return be.full_like(wavelength_nm, self.n, dtype=be.float_dtype())

    def to_dict(self):
        return {**super().to_dict(), "n": self.n}

    @classmethod
    def _from_dict(cls, data):
        return cls(data["n"])

    def __repr__(self):
        return f"ConstantDispersion(n={self.n})"


class CauchyDispersion(BaseDispersion):
    """Cauchy model n(λ) = A + B/λ² + C/λ⁴ with λ in nm.

    Args:
        a: Constant term.
        b: Second-order coefficient (nm²).
        c: Fourth-order coefficient (nm⁴).
        name: Optional label.
    """

    def __init__(self, a: float, b: float, c: float = 0.0, name: str | None = None):
        self.a = require_finite("a", a)
        self.b = require_finite("b", b)
        self.c = require_finite("c", c)
        self.name = name
        if self.a <= 0:
            raise InvalidParameterError("a", a, "must be > 0")

    def _n(self, wavelength_nm):
        lam2 = wavelength_nm**2
        return self.a + self.b / lam2 + self.c / lam2**2

    @classmethod
    def from_ior(cls, ior: float) -> CauchyDispersion:
        """Moderate dispersion scaled to the base index: B = (ior - 1) * 6000."""
        return cls(ior, (ior - 1.0) * 6000.0)

    @classmethod
    def crown_glass(cls):
        return cls(1.5047, 4200.0, name="crown glass")

    @classmethod
    def flint_glass(cls):
        return cls(1.7847, 14800.0, name="flint glass")

    @classmethod
    def fused_silica(cls):
        return cls(1.4585, 3540.0, name="fused silica")

    @classmethod
    def water(cls):
        return cls(1.333, 3100.0, name="water")

    @classmethod
    def diamond(cls):
        return cls(2.417, 27000.0, name="diamond")

    @classmethod
    def polycarbonate(cls):
        return cls(1.585, 12000.0, name="polycarbonate")

    @classmethod
    def pmma(cls):
        return cls(1.492, 5000.0, name="PMMA")

    def to_dict(self):
        return {**super().to_dict(), "a": self.a, "b": self.b, "c": self.c, "name": self.name}

    @classmethod
    def _from_dict(cls, data):
        return cls(data["a"], data["b"], data.get("c", 0.0), data.get("name"))

    def __repr__(self):
        return f"CauchyDispersion(a={self.a}, b={self.b}, c={self.c})"


class SellmeierDispersion(BaseDispersion):
    """Sellmeier model n² - 1 = Σ Bᵢ λ² / (λ² - Cᵢ), λ in µm.

    Args:
        b: Oscillator strengths.
        c: Resonance wavelengths squared (µm²).
        valid_range_nm: Window the coefficients were fitted on. Evaluation
            outside it is clamped, which keeps λ away from the poles.
        name: Optional label.
    """

    def __init__(
        self,
        b,
        c,
        valid_range_nm: tuple[float, float] = GLOBAL_RANGE_NM,
        name: str | None = None,
    ):
        if len(b) != len(c) or len(b) == 0:
            raise InvalidParameterError(
                "b", b, "b and c must be non-empty and of equal length"
            )
        self.b = tuple(require_finite("b", v) for v in b)
        self.c = tuple(require_finite("c", v) for v in c)
        lo, hi = valid_range_nm
        if not lo < hi:
            raise InvalidParameterError("valid_range_nm", valid_range_nm, "must be increasing")
        self.valid_range_nm = (float(lo), float(hi))
        self.name = name

    def _n(self, wavelength_nm):
        lam2 = (wavelength_nm / 1000.0) ** 2
        n2 = 1.0 + sum(b * lam2 / (lam2 - c) for b, c in zip(self.b, self.c))
        return be.sqrt(be.maximum(n2, 1.0))

    @classmethod
    def bk7(cls):
        return cls(
            (1.03961212, 0.231792344, 1.01046945),
            (0.00600069867, 0.0200179144, 103.560653),
            (300.0, 2500.0),
            name="N-BK7",
        )

    @classmethod
    def fused_silica(cls):
        return cls(
            (0.6961663, 0.4079426, 0.8974794),
            (0.0684043**2, 0.1162414**2, 9.896161**2),
            (210.0, 2500.0),
            name="fused silica",
        )

    @classmethod
    def sf11(cls):
        # the UV resonance sits near 250 nm
        return cls(
            (1.73759695, 0.313747346, 1.89878101),
            (0.013188707, 0.0623068142, 155.23629),
            (370.0, 2500.0),
            name="SF11",
        )

    @classmethod
    def sapphire(cls):
        return cls(
            (1.4313493, 0.65054713, 5.3414021),
            (0.0052799261, 0.0142382647, 325.01783),
            (200.0, 2500.0),
            name="sapphire",
        )

    @classmethod
    def diamond(cls):
        return cls(
            (0.3306, 4.3356),
            (0.175**2, 0.106**2),
            (230.0, 2500.0),
            name="diamond",
        )

    def to_dict(self):
        return {
            **super().to_dict(),
            "b": list(self.b),
            "c": list(self.c),
            "valid_range_nm": list(self.valid_range_nm),
            "name": self.name,
        }

    @classmethod
    def _from_dict(cls, data):
        return cls(
            data["b"],
            data["c"],
            tuple(data.get("valid_range_nm", GLOBAL_RANGE_NM)),
            data.get("name"),
        )

    def __repr__(self):
        return f"SellmeierDispersion(name={self.name!r})"


def f0_from_ior(n: float, n_incident: float = 1.0) -> float:
    """Normal-incidence reflectance between two real indices."""
    return ((n - n_incident) / (n + n_incident)) ** 2
