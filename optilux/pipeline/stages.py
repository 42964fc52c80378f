"""Spectral Stages

A stage models one optical phenomenon. Given an evaluation context it
derives how incident energy splits into reflected, transmitted and absorbed
parts at every grid wavelength, and forwards either the reflected or the
transmitted part of an incoming spectrum.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, TypeAlias

import optilux.backend as be
from optilux.errors import (
    InvalidParameterError,
    MalformedInputError,
    require_finite,
    require_non_negative,
    require_positive,
)
from optilux.materials import (
    BaseDispersion,
    CauchyDispersion,
    DrudeMetal,
    SellmeierDispersion,
    SpectralComplexIOR,
    fresnel_dielectric_unpolarized,
    metal_by_name,
)
from optilux.scattering import MieParams, mie_asymmetry_g, mie_efficiencies
from optilux.spectral import WAVELENGTHS_NM, SpectralSignal
from optilux.thin_film import ThinFilm, TransferMatrixFilm

from .context import EvaluationContext

Array: TypeAlias = Any  # be.ndarray

MODES = ("reflect", "transmit")


class SpectralStage(ABC):
    """Base class for pipeline stages.

    Subclasses implement ``interaction`` and the ``_params`` / ``_from_dict``
    pair used for serialization; they are registered by class name.

    Args:
        mode (str): 'reflect' forwards the reflected spectrum, 'transmit'
            the transmitted one.
    """

    _registry = {}
    display_name = "Stage"

    def __init_subclass__(cls, **kwargs):
        """Automatically register subclasses."""
        super().__init_subclass__(**kwargs)
        SpectralStage._registry[cls.__name__] = cls

    def __init__(self, mode: str = "reflect"):
        if mode not in MODES:
            raise ValueError("mode must be 'reflect' or 'transmit'")
        self.mode = mode

    @property
    def name(self) -> str:
        return self.display_name

    @abstractmethod
    def interaction(self, context: EvaluationContext) -> tuple[Array, Array, Array]:
        """(R, T, A) arrays over the 33-sample grid."""

    def evaluate(self, signal: SpectralSignal, context: EvaluationContext) -> SpectralSignal:
        """Return a new signal carrying the forwarded part of ``signal``."""
        R, T, _ = self.interaction(context)
        return signal.multiply(R if self.mode == "reflect" else T)

    @abstractmethod
    def _params(self) -> dict:
        pass  # pragma: no cover

    def to_dict(self) -> dict:
        """Converts the stage to a dictionary.

        Returns:
            dict: The dictionary representation of the stage.
        """
        return {"type": self.__class__.__name__, "mode": self.mode, **self._params()}

    @classmethod
    def from_dict(cls, data: dict) -> SpectralStage:
        """Creates a stage from a dictionary.

        Args:
            data (dict): The dictionary representation of the stage.

        Returns:
            SpectralStage: The stage created from the dictionary.

        Raises:
            MalformedInputError: If the stage type is unknown or a key is
                missing.
        """
        try:
            stage_type = data["type"]
            stage_cls = cls._registry[stage_type]
        except (KeyError, TypeError) as exc:
            raise MalformedInputError(f"Unknown stage type: {data!r}") from exc
        try:
            return stage_cls._from_dict(data)
        except (KeyError, TypeError) as exc:
            raise MalformedInputError(f"Malformed {stage_type} stage: {exc}") from exc

    @classmethod
    def _from_dict(cls, data: dict) -> SpectralStage:
        raise NotImplementedError  # pragma: no cover

    def __eq__(self, other):
        if not isinstance(other, SpectralStage):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    __hash__ = None

    def __repr__(self):
        return f"{self.__class__.__name__}(mode={self.mode!r})"


def _lossless(R):
    R = be.clip(be.as_float_array(R), 0.0, 1.0)
    return R, 1.0 - R, be.zeros_like(R)


def _opaque(R):
    R = be.clip(be.as_float_array(R), 0.0, 1.0)
    return R, be.zeros_like(R), 1.0 - R


class ThinFilmStage(SpectralStage):
    """Single-film interference (Airy summation) on a substrate."""

    display_name = "Thin Film"

    def __init__(self, film: ThinFilm, n_substrate: float = 1.52, mode: str = "reflect"):
        super().__init__(mode)
        self.film = film
        self.n_substrate = require_positive("n_substrate", n_substrate)

    def interaction(self, context):
        return _lossless(self.film.reflectance(WAVELENGTHS_NM, self.n_substrate, context.cos_theta))

    def _params(self):
        return {"film": self.film.to_dict(), "n_substrate": self.n_substrate}

    @classmethod
    def _from_dict(cls, data):
        return cls(ThinFilm.from_dict(data["film"]), data.get("n_substrate", 1.52), data.get("mode", "reflect"))

    @classmethod
    def soap_bubble(cls):
        """Free-standing soap film in air."""
        return cls(ThinFilm.soap_bubble_medium(), 1.0)

    @classmethod
    def oil_slick(cls):
        """Oil film on water."""
        return cls(ThinFilm.oil_medium(), 1.33)

    @classmethod
    def ar_coating(cls):
        return cls(ThinFilm.ar_coating(), 1.52)


class MultilayerStage(SpectralStage):
    """Multilayer stack evaluated with the transfer matrix method.

    The only stage that may absorb as well as reflect and transmit, when its
    layers carry an extinction coefficient.
    """

    display_name = "Multilayer"

    def __init__(self, film: TransferMatrixFilm, polarization: str = "u", mode: str = "reflect"):
        super().__init__(mode)
        if polarization not in ("s", "p", "u"):
            raise ValueError("polarization must be 's', 'p' or 'u'")
        self.film = film
        self.polarization = polarization

    def interaction(self, context):
        return self.film.rta_curves(context.angle_deg, self.polarization)

    def _params(self):
        return {"film": self.film.to_dict(), "polarization": self.polarization}

    @classmethod
    def _from_dict(cls, data):
        return cls(
            TransferMatrixFilm.from_dict(data["film"]),
            data.get("polarization", "u"),
            data.get("mode", "reflect"),
        )

    @classmethod
    def bragg_mirror(cls, n_high=2.35, n_low=1.46, design_wavelength_nm=550.0, pairs=5):
        return cls(TransferMatrixFilm.bragg_mirror(n_high, n_low, design_wavelength_nm, pairs))

    @classmethod
    def morpho_butterfly(cls):
        return cls(TransferMatrixFilm.morpho_butterfly())

    @classmethod
    def ar_broadband(cls):
        return cls(TransferMatrixFilm.ar_broadband(), mode="transmit")


class DispersionStage(SpectralStage):
    """Fresnel reflection at the surface of a dispersive dielectric.

    The index varies over the grid, so the reflected spectrum picks up the
    colour of the material's dispersion.
    """

    display_name = "Dispersion"

    def __init__(self, model: BaseDispersion, n_incident: float = 1.0, mode: str = "reflect"):
        super().__init__(mode)
        self.model = model
        self.n_incident = require_positive("n_incident", n_incident)

    def interaction(self, context):
        n = self.model.n_spectrum()
        return _lossless(fresnel_dielectric_unpolarized(self.n_incident, n, context.cos_theta))

    def _params(self):
        return {"model": self.model.to_dict(), "n_incident": self.n_incident}

    @classmethod
    def _from_dict(cls, data):
        return cls(
            BaseDispersion.from_dict(data["model"]),
            data.get("n_incident", 1.0),
            data.get("mode", "reflect"),
        )

    @classmethod
    def crown_glass(cls):
        return cls(CauchyDispersion.crown_glass())

    @classmethod
    def flint_glass(cls):
        return cls(CauchyDispersion.flint_glass())

    @classmethod
    def bk7(cls):
        return cls(SellmeierDispersion.bk7())

    @classmethod
    def diamond(cls):
        return cls(SellmeierDispersion.diamond())

    def __repr__(self):
        return f"DispersionStage({self.model!r}, mode={self.mode!r})"


class MieScatteringStage(SpectralStage):
    """Slab of non-absorbing particles, two-stream approximation.

    The slant optical depth is τ = τ₀·(Q_ext/2)/cos θ, normalized so that
    ``optical_depth`` is the depth in the geometric limit at normal
    incidence. The unscattered fraction e^-τ passes straight through; the
    scattered fraction is split between the back and forward hemispheres
    as (1 - g)/2 and (1 + g)/2.

    Args:
        particle (MieParams): Scattering particle.
        optical_depth (float): Geometric-limit optical depth, >= 0.
        mode (str): Defaults to 'transmit'.
    """

    display_name = "Mie Scattering"

    def __init__(self, particle: MieParams, optical_depth: float = 1.0, mode: str = "transmit"):
        super().__init__(mode)
        self.particle = particle
        self.optical_depth = require_non_negative("optical_depth", optical_depth)

    def interaction(self, context):
        x = be.asarray(self.particle.size_parameter(WAVELENGTHS_NM))
        m = self.particle.relative_ior()
        q_ext, _ = mie_efficiencies(x, m)
        g = be.asarray(mie_asymmetry_g(x, m))
        tau = self.optical_depth * be.asarray(q_ext) / 2.0 / context.cos_theta
        direct = be.exp(-tau)
        scattered = 1.0 - direct
        R = scattered * (1.0 - g) / 2.0
        T = direct + scattered * (1.0 + g) / 2.0
        return R, T, be.zeros_like(R)

    def _params(self):
        return {"particle": self.particle.to_dict(), "optical_depth": self.optical_depth}

    @classmethod
    def _from_dict(cls, data):
        return cls(
            MieParams.from_dict(data["particle"]),
            data.get("optical_depth", 1.0),
            data.get("mode", "transmit"),
        )

    @classmethod
    def fog(cls):
        """Water droplets in air."""
        return cls(MieParams(5.0, 1.33, 1.0))

    @classmethod
    def milk(cls):
        """Fat globules in water."""
        return cls(MieParams(0.5, 1.46, 1.33), optical_depth=3.0)

    @classmethod
    def smoke(cls):
        return cls(MieParams.smoke(), optical_depth=0.5)


class ThermoOpticStage(SpectralStage):
    """Coating whose index and thickness follow temperature and stress.

    n(T, σ) = n₀ + dn/dT·(T - T_ref) - C·σ_mean and
    d(T) = d₀·(1 + α·(T - T_ref)), where σ_mean is the mean normal stress
    of the context and C the stress-optic coefficient (Pa⁻¹). The film is
    then evaluated as a single Airy layer.
    """

    display_name = "Thermo-Optic"

    def __init__(
        self,
        n_base: float,
        dn_dt: float,
        thickness_nm: float,
        alpha_thermal: float,
        n_substrate: float = 1.52,
        t_ref: float = 293.15,
        stress_optic_coefficient: float = 0.0,
        mode: str = "reflect",
    ):
        super().__init__(mode)
        self.n_base = require_positive("n_base", n_base)
        self.dn_dt = require_finite("dn_dt", dn_dt)
        self.thickness_nm = require_non_negative("thickness_nm", thickness_nm)
        self.alpha_thermal = require_finite("alpha_thermal", alpha_thermal)
        self.n_substrate = require_positive("n_substrate", n_substrate)
        self.t_ref = require_positive("t_ref", t_ref)
        self.stress_optic_coefficient = require_finite(
            "stress_optic_coefficient", stress_optic_coefficient
        )

    def n_effective(self, temperature_k: float, stress_pa=(0.0,) * 6) -> float:
        mean_stress = sum(stress_pa[:3]) / 3.0
        n = (
            self.n_base
            + self.dn_dt * (temperature_k - self.t_ref)
            - self.stress_optic_coefficient * mean_stress
        )
        return max(n, 1e-3)

    def thickness_effective(self, temperature_k: float) -> float:
        return max(self.thickness_nm * (1.0 + self.alpha_thermal * (temperature_k - self.t_ref)), 0.0)

    def interaction(self, context):
        film = ThinFilm(
            self.n_effective(context.temperature_k, context.stress_pa),
            self.thickness_effective(context.temperature_k),
        )
        return _lossless(film.reflectance(WAVELENGTHS_NM, self.n_substrate, context.cos_theta))

    def _params(self):
        return {
            "n_base": self.n_base,
            "dn_dt": self.dn_dt,
            "thickness_nm": self.thickness_nm,
            "alpha_thermal": self.alpha_thermal,
            "n_substrate": self.n_substrate,
            "t_ref": self.t_ref,
            "stress_optic_coefficient": self.stress_optic_coefficient,
        }

    @classmethod
    def _from_dict(cls, data):
        params = {key: data[key] for key in ("n_base", "dn_dt", "thickness_nm", "alpha_thermal")}
        for key in ("n_substrate", "t_ref", "stress_optic_coefficient", "mode"):
            if key in data:
                params[key] = data[key]
        return cls(**params)

    @classmethod
    def glass_coating(cls, thickness_nm: float = 200.0):
        """BK7-like coating: dn/dT = 1e-5 K⁻¹, α = 7e-6 K⁻¹."""
        return cls(1.52, 1.0e-5, thickness_nm, 7.0e-6, stress_optic_coefficient=2.7e-12)


class MetalReflectanceStage(SpectralStage):
    """Exact conductor Fresnel reflection; metals transmit nothing."""

    display_name = "Metal Reflectance"

    def __init__(self, ior: SpectralComplexIOR, n_incident: float = 1.0, mode: str = "reflect"):
        super().__init__(mode)
        self.ior = ior
        self.n_incident = require_positive("n_incident", n_incident)

    def interaction(self, context):
        return _opaque(self.ior.reflectance_curve(context.cos_theta, self.n_incident))

    def _params(self):
        return {"ior": self.ior.to_dict(), "n_incident": self.n_incident}

    @classmethod
    def _from_dict(cls, data):
        return cls(
            SpectralComplexIOR.from_dict(data["ior"]),
            data.get("n_incident", 1.0),
            data.get("mode", "reflect"),
        )

    @classmethod
    def from_name(cls, name: str):
        """Stage for a named metal preset (``'gold'``, ``'au'``, ...)."""
        return cls(metal_by_name(name))

    @classmethod
    def gold(cls):
        return cls.from_name("gold")

    @classmethod
    def silver(cls):
        return cls.from_name("silver")

    @classmethod
    def copper(cls):
        return cls.from_name("copper")

    @classmethod
    def aluminum(cls):
        return cls.from_name("aluminum")


class DrudeMetalStage(SpectralStage):
    """Free-electron metal evaluated at the context temperature."""

    display_name = "Drude Metal"

    def __init__(self, metal: DrudeMetal, n_incident: float = 1.0, mode: str = "reflect"):
        super().__init__(mode)
        self.metal = metal
        self.n_incident = require_positive("n_incident", n_incident)

    def interaction(self, context):
        R = self.metal.reflectance(
            WAVELENGTHS_NM, context.temperature_k, context.cos_theta, self.n_incident
        )
        return _opaque(R)

    def _params(self):
        return {"metal": self.metal.to_dict(), "n_incident": self.n_incident}

    @classmethod
    def _from_dict(cls, data):
        return cls(
            DrudeMetal.from_dict(data["metal"]),
            data.get("n_incident", 1.0),
            data.get("mode", "reflect"),
        )

    @classmethod
    def gold(cls):
        return cls(DrudeMetal.gold())

    @classmethod
    def silver(cls):
        return cls(DrudeMetal.silver())

    @classmethod
    def copper(cls):
        return cls(DrudeMetal.copper())

    @classmethod
    def aluminum(cls):
        return cls(DrudeMetal.aluminum())


def check_stage(stage) -> SpectralStage:
    if not isinstance(stage, SpectralStage):
        raise InvalidParameterError("stage", stage, "must be a SpectralStage")
    return stage
