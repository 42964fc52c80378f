from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TypeAlias

import optilux.backend as be
from optilux.errors import require_non_negative, require_positive
from optilux.spectral import WAVELENGTHS_NM, SpectralSignal

from .core import COS_EPSILON, airy_reflectance
from .layer import FilmLayer

Array: TypeAlias = Any  # be.ndarray


@dataclass(frozen=True)
class ThinFilm:
    """Single dielectric film evaluated with the Airy summation formula.

    Parameters
    ----------
    n_film : float
        Film refractive index, > 0.
    thickness_nm : float
        Physical thickness in nm, >= 0. Zero thickness degenerates to the bare
        incident/substrate interface.

    Examples
    --------
    >>> film = ThinFilm.soap_bubble_medium()
    >>> R = film.reflectance(550.0, n_substrate=1.0, cos_theta=1.0)
    """

    n_film: float
    thickness_nm: float

    def __post_init__(self):
        object.__setattr__(self, "n_film", require_positive("n_film", self.n_film))
        object.__setattr__(
            self, "thickness_nm", require_non_negative("thickness_nm", self.thickness_nm)
        )

    @property
    def layers(self) -> tuple[FilmLayer, ...]:
        return (self.as_layer(),) if self.thickness_nm > 0 else ()

    def as_layer(self) -> FilmLayer:
        return FilmLayer(self.n_film, self.thickness_nm)

    def cos_theta_film(self, cos_theta: float | Array, n_incident: float = 1.0):
        """Cosine of the refraction angle inside the film (Snell)."""
        cos_i = be.clip(be.as_float_array(cos_theta), COS_EPSILON, 1.0)
        sin2_f = (n_incident / self.n_film) ** 2 * (1.0 - cos_i**2)
        return be.sqrt(be.maximum(1.0 - sin2_f, 0.0))

    def optical_path_difference(self, cos_theta: float | Array = 1.0, n_incident: float = 1.0):
        """OPD = 2·n·d·cos(θ_film) in nm."""
        opd = 2.0 * self.n_film * self.thickness_nm * self.cos_theta_film(cos_theta, n_incident)
        return float(opd) if be.ndim(opd) == 0 else opd

    def phase_difference(
        self, wavelength_nm: float | Array, cos_theta: float | Array = 1.0, n_incident: float = 1.0
    ):
        """φ = 2π·OPD/λ in radians."""
        opd = be.asarray(self.optical_path_difference(cos_theta, n_incident))
        phi = 2 * be.pi * opd / be.as_float_array(wavelength_nm)
        return float(phi) if be.ndim(phi) == 0 else phi

    def reflectance(
        self,
        wavelength_nm: float | Array,
        n_substrate: float = 1.52,
        cos_theta: float | Array = 1.0,
        n_incident: float = 1.0,
    ):
        """Unpolarized reflectance in [0, 1].

        Args:
            wavelength_nm: Wavelength(s) in nm.
            n_substrate: Index of the medium behind the film.
            cos_theta: Cosine of the angle of incidence. Values below 1e-6
                (grazing) are clamped.
            n_incident: Index of the incident medium.
        """
        R = airy_reflectance(
            n_incident, self.n_film, n_substrate, self.thickness_nm, wavelength_nm, cos_theta
        )
        return float(R) if be.ndim(R) == 0 else R

    def transmittance(self, wavelength_nm, n_substrate=1.52, cos_theta=1.0, n_incident=1.0):
        """1 - R; the film is lossless."""
        R = be.asarray(self.reflectance(wavelength_nm, n_substrate, cos_theta, n_incident))
        T = 1.0 - R
        return float(T) if be.ndim(T) == 0 else T

    def rta(self, wavelength_nm, n_substrate=1.52, cos_theta=1.0, n_incident=1.0):
        R = be.asarray(self.reflectance(wavelength_nm, n_substrate, cos_theta, n_incident))
        return R, 1.0 - R, be.zeros_like(R)

    def reflectance_curve(self, n_substrate: float = 1.52, cos_theta: float = 1.0) -> Array:
        return be.asarray(self.reflectance(WAVELENGTHS_NM, n_substrate, cos_theta))

    def reflectance_spectrum(
        self, n_substrate: float = 1.52, cos_theta: float = 1.0
    ) -> SpectralSignal:
        """Reflectance at all 33 grid wavelengths."""
        return SpectralSignal(self.reflectance_curve(n_substrate, cos_theta))

    def reflectance_rgb(self, n_substrate: float = 1.52, cos_theta: float = 1.0) -> Array:
        """Linear sRGB of the reflected D65 light, integrated with the CIE 1931 CMFs."""
        return self.reflectance_spectrum(n_substrate, cos_theta).to_linear_rgb()

    def dominant_wavelength(self, n_substrate: float = 1.52, cos_theta: float = 1.0) -> float:
        """Grid wavelength of peak reflectance."""
        return self.reflectance_spectrum(n_substrate, cos_theta).peak_wavelength()

    def to_dict(self) -> dict:
        return {"n_film": self.n_film, "thickness_nm": self.thickness_nm}

    @classmethod
    def from_dict(cls, data: dict) -> ThinFilm:
        return cls(data["n_film"], data["thickness_nm"])

    # ----- presets -----
    @classmethod
    def soap_bubble_thin(cls):
        return cls(1.33, 100.0)

    @classmethod
    def soap_bubble_medium(cls):
        return cls(1.33, 200.0)

    @classmethod
    def soap_bubble_thick(cls):
        return cls(1.33, 400.0)

    @classmethod
    def oil_thin(cls):
        return cls(1.5, 150.0)

    @classmethod
    def oil_medium(cls):
        return cls(1.5, 300.0)

    @classmethod
    def oil_thick(cls):
        return cls(1.5, 500.0)

    @classmethod
    def ar_coating(cls):
        return cls(1.38, 100.0)

    @classmethod
    def oxide_thin(cls):
        return cls(1.46, 50.0)

    @classmethod
    def oxide_medium(cls):
        return cls(1.46, 150.0)

    @classmethod
    def oxide_thick(cls):
        return cls(1.46, 300.0)

    @classmethod
    def beetle_shell(cls):
        return cls(1.56, 250.0)

    @classmethod
    def nacre(cls):
        return cls(1.68, 350.0)


def ar_coating_thickness(design_wavelength_nm: float, n_coating: float) -> float:
    """Quarter-wave thickness λ/(4n) of a single-layer antireflection coating."""
    return design_wavelength_nm / (4.0 * n_coating)


def ideal_ar_index(n_substrate: float, n_incident: float = 1.0) -> float:
    """Coating index sqrt(n_i·n_s) for zero reflectance at the design wavelength."""
    return (n_incident * n_substrate) ** 0.5
