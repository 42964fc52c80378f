from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import optilux.backend as be
from optilux.errors import require_non_negative, require_positive

if TYPE_CHECKING:
    from optilux.materials import BaseDispersion


@dataclass(frozen=True)
class FilmLayer:
    """One homogeneous layer of a multilayer film.

    Parameters
    ----------
    n : float
        Real refractive index (used when ``dispersion`` is None).
    thickness_nm : float
        Physical thickness in nanometers, > 0.
    k : float
        Extinction coefficient, >= 0.
    name : str | None
        Optional label for display.
    dispersion : BaseDispersion | None
        Optional wavelength-dependent real index replacing ``n``.

    Examples
    --------
    >>> from optilux.thin_film import FilmLayer
    >>> mgf2 = FilmLayer(1.38, thickness_nm=99.6, name="MgF2")
    """

    n: float
    thickness_nm: float
    k: float = 0.0
    name: str | None = None
    dispersion: BaseDispersion | None = None

    def __post_init__(self):
        object.__setattr__(self, "n", require_positive("n", self.n))
        object.__setattr__(
            self, "thickness_nm", require_positive("thickness_nm", self.thickness_nm)
        )
        object.__setattr__(self, "k", require_non_negative("k", self.k))

    def n_complex(self, wavelength_nm):
        """Complex index n~ = n + i k, broadcast to the wavelength array."""
        wl = be.as_float_array(wavelength_nm)
        if self.dispersion is not None:
            n = be.as_float_array(self.dispersion.n_at(wl))
        else:
            n = be.full_like(wl, self.n)
        return n.astype(be.complex_dtype()) + 1j * self.k

    def phase_thickness(self, wavelength_nm, n_cos_l):
        """Phase δ = 2π/λ · n·cos(θ_l) · d.

        ``n_cos_l`` is the product of the layer's complex index and the cosine
        of the propagation angle inside it. Inputs must be broadcastable over
        wavelength and AOI grids.
        """
        k0 = 2 * be.pi / wavelength_nm
        return k0 * n_cos_l * self.thickness_nm

    def optical_thickness(self, wavelength_nm: float = 550.0) -> float:
        """Optical thickness n·d in nm at the given wavelength."""
        return float(self.n_complex(wavelength_nm).real) * self.thickness_nm

    def to_dict(self) -> dict:
        data = {
            "n": self.n,
            "thickness_nm": self.thickness_nm,
            "k": self.k,
            "name": self.name,
        }
        if self.dispersion is not None:
            data["dispersion"] = self.dispersion.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> FilmLayer:
        from optilux.materials import BaseDispersion

        dispersion = data.get("dispersion")
        return cls(
            data["n"],
            data["thickness_nm"],
            data.get("k", 0.0),
            data.get("name"),
            BaseDispersion.from_dict(dispersion) if dispersion else None,
        )
