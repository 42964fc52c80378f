from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Literal, TypeAlias

import matplotlib.pyplot as plt

import optilux.backend as be
from optilux.errors import InvalidParameterError, require_positive
from optilux.spectral import RGB_WAVELENGTHS_NM, WAVELENGTHS_NM, SpectralSignal

from .core import _tmm_coh
from .layer import FilmLayer

logger = logging.getLogger(__name__)

Pol = Literal["s", "p", "u"]
PlotType = Literal["R", "T", "A"]
Array: TypeAlias = Any  # be.ndarray

MAX_AOI_DEG = 89.9


def quarter_wave(n: float, design_wavelength_nm: float) -> float:
    """Physical thickness (nm) of a quarter-wave layer at normal incidence."""
    return design_wavelength_nm / (4.0 * n)


@dataclass(frozen=True)
class TransferMatrixFilm:
    """Immutable multilayer film evaluated with the transfer matrix method.

    Units and conventions:
    - Wavelengths in nm, angles of incidence in degrees.
    - Layer 0 faces the incident medium; the last layer touches the substrate.
    - ``n_substrate`` may be complex (absorbing substrate); transmitted power
      then denotes power entering the substrate.

    Parameters
    ----------
    n_incident : float
        Incident medium index, default air.
    n_substrate : float | complex
        Substrate index, default crown glass 1.52.
    layers : tuple[FilmLayer, ...]
        Ordered layers between incident medium and substrate.

    Examples
    --------
    >>> from optilux.thin_film import TransferMatrixFilm
    >>> film = TransferMatrixFilm().add_layer(1.38, 99.6, name="MgF2")
    >>> R = film.reflectance(550.0, 0.0)
    """

    n_incident: float = 1.0
    n_substrate: float | complex = 1.52
    layers: tuple[FilmLayer, ...] = field(default_factory=tuple)

    def __post_init__(self):
        require_positive("n_incident", self.n_incident)
        if isinstance(self.n_substrate, complex):
            require_positive("n_substrate", self.n_substrate.real)
        else:
            require_positive("n_substrate", self.n_substrate)
        object.__setattr__(self, "layers", tuple(self.layers))

    # layer bookkeeping
    def add_layer(
        self,
        n: float,
        thickness_nm: float,
        k: float = 0.0,
        name: str | None = None,
    ) -> TransferMatrixFilm:
        """Return a new film with a layer appended on the substrate side.

        Args:
            n: Real refractive index.
            thickness_nm: Physical layer thickness (nm).
            k: Extinction coefficient.
            name: Optional label.
        """
        return self.add_film_layer(FilmLayer(n, thickness_nm, k, name))

    def add_film_layer(self, layer: FilmLayer) -> TransferMatrixFilm:
        return replace(self, layers=self.layers + (layer,))

    def add_layer_qwot(
        self,
        n: float,
        reference_wavelength_nm: float,
        qwot: float = 1.0,
        name: str | None = None,
    ) -> TransferMatrixFilm:
        """Append a layer of ``qwot`` quarter-wave optical thicknesses."""
        return self.add_layer(n, qwot * quarter_wave(n, reference_wavelength_nm), name=name)

    # ----- coefficients -----
    def coefficients(
        self,
        wavelength_nm: float | Array,
        aoi_deg: float | Array = 0.0,
        polarization: Pol = "u",
    ) -> dict[str, Array]:
        """Evaluate amplitude and power coefficients on a wavelength by angle grid.

        Args:
            wavelength_nm: Wavelength(s) in nm (scalar or array).
            aoi_deg: Angle(s) of incidence in degrees, clamped to [0, 89.9].
            polarization: 's', 'p' or 'u' (unpolarized averages powers of s and p).

        Returns:
            Mapping of 'r', 't', 'R', 'T' and 'A' to arrays shaped
            (n_wavelengths, n_angles).

        Note:
        - For unpolarized 'u', r, t are s-polarization amplitudes; R, T, A are
        averaged powers.
        """
        wl = be.atleast_1d(be.as_float_array(wavelength_nm))
        aoi = be.atleast_1d(be.as_float_array(aoi_deg))
        if be.any((aoi < 0.0) | (aoi > MAX_AOI_DEG)):
            logger.debug("Angles of incidence clamped to [0, %g] deg", MAX_AOI_DEG)
        th = be.deg2rad(be.clip(aoi, 0.0, MAX_AOI_DEG))
        if be.any(wl <= 0):
            raise InvalidParameterError("wavelength_nm", wavelength_nm, "must be > 0")
        if polarization in ("s", "p"):
            r, t, R, T, A = _tmm_coh(self, wl[:, None], th[None, :], polarization)
            return {"r": r, "t": t, "R": R, "T": T, "A": A}
        elif polarization == "u":
            rs, ts, Rs, Ts, As = _tmm_coh(self, wl[:, None], th[None, :], "s")
            _, _, Rp, Tp, Ap = _tmm_coh(self, wl[:, None], th[None, :], "p")
            return {
                "r": rs,
                "t": ts,
                "R": 0.5 * (Rs + Rp),
                "T": 0.5 * (Ts + Tp),
                "A": 0.5 * (As + Ap),
            }
        else:
            raise ValueError("polarization must be 's', 'p' or 'u'")

    @staticmethod
    def _squeeze(value):
        value = be.squeeze(value)
        return float(value) if be.ndim(value) == 0 else value

    def reflectance(self, wavelength_nm, aoi_deg=0.0, polarization: Pol = "u"):
        """Power reflectance; a float for scalar inputs, else an (Nλ, Nθ) squeeze."""
        return self._squeeze(self.coefficients(wavelength_nm, aoi_deg, polarization)["R"])

    def transmittance(self, wavelength_nm, aoi_deg=0.0, polarization: Pol = "u"):
        return self._squeeze(self.coefficients(wavelength_nm, aoi_deg, polarization)["T"])

    def absorptance(self, wavelength_nm, aoi_deg=0.0, polarization: Pol = "u"):
        return self._squeeze(self.coefficients(wavelength_nm, aoi_deg, polarization)["A"])

    def rta(
        self, wavelength_nm, aoi_deg=0.0, polarization: Pol = "u"
    ) -> tuple[Array, Array, Array]:
        """Power (R, T, A) at the given wavelengths (nm) and angles (deg).

        Scalar queries give floats, like :meth:`reflectance`; array queries
        give the squeezed (Nλ, Nθ) grids.
        """
        data = self.coefficients(wavelength_nm, aoi_deg, polarization)
        return tuple(self._squeeze(data[key]) for key in ("R", "T", "A"))

    def rta_curves(self, aoi_deg: float = 0.0, polarization: Pol = "u"):
        """(R, T, A) over the 33-sample spectral grid at one angle."""
        data = self.coefficients(WAVELENGTHS_NM, aoi_deg, polarization)
        return data["R"][:, 0], data["T"][:, 0], data["A"][:, 0]

    def reflectance_spectrum(
        self, aoi_deg: float = 0.0, polarization: Pol = "u"
    ) -> SpectralSignal:
        return SpectralSignal(self.rta_curves(aoi_deg, polarization)[0])

    def reflectance_rgb(self, aoi_deg: float = 0.0, polarization: Pol = "u") -> Array:
        """Reflectance sampled at the 650 / 550 / 450 nm channel wavelengths."""
        R = self.coefficients(be.asarray(RGB_WAVELENGTHS_NM), aoi_deg, polarization)["R"]
        return be.clip(R[:, 0], 0.0, 1.0)

    def perceived_rgb(self, aoi_deg: float = 0.0, polarization: Pol = "u") -> Array:
        """Gamma-encoded sRGB of the reflected D65 light (CIE 1931 integration)."""
        return self.reflectance_spectrum(aoi_deg, polarization).to_srgb()

    # ----- analysis -----
    def find_peak_wavelength(self, aoi_deg: float = 0.0) -> float:
        """Wavelength of maximum unpolarized reflectance, 400-700 nm in 5 nm steps."""
        wl = be.arange(400.0, 700.0 + 1e-9, 5.0)
        R = self.coefficients(wl, aoi_deg, "u")["R"][:, 0]
        return float(wl[be.argmax(R)])

    def color_shift(self, angles_deg=(0, 10, 20, 30, 40, 50, 60)) -> list[tuple[float, Array]]:
        """Channel reflectance at each viewing angle."""
        return [(float(a), self.reflectance_rgb(a)) for a in angles_deg]

    @property
    def total_thickness_nm(self) -> float:
        return sum(layer.thickness_nm for layer in self.layers)

    def to_dict(self) -> dict:
        n_sub = self.n_substrate
        if isinstance(n_sub, complex):
            n_sub = [n_sub.real, n_sub.imag]
        return {
            "n_incident": self.n_incident,
            "n_substrate": n_sub,
            "layers": [layer.to_dict() for layer in self.layers],
        }

    @classmethod
    def from_dict(cls, data: dict) -> TransferMatrixFilm:
        n_sub = data.get("n_substrate", 1.52)
        if isinstance(n_sub, (list, tuple)):
            n_sub = complex(n_sub[0], n_sub[1])
        return cls(
            data.get("n_incident", 1.0),
            n_sub,
            tuple(FilmLayer.from_dict(layer) for layer in data.get("layers", [])),
        )

    def __len__(self):
        return len(self.layers)

    def __repr__(self):
        parts = [layer.name or f"n={layer.n:g}" for layer in self.layers]
        return f"TransferMatrixFilm({len(self.layers)} layers: " + " -> ".join(parts) + ")"

    # ----- presets -----
    @classmethod
    def bragg_mirror(
        cls,
        n_high: float = 2.35,
        n_low: float = 1.46,
        design_wavelength_nm: float = 550.0,
        pairs: int = 5,
    ) -> TransferMatrixFilm:
        """Quarter-wave high reflector (HL)^pairs H on glass."""
        film = cls(1.0, 1.52)
        for _ in range(int(pairs)):
            film = film.add_layer_qwot(n_high, design_wavelength_nm, name="H")
            film = film.add_layer_qwot(n_low, design_wavelength_nm, name="L")
        return film.add_layer_qwot(n_high, design_wavelength_nm, name="H")

    @classmethod
    def ar_broadband(cls, design_wavelength_nm: float = 550.0) -> TransferMatrixFilm:
        """Two-layer ZrO2 / MgF2 V-coat on glass."""
        n_low, n_high = 1.38, 2.05
        return (
            cls(1.0, 1.52)
            .add_layer(n_high, 0.12 * design_wavelength_nm / n_high, name="ZrO2")
            .add_layer(n_low, 0.28 * design_wavelength_nm / n_low, name="MgF2")
        )

    @classmethod
    def notch_filter(
        cls, center_wavelength_nm: float = 550.0, bandwidth_nm: float = 20.0
    ) -> TransferMatrixFilm:
        """TiO2 / SiO2 quarter-wave pairs; narrower bandwidth adds pairs (max 30)."""
        bandwidth_nm = require_positive("bandwidth_nm", bandwidth_nm)
        pairs = min(int(20.0 / bandwidth_nm * 10.0), 30)
        film = cls(1.0, 1.52)
        for _ in range(pairs):
            film = film.add_layer_qwot(2.35, center_wavelength_nm, name="TiO2")
            film = film.add_layer_qwot(1.46, center_wavelength_nm, name="SiO2")
        return film

    @classmethod
    def dichroic_blue_reflect(cls) -> TransferMatrixFilm:
        return cls.bragg_mirror(2.35, 1.46, 450.0, 15)

    @classmethod
    def dichroic_red_reflect(cls) -> TransferMatrixFilm:
        return cls.bragg_mirror(2.35, 1.46, 650.0, 15)

    @classmethod
    def morpho_butterfly(cls) -> TransferMatrixFilm:
        """Irregular chitin / air lamellae giving broadband structural blue."""
        film = cls(1.0, 1.56)
        for n, d in (
            (1.56, 75.0),
            (1.0, 60.0),
            (1.56, 80.0),
            (1.0, 55.0),
            (1.56, 70.0),
            (1.0, 65.0),
            (1.56, 85.0),
            (1.0, 50.0),
            (1.56, 75.0),
            (1.0, 60.0),
            (1.56, 70.0),
        ):
            film = film.add_layer(n, d, name="chitin" if n > 1.0 else "air")
        return film

    @classmethod
    def beetle_shell(cls) -> TransferMatrixFilm:
        """Graded chitin layers, 120 nm each."""
        film = cls(1.0, 1.6)
        for n in (1.6, 1.55, 1.5, 1.55, 1.6, 1.55, 1.5):
            film = film.add_layer(n, 120.0)
        return film

    @classmethod
    def nacre(cls) -> TransferMatrixFilm:
        """Mother of pearl: 20 aragonite platelets in a protein matrix."""
        film = cls(1.0, 1.68)
        for _ in range(20):
            film = film.add_layer(1.68, 300.0, name="aragonite")
            film = film.add_layer(1.34, 20.0, name="protein")
        return film

    @classmethod
    def optical_disc(cls) -> TransferMatrixFilm:
        """Polycarbonate cover over an aluminium reflection layer."""
        return (
            cls(1.0, 1.55)
            .add_layer(1.55, 1200.0, name="polycarbonate")
            .add_layer(0.15, 50.0, k=3.5, name="aluminum")
        )

    @classmethod
    def oxidized_metal(
        cls, oxide_n: float, oxide_thickness_nm: float, metal_n: float, metal_k: float
    ) -> TransferMatrixFilm:
        """Oxide film on an opaque metal (absorbing substrate)."""
        return cls(1.0, complex(metal_n, metal_k)).add_layer(
            oxide_n, oxide_thickness_nm, name="oxide"
        )

    @classmethod
    def presets(cls) -> dict[str, TransferMatrixFilm]:
        return {
            "bragg_mirror": cls.bragg_mirror(2.35, 1.46, 550.0, 10),
            "ar_broadband": cls.ar_broadband(550.0),
            "notch_filter": cls.notch_filter(550.0, 20.0),
            "dichroic_blue_reflect": cls.dichroic_blue_reflect(),
            "dichroic_red_reflect": cls.dichroic_red_reflect(),
            "morpho_butterfly": cls.morpho_butterfly(),
            "beetle_shell": cls.beetle_shell(),
            "nacre": cls.nacre(),
            "optical_disc": cls.optical_disc(),
        }

    # ----- plotting -----
    def plot_structure(self, ax: plt.Axes = None) -> tuple[plt.Figure, plt.Axes]:
        """Plots a schematic representation of the film.

        Each layer is a rectangle whose height is its physical thickness (nm),
        coloured per distinct index; the substrate sits below zero and the
        incident medium on top.

        Parameters
        ----------
        ax : matplotlib.axes.Axes, optional
            The axes on which to plot the structure. If None, a new figure and
            axes are created.

        Returns
        -------
        tuple[matplotlib.figure.Figure, matplotlib.axes.Axes]
        """
        if ax is None:
            fig, ax = plt.subplots()
        import matplotlib.colors as mcolors

        color_cycle = list(mcolors.TABLEAU_COLORS.values())

        def _label(n, k=0.0):
            n = complex(n)
            k = k or n.imag
            return f"$n$ = {n.real:g}" + (f" + {k:g}i" if k else "")

        labels = (
            [_label(self.n_incident)]
            + [_label(layer.n, layer.k) for layer in self.layers]
            + [_label(self.n_substrate)]
        )
        colors = {
            name: color_cycle[i % len(color_cycle)]
            for i, name in enumerate(dict.fromkeys(labels))
        }
        total = self.total_thickness_nm or 1.0
        margin = 0.08 * total

        def _add_rect(y, height, label):
            ax.add_patch(
                plt.Rectangle((0, y), 1, height, color=colors[label], label=label, alpha=0.7)
            )

        _add_rect(-margin, margin, labels[-1])
        y = 0.0
        for layer, label in zip(self.layers, labels[1:-1]):
            _add_rect(y, layer.thickness_nm, label)
            y += layer.thickness_nm
        _add_rect(y, margin, labels[0])

        ax.set_xlim(0, 1)
        ax.set_ylim(-margin, y + margin)
        ax.set_ylabel("Thickness (nm)")
        ax.set_xticks([])
        handles, names = ax.get_legend_handles_labels()
        by_label = dict(zip(names, handles))
        ax.legend(
            by_label.values(),
            by_label.keys(),
            loc="center left",
            bbox_to_anchor=(1.05, 0.5),
            borderaxespad=0.0,
        )
        return ax.figure, ax

    def plot(
        self,
        wavelength_nm: float | Array = WAVELENGTHS_NM,
        aoi_deg: float | Array = 0.0,
        polarization: Pol = "u",
        to_plot: PlotType | list[PlotType] = "R",
        ax: plt.Axes = None,
    ) -> plt.Figure:
        """Plot R/T/A against wavelength or against angle of incidence.

        Args:
            wavelength_nm: Wavelength(s) in nm.
            aoi_deg: Angle(s) of incidence in degrees.
            polarization: 's', 'p' or 'u'.
            to_plot: 'R', 'T', 'A' or list of these.
            ax: Optional matplotlib Axes.

        Raises:
            ValueError: If both wavelength and angle are arrays or both scalars,
                or ``to_plot`` holds an unknown quantity.
        """
        if ax is None:
            _, ax = plt.subplots()
        wl = be.atleast_1d(be.as_float_array(wavelength_nm))
        aoi = be.atleast_1d(be.as_float_array(aoi_deg))
        if isinstance(to_plot, str):
            to_plot = [to_plot]
        if any(q not in ("R", "T", "A") for q in to_plot):
            raise ValueError("to_plot must be 'R', 'T', 'A' or a list of these")

        data = self.coefficients(wl, aoi, polarization)
        if len(wl) > 1 and len(aoi) == 1:
            x, xlabel = wl, "$\\lambda$ (nm)"
        elif len(aoi) > 1 and len(wl) == 1:
            x, xlabel = aoi, "AOI (°)"
        else:
            raise ValueError("Exactly one of wavelength_nm or aoi_deg must be an array")

        for quantity in to_plot:
            ax.plot(x, data[quantity].flatten(), label=f"{quantity}, {polarization}-pol")
        ax.set_xlabel(xlabel)
        ax.set_ylabel("Power fraction")
        ax.set_xlim(x.min(), x.max())
        ax.set_ylim(0, 1)
        ax.grid(True, alpha=0.3)
        ax.legend()
        return ax.figure
