"""Spectral signal on the engine's fixed wavelength grid.

A ``SpectralSignal`` is 33 non-negative intensities sampled at 380, 390, ...,
700 nm. Instances are immutable: every operation returns a new signal.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, TypeAlias

from scipy.integrate import trapezoid

import optilux.backend as be
from optilux.colorimetry import core as colorimetry
from optilux.colorimetry.constants import ILLUMINANT_D65, WAVELENGTHS_STD
from optilux.errors import InvalidParameterError, SpectralShapeError

logger = logging.getLogger(__name__)

Array: TypeAlias = Any  # be.ndarray

WAVELENGTH_MIN_NM = 380.0
WAVELENGTH_MAX_NM = 700.0
WAVELENGTH_STEP_NM = 10.0
NUM_SAMPLES = 33
WAVELENGTHS_NM = be.readonly(be.linspace(WAVELENGTH_MIN_NM, WAVELENGTH_MAX_NM, NUM_SAMPLES))

# RGB anchor wavelengths used by channel-wise models
RGB_WAVELENGTHS_NM = (650.0, 550.0, 450.0)


def wavelengths() -> Array:
    """The 33-sample wavelength grid in nm (read-only)."""
    return WAVELENGTHS_NM


class SpectralSignal:
    """Immutable spectral power or reflectance distribution.

    Args:
        intensities: Exactly 33 finite values on the 380-700 nm grid.
            Negative values are clamped to zero.

    Raises:
        SpectralShapeError: If the number of samples is not 33.
        InvalidParameterError: If any value is NaN or infinite.
    """

    __slots__ = ("_values",)

    def __init__(self, intensities):
        values = be.as_float_array(intensities).reshape(-1)
        if values.shape[0] != NUM_SAMPLES:
            raise SpectralShapeError(values.shape[0], NUM_SAMPLES)
        if not be.all(be.isfinite(values)):
            raise InvalidParameterError(
                "intensities", "<non-finite>", "all samples must be finite"
            )
        negative = int(be.count_nonzero(values < 0.0))
        if negative:
            logger.debug("Clamped %d negative spectral samples to zero", negative)
        self._values = be.readonly(be.maximum(values, 0.0))

    # ----- constructors -----
    @classmethod
    def uniform(cls, value: float = 1.0) -> SpectralSignal:
        return cls(be.full(NUM_SAMPLES, float(value)))

    @classmethod
    def zeros(cls) -> SpectralSignal:
        return cls(be.zeros(NUM_SAMPLES))

    @classmethod
    def d65(cls) -> SpectralSignal:
        """CIE D65 relative power, normalised to 1.0 at 560 nm."""
        d65 = colorimetry._interpolate_spectrum(
            WAVELENGTHS_STD, ILLUMINANT_D65, WAVELENGTHS_NM, kind="linear"
        )
        return cls(be.asarray(d65) / 100.0)

    @classmethod
    def from_function(cls, fn: Callable[[float], float]) -> SpectralSignal:
        """Sample ``fn(wavelength_nm)`` on the grid."""
        return cls([fn(float(wl)) for wl in WAVELENGTHS_NM])

    @classmethod
    def from_samples(cls, wavelengths_nm, values) -> SpectralSignal:
        """Resample arbitrary (wavelength, value) pairs onto the grid.

        Linear interpolation; values outside the sampled range are held at the
        nearest end value.
        """
        wl = be.as_float_array(wavelengths_nm)
        vals = be.as_float_array(values)
        if wl.shape != vals.shape or wl.size < 2:
            raise InvalidParameterError(
                "values", f"<{vals.size} samples>", "need matching arrays of >= 2 samples"
            )
        order = be.argsort(wl)
        return cls(be.interp(WAVELENGTHS_NM, wl[order], vals[order]))

    # ----- access -----
    @property
    def intensities(self) -> Array:
        return self._values

    @property
    def wavelengths(self) -> Array:
        return WAVELENGTHS_NM

    def intensity_at(self, wavelength_nm: float | Array) -> float | Array:
        """Linear interpolation, clamped to the end samples outside 380-700 nm."""
        out = be.interp(wavelength_nm, WAVELENGTHS_NM, self._values)
        return float(out) if be.ndim(out) == 0 else out

    def total_energy(self) -> float:
        """Trapezoidal integral over wavelength (intensity x nm)."""
        return float(trapezoid(self._values, WAVELENGTHS_NM))

    def peak_wavelength(self) -> float:
        return float(WAVELENGTHS_NM[be.argmax(self._values)])

    def to_list(self) -> list[float]:
        return [float(v) for v in self._values]

    # ----- arithmetic -----
    def multiply(self, other: SpectralSignal | Array) -> SpectralSignal:
        """Per-wavelength product with another signal or a 33-sample array."""
        factor = other._values if isinstance(other, SpectralSignal) else other
        factor = be.as_float_array(factor)
        if factor.ndim != 0 and factor.shape != (NUM_SAMPLES,):
            raise SpectralShapeError(factor.size, NUM_SAMPLES)
        return SpectralSignal(self._values * factor)

    def scale(self, factor: float) -> SpectralSignal:
        return SpectralSignal(self._values * float(factor))

    def __mul__(self, other):
        if isinstance(other, (int, float)):
            return self.scale(other)
        return self.multiply(other)

    __rmul__ = __mul__

    # ----- colour -----
    def to_xyz(self) -> tuple[float, float, float]:
        """CIE XYZ of this signal taken as a reflectance under D65 (Y=100 white).

        The 700 nm sample is held flat over the 700-780 nm tail of the CIE tables.
        """
        return colorimetry.spectrum_to_xyz(WAVELENGTHS_NM, self._values, kind="linear")

    def to_linear_rgb(self) -> Array:
        return be.clip(colorimetry.xyz_to_linear_srgb(*self.to_xyz()), 0.0, 1.0)

    def to_srgb(self) -> Array:
        """Gamma-encoded sRGB in [0, 1]."""
        return be.clip(colorimetry.linear_to_srgb(self.to_linear_rgb()), 0.0, 1.0)

    def to_hex(self) -> str:
        return colorimetry.float_rgb_to_hex(self.to_srgb())

    # ----- container protocol -----
    def __len__(self) -> int:
        return NUM_SAMPLES

    def __iter__(self):
        return iter(self.to_list())

    def __getitem__(self, index):
        return self._values[index]

    def __eq__(self, other) -> bool:
        if not isinstance(other, SpectralSignal):
            return NotImplemented
        return bool(be.array_equal(self._values, other._values))

    def __hash__(self):
        return hash(self._values.tobytes())

    def __repr__(self) -> str:
        return (
            f"SpectralSignal(peak={self.peak_wavelength():.0f} nm, "
            f"energy={self.total_energy():.3f})"
        )
