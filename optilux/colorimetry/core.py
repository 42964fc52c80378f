"""Tristimulus integration and colour-space conversions.

Spectra are resampled onto the CIE 1931 table grid, weighted by an
illuminant and reduced to XYZ. The remaining helpers move between XYZ,
linear and encoded sRGB, CIELAB and hex strings; all of them accept
scalars or packed ``(..., 3)`` arrays.
"""

from __future__ import annotations

from typing import Any

from scipy.interpolate import interp1d

import optilux.backend as be

from .constants import CIE_1931_2DEG, ILLUMINANT_D65, VISIBLE_RANGE_NM, WAVELENGTHS_STD

# sRGB (D65) primaries, IEC 61966-2-1
XYZ_TO_LINEAR_SRGB = (
    (3.2404542, -1.5371385, -0.4985314),
    (-0.9692660, 1.8760108, 0.0415560),
    (0.0556434, -0.2040259, 1.0572252),
)
LINEAR_SRGB_TO_XYZ = (
    (0.4124564, 0.3575761, 0.1804375),
    (0.2126729, 0.7151522, 0.0721750),
    (0.0193339, 0.1191920, 0.9503041),
)
D65_WHITE_XYZ = (95.047, 100.0, 108.883)
D65_CHROMATICITY = (0.3127, 0.3290)


def _interpolate_spectrum(
    src_nm: list[float], src_values: list[float], dst_nm: list[float], kind: str = "cubic"
) -> Any:
    """Resample a sampled curve onto ``dst_nm``.

    Outside ``src_nm`` the curve is extended flat from its end samples.
    ``kind`` is any scipy ``interp1d`` kind.
    """
    ys = be.to_numpy(src_values)
    resample = interp1d(
        be.to_numpy(src_nm),
        ys,
        kind=kind,
        bounds_error=False,
        fill_value=(ys[0], ys[-1]),
    )
    return be.asarray(resample(be.to_numpy(dst_nm)))


def _extract_xyz(X: Any, Y: Any = None, Z: Any = None) -> tuple[Any, Any, Any]:
    """Split packed (..., 3) input into components, or pass separate ones."""
    if Y is None and Z is None:
        packed = be.asarray(X)
        if packed.ndim == 0 or packed.shape[-1] != 3:
            raise ValueError("packed XYZ needs a trailing axis of length 3")
        return packed[..., 0], packed[..., 1], packed[..., 2]
    return be.asarray(X), be.asarray(Y), be.asarray(Z)


def spectrum_to_xyz(
    wavelengths: list[float],
    values: list[float],
    illuminant: list[float] | None = None,
    kind: str = "cubic",
) -> tuple[float, float, float]:
    """Integrate a reflectance or transmittance curve to CIE XYZ.

    The result is scaled so that a unit curve under the same illuminant
    has Y = 100 (CIE 15:2004, section 7).

    The CIE tables run from 380 to 780 nm. Samples beyond the last input
    wavelength are held at its value, so a curve on the 380-700 nm signal
    grid contributes its 700 nm sample across the 700-780 nm tail.

    Args:
        wavelengths: Sample positions in nm; must reach across 380-700 nm.
        values: Curve values, nominally in [0, 1].
        illuminant: Relative power on the ``WAVELENGTHS_STD`` grid. D65 if
            omitted.
        kind: scipy interpolation kind used for resampling.

    Raises:
        ValueError: if the samples stop short of the visible band or the
            illuminant is not on the table grid.
    """
    lo_req, hi_req = VISIBLE_RANGE_NM
    lo, hi = min(wavelengths), max(wavelengths)
    if lo > lo_req or hi < hi_req:
        raise ValueError(
            f"spectrum spans {lo:.1f}-{hi:.1f} nm but colour integration "
            f"needs {lo_req:.0f}-{hi_req:.0f} nm"
        )

    power = ILLUMINANT_D65 if illuminant is None else illuminant
    if len(power) != len(WAVELENGTHS_STD):
        raise ValueError(
            f"illuminant has {len(power)} samples, expected {len(WAVELENGTHS_STD)}"
        )

    power = be.as_float_array(power)
    cmf = be.as_float_array(CIE_1931_2DEG)
    curve = _interpolate_spectrum(wavelengths, values, WAVELENGTHS_STD, kind=kind)

    # the 5 nm step cancels between numerator and normalization
    tristimulus = be.sum((curve * power)[:, None] * cmf, axis=0)
    white_y = be.sum(power * cmf[:, 1])
    scale = 100.0 / white_y if white_y != 0 else 0.0
    return tuple(float(c * scale) for c in tristimulus)


def xyz_to_xyY(
    X: float | Any,
    Y: float | Any | None = None,
    Z: float | Any | None = None,
) -> tuple[Any, Any, Any]:
    """Chromaticity (x, y) plus luminance Y.

    Black (X + Y + Z = 0) maps to the D65 chromaticity.
    """
    X, Y, Z = _extract_xyz(X, Y, Z)
    total = X + Y + Z
    black = total == 0
    denom = be.where(black, 1.0, total)
    x = be.where(black, D65_CHROMATICITY[0], X / denom)
    y = be.where(black, D65_CHROMATICITY[1], Y / denom)
    return x, y, Y


def xyz_to_linear_srgb(
    X: float | Any,
    Y: float | Any | None = None,
    Z: float | Any | None = None,
) -> Any:
    """XYZ (Y=100 scale) to unclipped linear sRGB, packed as (..., 3)."""
    X, Y, Z = _extract_xyz(X, Y, Z)
    xyz = be.stack([X / 100.0, Y / 100.0, Z / 100.0], axis=-1)
    return xyz @ be.asarray(XYZ_TO_LINEAR_SRGB).T


def linear_to_srgb(v: Any) -> Any:
    """sRGB transfer function (gamma encode), vectorized, no clipping."""
    v = be.as_float_array(v)
    v_safe = be.maximum(v, 0.0)
    return be.where(v <= 0.0031308, 12.92 * v, 1.055 * be.power(v_safe, 1.0 / 2.4) - 0.055)


def srgb_to_linear(v: Any) -> Any:
    """Inverse sRGB transfer function for encoded values in [0, 1]."""
    v = be.as_float_array(v)
    return be.where(
        v <= 0.04045, v / 12.92, be.power((be.maximum(v, 0.0) + 0.055) / 1.055, 2.4)
    )


def xyz_to_srgb(
    X: float | Any,
    Y: float | Any | None = None,
    Z: float | Any | None = None,
) -> tuple[Any, Any, Any]:
    """XYZ (Y=100 scale) to 8-bit encoded sRGB per IEC 61966-2-1.

    Out-of-gamut values are clipped after gamma encoding.
    """
    rgb_lin = xyz_to_linear_srgb(X, Y, Z)
    encoded = be.clip(linear_to_srgb(rgb_lin), 0.0, 1.0)
    scaled = be.round(encoded * 255).astype(int)
    return scaled[..., 0], scaled[..., 1], scaled[..., 2]


def srgb_to_xyz(rgb: Any) -> Any:
    """Gamma-encoded sRGB in [0, 1], packed (..., 3), to XYZ (Y=100 scale)."""
    lin = srgb_to_linear(rgb)
    return 100.0 * (lin @ be.asarray(LINEAR_SRGB_TO_XYZ).T)


def xyz_to_lab(xyz: Any, white: tuple[float, float, float] = D65_WHITE_XYZ) -> Any:
    """XYZ (Y=100 scale) to CIELAB, packed (..., 3)."""
    xyz = be.as_float_array(xyz)
    t = xyz / be.asarray(white)
    delta = 6.0 / 29.0
    f = be.where(t > delta**3, be.cbrt(t), t / (3 * delta**2) + 4.0 / 29.0)
    L = 116.0 * f[..., 1] - 16.0
    a = 500.0 * (f[..., 0] - f[..., 1])
    b = 200.0 * (f[..., 1] - f[..., 2])
    return be.stack([L, a, b], axis=-1)


def srgb_to_lab(rgb: Any) -> Any:
    """Gamma-encoded sRGB in [0, 1] to CIELAB (D65)."""
    return xyz_to_lab(srgb_to_xyz(rgb))


def rgb_to_hex(r: int, g: int, b: int) -> str:
    """Format 0-255 channel values as ``#rrggbb``."""
    channels = [min(max(int(round(float(c))), 0), 255) for c in (r, g, b)]
    return "#{:02x}{:02x}{:02x}".format(*channels)


def float_rgb_to_hex(rgb: Any) -> str:
    """Format gamma-encoded channels in [0, 1] as ``#rrggbb``."""
    r, g, b = (float(c) * 255.0 for c in be.clip(be.as_float_array(rgb), 0, 1))
    return rgb_to_hex(r, g, b)


def hex_to_rgb(hex_color: str) -> tuple[int, int, int]:
    """Parse ``#rgb`` or ``#rrggbb`` into 0-255 channel values.

    Raises:
        ValueError: If the string is not a valid hex colour.
    """
    value = hex_color.strip().lstrip("#")
    if len(value) == 3:
        value = "".join(c * 2 for c in value)
    if len(value) != 6:
        raise ValueError(f"Invalid hex color: {hex_color!r}")
    try:
        return tuple(int(value[i : i + 2], 16) for i in (0, 2, 4))
    except ValueError as exc:
        raise ValueError(f"Invalid hex color: {hex_color!r}") from exc
