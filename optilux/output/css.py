"""CSS emission

Turns evaluated optical quantities into CSS declarations. All functions are
pure string formatting on top of the physics modules; colours are
gamma-encoded sRGB.
"""

from __future__ import annotations

import math
from typing import Any, TypeAlias

import optilux.backend as be
from optilux import colorimetry
from optilux.materials import SpectralComplexIOR, metal_by_name
from optilux.scattering import MieParams, mie_particle_rgb
from optilux.spectral import SpectralSignal
from optilux.thin_film import ThinFilm, TransferMatrixFilm

Array: TypeAlias = Any  # be.ndarray

# CSS reference pixel, 96 per inch
PX_PER_MM = 96.0 / 25.4
MIN_BLUR_PX = 0.5


def _byte(value: float) -> int:
    return int(round(min(max(float(value), 0.0), 1.0) * 255.0))


def rgba(r: float, g: float, b: float, a: float = 1.0) -> str:
    """``rgba(...)`` from channel values in [0, 1]; out-of-range values are clamped."""
    alpha = min(max(float(a), 0.0), 1.0)
    return f"rgba({_byte(r)}, {_byte(g)}, {_byte(b)}, {alpha:.2f})"


def rgb(r: float, g: float, b: float) -> str:
    return f"rgb({_byte(r)}, {_byte(g)}, {_byte(b)})"


def _display_color(spectrum: SpectralSignal) -> Array:
    """Hue of a reflectance spectrum, brightened so its largest channel is 1."""
    linear = be.maximum(be.as_float_array(spectrum.to_linear_rgb()), 0.0)
    peak = float(be.max(linear))
    if peak <= 0.0:
        return be.zeros(3)
    return be.clip(colorimetry.linear_to_srgb(linear / peak), 0.0, 1.0)


def _gradient(colors, angle_deg: float, alpha: float | None = None) -> str:
    last = max(len(colors) - 1, 1)
    stops = []
    for i, color in enumerate(colors):
        swatch = rgb(*color) if alpha is None else rgba(*color, alpha)
        stops.append(f"{swatch} {100.0 * i / last:.0f}%")
    return f"linear-gradient({angle_deg:g}deg, {', '.join(stops)})"


def backdrop_filter(scattering_radius_mm: float) -> str | None:
    """``blur(...)`` for a physical scattering radius, or None when it is below half a pixel."""
    px = max(float(scattering_radius_mm), 0.0) * PX_PER_MM
    if px < MIN_BLUR_PX:
        return None
    return f"blur({px:.1f}px)"


def luminous_border_shadow(color, intensity: float = 0.5, blur_px: float = 24.0) -> str:
    """``box-shadow`` value with a thin inner rim and an outer glow of ``color``."""
    intensity = min(max(float(intensity), 0.0), 1.0)
    r, g, b = (float(c) for c in color)
    return (
        f"inset 0 0 0 1px {rgba(r, g, b, 0.4 + 0.4 * intensity)}, "
        f"0 0 {blur_px * intensity:.0f}px {blur_px * intensity * 0.25:.0f}px "
        f"{rgba(r, g, b, 0.6 * intensity)}"
    )


# ----- thin films -----
def iridescent_gradient(
    film: ThinFilm,
    n_substrate: float = 1.52,
    angle_deg: float = 135.0,
    steps: int = 8,
    max_incidence_deg: float = 60.0,
) -> str:
    """Linear gradient through the film colour from normal to oblique incidence."""
    steps = max(int(steps), 2)
    colors = []
    for i in range(steps):
        theta = math.radians(max_incidence_deg * i / (steps - 1))
        spectrum = film.reflectance_spectrum(n_substrate, math.cos(theta))
        colors.append(_display_color(spectrum))
    return _gradient(colors, angle_deg)


def soap_bubble_css(thickness_nm: float = 300.0, angle_deg: float = 135.0) -> str:
    film = ThinFilm(1.33, thickness_nm)
    gradient = iridescent_gradient(film, 1.0, angle_deg)
    return f"background: {gradient}; opacity: 0.6; mix-blend-mode: screen;"


def oil_slick_css(thickness_nm: float = 400.0, angle_deg: float = 135.0) -> str:
    film = ThinFilm(1.47, thickness_nm)
    gradient = iridescent_gradient(film, 1.33, angle_deg)
    return f"background: {gradient}; opacity: 0.8; mix-blend-mode: overlay;"


# ----- multilayer stacks -----
def structural_color_css(
    film: TransferMatrixFilm,
    angle_deg: float = 135.0,
    steps: int = 7,
    max_incidence_deg: float = 60.0,
) -> str:
    """Linear gradient of a multilayer's reflected colour shifting with view angle."""
    steps = max(int(steps), 2)
    colors = [
        _display_color(film.reflectance_spectrum(max_incidence_deg * i / (steps - 1)))
        for i in range(steps)
    ]
    return _gradient(colors, angle_deg)


def bragg_mirror_css(
    n_high: float = 2.35,
    n_low: float = 1.46,
    design_wavelength_nm: float = 550.0,
    pairs: int = 5,
) -> str:
    film = TransferMatrixFilm.bragg_mirror(n_high, n_low, design_wavelength_nm, pairs)
    peak = _display_color(film.reflectance_spectrum(0.0))
    return (
        f"background: {structural_color_css(film)}; "
        f"box-shadow: {luminous_border_shadow(peak, 0.6)};"
    )


# ----- metals -----
def _metal(metal: SpectralComplexIOR | str) -> SpectralComplexIOR:
    return metal_by_name(metal) if isinstance(metal, str) else metal


def metallic_gradient(metal: SpectralComplexIOR | str, intensity: float = 1.0) -> str:
    """Radial gradient from the F0 colour at the centre to white at the grazing rim."""
    metal = _metal(metal)
    intensity = min(max(float(intensity), 0.0), 1.0)
    r, g, b = (float(c) * intensity for c in metal.f0_rgb())
    return (
        "radial-gradient(ellipse 100% 100% at center, "
        f"{rgba(r, g, b, 0.0)} 0%, "
        f"{rgba(r, g, b, 0.3 * intensity)} 40%, "
        f"{rgba(r, g, b, 0.6 * intensity)} 70%, "
        f"{rgba(1.0, 1.0, 1.0, 0.8 * intensity)} 95%, "
        f"{rgba(1.0, 1.0, 1.0, 0.9 * intensity)} 100%)"
    )


def metallic_surface(metal: SpectralComplexIOR | str, light_angle_deg: float = 45.0) -> str:
    """Linear gradient with a Fresnel highlight band for a lit metal surface."""
    metal = _metal(metal)
    cos_light = abs(math.cos(math.radians(light_angle_deg)))
    base = be.asarray(metal.f0_rgb()) * (200.0 / 255.0)
    highlight = metal.fresnel_schlick_rgb(cos_light)
    return (
        f"linear-gradient({light_angle_deg:g}deg, "
        f"{rgb(*base)} 0%, {rgb(*highlight)} 50%, {rgb(*base)} 100%)"
    )


# ----- participating media -----
def fog_css(params: MieParams | None = None, density: float = 0.5) -> str:
    """Milky veil; forward scattering (large g) gives a halo, back scattering a blur."""
    params = params or MieParams.mist()
    density = min(max(float(density), 0.0), 1.0)
    g = min(max(float(params.asymmetry_factor(550.0)), 0.0), 1.0)
    halo = g * density
    blur_px = (1.0 - g) * 20.0 * density
    return (
        f"background: {rgba(1.0, 1.0, 1.0, density * 0.3)}; "
        f"backdrop-filter: blur({blur_px:.1f}px); "
        f"box-shadow: 0 0 {halo * 50.0:.0f}px {halo * 30.0:.0f}px {rgba(1.0, 1.0, 1.0, halo * 0.5)};"
    )


def smoke_css(params: MieParams | None = None, density: float = 0.5) -> str:
    """Dark radial haze whose blur follows the side-scattered fraction."""
    params = params or MieParams.smoke()
    density = min(max(float(density), 0.0), 1.0)
    side = be.clip(be.as_float_array(mie_particle_rgb(0.5, params)), 0.0, 1.0)
    darkness = 1.0 - float(be.mean(side))
    return (
        "background: radial-gradient(ellipse at center, "
        f"rgba(50, 50, 50, {density * 0.6:.2f}) 0%, "
        f"rgba(30, 30, 30, {density * 0.4:.2f}) 50%, "
        f"rgba(10, 10, 10, {density * 0.2:.2f}) 100%); "
        f"filter: blur({darkness * 10.0:.1f}px);"
    )
