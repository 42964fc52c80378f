"""
Colorimetry plotting utilities.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import matplotlib.pyplot as plt
from matplotlib.collections import LineCollection

import optilux.backend as be

from .constants import CIE_1931_2DEG, WAVELENGTHS_STD
from .core import linear_to_srgb, xyz_to_linear_srgb, xyz_to_xyY

if TYPE_CHECKING:
    from optilux.spectral import SpectralSignal


def _locus():
    cmf = be.as_float_array(CIE_1931_2DEG)
    wls = be.as_float_array(WAVELENGTHS_STD)
    keep = (wls <= 700) & (be.sum(cmf, axis=1) > 0)
    x, y, _ = xyz_to_xyY(cmf[keep])
    return wls[keep], x, y


def _xy_colors(x, y, luminance: float = 50.0):
    y_safe = be.where(y <= 0, 1e-6, y)
    X = x / y_safe * luminance
    Z = (1 - x - y) / y_safe * luminance
    lin = xyz_to_linear_srgb(X, be.full_like(X, luminance), Z)
    return be.clip(linear_to_srgb(be.clip(lin, 0, 1)), 0, 1)


def plot_chromaticity(
    signals: dict[str, SpectralSignal] | None = None,
    ax: plt.Axes | None = None,
    title: str = "CIE 1931 chromaticity",
) -> tuple[plt.Figure, plt.Axes]:
    """
    Plots the spectral locus and the chromaticity of the given signals.

    Args:
        signals: Mapping of label to signal; each is plotted as one point in
            its own sRGB colour.
        ax: Optional matplotlib Axes. If None, a new figure is created.
        title: Title of the plot.

    Returns:
        Tuple (Figure, Axes).
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(6, 6))
    else:
        fig = ax.figure

    wls, x_locus, y_locus = _locus()
    points = be.reshape(be.stack([x_locus, y_locus], axis=-1), (-1, 1, 2))
    segments = be.concatenate((points[:-1], points[1:]), axis=1)
    colors = _xy_colors(x_locus, y_locus)
    ax.add_collection(LineCollection(segments, colors=colors[:-1], linewidth=2))
    ax.plot(
        [x_locus[-1], x_locus[0]], [y_locus[-1], y_locus[0]], "--", color="gray", lw=1
    )

    for wl in (450, 500, 550, 600, 650):
        idx = int(be.argmin(be.abs(wls - wl)))
        ax.plot(x_locus[idx], y_locus[idx], "ko", markersize=3)
        ax.text(x_locus[idx] + 0.015, y_locus[idx], f"{wl}", fontsize=8)

    for label, signal in (signals or {}).items():
        x, y, _ = xyz_to_xyY(*signal.to_xyz())
        ax.plot(
            float(x),
            float(y),
            "o",
            color=signal.to_hex(),
            markeredgecolor="k",
            label=label,
        )

    ax.set_xlim(-0.05, 0.85)
    ax.set_ylim(-0.05, 0.9)
    ax.set_aspect("equal")
    ax.grid(True, linestyle=":", alpha=0.6)
    ax.set_xlabel("x")
    ax.set_ylabel("y")
    ax.set_title(title)
    if signals:
        ax.legend()
    return fig, ax


def plot_spectrum(
    signal: SpectralSignal,
    ax: plt.Axes | None = None,
    label: str | None = None,
) -> tuple[plt.Figure, plt.Axes]:
    """Plot a spectral signal against wavelength, filled with its own colour."""
    if ax is None:
        fig, ax = plt.subplots()
    else:
        fig = ax.figure
    wl = be.to_numpy(signal.wavelengths)
    values = be.to_numpy(signal.intensities)
    ax.plot(wl, values, color="k", lw=1, label=label)
    ax.fill_between(wl, values, color=signal.to_hex(), alpha=0.8)
    ax.set_xlim(wl.min(), wl.max())
    ax.set_xlabel("$\\lambda$ (nm)")
    ax.set_ylabel("Intensity")
    ax.grid(True, alpha=0.3)
    if label:
        ax.legend()
    return fig, ax
