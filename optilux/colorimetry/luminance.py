"""Luminance, contrast and colour difference metrics."""

from __future__ import annotations

import optilux.backend as be

from .core import hex_to_rgb, srgb_to_lab, srgb_to_linear

LUMINANCE_WEIGHTS = (0.2126, 0.7152, 0.0722)


def relative_luminance(rgb) -> float:
    """WCAG relative luminance of a gamma-encoded sRGB colour.

    Args:
        rgb: (r, g, b) in [0, 1], or a ``#rrggbb`` string.
    """
    if isinstance(rgb, str):
        rgb = be.as_float_array(hex_to_rgb(rgb)) / 255.0
    return float(relative_luminance_batch(be.as_float_array(rgb)[None, :])[0])


def relative_luminance_batch(rgb):
    """Relative luminance for packed (N, 3) gamma-encoded sRGB colours."""
    lin = srgb_to_linear(be.clip(be.as_float_array(rgb), 0.0, 1.0))
    return lin @ be.asarray(LUMINANCE_WEIGHTS)


def contrast_ratio(rgb_a, rgb_b) -> float:
    """WCAG contrast ratio (1..21) between two colours."""
    la = relative_luminance(rgb_a)
    lb = relative_luminance(rgb_b)
    lighter, darker = max(la, lb), min(la, lb)
    return (lighter + 0.05) / (darker + 0.05)


def delta_e2000(lab1, lab2, k_l: float = 1.0, k_c: float = 1.0, k_h: float = 1.0):
    """CIEDE2000 colour difference.

    Vectorized over packed (..., 3) CIELAB inputs.

    References:
        Sharma, Wu & Dalal, "The CIEDE2000 color-difference formula:
        implementation notes, supplementary test data, and mathematical
        observations", Color Res. Appl. 30 (2005).
    """
    lab1 = be.as_float_array(lab1)
    lab2 = be.as_float_array(lab2)
    L1, a1, b1 = lab1[..., 0], lab1[..., 1], lab1[..., 2]
    L2, a2, b2 = lab2[..., 0], lab2[..., 1], lab2[..., 2]

    C1 = be.hypot(a1, b1)
    C2 = be.hypot(a2, b2)
    C_bar = 0.5 * (C1 + C2)
    G = 0.5 * (1 - be.sqrt(C_bar**7 / (C_bar**7 + 25.0**7)))
    a1p = (1 + G) * a1
    a2p = (1 + G) * a2
    C1p = be.hypot(a1p, b1)
    C2p = be.hypot(a2p, b2)
    h1p = be.mod(be.degrees(be.arctan2(b1, a1p)), 360.0)
    h2p = be.mod(be.degrees(be.arctan2(b2, a2p)), 360.0)

    dLp = L2 - L1
    dCp = C2p - C1p
    dh = h2p - h1p
    dh = be.where(dh > 180.0, dh - 360.0, dh)
    dh = be.where(dh < -180.0, dh + 360.0, dh)
    dh = be.where(C1p * C2p == 0, 0.0, dh)
    dHp = 2 * be.sqrt(C1p * C2p) * be.sin(be.radians(dh / 2))

    Lp_bar = 0.5 * (L1 + L2)
    Cp_bar = 0.5 * (C1p + C2p)
    h_sum = h1p + h2p
    h_bar = be.where(
        be.abs(h1p - h2p) > 180.0,
        be.where(h_sum < 360.0, (h_sum + 360.0) / 2, (h_sum - 360.0) / 2),
        h_sum / 2,
    )
    h_bar = be.where(C1p * C2p == 0, h_sum, h_bar)

    T = (
        1
        - 0.17 * be.cos(be.radians(h_bar - 30))
        + 0.24 * be.cos(be.radians(2 * h_bar))
        + 0.32 * be.cos(be.radians(3 * h_bar + 6))
        - 0.20 * be.cos(be.radians(4 * h_bar - 63))
    )
    d_theta = 30 * be.exp(-(((h_bar - 275) / 25) ** 2))
    R_c = 2 * be.sqrt(Cp_bar**7 / (Cp_bar**7 + 25.0**7))
    S_l = 1 + 0.015 * (Lp_bar - 50) ** 2 / be.sqrt(20 + (Lp_bar - 50) ** 2)
    S_c = 1 + 0.045 * Cp_bar
    S_h = 1 + 0.015 * Cp_bar * T
    R_t = -be.sin(be.radians(2 * d_theta)) * R_c

    tl = dLp / (k_l * S_l)
    tc = dCp / (k_c * S_c)
    th = dHp / (k_h * S_h)
    return be.sqrt(tl**2 + tc**2 + th**2 + R_t * tc * th)


def delta_e2000_batch(rgb_a, rgb_b):
    """CIEDE2000 between paired gamma-encoded sRGB colours, (N, 3) each."""
    return delta_e2000(srgb_to_lab(rgb_a), srgb_to_lab(rgb_b))
