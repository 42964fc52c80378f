"""Colour vision deficiency simulation.

Dichromat simulation with the Viénot, Brettel & Mollon (1999) matrices,
applied in linear sRGB. Every matrix row sums to one, so neutral greys
(including white) are preserved.
"""

from __future__ import annotations

from enum import Enum

import optilux.backend as be

from .core import float_rgb_to_hex, hex_to_rgb, linear_to_srgb, srgb_to_linear

PROTANOPIA_MATRIX = (
    (0.56667, 0.43333, 0.0),
    (0.55833, 0.44167, 0.0),
    (0.0, 0.24167, 0.75833),
)
DEUTERANOPIA_MATRIX = (
    (0.625, 0.375, 0.0),
    (0.7, 0.3, 0.0),
    (0.0, 0.3, 0.7),
)
TRITANOPIA_MATRIX = (
    (0.95, 0.05, 0.0),
    (0.0, 0.43333, 0.56667),
    (0.0, 0.475, 0.525),
)


class CVDType(Enum):
    PROTANOPIA = "protanopia"
    DEUTERANOPIA = "deuteranopia"
    TRITANOPIA = "tritanopia"

    @classmethod
    def from_str(cls, name: str) -> CVDType:
        """Parse a deficiency name; accepts short forms such as 'protan' or 'p'."""
        key = name.strip().lower()
        for member in cls:
            aliases = {member.value, member.value[:6], member.value[0]}
            if key in aliases:
                return member
        raise ValueError(
            f"Unknown colour vision deficiency {name!r}; "
            "expected protanopia, deuteranopia or tritanopia"
        )

    @property
    def matrix(self):
        return be.asarray(_MATRICES[self])


_MATRICES = {
    CVDType.PROTANOPIA: PROTANOPIA_MATRIX,
    CVDType.DEUTERANOPIA: DEUTERANOPIA_MATRIX,
    CVDType.TRITANOPIA: TRITANOPIA_MATRIX,
}


def simulate_cvd(linear_rgb, cvd: CVDType | str):
    """Simulate how a dichromat perceives linear sRGB colours.

    Args:
        linear_rgb: Linear sRGB values, packed as (..., 3).
        cvd: Deficiency type or its name.

    Returns:
        Simulated linear sRGB, same shape, clamped to [0, 1].
    """
    if isinstance(cvd, str):
        cvd = CVDType.from_str(cvd)
    rgb = be.as_float_array(linear_rgb)
    return be.clip(rgb @ cvd.matrix.T, 0.0, 1.0)


def simulate_cvd_hex(hex_color: str, cvd: CVDType | str) -> str:
    """Simulate a deficiency on a ``#rrggbb`` colour and return the result as hex."""
    rgb = be.as_float_array(hex_to_rgb(hex_color)) / 255.0
    simulated = simulate_cvd(srgb_to_linear(rgb), cvd)
    return float_rgb_to_hex(linear_to_srgb(simulated))
