"""Thin-film interference.

Public API:
- ``FilmLayer``: one homogeneous layer (index + thickness)
- ``ThinFilm``: single film, Airy summation
- ``TransferMatrixFilm``: multilayer stack, transfer matrix method (r, t, R, T, A)

Units: wavelength and thickness in nm, angles of incidence in degrees.
"""

from __future__ import annotations

from .film import ThinFilm, ar_coating_thickness, ideal_ar_index
from .layer import FilmLayer
from .stack import TransferMatrixFilm, quarter_wave

__all__ = [
    "FilmLayer",
    "ThinFilm",
    "TransferMatrixFilm",
    "ar_coating_thickness",
    "ideal_ar_index",
    "quarter_wave",
]
