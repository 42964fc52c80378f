"""optilux: physically based spectral optics for material rendering.

Subpackages:
- ``spectral``: 33-sample spectral signals on the 380-700 nm grid
- ``materials``: complex indices, Fresnel equations, dispersion models
- ``thin_film``: Airy single films and transfer-matrix multilayers
- ``scattering``: phase functions and Mie scattering
- ``pipeline``: composable spectral stages with energy auditing
- ``pbr``: microfacet BRDFs, BSDFs and batch evaluation
- ``temporal``: time- and temperature-parameterized materials
- ``colorimetry``: CIE colour science, luminance, contrast and CVD
- ``output``: CSS emission
"""

from __future__ import annotations

from .errors import (
    InvalidParameterError,
    MalformedInputError,
    OptiluxError,
    SpectralShapeError,
)
from .spectral import SpectralSignal

__version__ = "0.1.0"
