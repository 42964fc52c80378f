from .signal import (
    NUM_SAMPLES,
    RGB_WAVELENGTHS_NM,
    WAVELENGTH_MAX_NM,
    WAVELENGTH_MIN_NM,
    WAVELENGTH_STEP_NM,
    WAVELENGTHS_NM,
    SpectralSignal,
    wavelengths,
)

__all__ = [
    "NUM_SAMPLES",
    "RGB_WAVELENGTHS_NM",
    "WAVELENGTH_MAX_NM",
    "WAVELENGTH_MIN_NM",
    "WAVELENGTH_STEP_NM",
    "WAVELENGTHS_NM",
    "SpectralSignal",
    "wavelengths",
]
