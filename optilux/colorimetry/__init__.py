from .core import (
    float_rgb_to_hex,
    hex_to_rgb,
    linear_to_srgb,
    rgb_to_hex,
    spectrum_to_xyz,
    srgb_to_lab,
    srgb_to_linear,
    srgb_to_xyz,
    xyz_to_lab,
    xyz_to_linear_srgb,
    xyz_to_srgb,
    xyz_to_xyY,
)
from .cvd import CVDType, simulate_cvd, simulate_cvd_hex
from .luminance import (
    contrast_ratio,
    delta_e2000,
    delta_e2000_batch,
    relative_luminance,
    relative_luminance_batch,
)
