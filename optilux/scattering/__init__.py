from .dynamic import (
    Bimodal,
    DynamicMieParams,
    GammaDistribution,
    LogNormal,
    MieKeyframe,
    Monodisperse,
    SizeDistribution,
    effective_asymmetry_g,
    extinction_coefficient,
    polydisperse_phase,
)
from .lut import (
    MieLUT,
    get_mie_lut,
    get_mie_lut_memory,
    mie_fast,
    mie_particle,
    mie_particle_rgb,
)
from .mie import (
    MieParams,
    mie_asymmetry_g,
    mie_efficiencies,
    rayleigh_efficiency,
    scattering_regime,
)
from .phase import (
    ScatteringParams,
    asymmetry_of,
    double_henyey_greenstein,
    henyey_greenstein,
    integrate_phase_function,
    rayleigh_phase,
)
