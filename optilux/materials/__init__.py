from .complex_ior import CONDUCTOR_K_THRESHOLD, ComplexIOR, SpectralComplexIOR
from .dispersion import (
    BaseDispersion,
    CauchyDispersion,
    ConstantDispersion,
    SellmeierDispersion,
    f0_from_ior,
)
from .drude import DrudeMetal, OxideLayer
from .fresnel import (
    fresnel_conductor,
    fresnel_conductor_schlick,
    fresnel_conductor_unpolarized,
    fresnel_dielectric,
    fresnel_dielectric_unpolarized,
    fresnel_schlick,
    schlick_f0,
    schlick_fresnel,
)
from .metals import (
    ALUMINUM,
    BRASS,
    BRONZE,
    CHROMIUM,
    COPPER,
    GOLD,
    IRON,
    NICKEL,
    PLATINUM,
    SILVER,
    TITANIUM,
    TUNGSTEN,
    all_metals,
    metal_by_name,
)
from .refraction import (
    RefractionParams,
    RefractionResult,
    calculate_refraction,
    distortion_map,
)
