from optilux.materials import schlick_fresnel

from .batch import BatchResult, evaluate_dielectric_batch, evaluate_material_batch
from .bsdf import (
    BaseBSDF,
    BSDFContext,
    BSDFResult,
    ConductorBSDF,
    DielectricBSDF,
    EnergyValidation,
    LambertianBSDF,
    LayeredBSDF,
    MicrofacetBSDF,
    ThinFilmBSDF,
    dielectric_response,
    validate_energy_conservation,
)
from .material import PBRMaterial
from .microfacet import (
    cook_torrance,
    cook_torrance_brdf,
    ggx_anisotropic_ndf,
    ggx_ndf,
    normalize,
    oren_nayar,
    oren_nayar_brdf,
    shading_cosines,
    smith_g1,
    smith_g2,
)
