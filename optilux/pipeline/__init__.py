from .context import EvaluationContext
from .pipeline import (
    EnergyReport,
    EnergyViolation,
    PipelineBuilder,
    SpectralPipeline,
)
from .stages import (
    DispersionStage,
    DrudeMetalStage,
    MetalReflectanceStage,
    MieScatteringStage,
    MultilayerStage,
    SpectralStage,
    ThermoOpticStage,
    ThinFilmStage,
)
