from .materials import (
    TemporalConductorMaterial,
    TemporalDielectricMaterial,
    TemporalThinFilmMaterial,
)
