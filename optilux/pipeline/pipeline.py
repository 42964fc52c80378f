"""Spectral Pipeline

Ordered composition of spectral stages. The pipeline feeds each stage's
output spectrum into the next one and can audit every stage for energy
conservation.
"""

from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass

import optilux.backend as be
from optilux.errors import MalformedInputError
from optilux.materials import CauchyDispersion, DrudeMetal, SpectralComplexIOR
from optilux.scattering import MieParams
from optilux.spectral import WAVELENGTHS_NM, SpectralSignal
from optilux.thin_film import ThinFilm, TransferMatrixFilm

from .context import EvaluationContext
from .stages import (
    DispersionStage,
    DrudeMetalStage,
    MetalReflectanceStage,
    MieScatteringStage,
    MultilayerStage,
    SpectralStage,
    ThermoOpticStage,
    ThinFilmStage,
    check_stage,
)

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = 1e-6


@dataclass(frozen=True)
class EnergyViolation:
    """One failed energy check.

    ``component`` is 'sum' when R + T + A deviates from 1 (``delta`` is the
    signed deviation), or 'R', 'T', 'A' when that component leaves [0, 1]
    (``delta`` is the signed excess beyond the nearest bound).
    """

    stage_index: int
    stage_name: str
    wavelength_nm: float
    delta: float
    component: str = "sum"


@dataclass(frozen=True)
class EnergyReport:
    violations: tuple[EnergyViolation, ...] = ()
    stages_checked: int = 0
    max_abs_delta: float = 0.0

    @property
    def is_conserved(self) -> bool:
        return not self.violations

    def __bool__(self):
        return self.is_conserved

    def for_stage(self, stage_index: int) -> tuple[EnergyViolation, ...]:
        return tuple(v for v in self.violations if v.stage_index == stage_index)


class SpectralPipeline:
    """Immutable ordered sequence of stages.

    The pipeline keeps its own copies of the stages it is given, so later
    changes to those objects do not affect it. ``add_stage`` returns a new
    pipeline.

    Args:
        stages: Stages in evaluation order.
    """

    def __init__(self, stages=()):
        self._stages = tuple(copy.deepcopy(check_stage(s)) for s in stages)

    @property
    def stages(self) -> tuple[SpectralStage, ...]:
        return self._stages

    def add_stage(self, stage: SpectralStage) -> SpectralPipeline:
        return SpectralPipeline(self._stages + (check_stage(stage),))

    def __len__(self):
        return len(self._stages)

    def __iter__(self):
        return iter(self._stages)

    def stage_count(self) -> int:
        return len(self._stages)

    def stage_names(self) -> list[str]:
        return [stage.name for stage in self._stages]

    def evaluate(
        self, incident: SpectralSignal, context: EvaluationContext | None = None
    ) -> SpectralSignal:
        """Pass ``incident`` through every stage in insertion order."""
        context = context or EvaluationContext()
        signal = incident
        for stage in self._stages:
            signal = stage.evaluate(signal, context)
        return signal

    def evaluate_with_intermediates(
        self, incident: SpectralSignal, context: EvaluationContext | None = None
    ) -> list[tuple[str, SpectralSignal]]:
        """The incident signal followed by the output of every stage."""
        context = context or EvaluationContext()
        results = [("Incident", incident)]
        signal = incident
        for stage in self._stages:
            signal = stage.evaluate(signal, context)
            results.append((stage.name, signal))
        return results

    def verify_energy_conservation(
        self,
        context: EvaluationContext | None = None,
        tolerance: float = DEFAULT_TOLERANCE,
    ) -> EnergyReport:
        """Re-derive R, T, A of every stage and check R + T + A = 1.

        Every wavelength where the sum deviates by more than ``tolerance``,
        or where a component leaves [0, 1], is reported. This never raises;
        violations are also logged as warnings.
        """
        context = context or EvaluationContext()
        violations = []
        max_abs = 0.0
        for index, stage in enumerate(self._stages):
            R, T, A = (be.as_float_array(c) for c in stage.interaction(context))
            delta = R + T + A - 1.0
            max_abs = max(max_abs, float(be.max(be.abs(delta))))
            for i in be.nonzero(be.abs(delta) > tolerance)[0]:
                violations.append(
                    EnergyViolation(index, stage.name, float(WAVELENGTHS_NM[i]), float(delta[i]))
                )
            for label, comp in (("R", R), ("T", T), ("A", A)):
                excess = be.where(comp < 0.0, comp, be.where(comp > 1.0, comp - 1.0, 0.0))
                for i in be.nonzero(be.abs(excess) > tolerance)[0]:
                    violations.append(
                        EnergyViolation(
                            index, stage.name, float(WAVELENGTHS_NM[i]), float(excess[i]), label
                        )
                    )

        if violations:
            logger.warning(
                "Energy conservation violated at %d point(s), max |R+T+A-1| = %.3g",
                len(violations),
                max_abs,
            )
        return EnergyReport(tuple(violations), len(self._stages), max_abs)

    def to_dict(self) -> dict:
        return {"stages": [stage.to_dict() for stage in self._stages]}

    @classmethod
    def from_dict(cls, data: dict) -> SpectralPipeline:
        """Creates a pipeline from a dictionary.

        Raises:
            MalformedInputError: If ``data`` has no list of stages or a
                stage cannot be decoded.
        """
        if not isinstance(data, dict) or not isinstance(data.get("stages"), list):
            raise MalformedInputError("Pipeline data must be an object with a 'stages' list")
        return cls(SpectralStage.from_dict(stage) for stage in data["stages"])

    def to_json(self, indent: int | None = None) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, text: str) -> SpectralPipeline:
        try:
            data = json.loads(text)
        except (TypeError, json.JSONDecodeError) as exc:
            raise MalformedInputError(f"Invalid pipeline JSON: {exc}") from exc
        return cls.from_dict(data)

    def __eq__(self, other):
        if not isinstance(other, SpectralPipeline):
            return NotImplemented
        return self._stages == other._stages

    __hash__ = None

    def __repr__(self):
        return "SpectralPipeline(" + " -> ".join(self.stage_names()) + ")"


class PipelineBuilder:
    """Fluent construction of a ``SpectralPipeline``."""

    def __init__(self):
        self._stages = []

    def with_stage(self, stage: SpectralStage) -> PipelineBuilder:
        self._stages.append(check_stage(stage))
        return self

    def with_thin_film(self, n_film: float, thickness_nm: float, n_substrate: float = 1.52):
        return self.with_stage(ThinFilmStage(ThinFilm(n_film, thickness_nm), n_substrate))

    def with_multilayer(self, film: TransferMatrixFilm, polarization: str = "u"):
        return self.with_stage(MultilayerStage(film, polarization))

    def with_bragg_mirror(self, n_high=2.35, n_low=1.46, design_wavelength_nm=550.0, pairs=5):
        return self.with_stage(MultilayerStage.bragg_mirror(n_high, n_low, design_wavelength_nm, pairs))

    def with_dispersion(self, a: float, b: float, c: float = 0.0):
        """Cauchy dispersion n = a + b/λ² + c/λ⁴ (λ in nm)."""
        return self.with_stage(DispersionStage(CauchyDispersion(a, b, c)))

    def with_crown_glass_dispersion(self):
        return self.with_stage(DispersionStage.crown_glass())

    def with_mie_scattering(
        self, radius_um: float, n_particle: float, n_medium: float = 1.0, optical_depth: float = 1.0
    ):
        return self.with_stage(
            MieScatteringStage(MieParams(radius_um, n_particle, n_medium), optical_depth)
        )

    def with_fog(self):
        return self.with_stage(MieScatteringStage.fog())

    def with_thermo_optic(self, n_base: float, dn_dt: float, thickness_nm: float, alpha: float):
        return self.with_stage(ThermoOpticStage(n_base, dn_dt, thickness_nm, alpha))

    def with_metal(self, metal: str | SpectralComplexIOR | MetalReflectanceStage):
        if isinstance(metal, MetalReflectanceStage):
            return self.with_stage(metal)
        if isinstance(metal, str):
            return self.with_stage(MetalReflectanceStage.from_name(metal))
        return self.with_stage(MetalReflectanceStage(metal))

    def with_gold(self):
        return self.with_metal("gold")

    def with_silver(self):
        return self.with_metal("silver")

    def with_copper(self):
        return self.with_metal("copper")

    def with_drude_metal(self, metal: DrudeMetal):
        return self.with_stage(DrudeMetalStage(metal))

    def build(self) -> SpectralPipeline:
        return SpectralPipeline(self._stages)
