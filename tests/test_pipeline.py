import logging
import math
from dataclasses import replace

import pytest

import optilux.backend as be
from optilux.errors import InvalidParameterError, MalformedInputError
from optilux.materials import GOLD, DrudeMetal, SellmeierDispersion
from optilux.pipeline import (
    DispersionStage,
    DrudeMetalStage,
    EnergyReport,
    EvaluationContext,
    MetalReflectanceStage,
    MieScatteringStage,
    MultilayerStage,
    PipelineBuilder,
    SpectralPipeline,
    SpectralStage,
    ThermoOpticStage,
    ThinFilmStage,
)
from optilux.scattering import MieParams
from optilux.spectral import WAVELENGTHS_NM, SpectralSignal
from optilux.thin_film import FilmLayer, ThinFilm, TransferMatrixFilm

from .utils import assert_allclose


class _FixedStage(SpectralStage):
    """Stage returning constant R, T, A, used to exercise the energy audit."""

    display_name = "Fixed"

    def __init__(self, R, T, A, mode="reflect"):
        super().__init__(mode)
        self.R, self.T, self.A = R, T, A

    def interaction(self, context):
        return (be.full(33, self.R), be.full(33, self.T), be.full(33, self.A))

    def _params(self):
        return {"R": self.R, "T": self.T, "A": self.A}

    @classmethod
    def _from_dict(cls, data):
        return cls(data["R"], data["T"], data["A"], data.get("mode", "reflect"))


def all_stages():
    return [
        ThinFilmStage.soap_bubble(),
        ThinFilmStage.oil_slick(),
        MultilayerStage.bragg_mirror(),
        MultilayerStage.morpho_butterfly(),
        MultilayerStage(TransferMatrixFilm.optical_disc()),
        DispersionStage.crown_glass(),
        DispersionStage(SellmeierDispersion.sf11()),
        MieScatteringStage.fog(),
        MieScatteringStage.milk(),
        ThermoOpticStage.glass_coating(),
        MetalReflectanceStage.gold(),
        MetalReflectanceStage.aluminum(),
        DrudeMetalStage.silver(),
    ]


@pytest.fixture
def full_pipeline():
    return SpectralPipeline(all_stages())


class TestEvaluationContext:
    def test_defaults(self):
        ctx = EvaluationContext()
        assert ctx.angle_deg == 0.0
        assert ctx.temperature_k == 293.15
        assert ctx.cos_theta == 1.0

    def test_clamping(self):
        ctx = EvaluationContext(angle_deg=120.0, temperature_k=0.0, position=(2.0, -1.0))
        assert ctx.angle_deg == 90.0
        assert ctx.temperature_k == 1.0
        assert ctx.position == (1.0, 0.0)
        assert ctx.cos_theta == pytest.approx(1e-6)

    def test_negative_angle_is_mirrored(self):
        assert EvaluationContext(angle_deg=-30.0).angle_deg == 30.0

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"angle_deg": math.nan},
            {"temperature_k": math.inf},
            {"stress_pa": (0.0,) * 5},
            {"position": (0.5,)},
        ],
    )
    def test_invalid(self, kwargs):
        with pytest.raises(InvalidParameterError):
            EvaluationContext(**kwargs)

    def test_with_helpers(self):
        ctx = EvaluationContext()
        hot = ctx.with_temperature(500.0).with_angle_deg(45.0)
        assert ctx.temperature_k == 293.15
        assert hot.temperature_k == 500.0
        assert hot.cos_theta == pytest.approx(math.sqrt(0.5))
        assert ctx.with_position(0.1, 0.9).position == (0.1, 0.9)
        assert ctx.with_stress([1.0] * 6).stress_pa == (1.0,) * 6

    def test_dict_round_trip(self):
        ctx = EvaluationContext(30.0, 400.0, (1.0, 2.0, 3.0, 0.0, 0.0, 0.0), (0.2, 0.8))
        assert EvaluationContext.from_dict(ctx.to_dict()) == ctx


class TestStages:
    @pytest.mark.parametrize("angle", [0.0, 35.0, 70.0, 89.0])
    def test_every_stage_conserves_energy(self, set_test_backend, angle):
        ctx = EvaluationContext(angle_deg=angle)
        for stage in all_stages():
            R, T, A = stage.interaction(ctx)
            assert R.shape == (33,), stage.name
            assert_allclose(R + T + A, 1.0, atol=1e-9)
            for component in (R, T, A):
                assert be.all((component >= -1e-9) & (component <= 1.0 + 1e-9)), stage.name

    def test_invalid_mode(self):
        with pytest.raises(ValueError):
            ThinFilmStage(ThinFilm.soap_bubble_medium(), mode="absorb")

    def test_invalid_polarization(self):
        with pytest.raises(ValueError):
            MultilayerStage(TransferMatrixFilm.bragg_mirror(), polarization="x")

    def test_thin_film_stage(self, set_test_backend):
        film = ThinFilm.oil_medium()
        stage = ThinFilmStage(film, 1.33)
        out = stage.evaluate(SpectralSignal.uniform(1.0), EvaluationContext())
        assert_allclose(out.intensities, film.reflectance_curve(1.33))

    def test_transmit_mode(self, set_test_backend):
        film = ThinFilm.oil_medium()
        stage = ThinFilmStage(film, 1.33, mode="transmit")
        out = stage.evaluate(SpectralSignal.uniform(1.0), EvaluationContext())
        assert_allclose(out.intensities, 1.0 - film.reflectance_curve(1.33))

    def test_metal_stage_is_opaque(self, set_test_backend):
        R, T, A = MetalReflectanceStage.gold().interaction(EvaluationContext())
        assert_allclose(T, 0.0)
        assert_allclose(R, GOLD.reflectance_curve(1.0))
        assert float(R[-1]) > float(R[0])

    def test_metal_from_name(self):
        assert MetalReflectanceStage.from_name("Au") == MetalReflectanceStage.gold()

    def test_dispersion_stage_is_colored(self, set_test_backend):
        R, _, _ = DispersionStage.flint_glass().interaction(EvaluationContext())
        assert float(R[0]) > float(R[-1])

    def test_mie_stage(self, set_test_backend):
        clear = MieScatteringStage(MieParams.mist(), optical_depth=0.0)
        R, T, _ = clear.interaction(EvaluationContext())
        assert_allclose(T, 1.0)
        assert_allclose(R, 0.0)

        fog = MieScatteringStage.fog()
        _, T0, _ = fog.interaction(EvaluationContext(angle_deg=0.0))
        _, T60, _ = fog.interaction(EvaluationContext(angle_deg=60.0))
        assert be.all(T60 < T0)

    def test_mie_stage_small_particles_scatter_blue(self, set_test_backend):
        stage = MieScatteringStage(MieParams.fine_dust(), optical_depth=5.0)
        R, _, _ = stage.interaction(EvaluationContext())
        assert float(R[0]) > float(R[-1])

    def test_thermo_optic(self, set_test_backend):
        stage = ThermoOpticStage.glass_coating()
        assert stage.n_effective(293.15) == pytest.approx(1.52)
        assert stage.n_effective(393.15) == pytest.approx(1.52 + 1e-3)
        assert stage.n_effective(293.15, (1e6, 1e6, 1e6, 0.0, 0.0, 0.0)) == pytest.approx(
            1.52 - 2.7e-6
        )
        assert stage.thickness_effective(393.15) == pytest.approx(200.0 * (1 + 7e-4))
        cold = stage.interaction(EvaluationContext(temperature_k=293.15))[0]
        hot = stage.interaction(EvaluationContext(temperature_k=893.15))[0]
        assert not be.allclose(cold, hot)

    def test_drude_stage_follows_temperature(self, set_test_backend):
        stage = DrudeMetalStage(DrudeMetal.gold())
        cold = stage.interaction(EvaluationContext(temperature_k=300.0))[0]
        hot = stage.interaction(EvaluationContext(temperature_k=1200.0))[0]
        # free-electron region; below the screened plasma edge damping raises R
        red = WAVELENGTHS_NM >= 550.0
        assert be.all(hot[red] < cold[red])
        assert float(hot[0]) > float(cold[0])

    @pytest.mark.parametrize("stage", all_stages(), ids=lambda s: type(s).__name__)
    def test_dict_round_trip(self, stage):
        restored = SpectralStage.from_dict(stage.to_dict())
        assert restored == stage
        assert type(restored) is type(stage)

    @pytest.mark.parametrize(
        "data",
        [
            None,
            {},
            {"type": "NoSuchStage"},
            {"type": "ThinFilmStage"},
            {"type": "MieScatteringStage", "particle": {"radius_um": 1.0}},
        ],
    )
    def test_from_dict_malformed(self, data):
        with pytest.raises(MalformedInputError):
            SpectralStage.from_dict(data)

    def test_stages_are_not_hashable(self):
        with pytest.raises(TypeError):
            hash(ThinFilmStage.soap_bubble())


class TestSpectralPipeline:
    def test_empty_pipeline_is_identity(self, set_test_backend):
        signal = SpectralSignal.d65()
        assert SpectralPipeline().evaluate(signal) == signal

    def test_composition(self, set_test_backend):
        ctx = EvaluationContext(angle_deg=20.0)
        gold = MetalReflectanceStage.gold()
        film = ThinFilmStage.ar_coating()
        pipeline = SpectralPipeline([gold, film])
        incident = SpectralSignal.d65()
        expected = incident.intensities * gold.interaction(ctx)[0] * film.interaction(ctx)[0]
        assert_allclose(pipeline.evaluate(incident, ctx).intensities, expected)

    def test_intermediates(self, set_test_backend, full_pipeline):
        results = full_pipeline.evaluate_with_intermediates(SpectralSignal.uniform())
        assert len(results) == len(full_pipeline) + 1
        assert results[0][0] == "Incident"
        assert results[1][0] == "Thin Film"
        assert results[-1][1] == full_pipeline.evaluate(SpectralSignal.uniform())

    def test_output_bounded_by_input(self, set_test_backend, full_pipeline):
        out = full_pipeline.evaluate(SpectralSignal.uniform(1.0), EvaluationContext(angle_deg=30.0))
        assert be.all(out.intensities <= 1.0)

    def test_pipeline_copies_stages(self, set_test_backend):
        stage = ThinFilmStage.soap_bubble()
        pipeline = SpectralPipeline([stage])
        stage.mode = "transmit"
        assert pipeline.stages[0].mode == "reflect"

    def test_add_stage_returns_new_pipeline(self):
        pipeline = SpectralPipeline([ThinFilmStage.soap_bubble()])
        extended = pipeline.add_stage(MetalReflectanceStage.gold())
        assert len(pipeline) == 1
        assert extended.stage_count() == 2
        assert extended.stage_names() == ["Thin Film", "Metal Reflectance"]

    def test_rejects_non_stage(self):
        with pytest.raises(InvalidParameterError):
            SpectralPipeline(["not a stage"])
        with pytest.raises(InvalidParameterError):
            SpectralPipeline().add_stage(42)

    def test_energy_report_for_physical_stages(self, set_test_backend, full_pipeline):
        report = full_pipeline.verify_energy_conservation(EvaluationContext(angle_deg=45.0))
        assert isinstance(report, EnergyReport)
        assert report.is_conserved
        assert bool(report)
        assert report.stages_checked == len(full_pipeline)
        assert report.max_abs_delta < 1e-6

    def test_energy_report_flags_sum(self, set_test_backend, caplog):
        pipeline = SpectralPipeline([ThinFilmStage.soap_bubble(), _FixedStage(0.5, 0.6, 0.0)])
        with caplog.at_level(logging.WARNING, logger="optilux.pipeline.pipeline"):
            report = pipeline.verify_energy_conservation()
        assert not report.is_conserved
        assert len(report.violations) == 33
        assert report.for_stage(0) == ()
        violation = report.for_stage(1)[0]
        assert violation.stage_name == "Fixed"
        assert violation.component == "sum"
        assert violation.delta == pytest.approx(0.1)
        assert violation.wavelength_nm == 380.0
        assert report.max_abs_delta == pytest.approx(0.1)
        assert "Energy conservation violated" in caplog.text

    def test_energy_report_flags_components(self, set_test_backend):
        report = SpectralPipeline([_FixedStage(1.2, -0.2, 0.0)]).verify_energy_conservation()
        components = {v.component for v in report.violations}
        assert components == {"R", "T"}
        assert len(report.violations) == 66
        deltas = {v.component: v.delta for v in report.violations}
        assert deltas["R"] == pytest.approx(0.2)
        assert deltas["T"] == pytest.approx(-0.2)

    def test_energy_report_sees_multilayer_gain(self, set_test_backend):
        gain = FilmLayer(1.5, 500.0)
        object.__setattr__(gain, "k", -0.05)
        film = replace(TransferMatrixFilm(1.0, 1.52), layers=(gain,))
        report = SpectralPipeline([MultilayerStage(film)]).verify_energy_conservation()
        assert not report.is_conserved
        components = {v.component for v in report.violations}
        assert "A" in components
        assert "sum" not in components
        assert all(v.delta < 0.0 for v in report.violations if v.component == "A")

    def test_energy_tolerance(self, set_test_backend):
        pipeline = SpectralPipeline([_FixedStage(0.5, 0.5, 1e-4)])
        assert not pipeline.verify_energy_conservation().is_conserved
        assert pipeline.verify_energy_conservation(tolerance=1e-3).is_conserved

    def test_json_round_trip(self, set_test_backend, full_pipeline):
        restored = SpectralPipeline.from_json(full_pipeline.to_json(indent=2))
        assert restored == full_pipeline
        ctx = EvaluationContext(angle_deg=25.0, temperature_k=400.0)
        signal = SpectralSignal.d65()
        assert restored.evaluate(signal, ctx) == full_pipeline.evaluate(signal, ctx)

    @pytest.mark.parametrize(
        "text",
        [
            "not json",
            "[1, 2]",
            '{"stages": 3}',
            '{"stages": [{"type": "NoSuchStage"}]}',
            '{"stages": [{"type": "ThinFilmStage"}]}',
        ],
    )
    def test_from_json_malformed(self, text):
        with pytest.raises(MalformedInputError):
            SpectralPipeline.from_json(text)

    def test_not_hashable(self, full_pipeline):
        with pytest.raises(TypeError):
            hash(full_pipeline)

    def test_repr(self):
        pipeline = SpectralPipeline([ThinFilmStage.soap_bubble(), MetalReflectanceStage.gold()])
        assert repr(pipeline) == "SpectralPipeline(Thin Film -> Metal Reflectance)"


class TestPipelineBuilder:
    def test_fluent_build(self, set_test_backend):
        pipeline = (
            PipelineBuilder()
            .with_thin_film(1.33, 300.0, 1.0)
            .with_gold()
            .with_fog()
            .with_crown_glass_dispersion()
            .build()
        )
        assert pipeline.stage_names() == [
            "Thin Film",
            "Metal Reflectance",
            "Mie Scattering",
            "Dispersion",
        ]
        assert pipeline.verify_energy_conservation().is_conserved

    def test_metal_variants(self):
        pipeline = (
            PipelineBuilder()
            .with_metal("copper")
            .with_metal(GOLD)
            .with_metal(MetalReflectanceStage.silver())
            .with_silver()
            .with_copper()
            .build()
        )
        assert len(pipeline) == 5
        assert pipeline.stages[0] == pipeline.stages[4]
        assert pipeline.stages[2] == pipeline.stages[3]

    def test_other_helpers(self):
        pipeline = (
            PipelineBuilder()
            .with_bragg_mirror(pairs=3)
            .with_multilayer(TransferMatrixFilm.nacre(), "s")
            .with_dispersion(1.5, 4000.0)
            .with_mie_scattering(1.0, 1.5, optical_depth=0.5)
            .with_thermo_optic(1.46, 1e-5, 150.0, 5e-7)
            .with_drude_metal(DrudeMetal.copper())
            .build()
        )
        assert len(pipeline) == 6
        assert pipeline.stages[1].polarization == "s"
        assert pipeline.verify_energy_conservation().is_conserved

    def test_rejects_non_stage(self):
        with pytest.raises(InvalidParameterError):
            PipelineBuilder().with_stage("gold")
