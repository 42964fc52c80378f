import math

import numpy as np
import pytest
from scipy import integrate

import optilux.backend as be
from optilux.errors import InvalidParameterError
from optilux.materials import GOLD, ComplexIOR
from optilux.pbr import (
    BSDFContext,
    BSDFResult,
    ConductorBSDF,
    DielectricBSDF,
    LambertianBSDF,
    LayeredBSDF,
    MicrofacetBSDF,
    PBRMaterial,
    ThinFilmBSDF,
    cook_torrance,
    cook_torrance_brdf,
    dielectric_response,
    evaluate_dielectric_batch,
    evaluate_material_batch,
    ggx_anisotropic_ndf,
    ggx_ndf,
    oren_nayar,
    shading_cosines,
    smith_g1,
    smith_g2,
    validate_energy_conservation,
)

from .utils import assert_allclose


def all_bsdfs():
    return [
        DielectricBSDF.glass(),
        DielectricBSDF.water(),
        DielectricBSDF.diamond(),
        DielectricBSDF.frosted_glass(),
        DielectricBSDF(1.5, full_fresnel=True),
        ConductorBSDF.gold(),
        ConductorBSDF.silver(),
        ConductorBSDF.copper(),
        ConductorBSDF.chrome(),
        ConductorBSDF.brushed(),
        ConductorBSDF(ComplexIOR(0.2, 3.5), roughness=1.0),
        ThinFilmBSDF.soap_bubble(),
        ThinFilmBSDF.oil_on_water(),
        ThinFilmBSDF.ar_coating(),
        LambertianBSDF.white(),
        LambertianBSDF.black(),
        MicrofacetBSDF.brushed_metal(),
        MicrofacetBSDF.polished_glass(),
        MicrofacetBSDF.matte_plastic(),
        LayeredBSDF([ThinFilmBSDF.soap_bubble(), ConductorBSDF.gold()]),
    ]


class TestMicrofacet:
    @pytest.mark.parametrize("roughness", [0.3, 0.5, 0.8, 1.0])
    def test_ggx_is_normalized(self, roughness):
        value, _ = integrate.quad(lambda mu: ggx_ndf(mu, roughness) * mu, 0.0, 1.0, limit=200)
        assert 2.0 * math.pi * value == pytest.approx(1.0, rel=1e-6)

    def test_ggx_smooth_limit_is_finite(self):
        peak = ggx_ndf(1.0, 0.0)
        assert math.isfinite(peak)
        assert peak > 1e5

    def test_ggx_vectorized(self, set_test_backend):
        values = ggx_ndf(be.asarray([0.2, 0.6, 1.0]), 0.5)
        assert values.shape == (3,)
        assert values[2] > values[1] > values[0]

    def test_anisotropic_reduces_to_isotropic(self, set_test_backend):
        nh = 0.8
        s = math.sqrt(1.0 - nh**2)
        iso = ggx_ndf(nh, 0.4)
        aniso = ggx_anisotropic_ndf(nh, s * 0.6, s * 0.8, 0.4, 0.4)
        assert aniso == pytest.approx(iso)

    def test_smith_masking(self, set_test_backend):
        assert smith_g1(1.0, 0.5) == pytest.approx(1.0)
        assert smith_g2(1.0, 1.0, 0.5) == pytest.approx(1.0)
        g = smith_g1(be.linspace(0.05, 1.0, 10), 0.7)
        assert be.all((g > 0.0) & (g <= 1.0))
        assert be.all(be.diff(g) > 0.0)

    def test_cook_torrance_below_surface(self):
        assert cook_torrance(0.5, -0.2, 0.9, 0.9, 0.5, 0.04) == 0.0
        assert cook_torrance(-0.5, 0.2, 0.9, 0.9, 0.5, 0.04) == 0.0

    def test_cook_torrance_rgb_f0(self, set_test_backend):
        value = cook_torrance(1.0, 1.0, 1.0, 1.0, 0.5, be.asarray([0.9, 0.6, 0.3]))
        assert value.shape == (3,)
        assert value[0] > value[1] > value[2]

    def test_cook_torrance_reciprocity(self, set_test_backend):
        normal = (0.0, 0.0, 1.0)
        view = (0.3, 0.1, 0.9)
        light = (-0.5, 0.2, 0.7)
        forward = cook_torrance_brdf(normal, view, light, 0.4, 1.5)
        backward = cook_torrance_brdf(normal, light, view, 0.4, 1.5)
        assert float(forward) == pytest.approx(float(backward))

    def test_oren_nayar_smooth_is_lambertian(self):
        assert oren_nayar(0.7, 0.4, 0.1, 0.0, 0.8) == pytest.approx(0.8 / math.pi)

    def test_oren_nayar_rgb_albedo(self, set_test_backend):
        value = oren_nayar(0.7, 0.4, 0.1, 0.5, be.asarray([0.9, 0.5, 0.1]))
        assert value.shape == (3,)

    def test_shading_cosines(self, set_test_backend):
        nv, nl, nh, hv, lv = shading_cosines((0, 0, 2), (0, 0, 1), (0, 0, 5))
        for value in (nv, nl, nh, hv, lv):
            assert float(value) == pytest.approx(1.0)


class TestBSDFResult:
    def test_normalizes(self):
        result = BSDFResult(0.5, 0.5, 0.5)
        assert result.reflectance == pytest.approx(1.0 / 3.0)
        assert result.total_energy() == pytest.approx(1.0)

    def test_negative_components(self):
        result = BSDFResult(-1.0, 0.5, 0.0)
        assert result.reflectance == 0.0
        assert result.transmittance == pytest.approx(1.0)

    def test_no_energy_is_absorbed(self):
        result = BSDFResult(0.0, 0.0, 0.0)
        assert (result.reflectance, result.transmittance, result.absorption) == (0.0, 0.0, 1.0)

    def test_constructors(self):
        assert BSDFResult.pure_reflection(1.5).reflectance == 1.0
        result = BSDFResult.pure_transmission(0.7)
        assert result.absorption == pytest.approx(0.3)
        assert result.is_energy_conserved()

    def test_as_array(self, set_test_backend):
        assert_allclose(BSDFResult(0.2, 0.3, 0.5).as_array(), [0.2, 0.3, 0.5])


class TestBSDFContext:
    def test_from_cos_theta(self):
        ctx = BSDFContext.from_cos_theta(0.5)
        assert ctx.cos_theta_i == pytest.approx(0.5)
        assert ctx.cos_theta_o == pytest.approx(0.5)
        assert ctx.half_vector == pytest.approx((0.0, 0.0, 1.0))

    def test_vectors_are_normalized(self):
        ctx = BSDFContext((0.0, 0.0, 3.0), (1.0, 0.0, 1.0))
        assert ctx.incident == (0.0, 0.0, 1.0)
        assert math.hypot(*ctx.outgoing) == pytest.approx(1.0)

    def test_invalid_wavelength(self):
        with pytest.raises(InvalidParameterError):
            BSDFContext(wavelength_nm=0.0)


class TestEnergyConservation:
    @pytest.mark.parametrize("bsdf", all_bsdfs(), ids=lambda b: b.name)
    @pytest.mark.parametrize("wavelength", [380.0, 450.0, 550.0, 650.0, 700.0])
    def test_sum_is_one(self, set_test_backend, bsdf, wavelength):
        for cos_theta in (1.0, 0.8, 0.5, 0.2, 0.01, 0.0):
            result = bsdf.evaluate_at(cos_theta, wavelength)
            assert result.total_energy() == pytest.approx(1.0, abs=1e-9)
            for value in (result.reflectance, result.transmittance, result.absorption):
                assert 0.0 <= value <= 1.0

    @pytest.mark.parametrize("roughness", np.linspace(0.0, 1.0, 6))
    def test_roughness_sweep(self, set_test_backend, roughness):
        for bsdf in (
            DielectricBSDF(1.5, roughness),
            ConductorBSDF(GOLD, roughness),
            MicrofacetBSDF(roughness, 0.5, 0.5, 0.8),
        ):
            assert validate_energy_conservation(bsdf).conserved

    def test_validate_energy_details(self):
        validation = DielectricBSDF.glass().validate_energy()
        assert validation.conserved
        assert validation.details.startswith("Energy conserved")


class TestDielectricBSDF:
    def test_normal_incidence(self):
        result = DielectricBSDF.glass().evaluate_at(1.0)
        assert result.reflectance == pytest.approx((0.52 / 2.52) ** 2)
        assert result.absorption == pytest.approx(0.0, abs=1e-12)

    def test_full_fresnel_matches_schlick_at_normal(self):
        exact = DielectricBSDF(1.5, full_fresnel=True).evaluate_at(1.0).reflectance
        assert exact == pytest.approx(0.04)

    def test_roughness_blends_diffuse(self):
        smooth = DielectricBSDF(1.5).evaluate_at(1.0).reflectance
        rough = DielectricBSDF(1.5, 0.5).evaluate_at(1.0).reflectance
        assert rough == pytest.approx(smooth * 0.5 + 0.025)

    def test_roughness_clamped(self):
        assert DielectricBSDF(1.5, 3.0).roughness == 1.0

    def test_dispersion(self):
        diamond = DielectricBSDF.diamond()
        assert diamond.ior_at(400.0) > diamond.ior_at(700.0)
        rgb = diamond.evaluate_rgb(1.0)
        assert rgb[2] > rgb[0]

    def test_response_vectorized(self, set_test_backend):
        R, T, A = dielectric_response([1.33, 1.5, 2.4], [0.0, 0.2, 0.9], [1.0, 0.5, 0.1])
        assert R.shape == (3,)
        assert_allclose(R + T + A, 1.0)


class TestConductorBSDF:
    def test_opaque(self):
        result = ConductorBSDF.gold().evaluate_at(0.7)
        assert result.transmittance == 0.0
        assert result.absorption == pytest.approx(1.0 - result.reflectance)

    def test_gold_color(self, set_test_backend):
        rgb = ConductorBSDF.gold().evaluate_rgb(1.0)
        assert rgb[0] > rgb[1] > rgb[2]

    def test_roughness_darkens(self):
        smooth = ConductorBSDF(GOLD).evaluate_at(1.0, 650.0).reflectance
        rough = ConductorBSDF(GOLD, 0.5).evaluate_at(1.0, 650.0).reflectance
        assert rough == pytest.approx(0.8 * smooth)

    def test_scalar_ior(self):
        bsdf = ConductorBSDF(ComplexIOR(0.2, 3.5))
        assert bsdf.evaluate_at(1.0, 400.0) == bsdf.evaluate_at(1.0, 700.0)


class TestThinFilmBSDF:
    def test_lossless(self):
        result = ThinFilmBSDF.soap_bubble().evaluate_at(0.8, 500.0)
        assert result.absorption == pytest.approx(0.0, abs=1e-12)
        assert result.reflectance + result.transmittance == pytest.approx(1.0)

    def test_spectrum_varies(self, set_test_backend):
        spectrum = ThinFilmBSDF.soap_bubble().evaluate_spectral(1.0)
        assert spectrum.shape == (33,)
        assert float(be.max(spectrum) - be.min(spectrum)) > 0.01

    def test_ar_coating_suppresses_reflection(self):
        coated = ThinFilmBSDF.ar_coating().evaluate_at(1.0, 552.0).reflectance
        bare = DielectricBSDF(1.52, full_fresnel=True).evaluate_at(1.0, 552.0).reflectance
        assert coated < bare


class TestLambertianAndMicrofacet:
    def test_lambertian(self):
        result = LambertianBSDF(0.6).evaluate_at(0.3)
        assert result.reflectance == pytest.approx(0.6)
        assert result.absorption == pytest.approx(0.4)

    def test_albedo_clamped(self):
        assert LambertianBSDF(1.4).albedo == 1.0

    def test_microfacet_grazing_light_is_absorbed(self):
        result = MicrofacetBSDF.matte_plastic().evaluate_at(0.0)
        assert result.absorption == 1.0

    def test_metallic_has_no_diffuse(self):
        metal = MicrofacetBSDF(0.5, 1.0, 0.0, 0.8).evaluate_at(1.0)
        plastic = MicrofacetBSDF(0.5, 0.0, 0.0, 0.8).evaluate_at(1.0)
        assert metal.reflectance < plastic.reflectance


class TestLayeredBSDF:
    def test_empty_transmits(self):
        result = LayeredBSDF().evaluate_at(0.5)
        assert result.transmittance == 1.0

    def test_glass_over_gold(self):
        glass = DielectricBSDF.glass()
        gold = ConductorBSDF.gold()
        top = glass.evaluate_at(1.0)
        bottom = gold.evaluate_at(1.0)
        result = LayeredBSDF([glass, gold]).evaluate_at(1.0)
        assert result.reflectance == pytest.approx(
            top.reflectance + top.transmittance * bottom.reflectance
        )
        assert result.transmittance == pytest.approx(0.0)

    def test_push(self):
        base = LayeredBSDF([DielectricBSDF.glass()])
        stacked = base.push(ConductorBSDF.gold())
        assert base.layer_count() == 1
        assert stacked.layer_count() == 2
        assert repr(stacked) == "LayeredBSDF(DielectricBSDF, ConductorBSDF)"


class TestPBRMaterial:
    @pytest.mark.parametrize(
        "kwargs",
        [
            {"metallic": 1.5},
            {"roughness": -0.1},
            {"base_color": (0.5, 0.5)},
            {"base_color": (0.5, 0.5, 2.0)},
            {"ior": 0.0},
        ],
    )
    def test_invalid(self, kwargs):
        with pytest.raises(InvalidParameterError):
            PBRMaterial(**kwargs)

    def test_f0(self, set_test_backend):
        assert_allclose(PBRMaterial(ior=1.5).f0(), [0.04, 0.04, 0.04])
        assert_allclose(PBRMaterial.gold().f0(), [1.0, 0.766, 0.336])

    def test_evaluate(self, set_test_backend):
        up = (0.0, 0.0, 1.0)
        value = PBRMaterial.gold().evaluate(up, up, up)
        assert value.shape == (3,)
        assert be.all(value >= 0.0)
        assert value[0] > value[2]

    def test_light_below_horizon(self, set_test_backend):
        value = PBRMaterial.plastic().evaluate((0, 0, 1), (0, 0, 1), (0, 0, -1))
        assert_allclose(value, [0.0, 0.0, 0.0])

    def test_to_bsdf(self):
        bsdf = PBRMaterial.copper().to_bsdf()
        assert isinstance(bsdf, MicrofacetBSDF)
        assert bsdf.metallic == 1.0
        assert bsdf.f0 == pytest.approx((0.955 + 0.638 + 0.538) / 3.0)
        assert PBRMaterial.rubber().evaluate_bsdf(0.6).is_energy_conserved()


class TestBatch:
    def test_dielectric_batch_matches_single(self, set_test_backend):
        iors = [1.33, 1.5, 2.4]
        roughnesses = [0.0, 0.5, 1.0]
        cos_thetas = [1.0, 0.5, 0.1]
        flat = evaluate_dielectric_batch(iors, roughnesses, cos_thetas)
        assert flat.shape == (9,)
        for i, row in enumerate(be.reshape(flat, (-1, 3))):
            single = DielectricBSDF(iors[i], roughnesses[i]).evaluate_at(cos_thetas[i])
            assert_allclose(row, single.as_array(), atol=1e-12)

    def test_dielectric_batch_length_mismatch(self):
        with pytest.raises(InvalidParameterError):
            evaluate_dielectric_batch([1.5, 1.5], [0.0], [1.0, 1.0])

    def test_material_batch(self, set_test_backend):
        result = evaluate_material_batch([1.5, 1.5], [0.0, 0.5], [1.0, 30.0], [0.0, 0.1])
        assert len(result) == 2
        assert_allclose(result.transmittance, [1.0, math.exp(-3.0)])
        assert_allclose(result.opacity, [0.2, 1.0 - 0.8 * math.exp(-3.0)])
        assert_allclose(result.scattering_radius_mm, [0.1, 7.0])
        assert_allclose(result.blur_px(), [0.1 * 96.0 / 25.4, 7.0 * 96.0 / 25.4])
        assert_allclose(result.fresnel_normal, [0.04, 0.04])
        assert_allclose(result.fresnel_grazing, [1.0, 1.0])

    def test_material_batch_view_angle(self, set_test_backend):
        plain = evaluate_material_batch([1.5], [0.0], [1.0], [0.0])
        viewed = evaluate_material_batch([1.5], [0.0], [1.0], [0.0], view_cos=1.0)
        assert_allclose(viewed.opacity, plain.opacity * (1.0 - 0.3 * 0.04))

    def test_material_batch_length_mismatch(self):
        with pytest.raises(InvalidParameterError):
            evaluate_material_batch([1.5], [0.0, 0.1], [1.0], [0.0])
