import math

import pytest

import optilux.backend as be
from optilux.errors import InvalidParameterError, SpectralShapeError
from optilux.spectral import (
    NUM_SAMPLES,
    RGB_WAVELENGTHS_NM,
    WAVELENGTHS_NM,
    SpectralSignal,
    wavelengths,
)
from tests.utils import assert_allclose


class TestGrid:
    def test_grid_shape(self, set_test_backend):
        assert NUM_SAMPLES == 33
        assert len(wavelengths()) == 33
        assert WAVELENGTHS_NM[0] == 380.0
        assert WAVELENGTHS_NM[-1] == 700.0
        assert_allclose(be.diff(WAVELENGTHS_NM), 10.0)

    def test_grid_is_read_only(self, set_test_backend):
        with pytest.raises(ValueError):
            WAVELENGTHS_NM[0] = 0.0

    def test_rgb_anchors(self):
        assert RGB_WAVELENGTHS_NM == (650.0, 550.0, 450.0)


class TestSpectralSignal:
    def test_uniform(self, set_test_backend):
        signal = SpectralSignal.uniform(0.5)
        assert len(signal) == 33
        assert_allclose(signal.intensities, 0.5)
        assert signal.total_energy() == pytest.approx(0.5 * 320.0)

    def test_zeros(self, set_test_backend):
        assert SpectralSignal.zeros().total_energy() == 0.0

    def test_wrong_length_raises(self, set_test_backend):
        with pytest.raises(SpectralShapeError) as info:
            SpectralSignal([1.0] * 32)
        assert info.value.length == 32
        assert info.value.expected == 33

    def test_shape_error_is_value_error(self, set_test_backend):
        with pytest.raises(ValueError):
            SpectralSignal([])

    def test_non_finite_raises(self, set_test_backend):
        values = [1.0] * 33
        values[5] = math.nan
        with pytest.raises(InvalidParameterError):
            SpectralSignal(values)

    def test_negative_values_clamped(self, set_test_backend):
        signal = SpectralSignal([-1.0] * 33)
        assert_allclose(signal.intensities, 0.0)

    def test_immutable(self, set_test_backend):
        signal = SpectralSignal.uniform(1.0)
        with pytest.raises(ValueError):
            signal.intensities[0] = 2.0

    def test_d65_normalized_at_560(self, set_test_backend):
        d65 = SpectralSignal.d65()
        assert d65.intensity_at(560.0) == pytest.approx(1.0, abs=1e-6)

    def test_from_function(self, set_test_backend):
        signal = SpectralSignal.from_function(lambda wl: wl / 700.0)
        assert signal.intensity_at(700.0) == pytest.approx(1.0)
        assert signal.peak_wavelength() == 700.0

    def test_from_samples_interpolates(self, set_test_backend):
        signal = SpectralSignal.from_samples([700.0, 380.0], [1.0, 0.0])
        assert signal.intensity_at(540.0) == pytest.approx(0.5)

    def test_from_samples_mismatched(self, set_test_backend):
        with pytest.raises(InvalidParameterError):
            SpectralSignal.from_samples([400.0, 500.0], [1.0])

    def test_intensity_at_clamps_outside_grid(self, set_test_backend):
        signal = SpectralSignal.from_function(lambda wl: wl)
        assert signal.intensity_at(200.0) == pytest.approx(380.0)
        assert signal.intensity_at(900.0) == pytest.approx(700.0)

    def test_multiply(self, set_test_backend):
        a = SpectralSignal.uniform(0.5)
        b = SpectralSignal.uniform(0.4)
        assert_allclose((a * b).intensities, 0.2)
        assert_allclose((a * 2).intensities, 1.0)
        assert_allclose((2 * a).intensities, 1.0)

    def test_multiply_wrong_shape(self, set_test_backend):
        with pytest.raises(SpectralShapeError):
            SpectralSignal.uniform().multiply(be.ones(10))

    def test_multiply_returns_new_signal(self, set_test_backend):
        a = SpectralSignal.uniform(0.5)
        a.scale(2.0)
        assert_allclose(a.intensities, 0.5)

    def test_equality_and_hash(self, set_test_backend):
        a = SpectralSignal.uniform(0.3)
        b = SpectralSignal.uniform(0.3)
        assert a == b
        assert hash(a) == hash(b)
        assert a != SpectralSignal.uniform(0.4)

    def test_iteration_and_indexing(self, set_test_backend):
        signal = SpectralSignal.from_function(lambda wl: wl)
        assert list(signal)[0] == 380.0
        assert signal[-1] == 700.0
        assert len(signal.to_list()) == 33

    def test_white_reflector_luminance(self, set_test_backend):
        X, Y, Z = SpectralSignal.uniform(1.0).to_xyz()
        assert Y == pytest.approx(100.0, abs=1e-6)

    def test_white_reflector_color(self, set_test_backend):
        rgb = SpectralSignal.uniform(1.0).to_srgb()
        assert be.all(rgb > 0.9)
        assert SpectralSignal.zeros().to_hex() == "#000000"

    def test_narrow_band_hue(self, set_test_backend):
        red = SpectralSignal.from_function(lambda wl: 1.0 if wl >= 620 else 0.0)
        r, g, b = red.to_linear_rgb()
        assert r > g and r > b

    def test_repr(self, set_test_backend):
        assert "SpectralSignal" in repr(SpectralSignal.uniform())
