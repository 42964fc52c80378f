import matplotlib.pyplot as plt
import numpy as np
import pytest

import optilux.backend as be
from optilux.colorimetry import (
    CVDType,
    contrast_ratio,
    core,
    delta_e2000,
    delta_e2000_batch,
    relative_luminance,
    relative_luminance_batch,
    simulate_cvd,
    simulate_cvd_hex,
)
from optilux.colorimetry.plotting import plot_chromaticity, plot_spectrum
from optilux.spectral import SpectralSignal
from tests.utils import assert_allclose


def _as_float(value):
    if hasattr(value, "item"):
        return float(value.item())
    return float(value)


def test_spectrum_to_xyz_white_reflectance():
    wavelengths = list(range(380, 781, 5))
    values = [1.0] * len(wavelengths)

    X, Y, Z = core.spectrum_to_xyz(wavelengths=wavelengths, values=values)
    assert_allclose(Y, 100.0, rtol=1e-6, atol=1e-6)
    x, y, _ = core.xyz_to_xyY(X, Y, Z)
    # D65 white point
    assert abs(_as_float(x) - 0.3127) < 2e-3
    assert abs(_as_float(y) - 0.3290) < 2e-3


def test_spectrum_to_xyz_requires_visible_range():
    wavelengths = list(range(420, 701, 10))
    values = [1.0] * len(wavelengths)

    with pytest.raises(ValueError):
        core.spectrum_to_xyz(wavelengths=wavelengths, values=values)


def test_spectrum_to_xyz_illuminant_length_check():
    wavelengths = list(range(380, 781, 5))
    values = [1.0] * len(wavelengths)

    with pytest.raises(ValueError):
        core.spectrum_to_xyz(wavelengths, values, illuminant=[1.0, 2.0])


def test_signal_tail_is_held_at_700nm():
    values = np.zeros(33)
    values[-1] = 1.0
    X, Y, Z = SpectralSignal(values).to_xyz()
    extended = core.spectrum_to_xyz(
        list(be.to_numpy(SpectralSignal(values).wavelengths)) + [780.0],
        list(values) + [1.0],
        kind="linear",
    )
    assert Y > 0.0
    assert (X, Y, Z) == pytest.approx(extended)


def test_xyz_to_xyY_vectorized_inputs():
    xyz = be.asarray([[95.047, 100.0, 108.883], [50.0, 50.0, 50.0]])
    x, y, Y = core.xyz_to_xyY(xyz)
    assert_allclose(Y, [100.0, 50.0])
    assert_allclose(x[1], 1.0 / 3.0)


def test_xyz_to_xyY_handles_zero_sum():
    x, y, Y = core.xyz_to_xyY(0.0, 0.0, 0.0)
    assert np.isfinite(_as_float(x))
    assert np.isfinite(_as_float(y))


def test_xyz_to_srgb_white_point():
    r, g, b = core.xyz_to_srgb(95.047, 100.0, 108.883)
    assert (_as_float(r), _as_float(g), _as_float(b)) == (255, 255, 255)


def test_srgb_transfer_round_trip():
    values = be.linspace(0.0, 1.0, 11)
    assert_allclose(core.srgb_to_linear(core.linear_to_srgb(values)), values, atol=1e-9)


def test_hex_helpers():
    assert core.rgb_to_hex(255, 0, 0) == "#ff0000"
    assert core.hex_to_rgb("#fff") == (255, 255, 255)
    assert core.hex_to_rgb("00ff80") == (0, 255, 128)
    assert core.float_rgb_to_hex([0.0, 0.0, 1.0]) == "#0000ff"
    with pytest.raises(ValueError):
        core.hex_to_rgb("#12")


def test_lab_of_white():
    lab = core.srgb_to_lab(be.asarray([1.0, 1.0, 1.0]))
    assert_allclose(lab, [100.0, 0.0, 0.0], atol=1e-3)


class TestLuminance:
    def test_extremes(self):
        assert relative_luminance("#ffffff") == pytest.approx(1.0)
        assert relative_luminance("#000000") == pytest.approx(0.0)

    def test_contrast_white_black(self):
        assert contrast_ratio("#ffffff", "#000000") == pytest.approx(21.0)

    def test_contrast_is_symmetric(self):
        a, b = (0.2, 0.4, 0.6), (0.9, 0.8, 0.1)
        assert contrast_ratio(a, b) == pytest.approx(contrast_ratio(b, a))

    def test_batch_matches_single(self):
        colors = be.asarray([[1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]])
        batch = relative_luminance_batch(colors)
        assert_allclose(batch, [0.2126, 0.7152, 0.0722], atol=1e-9)
        assert batch[1] == pytest.approx(relative_luminance(colors[1]))


class TestDeltaE2000:
    @pytest.mark.parametrize(
        "lab1, lab2, expected",
        [
            ((50.0, 2.6772, -79.7751), (50.0, 0.0, -82.7485), 2.0425),
            ((50.0, 3.1571, -77.2803), (50.0, 0.0, -82.7485), 2.8615),
            ((50.0, 0.0, 0.0), (50.0, -1.0, 2.0), 2.3669),
            ((50.0, 2.5, 0.0), (73.0, 25.0, -18.0), 27.1492),
        ],
    )
    def test_sharma_reference_pairs(self, lab1, lab2, expected):
        assert _as_float(delta_e2000(lab1, lab2)) == pytest.approx(expected, abs=1e-4)

    def test_identical_colors(self):
        assert _as_float(delta_e2000((60.0, 10.0, -5.0), (60.0, 10.0, -5.0))) == pytest.approx(0.0)

    def test_batch(self):
        a = be.asarray([[1.0, 1.0, 1.0], [0.5, 0.2, 0.1]])
        b = be.asarray([[1.0, 1.0, 1.0], [0.5, 0.25, 0.1]])
        result = delta_e2000_batch(a, b)
        assert result.shape == (2,)
        assert result[0] == pytest.approx(0.0, abs=1e-9)
        assert result[1] > 0.0


class TestCVD:
    @pytest.mark.parametrize("cvd", list(CVDType))
    def test_white_preserved(self, cvd):
        assert_allclose(simulate_cvd(be.asarray([1.0, 1.0, 1.0]), cvd), [1.0, 1.0, 1.0], atol=1e-4)

    @pytest.mark.parametrize("cvd", list(CVDType))
    def test_grey_preserved(self, cvd):
        assert_allclose(simulate_cvd(be.asarray([0.3, 0.3, 0.3]), cvd), [0.3, 0.3, 0.3], atol=1e-4)

    def test_parse_short_names(self):
        assert CVDType.from_str("protan") is CVDType.PROTANOPIA
        assert CVDType.from_str("Deuteranopia") is CVDType.DEUTERANOPIA
        assert CVDType.from_str("t") is CVDType.TRITANOPIA
        with pytest.raises(ValueError):
            CVDType.from_str("monochromacy")

    def test_red_green_confusion(self):
        red = simulate_cvd(be.asarray([1.0, 0.0, 0.0]), "protanopia")
        green = simulate_cvd(be.asarray([0.0, 1.0, 0.0]), "protanopia")
        assert abs(float(red[0]) - float(red[1])) < 0.2
        assert abs(float(green[0]) - float(green[1])) < 0.2

    def test_hex(self):
        assert simulate_cvd_hex("#ffffff", "deuteranopia") == "#ffffff"


def test_plot_spectrum():
    fig, ax = plot_spectrum(SpectralSignal.d65(), label="D65")
    assert fig is not None
    assert ax.get_legend() is not None
    plt.close(fig)


def test_plot_chromaticity_with_signals():
    signals = {"white": SpectralSignal.uniform(1.0), "red": SpectralSignal.from_function(lambda wl: wl > 600)}
    fig, ax = plot_chromaticity(signals)
    assert fig is not None
    assert ax is not None
    plt.close(fig)
