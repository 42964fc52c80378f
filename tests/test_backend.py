import numpy as np
import pytest

import optilux.backend as be
from optilux.materials import CauchyDispersion
from optilux.spectral import SpectralSignal
from optilux.thin_film import TransferMatrixFilm

from .utils import assert_allclose


@pytest.fixture
def single_precision():
    previous = be.get_precision()
    be.set_precision("float32")
    yield
    be.set_precision(previous)


class TestBackend:
    def test_default_backend(self):
        assert be.get_backend() == "numpy"
        assert "numpy" in be.list_available_backends()

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            be.set_backend("tensorflow")

    def test_forwarding(self):
        assert be.pi == np.pi
        assert_allclose(be.sqrt(be.asarray([4.0, 9.0])), [2.0, 3.0])

    def test_readonly(self):
        array = be.readonly([1.0, 2.0])
        with pytest.raises(ValueError):
            array[0] = 5.0


class TestPrecision:
    def test_default_is_double(self):
        assert be.get_precision() == "float64"
        assert be.as_float_array([1, 2]).dtype == np.float64
        assert be.complex_dtype() == np.complex128

    def test_invalid_precision(self):
        with pytest.raises(ValueError):
            be.set_precision("float16")

    def test_single_precision_arrays(self, single_precision):
        assert be.get_precision() == "float32"
        assert be.as_float_array([1, 2]).dtype == np.float32
        assert be.complex_dtype() == np.complex64

    def test_signal_follows_precision(self, single_precision):
        signal = SpectralSignal.uniform(0.5)
        assert signal.intensities.dtype == np.float32
        assert signal.multiply(be.full(33, 0.5)).intensities.dtype == np.float32

    def test_dispersion_follows_precision(self, single_precision):
        n = CauchyDispersion.crown_glass().n_at(be.linspace(400.0, 700.0, 7))
        assert n.dtype == np.float32

    def test_thin_film_follows_precision(self, single_precision):
        film = TransferMatrixFilm(1.0, 1.52).add_layer(1.38, 100.0)
        data = film.coefficients(be.linspace(400.0, 700.0, 4), 0.0)
        assert data["r"].dtype == np.complex64
        assert data["R"].dtype == np.float32
        assert_allclose(data["R"] + data["T"] + data["A"], 1.0, atol=1e-5)

    def test_precision_restored(self):
        assert be.get_precision() == "float64"
