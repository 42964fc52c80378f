import matplotlib
import pytest

import optilux.backend as be

matplotlib.use("Agg")  # use non-interactive backend for testing


@pytest.fixture(params=be.list_available_backends())
def set_test_backend(request):
    previous = be.get_backend()
    be.set_backend(request.param)
    yield request.param
    be.set_backend(previous)
