import numpy as np

import optilux.backend as be


def assert_allclose(actual, desired, rtol=1e-7, atol=0.0, **kwargs):
    np.testing.assert_allclose(be.to_numpy(actual), be.to_numpy(desired), rtol=rtol, atol=atol, **kwargs)
