from __future__ import annotations

import math
from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest

from src.rheology.catalog import Dashpot, FractionalMaxwell, FractionalSLS, Maxwell, Springpot
from src.rheology.compiler import bind
from src.rheology.errors import ModelDefinitionError
from src.rheology.expressions import T, W
from src.rheology.instance import NOT_APPLICABLE, is_not_applicable


@pytest.fixture
def maxwell():
    return bind(Maxwell, {"eta": 2.0, "k": 1.0})


def test_vectorised_matches_pointwise(maxwell) -> None:
    times = [0.0, 0.25, 1.0, 4.0]
    vector = maxwell.G_array(times)
    assert vector.shape == (4,)
    np.testing.assert_allclose(vector, [maxwell.G(t) for t in times], rtol=1e-12)
    omegas = [0.1, 1.0, 10.0]
    np.testing.assert_allclose(maxwell.Gp_array(omegas), [maxwell.Gp(w) for w in omegas], rtol=1e-12)
    np.testing.assert_allclose(maxwell.Gpp_array(omegas), [maxwell.Gpp(w) for w in omegas], rtol=1e-12)


def test_evaluation_is_deterministic(maxwell) -> None:
    grid = np.linspace(0.0, 10.0, 51)
    np.testing.assert_array_equal(maxwell.J_array(grid), maxwell.J_array(grid))
    assert maxwell.evaluate("J", grid).shape == grid.shape


def test_frequency_moduli_reference_values(maxwell) -> None:
    assert maxwell.Gp(1.0) == pytest.approx(0.8)
    assert maxwell.Gpp(1.0) == pytest.approx(0.4)


def test_workers_preserve_order(maxwell) -> None:
    grid = np.linspace(0.0, 5.0, 101)
    serial = maxwell.G_array(grid)
    np.testing.assert_allclose(maxwell.G_array(grid, workers=4), serial, rtol=1e-14)


def test_concurrent_readers(maxwell) -> None:
    points = [0.5 * i for i in range(20)]
    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(maxwell.G, points))
    np.testing.assert_allclose(results, [math.exp(-0.5 * t) for t in points], rtol=1e-12)


def test_missing_modulus_returns_sentinel() -> None:
    dashpot = bind(Dashpot, {"eta": 3.0})
    assert not dashpot.has_modulus("G")
    assert dashpot.G(1.0) is NOT_APPLICABLE
    assert is_not_applicable(dashpot.G_array([0.0, 1.0]))
    assert not is_not_applicable(dashpot.J_array([1.0]))
    assert dashpot.J(3.0) == pytest.approx(1.0)
    assert NOT_APPLICABLE[0] == -1.0
    assert not NOT_APPLICABLE.flags.writeable


def test_unknown_modulus_name_raises(maxwell) -> None:
    with pytest.raises(ModelDefinitionError):
        maxwell.evaluate("H", [1.0])


def test_describe_and_log(maxwell) -> None:
    assert maxwell.describe() == "Maxwell(eta=2, k=1): Maxwell model: spring and dashpot in series."
    assert "Maxwell(eta=2, k=1)" in repr(maxwell)
    assert [entry.action for entry in maxwell.log] == ["define", "bind"]
    assert dict(maxwell.log[-1].params) == {"eta": 2.0, "k": 1.0}


def test_parameters_are_read_only(maxwell) -> None:
    with pytest.raises(TypeError):
        maxwell.parameters["eta"] = 5.0
    assert maxwell.expressions["G"].free_symbols == {T}
    assert maxwell.expressions["Gp"].free_symbols == {W}


def test_fractional_creep_closed_form() -> None:
    instance = bind(FractionalMaxwell, {"c_a": 2.0, "a": 0.5, "c_b": 1.0, "b": 0.2})
    expected = 1.0 / (2.0 * math.gamma(1.5)) + 1.0 / math.gamma(1.2)
    assert instance.J(1.0) == pytest.approx(expected, rel=1e-10)
    assert np.all(np.isfinite(instance.G_array([0.1, 1.0, 10.0])))


def test_springpot_moduli() -> None:
    instance = bind(Springpot, {"c_b": 1.0, "b": 0.5})
    assert instance.Gp(1.0) == pytest.approx(math.cos(math.pi / 4))
    assert instance.G(1.0) == pytest.approx(1.0 / math.gamma(0.5))


def test_inverse_laplace_creep_bounds() -> None:
    instance = bind(FractionalSLS, {"c_a": 1.0, "a": 0.5, "k_b": 1.0, "k_g": 1.0})
    assert instance.J(0.0) == pytest.approx(0.5, rel=1e-5)
    values = instance.J_array([0.5, 1.0, 2.0])
    assert np.all(np.diff(values) > 0)
    assert np.all((values > 0.5) & (values < 1.0))
