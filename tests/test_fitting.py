from __future__ import annotations

import numpy as np
import pytest

from src.rheology.catalog import Dashpot, Maxwell
from src.rheology.compiler import bind
from src.rheology.data import FrequencySeriesRecord, TimeSeriesRecord
from src.rheology.datagen import step_load, time_line
from src.rheology.errors import DataConsistencyError, ModelUnavailableError
from src.rheology.fitting import (
    fit_frequency,
    fit_model,
    hereditary_response,
    predict_strain,
    predict_stress,
)


_TIGHT = {"ftol": 1e-12, "xtol": 1e-12, "gtol": 1e-12}


@pytest.fixture
def maxwell():
    return bind(Maxwell, {"eta": 2.0, "k": 1.0})


def test_hereditary_response_superposes_increments() -> None:
    response = hereditary_response(np.array([1.0, 0.5, 0.25]), np.array([1.0, 1.0, 3.0]))
    np.testing.assert_allclose(response, [1.0, 0.5, 2.25])


def test_predict_stress_step_strain_is_relaxation(maxwell) -> None:
    strain = step_load(10, 0, stepsize=0.1)
    predicted = predict_stress(strain, maxwell)
    np.testing.assert_allclose(predicted.stress, np.exp(-0.5 * strain.time), rtol=1e-10)
    np.testing.assert_array_equal(predicted.strain, strain.strain)
    assert predicted.log[-1].action == "predict_stress"


def test_predict_stress_delayed_step(maxwell) -> None:
    strain = step_load(10, 2, stepsize=0.5)
    predicted = predict_stress(strain, maxwell)
    on = strain.time >= 2.0
    np.testing.assert_allclose(predicted.stress[~on], 0.0)
    np.testing.assert_allclose(predicted.stress[on], np.exp(-0.5 * (strain.time[on] - 2.0)), rtol=1e-10)


def test_predict_strain_step_stress_is_creep(maxwell) -> None:
    stress = step_load(10, 0, stepsize=0.5)
    predicted = predict_strain(stress, maxwell)
    np.testing.assert_allclose(predicted.strain, stress.time / 2.0 + 1.0, rtol=1e-10)


def test_prediction_errors(maxwell) -> None:
    with pytest.raises(DataConsistencyError):
        predict_stress(time_line(0, 1, 0.1), maxwell)
    with pytest.raises(ModelUnavailableError):
        predict_stress(step_load(5, 1), bind(Dashpot, {"eta": 1.0}))
    uneven = TimeSeriesRecord([0.0, 1.0, 3.0], strain=[1.0, 1.0, 1.0])
    with pytest.raises(DataConsistencyError):
        predict_stress(uneven, maxwell)


def test_fit_model_recovers_maxwell_parameters(maxwell) -> None:
    data = predict_stress(step_load(10, 0, stepsize=0.1), maxwell)
    result = fit_model(
        Maxwell, data, {"eta": 1.0, "k": 0.5}, lower=[1e-3, 1e-3], upper=[100.0, 100.0], **_TIGHT
    )
    assert result.success
    assert result.parameters["eta"] == pytest.approx(2.0, rel=1e-4)
    assert result.parameters["k"] == pytest.approx(1.0, rel=1e-4)
    assert result.cost < 1e-12
    assert result.instance.log[-1].action == "fit"


def test_fit_model_validates_inputs(maxwell) -> None:
    with pytest.raises(ValueError):
        fit_model(Maxwell, step_load(5, 1), [2.0, 1.0], modulus="Gp")
    strain_only = TimeSeriesRecord([0.0, 1.0, 2.0], strain=[0.0, 1.0, 1.0])
    with pytest.raises(DataConsistencyError):
        fit_model(Maxwell, strain_only, [2.0, 1.0])
    with pytest.raises(DataConsistencyError):
        fit_model(Maxwell, step_load(5, 1), [2.0, 1.0], lower=[0.0])


def test_fit_frequency_recovers_maxwell_parameters(maxwell) -> None:
    omega = np.logspace(-1, 1, 25)
    record = FrequencySeriesRecord(omega, maxwell.Gp_array(omega), maxwell.Gpp_array(omega))
    result = fit_frequency(
        Maxwell, record, [1.0, 0.5], lower=[1e-3, 1e-3], upper=[100.0, 100.0], **_TIGHT
    )
    assert result.parameters["eta"] == pytest.approx(2.0, rel=1e-4)
    assert result.parameters["k"] == pytest.approx(1.0, rel=1e-4)
    assert result.instance.log[-1].action == "fit_frequency"


def test_fit_frequency_requires_moduli() -> None:
    with pytest.raises(DataConsistencyError):
        fit_frequency(Maxwell, FrequencySeriesRecord([0.1, 1.0]), [1.0, 1.0])
