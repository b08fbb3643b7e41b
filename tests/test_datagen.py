from __future__ import annotations

import numpy as np
import pytest

from src.rheology.data import TimeDataKind, TimeSeriesRecord
from src.rheology.datagen import (
    hstep,
    line_load,
    noise_load,
    ramp,
    ramp_load,
    repeat_load,
    sawtooth,
    sinusoid_load,
    square,
    stairs,
    step_load,
    time_line,
    triangle,
)
from src.rheology.errors import DataConsistencyError


def test_step_load_grid_and_values() -> None:
    record = step_load(10, 5)
    np.testing.assert_allclose(record.time, np.arange(11.0))
    expected = [0.0] * 5 + [1.0] * 6
    np.testing.assert_allclose(record.stress, expected)
    np.testing.assert_allclose(record.strain, expected)
    assert record.kind is TimeDataKind.STRAIN_AND_STRESS
    assert record.log[0].action == "step"


def test_step_load_logistic_transition() -> None:
    record = step_load(10, 5, t_trans=2.0, stepsize=0.5, amplitude=2.0, baseline=1.0)
    at_on = record.stress[record.time == 5.0][0]
    assert at_on == pytest.approx(2.0)
    assert record.stress[0] == pytest.approx(1.0, abs=1e-6)
    assert record.stress[-1] == pytest.approx(3.0, abs=1e-6)


def test_time_line_default_step() -> None:
    record = time_line()
    assert len(record) == 251
    assert record.kind is TimeDataKind.TIME_ONLY
    assert record.time[-1] == pytest.approx(10.0)


def test_line_and_ramp_loads() -> None:
    np.testing.assert_allclose(line_load(3).stress, [1.0, 1.0, 1.0, 1.0])
    record = ramp_load(8, 2, 6)
    np.testing.assert_allclose(record.strain, [0.0, 0.0, 0.0, 0.25, 0.5, 0.75, 1.0, 1.0, 1.0])
    with pytest.raises(DataConsistencyError):
        ramp_load(8, 6, 2)


def test_sinusoid_load_switches_on() -> None:
    record = sinusoid_load(2.0, frequency=0.25, t_start=1.0, stepsize=0.5)
    np.testing.assert_allclose(record.stress, [0.0, 0.0, 0.0, np.sin(np.pi / 4), 1.0], atol=1e-12)


def test_noise_load_is_seeded() -> None:
    first = noise_load(20, seed=7)
    second = noise_load(20, seed=7)
    np.testing.assert_array_equal(first.stress, second.stress)
    assert np.all((first.stress >= -1.0) & (first.stress < 1.0))
    with pytest.raises(DataConsistencyError):
        noise_load(20, seed=-1)


def test_invalid_grids_rejected() -> None:
    with pytest.raises(DataConsistencyError):
        line_load(10, stepsize=0.0)
    with pytest.raises(DataConsistencyError):
        line_load(0.0)
    with pytest.raises(DataConsistencyError):
        step_load(10, 5, t_trans=-1.0)


def test_repeat_load_length_and_shared_boundaries() -> None:
    pattern = ramp_load(4, 0, 4)
    repeated = repeat_load(pattern, 3)
    assert len(repeated) == 3 * (len(pattern) - 1) + 1
    np.testing.assert_allclose(repeated.time, np.arange(13.0))
    np.testing.assert_allclose(repeated.stress[:5], pattern.stress)
    np.testing.assert_allclose(repeated.stress[5:9], pattern.stress[1:])
    assert [entry.action for entry in repeated.log] == ["ramp", "repeat"]


def test_repeat_load_smoothing_confined_to_window() -> None:
    pattern = ramp_load(4, 0, 4)
    raw = repeat_load(pattern, 3)
    smooth = repeat_load(pattern, 3, t_trans=2.0)
    delta = smooth.stress - raw.stress
    window = np.zeros(len(raw), dtype=bool)
    for boundary in (4.0, 8.0):
        window |= np.abs(raw.time - boundary) <= 1.0
    assert np.all(delta[~window] == 0.0)
    assert np.all(delta[window] != 0.0)
    jump = abs(pattern.stress[0] - pattern.stress[-1])
    assert np.all(np.abs(delta) <= jump)
    # boundary sample sits halfway between tail and head values
    assert smooth.stress[4] == pytest.approx(0.5)
    np.testing.assert_array_equal(smooth.stress, smooth.strain)


def test_repeat_load_requires_matching_pattern() -> None:
    record = TimeSeriesRecord([0.0, 1.0, 2.0], stress=[0.0, 1.0, 2.0], strain=[0.0, 1.0, 1.0])
    with pytest.raises(DataConsistencyError):
        repeat_load(record, 2)
    with pytest.raises(DataConsistencyError):
        repeat_load(line_load(3), 0)
    uneven = TimeSeriesRecord([0.0, 1.0, 3.0], stress=[0.0, 1.0, 2.0], strain=[0.0, 1.0, 2.0])
    with pytest.raises(DataConsistencyError):
        repeat_load(uneven, 2)


def test_shape_helpers_pointwise_and_closures() -> None:
    assert hstep(1.0, offset=2.0) == 0.0
    assert hstep(offset=2.0)(3.0) == 1.0
    assert ramp(3.0, offset=1.0, amp=2.0) == pytest.approx(4.0)
    assert stairs(2.5, width=1.0) == pytest.approx(3.0)
    assert square(0.25) == 1.0
    assert square(0.75) == 0.0
    assert sawtooth(0.5, period=2.0) == pytest.approx(0.25)
    assert triangle(0.25) == pytest.approx(0.5)
    assert triangle(0.75) == pytest.approx(0.5)
    wave = triangle(period=4.0, amp=2.0)
    assert wave(1.0) == pytest.approx(1.0)
