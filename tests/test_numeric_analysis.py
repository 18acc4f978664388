import math

import numpy as np
import pytest

from symbolic_calculus.config import EngineConfig
from symbolic_calculus.numeric_analysis import (
    FunctionAnalyzer, analyze_function, sign_change_indices, gap_onset_indices, near_zero_indices
)
from symbolic_calculus.parser import parse_or_raise


def analyze_text(text, x_min=-10.0, x_max=10.0, **kwargs):
    return analyze_function(parse_or_raise(text), 'x', x_min, x_max, **kwargs)


def test_scanning_kernels():
    y = np.array([1.0, -1.0, np.nan, 2.0, -2.0, 0.0, 3.0])
    assert list(sign_change_indices(y)) == [0, 3]
    assert list(gap_onset_indices(y)) == [1]
    assert list(near_zero_indices(np.array([0.0, 1e-9, 1.0, np.inf]), 1e-6)) == [0, 1]


def test_quadratic():
    result = analyze_text("x^2 - 4")
    assert len(result.zeros) == 2
    assert result.zeros[0] == pytest.approx(-2.0, abs=1e-2)
    assert result.zeros[1] == pytest.approx(2.0, abs=1e-2)

    assert len(result.critical_points) == 1
    minimum = result.critical_points[0]
    assert minimum.kind == 'minimum'
    assert minimum.x == pytest.approx(0.0, abs=1e-2)
    assert minimum.y == pytest.approx(-4.0, abs=1e-3)
    assert minimum.description.startswith("Local minimum at x = ")

    assert result.asymptotes == ()
    assert result.y_range == (pytest.approx(-4.0), pytest.approx(96.0))


def test_global_extrema():
    result = analyze_text("x^2 - 4")
    by_kind = {extremum.kind: extremum for extremum in result.extrema}
    assert by_kind['global_min'].y == pytest.approx(-4.0)
    assert by_kind['global_max'].y == pytest.approx(96.0)
    assert abs(by_kind['global_max'].x) == pytest.approx(10.0)
    assert by_kind['global_min'].description.startswith("Global minimum at x = ")


def test_sample_arrays():
    result = analyze_text("x", resolution=10)
    assert len(result.x_values) == 11
    assert result.x_values[0] == -10.0
    assert result.x_values[-1] == 10.0
    np.testing.assert_allclose(result.y_values, result.x_values)


def test_cubic_maximum_and_minimum():
    result = analyze_text("x^3 - 3*x", -3.0, 3.0)
    kinds = {round(point.x, 3): point.kind for point in result.critical_points}
    assert kinds == {-1.0: 'maximum', 1.0: 'minimum'}
    assert len(result.zeros) == 3


def test_inflection_point():
    result = analyze_text("x^3", -2.0, 2.0)
    assert [point.kind for point in result.critical_points] == ['inflection']
    assert result.critical_points[0].x == pytest.approx(0.0, abs=0.05)


def test_sine_zeros():
    result = analyze_text("sin(x)", -1.0, 7.0)
    expected = [0.0, math.pi, 2 * math.pi]
    assert len(result.zeros) == 3
    for zero, target in zip(result.zeros, expected):
        assert zero == pytest.approx(target, abs=1e-6)


@pytest.mark.parametrize("resolution", [1000, 999])
def test_reciprocal_has_vertical_asymptote(resolution):
    result = analyze_text("1/x", resolution=resolution)
    assert len(result.asymptotes) == 1
    asymptote = result.asymptotes[0]
    assert asymptote.kind == 'vertical'
    assert asymptote.value == pytest.approx(0.0, abs=0.05)
    assert asymptote.equation.startswith("x = ")
    assert result.zeros == ()


def test_domain_gaps_are_nan():
    result = analyze_text("sqrt(x)", -1.0, 1.0, resolution=20)
    assert np.isnan(result.y_values[0])
    assert np.isfinite(result.y_values[-1])
    assert result.extrema[0].y == pytest.approx(0.0)


def test_symbolic_expression_is_all_gaps():
    result = analyze_text("x + y", resolution=10)
    assert np.isnan(result.y_values).all()
    assert result.extrema == ()
    assert math.isnan(result.y_range[0])


def test_scope_values_are_used():
    result = analyze_text("x^2 - a", scope={"a": 9})
    assert result.zeros[0] == pytest.approx(-3.0, abs=1e-2)


def test_derivative_analysis():
    result = analyze_text("x^2 - 4", include_derivative=True)
    assert result.derivative is not None
    assert result.derivative.zeros[0] == pytest.approx(0.0, abs=1e-2)
    assert result.derivative.derivative is None


def test_derivative_analysis_skipped_for_unsupported_function():
    result = analyze_function(parse_or_raise("gamma(x)"), 'x', 1.0, 3.0, include_derivative=True)
    assert result.derivative is None


def test_resolution_is_capped():
    analyzer = FunctionAnalyzer(EngineConfig(default_resolution=100, max_resolution=200))
    result = analyzer.analyze(parse_or_raise("x"), 'x', 0.0, 1.0, resolution=5000)
    assert len(result.x_values) == 201
    assert len(analyzer.analyze(parse_or_raise("x"), 'x', 0.0, 1.0).x_values) == 101


@pytest.mark.parametrize("x_min, x_max", [(1.0, 1.0), (2.0, -2.0), (-math.inf, 1.0), (0.0, math.nan)])
def test_invalid_domain(x_min, x_max):
    with pytest.raises(ValueError):
        analyze_text("x", x_min, x_max)


def test_invalid_resolution():
    with pytest.raises(ValueError):
        analyze_text("x", resolution=1)


def test_overflowing_samples_are_infinite():
    result = analyze_text("npr(1000, x)", 0.0, 1000.0, resolution=100)
    assert result.y_values[0] == 1.0
    assert result.y_values[-1] == math.inf
    assert np.isfinite(result.y_range[1])
