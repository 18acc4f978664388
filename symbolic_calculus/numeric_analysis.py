"""
Numeric function analysis for graphing.

Samples an expression over a closed interval and reports zeros, critical
points, global extrema and vertical asymptotes. Everything here works from
the evaluator (central differences for derivatives), so expressions outside
the differentiator's catalogue can still be analyzed.
"""

from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

import numba
import numpy as np
from scipy.optimize import brentq

from .config import EngineConfig, DEFAULT_CONFIG
from .differentiator import differentiate
from .errors import UnsupportedOperation
from .evaluator import EvaluationScope, make_numeric_function
from .expression_tree.core.node import Node
from .logging_system import log_warning, log_debug
from .simplifier import Simplifier


@numba.njit(cache=True)
def sign_change_indices(y):
    """Indices i where y[i] and y[i+1] are finite with opposite signs"""
    n = y.shape[0]
    flags = np.zeros(max(n - 1, 0), dtype=np.bool_)
    for i in range(n - 1):
        a = y[i]
        b = y[i + 1]
        if np.isfinite(a) and np.isfinite(b) and a * b < 0.0:
            flags[i] = True
    return np.nonzero(flags)[0]


@numba.njit(cache=True)
def gap_onset_indices(y):
    """Indices i where a finite y[i] is followed by a non-finite y[i+1]"""
    n = y.shape[0]
    flags = np.zeros(max(n - 1, 0), dtype=np.bool_)
    for i in range(n - 1):
        if np.isfinite(y[i]) and not np.isfinite(y[i + 1]):
            flags[i] = True
    return np.nonzero(flags)[0]


@numba.njit(cache=True)
def near_zero_indices(y, tolerance):
    n = y.shape[0]
    flags = np.zeros(n, dtype=np.bool_)
    for i in range(n):
        if np.isfinite(y[i]) and abs(y[i]) < tolerance:
            flags[i] = True
    return np.nonzero(flags)[0]


@dataclass(frozen=True)
class CriticalPoint:
    x: float
    y: float
    kind: str               # 'minimum', 'maximum' or 'inflection'
    description: str


@dataclass(frozen=True)
class Extremum:
    x: float
    y: float
    kind: str               # 'global_min' or 'global_max'
    description: str


@dataclass(frozen=True)
class Asymptote:
    kind: str
    equation: str
    value: float


@dataclass(frozen=True, eq=False)
class AnalysisResult:
    x_values: np.ndarray
    y_values: np.ndarray
    zeros: Tuple[float, ...]
    critical_points: Tuple[CriticalPoint, ...]
    extrema: Tuple[Extremum, ...]
    asymptotes: Tuple[Asymptote, ...]
    y_range: Tuple[float, float]
    derivative: Optional['AnalysisResult'] = None


def _fmt(value: float) -> str:
    return f"{value:.6g}"


def _merge_close(values: List[float], spacing: float) -> List[float]:
    """Sort and drop values within ``spacing`` of the previously kept one"""
    merged: List[float] = []
    for value in sorted(values):
        if not merged or abs(value - merged[-1]) > spacing:
            merged.append(value)
    return merged


def _closest_in_runs(indices: np.ndarray, magnitudes: np.ndarray) -> List[int]:
    """Index of the smallest magnitude within each run of consecutive indices"""
    best: List[int] = []
    previous = None
    for i in map(int, indices):
        if best and i == previous + 1:
            if magnitudes[i] < magnitudes[best[-1]]:
                best[-1] = i
        else:
            best.append(i)
        previous = i
    return best


def _refine_root(func: Callable[[float], float], a: float, b: float) -> Optional[float]:
    try:
        return float(brentq(func, a, b, xtol=1e-12, maxiter=200))
    except (ValueError, RuntimeError):
        return None


def _bisect_crossing(func: Callable[[float], float], a: float, b: float, iterations: int = 60) -> float:
    """Locate a sign flip by bisection, stopping early on an undefined point"""
    f_a = func(a)
    for _ in range(iterations):
        middle = 0.5 * (a + b)
        f_middle = func(middle)
        if not np.isfinite(f_middle):
            return middle
        if (f_a < 0) == (f_middle < 0):
            a, f_a = middle, f_middle
        else:
            b = middle
    return 0.5 * (a + b)


class FunctionAnalyzer:
    """
    Zeros, critical points, extrema and vertical asymptotes of f(variable).
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or DEFAULT_CONFIG

    def _resolve_resolution(self, resolution: Optional[int]) -> int:
        if resolution is None:
            return self.config.default_resolution
        if not isinstance(resolution, (int, np.integer)) or resolution < 2:
            raise ValueError("resolution must be an integer >= 2")
        if resolution > self.config.max_resolution:
            log_warning(f"Resolution {resolution} exceeds the cap; using {self.config.max_resolution}")
            return self.config.max_resolution
        return int(resolution)

    def analyze(self, node: Node, variable: str, x_min: float, x_max: float,
                resolution: Optional[int] = None, scope: Optional[EvaluationScope] = None,
                include_derivative: bool = False) -> AnalysisResult:
        if not (np.isfinite(x_min) and np.isfinite(x_max)):
            raise ValueError("Domain bounds must be finite")
        if x_min >= x_max:
            raise ValueError(f"Empty domain: x_min ({x_min}) must be below x_max ({x_max})")
        resolution = self._resolve_resolution(resolution)

        f = make_numeric_function(node, variable, scope)
        x_values = np.linspace(float(x_min), float(x_max), resolution + 1)
        y_values = np.array([f(x) for x in x_values], dtype=np.float64)
        step = (x_max - x_min) / resolution

        zeros, pole_candidates = self._find_zeros(f, x_values, y_values, step)
        critical_points = self._find_critical_points(f, x_values, step)
        asymptotes = self._find_asymptotes(x_values, y_values, pole_candidates, step)
        extrema, y_range = self._find_extrema(x_values, y_values)

        derivative_result = None
        if include_derivative:
            derivative_result = self._analyze_derivative(node, variable, x_min, x_max, resolution, scope)

        log_debug(f"Analyzed {node.to_string()} on [{x_min}, {x_max}]: "
                  f"{len(zeros)} zeros, {len(critical_points)} critical points, {len(asymptotes)} asymptotes")
        return AnalysisResult(
            x_values=x_values,
            y_values=y_values,
            zeros=tuple(zeros),
            critical_points=tuple(critical_points),
            extrema=tuple(extrema),
            asymptotes=tuple(asymptotes),
            y_range=y_range,
            derivative=derivative_result,
        )

    def _find_zeros(self, f, x_values, y_values, step) -> Tuple[List[float], List[float]]:
        tolerance = self.config.zero_tolerance
        near = near_zero_indices(y_values, tolerance)
        zeros: List[float] = [float(x_values[i]) for i in _closest_in_runs(near, np.abs(y_values))]
        poles: List[float] = []

        for i in sign_change_indices(y_values):
            a, b = x_values[i], x_values[i + 1]
            root = _refine_root(f, a, b)
            if root is not None:
                value = f(root)
                if np.isfinite(value) and abs(value) < tolerance:
                    zeros.append(root)
                    continue
            crossing = _bisect_crossing(f, a, b)
            value = f(crossing)
            if np.isfinite(value) and abs(value) < tolerance:
                zeros.append(crossing)
            elif not np.isfinite(value) or abs(value) > self.config.asymptote_magnitude:
                # Sign flip through a pole rather than through zero
                poles.append(crossing)

        return _merge_close(zeros, step), poles

    def _numeric_derivative(self, f) -> Callable[[float], float]:
        h = self.config.derivative_step

        def derivative(x: float) -> float:
            return (f(x + h) - f(x - h)) / (2 * h)

        return derivative

    def _classify(self, f, x: float) -> str:
        h = self.config.second_derivative_step
        second = (f(x + h) - 2 * f(x) + f(x - h)) / (h * h)
        if second > self.config.classification_threshold:
            return 'minimum'
        if second < -self.config.classification_threshold:
            return 'maximum'
        return 'inflection'

    def _find_critical_points(self, f, x_values, step) -> List[CriticalPoint]:
        df = self._numeric_derivative(f)
        tolerance = self.config.derivative_tolerance
        slopes = np.array([df(x) for x in x_values], dtype=np.float64)

        near = near_zero_indices(slopes, tolerance)
        candidates: List[float] = [float(x_values[i]) for i in _closest_in_runs(near, np.abs(slopes))]
        for i in sign_change_indices(slopes):
            root = _refine_root(df, x_values[i], x_values[i + 1])
            if root is not None:
                candidates.append(root)

        points: List[CriticalPoint] = []
        for x in _merge_close(candidates, step):
            y = f(x)
            slope = df(x)
            if not (np.isfinite(y) and np.isfinite(slope)) or abs(slope) > tolerance:
                continue
            kind = self._classify(f, x)
            label = {'minimum': 'Local minimum', 'maximum': 'Local maximum',
                     'inflection': 'Inflection point'}[kind]
            points.append(CriticalPoint(x, y, kind, f"{label} at x = {_fmt(x)}"))
        return points

    def _find_asymptotes(self, x_values, y_values, poles: List[float], step) -> List[Asymptote]:
        positions = [float(x_values[i + 1]) for i in gap_onset_indices(y_values)] + list(poles)
        return [Asymptote('vertical', f"x = {_fmt(x)}", x) for x in _merge_close(positions, step)]

    def _find_extrema(self, x_values, y_values) -> Tuple[List[Extremum], Tuple[float, float]]:
        finite = np.isfinite(y_values)
        if not finite.any():
            return [], (float('nan'), float('nan'))

        masked_low = np.where(finite, y_values, np.inf)
        masked_high = np.where(finite, y_values, -np.inf)
        i_min = int(np.argmin(masked_low))
        i_max = int(np.argmax(masked_high))
        x_lo, y_lo = float(x_values[i_min]), float(y_values[i_min])
        x_hi, y_hi = float(x_values[i_max]), float(y_values[i_max])
        extrema = [
            Extremum(x_lo, y_lo, 'global_min', f"Global minimum at x = {_fmt(x_lo)}, y = {_fmt(y_lo)}"),
            Extremum(x_hi, y_hi, 'global_max', f"Global maximum at x = {_fmt(x_hi)}, y = {_fmt(y_hi)}"),
        ]
        return extrema, (y_lo, y_hi)

    def _analyze_derivative(self, node, variable, x_min, x_max, resolution, scope) -> Optional[AnalysisResult]:
        try:
            derivative = differentiate(node, variable)
        except UnsupportedOperation as e:
            log_warning(f"Skipping derivative analysis: {e}")
            return None
        derivative = Simplifier(max_passes=self.config.max_simplify_passes).simplify(derivative)
        return self.analyze(derivative, variable, x_min, x_max, resolution, scope)


def analyze_function(node: Node, variable: str, x_min: float, x_max: float,
                     resolution: Optional[int] = None, scope: Optional[EvaluationScope] = None,
                     include_derivative: bool = False,
                     config: Optional[EngineConfig] = None) -> AnalysisResult:
    return FunctionAnalyzer(config).analyze(node, variable, x_min, x_max, resolution, scope, include_derivative)
