"""
Engine configuration.

One immutable bundle of the knobs shared by the simplifier, evaluator,
numeric analyzer and the facade.
"""

from dataclasses import dataclass, fields, replace as dataclass_replace
from typing import Optional, Dict, Any

from .logging_system import LogLevel

ANGLE_MODES = ('radians', 'degrees')


@dataclass(frozen=True)
class EngineConfig:
    max_simplify_passes: int = 10
    angle_mode: str = 'radians'
    precision: Optional[int] = None        # decimal places of final numeric results

    default_resolution: int = 1000
    max_resolution: int = 100000
    zero_tolerance: float = 1e-6
    derivative_step: float = 1e-6           # central difference h
    second_derivative_step: float = 1e-4
    derivative_tolerance: float = 1e-3
    classification_threshold: float = 1e-2
    asymptote_magnitude: float = 1e3        # |y| above which a sign flip counts as a pole

    numeric_integration_fallback: bool = True
    remote_timeout: float = 5.0
    log_level: LogLevel = LogLevel.MINIMAL

    def __post_init__(self):
        if not isinstance(self.max_simplify_passes, int) or self.max_simplify_passes < 1:
            raise ValueError("max_simplify_passes must be a positive integer")
        if self.angle_mode not in ANGLE_MODES:
            raise ValueError(f"angle_mode must be one of {ANGLE_MODES}, got {self.angle_mode!r}")
        if self.precision is not None and (not isinstance(self.precision, int) or self.precision < 0):
            raise ValueError("precision must be a non-negative integer or None")
        if not isinstance(self.default_resolution, int) or self.default_resolution < 2:
            raise ValueError("default_resolution must be an integer >= 2")
        if not isinstance(self.max_resolution, int) or self.max_resolution < self.default_resolution:
            raise ValueError("max_resolution must be an integer >= default_resolution")
        for name in ('zero_tolerance', 'derivative_step', 'second_derivative_step',
                     'derivative_tolerance', 'classification_threshold',
                     'asymptote_magnitude', 'remote_timeout'):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if not isinstance(self.log_level, LogLevel):
            raise TypeError("log_level must be a LogLevel")

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> 'EngineConfig':
        """Build a config from plain values; unknown keys are rejected"""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")
        values = dict(values)
        if isinstance(values.get('log_level'), str):
            values['log_level'] = LogLevel[values['log_level'].upper()]
        elif isinstance(values.get('log_level'), int):
            values['log_level'] = LogLevel(values['log_level'])
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        result = {f.name: getattr(self, f.name) for f in fields(self)}
        result['log_level'] = self.log_level.name
        return result

    def replace(self, **changes) -> 'EngineConfig':
        return dataclass_replace(self, **changes)


DEFAULT_CONFIG = EngineConfig()
