from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Mapping, Optional


@dataclass(frozen=True)
class SensitivityConfig:
    """
    Knobs of one sensitivity calculation.

    - max_workers: thread count for per-curve dirty accumulation (None or 1 = serial).
    - check_finite: log a warning when a dirty vector holds NaN/Inf (values are never altered).
    - merge_points: merge point contributions sharing the same time(s) before projection.
    - ignore_unknown_inputs: drop (with a warning) raw inputs for curves outside the graph
      instead of raising UnknownCurveError.
    """
    max_workers: Optional[int] = None
    check_finite: bool = True
    merge_points: bool = True
    ignore_unknown_inputs: bool = False

    def __post_init__(self):
        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError("max_workers must be positive")

    @property
    def parallel(self) -> bool:
        return self.max_workers is not None and self.max_workers > 1

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "SensitivityConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ValueError(f"Unknown sensitivity config key(s): {unknown}")

        kwargs = dict(values)
        if kwargs.get("max_workers") is not None:
            kwargs["max_workers"] = int(kwargs["max_workers"])
        for flag in ("check_finite", "merge_points", "ignore_unknown_inputs"):
            if flag in kwargs:
                kwargs[flag] = _as_flag(flag, kwargs[flag])
        return cls(**kwargs)


_TRUE = {"true", "1", "yes"}
_FALSE = {"false", "0", "no"}


def _as_flag(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
    raise ValueError(f"Config key {key!r} expects a boolean, got {value!r}")


DEFAULT_CONFIG = SensitivityConfig()
