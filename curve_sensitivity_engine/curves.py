from __future__ import annotations

import numpy as np
import pandas as pd
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence, Tuple

from .exceptions import UnknownCurveError
from .graph import Curve, CurveGraph
from .points import DiscountingPoint, ForwardPoint
from .validation import validate_graph


def hat_weights(nodes: np.ndarray, t: float) -> np.ndarray:
    """
    d(np.interp(t, nodes, values)) / d(values): linear hat basis on the node
    grid, flat beyond both ends. A non-finite t gives all-NaN weights.
    """
    n = len(nodes)
    w = np.zeros(n, dtype=float)
    if n == 0:
        return w
    if not np.isfinite(t):
        w[:] = np.nan
        return w
    if n == 1 or t <= nodes[0]:
        w[0] = 1.0
        return w
    if t >= nodes[-1]:
        w[-1] = 1.0
        return w

    k = int(np.searchsorted(nodes, t, side="right")) - 1
    h = nodes[k + 1] - nodes[k]
    w[k] = (nodes[k + 1] - t) / h
    w[k + 1] = (t - nodes[k]) / h
    return w


@dataclass(frozen=True, eq=False)
class NodeZeroCurve:
    """
    Continuously-compounded zero rates at node times (year fractions),
    linear interpolation, flat extrapolation. Parameters = the node rates.
    """
    name: str
    node_times: np.ndarray
    zero_rates: np.ndarray

    kind = "zero_rate"

    def __post_init__(self):
        times = np.asarray(self.node_times, dtype=float)
        values = np.asarray(self.zero_rates, dtype=float)
        if times.ndim != 1 or times.shape != values.shape:
            raise ValueError(f"{self.name}: node times and values must be 1-d and of equal length.")
        if len(times) == 0:
            raise ValueError(f"{self.name}: needs at least one node.")
        if np.any(np.diff(times) <= 0):
            raise ValueError(f"{self.name}: node times must be strictly increasing.")
        object.__setattr__(self, "node_times", times)
        object.__setattr__(self, "zero_rates", values)

    @property
    def underlying_names(self) -> Tuple[str, ...]:
        return ()

    @property
    def node_values(self) -> np.ndarray:
        return self.zero_rates

    @property
    def own_parameter_count(self) -> int:
        return len(self.node_times)

    def own_rate(self, t: float) -> float:
        return float(np.interp(t, self.node_times, self.node_values))

    def own_weights(self, t: float) -> np.ndarray:
        return hat_weights(self.node_times, t)

    def with_node_values(self, values: np.ndarray) -> "NodeZeroCurve":
        return NodeZeroCurve(self.name, self.node_times.copy(), values)


@dataclass(frozen=True, eq=False)
class SpreadZeroCurve:
    """
    Zero rate = sum of the underlying curves' zero rates + an interpolated
    spread. Parameter vector: each underlying's full vector in declared order,
    then the own spread nodes.
    """
    name: str
    underlying_names: Tuple[str, ...]
    node_times: np.ndarray
    spreads: np.ndarray

    kind = "spread"

    def __post_init__(self):
        object.__setattr__(self, "underlying_names", tuple(self.underlying_names))
        times = np.asarray(self.node_times, dtype=float)
        values = np.asarray(self.spreads, dtype=float)
        if times.ndim != 1 or times.shape != values.shape:
            raise ValueError(f"{self.name}: node times and values must be 1-d and of equal length.")
        if np.any(np.diff(times) <= 0):
            raise ValueError(f"{self.name}: node times must be strictly increasing.")
        if not self.underlying_names:
            raise ValueError(f"{self.name}: a spread curve needs at least one underlying curve.")
        object.__setattr__(self, "node_times", times)
        object.__setattr__(self, "spreads", values)

    @property
    def node_values(self) -> np.ndarray:
        return self.spreads

    @property
    def own_parameter_count(self) -> int:
        return len(self.node_times)

    def own_rate(self, t: float) -> float:
        if len(self.node_times) == 0:
            return 0.0
        return float(np.interp(t, self.node_times, self.node_values))

    def own_weights(self, t: float) -> np.ndarray:
        return hat_weights(self.node_times, t)

    def with_node_values(self, values: np.ndarray) -> "SpreadZeroCurve":
        return SpreadZeroCurve(self.name, self.underlying_names, self.node_times.copy(), values)


class CurveSet:
    """
    A closed set of curves acting as both the curve metadata provider and the
    point-to-parameter projection of the pricing layer.
    """

    def __init__(self, curves: Iterable):
        self._curves: Dict[str, object] = {}
        for c in curves:
            if c.name in self._curves:
                raise ValueError(f"Duplicate curve name: {c.name}")
            self._curves[c.name] = c

        missing = sorted(
            {u for c in self._curves.values() for u in c.underlying_names if u not in self._curves}
        )
        if missing:
            raise UnknownCurveError(missing, context="curve set underlyings")

        # counts are recursive, so reject cycles before anything asks for them
        self._counts: Dict[str, int] = {}
        validate_graph(CurveGraph(Curve(c.name, 0, c.underlying_names) for c in self._curves.values()))
        for name in self._curves:
            self.number_of_parameters(name)

    def __contains__(self, name: str) -> bool:
        return name in self._curves

    def __getitem__(self, name: str):
        try:
            return self._curves[name]
        except KeyError:
            raise UnknownCurveError([name], context="curve set") from None

    # ---- CurveMetadataProvider ----

    def all_curve_names(self) -> List[str]:
        return list(self._curves)

    def number_of_parameters(self, name: str) -> int:
        if name not in self._counts:
            curve = self[name]
            self._counts[name] = sum(self.number_of_parameters(u) for u in curve.underlying_names) + curve.own_parameter_count
        return self._counts[name]

    def underlying_curve_names(self, name: str) -> List[str]:
        return list(self[name].underlying_names)

    # ---- curve values ----

    def zero_rate(self, name: str, t: float) -> float:
        curve = self[name]
        return curve.own_rate(t) + sum(self.zero_rate(u, t) for u in curve.underlying_names)

    def discount_factor(self, name: str, t: float) -> float:
        return float(np.exp(-self.zero_rate(name, t) * t))

    def forward_rate(self, name: str, start: float, end: float, accrual: float) -> float:
        """Simply-compounded forward over [start, end] with accrual factor `accrual`."""
        return (self.discount_factor(name, start) / self.discount_factor(name, end) - 1.0) / accrual

    def rate_weights(self, name: str, t: float) -> np.ndarray:
        """d(zero_rate(name, t)) / d(parameters of name), full parameter vector."""
        curve = self[name]
        parts = [self.rate_weights(u, t) for u in curve.underlying_names]
        parts.append(curve.own_weights(t))
        return np.concatenate(parts)

    def parameter_owners(self, name: str) -> List[Tuple[str, int]]:
        """(owning curve, own parameter index) for each entry of the curve's full vector."""
        curve = self[name]
        owners: List[Tuple[str, int]] = []
        for u in curve.underlying_names:
            owners.extend(self.parameter_owners(u))
        owners.extend((name, i) for i in range(curve.own_parameter_count))
        return owners

    # ---- projection ----

    def parameter_sensitivity(self, name: str, points: Sequence[DiscountingPoint]) -> np.ndarray:
        out = np.zeros(self.number_of_parameters(name), dtype=float)
        for p in points:
            out += p.value * self.rate_weights(name, p.time)
        return out

    def parameter_forward_sensitivity(self, name: str, points: Sequence[ForwardPoint]) -> np.ndarray:
        out = np.zeros(self.number_of_parameters(name), dtype=float)
        for p in points:
            ratio = self.discount_factor(name, p.start) / self.discount_factor(name, p.end)
            d_start = -p.start * ratio / p.accrual
            d_end = p.end * ratio / p.accrual
            out += p.value * (d_start * self.rate_weights(name, p.start) + d_end * self.rate_weights(name, p.end))
        return out

    # ---- scenarios ----

    def bumped(self, name: str, i: int, shift: float) -> "CurveSet":
        """Copy of the set with own parameter `i` of curve `name` shifted by `shift`."""
        curve = self[name]
        if not (0 <= i < curve.own_parameter_count):
            raise ValueError(f"{name}: own parameter index {i} out of range")
        values = curve.node_values.copy()
        values[i] += shift
        return CurveSet(curve.with_node_values(values) if c is curve else c for c in self._curves.values())


def curve_parameter_report(curve_set: CurveSet) -> pd.DataFrame:
    rows = []
    for name in curve_set.all_curve_names():
        curve = curve_set[name]
        for i, (t, v) in enumerate(zip(curve.node_times, curve.node_values)):
            rows.append(
                {
                    "curve": name,
                    "parameter": i,
                    "kind": curve.kind,
                    "time": float(t),
                    "value": float(v),
                    "underlyings": "|".join(curve.underlying_names),
                }
            )
    return pd.DataFrame(rows, columns=["curve", "parameter", "kind", "time", "value", "underlyings"])
