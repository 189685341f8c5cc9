"""
Point sensitivities produced by the pricing layer, before projection onto
curve parameters.

- DiscountingPoint: d(value)/d(zero rate at `time`)
- ForwardPoint: d(value)/d(simply-compounded forward over [start, end], accrual factor `accrual`)
"""
from __future__ import annotations

from collections import OrderedDict
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterator, Optional, Tuple

import numpy as np
import pandas as pd


@dataclass(frozen=True)
class DiscountingPoint:
    time: float
    value: float


@dataclass(frozen=True)
class ForwardPoint:
    start: float
    end: float
    accrual: float
    value: float

    def __post_init__(self):
        if self.end <= self.start:
            raise ValueError(f"Forward period must have end > start: {self.start=} {self.end=}")
        if self.accrual <= 0:
            raise ValueError("Forward accrual factor must be positive.")


@dataclass(frozen=True)
class CurvePointSensitivity:
    """All point contributions of one instrument (or book) to one curve."""
    discounting: Tuple[DiscountingPoint, ...] = ()
    forward: Tuple[ForwardPoint, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "discounting", tuple(self.discounting))
        object.__setattr__(self, "forward", tuple(self.forward))

    @property
    def is_empty(self) -> bool:
        return not self.discounting and not self.forward

    def plus(self, other: "CurvePointSensitivity") -> "CurvePointSensitivity":
        return CurvePointSensitivity(self.discounting + other.discounting, self.forward + other.forward)

    def multiplied_by(self, factor: float) -> "CurvePointSensitivity":
        return CurvePointSensitivity(
            tuple(DiscountingPoint(p.time, p.value * factor) for p in self.discounting),
            tuple(ForwardPoint(p.start, p.end, p.accrual, p.value * factor) for p in self.forward),
        )

    def cleaned(self) -> "CurvePointSensitivity":
        """Merge contributions with identical keys and sort them by time."""
        disc: Dict[float, float] = OrderedDict()
        for p in sorted(self.discounting, key=lambda p: p.time):
            disc[p.time] = disc.get(p.time, 0.0) + p.value

        fwd: Dict[Tuple[float, float, float], float] = OrderedDict()
        for p in sorted(self.forward, key=lambda p: (p.start, p.end, p.accrual)):
            key = (p.start, p.end, p.accrual)
            fwd[key] = fwd.get(key, 0.0) + p.value

        return CurvePointSensitivity(
            tuple(DiscountingPoint(t, v) for t, v in disc.items()),
            tuple(ForwardPoint(s, e, a, v) for (s, e, a), v in fwd.items()),
        )


_EMPTY = CurvePointSensitivity()


class RawSensitivityInput(Mapping):
    """Immutable curve name -> CurvePointSensitivity."""

    def __init__(self, sensitivities: Optional[Mapping[str, CurvePointSensitivity]] = None):
        self._data = MappingProxyType(dict(sensitivities or {}))

    def __getitem__(self, name: str) -> CurvePointSensitivity:
        return self._data[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"RawSensitivityInput({dict(self._data)!r})"

    def for_curve(self, name: str) -> CurvePointSensitivity:
        """Contributions to `name`; empty if the pricer reported none."""
        return self._data.get(name, _EMPTY)

    def plus(self, other: "RawSensitivityInput") -> "RawSensitivityInput":
        merged = dict(self._data)
        for name, sens in other.items():
            merged[name] = merged[name].plus(sens) if name in merged else sens
        return RawSensitivityInput(merged)

    def multiplied_by(self, factor: float) -> "RawSensitivityInput":
        return RawSensitivityInput({n: s.multiplied_by(factor) for n, s in self._data.items()})


def raw_inputs_from_frame(frame: pd.DataFrame) -> RawSensitivityInput:
    """
    Build a RawSensitivityInput from a long table of point contributions.

    Columns:
      - curve, kind ("discounting" | "forward"), value
      - discounting rows: time
      - forward rows: start, end, accrual
    """
    required = {"curve", "kind", "value"}
    missing = required - set(frame.columns)
    if missing:
        raise ValueError(f"Point sensitivity frame missing columns: {sorted(missing)}")

    kinds = frame["kind"].astype(str).str.lower()
    bad = sorted(set(kinds) - {"discounting", "forward"})
    if bad:
        raise ValueError(f"Unsupported point sensitivity kind(s): {bad}")

    disc_rows = frame[kinds == "discounting"]
    fwd_rows = frame[kinds == "forward"]
    if not disc_rows.empty and "time" not in frame.columns:
        raise ValueError("Discounting rows need a 'time' column.")
    if not fwd_rows.empty and not {"start", "end", "accrual"}.issubset(frame.columns):
        raise ValueError("Forward rows need 'start', 'end' and 'accrual' columns.")
    if not disc_rows.empty and disc_rows["time"].isna().any():
        raise ValueError("Discounting rows with a missing 'time' value.")
    if not fwd_rows.empty and fwd_rows[["start", "end", "accrual"]].isna().any().any():
        raise ValueError("Forward rows with a missing 'start', 'end' or 'accrual' value.")

    disc: Dict[str, list] = OrderedDict()
    fwd: Dict[str, list] = OrderedDict()
    for name in pd.unique(frame["curve"].astype(str)):
        disc[name] = []
        fwd[name] = []

    for _, r in disc_rows.iterrows():
        disc[str(r["curve"])].append(DiscountingPoint(float(r["time"]), float(r["value"])))

    for _, r in fwd_rows.iterrows():
        fwd[str(r["curve"])].append(
            ForwardPoint(float(r["start"]), float(r["end"]), float(r["accrual"]), float(r["value"]))
        )

    return RawSensitivityInput({n: CurvePointSensitivity(disc[n], fwd[n]) for n in disc})


def point_totals(raw: RawSensitivityInput) -> pd.DataFrame:
    """Per-curve count and sum of point contributions, by kind."""
    rows = []
    for name, sens in raw.items():
        rows.append(
            {
                "curve": name,
                "n_discounting": len(sens.discounting),
                "n_forward": len(sens.forward),
                "discounting_total": float(np.sum([p.value for p in sens.discounting])),
                "forward_total": float(np.sum([p.value for p in sens.forward])),
            }
        )
    return pd.DataFrame(
        rows,
        columns=["curve", "n_discounting", "n_forward", "discounting_total", "forward_total"],
    )
