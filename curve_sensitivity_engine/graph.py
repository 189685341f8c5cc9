from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Iterator, List, Optional, Protocol, Tuple, runtime_checkable

from .exceptions import UnknownCurveError


@dataclass(frozen=True)
class Curve:
    """
    Dependency metadata of one curve.

    parameter_count includes the parameters of the underlying curves: the
    pricing layer exposes them in the curve's own sensitivity vector, underlyings
    first (declared order), then the curve's own new parameters.
    """
    name: str
    parameter_count: int
    underlying_names: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "underlying_names", tuple(self.underlying_names))
        if self.parameter_count < 0:
            raise ValueError(f"{self.name}: negative parameter count.")
        if len(set(self.underlying_names)) != len(self.underlying_names):
            raise ValueError(f"{self.name}: duplicated underlying curve name.")


class CurveGraph(Mapping):
    """Immutable name -> Curve snapshot for one calculation, in insertion order."""

    def __init__(self, curves: Iterable[Curve] = ()):
        data = {}
        for curve in curves:
            if curve.name in data:
                raise ValueError(f"Duplicate curve name: {curve.name}")
            data[curve.name] = curve
        self._curves = MappingProxyType(data)

    @classmethod
    def from_mapping(cls, curves: Mapping[str, Curve]) -> "CurveGraph":
        for name, curve in curves.items():
            if name != curve.name:
                raise ValueError(f"Graph key {name!r} does not match curve name {curve.name!r}.")
        return cls(curves.values())

    def __getitem__(self, name: str) -> Curve:
        return self._curves[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._curves)

    def __len__(self) -> int:
        return len(self._curves)

    def __repr__(self) -> str:
        return f"CurveGraph({list(self._curves.values())!r})"

    def in_graph_underlyings(self, name: str) -> List[str]:
        """Underlyings of `name` present in the graph; absent ones are exogenous."""
        return [u for u in self._curves[name].underlying_names if u in self._curves]

    def exogenous_underlyings(self, name: str) -> List[str]:
        return [u for u in self._curves[name].underlying_names if u not in self._curves]


@runtime_checkable
class CurveMetadataProvider(Protocol):
    def all_curve_names(self) -> Iterable[str]: ...

    def number_of_parameters(self, name: str) -> int: ...

    def underlying_curve_names(self, name: str) -> List[str]: ...


def graph_from_provider(provider: CurveMetadataProvider, names: Optional[Iterable[str]] = None) -> CurveGraph:
    """
    Snapshot the provider's metadata into a CurveGraph.

    If `names` is given, only those curves enter the working set; their
    underlyings outside it become exogenous.
    """
    available = list(provider.all_curve_names())
    if names is None:
        selected = available
    else:
        selected = list(dict.fromkeys(names))
        known = set(available)
        missing = [n for n in selected if n not in known]
        if missing:
            raise UnknownCurveError(missing, context="curve provider")

    return CurveGraph(
        Curve(
            name=n,
            parameter_count=int(provider.number_of_parameters(n)),
            underlying_names=tuple(provider.underlying_curve_names(n)),
        )
        for n in selected
    )
