from __future__ import annotations

import logging
from collections import deque
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterator, List, Sequence, Tuple

from .exceptions import CycleError, UnknownCurveError
from .graph import CurveGraph
from .validation import find_cycle, validate_graph

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CurveIndexEntry:
    """
    Offsets of one curve inside its own dirty vector.

    - [0, own_block_start): underlying blocks, contiguous, declared order
    - [own_block_start, parameter_count): the curve's own parameters
    """
    id: int
    parameter_count: int
    own_parameter_count: int
    own_block_start: int
    underlying_blocks: Mapping = field(default_factory=dict)   # name -> (start, length)

    def __post_init__(self):
        object.__setattr__(self, "underlying_blocks", MappingProxyType(dict(self.underlying_blocks)))

    @property
    def own_block(self) -> slice:
        return slice(self.own_block_start, self.own_block_start + self.own_parameter_count)


class CurveIndex(Mapping):
    """Immutable name -> CurveIndexEntry, plus a dependents-first processing order."""

    def __init__(self, entries: Dict[str, CurveIndexEntry], order: Sequence[str]):
        self._entries = MappingProxyType(dict(entries))
        self._order: Tuple[str, ...] = tuple(order)

    def __getitem__(self, name: str) -> CurveIndexEntry:
        return self._entries[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def order(self) -> Tuple[str, ...]:
        """Every curve appears before all of its in-graph underlyings."""
        return self._order

    def output_length(self, requested: Sequence[str]) -> int:
        missing = [n for n in requested if n not in self._entries]
        if missing:
            raise UnknownCurveError(missing, context="curve index")
        return sum(self._entries[n].own_parameter_count for n in requested)


def dependents_first_order(graph: CurveGraph) -> List[str]:
    """
    Kahn's algorithm on the in-graph underlying relation, ties broken by graph
    insertion order. Raises CycleError if the graph is not acyclic.
    """
    position = {name: i for i, name in enumerate(graph)}
    pending_dependents = {name: 0 for name in graph}
    for name in graph:
        for u in graph.in_graph_underlyings(name):
            pending_dependents[u] += 1

    ready = deque(name for name in graph if pending_dependents[name] == 0)
    order: List[str] = []
    while ready:
        name = ready.popleft()
        order.append(name)
        released = []
        for u in graph.in_graph_underlyings(name):
            pending_dependents[u] -= 1
            if pending_dependents[u] == 0:
                released.append(u)
        ready.extend(sorted(released, key=position.__getitem__))

    if len(order) != len(graph):
        raise CycleError(find_cycle(graph) or [n for n in graph if n not in set(order)])
    return order


def index_graph(graph: CurveGraph, requested: Sequence[str] = ()) -> CurveIndex:
    """Validate `graph` (and `requested`) and build the immutable CurveIndex."""
    validate_graph(graph, requested)

    entries: Dict[str, CurveIndexEntry] = {}
    for i, (name, curve) in enumerate(graph.items()):
        blocks = {}
        start = 0
        for u in graph.in_graph_underlyings(name):
            length = graph[u].parameter_count
            blocks[u] = (start, length)
            start += length

        entries[name] = CurveIndexEntry(
            id=i,
            parameter_count=curve.parameter_count,
            own_parameter_count=curve.parameter_count - start,
            own_block_start=start,
            underlying_blocks=blocks,
        )
        exogenous = graph.exogenous_underlyings(name)
        if exogenous:
            logger.debug("%s: exogenous underlyings %s excluded from decomposition", name, exogenous)
        logger.debug("%s: %s", name, entries[name])

    return CurveIndex(entries, dependents_first_order(graph))
