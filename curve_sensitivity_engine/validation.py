from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from .exceptions import CurveGraphError, CycleError, ParameterCountError, UnknownCurveError
from .graph import CurveGraph


def find_cycle(graph: CurveGraph) -> Optional[List[str]]:
    """
    DFS with a recursion stack over the in-graph underlying relation.
    Returns the first cycle found (first name repeated at the end), or None.
    """
    WHITE, GREY, BLACK = 0, 1, 2
    colour: Dict[str, int] = {name: WHITE for name in graph}

    for root in graph:
        if colour[root] != WHITE:
            continue

        stack = [(root, iter(graph.in_graph_underlyings(root)))]
        path = [root]
        colour[root] = GREY

        while stack:
            node, children = stack[-1]
            child = next(children, None)
            if child is None:
                stack.pop()
                path.pop()
                colour[node] = BLACK
                continue

            if colour[child] == GREY:
                return path[path.index(child):] + [child]
            if colour[child] == WHITE:
                colour[child] = GREY
                path.append(child)
                stack.append((child, iter(graph.in_graph_underlyings(child))))

    return None


def validate_graph(graph: CurveGraph, requested: Sequence[str] = ()) -> None:
    """
    Raises UnknownCurveError, CycleError or ParameterCountError; a requested
    name listed twice raises CurveGraphError.
    Underlyings absent from the graph are exogenous and not checked.
    """
    missing = [name for name in requested if name not in graph]
    if missing:
        raise UnknownCurveError(missing, context="requested curves")

    repeated = sorted({name for name in requested if list(requested).count(name) > 1})
    if repeated:
        raise CurveGraphError(f"Requested curve name(s) listed more than once: {', '.join(repeated)}")

    cycle = find_cycle(graph)
    if cycle is not None:
        raise CycleError(cycle)

    for name, curve in graph.items():
        required = sum(graph[u].parameter_count for u in graph.in_graph_underlyings(name))
        if curve.parameter_count < required:
            raise ParameterCountError(name, curve.parameter_count, required)
