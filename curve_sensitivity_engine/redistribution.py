from __future__ import annotations

import logging
from typing import Dict, Mapping

import numpy as np

from .exceptions import ProjectionError, UnknownCurveError
from .graph import CurveGraph
from .indexing import CurveIndex

logger = logging.getLogger(__name__)


def redistribute(
    graph: CurveGraph,
    index: CurveIndex,
    dirty: Mapping[str, np.ndarray],
) -> Dict[str, np.ndarray]:
    """
    Attribute every dirty entry to the curve that owns the parameter.

    Curves are visited dependents first. total[c] starts as dirty[c] and
    receives the blocks routed down from every dependent before c is visited;
    c then keeps its own block and routes each underlying block further down.
    Works for any depth; with one level it reduces to "own block to c,
    underlying block to u".
    """
    missing = [name for name in graph if name not in dirty]
    if missing:
        raise UnknownCurveError(missing, context="dirty sensitivities")

    total: Dict[str, np.ndarray] = {}
    for name in graph:
        vec = np.asarray(dirty[name], dtype=float)
        if vec.shape != (index[name].parameter_count,):
            raise ProjectionError(name, index[name].parameter_count, int(vec.size))
        total[name] = vec.copy()

    clean: Dict[str, np.ndarray] = {}
    for name in index.order:
        entry = index[name]
        vec = total[name]
        clean[name] = vec[entry.own_block].copy()
        for u, (start, length) in entry.underlying_blocks.items():
            total[u] += vec[start:start + length]

    # graph order for deterministic iteration downstream
    clean = {name: clean[name] for name in graph}
    for name, vec in clean.items():
        logger.debug("%s: clean total %.6g over %d own parameters", name, float(vec.sum()), len(vec))
    return clean
