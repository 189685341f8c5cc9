from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Protocol, Sequence

import numpy as np

from .config import DEFAULT_CONFIG, SensitivityConfig
from .exceptions import ProjectionError, UnknownCurveError
from .graph import CurveGraph
from .indexing import CurveIndex
from .points import DiscountingPoint, ForwardPoint, RawSensitivityInput

logger = logging.getLogger(__name__)


class SensitivityProjector(Protocol):
    """Pricing-layer projection of point contributions onto a curve's parameters."""

    def parameter_sensitivity(self, name: str, points: Sequence[DiscountingPoint]) -> np.ndarray: ...

    def parameter_forward_sensitivity(self, name: str, points: Sequence[ForwardPoint]) -> np.ndarray: ...


def _checked(name: str, values, expected: int) -> np.ndarray:
    vec = np.asarray(values, dtype=float)
    if vec.ndim != 1 or vec.shape[0] != expected:
        actual = int(vec.size) if vec.ndim != 1 else int(vec.shape[0])
        raise ProjectionError(name, expected, actual)
    return vec


def dirty_vector(
    name: str,
    parameter_count: int,
    raw: RawSensitivityInput,
    projector: SensitivityProjector,
    merge_points: bool = True,
) -> np.ndarray:
    """Discounting + forward projections of one curve's contributions, summed elementwise."""
    out = np.zeros(parameter_count, dtype=float)

    sens = raw.for_curve(name)
    if merge_points:
        sens = sens.cleaned()

    if sens.discounting:
        out += _checked(name, projector.parameter_sensitivity(name, sens.discounting), parameter_count)
    if sens.forward:
        out += _checked(name, projector.parameter_forward_sensitivity(name, sens.forward), parameter_count)
    return out


def accumulate_dirty(
    graph: CurveGraph,
    raw: RawSensitivityInput,
    index: CurveIndex,
    projector: SensitivityProjector,
    config: SensitivityConfig = DEFAULT_CONFIG,
) -> Dict[str, np.ndarray]:
    """
    Dense per-curve raw vectors of length parameter_count, in graph order.
    A curve with no raw input gets a zero vector.
    """
    unknown = [name for name in raw if name not in graph]
    if unknown:
        if not config.ignore_unknown_inputs:
            raise UnknownCurveError(unknown, context="raw sensitivity input")
        logger.warning("Ignoring raw sensitivities for curves outside the graph: %s", unknown)

    names = list(graph)

    def task(name: str) -> np.ndarray:
        return dirty_vector(name, index[name].parameter_count, raw, projector, config.merge_points)

    if config.parallel and len(names) > 1:
        with ThreadPoolExecutor(max_workers=config.max_workers) as pool:
            vectors = list(pool.map(task, names))
    else:
        vectors = [task(name) for name in names]

    dirty = dict(zip(names, vectors))

    for name, vec in dirty.items():
        if config.check_finite and not np.all(np.isfinite(vec)):
            logger.warning("%s: dirty sensitivity contains non-finite values", name)
        logger.debug("%s: dirty total %.6g over %d parameters", name, float(vec.sum()), len(vec))

    return dirty
