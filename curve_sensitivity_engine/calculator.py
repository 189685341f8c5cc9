from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .accumulation import SensitivityProjector, accumulate_dirty
from .assembly import assemble, breakdown
from .config import DEFAULT_CONFIG, SensitivityConfig
from .graph import CurveGraph, CurveMetadataProvider, graph_from_provider
from .indexing import CurveIndex, index_graph
from .points import RawSensitivityInput
from .redistribution import redistribute

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class CleanSensitivity:
    """Assembled result plus the intermediate per-curve vectors it came from."""
    result: np.ndarray
    requested: Tuple[str, ...]
    index: CurveIndex
    dirty: Dict[str, np.ndarray]
    clean: Dict[str, np.ndarray]

    def to_series(self) -> pd.Series:
        return breakdown(self.result, self.index, self.requested)

    def block(self, name: str) -> np.ndarray:
        """Sub-range of `result` belonging to a requested curve."""
        start = 0
        for n in self.requested:
            length = self.index[n].own_parameter_count
            if n == name:
                return self.result[start:start + length]
            start += length
        raise KeyError(name)


def calculate_parameter_sensitivity(
    graph: CurveGraph,
    raw: RawSensitivityInput,
    projector: SensitivityProjector,
    requested: Sequence[str],
    config: SensitivityConfig = DEFAULT_CONFIG,
) -> CleanSensitivity:
    """
    Validate -> index -> accumulate dirty -> redistribute -> assemble.

    Any error aborts the whole calculation; no partial result is returned.
    """
    requested = tuple(requested)
    index = index_graph(graph, requested)
    dirty = accumulate_dirty(graph, raw, index, projector, config)
    clean = redistribute(graph, index, dirty)
    result = assemble(clean, requested)

    logger.info(
        "Parameter sensitivity: %d curves, %d requested, %d result entries",
        len(graph), len(requested), len(result),
    )
    return CleanSensitivity(result=result, requested=requested, index=index, dirty=dirty, clean=clean)


class ParameterSensitivityCalculator:
    """
    Binds a projector (and, optionally, a separate metadata provider) so that
    repeated calculations against the same curves only pass point inputs.
    """

    def __init__(
        self,
        projector: SensitivityProjector,
        metadata: Optional[CurveMetadataProvider] = None,
        config: SensitivityConfig = DEFAULT_CONFIG,
    ):
        if metadata is None:
            if not isinstance(projector, CurveMetadataProvider):
                raise ValueError("A curve metadata provider is required when the projector does not expose one.")
            metadata = projector
        self.projector = projector
        self.metadata = metadata
        self.config = config

    def graph(self, curve_names: Optional[Iterable[str]] = None) -> CurveGraph:
        return graph_from_provider(self.metadata, curve_names)

    def calculate(
        self,
        raw: RawSensitivityInput,
        requested: Sequence[str],
        curve_names: Optional[Iterable[str]] = None,
    ) -> CleanSensitivity:
        return calculate_parameter_sensitivity(self.graph(curve_names), raw, self.projector, requested, self.config)

    def calculate_vector(self, raw: RawSensitivityInput, requested: Sequence[str]) -> np.ndarray:
        return self.calculate(raw, requested).result
