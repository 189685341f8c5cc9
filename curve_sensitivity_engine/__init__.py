"""
Curve Sensitivity Engine

Decomposes raw ("dirty") parameter sensitivities of curves built on other
curves into per-curve ("clean") sensitivities:
- graph: curve dependency snapshot + metadata provider protocol
- validation: unknown names, cycles, parameter-count consistency
- indexing: per-curve block offsets + dependents-first order
- points: point sensitivities from the pricing layer
- curves: reference node/spread curves implementing provider + projection
- accumulation: dirty vectors (discounting + forward projections)
- redistribution: clean vectors over the curve DAG
- assembly: caller-ordered result vector + per-curve breakdown
- calculator: end-to-end pipeline
"""
from .config import SensitivityConfig
from .exceptions import (
    CurveGraphError,
    CycleError,
    ParameterCountError,
    ProjectionError,
    UnknownCurveError,
)
from .graph import Curve, CurveGraph, graph_from_provider
from .indexing import CurveIndex, CurveIndexEntry, index_graph
from .points import (
    CurvePointSensitivity,
    DiscountingPoint,
    ForwardPoint,
    RawSensitivityInput,
    raw_inputs_from_frame,
)
from .curves import CurveSet, NodeZeroCurve, SpreadZeroCurve
from .accumulation import accumulate_dirty
from .redistribution import redistribute
from .assembly import assemble, breakdown
from .calculator import CleanSensitivity, ParameterSensitivityCalculator, calculate_parameter_sensitivity
