from __future__ import annotations

from typing import Mapping, Sequence

import numpy as np
import pandas as pd

from .exceptions import UnknownCurveError
from .indexing import CurveIndex


def assemble(clean: Mapping[str, np.ndarray], requested: Sequence[str]) -> np.ndarray:
    """Concatenate clean[name] for name in requested, in caller order."""
    missing = [name for name in requested if name not in clean]
    if missing:
        raise UnknownCurveError(missing, context="clean sensitivities")

    if len(requested) == 0:
        return np.zeros(0, dtype=float)
    return np.concatenate([np.asarray(clean[name], dtype=float) for name in requested])


def breakdown(result: np.ndarray, index: CurveIndex, requested: Sequence[str]) -> pd.Series:
    """
    Re-associate an assembled result with curve names:
    Series indexed by (curve, parameter), parameter = own parameter number.
    """
    expected = index.output_length(requested)
    if len(result) != expected:
        raise ValueError(f"Result length {len(result)} does not match requested curves ({expected}).")

    tuples = [(name, i) for name in requested for i in range(index[name].own_parameter_count)]
    mi = pd.MultiIndex.from_tuples(tuples, names=["curve", "parameter"])
    return pd.Series(np.asarray(result, dtype=float), index=mi, name="sensitivity")
