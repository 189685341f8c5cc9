from __future__ import annotations

from typing import Iterable, List, Sequence


class CurveGraphError(ValueError):
    """Base class for every failure of the sensitivity decomposition."""


class UnknownCurveError(CurveGraphError):
    def __init__(self, names: Iterable[str], context: str = "curve graph"):
        self.names: List[str] = list(names)
        super().__init__(f"Unknown curve name(s) in {context}: {', '.join(self.names)}")


class CycleError(CurveGraphError):
    def __init__(self, cycle: Sequence[str]):
        self.cycle: List[str] = list(cycle)
        super().__init__(f"Underlying-curve relation is cyclic: {' -> '.join(self.cycle)}")


class ParameterCountError(CurveGraphError):
    def __init__(self, curve: str, declared: int, required: int):
        self.curve = curve
        self.declared = declared
        self.required = required
        super().__init__(
            f"{curve}: declares {declared} parameters but its underlying curves require {required}."
        )


class ProjectionError(CurveGraphError):
    def __init__(self, curve: str, expected: int, actual: int):
        self.curve = curve
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{curve}: projection returned {actual} parameter sensitivities, expected {expected}."
        )
