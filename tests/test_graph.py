import pytest

from curve_sensitivity_engine.exceptions import (
    CurveGraphError,
    CycleError,
    ParameterCountError,
    UnknownCurveError,
)
from curve_sensitivity_engine.graph import Curve, CurveGraph, graph_from_provider
from curve_sensitivity_engine.indexing import dependents_first_order, index_graph
from curve_sensitivity_engine.validation import find_cycle, validate_graph


@pytest.fixture(scope="module")
def chain_graph():
    # OIS <- LIBOR3M <- LIBOR6M
    return CurveGraph(
        [
            Curve("OIS", 4),
            Curve("LIBOR3M", 7, ("OIS",)),
            Curve("LIBOR6M", 9, ("LIBOR3M",)),
        ]
    )


@pytest.fixture(scope="module")
def diamond_graph():
    return CurveGraph(
        [
            Curve("TOP", 2 + 3 + 2 + 3 + 1, ("LEFT", "RIGHT")),
            Curve("LEFT", 3 + 2, ("BASE",)),
            Curve("RIGHT", 3 + 3 - 1, ("BASE",)),
            Curve("BASE", 3),
        ]
    )


class _Provider:
    def __init__(self, meta):
        self.meta = meta

    def all_curve_names(self):
        return list(self.meta)

    def number_of_parameters(self, name):
        return self.meta[name][0]

    def underlying_curve_names(self, name):
        return list(self.meta[name][1])


def test_curve_rejects_bad_metadata():
    with pytest.raises(ValueError):
        Curve("A", -1)
    with pytest.raises(ValueError):
        Curve("B", 10, ("A", "A"))


def test_graph_is_immutable_mapping_in_insertion_order(chain_graph):
    assert list(chain_graph) == ["OIS", "LIBOR3M", "LIBOR6M"]
    assert chain_graph["LIBOR3M"].underlying_names == ("OIS",)
    with pytest.raises(TypeError):
        chain_graph["X"] = Curve("X", 1)


def test_graph_from_mapping_checks_keys():
    with pytest.raises(ValueError):
        CurveGraph.from_mapping({"A": Curve("B", 3)})
    with pytest.raises(ValueError):
        CurveGraph([Curve("A", 1), Curve("A", 2)])


def test_unknown_requested_name_raises(chain_graph):
    with pytest.raises(UnknownCurveError) as exc:
        validate_graph(chain_graph, ["OIS", "EURIBOR"])
    assert exc.value.names == ["EURIBOR"]
    assert isinstance(exc.value, ValueError), "graph errors stay catchable as ValueError"


def test_duplicate_requested_name_raises(chain_graph):
    with pytest.raises(CurveGraphError, match="OIS"):
        validate_graph(chain_graph, ["OIS", "LIBOR3M", "OIS"])
    with pytest.raises(CurveGraphError):
        index_graph(chain_graph, ["LIBOR3M", "LIBOR3M"])


def test_two_curve_cycle_detected():
    graph = CurveGraph([Curve("X", 4, ("Y",)), Curve("Y", 4, ("X",))])
    with pytest.raises(CycleError) as exc:
        index_graph(graph, ["X"])
    assert exc.value.cycle[0] == exc.value.cycle[-1]
    assert set(exc.value.cycle) == {"X", "Y"}


def test_self_loop_and_long_cycle_detected():
    assert find_cycle(CurveGraph([Curve("S", 1, ("S",))])) == ["S", "S"]

    graph = CurveGraph(
        [
            Curve("A", 1, ("B",)),
            Curve("B", 1, ("C",)),
            Curve("C", 1, ("A",)),
            Curve("D", 1),
        ]
    )
    assert find_cycle(graph) == ["A", "B", "C", "A"]


def test_acyclic_graphs_have_no_cycle(chain_graph, diamond_graph):
    assert find_cycle(chain_graph) is None
    assert find_cycle(diamond_graph) is None


def test_parameter_count_below_underlyings_raises():
    graph = CurveGraph([Curve("A", 5), Curve("B", 4, ("A",))])
    with pytest.raises(ParameterCountError) as exc:
        validate_graph(graph)
    assert (exc.value.curve, exc.value.declared, exc.value.required) == ("B", 4, 5)


def test_exogenous_underlyings_are_not_checked():
    graph = CurveGraph([Curve("B", 3, ("NOT_IN_SET",))])
    validate_graph(graph, ["B"])
    idx = index_graph(graph)
    assert idx["B"].own_parameter_count == 3
    assert idx["B"].own_block_start == 0
    assert dict(idx["B"].underlying_blocks) == {}


def test_two_curve_offsets():
    idx = index_graph(CurveGraph([Curve("A", 5), Curve("B", 8, ("A",))]))
    assert idx["A"].id == 0 and idx["B"].id == 1
    assert idx["B"].own_parameter_count == 3
    assert idx["B"].own_block_start == 5
    assert idx["B"].underlying_blocks["A"] == (0, 5)
    assert idx["B"].own_block == slice(5, 8)


def test_diamond_offsets_follow_declared_order(diamond_graph):
    idx = index_graph(diamond_graph)
    top = idx["TOP"]
    assert list(top.underlying_blocks) == ["LEFT", "RIGHT"]
    assert top.underlying_blocks["LEFT"] == (0, 5)
    assert top.underlying_blocks["RIGHT"] == (5, 5)
    assert top.own_parameter_count == 1
    assert idx["LEFT"].own_parameter_count == 2
    assert idx["BASE"].own_parameter_count == 3


def test_dependents_first_order(chain_graph, diamond_graph):
    assert dependents_first_order(chain_graph) == ["LIBOR6M", "LIBOR3M", "OIS"]

    order = dependents_first_order(diamond_graph)
    assert order.index("TOP") < order.index("LEFT") < order.index("BASE")
    assert order.index("TOP") < order.index("RIGHT") < order.index("BASE")
    assert order == ["TOP", "LEFT", "RIGHT", "BASE"], "ties resolve by insertion order"

    with pytest.raises(CycleError) as exc:
        dependents_first_order(CurveGraph([Curve("X", 1, ("Y",)), Curve("Y", 1, ("X",))]))
    assert set(exc.value.cycle) == {"X", "Y"}


def test_index_output_length(chain_graph):
    idx = index_graph(chain_graph)
    assert idx.output_length(["OIS", "LIBOR6M"]) == 4 + 2
    with pytest.raises(UnknownCurveError):
        idx.output_length(["NOPE"])


def test_graph_from_provider_restricts_working_set():
    provider = _Provider({"A": (5, ()), "B": (8, ("A",)), "C": (10, ("B",))})

    full = graph_from_provider(provider)
    assert list(full) == ["A", "B", "C"]

    sub = graph_from_provider(provider, ["C", "B"])
    assert list(sub) == ["C", "B"]
    assert sub.exogenous_underlyings("B") == ["A"]
    assert sub.in_graph_underlyings("C") == ["B"]

    with pytest.raises(CurveGraphError):
        graph_from_provider(provider, ["Z"])
