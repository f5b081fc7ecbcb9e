"""Tests for Node: propagation, fan-out, reconciliation, reaction, save/restore."""

import logging
import uuid

import pytest
from PySide6.QtCore import QPointF, QSize

from nodeflow import (
    Node, NodeGraphicsObject, PortType, PropagationCycleError, ReactToConnectionState,
)
from nodeflow.builtin_models import DecimalData, IntegerData, SumDataModel, decimal_to_integer
from tests.helpers import (
    TYPE_A, TYPE_B, RecordingModel, SourceModel, SpyConnection, connect, make_node,
)


# ---------------------------------------------------------------------------
# Fan-in
# ---------------------------------------------------------------------------

def test_fan_in_delivers_values_in_connection_order() -> None:
    sources = [make_node(SourceModel(DecimalData(v))) for v in (1.0, 2.0, 3.0)]
    sink = make_node(RecordingModel())
    for s in sources:
        connect(s, 0, sink, 0)

    # change upstream values out of attachment order
    sources[2].model.value = DecimalData(30.0)
    sources[0].model.value = DecimalData(10.0)
    sink.propagate_data(0)

    assert sink.model.batches[-1] == (0, [DecimalData(10.0), DecimalData(2.0), DecimalData(30.0)])


def test_fan_in_is_one_batch_per_port() -> None:
    sources = [make_node(SourceModel(DecimalData(v))) for v in (1.0, 2.0)]
    sink = make_node(RecordingModel())
    for s in sources:
        connect(s, 0, sink, 0)

    sink.propagate_data(0)
    assert len(sink.model.batches) == 1
    assert len(sink.model.batches[0][1]) == 2


def test_unconnected_input_receives_empty_batch() -> None:
    sink = make_node(RecordingModel(inputs=2))
    sink.propagate_data(1)
    assert sink.model.batches == [(1, [])]


def test_propagate_data_skips_draft_connections() -> None:
    from nodeflow import Connection
    sink = make_node(RecordingModel())
    draft = Connection.draft(sink, PortType.IN, 0)
    draft.add_to_nodes()
    sink.propagate_data(0)
    assert sink.model.batches == [(0, [])]


def test_propagate_data_recalculates_visuals() -> None:
    sink = make_node(RecordingModel())
    g = sink.graphics_object
    sink.propagate_data(0)
    assert g.geometry_changes == 1
    assert g.update_requests == 1
    assert g.connection_moves == 1


# ---------------------------------------------------------------------------
# Conversion
# ---------------------------------------------------------------------------

def test_converter_is_applied_to_upstream_value() -> None:
    source = make_node(SourceModel(DecimalData(3.7)))
    sink = make_node(RecordingModel(in_type=TYPE_B))
    connect(source, 0, sink, 0, converter=decimal_to_integer)

    sink.propagate_data(0)
    assert sink.model.batches[-1] == (0, [IntegerData(3)])


def test_no_converter_passes_value_through_unchanged() -> None:
    raw = DecimalData(3.7)
    source = make_node(SourceModel(raw))
    sink = make_node(RecordingModel())
    connect(source, 0, sink, 0)

    sink.propagate_data(0)
    assert sink.model.batches[-1][1][0] is raw


# ---------------------------------------------------------------------------
# Fan-out
# ---------------------------------------------------------------------------

def test_data_updated_fans_out_once_per_connection() -> None:
    source = make_node(SourceModel())
    sinks = [make_node(RecordingModel()) for _ in range(3)]
    spies = [connect(source, 0, s, 0, cls=SpyConnection) for s in sinks]

    value = DecimalData(5.0)
    source.model.emit(value)

    for spy in spies:
        assert len(spy.propagated) == 1
        assert spy.propagated[0] is value


def test_data_updated_only_touches_that_output_port() -> None:
    source = make_node(SourceModel(outputs=2))
    on_0 = connect(source, 0, make_node(RecordingModel()), 0, cls=SpyConnection)
    on_1 = connect(source, 1, make_node(RecordingModel()), 0, cls=SpyConnection)

    source.model.emit(DecimalData(1.0), port_index=1)
    assert on_0.propagated == []
    assert len(on_1.propagated) == 1


def test_fan_out_reaches_downstream_model() -> None:
    source = make_node(SourceModel())
    sink = make_node(RecordingModel())
    connect(source, 0, sink, 0)

    source.model.emit(DecimalData(8.0))
    assert sink.model.batches == [(0, [DecimalData(8.0)])]


# ---------------------------------------------------------------------------
# Port-count reconciliation
# ---------------------------------------------------------------------------

def test_port_count_shrink_requests_removal_of_stale_connections() -> None:
    source = make_node(SourceModel(outputs=3))
    conns = [connect(source, i, make_node(RecordingModel()), 0) for i in range(3)]
    killed = []
    source.kill_connection.connect(lambda c: killed.append(c))

    source.model.resize(1)

    assert killed == [conns[1], conns[2]]
    assert source.state.port_count(PortType.OUT) == 1
    assert list(source.state.entries(PortType.OUT)[0].values()) == [conns[0]]
    assert source.geometry.n_sources == 1


def test_port_count_growth_adds_empty_ports() -> None:
    source = make_node(SourceModel(outputs=1))
    killed = []
    source.kill_connection.connect(lambda c: killed.append(c))

    source.model.resize(3)
    assert killed == []
    assert source.state.port_count(PortType.OUT) == 3
    assert source.state.connections(PortType.OUT, 2) == {}


def test_port_count_change_recalculates_visuals() -> None:
    source = make_node(SourceModel(outputs=2))
    source.model.resize(1)
    assert source.graphics_object.geometry_changes == 1


# ---------------------------------------------------------------------------
# Reaction to a dragged connection
# ---------------------------------------------------------------------------

def test_reaction_state_machine() -> None:
    node = make_node(RecordingModel(), x=100.0, y=50.0)
    assert node.state.reaction() == ReactToConnectionState.NOT_REACTING

    node.react_to_possible_connection(PortType.IN, TYPE_A, QPointF(110.0, 60.0))
    assert node.state.is_reacting()
    assert node.state.reacting_port_type() == PortType.IN
    assert node.state.reacting_data_type() == TYPE_A
    assert node.geometry.dragging_position() == QPointF(10.0, 10.0)

    node.reset_reaction_to_connection()
    assert node.state.reaction() == ReactToConnectionState.NOT_REACTING
    assert node.state.reacting_port_type() == PortType.NONE
    assert node.state.reacting_data_type() is None
    assert node.geometry.dragging_position() is None


def test_reacting_twice_keeps_only_last_type() -> None:
    node = make_node(RecordingModel())
    node.react_to_possible_connection(PortType.IN, TYPE_A, QPointF(1.0, 1.0))
    node.react_to_possible_connection(PortType.OUT, TYPE_B, QPointF(2.0, 3.0))
    assert node.state.reacting_port_type() == PortType.OUT
    assert node.state.reacting_data_type() == TYPE_B
    assert node.geometry.dragging_position() == QPointF(2.0, 3.0)


def test_reset_reaction_is_idempotent_and_repaints() -> None:
    node = make_node(RecordingModel())
    node.reset_reaction_to_connection()
    node.reset_reaction_to_connection()
    assert not node.state.is_reacting()
    assert node.graphics_object.update_requests == 2


# ---------------------------------------------------------------------------
# Serialisation
# ---------------------------------------------------------------------------

def test_save_record_shape() -> None:
    model_record = {"name": "Recorder", "payload": [1, 2]}
    node = make_node(RecordingModel(saved=model_record), x=3.5, y=-2.0)
    assert node.save() == {
        "id": str(node.id),
        "model": model_record,
        "position": {"x": 3.5, "y": -2.0},
    }


def test_restore_round_trip() -> None:
    model_record = {"name": "Recorder", "payload": [1, 2]}
    original = make_node(RecordingModel(saved=model_record), x=3.5, y=-2.0)
    record = original.save()

    copy = make_node(RecordingModel())
    copy.restore(record)
    assert copy.id == original.id
    assert copy.graphics_object.pos() == QPointF(3.5, -2.0)
    assert copy.model.restored == [model_record]
    assert copy.model.restored[0] is model_record


def test_restore_defaults_for_missing_fields() -> None:
    node = make_node(RecordingModel(), x=7.0, y=7.0)
    old_id = node.id
    node.restore({})
    assert node.id == old_id
    assert node.graphics_object.pos() == QPointF(0.0, 0.0)
    assert node.model.restored == [{}]


def test_ids_are_unique() -> None:
    ids = {Node(RecordingModel()).id for _ in range(20)}
    assert len(ids) == 20
    assert all(isinstance(i, uuid.UUID) for i in ids)


# ---------------------------------------------------------------------------
# Preconditions and hardening
# ---------------------------------------------------------------------------

def test_rendering_operations_require_graphics_object() -> None:
    node = Node(RecordingModel())
    with pytest.raises(RuntimeError):
        node.save()
    with pytest.raises(RuntimeError):
        node.reset_reaction_to_connection()


def test_graphics_object_is_set_once() -> None:
    node = make_node(RecordingModel())
    with pytest.raises(RuntimeError):
        node.set_graphics_object(NodeGraphicsObject())


class _Echo(RecordingModel):
    """Hands every input batch straight on to the next node, as a
    synchronous recompute-and-notify chain does."""

    def __init__(self):
        super().__init__(inputs=1, outputs=1)
        self.next_node = None

    def out_data(self, port_index):
        return DecimalData(1.0)

    def set_in_data(self, node_data, port_index):
        super().set_in_data(node_data, port_index)
        if self.next_node is not None:
            self.next_node.propagate_data(0)


def _two_node_loop(cycle_guard: bool):
    a = make_node(_Echo(), cycle_guard=cycle_guard)
    b = make_node(_Echo(), cycle_guard=cycle_guard)
    connect(a, 0, b, 0)
    connect(b, 0, a, 0)
    a.model.next_node = b
    b.model.next_node = a
    return a, b


def test_cycle_guard_raises_on_reentry() -> None:
    a, b = _two_node_loop(cycle_guard=True)
    with pytest.raises(PropagationCycleError):
        a.propagate_data(0)
    # the guard resets once the failed propagation unwinds
    a.model.next_node = None
    b.model.next_node = None
    a.propagate_data(0)
    assert a.model.batches[-1] == (0, [DecimalData(1.0)])


def test_without_cycle_guard_a_cycle_recurses_unbounded() -> None:
    a, _ = _two_node_loop(cycle_guard=False)
    with pytest.raises(RecursionError):
        a.propagate_data(0)


def test_cycle_guard_stops_a_signal_driven_cycle(caplog) -> None:
    a = make_node(SumDataModel(), cycle_guard=True)
    b = make_node(SumDataModel(), cycle_guard=True)
    connect(a, 0, b, 0)
    connect(b, 0, a, 0)

    # each Sum re-emits data_updated from set_in_data, so the loop runs
    # through model signals
    with caplog.at_level(logging.ERROR, logger="nodeflow"):
        a.propagate_data(0)

    assert "propagation cycle" in caplog.text
    assert len(a.model.inputs()) == 0
    assert a.state.port_count(PortType.IN) == 1


def test_embedded_widget_resize_adjusts_and_reroutes() -> None:
    class Widget:
        adjusted = 0

        def adjustSize(self):
            self.adjusted += 1

        def sizeHint(self):
            return QSize(300, 40)

    widget = Widget()

    class WithWidget(RecordingModel):
        def embedded_widget(self):
            return widget

    node = make_node(WithWidget())
    node.model.embedded_widget_size_updated.emit()
    assert widget.adjusted == 1
    assert node.geometry.width >= 300
    assert node.graphics_object.connection_moves == 1
