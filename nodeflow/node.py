"""Graph node: a NodeDataModel plus its port bookkeeping and layout.

Data moves through the graph reactively and depth-first:

  model.data_updated(i)  →  Node.on_data_updated(i)
      → Connection.propagate_data(value) for every wire on output i
          → downstream Node.propagate_data(j)
              → collects every wire on input j, converts, and hands the
                whole batch to downstream model.set_in_data(values, j)

Port-count changes travel the other way: the model emits
port_count_changed, the node asks the scene to kill wires on ports that no
longer exist (kill_connection signal), then resizes its NodeState.

The graph must be acyclic.  With cycle_guard=False (the default) a cycle
recurses until Python's recursion limit.  With cycle_guard=True re-entering
a node that is already propagating logs an error and stops the cycle by
raising PropagationCycleError.  The exception reaches a direct caller, but
when the re-entry happens inside a slot run by a model signal PySide6
reports it at the emit() site and propagation unwinds from there.
"""

from __future__ import annotations

import logging
import uuid
from typing import List, Optional

from PySide6.QtCore import QObject, QPointF, Signal

from .data_model import NodeData, NodeDataModel
from .geometry import NodeGeometry
from .graphics import GraphicsObject
from .node_state import NodeState, ReactToConnectionState
from .ports import NodeDataType, PortIndex, PortType

logger = logging.getLogger(__name__)


class PropagationCycleError(RuntimeError):
    """Data propagation re-entered a node that was still propagating."""


class Node(QObject):
    """One vertex of the flow graph.

    Signals:
      kill_connection(Connection) – the scene should delete this connection
    """

    kill_connection = Signal(object)

    def __init__(self, model: NodeDataModel, *, geometry: NodeGeometry = None,
                 cycle_guard: bool = False, parent=None):
        super().__init__(parent)
        self._id = uuid.uuid4()
        self.model = model
        self.state = NodeState(model)
        self.geometry = geometry if geometry is not None else NodeGeometry(model)
        self._graphics: Optional[GraphicsObject] = None
        self.cycle_guard = cycle_guard
        self._propagating = False

        self.geometry.recalculate_size()

        model.data_updated.connect(self.on_data_updated)
        model.embedded_widget_size_updated.connect(self.on_node_size_updated)
        model.port_count_changed.connect(self.on_port_count_changed)

    def __repr__(self) -> str:
        return f"Node({self._id}, {self.model.name()!r})"

    @property
    def id(self) -> uuid.UUID:
        return self._id

    # -- Graphics --

    @property
    def graphics_object(self) -> Optional[GraphicsObject]:
        return self._graphics

    def set_graphics_object(self, graphics: GraphicsObject) -> None:
        if self._graphics is not None:
            raise RuntimeError(f"{self!r} already has a graphics object")
        self._graphics = graphics
        self.geometry.recalculate_size()

    def _require_graphics(self) -> GraphicsObject:
        if self._graphics is None:
            raise RuntimeError(f"{self!r} has no graphics object attached")
        return self._graphics

    def recalculate_visuals(self) -> None:
        """A data change can make the node take more space than before, so
        resize, repaint and reroute its wires."""
        graphics = self._require_graphics()
        graphics.set_geometry_changed()
        self.geometry.recalculate_size()
        graphics.update()
        graphics.move_connections()

    # -- Serialisation --

    def save(self) -> dict:
        pos = self._require_graphics().pos()
        return {
            "id": str(self._id),
            "model": self.model.save(),
            "position": {"x": pos.x(), "y": pos.y()},
        }

    def restore(self, record: dict) -> None:
        """Inverse of save().  A missing id keeps the current one, a missing
        position means (0, 0), a missing model record means {}."""
        if "id" in record:
            self._id = uuid.UUID(str(record["id"]))
        position = record.get("position", {})
        self._require_graphics().set_pos(
            QPointF(float(position.get("x", 0.0)), float(position.get("y", 0.0))))
        self.model.restore(record.get("model", {}))

    # -- Connection drag feedback --

    def react_to_possible_connection(self, reacting_port_type: PortType,
                                     reacting_data_type: NodeDataType,
                                     scene_point: QPointF) -> None:
        graphics = self._require_graphics()
        transform, _ = graphics.scene_transform().inverted()
        self.geometry.set_dragging_position(transform.map(scene_point))
        graphics.update()
        self.state.set_reaction(ReactToConnectionState.REACTING,
                                reacting_port_type, reacting_data_type)

    def reset_reaction_to_connection(self) -> None:
        self.state.set_reaction(ReactToConnectionState.NOT_REACTING)
        self.geometry.set_dragging_position(None)
        self._require_graphics().update()

    # -- Propagation --

    def propagate_data(self, in_port_index: PortIndex) -> None:
        """Deliver the values of every connection on an input port to the
        model in one batch, in connection order."""
        connections = self.state.connections(PortType.IN, in_port_index)

        if self._propagating and self.cycle_guard:
            logger.error("%r: propagation cycle at input %d", self, in_port_index)
            raise PropagationCycleError(
                f"{self!r} re-entered while propagating input {in_port_index}")

        values: List[Optional[NodeData]] = []
        for c in connections.values():
            out_node = c.get_node(PortType.OUT)
            if out_node is None:
                logger.debug("%r: skipping unresolved %r", self, c)
                continue
            out_data = out_node.model.out_data(c.get_port_index(PortType.OUT))
            converter = c.get_type_converter()
            if converter is not None:
                out_data = converter(out_data)
            values.append(out_data)

        logger.debug("%r: %d value(s) into input %d", self, len(values), in_port_index)
        self._propagating = True
        try:
            self.model.set_in_data(values, in_port_index)
        finally:
            self._propagating = False

        self.recalculate_visuals()

    def on_data_updated(self, index: PortIndex) -> None:
        """Fan the new output at `index` out to every attached connection."""
        node_data = self.model.out_data(index)
        for c in self.state.connections(PortType.OUT, index).values():
            c.propagate_data(node_data)

    def on_node_size_updated(self) -> None:
        widget = self.model.embedded_widget()
        if widget is not None:
            widget.adjustSize()
        self.geometry.recalculate_size()
        if self._graphics is not None:
            self._graphics.move_connections()

    # -- Port-count reconciliation --

    def on_port_count_changed(self) -> None:
        for port_type in (PortType.IN, PortType.OUT):
            entries = self.state.entries(port_type)
            old_count = len(entries)
            new_count = self.model.n_ports(port_type)
            for index in range(new_count, old_count):
                for c in list(entries[index].values()):
                    logger.debug("%r: %s port %d removed, killing %r",
                                 self, port_type.value, index, c)
                    self.kill_connection.emit(c)

        self.state.update_port_count(self.model.n_ports(PortType.IN),
                                     self.model.n_ports(PortType.OUT))
        self.geometry.update_port_count()
        self.recalculate_visuals()
