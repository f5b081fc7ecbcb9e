"""FlowScene: owns the nodes and connections of one flow graph.

Nodes and connections hold only weak or non-owning references to each
other; the scene's two registries (keyed by uuid) keep them alive.  Every
edit to the graph topology goes through the scene.

Connection rules (create_connection returns None when one is broken):
  - No self-loops and no duplicate connections.
  - No connection that would close a cycle.
  - Both port indices must exist.
  - Port data types must match, or a type converter must be registered.
  - A port whose ConnectionPolicy is ONE accepts a single connection.
"""

from __future__ import annotations

import json
import logging
import uuid
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from PySide6.QtCore import QObject, QPointF, Signal

from .connection import Connection
from .converters import DataModelRegistry
from .data_model import NodeDataModel
from .geometry import NodeGeometry
from .graphics import GraphicsObject, NodeGraphicsObject
from .node import Node
from .ports import ConnectionPolicy, PortIndex, PortType
from .settings import Settings

logger = logging.getLogger(__name__)

GraphicsFactory = Callable[[Node], GraphicsObject]


class FlowScene(QObject):
    """Container for a flow graph.

    Signals:
      node_created(Node)
      node_deleted(Node)
      connection_created(Connection)
      connection_deleted(Connection)
    """

    node_created = Signal(object)
    node_deleted = Signal(object)
    connection_created = Signal(object)
    connection_deleted = Signal(object)

    def __init__(self, registry: DataModelRegistry, settings: Settings = None,
                 graphics_factory: GraphicsFactory = None, parent=None):
        """
        graphics_factory(node) -> GraphicsObject
            Called once per node to create its rendering handle.  Defaults
            to the headless NodeGraphicsObject.
        """
        super().__init__(parent)
        self.registry = registry
        self.settings = settings if settings is not None else Settings()
        self._graphics_factory = graphics_factory or (lambda node: NodeGraphicsObject())
        self._nodes: Dict[uuid.UUID, Node] = {}
        self._connections: Dict[uuid.UUID, Connection] = {}

    # -- Accessors --

    def nodes(self) -> List[Node]:
        return list(self._nodes.values())

    def connections(self) -> List[Connection]:
        return list(self._connections.values())

    def node(self, node_id: Union[uuid.UUID, str]) -> Optional[Node]:
        if isinstance(node_id, str):
            node_id = uuid.UUID(node_id)
        return self._nodes.get(node_id)

    # -- Nodes --

    def _make_node(self, model: NodeDataModel) -> Node:
        s = self.settings
        geometry = NodeGeometry(model, width=s.node_width, header_height=s.header_height,
                                port_row_height=s.port_row_height)
        node = Node(model, geometry=geometry, cycle_guard=s.cycle_guard)
        node.set_graphics_object(self._graphics_factory(node))
        return node

    def _register_node(self, node: Node) -> Node:
        node.kill_connection.connect(self.delete_connection)
        self._nodes[node.id] = node
        logger.info("created %r", node)
        self.node_created.emit(node)
        return node

    def create_node(self, model: NodeDataModel, pos: QPointF = None) -> Node:
        node = self._make_node(model)
        if pos is not None:
            node.graphics_object.set_pos(pos)
        return self._register_node(node)

    def create_node_by_name(self, name: str, pos: QPointF = None) -> Node:
        return self.create_node(self.registry.create(name), pos)

    def remove_node(self, node: Node) -> None:
        if node.id not in self._nodes:
            return
        for port_type in (PortType.IN, PortType.OUT):
            for entry in node.state.entries(port_type):
                for c in list(entry.values()):
                    self.delete_connection(c)
        del self._nodes[node.id]
        node.kill_connection.disconnect(self.delete_connection)
        logger.info("removed %r", node)
        self.node_deleted.emit(node)

    def clear(self) -> None:
        for node in self.nodes():
            self.remove_node(node)

    # -- Connections --

    def _reachable(self, start: Node, target: Node) -> bool:
        """True if target is downstream of start."""
        stack, seen = [start], set()
        while stack:
            n = stack.pop()
            if n is target:
                return True
            if n.id in seen:
                continue
            seen.add(n.id)
            for entry in n.state.entries(PortType.OUT):
                for c in entry.values():
                    downstream = c.get_node(PortType.IN)
                    if downstream is not None:
                        stack.append(downstream)
        return False

    def _port_occupied(self, node: Node, port_type: PortType, index: PortIndex) -> bool:
        return (node.model.port_connection_policy(port_type, index) == ConnectionPolicy.ONE
                and bool(node.state.entries(port_type)[index]))

    def create_connection(self, out_node: Node, out_index: PortIndex,
                          in_node: Node, in_index: PortIndex) -> Optional[Connection]:
        """Connect an output port to an input port.  Returns None if rejected."""
        def reject(reason: str) -> None:
            logger.warning("rejected connection %r:%d -> %r:%d: %s",
                           out_node, out_index, in_node, in_index, reason)

        if out_node is in_node:
            return reject("self-loop")
        if not 0 <= out_index < out_node.state.port_count(PortType.OUT):
            return reject("no such output port")
        if not 0 <= in_index < in_node.state.port_count(PortType.IN):
            return reject("no such input port")

        for c in out_node.state.entries(PortType.OUT)[out_index].values():
            if c.get_node(PortType.IN) is in_node and c.get_port_index(PortType.IN) == in_index:
                return reject("duplicate")

        if self._port_occupied(out_node, PortType.OUT, out_index):
            return reject("output port accepts one connection")
        if self._port_occupied(in_node, PortType.IN, in_index):
            return reject("input port accepts one connection")

        if self._reachable(in_node, out_node):
            return reject("would create a cycle")

        out_type = out_node.model.data_type(PortType.OUT, out_index)
        in_type = in_node.model.data_type(PortType.IN, in_index)
        converter = None
        if out_type.id != in_type.id:
            converter = self.registry.get_type_converter(out_type, in_type)
            if converter is None:
                return reject(f"no converter from {out_type.id!r} to {in_type.id!r}")

        connection = Connection(out_node, out_index, in_node, in_index, converter)
        connection.add_to_nodes()
        self._connections[connection.id] = connection
        logger.info("created %r", connection)
        self.connection_created.emit(connection)

        out_node.on_data_updated(out_index)
        return connection

    def delete_connection(self, connection: Connection) -> None:
        if self._connections.pop(connection.id, None) is None:
            return
        connection.remove_from_nodes()
        connection.propagate_empty_data()
        logger.info("deleted %r", connection)
        self.connection_deleted.emit(connection)

    # -- Serialisation --

    def to_dict(self) -> dict:
        return {
            "nodes": [n.save() for n in self._nodes.values()],
            "connections": [c.save() for c in self._connections.values()],
        }

    def load_dict(self, d: dict) -> None:
        """Add the nodes and connections of a saved flow to this scene.

        Saved ids are kept unless the scene already holds that id; such nodes
        and connections get a fresh id and the connection records are
        remapped to the loaded nodes.
        """
        loaded: Dict[uuid.UUID, Node] = {}
        for record in d.get("nodes", []):
            node = self._make_node(self.registry.create(record["model"]["name"]))
            saved_id = uuid.UUID(str(record["id"])) if "id" in record else None
            if saved_id in self._nodes:
                logger.warning("node id %s already in scene, assigning a new one", saved_id)
                record = {k: v for k, v in record.items() if k != "id"}
            node.restore(record)
            self._register_node(node)
            if saved_id is not None:
                loaded[saved_id] = node

        def resolve(node_id) -> Optional[Node]:
            node_id = uuid.UUID(str(node_id))
            node = loaded.get(node_id)
            return node if node is not None else self._nodes.get(node_id)

        for record in d.get("connections", []):
            out_node = resolve(record["out_id"])
            in_node = resolve(record["in_id"])
            if out_node is None or in_node is None:
                logger.warning("skipping connection with unknown node: %s", record)
                continue
            c = self.create_connection(out_node, int(record["out_index"]),
                                       in_node, int(record["in_index"]))
            if c is None or "id" not in record:
                continue
            saved_id = uuid.UUID(str(record["id"]))
            if saved_id in self._connections:
                logger.warning("connection id %s already in scene, keeping %s", saved_id, c.id)
            else:
                # keep the saved id; c is the newest entry on both ports so
                # re-adding it preserves enumeration order
                del self._connections[c.id]
                c.remove_from_nodes()
                c.id = saved_id
                c.add_to_nodes()
                self._connections[c.id] = c

    def save(self, path: Union[str, Path]) -> None:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)

    def load(self, path: Union[str, Path]) -> None:
        """Replace the scene's contents with a flow saved by save()."""
        with open(path, "r", encoding="utf-8") as f:
            d = json.load(f)
        self.clear()
        self.load_dict(d)
