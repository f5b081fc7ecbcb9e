"""Edge between one output port and one input port.

A connection refers to its nodes weakly; the FlowScene owns both nodes and
connections.  While a wire is being dragged the connection is a draft with
one side unresolved; required_port() names the missing side.
"""

from __future__ import annotations

import logging
import uuid
import weakref
from typing import TYPE_CHECKING, Optional

from .converters import TypeConverter
from .data_model import NodeData
from .ports import INVALID_PORT_INDEX, NodeDataType, PortIndex, PortType, opposite

if TYPE_CHECKING:
    from .node import Node

logger = logging.getLogger(__name__)


class Connection:

    def __init__(self, out_node: Node, out_index: PortIndex,
                 in_node: Node, in_index: PortIndex,
                 converter: TypeConverter = None):
        self.id = uuid.uuid4()
        self._out_node = None
        self._in_node = None
        self._out_index = INVALID_PORT_INDEX
        self._in_index = INVALID_PORT_INDEX
        self._required_port = PortType.NONE
        self._converter = converter
        self._last_value: Optional[NodeData] = None

        if out_node is not None:
            self.set_node_to_port(out_node, PortType.OUT, out_index)
        if in_node is not None:
            self.set_node_to_port(in_node, PortType.IN, in_index)

    @classmethod
    def draft(cls, node: Node, port_type: PortType, port_index: PortIndex) -> "Connection":
        """A connection attached on one side only, as while dragging a wire."""
        if port_type == PortType.OUT:
            c = cls(node, port_index, None, INVALID_PORT_INDEX)
        else:
            c = cls(None, INVALID_PORT_INDEX, node, port_index)
        c._required_port = opposite(port_type)
        return c

    def __repr__(self) -> str:
        return (f"Connection({self.id}, out={self._node_id(PortType.OUT)}:{self._out_index}, "
                f"in={self._node_id(PortType.IN)}:{self._in_index})")

    def _node_id(self, port_type: PortType):
        node = self.get_node(port_type)
        return node.id if node is not None else None

    # -- Endpoints --

    def get_node(self, port_type: PortType) -> Optional[Node]:
        ref = self._out_node if port_type == PortType.OUT else self._in_node
        if port_type == PortType.NONE or ref is None:
            return None
        return ref()

    def get_port_index(self, port_type: PortType) -> PortIndex:
        if port_type == PortType.OUT: return self._out_index
        if port_type == PortType.IN:  return self._in_index
        return INVALID_PORT_INDEX

    def set_node_to_port(self, node: Node, port_type: PortType,
                         port_index: PortIndex) -> None:
        if port_type == PortType.OUT:
            self._out_node, self._out_index = weakref.ref(node), port_index
        elif port_type == PortType.IN:
            self._in_node, self._in_index = weakref.ref(node), port_index
        else:
            raise ValueError("cannot attach a connection to PortType.NONE")
        self._required_port = PortType.NONE

    def clear_node(self, port_type: PortType) -> None:
        if port_type == PortType.OUT:
            self._out_node, self._out_index = None, INVALID_PORT_INDEX
        elif port_type == PortType.IN:
            self._in_node, self._in_index = None, INVALID_PORT_INDEX
        self._required_port = port_type

    def required_port(self) -> PortType:
        return self._required_port

    def complete(self) -> bool:
        return (self.get_node(PortType.OUT) is not None
                and self.get_node(PortType.IN) is not None)

    def data_type(self, port_type: PortType) -> NodeDataType:
        """Data type declared by the port on the given side, falling back to
        the other side while the connection is a draft."""
        for side in (port_type, opposite(port_type)):
            node = self.get_node(side)
            if node is not None:
                return node.model.data_type(side, self.get_port_index(side))
        raise RuntimeError("connection has no attached node")

    # -- Node bookkeeping --

    def add_to_nodes(self) -> None:
        for side in (PortType.OUT, PortType.IN):
            node = self.get_node(side)
            if node is not None:
                node.state.set_connection(side, self.get_port_index(side), self)

    def remove_from_nodes(self) -> None:
        for side in (PortType.OUT, PortType.IN):
            node = self.get_node(side)
            if node is not None:
                node.state.erase_connection(side, self.get_port_index(side), self.id)

    # -- Data --

    def get_type_converter(self) -> TypeConverter:
        return self._converter

    def convert(self, value: Optional[NodeData]) -> Optional[NodeData]:
        if self._converter is None:
            return value
        return self._converter(value)

    def last_value(self) -> Optional[NodeData]:
        """Value most recently pushed downstream, after conversion."""
        return self._last_value

    def propagate_data(self, value: Optional[NodeData]) -> None:
        """Push a freshly produced upstream value to the input side.

        The downstream node re-collects every connection on that input port,
        so a fan-in port always receives its full batch.
        """
        in_node = self.get_node(PortType.IN)
        if in_node is None:
            return
        self._last_value = self.convert(value)
        logger.debug("%r: propagating %r", self, self._last_value)
        in_node.propagate_data(self._in_index)

    def propagate_empty_data(self) -> None:
        """Refresh the input side after this connection went away."""
        self._last_value = None
        in_node = self.get_node(PortType.IN)
        if in_node is None:
            return
        if self._in_index >= in_node.model.n_ports(PortType.IN):
            # the port itself is gone
            return
        in_node.propagate_data(self._in_index)

    # -- Serialisation --

    def save(self) -> dict:
        if not self.complete():
            return {}
        d = {
            "id": str(self.id),
            "out_id": str(self._node_id(PortType.OUT)), "out_index": self._out_index,
            "in_id":  str(self._node_id(PortType.IN)),  "in_index":  self._in_index,
        }
        if self._converter is not None:
            d["converter"] = {
                "out": self.data_type(PortType.OUT).to_dict(),
                "in":  self.data_type(PortType.IN).to_dict(),
            }
        return d
