"""Concrete models and helpers for node-level tests."""

from typing import List, Optional

from PySide6.QtCore import QPointF

from nodeflow import Connection, Node, NodeDataModel, NodeDataType, NodeGraphicsObject, PortType
from nodeflow.builtin_models import DecimalData

TYPE_A = NodeDataType("a", "A")
TYPE_B = NodeDataType("b", "B")


class SourceModel(NodeDataModel):
    """No inputs; `outputs` output ports of one type, each holding a value."""

    def __init__(self, value=None, outputs: int = 1, out_type: NodeDataType = TYPE_A):
        super().__init__()
        self.outputs = outputs
        self.out_type = out_type
        self.value = value if value is not None else DecimalData(0.0)

    def name(self) -> str:
        return "Source"

    def n_ports(self, port_type: PortType) -> int:
        return self.outputs if port_type == PortType.OUT else 0

    def data_type(self, port_type, port_index) -> NodeDataType:
        return self.out_type

    def out_data(self, port_index):
        return self.value

    def set_in_data(self, node_data, port_index) -> None:
        pass

    def emit(self, value, port_index: int = 0) -> None:
        self.value = value
        self.data_updated.emit(port_index)

    def resize(self, outputs: int) -> None:
        self.outputs = outputs
        self.port_count_changed.emit()


class RecordingModel(NodeDataModel):
    """Records every set_in_data batch and every restore record."""

    def __init__(self, inputs: int = 1, outputs: int = 0, in_type: NodeDataType = TYPE_A,
                 saved: Optional[dict] = None):
        super().__init__()
        self.inputs = inputs
        self.outputs = outputs
        self.in_type = in_type
        self.batches: List[tuple] = []      # (port_index, values)
        self.restored: List[dict] = []
        self.saved = saved if saved is not None else {"name": "Recorder"}

    def name(self) -> str:
        return "Recorder"

    def n_ports(self, port_type: PortType) -> int:
        if port_type == PortType.IN:  return self.inputs
        if port_type == PortType.OUT: return self.outputs
        return 0

    def data_type(self, port_type, port_index) -> NodeDataType:
        return self.in_type

    def out_data(self, port_index):
        return None

    def set_in_data(self, node_data, port_index) -> None:
        self.batches.append((port_index, list(node_data)))

    def save(self) -> dict:
        return self.saved

    def restore(self, record: dict) -> None:
        self.restored.append(record)


class SpyConnection(Connection):
    """Connection that records propagate_data calls instead of delivering."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.propagated: list = []

    def propagate_data(self, value) -> None:
        self.propagated.append(value)


def make_node(model: NodeDataModel, x: float = 0.0, y: float = 0.0, **kwargs) -> Node:
    """A node with a headless graphics object attached."""
    node = Node(model, **kwargs)
    node.set_graphics_object(NodeGraphicsObject(QPointF(x, y)))
    return node


def connect(out_node: Node, out_index: int, in_node: Node, in_index: int,
            converter=None, cls=Connection) -> Connection:
    c = cls(out_node, out_index, in_node, in_index, converter)
    c.add_to_nodes()
    return c
