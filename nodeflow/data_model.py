"""Pluggable computation hosted by a Node.

A NodeDataModel reports its port layout, produces output values and accepts
batches of input values.  It talks back to its Node only through Qt signals;
the Node connects to them once at construction.

Signals:
  data_updated(int)             – output at port index was recomputed
  embedded_widget_size_updated  – the embedded widget changed size
  port_count_changed            – n_ports() now reports different counts
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Sequence

from PySide6.QtCore import QObject, Signal

from .ports import ConnectionPolicy, NodeDataType, PortIndex, PortType


class NodeData:
    """A value travelling along a connection.

    Values are shared by reference between the producer and every consumer,
    so subclasses must not be mutated after they are handed out.
    """

    def type(self) -> NodeDataType:
        raise NotImplementedError


class NodeValidationState(Enum):
    VALID   = "valid"
    WARNING = "warning"
    ERROR   = "error"


class NodeDataModel(QObject):
    """Base class for node computations.

    Subclasses override name(), n_ports(), data_type(), out_data() and
    set_in_data().  set_in_data() receives every value delivered to an input
    port in one call, in connection order; an unconnected port receives an
    empty sequence.
    """

    data_updated = Signal(int)
    embedded_widget_size_updated = Signal()
    port_count_changed = Signal()

    def __init__(self, parent=None):
        super().__init__(parent)

    # -- Identity --

    def name(self) -> str:
        raise NotImplementedError

    def caption(self) -> str:
        return self.name()

    def caption_visible(self) -> bool:
        return True

    # -- Ports --

    def n_ports(self, port_type: PortType) -> int:
        raise NotImplementedError

    def data_type(self, port_type: PortType, port_index: PortIndex) -> NodeDataType:
        raise NotImplementedError

    def port_caption(self, port_type: PortType, port_index: PortIndex) -> str:
        return self.data_type(port_type, port_index).name

    def port_connection_policy(self, port_type: PortType,
                               port_index: PortIndex) -> ConnectionPolicy:
        return ConnectionPolicy.MANY

    # -- Data --

    def out_data(self, port_index: PortIndex) -> Optional[NodeData]:
        raise NotImplementedError

    def set_in_data(self, node_data: Sequence[Optional[NodeData]],
                    port_index: PortIndex) -> None:
        raise NotImplementedError

    # -- Presentation --

    def embedded_widget(self):
        """Widget hosted inside the node, or None."""
        return None

    def validation_state(self) -> NodeValidationState:
        return NodeValidationState.VALID

    def validation_message(self) -> str:
        return ""

    # -- Persistence --

    def save(self) -> dict:
        return {"name": self.name()}

    def restore(self, record: dict) -> None:
        pass
