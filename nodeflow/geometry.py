"""Node layout in node-local coordinates.

The node rectangle has its top-left corner at (0, 0):

  +---------------------------+
  | header                    |
  o in 0               out 0  o
  o in 1               out 1  o
  |   [embedded widget]       |
  +---------------------------+

Input port centres sit on the left edge, outputs on the right edge, one row
per port.  Rendering code maps these through the graphics object's scene
transform.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from PySide6.QtCore import QPointF, QRectF

from .ports import INVALID_PORT_INDEX, PortIndex, PortType

if TYPE_CHECKING:
    from .data_model import NodeDataModel


NODE_W        = 180     # base node width
NODE_HEADER_H = 28      # title bar height
PORT_ROW_H    = 20      # height per port row
PORT_R        = 7       # port circle radius
SETTINGS_PAD  = 6       # padding around port rows and the embedded widget


class NodeGeometry:

    def __init__(self, model: NodeDataModel, *, width: float = NODE_W,
                 header_height: float = NODE_HEADER_H,
                 port_row_height: float = PORT_ROW_H):
        self._model = model
        self.base_width = width
        self.header_height = header_height
        self.port_row_height = port_row_height

        self.width = width
        self.height = header_height
        self.n_sources = model.n_ports(PortType.OUT)
        self.n_sinks = model.n_ports(PortType.IN)
        self._dragging_pos: Optional[QPointF] = None
        self.recalculate_size()

    # -- Size --

    def _widget_size(self):
        w = self._model.embedded_widget()
        if w is None:
            return 0.0, 0.0
        hint = w.sizeHint()
        return float(hint.width()), float(hint.height()) + SETTINGS_PAD

    def recalculate_size(self) -> None:
        rows = max(self.n_sinks, self.n_sources, 1)
        port_h = rows * self.port_row_height + SETTINGS_PAD * 2
        widget_w, widget_h = self._widget_size()
        self.width = max(self.base_width, widget_w + 2 * (PORT_R + SETTINGS_PAD))
        self.height = self.header_height + port_h + widget_h

    def update_port_count(self) -> None:
        self.n_sources = self._model.n_ports(PortType.OUT)
        self.n_sinks = self._model.n_ports(PortType.IN)

    def bounding_rect(self) -> QRectF:
        return QRectF(-PORT_R, -PORT_R,
                      self.width + 2 * PORT_R, self.height + 2 * PORT_R)

    # -- Ports --

    def port_position(self, port_type: PortType, index: PortIndex) -> QPointF:
        """Centre of a port circle in node coordinates."""
        count = self.n_sinks if port_type == PortType.IN else self.n_sources
        if port_type == PortType.NONE or not 0 <= index < count:
            raise IndexError(f"no {port_type.value} port {index}")
        y = (self.header_height + SETTINGS_PAD
             + index * self.port_row_height + self.port_row_height / 2)
        x = 0.0 if port_type == PortType.IN else self.width
        return QPointF(x, y)

    def check_hit_port(self, port_type: PortType, node_point: QPointF) -> PortIndex:
        """Index of the port of this direction under node_point, or -1."""
        count = self.n_sinks if port_type == PortType.IN else self.n_sources
        for i in range(count):
            if (node_point - self.port_position(port_type, i)).manhattanLength() <= PORT_R * 1.8:
                return i
        return INVALID_PORT_INDEX

    # -- Connection drag --

    def set_dragging_position(self, pos: Optional[QPointF]) -> None:
        self._dragging_pos = pos

    def dragging_position(self) -> Optional[QPointF]:
        return self._dragging_pos
