"""Rendering handle attached to a Node.

The core only asks its graphics object to invalidate or move things; it
never draws.  GraphicsObject is the contract; NodeGraphicsObject is a
headless implementation used when no view is attached (tests, batch
loading, the command-line tool).
"""

from __future__ import annotations

from typing import Protocol

from PySide6.QtCore import QPointF
from PySide6.QtGui import QTransform


class GraphicsObject(Protocol):
    """Something that renders a node."""

    def set_geometry_changed(self) -> None: ...
    def update(self) -> None: ...              # repaint request
    def move_connections(self) -> None: ...    # reroute attached wires
    def pos(self) -> QPointF: ...
    def set_pos(self, pos: QPointF) -> None: ...
    def scene_transform(self) -> QTransform: ...


class NodeGraphicsObject:
    """Position-only stand-in for an on-screen node item.

    Request counters let callers observe how often the core invalidated the
    node's visuals.
    """

    def __init__(self, pos: QPointF = None):
        self._pos = QPointF(pos) if pos is not None else QPointF(0.0, 0.0)
        self.update_requests = 0
        self.geometry_changes = 0
        self.connection_moves = 0

    def set_geometry_changed(self) -> None:
        self.geometry_changes += 1

    def update(self) -> None:
        self.update_requests += 1

    def move_connections(self) -> None:
        self.connection_moves += 1

    def pos(self) -> QPointF:
        return QPointF(self._pos)

    def set_pos(self, pos: QPointF) -> None:
        self._pos = QPointF(pos)
        self.move_connections()

    def scene_transform(self) -> QTransform:
        return QTransform.fromTranslate(self._pos.x(), self._pos.y())
