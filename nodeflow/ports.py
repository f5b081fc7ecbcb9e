"""Port addressing primitives.

Ports are ordinally indexed per direction: input 0..n_in-1 on the left edge
of a node, output 0..n_out-1 on the right edge.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


PortIndex = int
INVALID_PORT_INDEX: PortIndex = -1


# ---------------------------------------------------------------------------
# Port direction
# ---------------------------------------------------------------------------

class PortType(Enum):
    NONE = "none"
    IN   = "in"
    OUT  = "out"


def opposite(port_type: PortType) -> PortType:
    if port_type == PortType.IN:  return PortType.OUT
    if port_type == PortType.OUT: return PortType.IN
    return PortType.NONE


# ---------------------------------------------------------------------------
# Data type carried by a port
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NodeDataType:
    id:   str
    name: str = field(default="", compare=False)   # display only

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}

    @staticmethod
    def from_dict(d: dict) -> "NodeDataType":
        return NodeDataType(id=d["id"], name=d.get("name", ""))


class ConnectionPolicy(Enum):
    ONE  = "one"
    MANY = "many"
