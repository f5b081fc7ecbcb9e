"""Per-node connection bookkeeping and drag-reaction status.

entries(PortType.IN)[i] is a dict of connection id → Connection for input
port i.  Dicts keep insertion order, which is the order values are
delivered to a fan-in port.
"""

from __future__ import annotations

import uuid
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Optional

from .ports import NodeDataType, PortIndex, PortType

if TYPE_CHECKING:
    from .connection import Connection
    from .data_model import NodeDataModel


ConnectionSet = Dict[uuid.UUID, "Connection"]


class ReactToConnectionState(Enum):
    REACTING     = "reacting"
    NOT_REACTING = "not_reacting"


class NodeState:

    def __init__(self, model: NodeDataModel):
        self._in_connections:  List[ConnectionSet] = [
            {} for _ in range(model.n_ports(PortType.IN))]
        self._out_connections: List[ConnectionSet] = [
            {} for _ in range(model.n_ports(PortType.OUT))]

        self._reaction = ReactToConnectionState.NOT_REACTING
        self._reacting_port_type = PortType.NONE
        self._reacting_data_type: Optional[NodeDataType] = None

    # -- Connections --

    def entries(self, port_type: PortType) -> List[ConnectionSet]:
        if port_type == PortType.IN:
            return self._in_connections
        if port_type == PortType.OUT:
            return self._out_connections
        raise ValueError(f"no entries for port type {port_type}")

    def connections(self, port_type: PortType, port_index: PortIndex) -> ConnectionSet:
        """Snapshot of the connections attached to one port."""
        return dict(self.entries(port_type)[port_index])

    def set_connection(self, port_type: PortType, port_index: PortIndex,
                       connection: Connection) -> None:
        self.entries(port_type)[port_index][connection.id] = connection

    def erase_connection(self, port_type: PortType, port_index: PortIndex,
                         connection_id: uuid.UUID) -> None:
        self.entries(port_type)[port_index].pop(connection_id, None)

    def port_count(self, port_type: PortType) -> int:
        return len(self.entries(port_type))

    def update_port_count(self, n_in: int, n_out: int) -> None:
        """Resize both entry lists; new ports start empty, stale tails are dropped."""
        for entries, n in ((self._in_connections, n_in),
                           (self._out_connections, n_out)):
            if len(entries) > n:
                del entries[n:]
            else:
                entries.extend({} for _ in range(n - len(entries)))

    # -- Reaction --

    def set_reaction(self, reaction: ReactToConnectionState,
                     reacting_port_type: PortType = PortType.NONE,
                     reacting_data_type: Optional[NodeDataType] = None) -> None:
        self._reaction = reaction
        self._reacting_port_type = reacting_port_type
        self._reacting_data_type = reacting_data_type

    def reaction(self) -> ReactToConnectionState:
        return self._reaction

    def reacting_port_type(self) -> PortType:
        return self._reacting_port_type

    def reacting_data_type(self) -> Optional[NodeDataType]:
        return self._reacting_data_type

    def is_reacting(self) -> bool:
        return self._reaction == ReactToConnectionState.REACTING
