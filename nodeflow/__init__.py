"""Dataflow graph core.

Public surface:
  FlowScene                       – owns nodes and connections
  Node, Connection, NodeState     – graph primitives
  NodeDataModel, NodeData         – base classes for computations and values
  DataModelRegistry               – model factories and type converters
  NodeGeometry, NodeGraphicsObject – headless layout and rendering handle
"""

from .ports import (
    PortType, PortIndex, INVALID_PORT_INDEX, NodeDataType, ConnectionPolicy, opposite,
)
from .data_model import NodeData, NodeDataModel, NodeValidationState
from .converters import DataModelRegistry, TypeConverter
from .node_state import NodeState, ReactToConnectionState
from .geometry import NodeGeometry
from .graphics import GraphicsObject, NodeGraphicsObject
from .connection import Connection
from .node import Node, PropagationCycleError
from .scene import FlowScene
from .settings import Settings, configure_logging

__version__ = "0.1.0"

__all__ = [
    "PortType", "PortIndex", "INVALID_PORT_INDEX", "NodeDataType", "ConnectionPolicy",
    "opposite",
    "NodeData", "NodeDataModel", "NodeValidationState",
    "DataModelRegistry", "TypeConverter",
    "NodeState", "ReactToConnectionState",
    "NodeGeometry", "GraphicsObject", "NodeGraphicsObject",
    "Connection", "Node", "PropagationCycleError",
    "FlowScene", "Settings", "configure_logging",
]
