"""Built-in data types, models and converters.

  NumberSource   – no inputs; one decimal output set from code
  Sum            – decimal fan-in on input 0; output is the sum
  Collect        – decimal fan-in on input 0; output is an array of the
                   values in connection order
  Splitter       – array in; one decimal output per element, output count
                   set at runtime
  Display        – decimal sink; remembers every batch it received
  IntegerDisplay – same for integers

Converters: decimal → integer (truncating), integer → decimal.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

import numpy as np

from .converters import DataModelRegistry
from .data_model import NodeData, NodeDataModel, NodeValidationState
from .ports import ConnectionPolicy, NodeDataType, PortIndex, PortType


DECIMAL = NodeDataType("decimal", "Decimal")
INTEGER = NodeDataType("integer", "Integer")
ARRAY   = NodeDataType("array", "Array")


# ---------------------------------------------------------------------------
# Data
# ---------------------------------------------------------------------------

class DecimalData(NodeData):
    def __init__(self, value: float = 0.0):
        self._value = float(value)

    @property
    def value(self) -> float:
        return self._value

    def type(self) -> NodeDataType:
        return DECIMAL

    def __eq__(self, other):
        return isinstance(other, DecimalData) and other._value == self._value

    def __hash__(self):
        return hash(("decimal", self._value))

    def __repr__(self):
        return f"DecimalData({self._value!r})"


class IntegerData(NodeData):
    def __init__(self, value: int = 0):
        self._value = int(value)

    @property
    def value(self) -> int:
        return self._value

    def type(self) -> NodeDataType:
        return INTEGER

    def __eq__(self, other):
        return isinstance(other, IntegerData) and other._value == self._value

    def __hash__(self):
        return hash(("integer", self._value))

    def __repr__(self):
        return f"IntegerData({self._value!r})"


class ArrayData(NodeData):
    """1-D float64 array, frozen read-only so consumers can share it."""

    def __init__(self, values):
        arr = np.array(values, dtype=np.float64).reshape(-1)
        arr.setflags(write=False)
        self._array = arr

    @property
    def array(self) -> np.ndarray:
        return self._array

    def type(self) -> NodeDataType:
        return ARRAY

    def __len__(self):
        return len(self._array)

    def __repr__(self):
        return f"ArrayData({self._array.tolist()!r})"


def decimal_to_integer(data: Optional[NodeData]) -> Optional[NodeData]:
    if data is None:
        return None
    return IntegerData(int(data.value))


def integer_to_decimal(data: Optional[NodeData]) -> Optional[NodeData]:
    if data is None:
        return None
    return DecimalData(float(data.value))


def _decimals(values: Sequence[Optional[NodeData]]) -> List[float]:
    return [v.value for v in values if v is not None]


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

class NumberSourceDataModel(NodeDataModel):

    def __init__(self, number: float = 0.0, parent=None):
        super().__init__(parent)
        self._number = DecimalData(number)

    def name(self) -> str:
        return "NumberSource"

    def caption(self) -> str:
        return "Number Source"

    def n_ports(self, port_type: PortType) -> int:
        return 1 if port_type == PortType.OUT else 0

    def data_type(self, port_type: PortType, port_index: PortIndex) -> NodeDataType:
        return DECIMAL

    def number(self) -> float:
        return self._number.value

    def set_number(self, number: float) -> None:
        self._number = DecimalData(number)
        self.data_updated.emit(0)

    def out_data(self, port_index: PortIndex) -> Optional[NodeData]:
        return self._number

    def set_in_data(self, node_data, port_index) -> None:
        pass

    def save(self) -> dict:
        return {"name": self.name(), "number": self._number.value}

    def restore(self, record: dict) -> None:
        if "number" in record:
            self._number = DecimalData(record["number"])


class _FanInModel(NodeDataModel):
    """One decimal input accepting many connections, one output."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self._inputs: List[float] = []
        self._result: Optional[NodeData] = None

    def n_ports(self, port_type: PortType) -> int:
        return 1 if port_type in (PortType.IN, PortType.OUT) else 0

    def inputs(self) -> List[float]:
        return list(self._inputs)

    def out_data(self, port_index: PortIndex) -> Optional[NodeData]:
        return self._result

    def _compute(self, values: List[float]) -> Optional[NodeData]:
        raise NotImplementedError

    def set_in_data(self, node_data, port_index) -> None:
        self._inputs = _decimals(node_data)
        self._result = self._compute(self._inputs)
        self.data_updated.emit(0)

    def validation_state(self) -> NodeValidationState:
        return NodeValidationState.VALID if self._inputs else NodeValidationState.WARNING

    def validation_message(self) -> str:
        return "" if self._inputs else "Missing inputs"


class SumDataModel(_FanInModel):

    def name(self) -> str:
        return "Sum"

    def data_type(self, port_type: PortType, port_index: PortIndex) -> NodeDataType:
        return DECIMAL

    def _compute(self, values):
        if not values:
            return None
        return DecimalData(float(np.sum(values)))


class CollectDataModel(_FanInModel):

    def name(self) -> str:
        return "Collect"

    def data_type(self, port_type: PortType, port_index: PortIndex) -> NodeDataType:
        return DECIMAL if port_type == PortType.IN else ARRAY

    def _compute(self, values):
        return ArrayData(values)


class SplitterDataModel(NodeDataModel):
    """Array in; its first `outputs` elements out, one per port."""

    def __init__(self, outputs: int = 2, parent=None):
        super().__init__(parent)
        self._outputs = outputs
        self._array: Optional[np.ndarray] = None

    def name(self) -> str:
        return "Splitter"

    def n_ports(self, port_type: PortType) -> int:
        if port_type == PortType.IN:  return 1
        if port_type == PortType.OUT: return self._outputs
        return 0

    def data_type(self, port_type: PortType, port_index: PortIndex) -> NodeDataType:
        return ARRAY if port_type == PortType.IN else DECIMAL

    def port_connection_policy(self, port_type, port_index):
        return ConnectionPolicy.ONE if port_type == PortType.IN else ConnectionPolicy.MANY

    def set_output_count(self, outputs: int) -> None:
        if outputs < 0:
            raise ValueError("output count must be non-negative")
        if outputs == self._outputs:
            return
        self._outputs = outputs
        self.port_count_changed.emit()

    def out_data(self, port_index: PortIndex) -> Optional[NodeData]:
        if self._array is None or port_index >= len(self._array):
            return None
        return DecimalData(self._array[port_index])

    def set_in_data(self, node_data, port_index) -> None:
        arrays = [d for d in node_data if d is not None]
        self._array = arrays[-1].array if arrays else None
        for i in range(self._outputs):
            self.data_updated.emit(i)

    def save(self) -> dict:
        return {"name": self.name(), "outputs": self._outputs}

    def restore(self, record: dict) -> None:
        self.set_output_count(int(record.get("outputs", self._outputs)))


class DisplayDataModel(NodeDataModel):
    """Sink that keeps every batch delivered to its input."""

    display_type = DECIMAL

    def __init__(self, parent=None):
        super().__init__(parent)
        self.received: List[List[Optional[NodeData]]] = []

    def name(self) -> str:
        return "Display"

    def n_ports(self, port_type: PortType) -> int:
        return 1 if port_type == PortType.IN else 0

    def data_type(self, port_type: PortType, port_index: PortIndex) -> NodeDataType:
        return self.display_type

    def port_connection_policy(self, port_type, port_index):
        return ConnectionPolicy.ONE

    def last(self) -> Optional[NodeData]:
        if not self.received or not self.received[-1]:
            return None
        return self.received[-1][-1]

    def out_data(self, port_index: PortIndex) -> Optional[NodeData]:
        return None

    def set_in_data(self, node_data, port_index) -> None:
        self.received.append(list(node_data))


class IntegerDisplayDataModel(DisplayDataModel):

    display_type = INTEGER

    def name(self) -> str:
        return "IntegerDisplay"


def default_registry() -> DataModelRegistry:
    reg = DataModelRegistry()
    reg.register_model(NumberSourceDataModel, "Sources")
    reg.register_model(SumDataModel, "Operators")
    reg.register_model(CollectDataModel, "Operators")
    reg.register_model(SplitterDataModel, "Operators")
    reg.register_model(DisplayDataModel, "Displays")
    reg.register_model(IntegerDisplayDataModel, "Displays")
    reg.register_type_converter(DECIMAL, INTEGER, decimal_to_integer)
    reg.register_type_converter(INTEGER, DECIMAL, integer_to_decimal)
    return reg
