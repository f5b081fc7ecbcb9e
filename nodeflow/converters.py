"""Type converters and the model registry.

A TypeConverter adapts a value produced on an output port of one data type
to the data type declared by the consuming input port.  None means values
pass through unchanged.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Tuple

from .data_model import NodeData, NodeDataModel
from .ports import NodeDataType

logger = logging.getLogger(__name__)

TypeConverter = Optional[Callable[[Optional[NodeData]], Optional[NodeData]]]
ModelFactory = Callable[[], NodeDataModel]


class DataModelRegistry:
    """Maps model names to factories and (from, to) type pairs to converters."""

    def __init__(self):
        self._factories: Dict[str, ModelFactory] = {}
        self._categories: Dict[str, str] = {}      # model name → category
        self._converters: Dict[Tuple[str, str], Callable] = {}

    # -- Models --

    def register_model(self, factory: ModelFactory, category: str = "Nodes") -> str:
        """Register a model factory under the name its instances report.

        Returns the registered name.
        """
        name = factory().name()
        if name in self._factories:
            raise ValueError(f"model already registered: {name!r}")
        self._factories[name] = factory
        self._categories[name] = category
        logger.debug("registered model %r in category %r", name, category)
        return name

    def create(self, name: str) -> NodeDataModel:
        factory = self._factories.get(name)
        if factory is None:
            available = ", ".join(sorted(self._factories))
            raise KeyError(f"unknown model {name!r}. Registered: {available}")
        return factory()

    def registered_model_names(self) -> List[str]:
        return sorted(self._factories)

    def categories(self) -> List[str]:
        return sorted(set(self._categories.values()))

    def category_of(self, name: str) -> Optional[str]:
        return self._categories.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._factories

    # -- Converters --

    def register_type_converter(self, from_type: NodeDataType, to_type: NodeDataType,
                                converter: Callable) -> None:
        self._converters[(from_type.id, to_type.id)] = converter

    def get_type_converter(self, from_type: NodeDataType,
                           to_type: NodeDataType) -> TypeConverter:
        return self._converters.get((from_type.id, to_type.id))
