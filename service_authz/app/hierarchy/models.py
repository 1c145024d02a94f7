"""
Authorization hierarchy data models.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, Iterator, Mapping, Optional, Union

from shared.logging import get_logger
from shared.errors import HierarchyError
from ..rules.models import BusinessRule

logger = get_logger("authz.hierarchy")


class ItemType(str, Enum):
    """Authorization item types."""
    OPERATION = "operation"
    TASK = "task"
    ROLE = "role"

    @classmethod
    def from_value(cls, value: Union["ItemType", str, int]) -> "ItemType":
        """Accept the type name or its legacy integer code (0, 1, 2)."""
        if isinstance(value, ItemType):
            return value
        if isinstance(value, bool):
            raise ValueError(f"Invalid item type: {value!r}")
        if isinstance(value, int) or (isinstance(value, str) and value.strip().isdigit()):
            codes = {0: cls.OPERATION, 1: cls.TASK, 2: cls.ROLE}
            code = int(value)
            if code not in codes:
                raise ValueError(f"Invalid item type code: {value!r}")
            return codes[code]
        if isinstance(value, str):
            return cls(value.strip().lower())
        raise ValueError(f"Invalid item type: {value!r}")


@dataclass(frozen=True)
class AuthItem:
    """A named node of the permission graph."""
    name: str
    type: ItemType
    description: Optional[str] = None
    business_rule: Optional[BusinessRule] = None
    data: Any = None
    children: FrozenSet[str] = field(default_factory=frozenset)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "description": self.description,
            "business_rule": self.business_rule,
            "data": self.data,
            "children": sorted(self.children),
        }


class HierarchySnapshot:
    """Immutable view of all items and their edges.

    Edges point from a container item to the items it grants. The reverse
    index (child to parents) is built once here so the access check can walk
    upwards without scanning every item.
    """

    def __init__(self, items: Mapping[str, AuthItem]):
        self._items: Mapping[str, AuthItem] = MappingProxyType(dict(items))

        parents: Dict[str, set] = {name: set() for name in self._items}
        for item in self._items.values():
            for child in item.children:
                parents[child].add(item.name)
        self._parents: Mapping[str, FrozenSet[str]] = MappingProxyType(
            {name: frozenset(names) for name, names in parents.items()}
        )

    @classmethod
    def empty(cls) -> "HierarchySnapshot":
        return cls({})

    @classmethod
    def from_content(cls, content: Any) -> "HierarchySnapshot":
        """Build a snapshot from ``{name: {type, description?, business_rule?, data?, children?}}``.

        Missing optional fields default to ``None`` or no children. A single
        child name may be given without a list. Children that name no item
        are dropped.
        """
        if content is None:
            return cls.empty()
        if not isinstance(content, Mapping):
            raise HierarchyError("Hierarchy content must be a mapping of item names")

        definitions: Dict[str, Mapping[str, Any]] = {}
        for name, definition in content.items():
            if not isinstance(definition, Mapping):
                raise HierarchyError(f"Item '{name}' must be a mapping", {"item_name": str(name)})
            if "type" not in definition:
                raise HierarchyError(f"Item '{name}' has no type", {"item_name": str(name)})
            definitions[str(name)] = definition

        items: Dict[str, AuthItem] = {}
        for name, definition in definitions.items():
            try:
                item_type = ItemType.from_value(definition["type"])
            except ValueError as e:
                raise HierarchyError(str(e), {"item_name": name}) from e

            children = set()
            for child in _child_names(name, definition.get("children")):
                child = str(child)
                if child in definitions:
                    children.add(child)
                else:
                    logger.warning("Dropping unknown child item", item_name=name, child=child)

            rule = definition.get("business_rule", definition.get("bizRule"))
            items[name] = AuthItem(
                name=name,
                type=item_type,
                description=definition.get("description"),
                business_rule=rule,
                data=definition.get("data"),
                children=frozenset(children),
            )

        return cls(items)

    def to_content(self) -> Dict[str, Dict[str, Any]]:
        """Normalised content, suitable for caching and :meth:`from_content`."""
        return {name: item.to_dict() for name, item in self._items.items()}

    @property
    def items(self) -> Mapping[str, AuthItem]:
        return self._items

    def get(self, name: str) -> Optional[AuthItem]:
        return self._items.get(name)

    def parents_of(self, name: str) -> FrozenSet[str]:
        return self._parents.get(name, frozenset())

    def children_of(self, name: str) -> FrozenSet[str]:
        item = self._items.get(name)
        return item.children if item else frozenset()

    def has_child(self, parent: str, child: str) -> bool:
        return child in self.children_of(parent)

    def of_type(self, item_type: ItemType) -> Dict[str, AuthItem]:
        return {name: item for name, item in self._items.items() if item.type == item_type}

    def __contains__(self, name: object) -> bool:
        return name in self._items

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)


def _child_names(name: str, children: Any) -> Iterable[Any]:
    if children is None:
        return ()
    if isinstance(children, str):
        return (children,)
    if not isinstance(children, (list, tuple)):
        raise HierarchyError(f"Children of item '{name}' must be a list", {"item_name": name})
    return children
