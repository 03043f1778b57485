from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

NodeKey = Tuple[int, str, Optional[int]]


@dataclass
class ClassificationNode:
    id: int
    name: str
    level: int
    parent_id: Optional[int] = None
    children: List["ClassificationNode"] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "children": [child.to_dict() for child in self.children],
        }


class ClassificationForest:
    """Arena rebuilding one classification (drug class or body system) from per-level columns.

    Nodes are keyed by ``(level, name, parent_id)``; the same path seen on
    several rows resolves to a single node. Ids are handed out in first-seen
    order, starting at 1, and never change once assigned.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self.roots: List[ClassificationNode] = []
        self._nodes: Dict[int, ClassificationNode] = {}
        self._index: Dict[NodeKey, int] = {}
        self._by_name: Dict[Tuple[int, str], ClassificationNode] = {}
        self._next_id = 1

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[ClassificationNode]:
        return iter(self.roots)

    def resolve(self, name: str, level: int, parent_id: Optional[int]) -> int:
        """Return the id of the node at ``(level, name, parent_id)``, creating it if needed."""

        key = (level, name, parent_id)
        node_id = self._index.get(key)
        if node_id is not None:
            return node_id

        self._warn_if_reparented(name, level, parent_id)

        node = ClassificationNode(id=self._next_id, name=name, level=level, parent_id=parent_id)
        self._next_id += 1
        self._index[key] = node.id
        self._nodes[node.id] = node
        self._by_name.setdefault((level, name), node)
        if parent_id is None:
            self.roots.append(node)
        else:
            self._nodes[parent_id].children.append(node)
        return node.id

    def add_path(self, names: Iterable[str]) -> Optional[int]:
        """Fold one row's level values into the forest and return the deepest node id.

        Returns ``None`` for an empty path (the row has no value at level 1).
        """

        parent_id: Optional[int] = None
        for level, name in enumerate(names, start=1):
            parent_id = self.resolve(name, level, parent_id)
        return parent_id

    def iter_preorder(self) -> Iterator[Tuple[ClassificationNode, Optional[int], int]]:
        """Yield ``(node, parent_id, level)`` with every parent before its children."""

        stack: List[ClassificationNode] = list(reversed(self.roots))
        while stack:
            node = stack.pop()
            yield node, node.parent_id, node.level
            stack.extend(reversed(node.children))

    def path_of(self, node_id: Optional[int]) -> List[str]:
        """Names from the root down to ``node_id``."""

        names: List[str] = []
        node = self._nodes.get(node_id) if node_id is not None else None
        while node is not None:
            names.append(node.name)
            node = self._nodes.get(node.parent_id) if node.parent_id is not None else None
        return list(reversed(names))

    def to_list(self) -> List[Dict[str, Any]]:
        return [root.to_dict() for root in self.roots]

    def _warn_if_reparented(self, name: str, level: int, parent_id: Optional[int]) -> None:
        # A node's parent is fixed once created; the same name under another
        # parent at the same level is a data contract violation.
        existing = self._by_name.get((level, name))
        if existing is None or existing.parent_id == parent_id:
            return
        logging.warning(
            f"{self.name} node {name!r} at level {level} appears under several parents",
            extra={
                "classification": self.name,
                "node_name": name,
                "level": level,
                "existing_node_id": existing.id,
                "existing_parent_id": existing.parent_id,
                "new_parent_id": parent_id,
            },
        )
