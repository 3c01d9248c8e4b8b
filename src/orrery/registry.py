'''Clockwork solar-system model
BodyRegistry class definition

The registry materialises a declarative adjacency list (node -> parent name)
into an immutable, validated tree.'''

import logging
from dataclasses import replace
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .bodies import OrbitNode, ConfigurationError

logger = logging.getLogger(__name__)


class BodyRegistry:
    """
    Immutable, validated tree of orbit nodes.

    Parameters
    ----------
    nodes : iterable of OrbitNode
        Every node in the model. Each node names its parent; exactly one
        node (the root) has ``parent=None``.

    Raises
    ------
    ConfigurationError
        On duplicate names, dangling parent references, cycles, or a tree
        that does not have exactly one root.

    Examples
    --------
    >>> from orrery import BodyRegistry, OrbitNode, Circular
    >>> reg = BodyRegistry([
    ...     OrbitNode("Root"),
    ...     OrbitNode("Planet", parent="Root", angular_speed=1.0, shape=Circular(10.0)),
    ... ])
    >>> reg.ancestors("Planet")
    ('Root', 'Planet')
    """

    # ========== CONSTRUCTION ==========
    def __init__(self, nodes: Iterable[OrbitNode]):
        ordered: Dict[str, OrbitNode] = {}
        for node in nodes:
            if not isinstance(node, OrbitNode):
                raise ConfigurationError(
                    f"Registry entries must be OrbitNode, got {type(node).__name__}"
                )
            if node.name in ordered:
                raise ConfigurationError(f"Duplicate node name '{node.name}'")
            ordered[node.name] = node

        if not ordered:
            raise ConfigurationError("Registry needs at least one node")

        roots = [n.name for n in ordered.values() if n.parent is None]
        if len(roots) != 1:
            raise ConfigurationError(
                f"Node tree must have exactly one root, found {len(roots)}: {roots}"
            )

        children: Dict[str, List[str]] = {name: [] for name in ordered}
        for node in ordered.values():
            if node.parent is None:
                continue
            if node.parent not in ordered:
                raise ConfigurationError(
                    f"Node '{node.name}' references unknown parent '{node.parent}'"
                )
            children[node.parent].append(node.name)

        self._nodes = ordered
        self._root = roots[0]
        self._children = {k: tuple(v) for k, v in children.items()}
        self._order = self._topological_order()
        if len(self._order) != len(self._nodes):
            # nodes unreachable from the root sit on a cycle
            unreachable = sorted(set(self._nodes) - set(self._order))
            raise ConfigurationError(f"Cycle detected among nodes {unreachable}")

        self._ancestors: Dict[str, Tuple[str, ...]] = {}
        for name in self._order:
            parent = self._nodes[name].parent
            chain = () if parent is None else self._ancestors[parent]
            self._ancestors[name] = chain + (name,)

        logger.debug("Built registry with %d nodes rooted at '%s'", len(self), self._root)

    @classmethod
    def from_nodes(cls, nodes: Iterable[OrbitNode]) -> 'BodyRegistry':
        """Alias constructor, reads better at call sites that build tables."""
        return cls(nodes)

    def _topological_order(self) -> Tuple[str, ...]:
        order = []
        stack = [self._root]
        while stack:
            name = stack.pop()
            order.append(name)
            # reversed so children come out in declaration order
            stack.extend(reversed(self._children[name]))
        return tuple(order)

    def with_overrides(self, name: str, **fields) -> 'BodyRegistry':
        """
        Return a new registry with one node's fields replaced.

        The original registry is unchanged. The new table is fully
        re-validated.
        """
        node = self.node(name)
        updated = replace(node, **fields)
        return BodyRegistry(updated if n.name == name else n for n in self._nodes.values())

    # ========== PROPERTY ACCESS ==========
    @property
    def root(self) -> str:
        return self._root

    @property
    def names(self) -> Tuple[str, ...]:
        """Node names in declaration order."""
        return tuple(self._nodes)

    @property
    def order(self) -> Tuple[str, ...]:
        """Node names with every parent before its children."""
        return self._order

    def node(self, name: str) -> OrbitNode:
        try:
            return self._nodes[name]
        except KeyError:
            raise KeyError(f"Unknown node '{name}'") from None

    def get(self, name: str) -> Optional[OrbitNode]:
        return self._nodes.get(name)

    def children(self, name: str) -> Tuple[str, ...]:
        self.node(name)
        return self._children[name]

    def ancestors(self, name: str) -> Tuple[str, ...]:
        """Chain of node names from the root down to ``name`` inclusive."""
        self.node(name)
        return self._ancestors[name]

    def physical_bodies(self) -> Tuple[str, ...]:
        return tuple(n.name for n in self._nodes.values() if n.is_physical)

    # ========== SPECIAL METHODS ==========
    def __contains__(self, name) -> bool:
        return name in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[OrbitNode]:
        return iter(self._nodes.values())

    def __eq__(self, other):
        if not isinstance(other, BodyRegistry):
            return False
        return list(self._nodes.values()) == list(other._nodes.values())

    __hash__ = None

    def __repr__(self):
        return f"BodyRegistry({len(self)} nodes, root='{self._root}')"
