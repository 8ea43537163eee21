"""In-memory mutation graph ("seed tree") built from a fuzzer's corpus.

Every test case is a node; an edge records the parent it was derived from
and the mutation operator that produced it. Graphs are built once by one
of the parsers (see `seedtree.afl` and `seedtree.libfuzzer`) and are then
only queried.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path

from seedtree.errors import NodeNotExistsError

logger = logging.getLogger(__name__)

NodeName = str

ORIGIN_LABEL = "origin"


@dataclass(frozen=True)
class MutationGraphNode:
    """A single test case."""

    name: NodeName
    crashed: bool = False
    file: Path | None = None
    hash: str = ""


@dataclass(frozen=True)
class MutationGraphEdge:
    """Parent → child derivation, labelled with the mutation operator."""

    parent: NodeName
    child: NodeName
    label: str = ORIGIN_LABEL


class MutationGraph:
    """Node table plus edge list; adjacency is derived on demand."""

    def __init__(self) -> None:
        self._nodes: dict[NodeName, MutationGraphNode] = {}
        self._edges: list[MutationGraphEdge] = []
        self._parents: dict[NodeName, list[NodeName]] | None = None
        self._children: dict[NodeName, list[NodeName]] | None = None

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, name: object) -> bool:
        return name in self._nodes

    def __repr__(self) -> str:
        return f"MutationGraph(nodes={len(self._nodes)}, edges={len(self._edges)})"

    # -----------------------------------------------------------------
    # Construction
    # -----------------------------------------------------------------

    def add_node(self, node: MutationGraphNode) -> None:
        """Insert a node, replacing any previous node with the same name."""
        self._nodes[node.name] = node

    def add_edge(self, edge: MutationGraphEdge) -> None:
        """Append an edge. Endpoints are not required to exist."""
        self._edges.append(edge)
        self._parents = None
        self._children = None

    # -----------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------

    def get_node(self, name: NodeName) -> MutationGraphNode | None:
        return self._nodes.get(name)

    def nodes(self) -> list[MutationGraphNode]:
        return list(self._nodes.values())

    def node_names(self) -> set[NodeName]:
        return set(self._nodes)

    def edges(self) -> tuple[MutationGraphEdge, ...]:
        return tuple(self._edges)

    def _adjacency(self) -> tuple[dict[NodeName, list[NodeName]], dict[NodeName, list[NodeName]]]:
        if self._parents is None or self._children is None:
            parents: dict[NodeName, list[NodeName]] = defaultdict(list)
            children: dict[NodeName, list[NodeName]] = defaultdict(list)
            for edge in self._edges:
                parents[edge.child].append(edge.parent)
                children[edge.parent].append(edge.child)
            self._parents = dict(parents)
            self._children = dict(children)
        return self._parents, self._children

    def predecessors_of(self, name: NodeName) -> set[NodeName]:
        """Return the direct parents of `name`.

        Raises:
            NodeNotExistsError: if `name` is not in the node table.
        """
        if name not in self._nodes:
            raise NodeNotExistsError(name)
        parents, _ = self._adjacency()
        return set(parents.get(name, []))

    def self_and_its_predecessors_of(self, name: NodeName) -> list[NodeName]:
        """Walk parent edges from `name` up to its root.

        The result starts with `name` itself and ends with the root, in
        child → root order.

        Raises:
            NodeNotExistsError: if `name` or any ancestor reached through an
                edge is not in the node table.
        """
        parents, _ = self._adjacency()
        chain: list[NodeName] = []
        visited: set[NodeName] = set()
        current = name
        while True:
            if current not in self._nodes:
                raise NodeNotExistsError(current)
            if current in visited:
                logger.warning(f"[!] Cycle detected at {current}; stopping ancestor walk.")
                break
            visited.add(current)
            chain.append(current)

            node_parents = parents.get(current)
            if not node_parents:
                break
            current = node_parents[0]
        return chain

    def children_of(self, name: NodeName) -> set[NodeName] | None:
        """Return the direct children of `name`, or None if it is unknown."""
        if name not in self._nodes:
            return None
        _, children = self._adjacency()
        return set(children.get(name, []))

    def roots(self) -> set[NodeName]:
        """Nodes without an incoming edge."""
        has_parent = {edge.child for edge in self._edges}
        return {name for name in self._nodes if name not in has_parent}

    def leaves(self) -> set[NodeName]:
        """Nodes without an outgoing edge."""
        has_child = {edge.parent for edge in self._edges}
        return {name for name in self._nodes if name not in has_child}
