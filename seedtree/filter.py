"""Derive a sub-graph around one node's ancestor chain."""

from __future__ import annotations

import logging

from seedtree.errors import NodeNotExistsError
from seedtree.graph import MutationGraph, NodeName

logger = logging.getLogger(__name__)


def filter_graph(
    graph: MutationGraph,
    target: NodeName | None,
    leaves: bool = False,
) -> MutationGraph:
    """Return a new graph induced by `target` and its ancestors.

    With `leaves`, every direct child of a node in that chain which is also a
    leaf of `graph` is included as well. Leaves further than one hop from the
    chain are not included. Without a target the result is empty.

    Raises:
        NodeNotExistsError: if the ancestor walk or the rebuild meets a
            node that is not in `graph`.
    """
    if target is not None:
        base_nodes = set(graph.self_and_its_predecessors_of(target))
    else:
        base_nodes = set()
    logger.info(f"[*] Ancestor chain of {target}: {len(base_nodes)} nodes")

    if leaves:
        filtered_nodes = set(base_nodes)
        graph_leaves = graph.leaves()
        for node in base_nodes:
            children = graph.children_of(node)
            if children is None:
                continue
            logger.debug(f"node = {node} -> children = {sorted(children)}")
            for child in children:
                if child in graph_leaves:
                    logger.debug(f"leaf = {child}")
                    filtered_nodes.add(child)
    else:
        filtered_nodes = base_nodes

    filtered = MutationGraph()
    for name in sorted(filtered_nodes):
        node = graph.get_node(name)
        if node is None:
            raise NodeNotExistsError(name)
        filtered.add_node(node)
    for edge in graph.edges():
        if edge.parent in filtered_nodes and edge.child in filtered_nodes:
            filtered.add_edge(edge)
    return filtered
