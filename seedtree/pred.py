"""Walk a node's ancestor chain and show how each mutation step changed the input."""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from pathlib import Path
from typing import TextIO

from seedtree.binary_diff import SAME, BinaryDiffChunk, binary_diff
from seedtree.errors import NotEnoughPredecessorsError
from seedtree.graph import MutationGraph, NodeName

logger = logging.getLogger(__name__)


def existing_predecessors(
    graph: MutationGraph, name: NodeName, seeds_dir: Path
) -> list[NodeName]:
    """Return `name` and its ancestors (child → root) whose file exists in `seeds_dir`."""
    chain = graph.self_and_its_predecessors_of(name)
    seeds = [node for node in chain if (Path(seeds_dir) / node).exists()]
    logger.info(f"[*] {len(seeds)} of {len(chain)} predecessors found in {seeds_dir}")
    return seeds


def diff_predecessors(
    graph: MutationGraph, name: NodeName, seeds_dir: Path
) -> Iterator[tuple[NodeName, NodeName, list[BinaryDiffChunk]]]:
    """Yield (newer, older, changed chunks) for each consecutive pair of existing ancestors.

    Raises:
        NotEnoughPredecessorsError: if fewer than two ancestors exist in `seeds_dir`.
        NodeNotExistsError: if the ancestor walk meets an unknown node.
    """
    seeds_dir = Path(seeds_dir)
    seeds = existing_predecessors(graph, name, seeds_dir)
    if len(seeds) < 2:
        raise NotEnoughPredecessorsError(name, seeds_dir)

    for name_1, name_2 in zip(seeds, seeds[1:]):
        with open(seeds_dir / name_1, "rb") as file_1, open(seeds_dir / name_2, "rb") as file_2:
            chunks = [chunk for chunk in binary_diff(file_1, file_2) if chunk.kind != SAME]
        yield name_1, name_2, chunks


def print_predecessor_diffs(
    graph: MutationGraph,
    name: NodeName,
    seeds_dir: Path,
    out: TextIO | None = None,
) -> None:
    """Print every step of the chain followed by its non-identical chunks."""
    out = out or sys.stdout
    for name_1, name_2, chunks in diff_predecessors(graph, name, seeds_dir):
        print(f"{name_1} -> {name_2}", file=out)
        for chunk in chunks:
            print(f"\t{chunk}", file=out)
        print(file=out)
