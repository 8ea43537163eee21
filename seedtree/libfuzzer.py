"""Parse libFuzzer's ``-mutation_graph_file`` log into a mutation graph.

libFuzzer appends one vertex statement for every input added to the corpus
and, when the input was derived from a base input, one edge statement::

    "0dafd00a785bd3d2cb36722c29f0dd23497833b0"
    "0dafd00a…" -> "5ba93c9d…" [label="ChangeByte-InsertByte-"];

Node names are the SHA-1 of the input, so they double as the content hash.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from pathlib import Path

from seedtree.errors import ParseError
from seedtree.graph import ORIGIN_LABEL, MutationGraph, MutationGraphEdge, MutationGraphNode

logger = logging.getLogger(__name__)

VERTEX_RE = re.compile(r'^"(?P<name>[^"]+)"\s*;?$')
EDGE_RE = re.compile(
    r'^"(?P<parent>[^"]+)"\s*->\s*"(?P<child>[^"]+)"'
    r'(?:\s*\[\s*label\s*=\s*"(?P<label>[^"]*)"\s*\])?\s*;?$'
)
DIGRAPH_HEADER_RE = re.compile(r"^(?:strict\s+)?digraph\b[^{]*\{$")


def parse_mutation_graph(lines: Iterable[str], log: logging.Logger | None = None) -> MutationGraph:
    """Build a graph from the lines of a mutation graph log."""
    log = log or logger
    graph = MutationGraph()
    for lineno, raw_line in enumerate(lines, start=1):
        line = raw_line.strip()
        if not line or line == "}" or DIGRAPH_HEADER_RE.match(line):
            continue

        edge_match = EDGE_RE.match(line)
        if edge_match:
            graph.add_edge(
                MutationGraphEdge(
                    parent=edge_match["parent"],
                    child=edge_match["child"],
                    label=edge_match["label"] or ORIGIN_LABEL,
                )
            )
            continue

        vertex_match = VERTEX_RE.match(line)
        if vertex_match:
            name = vertex_match["name"]
            graph.add_node(MutationGraphNode(name=name, crashed=False, file=None, hash=name))
            continue

        raise ParseError(f"line {lineno}: unexpected statement {line!r}")

    log.info(f"[+] Parsed mutation graph: {len(graph)} nodes, {len(graph.edges())} edges")
    return graph


def parse_mutation_graph_file(path: Path, log: logging.Logger | None = None) -> MutationGraph:
    """Read and parse a libFuzzer mutation graph file."""
    try:
        with open(path, encoding="utf-8") as f:
            return parse_mutation_graph(f, log=log)
    except (OSError, UnicodeDecodeError) as e:
        raise ParseError(f"cannot read mutation graph file {path}: {e}") from e
