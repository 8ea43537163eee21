"""Graphviz DOT rendering of mutation graphs.

`dot_graph` turns a graph plus PlotOptions into DOT text; `render_graphviz`
and `plot_dot_graph` hand that text to the Graphviz ``dot`` tool.
"""

from __future__ import annotations

import shutil
import subprocess
import sys
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from seedtree.graph import MutationGraph, MutationGraphEdge, MutationGraphNode
from seedtree.plot_options import PlotOptions

COLOR_CRASH = "#dc3545"
COLOR_PATH = "#fd7e14"
COLOR_BLUE = "#007bff"
COLOR_RED = "#dc3545"
COLOR_GREEN = "#28a745"
COLOR_NOTATED = "#fff3cd"

GRAPHVIZ_TIMEOUT = 60
DEFAULT_PLOT_FORMATS = ("svg", "png")

# ---------------------------------------------------------------------------
# Styles
# ---------------------------------------------------------------------------


@dataclass
class NodeStyle:
    """How one node is drawn, in terms of what it is in the mutation graph."""

    label: str
    crashed: bool = False
    crash_highlighted: bool = False
    on_path: bool = False
    notated: bool = False
    tooltip: str = ""

    def attrs(self) -> dict[str, str]:
        attrs = {"label": self.label, "shape": "octagon" if self.crashed else "box"}
        penwidth = 1.0
        if self.crash_highlighted:
            attrs["style"] = "filled"
            attrs["fillcolor"] = COLOR_CRASH
            attrs["fontcolor"] = "white"
            penwidth = 2.0
        elif self.notated:
            attrs["style"] = "filled"
            attrs["fillcolor"] = COLOR_NOTATED
        if self.on_path:
            attrs["color"] = COLOR_PATH
            penwidth = 3.0
        elif self.crashed:
            attrs["color"] = COLOR_CRASH
        if penwidth != 1.0:
            attrs["penwidth"] = str(penwidth)
        if self.tooltip:
            attrs["tooltip"] = self.tooltip
        return attrs


@dataclass
class EdgeStyle:
    """How one mutation edge is drawn. `color` is set by a blue/red/green directive."""

    label: str
    on_path: bool = False
    color: str | None = None

    def attrs(self) -> dict[str, str]:
        attrs = {"label": self.label}
        if self.color is not None:
            attrs["color"] = self.color
            attrs["style"] = "bold"
            attrs["penwidth"] = "3.0" if self.on_path else "2.0"
        elif self.on_path:
            attrs["color"] = COLOR_PATH
            attrs["penwidth"] = "3.0"
        return attrs


@dataclass
class DecoratedGraph:
    """Graph with a style per node and edge, in emission order."""

    nodes: dict[str, NodeStyle]
    edges: list[tuple[str, str, EdgeStyle]]


# ---------------------------------------------------------------------------
# Decoration
# ---------------------------------------------------------------------------


def _decorate_node(node: MutationGraphNode, options: PlotOptions, on_path: bool) -> NodeStyle:
    note = options.notate.get(node.name)
    tooltip = []
    if node.file is not None:
        tooltip.append(f"file: {node.file}")
    if node.hash:
        tooltip.append(f"sha1: {node.hash}")
    return NodeStyle(
        label=node.name if note is None else f"{node.name}\n{note}",
        crashed=node.crashed,
        crash_highlighted=node.crashed and options.highlight_crash_input,
        on_path=on_path,
        notated=note is not None,
        tooltip="\n".join(tooltip),
    )


def _path_edges(graph: MutationGraph, target: str) -> tuple[set[str], set[tuple[str, str]]]:
    """Nodes and (parent, child) pairs on the path from the root to `target`."""
    chain = graph.self_and_its_predecessors_of(target)
    pairs = {(chain[i + 1], chain[i]) for i in range(len(chain) - 1)}
    return set(chain), pairs


def _edge_color(edge: MutationGraphEdge, options: PlotOptions) -> str | None:
    # Later buckets win when an edge is in several of them.
    color = None
    for edges, bucket_color in (
        (options.highlight_edge_with_blue, COLOR_BLUE),
        (options.highlight_edge_with_red, COLOR_RED),
        (options.highlight_edge_with_green, COLOR_GREEN),
    ):
        if edge in edges:
            color = bucket_color
    return color


def decorate(graph: MutationGraph, options: PlotOptions) -> DecoratedGraph:
    """Assign a style to every node and edge.

    Raises:
        NodeNotExistsError: if the root-path highlight target (or one of its
            ancestors) is missing from the graph.
    """
    path_nodes: set[str] = set()
    path_pairs: set[tuple[str, str]] = set()
    if options.highlight_edges_from_root_to is not None:
        path_nodes, path_pairs = _path_edges(graph, options.highlight_edges_from_root_to)

    nodes = {
        node.name: _decorate_node(node, options, node.name in path_nodes)
        for node in sorted(graph.nodes(), key=lambda n: n.name)
    }
    edges = [
        (
            edge.parent,
            edge.child,
            EdgeStyle(
                label=edge.label,
                on_path=(edge.parent, edge.child) in path_pairs,
                color=_edge_color(edge, options),
            ),
        )
        for edge in graph.edges()
    ]
    return DecoratedGraph(nodes=nodes, edges=edges)


# ---------------------------------------------------------------------------
# DOT emission
# ---------------------------------------------------------------------------


def _escape_dot(text: str) -> str:
    """Escape special characters for DOT labels/tooltips."""
    return text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def _quote(text: str) -> str:
    """Quote a DOT identifier."""
    return f'"{_escape_dot(text)}"'


def _attr_list(attrs: dict[str, str]) -> str:
    return ", ".join(f"{key}={_quote(value)}" for key, value in attrs.items())


def emit_dot(decorated: DecoratedGraph) -> str:
    """Generate a Graphviz DOT string from a decorated graph."""
    lines = [
        "digraph mutation_graph {",
        '  rankdir="TB";',
        '  node [fontname="Helvetica", fontsize=10];',
        '  edge [fontname="Helvetica", fontsize=8];',
        "",
    ]
    for name, ns in decorated.nodes.items():
        lines.append(f"  {_quote(name)} [{_attr_list(ns.attrs())}];")
    lines.append("")
    for parent, child, es in decorated.edges:
        lines.append(f"  {_quote(parent)} -> {_quote(child)} [{_attr_list(es.attrs())}];")
    lines.append("}")
    return "\n".join(lines)


def dot_graph(graph: MutationGraph, options: PlotOptions | None = None) -> str:
    """Render `graph` as DOT text. Output is stable for equal inputs."""
    return emit_dot(decorate(graph, options or PlotOptions.none()))


# ---------------------------------------------------------------------------
# Graphviz rendering
# ---------------------------------------------------------------------------


def render_graphviz(dot_string: str, output_path: Path, fmt: str = "png") -> bool:
    """Invoke Graphviz dot to render the DOT string to an image file.

    Returns True on success, False on failure.
    """
    if shutil.which("dot") is None:
        print(
            "Error: Graphviz 'dot' command not found. "
            "Install Graphviz (e.g. 'apt install graphviz') to plot graphs.",
            file=sys.stderr,
        )
        return False

    try:
        # run() closes dot's stdin before waiting on it.
        result = subprocess.run(
            ["dot", f"-T{fmt}", "-o", str(output_path)],
            input=dot_string,
            capture_output=True,
            text=True,
            timeout=GRAPHVIZ_TIMEOUT,
        )
        if result.returncode != 0:
            print(f"Graphviz error: {result.stderr}", file=sys.stderr)
            return False
        return True
    except subprocess.TimeoutExpired:
        print(
            f"Error: Graphviz rendering timed out after {GRAPHVIZ_TIMEOUT} seconds.",
            file=sys.stderr,
        )
        return False
    except OSError as e:
        print(f"Error running Graphviz: {e}", file=sys.stderr)
        return False


def plot_dot_graph(
    dot_string: str,
    original_file: Path,
    formats: Iterable[str] = DEFAULT_PLOT_FORMATS,
) -> list[Path]:
    """Render to every format, next to `original_file` with its extension replaced.

    Returns the paths that were written successfully.
    """
    written = []
    for fmt in formats:
        output_path = Path(original_file).with_suffix(f".{fmt}")
        if render_graphviz(dot_string, output_path, fmt=fmt):
            written.append(output_path)
    return written
