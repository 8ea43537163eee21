"""
Command-line interface for seedtree.

Reconstructs the mutation graph of an AFL output directory or a libFuzzer
mutation graph file and answers lineage queries about it.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from seedtree.afl import AFLExtensions, parse_afl_input_directories
from seedtree.dot import DEFAULT_PLOT_FORMATS, dot_graph, plot_dot_graph
from seedtree.errors import (
    MutationGraphError,
    NotEnoughPredecessorsError,
    ParseError,
    PlotOptionError,
)
from seedtree.filter import filter_graph
from seedtree.graph import MutationGraph
from seedtree.libfuzzer import parse_mutation_graph_file
from seedtree.plot_options import (
    HighlightCrashInput,
    HighlightEdgesFromRootTo,
    HighlightEdgeWithBlue,
    HighlightEdgeWithGreen,
    HighlightEdgeWithRed,
    NotateTo,
    PlotOption,
    PlotOptions,
)
from seedtree.pred import existing_predecessors, print_predecessor_diffs

logger = logging.getLogger(__name__)

PLOT_FORMATS = ("png", "svg", "pdf")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="seedtree",
        description="Inspect the mutation graph (seed tree) of a fuzzing campaign.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --afl-dir out/default leaves
  %(prog)s --afl-dir out/default pred crash-000002
  %(prog)s --afl-dir out --aurora --crash-inputs-dir out/crashes filter nc-143 --leaves
  %(prog)s --mutation-graph-file graph.txt plot --highlight 0dafd00a...
  %(prog)s --mutation-graph-file graph.txt pred 5ba93c9d... --diff-in corpus/
        """,
    )
    parser.add_argument("-v", "--verbose", action="count", default=0, help="-v info, -vv debug")

    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--mutation-graph-file",
        type=Path,
        help="libFuzzer mutation graph file (-mutation_graph_file)",
    )
    source.add_argument(
        "--afl-dir",
        type=Path,
        action="append",
        help="AFL output directory to scan recursively (repeatable)",
    )
    parser.add_argument(
        "--aurora",
        action="store_true",
        help="Use the AURORA crash exploration file name format",
    )
    parser.add_argument(
        "--crash-inputs-dir",
        type=Path,
        default=None,
        help="Directory holding crashing inputs (default: any directory named 'crashes')",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command")

    subparsers.add_parser("parse", help="Parse the input and dump nodes and edges")

    pred_parser = subparsers.add_parser("pred", help="List predecessors of a node")
    pred_parser.add_argument("node", help="Node name")
    pred_mode = pred_parser.add_mutually_exclusive_group()
    pred_mode.add_argument(
        "--direct", action="store_true", help="Only list the direct predecessors"
    )
    pred_mode.add_argument(
        "--exists-in",
        type=Path,
        metavar="SEEDS_DIR",
        help="Only list predecessors whose file exists in SEEDS_DIR",
    )
    pred_mode.add_argument(
        "--diff-in",
        type=Path,
        metavar="SEEDS_DIR",
        help="Show byte differences between consecutive predecessors found in SEEDS_DIR",
    )

    subparsers.add_parser("leaves", help="List leaf nodes in ascending order")

    filter_parser = subparsers.add_parser(
        "filter", help="Print the DOT graph of a node and its predecessors"
    )
    filter_parser.add_argument("node", nargs="?", default=None, help="Node name")
    filter_parser.add_argument(
        "--leaves",
        action="store_true",
        help="Also include leaves that are direct children of the predecessors",
    )
    _add_plot_arguments(filter_parser)

    plot_parser = subparsers.add_parser("plot", help="Render the graph with Graphviz")
    plot_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        help="Output path; its extension is replaced per format "
        "(default: the mutation graph file)",
    )
    plot_parser.add_argument(
        "--format",
        choices=PLOT_FORMATS,
        action="append",
        default=None,
        help=f"Image format, repeatable (default: {', '.join(DEFAULT_PLOT_FORMATS)})",
    )
    _add_plot_arguments(plot_parser)

    return parser


def _add_plot_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--highlight",
        action="append",
        default=[],
        metavar="NODE",
        help="Highlight the edges from the root to NODE",
    )
    parser.add_argument(
        "--highlight-crash-input", action="store_true", help="Fill crashing inputs in red"
    )
    parser.add_argument(
        "--notate",
        nargs=2,
        action="append",
        default=[],
        metavar=("NODE", "LABEL"),
        help="Append LABEL to the label of NODE",
    )
    for color in ("blue", "red", "green"):
        parser.add_argument(
            f"--{color}",
            nargs=2,
            action="append",
            default=[],
            metavar=("PARENT", "CHILD"),
            help=f"Highlight the edge PARENT -> CHILD in {color}",
        )


def load_graph(args: argparse.Namespace) -> MutationGraph:
    """Build the graph from whichever source was given on the command line."""
    if args.mutation_graph_file is not None:
        return parse_mutation_graph_file(args.mutation_graph_file)
    extensions = AFLExtensions(aurora=args.aurora, crash_inputs_dir=args.crash_inputs_dir)
    return parse_afl_input_directories(args.afl_dir, extensions)


def collect_plot_options(args: argparse.Namespace, graph: MutationGraph) -> list[PlotOption]:
    """Translate plot arguments into an ordered list of directives."""
    options: list[PlotOption] = []
    for node in args.highlight:
        options.append(HighlightEdgesFromRootTo(node))
    if args.highlight_crash_input:
        options.append(HighlightCrashInput())
    for node, label in args.notate:
        options.append(NotateTo(node, label))

    for color, directive in (
        ("blue", HighlightEdgeWithBlue),
        ("red", HighlightEdgeWithRed),
        ("green", HighlightEdgeWithGreen),
    ):
        for parent, child in getattr(args, color):
            matching = [e for e in graph.edges() if e.parent == parent and e.child == child]
            if not matching:
                logger.warning(f"[-] No edge {parent} -> {child} in graph; ignoring --{color}")
            options.extend(directive(edge) for edge in matching)
    return options


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def cmd_parse(graph: MutationGraph) -> int:
    for node in sorted(graph.nodes(), key=lambda n: n.name):
        print(f"{node.name}\tcrashed={node.crashed}\thash={node.hash}\tfile={node.file}")
    for edge in graph.edges():
        print(f"{edge.parent} -> {edge.child}\t[{edge.label}]")
    return 0


def cmd_pred(graph: MutationGraph, args: argparse.Namespace) -> int:
    if args.direct:
        predecessors = graph.predecessors_of(args.node)
        if not predecessors:
            print(f"[*] Given node does not have predecessors: {args.node}", file=sys.stderr)
            return 0
        for name in sorted(predecessors):
            print(name)
        return 0

    if args.diff_in is not None:
        print_predecessor_diffs(graph, args.node, args.diff_in)
        return 0

    if args.exists_in is not None:
        seeds = existing_predecessors(graph, args.node, args.exists_in)
        if len(seeds) < 2:
            raise NotEnoughPredecessorsError(args.node, args.exists_in)
    else:
        seeds = graph.self_and_its_predecessors_of(args.node)
    for name in seeds:
        print(name)
    return 0


def cmd_leaves(graph: MutationGraph) -> int:
    for name in sorted(graph.leaves()):
        print(name)
    return 0


def cmd_filter(graph: MutationGraph, args: argparse.Namespace) -> int:
    plot_options = PlotOptions.from_options(collect_plot_options(args, graph))
    filtered = filter_graph(graph, args.node, leaves=args.leaves)
    print(dot_graph(filtered, plot_options))
    return 0


def cmd_plot(graph: MutationGraph, args: argparse.Namespace) -> int:
    output = args.output or args.mutation_graph_file
    if output is None:
        print("[!] plot needs --output when reading AFL directories", file=sys.stderr)
        return 1

    plot_options = PlotOptions.from_options(collect_plot_options(args, graph))
    dot_text = dot_graph(graph, plot_options)
    formats = args.format or list(DEFAULT_PLOT_FORMATS)
    written = plot_dot_graph(dot_text, output, formats)
    for path in written:
        print(f"Rendered to {path}", file=sys.stderr)
    return 0 if len(written) == len(formats) else 1


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> int:
    """Main entry point for seedtree."""
    parser = build_parser()
    args = parser.parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    if args.command is None:
        parser.print_help()
        return 0

    source = args.mutation_graph_file or ", ".join(str(d) for d in args.afl_dir)
    try:
        graph = load_graph(args)
    except ParseError as e:
        print(f"[!] Failed to parse {source}: {e}", file=sys.stderr)
        return 1
    logger.info(f"[+] Loaded {graph!r} from {source}")

    try:
        if args.command == "parse":
            return cmd_parse(graph)
        if args.command == "pred":
            return cmd_pred(graph, args)
        if args.command == "leaves":
            return cmd_leaves(graph)
        if args.command == "filter":
            return cmd_filter(graph, args)
        if args.command == "plot":
            return cmd_plot(graph, args)
    except MutationGraphError as e:
        print(f"[!] Failed to query the mutation graph: {e}", file=sys.stderr)
        return 1
    except PlotOptionError as e:
        print(f"[!] Invalid plot options: {e}", file=sys.stderr)
        return 1
    except NotEnoughPredecessorsError as e:
        print(f"[!] {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"[!] {e}", file=sys.stderr)
        return 1

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
