"""Rendering directives and their validation into a single PlotOptions value."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from seedtree.errors import MultiplePredecessorsNotSupportedError
from seedtree.graph import MutationGraphEdge, NodeName

# ---------------------------------------------------------------------------
# Directives
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HighlightEdgesFromRootTo:
    node: NodeName


@dataclass(frozen=True)
class HighlightEdgeWithBlue:
    edge: MutationGraphEdge


@dataclass(frozen=True)
class HighlightEdgeWithRed:
    edge: MutationGraphEdge


@dataclass(frozen=True)
class HighlightEdgeWithGreen:
    edge: MutationGraphEdge


@dataclass(frozen=True)
class HighlightCrashInput:
    pass


@dataclass(frozen=True)
class NotateTo:
    node: NodeName
    label: str


PlotOption = (
    HighlightEdgesFromRootTo
    | HighlightEdgeWithBlue
    | HighlightEdgeWithRed
    | HighlightEdgeWithGreen
    | HighlightCrashInput
    | NotateTo
)


# ---------------------------------------------------------------------------
# Aggregated options
# ---------------------------------------------------------------------------


@dataclass
class PlotOptions:
    """Everything the renderer needs to know beyond the graph itself."""

    highlight_edges_from_root_to: NodeName | None = None
    highlight_edge_with_blue: set[MutationGraphEdge] = field(default_factory=set)
    highlight_edge_with_red: set[MutationGraphEdge] = field(default_factory=set)
    highlight_edge_with_green: set[MutationGraphEdge] = field(default_factory=set)
    highlight_crash_input: bool = False
    notate: dict[NodeName, str] = field(default_factory=dict)

    @classmethod
    def none(cls) -> PlotOptions:
        return cls()

    @classmethod
    def from_options(cls, options: Sequence[PlotOption]) -> PlotOptions:
        """Fold a list of directives into one PlotOptions.

        Several NotateTo directives for the same node are joined with a
        newline in directive order.

        Raises:
            MultiplePredecessorsNotSupportedError: if more than one distinct
                HighlightEdgesFromRootTo target is given.
        """
        targets: set[NodeName] = set()
        result = cls()

        for option in options:
            if isinstance(option, HighlightEdgesFromRootTo):
                targets.add(option.node)
            elif isinstance(option, HighlightEdgeWithBlue):
                result.highlight_edge_with_blue.add(option.edge)
            elif isinstance(option, HighlightEdgeWithRed):
                result.highlight_edge_with_red.add(option.edge)
            elif isinstance(option, HighlightEdgeWithGreen):
                result.highlight_edge_with_green.add(option.edge)
            elif isinstance(option, HighlightCrashInput):
                result.highlight_crash_input = True
            elif isinstance(option, NotateTo):
                if option.node in result.notate:
                    result.notate[option.node] = f"{result.notate[option.node]}\n{option.label}"
                else:
                    result.notate[option.node] = option.label
            else:
                raise TypeError(f"unknown plot option: {option!r}")

        if len(targets) > 1:
            raise MultiplePredecessorsNotSupportedError(targets)
        if targets:
            result.highlight_edges_from_root_to = next(iter(targets))
        return result
