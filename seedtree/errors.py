"""Exception types raised by seedtree.

Parsers raise ParseError subclasses, graph queries raise MutationGraphError
subclasses and plot option validation raises PlotOptionError subclasses.
The command line layer is the only place that catches them.
"""

from __future__ import annotations

from pathlib import Path


class MutationGraphError(Exception):
    """Base class for graph query errors."""


class NodeNotExistsError(MutationGraphError):
    """A query referenced a node that is not in the node table."""

    def __init__(self, name: str):
        super().__init__(f"node does not exist: {name}")
        self.name = name


class ParseError(Exception):
    """Raised when an input cannot be turned into a mutation graph."""


class FileNameSyntaxError(ParseError):
    """A file name matched the grammar but lacks a required field."""

    def __init__(self, field: str, file_name: str):
        super().__init__(f"'{field}' does not exist in file name {file_name!r}")
        self.field = field
        self.file_name = file_name


class UnexpectedFilePathError(ParseError):
    """A path that should have been a directory is not one."""

    def __init__(self, path: Path):
        super().__init__(f"unexpected file path: {path}")
        self.path = path


class StringEncodingError(ParseError):
    """A file name could not be decoded as UTF-8."""

    def __init__(self, path: Path):
        super().__init__(f"file name is not valid UTF-8: {path!r}")
        self.path = path


class PlotOptionError(Exception):
    """Base class for invalid combinations of plot directives."""


class MultiplePredecessorsNotSupportedError(PlotOptionError):
    """More than one distinct root-path highlight target was requested."""

    def __init__(self, nodes: set[str]):
        super().__init__(
            "highlighting the path from root to more than one node is not supported: "
            + ", ".join(sorted(nodes))
        )
        self.nodes = set(nodes)


class NotEnoughPredecessorsError(Exception):
    """Fewer than two ancestors of a node exist in the seeds directory."""

    def __init__(self, name: str, seeds_dir: Path):
        super().__init__(
            f"fewer than two predecessors of {name} exist in {seeds_dir}"
        )
        self.name = name
        self.seeds_dir = seeds_dir
