"""Build a mutation graph from AFL / AFL++ output directories.

AFL encodes the lineage of every queued or crashing input in its file name,
e.g. ``id:000002,sig:06,src:000000,time:8024,execs:2409,op:colorization``.
Two name grammars are understood:

- plain (AFL / AFL++)::

    id:<digits>[,sig:<digits>][,time:<digits>][,execs:<digits>],
    (src|orig):<token>[+<token>...][,time:<digits>][,execs:<digits>][,op:<token>...]

- aurora (AFL crash exploration mode used by AURORA)::

    id:<digits>[,sig:<digits>],(src|orig):<token>[,op:<op>[_<non-crash-id>]]

Only the first source of a splice (``src:000001+000007``) is kept as the
parent, so every node has at most one recorded parent edge.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from seedtree.errors import (
    FileNameSyntaxError,
    ParseError,
    StringEncodingError,
    UnexpectedFilePathError,
)
from seedtree.graph import ORIGIN_LABEL, MutationGraph, MutationGraphEdge, MutationGraphNode
from seedtree.utils import calc_file_hash

logger = logging.getLogger(__name__)

STATE_DIR_NAME = ".state"
CRASHES_DIR_NAME = "crashes"
README_FILE_NAME = "README.txt"
AFL_ID_PREFIX = "id:"

_DIGITS = frozenset("0123456789")


@dataclass
class AFLExtensions:
    """Selects the file name grammar and where crashing inputs live."""

    aurora: bool = False
    crash_inputs_dir: Path | None = None

    def is_crash_inputs_dir(self, directory: Path) -> bool:
        if self.crash_inputs_dir is not None:
            return directory == self.crash_inputs_dir
        return directory.name == CRASHES_DIR_NAME


# ---------------------------------------------------------------------------
# File name grammar
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AFLFileName:
    """Fields captured from an AFL input file name."""

    id: str | None
    src: str | None
    op: str | None = None
    non_crash_id: str | None = None

    @property
    def sources(self) -> list[str]:
        return self.src.split("+") if self.src is not None else []


class _NoMatch(Exception):
    pass


class _Scanner:
    """Cursor over a file name with the few primitives the grammars need."""

    def __init__(self, text: str):
        self.text = text
        self.pos = 0

    def at_end(self) -> bool:
        return self.pos == len(self.text)

    def rest(self) -> str:
        return self.text[self.pos :]

    def peek(self, literal: str) -> bool:
        return self.text.startswith(literal, self.pos)

    def expect(self, literal: str) -> None:
        if not self.peek(literal):
            raise _NoMatch
        self.pos += len(literal)

    def digits(self) -> str:
        end = self.pos
        while end < len(self.text) and self.text[end] in _DIGITS:
            end += 1
        if end == self.pos:
            raise _NoMatch
        value = self.text[self.pos : end]
        self.pos = end
        return value

    def optional_number(self, key: str) -> str | None:
        """Consume ``,<key>:<digits>`` if present."""
        prefix = f",{key}:"
        if not self.peek(prefix):
            return None
        start = self.pos
        self.pos += len(prefix)
        if self.at_end() or self.text[self.pos] not in _DIGITS:
            self.pos = start
            return None
        return self.digits()

    def source(self) -> str:
        """Consume ``,(src|orig):<value>``.

        The value may not contain ``:``; it runs up to the last comma before
        the next ``key:`` field, or to the end of the name.
        """
        if self.peek(",src:"):
            self.pos += len(",src:")
        elif self.peek(",orig:"):
            self.pos += len(",orig:")
        else:
            raise _NoMatch

        next_colon = self.text.find(":", self.pos)
        if next_colon == -1:
            end = len(self.text)
        else:
            end = self.text.rfind(",", self.pos, next_colon)
        if end <= self.pos:
            raise _NoMatch
        value = self.text[self.pos : end]
        self.pos = end
        return value


def _parse_plain(scanner: _Scanner) -> AFLFileName:
    scanner.expect(AFL_ID_PREFIX)
    node_id = scanner.digits()
    scanner.optional_number("sig")
    scanner.optional_number("time")
    scanner.optional_number("execs")
    src = scanner.source()
    scanner.optional_number("time")
    scanner.optional_number("execs")

    op = None
    if scanner.peek(",op:"):
        scanner.expect(",op:")
        # AFL++ appends attributes after the operator (pos:, val:, rep:, +cov)
        rest = scanner.rest()
        if not rest or any(c.isspace() for c in rest):
            raise _NoMatch
        op = rest.split(",", 1)[0]
        if not op:
            raise _NoMatch
        scanner.pos = len(scanner.text)

    if not scanner.at_end():
        raise _NoMatch
    return AFLFileName(id=node_id, src=src, op=op)


def _parse_aurora(scanner: _Scanner) -> AFLFileName:
    scanner.expect(AFL_ID_PREFIX)
    node_id = scanner.digits()
    scanner.optional_number("sig")
    src = scanner.source()

    op = None
    non_crash_id = None
    if not scanner.at_end():
        scanner.expect(",op:")
        op, sep, suffix = scanner.rest().partition("_")
        if not op:
            raise _NoMatch
        if sep:
            if not suffix or any(c.isspace() for c in suffix):
                raise _NoMatch
            non_crash_id = suffix
        scanner.pos = len(scanner.text)

    return AFLFileName(id=node_id, src=src, op=op, non_crash_id=non_crash_id)


def parse_file_name(file_name: str, aurora: bool = False) -> AFLFileName | None:
    """Match `file_name` against the selected grammar.

    Returns None when the name does not follow the grammar.
    """
    scanner = _Scanner(file_name)
    try:
        return _parse_aurora(scanner) if aurora else _parse_plain(scanner)
    except _NoMatch:
        return None


def node_name_of(fields: AFLFileName, file_name: str, is_crash_input: bool, aurora: bool) -> str:
    """Derive the node name from matched file name fields.

    In aurora mode a non-crash id suffix wins over the numeric id; in plain
    mode crashing inputs are prefixed with ``crash-``.
    """
    if fields.id is None:
        raise FileNameSyntaxError("id", file_name)
    if aurora:
        if fields.non_crash_id is not None:
            return f"nc-{fields.non_crash_id}"
        return fields.id
    if is_crash_input:
        return f"crash-{fields.id}"
    return fields.id


# ---------------------------------------------------------------------------
# Directory traversal
# ---------------------------------------------------------------------------


def parse_afl_input_directories(
    directories: Iterable[Path | str],
    extensions: AFLExtensions,
    log: logging.Logger | None = None,
) -> MutationGraph:
    """Parse every directory into one graph. Any error aborts the whole parse.

    Directories given more than once are parsed once, so each input keeps a
    single parent edge.
    """
    graph = MutationGraph()
    for directory in dict.fromkeys(Path(d) for d in directories):
        parse_afl_input_directory(directory, graph, extensions, log=log)
    return graph


def parse_afl_input_directory(
    directory: Path,
    graph: MutationGraph,
    extensions: AFLExtensions,
    log: logging.Logger | None = None,
) -> None:
    """Walk `directory` recursively and add its inputs to `graph`."""
    log = log or logger
    directory = Path(directory)
    if directory.is_file():
        raise UnexpectedFilePathError(directory)

    stack = [directory]
    while stack:
        current = stack.pop()
        log.debug(f"[*] Scanning directory {current}")
        try:
            entries = sorted(current.iterdir())
        except OSError as e:
            raise ParseError(f"cannot read directory {current}: {e}") from e

        subdirectories = []
        for entry in entries:
            if entry.is_dir():
                if entry.name == STATE_DIR_NAME:
                    log.warning(f"[-] Skipped directory {entry}")
                else:
                    subdirectories.append(entry)
                continue
            if not entry.is_file():
                log.warning(f"[-] Skipped non-regular file {entry}")
                continue
            _add_input_file(entry, current, graph, extensions, log)

        # Reversed so the stack pops subdirectories in sorted order.
        stack.extend(reversed(subdirectories))


def _add_input_file(
    file_path: Path,
    directory: Path,
    graph: MutationGraph,
    extensions: AFLExtensions,
    log: logging.Logger,
) -> None:
    file_name = file_path.name
    try:
        file_name.encode("utf-8")
    except UnicodeEncodeError as e:
        raise StringEncodingError(file_path) from e

    is_crash_input = extensions.is_crash_inputs_dir(directory)
    fields = parse_file_name(file_name, aurora=extensions.aurora)

    if fields is None:
        if file_name.startswith(AFL_ID_PREFIX):
            log.warning(f'[!] File "{file_name}" does not have AFL\'s input file name format')
        elif file_name == README_FILE_NAME:
            log.info(f'[*] README file "{file_name}" found. Skip')
        else:
            graph.add_node(
                MutationGraphNode(
                    name=file_name,
                    crashed=is_crash_input,
                    file=file_path,
                    hash=_hash(file_path),
                )
            )
        return

    name = node_name_of(fields, file_name, is_crash_input, extensions.aurora)
    graph.add_node(
        MutationGraphNode(
            name=name,
            crashed=is_crash_input,
            file=file_path,
            hash=_hash(file_path),
        )
    )

    if fields.src is None:
        raise FileNameSyntaxError("src", file_name)
    # Splice inputs name several sources; only the first becomes the parent.
    parent = fields.sources[0]
    graph.add_edge(
        MutationGraphEdge(parent=parent, child=name, label=fields.op or ORIGIN_LABEL)
    )


def _hash(file_path: Path) -> str:
    try:
        return calc_file_hash(file_path)
    except OSError as e:
        raise ParseError(f"cannot read file {file_path}: {e}") from e
