"""Byte-level diff between two seed files."""

from __future__ import annotations

import difflib
from collections.abc import Iterator
from dataclasses import dataclass
from typing import BinaryIO

SAME = "same"
INSERT = "insert"
DELETE = "delete"
REPLACE = "replace"

_OPCODE_KINDS = {"equal": SAME, "insert": INSERT, "delete": DELETE, "replace": REPLACE}

# Bytes shown per side before the rest is elided in str(chunk).
MAX_SHOWN_BYTES = 32


@dataclass(frozen=True)
class BinaryDiffChunk:
    """One run of same or changed bytes. `offset` indexes the old input."""

    kind: str
    offset: int
    old: bytes = b""
    new: bytes = b""

    def __str__(self) -> str:
        if self.kind == SAME:
            return f"Same(offset={self.offset:#x}, length={len(self.old)})"
        if self.kind == INSERT:
            return f"Insert(offset={self.offset:#x}, bytes={_hex(self.new)})"
        if self.kind == DELETE:
            return f"Delete(offset={self.offset:#x}, bytes={_hex(self.old)})"
        return f"Replace(offset={self.offset:#x}, {_hex(self.old)} -> {_hex(self.new)})"


def _hex(data: bytes) -> str:
    shown = data[:MAX_SHOWN_BYTES].hex(" ")
    if len(data) > MAX_SHOWN_BYTES:
        shown += f" ... ({len(data)} bytes)"
    return f"[{shown}]"


def binary_diff(old: BinaryIO, new: BinaryIO) -> Iterator[BinaryDiffChunk]:
    """Yield the chunks that turn `old` into `new`.

    This is a generator: chunks are produced lazily and can be consumed
    only once.
    """
    old_data = old.read()
    new_data = new.read()
    matcher = difflib.SequenceMatcher(None, old_data, new_data, autojunk=False)
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        yield BinaryDiffChunk(
            kind=_OPCODE_KINDS[tag],
            offset=i1,
            old=old_data[i1:i2],
            new=new_data[j1:j2],
        )
