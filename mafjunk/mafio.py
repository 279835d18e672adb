#!/usr/bin/env python3

"""
Reading and writing MAF streams as Block values.

The reader frames the stream itself: it checks the ``##maf`` header, keeps
comments, and reads the ``i``, ``q`` and ``e`` lines of each block.
The ``a`` and ``s`` lines of every block are tokenized by Biopython's MAF
parser. The writer formats blocks by hand so that names, coordinates and
symbol case go out exactly as held.
"""

import io
import sys
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, TextIO

from Bio import AlignIO

from .block import (AlignedContext, Block, CONTEXT_STATUSES, EMPTY_STATUSES, Entry,
                    STRANDS, UnalignedEntry)
from .exceptions import FormatError, ParseError


strand_dict = {
    1 : '+',
    -1 : '-'
}


@dataclass
class MafHeader:
    """The ``##maf`` line and the comments directly below it."""
    fields: Dict[str, str] = field(default_factory=lambda: {"version": "1"})
    comments: List[str] = field(default_factory=list)

    @classmethod
    def parse(cls, line: str) -> "MafHeader":
        tokens = line.split()
        if not tokens or tokens[0] != "##maf":
            raise ParseError(f"Expected a '##maf' header line, found {line[:40]!r}")
        fields = {}
        for token in tokens[1:]:
            key, sep, value = token.partition("=")
            if not sep or not key:
                raise ParseError(f"Invalid header field {token!r}")
            fields[key] = value
        return cls(fields)

    def format(self) -> str:
        return "##maf" + "".join(f" {key}={value}" for key, value in self.fields.items())


def _alignment_annotations(alignment) -> dict:
    # MafIO keeps the "a" line pairs on a private attribute
    annotations = getattr(alignment, "_annotations", None)
    if not annotations:
        annotations = getattr(alignment, "annotations", None) or {}
    return {str(key): str(value) for key, value in annotations.items()}


def _record_to_entry(record, context: Optional[AlignedContext] = None,
                     quality: Optional[str] = None) -> Entry:
    annotations = record.annotations
    strand = annotations.get("strand", 1)
    return Entry(
        sequence_name=str(record.id),
        start=int(annotations.get("start", 0)),
        size=int(annotations.get("size", 0)),
        strand=strand_dict.get(strand, strand),
        source_size=int(annotations.get("srcSize", 0)),
        aligned_sequence=str(record.seq),
        context=context,
        quality=quality,
    )


def alignment_to_block(alignment, contexts: Optional[Dict[int, AlignedContext]] = None,
                       qualities: Optional[Dict[int, str]] = None,
                       unaligned: Optional[List[UnalignedEntry]] = None,
                       comments: Optional[List[str]] = None) -> Block:
    """Convert one Bio.Align.MultipleSeqAlignment into a Block.

    ``contexts`` and ``qualities`` are keyed by entry position.
    """
    contexts = contexts or {}
    qualities = qualities or {}
    entries = [
        _record_to_entry(record, contexts.get(index), qualities.get(index))
        for index, record in enumerate(alignment)
    ]
    return Block(entries, _alignment_annotations(alignment),
                 unaligned=list(unaligned or []), comments=list(comments or []))


#
#   Line checks, each raising ValueError on a malformed line
#

def _expect_fields(fields: List[str], count: int):
    if len(fields) != count:
        raise ValueError(f"'{fields[0]}' line must have {count} fields, found {len(fields)}")


def _check_s_line(fields: List[str]):
    _expect_fields(fields, 7)
    if fields[4] not in STRANDS:
        raise ValueError(f"Invalid strand {fields[4]!r} for {fields[1]}")


def _parse_i_line(fields: List[str]) -> AlignedContext:
    _expect_fields(fields, 6)
    context = AlignedContext(fields[2], int(fields[3]), fields[4], int(fields[5]))
    for status in (context.left_status, context.right_status):
        if status not in CONTEXT_STATUSES:
            raise ValueError(f"Invalid 'i' line status {status!r} for {fields[1]}")
    if context.left_count < 0 or context.right_count < 0:
        raise ValueError(f"Negative 'i' line count for {fields[1]}")
    return context


def _parse_e_line(fields: List[str], anchor: int) -> UnalignedEntry:
    _expect_fields(fields, 7)
    if fields[4] not in STRANDS:
        raise ValueError(f"Invalid strand {fields[4]!r} for {fields[1]}")
    if fields[6] not in EMPTY_STATUSES:
        raise ValueError(f"Invalid 'e' line status {fields[6]!r} for {fields[1]}")
    return UnalignedEntry(fields[1], int(fields[2]), int(fields[3]), fields[4],
                          int(fields[5]), fields[6], anchor)


def format_block(block: Block) -> str:
    """Format an alignment block in MAF format (no comments, no trailing blank line).

    Each ``q`` and ``i`` line follows its ``s`` line; ``e`` lines go back
    where they were read relative to the ``s`` lines.
    """
    lines = ["a" + "".join(f" {key}={value}" for key, value in block.metadata.items())]
    for index in range(len(block.entries) + 1):
        for empty in block.unaligned:
            if empty.anchor == index:
                lines.append(f"e {empty.sequence_name} {empty.start} {empty.size} {empty.strand} "
                             f"{empty.source_size} {empty.status}")
        if index == len(block.entries):
            break
        entry = block.entries[index]
        lines.append(f"s {entry.sequence_name} {entry.start} {entry.size} {entry.strand} "
                     f"{entry.source_size} {entry.aligned_sequence}")
        if entry.quality is not None:
            lines.append(f"q {entry.sequence_name} {entry.quality}")
        if entry.context is not None:
            context = entry.context
            lines.append(f"i {entry.sequence_name} {context.left_status} {context.left_count} "
                         f"{context.right_status} {context.right_count}")
    return "\n".join(lines)


class MafReader:
    """Lazy, single pass iterator of Blocks over a text handle.

    The header is read on construction, so input that does not start with
    a ``##maf`` line fails before any block is requested. Comments after
    the last block are in ``trailing_comments`` once iteration ends.
    """

    def __init__(self, handle: TextIO):
        self.handle = handle
        self.blocks_read = 0
        self.line_number = 0
        self.trailing_comments: List[str] = []
        self._pending: Optional[str] = None
        self.header = self._read_header()

    def _read_line(self) -> Optional[str]:
        if self._pending is not None:
            line, self._pending = self._pending, None
            return line
        line = self.handle.readline()
        if not line:
            return None
        self.line_number += 1
        return line.rstrip("\r\n")

    def _read_header(self) -> MafHeader:
        line = self._read_line()
        while line is not None and not line.strip():
            line = self._read_line()
        if line is None:
            raise ParseError("Empty input, expected a '##maf' header line")
        header = MafHeader.parse(line)

        line = self._read_line()
        while line is not None and line.startswith("#"):
            header.comments.append(line[1:])
            line = self._read_line()
        if line is not None and line.strip():
            self._pending = line
        return header

    def __iter__(self) -> Iterator[Block]:
        comments = []
        while True:
            line = self._read_line()
            if line is None:
                break
            if not line.strip():
                continue
            if line.startswith("#"):
                comments.append(line[1:])
                continue

            block_number = self.blocks_read + 1
            kind = line.split()[0]
            if kind != "a":
                raise ParseError(
                    f"line {self.line_number}: expected an 'a' line, found {kind!r}",
                    block_number)
            block = self._read_block(line, comments, block_number)
            comments = []
            self.blocks_read += 1
            yield block

        self.trailing_comments = comments

    def _read_block(self, a_line: str, comments: List[str], block_number: int) -> Block:
        s_lines = []
        sources = []
        lengths = []
        contexts = {}
        qualities = {}
        unaligned = []

        while True:
            line = self._read_line()
            if line is None or not line.strip():
                break
            if line.startswith("#"):
                comments.append(line[1:])
                continue

            fields = line.split()
            kind = fields[0]
            try:
                if kind == "s":
                    _check_s_line(fields)
                    s_lines.append(line)
                    sources.append(fields[1])
                    lengths.append(len(fields[6]))
                elif kind in ("i", "q"):
                    if not sources or fields[1] != sources[-1]:
                        raise ValueError(f"'{kind}' line for {fields[1]} does not follow its 's' line")
                    index = len(sources) - 1
                    if kind == "i":
                        if index in contexts:
                            raise ValueError(f"Second 'i' line for {fields[1]}")
                        contexts[index] = _parse_i_line(fields)
                    else:
                        _expect_fields(fields, 3)
                        if index in qualities:
                            raise ValueError(f"Second 'q' line for {fields[1]}")
                        if len(fields[2]) != lengths[index]:
                            raise ValueError(f"'q' line for {fields[1]} does not match its sequence length")
                        qualities[index] = fields[2]
                elif kind == "e":
                    unaligned.append(_parse_e_line(fields, len(s_lines)))
                else:
                    raise ValueError(f"Unexpected line type {kind!r}")
            except (ValueError, FormatError) as e:
                raise ParseError(f"line {self.line_number}: {e}", block_number) from e

        try:
            alignment = AlignIO.read(io.StringIO("\n".join([a_line] + s_lines) + "\n"), "maf")
        except ValueError as e:
            raise ParseError(str(e), block_number) from e

        try:
            return alignment_to_block(alignment, contexts, qualities, unaligned, comments)
        except FormatError as e:
            raise FormatError(f"Block {block_number}: {e}") from e


class MafWriter:
    """Serializes Blocks to a text handle."""

    def __init__(self, handle: TextIO):
        self.handle = handle
        self.blocks_written = 0

    def write_header(self, header: Optional[MafHeader] = None):
        """Write ``header`` (default ``##maf version=1``), its comments and a blank line."""
        if header is None:
            header = MafHeader()
        self.handle.write(header.format() + "\n")
        self.write_comments(header.comments)
        self.handle.write("\n")

    def write_comments(self, comments: List[str]):
        for comment in comments:
            self.handle.write(f"#{comment}\n")

    def write_block(self, block: Block):
        self.write_comments(block.comments)
        self.handle.write(format_block(block) + "\n\n")
        self.blocks_written += 1

    def flush(self):
        self.handle.flush()


def read_blocks(handle: TextIO) -> Iterator[Block]:
    return iter(MafReader(handle))


@contextmanager
def open_input(path: Optional[str] = None):
    """Open ``path`` for reading; None or "-" means stdin."""
    if path in (None, "-"):
        yield sys.stdin
    else:
        with open(path, 'r') as handle:
            yield handle


@contextmanager
def open_output(path: Optional[str] = None):
    """Open ``path`` for writing; None or "-" means stdout."""
    if path in (None, "-"):
        yield sys.stdout
        sys.stdout.flush()
    else:
        with open(path, 'w') as handle:
            yield handle
