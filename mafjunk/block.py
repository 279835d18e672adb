#!/usr/bin/env python3

"""
In-memory model of MAF alignment blocks.

A Block holds the ``a`` line metadata and the ordered ``s`` line entries of
one alignment block. Every entry's aligned sequence spans the same number of
columns; blocks that break this are rejected on construction.

The ``i``, ``q`` and ``e`` lines and the comments around a block are kept
on it as well so that a block goes back out the way it came in.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, NamedTuple, Optional

from .exceptions import FormatError


GAP = "-"
MASK = "N"
SYMBOLS = "ACGTNacgtn" + GAP

_VALID_SEQUENCE = re.compile(r"^[ACGTNacgtn\-]*$")

# i line: C, I, N, n, M or T; e line: the same without N
CONTEXT_STATUSES = "CINnMT"
EMPTY_STATUSES = "CInMT"
STRANDS = ("+", "-")


class AlignedContext(NamedTuple):
    """What precedes and follows an entry in the neighbouring blocks (``i`` line)."""
    left_status: str
    left_count: int
    right_status: str
    right_count: int


class SequenceName(NamedTuple):
    species: str
    chromosome: str


def parse_sequence_name(name: str) -> SequenceName:
    """Split a ``species.chromosome`` source name.

    Only the first dot separates the two parts, so ``hg38.chrUn.random``
    gives species ``hg38`` and chromosome ``chrUn.random``. A name without
    a dot is taken to be the species alone.
    """
    species, _, chromosome = name.partition(".")
    return SequenceName(species, chromosome)


@dataclass
class Entry:
    """One ``s`` line of a block, with its ``i`` and ``q`` lines if any.

    ``quality`` holds one character per aligned column, gaps included.
    """
    sequence_name: str
    start: int
    size: int
    strand: str
    source_size: int
    aligned_sequence: str
    context: Optional[AlignedContext] = None
    quality: Optional[str] = None

    def __post_init__(self):
        if self.strand not in STRANDS:
            raise FormatError(f"Invalid strand for {self.sequence_name}: {self.strand!r}")
        if self.start < 0 or self.size < 0 or self.source_size < 0:
            raise FormatError(f"Negative coordinates for {self.sequence_name}")
        if not _VALID_SEQUENCE.match(self.aligned_sequence):
            bad = sorted(set(self.aligned_sequence) - set(SYMBOLS))
            raise FormatError(
                f"Unrecognized alignment symbol(s) {''.join(bad)!r} in {self.sequence_name}"
            )
        if self.context is not None:
            if (self.context.left_status not in CONTEXT_STATUSES
                    or self.context.right_status not in CONTEXT_STATUSES):
                raise FormatError(f"Invalid context status for {self.sequence_name}: "
                                  f"{self.context.left_status!r} {self.context.right_status!r}")
            if self.context.left_count < 0 or self.context.right_count < 0:
                raise FormatError(f"Negative context count for {self.sequence_name}")
        if self.quality is not None and len(self.quality) != len(self.aligned_sequence):
            raise FormatError(
                f"Quality of {self.sequence_name} spans {len(self.quality)} columns, "
                f"sequence spans {len(self.aligned_sequence)}"
            )

    @property
    def species(self) -> str:
        return parse_sequence_name(self.sequence_name).species

    @property
    def chromosome(self) -> str:
        return parse_sequence_name(self.sequence_name).chromosome

    @property
    def end(self) -> int:
        return self.start + self.size

    def is_gap(self, offset: int) -> bool:
        return self.aligned_sequence[offset] == GAP

    def aligned_bases(self) -> int:
        """Number of non-gap columns."""
        return len(self.aligned_sequence) - self.aligned_sequence.count(GAP)


@dataclass
class UnalignedEntry:
    """An ``e`` line: a species with no bases in the block.

    ``anchor`` is the number of ``s`` entries written before it.
    """
    sequence_name: str
    start: int
    size: int
    strand: str
    source_size: int
    status: str
    anchor: int = 0

    def __post_init__(self):
        if self.strand not in STRANDS:
            raise FormatError(f"Invalid strand for {self.sequence_name}: {self.strand!r}")
        if self.status not in EMPTY_STATUSES:
            raise FormatError(f"Invalid status for {self.sequence_name}: {self.status!r}")
        if self.start < 0 or self.size < 0 or self.source_size < 0:
            raise FormatError(f"Negative coordinates for {self.sequence_name}")

    @property
    def species(self) -> str:
        return parse_sequence_name(self.sequence_name).species


@dataclass
class Block:
    """One alignment block: metadata, ordered entries and column width.

    ``width`` may be omitted, in which case it is taken from the entries.
    Passing a width that disagrees with the entries, or entries of
    different lengths, raises FormatError. ``comments`` are the ``#``
    lines read just before the block, without the leading ``#``.
    """
    entries: List[Entry] = field(default_factory=list)
    metadata: Dict[str, str] = field(default_factory=dict)
    width: Optional[int] = None
    unaligned: List[UnalignedEntry] = field(default_factory=list)
    comments: List[str] = field(default_factory=list)

    def __post_init__(self):
        lengths = {len(entry.aligned_sequence) for entry in self.entries}
        if len(lengths) > 1:
            raise FormatError(
                f"Entries of unequal aligned length in block: {sorted(lengths)}"
            )
        observed = lengths.pop() if lengths else None
        if self.width is None:
            self.width = observed if observed is not None else 0
        elif observed is not None and observed != self.width:
            raise FormatError(
                f"Block width {self.width} does not match aligned length {observed}"
            )
        for empty in self.unaligned:
            if not 0 <= empty.anchor <= len(self.entries):
                raise FormatError(
                    f"Unaligned entry {empty.sequence_name} anchored at {empty.anchor} "
                    f"in a block with {len(self.entries)} entries"
                )

    def __len__(self):
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    @property
    def score(self) -> Optional[str]:
        return self.metadata.get("score")

    @property
    def species(self) -> List[str]:
        """Distinct species in order of first appearance."""
        return list(dict.fromkeys(entry.species for entry in self.entries))

    def column(self, offset: int) -> List[str]:
        return [entry.aligned_sequence[offset] for entry in self.entries]

    def with_entries(self, entries: List[Entry],
                     unaligned: Optional[List[UnalignedEntry]] = None) -> "Block":
        """New block with the same metadata, width and comments but other entries.

        ``unaligned`` defaults to the current ``e`` lines, whose anchors must
        still fit the new entries.
        """
        if unaligned is None:
            unaligned = self.unaligned
        return Block(list(entries), dict(self.metadata), self.width,
                     list(unaligned), list(self.comments))
