"""
Test suite for mafjunk.

Blocks are built in memory with ``make_block``; reader and CLI tests use
small MAF texts.
"""

from mafjunk.block import Block, Entry, GAP


def make_entry(name, sequence, start=0, strand="+", source_size=1000, size=None):
    if size is None:
        size = len(sequence) - sequence.count(GAP)
    return Entry(name, start, size, strand, source_size, sequence)


def make_block(*rows, score="0.0"):
    """Block from ``(name, sequence)`` pairs or ready-made Entries."""
    entries = [row if isinstance(row, Entry) else make_entry(*row) for row in rows]
    metadata = {"score": score} if score is not None else {}
    return Block(entries, metadata)
