#!/usr/bin/env python3

"""
Collapse duplicate species entries of a block into one synthesized entry.

Three merge modes decide the base written at every column of the merged
entry:

- ``mask``: ``N`` wherever any duplicate has a base, a gap where all of
  them have gaps.
- ``unanimity``: the shared base when all duplicates agree (ignoring gaps
  and case), ``N`` otherwise.
- ``consensus``: the shared base when all duplicates agree, otherwise a
  vote among the bases the duplicates hold, counting the duplicates
  themselves plus the non-duplicated entries of the same column. Ties fall
  back to the order ``A < C < G < T < N``.
"""

import logging
from collections import Counter
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, List, Optional, Sequence, Union

import numpy as np

from .block import Block, Entry, GAP, MASK
from .duplicates import DuplicateGroup, duplicated_indices, find_duplicate_groups
from .exceptions import ModeError


logger = logging.getLogger(__name__)

PRECEDENCE = "ACGTN"


class MergeMode(Enum):
    CONSENSUS = "consensus"
    UNANIMITY = "unanimity"
    MASK = "mask"

    @classmethod
    def parse(cls, value) -> "MergeMode":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ModeError(value, [mode.value for mode in cls]) from None


class CoordinatePolicy(Enum):
    """Which duplicate supplies the coordinates of the merged entry."""
    FIRST = "first"
    LONGEST = "longest"

    @classmethod
    def parse(cls, value) -> "CoordinatePolicy":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ModeError(value, [policy.value for policy in cls]) from None

    def choose(self, members: List[Entry]) -> Entry:
        if self is CoordinatePolicy.LONGEST:
            # max() keeps the earliest member on ties
            return max(members, key=lambda entry: entry.size)
        return members[0]


#
#   Column calls
#

@dataclass(frozen=True)
class Gap:
    """Every duplicate has a gap."""


@dataclass(frozen=True)
class Symbol:
    """All duplicates agree on one base."""
    symbol: str


@dataclass(frozen=True)
class NeedsVote:
    """The duplicates disagree; ``tally`` counts their (uppercased) bases."""
    tally: Counter


ColumnCall = Union[Gap, Symbol, NeedsVote]


def classify_column(symbols: Sequence[str]) -> ColumnCall:
    bases = [str(symbol) for symbol in symbols if symbol != GAP]
    if not bases:
        return Gap()
    tally = Counter(base.upper() for base in bases)
    if len(tally) > 1:
        return NeedsVote(tally)
    if len(set(bases)) == 1:
        return Symbol(bases[0])
    # differ only in case
    return Symbol(bases[0].upper())


def vote(group_tally: Counter, rest_tally: Optional[Dict[str, int]] = None) -> str:
    """Pick the winning base among those the duplicates hold.

    Each candidate scores its count among the duplicates plus its count in
    the rest of the column; the highest score wins and equal scores are
    settled by PRECEDENCE.
    """
    rest_tally = rest_tally or {}

    def rank(symbol):
        return (-(group_tally[symbol] + rest_tally.get(symbol, 0)), PRECEDENCE.index(symbol))

    return min(group_tally, key=rank)


def resolve_call(call: ColumnCall, mode: MergeMode,
                 rest_tally: Optional[Dict[str, int]] = None) -> str:
    if isinstance(call, Gap):
        return GAP
    if mode is MergeMode.MASK:
        return MASK
    if isinstance(call, Symbol):
        return call.symbol
    if mode is MergeMode.UNANIMITY:
        return MASK
    return vote(call.tally, rest_tally)


#
#   Matrix helpers
#

def symbol_matrix(block: Block) -> np.ndarray:
    """Entries as rows, alignment columns as columns."""
    rows = [list(entry.aligned_sequence) for entry in block.entries]
    return np.array(rows, dtype="<U1").reshape(len(block.entries), block.width)


def column_tallies(matrix: np.ndarray, rows: Sequence[int]) -> List[Counter]:
    """Uppercased non-gap symbol counts per column over the given rows."""
    selected = np.char.upper(matrix[list(rows)])
    return [
        Counter(str(symbol) for symbol in column if symbol != GAP)
        for column in selected.T
    ]


def mask_row(rows: np.ndarray) -> str:
    all_gaps = (rows == GAP).all(axis=0)
    return "".join(np.where(all_gaps, GAP, MASK))


#
#   Merging
#

def merge_group(block: Block, group: DuplicateGroup, mode,
                rest_tallies: Optional[List[Counter]] = None,
                policy=CoordinatePolicy.FIRST,
                matrix: Optional[np.ndarray] = None) -> Entry:
    """Synthesize the single entry replacing one duplicate group."""
    mode = MergeMode.parse(mode)
    policy = CoordinatePolicy.parse(policy)
    if matrix is None:
        matrix = symbol_matrix(block)

    indices = sorted(group.indices)
    rows = matrix[indices]

    if mode is MergeMode.MASK:
        sequence = mask_row(rows)
    else:
        symbols = []
        for offset, column in enumerate(rows.T):
            rest_tally = rest_tallies[offset] if rest_tallies is not None else None
            symbols.append(resolve_call(classify_column(column), mode, rest_tally))
        sequence = "".join(symbols)

    template = policy.choose([block.entries[index] for index in indices])
    logger.debug("Merged %d %s entries (%s) into %s:%d",
                 len(indices), group.species, mode.value,
                 template.sequence_name, template.start)
    # per-column qualities do not carry over to the merged sequence
    return replace(template, aligned_sequence=sequence, quality=None)


def resolve(block: Block, groups: List[DuplicateGroup], mode,
            policy=CoordinatePolicy.FIRST) -> Block:
    """Replace every duplicate group of ``block`` with one merged entry.

    The merged entry takes the position of the group's first member and
    the other members are dropped. Entries outside any group are kept as
    they are. A block without groups is returned unchanged.
    """
    mode = MergeMode.parse(mode)
    policy = CoordinatePolicy.parse(policy)
    if not groups:
        return block

    n_entries = len(block.entries)
    for group in groups:
        for index in group.indices:
            if not 0 <= index < n_entries:
                raise IndexError(
                    f"Duplicate group {group.species!r} references entry {index} "
                    f"of a block with {n_entries} entries"
                )

    grouped = duplicated_indices(groups)
    matrix = symbol_matrix(block)
    rest_tallies = None
    if mode is MergeMode.CONSENSUS:
        rest = [index for index in range(n_entries) if index not in grouped]
        rest_tallies = column_tallies(matrix, rest)

    merged = {
        min(group.indices): merge_group(block, group, mode, rest_tallies, policy, matrix)
        for group in groups
    }

    entries = []
    # kept_before[k]: entries surviving ahead of original position k
    kept_before = []
    for index, entry in enumerate(block.entries):
        kept_before.append(len(entries))
        if index in merged:
            entries.append(merged[index])
        elif index not in grouped:
            entries.append(entry)
    kept_before.append(len(entries))

    unaligned = [replace(empty, anchor=kept_before[empty.anchor]) for empty in block.unaligned]
    return block.with_entries(entries, unaligned)


def merge_duplicates(block: Block, mode, policy=CoordinatePolicy.FIRST) -> Block:
    """Detect and resolve the duplicate groups of a single block."""
    return resolve(block, find_duplicate_groups(block), mode, policy)
