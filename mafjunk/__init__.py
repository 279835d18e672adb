"""
MAFjunk: streaming tools for Multiple Alignment Format files.

Finds alignment blocks holding several entries of one species and merges
each such group into a single entry.
"""

__version__ = "1.0.0"
__license__ = "GPLv2"

from .block import Block, Entry, UnalignedEntry, AlignedContext, SequenceName, parse_sequence_name, GAP, MASK
from .exceptions import MafJunkError, FormatError, ParseError, ModeError
from .duplicates import DuplicateGroup, find_duplicate_groups, has_duplicates
from .consensus import MergeMode, CoordinatePolicy, resolve, merge_duplicates
from .mafio import MafHeader, MafReader, MafWriter
from .pipeline import dup_blocks, merge_dups, run

__all__ = [
    'Block', 'Entry', 'UnalignedEntry', 'AlignedContext', 'SequenceName', 'parse_sequence_name', 'GAP', 'MASK',
    'MafJunkError', 'FormatError', 'ParseError', 'ModeError',
    'DuplicateGroup', 'find_duplicate_groups', 'has_duplicates',
    'MergeMode', 'CoordinatePolicy', 'resolve', 'merge_duplicates',
    'MafHeader', 'MafReader', 'MafWriter',
    'dup_blocks', 'merge_dups', 'run',
]
