#!/usr/bin/env python3

"""
Reference coverage of every species in a MAF stream.

A reference base counts as covered for a species when at least one entry
of that species has a base (not a gap) in the same column. Coverage can be
restricted to reference regions listed in a BED file.
"""

import logging
from collections import defaultdict
from typing import Dict, Iterable, Optional, TextIO

import numpy as np
from intervaltree import IntervalTree

from .block import Block, Entry, GAP
from .consensus import symbol_matrix
from .duplicates import group_by_species
from .exceptions import FormatError


logger = logging.getLogger(__name__)

REPORT_HEADER = ("# referenceSpecies/Chr\tquerySpecies/Chr\t"
                 "lengthOfReference\tpercentCoverage\tbasesCoverage")


class BedRanges:
    """BED intervals indexed per chromosome."""

    def __init__(self):
        self.trees: Dict[str, IntervalTree] = defaultdict(IntervalTree)

    def add(self, chrom: str, start: int, end: int):
        if end > start:
            self.trees[chrom].addi(start, end)

    def contains(self, chrom: str, position: int) -> bool:
        tree = self.trees.get(chrom)
        return tree is not None and tree.overlaps_point(position)

    def total_length(self) -> int:
        """Bases covered by the ranges, overlaps counted once."""
        total = 0
        for tree in self.trees.values():
            merged = IntervalTree(tree)
            merged.merge_overlaps()
            total += sum(interval.end - interval.begin for interval in merged)
        return total

    def __len__(self):
        return sum(len(tree) for tree in self.trees.values())


def parse_bed(handle: TextIO) -> BedRanges:
    """Parse BED3-BED9 lines into BedRanges."""
    ranges = BedRanges()
    for line_number, line in enumerate(handle, 1):
        if not line.strip() or line.startswith(("#", "track", "browser")):
            continue
        fields = line.split()
        if len(fields) > 9:
            raise FormatError("BED12 input not supported")
        if len(fields) < 3:
            raise FormatError(f"BED line {line_number} has fewer than 3 columns")
        try:
            start, end = int(fields[1]), int(fields[2])
        except ValueError:
            raise FormatError(f"Can't parse coordinates on BED line {line_number}") from None
        if start < 0 or end < start:
            raise FormatError(f"Invalid interval {start}-{end} on BED line {line_number}")
        ranges.add(fields[0], start, end)
    return ranges


class MafCoverage:
    """Accumulates per-species coverage of one reference genome."""

    def __init__(self, ref_genome: str, ranges: Optional[BedRanges] = None):
        self.ref_genome = ref_genome
        self.ranges = ranges
        self.coverage: Dict[str, int] = defaultdict(int)
        self.ref_lengths: Dict[str, int] = {}

    def add_block(self, block: Block):
        groups = group_by_species(block)
        if self.ref_genome not in groups:
            return
        has_base = symbol_matrix(block) != GAP
        species_has_base = {
            species: has_base[rows].any(axis=0) for species, rows in groups.items()
        }
        for ref_index in groups[self.ref_genome]:
            ref_entry = block.entries[ref_index]
            columns = self._counted_columns(ref_entry, has_base[ref_index])
            for species, covered in species_has_base.items():
                n_covered = int(np.count_nonzero(covered[columns]))
                if n_covered:
                    self.coverage[species] += n_covered
            self.ref_lengths.setdefault(ref_entry.sequence_name, ref_entry.source_size)

    def _counted_columns(self, ref_entry: Entry, ref_has_base: np.ndarray) -> np.ndarray:
        """Columns where the reference has a base inside the ranges."""
        columns = np.flatnonzero(ref_has_base)
        if self.ranges is None:
            return columns
        chrom = ref_entry.chromosome
        keep = [
            self.ranges.contains(chrom, self.reference_position(ref_entry, k))
            for k in range(len(columns))
        ]
        return columns[np.array(keep, dtype=bool)]

    @staticmethod
    def reference_position(ref_entry: Entry, offset: int) -> int:
        """Forward-strand position of the reference's ``offset``-th base."""
        if ref_entry.strand == "-":
            return ref_entry.source_size - 1 - (ref_entry.start + offset)
        return ref_entry.start + offset

    def total_length(self) -> int:
        if self.ranges is not None:
            return self.ranges.total_length()
        return sum(self.ref_lengths.values())

    def report(self, handle: TextIO):
        total = self.total_length()
        handle.write(REPORT_HEADER + "\n")
        for species in sorted(self.coverage):
            covered = self.coverage[species]
            fraction = covered / total if total else 0.0
            handle.write(f"{self.ref_genome}\t{species}\t{total}\t{fraction}\t{covered}\n")


def coverage(blocks: Iterable[Block], output: TextIO, ref_genome: str,
             ranges: Optional[BedRanges] = None) -> MafCoverage:
    maf_coverage = MafCoverage(ref_genome, ranges)
    n_blocks = 0
    for block in blocks:
        maf_coverage.add_block(block)
        n_blocks += 1
    maf_coverage.report(output)
    logger.info("Coverage of %s computed over %d blocks", ref_genome, n_blocks)
    return maf_coverage
