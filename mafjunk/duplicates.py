#!/usr/bin/env python3

"""
Detection of alignment blocks holding more than one entry per species.
"""

from typing import Dict, List, NamedTuple, Set, Tuple

from .block import Block


class DuplicateGroup(NamedTuple):
    """Entry positions within one block that share a species."""
    species: str
    indices: Tuple[int, ...]

    @property
    def first(self) -> int:
        return self.indices[0]


def group_by_species(block: Block) -> Dict[str, List[int]]:
    """Map species to the positions of its entries, in first-seen order."""
    groups: Dict[str, List[int]] = {}
    for index, entry in enumerate(block.entries):
        groups.setdefault(entry.species, []).append(index)
    return groups


def find_duplicate_groups(block: Block) -> List[DuplicateGroup]:
    return [
        DuplicateGroup(species, tuple(indices))
        for species, indices in group_by_species(block).items()
        if len(indices) > 1
    ]


def has_duplicates(block: Block) -> bool:
    return len(find_duplicate_groups(block)) > 0


def duplicated_indices(groups: List[DuplicateGroup]) -> Set[int]:
    return {index for group in groups for index in group.indices}
