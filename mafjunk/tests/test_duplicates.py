#!/usr/bin/env python3

"""
Unit tests for duplicate species detection.
"""

import unittest

from mafjunk.duplicates import (
    DuplicateGroup, duplicated_indices, find_duplicate_groups, group_by_species, has_duplicates
)
from mafjunk.tests import make_block


class TestFindDuplicateGroups(unittest.TestCase):
    """Test grouping of entries by species."""

    def test_block_contains_dups(self):
        block = make_block(
            ("Gallus_gallus.chr1", "CAACAG"),
            ("Alca_torda.scaffold4709", "CAACAG"),
            ("Alca_torda.scaffold4709", "CAACAG"),
        )
        self.assertTrue(has_duplicates(block))
        self.assertEqual(find_duplicate_groups(block),
                         [DuplicateGroup("Alca_torda", (1, 2))])

    def test_no_dups(self):
        block = make_block(
            ("Erythrocercus_mccallii.scaffold_2093", "T"),
            ("Eubucco_bourcierii.scaffold13745", "C"),
            ("Eudromia_elegans.scaffold_5", "A"),
            ("Fregata_magnificens.C5769372__2.0", "T"),
        )
        self.assertFalse(has_duplicates(block))
        self.assertEqual(find_duplicate_groups(block), [])

    def test_groups_in_first_appearance_order(self):
        block = make_block(
            ("mouse.chr3", "A"),
            ("rat.chr1", "A"),
            ("human.chr1", "A"),
            ("human.chr2", "A"),
            ("rat.chr7", "A"),
            ("rat.chr8", "A"),
        )
        groups = find_duplicate_groups(block)
        self.assertEqual([group.species for group in groups], ["rat", "human"])
        self.assertEqual(groups[0].indices, (1, 4, 5))
        self.assertEqual(groups[1].indices, (2, 3))
        self.assertEqual(groups[0].first, 1)

    def test_grouping_ignores_chromosome(self):
        block = make_block(("human.chr1", "A"), ("human.chrX", "A"), ("baboon", "A"), ("baboon", "A"))
        self.assertEqual(len(find_duplicate_groups(block)), 2)

    def test_groups_are_disjoint(self):
        block = make_block(("a.1", "A"), ("b.1", "A"), ("a.2", "A"), ("b.2", "A"), ("c.1", "A"))
        groups = find_duplicate_groups(block)
        indices = [index for group in groups for index in group.indices]
        self.assertEqual(len(indices), len(set(indices)))
        self.assertEqual(duplicated_indices(groups), {0, 1, 2, 3})

    def test_group_by_species_does_not_mutate(self):
        block = make_block(("a.1", "A"), ("a.2", "C"))
        before = list(block.entries)
        self.assertEqual(group_by_species(block), {"a": [0, 1]})
        self.assertEqual(block.entries, before)


if __name__ == '__main__':
    unittest.main()
