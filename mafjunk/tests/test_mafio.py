#!/usr/bin/env python3

"""
Unit tests for MAF reading and writing.
"""

import io
import os
import shutil
import sys
import tempfile
import unittest

from mafjunk.block import AlignedContext, UnalignedEntry
from mafjunk.exceptions import FormatError, ParseError
from mafjunk.mafio import MafReader, MafWriter, format_block, open_input, open_output, read_blocks
from mafjunk.tests import make_block, make_entry


SAMPLE_MAF = """##maf version=1 scoring=tba.v8
# tba.v8 (((human chimp) baboon) (mouse rat))

a score=23262.0
s hg16.chr7    27578828 5 + 158545518 AAA-GG
s panTro1.chr6 28741140 5 + 161576975 AAA-GG
s baboon         116834 5 +   4622798 AAA-GG
s mm4.chr6     53215344 4 - 151104725 -AATGG

a score=5062.0
s hg16.chr7    27699739 6 + 158545518 TAAAGA
s rn3.chr4     81444246 6 + 187371129 taagga
"""


class TestMafReader(unittest.TestCase):
    """Test conversion of parsed alignments to blocks."""

    def test_read_blocks(self):
        reader = MafReader(io.StringIO(SAMPLE_MAF))
        blocks = list(reader)
        self.assertEqual(len(blocks), 2)
        self.assertEqual(reader.blocks_read, 2)

        first = blocks[0]
        self.assertEqual(first.score, "23262.0")
        self.assertEqual(first.width, 6)
        self.assertEqual([entry.species for entry in first.entries], ["hg16", "panTro1", "baboon", "mm4"])

        mouse = first.entries[3]
        self.assertEqual(mouse.sequence_name, "mm4.chr6")
        self.assertEqual(mouse.start, 53215344)
        self.assertEqual(mouse.size, 4)
        self.assertEqual(mouse.strand, "-")
        self.assertEqual(mouse.source_size, 151104725)
        self.assertEqual(mouse.aligned_sequence, "-AATGG")

    def test_case_preserved(self):
        blocks = list(read_blocks(io.StringIO(SAMPLE_MAF)))
        self.assertEqual(blocks[1].entries[1].aligned_sequence, "taagga")

    def test_reader_is_lazy(self):
        reader = MafReader(io.StringIO(SAMPLE_MAF))
        iterator = iter(reader)
        next(iterator)
        self.assertEqual(reader.blocks_read, 1)

    def test_unequal_widths_rejected(self):
        text = "##maf version=1\na score=1\ns a.1 0 4 + 10 ACGT\ns b.1 0 3 + 10 ACG\n"
        with self.assertRaises(FormatError):
            list(MafReader(io.StringIO(text)))

    def test_unrecognized_symbol_rejected(self):
        text = "##maf version=1\na score=1\ns a.1 0 4 + 10 ACGT\ns b.1 0 4 + 10 ACGX\n"
        with self.assertRaises(FormatError):
            list(MafReader(io.StringIO(text)))

    def test_truncated_s_line_rejected(self):
        text = "##maf version=1\na score=1\ns a.1 0 4 + ACGT\n"
        with self.assertRaises(FormatError):
            list(MafReader(io.StringIO(text)))


class TestMafWriter(unittest.TestCase):
    """Test block serialization."""

    def test_format_block(self):
        block = make_block(
            make_entry("human.chr1", "AC-t", start=10, source_size=100),
            make_entry("mouse.chr3", "ACGT", start=5, strand="-", source_size=50),
            score="10.5",
        )
        self.assertEqual(format_block(block),
                         "a score=10.5\n"
                         "s human.chr1 10 3 + 100 AC-t\n"
                         "s mouse.chr3 5 4 - 50 ACGT")

    def test_block_without_metadata(self):
        block = make_block(("baboon", "A"), score=None)
        self.assertTrue(format_block(block).startswith("a\n"))

    def test_write(self):
        handle = io.StringIO()
        writer = MafWriter(handle)
        writer.write_header()
        writer.write_block(make_block(("human.chr1", "ACGT"), score="1"))
        writer.write_block(make_block(("mouse.chr1", "ACGT"), score="2"))
        self.assertEqual(writer.blocks_written, 2)
        self.assertEqual(handle.getvalue(),
                         "##maf version=1\n\n"
                         "a score=1\ns human.chr1 0 4 + 1000 ACGT\n\n"
                         "a score=2\ns mouse.chr1 0 4 + 1000 ACGT\n\n")

    def test_written_blocks_read_back(self):
        handle = io.StringIO()
        writer = MafWriter(handle)
        writer.write_header()
        for block in MafReader(io.StringIO(SAMPLE_MAF)):
            writer.write_block(block)
        again = list(MafReader(io.StringIO(handle.getvalue())))
        self.assertEqual([format_block(block) for block in again],
                         [format_block(block) for block in MafReader(io.StringIO(SAMPLE_MAF))])


ANNOTATED_MAF = """##maf version=1 scoring=roast
# header comment

a score=1
s human.chr1 0 4 + 100 ACGT
q human.chr1 9999
i human.chr1 N 0 C 0
s human.chr2 5 3 - 200 AC-T
e mouse.chr3 10 20 + 300 I

# between blocks
a score=2
s dog.chr1 0 2 + 10 AC
i dog.chr1 C 0 I 12

# trailing
"""


class TestAnnotatedBlocks(unittest.TestCase):
    """Test that i, q and e lines, comments and header fields survive."""

    def test_extra_lines_read(self):
        reader = MafReader(io.StringIO(ANNOTATED_MAF))
        first, second = list(reader)

        self.assertEqual(reader.header.fields, {"version": "1", "scoring": "roast"})
        self.assertEqual(reader.header.comments, [" header comment"])
        self.assertEqual(first.entries[0].quality, "9999")
        self.assertEqual(first.entries[0].context, AlignedContext("N", 0, "C", 0))
        self.assertIsNone(first.entries[1].context)
        self.assertEqual(first.unaligned,
                         [UnalignedEntry("mouse.chr3", 10, 20, "+", 300, "I", anchor=2)])
        self.assertEqual(second.comments, [" between blocks"])
        self.assertEqual(reader.trailing_comments, [" trailing"])

    def test_round_trip(self):
        reader = MafReader(io.StringIO(ANNOTATED_MAF))
        handle = io.StringIO()
        writer = MafWriter(handle)
        writer.write_header(reader.header)
        for block in reader:
            writer.write_block(block)
        writer.write_comments(reader.trailing_comments)
        self.assertEqual(handle.getvalue(), ANNOTATED_MAF)

    def test_e_line_position_kept(self):
        text = ("##maf version=1\n\n"
                "a score=1\n"
                "e mouse.chr3 10 20 - 300 C\n"
                "s human.chr1 0 4 + 100 ACGT\n")
        block = next(iter(MafReader(io.StringIO(text))))
        self.assertEqual(block.unaligned[0].anchor, 0)
        self.assertEqual(format_block(block).splitlines()[1], "e mouse.chr3 10 20 - 300 C")

    def test_header_without_blank_line(self):
        text = "##maf version=1\na score=1\ns human.chr1 0 4 + 100 ACGT\n"
        reader = MafReader(io.StringIO(text))
        self.assertEqual(len(list(reader)), 1)
        self.assertEqual(reader.header.comments, [])


class TestMalformedInput(unittest.TestCase):
    """Input that is not MAF, or MAF with broken lines, is rejected."""

    def read(self, text):
        return list(MafReader(io.StringIO(text)))

    def test_fasta_rejected(self):
        with self.assertRaises(ParseError):
            MafReader(io.StringIO(">seq1\nACGT\n"))

    def test_empty_input_rejected(self):
        with self.assertRaises(ParseError):
            MafReader(io.StringIO(""))

    def test_invalid_header_field(self):
        with self.assertRaises(ParseError):
            MafReader(io.StringIO("##maf version\n"))

    def test_s_line_before_a_line(self):
        with self.assertRaises(ParseError) as context:
            self.read("##maf version=1\n\ns human.chr1 0 4 + 100 ACGT\n")
        self.assertEqual(context.exception.block_number, 1)

    def test_unknown_strand(self):
        with self.assertRaises(ParseError):
            self.read("##maf version=1\n\na score=1\ns human.chr1 0 4 ? 100 ACGT\n")

    def test_malformed_i_lines(self):
        block = "##maf version=1\n\na score=1\ns human.chr1 0 4 + 100 ACGT\n"
        for i_line in ["i human.chr1 N 0 C\n",
                       "i human.chr1 X 0 C 0\n",
                       "i human.chr1 N zero C 0\n",
                       "i mouse.chr3 N 0 C 0\n"]:
            with self.subTest(i_line=i_line):
                with self.assertRaises(ParseError):
                    self.read(block + i_line)

    def test_i_line_before_any_s_line(self):
        with self.assertRaises(ParseError):
            self.read("##maf version=1\n\na score=1\ni human.chr1 N 0 C 0\n")

    def test_q_line_length_mismatch(self):
        with self.assertRaises(ParseError):
            self.read("##maf version=1\n\na score=1\ns human.chr1 0 4 + 100 ACGT\nq human.chr1 99\n")

    def test_malformed_e_line(self):
        with self.assertRaises(ParseError):
            self.read("##maf version=1\n\na score=1\ne mouse.chr3 10 20 + 300 N\n")

    def test_unknown_line_type(self):
        with self.assertRaises(ParseError):
            self.read("##maf version=1\n\na score=1\nx human.chr1\n")

    def test_blocks_before_error_are_yielded(self):
        reader = MafReader(io.StringIO(
            "##maf version=1\n\na score=1\ns human.chr1 0 4 + 100 ACGT\n\n"
            "a score=2\ns human.chr1 0 4 ? 100 ACGT\n"))
        iterator = iter(reader)
        self.assertEqual(next(iterator).score, "1")
        with self.assertRaises(ParseError) as context:
            next(iterator)
        self.assertEqual(context.exception.block_number, 2)



class TestOpenFiles(unittest.TestCase):
    """Test path handling for inputs and outputs."""

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmpdir)

    def test_file_paths(self):
        path = os.path.join(self.tmpdir, "sample.maf")
        with open_output(path) as handle:
            handle.write(SAMPLE_MAF)
        with open_input(path) as handle:
            self.assertEqual(len(list(MafReader(handle))), 2)

    def test_dash_means_standard_streams(self):
        with open_input("-") as handle:
            self.assertIs(handle, sys.stdin)
        with open_output(None) as handle:
            self.assertIs(handle, sys.stdout)


if __name__ == '__main__':
    unittest.main()
