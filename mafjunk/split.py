#!/usr/bin/env python3

"""
Split a MAF stream into per-reference-chromosome files of bounded length.
"""

import logging
import os
from typing import Iterable, List, Optional, TextIO

from .block import Block
from .mafio import MafWriter


logger = logging.getLogger(__name__)

DEFAULT_MAX_LENGTH = 100000


class MafSplitter:
    """
    Writes blocks into files named ``<chrom>.<start>.maf``.

    The reference is the first entry of each block. A new file is started
    on the first block, whenever the reference chromosome changes, and
    whenever the reference bases already in the current file plus the
    block's would exceed ``max_length``.
    """

    def __init__(self, output_dir: str, max_length: int = DEFAULT_MAX_LENGTH):
        if max_length <= 0:
            raise ValueError("max_length must be positive")
        self.output_dir = output_dir
        self.max_length = max_length
        self.files: List[str] = []
        self._chrom: Optional[str] = None
        self._length = 0
        self._handle: Optional[TextIO] = None
        self._writer: Optional[MafWriter] = None

    def add_block(self, block: Block):
        if not block.entries:
            if self._writer is None:
                logger.warning("Skipping empty block before any reference block")
                return
            self._writer.write_block(block)
            return

        reference = block.entries[0]
        chrom = reference.chromosome
        if (self._writer is None or chrom != self._chrom
                or self._length + reference.size > self.max_length):
            self._new_file(chrom, reference.start)
        self._length += reference.size
        self._writer.write_block(block)

    def _new_file(self, chrom: str, start: int):
        self.close()
        path = os.path.join(self.output_dir, f"{chrom}.{start}.maf")
        logger.debug("Starting %s", path)
        self._handle = open(path, 'w')
        self._writer = MafWriter(self._handle)
        self._writer.write_header()
        self._chrom = chrom
        self._length = 0
        self.files.append(path)

    def close(self):
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()


def split_maf(blocks: Iterable[Block], output_dir: str,
              max_length: int = DEFAULT_MAX_LENGTH) -> List[str]:
    """Split ``blocks`` into files under ``output_dir``; return their paths."""
    os.makedirs(output_dir, exist_ok=True)
    n_blocks = 0
    with MafSplitter(output_dir, max_length) as splitter:
        for block in blocks:
            splitter.add_block(block)
            n_blocks += 1
    logger.info("Split %d blocks into %d files in %s", n_blocks, len(splitter.files), output_dir)
    return splitter.files
