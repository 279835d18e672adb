#!/usr/bin/env python3

"""
Block-at-a-time drivers wiring the reader, the duplicate handling and the
writer together.

Blocks never share state, so ``merge_dups`` can hand batches of them to a
process pool. Results come back in input order before anything is
written.
"""

import logging
from functools import partial
from itertools import islice
from multiprocessing import Pool
from typing import Iterable, Iterator, List, Optional, Tuple

from .block import Block
from .consensus import CoordinatePolicy, MergeMode, merge_duplicates
from .duplicates import has_duplicates
from .exceptions import MafJunkError
from .mafio import MafReader, MafWriter


logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 1000


def dup_blocks(blocks: Iterable[Block]) -> Iterator[Block]:
    """Yield only the blocks that hold duplicate species, unchanged."""
    n_seen = 0
    n_dup = 0
    for block in blocks:
        n_seen += 1
        if has_duplicates(block):
            n_dup += 1
            yield block
    logger.info("%d/%d blocks contain duplicate species", n_dup, n_seen)


def _batches(blocks: Iterable[Block], size: int) -> Iterator[Tuple[List[Block], Optional[Exception]]]:
    """Yield ``(batch, error)`` pairs.

    A read error ends the stream: its batch holds the blocks read before
    it and ``error`` is set.
    """
    iterator = iter(blocks)
    while True:
        batch = []
        try:
            for block in islice(iterator, size):
                batch.append(block)
        except (MafJunkError, OSError) as e:
            yield batch, e
            return
        if not batch:
            return
        yield batch, None


def merge_dups(blocks: Iterable[Block], mode, policy=CoordinatePolicy.FIRST,
               processes: int = 1, batch_size: int = DEFAULT_BATCH_SIZE) -> Iterator[Block]:
    """Yield every block with its duplicate species merged, in input order.

    Blocks read before a read error are yielded before the error is
    raised, whatever the number of processes.

    Args:
        blocks: Blocks to process
        mode: MergeMode or its name
        policy: CoordinatePolicy or its name, for the merged coordinates
        processes: Worker processes; 1 resolves blocks in this process
        batch_size: Blocks handed to the pool at a time

    Raises:
        ModeError: for an unknown mode or policy, before any block is read
    """
    mode = MergeMode.parse(mode)
    policy = CoordinatePolicy.parse(policy)
    if processes < 1:
        raise ValueError(f"processes must be positive, got {processes}")
    if batch_size < 1:
        raise ValueError(f"batch_size must be positive, got {batch_size}")
    return _merge_dups(blocks, mode, policy, processes, batch_size)


def _merge_dups(blocks, mode, policy, processes, batch_size):
    n_blocks = 0
    n_removed = 0
    resolve_block = partial(merge_duplicates, mode=mode, policy=policy)

    if processes == 1:
        for block in blocks:
            merged = resolve_block(block)
            n_blocks += 1
            n_removed += len(block) - len(merged)
            yield merged
    else:
        with Pool(processes) as pool:
            for batch, error in _batches(blocks, batch_size):
                # Pool.map returns results in submission order
                for block, merged in zip(batch, pool.map(resolve_block, batch)):
                    n_blocks += 1
                    n_removed += len(block) - len(merged)
                    yield merged
                if error is not None:
                    raise error

    logger.info("Merged duplicates in %d blocks (%s mode): %d entries removed",
                n_blocks, mode.value, n_removed)


def run(blocks: Iterable[Block], writer: MafWriter, reader: Optional[MafReader] = None) -> int:
    """Write ``blocks`` after a MAF header and return how many were written.

    With a ``reader``, its header and the comments after its last block
    are written as well; otherwise the header is ``##maf version=1``.

    Errors from reading, resolving or writing are logged together with the
    number of blocks already written, which is also set on the exception
    as ``blocks_written``, and then re-raised.
    """
    try:
        writer.write_header(reader.header if reader is not None else None)
        for block in blocks:
            writer.write_block(block)
        if reader is not None:
            writer.write_comments(reader.trailing_comments)
        writer.flush()
    except (MafJunkError, OSError) as e:
        logger.error("Aborted after %d blocks written: %s", writer.blocks_written, e)
        e.blocks_written = writer.blocks_written
        raise
    logger.info("%d blocks written", writer.blocks_written)
    return writer.blocks_written
