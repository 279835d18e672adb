#!/usr/bin/env python3

"""
Command line entry point: ``mafjunk <program> [options] [args]``.
"""

import logging
import sys
from optparse import OptionParser
from typing import List, Optional

from . import __version__
from .consensus import CoordinatePolicy, MergeMode
from .coverage import coverage, parse_bed
from .exceptions import MafJunkError
from .mafio import MafReader, MafWriter, open_input, open_output
from .pipeline import DEFAULT_BATCH_SIZE, dup_blocks, merge_dups, run
from .split import DEFAULT_MAX_LENGTH, split_maf


logger = logging.getLogger(__name__)

usage_statement = "Usage: mafjunk [program] [options] [args], where `program` is one of: `dup_blocks`, `merge_dups`, `split`, `coverage`"

usages = {
    "dup_blocks": "mafjunk dup_blocks [options] [input.maf] [output.maf]",
    "merge_dups": "mafjunk merge_dups [options] <consensus|unanimity|mask> [input.maf] [output.maf]",
    "split": "mafjunk split [options] <output_dir> [input.maf]",
    "coverage": "mafjunk coverage [options] <ref_genome> [input.maf] [output.tsv]",
}


def setup_logging(level: int = logging.INFO) -> None:
    """Log to stderr so stdout stays free for MAF output."""
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        stream=sys.stderr,
    )


def create_parser(program: str) -> OptionParser:
    parser = OptionParser(usage=usages[program], version=__version__)
    parser.add_option("-v", "--verbose", action="store_const", const=logging.DEBUG, dest="log_level", default=logging.INFO, help="Log every merged group.")
    parser.add_option("-q", "--quiet", action="store_const", const=logging.WARNING, dest="log_level", help="Only log warnings and errors.")

    if program == "merge_dups":
        parser.add_option("-c", "--coordinates", action="store", default="first", type="choice", choices=[p.value for p in CoordinatePolicy], dest="policy", help="Which duplicate gives the merged entry its coordinates: `first` or `longest` (Default: first).")
        parser.add_option("-p", "--processes", action="store", default=1, type="int", dest="processes", help="Worker processes resolving blocks (Default: 1).")
        parser.add_option("-b", "--batch-size", action="store", default=DEFAULT_BATCH_SIZE, type="int", dest="batch_size", help="Blocks handed to the workers at a time (Default: %d)." % DEFAULT_BATCH_SIZE)

    elif program == "split":
        parser.add_option("-l", "--max-length", action="store", default=DEFAULT_MAX_LENGTH, type="int", dest="max_length", help="Maximum aligned reference length per output file (Default: %d)." % DEFAULT_MAX_LENGTH)

    elif program == "coverage":
        parser.add_option("-b", "--bed", action="store", default=None, type="string", dest="bed", help="Only count reference bases inside these BED ranges.")

    return parser


def _positional(args: List[str], index: int) -> Optional[str]:
    return args[index] if len(args) > index else None


def _run_dup_blocks(args):
    with open_input(_positional(args, 0)) as input_handle, \
            open_output(_positional(args, 1)) as output_handle:
        reader = MafReader(input_handle)
        run(dup_blocks(reader), MafWriter(output_handle), reader)


def _run_merge_dups(args, options):
    # validated before the input is opened
    mode = MergeMode.parse(args[0])
    policy = CoordinatePolicy.parse(options.policy)
    with open_input(_positional(args, 1)) as input_handle, \
            open_output(_positional(args, 2)) as output_handle:
        reader = MafReader(input_handle)
        blocks = merge_dups(reader, mode, policy,
                            processes=options.processes, batch_size=options.batch_size)
        run(blocks, MafWriter(output_handle), reader)


def _run_split(args, options):
    with open_input(_positional(args, 1)) as input_handle:
        split_maf(MafReader(input_handle), args[0], options.max_length)


def _run_coverage(args, options):
    ranges = None
    if options.bed:
        with open(options.bed, 'r') as bed_handle:
            ranges = parse_bed(bed_handle)
    with open_input(_positional(args, 1)) as input_handle, \
            open_output(_positional(args, 2)) as output_handle:
        coverage(MafReader(input_handle), output_handle, args[0], ranges)


def main(argv: Optional[List[str]] = None) -> int:
    args = sys.argv[1:] if argv is None else list(argv)

    if len(args) < 1 or args[0] not in usages:
        print(usage_statement, file=sys.stderr)
        return 2

    program = args[0]
    parser = create_parser(program)
    options, args = parser.parse_args(args[1:])
    setup_logging(options.log_level)

    n_required = 0 if program == "dup_blocks" else 1
    n_allowed = 2 if program in ("dup_blocks", "split") else 3
    if not n_required <= len(args) <= n_allowed:
        parser.print_usage(sys.stderr)
        return 2

    try:
        if program == "dup_blocks":
            _run_dup_blocks(args)
        elif program == "merge_dups":
            _run_merge_dups(args, options)
        elif program == "split":
            _run_split(args, options)
        elif program == "coverage":
            _run_coverage(args, options)
    except (MafJunkError, OSError, ValueError) as e:
        # run() has already logged errors that stopped the output
        if not hasattr(e, "blocks_written"):
            logger.error("%s failed: %s", program, e)
        logger.debug("Full traceback:", exc_info=True)
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
