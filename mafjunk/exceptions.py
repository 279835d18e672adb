#!/usr/bin/env python3

"""
Exception types raised while reading, resolving and writing MAF blocks.
"""


class MafJunkError(Exception):
    """Base exception for all mafjunk errors."""
    pass


class FormatError(MafJunkError):
    """A block breaks the column layout the merge algorithms rely on."""
    pass


class ParseError(FormatError):
    """The MAF stream could not be tokenized."""

    def __init__(self, message: str, block_number: int = 0):
        super().__init__(message)
        self.block_number = block_number

    def __str__(self):
        if self.block_number:
            return f"Parse error in block {self.block_number}: {super().__str__()}"
        return super().__str__()


class ModeError(MafJunkError, ValueError):
    """Unknown merge mode or coordinate policy."""

    def __init__(self, value: str, choices=()):
        message = f"Unknown mode: {value!r}"
        if choices:
            message += f" (expected one of: {', '.join(choices)})"
        super().__init__(message)
        self.value = value
        self.choices = tuple(choices)
