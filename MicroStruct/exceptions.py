"""
Exception types raised by MicroStruct.

Per-file failures (``ParseError``, ``OSError``) are caught by the batch
pipeline and only exclude the offending file. Run-level failures
(``EmptyInputError``, ``OutputError``) abort the whole run.
"""

from enum import Enum
from typing import Optional


class MicroStructError(Exception):
    """Base class for all MicroStruct errors."""


class ParseErrorKind(Enum):
    """Closed set of reasons a structure file can fail to parse."""

    MISSING_ATOM_NAME = 'missing atom name'
    MISSING_RESIDUE_NAME = 'missing residue name'
    MISSING_RESIDUE_SEQUENCE = 'missing residue sequence'
    INVALID_RESIDUE_SEQUENCE = 'failed to parse residue sequence'
    MISSING_X = 'missing x coordinate'
    INVALID_X = 'failed to parse x coordinate'
    MISSING_Y = 'missing y coordinate'
    INVALID_Y = 'failed to parse y coordinate'
    MISSING_Z = 'missing z coordinate'
    INVALID_Z = 'failed to parse z coordinate'
    MISSING_B_FACTOR = 'missing B-factor'
    INVALID_B_FACTOR = 'failed to parse B-factor'
    UNREADABLE_TEXT = 'file is not valid text'


class ParseError(MicroStructError):
    """
    A structure file could not be parsed.

    Parameters
    ----------
    kind : ParseErrorKind
        Which field (or decoding step) failed
    path : str, optional
        File being parsed
    line_number : int, optional
        1-based line number of the offending record
    """

    def __init__(
        self,
        kind: ParseErrorKind,
        path: Optional[str] = None,
        line_number: Optional[int] = None
    ):
        # args must mirror the signature so the error survives pickling
        super().__init__(kind, path, line_number)
        self.kind = kind
        self.path = path
        self.line_number = line_number

    def __str__(self) -> str:
        location = self.path or '<unknown>'
        if self.line_number is not None:
            location = f"{location}:{self.line_number}"
        return f"{self.kind.value} ({location})"


class EmptyInputError(MicroStructError):
    """No candidate structure files were found for a run."""


class OutputError(MicroStructError):
    """The report destination could not be created or written."""
