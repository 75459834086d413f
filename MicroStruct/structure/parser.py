"""
Strict fixed-column parser for PDB structure files.

Only ``ATOM`` records are read. Every field is taken from its fixed column
range (0-based, end-exclusive) rather than by whitespace splitting:

====================  =========  ==========================
Field                 Columns    Type
====================  =========  ==========================
Atom name             12-16      str
Residue name          17-20      str
Residue seq. number   22-26      int
X, Y, Z               30-54      float (Angstrom)
Temperature factor    60-66      float (pLDDT on models)
====================  =========  ==========================

A single malformed ``ATOM`` line invalidates the whole file.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np

from ..exceptions import ParseError, ParseErrorKind

logger = logging.getLogger(__name__)

ATOM_PREFIX = 'ATOM '
CA_ATOM_NAME = 'CA'

# ASCII digits only; int() and float() would also take '1_0' and non-ASCII digits
INTEGER_PATTERN = re.compile(r'[+-]?[0-9]+')
FLOAT_PATTERN = re.compile(
    r'[+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|inf|infinity|nan)',
    re.IGNORECASE
)

SLICE_ATOM_NAME = slice(12, 16)
SLICE_RESIDUE_NAME = slice(17, 20)
SLICE_RESIDUE_SEQ = slice(22, 26)
SLICE_X = slice(30, 38)
SLICE_Y = slice(38, 46)
SLICE_Z = slice(46, 54)
SLICE_B_FACTOR = slice(60, 66)


@dataclass(frozen=True)
class AtomRecord:
    """A single ``ATOM`` record."""

    atom_name: str
    residue_seq: int
    residue_name: str
    x: float
    y: float
    z: float
    b_factor: float

    @property
    def coord(self) -> Tuple[float, float, float]:
        return (self.x, self.y, self.z)


class ParsedStructure:
    """
    Ordered, read-only collection of atom records from one file.

    Parameters
    ----------
    atoms : sequence of AtomRecord
        Records in file line order
    path : str, optional
        Source file
    ca_only : bool
        Whether the records were already restricted to alpha-carbons
    """

    def __init__(
        self,
        atoms: Sequence[AtomRecord],
        path: Optional[str] = None,
        ca_only: bool = False
    ):
        self._atoms = tuple(atoms)
        self.path = path
        self.ca_only = ca_only

    @property
    def atoms(self) -> Tuple[AtomRecord, ...]:
        return self._atoms

    @property
    def identifier(self) -> str:
        """File name without its extension."""
        if self.path is None:
            return 'unknown'
        return Path(self.path).stem

    def ca_atoms(self) -> Tuple[AtomRecord, ...]:
        """Return the alpha-carbon records, one per residue."""
        if self.ca_only:
            return self._atoms
        return tuple(atom for atom in self._atoms if atom.atom_name == CA_ATOM_NAME)

    def coordinates(self) -> np.ndarray:
        """Return an (n, 3) array of coordinates."""
        return coordinates_of(self._atoms)

    def b_factors(self) -> np.ndarray:
        return np.array([atom.b_factor for atom in self._atoms], dtype=float)

    def __len__(self) -> int:
        return len(self._atoms)

    def __iter__(self) -> Iterator[AtomRecord]:
        return iter(self._atoms)

    def __getitem__(self, index):
        return self._atoms[index]

    def __eq__(self, other) -> bool:
        if not isinstance(other, ParsedStructure):
            return NotImplemented
        return self._atoms == other._atoms

    def __repr__(self) -> str:
        return f"ParsedStructure(id={self.identifier}, n_atoms={len(self._atoms)})"


def coordinates_of(atoms: Sequence[AtomRecord]) -> np.ndarray:
    """Stack atom coordinates into an (n, 3) float array."""
    if not atoms:
        return np.zeros((0, 3), dtype=float)
    return np.array([atom.coord for atom in atoms], dtype=float)


def _extract(
    line: str,
    columns: slice,
    missing: ParseErrorKind,
    path: str,
    line_number: int
) -> str:
    if len(line) < columns.stop:
        raise ParseError(missing, path, line_number)
    return line[columns].strip()


def _convert(
    text: str,
    convert: Callable,
    pattern: re.Pattern,
    invalid: ParseErrorKind,
    path: str,
    line_number: int
):
    if pattern.fullmatch(text) is None:
        raise ParseError(invalid, path, line_number)
    return convert(text)


def parse_atom_line(line: str, path: str = '<string>', line_number: int = 0) -> AtomRecord:
    """
    Parse one ``ATOM`` line into an AtomRecord.

    Fields are extracted in column order; the first failing field decides
    the error kind.

    Raises
    ------
    ParseError
        If a column range is missing or a numeric field does not parse
    """
    line = line.rstrip('\r\n')

    atom_name = _extract(line, SLICE_ATOM_NAME, ParseErrorKind.MISSING_ATOM_NAME,
                         path, line_number)
    residue_name = _extract(line, SLICE_RESIDUE_NAME, ParseErrorKind.MISSING_RESIDUE_NAME,
                            path, line_number)
    residue_seq = _convert(
        _extract(line, SLICE_RESIDUE_SEQ, ParseErrorKind.MISSING_RESIDUE_SEQUENCE,
                 path, line_number),
        int, INTEGER_PATTERN, ParseErrorKind.INVALID_RESIDUE_SEQUENCE, path, line_number
    )
    x = _convert(
        _extract(line, SLICE_X, ParseErrorKind.MISSING_X, path, line_number),
        float, FLOAT_PATTERN, ParseErrorKind.INVALID_X, path, line_number
    )
    y = _convert(
        _extract(line, SLICE_Y, ParseErrorKind.MISSING_Y, path, line_number),
        float, FLOAT_PATTERN, ParseErrorKind.INVALID_Y, path, line_number
    )
    z = _convert(
        _extract(line, SLICE_Z, ParseErrorKind.MISSING_Z, path, line_number),
        float, FLOAT_PATTERN, ParseErrorKind.INVALID_Z, path, line_number
    )
    b_factor = _convert(
        _extract(line, SLICE_B_FACTOR, ParseErrorKind.MISSING_B_FACTOR, path, line_number),
        float, FLOAT_PATTERN, ParseErrorKind.INVALID_B_FACTOR, path, line_number
    )

    return AtomRecord(
        atom_name=atom_name,
        residue_seq=residue_seq,
        residue_name=residue_name,
        x=x,
        y=y,
        z=z,
        b_factor=b_factor
    )


def parse_structure(pdb_file: Union[str, Path], ca_only: bool = False) -> ParsedStructure:
    """
    Parse a PDB file into a ParsedStructure.

    Parameters
    ----------
    pdb_file : str or Path
        Path to PDB file
    ca_only : bool
        Keep only alpha-carbon records. Every ATOM line is still validated.

    Returns
    -------
    ParsedStructure
        Atom records in file order

    Raises
    ------
    ParseError
        If any ATOM line is malformed or the file is not valid text
    OSError
        If the file cannot be opened or read
    """
    path = str(pdb_file)
    atoms: List[AtomRecord] = []

    # Decoded per line: UNREADABLE_TEXT reports the offending line
    with open(path, 'rb') as f:
        for line_number, raw in enumerate(f, start=1):
            try:
                line = raw.decode('utf-8')
            except UnicodeDecodeError:
                raise ParseError(ParseErrorKind.UNREADABLE_TEXT, path, line_number) from None
            if not line.startswith(ATOM_PREFIX):
                continue
            atom = parse_atom_line(line, path, line_number)
            if ca_only and atom.atom_name != CA_ATOM_NAME:
                continue
            atoms.append(atom)

    logger.debug(f"Parsed {len(atoms)} atoms from {path}")
    return ParsedStructure(atoms, path=path, ca_only=ca_only)
