"""
Main module for structure descriptor calculations.

This module provides the per-file unit of work: parse one structure file,
compute every descriptor from its alpha-carbons and package the values as a
FileResult.
"""

import logging
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pandas as pd

from .config import Config
from ..structure import (
    ParsedStructure,
    SASACalculator,
    parse_structure,
    get_ca_atoms,
    radius_of_gyration,
    bounding_box_volume,
    contact_order,
    plddt_statistics
)

logger = logging.getLogger(__name__)

REPORT_COLUMNS = [
    'ID',
    'Gyration_Radius',
    'Box_Volume',
    'Contact_Order',
    'mean_pLDDT',
    'pLDDT_50',
    'pLDDT_70',
    'pLDDT_90',
    'seq_len'
]
SASA_COLUMN = 'SASA'

_FIELD_COLUMNS = {
    'identifier': 'ID',
    'radius_of_gyration': 'Gyration_Radius',
    'bounding_box_volume': 'Box_Volume',
    'contact_order': 'Contact_Order',
    'mean_plddt': 'mean_pLDDT',
    'plddt_50': 'pLDDT_50',
    'plddt_70': 'pLDDT_70',
    'plddt_90': 'pLDDT_90',
    'seq_len': 'seq_len',
    'sasa': SASA_COLUMN
}


def report_columns(include_sasa: bool = False) -> List[str]:
    """Report header, optionally with the SASA column."""
    if include_sasa:
        return REPORT_COLUMNS + [SASA_COLUMN]
    return list(REPORT_COLUMNS)


@dataclass(frozen=True)
class FileResult:
    """
    Descriptors of one structure file.

    The pLDDT fractions are in [0, 1]. ``sasa`` is only set when the SASA
    metric was requested.
    """

    identifier: str
    radius_of_gyration: float
    bounding_box_volume: float
    contact_order: float
    mean_plddt: float
    plddt_50: float
    plddt_70: float
    plddt_90: float
    seq_len: int
    sasa: Optional[float] = None

    def to_row(self) -> Dict[str, Any]:
        """Map the result onto report column names."""
        row = {_FIELD_COLUMNS[key]: value for key, value in asdict(self).items()}
        if self.sasa is None:
            del row[SASA_COLUMN]
        return row


class StructureDescriptorCalculator:
    """
    Calculator for per-structure descriptors.

    Parameters
    ----------
    config : Config or dict, optional
        Configuration object or dictionary. If None, uses default configuration.

    Examples
    --------
    >>> calc = StructureDescriptorCalculator()
    >>> result = calc.calculate("AF-P12345-F1-model_v4.pdb")
    >>> print(f"Rg: {result.radius_of_gyration:.2f} A")

    With the SASA metric:

    >>> calc = StructureDescriptorCalculator({'calculate_sasa': True, 'sasa_n_points': 50})
    >>> df = calc.calculate_structure_descriptors("model.pdb")
    """

    def __init__(self, config: Optional[Union[Config, Dict]] = None):
        """Initialize the descriptor calculator."""
        if config is None:
            self.config = Config()
        elif isinstance(config, dict):
            self.config = Config.from_dict(config)
        elif isinstance(config, Config):
            self.config = config
        else:
            raise TypeError(f"Config must be Config object or dict, got {type(config)}")

        self.sasa_calculator = None
        if self.config.calculate_sasa:
            self.sasa_calculator = SASACalculator(
                probe_radius=self.config.sasa_probe_radius,
                n_points=self.config.sasa_n_points,
                mode=self.config.sasa_mode
            )

    @property
    def columns(self) -> List[str]:
        return report_columns(self.config.calculate_sasa)

    def parse(self, pdb_file: Union[str, Path]) -> ParsedStructure:
        """
        Parse a structure file for this calculator.

        ``ca_only`` is ignored while SASA is enabled: every atom of the
        structure occludes, so non-CA records have to be kept. The other
        descriptors select alpha-carbons themselves either way.
        """
        ca_only = self.config.ca_only and not self.config.calculate_sasa
        return parse_structure(pdb_file, ca_only=ca_only)

    def describe(self, structure: ParsedStructure) -> FileResult:
        """
        Compute all descriptors of an already parsed structure.

        Parameters
        ----------
        structure : ParsedStructure
            Parsed structure

        Returns
        -------
        FileResult
            Descriptor values
        """
        ca_atoms = get_ca_atoms(structure)

        mean_plddt, plddt_50, plddt_70, plddt_90 = plddt_statistics(ca_atoms)

        sasa = None
        if self.sasa_calculator is not None:
            sasa = self.sasa_calculator.calculate(structure)['total_sasa']

        return FileResult(
            identifier=structure.identifier,
            radius_of_gyration=radius_of_gyration(ca_atoms),
            bounding_box_volume=bounding_box_volume(ca_atoms),
            contact_order=contact_order(ca_atoms),
            mean_plddt=mean_plddt,
            plddt_50=plddt_50,
            plddt_70=plddt_70,
            plddt_90=plddt_90,
            seq_len=len(ca_atoms),
            sasa=sasa
        )

    def calculate(self, pdb_file: Union[str, Path]) -> FileResult:
        """
        Parse a structure file and compute its descriptors.

        Raises
        ------
        ParseError
            If the file is malformed
        OSError
            If the file cannot be read
        """
        structure = self.parse(pdb_file)
        result = self.describe(structure)
        logger.debug(f"Computed descriptors for {result.identifier} "
                     f"({result.seq_len} residues)")
        return result

    def calculate_structure_descriptors(
        self,
        pdb_files: Union[str, Path, List[Union[str, Path]]]
    ) -> pd.DataFrame:
        """
        Compute descriptors for one or several files as a DataFrame.

        Files are processed sequentially; use BatchPipeline for parallel runs.

        Returns
        -------
        pd.DataFrame
            One row per file with the report columns
        """
        if isinstance(pdb_files, (str, Path)):
            pdb_files = [pdb_files]

        rows = [self.calculate(pdb_file).to_row() for pdb_file in pdb_files]
        return pd.DataFrame(rows, columns=self.columns)


def process_structure_file(pdb_file: str, config: Config) -> FileResult:
    """
    Worker entry point: compute the FileResult of one file.

    Module-level so that it can be shipped to worker processes.
    """
    return StructureDescriptorCalculator(config).calculate(pdb_file)
