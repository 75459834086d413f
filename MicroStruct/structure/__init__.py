"""
Structure parsing and structure-based descriptor calculation.

This package provides the fixed-column PDB parser and the descriptors
computed from its atom records: compactness (radius of gyration, bounding
box volume), topology (contact order), model confidence (pLDDT statistics)
and solvent accessibility.
"""

from .parser import AtomRecord, ParsedStructure, parse_structure, parse_atom_line
from .metrics import (
    get_ca_atoms,
    radius_of_gyration,
    bounding_box_volume,
    contact_order,
    plddt_statistics
)
from .sasa import SASACalculator, SasaMode, calc_sasa, calc_sasa_from_structure, golden_spiral

__all__ = [
    'AtomRecord',
    'ParsedStructure',
    'parse_structure',
    'parse_atom_line',
    'get_ca_atoms',
    'radius_of_gyration',
    'bounding_box_volume',
    'contact_order',
    'plddt_statistics',
    'SASACalculator',
    'SasaMode',
    'calc_sasa',
    'calc_sasa_from_structure',
    'golden_spiral'
]
