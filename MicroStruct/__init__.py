"""
MicroStruct - structural descriptors for large batches of protein models.

Computes radius of gyration, bounding box volume, contact order, pLDDT
statistics and an optional SASA estimate for every PDB file of a directory,
and aggregates them into a single semicolon-delimited report.
"""

from .__version__ import __version__
from .exceptions import (
    MicroStructError,
    ParseError,
    ParseErrorKind,
    EmptyInputError,
    OutputError
)
from .core import (
    BatchPipeline,
    BatchSummary,
    Config,
    FileResult,
    StructureDescriptorCalculator,
    load_config,
    run_batch
)
from .structure import parse_structure, SASACalculator

__all__ = [
    '__version__',
    'MicroStructError',
    'ParseError',
    'ParseErrorKind',
    'EmptyInputError',
    'OutputError',
    'BatchPipeline',
    'BatchSummary',
    'Config',
    'FileResult',
    'StructureDescriptorCalculator',
    'load_config',
    'run_batch',
    'parse_structure',
    'SASACalculator'
]
