"""
Core module for structure descriptor calculations.
"""

from .main import FileResult, StructureDescriptorCalculator, process_structure_file, report_columns
from .config import Config, load_config
from .batch import BatchPipeline, BatchSummary, run_batch, select_subset

__all__ = [
    'FileResult',
    'StructureDescriptorCalculator',
    'process_structure_file',
    'report_columns',
    'Config',
    'load_config',
    'BatchPipeline',
    'BatchSummary',
    'run_batch',
    'select_subset'
]
