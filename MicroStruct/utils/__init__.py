"""
Utility functions for file discovery and report writing.
"""

from .file_handlers import (
    ReportSink,
    find_structure_files,
    rows_to_dataframe,
    write_report
)

__all__ = [
    'ReportSink',
    'find_structure_files',
    'rows_to_dataframe',
    'write_report'
]
