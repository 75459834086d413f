"""
File discovery and report writing utilities.
"""

import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Sequence, Union

import pandas as pd
import logging

from ..exceptions import OutputError

logger = logging.getLogger(__name__)

REPORT_DELIMITER = ';'
FLOAT_FORMAT = '%.4f'
NA_REP = 'nan'


def find_structure_files(
    directory: Union[str, Path],
    extensions: Sequence[str] = ('.pdb',),
    recursive: bool = False
) -> List[str]:
    """
    Find structure files in a directory.

    Parameters
    ----------
    directory : str or Path
        Directory to search in
    extensions : sequence of str
        Accepted file extensions, including the dot (case-sensitive)
    recursive : bool
        Also search subdirectories

    Returns
    -------
    list of str
        Sorted paths to the matching files
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise FileNotFoundError(f"Input directory not found: {directory}")

    extensions = set(extensions)
    pattern = '**/*' if recursive else '*'
    files = [
        str(path) for path in directory.glob(pattern)
        if path.is_file() and path.suffix in extensions
    ]
    return sorted(files)


def rows_to_dataframe(rows: Iterable[Dict[str, Any]], columns: Sequence[str]) -> pd.DataFrame:
    """Collect result rows into a DataFrame with a fixed column order."""
    return pd.DataFrame(list(rows), columns=list(columns))


def _write_frame(df: pd.DataFrame, destination, header: bool = True):
    """Serialize a report frame with the report delimiter and number format."""
    df.to_csv(
        destination,
        sep=REPORT_DELIMITER,
        header=header,
        index=False,
        float_format=FLOAT_FORMAT,
        na_rep=NA_REP,
        lineterminator='\n'
    )


def write_report(
    rows: Iterable[Dict[str, Any]],
    output_file: Union[str, Path],
    columns: Sequence[str]
) -> Path:
    """
    Write a complete report (header and all rows) in one go.

    Parameters
    ----------
    rows : iterable of dict
        One mapping per processed file
    output_file : str or Path
        Destination path; parent directories are created
    columns : sequence of str
        Column order, also used as the header

    Returns
    -------
    Path
        Path to written file

    Raises
    ------
    OutputError
        If the destination cannot be written
    """
    output_file = Path(output_file)
    df = rows_to_dataframe(rows, columns)

    try:
        output_file.parent.mkdir(parents=True, exist_ok=True)
        _write_frame(df, output_file)
    except OSError as e:
        raise OutputError(f"Cannot write report to {output_file}: {e}") from e

    logger.debug(f"Wrote {len(df)} rows to {output_file}")
    return output_file


class ReportSink:
    """
    Report destination that accepts rows one at a time.

    Every append opens the file in append mode, writes one complete line and
    closes it again. Appends are serialized with a lock, so rows from
    concurrent writers never interleave. Lines are rendered by pandas with
    the same options as :func:`write_report`.

    Parameters
    ----------
    output_file : str or Path
        Destination path
    columns : sequence of str
        Column order, also used as the header
    """

    def __init__(self, output_file: Union[str, Path], columns: Sequence[str]):
        self.output_file = Path(output_file)
        self.columns = list(columns)
        self.rows_written = 0
        self._lock = threading.Lock()

    def write_header(self):
        """Create (or truncate) the destination and write the header line."""
        with self._lock:
            try:
                self.output_file.parent.mkdir(parents=True, exist_ok=True)
                with open(self.output_file, 'w', newline='') as f:
                    _write_frame(rows_to_dataframe([], self.columns), f)
            except OSError as e:
                raise OutputError(f"Cannot create report {self.output_file}: {e}") from e
            self.rows_written = 0

    def append(self, row: Dict[str, Any]):
        """Append a single row."""
        df = rows_to_dataframe([row], self.columns)
        with self._lock:
            try:
                with open(self.output_file, 'a', newline='') as f:
                    _write_frame(df, f, header=False)
            except OSError as e:
                raise OutputError(f"Cannot append to report {self.output_file}: {e}") from e
            self.rows_written += 1
