"""
Batch processing of many structure files.

The pipeline discovers structure files, optionally draws a random subset,
computes descriptors for every file on a bounded worker pool and writes one
semicolon-delimited report.

Two report write modes are supported:

- ``collect``: workers hand their results to the collector, which writes
  the whole report once after every worker has finished.
- ``append``: the header is written up front and each row is appended as
  soon as it is available, through a lock-guarded ReportSink.

A failing file is logged and left out of the report; it never stops the
other workers.
"""

import logging
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import numpy as np
import pandas as pd
from tqdm import tqdm

from .config import Config
from .main import FileResult, process_structure_file, report_columns
from ..exceptions import EmptyInputError, OutputError, ParseError
from ..utils import ReportSink, find_structure_files, write_report

logger = logging.getLogger(__name__)


@dataclass
class BatchSummary:
    """Outcome of a batch run."""

    output_file: str
    n_candidates: int
    n_selected: int
    results: List[FileResult] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)

    @property
    def n_processed(self) -> int:
        return len(self.results)

    @property
    def n_failed(self) -> int:
        return len(self.failures)

    def to_dataframe(self) -> pd.DataFrame:
        """Results as a DataFrame with the report columns."""
        include_sasa = any(result.sasa is not None for result in self.results)
        return pd.DataFrame(
            [result.to_row() for result in self.results],
            columns=report_columns(include_sasa)
        )


def select_subset(
    files: Sequence[str],
    subset: Optional[int] = None,
    random_seed: Optional[int] = None
) -> List[str]:
    """
    Draw ``subset`` files uniformly at random without replacement.

    Parameters
    ----------
    files : sequence of str
        Candidate files
    subset : int, optional
        Number of files to keep, capped at ``len(files)``. None keeps all.
    random_seed : int, optional
        Seed for the draw. None gives a different draw on every call.

    Returns
    -------
    list of str
        Selected files, in their original order
    """
    files = list(files)
    if subset is None:
        return files

    size = min(subset, len(files))
    rng = np.random.default_rng(random_seed)
    picked = rng.choice(len(files), size=size, replace=False)
    return [files[i] for i in sorted(picked)]


def _process_and_append(pdb_file: str, config: Config, sink: ReportSink) -> FileResult:
    result = process_structure_file(pdb_file, config)
    sink.append(result.to_row())
    return result


class BatchPipeline:
    """
    Parallel descriptor calculation over many structure files.

    Parameters
    ----------
    config : Config or dict, optional
        Run configuration. ``input_dir`` is required unless an explicit file
        list is passed to :meth:`run`.

    Examples
    --------
    >>> pipeline = BatchPipeline(Config(input_dir='pdbs/', output_file='results.csv', n_jobs=8))
    >>> summary = pipeline.run()
    >>> print(f"{summary.n_processed} processed, {summary.n_failed} failed")
    """

    def __init__(self, config: Optional[Union[Config, Dict]] = None):
        if config is None:
            self.config = Config()
        elif isinstance(config, dict):
            self.config = Config.from_dict(config)
        elif isinstance(config, Config):
            self.config = config
        else:
            raise TypeError(f"Config must be Config object or dict, got {type(config)}")

    def discover(self) -> List[str]:
        """List candidate structure files in the configured input directory."""
        if self.config.input_dir is None:
            raise ValueError("No input directory configured")

        return find_structure_files(
            self.config.input_dir,
            extensions=self.config.extensions,
            recursive=self.config.recursive
        )

    def _executor(self) -> Executor:
        if self.config.backend == 'thread':
            return ThreadPoolExecutor(max_workers=self.config.n_jobs)
        return ProcessPoolExecutor(max_workers=self.config.n_jobs)

    def run(self, files: Optional[Sequence[Union[str, Path]]] = None) -> BatchSummary:
        """
        Process every selected file and write the report.

        Parameters
        ----------
        files : sequence of str or Path, optional
            Explicit list of files. If None, files are discovered in
            ``config.input_dir``.

        Returns
        -------
        BatchSummary
            Results, failures and counts of the run

        Raises
        ------
        EmptyInputError
            If there is no file to process
        OutputError
            If the report cannot be written
        """
        config = self.config

        if files is None:
            candidates = self.discover()
            source = config.input_dir
        else:
            candidates = [str(f) for f in files]
            source = 'explicit file list'

        if not candidates:
            raise EmptyInputError(f"No structure files found in: {source}")

        selected = select_subset(candidates, config.subset, config.random_seed)

        logger.info(f"Using {config.n_jobs} workers")
        logger.info(f"Reading from: {source}")
        logger.info(f"Saving results to: {config.output_file}")
        if config.subset is not None:
            logger.info(f"Processing a random subset of {len(selected)} "
                        f"out of {len(candidates)} files")

        columns = report_columns(config.calculate_sasa)
        append = config.write_mode == 'append'
        workers_append = append and config.backend == 'thread'

        sink = None
        if append:
            sink = ReportSink(config.output_file, columns)
            sink.write_header()
        else:
            try:
                Path(config.output_file).parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise OutputError(f"Cannot create output directory for "
                                  f"{config.output_file}: {e}") from e

        results: Dict[int, FileResult] = {}
        failures: Dict[str, str] = {}

        with self._executor() as executor:
            if workers_append:
                futures = {
                    executor.submit(_process_and_append, pdb_file, config, sink): i
                    for i, pdb_file in enumerate(selected)
                }
            else:
                futures = {
                    executor.submit(process_structure_file, pdb_file, config): i
                    for i, pdb_file in enumerate(selected)
                }

            iterator = tqdm(
                as_completed(futures),
                total=len(futures),
                desc="Processing",
                disable=not config.progress
            )

            try:
                for future in iterator:
                    i = futures[future]
                    pdb_file = selected[i]
                    try:
                        result = future.result()
                    except OutputError:
                        raise
                    except ParseError as e:
                        logger.error(f"Failed to parse {pdb_file}: {e}")
                        failures[pdb_file] = str(e)
                        continue
                    except Exception as e:
                        logger.error(f"Failed to process {pdb_file}: {e}",
                                     exc_info=config.verbose)
                        failures[pdb_file] = str(e)
                        continue

                    results[i] = result
                    if append and not workers_append:
                        sink.append(result.to_row())
            except OutputError:
                for future in futures:
                    future.cancel()
                raise

        ordered = [results[i] for i in sorted(results)]

        if not append:
            write_report([result.to_row() for result in ordered], config.output_file, columns)

        logger.info(f"Processing complete: {len(ordered)} processed, "
                    f"{len(failures)} failed. Results saved to {config.output_file}")

        return BatchSummary(
            output_file=str(config.output_file),
            n_candidates=len(candidates),
            n_selected=len(selected),
            results=ordered,
            failures=failures
        )


def run_batch(config: Union[Config, Dict], files: Optional[Sequence[Union[str, Path]]] = None) -> BatchSummary:
    """Convenience wrapper around ``BatchPipeline(config).run(files)``."""
    return BatchPipeline(config).run(files)
