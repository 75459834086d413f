"""
Configuration management for structure descriptor runs.
"""

import json
import os
from pathlib import Path
from typing import Dict, Any, Optional, Tuple
from dataclasses import dataclass, field, asdict
import logging

logger = logging.getLogger(__name__)

VALID_WRITE_MODES = ['collect', 'append']
VALID_BACKENDS = ['process', 'thread']
VALID_SASA_MODES = ['full', 'ca']


def _default_n_jobs() -> int:
    return os.cpu_count() or 1


@dataclass
class Config:
    """
    Configuration class for structure descriptor runs.

    A Config is built once at startup and handed to the pipeline; the
    pipeline never modifies it.

    Attributes
    ----------
    input_dir : str
        Directory scanned for structure files
    output_file : str
        Path of the semicolon-delimited report
    n_jobs : int
        Number of parallel workers
    subset : int, optional
        Process only this many randomly drawn files
    random_seed : int, optional
        Seed for the random subset. None draws a different subset each run.

    Parsing parameters
    ------------------
    ca_only : bool
        Keep only alpha-carbon records while parsing. Ignored when
        ``calculate_sasa`` is set, since SASA needs every atom as occluder.
    extensions : tuple of str
        File extensions considered structure files
    recursive : bool
        Also search subdirectories of ``input_dir``

    Pipeline parameters
    -------------------
    write_mode : str
        ``'collect'`` writes the report once after every worker finished,
        ``'append'`` appends each row as soon as it is computed
    backend : str
        ``'process'`` or ``'thread'`` worker pool

    SASA parameters
    ---------------
    calculate_sasa : bool
        Add a total SASA column to the report
    sasa_n_points : int
        Sample points per atom (accuracy/cost trade-off)
    sasa_probe_radius : float
        Solvent probe radius (Angstroms)
    sasa_mode : str
        ``'full'`` for all atoms, ``'ca'`` for alpha-carbons only

    Output parameters
    -----------------
    progress : bool
        Show a progress bar
    verbose : bool
        Log tracebacks of per-file failures
    """

    # General parameters
    input_dir: Optional[str] = None
    output_file: str = 'results.csv'
    n_jobs: int = field(default_factory=_default_n_jobs)
    subset: Optional[int] = None
    random_seed: Optional[int] = None

    # Parsing parameters
    ca_only: bool = False
    extensions: Tuple[str, ...] = ('.pdb',)
    recursive: bool = False

    # Pipeline parameters
    write_mode: str = 'collect'
    backend: str = 'process'

    # SASA parameters
    calculate_sasa: bool = False
    sasa_n_points: int = 100
    sasa_probe_radius: float = 1.4
    sasa_mode: str = 'full'

    # Output parameters
    progress: bool = True
    verbose: bool = False

    def __post_init__(self):
        """Validate configuration after initialization."""
        # JSON round trips turn tuples into lists
        self.extensions = tuple(self.extensions)
        self._validate_config()

    def _validate_config(self):
        """Validate configuration parameters."""
        if self.n_jobs < 1:
            raise ValueError(f"n_jobs must be >= 1, got {self.n_jobs}")

        if self.subset is not None and self.subset < 1:
            raise ValueError(f"subset must be a positive integer, got {self.subset}")

        if not self.extensions:
            raise ValueError("At least one structure file extension is required")

        if self.write_mode not in VALID_WRITE_MODES:
            raise ValueError(f"Invalid write mode: {self.write_mode}. "
                             f"Must be one of {VALID_WRITE_MODES}")

        if self.backend not in VALID_BACKENDS:
            raise ValueError(f"Invalid backend: {self.backend}. "
                             f"Must be one of {VALID_BACKENDS}")

        if self.sasa_mode not in VALID_SASA_MODES:
            raise ValueError(f"Invalid SASA mode: {self.sasa_mode}. "
                             f"Must be one of {VALID_SASA_MODES}")

        if self.sasa_n_points < 1:
            raise ValueError(f"sasa_n_points must be >= 1, got {self.sasa_n_points}")

        if self.sasa_probe_radius <= 0:
            raise ValueError(f"SASA probe radius must be positive, got {self.sasa_probe_radius}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        config_dict = asdict(self)
        config_dict['extensions'] = list(self.extensions)
        return config_dict

    def save(self, filepath: str):
        """
        Save configuration to JSON file.

        Parameters
        ----------
        filepath : str
            Path to save configuration file
        """
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)
        logger.info(f"Configuration saved to {filepath}")

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'Config':
        """
        Create Config instance from dictionary.

        Parameters
        ----------
        config_dict : Dict[str, Any]
            Configuration dictionary

        Returns
        -------
        Config
            Configuration instance
        """
        return cls(**config_dict)

    @classmethod
    def load(cls, filepath: str) -> 'Config':
        """
        Load configuration from JSON file.

        Parameters
        ----------
        filepath : str
            Path to configuration file

        Returns
        -------
        Config
            Configuration instance
        """
        with open(filepath, 'r') as f:
            config_dict = json.load(f)
        return cls.from_dict(config_dict)

    def update(self, **kwargs) -> 'Config':
        """
        Return a copy with some parameters replaced.

        Parameters
        ----------
        **kwargs
            Configuration parameters to update

        Returns
        -------
        Config
            New, validated configuration
        """
        config_dict = self.to_dict()
        for key, value in kwargs.items():
            if key in config_dict:
                config_dict[key] = value
            else:
                logger.warning(f"Unknown configuration parameter: {key}")
        return Config.from_dict(config_dict)

    def __repr__(self) -> str:
        """String representation of configuration."""
        return (f"Config(input_dir={self.input_dir}, output_file={self.output_file}, "
                f"n_jobs={self.n_jobs}, subset={self.subset})")


def load_config(filepath: Optional[str] = None) -> Config:
    """
    Load configuration from file or environment.

    This function attempts to load configuration from:
    1. Specified filepath
    2. Environment variable MICROSTRUCT_CONFIG
    3. Default configuration

    Parameters
    ----------
    filepath : str, optional
        Path to configuration file

    Returns
    -------
    Config
        Configuration instance
    """
    if filepath and Path(filepath).exists():
        return Config.load(filepath)

    env_config = os.environ.get('MICROSTRUCT_CONFIG')
    if env_config and Path(env_config).exists():
        logger.info(f"Loading config from environment: {env_config}")
        return Config.load(env_config)

    logger.info("Using default configuration")
    return Config()
