"""
Command-line interface for structure descriptor calculations.

This module provides CLI access to the batch pipeline and to single-file
descriptor calculation.
"""

import click
import json
import logging
from typing import Dict

from .core import BatchPipeline, Config, StructureDescriptorCalculator
from .exceptions import MicroStructError
from .__version__ import __version__


# Setup logging
def setup_logging(verbose: bool = False, quiet: bool = False):
    """Configure logging based on verbosity settings."""
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

logger = logging.getLogger(__name__)


# Main CLI group
@click.group()
@click.version_option(version=__version__, prog_name='microstruct')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output')
@click.option('--quiet', '-q', is_flag=True, help='Suppress non-error output')
@click.pass_context
def cli(ctx, verbose, quiet):
    """
    MicroStruct - structural descriptors for protein model collections.

    Computes radius of gyration, bounding box volume, contact order and
    pLDDT statistics (plus an optional SASA estimate) for every PDB file of
    a directory.

    Examples:

        # Process a directory on 16 workers
        microstruct run -i pdbs/ -o results.csv -c 16

        # Process 1000 randomly chosen files
        microstruct run -i pdbs/ -o sample.csv -s 1000 --seed 7

        # Descriptors of a single file
        microstruct calculate model.pdb
    """
    setup_logging(verbose, quiet)
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose
    ctx.obj['quiet'] = quiet


def _build_config(config_file, overrides: Dict) -> Config:
    """Load a configuration file and apply command-line overrides."""
    config_dict = {}
    if config_file:
        with open(config_file, 'r') as f:
            config_dict = json.load(f)

    for key, value in overrides.items():
        if value is not None:
            config_dict[key] = value

    return Config.from_dict(config_dict)


# Batch processing command
@cli.command()
@click.option('--input', '-i', 'input_dir', type=click.Path(file_okay=False),
              help='Directory containing PDB files')
@click.option('--output', '-o', 'output_file', help='Path to the output report')
@click.option('--cpus', '-c', 'n_jobs', type=click.IntRange(min=1),
              help='Number of parallel workers')
@click.option('--subset', '-s', type=click.IntRange(min=1),
              help='Number of random PDB files to process')
@click.option('--seed', 'random_seed', type=int,
              help='Random seed for --subset (default: different every run)')
@click.option('--config', '-f', 'config_file', type=click.Path(exists=True),
              help='Configuration JSON file')
@click.option('--ca-only/--all-atoms', 'ca_only', default=None,
              help='Keep only alpha-carbon records while parsing')
@click.option('--recursive/--no-recursive', '-r', 'recursive', default=None,
              help='Search subdirectories for PDB files')
@click.option('--write-mode', type=click.Choice(['collect', 'append']),
              help='Write the report once at the end or append rows as they complete')
@click.option('--backend', type=click.Choice(['process', 'thread']),
              help='Worker pool type')
@click.option('--sasa/--no-sasa', 'calculate_sasa', default=None,
              help='Add a total SASA column')
@click.option('--sasa-points', 'sasa_n_points', type=click.IntRange(min=1),
              help='Sample points per atom for SASA (default: 100)')
@click.option('--sasa-mode', type=click.Choice(['full', 'ca']),
              help='Measure SASA on all atoms or alpha-carbons only')
@click.option('--progress/--no-progress', default=None,
              help='Show progress bar')
@click.pass_context
def run(ctx, input_dir, output_file, n_jobs, subset, random_seed, config_file,
        ca_only, recursive, write_mode, backend, calculate_sasa, sasa_n_points,
        sasa_mode, progress):
    """
    Compute descriptors for every PDB file of a directory.

    Failing files are reported and left out; the report contains one row
    per successfully processed file.
    """
    try:
        config = _build_config(config_file, {
            'input_dir': input_dir,
            'output_file': output_file,
            'n_jobs': n_jobs,
            'subset': subset,
            'random_seed': random_seed,
            'ca_only': ca_only,
            'recursive': recursive,
            'write_mode': write_mode,
            'backend': backend,
            'calculate_sasa': calculate_sasa,
            'sasa_n_points': sasa_n_points,
            'sasa_mode': sasa_mode,
            'progress': progress,
            'verbose': True if ctx.obj['verbose'] else None
        })

        if config.input_dir is None:
            raise click.UsageError("An input directory is required (--input)")

        summary = BatchPipeline(config).run()

        if not ctx.obj['quiet']:
            click.echo(f"\nBatch processing complete:")
            click.echo(f"  Processed: {summary.n_processed}")
            if summary.n_failed > 0:
                click.echo(f"  Failed: {summary.n_failed}")
                for pdb_file, error in summary.failures.items():
                    click.echo(f"    - {pdb_file}: {error}")
            click.secho(f"\n✓ Results saved to {summary.output_file}", fg='green')

    except (MicroStructError, OSError, ValueError, TypeError) as e:
        logger.error(f"Batch processing failed: {e}")
        if ctx.obj['verbose']:
            raise
        raise click.ClickException(str(e))


# Single file command
@cli.command()
@click.argument('pdb_files', nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option('--output', '-o', help='Save the table to this file instead of printing it')
@click.option('--ca-only', is_flag=True, help='Keep only alpha-carbon records while parsing')
@click.option('--sasa', 'calculate_sasa', is_flag=True, help='Add a total SASA column')
@click.option('--sasa-points', 'sasa_n_points', type=click.IntRange(min=1), default=100,
              help='Sample points per atom for SASA')
@click.option('--sasa-mode', type=click.Choice(['full', 'ca']), default='full',
              help='Measure SASA on all atoms or alpha-carbons only')
@click.pass_context
def calculate(ctx, pdb_files, output, ca_only, calculate_sasa, sasa_n_points, sasa_mode):
    """
    Compute descriptors for one or more PDB files sequentially.
    """
    from .utils import write_report

    try:
        calc = StructureDescriptorCalculator({
            'ca_only': ca_only,
            'calculate_sasa': calculate_sasa,
            'sasa_n_points': sasa_n_points,
            'sasa_mode': sasa_mode
        })
        results = [calc.calculate(pdb_file) for pdb_file in pdb_files]

        if output:
            write_report([r.to_row() for r in results], output, calc.columns)
            if not ctx.obj['quiet']:
                click.secho(f"✓ Results saved to {output}", fg='green')
        else:
            for result in results:
                click.echo(f"\n{result.identifier}")
                click.echo("-" * len(result.identifier))
                for column, value in result.to_row().items():
                    if column == 'ID':
                        continue
                    if isinstance(value, float):
                        click.echo(f"  {column:<16} {value:.4f}")
                    else:
                        click.echo(f"  {column:<16} {value}")

    except (MicroStructError, OSError, ValueError) as e:
        logger.error(f"Calculation failed: {e}")
        if ctx.obj['verbose']:
            raise
        raise click.ClickException(str(e))


# List descriptors command
@cli.command(name='list')
def list_descriptors():
    """
    List the report columns with descriptions.
    """
    for column, description in _get_descriptor_definitions().items():
        click.echo(f"  {column:<16} {description}")


# Config management commands
@cli.group()
def config():
    """Manage configuration files."""
    pass


@config.command()
@click.option('--output', '-o', default='config.json',
              help='Output file path')
def create(output):
    """Create a default configuration file."""
    config = Config()
    config.save(output)
    click.secho(f"✓ Default configuration saved to {output}", fg='green')

    click.echo("\nKey settings:")
    click.echo(f"  Workers: {config.n_jobs}")
    click.echo(f"  Output file: {config.output_file}")
    click.echo(f"  Write mode: {config.write_mode}")
    click.echo(f"  SASA: {'on' if config.calculate_sasa else 'off'}")


@config.command()
@click.argument('config_file', type=click.Path(exists=True))
def show(config_file):
    """Display a validated configuration file."""
    try:
        config = Config.load(config_file)
    except (ValueError, TypeError) as e:
        raise click.ClickException(f"Invalid configuration: {e}")

    click.echo(json.dumps(config.to_dict(), indent=2))


def _get_descriptor_definitions() -> Dict[str, str]:
    """Get definitions of the report columns."""
    return {
        'ID': 'File name without extension',
        'Gyration_Radius': 'Radius of gyration of the alpha-carbons (A)',
        'Box_Volume': 'Axis-aligned bounding box volume of the alpha-carbons (A^3)',
        'Contact_Order': 'Relative contact order (8 A cutoff, 0 below 20 residues)',
        'mean_pLDDT': 'Mean per-residue confidence',
        'pLDDT_50': 'Fraction of residues with pLDDT > 50 (0-1)',
        'pLDDT_70': 'Fraction of residues with pLDDT > 70 (0-1)',
        'pLDDT_90': 'Fraction of residues with pLDDT > 90 (0-1)',
        'seq_len': 'Number of alpha-carbons',
        'SASA': 'Total solvent accessible surface area (A^2), with --sasa only'
    }


# Entry point
if __name__ == '__main__':
    cli()
