"""
Solvent Accessible Surface Area (SASA) estimation.

Shrake-Rupley style estimate: each target atom's van der Waals sphere is
inflated by the solvent probe radius and sampled with a golden-spiral point
set. A sample point is accessible when it lies outside the inflated sphere
of every occluding atom. The atom's SASA is the accessible fraction of the
inflated sphere's area.

The number of sample points is the accuracy/cost tunable: the cost is
O(n_targets * n_occluders * n_points) in the worst case.
"""

import logging
import math
from enum import Enum
from pathlib import Path
from typing import Dict, Sequence, Union

import numpy as np
from scipy.spatial import cKDTree

from .parser import AtomRecord, ParsedStructure, parse_structure, coordinates_of

logger = logging.getLogger(__name__)

PROBE_RADIUS = 1.4
DEFAULT_N_POINTS = 100

# Keyed on the first letter of the atom name
VDW_RADII = {
    'H': 1.2,
    'C': 1.7,
    'N': 1.55,
    'O': 1.52,
    'S': 1.8,
}
DEFAULT_VDW_RADIUS = 1.5

# Sample points sit just outside the inflated sphere so an atom never
# occludes itself
_SURFACE_OFFSET = 1e-5


class SasaMode(Enum):
    """Which atoms SASA is reported for. Occluders are always all atoms."""

    FULL = 'full'
    CA_ONLY = 'ca'


def golden_spiral(n_points: int) -> np.ndarray:
    """
    Quasi-uniform unit vectors on the sphere.

    Parameters
    ----------
    n_points : int
        Number of points

    Returns
    -------
    np.ndarray
        (n_points, 3) array of unit vectors. Deterministic for a given count.
    """
    index = np.arange(n_points, dtype=float) + 0.5
    phi = np.arccos(1.0 - 2.0 * index / n_points)
    theta = math.pi * (1.0 + math.sqrt(5.0)) * index

    return np.column_stack([
        np.cos(theta) * np.sin(phi),
        np.sin(theta) * np.sin(phi),
        np.cos(phi)
    ])


def vdw_radius(atom_name: str) -> float:
    """Van der Waals radius guessed from the first letter of an atom name."""
    name = atom_name.strip()
    return VDW_RADII.get(name[:1], DEFAULT_VDW_RADIUS)


def calc_sasa(
    target_xyz: np.ndarray,
    target_radii: np.ndarray,
    occluder_xyz: np.ndarray,
    occluder_radii: np.ndarray,
    n_points: int = DEFAULT_N_POINTS,
    probe_radius: float = PROBE_RADIUS
) -> np.ndarray:
    """
    Per-atom SASA for a set of targets against a set of occluders.

    Parameters
    ----------
    target_xyz : np.ndarray
        (n, 3) coordinates of the atoms to measure
    target_radii : np.ndarray
        (n,) van der Waals radii of the targets
    occluder_xyz : np.ndarray
        (m, 3) coordinates of the atoms that can bury a sample point
    occluder_radii : np.ndarray
        (m,) van der Waals radii of the occluders
    n_points : int
        Sample points per atom
    probe_radius : float
        Solvent probe radius in Angstrom

    Returns
    -------
    np.ndarray
        (n,) accessible surface area per target in square Angstrom
    """
    if n_points < 1:
        raise ValueError(f"n_points must be >= 1, got {n_points}")

    target_xyz = np.asarray(target_xyz, dtype=float).reshape(-1, 3)
    target_radii = np.asarray(target_radii, dtype=float)
    occluder_xyz = np.asarray(occluder_xyz, dtype=float).reshape(-1, 3)
    occluder_inflated = np.asarray(occluder_radii, dtype=float) + probe_radius

    sphere = golden_spiral(n_points)
    sasa = np.zeros(len(target_xyz), dtype=float)

    tree = cKDTree(occluder_xyz) if len(occluder_xyz) else None
    max_occluder_radius = float(occluder_inflated.max()) if len(occluder_inflated) else 0.0

    for i, center in enumerate(target_xyz):
        inflated_radius = target_radii[i] + probe_radius
        sample_radius = inflated_radius + _SURFACE_OFFSET
        samples = center + sample_radius * sphere

        accessible = np.ones(n_points, dtype=bool)
        if tree is not None:
            # Only occluders that can reach some sample point of this atom
            candidates = tree.query_ball_point(center, sample_radius + max_occluder_radius)
            if candidates:
                candidates = np.asarray(candidates)
                diff = samples[:, None, :] - occluder_xyz[candidates][None, :, :]
                dist = np.sqrt(np.sum(diff ** 2, axis=2))
                buried = dist <= occluder_inflated[candidates][None, :]
                accessible = ~buried.any(axis=1)

        fraction = np.count_nonzero(accessible) / n_points
        sasa[i] = fraction * 4.0 * math.pi * inflated_radius ** 2

    return sasa


def _radii(atoms: Sequence[AtomRecord]) -> np.ndarray:
    return np.array([vdw_radius(atom.atom_name) for atom in atoms], dtype=float)


def calc_sasa_from_structure(
    structure: ParsedStructure,
    n_points: int = DEFAULT_N_POINTS,
    mode: SasaMode = SasaMode.FULL,
    probe_radius: float = PROBE_RADIUS
) -> np.ndarray:
    """
    SASA for all atoms or only the alpha-carbons of a structure.

    Every atom of the structure acts as an occluder in both modes.
    """
    occluders = structure.atoms
    targets = occluders if mode is SasaMode.FULL else structure.ca_atoms()

    return calc_sasa(
        coordinates_of(targets),
        _radii(targets),
        coordinates_of(occluders),
        _radii(occluders),
        n_points=n_points,
        probe_radius=probe_radius
    )


class SASACalculator:
    """
    Calculator for Solvent Accessible Surface Area (SASA).

    Parameters
    ----------
    probe_radius : float
        Radius of the solvent probe in Angstroms (default: 1.4)
    n_points : int
        Sample points per atom (default: 100). More points give a smoother
        estimate at a proportional cost.
    mode : str or SasaMode
        ``'full'`` to measure every atom, ``'ca'`` for alpha-carbons only

    Examples
    --------
    >>> calc = SASACalculator(n_points=200)
    >>> results = calc.calculate("model.pdb")
    >>> print(f"Total SASA: {results['total_sasa']:.2f} A^2")
    """

    def __init__(
        self,
        probe_radius: float = PROBE_RADIUS,
        n_points: int = DEFAULT_N_POINTS,
        mode: Union[str, SasaMode] = SasaMode.FULL
    ):
        self.probe_radius = probe_radius
        self.n_points = n_points
        self.mode = SasaMode(mode)

    def calculate(self, structure: Union[ParsedStructure, str, Path]) -> Dict:
        """
        Calculate SASA for a structure.

        Parameters
        ----------
        structure : ParsedStructure, str or Path
            Parsed structure or path to a PDB file

        Returns
        -------
        dict
            Dictionary containing:
            - total_sasa: Sum over the target atoms in square Angstrom
            - atom_sasa: Per-target values (np.ndarray)
            - n_targets: Number of target atoms
        """
        if not isinstance(structure, ParsedStructure):
            pdb_file = Path(structure)
            if not pdb_file.exists():
                raise FileNotFoundError(f"PDB file not found: {pdb_file}")
            structure = parse_structure(pdb_file)

        atom_sasa = calc_sasa_from_structure(
            structure,
            n_points=self.n_points,
            mode=self.mode,
            probe_radius=self.probe_radius
        )
        logger.debug(f"SASA for {structure.identifier}: {len(atom_sasa)} targets")

        return {
            'total_sasa': float(atom_sasa.sum()),
            'atom_sasa': atom_sasa,
            'n_targets': len(atom_sasa)
        }
