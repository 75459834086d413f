"""
Geometric and confidence descriptors computed from alpha-carbon records.

Every function is pure and returns ``0.0`` (or an all-zero tuple) for an
empty input so that aggregation never has to special-case empty structures.
"""

from typing import Sequence, Tuple, Union

import numpy as np
from scipy.spatial.distance import pdist

from .parser import AtomRecord, ParsedStructure, coordinates_of, CA_ATOM_NAME


# Contact order is only defined for chains of at least this many residues
CONTACT_ORDER_MIN_LENGTH = 20
# Angstrom
CONTACT_DISTANCE_CUTOFF = 8.0

PLDDT_THRESHOLDS = (50.0, 70.0, 90.0)


def get_ca_atoms(
    structure: Union[ParsedStructure, Sequence[AtomRecord]]
) -> Tuple[AtomRecord, ...]:
    """Return the alpha-carbon records of a structure or atom sequence."""
    if isinstance(structure, ParsedStructure):
        return structure.ca_atoms()
    return tuple(atom for atom in structure if atom.atom_name == CA_ATOM_NAME)


def radius_of_gyration(atoms: Sequence[AtomRecord]) -> float:
    """
    Root-mean-square distance of the atoms from their centroid.

    Parameters
    ----------
    atoms : sequence of AtomRecord
        Usually the alpha-carbons of one structure

    Returns
    -------
    float
        Radius of gyration in Angstrom, 0.0 for an empty input
    """
    if len(atoms) == 0:
        return 0.0

    coords = coordinates_of(atoms)
    centroid = coords.mean(axis=0)
    sq_dist = np.sum((coords - centroid) ** 2, axis=1)
    return float(np.sqrt(sq_dist.mean()))


def bounding_box_volume(atoms: Sequence[AtomRecord]) -> float:
    """
    Volume of the axis-aligned bounding box (dx * dy * dz).

    Collinear or coplanar inputs give a zero volume.
    """
    if len(atoms) == 0:
        return 0.0

    coords = coordinates_of(atoms)
    extents = coords.max(axis=0) - coords.min(axis=0)
    return float(np.prod(extents))


def contact_order(atoms: Sequence[AtomRecord]) -> float:
    """
    Relative contact order of a chain.

    Two residues are in contact when their alpha-carbons are within 8 A.
    The result is the mean sequence separation of all contacting pairs,
    divided by the chain length and expressed as a percentage::

        CO = sum(|seq_i - seq_j|) / (L * N_contacts) * 100

    Parameters
    ----------
    atoms : sequence of AtomRecord
        Alpha-carbons, one per residue

    Returns
    -------
    float
        Contact order; 0.0 for chains shorter than 20 residues or without
        any contact

    Notes
    -----
    All pairs are compared, so cost grows as O(L^2).
    """
    n_residues = len(atoms)
    if n_residues < CONTACT_ORDER_MIN_LENGTH:
        return 0.0

    coords = coordinates_of(atoms)
    seq = np.array([atom.residue_seq for atom in atoms], dtype=float)

    # Condensed i<j ordering, shared by both calls
    distances = pdist(coords)
    separations = pdist(seq.reshape(-1, 1), metric='cityblock')

    in_contact = distances <= CONTACT_DISTANCE_CUTOFF
    n_contacts = int(np.count_nonzero(in_contact))
    if n_contacts == 0:
        return 0.0

    total_separation = float(separations[in_contact].sum())
    return total_separation / (n_residues * n_contacts) * 100.0


def plddt_statistics(atoms: Sequence[AtomRecord]) -> Tuple[float, float, float, float]:
    """
    Summary statistics of the per-residue confidence (pLDDT) scores.

    Parameters
    ----------
    atoms : sequence of AtomRecord
        Alpha-carbons; the B-factor column holds the pLDDT score

    Returns
    -------
    tuple of float
        ``(mean, frac_above_50, frac_above_70, frac_above_90)``. Fractions
        are in [0, 1] and use strict inequalities.
    """
    if len(atoms) == 0:
        return (0.0, 0.0, 0.0, 0.0)

    scores = np.array([atom.b_factor for atom in atoms], dtype=float)
    fractions = tuple(
        float(np.count_nonzero(scores > threshold)) / len(scores)
        for threshold in PLDDT_THRESHOLDS
    )
    return (float(scores.mean()),) + fractions
