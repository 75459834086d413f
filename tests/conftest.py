"""
Pytest configuration for MicroStruct tests.
"""

import pytest
from pathlib import Path


def format_atom_line(
    serial=1,
    name='CA',
    res_name='ALA',
    chain='A',
    res_seq=1,
    x=0.0,
    y=0.0,
    z=0.0,
    occupancy=1.0,
    b_factor=90.0,
    element=None,
    record='ATOM'
):
    """Render one PDB coordinate record at the standard fixed columns."""
    if element is None:
        element = name[:1]
    atom_name = f" {name:<3s}" if len(name) < 4 else name
    return (
        f"{record:<6s}{serial:5d} {atom_name:<4s} {res_name:>3s} {chain:1s}{res_seq:4d}    "
        f"{x:8.3f}{y:8.3f}{z:8.3f}{occupancy:6.2f}{b_factor:6.2f}          {element:>2s}"
    )


def linear_chain(n_residues, spacing=4.0, b_factor=90.0):
    """Alpha-carbons evenly spaced along the x axis, residues numbered from 1."""
    return [
        format_atom_line(serial=i + 1, res_seq=i + 1, x=i * spacing, b_factor=b_factor)
        for i in range(n_residues)
    ]


def write_pdb(path, lines):
    path = Path(path)
    path.write_text('\n'.join(list(lines) + ['TER', 'END']) + '\n')
    return path


@pytest.fixture
def atom_line():
    """Provide the ATOM record formatter."""
    return format_atom_line


@pytest.fixture
def make_pdb(tmp_path):
    """Write PDB files from record lines into the test directory."""
    def _make(name, lines, directory=None):
        directory = Path(directory) if directory is not None else tmp_path
        directory.mkdir(parents=True, exist_ok=True)
        return write_pdb(directory / name, lines)
    return _make


@pytest.fixture
def chain_lines():
    """Provide the linear alpha-carbon chain builder."""
    return linear_chain


@pytest.fixture
def small_protein_lines():
    """A three-residue fragment with backbone atoms and one HETATM water."""
    lines = []
    serial = 1
    for res_seq, (res_name, b_factor) in enumerate(
        [('MET', 45.0), ('LYS', 72.5), ('GLY', 91.0)], start=1
    ):
        x0 = (res_seq - 1) * 3.8
        for name, offset in [('N', -1.2), ('CA', 0.0), ('C', 1.2), ('O', 1.8)]:
            lines.append(format_atom_line(
                serial=serial, name=name, res_name=res_name, res_seq=res_seq,
                x=x0 + offset, y=0.5 * offset, z=0.0, b_factor=b_factor
            ))
            serial += 1
    lines.append(format_atom_line(
        serial=serial, name='O', res_name='HOH', res_seq=101,
        x=20.0, y=20.0, z=20.0, b_factor=30.0, record='HETATM'
    ))
    return lines


@pytest.fixture
def structure_dir(tmp_path, chain_lines):
    """Directory with three valid models and one truncated file."""
    directory = tmp_path / 'pdbs'
    directory.mkdir()
    for i, n_residues in enumerate([25, 30, 12]):
        write_pdb(directory / f'model_{i}.pdb', chain_lines(n_residues))

    broken = chain_lines(22)
    broken[5] = broken[5][:58]
    write_pdb(directory / 'model_broken.pdb', broken)

    (directory / 'notes.txt').write_text('not a structure\n')
    return directory


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )
