"""
Tests for the per-file calculator and the batch pipeline.

Run with: pytest tests/test_batch.py -v
"""

import logging

import pandas as pd
import pytest


def _config(input_dir, output_file, **kwargs):
    from MicroStruct import Config

    options = {
        'input_dir': str(input_dir),
        'output_file': str(output_file),
        'n_jobs': 2,
        'backend': 'thread',
        'progress': False,
    }
    options.update(kwargs)
    return Config(**options)


def _read_report(path):
    return pd.read_csv(path, sep=';')


class TestDescriptorCalculator:
    """Test single-file descriptor calculation."""

    def test_calculate(self, make_pdb, chain_lines):
        """Test the descriptors of a straight 25-residue chain."""
        from MicroStruct import StructureDescriptorCalculator

        path = make_pdb('line25.pdb', chain_lines(25, b_factor=80.0))
        result = StructureDescriptorCalculator().calculate(path)

        assert result.identifier == 'line25'
        assert result.seq_len == 25
        assert result.contact_order == pytest.approx(5.957446808)
        assert result.bounding_box_volume == 0.0
        assert result.mean_plddt == pytest.approx(80.0)
        assert (result.plddt_50, result.plddt_70, result.plddt_90) == (1.0, 1.0, 0.0)
        assert result.sasa is None

    def test_row_columns(self, make_pdb, chain_lines):
        """Test rows follow the report column names."""
        from MicroStruct import StructureDescriptorCalculator
        from MicroStruct.core import report_columns

        result = StructureDescriptorCalculator().calculate(make_pdb('a.pdb', chain_lines(3)))
        assert list(result.to_row()) == report_columns()

    def test_sasa_column(self, make_pdb, small_protein_lines):
        """Test SASA is added only when requested."""
        from MicroStruct import StructureDescriptorCalculator

        calc = StructureDescriptorCalculator({'calculate_sasa': True, 'sasa_n_points': 20})
        result = calc.calculate(make_pdb('frag.pdb', small_protein_lines))

        assert calc.columns[-1] == 'SASA'
        assert result.sasa > 0
        assert result.to_row()['SASA'] == result.sasa

    def test_ca_only_keeps_sasa_occluders(self, make_pdb, small_protein_lines):
        """Test SASA sees every atom even when ca_only parsing is requested."""
        from MicroStruct import StructureDescriptorCalculator

        path = make_pdb('frag.pdb', small_protein_lines)
        options = {'calculate_sasa': True, 'sasa_mode': 'ca', 'sasa_n_points': 100}
        all_atoms = StructureDescriptorCalculator(options).calculate(path)
        ca_only = StructureDescriptorCalculator(dict(options, ca_only=True)).calculate(path)

        assert ca_only.sasa == pytest.approx(all_atoms.sasa)
        assert ca_only == all_atoms

    def test_ca_only_without_sasa(self, make_pdb, small_protein_lines):
        """Test ca_only parsing does not change the CA descriptors."""
        from MicroStruct import StructureDescriptorCalculator

        path = make_pdb('frag.pdb', small_protein_lines)
        full = StructureDescriptorCalculator().calculate(path)
        ca_only = StructureDescriptorCalculator({'ca_only': True}).calculate(path)

        assert ca_only == full
        assert ca_only.seq_len == 3

    def test_descriptor_dataframe(self, make_pdb, chain_lines):
        """Test sequential calculation into a DataFrame."""
        from MicroStruct import StructureDescriptorCalculator

        paths = [make_pdb(f'm{i}.pdb', chain_lines(n)) for i, n in enumerate([5, 21])]
        df = StructureDescriptorCalculator().calculate_structure_descriptors(paths)

        assert list(df['ID']) == ['m0', 'm1']
        assert list(df['seq_len']) == [5, 21]

    def test_invalid_config_type(self):
        """Test config type checking."""
        from MicroStruct import StructureDescriptorCalculator

        with pytest.raises(TypeError):
            StructureDescriptorCalculator(config='fast')


class TestSubsetSelection:
    """Test random subset selection."""

    def test_no_subset_keeps_everything(self):
        from MicroStruct.core import select_subset

        files = ['a', 'b', 'c']
        assert select_subset(files) == files

    def test_subset_size_and_order(self):
        """Test the subset is drawn without replacement and keeps order."""
        from MicroStruct.core import select_subset

        files = [f'f{i:02d}' for i in range(20)]
        picked = select_subset(files, subset=7, random_seed=1)

        assert len(picked) == 7
        assert len(set(picked)) == 7
        assert picked == sorted(picked)

    def test_seed_reproducible(self):
        """Test the same seed gives the same subset."""
        from MicroStruct.core import select_subset

        files = [f'f{i}' for i in range(50)]
        assert select_subset(files, 10, 123) == select_subset(files, 10, 123)

    def test_subset_larger_than_input(self):
        """Test the subset size is capped."""
        from MicroStruct.core import select_subset

        assert select_subset(['a', 'b'], subset=5, random_seed=0) == ['a', 'b']


class TestBatchPipeline:
    """Test end-to-end batch runs."""

    def test_failing_file_is_skipped(self, structure_dir, tmp_path, caplog):
        """Test one truncated file does not affect the others."""
        from MicroStruct import BatchPipeline

        output = tmp_path / 'results.csv'
        caplog.set_level(logging.INFO)
        summary = BatchPipeline(_config(structure_dir, output)).run()

        assert summary.n_candidates == 4
        assert summary.n_processed == 3
        assert summary.n_failed == 1
        assert any('model_broken' in path for path in summary.failures)
        assert 'missing B-factor' in caplog.text
        assert any(record.levelno == logging.ERROR for record in caplog.records)

        df = _read_report(output)
        assert list(df['ID']) == ['model_0', 'model_1', 'model_2']
        assert list(df['seq_len']) == [25, 30, 12]
        assert df.loc[0, 'Contact_Order'] == pytest.approx(5.9574, abs=1e-4)
        assert df.loc[2, 'Contact_Order'] == 0.0

    def test_report_format(self, structure_dir, tmp_path):
        """Test header, delimiter and float formatting."""
        from MicroStruct import BatchPipeline

        output = tmp_path / 'results.csv'
        BatchPipeline(_config(structure_dir, output)).run()
        lines = output.read_text().splitlines()

        assert lines[0] == ('ID;Gyration_Radius;Box_Volume;Contact_Order;mean_pLDDT;'
                            'pLDDT_50;pLDDT_70;pLDDT_90;seq_len')
        assert len(lines) == 4
        fields = lines[1].split(';')
        assert fields[0] == 'model_0'
        assert fields[3] == '5.9574'
        assert fields[-1] == '25'

    def test_random_subset(self, tmp_path, make_pdb, chain_lines):
        """Test a subset of 2 out of 5 files."""
        from MicroStruct import BatchPipeline

        input_dir = tmp_path / 'pdbs'
        for i in range(5):
            make_pdb(f's{i}.pdb', chain_lines(4 + i), directory=input_dir)
        output = tmp_path / 'subset.csv'

        summary = BatchPipeline(_config(input_dir, output, subset=2, random_seed=9)).run()

        assert summary.n_candidates == 5
        assert summary.n_selected == 2
        assert len(_read_report(output)) == 2

    def test_unseeded_subset_size(self, tmp_path, make_pdb, chain_lines):
        """Test every unseeded run yields exactly the subset size."""
        from MicroStruct import BatchPipeline

        input_dir = tmp_path / 'pdbs'
        names = {f's{i}' for i in range(5)}
        for i in range(5):
            make_pdb(f's{i}.pdb', chain_lines(4 + i), directory=input_dir)

        for run in range(6):
            output = tmp_path / f'subset_{run}.csv'
            summary = BatchPipeline(_config(input_dir, output, subset=2)).run()
            df = _read_report(output)

            assert summary.n_selected == 2
            assert len(df) == 2
            assert df['ID'].nunique() == 2
            assert set(df['ID']) <= names

    def test_verbose_logs_tracebacks(self, structure_dir, tmp_path, caplog):
        """Test verbose only adds tracebacks to per-file failure logs."""
        from MicroStruct import run_batch

        files = [structure_dir / 'model_0.pdb', tmp_path / 'vanished.pdb']
        quiet = run_batch(_config(structure_dir, tmp_path / 'quiet.csv'), files)
        quiet_records = [r for r in caplog.records if r.levelno == logging.ERROR]
        caplog.clear()
        loud = run_batch(_config(structure_dir, tmp_path / 'loud.csv', verbose=True), files)
        loud_records = [r for r in caplog.records if r.levelno == logging.ERROR]

        assert quiet.n_processed == loud.n_processed == 1
        assert quiet.n_failed == loud.n_failed == 1
        assert quiet_records[0].exc_info is None
        assert loud_records[0].exc_info is not None

    def test_empty_directory(self, tmp_path):
        """Test a run without candidate files fails before any output."""
        from MicroStruct import BatchPipeline, EmptyInputError

        input_dir = tmp_path / 'empty'
        input_dir.mkdir()
        output = tmp_path / 'results.csv'

        with pytest.raises(EmptyInputError):
            BatchPipeline(_config(input_dir, output)).run()
        assert not output.exists()

    def test_missing_directory(self, tmp_path):
        """Test a missing input directory."""
        from MicroStruct import BatchPipeline

        with pytest.raises(FileNotFoundError):
            BatchPipeline(_config(tmp_path / 'absent', tmp_path / 'out.csv')).run()

    def test_no_input_directory(self):
        """Test discovery requires an input directory."""
        from MicroStruct import BatchPipeline

        with pytest.raises(ValueError):
            BatchPipeline({'progress': False}).discover()

    def test_append_mode_threads(self, structure_dir, tmp_path):
        """Test workers append complete rows concurrently."""
        from MicroStruct import BatchPipeline

        collected = tmp_path / 'collect.csv'
        appended = tmp_path / 'append.csv'
        BatchPipeline(_config(structure_dir, collected)).run()
        summary = BatchPipeline(_config(structure_dir, appended, write_mode='append',
                                        n_jobs=4)).run()

        assert summary.n_processed == 3
        lines = appended.read_text().splitlines()
        assert len(lines) == 4
        assert all(line.count(';') == 8 for line in lines)

        expected = _read_report(collected).sort_values('ID').reset_index(drop=True)
        actual = _read_report(appended).sort_values('ID').reset_index(drop=True)
        pd.testing.assert_frame_equal(actual, expected)

    @pytest.mark.slow
    def test_process_backend(self, structure_dir, tmp_path):
        """Test the process pool gives the same report as threads."""
        from MicroStruct import BatchPipeline

        threads = tmp_path / 'threads.csv'
        processes = tmp_path / 'processes.csv'
        BatchPipeline(_config(structure_dir, threads)).run()
        summary = BatchPipeline(_config(structure_dir, processes, backend='process')).run()

        assert summary.n_failed == 1
        assert processes.read_text() == threads.read_text()

    @pytest.mark.slow
    def test_process_backend_append(self, structure_dir, tmp_path):
        """Test append mode with worker processes."""
        from MicroStruct import BatchPipeline

        output = tmp_path / 'results.csv'
        BatchPipeline(_config(structure_dir, output, backend='process',
                              write_mode='append')).run()

        assert sorted(_read_report(output)['ID']) == ['model_0', 'model_1', 'model_2']

    def test_sasa_column(self, structure_dir, tmp_path):
        """Test the optional SASA column."""
        from MicroStruct import BatchPipeline

        output = tmp_path / 'results.csv'
        BatchPipeline(_config(structure_dir, output, calculate_sasa=True,
                              sasa_n_points=20)).run()
        df = _read_report(output)

        assert list(df.columns)[-1] == 'SASA'
        assert (df['SASA'] > 0).all()

    def test_unwritable_output(self, structure_dir, tmp_path):
        """Test an output path below a regular file."""
        from MicroStruct import BatchPipeline, OutputError

        blocker = tmp_path / 'blocker'
        blocker.write_text('')

        with pytest.raises(OutputError):
            BatchPipeline(_config(structure_dir, blocker / 'results.csv')).run()
        with pytest.raises(OutputError):
            BatchPipeline(_config(structure_dir, blocker / 'results.csv',
                                  write_mode='append')).run()

    def test_explicit_files(self, structure_dir, tmp_path):
        """Test running on an explicit file list."""
        from MicroStruct import run_batch

        files = [structure_dir / 'model_1.pdb', structure_dir / 'model_0.pdb']
        summary = run_batch(_config(structure_dir, tmp_path / 'out.csv'), files)

        assert [r.identifier for r in summary.results] == ['model_1', 'model_0']
        assert list(summary.to_dataframe()['ID']) == ['model_1', 'model_0']

    def test_recursive_discovery(self, tmp_path, make_pdb, chain_lines):
        """Test subdirectories are searched only when asked."""
        from MicroStruct import BatchPipeline

        input_dir = tmp_path / 'pdbs'
        make_pdb('top.pdb', chain_lines(3), directory=input_dir)
        make_pdb('deep.pdb', chain_lines(3), directory=input_dir / 'sub')

        flat = BatchPipeline(_config(input_dir, tmp_path / 'a.csv')).discover()
        deep = BatchPipeline(_config(input_dir, tmp_path / 'b.csv', recursive=True)).discover()

        assert len(flat) == 1
        assert len(deep) == 2


class TestReportWriting:
    """Test the two report writers."""

    def _rows(self):
        from MicroStruct import FileResult

        return [
            FileResult('a', 10.123456, 0.0, 5.957446808, 80.0, 1.0, 1.0, 0.0, 25).to_row(),
            FileResult('b', 3.5, 12.25, 0.0, float('nan'), 0.0, 0.0, 0.0, 0).to_row(),
        ]

    def test_sink_matches_single_write(self, tmp_path):
        """Test appended rows are byte-identical to a single write."""
        from MicroStruct.core import report_columns
        from MicroStruct.utils import ReportSink, write_report

        columns = report_columns()
        single = tmp_path / 'single.csv'
        appended = tmp_path / 'appended.csv'

        write_report(self._rows(), single, columns)
        sink = ReportSink(appended, columns)
        sink.write_header()
        for row in self._rows():
            sink.append(row)

        assert sink.rows_written == 2
        assert appended.read_text() == single.read_text()

    def test_number_format(self, tmp_path):
        """Test four decimals, 'nan' for missing values and integer lengths."""
        from MicroStruct.core import report_columns
        from MicroStruct.utils import ReportSink

        output = tmp_path / 'appended.csv'
        sink = ReportSink(output, report_columns())
        sink.write_header()
        for row in self._rows():
            sink.append(row)
        lines = output.read_text().splitlines()

        assert lines[0].startswith('ID;Gyration_Radius;')
        assert lines[1] == 'a;10.1235;0.0000;5.9574;80.0000;1.0000;1.0000;0.0000;25'
        assert lines[2].split(';')[4] == 'nan'
        assert lines[2].endswith(';0')

    def test_header_truncates(self, tmp_path):
        """Test writing the header starts a fresh report."""
        from MicroStruct.core import report_columns
        from MicroStruct.utils import ReportSink

        output = tmp_path / 'appended.csv'
        output.write_text('stale content\n')
        ReportSink(output, report_columns(True)).write_header()

        assert output.read_text() == ';'.join(report_columns(True)) + '\n'
