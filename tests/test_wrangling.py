"""Integration tests for the wrangling driver."""

from unittest import mock

import pandas as pd
import pytest
from dge_vignettes.config import Config, PathConfig
from dge_vignettes.errors import CountMismatchError, DuplicateBarcodeError, FormatError
from dge_vignettes.wrangling import WranglingInputs, run_wrangling


@pytest.fixture
def dataset(tmp_path):
    """Write a raw DGE dataset under tmp_path/raw."""
    raw = tmp_path / "raw"
    raw.mkdir()
    (raw / "counts.mtx").write_text(
        "%%MatrixMarket matrix coordinate integer general\n"
        "% comment\n"
        "3 3 5\n"
        "1 1 5\n"
        "2 2 7\n"
        "3 1 2\n"
        "3 3 4\n"
        "1 3 1\n"
    )
    (raw / "genes.txt").write_text("ENSG1\nENSG2\nENSG3\n")
    (raw / "barcodes.txt").write_text("AAAA\nCCCC\nGGGG\n")
    (raw / "annotation.tsv").write_text(
        "ensembl_gene_id\thgnc_symbol\n"
        "ENSG1\tACTB\n"
        "ENSG2\tGAPDH\n"
        "ENSG3\t\n"
    )
    (raw / "wells.tsv").write_text(
        "Set\tWell\tBarcode\n"
        "1\tA01\tAAAA\n"
        "1\tA02\tCCCC\n"
    )
    return tmp_path


@pytest.fixture
def config(dataset):
    return Config(paths=PathConfig(base_dir=dataset))


@pytest.fixture
def inputs():
    """Relative paths, resolved against the configured base directory."""
    return WranglingInputs(
        matrix="raw/counts.mtx",
        gene_ids="raw/genes.txt",
        barcodes="raw/barcodes.txt",
        annotation="raw/annotation.tsv",
        barcode_table="raw/wells.tsv",
        output="output/counts.tsv"
    )


class TestRunWrangling:
    """Tests for the complete pipeline."""

    def test_writes_dense_table(self, dataset, config, inputs):
        """Test an end-to-end run."""
        result = run_wrangling(inputs, config)

        assert result.output == dataset / "output" / "counts.tsv"
        df = pd.read_csv(result.output, sep="\t", index_col=0)
        assert df.index.tolist() == ['ACTB', 'GAPDH']
        assert df.columns.tolist() == ['A01', 'A02']
        assert df.loc['ACTB', 'A01'] == 5
        assert df.loc['ACTB', 'A02'] == 0
        assert df.loc['GAPDH', 'A02'] == 7
        assert not df.isna().any().any()

    def test_result_summary(self, config, inputs):
        """Test the reported counts."""
        result = run_wrangling(inputs, config)

        assert result.n_rows_declared == 3
        assert result.n_cols_declared == 3
        assert result.n_entries == 5
        assert result.n_rows_resolved == 2
        assert result.n_cols_resolved == 2
        assert (result.n_genes, result.n_wells) == (2, 2)

    def test_row_count_mismatch(self, dataset, config, inputs):
        """Test that a short gene list aborts the run without output."""
        (dataset / "raw" / "genes.txt").write_text("ENSG1\nENSG2\n")

        with pytest.raises(CountMismatchError) as excinfo:
            run_wrangling(inputs, config)

        assert excinfo.value.stage == "resolve rows"
        assert not (dataset / "output" / "counts.tsv").exists()

    def test_malformed_matrix(self, dataset, config, inputs):
        """Test that a parse failure names its stage."""
        (dataset / "raw" / "counts.mtx").write_text("3 3 1\n1 x 5\n")

        with pytest.raises(FormatError) as excinfo:
            run_wrangling(inputs, config)

        assert excinfo.value.stage == "load sparse matrix"

    def test_failure_keeps_previous_output(self, dataset, config, inputs):
        """Test that a failed run leaves an earlier output in place."""
        out = dataset / "output" / "counts.tsv"
        out.parent.mkdir()
        out.write_text("previous\n")
        (dataset / "raw" / "barcodes.txt").write_text("AAAA\n")

        with pytest.raises(CountMismatchError):
            run_wrangling(inputs, config)

        assert out.read_text() == "previous\n"

    def test_missing_file(self, dataset, config, inputs, caplog):
        """Test that a missing input propagates as an OS error naming its stage."""
        (dataset / "raw" / "wells.tsv").unlink()

        with pytest.raises(FileNotFoundError) as excinfo:
            run_wrangling(inputs, config)

        assert excinfo.value.stage == "resolve columns"
        assert any("resolve columns" in r.message for r in caplog.records if r.levelname == "ERROR")

    def test_missing_label_column(self, dataset, config, inputs):
        """Test that a barcode table without the well column fails in its stage."""
        (dataset / "raw" / "wells.tsv").write_text("Set\tWellName\tBarcode\n1\tA01\tAAAA\n")

        with pytest.raises(KeyError, match="Well") as excinfo:
            run_wrangling(inputs, config)

        assert excinfo.value.stage == "resolve columns"
        assert not (dataset / "output" / "counts.tsv").exists()

    def test_malformed_annotation(self, dataset, config, inputs):
        """Test that an unparsable annotation table is a format error of the row stage."""
        (dataset / "raw" / "annotation.tsv").write_text("ensembl_gene_id\thgnc_symbol\nENSG1\ta\tb\tc\n")

        with pytest.raises(FormatError) as excinfo:
            run_wrangling(inputs, config)

        assert excinfo.value.stage == "resolve rows"

    def test_duplicate_barcode_names_table(self, dataset, config, inputs):
        """Test that a repeated barcode names the barcode table file."""
        (dataset / "raw" / "wells.tsv").write_text(
            "Set\tWell\tBarcode\n1\tA01\tAAAA\n1\tA02\tAAAA\n"
        )

        with pytest.raises(DuplicateBarcodeError, match="wells.tsv") as excinfo:
            run_wrangling(inputs, config)

        assert excinfo.value.stage == "resolve columns"

    def test_annotation_fetched_when_absent(self, config, inputs):
        """Test that BioMart is queried when no annotation file is given."""
        inputs = inputs.model_copy(update={'annotation': None})
        annotation = pd.DataFrame({
            'ensembl_gene_id': ['ENSG3'],
            'hgnc_symbol': ['TP53']
        })

        with mock.patch(
            'dge_vignettes.wrangling.fetch_gene_annotation', return_value=annotation
        ) as fetch:
            result = run_wrangling(inputs, config)

        fetch.assert_called_once_with(
            'hsapiens_gene_ensembl', attributes=['ensembl_gene_id', 'hgnc_symbol']
        )
        df = pd.read_csv(result.output, sep="\t", index_col=0)
        assert df.to_dict('index') == {'TP53': {'A01': 2}}
