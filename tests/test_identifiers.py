"""Unit tests for row and column identifier resolution."""

import pandas as pd
import pytest
from dge_vignettes.errors import CountMismatchError, DuplicateBarcodeError, FormatError
from dge_vignettes.identifiers import (
    deduplicate_mapping,
    read_barcode_table,
    read_barcodes,
    read_gene_ids,
    read_mapping_table,
    resolve_columns,
    resolve_rows
)


@pytest.fixture
def gene_ids():
    """Gene identifiers in matrix row order."""
    return pd.DataFrame({
        'row_index': [1, 2, 3, 4],
        'gene_id': ['ENSG1', 'ENSG2', 'ENSG3', 'ENSG4']
    })


@pytest.fixture
def annotation():
    """Annotation table with an unmapped gene and a shared symbol."""
    return pd.DataFrame({
        'ensembl_gene_id': ['ENSG1', 'ENSG2', 'ENSG3', 'ENSG4'],
        'hgnc_symbol': ['ACTB', 'GAPDH', 'ACTB', '']
    })


@pytest.fixture
def barcodes():
    """Barcodes in matrix column order."""
    return pd.DataFrame({
        'col_index': [1, 2, 3],
        'barcode': ['AAAA', 'CCCC', 'GGGG']
    })


@pytest.fixture
def barcode_table():
    """Barcode-to-well table covering two of three barcodes."""
    return pd.DataFrame({
        'Set': ['S1', 'S1', 'S2'],
        'Well': ['A01', 'A02', 'B01'],
        'Barcode': ['AAAA', 'CCCC', 'TTTT']
    })


class TestReading:
    """Tests for identifier file readers."""

    def test_read_gene_ids(self, tmp_path):
        """Test numbering of identifiers in file order."""
        path = tmp_path / "genes.txt"
        path.write_text('ENSG2\n"ENSG1"\n\nENSG3\n')

        df = read_gene_ids(path)

        assert df['row_index'].tolist() == [1, 2, 3]
        assert df['gene_id'].tolist() == ['ENSG2', 'ENSG1', 'ENSG3']

    def test_read_barcodes(self, tmp_path):
        """Test barcode list reading."""
        path = tmp_path / "barcodes.txt"
        path.write_text("AAAA\nCCCC\n")

        df = read_barcodes(path)

        assert list(df.columns) == ['col_index', 'barcode']
        assert df['col_index'].tolist() == [1, 2]

    def test_read_barcode_table(self, tmp_path):
        """Test that tables are read as text with whitespace trimmed."""
        path = tmp_path / "wells.tsv"
        path.write_text("Set\tWell\tBarcode\n1\tA01 \tAAAA\n")

        df = read_barcode_table(path)

        assert df.loc[0, 'Well'] == 'A01'
        assert df.loc[0, 'Set'] == '1'

    def test_malformed_table(self, tmp_path):
        """Test that a table with ragged rows is a format error naming the file."""
        path = tmp_path / "annotation.tsv"
        path.write_text("ensembl_gene_id\thgnc_symbol\nENSG1\tACTB\textra\tfields\n")

        with pytest.raises(FormatError, match="annotation.tsv") as excinfo:
            read_mapping_table(path)

        assert excinfo.value.path == str(path)

    def test_empty_table(self, tmp_path):
        """Test that an empty table is a format error."""
        path = tmp_path / "wells.tsv"
        path.write_text("")

        with pytest.raises(FormatError):
            read_barcode_table(path)


class TestDeduplication:
    """Tests for mapping table deduplication."""

    def test_first_occurrence_wins(self, annotation):
        """Test that the first gene listed under a symbol is kept."""
        deduped = deduplicate_mapping(annotation, 'hgnc_symbol')

        assert deduped['hgnc_symbol'].tolist() == ['ACTB', 'GAPDH']
        assert deduped['ensembl_gene_id'].tolist() == ['ENSG1', 'ENSG2']

    def test_blank_keys_dropped(self):
        """Test that rows without a symbol are removed."""
        mapping = pd.DataFrame({'g': ['a', 'b', 'c'], 's': ['', None, 'X']})

        deduped = deduplicate_mapping(mapping, 's')

        assert deduped['g'].tolist() == ['c']


class TestResolveRows:
    """Tests for row resolution."""

    def test_resolves_and_drops(self, gene_ids, annotation):
        """Test inner join semantics and symbol deduplication."""
        rows = resolve_rows(gene_ids, annotation, n_rows=4)

        assert rows['row_index'].tolist() == [1, 2]
        assert rows['display_id'].tolist() == ['ACTB', 'GAPDH']

    def test_count_mismatch(self, gene_ids, annotation):
        """Test that a short identifier list is rejected."""
        with pytest.raises(CountMismatchError) as excinfo:
            resolve_rows(gene_ids.iloc[:3], annotation, n_rows=4)

        assert excinfo.value.expected == 4
        assert excinfo.value.actual == 3

    def test_gene_with_two_symbols(self, gene_ids):
        """Test that a gene resolves to a single symbol."""
        mapping = pd.DataFrame({
            'ensembl_gene_id': ['ENSG1', 'ENSG1'],
            'hgnc_symbol': ['ACTB', 'ACTB2']
        })

        rows = resolve_rows(gene_ids, mapping, n_rows=4)

        assert rows['display_id'].tolist() == ['ACTB']

    def test_custom_columns(self, gene_ids):
        """Test resolution with non-default column names."""
        mapping = pd.DataFrame({'id': ['ENSG3'], 'name': ['TP53']})

        rows = resolve_rows(gene_ids, mapping, n_rows=4, gene_col='id', display_col='name')

        assert rows.to_dict('records') == [{'row_index': 3, 'display_id': 'TP53'}]

    def test_missing_mapping_column(self, gene_ids, annotation):
        """Test error for an absent mapping column."""
        with pytest.raises(KeyError):
            resolve_rows(gene_ids, annotation, n_rows=4, display_col='symbol')


class TestResolveColumns:
    """Tests for column resolution."""

    def test_resolves_and_drops(self, barcodes, barcode_table):
        """Test that unmatched barcodes are dropped."""
        cols = resolve_columns(barcodes, barcode_table, n_cols=3)

        assert cols['col_index'].tolist() == [1, 2]
        assert cols['well'].tolist() == ['A01', 'A02']

    def test_count_mismatch(self, barcodes, barcode_table):
        """Test that a barcode list longer than declared is rejected."""
        with pytest.raises(CountMismatchError):
            resolve_columns(barcodes, barcode_table, n_cols=2)

    def test_duplicate_barcode_rejected(self, barcodes, barcode_table):
        """Test the default duplicate barcode policy."""
        table = pd.concat([barcode_table, barcode_table.iloc[[0]].assign(Well='H12')])

        with pytest.raises(DuplicateBarcodeError, match='AAAA'):
            resolve_columns(barcodes, table, n_cols=3)

    def test_duplicate_barcode_names_table(self, barcodes, barcode_table):
        """Test that the rejected table file is named in the error."""
        table = pd.concat([barcode_table, barcode_table.iloc[[0]].assign(Well='H12')])

        with pytest.raises(DuplicateBarcodeError, match='wells.tsv') as excinfo:
            resolve_columns(barcodes, table, n_cols=3, table_source='raw/wells.tsv')

        assert excinfo.value.path == 'raw/wells.tsv'

    def test_duplicate_barcode_warn(self, barcodes, barcode_table, caplog):
        """Test that the warn policy keeps the first well."""
        table = pd.concat([barcode_table, barcode_table.iloc[[0]].assign(Well='H12')])

        cols = resolve_columns(barcodes, table, n_cols=3, duplicate_policy='warn')

        assert cols['well'].tolist() == ['A01', 'A02']
        assert any('repeats' in r.message for r in caplog.records)

    def test_barcode_set_filter(self, barcodes, barcode_table):
        """Test selection of one barcode set."""
        cols = resolve_columns(
            barcodes, barcode_table, n_cols=3, set_col='Set', set_id='S2'
        )

        assert cols.empty
