"""Wrangling of raw DGE output into a genes-by-wells count table."""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

from .annotation import fetch_gene_annotation
from .config import Config, get_config
from .errors import DGEError
from .identifiers import (
    read_barcode_table,
    read_barcodes,
    read_gene_ids,
    read_mapping_table,
    resolve_columns,
    resolve_rows
)
from .reconstruct import reconstruct_dense, write_dense_matrix
from .sparse import read_sparse_triplets


logger = logging.getLogger(__name__)


class WranglingInputs(BaseModel):
    """Files making up one raw DGE dataset; relative paths resolve against the base directory."""
    matrix: Path
    gene_ids: Path
    barcodes: Path
    annotation: Optional[Path] = None  # fetched from BioMart when absent
    barcode_table: Path
    output: Path


class WranglingResult(BaseModel):
    """Summary of a wrangling run."""
    output: Path
    n_rows_declared: int
    n_cols_declared: int
    n_entries: int
    n_rows_resolved: int
    n_cols_resolved: int
    n_genes: int
    n_wells: int


@contextmanager
def _stage(name: str):
    logger.info(f"Stage: {name}")
    try:
        yield
    except (DGEError, OSError, KeyError) as e:
        e.stage = name
        logger.error(f"Stage '{name}' failed: {e}")
        raise


def run_wrangling(inputs: WranglingInputs, config: Optional[Config] = None) -> WranglingResult:
    """
    Convert a raw DGE dataset into a dense count table written to inputs.output.

    Args:
        inputs: Input and output file locations
        config: Settings; the global configuration is used if None

    Returns:
        WranglingResult describing the written table
    """
    config = config or get_config()
    paths = config.paths
    opts = config.wrangling

    matrix_path = paths.resolve(inputs.matrix)
    gene_path = paths.resolve(inputs.gene_ids)
    barcode_path = paths.resolve(inputs.barcodes)
    output_path = paths.resolve(inputs.output)

    with _stage("load sparse matrix"):
        header, entries = read_sparse_triplets(
            matrix_path,
            delimiter=opts.delimiter,
            comment=opts.comment,
            strict_size=opts.strict_size
        )

    with _stage("resolve rows"):
        if inputs.annotation is None:
            mapping = fetch_gene_annotation(
                opts.biomart_dataset, attributes=[opts.gene_column, opts.display_column]
            )
        else:
            mapping = read_mapping_table(paths.resolve(inputs.annotation), delimiter=opts.table_sep)
        rows = resolve_rows(
            read_gene_ids(gene_path),
            mapping,
            header.n_rows,
            gene_col=opts.gene_column,
            display_col=opts.display_column,
            source=str(gene_path)
        )

    with _stage("resolve columns"):
        table_path = paths.resolve(inputs.barcode_table)
        barcode_table = read_barcode_table(table_path, delimiter=opts.table_sep)
        cols = resolve_columns(
            read_barcodes(barcode_path),
            barcode_table,
            header.n_cols,
            barcode_col=opts.barcode_column,
            label_col=opts.label_column,
            duplicate_policy=opts.duplicate_barcode_policy,
            set_col=opts.set_column,
            set_id=opts.set_id,
            source=str(barcode_path),
            table_source=str(table_path)
        )

    with _stage("reconstruct and write"):
        dense = reconstruct_dense(entries, rows, cols)
        write_dense_matrix(dense, output_path, sep=opts.output_sep)

    return WranglingResult(
        output=output_path,
        n_rows_declared=header.n_rows,
        n_cols_declared=header.n_cols,
        n_entries=len(entries),
        n_rows_resolved=len(rows),
        n_cols_resolved=len(cols),
        n_genes=dense.shape[0],
        n_wells=dense.shape[1]
    )


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)

    config = get_config()
    d = Path("data") / "dge-raw"
    result = run_wrangling(
        WranglingInputs(
            matrix=d / "counts.mtx",
            gene_ids=d / "genes.txt",
            barcodes=d / "barcodes.txt",
            annotation=d / "annotation.tsv",
            barcode_table=d / "barcode_wells.tsv",
            output=Path("output") / "dge-counts.tsv"
        ),
        config
    )
    print(result.model_dump_json(indent=2))
