"""Reconstruction of a dense genes-by-wells table from resolved sparse entries."""

import logging
import os
from pathlib import Path
from typing import Union

import pandas as pd

from .identifiers import DISPLAY_ID, WELL
from .joins import JoinKind, join, require_columns
from .sparse import COL_INDEX, ENTRY_COLUMNS, ROW_INDEX, VALUE


logger = logging.getLogger(__name__)


def _format_float(value) -> str:
    # Filled cells stay an integer zero in float tables
    return "0" if value == 0 else str(value)


def reconstruct_dense(
    entries: pd.DataFrame,
    rows: pd.DataFrame,
    cols: pd.DataFrame
) -> pd.DataFrame:
    """
    Build a dense count table from sparse entries and resolved identifiers.

    Entries whose row or column did not resolve are dropped. Repeated
    (gene, well) pairs are summed. Pairs without an entry are set to 0,
    since an absent entry means no counts were observed.

    Args:
        entries: Sparse entries (row_index, col_index, value)
        rows: Resolved rows (row_index, display_id)
        cols: Resolved columns (col_index, well)

    Returns:
        DataFrame indexed by display id with one column per well
    """
    require_columns(entries, ENTRY_COLUMNS, "sparse entries")
    require_columns(rows, [ROW_INDEX, DISPLAY_ID], "resolved rows")
    require_columns(cols, [COL_INDEX, WELL], "resolved columns")

    joined = join(entries, rows, left_on=ROW_INDEX, how=JoinKind.INNER)
    joined = join(joined, cols, left_on=COL_INDEX, how=JoinKind.INNER)
    triples = joined[[DISPLAY_ID, WELL, VALUE]]

    n_dropped = len(entries) - len(triples)
    if n_dropped:
        logger.info(f"Dropped {n_dropped:,} entries with an unresolved gene or well")

    # Genes and wells keep the order in which they were resolved
    gene_order = rows.loc[rows[DISPLAY_ID].isin(triples[DISPLAY_ID]), DISPLAY_ID].drop_duplicates()
    well_order = cols.loc[cols[WELL].isin(triples[WELL]), WELL].drop_duplicates()

    if triples.empty:
        dense = pd.DataFrame(index=pd.Index([], name=DISPLAY_ID, dtype=object))
    else:
        dense = (
            triples.groupby([DISPLAY_ID, WELL], sort=False)[VALUE]
            .sum()
            .unstack(WELL, fill_value=0)
        )

    dense = dense.reindex(index=gene_order.tolist(), columns=well_order.tolist(), fill_value=0)
    if pd.api.types.is_integer_dtype(entries[VALUE]):
        dense = dense.astype("int64")
    dense.index.name = DISPLAY_ID
    dense.columns.name = None

    logger.info(f"Reconstructed {dense.shape[0]:,} genes x {dense.shape[1]:,} wells")
    return dense


def write_dense_matrix(
    matrix: pd.DataFrame,
    filepath: Union[str, Path],
    sep: str = "\t",
    index_label: str = "gene"
) -> Path:
    """
    Write a dense table with a header row of column labels and one row per gene.

    The table is written next to the destination first and moved into place
    when complete, so an existing file is only ever replaced by a full table.
    """
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = filepath.with_name(filepath.name + ".part")

    try:
        matrix.to_csv(
            tmp_path, sep=sep, index=True, index_label=index_label, float_format=_format_float
        )
        os.replace(tmp_path, filepath)
    except BaseException:
        if tmp_path.exists():
            tmp_path.unlink()
        raise

    logger.info(f"Wrote {matrix.shape[0]:,} x {matrix.shape[1]:,} table to {filepath}")
    return filepath


def read_dense_matrix(filepath: Union[str, Path], sep: str = "\t") -> pd.DataFrame:
    """Read a table written by write_dense_matrix."""
    df = pd.read_csv(filepath, sep=sep, index_col=0, keep_default_na=False)
    df.index = df.index.astype(str)
    df.columns = df.columns.astype(str)
    return df
