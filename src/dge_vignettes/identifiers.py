"""Resolution of matrix row and column indices to display identifiers."""

import logging
from pathlib import Path
from typing import Optional, Union

import numpy as np
import pandas as pd

from .config import DuplicateBarcodePolicy
from .errors import CountMismatchError, DuplicateBarcodeError, FormatError
from .joins import JoinKind, join, require_columns
from .sparse import COL_INDEX, ROW_INDEX


logger = logging.getLogger(__name__)

GENE_ID = "gene_id"
DISPLAY_ID = "display_id"
BARCODE = "barcode"
WELL = "well"


def read_identifier_list(
    filepath: Union[str, Path],
    index_name: str,
    id_name: str
) -> pd.DataFrame:
    """
    Read one identifier per line and number them 1..N in file order.

    Args:
        filepath: Path to the identifier file (no header)
        index_name: Name of the position column
        id_name: Name of the identifier column

    Returns:
        DataFrame with columns (index_name, id_name)
    """
    ids = []
    with open(filepath, 'r') as f:
        for line in f:
            value = line.strip().strip('"').strip("'")
            if value:
                ids.append(value)

    return pd.DataFrame({
        index_name: np.arange(1, len(ids) + 1, dtype=np.int64),
        id_name: pd.Series(ids, dtype=str)
    })


def read_gene_ids(filepath: Union[str, Path]) -> pd.DataFrame:
    """Read the gene identifier list matching the rows of the sparse matrix."""
    return read_identifier_list(filepath, ROW_INDEX, GENE_ID)


def read_barcodes(filepath: Union[str, Path]) -> pd.DataFrame:
    """Read the barcode list matching the columns of the sparse matrix."""
    return read_identifier_list(filepath, COL_INDEX, BARCODE)


def read_mapping_table(filepath: Union[str, Path], delimiter: str = "\t") -> pd.DataFrame:
    """Read a delimited lookup table with a header row, keeping every field as text."""
    try:
        df = pd.read_csv(filepath, sep=delimiter, dtype=str, keep_default_na=False)
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise FormatError(f"{filepath}: cannot parse table: {e}", path=str(filepath)) from e
    df.columns = df.columns.astype(str).str.strip()
    for col in df.columns:
        df[col] = df[col].str.strip()
    return df


# The barcode sheet has the same layout requirements as an annotation table
read_barcode_table = read_mapping_table


def _check_count(ids: pd.DataFrame, expected: int, what: str, source: Optional[str]):
    if len(ids) != expected:
        raise CountMismatchError(
            f"{source or what}: matrix header declares {expected} {what} "
            f"but {len(ids)} identifiers were loaded",
            expected=expected,
            actual=len(ids),
            path=source
        )


def deduplicate_mapping(mapping: pd.DataFrame, key: str) -> pd.DataFrame:
    """
    Keep one row per value of ``key``.

    Rows with an empty key are dropped first. Among duplicates, the first row
    in table order is kept.
    """
    require_columns(mapping, [key], "mapping table")
    keyed = mapping[mapping[key].notna() & (mapping[key].astype(str).str.strip() != "")]
    deduped = keyed.drop_duplicates(subset=key, keep="first")

    n_blank = len(mapping) - len(keyed)
    n_dup = len(keyed) - len(deduped)
    if n_blank or n_dup:
        logger.info(
            f"Mapping table: dropped {n_blank:,} rows without '{key}' "
            f"and {n_dup:,} duplicate '{key}' rows"
        )
    return deduped.reset_index(drop=True)


def resolve_rows(
    gene_ids: pd.DataFrame,
    mapping: pd.DataFrame,
    n_rows: int,
    gene_col: str = "ensembl_gene_id",
    display_col: str = "hgnc_symbol",
    source: Optional[str] = None
) -> pd.DataFrame:
    """
    Translate matrix row positions into display identifiers.

    Args:
        gene_ids: Output of read_gene_ids
        mapping: Annotation table holding gene_col and display_col
        n_rows: Row count declared by the sparse matrix header
        gene_col: Column of mapping holding the primary gene identifier
        display_col: Column of mapping holding the display identifier
        source: File the gene identifiers came from, for error messages

    Returns:
        DataFrame with row_index and display_id, one row per resolved gene
    """
    require_columns(gene_ids, [ROW_INDEX, GENE_ID], "gene identifier table")
    _check_count(gene_ids, n_rows, "rows", source)
    require_columns(mapping, [gene_col, display_col], "mapping table")

    lookup = deduplicate_mapping(mapping[[gene_col, display_col]], display_col)
    # A gene listed under several symbols resolves to its first one
    lookup = lookup.drop_duplicates(subset=gene_col, keep="first")
    lookup = lookup.rename(columns={display_col: DISPLAY_ID})

    resolved = join(gene_ids, lookup, left_on=GENE_ID, right_on=gene_col, how=JoinKind.INNER)
    resolved = resolved[[ROW_INDEX, DISPLAY_ID]]

    n_dropped = n_rows - len(resolved)
    if n_dropped:
        logger.warning(f"{n_dropped:,} of {n_rows:,} genes have no '{display_col}' and are dropped")
    logger.info(f"Resolved {len(resolved):,} genes to '{display_col}'")
    return resolved


def _apply_barcode_policy(
    table: pd.DataFrame,
    barcode_col: str,
    policy: DuplicateBarcodePolicy,
    source: Optional[str] = None
) -> pd.DataFrame:
    duplicated = table[barcode_col].duplicated(keep=False)
    if not duplicated.any():
        return table

    repeated = sorted(table.loc[duplicated, barcode_col].unique())
    message = f"{source or 'Barcode table'} repeats {len(repeated)} barcode(s): {', '.join(repeated[:10])}"
    if policy is DuplicateBarcodePolicy.REJECT:
        raise DuplicateBarcodeError(message, path=source)
    if policy is DuplicateBarcodePolicy.WARN:
        logger.warning(message + "; keeping the first occurrence of each")
    return table.drop_duplicates(subset=barcode_col, keep="first")


def resolve_columns(
    barcodes: pd.DataFrame,
    barcode_table: pd.DataFrame,
    n_cols: int,
    barcode_col: str = "Barcode",
    label_col: str = "Well",
    duplicate_policy: Union[DuplicateBarcodePolicy, str] = DuplicateBarcodePolicy.REJECT,
    set_col: Optional[str] = None,
    set_id: Optional[str] = None,
    source: Optional[str] = None,
    table_source: Optional[str] = None
) -> pd.DataFrame:
    """
    Translate matrix column positions into well labels.

    Args:
        barcodes: Output of read_barcodes
        barcode_table: Table holding barcode_col and label_col
        n_cols: Column count declared by the sparse matrix header
        barcode_col: Barcode column of barcode_table
        label_col: Label column of barcode_table
        duplicate_policy: Handling of barcodes listed more than once
        set_col: Optional barcode-set column used to select one set
        set_id: Barcode set to keep when set_col is given
        source: File the barcodes came from, for error messages
        table_source: File the barcode table came from, for error messages

    Returns:
        DataFrame with col_index and well, one row per resolved barcode
    """
    require_columns(barcodes, [COL_INDEX, BARCODE], "barcode list")
    _check_count(barcodes, n_cols, "columns", source)

    table = barcode_table
    if set_col is not None:
        require_columns(table, [set_col], "barcode table")
        if set_id is None:
            raise ValueError("set_id is required when set_col is given")
        table = table[table[set_col] == set_id]
        logger.info(f"Using {len(table)} barcodes of set '{set_id}'")

    require_columns(table, [barcode_col, label_col], "barcode table")
    table = _apply_barcode_policy(
        table[[barcode_col, label_col]], barcode_col, DuplicateBarcodePolicy(duplicate_policy),
        source=table_source
    )
    table = table.rename(columns={label_col: WELL})

    resolved = join(barcodes, table, left_on=BARCODE, right_on=barcode_col, how=JoinKind.INNER)
    resolved = resolved[[COL_INDEX, WELL]]

    n_dropped = n_cols - len(resolved)
    if n_dropped:
        logger.warning(f"{n_dropped:,} of {n_cols:,} barcodes have no well and are dropped")
    logger.info(f"Resolved {len(resolved):,} barcodes to wells")
    return resolved
