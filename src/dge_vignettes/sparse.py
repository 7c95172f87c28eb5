"""Loader for sparse (row, column, value) count matrices."""

import logging
import math
from pathlib import Path
from typing import List, Optional, Tuple, Union

import numpy as np
import pandas as pd
from pydantic import BaseModel, Field

from .errors import FormatError, SizeMismatchError


logger = logging.getLogger(__name__)

ROW_INDEX = "row_index"
COL_INDEX = "col_index"
VALUE = "value"
ENTRY_COLUMNS = [ROW_INDEX, COL_INDEX, VALUE]


class SparseHeader(BaseModel):
    """Dimensions declared on the first non-comment line of a sparse matrix."""
    n_rows: int = Field(ge=0)
    n_cols: int = Field(ge=0)
    n_entries: int = Field(ge=0)


def _split(line: str, delimiter: Optional[str]) -> List[str]:
    if delimiter is None:
        return line.split()
    return [field.strip() for field in line.split(delimiter)]


def _parse_int(token: str, path: Path, line_no: int, what: str) -> int:
    try:
        return int(token)
    except ValueError:
        raise FormatError(
            f"{path}:{line_no}: {what} '{token}' is not an integer", str(path)
        ) from None


def _parse_value(token: str, path: Path, line_no: int) -> float:
    try:
        value = float(token)
    except ValueError:
        raise FormatError(
            f"{path}:{line_no}: value '{token}' is not numeric", str(path)
        ) from None
    if not math.isfinite(value):
        raise FormatError(f"{path}:{line_no}: value '{token}' is not finite", str(path))
    return value


def _parse_header(fields: List[str], path: Path, line_no: int) -> SparseHeader:
    if len(fields) != 3:
        raise FormatError(
            f"{path}:{line_no}: header must hold 3 fields (rows, cols, entries), "
            f"found {len(fields)}",
            str(path)
        )
    n_rows, n_cols, n_entries = (
        _parse_int(f, path, line_no, name)
        for f, name in zip(fields, ("row count", "column count", "entry count"))
    )
    if min(n_rows, n_cols, n_entries) < 0:
        raise FormatError(f"{path}:{line_no}: header values must be non-negative", str(path))
    return SparseHeader(n_rows=n_rows, n_cols=n_cols, n_entries=n_entries)


def read_sparse_triplets(
    filepath: Union[str, Path],
    delimiter: Optional[str] = None,
    comment: str = "%",
    strict_size: bool = False
) -> Tuple[SparseHeader, pd.DataFrame]:
    """
    Read a sparse count matrix stored as one (row, column, value) triplet per line.

    Lines starting with the comment marker are skipped wherever they appear.
    The first remaining line declares the matrix dimensions and the number of
    entries; it is never read as data.

    Args:
        filepath: Path to the matrix file
        delimiter: Field delimiter (any whitespace if None)
        comment: Comment-line marker
        strict_size: Raise SizeMismatchError instead of logging a warning when
            the number of entries differs from the header

    Returns:
        Tuple of (SparseHeader, DataFrame with row_index, col_index, value)
    """
    filepath = Path(filepath)
    header = None
    rows, cols, values = [], [], []

    with open(filepath, 'r') as f:
        for line_no, line in enumerate(f, start=1):
            if line.startswith(comment):
                continue
            line = line.strip()
            if not line:
                continue

            fields = _split(line, delimiter)

            if header is None:
                header = _parse_header(fields, filepath, line_no)
                continue

            if len(fields) != 3:
                raise FormatError(
                    f"{filepath}:{line_no}: expected 3 fields, found {len(fields)}",
                    str(filepath)
                )

            row = _parse_int(fields[0], filepath, line_no, "row index")
            col = _parse_int(fields[1], filepath, line_no, "column index")
            if not 1 <= row <= header.n_rows:
                raise FormatError(
                    f"{filepath}:{line_no}: row index {row} outside 1..{header.n_rows}",
                    str(filepath)
                )
            if not 1 <= col <= header.n_cols:
                raise FormatError(
                    f"{filepath}:{line_no}: column index {col} outside 1..{header.n_cols}",
                    str(filepath)
                )

            rows.append(row)
            cols.append(col)
            values.append(_parse_value(fields[2], filepath, line_no))

    if header is None:
        raise FormatError(f"{filepath}: no header line found", str(filepath))

    value_array = np.asarray(values, dtype=np.float64)
    if np.all(np.mod(value_array, 1) == 0):
        value_array = value_array.astype(np.int64)

    entries = pd.DataFrame({
        ROW_INDEX: np.asarray(rows, dtype=np.int64),
        COL_INDEX: np.asarray(cols, dtype=np.int64),
        VALUE: value_array
    })

    if len(entries) != header.n_entries:
        message = (
            f"{filepath}: header declares {header.n_entries} entries "
            f"but {len(entries)} were read"
        )
        if strict_size:
            raise SizeMismatchError(message, header.n_entries, len(entries), str(filepath))
        logger.warning(message)

    logger.info(
        f"Loaded {len(entries):,} entries of a {header.n_rows:,} x {header.n_cols:,} matrix "
        f"from {filepath.name}"
    )
    return header, entries
