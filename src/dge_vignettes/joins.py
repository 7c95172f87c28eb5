"""Explicit table joins with named keys and join kinds."""

from enum import Enum
from typing import Iterable, List, Optional, Union

import pandas as pd


class JoinKind(str, Enum):
    """Which keys survive a join."""

    INNER = "inner"
    LEFT = "left"
    RIGHT = "right"
    FULL = "full"


_PANDAS_HOW = {
    JoinKind.INNER: "inner",
    JoinKind.LEFT: "left",
    JoinKind.RIGHT: "right",
    JoinKind.FULL: "outer",
}

Keys = Union[str, List[str]]


def _as_list(keys: Keys) -> List[str]:
    return [keys] if isinstance(keys, str) else list(keys)


def require_columns(df: pd.DataFrame, columns: Iterable[str], table: str = "table"):
    """Raise KeyError if any of the given columns is missing from the frame."""
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise KeyError(
            f"{table} is missing column(s) {', '.join(missing)}; "
            f"available: {', '.join(map(str, df.columns))}"
        )


def join(
    left: pd.DataFrame,
    right: pd.DataFrame,
    left_on: Keys,
    right_on: Optional[Keys] = None,
    how: Union[JoinKind, str] = JoinKind.INNER
) -> pd.DataFrame:
    """
    Join two tables on explicitly named key columns.

    Args:
        left: Left table
        right: Right table
        left_on: Key column(s) of the left table
        right_on: Key column(s) of the right table (defaults to left_on)
        how: Join kind (inner, left, right or full)

    Returns:
        Joined DataFrame. Left row order is preserved for inner and left
        joins. When the key names differ, the right key column is dropped.
    """
    how = JoinKind(how)
    left_keys = _as_list(left_on)
    right_keys = _as_list(right_on) if right_on is not None else left_keys

    if len(left_keys) != len(right_keys):
        raise ValueError(
            f"Key count differs: {len(left_keys)} left vs {len(right_keys)} right"
        )

    require_columns(left, left_keys, "left table")
    require_columns(right, right_keys, "right table")

    merged = left.merge(
        right,
        how=_PANDAS_HOW[how],
        left_on=left_keys,
        right_on=right_keys,
        sort=False
    )

    redundant = [rk for lk, rk in zip(left_keys, right_keys) if lk != rk and rk in merged.columns]
    if redundant and how is not JoinKind.FULL and how is not JoinKind.RIGHT:
        merged = merged.drop(columns=redundant)

    return merged.reset_index(drop=True)
