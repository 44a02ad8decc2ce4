from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

import polars as pl

from .base import _ensure_polars_df, _is_enum, _is_string, _require_columns
from .factor import Factor
from .levels import count_levels
from .levels import drop_unused_levels as _drop_unused

logger = logging.getLogger(__name__)


def factor_columns(df: pl.DataFrame) -> List[str]:
    df = _ensure_polars_df(df)
    return [name for name, dtype in zip(df.columns, df.dtypes) if _is_enum(dtype)]


def as_factors(
    df: pl.DataFrame,
    columns: Optional[Sequence[str]] = None,
    levels: Optional[Dict[str, Sequence[str]]] = None,
) -> pl.DataFrame:
    """Cast columns to ``pl.Enum``.

    Without ``columns`` every string or Categorical column is converted.
    ``levels`` maps a column to its explicit level order; other columns get
    their distinct values in lexical order.
    """
    df = _ensure_polars_df(df)
    levels = levels or {}
    if columns is None:
        cols = [
            name
            for name, dtype in zip(df.columns, df.dtypes)
            if _is_string(dtype) or dtype == pl.Categorical
        ]
    else:
        cols = list(columns)
        _require_columns(df, cols)
    converted = [
        Factor(df.get_column(col), levels=levels.get(col)).to_series() for col in cols
    ]
    return df.with_columns(converted) if converted else df


def column_factor(df: pl.DataFrame, column: str) -> Factor:
    df = _ensure_polars_df(df)
    _require_columns(df, [column])
    return Factor.from_series(df.get_column(column))


def with_factor(df: pl.DataFrame, factor: Factor, name: Optional[str] = None) -> pl.DataFrame:
    """Add ``factor`` as a column, replacing one with the same name."""
    df = _ensure_polars_df(df)
    if len(factor) != df.height:
        raise ValueError(f"factor has length {len(factor)}, frame has {df.height} rows")
    col_name = name or factor.name
    if not col_name:
        raise ValueError("factor has no name; pass name=")
    return df.with_columns(factor.to_series().alias(col_name))


def drop_unused_levels(df: pl.DataFrame, columns: Optional[Sequence[str]] = None) -> pl.DataFrame:
    """Narrow the level set of Enum columns to the levels still observed.

    Filtering a frame keeps each Enum column's full level set; this is the
    explicit step that shrinks it. Defaults to every Enum column.
    """
    df = _ensure_polars_df(df)
    cols = factor_columns(df) if columns is None else list(columns)
    _require_columns(df, cols)
    updated = []
    for col in cols:
        factor = column_factor(df, col)
        narrowed = _drop_unused(factor)
        if narrowed is not factor:
            updated.append(narrowed.to_series())
    return df.with_columns(updated) if updated else df


def level_table(df: pl.DataFrame, column: str, sort: bool = False, prop: bool = False) -> pl.DataFrame:
    return count_levels(column_factor(df, column), sort=sort, prop=prop)


def describe_factors(df: pl.DataFrame) -> pl.DataFrame:
    """One row per Enum column with level and missing-value counts."""
    df = _ensure_polars_df(df)
    rows = []
    for col in factor_columns(df):
        factor = column_factor(df, col)
        used = factor.used_levels()
        rows.append({
            "column": col,
            "n_levels": factor.nlevels,
            "n_used": len(used),
            "n_unused": factor.nlevels - len(used),
            "n_missing": factor.null_count(),
            "levels": factor.levels,
        })
    schema = {
        "column": pl.Utf8,
        "n_levels": pl.Int64,
        "n_used": pl.Int64,
        "n_unused": pl.Int64,
        "n_missing": pl.Int64,
        "levels": pl.List(pl.Utf8),
    }
    return pl.DataFrame(rows, schema=schema)


def find_stealth_factors(
    df: pl.DataFrame,
    max_levels: int = 20,
    max_ratio: float = 0.5,
) -> List[str]:
    """String columns that look categorical but are stored as free text.

    A column qualifies when it has at most ``max_levels`` distinct non-missing
    values and those make up at most ``max_ratio`` of its non-missing rows.
    """
    df = _ensure_polars_df(df)
    found: List[str] = []
    for name, dtype in zip(df.columns, df.dtypes):
        if not _is_string(dtype):
            continue
        values = df.get_column(name).drop_nulls()
        if values.len() == 0:
            continue
        n_unique = values.n_unique()
        if n_unique <= max_levels and n_unique / values.len() <= max_ratio:
            found.append(name)
    if found:
        logger.debug("stealth factor candidates: %s", found)
    return found


def sort_by_levels(df: pl.DataFrame, column: str, descending: bool = False) -> pl.DataFrame:
    """Sort rows by level position of an Enum column; missing values last."""
    df = _ensure_polars_df(df)
    _require_columns(df, [column])
    if not _is_enum(df.schema[column]):
        raise ValueError(f"column {column!r} is not a factor; convert it with as_factors first")
    return df.sort(pl.col(column).to_physical(), descending=descending, nulls_last=True)
