from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Union

import polars as pl

from .base import Transformer, _ensure_polars_df, _is_enum, _is_string, _require_columns
from .factor import Factor
from .levels import (
    drop_unused_levels,
    lump_rare,
    recode,
    relevel,
    reorder_by_appearance,
    reorder_by_frequency,
    reorder_by_summary,
    reverse_levels,
)


def _infer_factor_columns(df: pl.DataFrame, columns: Optional[Sequence[str]]) -> List[str]:
    if columns is not None:
        cols = list(columns)
        _require_columns(df, cols)
        return cols
    cats: List[str] = []
    for name, dtype in zip(df.columns, df.dtypes):
        if _is_string(dtype) or dtype == pl.Categorical or _is_enum(dtype):
            cats.append(name)
    return cats


class _LevelSetTransformer(Transformer):
    """Learns one level list per column in ``fit`` and casts to it in ``transform``."""

    def __init__(self, columns: Optional[Sequence[str]] = None) -> None:
        self.columns = None if columns is None else list(columns)
        self.levels_: Dict[str, List[str]] = {}

    def _learn(self, factor: Factor) -> Factor:  # pragma: no cover
        raise NotImplementedError

    def fit(self, df: pl.DataFrame) -> "_LevelSetTransformer":
        df = _ensure_polars_df(df)
        cols = _infer_factor_columns(df, self.columns)
        self.feature_names_in_ = cols
        self.levels_ = {}
        for col in cols:
            self.levels_[col] = self._learn(Factor.from_series(df.get_column(col))).levels
        self.is_fitted_ = True
        return self

    def transform(self, df: pl.DataFrame) -> pl.DataFrame:
        self._check_fitted()
        df = _ensure_polars_df(df)
        _require_columns(df, self.feature_names_in_ or [])
        out = [
            Factor(df.get_column(col), levels=self.levels_[col]).to_series()
            for col in self.feature_names_in_ or []
        ]
        return df.with_columns(out) if out else df


class FactorEncoder(_LevelSetTransformer):
    """Convert string columns to factors with a learned level set.

    Parameters
    - columns: columns to convert (default: all string/Categorical/Enum columns)
    - levels: explicit level order per column; other columns learn theirs
    - order: 'lexical' (sorted distinct values) or 'appearance' (first seen first);
      Enum columns keep their own level order under 'lexical'
    - add_codes: also add integer level positions as ``{col}{suffix}``
    Values unseen during fit become missing.
    """

    def __init__(
        self,
        columns: Optional[Sequence[str]] = None,
        levels: Optional[Dict[str, Sequence[str]]] = None,
        order: str = "lexical",
        add_codes: bool = False,
        suffix: str = "__code",
    ) -> None:
        if order not in {"lexical", "appearance"}:
            raise ValueError("order must be 'lexical' or 'appearance'")
        super().__init__(columns)
        self.levels = {} if levels is None else {k: list(v) for k, v in levels.items()}
        self.order = order
        self.add_codes = add_codes
        self.suffix = suffix

    def fit(self, df: pl.DataFrame) -> "FactorEncoder":
        df = _ensure_polars_df(df)
        cols = _infer_factor_columns(df, self.columns)
        self.feature_names_in_ = cols
        self.levels_ = {}
        for col in cols:
            series = df.get_column(col)
            if col in self.levels:
                factor = Factor(series, levels=self.levels[col])
            else:
                factor = Factor(series)
                if self.order == "appearance":
                    factor = reorder_by_appearance(factor)
            self.levels_[col] = factor.levels
        self.is_fitted_ = True
        return self

    def transform(self, df: pl.DataFrame) -> pl.DataFrame:
        out = super().transform(df)
        if self.add_codes:
            out = out.with_columns([
                pl.col(col).to_physical().cast(pl.Int64).alias(f"{col}{self.suffix}")
                for col in self.feature_names_in_ or []
            ])
        return out

    def get_feature_names_out(self) -> List[str]:
        names = list(self.feature_names_in_ or [])
        if self.add_codes:
            names += [f"{col}{self.suffix}" for col in self.feature_names_in_ or []]
        return names


class LevelDropper(_LevelSetTransformer):
    """Keep only the levels observed in the frame passed to ``fit``."""

    def _learn(self, factor: Factor) -> Factor:
        return drop_unused_levels(factor)


class LevelReorderer(_LevelSetTransformer):
    """Reorder factor levels learned from the fit frame.

    Parameters
    - by: 'frequency' | 'appearance' | 'summary' | 'reverse' | 'manual'
    - summary_column: numeric column summarised per level when by='summary'
    - summary: aggregation name or callable for by='summary'
    - descending: reverse the frequency/summary ordering
    - first: levels moved to the front when by='manual'
    """

    _BY = {"frequency", "appearance", "summary", "reverse", "manual"}

    def __init__(
        self,
        columns: Optional[Sequence[str]] = None,
        by: str = "frequency",
        summary_column: Optional[str] = None,
        summary: Any = "median",
        descending: Optional[bool] = None,
        first: Optional[Sequence[str]] = None,
    ) -> None:
        if by not in self._BY:
            raise ValueError(f"by must be one of {sorted(self._BY)}")
        if by == "summary" and summary_column is None:
            raise ValueError("summary_column is required when by='summary'")
        if by == "manual" and not first:
            raise ValueError("first is required when by='manual'")
        super().__init__(columns)
        self.by = by
        self.summary_column = summary_column
        self.summary = summary
        self.descending = descending
        self.first = None if first is None else list(first)
        self._x: Optional[pl.Series] = None

    def fit(self, df: pl.DataFrame) -> "LevelReorderer":
        df = _ensure_polars_df(df)
        if self.by == "summary":
            _require_columns(df, [self.summary_column])  # type: ignore[list-item]
            self._x = df.get_column(self.summary_column)  # type: ignore[arg-type]
        try:
            return super().fit(df)
        finally:
            self._x = None

    def _learn(self, factor: Factor) -> Factor:
        if self.by == "frequency":
            return reorder_by_frequency(factor, descending=True if self.descending is None else self.descending)
        if self.by == "appearance":
            return reorder_by_appearance(factor)
        if self.by == "summary":
            return reorder_by_summary(factor, self._x, summary=self.summary, descending=bool(self.descending))
        if self.by == "reverse":
            return reverse_levels(factor)
        return relevel(factor, *(self.first or []))


class LevelRecoder(Transformer):
    """Rename or merge levels per column with ``{column: {old: new}}``."""

    def __init__(self, mapping: Dict[str, Dict[str, Optional[str]]], strict: bool = True) -> None:
        self.mapping = {col: dict(m) for col, m in mapping.items()}
        self.strict = strict
        self.levels_: Dict[str, List[str]] = {}

    def fit(self, df: pl.DataFrame) -> "LevelRecoder":
        df = _ensure_polars_df(df)
        cols = list(self.mapping)
        _require_columns(df, cols)
        self.feature_names_in_ = cols
        self.levels_ = {col: Factor.from_series(df.get_column(col)).levels for col in cols}
        self.is_fitted_ = True
        return self

    def transform(self, df: pl.DataFrame) -> pl.DataFrame:
        self._check_fitted()
        df = _ensure_polars_df(df)
        _require_columns(df, self.feature_names_in_ or [])
        out = []
        for col in self.feature_names_in_ or []:
            factor = Factor(df.get_column(col), levels=self.levels_[col])
            out.append(recode(factor, self.mapping[col], strict=self.strict).to_series())
        return df.with_columns(out) if out else df


class RareLevelLumper(_LevelSetTransformer):
    """Merge levels rarer than ``min_frequency`` in the fit frame into ``other_label``.

    ``min_frequency`` is a proportion when a float in (0, 1), else a count.
    """

    def __init__(
        self,
        columns: Optional[Sequence[str]] = None,
        min_frequency: Union[int, float] = 0.05,
        other_label: str = "Other",
    ) -> None:
        super().__init__(columns)
        self.min_frequency = min_frequency
        self.other_label = other_label
        self.rare_: Dict[str, List[str]] = {}

    def fit(self, df: pl.DataFrame) -> "RareLevelLumper":
        df = _ensure_polars_df(df)
        cols = _infer_factor_columns(df, self.columns)
        self.feature_names_in_ = cols
        self.levels_ = {}
        self.rare_ = {}
        for col in cols:
            factor = Factor.from_series(df.get_column(col))
            lumped = lump_rare(factor, self.min_frequency, self.other_label)
            self.levels_[col] = lumped.levels
            self.rare_[col] = [lvl for lvl in factor.levels if lvl not in lumped.levels]
        self.is_fitted_ = True
        return self

    def transform(self, df: pl.DataFrame) -> pl.DataFrame:
        self._check_fitted()
        df = _ensure_polars_df(df)
        _require_columns(df, self.feature_names_in_ or [])
        out = []
        for col in self.feature_names_in_ or []:
            rare = self.rare_[col]
            series = df.get_column(col).cast(pl.Utf8)
            if rare:
                series = series.replace(rare, [self.other_label] * len(rare))
            out.append(Factor(series.alias(col), levels=self.levels_[col]).to_series())
        return df.with_columns(out) if out else df
