from __future__ import annotations

import logging
from typing import Any, Iterator, List, Optional, Sequence, Tuple

import numpy as np
import polars as pl

from .base import _ensure_polars_series, _is_enum

logger = logging.getLogger(__name__)

_REPR_MAX = 10


def _natural_levels(series: pl.Series) -> List[str]:
    """Distinct non-missing values sorted in their native order, rendered as strings."""
    if _is_enum(series.dtype):
        return [str(lvl) for lvl in series.dtype.categories]
    values = series.drop_nulls()
    if values.dtype == pl.Categorical:
        values = values.cast(pl.Utf8)
    ordered = values.unique().sort().cast(pl.Utf8).to_list()
    return list(dict.fromkeys(ordered))


def _validate_levels(levels: Sequence[Any]) -> List[str]:
    if isinstance(levels, str):
        raise TypeError("levels must be a sequence of labels, not a single string")
    out: List[str] = []
    for level in levels:
        if level is None:
            raise ValueError("levels cannot contain a missing value")
        out.append(str(level))
    if len(set(out)) != len(out):
        dupes = sorted({lvl for lvl in out if out.count(lvl) > 1})
        raise ValueError(f"levels must be distinct; duplicated: {dupes}")
    return out


def _to_enum(series: pl.Series, levels: Optional[Sequence[Any]]) -> Tuple[pl.Series, List[str]]:
    name = series.name
    if levels is None:
        level_list = _natural_levels(series)
        if _is_enum(series.dtype):
            return series, level_list
    else:
        level_list = _validate_levels(levels)

    labels = series.cast(pl.Utf8)
    outside = labels.drop_nulls().filter(~labels.drop_nulls().is_in(level_list))
    if outside.len() > 0:
        logger.warning(
            "%d value(s) of %r are not in the level set and become missing: %s",
            outside.len(),
            name,
            sorted(set(outside.to_list()))[:_REPR_MAX],
        )
        labels = (
            labels.alias("value")
            .to_frame()
            .select(pl.when(pl.col("value").is_in(level_list)).then(pl.col("value")).alias("value"))
            .to_series()
        )
    return labels.cast(pl.Enum(level_list)).alias(name), level_list


class Factor:
    """A categorical variable: an ordered level set and one index per observation.

    Values are held in a ``pl.Series`` of dtype ``pl.Enum(levels)``; the level
    order is the display and sort order. Missing observations are nulls.

    Parameters
    - values: list, tuple, polars.Series or pandas.Series of labels
    - levels: explicit level order. When omitted the distinct values are sorted
      in their natural order (lexical for strings); an Enum or pandas category
      input keeps its own order. Values outside explicit levels become missing.
    - name: series name
    """

    def __init__(
        self,
        values: Any = None,
        levels: Optional[Sequence[Any]] = None,
        name: str = "",
    ) -> None:
        series = _ensure_polars_series([] if values is None else values, name=name)
        if name:
            series = series.alias(name)
        data, level_list = _to_enum(series, levels)
        self._data = data
        self._levels: Tuple[str, ...] = tuple(level_list)

    @classmethod
    def from_values(
        cls,
        values: Any,
        levels: Optional[Sequence[Any]] = None,
        name: str = "",
    ) -> "Factor":
        return cls(values, levels=levels, name=name)

    @classmethod
    def from_series(cls, series: pl.Series) -> "Factor":
        return cls(series, name=series.name)

    @classmethod
    def from_codes(
        cls,
        codes: Sequence[Optional[int]],
        levels: Sequence[Any],
        name: str = "",
    ) -> "Factor":
        """Build a factor from integer positions into ``levels``; -1 or None is missing."""
        level_list = _validate_levels(levels)
        labels: List[Optional[str]] = []
        for code in codes:
            if code is None or code == -1:
                labels.append(None)
                continue
            code = int(code)
            if not 0 <= code < len(level_list):
                raise ValueError(f"code {code} is out of range for {len(level_list)} levels")
            labels.append(level_list[code])
        data = pl.Series(name, labels, dtype=pl.Utf8).cast(pl.Enum(level_list))
        return cls._wrap(data, level_list)

    @classmethod
    def _wrap(cls, data: pl.Series, levels: Sequence[str]) -> "Factor":
        obj = cls.__new__(cls)
        obj._data = data
        obj._levels = tuple(levels)
        return obj

    # Level set
    @property
    def levels(self) -> List[str]:
        return list(self._levels)

    @property
    def nlevels(self) -> int:
        return len(self._levels)

    @property
    def name(self) -> str:
        return self._data.name

    @property
    def codes(self) -> pl.Series:
        """Positions into ``levels`` as Int64, null for missing observations."""
        return self._data.to_physical().cast(pl.Int64)

    def rename(self, name: str) -> "Factor":
        return Factor._wrap(self._data.alias(name), self._levels)

    def used_levels(self) -> List[str]:
        seen = set(self._data.drop_nulls().cast(pl.Utf8).unique().to_list())
        return [lvl for lvl in self._levels if lvl in seen]

    def unused_levels(self) -> List[str]:
        used = set(self.used_levels())
        return [lvl for lvl in self._levels if lvl not in used]

    def reorder_levels(self, new_order: Sequence[Any]) -> "Factor":
        """Return the same observations under a permuted level set.

        Only codes change; every observation keeps its label.
        """
        order = _validate_levels(new_order)
        if sorted(order) != sorted(self._levels):
            raise ValueError(
                f"new level order must be a permutation of the current levels {list(self._levels)}"
            )
        logger.debug("reordering levels of %r: %s -> %s", self.name, list(self._levels), order)
        data = self._data.cast(pl.Utf8).cast(pl.Enum(order))
        return Factor._wrap(data, order)

    # Observations
    def __len__(self) -> int:
        return self._data.len()

    def __iter__(self) -> Iterator[Optional[str]]:
        return iter(self.to_list())

    def __getitem__(self, item: Any) -> Any:
        if isinstance(item, (int, np.integer)):
            return self._data.cast(pl.Utf8)[int(item)]
        if isinstance(item, slice):
            return Factor._wrap(self._data[item], self._levels)
        return self.take(item)

    def to_list(self) -> List[Optional[str]]:
        return self._data.cast(pl.Utf8).to_list()

    def to_series(self) -> pl.Series:
        return self._data.clone()

    def to_pandas(self) -> Any:
        """Return a pandas Series of dtype ``category`` with the same level order."""
        try:
            import pandas as pd  # type: ignore
        except ImportError as exc:  # pragma: no cover - import guard
            raise TypeError("to_pandas requires installing pandas") from exc
        cat = pd.Categorical(self.to_list(), categories=list(self._levels))
        return pd.Series(cat, name=self.name or None)

    def is_missing(self) -> pl.Series:
        return self._data.is_null()

    def null_count(self) -> int:
        return self._data.null_count()

    def filter(self, mask: Any) -> "Factor":
        """Keep observations where ``mask`` is true. The level set is unchanged."""
        mask = _ensure_polars_series(mask, name="mask")
        if mask.len() != self._data.len():
            raise ValueError(f"mask has length {mask.len()}, expected {self._data.len()}")
        return Factor._wrap(self._data.filter(mask.cast(pl.Boolean)), self._levels)

    def take(self, indices: Any) -> "Factor":
        idx = _ensure_polars_series(indices, name="idx")
        return Factor._wrap(self._data.gather(idx), self._levels)

    def head(self, n: int = 5) -> "Factor":
        return Factor._wrap(self._data.head(n), self._levels)

    def counts(self) -> pl.DataFrame:
        """Observation count per level, in level order, zeros included."""
        observed = (
            pl.DataFrame({"level": self._data.cast(pl.Utf8)})
            .drop_nulls("level")
            .group_by("level")
            .agg(pl.len().cast(pl.Int64).alias("count"))
        )
        base = pl.DataFrame(
            {"level": list(self._levels), "_pos": list(range(len(self._levels)))},
            schema={"level": pl.Utf8, "_pos": pl.Int64},
        )
        return (
            base.join(observed, on="level", how="left")
            .with_columns(pl.col("count").fill_null(0))
            .sort("_pos")
            .drop("_pos")
        )

    def equals(self, other: "Factor") -> bool:
        if not isinstance(other, Factor):
            return False
        return self._levels == other._levels and self.to_list() == other.to_list()

    def __repr__(self) -> str:
        labels = ["<NA>" if v is None else v for v in self._data.head(_REPR_MAX).cast(pl.Utf8).to_list()]
        more = " ..." if len(self) > _REPR_MAX else ""
        title = f"Factor {self.name!r}" if self.name else "Factor"
        return (
            f"{title} [{len(self)}]: {', '.join(labels)}{more}\n"
            f"Levels: {' '.join(self._levels)}"
        )
