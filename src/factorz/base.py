from __future__ import annotations

from typing import Any, Dict, List, Sequence

import numpy as np
import polars as pl


def _ensure_polars_df(df: pl.DataFrame) -> pl.DataFrame:
    if isinstance(df, pl.DataFrame):
        return df

    # Lazy import so pandas remains optional
    pd = None
    if df.__class__.__module__.startswith("pandas"):
        try:
            import pandas as pd  # type: ignore
        except ImportError as exc:  # pragma: no cover - import guard
            raise TypeError(
                "Pandas support requires installing pandas; install pandas to pass pandas.DataFrame"
            ) from exc
    if pd is not None and isinstance(df, pd.DataFrame):  # type: ignore[name-defined]
        out = pl.from_pandas(df)
        categorical = [
            _ensure_polars_series(df[col]).alias(str(col))
            for col in df.columns
            if isinstance(df[col].dtype, pd.CategoricalDtype)
        ]
        return out.with_columns(categorical) if categorical else out

    raise TypeError("Expected a polars.DataFrame or pandas.DataFrame")


def _ensure_polars_series(series: Any, name: str = "") -> pl.Series:
    """Coerce a Polars/pandas Series or a plain sequence into a Polars Series.

    pandas ``category`` columns come back as ``pl.Enum`` so their category
    order survives the trip.
    """
    if isinstance(series, pl.Series):
        return series

    pd = None
    if series.__class__.__module__.startswith("pandas"):
        try:
            import pandas as pd  # type: ignore
        except ImportError as exc:  # pragma: no cover - import guard
            raise TypeError(
                "Pandas support requires installing pandas; install pandas to pass pandas.Series"
            ) from exc
    if pd is not None and isinstance(series, pd.Series):  # type: ignore[name-defined]
        sname = str(series.name) if series.name is not None else name
        if isinstance(series.dtype, pd.CategoricalDtype):
            levels = [str(c) for c in series.cat.categories]
            values = [None if pd.isna(v) else str(v) for v in series.tolist()]
            return pl.Series(sname, values, dtype=pl.Utf8).cast(pl.Enum(levels))
        return pl.from_pandas(series).alias(sname)

    if isinstance(series, (list, tuple)):
        return pl.Series(name, list(series))
    if isinstance(series, np.ndarray):
        return pl.Series(name, series)

    raise TypeError("Expected a polars.Series, pandas.Series, numpy array, list or tuple")


def _require_columns(df: pl.DataFrame, columns: Sequence[str]) -> None:
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise ValueError(f"columns not found: {missing}")


def _is_string(dtype: pl.DataType) -> bool:
    try:
        return bool(dtype.is_(pl.Utf8) or dtype.is_(pl.String))  # type: ignore[attr-defined]
    except AttributeError:
        return False


def _is_enum(dtype: pl.DataType) -> bool:
    return isinstance(dtype, pl.Enum)


class Transformer:
    """Simple fit/transform interface for Polars DataFrames holding factors.

    Subclasses should implement fit(self, df: pl.DataFrame) -> "Transformer"
    and transform(self, df: pl.DataFrame) -> pl.DataFrame.
    """

    feature_names_in_: List[str] | None = None
    is_fitted_: bool = False

    def fit(self, df: pl.DataFrame) -> "Transformer":  # pragma: no cover
        raise NotImplementedError

    def transform(self, df: pl.DataFrame) -> pl.DataFrame:  # pragma: no cover
        raise NotImplementedError

    def fit_transform(self, df: pl.DataFrame) -> pl.DataFrame:
        return self.fit(df).transform(df)

    def _check_fitted(self) -> None:
        if not self.is_fitted_:
            raise RuntimeError("Call fit before transform")

    def to_dict(self) -> Dict[str, Any]:
        # Learned state lives in attrs ending with '_'; level sets are plain lists/dicts
        state: Dict[str, Any] = {}
        for k, v in self.__dict__.items():
            if not k.endswith("_"):
                continue
            if isinstance(v, dict):
                state[k] = {key: list(val) if isinstance(val, tuple) else val for key, val in v.items()}
            elif isinstance(v, (list, str, int, float, bool, type(None))):
                state[k] = v
        state["__class__"] = self.__class__.__name__
        return state

    def from_dict(self, state: Dict[str, Any]) -> "Transformer":
        if state.get("__class__") not in (None, self.__class__.__name__):
            raise ValueError(
                f"state was saved from {state['__class__']}, not {self.__class__.__name__}"
            )
        for k, v in state.items():
            if k == "__class__":
                continue
            setattr(self, k, v)
        return self
