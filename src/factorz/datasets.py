from __future__ import annotations

import io
from importlib import resources

import polars as pl

from .frame import as_factors as _as_factors

GAPMINDER_FILE = "gapminder_excerpt.csv"

_GAPMINDER_SCHEMA = {
    "country": pl.Utf8,
    "continent": pl.Utf8,
    "year": pl.Int64,
    "lifeExp": pl.Float64,
    "pop": pl.Int64,
    "gdpPercap": pl.Float64,
}


def load_gapminder(as_factors: bool = True) -> pl.DataFrame:
    """Load the bundled excerpt of the Gapminder country table.

    23 countries on five continents, observed in 1952 and 2007, with life
    expectancy (``lifeExp``), population (``pop``) and GDP per capita
    (``gdpPercap``). Values are rounded and meant for demonstrations only.

    With ``as_factors`` the ``country`` and ``continent`` columns are Enum
    columns with levels in lexical order; otherwise they are plain strings.
    """
    raw = (resources.files("factorz") / "data" / GAPMINDER_FILE).read_bytes()
    df = pl.read_csv(io.BytesIO(raw), schema_overrides=_GAPMINDER_SCHEMA)
    if as_factors:
        df = _as_factors(df, columns=["country", "continent"])
    return df
