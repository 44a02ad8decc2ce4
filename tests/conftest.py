import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent
SRC_PATH = ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

pl = pytest.importorskip("polars", reason="polars is required for factorz tests")

from factorz import Factor, load_gapminder


@pytest.fixture(scope="session")
def gapminder() -> pl.DataFrame:
    return load_gapminder()


@pytest.fixture(scope="session")
def gapminder_raw() -> pl.DataFrame:
    return load_gapminder(as_factors=False)


@pytest.fixture()
def gapminder_2007(gapminder: pl.DataFrame) -> pl.DataFrame:
    return gapminder.filter(pl.col("year") == 2007)


@pytest.fixture()
def continent(gapminder: pl.DataFrame) -> Factor:
    return Factor.from_series(gapminder.get_column("continent"))
