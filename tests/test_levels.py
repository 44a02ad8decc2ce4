import logging

import pytest

pl = pytest.importorskip("polars", reason="polars is required for factorz tests")
np = pytest.importorskip("numpy")

from factorz import (
    Factor,
    collapse,
    count_levels,
    drop_unused_levels,
    lump_rare,
    nlevels,
    recode,
    relevel,
    reorder_by_appearance,
    reorder_by_frequency,
    reorder_by_summary,
    reverse_levels,
)

CONTINENTS = ["Africa", "Americas", "Asia", "Europe", "Oceania"]


def _pairs(before: Factor, after: Factor) -> set:
    return set(zip(before.to_list(), after.to_list()))


def test_count_levels_continent(continent: Factor) -> None:
    table = count_levels(continent)
    assert table.get_column("level").to_list() == CONTINENTS
    assert table.get_column("count").to_list() == [12, 10, 10, 10, 4]
    assert nlevels(continent) == 5


def test_count_levels_sorted_with_proportions(continent: Factor) -> None:
    table = count_levels(continent, sort=True, prop=True)
    assert table.get_column("level").to_list()[0] == "Africa"
    assert table.get_column("level").to_list()[-1] == "Oceania"
    assert table.get_column("prop").sum() == pytest.approx(1.0)


def test_filtering_keeps_levels_until_dropped(continent: Factor) -> None:
    no_oceania = continent.filter(continent.to_series().cast(pl.Utf8) != "Oceania")
    assert len(no_oceania) == 42
    assert no_oceania.nlevels == 5
    assert count_levels(no_oceania).filter(pl.col("level") == "Oceania").get_column("count").item() == 0

    dropped = drop_unused_levels(no_oceania)
    assert dropped.levels == ["Africa", "Americas", "Asia", "Europe"]
    assert dropped.to_list() == no_oceania.to_list()


def test_drop_unused_levels_only() -> None:
    f = Factor(["b"], levels=["a", "b", "c"])
    assert drop_unused_levels(f, only=["c"]).levels == ["a", "b"]
    assert drop_unused_levels(f).levels == ["b"]
    assert drop_unused_levels(Factor(["a", "b"])).levels == ["a", "b"]


def test_reorder_by_frequency() -> None:
    f = Factor(["b", "c", "c", "a", "c", "b"], levels=["a", "b", "c", "d"])
    assert reorder_by_frequency(f).levels == ["c", "b", "a", "d"]
    assert reorder_by_frequency(f, descending=False).levels == ["d", "a", "b", "c"]


def test_reorder_by_frequency_ties_keep_level_order(continent: Factor) -> None:
    ordered = reorder_by_frequency(continent, descending=False)
    assert ordered.levels == ["Oceania", "Americas", "Asia", "Europe", "Africa"]
    assert ordered.to_list() == continent.to_list()


def test_reorder_by_appearance(continent: Factor) -> None:
    assert reorder_by_appearance(continent).levels == ["Asia", "Europe", "Africa", "Americas", "Oceania"]
    f = Factor(["z", "x"], levels=["x", "y", "z"])
    assert reorder_by_appearance(f).levels == ["z", "x", "y"]


def test_reorder_by_median_life_expectancy(gapminder_2007: pl.DataFrame) -> None:
    continent = Factor.from_series(gapminder_2007.get_column("continent"))
    life = gapminder_2007.get_column("lifeExp")

    ordered = reorder_by_summary(continent, life)
    assert ordered.levels == ["Africa", "Asia", "Americas", "Europe", "Oceania"]
    assert ordered.to_list() == continent.to_list()

    ordered_desc = reorder_by_summary(continent, life, descending=True)
    assert ordered_desc.levels == ordered.levels[::-1]


def test_reorder_by_callable_summary(gapminder_2007: pl.DataFrame) -> None:
    continent = Factor.from_series(gapminder_2007.get_column("continent"))
    ordered = reorder_by_summary(continent, gapminder_2007.get_column("lifeExp"), summary=np.max)
    assert ordered.levels == ["Africa", "Americas", "Europe", "Oceania", "Asia"]


def test_reorder_countries_by_life_expectancy(gapminder_2007: pl.DataFrame) -> None:
    country = Factor.from_series(gapminder_2007.get_column("country"))
    ordered = reorder_by_summary(country, gapminder_2007.get_column("lifeExp"), summary="mean")
    assert ordered.levels[0] == "Angola"
    assert ordered.levels[-1] == "Japan"
    assert ordered.nlevels == 23


def test_reorder_by_summary_places_levels_without_data_last() -> None:
    f = Factor(["a", "b", "a"], levels=["z", "a", "b"])
    assert reorder_by_summary(f, [3.0, 1.0, 5.0]).levels == ["b", "a", "z"]
    assert reorder_by_summary(f, [None, 1.0, None]).levels == ["b", "z", "a"]


def test_reorder_by_summary_errors() -> None:
    f = Factor(["a", "b"])
    with pytest.raises(ValueError):
        reorder_by_summary(f, [1.0])
    with pytest.raises(ValueError):
        reorder_by_summary(f, [1.0, 2.0], summary="mode")


def test_relevel(continent: Factor) -> None:
    assert relevel(continent, "Oceania").levels == ["Oceania", "Africa", "Americas", "Asia", "Europe"]
    assert relevel(continent, "Europe", "Asia").levels == ["Europe", "Asia", "Africa", "Americas", "Oceania"]
    assert relevel(continent, "Africa", after=None).levels == ["Americas", "Asia", "Europe", "Oceania", "Africa"]
    assert relevel(continent, "Oceania", after=2).levels == ["Africa", "Americas", "Oceania", "Asia", "Europe"]
    assert relevel(continent, "Oceania").to_list() == continent.to_list()
    with pytest.raises(ValueError):
        relevel(continent, "Antarctica")


def test_reverse_levels(continent: Factor) -> None:
    assert reverse_levels(continent).levels == CONTINENTS[::-1]


def test_recode_renames_without_merging(continent: Factor) -> None:
    renamed = recode(continent, {"Americas": "America", "Oceania": "Australasia"})
    assert renamed.levels == ["Africa", "America", "Asia", "Europe", "Australasia"]
    # one-to-one: the partition of observations is unchanged
    pairs = _pairs(continent, renamed)
    assert len(pairs) == 5
    assert len({new for _, new in pairs}) == 5


def test_recode_merges_levels(continent: Factor) -> None:
    merged = recode(continent, {"Americas": "West", "Europe": "West", "Oceania": "West"})
    assert merged.levels == ["Africa", "West", "Asia"]
    counts = dict(count_levels(merged).iter_rows())
    assert counts == {"Africa": 12, "West": 24, "Asia": 10}
    assert merged.nlevels <= continent.nlevels


def test_recode_to_existing_label_merges() -> None:
    f = Factor(["a", "b", "c"])
    assert recode(f, {"c": "a"}).to_list() == ["a", "b", "a"]
    assert recode(f, {"c": "a"}).levels == ["a", "b"]


def test_recode_to_none_makes_observations_missing() -> None:
    f = Factor(["a", "b", "a"])
    out = recode(f, {"a": None})
    assert out.levels == ["b"]
    assert out.to_list() == [None, "b", None]


def test_recode_unknown_levels(caplog: pytest.LogCaptureFixture) -> None:
    f = Factor(["a", "b"])
    with pytest.raises(ValueError):
        recode(f, {"q": "x"})
    with caplog.at_level(logging.WARNING, logger="factorz.levels"):
        out = recode(f, {"q": "x", "a": "A"}, strict=False)
    assert out.levels == ["A", "b"]
    assert "q" in caplog.text


def test_recode_never_increases_level_count(continent: Factor) -> None:
    mappings = [
        {},
        {"Africa": "AF"},
        {"Asia": "Europe"},
        {"Africa": "X", "Americas": "X", "Asia": "X", "Europe": "X", "Oceania": "X"},
        {"Oceania": None},
    ]
    for mapping in mappings:
        out = recode(continent, mapping)
        assert out.nlevels <= continent.nlevels
        assert len(set(out.to_list()) - {None}) <= len(set(continent.to_list()))


def test_collapse(continent: Factor) -> None:
    grouped = collapse(continent, {"Eurasia": ["Europe", "Asia"]})
    assert grouped.levels == ["Africa", "Americas", "Eurasia", "Oceania"]

    with_other = collapse(continent, {"Eurasia": ["Europe", "Asia"]}, other="Rest")
    assert with_other.levels == ["Eurasia", "Rest"]
    assert dict(count_levels(with_other).iter_rows()) == {"Eurasia": 20, "Rest": 26}

    with pytest.raises(ValueError):
        collapse(continent, {"A": ["Asia"], "B": ["Asia"]})
    with pytest.raises(ValueError):
        collapse(continent, {"A": ["Atlantis"]})


def test_lump_rare(continent: Factor) -> None:
    # a single rare level is left alone
    assert lump_rare(continent, min_frequency=5).levels == CONTINENTS

    lumped = lump_rare(continent, min_frequency=11)
    assert lumped.levels == ["Africa", "Other"]
    assert dict(count_levels(lumped).iter_rows()) == {"Africa": 12, "Other": 34}

    by_share = lump_rare(continent, min_frequency=0.25, other_label="Elsewhere")
    assert by_share.levels == ["Africa", "Elsewhere"]
