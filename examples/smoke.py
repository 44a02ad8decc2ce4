import logging

import polars as pl
from factorz import (
    Factor,
    FactorEncoder,
    LevelDropper,
    LevelRecoder,
    LevelReorderer,
    RareLevelLumper,
    collapse,
    column_factor,
    count_levels,
    describe_factors,
    drop_unused_levels,
    drop_unused_levels_frame,
    find_stealth_factors,
    load_gapminder,
    lump_rare,
    recode,
    relevel,
    reorder_by_appearance,
    reorder_by_frequency,
    reorder_by_summary,
    reverse_levels,
)


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    f = Factor(["b", "a", "c", "a", None])
    print("Factor:\n", f)
    print("\nCodes:", f.codes.to_list())
    print("\nCounts:\n", count_levels(f, prop=True))

    subset = f.filter([True, True, False, True, False])
    print("\nSubset keeps levels:", subset.levels, "unused:", subset.unused_levels())
    print("Dropped:", drop_unused_levels(subset).levels)

    print("\nBy frequency:", reorder_by_frequency(f).levels)
    print("By appearance:", reorder_by_appearance(f).levels)
    print("By mean of x:", reorder_by_summary(f, [3.0, 1.0, 2.0, 1.5, 9.0], summary="mean").levels)
    print("Relevel c first:", relevel(f, "c").levels)
    print("Reversed:", reverse_levels(f).levels)
    print("Recode a->z:", recode(f, {"a": "z"}))
    print("Collapse:", collapse(f, {"ab": ["a", "b"]}).levels)
    print("Lump rare:", lump_rare(f, min_frequency=2).levels)

    raw = load_gapminder(as_factors=False)
    print("\nStealth factors:", find_stealth_factors(raw))

    df = FactorEncoder(add_codes=True).fit_transform(raw)
    print("\nFactorEncoder:\n", df.head())

    no_oceania = df.filter(pl.col("continent").cast(pl.Utf8) != "Oceania")
    print("\nAfter filter:\n", describe_factors(no_oceania))
    print("\nAfter drop_unused_levels_frame:\n", describe_factors(drop_unused_levels_frame(no_oceania)))
    print("\nLevelDropper:", column_factor(LevelDropper(["continent"]).fit_transform(no_oceania), "continent").levels)

    recent = df.filter(pl.col("year") == 2007)
    ordered = LevelReorderer(["continent"], by="summary", summary_column="lifeExp").fit_transform(recent)
    print("\nContinents by median lifeExp (2007):", column_factor(ordered, "continent").levels)

    recoded = LevelRecoder({"continent": {"Americas": "America"}}).fit_transform(df)
    print("Recoded:", column_factor(recoded, "continent").levels)

    lumped = RareLevelLumper(["continent"], min_frequency=11).fit_transform(df)
    print("Lumped:", column_factor(lumped, "continent").levels)

    # Values outside the level set become missing with a warning
    print("\nExplicit levels:", Factor(["lo", "hi", "mid"], levels=["lo", "hi"]))


if __name__ == "__main__":
    main()
