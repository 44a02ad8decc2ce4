# ---
# jupyter:
#   jupytext:
#     text_representation:
#       extension: .py
#       format_name: percent
#       format_version: '1.3'
#       jupytext_version: 1.15.0
#   kernelspec:
#     display_name: Python 3
#     language: python
#     name: python3
# ---

# %% [markdown]
# # Be the boss of your factors
#
# Categorical variables ("factors") look like text but are stored as an integer index into an
# ordered set of labels, the *levels*. The level order decides how tables are sorted and how
# legends are laid out, so it pays to inspect and control it explicitly. A factor you are not
# aware of, treated as free text, is a *stealth factor*, and it will surprise you.
#
# We'll use an excerpt of the Gapminder country table bundled with `factorz`:
#
# - **Rows**: 23 countries in 1952 and 2007
# - **Factors**: `country`, `continent`
# - **Numbers**: life expectancy (`lifeExp`), population (`pop`), GDP per capita (`gdpPercap`)

# %% [markdown]
# ## Setup

# %%
import numpy as np
import polars as pl
from factorz import (
    Factor,
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
    reorder_by_frequency,
    reorder_by_summary,
    reverse_levels,
    sort_by_levels,
    with_factor,
)

pl.Config.set_tbl_rows(12)
pl.Config.set_tbl_cols(10)

# %% [markdown]
# ## Spot the stealth factors
#
# Loaded as plain strings, `continent` is really a factor in disguise: five labels repeated over
# many rows. `country` has more labels, so raise the threshold to see it too.

# %%
raw = load_gapminder(as_factors=False)
find_stealth_factors(raw), find_stealth_factors(raw, max_levels=30)

# %% [markdown]
# Loading with `as_factors=True` (the default) stores both as Polars `Enum` columns whose levels
# are the distinct values in alphabetical order.

# %%
gapminder = load_gapminder()
gapminder.schema

# %%
continent = column_factor(gapminder, "continent")
continent

# %% [markdown]
# ## Inspect a factor
#
# How many levels, which ones, and how the integer codes line up with the labels.

# %%
continent.nlevels, continent.levels

# %%
continent.codes.head(6).to_list(), continent.head(6).to_list()

# %% [markdown]
# Count observations per level. The table always lists every level, even when its count is 0.

# %%
count_levels(continent, prop=True)

# %% [markdown]
# ## Dropping unused levels
#
# Filtering rows does **not** shrink a factor's level set. Drop Oceania and the level is still
# there, now with zero rows.

# %%
no_oceania = gapminder.filter(pl.col("continent").cast(pl.Utf8) != "Oceania")
no_oceania.height, column_factor(no_oceania, "continent").nlevels

# %%
describe_factors(no_oceania)

# %% [markdown]
# Removing unused levels is an explicit step, either on one factor or on every factor column of a
# frame at once.

# %%
drop_unused_levels(column_factor(no_oceania, "continent")).levels

# %%
describe_factors(drop_unused_levels_frame(no_oceania))

# %% [markdown]
# ## Change the order of the levels
#
# Alphabetical order is rarely what you want. Ordering by frequency puts the most common level
# first, which is usually the right choice for bar charts and tables.

# %%
by_frequency = reorder_by_frequency(continent)
count_levels(by_frequency)

# %%
count_levels(reverse_levels(by_frequency))

# %% [markdown]
# Often the most useful order comes from another variable. Here continents are ordered by their
# median life expectancy in 2007; the labels of the rows do not change, only the level order.

# %%
recent = gapminder.filter(pl.col("year") == 2007)
recent_continent = column_factor(recent, "continent")
by_life = reorder_by_summary(recent_continent, recent.get_column("lifeExp"))
by_life.levels

# %% [markdown]
# Any named aggregation works (`median`, `mean`, `min`, `max`, `sum`, `std`, `count`), and so does
# a function of an array, such as the spread of GDP per capita.

# %%
spread = reorder_by_summary(
    recent_continent,
    recent.get_column("gdpPercap"),
    summary=lambda values: float(np.max(values) - np.min(values)),
    descending=True,
)
spread.levels

# %% [markdown]
# The same idea sorts the countries themselves, which makes a table read from shortest to
# longest life expectancy.

# %%
country_by_life = reorder_by_summary(column_factor(recent, "country"), recent.get_column("lifeExp"))
sort_by_levels(with_factor(recent, country_by_life), "country").select(["country", "continent", "lifeExp"])

# %% [markdown]
# Sometimes you just want one or two levels in front. `relevel` moves the named levels and keeps
# the rest in their current order.

# %%
relevel(continent, "Oceania", "Europe").levels

# %%
relevel(continent, "Africa", after=None).levels

# %% [markdown]
# Reordering never changes what each row holds:

# %%
relevel(continent, "Oceania").to_list() == continent.to_list()

# %% [markdown]
# ## Recode the levels
#
# `recode` renames levels with an `{old: new}` mapping. Renaming alone keeps the rows partitioned
# exactly as before.

# %%
renamed = recode(continent, {"Americas": "America", "Oceania": "Australasia"})
count_levels(renamed)

# %% [markdown]
# Mapping several old labels to one new label merges them; those rows can no longer be told
# apart. The level count can only go down.

# %%
merged = recode(continent, {"Americas": "West", "Europe": "West", "Oceania": "West"})
count_levels(merged)

# %% [markdown]
# `collapse` does the same with groups, and can sweep everything else into one level.

# %%
count_levels(collapse(continent, {"Eurasia": ["Europe", "Asia"]}, other="Rest"))

# %% [markdown]
# `lump_rare` merges infrequent levels automatically.

# %%
count_levels(lump_rare(continent, min_frequency=11))

# %% [markdown]
# Misspelled levels are reported instead of being silently ignored.

# %%
try:
    recode(continent, {"Antartica": "Ice"})
except ValueError as exc:
    print(exc)

# %% [markdown]
# ## Build a factor by hand
#
# Give the levels explicitly when the natural order is not alphabetical. Values that are not in
# the level set become missing (and a warning is logged).

# %%
income = Factor(["low", "high", "medium", "high", "unknown"], levels=["low", "medium", "high"], name="income")
income, count_levels(income)

# %% [markdown]
# Factors also round-trip from integer codes, which is how they are stored underneath.

# %%
Factor.from_codes(income.codes.to_list(), income.levels, name="income").equals(income)
