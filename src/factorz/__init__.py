import logging

from .factor import Factor
from .levels import (
    count_levels,
    nlevels,
    drop_unused_levels,
    reorder_by_frequency,
    reorder_by_appearance,
    reorder_by_summary,
    relevel,
    reverse_levels,
    recode,
    collapse,
    lump_rare,
)
from .frame import (
    as_factors,
    column_factor,
    describe_factors,
    factor_columns,
    find_stealth_factors,
    level_table,
    sort_by_levels,
    with_factor,
)
from .frame import drop_unused_levels as drop_unused_levels_frame
from .transformers import (
    FactorEncoder,
    LevelDropper,
    LevelReorderer,
    LevelRecoder,
    RareLevelLumper,
)
from .datasets import load_gapminder

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Factor type
    "Factor",
    # Level operations
    "count_levels",
    "nlevels",
    "drop_unused_levels",
    "reorder_by_frequency",
    "reorder_by_appearance",
    "reorder_by_summary",
    "relevel",
    "reverse_levels",
    "recode",
    "collapse",
    "lump_rare",
    # DataFrame helpers
    "as_factors",
    "column_factor",
    "describe_factors",
    "drop_unused_levels_frame",
    "factor_columns",
    "find_stealth_factors",
    "level_table",
    "sort_by_levels",
    "with_factor",
    # Transformers
    "FactorEncoder",
    "LevelDropper",
    "LevelReorderer",
    "LevelRecoder",
    "RareLevelLumper",
    # Datasets
    "load_gapminder",
]
