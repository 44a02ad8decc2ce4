"""Level operations on :class:`~factorz.factor.Factor`.

Every function returns a new value and leaves its input untouched. The
functions fall into four groups:

- inspection: ``count_levels``, ``nlevels``
- narrowing: ``drop_unused_levels``
- reordering: ``reorder_by_frequency``, ``reorder_by_appearance``,
  ``reorder_by_summary``, ``relevel``, ``reverse_levels``
- relabelling: ``recode``, ``collapse``, ``lump_rare``

Reordering never changes which label an observation carries. Relabelling
maps each old level to exactly one new level (or to missing), so the number
of levels can only stay the same or shrink.
"""
from __future__ import annotations

import logging
import math
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

import numpy as np
import polars as pl

from .base import _ensure_polars_series
from .factor import Factor

logger = logging.getLogger(__name__)

Summary = Union[str, Callable[[np.ndarray], float]]

_SUMMARY_EXPRS: Dict[str, Callable[[pl.Expr], pl.Expr]] = {
    "median": lambda e: e.median(),
    "mean": lambda e: e.mean(),
    "min": lambda e: e.min(),
    "max": lambda e: e.max(),
    "sum": lambda e: e.sum(),
    "std": lambda e: e.std(),
    "count": lambda e: e.count(),
}


def nlevels(factor: Factor) -> int:
    return factor.nlevels


def count_levels(factor: Factor, sort: bool = False, prop: bool = False) -> pl.DataFrame:
    """Table of ``level`` and ``count``; unused levels show a zero count.

    With ``sort`` the most frequent level comes first (ties keep level order).
    With ``prop`` a ``prop`` column holds each count over the non-missing total.
    """
    table = factor.counts()
    if sort:
        table = table.with_row_index("_pos").sort(["count", "_pos"], descending=[True, False]).drop("_pos")
    if prop:
        total = float(table.get_column("count").sum())
        table = table.with_columns(
            (pl.col("count") / total if total > 0 else pl.lit(0.0)).alias("prop")
        )
    return table


def drop_unused_levels(factor: Factor, only: Optional[Sequence[str]] = None) -> Factor:
    """Remove levels that no observation references.

    ``only`` restricts the candidates: unused levels not listed are kept.
    """
    unused = set(factor.unused_levels())
    if only is not None:
        unused &= {str(lvl) for lvl in only}
    if not unused:
        return factor
    keep = [lvl for lvl in factor.levels if lvl not in unused]
    logger.debug("dropping unused levels of %r: %s", factor.name, sorted(unused))
    return Factor(factor.to_series(), levels=keep)


def reorder_by_frequency(factor: Factor, descending: bool = True) -> Factor:
    """Order levels by observation count, most frequent first by default."""
    table = factor.counts().with_row_index("_pos")
    ordered = table.sort(["count", "_pos"], descending=[descending, False])
    return factor.reorder_levels(ordered.get_column("level").to_list())


def reorder_by_appearance(factor: Factor) -> Factor:
    """Order levels by first appearance in the data; unused levels go last."""
    seen = factor.to_series().drop_nulls().cast(pl.Utf8).unique(maintain_order=True).to_list()
    rest = [lvl for lvl in factor.levels if lvl not in set(seen)]
    return factor.reorder_levels(seen + rest)


def _summarise(labels: pl.Series, x: pl.Series, summary: Summary) -> Dict[str, Optional[float]]:
    frame = pl.DataFrame({"level": labels, "x": x}).drop_nulls("level")
    if callable(summary):
        grouped = frame.group_by("level").agg(pl.col("x").drop_nulls())
        out: Dict[str, Optional[float]] = {}
        for level, values in grouped.iter_rows():
            if not values:
                out[level] = None
                continue
            value = summary(np.asarray(values, dtype=float))
            out[level] = None if value is None else float(value)
        return out
    if summary not in _SUMMARY_EXPRS:
        raise ValueError(
            f"unknown summary {summary!r}; expected one of {sorted(_SUMMARY_EXPRS)} or a callable"
        )
    agg = frame.group_by("level").agg(_SUMMARY_EXPRS[summary](pl.col("x").cast(pl.Float64)).alias("stat"))
    return dict(agg.iter_rows())


def reorder_by_summary(
    factor: Factor,
    x: Any,
    summary: Summary = "median",
    descending: bool = False,
) -> Factor:
    """Order levels by a summary statistic of ``x`` computed within each level.

    ``x`` is aligned with the factor's observations. ``summary`` names a
    Polars aggregation (median, mean, min, max, sum, std, count) or is a
    callable taking a numpy array of a level's non-missing values. Ties keep
    the current order; levels with no statistic (unused, or all ``x``
    missing) go last.
    """
    values = _ensure_polars_series(x, name="x")
    if values.len() != len(factor):
        raise ValueError(f"x has length {values.len()}, expected {len(factor)}")
    stats = _summarise(factor.to_series().cast(pl.Utf8), values, summary)

    def key(item):
        pos, level = item
        stat = stats.get(level)
        if stat is None or (isinstance(stat, float) and math.isnan(stat)):
            return (1, 0.0, pos)
        return (0, -stat if descending else stat, pos)

    ordered = [level for _, level in sorted(enumerate(factor.levels), key=key)]
    logger.debug("levels of %r by %s of x: %s", factor.name, getattr(summary, "__name__", summary), ordered)
    return factor.reorder_levels(ordered)


def relevel(factor: Factor, *levels: str, after: Optional[int] = 0) -> Factor:
    """Move the named levels, in the given order, to position ``after``.

    ``after=0`` puts them in front, ``after=None`` at the end, and any other
    integer places them after that many of the remaining levels.
    """
    moved = [str(lvl) for lvl in levels]
    unknown = [lvl for lvl in moved if lvl not in factor.levels]
    if unknown:
        raise ValueError(f"unknown levels {unknown}; levels are {factor.levels}")
    rest = [lvl for lvl in factor.levels if lvl not in set(moved)]
    pos = len(rest) if after is None else max(0, min(int(after), len(rest)))
    return factor.reorder_levels(rest[:pos] + moved + rest[pos:])


def reverse_levels(factor: Factor) -> Factor:
    return factor.reorder_levels(factor.levels[::-1])


def _relabel(factor: Factor, mapping: Dict[str, Optional[str]]) -> Factor:
    """Apply a complete ``{old_level: new_level_or_None}`` mapping."""
    new_levels: List[str] = []
    for old in factor.levels:
        new = mapping[old]
        if new is not None and new not in new_levels:
            new_levels.append(new)
    olds = list(mapping.keys())
    news = [mapping[k] for k in olds]
    labels = factor.to_series().cast(pl.Utf8).replace_strict(
        olds, news, default=None, return_dtype=pl.Utf8
    )
    merged = len(factor.levels) - len(new_levels)
    if merged:
        logger.debug("relabelling %r removed %d level(s)", factor.name, merged)
    return Factor(labels.alias(factor.name), levels=new_levels)


def recode(factor: Factor, mapping: Dict[str, Optional[str]], strict: bool = True) -> Factor:
    """Rename levels with ``{old: new}``.

    Several old labels mapped to one new label merge into a single level. A
    new label of ``None`` removes the level and its observations become
    missing. Levels not named keep their label. The new level set follows
    the position where each new label first appears in the old order.
    Unknown old labels raise ``ValueError`` unless ``strict`` is False, in
    which case they are logged and ignored.
    """
    unknown = [old for old in mapping if str(old) not in factor.levels]
    if unknown:
        if strict:
            raise ValueError(f"unknown levels {unknown}; levels are {factor.levels}")
        logger.warning("ignoring unknown levels in recode of %r: %s", factor.name, unknown)
    full: Dict[str, Optional[str]] = {lvl: lvl for lvl in factor.levels}
    for old, new in mapping.items():
        if str(old) in full:
            full[str(old)] = None if new is None else str(new)
    return _relabel(factor, full)


def collapse(
    factor: Factor,
    groups: Dict[str, Sequence[str]],
    other: Optional[str] = None,
) -> Factor:
    """Merge levels into named groups, ``{new: [old, ...]}``.

    With ``other`` set, every level not named in ``groups`` is merged into
    ``other``, which is placed last.
    """
    mapping: Dict[str, Optional[str]] = {}
    for new, olds in groups.items():
        if isinstance(olds, str):
            olds = [olds]
        for old in olds:
            if str(old) in mapping:
                raise ValueError(f"level {old!r} is assigned to more than one group")
            mapping[str(old)] = str(new)
    unknown = [old for old in mapping if old not in factor.levels]
    if unknown:
        raise ValueError(f"unknown levels {unknown}; levels are {factor.levels}")
    if other is None:
        return recode(factor, mapping)
    full: Dict[str, Optional[str]] = {lvl: mapping.get(lvl, other) for lvl in factor.levels}
    collapsed = _relabel(factor, full)
    if other in collapsed.levels:
        collapsed = relevel(collapsed, other, after=None)
    return collapsed


def lump_rare(
    factor: Factor,
    min_frequency: Union[int, float] = 0.05,
    other_label: str = "Other",
) -> Factor:
    """Merge levels observed less often than ``min_frequency`` into ``other_label``.

    ``min_frequency`` is a proportion of the non-missing observations when it
    is a float in (0, 1), otherwise a minimum count. Unused levels count as
    rare. Nothing changes when at most one level would be lumped.
    """
    table = factor.counts()
    counts = dict(table.iter_rows())
    total = sum(counts.values())
    if isinstance(min_frequency, float) and 0 < min_frequency < 1:
        threshold = min_frequency * total
    else:
        threshold = int(min_frequency)
    rare = [lvl for lvl in factor.levels if counts[lvl] < threshold]
    if len(rare) <= 1:
        return factor
    if other_label in factor.levels and other_label not in rare:
        raise ValueError(f"other_label {other_label!r} clashes with a frequent level")
    logger.debug("lumping %d rare level(s) of %r into %r", len(rare), factor.name, other_label)
    return relevel(collapse(factor, {other_label: rare}), other_label, after=None)
