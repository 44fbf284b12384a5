"""Duplicate sale detection.

Records that agree on every duplicate-key column form a group. Members are
ranked by ascending unique_id and everything after the first member is
flagged. Nothing is deleted here; the report is for a reviewer to act on.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Sequence, Tuple

import pandas as pd

from parcelclean.conf import CleaningConf
from parcelclean.pipeline import PassOutput, cleaning_pass
from parcelclean.schema import UNIQUE_ID

log = logging.getLogger("parcelclean.duplicates")

RANK_COL = "dup_rank"
GROUP_COL = "dup_group"


@dataclass(frozen=True)
class DuplicateGroup:
    group: int
    key: Tuple[Any, ...]
    unique_ids: Tuple[int, ...]

    @property
    def kept(self) -> int:
        return self.unique_ids[0]

    @property
    def flagged(self) -> Tuple[int, ...]:
        return self.unique_ids[1:]


@dataclass
class DuplicateReport:
    key_columns: Tuple[str, ...]
    groups: List[DuplicateGroup] = field(default_factory=list)
    # unique_id, dup_group, dup_rank for every flagged record (rank > 1)
    flagged: pd.DataFrame = field(default_factory=pd.DataFrame)

    @property
    def group_count(self) -> int:
        return len(self.groups)

    @property
    def flagged_ids(self) -> List[int]:
        if self.flagged.empty:
            return []
        return self.flagged[UNIQUE_ID].tolist()


def _key_value(v):
    return None if pd.isna(v) else v


def rank_duplicates(df: pd.DataFrame, key_columns: Sequence[str]) -> pd.DataFrame:
    """unique_id, dup_group and dup_rank (1-based) for every record.

    Null key values compare equal to each other, the same way rows fall into
    one partition of a SQL window.
    """
    key_columns = list(key_columns)
    ordered = df[[UNIQUE_ID] + key_columns].sort_values(UNIQUE_ID, kind="stable")
    grouped = ordered.groupby(key_columns, dropna=False, sort=False)
    return pd.DataFrame({
        UNIQUE_ID: ordered[UNIQUE_ID],
        GROUP_COL: grouped.ngroup(),
        RANK_COL: grouped.cumcount() + 1,
    })


def find_duplicates(df: pd.DataFrame, key_columns: Sequence[str] = CleaningConf.duplicate_key) -> DuplicateReport:
    key_columns = tuple(key_columns)
    ranks = rank_duplicates(df, key_columns)
    sizes = ranks.groupby(GROUP_COL)[UNIQUE_ID].transform("size")
    in_group = ranks[sizes > 1]

    keys = df.set_index(UNIQUE_ID).loc[:, list(key_columns)]
    groups = []
    for group_no, members in in_group.groupby(GROUP_COL, sort=False):
        ids = tuple(int(i) for i in members[UNIQUE_ID])
        key = tuple(_key_value(v) for v in keys.loc[ids[0]])
        groups.append(DuplicateGroup(group=int(group_no), key=key, unique_ids=ids))

    flagged = in_group[in_group[RANK_COL] > 1].reset_index(drop=True)
    return DuplicateReport(key_columns=key_columns, groups=groups, flagged=flagged)


def count_duplicate_groups(df: pd.DataFrame, key_columns: Sequence[str]) -> int:
    """Number of key groups with more than one record."""
    if df.empty:
        return 0
    sizes = df.groupby(list(key_columns), dropna=False).size()
    return int((sizes > 1).sum())


@cleaning_pass(requires=CleaningConf.duplicate_key)
def detect_duplicates(df: pd.DataFrame, conf=CleaningConf) -> PassOutput:
    """Flag repeated sales; the frame is returned unchanged."""
    report = find_duplicates(df, conf.duplicate_key)
    if report.group_count:
        log.warning("%d duplicate groups, %d records flagged",
                    report.group_count, len(report.flagged))
    return PassOutput(df=df, report=report)
