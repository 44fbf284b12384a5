"""pandas cleaning passes for the housing sales table.

Every pass takes the frame and a CleaningConf class and returns a new frame
(or a PassOutput carrying findings); the input frame is never modified.

Usage::

    from parcelclean.passes.pd_passes import PD_CLEANING_PASSES

    pipeline = CleaningPipeline(PD_CLEANING_PASSES)
    result = pipeline.run(raw_df)

Individual passes can also be called directly:

    df = normalize_vacant_flags(df)
"""
from __future__ import annotations

import logging
from typing import List, Optional, Tuple

import pandas as pd

from parcelclean.conf import CleaningConf
from parcelclean.duplicates import detect_duplicates
from parcelclean.pipeline import (
    ImputationConflict, OrderingViolationError, ParseFailure, PassOutput,
    cleaning_pass,
)
from parcelclean.schema import (
    DERIVED_ADDRESS_COLUMNS, OWNER_ADDRESS, OWNER_CITY, OWNER_STATE,
    OWNER_STREET, PARCEL_ID, PROPERTY_ADDRESS, PROPERTY_CITY, PROPERTY_STREET,
    PRUNED_COLUMNS, SALE_DATE, SOLD_AS_VACANT, UNIQUE_ID, SchemaVersion,
    as_text, project,
)

log = logging.getLogger("parcelclean.passes")


def _blank_to_none(ser: pd.Series) -> pd.Series:
    return as_text(ser.map(lambda v: None if isinstance(v, str) and v == "" else v))


# ============================================================
# Dates
# ============================================================

@cleaning_pass(requires=(SALE_DATE,))
def normalize_sale_dates(df: pd.DataFrame, conf=CleaningConf) -> pd.DataFrame:
    """Truncate sale_date to its calendar date; nulls pass through."""
    df = df.copy()
    dates = df[SALE_DATE]
    if not pd.api.types.is_datetime64_any_dtype(dates):
        dates = pd.to_datetime(dates, errors="coerce", format="mixed")
    df[SALE_DATE] = dates.dt.normalize()
    return df


def has_time_component(ser: pd.Series) -> bool:
    """True when any non-null value is not at midnight."""
    if not pd.api.types.is_datetime64_any_dtype(ser):
        return bool(ser.notna().any())
    vals = ser.dropna()
    return bool((vals != vals.dt.normalize()).any())


# ============================================================
# Address imputation
# ============================================================

def build_address_lookup(df: pd.DataFrame) -> pd.DataFrame:
    """parcel_id -> (property_address, donor unique_id).

    Known addresses are scanned in ascending unique_id order and the first
    one per parcel wins. Records without a parcel_id never donate.
    """
    known = df.loc[df[PROPERTY_ADDRESS].notna() & df[PARCEL_ID].notna(),
                   [UNIQUE_ID, PARCEL_ID, PROPERTY_ADDRESS]]
    first = (known.sort_values(UNIQUE_ID, kind="stable")
             .drop_duplicates(PARCEL_ID, keep="first"))
    return (first.rename(columns={UNIQUE_ID: "donor_unique_id"})
            .set_index(PARCEL_ID))


def preview_imputation(df: pd.DataFrame) -> pd.DataFrame:
    """The fills impute_property_addresses would make, without making them.

    Columns: unique_id, parcel_id, donor_unique_id, imputed_address.
    """
    lookup = build_address_lookup(df)
    targets = df.loc[df[PROPERTY_ADDRESS].isna() & df[PARCEL_ID].isin(lookup.index),
                     [UNIQUE_ID, PARCEL_ID]]
    donors = lookup.loc[targets[PARCEL_ID]]
    return pd.DataFrame({
        UNIQUE_ID: targets[UNIQUE_ID].to_numpy(),
        PARCEL_ID: targets[PARCEL_ID].to_numpy(),
        "donor_unique_id": donors["donor_unique_id"].to_numpy(),
        "imputed_address": donors[PROPERTY_ADDRESS].to_numpy(),
    })


def _imputation_conflicts(df: pd.DataFrame, lookup: pd.DataFrame,
                          parcels) -> List[ImputationConflict]:
    known = df.loc[df[PROPERTY_ADDRESS].notna() & df[PARCEL_ID].isin(parcels),
                   [UNIQUE_ID, PARCEL_ID, PROPERTY_ADDRESS]]
    distinct = (known.sort_values(UNIQUE_ID, kind="stable")
                .groupby(PARCEL_ID, sort=True)[PROPERTY_ADDRESS].unique())
    conflicts = []
    for parcel_id, addresses in distinct.items():
        if len(addresses) > 1:
            conflicts.append(ImputationConflict(
                parcel_id=parcel_id,
                addresses=tuple(addresses),
                chosen=lookup.at[parcel_id, PROPERTY_ADDRESS],
                donor_unique_id=int(lookup.at[parcel_id, "donor_unique_id"]),
            ))
    return conflicts


@cleaning_pass(requires=(UNIQUE_ID, PARCEL_ID, PROPERTY_ADDRESS))
def impute_property_addresses(df: pd.DataFrame, conf=CleaningConf) -> PassOutput:
    """Fill a missing property_address from another sale of the same parcel."""
    lookup = build_address_lookup(df)
    df = df.copy()
    df[PROPERTY_ADDRESS] = as_text(df[PROPERTY_ADDRESS])
    missing = df[PROPERTY_ADDRESS].isna()
    fills = df.loc[missing, PARCEL_ID].map(lookup[PROPERTY_ADDRESS])
    df.loc[missing, PROPERTY_ADDRESS] = fills
    df[PROPERTY_ADDRESS] = _blank_to_none(df[PROPERTY_ADDRESS])

    filled = int(fills.notna().sum())
    log.info("imputed %d of %d missing property addresses", filled, int(missing.sum()))
    # The tie-break only matters for parcels that actually received a fill
    touched = df.loc[missing & df[PROPERTY_ADDRESS].notna(), PARCEL_ID].unique()
    conflicts = _imputation_conflicts(df.loc[~missing], lookup, touched)
    if conflicts:
        log.warning("%d parcels have conflicting addresses; lowest unique_id donor used",
                    len(conflicts))
    return PassOutput(df=df, findings=conflicts)


# ============================================================
# Address parsing
# ============================================================

def split_property_address(value: str) -> Tuple[Optional[str], Optional[str], Optional[str]]:
    """'123 Main St, Nashville' -> ('123 Main St', 'Nashville', None).

    The third element is the failure reason, None when the split worked.
    Without a comma the whole string is kept as the street.
    """
    street, sep, city = value.partition(",")
    street, city = street.strip() or None, city.strip() or None
    if not sep:
        return street, None, "no comma separator"
    if street is None or city is None:
        return street, city, "empty component"
    return street, city, None


def split_owner_address(value: str) -> Tuple[Optional[str], Optional[str], Optional[str], Optional[str]]:
    """'456 Oak Ave, Nashville, TN' -> ('456 Oak Ave', 'Nashville', 'TN', None).

    Tokens are assigned from the right: state, then city, and the street is
    whatever precedes them, extra commas included.
    """
    tokens = [t.strip() or None for t in value.rsplit(",", 2)]
    tokens = [None] * (3 - len(tokens)) + tokens
    street, city, state = tokens
    if street is None and city is None and state is None:
        return None, None, None, "empty component"
    if value.count(",") < 2:
        return street, city, state, "expected street, city and state"
    if street is None or city is None or state is None:
        return street, city, state, "empty component"
    return street, city, state, None


def _split_column(df, pass_name, source, outputs, splitter):
    """Apply ``splitter`` to every non-null value of ``source``."""
    df = df.copy()
    for col in outputs:
        df[col] = pd.Series([None] * len(df), index=df.index, dtype=object)

    present = df[source].notna()
    failures = []
    rows = {col: [] for col in outputs}
    for uid, raw in zip(df.loc[present, UNIQUE_ID], df.loc[present, source]):
        *parts, reason = splitter(str(raw))
        for col, part in zip(outputs, parts):
            rows[col].append(part)
        if reason is not None:
            failures.append(ParseFailure(
                unique_id=int(uid), pass_name=pass_name, column=source,
                value=raw, reason=reason))

    for col in outputs:
        df.loc[present, col] = pd.Series(rows[col], index=df.index[present], dtype=object)

    if failures:
        log.warning("%s: %d of %d values did not parse cleanly",
                    pass_name, len(failures), int(present.sum()))
    return PassOutput(df=df, findings=failures)


@cleaning_pass(requires=(UNIQUE_ID, PROPERTY_ADDRESS),
               provides=(PROPERTY_STREET, PROPERTY_CITY))
def parse_property_address(df: pd.DataFrame, conf=CleaningConf) -> PassOutput:
    """Split property_address into property_street and property_city."""
    return _split_column(df, "parse_property_address", PROPERTY_ADDRESS,
                         (PROPERTY_STREET, PROPERTY_CITY), split_property_address)


@cleaning_pass(requires=(UNIQUE_ID, OWNER_ADDRESS),
               provides=(OWNER_STREET, OWNER_CITY, OWNER_STATE))
def parse_owner_address(df: pd.DataFrame, conf=CleaningConf) -> PassOutput:
    """Split owner_address into owner_street, owner_city and owner_state."""
    return _split_column(df, "parse_owner_address", OWNER_ADDRESS,
                         (OWNER_STREET, OWNER_CITY, OWNER_STATE), split_owner_address)


# ============================================================
# Boolean-like text
# ============================================================

@cleaning_pass(requires=(SOLD_AS_VACANT,))
def normalize_vacant_flags(df: pd.DataFrame, conf=CleaningConf) -> pd.DataFrame:
    """Y -> Yes, N -> No; any other value is left alone."""
    df = df.copy()
    mapping = conf.vacant_map
    df[SOLD_AS_VACANT] = as_text(df[SOLD_AS_VACANT].map(
        lambda v: mapping.get(v, v) if isinstance(v, str) else v))
    return df


# ============================================================
# Pruning
# ============================================================

_PARSE_SOURCES = (
    (PROPERTY_ADDRESS, (PROPERTY_STREET, PROPERTY_CITY)),
    (OWNER_ADDRESS, (OWNER_STREET, OWNER_CITY, OWNER_STATE)),
)


def check_prune_preconditions(df: pd.DataFrame) -> None:
    """Raise OrderingViolationError unless parsing and date normalization ran."""
    absent = [c for c in DERIVED_ADDRESS_COLUMNS if c not in df.columns]
    if absent:
        raise OrderingViolationError(
            f"Cannot prune before address parsing: {', '.join(absent)} missing")

    for source, outputs in _PARSE_SOURCES:
        if source in df.columns and df[source].notna().any():
            if all(df[col].isna().all() for col in outputs):
                raise OrderingViolationError(
                    f"Cannot prune {source}: it has values but "
                    f"{', '.join(outputs)} are all empty")

    if SALE_DATE in df.columns and has_time_component(df[SALE_DATE]):
        raise OrderingViolationError(
            "Cannot prune before date normalization: sale_date still carries times")


@cleaning_pass(requires=DERIVED_ADDRESS_COLUMNS + (SALE_DATE,),
               drops=PRUNED_COLUMNS)
def prune_redundant_columns(df: pd.DataFrame, conf=CleaningConf) -> pd.DataFrame:
    """Drop the raw columns that the parsed columns supersede."""
    check_prune_preconditions(df)
    return project(df, SchemaVersion.PRUNED, pruned=conf.pruned_columns)


PD_CLEANING_PASSES = [
    normalize_sale_dates,
    impute_property_addresses,
    parse_property_address,
    parse_owner_address,
    normalize_vacant_flags,
    detect_duplicates,
    prune_redundant_columns,
]
