"""Column layout of the housing sales table.

The table moves through three schema versions:

  - RAW: what the loader hands to the pipeline
  - PARSED: RAW plus the street/city/state columns split out of the
    composite address strings
  - PRUNED: PARSED without the raw columns the split columns supersede

``conform_raw_frame`` is the only place raw headers and dtypes are touched.
"""
from __future__ import annotations

import enum
import logging
import re
from typing import Dict, List, Tuple

import pandas as pd

log = logging.getLogger("parcelclean.schema")


class SchemaMismatchError(Exception):
    """The source table does not have the expected housing sales columns."""

    def __init__(self, missing: List[str], problem: str = "missing columns"):
        self.missing = list(missing)
        super().__init__(f"{problem}: {', '.join(self.missing)}")


UNIQUE_ID = "unique_id"
PARCEL_ID = "parcel_id"
PROPERTY_ADDRESS = "property_address"
OWNER_ADDRESS = "owner_address"
SALE_DATE = "sale_date"
SALE_PRICE = "sale_price"
SOLD_AS_VACANT = "sold_as_vacant"
LEGAL_REFERENCE = "legal_reference"
LAND_USE = "land_use"
TAX_DISTRICT = "tax_district"

PROPERTY_STREET = "property_street"
PROPERTY_CITY = "property_city"
OWNER_STREET = "owner_street"
OWNER_CITY = "owner_city"
OWNER_STATE = "owner_state"

REQUIRED_RAW_COLUMNS: Tuple[str, ...] = (
    UNIQUE_ID, PARCEL_ID, LAND_USE, PROPERTY_ADDRESS, SALE_DATE, SALE_PRICE,
    LEGAL_REFERENCE, SOLD_AS_VACANT, OWNER_ADDRESS, TAX_DISTRICT,
)

DERIVED_ADDRESS_COLUMNS: Tuple[str, ...] = (
    PROPERTY_STREET, PROPERTY_CITY, OWNER_STREET, OWNER_CITY, OWNER_STATE,
)

# sale_date stays: the normalizer has already replaced the time-bearing
# values with calendar dates by the time the pruner runs
PRUNED_COLUMNS: Tuple[str, ...] = (OWNER_ADDRESS, TAX_DISTRICT, PROPERTY_ADDRESS)

# Headers of the published dataset that a generic camel-case split gets wrong
HEADER_ALIASES: Dict[str, str] = {
    "UniqueID": UNIQUE_ID,
    "ParcelID": PARCEL_ID,
}

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_PRICE_NOISE = re.compile(r"[\$,\s]")


class SchemaVersion(enum.Enum):
    RAW = "raw"
    PARSED = "parsed"
    PRUNED = "pruned"


def schema_columns(version: SchemaVersion, pruned=PRUNED_COLUMNS) -> Tuple[str, ...]:
    """Required columns for a schema version, in output order."""
    if version is SchemaVersion.RAW:
        return REQUIRED_RAW_COLUMNS
    parsed = REQUIRED_RAW_COLUMNS + DERIVED_ADDRESS_COLUMNS
    if version is SchemaVersion.PARSED:
        return parsed
    return tuple(c for c in parsed if c not in pruned)


def detect_version(df: pd.DataFrame) -> SchemaVersion:
    cols = set(df.columns)
    if not set(DERIVED_ADDRESS_COLUMNS) <= cols:
        return SchemaVersion.RAW
    if cols.isdisjoint(PRUNED_COLUMNS):
        return SchemaVersion.PRUNED
    return SchemaVersion.PARSED


def project(df: pd.DataFrame, version: SchemaVersion, pruned=PRUNED_COLUMNS) -> pd.DataFrame:
    """Return a new frame holding the ``version`` columns followed by any
    pass-through columns that version does not remove."""
    wanted = schema_columns(version, pruned)
    missing = [c for c in wanted if c not in df.columns]
    if missing:
        raise SchemaMismatchError(missing)
    removed = set(pruned) if version is SchemaVersion.PRUNED else set()
    known = set(REQUIRED_RAW_COLUMNS) | set(DERIVED_ADDRESS_COLUMNS)
    extras = [c for c in df.columns if c not in known and c not in removed]
    return df.loc[:, list(wanted) + extras].copy()


def normalize_header(name) -> str:
    """'UniqueID ' -> 'unique_id', 'SoldAsVacant' -> 'sold_as_vacant'."""
    clean = str(name).strip()
    if clean in HEADER_ALIASES:
        return HEADER_ALIASES[clean]
    clean = _CAMEL_BOUNDARY.sub("_", clean)
    return re.sub(r"[\s\-]+", "_", clean).lower()


def as_text(ser: pd.Series) -> pd.Series:
    """object dtype with None for every missing value, whatever the input dtype."""
    return pd.Series([None if pd.isna(v) else v for v in ser],
                     index=ser.index, dtype=object, name=ser.name)


def _parse_price(ser: pd.Series) -> pd.Series:
    if pd.api.types.is_numeric_dtype(ser):
        return ser.astype("float64")
    text = ser.astype(object).map(
        lambda v: None if pd.isna(v) else _PRICE_NOISE.sub("", str(v)))
    return pd.to_numeric(text, errors="coerce").astype("float64")


def conform_raw_frame(df: pd.DataFrame) -> pd.DataFrame:
    """Normalize headers, check the RAW schema and coerce column dtypes.

    Raises SchemaMismatchError for missing columns, duplicate headers, and
    non-integer or duplicate unique ids.
    """
    df = df.rename(columns=normalize_header)
    if not df.columns.is_unique:
        dupes = sorted(set(df.columns[df.columns.duplicated()]))
        raise SchemaMismatchError(dupes, problem="duplicate columns")

    missing = [c for c in REQUIRED_RAW_COLUMNS if c not in df.columns]
    if missing:
        raise SchemaMismatchError(missing)

    df = df.copy()
    ids = pd.to_numeric(df[UNIQUE_ID], errors="coerce")
    if ids.isna().any() or (ids % 1 != 0).any():
        raise SchemaMismatchError([UNIQUE_ID], problem="non-integer ids in column")
    df[UNIQUE_ID] = ids.astype("int64")
    if df[UNIQUE_ID].duplicated().any():
        dupes = df.loc[df[UNIQUE_ID].duplicated(), UNIQUE_ID].head(5).tolist()
        raise SchemaMismatchError([str(d) for d in dupes], problem="duplicate unique_id values")

    before = df[SALE_DATE].notna().sum()
    if not pd.api.types.is_datetime64_any_dtype(df[SALE_DATE]):
        df[SALE_DATE] = pd.to_datetime(df[SALE_DATE], errors="coerce", format="mixed")
    lost = before - df[SALE_DATE].notna().sum()
    if lost:
        log.warning("%d sale_date values could not be parsed and are now null", lost)

    before = df[SALE_PRICE].notna().sum()
    df[SALE_PRICE] = _parse_price(df[SALE_PRICE])
    lost = before - df[SALE_PRICE].notna().sum()
    if lost:
        log.warning("%d sale_price values could not be parsed and are now null", lost)

    # text columns keep None for missing values, not NaN
    for col in (PARCEL_ID, PROPERTY_ADDRESS, OWNER_ADDRESS, SOLD_AS_VACANT,
                LEGAL_REFERENCE, LAND_USE, TAX_DISTRICT):
        df[col] = as_text(df[col])

    return df.sort_values(UNIQUE_ID, kind="stable").reset_index(drop=True)
