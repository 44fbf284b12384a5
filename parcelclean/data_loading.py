import logging
import os
from typing import List, Optional

import pandas as pd
import polars as pl
from sqlalchemy import create_engine, inspect

from parcelclean.schema import (
    REQUIRED_RAW_COLUMNS, SchemaMismatchError, conform_raw_frame,
    normalize_header,
)
from parcelclean.serialization_utils import force_to_pandas, strip_df_timezones

log = logging.getLogger("parcelclean.data_loading")

EXCEL_EXTS = (".xlsx",)


def scan_file_lazy(path: str) -> Optional[pl.LazyFrame]:
    """Open a file as a Polars LazyFrame, or None for formats polars can't scan."""
    ext = os.path.splitext(path)[1].lower()
    if ext in (".parquet", ".parq"):
        return pl.scan_parquet(path)
    elif ext == ".csv":
        return pl.scan_csv(path, infer_schema=False)
    elif ext == ".tsv":
        return pl.scan_csv(path, separator="\t", infer_schema=False)
    elif ext in (".ndjson", ".jsonl"):
        return pl.scan_ndjson(path)
    return None


def missing_columns(columns) -> List[str]:
    present = {normalize_header(c) for c in columns}
    return [c for c in REQUIRED_RAW_COLUMNS if c not in present]


def check_file_header(path: str) -> None:
    """Fail before reading any rows when the header lacks required columns."""
    ldf = scan_file_lazy(path)
    if ldf is None:
        return
    missing = missing_columns(ldf.collect_schema().names())
    if missing:
        raise SchemaMismatchError(missing)


def read_file(path: str) -> pd.DataFrame:
    ext = os.path.splitext(path)[1].lower()
    if ext == ".csv":
        return pd.read_csv(path, low_memory=False)
    elif ext == ".tsv":
        return pd.read_csv(path, sep="\t", low_memory=False)
    elif ext in (".parquet", ".parq"):
        return pd.read_parquet(path, engine="pyarrow")
    elif ext == ".json":
        return pd.read_json(path)
    elif ext in (".ndjson", ".jsonl"):
        return pd.read_json(path, lines=True)
    elif ext in EXCEL_EXTS:
        return pd.read_excel(path)
    else:
        raise ValueError(f"Unsupported file format: {ext}")


def load_file(path: str) -> pd.DataFrame:
    """Read a housing sales file and conform it to the RAW schema."""
    check_file_header(path)
    df = read_file(path)
    log.info("Loaded %d rows, %d columns from %s", len(df), len(df.columns), path)
    return conform_raw_frame(df)


def load_frame(df) -> pd.DataFrame:
    """Conform an in-memory pandas or polars frame to the RAW schema."""
    return conform_raw_frame(force_to_pandas(df))


def load_table(url: str, table: str) -> pd.DataFrame:
    """Read a database table through SQLAlchemy and conform it."""
    engine = create_engine(url)
    try:
        columns = [c["name"] for c in inspect(engine).get_columns(table)]
        missing = missing_columns(columns)
        if missing:
            raise SchemaMismatchError(missing)
        with engine.connect() as conn:
            df = pd.read_sql_table(table, conn)
    finally:
        engine.dispose()
    log.info("Loaded %d rows from table %s", len(df), table)
    return conform_raw_frame(df)


def write_file(df: pd.DataFrame, path: str) -> None:
    ext = os.path.splitext(path)[1].lower()
    if ext == ".csv":
        df.to_csv(path, index=False)
    elif ext == ".tsv":
        df.to_csv(path, sep="\t", index=False)
    elif ext in (".parquet", ".parq"):
        df.to_parquet(path, engine="pyarrow", index=False)
    elif ext == ".json":
        df.to_json(path, orient="records", date_format="iso")
    elif ext in EXCEL_EXTS:
        strip_df_timezones(df).to_excel(path, index=False)
    else:
        raise ValueError(f"Unsupported file format: {ext}")
    log.info("Wrote %d rows to %s", len(df), path)


def write_table(df: pd.DataFrame, url: str, table: str, if_exists: str = "replace") -> None:
    engine = create_engine(url)
    try:
        with engine.begin() as conn:
            strip_df_timezones(df).to_sql(table, conn, if_exists=if_exists, index=False)
    finally:
        engine.dispose()
    log.info("Wrote %d rows to table %s", len(df), table)
