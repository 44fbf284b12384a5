import json
import logging
from typing import Any

import pandas as pd
from pandas.core.dtypes.dtypes import DatetimeTZDtype

logger = logging.getLogger("parcelclean.serialization")


def is_ser_tz_naive(ser: Any) -> bool:
    return not isinstance(ser.dtype, DatetimeTZDtype)


def strip_df_timezones(df: pd.DataFrame) -> pd.DataFrame:
    """Excel and most SQL drivers reject tz-aware datetimes; keep wall time."""
    tz_cols = [col for col in df.columns if not is_ser_tz_naive(df[col])]
    if not tz_cols:
        return df
    logger.info("dropping timezone from %s", tz_cols)
    df = df.copy()
    for col in tz_cols:
        df[col] = df[col].dt.tz_localize(None)
    return df


def force_to_pandas(df_pd_or_pl) -> pd.DataFrame:
    if isinstance(df_pd_or_pl, pd.DataFrame):
        return df_pd_or_pl

    import polars as pl

    if isinstance(df_pd_or_pl, pl.LazyFrame):
        df_pd_or_pl = df_pd_or_pl.collect()
    if isinstance(df_pd_or_pl, pl.DataFrame):
        return df_pd_or_pl.to_pandas()
    else:
        raise TypeError("unexpected type for dataframe, got %r" % (type(df_pd_or_pl)))


def _make_json_safe(val):
    """Recursively convert non-JSON-serializable keys and values."""
    if isinstance(val, dict):
        return {(k if k is None or isinstance(k, (str, int, float, bool)) else str(k)): _make_json_safe(v)
                for k, v in val.items()}
    if isinstance(val, (list, tuple)):
        return [_make_json_safe(v) for v in val]
    return val


def json_default(obj):
    if isinstance(obj, pd.DataFrame):
        return _make_json_safe(obj.to_dict(orient="records"))
    if isinstance(obj, pd.Timestamp):
        if obj == obj.normalize():
            return obj.date().isoformat()
        return obj.isoformat()
    if hasattr(obj, "item"):
        return obj.item()
    return str(obj)


def dumps(obj, indent=2) -> str:
    return json.dumps(_make_json_safe(obj), default=json_default, indent=indent)
