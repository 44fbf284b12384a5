import pandas as pd
import polars as pl
import pytest

from parcelclean.data_loading import (
    check_file_header, load_file, load_frame, load_table, missing_columns,
    read_file, write_file, write_table,
)
from parcelclean.schema import SchemaMismatchError


def test_missing_columns_normalizes_headers(raw_source_df):
    assert missing_columns(raw_source_df.columns) == []
    assert missing_columns(["UniqueID ", "ParcelID"])[0] == "land_use"


def test_load_csv(tmp_path, raw_source_df):
    path = str(tmp_path / "housing.csv")
    raw_source_df.to_csv(path, index=False)
    df = load_file(path)
    assert df["unique_id"].tolist() == [1, 2, 3, 4, 5, 6]
    assert df.loc[1, "property_address"] is None
    assert pd.api.types.is_datetime64_any_dtype(df["sale_date"])


def test_load_tsv(tmp_path, raw_source_df):
    path = str(tmp_path / "housing.tsv")
    raw_source_df.to_csv(path, sep="\t", index=False)
    assert len(load_file(path)) == 6


def test_load_parquet(tmp_path, raw_source_df):
    path = str(tmp_path / "housing.parquet")
    raw_source_df.to_parquet(path, index=False)
    df = load_file(path)
    assert df.loc[0, "sale_price"] == 120000.0


def test_header_checked_before_rows_are_read(tmp_path, raw_source_df):
    path = str(tmp_path / "housing.csv")
    raw_source_df.drop(columns=["SalePrice"]).to_csv(path, index=False)
    with pytest.raises(SchemaMismatchError) as exc_info:
        check_file_header(path)
    assert exc_info.value.missing == ["sale_price"]
    with pytest.raises(SchemaMismatchError):
        load_file(path)


def test_unsupported_extension(tmp_path):
    path = tmp_path / "housing.txt"
    path.write_text("nothing")
    with pytest.raises(ValueError, match="Unsupported file format"):
        read_file(str(path))


def test_load_polars_frame(raw_source_df):
    pl_df = pl.from_pandas(raw_source_df)
    df = load_frame(pl_df)
    assert df["unique_id"].tolist() == [1, 2, 3, 4, 5, 6]
    assert load_frame(pl_df.lazy())["sale_price"].iloc[5] == 2000000.0


def test_write_file_csv(tmp_path, raw_df):
    path = str(tmp_path / "out.csv")
    write_file(raw_df, path)
    assert len(pd.read_csv(path)) == 6


def test_write_file_unsupported(tmp_path, raw_df):
    with pytest.raises(ValueError):
        write_file(raw_df, str(tmp_path / "out.xml"))


def test_sqlite_round_trip(tmp_path, raw_source_df):
    url = f"sqlite:///{tmp_path / 'housing.db'}"
    write_table(raw_source_df, url, "nashville_housing")
    df = load_table(url, "nashville_housing")
    assert df["unique_id"].tolist() == [1, 2, 3, 4, 5, 6]
    assert df.loc[0, "parcel_id"] == "A"


def test_sqlite_missing_columns(tmp_path, raw_source_df):
    url = f"sqlite:///{tmp_path / 'housing.db'}"
    write_table(raw_source_df.drop(columns=["OwnerAddress"]), url, "nashville_housing")
    with pytest.raises(SchemaMismatchError, match="owner_address"):
        load_table(url, "nashville_housing")


def test_load_xlsx(tmp_path, raw_source_df):
    path = str(tmp_path / "housing.xlsx")
    raw_source_df.to_excel(path, index=False)
    df = load_file(path)
    assert df["unique_id"].tolist() == [1, 2, 3, 4, 5, 6]
    assert df.loc[4, "tax_district"] is None
