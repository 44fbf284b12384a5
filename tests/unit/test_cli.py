import json

import pandas as pd

from parcelclean.__main__ import main


def _write_source(tmp_path, df):
    path = tmp_path / "housing.csv"
    df.to_csv(path, index=False)
    return str(path)


def test_clean_to_files(tmp_path, raw_source_df):
    source = _write_source(tmp_path, raw_source_df)
    out = tmp_path / "cleaned.parquet"
    report = tmp_path / "report.json"
    findings = tmp_path / "findings.csv"
    rc = main([source, "--output", str(out), "--report", str(report),
               "--findings", str(findings), "--log-file", str(tmp_path / "logs" / "run.log")])
    assert rc == 0

    cleaned = pd.read_parquet(out)
    assert len(cleaned) == 6
    assert "property_address" not in cleaned.columns

    parsed = json.loads(report.read_text())
    assert parsed["outliers"]["unique_ids"] == [6]
    assert parsed["parse_failures"] == {"parse_property_address": 1, "parse_owner_address": 1}

    assert pd.read_csv(findings)["unique_id"].tolist() == [5, 5]


def test_report_to_stdout(tmp_path, raw_source_df, capsys):
    source = _write_source(tmp_path, raw_source_df)
    rc = main([source, "--iqr-multiplier", "50", "--log-file", str(tmp_path / "run.log")])
    assert rc == 0
    parsed = json.loads(capsys.readouterr().out)
    assert parsed["outliers"]["count"] == 0


def test_schema_error_exit_code(tmp_path, raw_source_df, capsys):
    source = _write_source(tmp_path, raw_source_df.drop(columns=["LegalReference"]))
    rc = main([source, "--log-file", str(tmp_path / "run.log")])
    assert rc == 1
    assert "legal_reference" in capsys.readouterr().err


def test_output_table_needs_table(tmp_path, raw_source_df):
    source = _write_source(tmp_path, raw_source_df)
    assert main([source, "--output-table", "cleaned", "--log-file", str(tmp_path / "run.log")]) == 2


def test_database_round_trip(tmp_path, raw_source_df):
    from parcelclean.data_loading import write_table

    url = f"sqlite:///{tmp_path / 'housing.db'}"
    write_table(raw_source_df, url, "nashville_housing")
    rc = main([url, "--table", "nashville_housing", "--output-table", "nashville_clean",
               "--report", str(tmp_path / "report.json"), "--log-file", str(tmp_path / "run.log")])
    assert rc == 0
    with_sql = pd.read_sql_table("nashville_clean", url)
    assert len(with_sql) == 6
    assert "owner_state" in with_sql.columns
