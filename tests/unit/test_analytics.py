import statistics

import numpy as np
import pandas as pd
import pytest

from parcelclean.analytics import (
    assess_quality, city_price_summary, iqr_outliers, land_use_distribution,
    price_quartiles, price_statistics, valid_prices,
)


def priced(prices, cities=None):
    n = len(prices)
    return pd.DataFrame({
        "unique_id": list(range(1, n + 1)),
        "sale_price": prices,
        "property_city": cities if cities is not None else ["Nashville"] * n,
    })


class TestPriceStatistics:
    def test_invalid_prices_excluded(self):
        df = priced([100.0, 0.0, -5.0, None, 300.0])
        assert valid_prices(df).tolist() == [100.0, 300.0]
        stats = price_statistics(df)
        assert (stats.count, stats.min, stats.max, stats.mean) == (2, 100.0, 300.0, 200.0)

    def test_no_valid_prices(self):
        stats = price_statistics(priced([0.0, None]))
        assert stats.count == 0
        assert stats.mean is None


class TestIqrOutliers:
    def test_worked_example(self):
        df = priced([50000.0, 60000.0, 70000.0, 80000.0, 1000000.0])
        report = iqr_outliers(df)
        assert (report.q1, report.q3, report.iqr) == (60000.0, 80000.0, 20000.0)
        assert (report.lower_bound, report.upper_bound) == (30000.0, 110000.0)
        assert report.count == 1
        assert report.unique_ids == [5]
        assert report.min_price == report.max_price == 1000000.0

    def test_quartiles_match_inclusive_method(self):
        prices = [120000.0, 150000.0, 95000.0, 95000.0, 2000000.0, 310000.0, 87500.0]
        q1, q3 = price_quartiles(prices)
        ref = statistics.quantiles(prices, n=4, method="inclusive")
        assert q1 == pytest.approx(ref[0])
        assert q3 == pytest.approx(ref[2])
        assert q1 == pytest.approx(np.percentile(prices, 25))

    def test_bounds_are_exclusive(self):
        # Q1=10, Q3=20, IQR=10: 35 sits exactly on the upper bound
        df = priced([10.0, 10.0, 20.0, 20.0, 35.0])
        report = iqr_outliers(df)
        assert report.upper_bound == 35.0
        assert report.count == 0
        assert report.unique_ids == []

    def test_multiplier(self):
        df = priced([50000.0, 60000.0, 70000.0, 80000.0, 1000000.0])
        assert iqr_outliers(df, multiplier=50.0).count == 0

    def test_invalid_prices_ignored(self):
        df = priced([50000.0, 60000.0, 70000.0, 80000.0, 1000000.0, -1.0, 0.0])
        report = iqr_outliers(df)
        assert report.q1 == 60000.0
        assert report.unique_ids == [5]

    def test_empty(self):
        report = iqr_outliers(priced([None, -3.0]))
        assert report.count == 0
        assert report.q1 is None


class TestCitySummary:
    def test_ordered_by_average(self):
        df = priced([100.0, 300.0, 500.0, -1.0, 50.0],
                    ["Antioch", "Antioch", "Nashville", "Nashville", None])
        summary = city_price_summary(df)
        assert summary["property_city"].tolist() == ["Nashville", "Antioch"]
        nash = summary.iloc[0]
        assert (nash["sales_count"], nash["avg_price"], nash["min_price"], nash["max_price"]) == (
            1, 500.0, 500.0, 500.0)
        antioch = summary.iloc[1]
        assert (antioch["sales_count"], antioch["avg_price"]) == (2, 200.0)


class TestAssessQuality:
    def test_raw_profile(self, raw_df):
        quality = assess_quality(raw_df)
        assert quality.total_records == 6
        assert quality.null_counts == {
            "property_address": 2, "owner_address": 2, "sale_date": 1, "sale_price": 0}
        assert quality.invalid_price_count == 1
        assert quality.land_use_counts == {
            "SINGLE FAMILY": 3, "VACANT RES LAND": 2, "DUPLEX": 1}

    def test_land_use_distribution(self, raw_df):
        dist = land_use_distribution(raw_df)
        assert dist.name == "count"
        assert dist.index[0] == "SINGLE FAMILY"
