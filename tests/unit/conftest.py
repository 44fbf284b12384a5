import pandas as pd
import pytest

from parcelclean.schema import conform_raw_frame

# Headers as published with the Nashville housing dataset, trailing space included
RAW_HEADERS = [
    "UniqueID ", "ParcelID", "LandUse", "PropertyAddress", "SaleDate", "SalePrice",
    "LegalReference", "SoldAsVacant", "OwnerName", "OwnerAddress", "TaxDistrict",
]

RAW_ROWS = [
    # 1 and 2 share parcel A; 2 has no address and is imputed from 1
    [1, "A", "SINGLE FAMILY", "123 Main St, Nashville", "2013-04-09 13:45:00", 120000,
     "L1", "N", "SMITH, JO", "123 Main St, Nashville, TN", "URBAN SERVICES DISTRICT"],
    [2, "A", "SINGLE FAMILY", None, "2014-06-10 00:00:00", 150000,
     "L2", "Yes", None, None, "URBAN SERVICES DISTRICT"],
    # 3 and 4 are the same sale entered twice
    [3, "B", "VACANT RES LAND", "9 Oak Ave, Goodlettsville", "2015-01-02 08:30:00", 95000,
     "L3", "Y", "DOE, AL", "9 Oak Ave, Goodlettsville, TN", "GENERAL SERVICES DISTRICT"],
    [4, "B", "VACANT RES LAND", "9 Oak Ave, Goodlettsville", "2015-01-02 08:30:00", 95000,
     "L3", "Y", "DOE, AL", "9 Oak Ave, Goodlettsville, TN", "GENERAL SERVICES DISTRICT"],
    # malformed addresses, no date, invalid price
    [5, "C", "SINGLE FAMILY", "NoCommaAddress", None, -5,
     "L5", "No", "ROE, RI", "1 Elm, Nashville", None],
    # unrecoverable address, price outlier
    [6, "D", "DUPLEX", None, "2016-03-01 00:00:00", 2000000,
     "L6", "N", None, None, "URBAN SERVICES DISTRICT"],
]


@pytest.fixture
def raw_source_df():
    return pd.DataFrame(RAW_ROWS, columns=RAW_HEADERS)


@pytest.fixture
def raw_df(raw_source_df):
    return conform_raw_frame(raw_source_df)
