"""Cleaning configuration.

Settings live on classes so a variant is a subclass that overrides a few
attributes, e.g.::

    class StrictOutliers(CleaningConf):
        iqr_multiplier = 3.0
"""
import os
from types import MappingProxyType

from parcelclean.schema import (
    LEGAL_REFERENCE, PARCEL_ID, PROPERTY_ADDRESS, PRUNED_COLUMNS, SALE_DATE,
    SALE_PRICE,
)

LOG_DIR = os.environ.get(
    "PARCELCLEAN_LOG_DIR",
    os.path.join(os.path.expanduser("~"), ".parcelclean", "logs"))


class CleaningConf:
    # read-only; a variant overrides the whole mapping
    vacant_map = MappingProxyType({"Y": "Yes", "N": "No"})
    duplicate_key = (PARCEL_ID, PROPERTY_ADDRESS, SALE_PRICE, SALE_DATE, LEGAL_REFERENCE)
    # columns still present after pruning
    remaining_duplicate_key = (PARCEL_ID, SALE_PRICE, LEGAL_REFERENCE)
    pruned_columns = PRUNED_COLUMNS
    iqr_multiplier = 1.5
