from .pd_passes import PD_CLEANING_PASSES

__all__ = ["PD_CLEANING_PASSES"]
