"""Utility modules for tfmigrate.

This package contains small helpers for IP address normalization and
string handling shared by the config and state layers.
"""

from .ip_utils import normalize_cidr
from .string_utils import normalize_duration, format_address, split_csv

__all__ = [
    # IP utilities
    "normalize_cidr",
    # String utilities
    "normalize_duration",
    "format_address",
    "split_csv",
]
