"""
Reference data adapters.
"""

from src.bump_radar.adapters.reference.csv_reference_loader import (
    get_reference_data,
    load_reference_data,
)

__all__ = [
    "get_reference_data",
    "load_reference_data",
]
