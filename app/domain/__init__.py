"""
Domain Package
==============
Plant records, care guides and the merge engine. Nothing in here performs
I/O.
"""

from .care_guide import CareGuide, HardinessRange, extract_care_guide
from .merge import ComparisonResult, find_best_match, merge_records
from .plant_record import SOURCE_PERENUAL, SOURCE_TREFLE, PlantRecord

__all__ = [
    "CareGuide",
    "HardinessRange",
    "extract_care_guide",
    "ComparisonResult",
    "find_best_match",
    "merge_records",
    "PlantRecord",
    "SOURCE_PERENUAL",
    "SOURCE_TREFLE",
]
