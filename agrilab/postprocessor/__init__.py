"""
Post-Processing Module for the Lab Report Extraction Pipeline.

This module provides functionality for:
    - Canonical parameter keys and value coercion
    - Analysis type resolution
    - Plausibility range checks
    - Confidence defaulting and capping
"""

from .normalizers import ResultNormalizer, canonical_parameter_key, detect_analysis_type
from .ranges import DEFAULT_VALIDATION_RANGES, build_range_table
from .validators import ConfidenceValidator

__all__ = [
    'ResultNormalizer',
    'canonical_parameter_key',
    'detect_analysis_type',
    'DEFAULT_VALIDATION_RANGES',
    'build_range_table',
    'ConfidenceValidator',
]
