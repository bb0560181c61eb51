"""
Model Inference Module for the Lab Report Extraction Pipeline.

This module provides the two parameter extractors:
    - Vision-based structured extraction (multimodal model, JSON reply)
    - Regex-based extraction over plain text

and the canonical result types they feed into.
"""

from .extraction_result import (
    AnalysisType,
    ExtractedParameter,
    ExtractionResult,
    TierAttempt,
    TierUsed,
    ValidationRange,
    ValidationWarning,
)
from .regex_extractor import RegexExtractor
from .vision_client import OpenAIVisionService, VisionService
from .vision_extractor import VisionExtractor, VisionReply, parse_vision_reply

__all__ = [
    'AnalysisType',
    'ExtractedParameter',
    'ExtractionResult',
    'TierAttempt',
    'TierUsed',
    'ValidationRange',
    'ValidationWarning',
    'RegexExtractor',
    'OpenAIVisionService',
    'VisionService',
    'VisionExtractor',
    'VisionReply',
    'parse_vision_reply',
]
