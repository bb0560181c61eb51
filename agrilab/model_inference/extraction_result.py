"""
Extraction Result Data Classes.

This module defines the canonical result returned by the pipeline,
whichever tier produced the data.

Classes:
    AnalysisType: soil, leaf or unknown
    TierUsed: vision, ocr-regex or regex-only
    ExtractedParameter: One nutrient reading
    ValidationRange: Plausible (min, max) pair for a parameter
    ValidationWarning: A reading outside its plausible range
    TierAttempt: Outcome of one tier call
    ExtractionResult: Complete, immutable extraction output
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, NamedTuple, Optional, Tuple, Union


class AnalysisType(str, Enum):
    """Kind of laboratory analysis a report contains."""
    SOIL = "soil"
    LEAF = "leaf"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> 'AnalysisType':
        """
        Map a loose value onto an AnalysisType.

        Anything that is not "soil" or "leaf" (case-insensitive) becomes
        UNKNOWN.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                return cls.UNKNOWN
        return cls.UNKNOWN


class TierUsed(str, Enum):
    """Last extraction tier that contributed data to a result."""
    VISION = "vision"
    OCR_REGEX = "ocr-regex"
    REGEX_ONLY = "regex-only"


@dataclass(frozen=True)
class ExtractedParameter:
    """
    Represents a single extracted nutrient reading.

    Attributes:
        value: Numeric reading, or the raw string when it is not numeric
        unit: Unit as printed on the report (may be empty)
        confidence: Score in [0, 1]; None only before validation
    """
    value: Union[float, str]
    unit: str = ""
    confidence: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'value': self.value,
            'unit': self.unit,
            'confidence': self.confidence,
        }


class ValidationRange(NamedTuple):
    """Plausible closed interval for a parameter."""
    min: float
    max: float

    def contains(self, value: float) -> bool:
        return self.min <= value <= self.max


@dataclass(frozen=True)
class ValidationWarning:
    """
    A numeric reading that lies outside its plausible range.

    Accumulated on the result; never raised.
    """
    parameter_key: str
    value: float
    expected_range: ValidationRange

    @property
    def message(self) -> str:
        return (
            f"Suspicious {self.parameter_key} value: {self.value} "
            f"(expected {self.expected_range.min}-{self.expected_range.max})"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'parameterKey': self.parameter_key,
            'value': self.value,
            'expectedRange': [self.expected_range.min, self.expected_range.max],
            'message': self.message,
        }


@dataclass(frozen=True)
class TierAttempt:
    """
    Outcome of one tier call made while processing a request.

    Attributes:
        tier: "vision", "ocr" or "regex"
        succeeded: Whether the tier produced at least one parameter
        parameter_count: Number of parameters the tier yielded
        error_kind: ErrorKind value when the tier raised, else None
        message: Error text or a short note
    """
    tier: str
    succeeded: bool
    parameter_count: int = 0
    error_kind: Optional[str] = None
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'tier': self.tier,
            'succeeded': self.succeeded,
            'parameterCount': self.parameter_count,
        }
        if self.error_kind:
            data['errorKind'] = self.error_kind
        if self.message:
            data['message'] = self.message
        return data


@dataclass(frozen=True)
class ExtractionResult:
    """
    Canonical result of extracting one lab report.

    The mapping fields are stored as read-only views and the sequences as
    tuples, so a result cannot be changed after construction. Use
    dataclasses.replace() to derive a modified copy.

    Attributes:
        raw_text: Transcription of the document
        parameters: Parameter key -> ExtractedParameter
        analysis_type: soil, leaf or unknown
        tier_used: Tier that produced the parameters
        confidence: Overall confidence; None only before validation
        laboratory: Laboratory name, if one was found
        sample_info: Sample metadata (sampleId, date, location, processedAt...)
        warnings: Range violations found by the validator
        attempts: Every tier attempt, in order
        source_file: Original filename, if known
        processing_time: Seconds spent on the request

    Example:
        >>> result.tier_used
        <TierUsed.VISION: 'vision'>
        >>> result.parameters["pH"].value
        5.6
    """
    raw_text: str
    parameters: Mapping[str, ExtractedParameter]
    analysis_type: AnalysisType
    tier_used: TierUsed
    confidence: Optional[float] = None
    laboratory: Optional[str] = None
    sample_info: Mapping[str, Any] = field(default_factory=dict)
    warnings: Tuple[ValidationWarning, ...] = ()
    attempts: Tuple[TierAttempt, ...] = ()
    source_file: Optional[str] = None
    processing_time: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, 'parameters', MappingProxyType(dict(self.parameters)))
        object.__setattr__(self, 'sample_info', MappingProxyType(dict(self.sample_info)))
        object.__setattr__(self, 'warnings', tuple(self.warnings))
        object.__setattr__(self, 'attempts', tuple(self.attempts))

    @property
    def needs_review(self) -> bool:
        """True when the result came from a degraded tier or raised warnings."""
        return self.tier_used is TierUsed.REGEX_ONLY or bool(self.warnings)

    def get(self, key: str) -> Optional[ExtractedParameter]:
        return self.parameters.get(key)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to the canonical camelCase schema.

        The laboratory key is left out when no laboratory was found.
        """
        data = {
            'rawText': self.raw_text,
            'parameters': {k: p.to_dict() for k, p in self.parameters.items()},
            'analysisType': self.analysis_type.value,
            'sampleInfo': dict(self.sample_info),
            'confidence': self.confidence,
            'tierUsed': self.tier_used.value,
            'warnings': [w.to_dict() for w in self.warnings],
            'attempts': [a.to_dict() for a in self.attempts],
            'processingTime': self.processing_time,
        }
        if self.laboratory is not None:
            data['laboratory'] = self.laboratory
        if self.source_file is not None:
            data['sourceFile'] = self.source_file
        return data

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def __repr__(self) -> str:
        return (
            f"ExtractionResult(tier={self.tier_used.value}, "
            f"type={self.analysis_type.value}, "
            f"parameters={len(self.parameters)}, "
            f"confidence={self.confidence}, "
            f"warnings={len(self.warnings)})"
        )
