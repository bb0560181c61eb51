"""
Confidence & Domain Validator Module.

This module checks extracted nutrient readings against agronomic
plausibility ranges and repairs confidence scores:
    - Missing or invalid confidences are replaced with defaults
    - Out-of-range numeric readings have their confidence capped
    - Each range violation is recorded as a ValidationWarning
    - A processing timestamp is stamped into the sample info

Readings are never removed or corrected here; the validator only
annotates. Running it twice gives the same result as running it once.
"""

from dataclasses import replace
from typing import Any, Dict, List, Optional

from agrilab.model_inference.extraction_result import (
    ExtractedParameter,
    ExtractionResult,
    ValidationWarning,
)
from agrilab.utils.helpers import generate_timestamp, is_number
from agrilab.utils.logger import get_logger
from .ranges import DEFAULT_VALIDATION_RANGES, RangeTable

# Initialize module logger
logger = get_logger(__name__)

DEFAULT_RESULT_CONFIDENCE = 0.8
DEFAULT_PARAMETER_CONFIDENCE = 0.7
OUT_OF_RANGE_CONFIDENCE_CAP = 0.5

PROCESSED_AT_KEY = "processedAt"


def is_valid_confidence(value: Any) -> bool:
    """Check that a confidence is a number in [0, 1]."""
    return is_number(value) and 0.0 <= value <= 1.0


class ConfidenceValidator:
    """
    Validates an ExtractionResult against the plausibility range table.

    Attributes:
        ranges: Analysis type -> parameter key -> ValidationRange
        default_result_confidence: Used when the overall confidence is unusable
        default_parameter_confidence: Used when a parameter confidence is unusable
        out_of_range_cap: Upper bound for the confidence of an implausible reading

    Example:
        >>> validator = ConfidenceValidator()
        >>> validated = validator.validate(result)
        >>> validated.parameters["P"].confidence
        0.5
        >>> validated.warnings[0].message
        'Suspicious P value: 250.0 (expected 1.0-200.0)'
    """

    def __init__(
        self,
        ranges: Optional[RangeTable] = None,
        default_result_confidence: float = DEFAULT_RESULT_CONFIDENCE,
        default_parameter_confidence: float = DEFAULT_PARAMETER_CONFIDENCE,
        out_of_range_cap: float = OUT_OF_RANGE_CONFIDENCE_CAP
    ) -> None:
        self.ranges = ranges if ranges is not None else DEFAULT_VALIDATION_RANGES
        self.default_result_confidence = default_result_confidence
        self.default_parameter_confidence = default_parameter_confidence
        self.out_of_range_cap = out_of_range_cap

        logger.debug("ConfidenceValidator initialized")

    def validate(self, result: ExtractionResult) -> ExtractionResult:
        """
        Validate a result and return an annotated copy.

        Args:
            result: Result produced by any extraction tier.

        Returns:
            New ExtractionResult with repaired confidences, capped
            out-of-range readings, accumulated warnings and a
            processedAt timestamp. The input is not modified.
        """
        range_table = self.ranges.get(result.analysis_type.value, {})
        warnings: List[ValidationWarning] = list(result.warnings)
        parameters: Dict[str, ExtractedParameter] = {}

        for key, parameter in result.parameters.items():
            confidence = parameter.confidence
            if not is_valid_confidence(confidence):
                confidence = self.default_parameter_confidence

            expected = range_table.get(key)
            if expected is not None and is_number(parameter.value) and not expected.contains(parameter.value):
                confidence = min(confidence, self.out_of_range_cap)
                warning = ValidationWarning(key, float(parameter.value), expected)
                if warning not in warnings:
                    warnings.append(warning)
                    logger.warning(warning.message)

            if confidence != parameter.confidence:
                parameter = replace(parameter, confidence=confidence)
            parameters[key] = parameter

        confidence = result.confidence
        if not is_valid_confidence(confidence):
            logger.debug(
                f"Overall confidence {confidence!r} replaced with "
                f"{self.default_result_confidence}"
            )
            confidence = self.default_result_confidence

        sample_info = dict(result.sample_info)
        sample_info.setdefault(PROCESSED_AT_KEY, generate_timestamp())

        if len(warnings) > len(result.warnings):
            logger.info(
                f"Validation flagged {len(warnings) - len(result.warnings)} "
                f"suspicious value(s) in {result.analysis_type.value} report"
            )

        return replace(
            result,
            parameters=parameters,
            confidence=confidence,
            sample_info=sample_info,
            warnings=tuple(warnings)
        )
