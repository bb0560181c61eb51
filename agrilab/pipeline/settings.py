"""
Extraction Settings.

Immutable snapshot of the tunables the pipeline uses: timeouts, default
and capped confidences, tier confidences and the validation range table.
"""

from dataclasses import dataclass, field
from typing import Any

from config import get_config
from agrilab.ocr_engine.engine import NO_TEXT_SENTINEL
from agrilab.postprocessor.ranges import DEFAULT_VALIDATION_RANGES, RangeTable, build_range_table
from agrilab.utils.exceptions import ConfigurationError

_CONFIDENCE_FIELDS = (
    'default_result_confidence',
    'default_parameter_confidence',
    'out_of_range_confidence_cap',
    'regex_confidence',
    'ocr_regex_confidence',
    'regex_only_confidence',
)


@dataclass(frozen=True)
class ExtractionSettings:
    """
    Pipeline settings.

    Attributes:
        vision_timeout: Seconds allowed for the vision call
        ocr_timeout: Seconds allowed for OCR of a whole document
        vision_enabled: Whether the vision tier runs at all
        default_result_confidence: Overall confidence when none is usable
        default_parameter_confidence: Parameter confidence when none is usable
        out_of_range_confidence_cap: Cap for implausible readings
        regex_confidence: Confidence of every regex match
        ocr_regex_confidence: Overall confidence of an ocr-regex result
        regex_only_confidence: Overall confidence of a regex-only result
        no_text_sentinel: OCR marker for "no text"
        validation_ranges: Plausibility range table

    Example:
        >>> settings = ExtractionSettings.from_config()
        >>> settings.vision_timeout
        30.0
    """
    vision_timeout: float = 30.0
    ocr_timeout: float = 60.0
    vision_enabled: bool = True
    default_result_confidence: float = 0.8
    default_parameter_confidence: float = 0.7
    out_of_range_confidence_cap: float = 0.5
    regex_confidence: float = 0.6
    ocr_regex_confidence: float = 0.5
    regex_only_confidence: float = 0.3
    no_text_sentinel: str = NO_TEXT_SENTINEL
    validation_ranges: RangeTable = field(default_factory=lambda: DEFAULT_VALIDATION_RANGES)

    def __post_init__(self):
        for name in ('vision_timeout', 'ocr_timeout'):
            if not getattr(self, name) > 0:
                raise ConfigurationError(name, "timeout must be positive")

        for name in _CONFIDENCE_FIELDS:
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigurationError(name, f"confidence must be in [0, 1], got {value}")

        if not self.no_text_sentinel:
            raise ConfigurationError('no_text_sentinel', "sentinel must not be empty")

    @classmethod
    def from_config(cls) -> 'ExtractionSettings':
        """
        Build settings from the loaded configuration.

        Missing keys fall back to the field defaults.

        Raises:
            ConfigurationError: If a value is invalid.
        """
        defaults = cls()

        def number(key: str, field_name: str) -> float:
            value: Any = get_config(key, getattr(defaults, field_name))
            try:
                return float(value)
            except (TypeError, ValueError):
                raise ConfigurationError(key, f"expected a number, got {value!r}")

        return cls(
            vision_timeout=number("vision.timeout_seconds", 'vision_timeout'),
            ocr_timeout=number("ocr.timeout_seconds", 'ocr_timeout'),
            vision_enabled=bool(get_config("vision.enabled", True)),
            default_result_confidence=number("confidence.default_result", 'default_result_confidence'),
            default_parameter_confidence=number("confidence.default_parameter", 'default_parameter_confidence'),
            out_of_range_confidence_cap=number("confidence.out_of_range_cap", 'out_of_range_confidence_cap'),
            regex_confidence=number("confidence.regex", 'regex_confidence'),
            ocr_regex_confidence=number("confidence.ocr_regex_result", 'ocr_regex_confidence'),
            regex_only_confidence=number("confidence.regex_only_result", 'regex_only_confidence'),
            no_text_sentinel=get_config("ocr.no_text_sentinel", NO_TEXT_SENTINEL),
            validation_ranges=build_range_table(get_config("validation.ranges"))
        )
