"""
Regex Parameter Extractor Module.

Pattern-matches plain text for known nutrient parameters. This is the
last tier of the pipeline: it has no semantic validation, so every value
it finds carries the same fixed low confidence.

Parameter keys follow the element-symbol taxonomy used by the
validation range table (pH, N, P, K, Ca, Mg, ...).
"""

import math
import re
from typing import Dict, Iterable, NamedTuple, Optional, Pattern, Tuple, Union

from agrilab.utils.logger import get_logger
from .extraction_result import ExtractedParameter

# Initialize module logger
logger = get_logger(__name__)

REGEX_CONFIDENCE = 0.6

# Number captured after a parameter label
_NUMBER = r"[\s:=]*(\d+(?:\.\d+)?)"


class ExtractionRule(NamedTuple):
    """One named extraction rule."""
    parameter_key: str
    pattern: Pattern
    confidence: float = REGEX_CONFIDENCE


def _rule(key: str, labels: str) -> ExtractionRule:
    return ExtractionRule(key, re.compile(rf"\b(?:{labels})\b{_NUMBER}", re.IGNORECASE))


# Order matters: rules are applied top to bottom
DEFAULT_RULES: Tuple[ExtractionRule, ...] = (
    _rule("pH", r"ph"),
    _rule("N", r"total\s+nitrogen|nitrogen|total\s+n|n"),
    _rule("P", r"available\s+phosphorus|phosphorus|available\s+p|p"),
    _rule("K", r"exchangeable\s+potassium|potassium|exchangeable\s+k|k"),
    _rule("Ca", r"exchangeable\s+calcium|calcium|exchangeable\s+ca|ca"),
    _rule("Mg", r"exchangeable\s+magnesium|magnesium|exchangeable\s+mg|mg"),
    _rule("S", r"sulphur|sulfur"),
    _rule("CEC", r"cation\s+exchange\s+capacity|cec"),
    _rule("OC", r"organic\s+carbon|oc"),
    _rule("B", r"boron"),
    _rule("Zn", r"zinc|zn"),
    _rule("Cu", r"copper|cu"),
    _rule("Mn", r"manganese|mn"),
    _rule("Fe", r"iron|fe"),
)


class RegexExtractor:
    """
    Extracts nutrient parameters from plain text with fixed rules.

    Only the first match per parameter key is kept. Units are not
    inferred, so every parameter has an empty unit.

    Example:
        >>> extractor = RegexExtractor()
        >>> extractor.extract("pH: 5.6")["pH"]
        ExtractedParameter(value=5.6, unit='', confidence=0.6)
    """

    def __init__(
        self,
        rules: Iterable[ExtractionRule] = DEFAULT_RULES,
        confidence: Optional[float] = None
    ) -> None:
        """
        Args:
            rules: Ordered extraction rules.
            confidence: Overrides the confidence of every rule when given.
        """
        if confidence is not None:
            rules = [rule._replace(confidence=confidence) for rule in rules]
        self.rules: Tuple[ExtractionRule, ...] = tuple(rules)

    def extract(self, text: str) -> Dict[str, ExtractedParameter]:
        """
        Apply every rule to the text.

        Args:
            text: Plain text, typically an OCR transcription.

        Returns:
            Parameter key -> ExtractedParameter, in rule order.
        """
        parameters: Dict[str, ExtractedParameter] = {}
        if not text:
            return parameters

        for rule in self.rules:
            if rule.parameter_key in parameters:
                continue

            match = rule.pattern.search(text)
            if not match:
                continue

            parameters[rule.parameter_key] = ExtractedParameter(
                value=self._parse_value(match.group(1)),
                unit="",
                confidence=rule.confidence
            )
            logger.debug(f"Regex matched {rule.parameter_key}: '{match.group(0).strip()}'")

        logger.info(f"Regex extraction found {len(parameters)} parameter(s)")
        return parameters

    @staticmethod
    def _parse_value(raw: str) -> Union[float, str]:
        raw = raw.strip()
        try:
            value = float(raw)
        except ValueError:
            return raw
        return value if math.isfinite(value) else raw
