"""
Result Normalizer Module.

This module maps the output of any extraction tier onto the canonical
ExtractionResult:
    - Parameter names to canonical element keys (nitrogen -> N)
    - Numeric strings to floats
    - Analysis type to soil, leaf or unknown
    - Laboratory and sample details cleaned and merged with request metadata
"""

import re
from typing import Any, Dict, Mapping, Optional, Union

from agrilab.input_handler.handler import ExtractionRequest
from agrilab.model_inference.extraction_result import (
    AnalysisType,
    ExtractedParameter,
    ExtractionResult,
    TierUsed,
)
from agrilab.model_inference.vision_extractor import VisionReply
from agrilab.utils.helpers import is_number
from agrilab.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)

# Lookup is on lowercased names with separators collapsed to one space
PARAMETER_ALIASES: Dict[str, str] = {
    "ph": "pH",
    "p h": "pH",
    "ph water": "pH",
    "ph h2o": "pH",
    "n": "N",
    "nitrogen": "N",
    "total nitrogen": "N",
    "total n": "N",
    "p": "P",
    "phosphorus": "P",
    "phosphorous": "P",
    "available phosphorus": "P",
    "available p": "P",
    "k": "K",
    "potassium": "K",
    "exchangeable potassium": "K",
    "exchangeable k": "K",
    "ca": "Ca",
    "calcium": "Ca",
    "exchangeable calcium": "Ca",
    "exchangeable ca": "Ca",
    "mg": "Mg",
    "magnesium": "Mg",
    "exchangeable magnesium": "Mg",
    "exchangeable mg": "Mg",
    "s": "S",
    "sulphur": "S",
    "sulfur": "S",
    "cec": "CEC",
    "cation exchange capacity": "CEC",
    "oc": "OC",
    "organic carbon": "OC",
    "b": "B",
    "boron": "B",
    "zn": "Zn",
    "zinc": "Zn",
    "cu": "Cu",
    "copper": "Cu",
    "mn": "Mn",
    "manganese": "Mn",
    "fe": "Fe",
    "iron": "Fe",
}

_UNIT_SUFFIX = re.compile(r"\s*[(\[].*?[)\]]\s*$")
_SEPARATORS = re.compile(r"[\s_\-]+")
_NUMERIC = re.compile(r"[-+]?\d+(?:\.\d+)?")

_SOIL_KEYWORDS = re.compile(r"\bsoils?\b", re.IGNORECASE)
_LEAF_KEYWORDS = re.compile(r"\b(?:leaf|leaves|foliar|frond|tissue)\b", re.IGNORECASE)


def canonical_parameter_key(name: str) -> str:
    """
    Map a printed parameter name onto its canonical key.

    Unknown names are returned stripped but otherwise unchanged.

    Example:
        >>> canonical_parameter_key("Total Nitrogen (%)")
        'N'
        >>> canonical_parameter_key("Mo")
        'Mo'
    """
    stripped = str(name).strip()
    lookup = _UNIT_SUFFIX.sub("", stripped)
    lookup = _SEPARATORS.sub(" ", lookup).strip().lower()
    return PARAMETER_ALIASES.get(lookup, stripped)


def coerce_value(value: Any) -> Union[float, str]:
    """
    Coerce a reading to float when it is numeric.

    Numbers and plain numeric strings become floats; any other string
    (e.g. "<0.1", "trace") is kept as-is, as is a reading too large
    to represent as a float.
    """
    if is_number(value):
        return float(value)
    text = str(value).strip()
    if _NUMERIC.fullmatch(text) and is_number(float(text)):
        return float(text)
    return text


def coerce_confidence(value: Any) -> Optional[float]:
    """Return a numeric confidence as float, anything else as None."""
    return float(value) if is_number(value) else None


def detect_analysis_type(text: str) -> AnalysisType:
    """
    Guess the analysis type from keywords in the text.

    Ambiguous text (both or neither kind of keyword) gives UNKNOWN.
    """
    if not text:
        return AnalysisType.UNKNOWN

    is_soil = bool(_SOIL_KEYWORDS.search(text))
    is_leaf = bool(_LEAF_KEYWORDS.search(text))

    if is_soil and not is_leaf:
        return AnalysisType.SOIL
    if is_leaf and not is_soil:
        return AnalysisType.LEAF
    return AnalysisType.UNKNOWN


class ResultNormalizer:
    """
    Builds canonical ExtractionResults from tier output.

    The returned result has not been validated yet: confidences that
    were missing in the input stay None until the validator fills them.

    Example:
        >>> normalizer = ResultNormalizer()
        >>> result = normalizer.from_vision_reply(reply, request)
        >>> result.to_dict()["tierUsed"]
        'vision'
    """

    def from_vision_reply(
        self,
        reply: VisionReply,
        request: Optional[ExtractionRequest] = None
    ) -> ExtractionResult:
        """
        Normalize a parsed vision reply.

        Args:
            reply: Parsed vision model reply.
            request: Originating request (sample type hint and metadata).

        Returns:
            ExtractionResult with tier_used = vision.
        """
        return self.normalize(
            tier_used=TierUsed.VISION,
            raw_text=reply.extracted_text,
            parameters=reply.parameters,
            request=request,
            analysis_type=reply.analysis_type,
            laboratory=reply.laboratory,
            sample_info=reply.sample_info,
            confidence=reply.confidence
        )

    def from_text(
        self,
        tier_used: TierUsed,
        raw_text: str,
        parameters: Mapping[str, Any],
        request: Optional[ExtractionRequest] = None,
        confidence: Optional[float] = None
    ) -> ExtractionResult:
        """
        Normalize regex output over plain text.

        Args:
            tier_used: ocr-regex or regex-only.
            raw_text: Text the parameters were found in.
            parameters: Regex extractor output.
            request: Originating request.
            confidence: Overall confidence for this tier.
        """
        return self.normalize(
            tier_used=tier_used,
            raw_text=raw_text,
            parameters=parameters,
            request=request,
            confidence=confidence
        )

    def normalize(
        self,
        tier_used: TierUsed,
        raw_text: str,
        parameters: Mapping[str, Any],
        request: Optional[ExtractionRequest] = None,
        analysis_type: Any = None,
        laboratory: Any = None,
        sample_info: Optional[Mapping[str, Any]] = None,
        confidence: Any = None
    ) -> ExtractionResult:
        """
        Build a canonical ExtractionResult.

        Args:
            tier_used: Tier that produced the data.
            raw_text: Transcription of the document.
            parameters: Parameter entries: ExtractedParameter objects,
                {"value", "unit", "confidence"} dicts or bare values.
            request: Originating request.
            analysis_type: Analysis type reported by the tier, if any.
            laboratory: Laboratory name or {"name": ...} object.
            sample_info: Sample details reported by the tier.
            confidence: Overall confidence reported by the tier.

        Returns:
            Unvalidated ExtractionResult.
        """
        raw_text = raw_text or ""
        hint = request.sample_type if request else None

        merged_info = {k: v for k, v in (sample_info or {}).items() if v is not None}
        if request:
            merged_info.update(request.metadata.to_dict())

        result = ExtractionResult(
            raw_text=raw_text,
            parameters=self.normalize_parameters(parameters),
            analysis_type=self.resolve_analysis_type(hint, analysis_type, raw_text),
            tier_used=tier_used,
            confidence=coerce_confidence(confidence),
            laboratory=self.normalize_laboratory(laboratory),
            sample_info=merged_info,
            source_file=request.filename if request else None
        )

        logger.debug(f"Normalized {tier_used.value} output: {result!r}")
        return result

    def normalize_parameters(self, parameters: Mapping[str, Any]) -> Dict[str, ExtractedParameter]:
        """
        Canonicalize keys and coerce values.

        When two entries map to the same key, the first one wins.
        Entries without a value are dropped.
        """
        normalized: Dict[str, ExtractedParameter] = {}

        for name, entry in (parameters or {}).items():
            parameter = self._normalize_parameter(entry)
            if parameter is None:
                logger.debug(f"Skipping parameter '{name}' with no value")
                continue

            key = canonical_parameter_key(name)
            if key in normalized:
                logger.debug(f"Duplicate parameter '{name}' ignored (already have {key})")
                continue
            normalized[key] = parameter

        return normalized

    @staticmethod
    def _normalize_parameter(entry: Any) -> Optional[ExtractedParameter]:
        if isinstance(entry, ExtractedParameter):
            value, unit, confidence = entry.value, entry.unit, entry.confidence
        elif isinstance(entry, dict):
            value, unit, confidence = entry.get("value"), entry.get("unit"), entry.get("confidence")
        else:
            value, unit, confidence = entry, None, None

        if value is None or (isinstance(value, str) and not value.strip()):
            return None

        return ExtractedParameter(
            value=coerce_value(value),
            unit=str(unit).strip() if unit is not None else "",
            confidence=coerce_confidence(confidence)
        )

    @staticmethod
    def normalize_laboratory(laboratory: Any) -> Optional[str]:
        """Return a stripped laboratory name, or None when there is none."""
        if isinstance(laboratory, dict):
            laboratory = laboratory.get("name")
        if laboratory is None:
            return None
        name = str(laboratory).strip()
        return name or None

    @staticmethod
    def resolve_analysis_type(hint: Any, reported: Any, text: str) -> AnalysisType:
        """
        Decide the analysis type.

        Precedence: explicit soil/leaf hint, then the type reported by
        the tier, then keyword detection on the text.
        """
        for candidate in (hint, reported):
            analysis_type = AnalysisType.parse(candidate)
            if analysis_type is not AnalysisType.UNKNOWN:
                return analysis_type
        return detect_analysis_type(text)
