"""
Vision-Based Structured Extractor Module.

This module sends a lab report image to the vision service and parses
its JSON reply into a VisionReply.

Replies are treated as untrusted text: reasoning blocks and markdown
fences are stripped, the JSON object is located and decoded, and only
the expected shape is accepted.

Features:
    - Hard timeout on the service call
    - Tolerant JSON location (fences, preamble text, <think> blocks)
    - Two failure kinds: ServiceUnavailable and MalformedResponse
"""

import asyncio
import json
import re
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from config import get_config
from agrilab.utils.exceptions import (
    ExtractionError,
    MalformedResponseError,
    ServiceUnavailableError,
)
from agrilab.utils.helpers import is_number
from agrilab.utils.logger import get_logger
from .prompts import VISION_EXTRACTION_PROMPT
from .vision_client import VISION_TIER, OpenAIVisionService, VisionService

# Initialize module logger
logger = get_logger(__name__)

DEFAULT_VISION_TIMEOUT = 30.0

_THINK_BLOCK = re.compile(r"<think>.*?</think>", re.DOTALL)
_CODE_FENCE = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL | re.IGNORECASE)


@dataclass(frozen=True)
class VisionReply:
    """
    Parsed vision model reply.

    Every field is optional in the reply; missing fields take the
    defaults below. Values are kept as sent, the normalizer coerces them.

    Attributes:
        extracted_text: Full transcription ("" if absent)
        parameters: Raw parameter entries keyed as the model sent them
        analysis_type: Reported analysis type, if any
        laboratory: Reported laboratory (string or object), if any
        sample_info: Reported sample details ({} if absent)
        confidence: Reported overall confidence, if any
    """
    extracted_text: str = ""
    parameters: Mapping[str, Any] = field(default_factory=dict)
    analysis_type: Optional[str] = None
    laboratory: Any = None
    sample_info: Mapping[str, Any] = field(default_factory=dict)
    confidence: Any = None

    @property
    def has_parameters(self) -> bool:
        return bool(self.parameters)


def strip_reply_markup(raw: str) -> str:
    """
    Remove reasoning blocks and code fences around a JSON reply.

    Example:
        >>> strip_reply_markup('```json\\n{"a": 1}\\n```')
        '{"a": 1}'
    """
    cleaned = _THINK_BLOCK.sub("", raw or "").strip()

    fence = _CODE_FENCE.search(cleaned)
    if fence:
        cleaned = fence.group(1).strip()

    # Drop any preamble or trailing prose around the object
    if not cleaned.startswith("{"):
        start, end = cleaned.find("{"), cleaned.rfind("}")
        if start != -1 and end > start:
            cleaned = cleaned[start:end + 1]

    return cleaned


def _is_unrepresentable(value: Any) -> bool:
    """True for numbers that cannot be held as a finite float."""
    return isinstance(value, (int, float)) and not isinstance(value, bool) and not is_number(value)


def parse_vision_reply(raw: str) -> VisionReply:
    """
    Parse the vision model reply.

    Args:
        raw: Reply text from the vision service.

    Returns:
        VisionReply. A reply without parameters parses successfully;
        deciding what that means is up to the caller.

    Raises:
        MalformedResponseError: If the reply is not a JSON object of the
            expected shape.
    """
    text = strip_reply_markup(raw)
    if not text:
        raise MalformedResponseError(VISION_TIER, "empty reply")

    try:
        data = json.loads(text)
    except ValueError as e:
        # JSONDecodeError, or an integer literal past the int digit limit
        logger.debug(f"Unparseable vision reply: {text[:200]}")
        raise MalformedResponseError(VISION_TIER, f"invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise MalformedResponseError(VISION_TIER, f"expected a JSON object, got {type(data).__name__}")

    structured = data.get("structuredData")
    if structured is None:
        structured = {}
    elif not isinstance(structured, dict):
        raise MalformedResponseError(VISION_TIER, "structuredData is not an object")

    parameters = structured.get("parameters")
    if parameters is None:
        parameters = {}
    elif not isinstance(parameters, dict):
        raise MalformedResponseError(VISION_TIER, "structuredData.parameters is not an object")

    for name, entry in parameters.items():
        value = entry.get("value") if isinstance(entry, dict) else entry
        if _is_unrepresentable(value):
            raise MalformedResponseError(VISION_TIER, f"parameter {name!r} is not a finite number")

    extracted_text = data.get("extractedText")
    sample_info = structured.get("sampleInfo")

    return VisionReply(
        extracted_text=extracted_text if isinstance(extracted_text, str) else "",
        parameters=parameters,
        analysis_type=structured.get("analysisType"),
        laboratory=structured.get("laboratory"),
        sample_info=sample_info if isinstance(sample_info, dict) else {},
        confidence=data.get("confidence")
    )


class VisionExtractor:
    """
    Structured extraction through a vision model.

    Attributes:
        service: Vision service implementation
        timeout: Seconds allowed for one call
        prompt: Instruction text sent with the image

    Example:
        >>> extractor = VisionExtractor()
        >>> reply = await extractor.extract(png_bytes, "image/png")
        >>> reply.parameters["pH"]
        {'value': 5.6, 'unit': '', 'confidence': 0.9}
    """

    def __init__(
        self,
        service: Optional[VisionService] = None,
        timeout: Optional[float] = None,
        prompt: str = VISION_EXTRACTION_PROMPT
    ) -> None:
        self.service = service or OpenAIVisionService()
        self.timeout = float(timeout if timeout is not None
                             else get_config("vision.timeout_seconds", DEFAULT_VISION_TIMEOUT))
        self.prompt = prompt

        logger.info(f"VisionExtractor initialized (timeout={self.timeout}s)")

    async def extract(self, content: bytes, mime_type: str) -> VisionReply:
        """
        Run the vision tier on one image.

        Args:
            content: Image bytes.
            mime_type: MIME type of the image.

        Returns:
            Parsed VisionReply.

        Raises:
            ServiceUnavailableError: On timeout or service failure.
            MalformedResponseError: If the reply cannot be parsed.
        """
        try:
            raw = await asyncio.wait_for(
                self.service.complete(content, mime_type, self.prompt),
                timeout=self.timeout
            )
        except asyncio.TimeoutError as e:
            raise ServiceUnavailableError(VISION_TIER, f"no reply within {self.timeout}s") from e
        except ExtractionError:
            raise
        except Exception as e:
            raise ServiceUnavailableError(VISION_TIER, str(e)) from e

        reply = parse_vision_reply(raw)
        logger.info(f"Vision reply parsed: {len(reply.parameters)} parameter(s)")
        return reply
