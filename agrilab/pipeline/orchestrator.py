"""
Extraction Orchestrator Module.

This module runs one lab report through the extraction tiers, in a
fixed order and without retries:

    1. Vision model      -> structured JSON          (tier "vision")
    2. OCR + regex       -> parameters from OCR text (tier "ocr-regex")
    3. Regex only        -> parameters from all text (tier "regex-only")

A tier succeeds when it yields at least one parameter. Failures inside a
tier are caught at its boundary, logged and recorded, and the next tier
runs. The last tier always succeeds, so the only error a caller can see
is UnsupportedInputError for a document that cannot be read at all.

Usage:
    from agrilab.pipeline import ExtractionOrchestrator

    orchestrator = ExtractionOrchestrator.from_config()
    result = orchestrator.extract_sync(request)
    print(result.to_json())
"""

import asyncio
import time
from dataclasses import replace
from enum import Enum
from typing import List, Optional

from agrilab.input_handler.handler import DocumentLoader, ExtractionRequest, LoadedDocument
from agrilab.model_inference.extraction_result import ExtractionResult, TierAttempt, TierUsed
from agrilab.model_inference.regex_extractor import RegexExtractor
from agrilab.model_inference.vision_client import OpenAIVisionService
from agrilab.model_inference.vision_extractor import VisionExtractor
from agrilab.ocr_engine.engine import OCREngine, ProgressObserver
from agrilab.postprocessor.normalizers import ResultNormalizer
from agrilab.postprocessor.validators import ConfidenceValidator
from agrilab.utils.exceptions import ErrorKind, ExtractionError, UnsupportedInputError
from agrilab.utils.logger import get_logger
from .settings import ExtractionSettings

# Initialize module logger
logger = get_logger(__name__)


class ExtractionState(str, Enum):
    """Progress of one request through the tiers."""
    NOT_STARTED = "not_started"
    VISION_ATTEMPTED = "vision_attempted"
    OCR_ATTEMPTED = "ocr_attempted"
    REGEX_ATTEMPTED = "regex_attempted"
    COMPLETED = "completed"
    FAILED = "failed"


class ExtractionOrchestrator:
    """
    Runs the tiered extraction pipeline for one request at a time.

    The orchestrator holds no per-request state, so one instance can
    serve concurrent requests.

    Attributes:
        vision_extractor: Tier 1 extractor
        ocr_engine: Tier 2 text source
        regex_extractor: Parameter extraction over text (tiers 2 and 3)
        normalizer: Tier output -> canonical result
        validator: Confidence and range checks
        settings: Pipeline settings
        loader: Request bytes -> page images

    Example:
        >>> orchestrator = ExtractionOrchestrator.from_config()
        >>> result = await orchestrator.extract(request)
        >>> result.tier_used
        <TierUsed.VISION: 'vision'>
    """

    def __init__(
        self,
        vision_extractor: VisionExtractor,
        ocr_engine: OCREngine,
        regex_extractor: Optional[RegexExtractor] = None,
        normalizer: Optional[ResultNormalizer] = None,
        validator: Optional[ConfidenceValidator] = None,
        settings: Optional[ExtractionSettings] = None,
        loader: Optional[DocumentLoader] = None
    ) -> None:
        self.settings = settings or ExtractionSettings()
        self.vision_extractor = vision_extractor
        self.ocr_engine = ocr_engine
        self.regex_extractor = regex_extractor or RegexExtractor(
            confidence=self.settings.regex_confidence
        )
        self.normalizer = normalizer or ResultNormalizer()
        self.validator = validator or ConfidenceValidator(
            ranges=self.settings.validation_ranges,
            default_result_confidence=self.settings.default_result_confidence,
            default_parameter_confidence=self.settings.default_parameter_confidence,
            out_of_range_cap=self.settings.out_of_range_confidence_cap
        )
        self.loader = loader or DocumentLoader()

        logger.info("ExtractionOrchestrator initialized")

    @classmethod
    def from_config(cls) -> 'ExtractionOrchestrator':
        """Build an orchestrator with the default OpenAI and Tesseract tiers."""
        settings = ExtractionSettings.from_config()
        return cls(
            vision_extractor=VisionExtractor(OpenAIVisionService(), timeout=settings.vision_timeout),
            ocr_engine=OCREngine(timeout=settings.ocr_timeout, sentinel=settings.no_text_sentinel),
            settings=settings
        )

    async def extract(
        self,
        request: ExtractionRequest,
        progress: Optional[ProgressObserver] = None
    ) -> ExtractionResult:
        """
        Extract one lab report.

        Args:
            request: Document and hints.
            progress: Optional OCR progress observer (percent 0-100).

        Returns:
            Validated ExtractionResult.

        Raises:
            UnsupportedInputError: If the document is empty or unreadable.
                No tier is attempted in that case.
        """
        start_time = time.time()
        logger.info(f"Starting extraction: {request!r}")

        try:
            document = self.loader.load(request)
        except UnsupportedInputError as e:
            self._transition(ExtractionState.NOT_STARTED, ExtractionState.FAILED)
            logger.error(f"Rejected input: {e}")
            raise

        attempts: List[TierAttempt] = []
        collected_text: List[str] = []

        # Tier 1: vision
        self._transition(ExtractionState.NOT_STARTED, ExtractionState.VISION_ATTEMPTED)
        result = await self._attempt_vision(request, document, attempts, collected_text)
        if result is not None:
            return self._complete(ExtractionState.VISION_ATTEMPTED, result, attempts, start_time)

        # Tier 2: OCR + regex
        self._transition(ExtractionState.VISION_ATTEMPTED, ExtractionState.OCR_ATTEMPTED)
        result = await self._attempt_ocr(request, document, progress, attempts, collected_text)
        if result is not None:
            return self._complete(ExtractionState.OCR_ATTEMPTED, result, attempts, start_time)

        # Tier 3: regex over everything collected so far
        self._transition(ExtractionState.OCR_ATTEMPTED, ExtractionState.REGEX_ATTEMPTED)
        result = self._attempt_regex(request, attempts, collected_text)
        return self._complete(ExtractionState.REGEX_ATTEMPTED, result, attempts, start_time)

    def extract_sync(
        self,
        request: ExtractionRequest,
        progress: Optional[ProgressObserver] = None
    ) -> ExtractionResult:
        """Run extract() to completion in a new event loop."""
        return asyncio.run(self.extract(request, progress))

    async def _attempt_vision(
        self,
        request: ExtractionRequest,
        document: LoadedDocument,
        attempts: List[TierAttempt],
        collected_text: List[str]
    ) -> Optional[ExtractionResult]:
        tier = "vision"

        if not self.settings.vision_enabled:
            logger.info("Vision tier disabled, skipping")
            attempts.append(TierAttempt(tier, succeeded=False, message="disabled"))
            return None

        try:
            content, mime_type = document.vision_payload()
            reply = await self.vision_extractor.extract(content, mime_type)
        except ExtractionError as e:
            logger.warning(f"Vision tier failed: {e}")
            attempts.append(TierAttempt(tier, succeeded=False, error_kind=e.kind.value, message=str(e)))
            return None
        except Exception as e:
            logger.error(f"Unexpected error in vision tier: {e}")
            attempts.append(TierAttempt(
                tier, succeeded=False,
                error_kind=ErrorKind.SERVICE_UNAVAILABLE.value, message=str(e)
            ))
            return None

        if reply.extracted_text.strip():
            collected_text.append(reply.extracted_text)

        try:
            result = self.normalizer.from_vision_reply(reply, request)
        except Exception as e:
            logger.warning(f"Vision reply could not be normalized: {e}")
            attempts.append(TierAttempt(
                tier, succeeded=False,
                error_kind=ErrorKind.MALFORMED_RESPONSE.value, message=str(e)
            ))
            return None

        if not result.parameters:
            logger.warning("Vision reply contained no parameters")
            attempts.append(TierAttempt(tier, succeeded=False, message="no parameters in reply"))
            return None

        attempts.append(TierAttempt(tier, succeeded=True, parameter_count=len(result.parameters)))
        return result

    async def _attempt_ocr(
        self,
        request: ExtractionRequest,
        document: LoadedDocument,
        progress: Optional[ProgressObserver],
        attempts: List[TierAttempt],
        collected_text: List[str]
    ) -> Optional[ExtractionResult]:
        tier = "ocr"

        try:
            text = await self.ocr_engine.extract_text(document, progress)
        except Exception as e:
            logger.error(f"Unexpected error in OCR tier: {e}")
            attempts.append(TierAttempt(
                tier, succeeded=False,
                error_kind=ErrorKind.SERVICE_UNAVAILABLE.value, message=str(e)
            ))
            return None

        if not text or text == self.settings.no_text_sentinel:
            attempts.append(TierAttempt(tier, succeeded=False, message="no text detected"))
            return None

        collected_text.append(text)
        parameters = self.regex_extractor.extract(text)
        if not parameters:
            logger.warning("No parameters found in OCR text")
            attempts.append(TierAttempt(tier, succeeded=False, message="no parameters in OCR text"))
            return None

        attempts.append(TierAttempt(tier, succeeded=True, parameter_count=len(parameters)))
        return self.normalizer.from_text(
            TierUsed.OCR_REGEX, text, parameters, request,
            confidence=self.settings.ocr_regex_confidence
        )

    def _attempt_regex(
        self,
        request: ExtractionRequest,
        attempts: List[TierAttempt],
        collected_text: List[str]
    ) -> ExtractionResult:
        text = "\n\n".join(collected_text)
        parameters = self.regex_extractor.extract(text)

        attempts.append(TierAttempt("regex", succeeded=True, parameter_count=len(parameters)))
        return self.normalizer.from_text(
            TierUsed.REGEX_ONLY, text or self.settings.no_text_sentinel, parameters, request,
            confidence=self.settings.regex_only_confidence
        )

    def _complete(
        self,
        state: ExtractionState,
        result: ExtractionResult,
        attempts: List[TierAttempt],
        start_time: float
    ) -> ExtractionResult:
        self._transition(state, ExtractionState.COMPLETED)

        result = self.validator.validate(result)
        result = replace(
            result,
            attempts=tuple(attempts),
            processing_time=round(time.time() - start_time, 3)
        )

        logger.info(
            f"Extraction completed via {result.tier_used.value}: "
            f"{len(result.parameters)} parameter(s), "
            f"confidence={result.confidence}, "
            f"{len(result.warnings)} warning(s) ({result.processing_time:.2f}s)"
        )
        return result

    @staticmethod
    def _transition(current: ExtractionState, target: ExtractionState) -> None:
        logger.debug(f"State {current.value} -> {target.value}")
