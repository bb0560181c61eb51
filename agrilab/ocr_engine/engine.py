"""
Main OCR Engine Module.

This module provides the OCREngine class, the text fallback used when
the vision tier cannot produce structured data. It transcribes every
page of a loaded document and never raises: when anything goes wrong
the caller receives a fixed sentinel string instead of text.

Usage:
    from agrilab.ocr_engine import OCREngine

    engine = OCREngine()
    text = await engine.extract_text(document, progress=print)
"""

import asyncio
import functools
from typing import Callable, List, Optional

from PIL import Image

from config import get_config
from agrilab.input_handler.handler import LoadedDocument
from agrilab.input_handler.image_processor import ImageProcessor
from agrilab.utils.logger import get_logger
from .tesseract_backend import TesseractBackend

# Initialize module logger
logger = get_logger(__name__)

NO_TEXT_SENTINEL = "No text detected in image"
DEFAULT_OCR_TIMEOUT = 60.0

ProgressObserver = Callable[[int], None]


class OCREngine:
    """
    Asynchronous full-page OCR with a hard timeout.

    Each page is prepared and transcribed in the default executor so
    the event loop is never blocked. All pages share one timeout.

    Attributes:
        backend: Object with an image_to_text(image, timeout) method
        timeout: Seconds allowed for the whole document
        sentinel: Returned when no usable text is produced
        image_processor: Prepares page images before transcription

    Example:
        >>> engine = OCREngine()
        >>> text = asyncio.run(engine.extract_text(document))
        >>> text == engine.sentinel
        False
    """

    def __init__(
        self,
        backend: Optional[TesseractBackend] = None,
        timeout: Optional[float] = None,
        sentinel: Optional[str] = None,
        image_processor: Optional[ImageProcessor] = None
    ) -> None:
        """
        Initialize the OCR engine.

        Args:
            backend: OCR backend. Defaults to Tesseract.
            timeout: Seconds for the whole document. Defaults to
                    ocr.timeout_seconds.
            sentinel: No-text marker. Defaults to ocr.no_text_sentinel.
            image_processor: Page preparation. Defaults to ImageProcessor().
        """
        self.backend = backend or TesseractBackend()
        self.timeout = float(timeout if timeout is not None
                             else get_config("ocr.timeout_seconds", DEFAULT_OCR_TIMEOUT))
        self.sentinel = sentinel or get_config("ocr.no_text_sentinel", NO_TEXT_SENTINEL)
        self.image_processor = image_processor or ImageProcessor()

        logger.info(f"OCR Engine initialized (timeout={self.timeout}s)")

    async def extract_text(
        self,
        document: LoadedDocument,
        progress: Optional[ProgressObserver] = None
    ) -> str:
        """
        Transcribe every page of a document.

        Args:
            document: Loaded document.
            progress: Optional observer called with percentages 0-100.

        Returns:
            Page texts joined by blank lines, or the sentinel when OCR
            failed, timed out or found nothing.
        """
        reporter = _ProgressReporter(progress)
        reporter.report(0)

        try:
            pages = await asyncio.wait_for(
                self._transcribe(document, reporter),
                timeout=self.timeout
            )
            text = "\n\n".join(page for page in pages if page).strip()
        except asyncio.TimeoutError:
            logger.error(f"OCR timed out after {self.timeout}s")
            text = ""
        except Exception as e:
            logger.error(f"OCR failed: {e}")
            text = ""

        reporter.report(100)

        if not text:
            logger.warning("OCR produced no text")
            return self.sentinel

        logger.info(f"OCR extracted {len(text)} characters from {document.page_count} page(s)")
        return text

    async def _transcribe(self, document: LoadedDocument, reporter: '_ProgressReporter') -> List[str]:
        loop = asyncio.get_running_loop()
        texts = []

        for index, page in enumerate(document.pages, 1):
            logger.debug(f"Transcribing page {index}/{document.page_count}")
            text = await loop.run_in_executor(None, functools.partial(self._page_text, page))
            texts.append(text)
            reporter.report(index * 100 // document.page_count)

        return texts

    def _page_text(self, page: Image.Image) -> str:
        prepared = self.image_processor.prepare_for_ocr(page)
        return self.backend.image_to_text(prepared, timeout=self.timeout)


class _ProgressReporter:
    """Forwards increasing percentages to an optional observer."""

    def __init__(self, observer: Optional[ProgressObserver]) -> None:
        self.observer = observer
        self.last = -1

    def report(self, percent: int) -> None:
        percent = max(0, min(100, int(percent)))
        if self.observer is None or percent <= self.last:
            return

        self.last = percent
        try:
            self.observer(percent)
        except Exception as e:
            logger.warning(f"Progress observer raised, ignoring: {e}")
