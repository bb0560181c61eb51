"""
Tesseract OCR Backend.

Transcribes one page image with Tesseract through pytesseract. The
Tesseract binary must be installed separately; its location can be set
with ocr.tesseract.cmd when it is not on PATH.
"""

from typing import Optional

import pytesseract
from PIL import Image

from config import get_config
from agrilab.utils.exceptions import ServiceUnavailableError
from agrilab.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)

OCR_TIER = "ocr"


class TesseractBackend:
    """
    Page transcription with Tesseract.

    Constructor arguments override the ocr.tesseract.* settings. The
    binary is not looked up until the first page is transcribed, so
    building a backend never fails.

    Attributes:
        lang: Tesseract language code(s), e.g. "eng" or "eng+fra"
        psm: Page segmentation mode
        oem: OCR engine mode
        extra_args: Additional command-line flags

    Example:
        >>> backend = TesseractBackend(lang="eng", psm=6)
        >>> backend.command_line()
        '--psm 6 --oem 3'
    """

    def __init__(
        self,
        lang: Optional[str] = None,
        psm: Optional[int] = None,
        oem: Optional[int] = None,
        extra_args: Optional[str] = None,
        tesseract_cmd: Optional[str] = None
    ) -> None:
        self.lang = lang or get_config("ocr.tesseract.lang", "eng")
        self.psm = int(psm if psm is not None else get_config("ocr.tesseract.psm", 3))
        self.oem = int(oem if oem is not None else get_config("ocr.tesseract.oem", 3))
        self.extra_args = (extra_args if extra_args is not None else get_config("ocr.tesseract.config", "")) or ""

        cmd = tesseract_cmd or get_config("ocr.tesseract.cmd")
        if cmd:
            pytesseract.pytesseract.tesseract_cmd = cmd

        logger.debug(f"TesseractBackend ready (lang={self.lang}, {self.command_line()})")

    def command_line(self) -> str:
        """Flags passed to the tesseract binary."""
        args = f"--psm {self.psm} --oem {self.oem}"
        if self.extra_args.strip():
            args = f"{args} {self.extra_args.strip()}"
        return args

    def image_to_text(self, image: Image.Image, timeout: Optional[float] = None) -> str:
        """
        Transcribe one page.

        Args:
            image: Prepared page image.
            timeout: Seconds before the tesseract process is killed
                (None for no limit).

        Returns:
            The page text, stripped.

        Raises:
            ServiceUnavailableError: If Tesseract is missing, fails or
                runs out of time.
        """
        try:
            text = pytesseract.image_to_string(
                image,
                lang=self.lang,
                config=self.command_line(),
                timeout=timeout or 0
            )
        except pytesseract.TesseractNotFoundError as e:
            raise ServiceUnavailableError(OCR_TIER, f"tesseract binary not found: {e}") from e
        except RuntimeError as e:
            # pytesseract reports both errors and timeouts as RuntimeError
            raise ServiceUnavailableError(OCR_TIER, str(e)) from e

        return text.strip()
