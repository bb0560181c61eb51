"""
PDF Processor Module.

This module renders PDF lab reports to page images with PyMuPDF so
they can be transcribed or sent to the vision model.
"""

import io
from typing import Any, Dict, List, Tuple

import fitz  # PyMuPDF
from PIL import Image

from config import get_config
from agrilab.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)

# Native PDF resolution
PDF_BASE_DPI = 72.0


class PDFProcessor:
    """
    Processor for PDF content.

    Attributes:
        dpi: Resolution for PDF to image conversion
        max_pages: Maximum number of pages to render

    Example:
        >>> processor = PDFProcessor()
        >>> pages, metadata = processor.render(pdf_bytes)
        >>> print(f"Rendered {len(pages)} page(s)")
    """

    def __init__(self) -> None:
        """Initialize the PDF processor with configuration."""
        self.dpi = get_config("input.pdf.dpi", 300)
        self.max_pages = get_config("input.pdf.max_pages", 5)

        logger.debug(f"PDFProcessor initialized (DPI={self.dpi}, max_pages={self.max_pages})")

    def render(self, content: bytes) -> Tuple[List[Image.Image], Dict[str, Any]]:
        """
        Render PDF bytes to RGB page images.

        Args:
            content: Raw PDF bytes.

        Returns:
            Tuple of (list of PIL Images, metadata dictionary).

        Raises:
            fitz.FileDataError: If the bytes are not a readable PDF.
        """
        zoom = self.dpi / PDF_BASE_DPI
        matrix = fitz.Matrix(zoom, zoom)
        images = []

        with fitz.open(stream=content, filetype="pdf") as doc:
            metadata = self._extract_metadata(doc)

            if len(doc) > self.max_pages:
                logger.warning(f"PDF has {len(doc)} pages, limiting to {self.max_pages}")

            for page_num in range(min(len(doc), self.max_pages)):
                pix = doc.load_page(page_num).get_pixmap(matrix=matrix)
                image = Image.open(io.BytesIO(pix.tobytes("png")))
                image.load()
                if image.mode != 'RGB':
                    image = image.convert('RGB')
                images.append(image)

        metadata['page_count'] = len(images)
        logger.info(f"Converted PDF to {len(images)} image(s)")
        return images, metadata

    def _extract_metadata(self, doc: "fitz.Document") -> Dict[str, Any]:
        metadata = {
            'file_type': 'pdf',
            'source_dpi': self.dpi,
            'total_pages': len(doc),
        }

        pdf_metadata = doc.metadata or {}
        for key in ('title', 'author', 'creator'):
            if pdf_metadata.get(key):
                metadata[f'pdf_{key}'] = pdf_metadata[key]

        return metadata
