"""
Main Input Handler Module.

This module defines the extraction request and turns its raw bytes into
page images. It detects PDFs and images and delegates to the
appropriate processor.

Usage:
    from agrilab.input_handler import DocumentLoader, ExtractionRequest

    request = ExtractionRequest.from_file("report.pdf", sample_type="soil")
    document = DocumentLoader().load(request)

Classes:
    SampleMetadata: Caller-supplied sample details
    ExtractionRequest: One document to extract
    LoadedDocument: Decoded pages ready for the extraction tiers
    DocumentLoader: Bytes -> LoadedDocument
"""

import mimetypes
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from PIL import Image

from agrilab.utils.exceptions import UnsupportedInputError
from agrilab.utils.helpers import format_file_size
from agrilab.utils.logger import get_logger

from .image_processor import ImageProcessor
from .pdf_processor import PDFProcessor

# Initialize module logger
logger = get_logger(__name__)

PDF_MIME_TYPE = "application/pdf"
PDF_MAGIC = b"%PDF"

# Formats the vision service accepts as-is
VISION_NATIVE_MIME_TYPES = frozenset({
    "image/png",
    "image/jpeg",
    "image/webp",
    "image/gif",
})


@dataclass(frozen=True)
class SampleMetadata:
    """
    Sample details supplied with the request.

    These take precedence over anything read from the document.
    """
    sample_id: Optional[str] = None
    date: Optional[str] = None
    location: Optional[str] = None

    def to_dict(self) -> Dict[str, str]:
        data = {
            'sampleId': self.sample_id,
            'date': self.date,
            'location': self.location,
        }
        return {k: v for k, v in data.items() if v is not None}


@dataclass(frozen=True)
class ExtractionRequest:
    """
    A single lab report to extract.

    Attributes:
        content: Raw document bytes
        mime_type: Declared MIME type
        sample_type: Optional hint: "soil", "leaf" or "unknown"
        metadata: Optional caller-supplied sample details
        filename: Original filename, if known
    """
    content: bytes
    mime_type: str
    sample_type: Optional[str] = None
    metadata: SampleMetadata = field(default_factory=SampleMetadata)
    filename: Optional[str] = None

    @classmethod
    def from_file(
        cls,
        filepath: Union[str, Path],
        mime_type: Optional[str] = None,
        sample_type: Optional[str] = None,
        metadata: Optional[SampleMetadata] = None
    ) -> 'ExtractionRequest':
        """
        Build a request from a file on disk.

        The MIME type is guessed from the extension when not given.
        """
        path = Path(filepath)
        if mime_type is None:
            mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"

        return cls(
            content=path.read_bytes(),
            mime_type=mime_type,
            sample_type=sample_type,
            metadata=metadata or SampleMetadata(),
            filename=path.name
        )

    def __repr__(self) -> str:
        return (
            f"ExtractionRequest(filename={self.filename!r}, "
            f"mime_type={self.mime_type!r}, "
            f"size={format_file_size(len(self.content))})"
        )


@dataclass(frozen=True)
class LoadedDocument:
    """
    Decoded document.

    Attributes:
        pages: One RGB-convertible PIL Image per page
        mime_type: Effective MIME type after sniffing
        content: Original bytes
        metadata: File metadata from the processor
    """
    pages: Tuple[Image.Image, ...]
    mime_type: str
    content: bytes
    metadata: Mapping[str, Any] = field(default_factory=dict)

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def vision_payload(self) -> Tuple[bytes, str]:
        """
        Bytes and MIME type to send to the vision service.

        Natively supported images are sent unchanged; PDFs, TIFFs and
        other formats are sent as a PNG of the first page.
        """
        if self.mime_type in VISION_NATIVE_MIME_TYPES:
            return self.content, self.mime_type
        return ImageProcessor.to_png_bytes(self.pages[0]), "image/png"


class DocumentLoader:
    """
    Turns an ExtractionRequest into a LoadedDocument.

    Any document that is empty or cannot be decoded is rejected with
    UnsupportedInputError before an extraction tier is attempted.

    Example:
        >>> loader = DocumentLoader()
        >>> document = loader.load(request)
        >>> print(f"Loaded {document.page_count} page(s)")
    """

    def __init__(
        self,
        pdf_processor: Optional[PDFProcessor] = None,
        image_processor: Optional[ImageProcessor] = None
    ) -> None:
        self.pdf_processor = pdf_processor or PDFProcessor()
        self.image_processor = image_processor or ImageProcessor()

    @staticmethod
    def is_pdf(request: ExtractionRequest) -> bool:
        """Detect PDFs by declared MIME type or by magic bytes."""
        return request.mime_type == PDF_MIME_TYPE or request.content.startswith(PDF_MAGIC)

    def load(self, request: ExtractionRequest) -> LoadedDocument:
        """
        Decode the request content.

        Args:
            request: Extraction request.

        Returns:
            LoadedDocument with at least one page.

        Raises:
            UnsupportedInputError: If the content is empty or unreadable.
        """
        if not request.content:
            raise UnsupportedInputError("document is empty", request.mime_type, request.filename)

        is_pdf = self.is_pdf(request)
        try:
            if is_pdf:
                pages, metadata = self.pdf_processor.render(request.content)
                mime_type = PDF_MIME_TYPE
            else:
                pages, metadata = self.image_processor.decode(request.content)
                mime_type = Image.MIME.get(metadata.get('format'), request.mime_type)
        except Exception as e:
            logger.error(f"Could not decode {request.filename or 'document'}: {e}")
            raise UnsupportedInputError(
                f"cannot read document ({e})", request.mime_type, request.filename
            ) from e

        if not pages:
            raise UnsupportedInputError("document has no pages", request.mime_type, request.filename)

        metadata['file_size_bytes'] = len(request.content)
        if request.filename:
            metadata['original_filename'] = request.filename

        logger.info(
            f"Loaded {request.filename or 'document'} as {mime_type} "
            f"({len(pages)} page(s), {format_file_size(len(request.content))})"
        )
        return LoadedDocument(
            pages=tuple(pages),
            mime_type=mime_type,
            content=request.content,
            metadata=metadata
        )
