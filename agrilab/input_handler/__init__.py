"""
Input Handler Module for the Lab Report Extraction Pipeline.

This module provides functionality for:
    - Describing an extraction request (bytes, MIME type, hints)
    - Detecting PDFs and images
    - Rendering PDFs to page images
    - Preparing images for OCR

Supported formats:
    - PDF
    - Images: PNG, JPEG, TIFF, BMP, WebP, GIF
"""

from .handler import DocumentLoader, ExtractionRequest, LoadedDocument, SampleMetadata
from .pdf_processor import PDFProcessor
from .image_processor import ImageProcessor

__all__ = [
    'DocumentLoader',
    'ExtractionRequest',
    'LoadedDocument',
    'SampleMetadata',
    'PDFProcessor',
    'ImageProcessor',
]
