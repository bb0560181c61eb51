"""
OCR Engine Module for the Lab Report Extraction Pipeline.

Full-page text transcription used when the vision tier fails:
    - Page preparation and Tesseract transcription
    - Hard timeout over the whole document
    - Optional progress reporting
    - A fixed sentinel instead of exceptions
"""

from .engine import NO_TEXT_SENTINEL, OCREngine, ProgressObserver
from .tesseract_backend import TesseractBackend

__all__ = ['OCREngine', 'TesseractBackend', 'ProgressObserver', 'NO_TEXT_SENTINEL']
