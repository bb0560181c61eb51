"""Shared test fixtures for the lab report extraction pipeline."""

import asyncio
import io
import json
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional

import fitz
import pytest
from PIL import Image

# Add project root to path so we can import the packages
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import ConfigurationManager
from agrilab.input_handler import DocumentLoader, ExtractionRequest
from agrilab.utils.logger import ROOT_LOGGER_NAME


class FakeVisionService:
    """Vision service double that returns a canned reply."""

    def __init__(self, reply: str = "", error: Optional[Exception] = None, delay: float = 0.0):
        self.reply = reply
        self.error = error
        self.delay = delay
        self.calls: List[tuple] = []

    async def complete(self, content: bytes, mime_type: str, prompt: str) -> str:
        self.calls.append((content, mime_type, prompt))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.reply


class FakeOCREngine:
    """OCR engine double that returns canned text."""

    def __init__(self, text: str = "No text detected in image", error: Optional[Exception] = None):
        self.text = text
        self.error = error
        self.calls = 0

    async def extract_text(self, document, progress=None) -> str:
        self.calls += 1
        if progress is not None:
            progress(0)
            progress(100)
        if self.error is not None:
            raise self.error
        return self.text


class FakeOCRBackend:
    """Tesseract double returning one text per call."""

    def __init__(self, texts=("",), error: Optional[Exception] = None, delay: float = 0.0):
        self.texts = list(texts)
        self.error = error
        self.delay = delay
        self.calls = 0

    def image_to_text(self, image, timeout=None) -> str:
        self.calls += 1
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.texts[min(self.calls, len(self.texts)) - 1]


def vision_reply(parameters=None, analysis_type="soil", extracted_text="", confidence=0.9, **structured) -> str:
    """Build a vision model reply in the documented JSON shape."""
    data = {
        "parameters": parameters or {},
        "analysisType": analysis_type,
    }
    data.update(structured)
    return json.dumps({
        "extractedText": extracted_text,
        "structuredData": data,
        "confidence": confidence,
    })


@pytest.fixture(autouse=True)
def default_config():
    """Every test starts from config/settings.yaml and unconfigured logging."""
    ConfigurationManager.reset()
    yield
    ConfigurationManager.reset()

    app_logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(app_logger.handlers):
        app_logger.removeHandler(handler)
        handler.close()
    app_logger.setLevel(logging.NOTSET)
    app_logger.propagate = True


@pytest.fixture
def png_bytes() -> bytes:
    """A small white PNG."""
    image = Image.new("RGB", (200, 120), (255, 255, 255))
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def tiff_bytes() -> bytes:
    """A two-frame TIFF."""
    frames = [Image.new("RGB", (80, 60), color) for color in ((255, 255, 255), (0, 0, 0))]
    buffer = io.BytesIO()
    frames[0].save(buffer, format="TIFF", save_all=True, append_images=frames[1:])
    return buffer.getvalue()


@pytest.fixture
def pdf_bytes() -> bytes:
    """A one-page PDF with a line of report text."""
    doc = fitz.open()
    page = doc.new_page(width=300, height=200)
    page.insert_text((20, 50), "Soil Analysis  pH: 5.6  N: 0.15")
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def png_request(png_bytes) -> ExtractionRequest:
    return ExtractionRequest(content=png_bytes, mime_type="image/png", filename="report.png")


@pytest.fixture
def loaded_document(png_request):
    return DocumentLoader().load(png_request)
