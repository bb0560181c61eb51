"""
Agricultural Lab Report Extraction - Source Package.

Turns scanned soil and leaf analysis reports into structured,
per-parameter nutrient data with confidence scores.

Modules:
    - input_handler: Request model, PDF and image decoding
    - model_inference: Vision and regex extractors, result types
    - ocr_engine: Tesseract fallback transcription
    - postprocessor: Normalization and range validation
    - pipeline: Tiered orchestration
    - utils: Logging, exceptions, helpers

Architecture:
    Input -> Vision -> (fallback) OCR + Regex -> (fallback) Regex
          -> Normalize -> Validate -> Result
"""

__version__ = "1.0.0"

__all__ = [
    'input_handler',
    'model_inference',
    'ocr_engine',
    'postprocessor',
    'pipeline',
    'utils',
]
