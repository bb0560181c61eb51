"""
Pipeline Module for the Lab Report Extraction Pipeline.

Ties the tiers together: vision first, then OCR with regex, then regex
over all collected text, followed by normalization and validation.
"""

from .orchestrator import ExtractionOrchestrator, ExtractionState
from .settings import ExtractionSettings

__all__ = ['ExtractionOrchestrator', 'ExtractionState', 'ExtractionSettings']
