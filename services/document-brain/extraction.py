"""Extraction orchestrator: fetch -> text -> reduce -> generate -> gate -> persist.

One sequential pipeline per request. Nothing request-specific is kept on the
instance, so a single pipeline serves concurrent requests.
"""

import logging
import time

from confidence_gate import ConfidenceGate, GateThresholds
from config import Settings
from fetcher import DocumentFetcher
from models import ExtractedDocument, ExtractionRequest
from persistence import ResultPersister
from preprocessing import reduce_text
from prompts import UNIFIED
from schema_extraction import SchemaExtractor
from text_extraction import EXTRACTION_FAILED_TEXT, extract_text

logger = logging.getLogger(__name__)


class ExtractionPipeline:
    """Runs one document through every stage and stores the result."""

    def __init__(
        self,
        fetcher: DocumentFetcher,
        extractor: SchemaExtractor,
        persister: ResultPersister | None = None,
        *,
        token_budget: int = 30_000,
        thresholds: GateThresholds | None = None,
        failed_extraction_max_confidence: float = 0.2,
    ):
        self._fetcher = fetcher
        self._extractor = extractor
        self._persister = persister
        self._token_budget = token_budget
        self._gate = ConfidenceGate(extractor, thresholds)
        self._failed_extraction_max_confidence = failed_extraction_max_confidence

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        fetcher: DocumentFetcher,
        extractor: SchemaExtractor,
        persister: ResultPersister | None,
    ) -> "ExtractionPipeline":
        return cls(
            fetcher,
            extractor,
            persister,
            token_budget=settings.TOKEN_BUDGET,
            thresholds=GateThresholds.from_settings(settings),
            failed_extraction_max_confidence=settings.FAILED_EXTRACTION_MAX_CONFIDENCE,
        )

    def run(self, request: ExtractionRequest) -> ExtractedDocument:
        """Process one request end to end.

        Raises FetchError, SchemaError, GenerationError or PersistError.
        """
        start = time.monotonic()

        data = self._fetcher.fetch(request.source_ref, request.expected_size)
        result = self.analyze(data)

        if self._persister is not None:
            self._persister.persist(request.document_id, result)
        else:
            logger.info("Store not configured, result for %s not persisted", request.document_id)

        elapsed_ms = int((time.monotonic() - start) * 1000)
        logger.info(
            "Extraction finished for %s in %dms: document_type=%s confidence=%.2f",
            request.document_id, elapsed_ms, result.document_type, result.confidence,
        )
        return result

    def analyze(self, data: bytes) -> ExtractedDocument:
        """Extract text from PDF bytes and turn it into a typed result."""
        text = extract_text(data)
        logger.info("Extracted %d chars of text from %d bytes", len(text), len(data))
        return self.analyze_text(text)

    def analyze_text(self, text: str) -> ExtractedDocument:
        """Reduce, run the initial generation call and apply the confidence gate."""
        reduced = reduce_text(text, self._token_budget)
        base = self._extractor.classify(reduced, UNIFIED)
        result = self._gate.resolve(base, text, reduced)

        if text == EXTRACTION_FAILED_TEXT and result.confidence > self._failed_extraction_max_confidence:
            logger.info(
                "Capping confidence %.2f -> %.2f: no text could be extracted",
                result.confidence, self._failed_extraction_max_confidence,
            )
            result = result.model_copy(update={"confidence": self._failed_extraction_max_confidence})
        return result
