"""Confidence gate: accept the first result, retry once, or run two passes.

Exactly one escalation round per request, so a request makes at most three
generation calls (initial + classify + detailed, or initial + retry). The
escalated result is returned even if its confidence is still low.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from config import Settings
from errors import SchemaError
from models import ExtractedDocument, merge_overwrite
from prompts import CLASSIFY, FRAGMENTED, TAILORED_PROMPTS, UNIFIED
from schema_extraction import SchemaExtractor

logger = logging.getLogger(__name__)


class Decision(str, Enum):
    ACCEPT = "accept"
    RETRY = "retry"
    TWO_PASS = "two_pass"


@dataclass(frozen=True)
class GateThresholds:
    accept_confidence: float = 0.4
    large_doc_confidence: float = 0.6
    large_doc_chars: int = 500_000
    two_pass_chars: int = 300_000
    classify_excerpt_chars: int = 50_000

    @classmethod
    def from_settings(cls, settings: Settings) -> "GateThresholds":
        return cls(
            accept_confidence=settings.ACCEPT_CONFIDENCE,
            large_doc_confidence=settings.LARGE_DOC_CONFIDENCE,
            large_doc_chars=settings.LARGE_DOC_CHARS,
            two_pass_chars=settings.TWO_PASS_CHARS,
            classify_excerpt_chars=settings.CLASSIFY_EXCERPT_CHARS,
        )


def decide(confidence: float, text_length: int, thresholds: GateThresholds) -> Decision:
    """Very large documents need a higher confidence to be accepted outright."""
    if confidence >= thresholds.accept_confidence and (
        text_length <= thresholds.large_doc_chars
        or confidence >= thresholds.large_doc_confidence
    ):
        return Decision.ACCEPT
    if text_length > thresholds.two_pass_chars:
        return Decision.TWO_PASS
    return Decision.RETRY


class ConfidenceGate:
    """Applies the accept/escalate decision to one initial result."""

    def __init__(self, extractor: SchemaExtractor, thresholds: GateThresholds | None = None):
        self._extractor = extractor
        self._thresholds = thresholds or GateThresholds()

    def resolve(self, base: ExtractedDocument, text: str, reduced_text: str) -> ExtractedDocument:
        """Return ``base`` or the result of a single escalation merged over it.

        ``text`` is the full extracted text (its length drives the decision and
        it supplies the classification excerpt); ``reduced_text`` is what the
        detailed calls see.
        """
        decision = decide(base.confidence, len(text), self._thresholds)
        if decision is Decision.ACCEPT:
            return base

        logger.info(
            "Escalating (%s): confidence=%.2f text_length=%d",
            decision.value, base.confidence, len(text),
        )
        try:
            if decision is Decision.TWO_PASS:
                patch = self._two_pass(text, reduced_text)
            else:
                patch = self._extractor.classify(reduced_text, FRAGMENTED)
        except SchemaError as e:
            logger.warning("Escalation (%s) failed, keeping initial result: %s", decision.value, e)
            return base

        merged = merge_overwrite(base, patch)
        if merged.confidence < self._thresholds.accept_confidence:
            logger.warning(
                "Confidence still low after %s: %.2f (document_type=%s)",
                decision.value, merged.confidence, merged.document_type,
            )
        return merged

    def _two_pass(self, text: str, reduced_text: str) -> ExtractedDocument:
        """Classify from the head of the document, then run the type-tailored prompt."""
        excerpt = text[: self._thresholds.classify_excerpt_chars]
        classified = self._extractor.classify(excerpt, CLASSIFY)

        variant = TAILORED_PROMPTS.get(classified.document_type, UNIFIED)
        logger.info("Two-pass: classified as %s, detailed prompt=%s", classified.document_type, variant)
        return self._extractor.classify(reduced_text, variant)
