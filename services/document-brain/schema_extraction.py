"""Schema-constrained extraction: prompt variant + text -> typed result."""

import json
import logging
import re

from pydantic import ValidationError

from errors import SchemaError
from generation_client import GenerationClient
from models import UNIFIED_SCHEMA, ExtractedDocument, UnifiedExtraction
from prompts import PROMPTS, build_messages

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)


class SchemaExtractor:
    """Runs one generation call and parses it into an ``ExtractedDocument``."""

    def __init__(self, client: GenerationClient):
        self._client = client

    def classify(self, text: str, variant: str) -> ExtractedDocument:
        """Extract a typed result from ``text`` using the given prompt variant.

        Raises SchemaError on missing or unparseable output. Generation
        service failures propagate unchanged.
        """
        if variant not in PROMPTS:
            raise ValueError(f"Unknown prompt variant: {variant}")

        raw = self._client.complete(build_messages(variant, text), UNIFIED_SCHEMA)
        if not raw.strip():
            raise SchemaError("No structured output from generation service")

        parsed = try_parse_json(raw)
        if parsed is None:
            raise SchemaError(f"Unparseable generation output: {raw[:200]!r}")

        try:
            result = UnifiedExtraction.model_validate(parsed).to_document()
        except ValidationError as e:
            raise SchemaError(f"Generation output does not match schema: {e}") from e

        logger.info(
            "Extraction (%s): document_type=%s confidence=%.2f summary_length=%d",
            variant, result.document_type, result.confidence, len(result.summary),
        )
        return result


def try_parse_json(raw: str) -> dict | None:
    """Pull the first JSON object out of a model reply.

    Candidates are tried in order: the whole reply, each fenced code block,
    then the span from the first ``{`` to the last ``}``.
    """
    cleaned = (raw or "").strip()
    if not cleaned:
        return None

    candidates = [cleaned]
    candidates.extend(block.strip() for block in _FENCE_RE.findall(cleaned))
    start, end = cleaned.find("{"), cleaned.rfind("}")
    if 0 <= start < end:
        candidates.append(cleaned[start:end + 1])

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed

    # Replies can echo document text; log the size only
    logger.warning("No JSON object in generation output (%d chars)", len(cleaned))
    return None
