"""Tests for schema-constrained extraction and JSON parsing."""

import json
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from errors import GenerationError, SchemaError
from models import UNIFIED_SCHEMA, ContractDocument, InvoiceDocument, OtherDocument
from prompts import FRAGMENTED, PROMPTS, UNIFIED
from schema_extraction import SchemaExtractor, try_parse_json


def _extractor(*outputs) -> tuple[SchemaExtractor, MagicMock]:
    client = MagicMock()
    client.complete.side_effect = list(outputs)
    return SchemaExtractor(client), client


class TestTryParseJSON:
    def test_direct_json(self):
        raw = '{"document_type": "contract", "ai_confidence": 0.9}'
        result = try_parse_json(raw)
        assert result == {"document_type": "contract", "ai_confidence": 0.9}

    def test_markdown_fence(self, mock_markdown_response: str):
        result = try_parse_json(mock_markdown_response)
        assert result is not None
        assert result["document_type"] == "invoice"

    def test_preamble_text(self, mock_preamble_response: str):
        result = try_parse_json(mock_preamble_response)
        assert result is not None
        assert result["document_type"] == "drawing"

    def test_later_fenced_block(self):
        raw = "```\nsee below\n```\n\n```json\n{\"document_type\": \"contract\"}\n```"
        assert try_parse_json(raw) == {"document_type": "contract"}

    def test_trailing_text(self):
        raw = '{"document_type": "spec"}\n\nLet me know if you need anything else.'
        assert try_parse_json(raw) == {"document_type": "spec"}

    def test_whitespace_padded(self):
        raw = '  \n  {"key": "value"}  \n  '
        result = try_parse_json(raw)
        assert result == {"key": "value"}

    def test_not_json(self):
        result = try_parse_json("This is just plain text with no JSON at all.")
        assert result is None

    def test_array_not_dict(self):
        result = try_parse_json('[1, 2, 3]')
        assert result is None

    def test_truncated_json(self):
        assert try_parse_json('{"document_type": "invoice", "ai_summary": "Tax inv') is None

    def test_empty_string(self):
        result = try_parse_json("")
        assert result is None


class TestClassify:
    def test_contract(self, contract_response: str):
        extractor, client = _extractor(contract_response)

        result = extractor.classify("BUILDING CONTRACT ...", UNIFIED)

        assert isinstance(result, ContractDocument)
        assert result.confidence == pytest.approx(0.92)
        assert result.contract.parties == ["Harbour Homes Pty Ltd", "Jane Smith"]
        assert result.summary.startswith("Building contract")
        client.complete.assert_called_once()

    def test_sends_variant_prompt_and_schema(self, contract_response: str):
        extractor, client = _extractor(contract_response)

        extractor.classify("some text", FRAGMENTED)

        messages, schema = client.complete.call_args.args
        assert messages[0] == {"role": "system", "content": PROMPTS[FRAGMENTED]}
        assert messages[1]["role"] == "user"
        assert messages[1]["content"].endswith("some text")
        assert schema is UNIFIED_SCHEMA

    def test_markdown_wrapped_output(self, mock_markdown_response: str):
        extractor, _ = _extractor(mock_markdown_response)
        result = extractor.classify("text", UNIFIED)
        assert isinstance(result, InvoiceDocument)
        assert result.confidence == pytest.approx(0.7)

    def test_empty_output_is_schema_error(self):
        extractor, _ = _extractor("   ")
        with pytest.raises(SchemaError):
            extractor.classify("text", UNIFIED)

    def test_unparseable_output_is_schema_error(self):
        extractor, _ = _extractor("I could not read this document, sorry.")
        with pytest.raises(SchemaError, match="Unparseable"):
            extractor.classify("text", UNIFIED)

    def test_wrong_payload_shape_is_schema_error(self):
        raw = json.dumps({"document_type": "contract", "ai_confidence": 0.8, "contract": "Harbour Homes"})
        extractor, _ = _extractor(raw)
        with pytest.raises(SchemaError, match="does not match schema"):
            extractor.classify("text", UNIFIED)

    def test_generation_error_propagates(self):
        client = MagicMock()
        client.complete.side_effect = GenerationError("Internal error", status_code=500)
        with pytest.raises(GenerationError):
            SchemaExtractor(client).classify("text", UNIFIED)

    def test_unknown_variant(self):
        extractor, client = _extractor("{}")
        with pytest.raises(ValueError, match="Unknown prompt variant"):
            extractor.classify("text", "receipt")
        client.complete.assert_not_called()

    def test_mismatched_payload_dropped(self):
        raw = json.dumps({
            "document_type": "contract",
            "ai_summary": "Contract.",
            "ai_confidence": 0.8,
            "contract": {"title": "Subcontract"},
            "invoice": {"supplier": "Coastal Timber"},
        })
        extractor, _ = _extractor(raw)

        result = extractor.classify("text", UNIFIED)

        assert isinstance(result, ContractDocument)
        assert result.contract.title == "Subcontract"
        assert not hasattr(result, "invoice")

    @pytest.mark.parametrize("reported,expected", [
        (1.7, 1.0),
        (-0.3, 0.0),
        ("0.55", 0.55),
        ("high", 0.0),
        (None, 0.0),
    ])
    def test_confidence_clamped(self, reported, expected):
        raw = json.dumps({"document_type": "spec", "ai_summary": "", "ai_confidence": reported})
        extractor, _ = _extractor(raw)
        result = extractor.classify("text", UNIFIED)
        assert result.confidence == pytest.approx(expected)

    def test_unknown_type_becomes_other(self):
        raw = json.dumps({"document_type": "Receipt", "ai_summary": "A receipt.", "ai_confidence": 0.5})
        extractor, _ = _extractor(raw)
        result = extractor.classify("text", UNIFIED)
        assert isinstance(result, OtherDocument)
        assert result.other == {}
