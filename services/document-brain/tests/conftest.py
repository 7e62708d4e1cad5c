"""Shared test fixtures for document brain tests."""

import json
import sys
from pathlib import Path

import fitz
import pytest

# Add parent directory to path so we can import the modules
sys.path.insert(0, str(Path(__file__).parent.parent))


def make_pdf(pages: list[str]) -> bytes:
    """Build a real PDF with one text page per entry."""
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        page.insert_text((72, 72), text, fontsize=11)
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def pdf_factory():
    return make_pdf


@pytest.fixture
def contract_pdf_bytes() -> bytes:
    """A short, well-formatted three-page construction contract."""
    return make_pdf([
        "BUILDING CONTRACT\n"
        "This agreement is made between Harbour Homes Pty Ltd (Builder)\n"
        "and Jane Smith (Owner) for the works at 14 Bay Street, Seaview.",
        "Contract Sum: $412,000 including GST.\n"
        "Payment terms: progress claims payable within 10 business days.",
        "Signed by the parties on 1 March 2024.\n"
        "Builder: Harbour Homes Pty Ltd    Owner: Jane Smith",
    ])


@pytest.fixture
def raw_text_pdf_bytes() -> bytes:
    """Hand-written PDF fragment with uncompressed text objects and no page tree."""
    return (
        b"%PDF-1.4\n"
        b"4 0 obj\n<< /Length 120 >>\nstream\n"
        b"BT /F1 12 Tf 72 712 Td (Tax Invoice INV-2025-0010 from Coastal Timber Supplies) Tj ET\n"
        b"BT /F1 12 Tf 72 690 Td (Total \\(incl. GST\\) $275.00) Tj ET\n"
        b"endstream\nendobj\n%%EOF\n"
    )


@pytest.fixture
def invalid_bytes() -> bytes:
    """Non-PDF bytes for testing graceful degradation."""
    return b"this is not a pdf file at all"


@pytest.fixture
def contract_response() -> str:
    """Generation output for a clean contract."""
    return json.dumps({
        "document_type": "contract",
        "ai_summary": "Building contract between Harbour Homes Pty Ltd and Jane Smith for $412,000.",
        "ai_confidence": 0.92,
        "contract": {
            "title": "Building Contract",
            "parties": ["Harbour Homes Pty Ltd", "Jane Smith"],
            "contract_value": "$412,000 including GST",
            "payment_terms": "Progress claims payable within 10 business days",
        },
    })


@pytest.fixture
def low_confidence_invoice_response() -> str:
    return json.dumps({
        "document_type": "invoice",
        "ai_summary": "Possibly an invoice.",
        "ai_confidence": 0.35,
        "invoice": {"supplier": "Coastal Timber"},
    })


@pytest.fixture
def detailed_invoice_response() -> str:
    return json.dumps({
        "document_type": "invoice",
        "ai_summary": "Tax invoice INV-2025-0010 from Coastal Timber Supplies totalling $27,500.00.",
        "ai_confidence": 0.88,
        "invoice": {
            "supplier": "Coastal Timber Supplies",
            "invoice_number": "INV-2025-0010",
            "total": "$27,500.00",
            "line_items": [
                {"description": "90x45 MGP10", "qty": 200, "rate": "$12.50", "amount": "$2,500.00"},
                {"description": "Structural ply 17mm", "qty": "100", "rate": "$250.00", "amount": "$25,000.00"},
            ],
        },
    })


@pytest.fixture
def other_response() -> str:
    return json.dumps({
        "document_type": "other",
        "ai_summary": "No readable content.",
        "ai_confidence": 0.1,
    })


@pytest.fixture
def mock_markdown_response() -> str:
    """Generation output wrapped in a markdown code fence."""
    return '```json\n{"document_type": "invoice", "ai_summary": "Invoice.", "ai_confidence": 0.7}\n```'


@pytest.fixture
def mock_preamble_response() -> str:
    """Generation output with text before the JSON."""
    return 'Here is the extracted data:\n\n{"document_type": "drawing", "ai_summary": "Plan.", "ai_confidence": 0.6}'
