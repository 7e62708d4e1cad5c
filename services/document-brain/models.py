"""Pydantic models for extraction requests, results and the generation wire format.

``ExtractedDocument`` is a tagged union keyed by ``document_type``: each
variant only carries the payload for its own type.
"""

import logging
import math
import re
from typing import Annotated, Any, ClassVar, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

logger = logging.getLogger(__name__)

DocumentType = Literal["contract", "drawing", "spec", "invoice", "other"]
DOCUMENT_TYPES: tuple[str, ...] = ("contract", "drawing", "spec", "invoice", "other")


def clamp_confidence(value: Any) -> float:
    """Coerce a model-reported confidence into [0.0, 1.0]; garbage becomes 0.0."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number):
        return 0.0
    return max(0.0, min(1.0, number))


class _Fields(BaseModel):
    """Base for typed payloads. Empty strings mean "not found"."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    @field_validator("*", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class ContractFields(_Fields):
    title: str | None = None
    parties: list[str] | None = None
    effective_date: str | None = None
    expiry_date: str | None = None
    contract_value: str | None = None
    payment_terms: str | None = None
    scope_of_work: str | None = None
    termination_clause: str | None = None
    special_conditions: str | None = None


class DrawingAreas(_Fields):
    site_area_m2: float | None = None
    build_area_m2: float | None = None
    landscape_area_m2: float | None = None
    garage_area_m2: float | None = None

    @field_validator("*", mode="before")
    @classmethod
    def _parse_area(cls, value: Any) -> Any:
        # "412.5 m2" -> 412.5
        if isinstance(value, str):
            match = re.search(r"\d[\d,]*(?:\.\d+)?", value)
            return float(match.group(0).replace(",", "")) if match else None
        return value


class DrawingFields(_Fields):
    project_name: str | None = None
    client_name: str | None = None
    site_address: str | None = None
    sheet_number: str | None = None
    sheet_title: str | None = None
    drawing_set_date: str | None = None
    revision: str | None = None
    designers: list[str] | None = None
    areas: DrawingAreas | None = None


class SpecFields(_Fields):
    project_name: str | None = None
    spec_sections: list[str] | None = None
    key_materials: list[str] | None = None
    revisions: list[str] | None = None


class InvoiceLineItem(_Fields):
    description: str | None = None
    qty: str | None = None
    rate: str | None = None
    amount: str | None = None
    tax_code: str | None = None


class InvoiceFields(_Fields):
    supplier: str | None = None
    supplier_email: str | None = None
    invoice_number: str | None = None
    reference_number: str | None = None
    invoice_date: str | None = None
    due_date: str | None = None
    subtotal: str | None = None
    tax: str | None = None
    total: str | None = None
    line_items: list[InvoiceLineItem] | None = None


# ---------------------------------------------------------------------------
# Tagged result union
# ---------------------------------------------------------------------------


class _ExtractedBase(BaseModel):
    payload_field: ClassVar[str]

    summary: str = ""
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)

    @property
    def payload(self) -> Any:
        """The typed payload matching ``document_type``."""
        return getattr(self, self.payload_field)


class ContractDocument(_ExtractedBase):
    payload_field: ClassVar[str] = "contract"

    document_type: Literal["contract"] = "contract"
    contract: ContractFields = Field(default_factory=ContractFields)


class DrawingDocument(_ExtractedBase):
    payload_field: ClassVar[str] = "drawing"

    document_type: Literal["drawing"] = "drawing"
    drawing: DrawingFields = Field(default_factory=DrawingFields)


class SpecDocument(_ExtractedBase):
    payload_field: ClassVar[str] = "spec"

    document_type: Literal["spec"] = "spec"
    spec: SpecFields = Field(default_factory=SpecFields)


class InvoiceDocument(_ExtractedBase):
    payload_field: ClassVar[str] = "invoice"

    document_type: Literal["invoice"] = "invoice"
    invoice: InvoiceFields = Field(default_factory=InvoiceFields)


class OtherDocument(_ExtractedBase):
    payload_field: ClassVar[str] = "other"

    document_type: Literal["other"] = "other"
    other: dict[str, Any] = Field(default_factory=dict)


ExtractedDocument = Annotated[
    Union[ContractDocument, DrawingDocument, SpecDocument, InvoiceDocument, OtherDocument],
    Field(discriminator="document_type"),
]

_document_adapter: TypeAdapter[ExtractedDocument] = TypeAdapter(ExtractedDocument)


def build_document(data: dict[str, Any]) -> ExtractedDocument:
    """Validate a plain dict into the matching ``ExtractedDocument`` variant."""
    return _document_adapter.validate_python(data)


def merge_overwrite(base: ExtractedDocument, patch: ExtractedDocument) -> ExtractedDocument:
    """Shallow merge: ``patch``'s top-level fields win, returning a new result.

    A payload ``patch`` never set is kept from ``base`` when both share a
    type; a different ``document_type`` drops the base payload.
    """
    merged = base.model_dump()
    merged.update(patch.model_dump(include=patch.model_fields_set))
    merged["document_type"] = patch.document_type
    return build_document(merged)


# ---------------------------------------------------------------------------
# Generation service wire format
# ---------------------------------------------------------------------------


class UnifiedExtraction(BaseModel):
    """Loose shape returned by the generation service: one sibling object per type."""

    document_type: DocumentType = "other"
    ai_summary: str = ""
    ai_confidence: float = 0.0
    contract: ContractFields | None = None
    drawing: DrawingFields | None = None
    spec: SpecFields | None = None
    invoice: InvoiceFields | None = None
    other: dict[str, Any] | None = None

    @field_validator("document_type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> str:
        normalized = str(value or "").strip().lower()
        return normalized if normalized in DOCUMENT_TYPES else "other"

    @field_validator("ai_summary", mode="before")
    @classmethod
    def _summary_text(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()

    @field_validator("ai_confidence", mode="before")
    @classmethod
    def _clamp(cls, value: Any) -> float:
        return clamp_confidence(value)

    def to_document(self) -> ExtractedDocument:
        """Build the tagged result, dropping payloads that don't match the type."""
        stray = [t for t in DOCUMENT_TYPES if t != self.document_type and getattr(self, t)]
        if stray:
            logger.warning(
                "Dropping mismatched payload(s) %s from a %s result",
                ", ".join(stray), self.document_type,
            )

        data: dict[str, Any] = {
            "document_type": self.document_type,
            "summary": self.ai_summary,
            "confidence": self.ai_confidence,
        }
        payload = getattr(self, self.document_type)
        if payload is not None:
            data[self.document_type] = payload
        return build_document(data)


UNIFIED_SCHEMA: dict[str, Any] = {
    "name": "UnifiedDocExtraction",
    "schema": {
        "type": "object",
        "additionalProperties": False,
        "properties": {
            "document_type": {"type": "string", "enum": list(DOCUMENT_TYPES)},
            "ai_summary": {"type": "string"},
            "ai_confidence": {"type": "number"},
            "contract": {
                "type": "object",
                "additionalProperties": False,
                "properties": {
                    "title": {"type": "string"},
                    "parties": {"type": "array", "items": {"type": "string"}},
                    "effective_date": {"type": "string"},
                    "expiry_date": {"type": "string"},
                    "contract_value": {"type": "string"},
                    "payment_terms": {"type": "string"},
                    "scope_of_work": {"type": "string"},
                    "termination_clause": {"type": "string"},
                    "special_conditions": {"type": "string"},
                },
            },
            "drawing": {
                "type": "object",
                "additionalProperties": False,
                "properties": {
                    "project_name": {"type": "string"},
                    "client_name": {"type": "string"},
                    "site_address": {"type": "string"},
                    "sheet_number": {"type": "string"},
                    "sheet_title": {"type": "string"},
                    "drawing_set_date": {"type": "string"},
                    "revision": {"type": "string"},
                    "designers": {"type": "array", "items": {"type": "string"}},
                    "areas": {
                        "type": "object",
                        "additionalProperties": False,
                        "properties": {
                            "site_area_m2": {"type": "number"},
                            "build_area_m2": {"type": "number"},
                            "landscape_area_m2": {"type": "number"},
                            "garage_area_m2": {"type": "number"},
                        },
                    },
                },
            },
            "spec": {
                "type": "object",
                "additionalProperties": False,
                "properties": {
                    "project_name": {"type": "string"},
                    "spec_sections": {"type": "array", "items": {"type": "string"}},
                    "key_materials": {"type": "array", "items": {"type": "string"}},
                    "revisions": {"type": "array", "items": {"type": "string"}},
                },
            },
            "invoice": {
                "type": "object",
                "additionalProperties": False,
                "properties": {
                    "supplier": {"type": "string"},
                    "supplier_email": {"type": "string"},
                    "invoice_number": {"type": "string"},
                    "reference_number": {"type": "string"},
                    "invoice_date": {"type": "string"},
                    "due_date": {"type": "string"},
                    "subtotal": {"type": "string"},
                    "tax": {"type": "string"},
                    "total": {"type": "string"},
                    "line_items": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "additionalProperties": False,
                            "properties": {
                                "description": {"type": "string"},
                                "qty": {"type": "string"},
                                "rate": {"type": "string"},
                                "amount": {"type": "string"},
                                "tax_code": {"type": "string"},
                            },
                        },
                    },
                },
            },
            "other": {"type": "object", "additionalProperties": True},
        },
        "required": ["document_type", "ai_summary", "ai_confidence"],
    },
}


# ---------------------------------------------------------------------------
# Requests and responses
# ---------------------------------------------------------------------------


class ExtractRequest(BaseModel):
    """HTTP request body. One of ``file_path``, ``signed_url`` or ``file_url`` is required."""

    document_id: str
    signed_url: str | None = None
    file_url: str | None = None
    file_path: str | None = None
    filename: str | None = None
    expected_size: int | None = None


class ExtractionRequest(BaseModel):
    """One pipeline invocation."""

    model_config = ConfigDict(frozen=True)

    source_ref: str
    document_id: str
    filename: str | None = None
    expected_size: int | None = None


class ExtractionSuccess(BaseModel):
    ok: Literal[True] = True
    data: ExtractedDocument


class ExtractionFailed(BaseModel):
    ok: Literal[False] = False
    error: str
    error_kind: str
