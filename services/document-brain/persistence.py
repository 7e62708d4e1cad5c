"""Writes extraction results back to the external store (PostgREST-style API)."""

import logging
from datetime import datetime, timezone

import httpx

from config import Settings
from errors import PersistError
from models import ExtractedDocument

logger = logging.getLogger(__name__)


class ResultPersister:
    """PATCHes the store record identified by ``document_id``."""

    def __init__(
        self,
        store_url: str,
        service_key: str,
        table: str = "project_documents",
        timeout: int = 30,
    ):
        self._table = table
        self._client = httpx.Client(
            base_url=store_url.rstrip("/"),
            headers={
                "apikey": service_key,
                "Authorization": f"Bearer {service_key}",
                "Prefer": "return=representation",
            },
            timeout=httpx.Timeout(float(timeout), connect=10.0),
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "ResultPersister":
        return cls(
            store_url=settings.STORE_URL,
            service_key=settings.STORE_SERVICE_KEY,
            table=settings.STORE_TABLE,
            timeout=settings.STORE_TIMEOUT_SECONDS,
        )

    def close(self):
        self._client.close()

    def persist(self, document_id: str, result: ExtractedDocument) -> None:
        """Write payload, summary, confidence and timestamp. Raises PersistError."""
        body = build_record(result)
        try:
            resp = self._client.patch(
                f"/rest/v1/{self._table}",
                params={"id": f"eq.{document_id}"},
                json=body,
            )
        except httpx.HTTPError as e:
            logger.error("Store update failed (transport): %s", e)
            raise PersistError(document_id, str(e)) from e

        if not resp.is_success:
            logger.error("Store update failed: HTTP %d", resp.status_code)
            raise PersistError(document_id, f"HTTP {resp.status_code}: {resp.text[:200]}")

        if resp.status_code == 200:
            try:
                rows = resp.json()
            except ValueError:
                rows = None
            if isinstance(rows, list) and not rows:
                raise PersistError(document_id, f"no record in {self._table}")

        logger.info("Stored result for document %s (%s)", document_id, result.document_type)


def build_record(result: ExtractedDocument) -> dict:
    """Store columns for one result."""
    return {
        "document_type": result.document_type,
        "extracted_data": result.model_dump(mode="json", exclude_none=True),
        "ai_summary_json": {"ai_summary": result.summary},
        "confidence": result.confidence,
        "updated_at": datetime.now(timezone.utc).isoformat(),
    }
