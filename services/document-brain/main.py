"""FastAPI document brain: confidence-driven extraction for construction PDFs.

Downloads the document, extracts bounded text, asks the generation service
for schema-constrained JSON, escalates once on low confidence and writes the
result back to the external store.
Document text is never logged; only sizes, types and confidence scores.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from config import settings
from errors import DocumentBrainError
from extraction import ExtractionPipeline
from fetcher import DocumentFetcher
from generation_client import GenerationClient
from models import ExtractionFailed, ExtractionRequest, ExtractionSuccess, ExtractRequest
from persistence import ResultPersister
from schema_extraction import SchemaExtractor

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    "fetch_error": 502,
    "schema_error": 502,
    "generation_error": 502,
    "generation_unavailable": 503,
    "persist_error": 500,
}

_fetcher: DocumentFetcher | None = None
_pipeline: ExtractionPipeline | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the pipeline once per process from the environment settings."""
    global _fetcher, _pipeline

    if not settings.GENERATION_API_KEY:
        logger.warning("GENERATION_API_KEY is empty, generation calls will likely be rejected")

    generation_client = GenerationClient.from_settings(settings)
    _fetcher = DocumentFetcher.from_settings(settings)

    persister: ResultPersister | None = None
    if settings.STORE_URL:
        persister = ResultPersister.from_settings(settings)
        logger.info("Persisting results to %s (table=%s)", settings.STORE_URL, settings.STORE_TABLE)
    else:
        logger.info("Store not configured (STORE_URL is empty), results will not be persisted")

    _pipeline = ExtractionPipeline.from_settings(
        settings, _fetcher, SchemaExtractor(generation_client), persister
    )

    yield

    generation_client.close()
    _fetcher.close()
    if persister is not None:
        persister.close()


app = FastAPI(title="Document Brain", version="1.0.0", lifespan=lifespan)


def _failure(status_code: int, error: str, kind: str) -> JSONResponse:
    body = ExtractionFailed(error=error, error_kind=kind)
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.post("/api/v1/extract")
def extract(body: ExtractRequest):
    """Extract structured data from a stored PDF and persist it.

    Sync route: runs on the threadpool so concurrent requests don't block
    each other on network calls.
    """
    if _pipeline is None or _fetcher is None:
        return _failure(503, "Extraction pipeline is not initialized", "unavailable")

    if not (body.file_path or body.signed_url or body.file_url):
        return _failure(400, "Provide file_path, signed_url or file_url", "bad_request")

    logger.info(
        "Processing extraction: document_id=%s source=%s",
        body.document_id,
        "file_path" if body.file_path else "signed_url" if body.signed_url else "file_url",
    )

    try:
        source_ref = (
            _fetcher.storage_url(body.file_path)
            if body.file_path
            else body.signed_url or body.file_url
        )
        request = ExtractionRequest(
            source_ref=source_ref,
            document_id=body.document_id,
            filename=body.filename,
            expected_size=body.expected_size,
        )
        result = _pipeline.run(request)
    except DocumentBrainError as e:
        logger.error("Extraction failed for %s (%s): %s", body.document_id, e.kind, e)
        return _failure(STATUS_BY_KIND.get(e.kind, 500), str(e), e.kind)

    return ExtractionSuccess(data=result).model_dump(mode="json")


@app.get("/health")
async def health():
    """Return service status and which collaborators are configured."""
    return {
        "status": "healthy",
        "pipeline_ready": _pipeline is not None,
        "generation_configured": bool(settings.GENERATION_API_KEY),
        "store_configured": bool(settings.STORE_URL),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
