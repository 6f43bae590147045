"""
Index Routes

Endpoints that keep the vector index in step with the CMS:

- POST /api/ai/sync-docs    full, idempotent resync of all articles
- POST /api/ai/reset-index  operator recovery: delete and recreate the index
                            with the configured dimension (admin key required)

Per-article failures during a sync are reported in `errors` and do not fail
the request. Failures before any article is processed (index not ready,
CMS unreachable) return 500.
"""

import logging
from typing import Annotated, Any, Dict

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from .admin import verify_admin
from .dependencies import get_indexer, get_vector_store
from .models import ResetIndexResponse, SyncResponse
from ..cms.client import CMSError
from ..core.errors import DimensionMismatchError, ResourceNotReady
from ..indexing.sync import DocumentIndexer
from ..vectors import VectorStore, VectorStoreError

logger = logging.getLogger("support.api.index")

router = APIRouter(prefix="/api/ai", tags=["index"])

_INDEX_FAILURES = (CMSError, DimensionMismatchError, ResourceNotReady, VectorStoreError)


def _failure(exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "error": str(exc)},
    )


@router.post(
    "/sync-docs",
    response_model=SyncResponse,
    response_model_exclude_none=True,
    summary="Sync all CMS articles into the vector index",
)
async def sync_docs(
    indexer: Annotated[DocumentIndexer, Depends(get_indexer)],
):
    try:
        result = await indexer.sync_all()
    except _INDEX_FAILURES as exc:
        logger.error("Document sync failed: %s", exc)
        return _failure(exc)

    if result.total == 0:
        message = "No articles found to sync"
    else:
        message = f"Synced {result.synced} articles to the vector index"

    return SyncResponse(
        message=message,
        synced=result.synced,
        total=result.total,
        errors=result.errors or None,
    )


@router.get("/sync-docs", summary="Describe the sync endpoint")
async def describe_sync() -> Dict[str, Any]:
    return {
        "endpoint": "/api/ai/sync-docs",
        "method": "POST",
        "description": "Sync all CMS articles to the vector database",
        "usage": "curl -X POST http://localhost:8000/api/ai/sync-docs",
    }


@router.post(
    "/reset-index",
    response_model=ResetIndexResponse,
    summary="Delete and recreate the vector index",
    dependencies=[Depends(verify_admin)],
)
async def reset_index(
    vector_store: Annotated[VectorStore, Depends(get_vector_store)],
):
    try:
        await vector_store.reset_index()
    except (ResourceNotReady, VectorStoreError) as exc:
        logger.error("Index reset failed: %s", exc)
        return _failure(exc)

    return ResetIndexResponse(
        message=f"Index recreated with dimension {vector_store.dimension}",
    )
