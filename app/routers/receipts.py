"""
Receipt API endpoints.

POST /extract-receipt-details — upload an image → extracted + stored receipt
GET  /receipts                — list stored receipts
GET  /receipts/{id}           — get one receipt
"""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.pipeline import ReceiptExtractor
from app.pipeline.errors import MissingFile
from app.pipeline.model_client import ModelClient, build_openai_client
from app.pipeline.storage import ArtifactStore
from app.schemas import ErrorResponse, ReceiptRecord

logger = logging.getLogger(__name__)
router = APIRouter()


def _read_upload(image, limit: Optional[int]) -> bytes:
    # One byte past the limit is enough to tell the upload is too large
    if limit is None:
        return image.file.read()
    return image.file.read(limit + 1)


# ── Dependencies ─────────────────────────────────────────────────────────
@lru_cache
def get_model_client() -> ModelClient:
    client = build_openai_client(settings.OPENAI_API_KEY, settings.OPENAI_BASE_URL)
    return ModelClient(
        client,
        model=settings.LLM_MODEL,
        max_tokens=settings.LLM_MAX_TOKENS,
        timeout_seconds=settings.LLM_TIMEOUT_SECONDS,
    )


def get_artifact_store(db: Session = Depends(get_db)) -> ArtifactStore:
    return ArtifactStore(db, settings.UPLOAD_DIR, settings.UPLOAD_URL_PREFIX)


def get_extractor(
    model_client: ModelClient = Depends(get_model_client),
    store: ArtifactStore = Depends(get_artifact_store),
) -> ReceiptExtractor:
    return ReceiptExtractor(model_client, store, max_upload_bytes=settings.MAX_UPLOAD_BYTES)


# ── POST /extract-receipt-details ────────────────────────────────────────
@router.post(
    "/extract-receipt-details",
    response_model=ReceiptRecord,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
def extract_receipt_details(
    image: Optional[UploadFile] = File(None),
    extractor: ReceiptExtractor = Depends(get_extractor),
):
    if image is None:
        raise MissingFile()

    data = _read_upload(image, settings.MAX_UPLOAD_BYTES)
    logger.info(
        "Extract: filename=%s  content_type=%s  size=%d",
        image.filename, image.content_type, len(data),
    )
    return extractor.extract(data, image.content_type, image.filename)


# ── GET /receipts ────────────────────────────────────────────────────────
@router.get("/receipts", response_model=list[ReceiptRecord])
def list_receipts(store: ArtifactStore = Depends(get_artifact_store)):
    records = store.list_recent()
    logger.info("Found %d receipts in database", len(records))
    return records


# ── GET /receipts/{receipt_id} ───────────────────────────────────────────
@router.get(
    "/receipts/{receipt_id}",
    response_model=ReceiptRecord,
    responses={404: {"model": ErrorResponse}},
)
def get_receipt(receipt_id: str, store: ArtifactStore = Depends(get_artifact_store)):
    record = store.get(receipt_id)
    if record is None:
        logger.warning("Receipt not found: %s", receipt_id)
        raise HTTPException(status_code=404, detail="Receipt not found")
    return record
