"""
Receipt extraction pipeline.

Orchestrates: type check → invoke model → parse → validate → store image →
save record. The first failing stage ends the request; nothing is stored
unless validation passed.
"""
from __future__ import annotations

import enum
import logging
from typing import Optional

from app.pipeline.errors import (
    ExtractionError,
    InvalidFileType,
    ServerError,
    UploadTooLarge,
)
from app.pipeline.model_client import ModelClient
from app.pipeline.parser import parse_response
from app.pipeline.storage import ArtifactStore
from app.pipeline.validator import validate
from app.schemas import ReceiptRecord

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = frozenset({"image/jpeg", "image/jpg", "image/png"})


class Stage(str, enum.Enum):
    RECEIVED = "received"
    TYPE_CHECKED = "type_checked"
    INVOKED = "invoked"
    PARSED = "parsed"
    VALIDATED = "validated"
    STORED = "stored"
    COMPLETED = "completed"


class ReceiptExtractor:
    """One extraction per ``extract`` call; holds no per-request state."""

    def __init__(
        self,
        model_client: ModelClient,
        store: ArtifactStore,
        max_upload_bytes: Optional[int] = None,
    ) -> None:
        self.model_client = model_client
        self.store = store
        self.max_upload_bytes = max_upload_bytes

    def extract(
        self,
        image_bytes: bytes,
        mime_type: Optional[str],
        filename: Optional[str] = None,
    ) -> ReceiptRecord:
        """Run the full pipeline on one uploaded image.

        Raises an ``ExtractionError`` subclass; its ``status_code`` is the
        client-visible category (400 or 500).
        """
        stage = Stage.RECEIVED
        try:
            if mime_type not in ALLOWED_MIME_TYPES:
                raise InvalidFileType(mime_type)
            if self.max_upload_bytes is not None and len(image_bytes) > self.max_upload_bytes:
                raise UploadTooLarge(len(image_bytes), self.max_upload_bytes)
            stage = Stage.TYPE_CHECKED

            logger.info("Pipeline — invoke model (%s, %d bytes)", mime_type, len(image_bytes))
            raw_text = self.model_client.invoke(image_bytes, mime_type)
            stage = Stage.INVOKED

            candidate = parse_response(raw_text)
            stage = Stage.PARSED

            extraction = validate(candidate)
            stage = Stage.VALIDATED
            logger.info(
                "Pipeline — validated %s receipt from %r with %d items",
                extraction.currency,
                extraction.vendor_name,
                len(extraction.receipt_items),
            )

            image_reference = self.store.store_image(image_bytes, filename)
            record = self.store.save(extraction, image_reference)
            stage = Stage.STORED
        except ExtractionError as exc:
            level = logging.WARNING if exc.status_code < 500 else logging.ERROR
            logger.log(level, "Pipeline failed after %s: %s", stage.value, exc.message)
            raise
        except Exception as exc:
            logger.exception("Pipeline failed after %s with unexpected error", stage.value)
            raise ServerError("Failed to extract receipt details") from exc

        logger.info("Pipeline — %s receipt %s", Stage.COMPLETED.value, record.id)
        return record
