"""
Artifact store: uploaded images on disk, receipt records in the database.

Images are written before records and are never rolled back when the
record insert fails. ``find_orphaned_images`` lists what such failures
leave behind so a separate sweep can remove it.
"""
from __future__ import annotations

import logging
import os
import uuid
from pathlib import Path
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.receipt import ReceiptModel
from app.pipeline.errors import PersistenceError
from app.schemas import ReceiptItem, ReceiptRecord, ValidatedExtraction

logger = logging.getLogger(__name__)


def _file_extension(filename: Optional[str]) -> str:
    if not filename:
        return ""
    return Path(filename).suffix.lower()


def to_record(row: ReceiptModel) -> ReceiptRecord:
    """Convert a row; NUMERIC columns come back as Decimal (or str)."""
    return ReceiptRecord(
        id=row.id,
        date=row.date,
        currency=row.currency,
        vendor_name=row.vendor_name,
        receipt_items=[ReceiptItem(**item) for item in row.receipt_items],
        tax=float(row.tax),
        total=float(row.total),
        image_reference=row.image_reference,
        created_at=row.created_at,
    )


class ArtifactStore:
    def __init__(
        self,
        db: Session,
        upload_dir: str | os.PathLike,
        url_prefix: str = "/uploads",
    ) -> None:
        self.db = db
        self.upload_dir = Path(upload_dir)
        self.url_prefix = url_prefix.rstrip("/")

    # ── images ───────────────────────────────────────────────────────────
    def store_image(self, data: bytes, original_filename: Optional[str]) -> str:
        """Write *data* under a fresh name and return its ``/uploads/...`` path."""
        name = f"{uuid.uuid4().hex}{_file_extension(original_filename)}"
        try:
            self.upload_dir.mkdir(parents=True, exist_ok=True)
            (self.upload_dir / name).write_bytes(data)
        except OSError as exc:
            logger.error("Could not write image %s: %s", name, exc)
            raise PersistenceError("Failed to store receipt image") from exc
        logger.info("Stored image %s (%d bytes)", name, len(data))
        return f"{self.url_prefix}/{name}"

    # ── records ──────────────────────────────────────────────────────────
    def save(self, extraction: ValidatedExtraction, image_reference: str) -> ReceiptRecord:
        row = ReceiptModel(
            id=str(uuid.uuid4()),
            date=extraction.date,
            currency=extraction.currency,
            vendor_name=extraction.vendor_name,
            receipt_items=[item.model_dump() for item in extraction.receipt_items],
            tax=extraction.tax,
            total=extraction.total,
            image_reference=image_reference,
        )
        try:
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Could not save receipt (image %s): %s", image_reference, exc)
            raise PersistenceError("Failed to save receipt") from exc
        logger.info("Stored receipt %s", row.id)
        return to_record(row)

    def get(self, receipt_id: str) -> Optional[ReceiptRecord]:
        row = self.db.query(ReceiptModel).filter(ReceiptModel.id == receipt_id).first()
        return to_record(row) if row else None

    def list_recent(self, limit: int = 100) -> list[ReceiptRecord]:
        rows = (
            self.db.query(ReceiptModel)
            .order_by(ReceiptModel.created_at.desc())
            .limit(limit)
            .all()
        )
        return [to_record(r) for r in rows]

    # ── reconciliation ───────────────────────────────────────────────────
    def find_orphaned_images(self) -> list[Path]:
        """Files in the upload dir that no receipt references."""
        if not self.upload_dir.is_dir():
            return []
        referenced = {
            ref.rsplit("/", 1)[-1]
            for (ref,) in self.db.query(ReceiptModel.image_reference).all()
        }
        return sorted(
            p for p in self.upload_dir.iterdir()
            if p.is_file() and p.name not in referenced
        )
