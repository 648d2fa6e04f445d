"""
Receipt contracts — Pydantic v2 models shared by the pipeline and the API.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------

class ReceiptItem(BaseModel):
    """One line item, in the order the model listed it."""
    item_name: str = Field(..., min_length=1)
    item_cost: float


class ValidatedExtraction(BaseModel):
    """Model output that passed every schema check, not yet persisted."""
    date: str = Field(..., description="YYYY-MM-DD, not calendar-checked")
    currency: str = Field(..., min_length=3, max_length=3)
    vendor_name: str = Field(..., min_length=1)
    receipt_items: list[ReceiptItem] = Field(..., min_length=1)
    tax: float
    total: float


# ---------------------------------------------------------------------------
# Persisted record
# ---------------------------------------------------------------------------

class ReceiptRecord(ValidatedExtraction):
    id: str
    image_reference: str = Field(..., description="e.g. /uploads/<name>.jpg")
    created_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# API envelopes
# ---------------------------------------------------------------------------

class ErrorResponse(BaseModel):
    message: str
