from app.schemas.receipt import (
    ErrorResponse,
    ReceiptItem,
    ReceiptRecord,
    ValidatedExtraction,
)

__all__ = [
    "ErrorResponse",
    "ReceiptItem",
    "ReceiptRecord",
    "ValidatedExtraction",
]
