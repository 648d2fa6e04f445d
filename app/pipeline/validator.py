"""
Schema validator for model output.

Checks an untrusted candidate (whatever the parser produced) against the
receipt schema and returns a ``ValidatedExtraction``. Checks run in a fixed
order and stop at the first failure, so the caller always gets one message
naming one field.
"""
from __future__ import annotations

import math
from typing import Any

from app.pipeline.errors import FieldError
from app.schemas import ReceiptItem, ValidatedExtraction

REQUIRED_FIELDS: tuple[str, ...] = (
    "date",
    "currency",
    "vendor_name",
    "receipt_items",
    "tax",
    "total",
)

CURRENCY_CODE_LENGTH = 3


def _is_number(value: Any) -> bool:
    # bool is an int subclass; JSON true/false are not amounts
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(float(value))
    except OverflowError:
        # JSON integers are unbounded; past float range they are not amounts
        return False


def _check_items(items: list) -> list[ReceiptItem]:
    checked: list[ReceiptItem] = []
    for idx, item in enumerate(items):
        if not isinstance(item, dict):
            raise FieldError("receipt_items", f"receipt_items[{idx}] must be an object")
        name = item.get("item_name")
        if not isinstance(name, str) or not name.strip():
            raise FieldError(
                "item_name", f"receipt items must have item_name (item {idx})"
            )
        cost = item.get("item_cost")
        if not _is_number(cost):
            raise FieldError(
                "item_cost", f"receipt items must have numeric item_cost (item {idx})"
            )
        checked.append(ReceiptItem(item_name=name, item_cost=float(cost)))
    return checked


def validate(candidate: Any) -> ValidatedExtraction:
    """Validate *candidate* and return the typed extraction.

    Raises ``FieldError`` on the first violated rule. Extra keys are ignored.
    """
    if not isinstance(candidate, dict):
        raise FieldError(None, "empty or poorly-formed")

    for field in REQUIRED_FIELDS:
        if field not in candidate:
            raise FieldError(field, f"missing field '{field}'")

    items = candidate["receipt_items"]
    if not isinstance(items, list):
        raise FieldError("receipt_items", "receipt_items must be an array")
    if not items:
        raise FieldError("receipt_items", "receipt_items array is empty")
    receipt_items = _check_items(items)

    tax, total = candidate["tax"], candidate["total"]
    if not _is_number(tax) or not _is_number(total):
        raise FieldError(
            "tax" if not _is_number(tax) else "total",
            "tax and total must be numbers",
        )

    currency = candidate["currency"]
    if not isinstance(currency, str) or len(currency) != CURRENCY_CODE_LENGTH:
        raise FieldError("currency", "currency must be a 3-character code")

    # Not calendar-checked: any string is accepted as the date
    if not isinstance(candidate["date"], str):
        raise FieldError("date", "date must be a string")

    vendor_name = candidate["vendor_name"]
    if not isinstance(vendor_name, str) or not vendor_name.strip():
        raise FieldError("vendor_name", "vendor_name must be a non-empty string")

    return ValidatedExtraction(
        date=candidate["date"],
        currency=currency,
        vendor_name=vendor_name,
        receipt_items=receipt_items,
        tax=float(tax),
        total=float(total),
    )
