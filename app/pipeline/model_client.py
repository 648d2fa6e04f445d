"""
Vision model adapter.

Sends one receipt image to an OpenAI-compatible chat-completions endpoint
and hands back the raw text of the first choice. Failures are sorted into
upstream server errors and everything else; nothing is retried.
"""
from __future__ import annotations

import base64
import logging
import time
from typing import Any, Optional

from openai import OpenAI

from app.pipeline.errors import ModelInvocationError, ModelServerError

logger = logging.getLogger(__name__)

EXTRACTION_PROMPT = """Extract the following information from this receipt image and return it as a JSON object:
- date: The date of the receipt (format: YYYY-MM-DD)
- currency: The 3-character currency code (e.g., USD, EUR, SGD)
- vendor_name: The name of the vendor/store
- receipt_items: An array of objects, each with "item_name" and "item_cost" (as a number)
- tax: The total GST/tax amount for the entire receipt (as a number)
- total: The total amount of the receipt (as a number)

Return ONLY a valid JSON object with no additional text or markdown formatting."""


def build_data_url(image_bytes: bytes, mime_type: str) -> str:
    b64 = base64.b64encode(image_bytes).decode("ascii")
    return f"data:{mime_type};base64,{b64}"


def _upstream_status(exc: Exception) -> Optional[int]:
    """HTTP status carried by an SDK error, if any."""
    status = getattr(exc, "status_code", None)
    if status is None:
        status = getattr(getattr(exc, "response", None), "status_code", None)
    return status if isinstance(status, int) else None


class ModelClient:
    """Wraps an ``openai.OpenAI`` client (or anything shaped like one)."""

    def __init__(
        self,
        client: Any,
        model: str = "gpt-4o",
        max_tokens: int = 1000,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        self._client = client
        self.model = model
        self.max_tokens = max_tokens
        self.timeout_seconds = timeout_seconds

    def invoke(
        self,
        image_bytes: bytes,
        mime_type: str,
        prompt: str = EXTRACTION_PROMPT,
    ) -> Optional[str]:
        """Return the model's raw text for *image_bytes*, possibly ``None``.

        Raises ``ModelServerError`` when the provider reports a 5xx and
        ``ModelInvocationError`` for any other failure.
        """
        messages = [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": prompt},
                    {
                        "type": "image_url",
                        "image_url": {"url": build_data_url(image_bytes, mime_type)},
                    },
                ],
            }
        ]
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "max_tokens": self.max_tokens,
        }
        if self.timeout_seconds is not None:
            kwargs["timeout"] = self.timeout_seconds

        t0 = time.perf_counter()
        try:
            completion = self._client.chat.completions.create(**kwargs)
        except Exception as exc:
            status = _upstream_status(exc)
            if status is not None and status >= 500:
                logger.error("Model %s returned HTTP %s: %s", self.model, status, exc)
                raise ModelServerError(status) from exc
            logger.error("Model call failed (%s): %s", type(exc).__name__, exc)
            raise ModelInvocationError(str(exc)) from exc

        elapsed = time.perf_counter() - t0
        usage = getattr(completion, "usage", None)
        logger.info(
            "Model %s answered in %.2fs (prompt_tokens=%s completion_tokens=%s)",
            self.model,
            elapsed,
            getattr(usage, "prompt_tokens", None),
            getattr(usage, "completion_tokens", None),
        )

        choices = getattr(completion, "choices", None) or []
        if not choices:
            return None
        message = getattr(choices[0], "message", None)
        return getattr(message, "content", None)


def build_openai_client(api_key: str, base_url: Optional[str] = None) -> OpenAI:
    return OpenAI(api_key=api_key, base_url=base_url)
