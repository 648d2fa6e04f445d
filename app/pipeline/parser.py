"""
Pull a JSON object out of a free-text model response.

Models wrap their JSON in prose or markdown fences often enough that the
text is never parsed as-is. The span from the first ``{`` to the last ``}``
is taken greedily and decoded. This is the only place that knows the
response is free text; a structured-output model mode would replace
``parse_response`` and leave validation untouched.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional

from app.pipeline.errors import EmptyResponse, MalformedResponse

logger = logging.getLogger(__name__)

_OBJECT_SPAN = re.compile(r"\{.*\}", re.DOTALL)


def parse_response(raw_text: Optional[str]) -> Any:
    """Return the decoded JSON object embedded in *raw_text*.

    Raises ``EmptyResponse`` for ``None``/blank text and ``MalformedResponse``
    when no brace span exists or the span is not valid JSON.
    """
    if raw_text is None or not raw_text.strip():
        raise EmptyResponse()

    match = _OBJECT_SPAN.search(raw_text)
    if match is None:
        logger.warning("No JSON object in model response (len=%d)", len(raw_text))
        raise MalformedResponse()

    try:
        return json.loads(match.group(0))
    except ValueError as exc:
        logger.warning("Model response JSON did not decode: %s", exc)
        raise MalformedResponse() from exc
