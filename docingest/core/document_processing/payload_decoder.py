"""
Tolerant decoding of OCR provider payloads.

Providers usually answer with a JSON object holding a `pages` list, but
proxies and error pages occasionally wrap or replace it. Decoding walks
explicit tiers, logging which one produced the pages:

1. STRICT_JSON: the whole payload is a JSON object with a `pages` list
2. EMBEDDED_JSON: the outermost `{...}` inside surrounding text parses as such
3. PLAIN_TEXT: non-empty text becomes a single page

Dependencies: json (stdlib), pydantic
System role: Extraction response parsing
"""

import enum
import json
import logging
from dataclasses import dataclass, field
from typing import Any

from docingest.core.exceptions import PayloadParseError
from docingest.core.document_processing.models import ExtractedPage

logger = logging.getLogger(__name__)


class DecodeTier(str, enum.Enum):
    STRICT_JSON = "strict_json"
    EMBEDDED_JSON = "embedded_json"
    PLAIN_TEXT = "plain_text"


@dataclass
class DecodeResult:
    """Pages decoded from a payload, or the reason decoding failed."""

    pages: list[ExtractedPage] = field(default_factory=list)
    tier: DecodeTier | None = None
    error: PayloadParseError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _pages_from_object(obj: Any) -> list[ExtractedPage] | None:
    """Return pages for an object with a `pages` list, else None."""
    if not isinstance(obj, dict) or not isinstance(obj.get("pages"), list):
        return None

    pages: list[ExtractedPage] = []
    for position, raw_page in enumerate(obj["pages"]):
        if not isinstance(raw_page, dict):
            continue
        text = raw_page.get("markdown")
        if text is None:
            text = raw_page.get("text", "")
        index = raw_page.get("index")
        page_number = index + 1 if isinstance(index, int) and index >= 0 else position + 1
        pages.append(ExtractedPage(page_number=page_number, text=str(text)))
    return pages


def decode_ocr_payload(raw: str | bytes | dict) -> DecodeResult:
    """
    Decode an OCR response into pages.

    Args:
        raw: Response body as text, bytes, or an already-parsed object

    Returns:
        DecodeResult: Pages plus the tier that produced them, or an error
    """
    if isinstance(raw, dict):
        pages = _pages_from_object(raw)
        if pages is None:
            return DecodeResult(error=PayloadParseError("Payload object has no pages list"))
        return DecodeResult(pages=pages, tier=DecodeTier.STRICT_JSON)

    text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
    stripped = text.strip()
    if not stripped:
        return DecodeResult(error=PayloadParseError("Empty payload"))

    try:
        parsed = json.loads(stripped)
    except json.JSONDecodeError:
        parsed = None
    else:
        pages = _pages_from_object(parsed)
        if pages is None:
            return DecodeResult(
                error=PayloadParseError(
                    "JSON payload has no pages list",
                    {"type": type(parsed).__name__},
                )
            )
        logger.debug(f"{__name__}:decode_ocr_payload - strict JSON", extra={"pages": len(pages)})
        return DecodeResult(pages=pages, tier=DecodeTier.STRICT_JSON)

    start, end = stripped.find("{"), stripped.rfind("}")
    if 0 <= start < end:
        try:
            embedded = json.loads(stripped[start:end + 1])
        except json.JSONDecodeError:
            embedded = None
        pages = _pages_from_object(embedded)
        if pages is not None:
            logger.warning(
                f"{__name__}:decode_ocr_payload - recovered JSON embedded in text",
                extra={"pages": len(pages), "prefix_chars": start},
            )
            return DecodeResult(pages=pages, tier=DecodeTier.EMBEDDED_JSON)

    logger.warning(
        f"{__name__}:decode_ocr_payload - payload is not JSON, using it as plain text",
        extra={"chars": len(stripped)},
    )
    return DecodeResult(
        pages=[ExtractedPage(page_number=1, text=stripped)],
        tier=DecodeTier.PLAIN_TEXT,
    )
