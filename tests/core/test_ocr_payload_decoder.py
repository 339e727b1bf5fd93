"""
Unit tests for tiered OCR payload decoding.
"""

import json

from docingest.core.document_processing.payload_decoder import DecodeTier, decode_ocr_payload


class TestDecodeOcrPayload:
    """Test suite for decode_ocr_payload."""

    def test_strict_json_pages(self):
        # Arrange
        raw = json.dumps({"pages": [{"index": 0, "markdown": "# Intro"}, {"index": 1, "markdown": "Setup"}]})

        # Act
        result = decode_ocr_payload(raw)

        # Assert
        assert result.ok
        assert result.tier == DecodeTier.STRICT_JSON
        assert [(p.page_number, p.text) for p in result.pages] == [(1, "# Intro"), (2, "Setup")]

    def test_parsed_object_is_accepted(self):
        result = decode_ocr_payload({"pages": [{"text": "plain page"}]})

        assert result.tier == DecodeTier.STRICT_JSON
        assert result.pages[0].text == "plain page"

    def test_markdown_preferred_over_text(self):
        result = decode_ocr_payload({"pages": [{"markdown": "md", "text": "txt"}]})
        assert result.pages[0].text == "md"

    def test_missing_index_uses_position(self):
        result = decode_ocr_payload({"pages": [{"markdown": "a"}, {"markdown": "b"}]})
        assert [p.page_number for p in result.pages] == [1, 2]

    def test_embedded_json_is_recovered(self):
        # Arrange
        raw = 'upstream said: {"pages": [{"index": 0, "markdown": "Warranty terms"}]} -- end'

        # Act
        result = decode_ocr_payload(raw)

        # Assert
        assert result.ok
        assert result.tier == DecodeTier.EMBEDDED_JSON
        assert result.pages[0].text == "Warranty terms"

    def test_plain_text_becomes_single_page(self):
        result = decode_ocr_payload(b"Just some text from a proxy")

        assert result.tier == DecodeTier.PLAIN_TEXT
        assert len(result.pages) == 1
        assert result.pages[0].text == "Just some text from a proxy"

    def test_empty_payload_is_an_error(self):
        result = decode_ocr_payload("   ")

        assert not result.ok
        assert result.pages == []

    def test_json_without_pages_is_an_error(self):
        assert not decode_ocr_payload('{"error": "quota"}').ok
        assert not decode_ocr_payload("[1, 2, 3]").ok
        assert not decode_ocr_payload({"detail": "nope"}).ok
