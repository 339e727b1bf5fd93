"""
Unit tests for token counting and its fallback estimate.
"""

from docingest.core.document_processing.tokenizer import count_tokens, estimate_tokens


class BrokenEncoding:
    def encode(self, text):
        raise RuntimeError("encoder crashed")

    def decode(self, tokens):
        return ""


class CharEncoding:
    def encode(self, text):
        return list(text)

    def decode(self, tokens):
        return "".join(tokens)


class TestTokenCounting:
    """Test suite for count_tokens."""

    def test_estimate_is_ceiling_of_quarter_length(self):
        assert estimate_tokens("") == 0
        assert estimate_tokens("abcd") == 1
        assert estimate_tokens("abcde") == 2

    def test_explicit_encoding_is_used(self):
        assert count_tokens("hello", CharEncoding()) == 5

    def test_failing_encoder_falls_back_to_estimate(self):
        assert count_tokens("abcdefgh", BrokenEncoding()) == 2
