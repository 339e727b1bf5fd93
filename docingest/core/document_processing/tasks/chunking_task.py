"""
Text chunking task using RecursiveCharacterTextSplitter.

Splits page text into bounded, overlapping chunks. Split points prefer
paragraph, then line, sentence, clause, word and finally character
boundaries. Size is measured in cl100k_base tokens when tiktoken is usable
and in characters otherwise.

Dependencies: langchain_text_splitters, tiktoken
System role: Second stage of document ingestion pipeline
"""

import logging

from langchain_text_splitters import RecursiveCharacterTextSplitter

from docingest.core.document_processing.models import ChunkDraft, ExtractedPage
from docingest.core.document_processing.tokenizer import Encoding, count_tokens, estimate_tokens, get_encoding

logger = logging.getLogger(__name__)

SEPARATORS = ["\n\n", "\n", ". ", ", ", " ", ""]
MIN_CHUNK_BODY = 50


def clamp_overlap(chunk_size: int, overlap: int) -> int:
    """
    Clamp overlap to [0, chunk_size - 50].

    Args:
        chunk_size: Positive chunk size
        overlap: Requested overlap

    Returns:
        int: Overlap actually used
    """
    return min(max(0, overlap), max(0, chunk_size - MIN_CHUNK_BODY))


def _character_splitter(chunk_size: int, overlap: int) -> RecursiveCharacterTextSplitter:
    return RecursiveCharacterTextSplitter(
        chunk_size=chunk_size,
        chunk_overlap=overlap,
        separators=SEPARATORS,
        length_function=len,
        keep_separator=True,
    )


def split_text(
    text: str,
    chunk_size: int,
    overlap: int,
    use_tokens: bool = True,
) -> list[str]:
    """
    Split text into chunks.

    Args:
        text: Text to split
        chunk_size: Maximum chunk size (tokens or characters)
        overlap: Requested overlap, clamped to [0, chunk_size - 50]
        use_tokens: Measure in tokens when a tokenizer is available

    Returns:
        list[str]: Non-empty chunks; empty text yields []

    Raises:
        ValueError: chunk_size is not positive
    """
    return ChunkingTask(chunk_size, overlap, use_tokens=use_tokens).split(text)


class ChunkingTask:
    """Split page text into chunks with token spans and section metadata."""

    def __init__(
        self,
        chunk_size: int = 1000,
        chunk_overlap: int = 200,
        use_tokens: bool = True,
        encoding: Encoding | None = None,
    ) -> None:
        """
        Initialize chunking task with splitter configuration.

        Args:
            chunk_size: Maximum chunk size
            chunk_overlap: Requested overlap between consecutive chunks
            use_tokens: Try the token-measured splitter first
            encoding: Tokenizer override (defaults to cl100k_base via tiktoken)

        Raises:
            ValueError: chunk_size is not positive
        """
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")

        self.chunk_size = chunk_size
        self.chunk_overlap = clamp_overlap(chunk_size, chunk_overlap)
        self._encoding = encoding if encoding is not None else (get_encoding() if use_tokens else None)
        self._char_splitter = _character_splitter(chunk_size, self.chunk_overlap)
        self._token_splitter = self._build_token_splitter() if use_tokens else None

    def _build_token_splitter(self) -> RecursiveCharacterTextSplitter | None:
        encoding = self._encoding
        if encoding is None:
            return None
        return RecursiveCharacterTextSplitter(
            chunk_size=self.chunk_size,
            chunk_overlap=self.chunk_overlap,
            separators=SEPARATORS,
            length_function=lambda s: len(encoding.encode(s)),
            keep_separator=True,
        )

    @property
    def measures_tokens(self) -> bool:
        return self._token_splitter is not None

    def measure(self, text: str) -> int:
        """Size of text in the unit chunk_size is expressed in."""
        if self._token_splitter is not None:
            return count_tokens(text, self._encoding)
        return len(text)

    def _count_tokens(self, text: str) -> int:
        if self._encoding is None:
            return estimate_tokens(text)
        return count_tokens(text, self._encoding)

    def split(self, text: str) -> list[str]:
        """
        Split text into chunks.

        Args:
            text: Text to split

        Returns:
            list[str]: Non-empty, stripped chunks; [] for blank text
        """
        if not text or not text.strip():
            return []

        chunks: list[str] | None = None
        if self._token_splitter is not None:
            try:
                chunks = self._token_splitter.split_text(text)
            except Exception as e:
                logger.warning(
                    f"{__name__}:split - token splitter failed, using character splitter",
                    extra={"error": str(e)},
                )
        if chunks is None:
            chunks = self._char_splitter.split_text(text)
        return [chunk for chunk in chunks if chunk.strip()]

    def split_pages(self, pages: list[ExtractedPage]) -> list[ChunkDraft]:
        """
        Split pages into chunk drafts.

        Metadata carries the page number, a section label
        ("Page N - Section i", or the page's own label for synthetic pages)
        and a document-wide chunk index.

        Args:
            pages: Extracted pages in order

        Returns:
            list[ChunkDraft]: Drafts in document order, duplicates by hash removed
        """
        drafts: list[ChunkDraft] = []
        seen: set[str] = set()

        for page in pages:
            search_from = 0
            for section_index, chunk in enumerate(self.split(page.text), start=1):
                offset = page.text.find(chunk, search_from)
                if offset < 0:
                    offset = search_from
                else:
                    search_from = offset + 1
                token_start = self._count_tokens(page.text[:offset])
                token_end = token_start + self._count_tokens(chunk)

                draft = ChunkDraft.from_text(
                    chunk,
                    token_start=token_start,
                    token_end=token_end,
                    metadata={
                        "page": page.page_number,
                        "section": page.section or f"Page {page.page_number} - Section {section_index}",
                        "chunk_index": len(drafts),
                    },
                )
                if draft.content_hash in seen:
                    continue
                seen.add(draft.content_hash)
                drafts.append(draft)

        logger.info(
            f"{__name__}:split_pages - {len(drafts)} chunks from {len(pages)} pages",
            extra={"measures_tokens": self.measures_tokens},
        )
        return drafts
