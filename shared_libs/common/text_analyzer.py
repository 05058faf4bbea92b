"""
Word counting and word frequency ranking for uploaded documents.

The analyzer is a pure, stateless transformation from raw file bytes to an
AnalysisResult: total word count plus the most frequent words, ties broken
by the order in which a word first appears in the document.
"""

import codecs
import re
from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

from shared_libs.config.all_config import TextAnalysisConfig, text_analysis_config

_WORD_PATTERN = re.compile(r"\w+")

TOTAL_COUNT_MODES = ("tokens", "whitespace")


class InputDecodingError(ValueError):
    """Raised when document bytes cannot be decoded as text under a strict policy."""


@dataclass(frozen=True)
class Document:
    """Raw content of a stored object, fetched once per request."""

    name: str
    content: bytes
    bucket: Optional[str] = None

    @property
    def size_bytes(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class WordFrequencyEntry:
    word: str
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {"word": self.word, "count": self.count}


@dataclass(frozen=True)
class AnalysisResult:
    """Total word count and ranked word frequencies for one document."""

    total_words: int
    top_words: Tuple[WordFrequencyEntry, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_words": self.total_words,
            "top_10_words": [entry.to_dict() for entry in self.top_words],
        }


class TextAnalyzer:
    """
    Tokenizes text and computes word statistics.

    Tokens are maximal runs of word characters (letters, digits, underscore),
    lowercased before counting. Instances hold only configuration and are
    safe to share between threads.
    """

    def __init__(self, config: TextAnalysisConfig = text_analysis_config):
        if config.top_k < 1:
            raise ValueError(f"top_k must be positive, got {config.top_k}")
        if config.total_count_mode not in TOTAL_COUNT_MODES:
            raise ValueError(
                f"total_count_mode must be one of {TOTAL_COUNT_MODES}, got '{config.total_count_mode}'"
            )
        # Unknown codecs or error handlers raise LookupError here, not per request
        codecs.lookup(config.encoding)
        codecs.lookup_error(config.decode_errors)
        self.config = config

    def decode(self, content: Union[bytes, str]) -> str:
        """
        Decode document bytes into text.

        Raises:
            InputDecodingError: If decoding fails with decode_errors="strict".
        """
        if isinstance(content, str):
            return content
        try:
            return content.decode(self.config.encoding, errors=self.config.decode_errors)
        except UnicodeDecodeError as e:
            raise InputDecodingError(
                f"Content is not valid {self.config.encoding} at byte {e.start}: {e.reason}"
            ) from e

    def tokenize(self, text: str) -> List[str]:
        return [token.lower() for token in _WORD_PATTERN.findall(text)]

    def count_words(self, content: Union[bytes, str]) -> int:
        """Total number of words, duplicates included."""
        text = self.decode(content)
        if self.config.total_count_mode == "whitespace":
            return len(text.split())
        return len(self.tokenize(text))

    def rank_words(self, content: Union[bytes, str]) -> Tuple[WordFrequencyEntry, ...]:
        """The top_k most frequent words, most frequent first."""
        return self._rank(self.tokenize(self.decode(content)))

    def analyze(self, content: Union[bytes, str]) -> AnalysisResult:
        """
        Compute the total word count and the top-ranked words in one pass.

        Empty content yields a zero count and no ranked words.
        """
        text = self.decode(content)
        tokens = self.tokenize(text)
        if self.config.total_count_mode == "whitespace":
            total = len(text.split())
        else:
            total = len(tokens)
        return AnalysisResult(total_words=total, top_words=self._rank(tokens))

    def _rank(self, tokens: List[str]) -> Tuple[WordFrequencyEntry, ...]:
        # Counter keeps first-insertion order and sorted() is stable, so equal
        # counts stay in first-occurrence order.
        counts = Counter(tokens)
        ranked = sorted(counts.items(), key=lambda item: -item[1])
        return tuple(
            WordFrequencyEntry(word=word, count=count)
            for word, count in ranked[: self.config.top_k]
        )
