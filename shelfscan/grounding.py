"""Fuzzy audit that extracted books are grounded in the OCR evidence."""

import re
from typing import Iterable, List, Set

from rapidfuzz import fuzz

from shelfscan.models import NO_TEXT_DETECTED, HighConfidenceBook

_FRAME_MARKER = re.compile(r'^=== FRAME \d+ ===$', re.MULTILINE)


def _normalize_words(text: str) -> List[str]:
    """Lowercase, turn punctuation into spaces, drop words of 3 chars or fewer."""
    normalized = text.lower()
    # OCR confuses punctuation freely, so treat it all as whitespace
    for punct in '!?;:.,"()[]{}&/\\-\'':
        normalized = normalized.replace(punct, ' ')
    return [w for w in normalized.split() if len(w) > 3]


def evidence_vocabulary(evidence_document: str) -> Set[str]:
    """Words of the OCR text itself, without frame markers or absence markers."""
    text = _FRAME_MARKER.sub(' ', evidence_document).replace(NO_TEXT_DETECTED, ' ')
    return set(_normalize_words(text))


def _word_found(word: str, vocabulary: Set[str], threshold: float) -> bool:
    if word in vocabulary:
        return True
    for ocr_word in vocabulary:
        # Compare only words of similar length so "haven" does not match "haven't"
        if len(word) * 0.8 <= len(ocr_word) <= len(word) * 1.2:
            if fuzz.ratio(word, ocr_word) / 100.0 >= threshold:
                return True
    return False


def is_grounded(
    book: HighConfidenceBook,
    vocabulary: Set[str],
    threshold: float = 0.85
) -> bool:
    """True if any word of the book's title or evidence note occurs in the OCR text."""
    words = _normalize_words(f"{book.title} {book.evidence}")
    return any(_word_found(word, vocabulary, threshold) for word in words)


def find_ungrounded(
    books: Iterable[HighConfidenceBook],
    evidence_document: str,
    threshold: float = 0.85
) -> List[HighConfidenceBook]:
    """
    Return the books none of whose title or evidence words appear in the OCR text.

    Matching is fuzzy to tolerate OCR errors ("SEAUMONT" for "BEAUMONT").
    This is an audit only; callers log the result and never drop books.
    """
    vocabulary = evidence_vocabulary(evidence_document)
    return [book for book in books if not is_grounded(book, vocabulary, threshold)]
