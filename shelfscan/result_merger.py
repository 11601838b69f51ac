"""Flatten the two extraction buckets into one book list."""

from typing import Optional, Sequence

from shelfscan.errors import InvalidMergeInput
from shelfscan.models import (
    Book,
    Candidate,
    Confidence,
    HighConfidenceBook,
    MergedResult,
)


def book_from_high_confidence(entry: HighConfidenceBook) -> Book:
    return Book(
        title=entry.title,
        author=entry.author,
        confidence=Confidence.HIGH,
        evidence=entry.evidence,
    )


def book_from_candidate(entry: Candidate) -> Book:
    return Book(
        title=entry.suggested_title,
        author=entry.suggested_author,
        confidence=Confidence.MEDIUM,
        evidence=entry.reasoning,
    )


def merge_results(
    high_confidence: Optional[Sequence[HighConfidenceBook]],
    needs_confirmation: Optional[Sequence[Candidate]]
) -> MergedResult:
    """
    High confidence books first, then candidates, each in the order given.

    Pure function. A missing bucket counts as empty; deduplication already
    happened during extraction so nothing is dropped here.

    Raises:
        InvalidMergeInput: a bucket holds entries of the wrong type
    """
    high_confidence = list(high_confidence or [])
    needs_confirmation = list(needs_confirmation or [])

    for entry in high_confidence:
        if not isinstance(entry, HighConfidenceBook):
            raise InvalidMergeInput(f"Expected HighConfidenceBook, got {type(entry).__name__}")
    for entry in needs_confirmation:
        if not isinstance(entry, Candidate):
            raise InvalidMergeInput(f"Expected Candidate, got {type(entry).__name__}")

    books = [book_from_high_confidence(e) for e in high_confidence]
    books.extend(book_from_candidate(e) for e in needs_confirmation)

    return MergedResult(
        books=books,
        high_confidence_count=len(high_confidence),
        needs_confirmation_count=len(needs_confirmation),
    )
