"""Data records passed between the scan stages."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List

# Absence marker for frames where text detection found nothing
NO_TEXT_DETECTED = "[NO TEXT DETECTED]"


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"


@dataclass(frozen=True)
class Frame:
    """A still image sampled from the video."""
    index: int
    image_bytes: bytes = field(repr=False)
    timestamp_hint: float = 0.0


@dataclass(frozen=True)
class FrameText:
    """Recognized text for one frame."""
    frame_index: int
    text: str = NO_TEXT_DETECTED

    @property
    def has_text(self) -> bool:
        return self.text != NO_TEXT_DETECTED


@dataclass
class OcrBatch:
    """Per-frame OCR text for a whole scan plus the estimated service cost."""
    frames: List[FrameText] = field(default_factory=list)
    cost: float = 0.0

    @property
    def frame_count(self) -> int:
        return len(self.frames)


@dataclass(frozen=True)
class HighConfidenceBook:
    title: str
    author: str
    evidence: str


@dataclass(frozen=True)
class Candidate:
    evidence_found: str
    suggested_title: str
    suggested_author: str
    reasoning: str
    alternatives: tuple = ()


@dataclass
class ExtractionResult:
    """Both buckets returned by the extraction step."""
    high_confidence: List[HighConfidenceBook] = field(default_factory=list)
    needs_confirmation: List[Candidate] = field(default_factory=list)
    raw_response: str = field(default="", repr=False)


@dataclass(frozen=True)
class Book:
    title: str
    author: str
    confidence: Confidence
    evidence: str

    def to_dict(self) -> Dict[str, str]:
        return {
            'title': self.title,
            'author': self.author,
            'confidence': self.confidence.value,
            'evidence': self.evidence,
        }


@dataclass
class MergedResult:
    """Flattened book list with summary counts."""
    books: List[Book] = field(default_factory=list)
    high_confidence_count: int = 0
    needs_confirmation_count: int = 0

    @property
    def total_identified(self) -> int:
        return len(self.books)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'books': [book.to_dict() for book in self.books],
            'total_identified': self.total_identified,
            'high_confidence_count': self.high_confidence_count,
            'needs_confirmation_count': self.needs_confirmation_count,
        }


@dataclass(frozen=True)
class Listing:
    """A sellable record derived from an identified book."""
    title: str
    author: str
    owner_id: str
    price: float = 0

    @classmethod
    def from_book(cls, book: Book, owner_id: str) -> "Listing":
        return cls(title=book.title, author=book.author, owner_id=owner_id)


@dataclass
class SaveResult:
    saved_count: int = 0
    records: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class ScanResult:
    """Everything a caller gets back from one scan."""
    merged: MergedResult
    frame_count: int = 0
    ocr_cost: float = 0.0
    timings: Dict[str, float] = field(default_factory=dict)

    @property
    def books(self) -> List[Book]:
        return self.merged.books
