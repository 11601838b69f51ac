"""Turn per-frame OCR text into identified books via the extraction service."""

import logging
import re
from typing import Sequence

from pydantic import ValidationError

from shelfscan.errors import ExtractionFormatError
from shelfscan.extraction_client import AnthropicClient
from shelfscan.grounding import find_ungrounded
from shelfscan.models import Candidate, ExtractionResult, FrameText, HighConfidenceBook
from shelfscan.profiler import profiler
from shelfscan.prompts import PROMPT_VERSION, get_book_identification_prompt
from shelfscan.schemas import ExtractionPayload

logger = logging.getLogger(__name__)

_OPENING_FENCE = re.compile(r'^```(?:json)?[ \t]*\n?', re.IGNORECASE)
_CLOSING_FENCE = re.compile(r'\n?[ \t]*```$')


def build_evidence_document(frame_texts: Sequence[FrameText]) -> str:
    """Concatenate OCR text in frame order, each block under a frame marker."""
    ordered = sorted(frame_texts, key=lambda ft: ft.frame_index)
    return "\n\n".join(f"=== FRAME {ft.frame_index} ===\n{ft.text}" for ft in ordered)


def strip_fences(response_text: str) -> str:
    """Remove one leading ``` / ```json marker and one trailing ``` marker."""
    cleaned = response_text.strip()
    cleaned = _OPENING_FENCE.sub('', cleaned, count=1)
    cleaned = _CLOSING_FENCE.sub('', cleaned, count=1)
    return cleaned.strip()


def parse_extraction_response(response_text: str) -> ExtractionResult:
    """
    Parse and validate the extraction service's reply.

    Only a surrounding fenced block is tolerated. Anything else that keeps
    the reply from parsing as the two-array object (leading prose, trailing
    commentary, unknown keys, wrong field types) is rejected. One missing
    bucket is read as empty; a reply with neither bucket is rejected.

    Raises:
        ExtractionFormatError: the reply does not match the expected structure
    """
    cleaned = strip_fences(response_text)
    try:
        payload = ExtractionPayload.model_validate_json(cleaned)
    except ValidationError as e:
        raise ExtractionFormatError(
            f"Extraction response does not match the expected structure: {e}", response_text
        ) from e

    for key in payload.missing_buckets():
        logger.warning(f"Extraction response has no '{key}' array, treating it as empty")

    return ExtractionResult(
        high_confidence=[
            HighConfidenceBook(title=entry.title, author=entry.author, evidence=entry.evidence)
            for entry in payload.high_confidence
        ],
        needs_confirmation=[
            Candidate(
                evidence_found=entry.evidence_found,
                suggested_title=entry.suggested_title,
                suggested_author=entry.suggested_author,
                reasoning=entry.reasoning,
                alternatives=tuple(entry.alternatives),
            )
            for entry in payload.needs_confirmation
        ],
        raw_response=response_text,
    )


def extract_books(
    evidence_document: str,
    client: AnthropicClient,
    author_repeat_threshold: int = 10
) -> ExtractionResult:
    """
    Identify books in an evidence document.

    The extraction service receives the whole document together with the
    identification instructions, which own the cross-frame deduplication
    and confidence policy. The reply is a best-effort oracle: only its
    structure is guaranteed, and it is validated before use.

    An empty document is answered locally with an empty result.

    Args:
        evidence_document: Output of build_evidence_document
        client: Extraction service client
        author_repeat_threshold: Mentions of one author above which the
            service is told to look for several distinct titles (default: 10)

    Returns:
        ExtractionResult with both buckets

    Raises:
        ExtractionServiceError: the service call failed
        ExtractionFormatError: the reply did not match the expected structure
    """
    if not evidence_document.strip():
        logger.info("Empty evidence document, skipping extraction")
        return ExtractionResult()

    prompt = get_book_identification_prompt(evidence_document, author_threshold=author_repeat_threshold)
    frame_total = evidence_document.count("=== FRAME ")
    logger.info(f"Analyzing {frame_total} frames (prompt v{PROMPT_VERSION})...")

    with profiler.timed("extraction_call"):
        response_text = client.complete(prompt)
    logger.debug(f"Extraction raw response: {response_text}")

    try:
        result = parse_extraction_response(response_text)
    except ExtractionFormatError:
        logger.error(f"Failed to parse extraction response: {response_text[:500]}")
        raise

    for book in find_ungrounded(result.high_confidence, evidence_document):
        logger.warning(f"'{book.title}' has no matching words in the OCR text (evidence: {book.evidence})")

    logger.info(
        f"Extracted {len(result.high_confidence)} high confidence, "
        f"{len(result.needs_confirmation)} needing confirmation"
    )
    return result
