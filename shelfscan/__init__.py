"""Shelfscan - Identify the books in a video pan across a bookshelf."""

__version__ = "1.0.0"

from shelfscan.frame_sampler import sample_frames, probe_duration
from shelfscan.ocr_aggregator import aggregate_text
from shelfscan.evidence_extractor import build_evidence_document, extract_books
from shelfscan.result_merger import merge_results
from shelfscan.listing_sink import ListingSink, SupabaseListingSink, InMemoryListingSink
from shelfscan.pipeline import scan_video, save_books

__all__ = [
    'sample_frames',
    'probe_duration',
    'aggregate_text',
    'build_evidence_document',
    'extract_books',
    'merge_results',
    'ListingSink',
    'SupabaseListingSink',
    'InMemoryListingSink',
    'scan_video',
    'save_books',
]
