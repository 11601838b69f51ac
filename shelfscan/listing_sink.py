"""
Listing storage.

The core only depends on ListingSink.save. Each call is all-or-nothing from
the caller's point of view: it either stores every listing or raises
PersistenceError. Retrying is left to the caller, who still holds the merged
book list.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

import requests

from shelfscan.config import get_env
from shelfscan.errors import PersistenceError
from shelfscan.models import Book, Listing, SaveResult

logger = logging.getLogger(__name__)


def listing_row(listing: Listing) -> Dict[str, Any]:
    """Column mapping for the listings table."""
    return {
        'title': listing.title,
        'author': listing.author,
        'price': listing.price,
        'user_id': listing.owner_id,
    }


class ListingSink(ABC):
    """Stores identified books as listings owned by a user."""

    def save(self, owner_id: str, books: Sequence[Book]) -> SaveResult:
        """
        Persist one listing per book.

        Raises:
            PersistenceError: the listings could not be stored
        """
        if not owner_id:
            raise ValueError("owner_id is required")
        if not books:
            logger.info("No books to save")
            return SaveResult()

        listings = [Listing.from_book(book, owner_id) for book in books]
        logger.info(f"Saving {len(listings)} books...")
        try:
            records = self._insert(listings)
        except PersistenceError:
            raise
        except Exception as e:
            # Storage failures are opaque to the core
            logger.error(f"Listing storage failed: {e}")
            raise PersistenceError("Failed to save books") from e
        logger.info(f"Saved {len(records)} books")
        return SaveResult(saved_count=len(records), records=records)

    @abstractmethod
    def _insert(self, listings: List[Listing]) -> List[Dict[str, Any]]:
        """Store all listings in one operation and return the stored records."""


class SupabaseListingSink(ListingSink):
    """Inserts listings into a Supabase ``listings`` table through PostgREST."""

    def __init__(
        self,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        table: str = "listings",
        timeout: float = 30.0
    ):
        self.url = get_env('SUPABASE_URL', url)
        self.api_key = get_env('SUPABASE_KEY', api_key)
        if not self.url or not self.api_key:
            raise ValueError(
                "Supabase URL and key must be provided or set in SUPABASE_URL and SUPABASE_KEY"
            )
        self.table = table
        self.timeout = timeout

        self.session = requests.Session()
        self.session.headers = {
            'apikey': self.api_key,
            'authorization': f'Bearer {self.api_key}',
            'content-type': 'application/json',
            'prefer': 'return=representation',
        }

    def _insert(self, listings: List[Listing]) -> List[Dict[str, Any]]:
        url = f"{self.url.rstrip('/')}/rest/v1/{self.table}"
        try:
            # A single bulk insert runs in one transaction on the server
            response = self.session.post(
                url, json=[listing_row(listing) for listing in listings], timeout=self.timeout
            )
            response.raise_for_status()
            records = response.json()
        except requests.exceptions.HTTPError as e:
            logger.error(f"Supabase error {e.response.status_code}: {e.response.text[:200]}")
            raise PersistenceError("Failed to save books to database") from e
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error(f"Supabase request failed: {e}")
            raise PersistenceError("Failed to save books to database") from e

        if not isinstance(records, list):
            raise PersistenceError("Unexpected response from listing storage")
        return records


class InMemoryListingSink(ListingSink):
    """Keeps listings in process memory. Used for dry runs and tests."""

    def __init__(self):
        self.records: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def _insert(self, listings: List[Listing]) -> List[Dict[str, Any]]:
        with self._lock:
            start = len(self.records)
            stored = [
                dict(listing_row(listing), id=start + i + 1)
                for i, listing in enumerate(listings)
            ]
            self.records.extend(stored)
        return stored
