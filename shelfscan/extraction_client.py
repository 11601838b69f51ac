"""Anthropic Messages API client used for book extraction."""

import logging
from typing import Optional

import requests

from shelfscan.config import get_env
from shelfscan.errors import ExtractionServiceError

logger = logging.getLogger(__name__)


class AnthropicClient:
    BASE_URL = "https://api.anthropic.com/v1"
    API_VERSION = "2023-06-01"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "claude-sonnet-4-20250514",
        max_tokens: int = 4000,
        timeout: float = 120.0
    ):
        """Initialize Anthropic client with API key from environment or parameter."""
        self.api_key = get_env('ANTHROPIC_API_KEY', api_key)
        if not self.api_key:
            raise ValueError(
                "Anthropic API key must be provided or set in ANTHROPIC_API_KEY environment variable"
            )
        self.model = model
        self.max_tokens = max_tokens
        self.timeout = timeout

        self.session = requests.Session()
        self.session.headers = {
            'x-api-key': self.api_key,
            'anthropic-version': self.API_VERSION,
            'content-type': 'application/json',
        }

    def complete(self, prompt: str) -> str:
        """
        Send a single user message and return the text of the reply.

        Raises:
            ExtractionServiceError: transport failure, timeout, non-success
                status, or a reply without a text block
        """
        url = f"{self.BASE_URL}/messages"
        body = {
            'model': self.model,
            'max_tokens': self.max_tokens,
            'messages': [{'role': 'user', 'content': prompt}],
        }

        try:
            response = self.session.post(url, json=body, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.Timeout as e:
            raise ExtractionServiceError(f"Extraction call timed out after {self.timeout}s") from e
        except requests.exceptions.HTTPError as e:
            raise ExtractionServiceError(f"Extraction service returned {e.response.status_code}") from e
        except (requests.exceptions.RequestException, ValueError) as e:
            raise ExtractionServiceError(f"Extraction request failed: {e}") from e

        if not isinstance(data, dict):
            raise ExtractionServiceError("Extraction response was not a JSON object")
        content = data.get('content') or []
        if not isinstance(content, list) or not content or not isinstance(content[0], dict):
            raise ExtractionServiceError("Extraction response contained no text")
        if content[0].get('type') != 'text' or not isinstance(content[0].get('text'), str):
            raise ExtractionServiceError("Extraction response contained no text")

        usage = data.get('usage')
        if isinstance(usage, dict):
            logger.debug(
                f"Extraction used {usage.get('input_tokens', 0)} input / "
                f"{usage.get('output_tokens', 0)} output tokens"
            )
        return content[0]['text']
