"""Google Cloud Vision client for full-image text detection."""

import base64
import logging
from typing import Optional

import requests

from shelfscan.config import get_env
from shelfscan.errors import OcrServiceError

logger = logging.getLogger(__name__)


class VisionClient:
    BASE_URL = "https://vision.googleapis.com/v1"

    def __init__(self, api_key: Optional[str] = None, timeout: float = 30.0):
        """Initialize Vision client with API key from environment or parameter."""
        self.api_key = get_env('GOOGLE_VISION_API_KEY', api_key)
        if not self.api_key:
            raise ValueError(
                "Vision API key must be provided or set in GOOGLE_VISION_API_KEY environment variable"
            )
        self.timeout = timeout

        self.session = requests.Session()
        self.session.headers = {
            'accept': 'application/json',
            'content-type': 'application/json',
        }

    def detect_text(self, image_bytes: bytes) -> Optional[str]:
        """
        Run TEXT_DETECTION on one image.

        Returns the full recognized text, or None when the image has no text
        or Vision reports an error for this image only.

        Raises:
            OcrServiceError: transport failure, timeout, or non-success status
        """
        url = f"{self.BASE_URL}/images:annotate"
        body = {
            'requests': [{
                'image': {'content': base64.b64encode(image_bytes).decode('ascii')},
                'features': [{'type': 'TEXT_DETECTION'}],
            }]
        }

        try:
            response = self.session.post(
                url, params={'key': self.api_key}, json=body, timeout=self.timeout
            )
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.Timeout as e:
            raise OcrServiceError(f"Vision API timed out after {self.timeout}s") from e
        except requests.exceptions.HTTPError as e:
            raise OcrServiceError(f"Vision API returned {e.response.status_code}") from e
        except (requests.exceptions.RequestException, ValueError) as e:
            raise OcrServiceError(f"Vision API request failed: {e}") from e

        if not isinstance(data, dict):
            logger.warning("Vision returned an unexpected response body")
            return None
        responses = data.get('responses') or [{}]
        annotation = responses[0] if isinstance(responses, list) else None
        if not isinstance(annotation, dict):
            logger.warning("Vision returned an unexpected annotation for this image")
            return None
        if 'error' in annotation:
            error = annotation['error']
            message = error.get('message', '') if isinstance(error, dict) else error
            logger.warning(f"Vision could not process image: {message}")
            return None

        text_annotations = annotation.get('textAnnotations') or []
        if not isinstance(text_annotations, list) or not text_annotations:
            return None
        if not isinstance(text_annotations[0], dict):
            return None
        text = text_annotations[0].get('description') or ''
        if not isinstance(text, str):
            return None
        text = text.strip()
        return text or None
