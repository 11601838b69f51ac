"""Scan configuration.

Tunables live in a plain dict read with ``.get(key, default)``. Credentials
are taken from the environment:

- GOOGLE_VISION_API_KEY: Cloud Vision API key (text detection)
- ANTHROPIC_API_KEY: Anthropic API key (book extraction)
- SUPABASE_URL / SUPABASE_KEY: listing storage
- SHELFSCAN_OWNER_ID: default owner for saved listings
"""

import os
from typing import Any, Dict, Optional

DEFAULT_SCAN_CONFIG: Dict[str, Any] = {
    # Frame sampling
    "frame_count": 20,
    "estimated_duration": 30.0,  # seconds, used when the true duration is unknown
    "known_duration": None,
    "jpeg_quality": 90,
    "render_timeout": 15.0,
    # Text detection
    "ocr_timeout": 30.0,
    "ocr_workers": 1,
    "cost_per_frame": 0.00118,  # GBP per Vision API call
    # Extraction
    "extraction_model": "claude-sonnet-4-20250514",
    "extraction_max_tokens": 4000,
    "extraction_timeout": 120.0,
    "author_repeat_threshold": 10,
    # Listings
    "save_timeout": 30.0,
}

MIN_JPEG_QUALITY = 80


def build_scan_config(**overrides: Any) -> Dict[str, Any]:
    """Return a copy of the defaults with every non-None override applied."""
    config = dict(DEFAULT_SCAN_CONFIG)
    for key, value in overrides.items():
        if key not in DEFAULT_SCAN_CONFIG:
            raise ValueError(f"Unknown scan setting: {key}")
        if value is not None:
            config[key] = value

    if config["jpeg_quality"] < MIN_JPEG_QUALITY or config["jpeg_quality"] > 100:
        raise ValueError(f"jpeg_quality must be between {MIN_JPEG_QUALITY} and 100")
    if config["ocr_workers"] < 1:
        raise ValueError("ocr_workers must be at least 1")
    if config["author_repeat_threshold"] < 1:
        raise ValueError("author_repeat_threshold must be at least 1")
    return config


def get_env(name: str, value: Optional[str] = None) -> Optional[str]:
    """Return ``value`` if given, else the environment variable (or None)."""
    return value or os.getenv(name) or None
