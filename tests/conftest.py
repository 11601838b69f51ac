"""
Pytest configuration and shared fakes for the external services.
"""
import json

import pytest

from shelfscan.errors import FrameRenderError


class FakeVisionClient:
    """Returns canned text per call, in call order."""

    def __init__(self, texts):
        self.texts = list(texts)
        self.calls = []

    def detect_text(self, image_bytes):
        self.calls.append(image_bytes)
        result = self.texts[len(self.calls) - 1]
        if isinstance(result, Exception):
            raise result
        return result


class FakeExtractionClient:
    """Returns one canned reply and records the prompts it was sent."""

    def __init__(self, response):
        self.response = response
        self.prompts = []

    def complete(self, prompt):
        self.prompts.append(prompt)
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


def fake_render(video_path, index, timestamp, jpeg_quality, timeout):
    return f"frame-{index}".encode()


def make_failing_render(failing_indices):
    def render(video_path, index, timestamp, jpeg_quality, timeout):
        if index in failing_indices:
            raise FrameRenderError(index, timestamp, "decode error")
        return f"frame-{index}".encode()
    return render


@pytest.fixture
def video_file(tmp_path):
    """A placeholder video file; frame rendering is faked in tests."""
    path = tmp_path / "shelf.mp4"
    path.write_bytes(b"not really a video")
    return path


@pytest.fixture
def extraction_reply():
    """Build a fenced JSON reply like the extraction service sends."""
    def build(high_confidence=(), needs_confirmation=()):
        body = json.dumps({
            "high_confidence": list(high_confidence),
            "needs_confirmation": list(needs_confirmation),
        }, indent=2)
        return f"```json\n{body}\n```"
    return build
