import base64
from unittest import mock

import pytest
import requests

from shelfscan.errors import OcrServiceError
from shelfscan.vision_client import VisionClient


def _response(payload=None, status_code=200):
    response = mock.Mock()
    response.status_code = status_code
    response.json.return_value = payload
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(response=response)
    else:
        response.raise_for_status.return_value = None
    return response


@pytest.fixture
def client():
    client = VisionClient(api_key="test-key", timeout=5.0)
    client.session = mock.Mock()
    return client


def test_requires_api_key(monkeypatch):
    monkeypatch.delenv("GOOGLE_VISION_API_KEY", raising=False)
    with pytest.raises(ValueError):
        VisionClient()


def test_api_key_from_environment(monkeypatch):
    monkeypatch.setenv("GOOGLE_VISION_API_KEY", "env-key")
    assert VisionClient().api_key == "env-key"


def test_detect_text_returns_full_text(client):
    client.session.post.return_value = _response({
        "responses": [{"textAnnotations": [
            {"description": "PIRANESI\nSUSANNA CLARKE\n"},
            {"description": "PIRANESI"},
        ]}]
    })
    assert client.detect_text(b"\xff\xd8jpeg") == "PIRANESI\nSUSANNA CLARKE"

    kwargs = client.session.post.call_args.kwargs
    request = kwargs["json"]["requests"][0]
    assert request["features"] == [{"type": "TEXT_DETECTION"}]
    assert base64.b64decode(request["image"]["content"]) == b"\xff\xd8jpeg"
    assert kwargs["params"] == {"key": "test-key"}
    assert kwargs["timeout"] == 5.0


def test_detect_text_no_annotations(client):
    client.session.post.return_value = _response({"responses": [{}]})
    assert client.detect_text(b"img") is None


def test_detect_text_per_image_error_is_soft(client):
    client.session.post.return_value = _response({
        "responses": [{"error": {"code": 3, "message": "Bad image data."}}]
    })
    assert client.detect_text(b"img") is None


def test_detect_text_http_error(client):
    client.session.post.return_value = _response({"error": {}}, status_code=403)
    with pytest.raises(OcrServiceError, match="403"):
        client.detect_text(b"img")


def test_detect_text_timeout(client):
    client.session.post.side_effect = requests.exceptions.Timeout()
    with pytest.raises(OcrServiceError, match="timed out"):
        client.detect_text(b"img")


def test_detect_text_connection_error(client):
    client.session.post.side_effect = requests.exceptions.ConnectionError("refused")
    with pytest.raises(OcrServiceError):
        client.detect_text(b"img")


@pytest.mark.parametrize("payload", [
    {"responses": [None]},
    {"responses": ["garbled"]},
    ["garbled"],
    {"responses": "garbled"},
    {"responses": [{"error": "quota"}]},
    {"responses": [{"textAnnotations": ["PIRANESI"]}]},
    {"responses": [{"textAnnotations": [{"description": 42}]}]},
])
def test_detect_text_garbled_body_is_soft(client, payload):
    client.session.post.return_value = _response(payload)
    assert client.detect_text(b"img") is None
