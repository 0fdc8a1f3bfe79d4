"""Tests for the OCR.space client with urlopen stubbed out."""

import io
import json
import urllib.error
import urllib.parse

import pytest

from parcel_scan.errors import CollaboratorError, OcrError
from parcel_scan.ocr import OcrSpaceClient


class _Resp(io.BytesIO):
    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False


@pytest.fixture
def sent(monkeypatch):
    monkeypatch.setenv("OCR_SPACE_API_KEY", "test-key")
    box = {"response": {"ParsedResults": [{"ParsedText": "219/5 Moo 1\r\n002A"}]}}

    def fake_urlopen(req, timeout=None):
        box["request"] = req
        box["timeout"] = timeout
        if isinstance(box["response"], Exception):
            raise box["response"]
        return _Resp(json.dumps(box["response"]).encode("utf-8"))

    monkeypatch.setattr("urllib.request.urlopen", fake_urlopen)
    return box


class TestOcrSpaceClient:
    def test_returns_parsed_text(self, sent):
        text = OcrSpaceClient({"timeout": 7}).recognize(b"\x89PNG", content_type="image/png")
        assert text == "219/5 Moo 1\r\n002A"
        form = urllib.parse.parse_qs(sent["request"].data.decode("utf-8"))
        assert form["apikey"] == ["test-key"]
        assert form["OCREngine"] == ["2"]
        assert form["base64Image"][0].startswith("data:image/png;base64,")
        assert sent["timeout"] == 7.0

    def test_processing_error(self, sent):
        sent["response"] = {"IsErroredOnProcessing": True, "ErrorMessage": ["Unable to recognize"]}
        with pytest.raises(OcrError, match="Unable to recognize"):
            OcrSpaceClient().recognize(b"img")

    def test_http_error(self, sent):
        sent["response"] = urllib.error.HTTPError("https://api.ocr.space", 500, "boom", None, None)
        with pytest.raises(OcrError, match="500") as info:
            OcrSpaceClient().recognize(b"img")
        assert isinstance(info.value, CollaboratorError)

    def test_empty_result(self, sent):
        sent["response"] = {"ParsedResults": []}
        assert OcrSpaceClient().recognize(b"img") == ""

    def test_missing_key(self, sent, monkeypatch):
        monkeypatch.delenv("OCR_SPACE_API_KEY")
        with pytest.raises(OcrError, match="OCR_SPACE_API_KEY"):
            OcrSpaceClient().recognize(b"img")

    def test_no_image(self, sent):
        with pytest.raises(OcrError):
            OcrSpaceClient().recognize(b"")
