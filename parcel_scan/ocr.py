from __future__ import annotations
import base64
import json
import logging
import os
import urllib.error
import urllib.parse
import urllib.request
from typing import Any, Dict, Optional

from .errors import OcrError

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "https://api.ocr.space/parse/image"


class OcrSpaceClient:
    """OCR.space client: image bytes in, plain label text out."""

    def __init__(self, ocr_cfg: Optional[Dict[str, Any]] = None) -> None:
        ocr_cfg = ocr_cfg or {}
        self.endpoint = os.getenv("OCR_SPACE_ENDPOINT", ocr_cfg.get("endpoint", DEFAULT_ENDPOINT))
        self.language = ocr_cfg.get("language", "eng")
        self.engine = int(ocr_cfg.get("engine", 2))
        self.timeout = float(ocr_cfg.get("timeout", 30))

    def recognize(self, image_bytes: bytes, content_type: str = "image/jpeg") -> str:
        if not image_bytes:
            raise OcrError("No image provided")
        api_key = self._require_key()
        payload = self._form_payload(image_bytes, content_type, api_key)
        resp = self._call_ocr(payload)
        return self._extract_text(resp)

    def _require_key(self) -> str:
        api_key = os.getenv("OCR_SPACE_API_KEY", "")
        if not api_key:
            raise OcrError("OCR_SPACE_API_KEY is not set, cannot call the OCR service")
        return api_key

    def _form_payload(self, image_bytes: bytes, content_type: str, api_key: str) -> bytes:
        encoded = base64.b64encode(image_bytes).decode("ascii")
        form = {
            "apikey": api_key,
            "language": self.language,
            "isOverlayRequired": "false",
            "detectOrientation": "true",
            "scale": "true",
            "OCREngine": str(self.engine),
            "base64Image": f"data:{content_type};base64,{encoded}",
        }
        return urllib.parse.urlencode(form).encode("utf-8")

    def _call_ocr(self, data: bytes) -> dict:
        req = urllib.request.Request(self.endpoint, data=data, method="POST")
        req.add_header("Content-Type", "application/x-www-form-urlencoded")
        logger.debug("Sending %d bytes to OCR service %s", len(data), self.endpoint)
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                out = resp.read().decode("utf-8")
        except urllib.error.HTTPError as exc:
            raise OcrError(f"OCR API error: {exc.code}", {"endpoint": self.endpoint}) from exc
        except (urllib.error.URLError, OSError) as exc:
            raise OcrError("OCR service unreachable", {"endpoint": self.endpoint, "reason": str(exc)}) from exc
        try:
            return json.loads(out)
        except ValueError as exc:
            raise OcrError("OCR service returned invalid JSON") from exc

    def _extract_text(self, response: dict) -> str:
        if response.get("IsErroredOnProcessing"):
            errors = response.get("ErrorMessage") or []
            if isinstance(errors, str):
                errors = [errors]
            message = errors[0] if errors else "OCR failed"
            raise OcrError(message, {"errors": errors})
        results = response.get("ParsedResults") or []
        text = (results[0] or {}).get("ParsedText", "") if results else ""
        logger.info("OCR returned %d characters", len(text or ""))
        return text or ""
