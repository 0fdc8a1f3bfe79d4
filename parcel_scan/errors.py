"""
Failures raised by the collaborators around the scan engine (address store, OCR service).

Scan outcomes are never exceptions; only collaborator failures are, and the
engine does not retry them.

    CollaboratorError
    ├── StoreError
    │   ├── RecordNotFoundError
    │   └── DuplicateRecordError
    └── OcrError
"""
from __future__ import annotations
from typing import Any, Dict, Optional


class CollaboratorError(Exception):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | details: {self.details}"
        return self.message


class StoreError(CollaboratorError):
    """Address store could not be read or written."""


class RecordNotFoundError(StoreError):
    def __init__(self, record_id: str):
        super().__init__(f"Address record not found: {record_id}", {"record_id": record_id})


class DuplicateRecordError(StoreError):
    def __init__(self, area: str, sub_area: str, address: str):
        super().__init__(
            "Address already exists in this sub-area",
            {"area": area, "sub_area": sub_area, "address": address},
        )


class OcrError(CollaboratorError):
    """OCR service call failed or reported a processing error."""
