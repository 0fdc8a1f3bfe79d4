from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .config import Config
from .db import ExcelConnection, apply_mutation, connect, fetch_records
from .engine import ScanEngine
from .models import AddressRecord, ScanInput, ScanOutcome
from .ocr import OcrSpaceClient

logger = logging.getLogger(__name__)


@dataclass
class ScanReport:
    outcome: ScanOutcome
    ordinal: Optional[int] = None
    record: Optional[AddressRecord] = None
    snapshot: List[AddressRecord] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        out = self.outcome.to_dict()
        out["ordinal"] = self.ordinal
        if self.record is not None:
            out["record"] = {
                "id": self.record.id,
                "address": self.record.address,
                "shipped_count": self.record.shipped_count,
                "loaded": self.record.loaded,
            }
        else:
            out["record"] = None
        return out


class ParcelScanPipeline:
    """Scan controller: fetch snapshots -> engine -> apply mutation -> re-fetch for the ordinal."""

    def __init__(self, cfg: Config,
                 conn: Optional[ExcelConnection] = None,
                 ocr_client: Optional[OcrSpaceClient] = None,
                 engine: Optional[ScanEngine] = None):
        self.cfg = cfg
        self.conn = conn if conn is not None else connect(cfg.db_path)
        self.ocr = ocr_client if ocr_client is not None else OcrSpaceClient(cfg.ocr)
        self.engine = engine or ScanEngine()

    def scan_text(self, text: str, area: str, sub_area: str, route_code: str = "") -> ScanReport:
        return self._run(ScanInput(text=text, expected_route_code=route_code, area=area, sub_area=sub_area))

    def scan_manual(self, address: str, area: str, sub_area: str, route_code: str = "") -> ScanReport:
        return self._run(ScanInput(text="", expected_route_code=route_code, area=area,
                                   sub_area=sub_area, manual_address=address))

    def scan_image(self, image_bytes: bytes, area: str, sub_area: str, route_code: str = "",
                   content_type: str = "image/jpeg") -> ScanReport:
        text = self.ocr.recognize(image_bytes, content_type=content_type)
        return self.scan_text(text, area, sub_area, route_code)

    def _run(self, scan_input: ScanInput) -> ScanReport:
        # snapshot, classify and apply under one lock
        with self.conn.lock:
            return self._run_locked(scan_input)

    def _run_locked(self, scan_input: ScanInput) -> ScanReport:
        snapshot = fetch_records(self.conn, scan_input.area, scan_input.sub_area)
        fallback = fetch_records(self.conn, scan_input.area)
        outcome = self.engine.scan(scan_input, snapshot, fallback)

        if outcome.mutation is None:
            return ScanReport(outcome=outcome, ordinal=outcome.ordinal, snapshot=snapshot)

        record = apply_mutation(self.conn, outcome.mutation)
        logger.info("Applied %s to %s: loaded=%s shipped_count=%s",
                    outcome.kind.value, record.id, record.loaded, record.shipped_count)

        fresh = fetch_records(self.conn, scan_input.area, scan_input.sub_area)
        ordinal = self.engine.loaded_ordinal(fresh, record.id)
        return ScanReport(outcome=outcome, ordinal=ordinal, record=record, snapshot=fresh)
