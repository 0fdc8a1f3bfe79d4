from __future__ import annotations
import logging
from typing import Optional, Sequence

from .classifier import ScanClassifier, loaded_ordinal
from .extract import TokenExtractor
from .models import AddressRecord, CandidateSet, ExtractedTokens, ScanInput, ScanOutcome
from .utils import normalize_text

logger = logging.getLogger(__name__)


class ScanEngine:
    """Label scan entry point: normalize -> extract -> classify. Holds no state between calls."""

    def __init__(self,
                 extractor: Optional[TokenExtractor] = None,
                 classifier: Optional[ScanClassifier] = None):
        self.extractor = extractor or TokenExtractor()
        self.classifier = classifier or ScanClassifier()

    def scan(self,
             scan_input: ScanInput,
             candidate_snapshot: Sequence[AddressRecord],
             fallback_snapshot: Sequence[AddressRecord] = ()) -> ScanOutcome:
        manual = (scan_input.manual_address or "").strip()
        if manual:
            # typed by the operator, no OCR cleanup and no route code to check
            extracted = ExtractedTokens(address_token=manual, route_code=None)
        else:
            extracted = self.extractor.extract(normalize_text(scan_input.text))

        candidates = CandidateSet(primary=tuple(candidate_snapshot), fallback=tuple(fallback_snapshot))
        outcome = self.classifier.classify(scan_input, extracted, candidates)
        logger.info("Scan %s/%s -> %s (token=%r route=%r)",
                    scan_input.area, scan_input.sub_area, outcome.kind.value,
                    extracted.address_token, extracted.route_code)
        return outcome

    @staticmethod
    def loaded_ordinal(snapshot: Sequence[AddressRecord], record_id: str) -> Optional[int]:
        return loaded_ordinal(snapshot, record_id)
