from __future__ import annotations
import logging
from typing import List, Optional, Sequence

from .matcher import AddressMatcher
from .models import (
    AddressRecord,
    CandidateSet,
    ExtractedTokens,
    MatchResult,
    Mutation,
    OutcomeKind,
    ScanInput,
    ScanOutcome,
)
from .utils import alnum_upper

logger = logging.getLogger(__name__)

ROUTE_PREFIX_LEN = 3


def route_codes_match(scanned: str, expected: str) -> bool:
    """Loose route-code comparison tolerant to OCR dropping or adding characters."""
    s = alnum_upper(scanned)
    e = alnum_upper(expected)
    if s in e or e in s:
        return True
    if len(s) >= ROUTE_PREFIX_LEN and e.startswith(s[:ROUTE_PREFIX_LEN]):
        return True
    if len(e) >= ROUTE_PREFIX_LEN and s.startswith(e[:ROUTE_PREFIX_LEN]):
        return True
    return False


def loaded_ordinal(snapshot: Sequence[AddressRecord], record_id: str) -> Optional[int]:
    """1-based position of ``record_id`` among loaded records ordered by display order."""
    loaded: List[AddressRecord] = [r for r in snapshot if r.loaded]
    loaded.sort(key=lambda r: (r.display_order is None, r.display_order or 0))
    for i, r in enumerate(loaded, start=1):
        if r.id == record_id:
            return i
    return None


class ScanClassifier:
    def __init__(self, matcher: Optional[AddressMatcher] = None):
        self.matcher = matcher or AddressMatcher()

    def classify(self,
                 scan_input: ScanInput,
                 extracted: ExtractedTokens,
                 candidates: CandidateSet) -> ScanOutcome:
        token = extracted.address_token
        if not token:
            return ScanOutcome(
                OutcomeKind.NO_ADDRESS_EXTRACTED,
                "Could not read an address from the label - try again with a clearer shot",
                extracted=extracted,
            )

        expected = scan_input.expected_route_code or ""
        if extracted.route_code and alnum_upper(expected):
            if not route_codes_match(extracted.route_code, expected):
                logger.warning("Route code mismatch: scanned=%s expected=%s", extracted.route_code, expected)
                return ScanOutcome(
                    OutcomeKind.ROUTE_MISMATCH,
                    f"Route code does not match this route (found: {extracted.route_code}, expected: {expected})",
                    extracted=extracted,
                )

        match = self.matcher.match(candidates.primary, token, scan_input.sub_area)
        if match is None and candidates.fallback:
            match = self.matcher.match(candidates.fallback, token, scan_input.sub_area)

        if match is None:
            return ScanOutcome(
                OutcomeKind.NOT_FOUND,
                f'Parcel "{token}" was not found in the system',
                extracted=extracted,
            )

        rec = match.record
        if match.cross_area:
            logger.warning("Record %s belongs to %s/%s, selected sub-area is %s",
                           rec.id, match.actual_area, match.actual_sub_area, scan_input.sub_area)
            return ScanOutcome(
                OutcomeKind.CROSS_AREA_WARNING,
                f"Address {rec.address} belongs to sub-area {match.actual_sub_area}, "
                f"area {match.actual_area} - not the selected sub-area {scan_input.sub_area}",
                extracted=extracted,
                match=match,
            )

        if rec.loaded:
            return self._duplicate(extracted, match, candidates.primary)
        return self._new(extracted, match, candidates.primary)

    def _duplicate(self, extracted: ExtractedTokens, match: MatchResult,
                   snapshot: Sequence[AddressRecord]) -> ScanOutcome:
        rec = match.record
        ordinal = loaded_ordinal(snapshot, rec.id)
        return ScanOutcome(
            OutcomeKind.DUPLICATE_MATCH,
            f"Parcel already scanned - sequence {_ordinal_text(ordinal)}",
            extracted=extracted,
            match=match,
            record_id=rec.id,
            mutation=Mutation(record_id=rec.id, loaded=True, shipped_count_delta=1),
            ordinal=ordinal,
        )

    def _new(self, extracted: ExtractedTokens, match: MatchResult,
             snapshot: Sequence[AddressRecord]) -> ScanOutcome:
        rec = match.record
        mutation = Mutation(record_id=rec.id, loaded=True, shipped_count=1)
        after = [mutation.apply_to(r) if r.id == rec.id else r for r in snapshot]
        if all(r.id != rec.id for r in snapshot):
            # matched through the fallback set but same sub-area: stale primary snapshot
            after.append(mutation.apply_to(rec))
        ordinal = loaded_ordinal(after, rec.id)
        return ScanOutcome(
            OutcomeKind.NEW_MATCH,
            f"Parcel found: {rec.address} - sequence {_ordinal_text(ordinal)}",
            extracted=extracted,
            match=match,
            record_id=rec.id,
            mutation=mutation,
            ordinal=ordinal,
        )


def _ordinal_text(ordinal: Optional[int]) -> str:
    return f"#{ordinal}" if ordinal is not None else "unknown"
