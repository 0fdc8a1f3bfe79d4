from __future__ import annotations
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple

@dataclass(frozen=True)
class AddressRecord:
    id: str
    area: str
    sub_area: str
    address: str
    shipped_count: int = 0
    loaded: bool = False
    display_order: Optional[int] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

@dataclass(frozen=True)
class ScanInput:
    text: str
    expected_route_code: str
    area: str
    sub_area: str
    manual_address: Optional[str] = None

@dataclass(frozen=True)
class CandidateSet:
    primary: Tuple[AddressRecord, ...]
    fallback: Tuple[AddressRecord, ...] = ()

@dataclass(frozen=True)
class ExtractedTokens:
    address_token: Optional[str] = None
    route_code: Optional[str] = None

@dataclass(frozen=True)
class MatchResult:
    record: AddressRecord
    rule: str
    cross_area: bool = False
    actual_area: Optional[str] = None
    actual_sub_area: Optional[str] = None

@dataclass(frozen=True)
class Mutation:
    record_id: str
    loaded: bool = True
    shipped_count: Optional[int] = None
    shipped_count_delta: Optional[int] = None

    def apply_to(self, rec: AddressRecord) -> AddressRecord:
        """Return ``rec`` as it would look after the store applied this mutation."""
        count = rec.shipped_count
        if self.shipped_count is not None:
            count = self.shipped_count
        elif self.shipped_count_delta is not None:
            count = (count or 0) + self.shipped_count_delta
        return replace(rec, loaded=self.loaded, shipped_count=count)

class OutcomeKind(str, Enum):
    ROUTE_MISMATCH = "ROUTE_MISMATCH"
    NO_ADDRESS_EXTRACTED = "NO_ADDRESS_EXTRACTED"
    NOT_FOUND = "NOT_FOUND"
    CROSS_AREA_WARNING = "CROSS_AREA_WARNING"
    NEW_MATCH = "NEW_MATCH"
    DUPLICATE_MATCH = "DUPLICATE_MATCH"

@dataclass(frozen=True)
class ScanOutcome:
    kind: OutcomeKind
    message: str
    extracted: ExtractedTokens = field(default_factory=ExtractedTokens)
    match: Optional[MatchResult] = None
    record_id: Optional[str] = None
    mutation: Optional[Mutation] = None
    ordinal: Optional[int] = None

    @property
    def is_success(self) -> bool:
        return self.kind in (OutcomeKind.NEW_MATCH, OutcomeKind.DUPLICATE_MATCH)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "kind": self.kind.value,
            "message": self.message,
            "address_token": self.extracted.address_token,
            "route_code": self.extracted.route_code,
            "record_id": self.record_id,
            "ordinal": self.ordinal,
            "mutation": None,
            "match": None,
        }
        if self.mutation is not None:
            out["mutation"] = {
                "record_id": self.mutation.record_id,
                "loaded": self.mutation.loaded,
                "shipped_count": self.mutation.shipped_count,
                "shipped_count_delta": self.mutation.shipped_count_delta,
            }
        if self.match is not None:
            out["match"] = {
                "record_id": self.match.record.id,
                "address": self.match.record.address,
                "rule": self.match.rule,
                "cross_area": self.match.cross_area,
                "area": self.match.actual_area,
                "sub_area": self.match.actual_sub_area,
            }
        return out
