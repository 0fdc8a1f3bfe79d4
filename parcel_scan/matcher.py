from __future__ import annotations
import logging
import re
from typing import Callable, Iterable, List, Optional, Sequence

from .models import AddressRecord, MatchResult
from .utils import clean_token

logger = logging.getLogger(__name__)

_LEADING_RUN = re.compile(r"[0-9/]+")
_WORD_SPLIT = re.compile(r"[\s,]+")

MIN_NUMERIC_LEN = 2
MIN_PREFIX_LEN = 3
MIN_CONTAINS_LEN = 4


def _first_token(address: str) -> str:
    return _WORD_SPLIT.split(address.strip())[0]

def _find(records: Iterable[AddressRecord], pred: Callable[[AddressRecord], bool]) -> Optional[AddressRecord]:
    for rec in records:
        if pred(rec):
            return rec
    return None


class AddressMatcher:
    """
    First-match resolution of a scanned address token against an ordered
    candidate list. Rules are tried in a fixed order and the earliest candidate
    satisfying a rule wins; there is no scoring.

      P1  leading digit/slash run of the address equals the token
      P2  first whitespace/comma-delimited word equals the token
      P3  cleaned address starts with the token (token length >= 3)
      P4  cleaned address contains the token, over all candidates (length >= 4)

    Tokens without any digit go through the name rules instead.
    """

    def match(self,
              candidates: Sequence[AddressRecord],
              token: Optional[str],
              current_sub_area: Optional[str]) -> Optional[MatchResult]:
        token = token or ""
        cleaned = clean_token(token)

        if len(cleaned) >= MIN_NUMERIC_LEN and not cleaned.startswith("0"):
            found = self._match_numeric(candidates, cleaned)
        elif not cleaned:
            found = self._match_name(candidates, token)
        else:
            found = None

        if found is None:
            logger.debug("No candidate for token %r among %d records", token, len(candidates))
            return None

        rec, rule = found
        logger.debug("Token %r matched %s (%r) by %s", token, rec.id, rec.address, rule)
        if rec.sub_area != current_sub_area:
            return MatchResult(record=rec, rule=rule, cross_area=True,
                               actual_area=rec.area, actual_sub_area=rec.sub_area)
        return MatchResult(record=rec, rule=rule)

    def _match_numeric(self, candidates: Sequence[AddressRecord], cleaned: str):
        numbered: List[AddressRecord] = [
            r for r in candidates if _LEADING_RUN.match((r.address or "").lstrip())
        ]

        rec = _find(numbered, lambda r: clean_token(_LEADING_RUN.match(r.address.lstrip()).group(0)) == cleaned)
        if rec:
            return rec, "P1"

        rec = _find(numbered, lambda r: clean_token(_first_token(r.address)) == cleaned)
        if rec:
            return rec, "P2"

        if len(cleaned) >= MIN_PREFIX_LEN:
            rec = _find(numbered, lambda r: clean_token(r.address).startswith(cleaned))
            if rec:
                return rec, "P3"

        if len(cleaned) >= MIN_CONTAINS_LEN:
            rec = _find(candidates, lambda r: cleaned in clean_token(r.address))
            if rec:
                return rec, "P4"
        return None

    def _match_name(self, candidates: Sequence[AddressRecord], token: str):
        needle = token.strip().lower()
        if not needle:
            return None

        rec = _find(candidates, lambda r: needle in (r.address or "").lower())
        if rec:
            return rec, "NAME_FULL"

        words = [w for w in _WORD_SPLIT.split(needle) if w]
        rec = _find(candidates, lambda r: any(w in (r.address or "").lower() for w in words))
        if rec:
            return rec, "NAME_WORD"
        return None
