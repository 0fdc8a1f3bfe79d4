from __future__ import annotations
import logging
import re
from typing import List, Optional, Pattern, Tuple

from .models import ExtractedTokens

logger = logging.getLogger(__name__)

# House number with sub-number, e.g. "219/5"
HOUSE_SLASH_PATTERN = re.compile(r"\b(\d{1,4}/\d{1,2})\b", re.ASCII)
DIGIT_RUN_PATTERN = re.compile(r"[0-9]+")

# Ordered route-code rules, first hit wins
ROUTE_CODE_PATTERNS: List[Tuple[str, Pattern[str]]] = [
    ("three_digits_letter", re.compile(r"\b(\d{3}[A-Z])\b", re.ASCII)),
    ("letters_digits", re.compile(r"\b([A-Z]+\d+-?\d+)\b", re.ASCII)),
    ("letter_digits_suffix", re.compile(r"\b([A-Z]\d+[A-Z]?\d*)\b", re.ASCII)),
]
ALNUM_TOKEN_PATTERN = re.compile(r"[A-Z]\d+|[A-Z]+\d+|\d+[A-Z]", re.ASCII)


class TokenExtractor:
    """Pull the house-number token and the route code out of normalized label text."""

    def __init__(self, route_patterns: Optional[List[Tuple[str, Pattern[str]]]] = None):
        self.route_patterns = route_patterns if route_patterns is not None else ROUTE_CODE_PATTERNS

    def extract(self, text: str) -> ExtractedTokens:
        text = text or ""
        address = self.extract_address(text)
        route = self.extract_route_code(text, address)
        logger.debug("Extracted address=%r route=%r from %r", address, route, text)
        return ExtractedTokens(address_token=address, route_code=route)

    def extract_address(self, text: str) -> Optional[str]:
        m = HOUSE_SLASH_PATTERN.search(text)
        if m:
            return m.group(1)

        numbers = [
            n for n in DIGIT_RUN_PATTERN.findall(text)
            if 2 <= len(n) <= 4 and 9 < int(n) < 9999
        ]
        if not numbers:
            return None
        # three-digit runs first, then longer runs; sort is stable so earlier wins ties
        return sorted(numbers, key=lambda n: (len(n) != 3, -len(n)))[0]

    def extract_route_code(self, text: str, address_token: Optional[str] = None) -> Optional[str]:
        for name, pattern in self.route_patterns:
            m = pattern.search(text)
            if m:
                logger.debug("Route code %r matched rule %s", m.group(1), name)
                return m.group(1)

        tokens = [t for t in ALNUM_TOKEN_PATTERN.findall(text) if t != address_token]
        if not tokens:
            return None
        best = tokens[0]
        for t in tokens[1:]:
            if len(t) >= len(best):
                best = t
        return best
