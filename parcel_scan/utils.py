from __future__ import annotations
import json
import re
from dataclasses import asdict, is_dataclass
from enum import Enum
from typing import Any, Optional


# Letters OCR routinely returns in place of digits on shipping labels
OCR_CONFUSIONS = {
    "O": "0", "o": "0",
    "l": "1", "I": "1", "|": "1",
    "S": "5", "s": "5",
    "Z": "2", "z": "2",
    "G": "9", "g": "9",
    "B": "8", "b": "8",
}
_OCR_TABLE = str.maketrans(OCR_CONFUSIONS)

def normalize_text(text: Optional[str]) -> str:
    """Clean raw OCR text: confusion table, drop '~', collapse spaces, uppercase, trim."""
    if text is None:
        return ""
    t = text.translate(_OCR_TABLE)
    t = t.replace("~", "")
    t = re.sub(r"\s+", " ", t)
    # upper() surfaces table letters again ("i" -> "I", "ı" -> "I", "ſ" -> "S"), so lowercase i ends up as 1
    t = t.upper().translate(_OCR_TABLE)
    return t.strip()

def clean_token(s: Optional[str]) -> str:
    """Keep digits and '/' only."""
    return re.sub(r"[^0-9/]", "", s or "")

def alnum_upper(s: Optional[str]) -> str:
    return re.sub(r"[^A-Za-z0-9]", "", s or "").upper()

def leading_number(s: Optional[str]) -> int:
    m = re.search(r"\d+", s or "")
    return int(m.group(0)) if m else 0

class EnhancedJSONEncoder(json.JSONEncoder):
    def default(self, obj: Any) -> Any:
        if is_dataclass(obj):
            return asdict(obj)
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, tuple):
            return list(obj)
        return super().default(obj)
