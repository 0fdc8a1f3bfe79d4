from __future__ import annotations
import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

@dataclass
class Config:
    db_path: str
    log_level: str
    ocr: Dict[str, Any]

def load_config(path: str | Path) -> Config:
    p = Path(path)
    raw = json.loads(p.read_text(encoding="utf-8"))
    return Config(
        db_path=os.getenv("PARCEL_DB_PATH", raw["db_path"]),
        log_level=str(raw.get("log_level", "INFO")).upper(),
        ocr=dict(raw["ocr"]),
    )
