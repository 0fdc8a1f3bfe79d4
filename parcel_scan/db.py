from __future__ import annotations
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from .errors import DuplicateRecordError, RecordNotFoundError, StoreError
from .models import AddressRecord, Mutation
from .utils import leading_number

TABLE_SCHEMAS: Dict[str, List[str]] = {
    "address_records": [
        "id", "area", "sub_area", "address", "shipped_count", "loaded",
        "display_order", "latitude", "longitude", "created_at", "updated_at",
    ],
}
# read back as text even when Excel stored them as numbers ("3" for village 3)
_TEXT_COLUMNS = {"id": str, "area": str, "sub_area": str, "address": str}

def _now_str() -> str:
    return datetime.now(timezone.utc).replace(tzinfo=None).isoformat(timespec="seconds")

def _empty_table(name: str) -> pd.DataFrame:
    return pd.DataFrame(columns=TABLE_SCHEMAS[name], dtype=object)

def _ensure_columns(df: pd.DataFrame, columns: List[str]) -> pd.DataFrame:
    result = df.copy()
    for col in columns:
        if col not in result.columns:
            result[col] = None
    return result[columns].astype(object)

def _clean_value(val: Any) -> Any:
    if val is None:
        return None
    try:
        if pd.isna(val):
            return None
    except (TypeError, ValueError):
        pass
    return val

def _row_to_dict(row: pd.Series) -> Dict[str, Any]:
    return {k: _clean_value(v) for k, v in row.to_dict().items()}

def _append_row(df: pd.DataFrame, row: Dict[str, Any]) -> pd.DataFrame:
    new = pd.DataFrame([row], columns=df.columns, dtype=object)
    if df.empty:
        return new
    return pd.concat([df, new], ignore_index=True).astype(object)

def _opt_int(val: Any) -> Optional[int]:
    val = _clean_value(val)
    return None if val is None else int(val)

def _opt_float(val: Any) -> Optional[float]:
    val = _clean_value(val)
    return None if val is None else float(val)

def _as_bool(val: Any) -> bool:
    val = _clean_value(val)
    if isinstance(val, str):
        return val.strip().lower() in ("true", "1", "yes")
    return bool(val)

def row_to_record(row: Dict[str, Any]) -> AddressRecord:
    return AddressRecord(
        id=str(row["id"]),
        area=str(row.get("area") or ""),
        sub_area=str(row.get("sub_area") or ""),
        address=str(row.get("address") or ""),
        shipped_count=_opt_int(row.get("shipped_count")) or 0,
        loaded=_as_bool(row.get("loaded")),
        display_order=_opt_int(row.get("display_order")),
        latitude=_opt_float(row.get("latitude")),
        longitude=_opt_float(row.get("longitude")),
    )

def sort_for_display(records: Sequence[AddressRecord]) -> List[AddressRecord]:
    """Loaded records first, then display order ascending with unset orders last."""
    return sorted(records, key=lambda r: (not r.loaded, r.display_order is None, r.display_order or 0))


class ExcelConnection:
    """
    Excel-backed address store: tables are cached as DataFrames and written back on save().

    One connection is shared by every request handler, so each store operation holds
    ``lock`` across its read, change and save. The lock is re-entrant because the
    operations call save() and each other while holding it.
    """
    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.lock = threading.RLock()
        self.tables: Dict[str, pd.DataFrame] = {
            name: _empty_table(name) for name in TABLE_SCHEMAS
        }
        if self.path.exists():
            try:
                xls = pd.read_excel(self.path, sheet_name=None, dtype=_TEXT_COLUMNS)
            except Exception as exc:
                raise StoreError(f"Cannot read address workbook {self.path}", {"reason": str(exc)}) from exc
            for name, cols in TABLE_SCHEMAS.items():
                if name in xls:
                    self.tables[name] = _ensure_columns(xls[name], cols)

    def save(self) -> None:
        with self.lock:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with pd.ExcelWriter(self.path, engine="openpyxl") as writer:
                    for name, df in self.tables.items():
                        df.to_excel(writer, sheet_name=name, index=False)
            except OSError as exc:
                raise StoreError(f"Cannot write address workbook {self.path}", {"reason": str(exc)}) from exc

def connect(db_path: str | Path) -> ExcelConnection:
    return ExcelConnection(db_path)

def init_db(conn: ExcelConnection) -> None:
    conn.save()

def clear_table(conn: ExcelConnection, table: str) -> None:
    if table not in TABLE_SCHEMAS:
        raise ValueError(f"Unknown table: {table}")
    with conn.lock:
        conn.tables[table] = _empty_table(table)
        conn.save()

def _records_df(conn: ExcelConnection) -> pd.DataFrame:
    return conn.tables["address_records"]

def _index_of(df: pd.DataFrame, record_id: str):
    mask = df["id"].astype(str) == str(record_id)
    if not mask.any():
        raise RecordNotFoundError(record_id)
    return df.index[mask][0]

def _next_display_order(df: pd.DataFrame) -> int:
    if df.empty:
        return 1
    max_val = pd.to_numeric(df["display_order"], errors="coerce").max()
    if pd.isna(max_val):
        return 1
    return int(max_val) + 1

def fetch_records(conn: ExcelConnection, area: str, sub_area: Optional[str] = None) -> List[AddressRecord]:
    """Snapshot of one area, optionally restricted to one sub-area, in display order."""
    with conn.lock:
        df = _records_df(conn)
        mask = df["area"].astype(str) == str(area)
        if sub_area is not None:
            mask &= df["sub_area"].astype(str) == str(sub_area)
        rows = [_row_to_dict(row) for _, row in df[mask].iterrows()]
    return sort_for_display([row_to_record(r) for r in rows])

def list_all_records(conn: ExcelConnection) -> List[AddressRecord]:
    with conn.lock:
        rows = [_row_to_dict(row) for _, row in _records_df(conn).iterrows()]
    return [row_to_record(r) for r in rows]

def get_record(conn: ExcelConnection, record_id: str) -> Optional[AddressRecord]:
    with conn.lock:
        df = _records_df(conn)
        match = df[df["id"].astype(str) == str(record_id)]
        if match.empty:
            return None
        return row_to_record(_row_to_dict(match.iloc[0]))

def list_locations(conn: ExcelConnection) -> Dict[str, List[str]]:
    """area -> its sub-areas, sub-areas ordered by their leading number."""
    out: Dict[str, List[str]] = {}
    for rec in list_all_records(conn):
        subs = out.setdefault(rec.area, [])
        if rec.sub_area not in subs:
            subs.append(rec.sub_area)
    for subs in out.values():
        subs.sort(key=leading_number)
    return dict(sorted(out.items()))

def insert_record(conn: ExcelConnection, area: str, sub_area: str, address: str,
                  shipped_count: int = 0, loaded: bool = False,
                  latitude: Optional[float] = None, longitude: Optional[float] = None,
                  record_id: Optional[str] = None,
                  display_order: Optional[int] = None,
                  save: bool = True) -> AddressRecord:
    """
    Append one address record. With ``save=False`` the row only lands in the cached
    table; bulk loaders call ``conn.save()`` once at the end.
    """
    with conn.lock:
        df = _records_df(conn)
        dup = (
            (df["area"].astype(str) == str(area))
            & (df["sub_area"].astype(str) == str(sub_area))
            & (df["address"].astype(str) == str(address))
        )
        if dup.any():
            raise DuplicateRecordError(area, sub_area, address)

        now = _now_str()
        row = {
            "id": record_id or uuid.uuid4().hex[:12],
            "area": area,
            "sub_area": sub_area,
            "address": address,
            "shipped_count": int(shipped_count or 0),
            "loaded": bool(loaded),
            "display_order": display_order if display_order is not None else _next_display_order(df),
            "latitude": latitude,
            "longitude": longitude,
            "created_at": now,
            "updated_at": now,
        }
        conn.tables["address_records"] = _append_row(df, row)
        if save:
            conn.save()
    return row_to_record(row)

def update_record(conn: ExcelConnection, record_id: str, **fields: Any) -> AddressRecord:
    with conn.lock:
        df = _records_df(conn)
        idx = _index_of(df, record_id)
        for col in fields:
            if col not in df.columns or col in ("id", "created_at"):
                raise ValueError(f"Unknown or read-only field: {col}")
        key = {c: str(fields.get(c, df.at[idx, c])) for c in ("area", "sub_area", "address")}
        clash = (
            (df.index != idx)
            & (df["area"].astype(str) == key["area"])
            & (df["sub_area"].astype(str) == key["sub_area"])
            & (df["address"].astype(str) == key["address"])
        )
        if clash.any():
            raise DuplicateRecordError(key["area"], key["sub_area"], key["address"])
        for col, val in fields.items():
            df.at[idx, col] = val
        df.at[idx, "updated_at"] = _now_str()
        conn.save()
        return row_to_record(_row_to_dict(df.loc[idx]))

def delete_record(conn: ExcelConnection, record_id: str) -> None:
    with conn.lock:
        df = _records_df(conn)
        idx = _index_of(df, record_id)
        conn.tables["address_records"] = df.drop(index=idx).reset_index(drop=True)
        conn.save()

def apply_mutation(conn: ExcelConnection, mutation: Mutation) -> AddressRecord:
    """Apply a scan mutation against the stored row, not the caller's snapshot."""
    with conn.lock:
        df = _records_df(conn)
        idx = _index_of(df, mutation.record_id)
        current = row_to_record(_row_to_dict(df.loc[idx]))
        updated = mutation.apply_to(current)
        df.at[idx, "loaded"] = updated.loaded
        df.at[idx, "shipped_count"] = updated.shipped_count
        df.at[idx, "updated_at"] = _now_str()
        conn.save()
    return updated

def reorder(conn: ExcelConnection, items: Sequence[Tuple[str, int]]) -> int:
    with conn.lock:
        df = _records_df(conn)
        indexes = [(_index_of(df, record_id), int(order)) for record_id, order in items]
        for idx, order in indexes:
            df.at[idx, "display_order"] = order
        conn.save()
    return len(items)

def reset_records(conn: ExcelConnection) -> int:
    """Put every record back to pending with a zero count; returns how many were reset."""
    with conn.lock:
        df = _records_df(conn)
        if df.empty:
            return 0
        now = _now_str()
        df["loaded"] = False
        df["shipped_count"] = 0
        df["updated_at"] = now
        conn.tables["address_records"] = df.astype(object)
        conn.save()
        return len(df)
