from __future__ import annotations
import logging
import os
from dataclasses import asdict
from pathlib import Path
from typing import List, Optional
import dotenv
dotenv.load_dotenv()

from fastapi import FastAPI, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel

from parcel_scan import db
from parcel_scan.config import load_config
from parcel_scan.errors import DuplicateRecordError, OcrError, RecordNotFoundError, StoreError
from parcel_scan.models import Mutation
from parcel_scan.pipeline import ParcelScanPipeline

ROOT = Path(__file__).resolve().parent
DATA_DIR = ROOT / "data"

cfg = load_config(DATA_DIR / "config.default.json")
logging.basicConfig(level=cfg.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("parcel_scan.app")

pipeline = ParcelScanPipeline(cfg)

app = FastAPI(title="Parcel Scan Service")


class ScanRequest(BaseModel):
    area: str
    sub_area: str
    route_code: str = ""
    text: str = ""
    manual_address: Optional[str] = None


class ParcelCreate(BaseModel):
    area: str
    sub_area: str
    address: str
    shipped_count: int = 0
    loaded: bool = False
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class ParcelUpdate(BaseModel):
    area: Optional[str] = None
    sub_area: Optional[str] = None
    address: Optional[str] = None
    shipped_count: Optional[int] = None
    loaded: Optional[bool] = None
    display_order: Optional[int] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class StatusUpdate(BaseModel):
    record_id: str
    loaded: bool
    duplicate: bool = False


class ReorderItem(BaseModel):
    id: str
    display_order: int


class ReorderRequest(BaseModel):
    items: List[ReorderItem]


def _store_http_error(exc: StoreError) -> HTTPException:
    if isinstance(exc, RecordNotFoundError):
        return HTTPException(status_code=404, detail=exc.message)
    if isinstance(exc, DuplicateRecordError):
        return HTTPException(status_code=409, detail=exc.message)
    logger.exception("Address store failure: %s", exc)
    return HTTPException(status_code=500, detail=exc.message)


@app.post("/scan")
def scan(payload: ScanRequest):
    if not payload.area.strip() or not payload.sub_area.strip():
        raise HTTPException(status_code=400, detail="area and sub_area are required")
    if not payload.text.strip() and not (payload.manual_address or "").strip():
        raise HTTPException(status_code=400, detail="text or manual_address is required")
    try:
        if (payload.manual_address or "").strip():
            report = pipeline.scan_manual(payload.manual_address, payload.area, payload.sub_area, payload.route_code)
        else:
            report = pipeline.scan_text(payload.text, payload.area, payload.sub_area, payload.route_code)
    except StoreError as exc:
        raise _store_http_error(exc) from exc
    return report.to_dict()


@app.post("/ocr")
async def ocr(request: Request):
    body = await request.body()
    if not body:
        raise HTTPException(status_code=400, detail="No image provided")
    try:
        text = await run_in_threadpool(pipeline.ocr.recognize, body,
                                       content_type=request.headers.get("content-type", "image/jpeg"))
    except OcrError as exc:
        logger.exception("OCR failed: %s", exc)
        raise HTTPException(status_code=502, detail=exc.message) from exc
    return {"text": text}


@app.post("/scan-image")
async def scan_image(request: Request, area: str, sub_area: str, route_code: str = ""):
    body = await request.body()
    if not body:
        raise HTTPException(status_code=400, detail="No image provided")
    try:
        report = await run_in_threadpool(pipeline.scan_image, body, area, sub_area, route_code,
                                         content_type=request.headers.get("content-type", "image/jpeg"))
    except OcrError as exc:
        logger.exception("OCR failed: %s", exc)
        raise HTTPException(status_code=502, detail=exc.message) from exc
    except StoreError as exc:
        raise _store_http_error(exc) from exc
    return report.to_dict()


@app.get("/locations")
def locations():
    return db.list_locations(pipeline.conn)


@app.get("/parcels")
def parcels(area: Optional[str] = None, sub_area: Optional[str] = None):
    if area:
        records = db.fetch_records(pipeline.conn, area, sub_area)
    else:
        records = db.sort_for_display(db.list_all_records(pipeline.conn))
    return [asdict(r) for r in records]


@app.post("/parcels", status_code=201)
def create_parcel(payload: ParcelCreate):
    try:
        rec = db.insert_record(pipeline.conn, payload.area, payload.sub_area, payload.address.strip(),
                               shipped_count=payload.shipped_count, loaded=payload.loaded,
                               latitude=payload.latitude, longitude=payload.longitude)
    except StoreError as exc:
        raise _store_http_error(exc) from exc
    return asdict(rec)


@app.put("/parcels/{record_id}")
def update_parcel(record_id: str, payload: ParcelUpdate):
    fields = payload.model_dump(exclude_unset=True)
    # only the optional columns can be cleared
    for key in ("area", "sub_area", "address", "shipped_count", "loaded"):
        if key in fields and fields[key] is None:
            raise HTTPException(status_code=400, detail=f"{key} cannot be null")
    if "address" in fields:
        fields["address"] = fields["address"].strip()
    try:
        rec = db.update_record(pipeline.conn, record_id, **fields)
    except StoreError as exc:
        raise _store_http_error(exc) from exc
    return asdict(rec)


@app.delete("/parcels/{record_id}")
def delete_parcel(record_id: str):
    try:
        db.delete_record(pipeline.conn, record_id)
    except StoreError as exc:
        raise _store_http_error(exc) from exc
    return {"success": True}


@app.post("/update-status")
def update_status(payload: StatusUpdate):
    if payload.loaded:
        if payload.duplicate:
            mutation = Mutation(record_id=payload.record_id, loaded=True, shipped_count_delta=1)
        else:
            mutation = Mutation(record_id=payload.record_id, loaded=True, shipped_count=1)
    else:
        # operator cancelled the scan: back to pending
        mutation = Mutation(record_id=payload.record_id, loaded=False, shipped_count=0)
    try:
        rec = db.apply_mutation(pipeline.conn, mutation)
    except StoreError as exc:
        raise _store_http_error(exc) from exc
    return {"success": True, "data": asdict(rec)}


@app.post("/reorder")
def reorder(payload: ReorderRequest):
    try:
        n = db.reorder(pipeline.conn, [(item.id, item.display_order) for item in payload.items])
    except StoreError as exc:
        raise _store_http_error(exc) from exc
    return {"success": True, "updated": n}


@app.post("/reset-parcels")
def reset_parcels():
    try:
        n = db.reset_records(pipeline.conn)
    except StoreError as exc:
        raise _store_http_error(exc) from exc
    return {"success": True, "count": n, "message": f"Reset {n} parcels"}


if __name__ == "__main__":
    import uvicorn

    host = os.getenv("APP_HOST", "0.0.0.0")
    port = int(os.getenv("APP_PORT", "8008"))
    uvicorn.run(app, host=host, port=port)
