from __future__ import annotations
import logging
from pathlib import Path

from parcel_scan.config import load_config
from parcel_scan.db import connect, init_db, clear_table, insert_record
from parcel_scan.simulate import generate_address_book

"""
Seed the address workbook with a synthetic address book so the scan service and
cli_run have something to match against.
1) load data/config.default.json for the workbook path;
2) clear the address_records sheet;
3) write 2 areas x 3 sub-areas x 8 addresses, all pending, display order in insertion order;
4) print the locations so an operator knows what to select.
"""

def main():
    root = Path(__file__).resolve().parent
    data_dir = root / "data"
    cfg = load_config(data_dir / "config.default.json")
    logging.basicConfig(level=cfg.log_level)

    conn = connect(cfg.db_path)
    init_db(conn)
    clear_table(conn, "address_records")

    records = generate_address_book(n_areas=2, sub_areas_per_area=3, records_per_sub_area=8, seed=7)
    for rec in records:
        insert_record(conn, rec.area, rec.sub_area, rec.address,
                      record_id=rec.id, display_order=rec.display_order, save=False)
    conn.save()

    print(f"Workbook: {cfg.db_path}")
    print(f"Inserted records: {len(records)}")
    for rec in records[:3]:
        print(f"  {rec.area} / Moo {rec.sub_area}: {rec.address}")
    print("Next: python cli_run.py --area \"Nong Khai\" --sub-area 1 --route 002A \"<label text>\"")

if __name__ == "__main__":
    main()
