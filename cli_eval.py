from __future__ import annotations
import json
import logging

from parcel_scan.evaluate import replay
from parcel_scan.simulate import generate_address_book, generate_labels

ROUTE_CODE = "002A"

def main():
    logging.basicConfig(level=logging.WARNING)

    records = generate_address_book(n_areas=2, sub_areas_per_area=3, records_per_sub_area=8, seed=7)
    labels = generate_labels(records, route_code=ROUTE_CODE, n=120, wrong_route_rate=0.1, seed=11)

    report = replay(records, labels, ROUTE_CODE)
    loaded = report.pop("loaded")
    print("Replay metrics:", json.dumps(report, ensure_ascii=False, indent=2))
    print(f"Loading order ({len(loaded)} records):")
    for i, row in enumerate(loaded, start=1):
        print(f"  {i:>3}. [{row['area']} / {row['sub_area']}] {row['address']} x{row['shipped_count']}")

if __name__ == "__main__":
    main()
