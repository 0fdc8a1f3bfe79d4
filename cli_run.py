from __future__ import annotations
import argparse
import json
import logging
from pathlib import Path
from parcel_scan.config import load_config
from parcel_scan.pipeline import ParcelScanPipeline

import dotenv
dotenv.load_dotenv()

def main():
    ap = argparse.ArgumentParser(description="Scan one label text (or a typed address) against the workbook")
    ap.add_argument("text", help="label text as returned by OCR, or the address when --manual is set")
    ap.add_argument("--area", required=True)
    ap.add_argument("--sub-area", required=True)
    ap.add_argument("--route", default="", help="expected route code, e.g. 002A")
    ap.add_argument("--manual", action="store_true", help="treat TEXT as a typed address")
    args = ap.parse_args()

    root = Path(__file__).resolve().parent
    cfg = load_config(root / "data" / "config.default.json")
    logging.basicConfig(level=cfg.log_level)

    pipe = ParcelScanPipeline(cfg)
    if args.manual:
        report = pipe.scan_manual(args.text, args.area, args.sub_area, args.route)
    else:
        report = pipe.scan_text(args.text, args.area, args.sub_area, args.route)
    print(report.outcome.message)
    print(json.dumps(report.to_dict(), ensure_ascii=False, indent=2))

if __name__ == "__main__":
    main()
