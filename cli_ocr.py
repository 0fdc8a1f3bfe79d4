import dotenv
dotenv.load_dotenv()

import json
import sys
from pathlib import Path

from parcel_scan.config import load_config
from parcel_scan.errors import OcrError
from parcel_scan.extract import TokenExtractor
from parcel_scan.ocr import OcrSpaceClient
from parcel_scan.utils import EnhancedJSONEncoder, normalize_text


if __name__ == "__main__":
    root = Path(__file__).resolve().parent
    cfg = load_config(root / "data" / "config.default.json")
    client = OcrSpaceClient(cfg.ocr)
    extractor = TokenExtractor()

    for image_path in sys.argv[1:]:
        print(f"Image: {image_path}")
        try:
            text = client.recognize(Path(image_path).read_bytes())
        except OcrError as exc:
            print(f"OCR failed: {exc}")
            print("-" * 40)
            continue
        cleaned = normalize_text(text)
        print(f"Raw: {text!r}")
        print(f"Normalized: {cleaned}")
        print(json.dumps(extractor.extract(cleaned), cls=EnhancedJSONEncoder, ensure_ascii=False, indent=2))
        print("-" * 40)
