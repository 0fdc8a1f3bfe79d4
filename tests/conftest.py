import time
from typing import Optional

import pytest

from parcel_scan.config import Config
from parcel_scan.db import connect, insert_record
from parcel_scan.engine import ScanEngine
from parcel_scan.models import AddressRecord


def make_record(rid: str, address: str, sub_area: str = "1", area: str = "Nong Khai",
                loaded: bool = False, display_order: Optional[int] = None,
                shipped_count: int = 0) -> AddressRecord:
    return AddressRecord(id=rid, area=area, sub_area=sub_area, address=address,
                         shipped_count=shipped_count, loaded=loaded, display_order=display_order)


@pytest.fixture
def rec():
    return make_record


@pytest.fixture
def engine():
    return ScanEngine()


@pytest.fixture
def cfg(tmp_path):
    return Config(db_path=str(tmp_path / "parcels.xlsx"), log_level="DEBUG", ocr={"timeout": 5})


@pytest.fixture
def store(cfg):
    """Workbook with two villages in one sub-district and one in another."""
    conn = connect(cfg.db_path)
    insert_record(conn, "Nong Khai", "1", "219/5 Moo 1", record_id="r1")
    insert_record(conn, "Nong Khai", "1", "488 Ban Mai Rd", record_id="r2")
    insert_record(conn, "Nong Khai", "1", "67/1 Moo 1", record_id="r3")
    insert_record(conn, "Nong Khai", "3", "731 Moo 3", record_id="r4")
    insert_record(conn, "Tha Bo", "2", "150 Prachak Rd", record_id="r5")
    return conn


class FakeOcr:
    def __init__(self, text: str = "", error: Optional[Exception] = None, delay: float = 0.0):
        self.text = text
        self.error = error
        self.delay = delay
        self.calls = 0

    def recognize(self, image_bytes: bytes, content_type: str = "image/jpeg") -> str:
        self.calls += 1
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.text


@pytest.fixture
def fake_ocr():
    return FakeOcr
