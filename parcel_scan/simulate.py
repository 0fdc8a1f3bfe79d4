from __future__ import annotations
import random
from dataclasses import dataclass
from typing import List, Sequence

from .models import AddressRecord


"""
Synthetic address books and shipping-label texts.

1. generate_address_book(): areas (sub-districts) -> sub-areas (villages) -> address records
   with house numbers such as "219/5 Moo 3" or "488 Ban Mai Rd", display order assigned
   in insertion order, all pending.
2. generate_labels(): label texts as an OCR engine would return them for randomly picked
   records (same record may be picked twice, giving duplicate scans):
     digits read as look-alike letters (0->O, 1->l, 5->S, 8->B)
     stray '~', doubled spaces, mixed case
     a share of labels printed with another route's code
"""

AREA_NAMES = ["Nong Khai", "Ban Phue", "Tha Bo", "Phon Phisai"]
ROAD_NAMES = ["Ban Mai Rd", "Mittraphap Rd", "Prachak Rd", "Moo Ban Rd"]
RECIPIENTS = ["KHUN MANA", "KHUN PRAPHAT", "KHUN WAN", "KHUN CHAMNAN", "KHUN APHAPHAN"]
WRONG_ROUTES = ["115C", "347D", "960E"]
_LOOKALIKE = {"0": "O", "1": "l", "5": "S", "8": "B"}

_rid_counter = 0
def _rid() -> str:
    global _rid_counter
    _rid_counter += 1
    return f"rec{_rid_counter:05d}"


@dataclass(frozen=True)
class SimulatedLabel:
    text: str
    record_id: str
    area: str
    sub_area: str
    route_code: str


def generate_address_book(n_areas: int = 2, sub_areas_per_area: int = 3,
                          records_per_sub_area: int = 8, seed: int = 7) -> List[AddressRecord]:
    rnd = random.Random(seed)
    records: List[AddressRecord] = []
    order = 0
    for area in AREA_NAMES[:n_areas]:
        for moo in range(1, sub_areas_per_area + 1):
            sub_area = str(moo)
            used = set()
            while len(used) < records_per_sub_area:
                house = str(rnd.randint(100, 999))
                if rnd.random() < 0.5:
                    house = f"{house}/{rnd.randint(1, 9)}"
                if house in used:
                    continue
                used.add(house)
                order += 1
                address = rnd.choice([
                    f"{house} Moo {moo}",
                    f"{house} {rnd.choice(ROAD_NAMES)}",
                    f"{house}, Moo {moo}, {area}",
                ])
                records.append(AddressRecord(id=_rid(), area=area, sub_area=sub_area,
                                             address=address, display_order=order))
    return records


def _ocr_noise(rnd: random.Random, text: str) -> str:
    out = []
    for ch in text:
        if ch in _LOOKALIKE and rnd.random() < 0.3:
            out.append(_LOOKALIKE[ch])
        elif ch == " " and rnd.random() < 0.15:
            out.append("  ")
        else:
            out.append(ch)
    noisy = "".join(out)
    if rnd.random() < 0.2:
        noisy = noisy.replace(" ", " ~ ", 1)
    return noisy.lower() if rnd.random() < 0.3 else noisy


def generate_labels(records: Sequence[AddressRecord], route_code: str = "002A", n: int = 40,
                    wrong_route_rate: float = 0.1, seed: int = 7) -> List[SimulatedLabel]:
    rnd = random.Random(seed)
    labels: List[SimulatedLabel] = []
    for _ in range(n):
        rec = rnd.choice(list(records))
        code = rnd.choice(WRONG_ROUTES) if rnd.random() < wrong_route_rate else route_code
        house = rec.address.split()[0].rstrip(",")
        raw = rnd.choice([
            f"TO {rnd.choice(RECIPIENTS)} {house} MOO {rec.sub_area} {rec.area.upper()} 43000 {code}",
            f"{code} {house} {rnd.choice(RECIPIENTS)} 43000",
            f"{rnd.choice(RECIPIENTS)}\n{house}\n{rec.area.upper()} 43000\nROUTE {code}",
        ])
        labels.append(SimulatedLabel(text=_ocr_noise(rnd, raw), record_id=rec.id,
                                     area=rec.area, sub_area=rec.sub_area, route_code=code))
    return labels
