from __future__ import annotations
from collections import Counter
from typing import Any, Dict, List, Sequence

from .db import sort_for_display
from .engine import ScanEngine
from .models import AddressRecord, OutcomeKind, ScanInput
from .simulate import SimulatedLabel

def replay(records: Sequence[AddressRecord], labels: Sequence[SimulatedLabel],
           route_code: str, engine: ScanEngine | None = None) -> Dict[str, Any]:
    """
    Run labels through the engine in order, applying each mutation to an in-memory
    copy of the address book, the way the scan screen does against the store.
    """
    engine = engine or ScanEngine()
    book: Dict[str, AddressRecord] = {r.id: r for r in records}
    kinds: Counter = Counter()
    correct = wrong = route_rejected = route_expected = 0

    for lb in labels:
        snapshot = sort_for_display([r for r in book.values() if r.area == lb.area and r.sub_area == lb.sub_area])
        fallback = sort_for_display([r for r in book.values() if r.area == lb.area])
        outcome = engine.scan(
            ScanInput(text=lb.text, expected_route_code=route_code, area=lb.area, sub_area=lb.sub_area),
            snapshot,
            fallback,
        )
        kinds[outcome.kind.value] += 1
        # a label the loose route check let through still loads its parcel
        if outcome.mutation is not None:
            book[outcome.mutation.record_id] = outcome.mutation.apply_to(book[outcome.mutation.record_id])

        if lb.route_code != route_code:
            route_expected += 1
            if outcome.kind == OutcomeKind.ROUTE_MISMATCH:
                route_rejected += 1
            continue

        if outcome.is_success:
            if outcome.record_id == lb.record_id:
                correct += 1
            else:
                wrong += 1

    on_route = len(labels) - route_expected
    matched = correct + wrong
    loaded = loaded_summary(list(book.values()))
    return {
        "n_labels": len(labels),
        "outcomes": dict(sorted(kinds.items())),
        "correct": correct,
        "wrong": wrong,
        "precision": correct / matched if matched else 0.0,
        "recall": correct / on_route if on_route else 0.0,
        "route_mismatch_caught": route_rejected,
        "route_mismatch_expected": route_expected,
        "loaded_records": len(loaded),
        "loaded": loaded,
    }

def loaded_summary(records: Sequence[AddressRecord]) -> List[Dict[str, Any]]:
    return [
        {"id": r.id, "area": r.area, "sub_area": r.sub_area, "address": r.address,
         "shipped_count": r.shipped_count}
        for r in sort_for_display(records) if r.loaded
    ]
