"""Tests for simulated label replay."""

from parcel_scan.evaluate import loaded_summary, replay
from parcel_scan.simulate import SimulatedLabel, generate_address_book, generate_labels


class TestReplay:
    def test_simulated_run(self):
        records = generate_address_book(n_areas=2, sub_areas_per_area=2, records_per_sub_area=5, seed=3)
        labels = generate_labels(records, route_code="002A", n=30, wrong_route_rate=0.2, seed=5)
        report = replay(records, labels, "002A")
        assert sum(report["outcomes"].values()) == 30
        assert report["wrong"] == 0
        assert report["route_mismatch_caught"] == report["route_mismatch_expected"]
        assert replay(records, labels, "002A") == report

    def test_same_label_twice(self, rec):
        records = [rec("a", "219/5 Moo 1", display_order=1), rec("b", "300 Moo 1", display_order=2)]
        lb = SimulatedLabel(text="2l9/S m00 1 002A", record_id="a", area="Nong Khai", sub_area="1", route_code="002A")
        report = replay(records, [lb, lb], "002A")
        assert report["outcomes"] == {"DUPLICATE_MATCH": 1, "NEW_MATCH": 1}
        assert report["correct"] == 2
        assert report["loaded_records"] == 1
        assert report["loaded"][0]["shipped_count"] == 2

    def test_off_route_label_that_passes_still_loads(self, rec):
        records = [rec("a", "219/5 Moo 1", display_order=1)]
        near = SimulatedLabel(text="219/5 M00 1 002C", record_id="a", area="Nong Khai", sub_area="1", route_code="002C")
        exact = SimulatedLabel(text="219/5 M00 1 002A", record_id="a", area="Nong Khai", sub_area="1", route_code="002A")
        report = replay(records, [near, exact], "002A")
        assert report["outcomes"] == {"DUPLICATE_MATCH": 1, "NEW_MATCH": 1}
        assert report["route_mismatch_expected"] == 1
        assert report["route_mismatch_caught"] == 0
        assert report["loaded"][0]["shipped_count"] == 2

    def test_loaded_summary(self, rec):
        out = loaded_summary([rec("a", "1", loaded=True, shipped_count=2), rec("b", "2")])
        assert out == [{"id": "a", "area": "Nong Khai", "sub_area": "1", "address": "1", "shipped_count": 2}]


class TestSimulate:
    def test_address_book_is_deterministic(self):
        a = generate_address_book(seed=9)
        b = generate_address_book(seed=9)
        assert [r.address for r in a] == [r.address for r in b]
        assert len(a) == 2 * 3 * 8

    def test_house_numbers_unique_per_sub_area(self):
        records = generate_address_book(seed=1)
        seen = {}
        for r in records:
            house = r.address.split()[0].rstrip(",")
            assert house not in seen.setdefault((r.area, r.sub_area), set())
            seen[(r.area, r.sub_area)].add(house)
