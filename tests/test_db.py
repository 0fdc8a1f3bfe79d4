"""Tests for the Excel address store."""

import threading

import pytest

from parcel_scan import db
from parcel_scan.errors import CollaboratorError, DuplicateRecordError, RecordNotFoundError, StoreError
from parcel_scan.models import Mutation


class TestFetch:
    def test_sorted_loaded_first_then_display_order(self, store):
        db.apply_mutation(store, Mutation(record_id="r3", loaded=True, shipped_count=1))
        ids = [r.id for r in db.fetch_records(store, "Nong Khai", "1")]
        assert ids == ["r3", "r1", "r2"]

    def test_area_wide_snapshot(self, store):
        ids = {r.id for r in db.fetch_records(store, "Nong Khai")}
        assert ids == {"r1", "r2", "r3", "r4"}

    def test_sort_for_display_unset_order_last(self, rec):
        recs = [rec("x", "1"), rec("y", "2", display_order=4)]
        assert [r.id for r in db.sort_for_display(recs)] == ["y", "x"]

    def test_locations(self, store):
        db.insert_record(store, "Nong Khai", "10", "5 Moo 10")
        assert db.list_locations(store) == {"Nong Khai": ["1", "3", "10"], "Tha Bo": ["2"]}


class TestWrites:
    def test_insert_assigns_next_display_order(self, store):
        rec = db.insert_record(store, "Tha Bo", "2", "151 Prachak Rd")
        assert rec.display_order == 6
        assert rec.loaded is False

    def test_duplicate_address_rejected(self, store):
        with pytest.raises(DuplicateRecordError):
            db.insert_record(store, "Nong Khai", "1", "219/5 Moo 1")

    def test_mutations_increment_stored_count(self, store):
        db.apply_mutation(store, Mutation(record_id="r1", loaded=True, shipped_count=1))
        db.apply_mutation(store, Mutation(record_id="r1", loaded=True, shipped_count_delta=1))
        rec = db.apply_mutation(store, Mutation(record_id="r1", loaded=True, shipped_count_delta=1))
        assert rec.shipped_count == 3
        assert db.get_record(store, "r1").shipped_count == 3

    def test_unknown_record(self, store):
        with pytest.raises(RecordNotFoundError) as info:
            db.apply_mutation(store, Mutation(record_id="nope", loaded=True, shipped_count=1))
        assert isinstance(info.value, CollaboratorError)

    def test_update_and_delete(self, store):
        rec = db.update_record(store, "r2", address="488/1 Ban Mai Rd")
        assert rec.address == "488/1 Ban Mai Rd"
        with pytest.raises(ValueError):
            db.update_record(store, "r2", id="other")
        db.delete_record(store, "r2")
        assert db.get_record(store, "r2") is None

    def test_update_onto_existing_address_rejected(self, store):
        with pytest.raises(DuplicateRecordError):
            db.update_record(store, "r2", address="219/5 Moo 1")
        assert db.get_record(store, "r2").address == "488 Ban Mai Rd"
        assert db.update_record(store, "r2", shipped_count=4).shipped_count == 4

    def test_reorder(self, store):
        assert db.reorder(store, [("r1", 3), ("r3", 1)]) == 2
        ids = [r.id for r in db.fetch_records(store, "Nong Khai", "1")]
        assert ids == ["r3", "r2", "r1"]

    def test_reset(self, store):
        db.apply_mutation(store, Mutation(record_id="r1", loaded=True, shipped_count=1))
        assert db.reset_records(store) == 5
        assert not any(r.loaded or r.shipped_count for r in db.list_all_records(store))


class TestPersistence:
    def test_round_trip_through_workbook(self, store, cfg):
        db.apply_mutation(store, Mutation(record_id="r4", loaded=True, shipped_count=1))
        again = db.connect(cfg.db_path)
        rec = db.get_record(again, "r4")
        assert rec.sub_area == "3"
        assert rec.loaded is True
        assert rec.shipped_count == 1
        assert rec.display_order == 4
        assert rec.latitude is None

    def test_unreadable_workbook(self, tmp_path):
        bad = tmp_path / "broken.xlsx"
        bad.write_bytes(b"not a workbook")
        with pytest.raises(StoreError):
            db.connect(bad)

    def test_clear_unknown_table(self, store):
        with pytest.raises(ValueError):
            db.clear_table(store, "nope")


class TestConcurrency:
    def _run_threads(self, n_threads, target):
        errors = []

        def worker():
            try:
                target()
            except Exception as exc:  # surfaced by the assertion below
                errors.append(exc)

        threads = [threading.Thread(target=worker) for _ in range(n_threads)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert errors == []

    def test_parallel_increments_are_not_lost(self, store):
        def bump():
            for _ in range(5):
                db.apply_mutation(store, Mutation(record_id="r1", loaded=True, shipped_count_delta=1))

        self._run_threads(6, bump)
        assert db.get_record(store, "r1").shipped_count == 6 * 5
        assert db.get_record(db.connect(store.path), "r1").shipped_count == 30

    def test_parallel_inserts_keep_unique_display_orders(self, store):
        counter = iter(range(100, 200))
        lock = threading.Lock()

        def add():
            for _ in range(3):
                with lock:
                    house = next(counter)
                db.insert_record(store, "Tha Bo", "2", f"{house} Moo 2")

        self._run_threads(4, add)
        orders = [r.display_order for r in db.list_all_records(store)]
        assert len(orders) == 5 + 12
        assert len(set(orders)) == len(orders)


class TestBulkInsert:
    def test_insert_without_save_stays_in_memory(self, cfg):
        conn = db.connect(cfg.db_path)
        db.insert_record(conn, "Nong Khai", "1", "219/5 Moo 1", record_id="a", save=False)
        db.insert_record(conn, "Nong Khai", "1", "488 Ban Mai Rd", record_id="b", save=False)
        assert not conn.path.exists()
        assert [r.id for r in db.list_all_records(conn)] == ["a", "b"]
        conn.save()
        assert [r.id for r in db.list_all_records(db.connect(cfg.db_path))] == ["a", "b"]
