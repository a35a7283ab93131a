"""Tests for batch and ledger read queries."""

from datetime import date

import pytest

from factory_ledger.services import (
    batch_query_service,
    production_intake_service,
    reconciliation_service,
)
from factory_ledger.services.exceptions import BatchNotFound


def _submit(products, production_date, submitted_by="worker-1", quantity=5):
    return production_intake_service.submit_batch(
        production_date,
        [{"product_id": products.product_a["id"], "quantity": quantity, "category": "finished"}],
        submitted_by,
    )


class TestBatchQueues:
    """Tests for pending, processed and per-submitter listings."""

    def test_pending_queue_and_count(self, test_db, products, production_date):
        first = _submit(products, production_date)
        second = _submit(products, production_date)
        third = _submit(products, production_date)
        reconciliation_service.confirm_batch(first["id"], "warehouse-1")

        pending = batch_query_service.list_pending_batches()

        assert [b["id"] for b in pending] == [third["id"], second["id"]]
        assert batch_query_service.count_pending_batches() == 2

    def test_processed_history_includes_confirmed_and_rejected(
        self, test_db, products, production_date
    ):
        confirmed = _submit(products, production_date)
        rejected = _submit(products, production_date)
        _submit(products, production_date)
        reconciliation_service.confirm_batch(confirmed["id"], "warehouse-1")
        reconciliation_service.reject_batch(rejected["id"], "warehouse-1", "double entry")

        processed = batch_query_service.list_processed_batches()

        assert [b["id"] for b in processed] == [rejected["id"], confirmed["id"]]
        assert [b["status"] for b in processed] == ["rejected", "confirmed"]

    def test_processed_history_respects_limit(self, test_db, products, production_date):
        for _ in range(3):
            batch = _submit(products, production_date)
            reconciliation_service.confirm_batch(batch["id"], "warehouse-1")

        assert len(batch_query_service.list_processed_batches(limit=2)) == 2

    def test_submitter_history_is_scoped_to_submitter(self, test_db, products, production_date):
        mine = _submit(products, production_date, submitted_by="worker-1")
        _submit(products, production_date, submitted_by="worker-2")
        reconciliation_service.reject_batch(mine["id"], "warehouse-1", "recount")

        history = batch_query_service.list_batches_submitted_by("worker-1")

        assert [b["id"] for b in history] == [mine["id"]]
        assert history[0]["reject_reason"] == "recount"

    def test_batch_detail_includes_product_labels(self, test_db, products, production_date):
        batch = production_intake_service.submit_batch(
            production_date,
            [{"product_id": products.fin_y["id"], "quantity": 2, "category": "finished"}],
            "worker-1",
        )

        detail = batch_query_service.get_batch_detail(batch["id"])

        assert detail["items"][0]["product_name"] == "Chili Oil"
        assert detail["items"][0]["product_spec"] == "500g"
        assert detail["is_final"] is False

    def test_missing_batch_detail_raises(self, test_db):
        with pytest.raises(BatchNotFound):
            batch_query_service.get_batch_detail(77)


class TestLedgerEntries:
    """Tests for list_ledger_entries()."""

    @pytest.fixture
    def two_days(self, test_db, products):
        for day, quantity in ((date(2024, 3, 1), 5), (date(2024, 3, 2), 7)):
            batch = production_intake_service.submit_batch(
                day,
                [
                    {"product_id": products.product_a["id"], "quantity": quantity, "category": "finished"},
                    {"product_id": products.semi_z["id"], "quantity": 1, "category": "semi_finished"},
                ],
                "worker-1",
            )
            reconciliation_service.confirm_batch(batch["id"], "warehouse-1")

    def test_entries_are_booked_on_production_date(self, test_db, products, two_days):
        entries = batch_query_service.list_ledger_entries()

        assert [e["effective_date"] for e in entries] == [
            "2024-03-01",
            "2024-03-01",
            "2024-03-02",
            "2024-03-02",
        ]

    def test_filter_by_product(self, test_db, products, two_days):
        entries = batch_query_service.list_ledger_entries(product_id=products.product_a["id"])

        assert [e["quantity"] for e in entries] == [5, 7]
        assert all(e["product_name"] == "Product A" for e in entries)

    def test_filter_by_date_range(self, test_db, products, two_days):
        entries = batch_query_service.list_ledger_entries(
            start_date=date(2024, 3, 2), end_date=date(2024, 3, 2)
        )

        assert len(entries) == 2
        assert {e["effective_date"] for e in entries} == {"2024-03-02"}
