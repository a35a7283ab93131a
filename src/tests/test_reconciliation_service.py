"""
Tests for production confirmation reconciliation.

Covers:
- Ledger entries derived on confirmation (simple and relabel batches)
- Exactly-once application (repeat confirm, concurrent confirm)
- All-or-nothing confirmation when a ledger write fails
- Rejection and resubmission by the original submitter
"""

import threading

import pytest
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from factory_ledger.models import ProductionBatch, StockRecord
from factory_ledger.models.base import Base
from factory_ledger.services import (
    batch_query_service,
    database,
    ledger_writer,
    product_catalog_service,
    production_intake_service,
    reconciliation_service,
)
from factory_ledger.services.exceptions import (
    BatchNotFound,
    GuardViolation,
    LedgerWriteFailure,
    LineItemNotFound,
    NotBatchSubmitter,
    ValidationError,
)


def _ledger(test_db):
    return test_db().query(StockRecord).order_by(StockRecord.id).all()


def _status(test_db, batch_id):
    session = test_db()
    session.expire_all()
    return session.get(ProductionBatch, batch_id)


@pytest.fixture
def file_db(tmp_path, monkeypatch):
    """File-backed database where every session_scope() opens its own session."""
    engine = database.create_database_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, expire_on_commit=False)
    monkeypatch.setattr(database, "get_session_factory", lambda: factory)
    yield engine
    engine.dispose()


@pytest.fixture
def simple_batch(test_db, products, production_date):
    """Pending batch: Product A x5, Product B x3 (both finished)."""
    return production_intake_service.submit_batch(
        production_date,
        [
            {"product_id": products.product_a["id"], "quantity": 5, "category": "finished"},
            {"product_id": products.product_b["id"], "quantity": 3, "category": "finished"},
        ],
        "worker-1",
    )


@pytest.fixture
def relabel_batch(test_db, products, production_date):
    """Pending batch relabeling 10 x Chili Oil Bulk 20kg into Chili Oil 500g."""
    return production_intake_service.submit_batch(
        production_date,
        [
            {
                "product_id": products.semi_x["id"],
                "quantity": 10,
                "category": "relabel_out",
                "target_product_id": products.fin_y["id"],
            },
        ],
        "worker-1",
    )


class TestConfirmBatch:
    """Tests for confirm_batch()."""

    def test_simple_batch_writes_one_inbound_entry_per_item(
        self, test_db, products, simple_batch
    ):
        result = reconciliation_service.confirm_batch(simple_batch["id"], "warehouse-1")

        assert result["status"] == "confirmed"
        assert result["confirmed_by"] == "warehouse-1"
        assert result["confirmed_at"] is not None
        assert result["entry_count"] == 2
        assert result["paired_count"] == 0

        entries = batch_query_service.list_ledger_entries()
        assert [(e["product_id"], e["direction"], e["quantity"]) for e in entries] == [
            (products.product_a["id"], "in", 5),
            (products.product_b["id"], "in", 3),
        ]
        expected_remark = f"production inbound - batch #{simple_batch['id']}"
        assert all(e["remark"] == expected_remark for e in entries)
        assert all(e["effective_date"] == "2024-03-01" for e in entries)
        assert all(e["actor"] == "warehouse-1" for e in entries)

        batch = batch_query_service.get_batch_detail(simple_batch["id"])
        assert batch["status"] == "confirmed"
        assert batch["is_final"] is True
        assert batch["confirmed_by"] == "warehouse-1"

    def test_relabel_batch_writes_paired_entries(self, test_db, products, relabel_batch):
        result = reconciliation_service.confirm_batch(relabel_batch["id"], "warehouse-1")

        assert result["entry_count"] == 2
        assert result["paired_count"] == 1

        batch_ref = f"batch #{relabel_batch['id']}"
        entries = {e["product_id"]: e for e in batch_query_service.list_ledger_entries()}
        inbound = entries[products.fin_y["id"]]
        outbound = entries[products.semi_x["id"]]
        assert (inbound["direction"], inbound["quantity"]) == ("in", 10)
        assert inbound["remark"] == f"produced from Chili Oil Bulk 20kg - {batch_ref}"
        assert (outbound["direction"], outbound["quantity"]) == ("out", 10)
        assert outbound["remark"] == f"relabeled to Chili Oil 500g - {batch_ref}"

    def test_entry_count_follows_conservation_rule(self, test_db, products, production_date):
        batch = production_intake_service.submit_batch(
            production_date,
            [
                {"product_id": products.product_a["id"], "quantity": 5, "category": "finished"},
                {"product_id": products.semi_z["id"], "quantity": 2, "category": "semi_finished"},
                {
                    "product_id": products.semi_x["id"],
                    "quantity": 10,
                    "category": "relabel_out",
                    "target_product_id": products.fin_y["id"],
                },
                {
                    "product_id": products.semi_x["id"],
                    "quantity": 4,
                    "category": "relabel_out",
                    "target_product_id": products.product_b["id"],
                },
            ],
            "worker-1",
        )

        result = reconciliation_service.confirm_batch(batch["id"], "warehouse-1")

        # finished + semi_finished + 2 per relabel action
        assert result["entry_count"] == 1 + 1 + 2 * 2
        assert len(_ledger(test_db)) == 6
        assert result["paired_count"] == 2

    def test_second_confirm_is_guard_violation(self, test_db, simple_batch):
        reconciliation_service.confirm_batch(simple_batch["id"], "warehouse-1")

        with pytest.raises(GuardViolation) as exc_info:
            reconciliation_service.confirm_batch(simple_batch["id"], "warehouse-2")

        assert exc_info.value.current_status == "confirmed"
        assert "already processed" in str(exc_info.value)
        assert len(_ledger(test_db)) == 2
        assert _status(test_db, simple_batch["id"]).confirmed_by == "warehouse-1"

    def test_concurrent_confirms_apply_ledger_once(self, file_db, production_date):
        product_a = product_catalog_service.create_product("Product A", "finished")
        product_b = product_catalog_service.create_product("Product B", "finished")
        batch = production_intake_service.submit_batch(
            production_date,
            [
                {"product_id": product_a["id"], "quantity": 5, "category": "finished"},
                {"product_id": product_b["id"], "quantity": 3, "category": "finished"},
            ],
            "worker-1",
        )
        start = threading.Barrier(2)
        outcomes = {}

        def confirm(actor):
            start.wait()
            try:
                reconciliation_service.confirm_batch(batch["id"], actor)
                outcomes[actor] = "confirmed"
            except GuardViolation:
                outcomes[actor] = "already processed"
            except Exception as e:  # surfaced by the assertion below
                outcomes[actor] = repr(e)

        threads = [
            threading.Thread(target=confirm, args=(actor,))
            for actor in ("warehouse-1", "warehouse-2")
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=60)

        assert sorted(outcomes.values()) == ["already processed", "confirmed"]
        winner = next(actor for actor, outcome in outcomes.items() if outcome == "confirmed")
        with database.session_scope() as session:
            assert session.query(StockRecord).count() == len(batch["items"])
            stored = session.get(ProductionBatch, batch["id"])
            assert stored.status == "confirmed"
            assert stored.confirmed_by == winner

    def test_ledger_failure_leaves_batch_pending_and_ledger_empty(
        self, test_db, relabel_batch, monkeypatch
    ):
        original = ledger_writer._insert_entry
        calls = {"count": 0}

        def failing_on_second(session, draft):
            calls["count"] += 1
            if calls["count"] == 2:
                raise SQLAlchemyError("simulated write failure")
            return original(session, draft)

        monkeypatch.setattr(ledger_writer, "_insert_entry", failing_on_second)

        with pytest.raises(LedgerWriteFailure):
            reconciliation_service.confirm_batch(relabel_batch["id"], "warehouse-1")

        assert _ledger(test_db) == []
        batch = _status(test_db, relabel_batch["id"])
        assert batch.status == "pending"
        assert batch.confirmed_by is None
        assert batch.confirmed_at is None

        # The whole operation can be retried once the fault is gone
        monkeypatch.undo()
        result = reconciliation_service.confirm_batch(relabel_batch["id"], "warehouse-1")

        assert result["entry_count"] == 2
        assert len(_ledger(test_db)) == 2

    def test_ledger_failure_in_caller_session_does_not_commit_confirmation(
        self, test_db, relabel_batch, monkeypatch
    ):
        original = ledger_writer._insert_entry
        calls = {"count": 0}

        def failing_on_second(session, draft):
            calls["count"] += 1
            if calls["count"] == 2:
                raise SQLAlchemyError("simulated write failure")
            return original(session, draft)

        monkeypatch.setattr(ledger_writer, "_insert_entry", failing_on_second)
        session = test_db()

        with pytest.raises(LedgerWriteFailure):
            reconciliation_service.confirm_batch(
                relabel_batch["id"], "warehouse-1", session=session
            )
        # The caller carries on and commits its own transaction
        session.commit()

        assert _ledger(test_db) == []
        batch = _status(test_db, relabel_batch["id"])
        assert batch.status == "pending"
        assert batch.confirmed_by is None
        assert batch.confirmed_at is None

        monkeypatch.undo()
        reconciliation_service.confirm_batch(relabel_batch["id"], "warehouse-1", session=session)
        session.commit()

        assert _status(test_db, relabel_batch["id"]).status == "confirmed"
        assert len(_ledger(test_db)) == 2

    def test_returned_confirmed_at_matches_stored_value(self, test_db, simple_batch):
        result = reconciliation_service.confirm_batch(simple_batch["id"], "warehouse-1")

        stored = batch_query_service.get_batch_detail(simple_batch["id"])
        assert result["confirmed_at"] == stored["confirmed_at"]

    def test_unknown_batch_raises_not_found(self, test_db):

        with pytest.raises(BatchNotFound):
            reconciliation_service.confirm_batch(404, "warehouse-1")

    def test_confirming_actor_is_required(self, test_db, simple_batch):
        with pytest.raises(ValidationError):
            reconciliation_service.confirm_batch(simple_batch["id"], "")

        assert _status(test_db, simple_batch["id"]).status == "pending"


class TestRejectBatch:
    """Tests for reject_batch()."""

    def test_reject_records_reason_without_ledger_effect(self, test_db, simple_batch):
        result = reconciliation_service.reject_batch(
            simple_batch["id"], "warehouse-1", "  wrong date  "
        )

        assert result["status"] == "rejected"
        assert result["is_final"] is False
        assert result["reject_reason"] == "wrong date"
        assert result["confirmed_by"] == "warehouse-1"
        assert result["confirmed_at"] is not None
        assert _ledger(test_db) == []

    def test_blank_reason_is_rejected(self, test_db, simple_batch):
        with pytest.raises(ValidationError):
            reconciliation_service.reject_batch(simple_batch["id"], "warehouse-1", "   ")

        assert _status(test_db, simple_batch["id"]).status == "pending"

    def test_cannot_reject_confirmed_batch(self, test_db, simple_batch):
        reconciliation_service.confirm_batch(simple_batch["id"], "warehouse-1")

        with pytest.raises(GuardViolation):
            reconciliation_service.reject_batch(simple_batch["id"], "warehouse-2", "too late")

        batch = _status(test_db, simple_batch["id"])
        assert batch.status == "confirmed"
        assert batch.reject_reason is None
        assert len(_ledger(test_db)) == 2

    def test_cannot_confirm_rejected_batch(self, test_db, simple_batch):
        reconciliation_service.reject_batch(simple_batch["id"], "warehouse-1", "recount")

        with pytest.raises(GuardViolation):
            reconciliation_service.confirm_batch(simple_batch["id"], "warehouse-1")

        assert _ledger(test_db) == []


class TestResubmitBatch:
    """Tests for resubmit_batch()."""

    def _rejected(self, batch):
        reconciliation_service.reject_batch(batch["id"], "warehouse-1", "quantity looks wrong")
        return batch

    def test_resubmit_edits_items_and_clears_metadata(self, test_db, products, simple_batch):
        batch = self._rejected(simple_batch)
        first_item = batch["items"][0]

        result = reconciliation_service.resubmit_batch(
            batch["id"], "worker-1", {first_item["id"]: {"quantity": 8}}
        )

        assert result["status"] == "pending"
        assert result["confirmed_by"] is None
        assert result["confirmed_at"] is None
        assert result["reject_reason"] is None
        assert [(i["id"], i["quantity"]) for i in result["items"]] == [
            (first_item["id"], 8),
            (batch["items"][1]["id"], 3),
        ]

    def test_resubmitted_batch_can_be_confirmed(self, test_db, products, simple_batch):
        batch = self._rejected(simple_batch)
        reconciliation_service.resubmit_batch(
            batch["id"],
            "worker-1",
            {batch["items"][1]["id"]: {"product_id": products.fin_y["id"], "quantity": "4"}},
        )

        reconciliation_service.confirm_batch(batch["id"], "warehouse-2")

        entries = batch_query_service.list_ledger_entries()
        assert [(e["product_id"], e["quantity"]) for e in entries] == [
            (products.product_a["id"], 5),
            (products.fin_y["id"], 4),
        ]

    def test_only_submitter_may_resubmit(self, test_db, simple_batch):
        batch = self._rejected(simple_batch)

        with pytest.raises(NotBatchSubmitter):
            reconciliation_service.resubmit_batch(batch["id"], "someone-else")

        assert _status(test_db, batch["id"]).status == "rejected"

    def test_cannot_resubmit_pending_batch(self, test_db, simple_batch):
        with pytest.raises(GuardViolation):
            reconciliation_service.resubmit_batch(simple_batch["id"], "worker-1")

    def test_edit_for_foreign_item_is_not_found(self, test_db, simple_batch):
        batch = self._rejected(simple_batch)

        with pytest.raises(LineItemNotFound):
            reconciliation_service.resubmit_batch(batch["id"], "worker-1", {99999: {"quantity": 1}})

        assert _status(test_db, batch["id"]).status == "rejected"

    def test_non_positive_quantity_is_rejected(self, test_db, simple_batch):
        batch = self._rejected(simple_batch)

        with pytest.raises(ValidationError):
            reconciliation_service.resubmit_batch(
                batch["id"], "worker-1", {batch["items"][0]["id"]: {"quantity": 0}}
            )

        stored = _status(test_db, batch["id"])
        assert stored.status == "rejected"
        assert stored.items[0].quantity == 5

    def test_wrong_warehouse_edit_is_rejected(self, test_db, products, simple_batch):
        batch = self._rejected(simple_batch)

        with pytest.raises(ValidationError):
            reconciliation_service.resubmit_batch(
                batch["id"],
                "worker-1",
                {batch["items"][0]["id"]: {"product_id": products.semi_x["id"]}},
            )

        assert _status(test_db, batch["id"]).status == "rejected"

    def test_rejected_batch_corrected_and_confirmed_end_to_end(
        self, test_db, products, simple_batch
    ):
        rejected = reconciliation_service.reject_batch(
            simple_batch["id"], "warehouse-1", "quantity mismatch"
        )
        assert rejected["reject_reason"] == "quantity mismatch"
        product_a_item = next(
            item
            for item in simple_batch["items"]
            if item["product_id"] == products.product_a["id"]
        )

        resubmitted = reconciliation_service.resubmit_batch(
            simple_batch["id"], "worker-1", {product_a_item["id"]: {"quantity": 8}}
        )
        assert resubmitted["status"] == "pending"

        reconciliation_service.confirm_batch(simple_batch["id"], "warehouse-1")

        entries = batch_query_service.list_ledger_entries()
        assert [(e["product_id"], e["direction"], e["quantity"]) for e in entries] == [
            (products.product_a["id"], "in", 8),
            (products.product_b["id"], "in", 3),
        ]
