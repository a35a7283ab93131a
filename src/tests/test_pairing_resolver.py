"""Tests for relabel pairing.

pair_relabel_items() is pure, so these tests use lightweight stand-ins for
line items instead of database rows.
"""

from types import SimpleNamespace

from factory_ledger.services.pairing_resolver import pair_relabel_items


def _item(item_id, quantity, category, product_id=None, position=None):
    return SimpleNamespace(
        id=item_id,
        quantity=quantity,
        category=category,
        product_id=product_id or item_id * 100,
        position=position,
    )


class TestPairRelabelItems:
    """Tests for pair_relabel_items()."""

    def test_single_pair(self):
        """One relabel_out pairs with the relabel_in of equal quantity."""
        out_item = _item(1, 10, "relabel_out")
        in_item = _item(2, 10, "relabel_in")

        result = pair_relabel_items([in_item, out_item])

        assert result.pairs == [(out_item, in_item)]
        assert result.partner_of(out_item) is in_item
        assert result.partner_of(in_item) is out_item
        assert result.unpaired_outs == []
        assert result.unpaired_ins == []

    def test_first_unconsumed_match_wins(self):
        """Outs [10, 20, 10] against ins [10, 10] pair first-with-first and third-with-second."""
        out1 = _item(1, 10, "relabel_out")
        out2 = _item(2, 20, "relabel_out")
        out3 = _item(3, 10, "relabel_out")
        in1 = _item(4, 10, "relabel_in")
        in2 = _item(5, 10, "relabel_in")

        result = pair_relabel_items([out1, out2, out3, in1, in2])

        assert result.partner_of(out1) is in1
        assert result.partner_of(out2) is None
        assert result.partner_of(out3) is in2
        assert result.unpaired_outs == [out2]
        assert result.unpaired_ins == []
        assert result.paired_count == 2

    def test_unmatched_in_is_left_unpaired(self):
        """A relabel_in with no equal-quantity out stays unpaired."""
        out_item = _item(1, 5, "relabel_out")
        in_item = _item(2, 6, "relabel_in")

        result = pair_relabel_items([in_item, out_item])

        assert result.pairs == []
        assert result.unpaired_outs == [out_item]
        assert result.unpaired_ins == [in_item]
        assert result.partner_of(in_item) is None

    def test_pairing_ignores_product_identity(self):
        """Equal quantities pair in submission order even across unrelated products."""
        # Two relabel actions: semi 700 -> fin 800, semi 900 -> fin 1000, both qty 12.
        # Ins are listed in the opposite order, so remarks get cross-attributed.
        in_second_action = _item(1, 12, "relabel_in", product_id=1000)
        in_first_action = _item(2, 12, "relabel_in", product_id=800)
        out_first_action = _item(3, 12, "relabel_out", product_id=700)
        out_second_action = _item(4, 12, "relabel_out", product_id=900)

        result = pair_relabel_items(
            [in_second_action, in_first_action, out_first_action, out_second_action]
        )

        assert result.partner_of(out_first_action) is in_second_action
        assert result.partner_of(out_second_action) is in_first_action

    def test_position_defines_submission_order(self):
        """Persisted items are ordered by position, not by list order."""
        out_item = _item(1, 10, "relabel_out", position=2)
        in_late = _item(2, 10, "relabel_in", position=1)
        in_early = _item(3, 10, "relabel_in", position=0)

        result = pair_relabel_items([out_item, in_late, in_early])

        assert result.partner_of(out_item) is in_early
        assert result.unpaired_ins == [in_late]

    def test_non_relabel_items_are_ignored(self):
        """Finished and semi-finished items never take part in pairing."""
        finished = _item(1, 10, "finished")
        semi = _item(2, 10, "semi_finished")
        out_item = _item(3, 10, "relabel_out")

        result = pair_relabel_items([finished, semi, out_item])

        assert result.pairs == []
        assert result.unpaired_outs == [out_item]
        assert result.partner_of(finished) is None

    def test_empty_batch(self):
        result = pair_relabel_items([])

        assert result.pairs == []
        assert result.paired_count == 0
