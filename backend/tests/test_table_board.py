"""
Tests for the table aggregator.
"""

from datetime import datetime, timedelta, timezone

from shared.config.settings import settings
from shared.utils.schemas import Order
from rest_api.services.domain.table_board import (
    build_board_output,
    build_table_board,
    default_table_keys,
    group_orders_by_table,
    normalize_table_key,
)

BASE_TIME = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def make(order_id, table_id, status="Pending", item_statuses=("Pending",), help_requested=False, minute=0):
    if status == "Served":
        item_statuses = tuple("Served" for _ in item_statuses)
    return Order(
        id=order_id,
        table_id=table_id,
        order_number=minute + 1,
        items=[
            {"name": f"item{i}", "quantity": 1, "unit_price": 1.0, "status": item_status}
            for i, item_status in enumerate(item_statuses)
        ],
        status=status,
        help_requested=help_requested,
        total_price=float(len(item_statuses)),
        timestamp=BASE_TIME + timedelta(minutes=minute),
    )


class TestTableKeys:

    def test_blank_keys_are_takeaway(self):
        assert normalize_table_key(None) == settings.takeaway_key
        assert normalize_table_key("") == settings.takeaway_key
        assert normalize_table_key(" 4 ") == "4"

    def test_default_keys(self):
        keys = default_table_keys()
        assert keys[0] == settings.takeaway_key
        assert keys[1:] == [str(n) for n in range(1, settings.board_table_count + 1)]


class TestGrouping:

    def test_groups_keep_snapshot_order(self):
        orders = [make("c", "2", minute=3), make("b", "1", minute=2), make("a", "2", minute=1)]
        groups = group_orders_by_table(orders)

        assert list(groups) == [settings.takeaway_key, "2", "1"]
        assert [order.id for order in groups["2"]] == ["c", "a"]
        assert groups[settings.takeaway_key] == []

    def test_same_snapshot_same_board(self):
        orders = [make("a", "1"), make("b", "Takeaway", status="Received")]
        assert build_table_board(orders) == build_table_board(list(orders))


class TestTableFlags:

    def _table(self, board, key):
        return next(table for table in board if table.key == key)

    def test_empty_table(self):
        table = self._table(build_table_board([]), "5")
        assert not table.is_occupied
        assert not table.has_pending
        assert not table.needs_help
        assert table.ticket_count == 0

    def test_flags(self):
        orders = [
            make("a", "3", status="Served"),
            make("b", "3", status="Ready", item_statuses=("Served", "Pending")),
            make("c", "4", status="Pending", help_requested=True),
            make("d", "5", status="Served"),
        ]
        board = build_table_board(orders)

        three = self._table(board, "3")
        assert three.is_occupied and three.has_pending
        assert not three.awaiting_approval
        assert three.ticket_count == 2

        four = self._table(board, "4")
        assert four.needs_help and four.awaiting_approval

        five = self._table(board, "5")
        assert five.is_occupied and not five.has_pending

    def test_display_order(self):
        orders = [make("a", "10"), make("b", "Bar"), make("c", "2")]
        keys = [table.key for table in build_table_board(orders, table_keys=[])]
        assert keys == [settings.takeaway_key, "2", "10", "Bar"]

    def test_unknown_tables_are_added(self):
        board = build_table_board([make("a", "Patio")])
        assert board[-1].key == "Patio"
        assert len(board) == settings.board_table_count + 2

    def test_board_output(self):
        output = build_board_output([make("a", "1"), make("b", "2")])
        assert output.order_count == 2
        assert output.generated_at.tzinfo is not None
